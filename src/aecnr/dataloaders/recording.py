"""Load and save multi-stem recordings stored as one WAV file per stem."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
import soundfile as sf

from aecnr.filters.core import LOUDSPEAKER_VIEWS, MIC_VIEWS, VIEW_NAMES, Recording

METADATA_FILE = "metadata.json"


def _read_stem(path: Path) -> tuple[np.ndarray, int]:
    audio, sample_rate = sf.read(path, always_2d=True)
    return np.asarray(audio, dtype=np.float64), int(sample_rate)


def load_recording(
    scene_path: Path | str,
    *,
    duration_sec: float | None = None,
) -> Recording:
    """Load ``<stem>.wav`` files from ``scene_path`` into a :class:`Recording`.

    A recording without loudspeakers may omit all three loudspeaker stems.
    It loads with zero loudspeaker channels, but every processing strategy
    needs far-end-only frames and rejects it with
    :class:`~aecnr.filters.core.InsufficientDataError`.
    """
    path = Path(scene_path)
    if not path.exists():
        raise FileNotFoundError(f"Scene path not found: {path}")

    missing = [name for name in VIEW_NAMES if not (path / f"{name}.wav").exists()]
    no_loudspeakers = sorted(missing) == sorted(LOUDSPEAKER_VIEWS)
    if missing and not no_loudspeakers:
        raise FileNotFoundError(
            f"Missing stem file(s) in {path}: {', '.join(missing)}"
        )

    stems: dict[str, np.ndarray] = {}
    stems["mixture"], sample_rate = _read_stem(path / "mixture.wav")
    for name in VIEW_NAMES:
        if name in missing or name in stems:
            continue
        stem_path = path / f"{name}.wav"
        audio, stem_sr = _read_stem(stem_path)
        if stem_sr != sample_rate:
            raise ValueError(
                f"Sample-rate mismatch in {stem_path}: {stem_sr} != {sample_rate}"
            )
        stems[name] = audio

    min_samples = min(int(audio.shape[0]) for audio in stems.values())
    if duration_sec is not None and duration_sec > 0:
        duration_samples = int(float(duration_sec) * sample_rate)
        if duration_samples <= 0:
            raise ValueError("duration_sec is too small for the sample rate.")
        min_samples = min(min_samples, duration_samples)
    if min_samples <= 0:
        raise ValueError(f"Scene {path} contains no audio samples.")

    for group in (MIC_VIEWS, LOUDSPEAKER_VIEWS):
        present = [name for name in group if name in stems]
        channels = {stems[name].shape[1] for name in present}
        if len(channels) > 1:
            raise ValueError(
                f"Channel mismatch across stems {present} in {path}: {sorted(channels)}"
            )

    for name in missing:
        stems[name] = np.zeros((min_samples, 0))
    return Recording(
        **{name: stems[name][:min_samples, :] for name in VIEW_NAMES},
        sample_rate=sample_rate,
    )


def save_recording(
    scene_path: Path | str,
    recording: Recording,
    *,
    metadata: dict[str, Any] | None = None,
) -> Path:
    """Write every stem of ``recording`` as ``<stem>.wav`` under ``scene_path``.

    Zero-channel stems are skipped. ``metadata`` is stored as JSON next to the
    stems when given.
    """
    path = Path(scene_path)
    path.mkdir(parents=True, exist_ok=True)
    for name, audio in recording.items():
        if audio.shape[1] == 0:
            continue
        sf.write(path / f"{name}.wav", audio, recording.sample_rate, subtype="FLOAT")
    if metadata is not None:
        with (path / METADATA_FILE).open("w", encoding="utf-8") as fh:
            json.dump(metadata, fh, indent=2, sort_keys=True)
    return path


def load_metadata(scene_path: Path | str) -> dict[str, Any]:
    """Return the scene metadata, or an empty dict when none was saved."""
    metadata_path = Path(scene_path) / METADATA_FILE
    if not metadata_path.exists():
        return {}
    with metadata_path.open("r", encoding="utf-8") as fh:
        return json.load(fh)
