"""Typed data models shared by filter design stages and strategies."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterator

import numpy as np

from .errors import ConfigurationError

MIC_VIEWS = ("mixture", "speech", "noise", "echo_speech", "echo_noise")
LOUDSPEAKER_VIEWS = ("loudspeaker", "loudspeaker_speech", "loudspeaker_noise")
VIEW_NAMES = MIC_VIEWS + LOUDSPEAKER_VIEWS

# Loudspeaker view stacked under each microphone view in the extended signal.
# ``None`` means the view carries no loudspeaker contribution (zero rows).
EXTENSION_PARTNERS: dict[str, str | None] = {
    "mixture": "loudspeaker",
    "speech": None,
    "noise": None,
    "echo_speech": "loudspeaker_speech",
    "echo_noise": "loudspeaker_noise",
}


def _check_group(
    arrays: dict[str, np.ndarray], names: tuple[str, ...], ndim: int, context: str
) -> tuple[int, ...]:
    shapes = {name: np.shape(arrays[name]) for name in names}
    for name, shape in shapes.items():
        if len(shape) != ndim:
            raise ConfigurationError(
                f"{context} view '{name}' must be {ndim}-D, got shape {shape}"
            )
    reference = shapes[names[0]]
    mismatched = [name for name, shape in shapes.items() if shape != reference]
    if mismatched:
        raise ConfigurationError(
            f"{context} views {mismatched} do not match shape {reference} "
            f"of '{names[0]}'"
        )
    return reference


@dataclass(frozen=True, slots=True)
class SignalSet:
    """Frequency-domain views of one recording.

    Every view is indexed ``(channel, frame, bin)``. Microphone views share
    ``n_mics`` channels, loudspeaker views share ``n_loudspeakers`` channels
    (possibly zero) and all views share frame and bin counts.

    Parameters
    ----------
    mixture:
        Microphone signal ``m = s + n + es + en``.
    speech, noise:
        Near-end desired speech and near-end noise components of ``mixture``.
    echo_speech, echo_noise:
        Far-end speech and far-end noise components of the microphone echo.
    loudspeaker:
        Loudspeaker signal ``l = ls + ln``.
    loudspeaker_speech, loudspeaker_noise:
        Far-end speech and far-end noise components of ``loudspeaker``.
    """

    mixture: np.ndarray
    speech: np.ndarray
    noise: np.ndarray
    echo_speech: np.ndarray
    echo_noise: np.ndarray
    loudspeaker: np.ndarray
    loudspeaker_speech: np.ndarray
    loudspeaker_noise: np.ndarray

    def __post_init__(self) -> None:
        arrays = {name: getattr(self, name) for name in VIEW_NAMES}
        mic_shape = _check_group(arrays, MIC_VIEWS, 3, "microphone")
        ls_shape = _check_group(arrays, LOUDSPEAKER_VIEWS, 3, "loudspeaker")
        if mic_shape[1:] != ls_shape[1:]:
            raise ConfigurationError(
                "microphone and loudspeaker views must share (frame, bin) axes, "
                f"got {mic_shape[1:]} and {ls_shape[1:]}"
            )

    @property
    def n_mics(self) -> int:
        return int(self.mixture.shape[0])

    @property
    def n_loudspeakers(self) -> int:
        return int(self.loudspeaker.shape[0])

    @property
    def n_frames(self) -> int:
        return int(self.mixture.shape[1])

    @property
    def n_bins(self) -> int:
        return int(self.mixture.shape[2])

    def view(self, name: str) -> np.ndarray:
        """Return the view called ``name``."""
        if name not in VIEW_NAMES:
            raise KeyError(f"Unknown signal view: {name!r}")
        return getattr(self, name)

    def items(self) -> Iterator[tuple[str, np.ndarray]]:
        for name in VIEW_NAMES:
            yield name, getattr(self, name)

    def replace(self, **views: np.ndarray) -> "SignalSet":
        """Return a copy with the given views swapped in."""
        return replace(self, **views)


@dataclass(frozen=True)
class Recording:
    """Time-domain stems of one recording.

    Every stem has shape ``(n_samples, n_channels)``; the stem names follow
    :class:`SignalSet`.
    """

    mixture: np.ndarray
    speech: np.ndarray
    noise: np.ndarray
    echo_speech: np.ndarray
    echo_noise: np.ndarray
    loudspeaker: np.ndarray
    loudspeaker_speech: np.ndarray
    loudspeaker_noise: np.ndarray
    sample_rate: int

    def __post_init__(self) -> None:
        arrays = {name: getattr(self, name) for name in VIEW_NAMES}
        mic_shape = _check_group(arrays, MIC_VIEWS, 2, "microphone")
        ls_shape = _check_group(arrays, LOUDSPEAKER_VIEWS, 2, "loudspeaker")
        if mic_shape[0] != ls_shape[0]:
            raise ConfigurationError(
                "microphone and loudspeaker stems must share the sample count, "
                f"got {mic_shape[0]} and {ls_shape[0]}"
            )
        if int(self.sample_rate) <= 0:
            raise ConfigurationError("sample_rate must be positive")

    @property
    def n_samples(self) -> int:
        return int(self.mixture.shape[0])

    @property
    def n_mics(self) -> int:
        return int(self.mixture.shape[1])

    @property
    def n_loudspeakers(self) -> int:
        return int(self.loudspeaker.shape[1])

    @property
    def duration(self) -> float:
        """Return recording duration in seconds."""
        return self.n_samples / float(self.sample_rate)

    def stem(self, name: str) -> np.ndarray:
        if name not in VIEW_NAMES:
            raise KeyError(f"Unknown stem: {name!r}")
        return getattr(self, name)

    def items(self) -> Iterator[tuple[str, np.ndarray]]:
        for name in VIEW_NAMES:
            yield name, getattr(self, name)


@dataclass(frozen=True, slots=True)
class ActivityMasks:
    """Per-bin voice activity of the desired speech and of the echo.

    Both masks are boolean ``(frame, bin)`` arrays.
    """

    speech: np.ndarray
    echo: np.ndarray

    def __post_init__(self) -> None:
        for name in ("speech", "echo"):
            mask = getattr(self, name)
            if mask.dtype != np.bool_ or mask.ndim != 2:
                raise ConfigurationError(
                    f"{name} mask must be a boolean (frame, bin) array"
                )
        if self.speech.shape != self.echo.shape:
            raise ConfigurationError(
                f"speech and echo masks differ in shape: "
                f"{self.speech.shape} != {self.echo.shape}"
            )

    @property
    def near_and_far(self) -> np.ndarray:
        """Frames where desired speech and echo are both active."""
        return self.speech & self.echo

    @property
    def far_only(self) -> np.ndarray:
        """Frames where only the echo is active."""
        return ~self.speech & self.echo

    @property
    def silent(self) -> np.ndarray:
        """Frames where neither desired speech nor echo is active."""
        return ~self.speech & ~self.echo


@dataclass(frozen=True, slots=True)
class CorrelationPair:
    """Per-bin correlation matrices of a present/absent regime pair.

    ``present`` and ``absent`` have shape ``(n_bins, C, C)``; the frame counts
    have shape ``(n_bins,)``.
    """

    present: np.ndarray
    absent: np.ndarray
    present_frames: np.ndarray
    absent_frames: np.ndarray

    @property
    def n_channels(self) -> int:
        return int(self.present.shape[-1])


@dataclass(frozen=True, slots=True)
class GEVDFilter:
    """Result of GEVD-based filter synthesis.

    Parameters
    ----------
    filter:
        Filter matrices of shape ``(n_bins, C, C)``.
    eigenvalues:
        Generalized eigenvalues of shape ``(n_bins, C)``, descending.
    desired_correlation:
        Rank-truncated estimate of ``present - absent`` with shape
        ``(n_bins, C, C)``.
    rank:
        Number of retained generalized eigenvectors.
    """

    filter: np.ndarray
    eigenvalues: np.ndarray
    desired_correlation: np.ndarray
    rank: int


@dataclass(slots=True)
class StageResult:
    """Output of one processing stage.

    Fields that a stage does not produce stay ``None``.
    """

    name: str
    signals: SignalSet
    filter: np.ndarray | None = None
    echo_path: np.ndarray | None = None
    gevd: GEVDFilter | None = None
    correlation: CorrelationPair | None = None


@dataclass(slots=True)
class ProcessingResult:
    """Output of one strategy run.

    Parameters
    ----------
    strategy:
        Canonical strategy name.
    signals:
        Processed frequency-domain views.
    stages:
        Stage results keyed by stage name in execution order.
    metadata:
        Free-form run information for logging.
    """

    strategy: str
    signals: SignalSet
    stages: dict[str, StageResult] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
