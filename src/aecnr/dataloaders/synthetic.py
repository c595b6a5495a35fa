"""Seeded synthetic echo and noise scenes."""

from __future__ import annotations

import numpy as np
from scipy.signal import lfilter

from aecnr.filters.core import Recording


def _random_paths(
    rng: np.random.Generator, shape: tuple[int, ...], length: int, decay: float
) -> np.ndarray:
    envelope = np.exp(-np.arange(length) / max(decay, 1e-12))
    taps = rng.standard_normal(shape + (length,)) * envelope
    return taps / np.sqrt(np.sum(taps**2, axis=-1, keepdims=True))


def _convolve(paths: np.ndarray, sources: np.ndarray) -> np.ndarray:
    """Filter ``(n_samples, n_src)`` sources by ``(n_out, n_src, taps)`` paths."""
    n_out, n_src, _ = paths.shape
    out = np.zeros((sources.shape[0], n_out))
    for m in range(n_out):
        for j in range(n_src):
            out[:, m] += lfilter(paths[m, j], [1.0], sources[:, j])
    return out


def activity_schedule(
    n_samples: int, sample_rate: int, period_sec: float
) -> tuple[np.ndarray, np.ndarray]:
    """Return periodic near-end and far-end activity gates.

    Within each period the far end talks during the first half and the near
    end during the middle half, so all four activity regimes occur.
    """
    phase = (np.arange(n_samples) / float(sample_rate)) % period_sec / period_sec
    far_end = phase < 0.5
    near_end = (phase >= 0.25) & (phase < 0.75)
    return near_end, far_end


def _gain_for_ratio(target: np.ndarray, other: np.ndarray, ratio_db: float) -> float:
    other_energy = float(np.sum(other**2))
    if other_energy <= 0.0:
        return 0.0
    return float(np.sqrt(np.sum(target**2) / other_energy / 10.0 ** (ratio_db / 10.0)))


def simulate_scene(
    *,
    seed: int,
    sample_rate: int = 8000,
    duration_sec: float = 8.0,
    n_mics: int = 2,
    n_loudspeakers: int = 1,
    snr_db: float | None = 0.0,
    ser_db: float = 6.0,
    far_noise_db: float = -20.0,
    period_sec: float = 2.0,
    path_length: int = 16,
    path_decay: float = 4.0,
) -> Recording:
    """
    Generate a reproducible multi-microphone recording with echo and noise.

    Near-end and far-end "speech" are gated white-noise bursts following
    :func:`activity_schedule`, exactly zero outside their bursts. They reach
    the microphones through short random decaying FIR paths. The far end
    also plays continuous low-level noise, and each microphone adds
    independent white sensor noise.

    Parameters
    ----------
    seed:
        Seed of the only random generator used.
    sample_rate, duration_sec:
        Output sampling rate and length.
    n_mics, n_loudspeakers:
        Channel counts. ``n_loudspeakers=0`` yields an echo-free recording.
        Such a recording has no far-end-only frames, so the strategies, which
        all estimate noise statistics over those frames, cannot process it.
    snr_db:
        Speech-to-sensor-noise ratio on speech-active reference samples.
        ``None`` disables sensor noise.
    ser_db:
        Speech-to-echo ratio on speech-active reference samples.
    far_noise_db:
        Far-end noise level relative to far-end speech on the loudspeakers.
    period_sec:
        Length of one activity cycle.
    path_length, path_decay:
        Number of taps and exponential decay constant (in taps) of the
        acoustic paths. ``path_length=1`` gives pure gains.
    """
    if n_mics < 1 or n_loudspeakers < 0:
        raise ValueError("need n_mics >= 1 and n_loudspeakers >= 0")
    if path_length < 1:
        raise ValueError("path_length must be >= 1")
    rng = np.random.default_rng(seed)
    n_samples = int(round(duration_sec * sample_rate))
    near_gate, far_gate = activity_schedule(n_samples, sample_rate, period_sec)

    near_source = rng.standard_normal((n_samples, 1)) * near_gate[:, None]
    speech = _convolve(
        _random_paths(rng, (n_mics, 1), path_length, path_decay), near_source
    )
    active = speech[:, 0] != 0.0

    loudspeaker_speech = (
        rng.standard_normal((n_samples, n_loudspeakers)) * far_gate[:, None]
    )
    loudspeaker_noise = rng.standard_normal(
        (n_samples, n_loudspeakers)
    ) * 10.0 ** (far_noise_db / 20.0)
    if n_loudspeakers > 0:
        echo_paths = _random_paths(
            rng, (n_mics, n_loudspeakers), path_length, path_decay
        )
        echo_speech = _convolve(echo_paths, loudspeaker_speech)
        echo_noise = _convolve(echo_paths, loudspeaker_noise)
        gain = _gain_for_ratio(
            speech[active, 0], (echo_speech + echo_noise)[active, 0], ser_db
        )
        echo_speech *= gain
        echo_noise *= gain
    else:
        echo_speech = np.zeros((n_samples, n_mics))
        echo_noise = np.zeros((n_samples, n_mics))

    if snr_db is None:
        noise = np.zeros((n_samples, n_mics))
    else:
        noise = rng.standard_normal((n_samples, n_mics))
        noise *= _gain_for_ratio(speech[active, 0], noise[active, 0], snr_db)

    return Recording(
        mixture=speech + noise + echo_speech + echo_noise,
        speech=speech,
        noise=noise,
        echo_speech=echo_speech,
        echo_noise=echo_noise,
        loudspeaker=loudspeaker_speech + loudspeaker_noise,
        loudspeaker_speech=loudspeaker_speech,
        loudspeaker_noise=loudspeaker_noise,
        sample_rate=int(sample_rate),
    )
