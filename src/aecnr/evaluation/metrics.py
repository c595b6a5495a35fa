"""Quality metrics for echo and noise suppression outputs."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from aecnr.filters.core import Recording
from aecnr.signal.vad import detect_time_activity


def snr(signal: np.ndarray, noise: np.ndarray) -> float:
    """Energy ratio in dB, ``10 log10(sum s^2 / sum n^2)``."""
    signal = np.asarray(signal)
    noise = np.asarray(noise)
    with np.errstate(divide="ignore"):
        return float(
            10.0 * np.log10(np.sum(np.abs(signal) ** 2) / np.sum(np.abs(noise) ** 2))
        )


def sd(reference: np.ndarray, processed: np.ndarray) -> float:
    """Speech distortion in dB, ``10 log10(mean s^2 / mean s_hat^2)``."""
    reference = np.asarray(reference)
    processed = np.asarray(processed)
    with np.errstate(divide="ignore"):
        return float(
            10.0
            * np.log10(np.mean(np.abs(reference) ** 2) / np.mean(np.abs(processed) ** 2))
        )


def ser(speech: np.ndarray, echo: np.ndarray) -> float:
    """Speech-to-echo ratio in dB."""
    return snr(speech, echo)


@dataclass
class MetricsReport:
    """Reference-channel metrics before and after processing."""

    snr_unprocessed: float
    ser_unprocessed: float
    snr: float
    ser: float
    sd: float
    n_active: int

    @property
    def snr_improvement(self) -> float:
        return self.snr - self.snr_unprocessed

    @property
    def ser_improvement(self) -> float:
        return self.ser - self.ser_unprocessed

    def to_summary(self) -> dict[str, object]:
        return {
            "snr_unprocessed": float(self.snr_unprocessed),
            "ser_unprocessed": float(self.ser_unprocessed),
            "snr": float(self.snr),
            "ser": float(self.ser),
            "sd": float(self.sd),
            "snr_improvement": float(self.snr_improvement),
            "ser_improvement": float(self.ser_improvement),
            "n_active": int(self.n_active),
        }


def compute_metrics(
    reference: Recording,
    processed: Recording,
    *,
    reference_channel: int = 0,
    sensitivity: float = 1e-5,
    warmup_sec: float = 0.0,
) -> MetricsReport:
    """
    Compute SNR, SER and SD on the reference microphone.

    The first ``floor(warmup_sec * sample_rate)`` samples are discarded and
    only samples where the unprocessed desired speech is active are kept.

    Parameters
    ----------
    reference:
        Unprocessed recording.
    processed:
        Processed microphone stems with the same sample count.
    reference_channel:
        Microphone used for evaluation.
    sensitivity:
        Time-domain activity threshold factor.
    warmup_sec:
        Initial interval excluded from evaluation.

    Returns
    -------
    MetricsReport

    Raises
    ------
    ValueError
        If the warm-up exceeds the signal, shapes disagree, or no speech
        sample is active.
    """
    if processed.n_samples != reference.n_samples:
        raise ValueError(
            f"sample count mismatch: {reference.n_samples} != {processed.n_samples}"
        )
    if not 0 <= reference_channel < reference.n_mics:
        raise ValueError(
            f"reference_channel {reference_channel} out of range [0, {reference.n_mics})"
        )
    if warmup_sec < 0 or reference.duration < warmup_sec:
        raise ValueError(
            f"warm-up of {warmup_sec} s does not fit a {reference.duration:.3f} s signal"
        )
    start = int(np.floor(warmup_sec * reference.sample_rate))
    ch = reference_channel

    def _ref(rec: Recording, *names: str) -> np.ndarray:
        return sum(rec.stem(name)[start:, ch] for name in names)

    speech = _ref(reference, "speech")
    if speech.size < 2:
        raise ValueError("not enough samples left after the warm-up interval")
    active = detect_time_activity(speech, sensitivity)
    if not np.any(active):
        raise ValueError("no speech-active sample in the evaluation interval")

    noise = _ref(reference, "noise")[active]
    echo = _ref(reference, "echo_speech", "echo_noise")[active]
    speech_hat = _ref(processed, "speech")[active]
    noise_hat = _ref(processed, "noise")[active]
    echo_hat = _ref(processed, "echo_speech", "echo_noise")[active]
    speech = speech[active]

    return MetricsReport(
        snr_unprocessed=snr(speech, noise),
        ser_unprocessed=ser(speech, echo),
        snr=snr(speech_hat, noise_hat),
        ser=ser(speech_hat, echo_hat),
        sd=sd(speech, speech_hat),
        n_active=int(np.count_nonzero(active)),
    )
