"""Shared STFT planning, analysis and synthesis utilities."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.signal import ShortTimeFFT, get_window


@dataclass(frozen=True)
class STFTPlan:
    """Weighted overlap-add filterbank configuration."""

    fft_size: int = 512
    hop_size: int = 256
    window: str = "hann"
    sqrt_window: bool = True


def build_stft(plan: STFTPlan, sample_rate: int) -> ShortTimeFFT:
    """Build a :class:`scipy.signal.ShortTimeFFT` instance from ``plan``.

    The window is periodic and, with ``plan.sqrt_window``, square-rooted so
    that analysis and synthesis windows together form the named window.
    """
    win = get_window(plan.window, plan.fft_size, fftbins=True)
    if plan.sqrt_window:
        win = np.sqrt(np.clip(win, 0.0, None))
    return ShortTimeFFT(win=win, hop=plan.hop_size, fs=sample_rate)


def analyze(x: np.ndarray, plan: STFTPlan, sample_rate: int) -> np.ndarray:
    """Transform ``(n_samples, n_chan)`` signals to ``(n_chan, n_frame, n_bin)``."""
    x = np.asarray(x, dtype=np.float64)
    if x.ndim != 2:
        raise ValueError(f"x must have shape (n_samples, n_chan), got {x.shape}")
    stft = build_stft(plan, sample_rate)
    n_samples, n_chan = x.shape
    if n_chan == 0:
        return np.zeros((0, stft.p_num(n_samples), stft.f_pts), dtype=np.complex128)
    return stft.stft(x.T).transpose(0, 2, 1)


def synthesize(
    X: np.ndarray, plan: STFTPlan, sample_rate: int, n_samples: int
) -> np.ndarray:
    """Inverse of :func:`analyze`, returning ``(n_samples, n_chan)``."""
    X = np.asarray(X)
    if X.ndim != 3:
        raise ValueError(f"X must have shape (n_chan, n_frame, n_bin), got {X.shape}")
    if X.shape[0] == 0:
        return np.zeros((n_samples, 0))
    stft = build_stft(plan, sample_rate)
    y = np.real(stft.istft(X.transpose(0, 2, 1), k1=n_samples))
    return y.T
