"""Energy-threshold voice activity detection."""

from __future__ import annotations

import numpy as np


def detect_activity(
    x: np.ndarray, sensitivity: float = 1e-5, reference: int = 0
) -> np.ndarray:
    """
    Per-bin activity of a frequency-domain signal on the reference channel.

    Frame $k$ is active in bin $n$ when

    $$
       |x_{r,k,n}| > \\gamma\\,\\sigma_n, \\quad
       \\sigma_n = \\mathrm{std}_k(x_{r,k,n})
    $$

    with the sample standard deviation over all frames.

    Parameters
    ----------
    x : ndarray of shape (n_chan, n_frame, n_bin)
    sensitivity : float
        Threshold factor $\\gamma$.
    reference : int
        Reference channel $r$.

    Returns
    -------
    bool ndarray of shape (n_frame, n_bin)
    """
    x = np.asarray(x)
    if x.ndim != 3:
        raise ValueError(f"x must have shape (n_chan, n_frame, n_bin), got {x.shape}")
    if not 0 <= reference < x.shape[0]:
        raise ValueError(f"reference channel {reference} out of range [0, {x.shape[0]})")
    ref = x[reference]
    return np.abs(ref) > sensitivity * np.std(ref, axis=0, ddof=1)


def detect_time_activity(x: np.ndarray, sensitivity: float = 1e-5) -> np.ndarray:
    """Sample-wise activity of a 1-D time-domain signal."""
    x = np.asarray(x)
    if x.ndim != 1:
        raise ValueError(f"x must be 1-D, got shape {x.shape}")
    return np.abs(x) > sensitivity * np.std(x, ddof=1)
