"""Masked time-averaged correlation matrix estimation."""

from __future__ import annotations

import numpy as np

from .core import ConfigurationError, CorrelationPair, InsufficientDataError
from .utils import tensor_H


def _check_mask(signal: np.ndarray, mask: np.ndarray, name: str) -> np.ndarray:
    mask = np.asarray(mask)
    if mask.dtype != np.bool_:
        raise ConfigurationError(f"{name} must be boolean, got dtype {mask.dtype}")
    if signal.ndim != 3:
        raise ConfigurationError(
            f"signal must have shape (channel, frame, bin), got {signal.shape}"
        )
    if mask.shape != signal.shape[1:]:
        raise ConfigurationError(
            f"{name} shape {mask.shape} does not match signal (frame, bin) "
            f"axes {signal.shape[1:]}"
        )
    return mask


def estimate_regime_correlation(
    signal: np.ndarray, mask: np.ndarray, *, name: str = "mask"
) -> tuple[np.ndarray, np.ndarray]:
    """
    Estimate per-bin correlation matrices over the frames selected by ``mask``.

    $$
       R_n = \\frac{1}{|\\mathcal{K}_n|}\\sum_{k\\in\\mathcal{K}_n}
       \\bm{x}_{k,n}\\bm{x}_{k,n}^{\\mathsf{H}}
    $$

    Parameters
    ----------
    signal : ndarray of shape (n_chan, n_frame, n_bin)
    mask : bool ndarray of shape (n_frame, n_bin)

    Returns
    -------
    correlation : ndarray of shape (n_bin, n_chan, n_chan)
    counts : ndarray of shape (n_bin,)
        Number of frames selected in each bin.

    Raises
    ------
    InsufficientDataError
        If ``mask`` selects no frame for at least one bin.
    """
    signal = np.asarray(signal)
    mask = _check_mask(signal, mask, name)

    counts = mask.sum(axis=0)
    empty = np.flatnonzero(counts == 0)
    if empty.size:
        raise InsufficientDataError(
            f"{name} selects no frame in {empty.size} bin(s): "
            f"{empty[:8].tolist()}{' ...' if empty.size > 8 else ''}",
            bins=empty,
        )

    # shape: (n_bin, n_chan, n_frame)
    selected = signal.transpose(2, 0, 1) * mask.T[:, None, :]
    corr = selected @ tensor_H(selected)
    corr /= counts[:, None, None]
    return 0.5 * (corr + tensor_H(corr)), counts


def estimate_correlation(
    signal: np.ndarray, mask_a: np.ndarray, mask_b: np.ndarray
) -> CorrelationPair:
    """Estimate the correlation pair for a present/absent regime split.

    Parameters
    ----------
    signal : ndarray of shape (n_chan, n_frame, n_bin)
    mask_a : bool ndarray of shape (n_frame, n_bin)
        Frames of the regime in which the desired component is present.
    mask_b : bool ndarray of shape (n_frame, n_bin)
        Frames of the regime in which it is absent.
    """
    present, present_frames = estimate_regime_correlation(
        signal, mask_a, name="mask_a"
    )
    absent, absent_frames = estimate_regime_correlation(signal, mask_b, name="mask_b")
    return CorrelationPair(
        present=present,
        absent=absent,
        present_frames=present_frames,
        absent_frames=absent_frames,
    )
