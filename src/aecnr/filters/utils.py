"""Collection of utility functions for per-bin multichannel filtering."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence, TypeVar

import numpy as np

from .core import ConfigurationError

T = TypeVar("T")


def tensor_H(A):
    """Compute Hermitian transpose for tensor."""
    return np.conj(A).swapaxes(-2, -1)


def stack_channels(views: Sequence[np.ndarray]) -> np.ndarray:
    """Concatenate ``(channel, frame, bin)`` views along the channel axis."""
    return np.concatenate([np.asarray(view) for view in views], axis=0)


def apply_filter(x, W):
    """
    Apply per-bin filter matrices to a multichannel signal.

    For every frame $k$ and bin $n$:

    $$
       \\bm{y}_{k,n} = W_n^{\\mathsf{H}} \\bm{x}_{k,n}
    $$

    Parameters
    ----------
    x : ndarray of shape (n_in, n_frame, n_bin)
    W : ndarray of shape (n_bin, n_in, n_out)

    Returns
    -------
    ndarray of shape (n_out, n_frame, n_bin)
    """
    if x.ndim != 3 or W.ndim != 3:
        raise ConfigurationError(
            f"apply_filter expects 3-D signal and filter, got {x.shape} and {W.shape}"
        )
    if W.shape[0] != x.shape[2] or W.shape[1] != x.shape[0]:
        raise ConfigurationError(
            f"filter shape {W.shape} does not fit signal shape {x.shape}"
        )
    return np.einsum("nco,ckn->okn", np.conj(W), x)


def map_bins(
    func: Callable[[int], T], n_bins: int, *, workers: int = 1
) -> list[T]:
    """Evaluate ``func`` for every bin index and return results in bin order.

    Bins are independent, so ``workers > 1`` runs them on a thread pool.
    """
    if workers < 1:
        raise ConfigurationError(f"workers must be >= 1, got {workers}")
    if workers == 1 or n_bins <= 1:
        return [func(n) for n in range(n_bins)]
    with ThreadPoolExecutor(max_workers=int(workers)) as pool:
        return list(pool.map(func, range(n_bins)))
