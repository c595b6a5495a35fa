"""Residual post-filter design for the extended noise-reduction chain."""

from __future__ import annotations

import numpy as np

from .core import ConfigurationError


def design_postfilter(
    present: np.ndarray,
    desired_correlation: np.ndarray,
    upstream_block: np.ndarray,
) -> np.ndarray:
    """
    Design the per-bin post-filter.

    $$
       W_{\\mathrm{pf},n} = R_{1,n}^{+}\\,\\hat{R}_{d,n}\\,W_{11,n}^{+}
    $$

    Parameters
    ----------
    present : ndarray of shape (n_bin, M, M)
        Near-end-active correlation of the echo-cancelled signal.
    desired_correlation : ndarray of shape (n_bin, M, M)
        Rank-truncated desired correlation from the GEVD of the same pair.
    upstream_block : ndarray of shape (n_bin, M, M)
        Microphone-to-microphone block of the extended noise-reduction filter.

    Returns
    -------
    ndarray of shape (n_bin, M, M)
    """
    present = np.asarray(present)
    desired_correlation = np.asarray(desired_correlation)
    upstream_block = np.asarray(upstream_block)
    if present.ndim != 3 or present.shape[-1] != present.shape[-2]:
        raise ConfigurationError(
            f"present correlation must have shape (n_bin, M, M), got {present.shape}"
        )
    for name, arr in (
        ("desired_correlation", desired_correlation),
        ("upstream_block", upstream_block),
    ):
        if arr.shape != present.shape:
            raise ConfigurationError(
                f"{name} shape {arr.shape} does not match {present.shape}"
            )
    return (
        np.linalg.pinv(present, hermitian=True)
        @ desired_correlation
        @ np.linalg.pinv(upstream_block)
    )
