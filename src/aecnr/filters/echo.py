"""Least-squares echo-path estimation and echo subtraction."""

from __future__ import annotations

import logging

import numpy as np

from .core import ConfigurationError, SignalSet
from .correlation import estimate_regime_correlation

LOGGER = logging.getLogger(__name__)


def estimate_echo_path(
    extended: np.ndarray, mask: np.ndarray, *, n_mics: int
) -> np.ndarray:
    """
    Estimate per-bin echo paths from loudspeaker to microphone channels.

    With the extended signal $\\bm{e} = [\\bm{m}; \\bm{l}]$ and its correlation
    $R$ over echo-only frames, the loudspeaker selector $B$ and microphone
    selector $H$ give the least-squares solution

    $$
       F_n = \\left(B^{\\mathsf{T}} R_n B\\right)^{+}
       \\left(B^{\\mathsf{T}} R_n H\\right)
    $$

    which is returned Hermitian-transposed so that the predicted echo is
    ``F[n] @ l[:, k, n]``.

    Parameters
    ----------
    extended : ndarray of shape (n_mics + n_loudspeakers, n_frame, n_bin)
        Microphone channels stacked above loudspeaker channels.
    mask : bool ndarray of shape (n_frame, n_bin)
        Frames where only the echo is active.
    n_mics : int
        Number of leading microphone channels in ``extended``.

    Returns
    -------
    ndarray of shape (n_bin, n_mics, n_loudspeakers)
    """
    extended = np.asarray(extended)
    if extended.ndim != 3:
        raise ConfigurationError(
            f"extended signal must have shape (channel, frame, bin), got {extended.shape}"
        )
    n_mics = int(n_mics)
    n_loudspeakers = extended.shape[0] - n_mics
    if n_mics < 1 or n_loudspeakers < 1:
        raise ConfigurationError(
            "echo-path estimation needs at least one microphone and one "
            f"loudspeaker channel, got M={n_mics}, L={n_loudspeakers}"
        )

    R, _ = estimate_regime_correlation(extended, mask, name="echo-only mask")
    R_ll = R[:, n_mics:, n_mics:]
    R_lm = R[:, n_mics:, :n_mics]
    # pseudo-inverse: the loudspeaker block may be rank deficient
    F = np.linalg.pinv(R_ll, hermitian=True) @ R_lm
    LOGGER.debug(
        "Estimated echo paths for %d bins (M=%d, L=%d)",
        R.shape[0],
        n_mics,
        n_loudspeakers,
    )
    return np.conj(F).swapaxes(-2, -1)


def predict_echo(echo_path: np.ndarray, loudspeaker: np.ndarray) -> np.ndarray:
    """Return ``F[n] @ l[:, k, n]`` for every frame and bin."""
    return np.einsum("nml,lkn->mkn", echo_path, loudspeaker)


def cancel_echo(signals: SignalSet, echo_path: np.ndarray) -> SignalSet:
    """Subtract the predicted echo from the echo-bearing microphone views.

    ``mixture``, ``echo_speech`` and ``echo_noise`` lose the echo predicted
    from ``loudspeaker``, ``loudspeaker_speech`` and ``loudspeaker_noise``
    respectively. The other views are returned unchanged.
    """
    expected = (signals.n_bins, signals.n_mics, signals.n_loudspeakers)
    if echo_path.shape != expected:
        raise ConfigurationError(
            f"echo path shape {echo_path.shape} does not match signals {expected}"
        )
    return signals.replace(
        mixture=signals.mixture - predict_echo(echo_path, signals.loudspeaker),
        echo_speech=signals.echo_speech
        - predict_echo(echo_path, signals.loudspeaker_speech),
        echo_noise=signals.echo_noise
        - predict_echo(echo_path, signals.loudspeaker_noise),
    )
