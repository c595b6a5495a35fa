"""Processing stages operating on a full :class:`SignalSet`.

Each stage estimates its statistics once over the whole recording, applies the
resulting filter to every microphone view and returns a :class:`StageResult`.
"""

from __future__ import annotations

import logging

import numpy as np

from .core import (
    EXTENSION_PARTNERS,
    MIC_VIEWS,
    ActivityMasks,
    SignalSet,
    StageResult,
)
from .correlation import estimate_correlation
from .echo import cancel_echo, estimate_echo_path
from .gevd import synthesize_filter
from .postfilter import design_postfilter
from .utils import apply_filter, stack_channels

LOGGER = logging.getLogger(__name__)

# Extended output rows below the microphones are routed back to these views.
LOUDSPEAKER_ROUTES = {
    "mixture": "loudspeaker",
    "echo_speech": "loudspeaker_speech",
    "echo_noise": "loudspeaker_noise",
}


def extend_view(signals: SignalSet, name: str) -> np.ndarray:
    """Stack a microphone view above its loudspeaker partner.

    Views without a loudspeaker partner are padded with zero rows.
    """
    partner = EXTENSION_PARTNERS[name]
    mic = signals.view(name)
    if partner is None:
        lower = np.zeros(
            (signals.n_loudspeakers, signals.n_frames, signals.n_bins),
            dtype=mic.dtype,
        )
    else:
        lower = signals.view(partner)
    return stack_channels([mic, lower])


def noise_reduction(
    signals: SignalSet,
    present_mask: np.ndarray,
    absent_mask: np.ndarray,
    rank: int,
    *,
    extended: bool = False,
    zero_cross_block: bool = False,
    route_loudspeakers: bool = False,
    workers: int = 1,
    name: str = "NR",
) -> StageResult:
    """Rank-constrained multichannel Wiener filtering of the microphone views.

    Parameters
    ----------
    signals:
        Input views.
    present_mask, absent_mask:
        ``(frame, bin)`` regimes with and without the desired component.
    rank:
        GEVD rank, at most the number of filtered channels.
    extended:
        Filter the stacked ``[microphone; loudspeaker]`` signal instead of the
        microphones alone.
    zero_cross_block:
        Zero the filter block mapping microphone inputs to loudspeaker
        outputs so those outputs only depend on the loudspeaker signals.
    route_loudspeakers:
        Write the loudspeaker output rows of the extended filter back to the
        loudspeaker views. Otherwise the loudspeaker views pass through.
    """
    n_mics = signals.n_mics
    if extended:
        inputs = {view: extend_view(signals, view) for view in MIC_VIEWS}
    else:
        inputs = {view: stack_channels([signals.view(view)]) for view in MIC_VIEWS}

    correlation = estimate_correlation(inputs["mixture"], present_mask, absent_mask)
    gevd = synthesize_filter(
        correlation.present, correlation.absent, rank, workers=workers
    )
    W = gevd.filter.copy()
    if extended and zero_cross_block:
        W[:, :n_mics, n_mics:] = 0.0

    outputs = {view: apply_filter(x, W) for view, x in inputs.items()}
    updates = {view: y[:n_mics] for view, y in outputs.items()}
    if extended and route_loudspeakers:
        for view, target in LOUDSPEAKER_ROUTES.items():
            updates[target] = outputs[view][n_mics:]

    LOGGER.debug(
        "%s stage: C=%d, rank=%d, frames present/absent (median) %d/%d",
        name,
        W.shape[-1],
        gevd.rank,
        int(np.median(correlation.present_frames)),
        int(np.median(correlation.absent_frames)),
    )
    return StageResult(
        name=name,
        signals=signals.replace(**updates),
        filter=W,
        gevd=gevd,
        correlation=correlation,
    )


def echo_cancellation(
    signals: SignalSet, mask: np.ndarray, *, name: str = "AEC"
) -> StageResult:
    """Estimate echo paths over echo-only frames and subtract the echo."""
    extended = stack_channels([signals.mixture, signals.loudspeaker])
    echo_path = estimate_echo_path(extended, mask, n_mics=signals.n_mics)
    LOGGER.debug("%s stage: echo path shape %s", name, echo_path.shape)
    return StageResult(
        name=name,
        signals=cancel_echo(signals, echo_path),
        echo_path=echo_path,
    )


def post_filter(
    signals: SignalSet,
    masks: ActivityMasks,
    rank: int,
    upstream_block: np.ndarray,
    *,
    workers: int = 1,
    name: str = "PF",
) -> StageResult:
    """Apply the residual post-filter to the microphone views."""
    correlation = estimate_correlation(
        signals.mixture, masks.near_and_far, masks.far_only
    )
    gevd = synthesize_filter(
        correlation.present, correlation.absent, rank, workers=workers
    )
    W = design_postfilter(
        correlation.present, gevd.desired_correlation, upstream_block
    )
    updates = {view: apply_filter(signals.view(view), W) for view in MIC_VIEWS}
    LOGGER.debug("%s stage: rank=%d", name, gevd.rank)
    return StageResult(
        name=name,
        signals=signals.replace(**updates),
        filter=W,
        gevd=gevd,
        correlation=correlation,
    )
