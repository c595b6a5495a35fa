"""Strategy composition of echo cancellation, noise reduction and post-filtering."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

import numpy as np

from .core import ActivityMasks, ConfigurationError, ProcessingResult, SignalSet
from .stages import echo_cancellation, noise_reduction, post_filter

LOGGER = logging.getLogger(__name__)


def _normalize(name: str) -> str:
    return name.replace("-", "").replace("_", "").replace(" ", "").lower()


class Strategy(str, Enum):
    """Available processing strategies."""

    MWF = "MWF"
    MWF_EXT = "MWFext"
    AEC_NR = "AEC-NR"
    NR_AEC = "NR-AEC"
    NREXT_AEC_PF = "NRext-AEC-PF"

    @classmethod
    def parse(cls, name: "str | Strategy") -> "Strategy":
        """Resolve a strategy from its name, ignoring case and separators."""
        if isinstance(name, Strategy):
            return name
        key = _normalize(str(name))
        for member in cls:
            if _normalize(member.value) == key:
                return member
        available = ", ".join(member.value for member in cls)
        raise ConfigurationError(
            f"Unknown strategy '{name}'. Available: {available}"
        )

    @classmethod
    def names(cls) -> list[str]:
        return [member.value for member in cls]

    @property
    def cancels_echo(self) -> bool:
        return self in (Strategy.AEC_NR, Strategy.NR_AEC, Strategy.NREXT_AEC_PF)


def _run_mwf(
    signals: SignalSet, masks: ActivityMasks, rank_s: int, rank_ses: int, workers: int
) -> list:
    return [
        noise_reduction(
            signals, masks.near_and_far, masks.far_only, rank_s, workers=workers
        )
    ]


def _run_mwf_ext(
    signals: SignalSet, masks: ActivityMasks, rank_s: int, rank_ses: int, workers: int
) -> list:
    return [
        noise_reduction(
            signals,
            masks.near_and_far,
            masks.far_only,
            rank_s,
            extended=True,
            workers=workers,
            name="MWFext",
        )
    ]


def _run_aec_nr(
    signals: SignalSet, masks: ActivityMasks, rank_s: int, rank_ses: int, workers: int
) -> list:
    aec = echo_cancellation(signals, masks.far_only)
    nr = noise_reduction(
        aec.signals, masks.near_and_far, masks.far_only, rank_s, workers=workers
    )
    return [aec, nr]


def _run_nr_aec(
    signals: SignalSet, masks: ActivityMasks, rank_s: int, rank_ses: int, workers: int
) -> list:
    nr = noise_reduction(
        signals, masks.near_and_far, masks.far_only, rank_s, workers=workers
    )
    # echo paths are estimated against the unfiltered loudspeaker signals
    aec_input = nr.signals.replace(
        loudspeaker=signals.loudspeaker,
        loudspeaker_speech=signals.loudspeaker_speech,
        loudspeaker_noise=signals.loudspeaker_noise,
    )
    aec = echo_cancellation(aec_input, masks.far_only)
    return [nr, aec]


def _run_nrext_aec_pf(
    signals: SignalSet, masks: ActivityMasks, rank_s: int, rank_ses: int, workers: int
) -> list:
    nrext = noise_reduction(
        signals,
        masks.near_and_far,
        masks.silent,
        rank_ses,
        extended=True,
        zero_cross_block=True,
        route_loudspeakers=True,
        workers=workers,
        name="NRext",
    )
    aec = echo_cancellation(nrext.signals, masks.far_only)
    n_mics = signals.n_mics
    pf = post_filter(
        aec.signals,
        masks,
        rank_s,
        nrext.filter[:, :n_mics, :n_mics],
        workers=workers,
    )
    return [nrext, aec, pf]


_HANDLERS: dict[Strategy, Callable[..., list]] = {
    Strategy.MWF: _run_mwf,
    Strategy.MWF_EXT: _run_mwf_ext,
    Strategy.AEC_NR: _run_aec_nr,
    Strategy.NR_AEC: _run_nr_aec,
    Strategy.NREXT_AEC_PF: _run_nrext_aec_pf,
}


def _check_rank(label: str, rank: int, n_channels: int) -> int:
    rank = int(rank)
    if rank < 1 or rank > n_channels:
        raise ConfigurationError(
            f"{label} must lie in [1, {n_channels}], got {rank}"
        )
    return rank


def validate_request(
    signals: SignalSet,
    masks: ActivityMasks,
    strategy: Strategy,
    rank_s: int,
    rank_ses: int | None,
    workers: int,
) -> tuple[int, int | None]:
    """Check inputs for ``strategy`` and return the resolved ranks."""
    if not isinstance(signals, SignalSet):
        raise ConfigurationError(f"signals must be a SignalSet, got {type(signals)}")
    if not isinstance(masks, ActivityMasks):
        raise ConfigurationError(f"masks must be ActivityMasks, got {type(masks)}")
    expected = (signals.n_frames, signals.n_bins)
    if masks.speech.shape != expected:
        raise ConfigurationError(
            f"mask shape {masks.speech.shape} does not match signal "
            f"(frame, bin) axes {expected}"
        )
    if int(workers) < 1:
        raise ConfigurationError(f"workers must be >= 1, got {workers}")

    n_mics = signals.n_mics
    n_loudspeakers = signals.n_loudspeakers
    if strategy.cancels_echo and n_loudspeakers < 1:
        raise ConfigurationError(
            f"Strategy {strategy.value} requires at least one loudspeaker channel"
        )
    if strategy is Strategy.MWF_EXT:
        rank_s = _check_rank("rank_s", rank_s, n_mics + n_loudspeakers)
    else:
        rank_s = _check_rank("rank_s", rank_s, n_mics)

    if strategy is Strategy.NREXT_AEC_PF:
        if rank_ses is None:
            rank_ses = n_loudspeakers + 1
        rank_ses = _check_rank("rank_ses", rank_ses, n_mics + n_loudspeakers)
    return rank_s, rank_ses


def compose(
    signals: SignalSet,
    masks: ActivityMasks,
    strategy: "Strategy | str",
    *,
    rank_s: int,
    rank_ses: int | None = None,
    workers: int = 1,
) -> ProcessingResult:
    """
    Run one processing strategy over a frequency-domain recording.

    Parameters
    ----------
    signals : SignalSet
        Frequency-domain views of the recording.
    masks : ActivityMasks
        Per-bin activity of desired speech and of the echo.
    strategy : Strategy or str
        ``MWF``, ``MWFext``, ``AEC-NR``, ``NR-AEC`` or ``NRext-AEC-PF``.
    rank_s : int
        Rank of the desired-speech subspace.
    rank_ses : int, optional
        Rank of the joint speech and echo subspace used by the extended
        noise reduction of ``NRext-AEC-PF``. Defaults to
        ``n_loudspeakers + 1``.
    workers : int, default=1
        Thread count for per-bin filter synthesis.

    Returns
    -------
    ProcessingResult
        Output views and the result of every stage in execution order.
    """
    strategy = Strategy.parse(strategy)
    rank_s, rank_ses = validate_request(
        signals, masks, strategy, rank_s, rank_ses, workers
    )

    LOGGER.info(
        "Running %s (M=%d, L=%d, frames=%d, bins=%d)",
        strategy.value,
        signals.n_mics,
        signals.n_loudspeakers,
        signals.n_frames,
        signals.n_bins,
    )
    stages = _HANDLERS[strategy](signals, masks, rank_s, rank_ses, int(workers))
    metadata = {
        "rank_s": rank_s,
        "rank_ses": rank_ses,
        "n_mics": signals.n_mics,
        "n_loudspeakers": signals.n_loudspeakers,
        "near_and_far_frames": int(np.count_nonzero(masks.near_and_far)),
        "far_only_frames": int(np.count_nonzero(masks.far_only)),
        "silent_frames": int(np.count_nonzero(masks.silent)),
    }
    return ProcessingResult(
        strategy=strategy.value,
        signals=stages[-1].signals,
        stages={stage.name: stage for stage in stages},
        metadata=metadata,
    )
