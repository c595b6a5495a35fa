from __future__ import annotations

import numpy as np
import pytest

from aecnr.filters import Strategy, compose
from aecnr.filters.core import ActivityMasks, ConfigurationError, SignalSet
from aecnr.filters.utils import apply_filter, stack_channels


def _regime_masks(n_frame: int, n_bin: int) -> ActivityMasks:
    k = np.arange(n_frame)[:, None] * np.ones((1, n_bin), dtype=int)
    echo = k % 2 == 0
    speech = (k // 2) % 2 == 0
    return ActivityMasks(speech=speech, echo=echo)


def _scene(
    seed: int = 0, n_mics: int = 2, n_loudspeakers: int = 1, n_frame: int = 400, n_bin: int = 4
) -> tuple[SignalSet, ActivityMasks]:
    rng = np.random.default_rng(seed)
    masks = _regime_masks(n_frame, n_bin)

    def cplx(*shape: int) -> np.ndarray:
        return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)

    steering = cplx(n_bin, n_mics, 1)
    source = cplx(1, n_frame, n_bin) * masks.speech[None]
    speech = np.einsum("nmj,jkn->mkn", steering, source)
    noise = 0.5 * cplx(n_mics, n_frame, n_bin)

    paths = cplx(n_bin, n_mics, n_loudspeakers)
    ls = cplx(n_loudspeakers, n_frame, n_bin) * masks.echo[None]
    ln = 0.1 * cplx(n_loudspeakers, n_frame, n_bin)
    es = np.einsum("nml,lkn->mkn", paths, ls)
    en = np.einsum("nml,lkn->mkn", paths, ln)

    signals = SignalSet(
        mixture=speech + noise + es + en,
        speech=speech,
        noise=noise,
        echo_speech=es,
        echo_noise=en,
        loudspeaker=ls + ln,
        loudspeaker_speech=ls,
        loudspeaker_noise=ln,
    )
    return signals, masks


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("MWF", Strategy.MWF),
        ("mwfext", Strategy.MWF_EXT),
        ("AECNR", Strategy.AEC_NR),
        ("nr-aec", Strategy.NR_AEC),
        ("NRextAECPF", Strategy.NREXT_AEC_PF),
        ("nrext_aec_pf", Strategy.NREXT_AEC_PF),
        (Strategy.MWF, Strategy.MWF),
    ],
)
def test_strategy_parse_accepts_aliases(name: str, expected: Strategy) -> None:
    assert Strategy.parse(name) is expected


def test_unknown_strategy_raises() -> None:
    with pytest.raises(ConfigurationError, match="Unknown strategy"):
        Strategy.parse("beamformer")


def test_mwfext_without_loudspeakers_equals_mwf() -> None:
    signals, masks = _scene(seed=1, n_loudspeakers=0)
    assert signals.n_loudspeakers == 0

    mwf = compose(signals, masks, "MWF", rank_s=1)
    mwf_ext = compose(signals, masks, "MWFext", rank_s=1)

    for name, view in mwf.signals.items():
        np.testing.assert_array_equal(view, mwf_ext.signals.view(name))


@pytest.mark.parametrize("strategy", ["AEC-NR", "NR-AEC", "NRext-AEC-PF"])
def test_echo_strategies_require_loudspeakers(strategy: str) -> None:
    signals, masks = _scene(n_loudspeakers=0)
    with pytest.raises(ConfigurationError, match="loudspeaker"):
        compose(signals, masks, strategy, rank_s=1)


def test_rank_validation_happens_per_strategy() -> None:
    signals, masks = _scene()
    with pytest.raises(ConfigurationError, match="rank_s"):
        compose(signals, masks, "MWF", rank_s=3)
    with pytest.raises(ConfigurationError, match="rank_s"):
        compose(signals, masks, "AEC-NR", rank_s=0)
    with pytest.raises(ConfigurationError, match="rank_ses"):
        compose(signals, masks, "NRext-AEC-PF", rank_s=1, rank_ses=4)
    result = compose(signals, masks, "MWFext", rank_s=3)
    assert result.stages["MWFext"].gevd.rank == 3


def test_mask_shape_must_match_signals() -> None:
    signals, _ = _scene()
    masks = _regime_masks(10, 4)
    with pytest.raises(ConfigurationError, match="mask shape"):
        compose(signals, masks, "MWF", rank_s=1)


def test_nrext_aec_pf_runs_stages_in_order() -> None:
    signals, masks = _scene(seed=2)

    result = compose(signals, masks, Strategy.NREXT_AEC_PF, rank_s=1)

    assert result.strategy == "NRext-AEC-PF"
    assert list(result.stages) == ["NRext", "AEC", "PF"]
    assert result.metadata["rank_ses"] == 2
    nrext = result.stages["NRext"]
    np.testing.assert_array_equal(nrext.filter[:, :2, 2:], 0.0)
    assert nrext.filter.shape == (4, 3, 3)
    assert result.stages["AEC"].echo_path.shape == (4, 2, 1)
    assert result.stages["PF"].filter.shape == (4, 2, 2)

    n_mics = signals.n_mics
    W_ll = nrext.filter[:, n_mics:, n_mics:]
    for mic_view, ls_view in (
        ("mixture", "loudspeaker"),
        ("echo_speech", "loudspeaker_speech"),
        ("echo_noise", "loudspeaker_noise"),
    ):
        extended = stack_channels([signals.view(mic_view), signals.view(ls_view)])
        routed = nrext.signals.view(ls_view)
        np.testing.assert_allclose(routed, apply_filter(extended, nrext.filter)[n_mics:])
        np.testing.assert_allclose(routed, apply_filter(signals.view(ls_view), W_ll))
        assert not np.allclose(routed, signals.view(ls_view))
        np.testing.assert_array_equal(result.stages["AEC"].signals.view(ls_view), routed)
    for _, view in result.signals.items():
        assert np.all(np.isfinite(view))


def test_nr_aec_cancels_against_original_loudspeakers() -> None:
    signals, masks = _scene(seed=3)

    result = compose(signals, masks, "NR-AEC", rank_s=1)

    assert list(result.stages) == ["NR", "AEC"]
    np.testing.assert_array_equal(result.signals.loudspeaker, signals.loudspeaker)
    assert result.stages["NR"].filter.shape == (4, 2, 2)


@pytest.mark.parametrize("strategy", Strategy.names())
def test_every_strategy_reduces_noise_and_echo(strategy: str) -> None:
    signals, masks = _scene(seed=4)

    result = compose(signals, masks, strategy, rank_s=1)

    out = result.signals
    residual_in = signals.noise + signals.echo_speech + signals.echo_noise
    residual_out = out.noise + out.echo_speech + out.echo_noise
    ratio_in = np.sum(np.abs(signals.speech[0]) ** 2) / np.sum(np.abs(residual_in[0]) ** 2)
    ratio_out = np.sum(np.abs(out.speech[0]) ** 2) / np.sum(np.abs(residual_out[0]) ** 2)
    assert ratio_out > ratio_in
