from __future__ import annotations

import numpy as np
import pytest

from aecnr.config_schema import parse_processing_config
from aecnr.dataloaders import simulate_scene
from aecnr.filters.core import ConfigurationError, InsufficientDataError
from aecnr.pipeline import analyze_recording, detect_masks, process_recording, run_strategies


@pytest.fixture(scope="module")
def scene():
    return simulate_scene(seed=2024)


@pytest.fixture(scope="module")
def config():
    return parse_processing_config(
        {
            "stft": {"fft_size": 256, "hop_size": 128},
            "evaluation": {"warmup_sec": 0.05},
        }
    )


@pytest.fixture(scope="module")
def runs(scene, config):
    return {run.strategy: run for run in run_strategies(scene, config)}


def test_scene_masks_cover_all_regimes(scene, config) -> None:
    signals = analyze_recording(scene, config.stft.to_plan())
    masks = detect_masks(signals, sensitivity=1e-5, reference_channel=0)

    for regime in (masks.near_and_far, masks.far_only, masks.silent):
        assert np.all(regime.sum(axis=0) > 20)


def test_all_strategies_run(runs) -> None:
    assert list(runs) == ["MWF", "MWFext", "AEC-NR", "NR-AEC", "NRext-AEC-PF"]


@pytest.mark.parametrize("strategy", ["MWF", "MWFext", "AEC-NR", "NR-AEC", "NRext-AEC-PF"])
def test_every_strategy_improves_snr(runs, strategy: str) -> None:
    metrics = runs[strategy].metrics
    assert metrics.snr_unprocessed == pytest.approx(0.0, abs=0.5)
    assert metrics.snr >= metrics.snr_unprocessed


@pytest.mark.parametrize("strategy", ["AEC-NR", "NR-AEC", "NRext-AEC-PF"])
def test_echo_strategies_improve_ser(runs, strategy: str) -> None:
    assert runs[strategy].metrics.ser_improvement > 0.0


def test_nrext_aec_pf_distortion_is_finite(runs) -> None:
    metrics = runs["NRext-AEC-PF"].metrics
    assert np.isfinite(metrics.sd)
    assert metrics.n_active > 0


def test_run_record_is_flat(runs) -> None:
    record = runs["MWF"].to_record()
    assert record["strategy"] == "MWF"
    assert record["rank_s"] == 1
    assert "snr_improvement" in record


def test_process_recording_returns_time_domain_output(scene, config) -> None:
    result, output = process_recording(scene, config, "AEC-NR")

    assert result.strategy == "AEC-NR"
    assert output.n_samples == scene.n_samples
    assert output.n_mics == scene.n_mics
    np.testing.assert_allclose(output.loudspeaker, scene.loudspeaker, atol=1e-10)


def test_recording_must_match_config(scene) -> None:
    cfg = parse_processing_config({"sample_rate": 16000})
    with pytest.raises(ConfigurationError, match="sample rate"):
        process_recording(scene, cfg, "MWF")
    cfg = parse_processing_config({"sample_rate": 8000, "n_mics": 3})
    with pytest.raises(ConfigurationError, match="microphones"):
        process_recording(scene, cfg, "MWF")


def test_unset_rate_and_channels_come_from_recording(scene, runs) -> None:
    record = runs["NRext-AEC-PF"].to_record()
    assert record["n_mics"] == scene.n_mics
    assert record["rank_ses"] == scene.n_loudspeakers + 1

    cfg = parse_processing_config({"sample_rate": 8000, "n_mics": 2, "n_loudspeakers": 1})
    result, _ = process_recording(scene, cfg, "MWF")
    assert result.strategy == "MWF"


def test_reference_channel_checked_against_recording(scene) -> None:
    cfg = parse_processing_config({"reference_channel": 2})
    with pytest.raises(ConfigurationError, match="reference_channel"):
        process_recording(scene, cfg, "MWF")


def test_scene_without_loudspeakers_has_no_far_end_only_frames(config) -> None:
    scene = simulate_scene(seed=0, duration_sec=2.0, n_loudspeakers=0)
    with pytest.raises(InsufficientDataError):
        run_strategies(scene, config, ["MWF"])
