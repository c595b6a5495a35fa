from __future__ import annotations

import numpy as np
import pytest

from aecnr.config_schema import STFTConfig
from aecnr.dataloaders import simulate_scene
from aecnr.filters import cancel_echo, echo_cancellation, estimate_echo_path, stack_channels
from aecnr.filters.core import ConfigurationError, InsufficientDataError, SignalSet
from aecnr.pipeline import analyze_recording, detect_masks


def _energy_db(x: np.ndarray) -> float:
    return float(10.0 * np.log10(np.sum(np.abs(x) ** 2)))


def _echo_scene(seed: int = 0, n_frame: int = 200, n_bin: int = 6):
    rng = np.random.default_rng(seed)
    M, L = 2, 1

    def cplx(*shape: int) -> np.ndarray:
        return rng.standard_normal(shape) + 1j * rng.standard_normal(shape)

    F_true = cplx(n_bin, M, L)
    loudspeaker = cplx(L, n_frame, n_bin)
    speech_active = rng.random((n_frame, n_bin)) < 0.5
    speech = cplx(M, n_frame, n_bin) * speech_active[None]
    echo = np.einsum("nml,lkn->mkn", F_true, loudspeaker)
    zeros_m = np.zeros((M, n_frame, n_bin), dtype=complex)
    signals = SignalSet(
        mixture=speech + echo,
        speech=speech,
        noise=zeros_m,
        echo_speech=echo,
        echo_noise=zeros_m.copy(),
        loudspeaker=loudspeaker,
        loudspeaker_speech=loudspeaker,
        loudspeaker_noise=np.zeros((L, n_frame, n_bin), dtype=complex),
    )
    return signals, F_true, ~speech_active


def test_echo_path_recovers_known_filter() -> None:
    signals, F_true, far_only = _echo_scene()

    extended = stack_channels([signals.mixture, signals.loudspeaker])
    F = estimate_echo_path(extended, far_only, n_mics=2)

    assert F.shape == F_true.shape
    np.testing.assert_allclose(F, F_true, rtol=1e-8, atol=1e-10)


def test_cancel_echo_reduces_echo_by_20db() -> None:
    signals, F_true, far_only = _echo_scene(seed=1)

    stage = echo_cancellation(signals, far_only)
    out = stage.signals

    reduction = _energy_db(signals.echo_speech) - _energy_db(out.echo_speech)
    assert reduction >= 20.0
    assert out.speech is signals.speech
    assert out.noise is signals.noise
    assert out.loudspeaker is signals.loudspeaker
    np.testing.assert_allclose(out.mixture, signals.speech, atol=1e-8)
    assert stage.echo_path is not None
    assert stage.filter is None


def test_time_domain_gain_echo_is_cancelled() -> None:
    recording = simulate_scene(
        seed=3,
        duration_sec=4.0,
        snr_db=None,
        path_length=1,
    )
    gains = np.sum(
        recording.echo_speech * recording.loudspeaker_speech, axis=0
    ) / np.sum(recording.loudspeaker_speech[:, 0] ** 2)

    signals = analyze_recording(
        recording, STFTConfig(fft_size=256, hop_size=128).to_plan()
    )
    masks = detect_masks(signals, sensitivity=1e-5, reference_channel=0)
    stage = echo_cancellation(signals, masks.far_only)

    np.testing.assert_allclose(
        stage.echo_path[:, :, 0].real,
        np.broadcast_to(gains, (signals.n_bins, 2)),
        rtol=1e-3,
        atol=1e-6,
    )
    echo_in = signals.echo_speech + signals.echo_noise
    echo_out = stage.signals.echo_speech + stage.signals.echo_noise
    assert _energy_db(echo_in) - _energy_db(echo_out) >= 20.0


def test_echo_path_needs_frames_and_loudspeakers() -> None:
    signals, _, far_only = _echo_scene(seed=2)
    extended = stack_channels([signals.mixture, signals.loudspeaker])

    empty = far_only.copy()
    empty[:, 0] = False
    with pytest.raises(InsufficientDataError):
        estimate_echo_path(extended, empty, n_mics=2)
    with pytest.raises(ConfigurationError, match="loudspeaker"):
        estimate_echo_path(signals.mixture, far_only, n_mics=2)


def test_cancel_echo_checks_path_shape() -> None:
    signals, F_true, _ = _echo_scene(seed=4)
    with pytest.raises(ConfigurationError, match="echo path shape"):
        cancel_echo(signals, F_true[:, :1])
