from __future__ import annotations

import numpy as np
import pytest

from aecnr.dataloaders import activity_schedule, simulate_scene
from aecnr.evaluation import snr


def test_same_seed_is_reproducible() -> None:
    a = simulate_scene(seed=11, duration_sec=2.0)
    b = simulate_scene(seed=11, duration_sec=2.0)
    c = simulate_scene(seed=12, duration_sec=2.0)

    for name, stem in a.items():
        np.testing.assert_array_equal(stem, b.stem(name))
    assert not np.allclose(a.mixture, c.mixture)


def test_components_sum_to_mixture() -> None:
    rec = simulate_scene(seed=0, duration_sec=2.0, n_mics=3, n_loudspeakers=2)

    assert rec.mixture.shape == (16000, 3)
    assert rec.loudspeaker.shape == (16000, 2)
    np.testing.assert_allclose(
        rec.mixture, rec.speech + rec.noise + rec.echo_speech + rec.echo_noise
    )
    np.testing.assert_allclose(
        rec.loudspeaker, rec.loudspeaker_speech + rec.loudspeaker_noise
    )


def test_requested_ratios_hold_on_active_samples() -> None:
    rec = simulate_scene(seed=5, duration_sec=4.0, snr_db=3.0, ser_db=6.0)
    active = rec.speech[:, 0] != 0.0

    assert snr(rec.speech[active, 0], rec.noise[active, 0]) == pytest.approx(3.0)
    echo = rec.echo_speech + rec.echo_noise
    assert snr(rec.speech[active, 0], echo[active, 0]) == pytest.approx(6.0)


def test_schedule_covers_all_regimes() -> None:
    near, far = activity_schedule(16000, 8000, 2.0)
    assert np.any(near & far)
    assert np.any(~near & far)
    assert np.any(near & ~far)
    assert np.any(~near & ~far)


def test_gated_sources_are_silent_outside_bursts() -> None:
    rec = simulate_scene(seed=6, duration_sec=2.0)
    near, far = activity_schedule(rec.n_samples, rec.sample_rate, 2.0)
    assert np.all(rec.speech[:3000] == 0.0)
    assert np.all(rec.loudspeaker_speech[~far] == 0.0)


def test_no_loudspeakers_gives_echo_free_scene() -> None:
    rec = simulate_scene(seed=7, duration_sec=1.0, n_loudspeakers=0)
    assert rec.n_loudspeakers == 0
    assert not rec.echo_speech.any()
