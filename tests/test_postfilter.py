from __future__ import annotations

import numpy as np
import pytest

from aecnr.filters.core import ConfigurationError
from aecnr.filters.postfilter import design_postfilter


def _psd(rng: np.random.Generator, n_bin: int, size: int) -> np.ndarray:
    A = rng.standard_normal((n_bin, size, 3 * size)) + 1j * rng.standard_normal(
        (n_bin, size, 3 * size)
    )
    return A @ np.conj(A).swapaxes(-2, -1)


def test_postfilter_matches_formula_for_invertible_blocks() -> None:
    rng = np.random.default_rng(0)
    present = _psd(rng, 4, 2)
    desired = _psd(rng, 4, 2)
    block = rng.standard_normal((4, 2, 2)) + 1j * rng.standard_normal((4, 2, 2))

    W = design_postfilter(present, desired, block)

    expected = np.linalg.solve(present, desired) @ np.linalg.inv(block)
    np.testing.assert_allclose(W, expected, rtol=1e-8, atol=1e-10)


def test_postfilter_is_identity_when_desired_equals_present() -> None:
    rng = np.random.default_rng(1)
    present = _psd(rng, 3, 2)
    identity = np.tile(np.eye(2, dtype=complex), (3, 1, 1))

    W = design_postfilter(present, present, identity)

    np.testing.assert_allclose(W, identity, atol=1e-10)


def test_postfilter_tolerates_singular_blocks() -> None:
    present = np.zeros((2, 2, 2), dtype=complex)
    W = design_postfilter(present, present, present)
    assert np.all(np.isfinite(W))
    np.testing.assert_array_equal(W, 0.0)


def test_postfilter_checks_shapes() -> None:
    rng = np.random.default_rng(2)
    present = _psd(rng, 3, 2)
    with pytest.raises(ConfigurationError, match="upstream_block"):
        design_postfilter(present, present, np.zeros((3, 3, 3)))
