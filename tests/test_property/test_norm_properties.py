"""Property-based tests for the rho/psi families.

These tests verify that the defining properties of the weight functions
hold for ANY residual and tuning constant.
"""

from __future__ import annotations

import numpy as np
from hypothesis import given, settings
from hypothesis import strategies as st

import mmreg as mm
from mmreg.norms import NORM_CLASSES

from .conftest import rho_families

residuals = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False)
constants = st.floats(min_value=0.05, max_value=20.0)


class TestWeightProperties:
    """Weights are even, bounded and non-increasing in |z|."""

    @given(family=rho_families(), c=constants, z=residuals)
    @settings(max_examples=100, deadline=None)
    def test_bounded_and_even(self, family: str, c: float, z: float) -> None:
        """0 <= w(z) == w(-z) <= 1."""
        norm = NORM_CLASSES[family](c)
        w = float(norm.weights(z))
        assert 0.0 <= w <= 1.0 + 1e-9
        assert np.isclose(w, float(norm.weights(-z)), rtol=1e-12, atol=1e-15)

    @given(
        family=rho_families(),
        c=constants,
        a=st.floats(min_value=0.0, max_value=100.0),
        b=st.floats(min_value=0.0, max_value=100.0),
    )
    @settings(max_examples=100, deadline=None)
    def test_non_increasing(self, family: str, c: float, a: float, b: float) -> None:
        """|a| <= |b| implies w(a) >= w(b)."""
        norm = NORM_CLASSES[family](c)
        lo, hi = min(a, b), max(a, b)
        assert float(norm.weights(lo)) >= float(norm.weights(hi)) - 1e-9

    @given(family=rho_families(), c=constants, z=residuals)
    @settings(max_examples=100, deadline=None)
    def test_psi_is_weighted_residual(self, family: str, c: float, z: float) -> None:
        """psi(z) == z * w(z) and has the sign of z."""
        norm = NORM_CLASSES[family](c)
        psi = float(norm.psi(z))
        assert np.isclose(psi, z * float(norm.weights(z)), rtol=1e-9, atol=1e-12)
        assert psi * z >= 0

    @given(family=rho_families(), c=constants, z=residuals)
    @settings(max_examples=100, deadline=None)
    def test_rho_bounded(self, family: str, c: float, z: float) -> None:
        """0 <= rho(z) <= sup(rho)."""
        norm = NORM_CLASSES[family](c)
        r = float(norm.rho(z))
        assert 0.0 <= r <= norm.rho_sup * (1 + 1e-12)


class TestRoundTripProperties:
    """Tuning vectors rebuild the same norm."""

    @given(family=rho_families(), c=constants)
    @settings(max_examples=50, deadline=None)
    def test_make_norm(self, family: str, c: float) -> None:
        """make_norm(family, norm.tuning) == norm."""
        norm = NORM_CLASSES[family](c)
        assert mm.make_norm(family, norm.tuning) == norm
