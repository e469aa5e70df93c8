"""Tests for options and the error taxonomy."""

from __future__ import annotations

import dataclasses

import numpy as np
import pytest

import mmreg as mm


class TestMMOptions:
    """Validation and defaults of MMOptions."""

    def test_defaults(self) -> None:
        """Defaults are bisquare, 95% location efficiency, 0.975 level."""
        opts = mm.MMOptions()
        assert opts.rho_family == "bisquare"
        assert opts.rho_family_params is None
        assert opts.efficiency == 0.95
        assert not opts.efficiency_refers_to_shape
        assert opts.max_iterations == 100
        assert opts.tolerance == 1e-7
        assert opts.confidence_level == 0.975

    @pytest.mark.parametrize(
        "family, params, expected",
        [
            ("hyperbolic", None, (4.5,)),
            ("hyperbolic", 5.0, (5.0,)),
            ("hampel", None, (2.0, 4.0, 8.0)),
            ("hampel", [1.5, 3.5, 8], (1.5, 3.5, 8.0)),
            ("optimal", None, None),
        ],
    )
    def test_family_params(
        self, family: str, params: object, expected: tuple[float, ...] | None
    ) -> None:
        """Family extras are normalised to tuples with defaults filled in."""
        opts = mm.MMOptions(rho_family=family, rho_family_params=params)
        assert opts.rho_family_params == expected

    def test_unknown_family(self) -> None:
        """Unknown families are rejected up front."""
        with pytest.raises(mm.UnsupportedFamily):
            mm.MMOptions(rho_family="cauchy")  # type: ignore[arg-type]

    @pytest.mark.parametrize("efficiency", [0.2, 0.999, 1.0])
    def test_efficiency_range(self, efficiency: float) -> None:
        """Efficiency must lie in [0.5, 0.999)."""
        with pytest.raises(mm.UnsupportedEfficiencyRequest):
            mm.MMOptions(efficiency=efficiency)

    @pytest.mark.parametrize(
        "field, value",
        [
            ("max_iterations", -1),
            ("max_iterations", 2.5),
            ("tolerance", 0.0),
            ("confidence_level", 1.0),
            ("confidence_level", 0.0),
        ],
    )
    def test_invalid_values(self, field: str, value: float) -> None:
        """Out-of-range controls raise ValueError."""
        with pytest.raises(ValueError):
            mm.MMOptions(**{field: value})

    def test_zero_iterations_allowed(self) -> None:
        """max_iterations=0 is a valid request."""
        assert mm.MMOptions(max_iterations=0).max_iterations == 0

    def test_frozen(self) -> None:
        """Options are immutable."""
        opts = mm.MMOptions()
        with pytest.raises(dataclasses.FrozenInstanceError):
            opts.efficiency = 0.9  # type: ignore[misc]

    def test_replace(self) -> None:
        """replace returns a validated copy."""
        opts = mm.MMOptions()
        new = opts.replace(rho_family="hampel", efficiency=0.9)
        assert new.rho_family_params == (2.0, 4.0, 8.0)
        assert new.efficiency == 0.9
        assert opts.efficiency == 0.95
        with pytest.raises(mm.UnsupportedEfficiencyRequest):
            opts.replace(efficiency=2.0)


class TestExceptions:
    """Errors derive from the built-ins callers already catch."""

    def test_hierarchy(self) -> None:
        """Each error subclasses the matching built-in."""
        assert issubclass(mm.UnsupportedFamily, ValueError)
        assert issubclass(mm.UnsupportedEfficiencyRequest, ValueError)
        assert issubclass(mm.SingularWeightedDesign, np.linalg.LinAlgError)
        assert issubclass(mm.NegativeOrZeroVariance, ArithmeticError)
        assert issubclass(mm.SweepError, RuntimeError)
        assert issubclass(mm.SweepFailureWarning, UserWarning)

    def test_singular_design_message(self) -> None:
        """The message carries iteration and rank."""
        err = mm.SingularWeightedDesign(3, 2, 4)
        assert "iteration 3" in str(err)
        assert "rank 2 < 4" in str(err)

    def test_sweep_error_message(self) -> None:
        """The message names the failing efficiency."""
        err = mm.SweepError(4, 0.54, ValueError("boom"))
        assert err.index == 4
        assert "0.54" in str(err)
        assert "boom" in str(err)

    def test_version(self) -> None:
        """The package exposes a version string."""
        assert isinstance(mm.__version__, str)
