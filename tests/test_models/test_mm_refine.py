"""Tests for the fixed-scale IRLS refinement."""

from __future__ import annotations

import warnings
from typing import Any

import numpy as np
import pytest
from numpy.typing import NDArray
from statsmodels.tools.sm_exceptions import ConvergenceWarning

import mmreg as mm

Data = tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]


@pytest.fixture
def bisquare95() -> mm.RhoPsiNorm:
    """Bisquare norm with 95% location efficiency."""
    return mm.calibrate_efficiency("bisquare", 0.95).norm()


class TestBoundaries:
    """Iteration cap, scale and design edge cases."""

    def test_zero_iterations_returns_start(
        self,
        contaminated_data: Data,
        clean_start: mm.InitialEstimate,
        bisquare95: mm.RhoPsiNorm,
    ) -> None:
        """With max_iterations=0 the start values come back untouched."""
        y, X = contaminated_data
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            res = mm.mm_refine(
                y,
                X,
                clean_start.params,
                clean_start.scale,
                bisquare95,
                max_iterations=0,
            )
        np.testing.assert_array_equal(res.params, clean_start.params)
        assert res.n_iter == 0
        assert res.crit == np.inf
        assert not res.converged
        np.testing.assert_allclose(
            res.resid, (y - X @ clean_start.params) / clean_start.scale
        )

    def test_start_not_modified(
        self,
        contaminated_data: Data,
        clean_start: mm.InitialEstimate,
        bisquare95: mm.RhoPsiNorm,
    ) -> None:
        """The caller's start vector is copied."""
        y, X = contaminated_data
        start = clean_start.params.copy()
        mm.mm_refine(y, X, start, clean_start.scale, bisquare95)
        np.testing.assert_array_equal(start, clean_start.params)

    def test_singular_design(
        self, rng: np.random.Generator, bisquare95: mm.RhoPsiNorm
    ) -> None:
        """Collinear columns raise at the first iteration."""
        n = 50
        x = rng.standard_normal(n)
        X = np.column_stack([np.ones(n), x, 2 * x])
        y = 1 + x + rng.standard_normal(n)
        with pytest.raises(mm.SingularWeightedDesign) as excinfo:
            mm.mm_refine(y, X, np.zeros(3), 1.0, bisquare95)
        assert excinfo.value.iteration == 0
        assert excinfo.value.rank == 2
        assert excinfo.value.n_params == 3
        assert isinstance(excinfo.value, np.linalg.LinAlgError)

    @pytest.mark.parametrize("scale", [0.0, -1.0, np.nan, np.inf])
    def test_invalid_scale(
        self, regression_data: Data, bisquare95: mm.RhoPsiNorm, scale: float
    ) -> None:
        """A scale that is not positive and finite is rejected."""
        y, X = regression_data
        with pytest.raises(mm.NegativeOrZeroVariance):
            mm.mm_refine(y, X, np.zeros(2), scale, bisquare95)

    def test_scale_returned_unchanged(
        self, regression_data: Data, bisquare95: mm.RhoPsiNorm
    ) -> None:
        """The scale is echoed back, never re-estimated."""
        y, X = regression_data
        scale = 1.2345
        res = mm.mm_refine(y, X, np.zeros(2), scale, bisquare95)
        assert res.scale is scale
        np.testing.assert_allclose(res.resid, (y - X @ res.params) / scale)

    def test_shape_mismatch(
        self, regression_data: Data, bisquare95: mm.RhoPsiNorm
    ) -> None:
        """Start values must match the number of columns."""
        y, X = regression_data
        with pytest.raises(ValueError, match="start_params"):
            mm.mm_refine(y, X, np.zeros(3), 1.0, bisquare95)

    def test_exact_fit(
        self, rng: np.random.Generator, bisquare95: mm.RhoPsiNorm
    ) -> None:
        """Zero residuals get full weight and stop after one step."""
        n = 30
        X = np.column_stack([np.ones(n), rng.standard_normal(n)])
        beta = np.array([1.0, -2.0])
        res = mm.mm_refine(X @ beta, X, beta, 1.0, bisquare95)
        assert res.converged
        assert res.n_iter == 1
        np.testing.assert_allclose(res.weights, 1.0)
        np.testing.assert_allclose(res.params, beta, atol=1e-12)


class TestConvergence:
    """Stopping rule and non-convergence reporting."""

    def test_converges(
        self,
        contaminated_data: Data,
        clean_start: mm.InitialEstimate,
        bisquare95: mm.RhoPsiNorm,
    ) -> None:
        """Refinement from a good start reaches the tolerance."""
        y, X = contaminated_data
        res = mm.mm_refine(y, X, clean_start.params, clean_start.scale, bisquare95)
        assert res.converged
        assert res.crit <= 1e-7
        assert 1 <= res.n_iter < 100

    def test_idempotent(
        self,
        contaminated_data: Data,
        clean_start: mm.InitialEstimate,
        bisquare95: mm.RhoPsiNorm,
    ) -> None:
        """Restarting from a converged fit changes nothing."""
        y, X = contaminated_data
        first = mm.mm_refine(y, X, clean_start.params, clean_start.scale, bisquare95)
        second = mm.mm_refine(y, X, first.params, clean_start.scale, bisquare95)
        assert second.n_iter <= 2
        np.testing.assert_allclose(second.params, first.params, atol=1e-6)

    def test_iteration_cap_warns(
        self, contaminated_data: Data, bisquare95: mm.RhoPsiNorm
    ) -> None:
        """Hitting the cap emits NonConvergenceWarning and flags the result."""
        y, X = contaminated_data
        ols = mm.ols_initial_estimate(y, X)
        with pytest.warns(mm.NonConvergenceWarning, match="did not converge"):
            res = mm.mm_refine(
                y,
                X,
                ols.params,
                ols.scale,
                bisquare95,
                max_iterations=1,
                tolerance=1e-15,
            )
        assert res.n_iter == 1
        assert not res.converged
        assert res.crit > 1e-15

    def test_warning_is_statsmodels_convergence_warning(self) -> None:
        """Filters on statsmodels' ConvergenceWarning catch it."""
        assert issubclass(mm.NonConvergenceWarning, ConvergenceWarning)

    def test_warning_can_be_silenced(
        self, contaminated_data: Data, bisquare95: mm.RhoPsiNorm
    ) -> None:
        """warn=False keeps quiet but still reports non-convergence."""
        y, X = contaminated_data
        ols = mm.ols_initial_estimate(y, X)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            res = mm.mm_refine(
                y,
                X,
                ols.params,
                ols.scale,
                bisquare95,
                max_iterations=1,
                tolerance=1e-15,
                warn=False,
            )
        assert not res.converged


class TestDownweighting:
    """Outliers lose weight, clean points keep it."""

    def test_contamination(
        self,
        contaminated_data: Data,
        clean_start: mm.InitialEstimate,
        bisquare95: mm.RhoPsiNorm,
    ) -> None:
        """Shifted responses get small weights and are flagged."""
        y, X = contaminated_data
        res = mm.mm_refine(y, X, clean_start.params, clean_start.scale, bisquare95)
        assert np.all(res.weights[:10] < 0.3)
        assert np.max(res.weights[:10]) < np.median(res.weights[10:])
        outliers = mm.detect_outliers(res.resid, 0.975)
        assert np.all(outliers.mask[:10])
        np.testing.assert_allclose(res.params, 0.0, atol=0.3)

    def test_weights_grow_with_efficiency(self, regression_data: Data) -> None:
        """On clean data, mean weight increases with the efficiency."""
        y, X = regression_data
        start = mm.ols_initial_estimate(y, X)
        means = []
        for eff in (0.5, 0.7, 0.9, 0.99):
            norm = mm.calibrate_efficiency("bisquare", eff).norm()
            res = mm.mm_refine(y, X, start.params, start.scale, norm)
            means.append(res.weights.mean())
        assert np.all(np.diff(means) > 0)
