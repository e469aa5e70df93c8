"""Tests for the MM regression model."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
import pytest
from numpy.typing import NDArray

import mmreg as mm

Data = tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]


class TestMMFit:
    """End-to-end MM estimation."""

    def test_default_fit(self, contaminated_data: Data) -> None:
        """Default fit starts from an S-estimate and finds the outliers."""
        y, X = contaminated_data
        res = mm.MM(y, X).fit(random_state=0)

        assert isinstance(res, mm.MMResults)
        assert isinstance(res.initial, mm.SResults)
        assert res.scale == res.initial.scale
        assert res.params.shape == (4,)
        assert res.converged
        assert res.efficiency == 0.95
        assert res.calibration.family == "bisquare"
        assert np.all(res.outliers.mask[:10])
        np.testing.assert_allclose(res.params, 0.0, atol=0.35)

    @pytest.mark.parametrize("family", mm.RHO_FAMILIES)
    def test_families(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate, family: str
    ) -> None:
        """Every family downweights the shifted responses."""
        y, X = contaminated_data
        options = mm.MMOptions(rho_family=family)
        res = mm.MM(y, X, options=options).fit(initial=clean_start)

        assert res.calibration.family == family
        assert np.max(res.weights[:10]) < np.median(res.weights[10:])
        assert np.all(res.outliers.mask[:10])
        assert np.all(res.bse > 0)

    def test_start_params_and_scale(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """Explicit start values match passing an initial estimate."""
        y, X = contaminated_data
        model = mm.MM(y, X)
        a = model.fit(start_params=clean_start.params, scale=clean_start.scale)
        b = model.fit(initial=clean_start)
        np.testing.assert_allclose(a.params, b.params)
        assert a.scale == clean_start.scale

    def test_start_params_need_scale(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """start_params without scale is an error."""
        y, X = contaminated_data
        with pytest.raises(ValueError, match="together"):
            mm.MM(y, X).fit(start_params=clean_start.params)

    def test_scale_is_fixed(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """The reported scale is the initial one."""
        y, X = contaminated_data
        res = mm.MM(y, X).fit(initial=clean_start)
        assert res.scale == clean_start.scale
        np.testing.assert_allclose(res.sresid, res.resid / clean_start.scale)

    def test_higher_efficiency_option(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """Options select the efficiency and outlier level."""
        y, X = contaminated_data
        options = mm.MMOptions(efficiency=0.85, confidence_level=0.99)
        res = mm.MM(y, X, options=options).fit(initial=clean_start)
        assert res.efficiency == 0.85
        assert res.conflev == 0.99
        assert res.outliers.threshold == pytest.approx(mm.outlier_threshold(0.99))

    def test_shape_efficiency_option(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """Shape efficiency calibrates a larger constant."""
        y, X = contaminated_data
        loc = mm.MM(y, X).fit(initial=clean_start)
        options = mm.MMOptions(efficiency_refers_to_shape=True)
        shape = mm.MM(y, X, options=options).fit(initial=clean_start)
        assert shape.calibration.shape
        assert shape.calibration.c > loc.calibration.c

    @pytest.mark.parametrize("cov_type", ["H1", "H2", "H3"])
    def test_cov_types(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate, cov_type: str
    ) -> None:
        """Each Huber form gives a symmetric positive definite covariance."""
        y, X = contaminated_data
        res = mm.MM(y, X).fit(initial=clean_start, cov_type=cov_type)
        cov = res.cov_params()
        assert res.cov_type == cov_type
        np.testing.assert_allclose(cov, cov.T, atol=1e-12)
        assert np.all(np.linalg.eigvalsh(cov) > 0)
        np.testing.assert_allclose(res.bse, np.sqrt(np.diag(cov)))


class TestMMData:
    """Input handling."""

    def test_adds_constant(self, rng: np.random.Generator) -> None:
        """A constant is prepended when missing."""
        X = rng.standard_normal((80, 2))
        y = 1 + X @ [1.0, -1.0] + rng.standard_normal(80)
        model = mm.MM(y, X)
        assert model.exog_names == ["const", "x1", "x2"]
        assert model.k_exog == 3
        assert repr(model) == "MM(nobs=80, k_exog=3)"

    def test_pandas_names(self, rng: np.random.Generator) -> None:
        """Column names of a DataFrame label the coefficients."""
        X = pd.DataFrame(rng.standard_normal((80, 2)), columns=["size", "age"])
        y = pd.Series(2 + X["size"] + rng.standard_normal(80), name="price")
        res = mm.MM(y, X).fit(random_state=1)
        frame = res.to_dataframe()
        assert list(frame.index) == ["const", "size", "age"]
        assert "size" in res.summary()

    def test_drops_missing_rows(self, contaminated_data: Data) -> None:
        """Rows with NaN are removed before fitting."""
        y, X = contaminated_data
        y = y.copy()
        y[15] = np.nan
        model = mm.MM(y, X)
        assert model.nobs == 199
        np.testing.assert_array_equal(model.dropped, [15])


class TestMMResults:
    """Results presentation."""

    def test_summary(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """Summary names the model, the family and the coefficients."""
        y, X = contaminated_data
        res = mm.MM(y, X).fit(initial=clean_start)
        text = res.summary()
        assert "MM Regression Results" in text
        assert "bisquare" in text
        assert "const" in text
        assert "Outliers" in text
        assert "0.975" in text

    def test_to_dataframe(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """Coefficient table has the usual columns."""
        y, X = contaminated_data
        res = mm.MM(y, X).fit(initial=clean_start)
        frame = res.to_dataframe()
        assert list(frame.columns) == [
            "coef",
            "std_err",
            "t",
            "P>|t|",
            "ci_lower",
            "ci_upper",
        ]
        np.testing.assert_allclose(frame["coef"], res.params)

    def test_observations_frame(
        self, contaminated_data: Data, clean_start: mm.InitialEstimate
    ) -> None:
        """Per-observation frame lines up with the data."""
        y, X = contaminated_data
        res = mm.MM(y, X).fit(initial=clean_start)
        obs = res.observations_frame()
        assert obs.shape == (200, 5)
        np.testing.assert_allclose(obs["fitted"] + obs["resid"], y)
        assert obs["outlier"].iloc[:10].all()
