"""Tests for outlier declaration."""

from __future__ import annotations

import numpy as np
import pytest

import mmreg as mm


class TestOutlierThreshold:
    """Cut-off from the chi-square quantile."""

    @pytest.mark.parametrize(
        "conflev, expected", [(0.975, 2.241403), (0.99, 2.575829), (0.95, 1.959964)]
    )
    def test_values(self, conflev: float, expected: float) -> None:
        """Threshold is sqrt(chi2_1 quantile), the two-sided normal quantile."""
        assert mm.outlier_threshold(conflev) == pytest.approx(expected, abs=1e-5)

    def test_default(self) -> None:
        """Default confidence level is 0.975."""
        assert mm.outlier_threshold() == mm.outlier_threshold(0.975)

    @pytest.mark.parametrize("conflev", [0.0, 1.0, -0.5, 1.5])
    def test_invalid(self, conflev: float) -> None:
        """Levels outside (0, 1) are rejected."""
        with pytest.raises(ValueError, match="conflev"):
            mm.outlier_threshold(conflev)


class TestDetectOutliers:
    """Flagging of large scaled residuals."""

    def test_indices_and_mask(self) -> None:
        """Both signs are flagged."""
        res = mm.detect_outliers([0.1, -3.0, 2.0, 5.0, -1.0])
        np.testing.assert_array_equal(res.indices, [1, 3])
        assert res.mask.tolist() == [False, True, False, True, False]
        assert res.n_outliers == 2
        assert res.conflev == 0.975

    def test_threshold_is_strict(self) -> None:
        """A residual equal to the cut-off is not an outlier."""
        cut = mm.outlier_threshold(0.99)
        res = mm.detect_outliers([cut, -cut, np.nextafter(cut, np.inf)], 0.99)
        np.testing.assert_array_equal(res.indices, [2])

    def test_higher_level_fewer_outliers(self, rng: np.random.Generator) -> None:
        """Raising the confidence level never adds outliers."""
        r = rng.standard_normal(500)
        low = mm.detect_outliers(r, 0.9)
        high = mm.detect_outliers(r, 0.99)
        assert high.n_outliers <= low.n_outliers
        assert np.all(low.mask[high.mask])

    def test_no_outliers(self) -> None:
        """Small residuals give an empty index array."""
        res = mm.detect_outliers(np.zeros(10))
        assert res.indices.size == 0
        assert res.n_outliers == 0

    def test_str(self) -> None:
        """String form reports the count and the cut-off."""
        text = str(mm.detect_outliers([0.0, 10.0, -10.0]))
        assert text.startswith("2 outlier(s) out of 3")
        assert "2.2414" in text
