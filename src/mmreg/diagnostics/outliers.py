"""Outlier declaration from scaled residuals.

An observation is declared an outlier when its scaled residual exceeds the
square root of the ``conflev`` quantile of the chi-square distribution with
one degree of freedom, i.e. the two-sided normal quantile.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
from scipy import stats

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def outlier_threshold(conflev: float = 0.975) -> float:
    """Cut-off on ``|scaled residual|`` above which a point is an outlier.

    Parameters
    ----------
    conflev : float
        Confidence level in (0, 1). Default 0.975 gives about 2.2414.

    Returns
    -------
    float
        ``sqrt(chi2.ppf(conflev, 1))``.
    """
    if not 0 < conflev < 1:
        raise ValueError(f"conflev must lie in (0, 1), got {conflev}")
    return float(np.sqrt(stats.chi2.ppf(conflev, 1)))


@dataclass
class OutlierResults:
    """Outliers declared at a confidence level.

    Attributes
    ----------
    indices : NDArray[np.intp]
        Sorted positions of the outlying observations.
    mask : NDArray[np.bool_]
        Boolean vector, True for outliers.
    threshold : float
        Cut-off applied to the absolute scaled residuals.
    conflev : float
        Confidence level used.
    """

    indices: NDArray[np.intp]
    mask: NDArray[np.bool_]
    threshold: float
    conflev: float

    @property
    def n_outliers(self) -> int:
        """Number of declared outliers."""
        return int(self.indices.size)

    def __str__(self) -> str:
        """Return string representation."""
        return (
            f"{self.n_outliers} outlier(s) out of {self.mask.size} at "
            f"conflev={self.conflev:.4g} (|r| > {self.threshold:.4f})"
        )


def detect_outliers(
    scaled_resid: ArrayLike, conflev: float = 0.975
) -> OutlierResults:
    """Flag observations whose scaled residual exceeds the cut-off.

    Parameters
    ----------
    scaled_resid : ArrayLike
        Residuals divided by the scale estimate.
    conflev : float
        Confidence level in (0, 1). Default 0.975.

    Returns
    -------
    OutlierResults
        Positions, mask and threshold.

    Examples
    --------
    >>> from mmreg.diagnostics import detect_outliers
    >>> detect_outliers([0.1, -3.0, 2.0, 5.0]).indices
    array([1, 3])
    """
    threshold = outlier_threshold(conflev)
    r = np.asarray(scaled_resid, dtype=np.float64).ravel()
    mask = np.abs(r) > threshold
    return OutlierResults(
        indices=np.flatnonzero(mask),
        mask=mask,
        threshold=threshold,
        conflev=float(conflev),
    )
