"""Base classes for robust regression results.

Fitted models return results objects that hold the coefficient estimates,
their robust standard errors, the fixed scale and the per-observation
weights and scaled residuals, mirroring statsmodels' ``RLMResults``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd
from scipy import stats

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from mmreg.diagnostics import OutlierResults


@dataclass(kw_only=True)
class RobustResultsBase(ABC):
    """Base class for all results of the package.

    Parameters
    ----------
    params : NDArray[np.floating]
        Estimated parameters.
    nobs : int
        Number of observations used in estimation.
    model_name : str
        Name of the model that produced these results.
    """

    params: NDArray[np.floating[Any]]
    nobs: int
    model_name: str = "RobustModel"

    @property
    @abstractmethod
    def df_model(self) -> int:
        """Degrees of freedom used by the model (number of parameters)."""
        ...

    @property
    def df_resid(self) -> int:
        """Residual degrees of freedom (nobs - df_model)."""
        return self.nobs - self.df_model

    @abstractmethod
    def summary(self) -> str:
        """Generate a text summary of the results."""
        ...


@dataclass(kw_only=True)
class RobustRegressionResults(RobustResultsBase):
    """Results shared by the S and MM regression estimators.

    Parameters
    ----------
    params : NDArray[np.floating]
        Regression coefficients.
    bse : NDArray[np.floating]
        Robust standard errors.
    scale : float
        Scale estimate the residuals are standardised with.
    resid : NDArray[np.floating]
        Raw residuals ``y - X params``.
    weights : NDArray[np.floating]
        Final IRLS weights.
    fittedvalues : NDArray[np.floating]
        Fitted values ``X params``.
    cov_params_matrix : NDArray[np.floating]
        Covariance matrix of the coefficients.
    outliers : OutlierResults
        Outliers declared from the scaled residuals.
    cov_type : str
        Huber covariance form ("H1", "H2" or "H3").
    param_names : Sequence[str] | None
        Names of the coefficients for display purposes.

    Attributes
    ----------
    sresid : NDArray[np.floating]
        Scaled residuals ``resid / scale``.
    tvalues : NDArray[np.floating]
        t-statistics for the coefficients.
    pvalues : NDArray[np.floating]
        Two-sided p-values for the t-statistics.
    """

    bse: NDArray[np.floating[Any]]
    scale: float
    resid: NDArray[np.floating[Any]]
    weights: NDArray[np.floating[Any]]
    fittedvalues: NDArray[np.floating[Any]]
    cov_params_matrix: NDArray[np.floating[Any]]
    outliers: OutlierResults
    cov_type: str = "H1"
    param_names: Sequence[str] | None = None

    @property
    def df_model(self) -> int:
        """Degrees of freedom used by the model."""
        return len(self.params)

    @property
    def sresid(self) -> NDArray[np.floating[Any]]:
        """Residuals divided by the scale."""
        return self.resid / self.scale

    @property
    def tvalues(self) -> NDArray[np.floating[Any]]:
        """t-statistics for parameter estimates."""
        return self.params / self.bse

    @property
    def pvalues(self) -> NDArray[np.floating[Any]]:
        """Two-sided p-values for t-statistics."""
        return 2 * stats.t.sf(np.abs(self.tvalues), self.df_resid)

    @property
    def conflev(self) -> float:
        """Confidence level used to declare outliers."""
        return self.outliers.conflev

    def conf_int(self, alpha: float = 0.05) -> NDArray[np.floating[Any]]:
        """Compute confidence intervals for parameter estimates.

        Parameters
        ----------
        alpha : float, default 0.05
            Significance level. Default gives 95% confidence intervals.

        Returns
        -------
        NDArray[np.floating]
            Array of shape (n_params, 2) with lower and upper bounds.
        """
        q = stats.t.ppf(1 - alpha / 2, self.df_resid)
        return np.column_stack([self.params - q * self.bse, self.params + q * self.bse])

    def cov_params(self) -> NDArray[np.floating[Any]]:
        """Return the covariance matrix of parameter estimates."""
        return self.cov_params_matrix

    def _names(self) -> list[str]:
        return list(self.param_names or [f"x{i}" for i in range(len(self.params))])

    def _header_lines(self) -> list[str]:
        """Model-specific lines printed above the coefficient table."""
        return []

    def summary(self) -> str:
        """Generate a text summary of the regression results.

        Returns
        -------
        str
            Formatted summary including coefficients, robust standard
            errors, t-values, p-values and the outliers found.
        """
        lines = []
        lines.append("=" * 78)
        lines.append(f"{self.model_name + ' Regression Results':^78}")
        lines.append("=" * 78)
        lines.append(
            f"Dep. Variable:           y   No. Observations:    {self.nobs:>10}"
        )
        lines.append(
            f"Model:      {self.model_name:>14}   Df Residuals:        {self.df_resid:>10}"
        )
        lines.append(
            f"Cov. Type:      {self.cov_type:>10}   Df Model:            {self.df_model:>10}"
        )
        lines.append(
            f"Scale:      {self.scale:>14.4f}   Outliers:            "
            f"{self.outliers.n_outliers:>10}"
        )
        lines.extend(self._header_lines())
        lines.append("=" * 78)

        lines.append(
            f"{'':>15} {'coef':>10} {'std err':>10} {'t':>10} "
            f"{'P>|t|':>10} {'[0.025':>10} {'0.975]':>10}"
        )
        lines.append("-" * 78)

        ci = self.conf_int()
        for i, name in enumerate(self._names()):
            pval_str = (
                f"{self.pvalues[i]:.3f}"
                if self.pvalues[i] >= 0.001
                else f"{self.pvalues[i]:.2e}"
            )
            lines.append(
                f"{name:>15} {self.params[i]:>10.4f} {self.bse[i]:>10.4f} "
                f"{self.tvalues[i]:>10.3f} {pval_str:>10} "
                f"{ci[i, 0]:>10.3f} {ci[i, 1]:>10.3f}"
            )

        lines.append("=" * 78)
        lines.append(
            f"Note: Outliers declared at conflev={self.conflev:.3f} "
            f"(|scaled resid| > {self.outliers.threshold:.4f})."
        )
        return "\n".join(lines)

    def to_dataframe(self) -> pd.DataFrame:
        """Coefficient table as a pandas DataFrame.

        Returns
        -------
        pd.DataFrame
            DataFrame with parameter estimates, standard errors, t-values,
            p-values, and confidence intervals.
        """
        ci = self.conf_int()
        return pd.DataFrame(
            {
                "coef": self.params,
                "std_err": self.bse,
                "t": self.tvalues,
                "P>|t|": self.pvalues,
                "ci_lower": ci[:, 0],
                "ci_upper": ci[:, 1],
            },
            index=self._names(),
        )

    def observations_frame(self) -> pd.DataFrame:
        """Per-observation diagnostics as a pandas DataFrame.

        Returns
        -------
        pd.DataFrame
            Columns ``fitted``, ``resid``, ``sresid``, ``weight`` and
            ``outlier``, one row per observation.
        """
        return pd.DataFrame(
            {
                "fitted": self.fittedvalues,
                "resid": self.resid,
                "sresid": self.sresid,
                "weight": self.weights,
                "outlier": self.outliers.mask,
            }
        )
