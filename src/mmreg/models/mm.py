"""MM-estimation of regression with a fixed scale.

An MM-estimator starts from a high-breakdown fit (usually an S-estimate),
keeps its scale fixed and refines the coefficients by iteratively
reweighted least squares with a rho function calibrated for a target
efficiency (Yohai, 1987).

References
----------
Yohai, V.J. (1987). High breakdown-point and high efficiency robust
    estimates for regression. *The Annals of Statistics*, 15, 642-656.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from mmreg.calibration import Calibration, calibrate_efficiency
from mmreg.config import MMOptions
from mmreg.diagnostics import detect_outliers
from mmreg.exceptions import (
    NegativeOrZeroVariance,
    NonConvergenceWarning,
    SingularWeightedDesign,
)
from mmreg.models.base import CovType, RobustModelBase
from mmreg.models.covariance import robust_covariance
from mmreg.models.s_estimator import InitialEstimate, SRegression
from mmreg.results.base import RobustRegressionResults

if TYPE_CHECKING:
    import pandas as pd
    from numpy.typing import ArrayLike, NDArray

    from mmreg.norms import RhoPsiNorm

_EPS = np.finfo(np.float64).eps


@dataclass
class RefinementResult:
    """Output of the fixed-scale IRLS refinement.

    Attributes
    ----------
    params : NDArray[np.floating]
        Final coefficients.
    weights : NDArray[np.floating]
        Weights of the last iteration.
    resid : NDArray[np.floating]
        Scaled residuals ``(y - X params) / scale`` at the final coefficients.
    scale : float
        The scale passed in, unchanged.
    n_iter : int
        Number of iterations performed.
    crit : float
        Largest absolute coefficient change of the last iteration
        (``inf`` when no iteration was run).
    converged : bool
        True when ``crit <= tolerance``.
    """

    params: NDArray[np.floating[Any]]
    weights: NDArray[np.floating[Any]]
    resid: NDArray[np.floating[Any]]
    scale: float
    n_iter: int
    crit: float
    converged: bool


def _check_scale(scale: float) -> None:
    if not (np.isfinite(scale) and scale > 0):
        raise NegativeOrZeroVariance(f"scale must be positive and finite, got {scale}")


def _irls_weights(
    y: NDArray[np.floating[Any]],
    X: NDArray[np.floating[Any]],
    beta: NDArray[np.floating[Any]],
    scale: float,
    norm: RhoPsiNorm,
) -> NDArray[np.floating[Any]]:
    r = (y - X @ beta) / scale
    # weight functions divide by r
    r[np.abs(r) < _EPS] = _EPS
    return norm.weights(r)


def mm_refine(
    endog: ArrayLike,
    exog: ArrayLike,
    start_params: ArrayLike,
    scale: float,
    norm: RhoPsiNorm,
    max_iterations: int = 100,
    tolerance: float = 1e-7,
    warn: bool = True,
) -> RefinementResult:
    """Refine regression coefficients by IRLS with a fixed scale.

    Parameters
    ----------
    endog : ArrayLike
        Response (n,).
    exog : ArrayLike
        Design matrix (n, p).
    start_params : ArrayLike
        Initial coefficients (p,).
    scale : float
        Fixed positive scale; never updated.
    norm : RhoPsiNorm
        Calibrated rho/psi family providing the weights.
    max_iterations : int
        Hard cap on the number of iterations. Default 100. With 0 the
        start values are returned unchanged.
    tolerance : float
        The loop stops when the largest absolute coefficient change is at
        most this value. Default 1e-7.
    warn : bool
        Emit a :class:`NonConvergenceWarning` when the cap is reached
        without convergence. Default True.

    Returns
    -------
    RefinementResult
        Final coefficients, weights and scaled residuals.

    Raises
    ------
    SingularWeightedDesign
        If the weighted design is rank deficient at some iteration.
    NegativeOrZeroVariance
        If ``scale`` is not positive and finite.
    """
    y = np.asarray(endog, dtype=np.float64)
    X = np.asarray(exog, dtype=np.float64)
    beta = np.array(start_params, dtype=np.float64)
    n, p = X.shape
    if y.shape != (n,):
        raise ValueError(f"endog must have shape ({n},), got {y.shape}")
    if beta.shape != (p,):
        raise ValueError(f"start_params must have shape ({p},), got {beta.shape}")
    _check_scale(scale)
    if max_iterations < 0:
        raise ValueError(f"max_iterations must be non-negative, got {max_iterations}")

    n_iter = 0
    crit = np.inf
    w = _irls_weights(y, X, beta, scale, norm)

    while n_iter < max_iterations and crit > tolerance:
        if n_iter > 0:
            w = _irls_weights(y, X, beta, scale, norm)

        sw = np.sqrt(w)
        new_beta, _, rank, _ = np.linalg.lstsq(X * sw[:, None], y * sw, rcond=None)
        if rank < p:
            raise SingularWeightedDesign(n_iter, int(rank), p)

        crit = float(np.max(np.abs(new_beta - beta)))
        beta = new_beta
        n_iter += 1

    converged = bool(crit <= tolerance)
    if warn and max_iterations > 0 and not converged:
        warnings.warn(
            f"MM refinement did not converge in {max_iterations} iterations "
            f"(max abs change {crit:.3g} > {tolerance:.3g})",
            NonConvergenceWarning,
            stacklevel=2,
        )

    return RefinementResult(
        params=beta,
        weights=w,
        resid=(y - X @ beta) / scale,
        scale=scale,
        n_iter=n_iter,
        crit=crit,
        converged=converged,
    )


@dataclass(kw_only=True)
class MMResults(RobustRegressionResults):
    """Results from MM estimation.

    Additional Attributes
    ---------------------
    calibration : Calibration
        Calibrated rho function (family, efficiency, tuning constants).
    initial : InitialEstimate | SResults
        Starting point the refinement used.
    n_iter : int
        Number of IRLS iterations.
    crit : float
        Final convergence criterion.
    converged : bool
        Whether the tolerance was reached within the iteration cap.
    """

    calibration: Calibration
    initial: Any
    n_iter: int
    crit: float
    converged: bool

    @property
    def efficiency(self) -> float:
        """Nominal efficiency of the fit."""
        return self.calibration.efficiency

    def _header_lines(self) -> list[str]:
        what = "shape" if self.calibration.shape else "loc."
        return [
            f"Rho family: {self.calibration.family:>10}   Efficiency ({what}):  "
            f"{self.efficiency:>10.3f}",
            f"Iterations:     {self.n_iter:>10}   Converged:           "
            f"{self.converged!s:>10}",
        ]


class MM(RobustModelBase):
    """MM-estimator of regression.

    Parameters
    ----------
    endog : ArrayLike
        Dependent variable (n_obs,).
    exog : ArrayLike
        Regressors (n_obs, k).
    has_constant : bool
        Add an intercept when none is present. Default True.
    options : MMOptions | None
        Rho family, efficiency, iteration control and outlier confidence
        level. Default ``MMOptions()`` (bisquare, 95% location efficiency).
    nocheck : bool
        Skip row removal and intercept handling. Default False.

    Examples
    --------
    >>> import numpy as np
    >>> import mmreg as mm
    >>> rng = np.random.default_rng(42)
    >>> X = rng.standard_normal((200, 3))
    >>> y = X @ [1.0, 2.0, -1.0] + rng.standard_normal(200)
    >>> y[:10] += 7
    >>> res = mm.MM(y, X).fit(random_state=0)
    >>> print(res.summary())  # doctest: +SKIP

    Notes
    -----
    Unless start values are given, the initial fit is an S-estimate with
    breakdown point 0.5 computed with the same rho family.
    """

    def __init__(
        self,
        endog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        exog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        has_constant: bool = True,
        options: MMOptions | None = None,
        nocheck: bool = False,
    ) -> None:
        """Initialize MM model."""
        super().__init__(endog, exog, has_constant=has_constant, nocheck=nocheck)
        self.options = options if options is not None else MMOptions()

    def initial_fit(self, random_state: int | np.random.Generator | None = None) -> Any:
        """High-breakdown S-estimate used as starting point."""
        return SRegression(
            self.endog,
            self.exog,
            has_constant=False,
            rho_family=self.options.rho_family,
            rho_family_params=self.options.rho_family_params,
            random_state=random_state,
            nocheck=True,
        ).fit()

    def fit(
        self,
        start_params: ArrayLike | None = None,
        scale: float | None = None,
        initial: Any = None,
        cov_type: CovType = "H1",
        random_state: int | np.random.Generator | None = None,
    ) -> MMResults:
        """Fit the MM model.

        Parameters
        ----------
        start_params : ArrayLike | None
            Initial coefficients. Must be given together with ``scale``.
        scale : float | None
            Fixed scale. Must be given together with ``start_params``.
        initial : InitialEstimate | SResults | None
            Alternative way to pass the starting point.
        cov_type : {"H1", "H2", "H3"}
            Huber covariance form for the standard errors. Default "H1".
        random_state : int | np.random.Generator | None
            Seed for the S-estimator when no starting point is given.

        Returns
        -------
        MMResults
            Results object containing estimates and inference.
        """
        if (start_params is None) != (scale is None):
            raise ValueError("start_params and scale must be given together")
        if start_params is not None:
            initial = InitialEstimate(
                params=np.asarray(start_params, dtype=np.float64), scale=scale
            )
        elif initial is None:
            initial = self.initial_fit(random_state)

        opts = self.options
        calibration = calibrate_efficiency(
            opts.rho_family,
            opts.efficiency,
            shape=opts.efficiency_refers_to_shape,
            params=opts.rho_family_params,
        )
        norm = calibration.norm()

        ref = mm_refine(
            self.endog,
            self.exog,
            initial.params,
            initial.scale,
            norm,
            max_iterations=opts.max_iterations,
            tolerance=opts.tolerance,
        )
        cov = robust_covariance(self.exog, ref.resid, ref.scale, norm, cov_type)
        fitted = self.exog @ ref.params

        return MMResults(
            params=ref.params,
            bse=np.sqrt(np.diag(cov)),
            scale=ref.scale,
            resid=self.endog - fitted,
            weights=ref.weights,
            fittedvalues=fitted,
            cov_params_matrix=cov,
            outliers=detect_outliers(ref.resid, opts.confidence_level),
            cov_type=cov_type,
            param_names=self.exog_names,
            nobs=self.nobs,
            model_name="MM",
            calibration=calibration,
            initial=initial,
            n_iter=ref.n_iter,
            crit=ref.crit,
            converged=ref.converged,
        )
