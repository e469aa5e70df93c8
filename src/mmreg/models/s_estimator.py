"""High-breakdown S-estimator of regression (fast-S).

The S-estimator provides the coefficients and the fixed scale from which
the MM refinement starts. It is computed with the fast-S algorithm of
Salibian-Barrera and Yohai (2006):

1. draw elemental subsets of ``p`` observations and fit them exactly;
2. improve each candidate with a few concentration (I-) steps, each made
   of one M-scale update and one weighted least squares solve;
3. fully iterate the ``bestr`` candidates with the smallest scale and keep
   the one with the smallest M-scale.

References
----------
Salibian-Barrera, M. and Yohai, V.J. (2006). A fast algorithm for
    S-regression estimates. *Journal of Computational and Graphical
    Statistics*, 15, 414-427.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from math import comb
from typing import TYPE_CHECKING, Any

import numpy as np
import statsmodels.api as sm

from mmreg.calibration import BreakdownCalibration, calibrate_breakdown
from mmreg.config import resolve_family_params
from mmreg.diagnostics import detect_outliers
from mmreg.exceptions import NegativeOrZeroVariance
from mmreg.models.base import CovType, RobustModelBase, prepare_data
from mmreg.models.covariance import robust_covariance
from mmreg.results.base import RobustRegressionResults

if TYPE_CHECKING:
    import pandas as pd
    from numpy.typing import ArrayLike, NDArray

    from mmreg.config import RhoFamily
    from mmreg.norms import RhoPsiNorm

# Normal consistency factor of the median absolute deviation.
_MAD_FACTOR = 0.6745


@dataclass(frozen=True)
class InitialEstimate:
    """Starting point of the MM refinement.

    Any object with ``params`` and ``scale`` attributes (such as
    :class:`SResults`) can be used in its place.

    Attributes
    ----------
    params : NDArray[np.floating]
        Initial coefficients.
    scale : float
        Fixed positive scale.
    """

    params: NDArray[np.floating[Any]]
    scale: float


def ols_initial_estimate(
    endog: ArrayLike | pd.Series[Any] | pd.DataFrame,
    exog: ArrayLike | pd.Series[Any] | pd.DataFrame,
) -> InitialEstimate:
    """Least squares start values (not robust).

    Useful when the clean part of a sample is known. The design is used
    as given, without adding an intercept.

    Parameters
    ----------
    endog : ArrayLike
        Response.
    exog : ArrayLike
        Design matrix.

    Returns
    -------
    InitialEstimate
        OLS coefficients and residual standard error.
    """
    data = prepare_data(endog, exog, has_constant=False)
    ols = sm.OLS(data.endog, data.exog).fit()
    return InitialEstimate(
        params=np.asarray(ols.params), scale=float(np.sqrt(ols.scale))
    )


def m_scale(
    u: NDArray[np.floating[Any]],
    norm: RhoPsiNorm,
    kc: float,
    initial: float | None = None,
    tol: float = 1e-7,
    max_iter: int = 200,
) -> float:
    """M-estimate of scale solving ``mean(rho(u / s)) = kc``.

    Parameters
    ----------
    u : NDArray[np.floating]
        Residuals.
    norm : RhoPsiNorm
        Bounded rho function.
    kc : float
        Consistency constant, ``bdp * sup(rho)``.
    initial : float, optional
        Starting value. Default is the normalised median absolute residual.
    tol : float
        Relative tolerance on successive scale values.
    max_iter : int
        Maximum number of fixed-point iterations.

    Returns
    -------
    float
        The scale (0 when more than half of the residuals are zero).
    """
    s = float(np.median(np.abs(u)) / _MAD_FACTOR) if initial is None else initial
    if s <= 0:
        return 0.0
    for _ in range(max_iter):
        s_new = s * np.sqrt(float(np.mean(norm.rho(u / s))) / kc)
        if abs(s_new / s - 1) <= tol:
            return float(s_new)
        s = s_new
    return float(s)


def _irwls(
    y: NDArray[np.floating[Any]],
    X: NDArray[np.floating[Any]],
    beta: NDArray[np.floating[Any]],
    norm: RhoPsiNorm,
    kc: float,
    refsteps: int,
    reftol: float,
    minsctol: float,
) -> tuple[NDArray[np.floating[Any]], float]:
    """Concentration steps: one scale update then one weighted LS solve."""
    res = y - X @ beta
    scale = float(np.median(np.abs(res)) / _MAD_FACTOR)
    for _ in range(refsteps):
        if scale <= minsctol:
            break
        scale = scale * np.sqrt(float(np.mean(norm.rho(res / scale))) / kc)
        w = norm.weights(res / scale)
        sw = np.sqrt(w)
        new_beta, _, rank, _ = np.linalg.lstsq(X * sw[:, None], y * sw, rcond=None)
        if rank < X.shape[1]:
            break
        diff = np.sum(np.abs(beta - new_beta)) / max(np.sum(np.abs(beta)), 1e-12)
        beta = new_beta
        res = y - X @ beta
        if diff <= reftol:
            break
    return beta, scale


@dataclass(kw_only=True)
class SResults(RobustRegressionResults):
    """Results from S-estimation.

    Additional Attributes
    ---------------------
    bdp : float
        Breakdown point.
    calibration : BreakdownCalibration
        Tuning of the rho function and M-scale consistency constant.
    n_subsets : int
        Number of elemental subsets extracted.
    n_singular_subsets : int
        Number of subsets whose design was singular.
    """

    bdp: float
    calibration: BreakdownCalibration
    n_subsets: int
    n_singular_subsets: int = 0

    def _header_lines(self) -> list[str]:
        return [
            f"Rho family: {self.calibration.family:>10}   Breakdown point:     "
            f"{self.bdp:>10.3f}",
            f"Subsets:        {self.n_subsets:>10}   Singular subsets:    "
            f"{self.n_singular_subsets:>10}",
        ]


class SRegression(RobustModelBase):
    """S-estimator of regression computed with fast-S.

    Parameters
    ----------
    endog : ArrayLike
        Dependent variable (n_obs,).
    exog : ArrayLike
        Regressors (n_obs, k).
    has_constant : bool
        Add an intercept when none is present. Default True.
    bdp : float
        Breakdown point in (0, 0.5]. Default 0.5.
    rho_family : RhoFamily
        Rho family of the M-scale. Default "bisquare".
    rho_family_params : tuple[float, ...] | None
        Family extras (hyperbolic ``k``, hampel ``(a, b, r)``).
    n_subsets : int
        Number of elemental subsets. Default 20. When the number of
        distinct subsets is not larger, all of them are used.
    refsteps : int
        Concentration steps applied to every subset. Default 3.
    reftol : float
        Relative tolerance of the concentration steps. Default 1e-6.
    bestr : int
        Number of best candidates that are fully iterated. Default 5.
    refstepsbestr : int
        Maximum concentration steps for the best candidates. Default 50.
    reftolbestr : float
        Tolerance for the best candidates. Default 1e-8.
    minsctol : float
        Scales below this value signal an exact fit. Default 1e-7.
    random_state : int | np.random.Generator | None
        Seed or generator for the subset draws.
    nocheck : bool
        Skip row removal and intercept handling. Default False.

    Examples
    --------
    >>> import numpy as np
    >>> from mmreg import SRegression
    >>> rng = np.random.default_rng(0)
    >>> X = rng.standard_normal((100, 2))
    >>> y = 1 + X @ [2.0, -1.0] + rng.standard_normal(100)
    >>> y[:10] += 20
    >>> res = SRegression(y, X, random_state=0).fit()
    >>> bool(np.all(res.outliers.mask[:10]))
    True
    """

    def __init__(
        self,
        endog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        exog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        has_constant: bool = True,
        bdp: float = 0.5,
        rho_family: RhoFamily = "bisquare",
        rho_family_params: tuple[float, ...] | None = None,
        n_subsets: int = 20,
        refsteps: int = 3,
        reftol: float = 1e-6,
        bestr: int = 5,
        refstepsbestr: int = 50,
        reftolbestr: float = 1e-8,
        minsctol: float = 1e-7,
        random_state: int | np.random.Generator | None = None,
        nocheck: bool = False,
    ) -> None:
        """Initialize the S-estimator."""
        super().__init__(endog, exog, has_constant=has_constant, nocheck=nocheck)
        if n_subsets < 1 or bestr < 1:
            raise ValueError("n_subsets and bestr must be positive")
        self.bdp = bdp
        self.rho_family = rho_family
        self.rho_family_params = resolve_family_params(rho_family, rho_family_params)
        self.n_subsets = int(n_subsets)
        self.refsteps = int(refsteps)
        self.reftol = reftol
        self.bestr = int(bestr)
        self.refstepsbestr = int(refstepsbestr)
        self.reftolbestr = reftolbestr
        self.minsctol = minsctol
        self.random_state = random_state

    def _subsets(self, rng: np.random.Generator) -> list[NDArray[np.intp]]:
        n, p = self.exog.shape
        if comb(n, p) <= self.n_subsets:
            return [np.array(c) for c in itertools.combinations(range(n), p)]
        return [
            np.sort(rng.choice(n, size=p, replace=False)) for _ in range(self.n_subsets)
        ]

    def fit(self, cov_type: CovType = "H1", conflev: float = 0.975) -> SResults:
        """Compute the S-estimate.

        Parameters
        ----------
        cov_type : {"H1", "H2", "H3"}
            Huber covariance form for the standard errors. Default "H1".
        conflev : float
            Confidence level used to declare outliers. Default 0.975.

        Returns
        -------
        SResults
            Coefficients, scale, weights and outliers.

        Raises
        ------
        numpy.linalg.LinAlgError
            If every elemental subset is singular.
        NegativeOrZeroVariance
            If the scale is not above ``minsctol`` (exact fit).
        """
        y, X = self.endog, self.exog
        p = X.shape[1]
        calibration = calibrate_breakdown(
            self.rho_family, self.bdp, self.rho_family_params
        )
        norm = calibration.norm()
        kc = calibration.kc
        rng = np.random.default_rng(self.random_state)

        subsets = self._subsets(rng)
        n_singular = 0
        candidates: list[tuple[float, NDArray[np.floating[Any]]]] = []
        for idx in subsets:
            Xs = X[idx]
            if np.linalg.matrix_rank(Xs) < p:
                n_singular += 1
                continue
            beta = np.linalg.solve(Xs, y[idx])
            beta, scale = _irwls(
                y, X, beta, norm, kc, self.refsteps, self.reftol, self.minsctol
            )
            candidates.append((scale, beta))

        if not candidates:
            raise np.linalg.LinAlgError(
                f"all {len(subsets)} elemental subsets are singular"
            )

        candidates.sort(key=lambda item: item[0])
        best_scale = np.inf
        best_beta = candidates[0][1]
        for _, beta in candidates[: self.bestr]:
            beta, scale = _irwls(
                y,
                X,
                beta,
                norm,
                kc,
                self.refstepsbestr,
                self.reftolbestr,
                self.minsctol,
            )
            scale = m_scale(y - X @ beta, norm, kc, initial=scale if scale > 0 else None)
            if scale < best_scale:
                best_scale, best_beta = scale, beta

        if not best_scale > self.minsctol:
            raise NegativeOrZeroVariance(
                f"S-estimate scale {best_scale:.3g} is below minsctol: more than "
                "half of the observations lie on a hyperplane (exact fit)"
            )

        resid = y - X @ best_beta
        sresid = resid / best_scale
        cov = robust_covariance(X, sresid, best_scale, norm, cov_type)

        return SResults(
            params=best_beta,
            bse=np.sqrt(np.diag(cov)),
            scale=best_scale,
            resid=resid,
            weights=norm.weights(sresid),
            fittedvalues=X @ best_beta,
            cov_params_matrix=cov,
            outliers=detect_outliers(sresid, conflev),
            cov_type=cov_type,
            param_names=self.exog_names,
            nobs=self.nobs,
            model_name="S",
            bdp=self.bdp,
            calibration=calibration,
            n_subsets=len(subsets),
            n_singular_subsets=n_singular,
        )
