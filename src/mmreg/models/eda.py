"""Exploratory monitoring of MM fits over a grid of efficiencies.

Riani, Cerioli, Atkinson and Perrotta (2014) suggest monitoring how the
coefficients, residuals, weights and outliers of an MM fit change as the
nominal efficiency moves from 0.5 to 0.99, with the initial S-estimate
(and hence the scale) held fixed. Stable paths indicate that the data are
well described by the model; sudden changes flag masked outliers.

References
----------
Riani, M., Cerioli, A., Atkinson, A.C. and Perrotta, D. (2014). Monitoring
    robust regression. *Electronic Journal of Statistics*, 8, 646-677.
"""

from __future__ import annotations

import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

import numpy as np
import pandas as pd

from mmreg.calibration import calibrate_efficiency
from mmreg.config import MMOptions
from mmreg.diagnostics import detect_outliers, outlier_threshold
from mmreg.exceptions import (
    SweepError,
    SweepFailureWarning,
    UnsupportedEfficiencyRequest,
)
from mmreg.models.base import CovType, RobustModelBase
from mmreg.models.covariance import robust_covariance
from mmreg.models.mm import mm_refine
from mmreg.models.s_estimator import SRegression

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray

#: Default efficiency grid 0.50, 0.51, ..., 0.99.
DEFAULT_EFFICIENCIES = np.round(np.arange(50, 100) / 100, 2)

# Failures isolated to one grid value; anything else propagates.
_GRID_ERRORS = (np.linalg.LinAlgError, ArithmeticError, UnsupportedEfficiencyRequest)

OnError = Literal["raise", "skip"]


@dataclass(frozen=True)
class SweepFailure:
    """A grid value whose fit failed.

    Attributes
    ----------
    index : int
        Position in the efficiency grid.
    efficiency : float
        The efficiency value.
    error : BaseException
        The exception raised while fitting it.
    """

    index: int
    efficiency: float
    error: BaseException


@dataclass
class _GridFit:
    params: NDArray[np.floating[Any]]
    tvalues: NDArray[np.floating[Any]]
    resid: NDArray[np.floating[Any]]
    weights: NDArray[np.floating[Any]]
    outliers: NDArray[np.bool_]
    n_iter: int
    converged: bool


@dataclass(kw_only=True)
class MMSweepResults:
    """Monitoring of MM fits across efficiencies.

    Matrices indexed by efficiency have one row per grid value; matrices
    indexed by observation have one column per grid value. Failed grid
    values hold NaN (False for outliers) and are listed in ``failures``.

    Attributes
    ----------
    efficiencies : NDArray[np.floating]
        The efficiency grid.
    params : NDArray[np.floating]
        (n_eff, 1 + p): efficiency followed by the coefficients.
    tvalues : NDArray[np.floating]
        (n_eff, 1 + p): efficiency followed by the t-statistics.
    resid : NDArray[np.floating]
        (n, n_eff) scaled residuals.
    weights : NDArray[np.floating]
        (n, n_eff) final weights.
    outliers : NDArray[np.bool_]
        (n, n_eff) outlier flags.
    n_iter : NDArray[np.int_]
        Iterations per grid value (-1 for failures).
    converged : NDArray[np.bool_]
        Convergence flag per grid value.
    failures : list[SweepFailure]
        Grid values that failed (only with ``on_error="skip"``).
    initial : Any
        The initial fit (coefficients and fixed scale) shared by all fits.
    conflev : float
        Confidence level used to declare outliers.
    rho_family : str
        Rho/psi family tag.
    rho_family_params : tuple[float, ...] | None
        Family extras.
    param_names : Sequence[str] | None
        Coefficient names.
    cov_type : str
        Huber covariance form used for the t-statistics.
    """

    efficiencies: NDArray[np.floating[Any]]
    params: NDArray[np.floating[Any]]
    tvalues: NDArray[np.floating[Any]]
    resid: NDArray[np.floating[Any]]
    weights: NDArray[np.floating[Any]]
    outliers: NDArray[np.bool_]
    n_iter: NDArray[np.int_]
    converged: NDArray[np.bool_]
    initial: Any
    conflev: float
    rho_family: str
    rho_family_params: tuple[float, ...] | None = None
    param_names: Sequence[str] | None = None
    cov_type: str = "H1"
    failures: list[SweepFailure] = field(default_factory=list)

    @property
    def nobs(self) -> int:
        """Number of observations."""
        return self.resid.shape[0]

    @property
    def failed(self) -> NDArray[np.bool_]:
        """Boolean mask over the grid, True where the fit failed."""
        mask = np.zeros(len(self.efficiencies), dtype=bool)
        mask[[f.index for f in self.failures]] = True
        return mask

    @property
    def n_outliers(self) -> NDArray[np.int_]:
        """Number of outliers per grid value."""
        return self.outliers.sum(axis=0)

    def _names(self) -> list[str]:
        p = self.params.shape[1] - 1
        return list(self.param_names or [f"x{i}" for i in range(p)])

    def to_dataframe(
        self, which: Literal["params", "tvalues", "resid", "weights", "outliers"] = "params"
    ) -> pd.DataFrame:
        """One of the monitoring matrices as a pandas DataFrame.

        Parameters
        ----------
        which : {"params", "tvalues", "resid", "weights", "outliers"}
            Matrix to convert. Default "params".

        Returns
        -------
        pd.DataFrame
            For "params" and "tvalues", rows are efficiencies and columns
            are coefficients. Otherwise rows are observations and columns
            are efficiencies.
        """
        if which in ("params", "tvalues"):
            values = getattr(self, which)
            return pd.DataFrame(
                values[:, 1:],
                index=pd.Index(self.efficiencies, name="efficiency"),
                columns=self._names(),
            )
        if which in ("resid", "weights", "outliers"):
            return pd.DataFrame(
                getattr(self, which),
                columns=pd.Index(self.efficiencies, name="efficiency"),
            )
        raise ValueError(f"Unknown matrix: {which}")

    def summary(self) -> str:
        """Generate a text summary of the efficiency monitoring.

        Returns
        -------
        str
            One line per efficiency with the number of outliers, the
            number of iterations and the coefficients.
        """
        names = self._names()
        width = 12 + 10 * len(names) + 18
        lines = []
        lines.append("=" * width)
        lines.append(f"{'MM Efficiency Monitoring':^{width}}")
        lines.append("=" * width)
        lines.append(f"Rho family:          {self.rho_family}")
        lines.append(f"No. Observations:    {self.nobs}")
        lines.append(
            f"Outlier cut-off:     {outlier_threshold(self.conflev):.4f} "
            f"(conflev={self.conflev:.3f})"
        )
        lines.append("-" * width)
        header = f"{'eff':>6} {'n_out':>6} {'iter':>5}" + "".join(
            f"{name:>10}" for name in names
        )
        lines.append(header)
        lines.append("-" * width)
        failed = self.failed
        for i, eff in enumerate(self.efficiencies):
            if failed[i]:
                lines.append(f"{eff:>6.2f} {'failed':>6}")
                continue
            coefs = "".join(f"{v:>10.4f}" for v in self.params[i, 1:])
            lines.append(
                f"{eff:>6.2f} {self.n_outliers[i]:>6} {self.n_iter[i]:>5}{coefs}"
            )
        lines.append("=" * width)
        if self.failures:
            lines.append(
                "Failed efficiencies: "
                + ", ".join(f"{f.efficiency:.2f}" for f in self.failures)
            )
        if not np.all(self.converged | failed):
            lines.append("Note: some fits reached the iteration cap without converging.")
        return "\n".join(lines)


class MMEfficiencySweep(RobustModelBase):
    """MM fits over a grid of nominal efficiencies with a fixed start.

    Parameters
    ----------
    endog : ArrayLike
        Dependent variable (n_obs,).
    exog : ArrayLike
        Regressors (n_obs, k).
    efficiencies : ArrayLike | None
        Efficiency grid. Default 0.50, 0.51, ..., 0.99.
    options : MMOptions | None
        Rho family, iteration control and confidence level. The
        ``efficiency`` field is ignored in favour of the grid.
    initial : InitialEstimate | SResults | None
        Initial coefficients and scale. If None an S-estimate with the
        same rho family is computed once.
    has_constant : bool
        Add an intercept when none is present. Default True.
    nocheck : bool
        Skip row removal and intercept handling. Default False.

    Examples
    --------
    >>> import numpy as np
    >>> import mmreg as mm
    >>> rng = np.random.default_rng(1)
    >>> X = rng.standard_normal((100, 2))
    >>> y = X @ [1.0, 1.0] + rng.standard_normal(100)
    >>> res = mm.MMEfficiencySweep(y, X, efficiencies=[0.8, 0.9, 0.95]).fit()
    >>> res.params.shape
    (3, 4)
    """

    def __init__(
        self,
        endog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        exog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        efficiencies: ArrayLike | None = None,
        options: MMOptions | None = None,
        initial: Any = None,
        has_constant: bool = True,
        nocheck: bool = False,
    ) -> None:
        """Initialize the efficiency sweep."""
        super().__init__(endog, exog, has_constant=has_constant, nocheck=nocheck)
        grid = (
            DEFAULT_EFFICIENCIES
            if efficiencies is None
            else np.atleast_1d(np.asarray(efficiencies, dtype=np.float64))
        )
        if grid.ndim != 1 or grid.size == 0:
            raise ValueError("efficiencies must be a non-empty 1-D sequence")
        self.efficiencies: NDArray[np.floating[Any]] = grid.copy()
        self.options = options if options is not None else MMOptions()
        self.initial = initial

    def _initial_fit(self, random_state: int | np.random.Generator | None) -> Any:
        if self.initial is not None:
            return self.initial
        return SRegression(
            self.endog,
            self.exog,
            has_constant=False,
            rho_family=self.options.rho_family,
            rho_family_params=self.options.rho_family_params,
            random_state=random_state,
            nocheck=True,
        ).fit()

    def _fit_one(self, efficiency: float, initial: Any, cov_type: CovType) -> _GridFit:
        opts = self.options
        norm = calibrate_efficiency(
            opts.rho_family,
            efficiency,
            shape=opts.efficiency_refers_to_shape,
            params=opts.rho_family_params,
        ).norm()
        ref = mm_refine(
            self.endog,
            self.exog,
            initial.params,
            initial.scale,
            norm,
            max_iterations=opts.max_iterations,
            tolerance=opts.tolerance,
            warn=False,
        )
        cov = robust_covariance(self.exog, ref.resid, ref.scale, norm, cov_type)
        return _GridFit(
            params=ref.params,
            tvalues=ref.params / np.sqrt(np.diag(cov)),
            resid=ref.resid,
            weights=ref.weights,
            outliers=detect_outliers(ref.resid, opts.confidence_level).mask,
            n_iter=ref.n_iter,
            converged=ref.converged,
        )

    def fit(
        self,
        on_error: OnError = "raise",
        n_jobs: int = 1,
        cov_type: CovType = "H1",
        random_state: int | np.random.Generator | None = None,
    ) -> MMSweepResults:
        """Run the MM refinement for every efficiency of the grid.

        Parameters
        ----------
        on_error : {"raise", "skip"}
            "raise" aborts with :class:`SweepError` at the first grid value
            (in grid order) whose fit fails; "skip" records the failure,
            leaves its slots empty and emits a :class:`SweepFailureWarning`.
            Default "raise".
        n_jobs : int
            Number of worker threads. Default 1 (sequential).
        cov_type : {"H1", "H2", "H3"}
            Huber covariance form for the t-statistics. Default "H1".
        random_state : int | np.random.Generator | None
            Seed for the S-estimator when no initial fit was supplied.

        Returns
        -------
        MMSweepResults
            Monitoring matrices, in grid order regardless of ``n_jobs``.

        Raises
        ------
        SweepError
            With ``on_error="raise"``, naming the failing grid value.
        """
        if on_error not in ("raise", "skip"):
            raise ValueError(f"on_error must be 'raise' or 'skip', got {on_error!r}")
        if n_jobs < 1:
            raise ValueError(f"n_jobs must be at least 1, got {n_jobs}")

        initial = self._initial_fit(random_state)
        effs = self.efficiencies
        n, p = self.exog.shape
        m = len(effs)

        params = np.full((m, 1 + p), np.nan)
        tvalues = np.full((m, 1 + p), np.nan)
        params[:, 0] = effs
        tvalues[:, 0] = effs
        resid = np.full((n, m), np.nan)
        weights = np.full((n, m), np.nan)
        outliers = np.zeros((n, m), dtype=bool)
        n_iter = np.full(m, -1, dtype=int)
        converged = np.zeros(m, dtype=bool)
        failures: list[SweepFailure] = []

        def run(i: int) -> tuple[int, _GridFit | None, BaseException | None]:
            try:
                return i, self._fit_one(float(effs[i]), initial, cov_type), None
            except _GRID_ERRORS as exc:
                return i, None, exc

        executor = ThreadPoolExecutor(max_workers=n_jobs) if n_jobs > 1 else None
        try:
            outcomes = executor.map(run, range(m)) if executor else map(run, range(m))
            for i, grid_fit, exc in outcomes:
                if exc is not None:
                    if on_error == "raise":
                        raise SweepError(i, float(effs[i]), exc) from exc
                    failures.append(SweepFailure(i, float(effs[i]), exc))
                    warnings.warn(
                        f"MM fit failed for efficiency {effs[i]:.4g}; skipped: {exc}",
                        SweepFailureWarning,
                        stacklevel=2,
                    )
                    continue
                params[i, 1:] = grid_fit.params
                tvalues[i, 1:] = grid_fit.tvalues
                resid[:, i] = grid_fit.resid
                weights[:, i] = grid_fit.weights
                outliers[:, i] = grid_fit.outliers
                n_iter[i] = grid_fit.n_iter
                converged[i] = grid_fit.converged
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        return MMSweepResults(
            efficiencies=effs.copy(),
            params=params,
            tvalues=tvalues,
            resid=resid,
            weights=weights,
            outliers=outliers,
            n_iter=n_iter,
            converged=converged,
            initial=initial,
            conflev=self.options.confidence_level,
            rho_family=self.options.rho_family,
            rho_family_params=self.options.rho_family_params,
            param_names=self.exog_names,
            cov_type=cov_type,
            failures=failures,
        )
