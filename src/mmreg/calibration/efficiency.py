"""Calibration of rho/psi tuning constants.

Two calibrations are offered:

* :func:`calibrate_efficiency` finds the tuning constant whose asymptotic
  efficiency at the normal model (for location or for shape) equals a
  target value. This is how the MM estimator picks its rho function.
* :func:`calibrate_breakdown` finds the tuning constant whose normalised
  expected rho equals a breakdown point. This is how the S-estimator picks
  its rho function and the consistency constant of its M-scale.

Both scan a family-specific grid of tuning constants for a sign change of
the objective and refine the bracket with :func:`scipy.optimize.brentq`.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

import numpy as np
import pandas as pd
from scipy import optimize

from mmreg.calibration.hyperbolic import hyperbolic_constants
from mmreg.calibration.integrals import normal_expectation
from mmreg.config import resolve_family_params
from mmreg.exceptions import NegativeOrZeroVariance, UnsupportedEfficiencyRequest
from mmreg.norms import (
    MDPD,
    AndrewSine,
    Bisquare,
    Hampel,
    Hyperbolic,
    Optimal,
    make_norm,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

    from mmreg.norms import RhoPsiNorm

CalibrationSource = Literal["table", "solver", "closed_form"]

MIN_EFFICIENCY = 0.5
MAX_EFFICIENCY = 0.999

BRENTQ_XTOL = 1e-12

#: Nodes of the hyperbolic lookup table.
HYPERBOLIC_EFFICIENCY_GRID = np.round(np.linspace(0.50, 0.99, 50), 2)
HYPERBOLIC_K_GRID = np.array([4.0, 4.5, 5.0])
TABLE_TOLERANCE = 1e-6

# Tuning constants scanned for a sign change, per family. Efficiency grows
# with the tuning constant for every family but mdpd.
_SEARCH_GRIDS: dict[str, NDArray[np.floating[Any]]] = {
    "bisquare": np.geomspace(0.5, 200.0, 60),
    "optimal": np.geomspace(0.05, 40.0, 60),
    "hyperbolic": np.geomspace(1.5, 40.0, 30),
    "hampel": np.geomspace(0.02, 40.0, 60),
    "mdpd": np.geomspace(1e-5, 200.0, 60),
    "AS": np.geomspace(0.1, 80.0, 60),
}


@dataclass(frozen=True, kw_only=True, eq=False)
class Calibration:
    """Outcome of an efficiency calibration.

    Attributes
    ----------
    family : str
        Rho/psi family tag.
    efficiency : float
        Requested efficiency.
    shape : bool
        True if the efficiency refers to shape.
    params : tuple[float, ...] | None
        Family extras used (hyperbolic ``(k,)``, hampel ``(a, b, r)``).
    tuning : NDArray[np.floating]
        Full tuning vector accepted by :func:`mmreg.norms.make_norm`.
    source : {"table", "solver", "closed_form"}
        How the tuning vector was obtained.
    """

    family: str
    efficiency: float
    shape: bool
    params: tuple[float, ...] | None
    tuning: NDArray[np.floating[Any]]
    source: CalibrationSource

    @property
    def c(self) -> float:
        """Main tuning constant (alpha for mdpd)."""
        return float(self.tuning[0])

    def norm(self) -> RhoPsiNorm:
        """Build the calibrated norm."""
        return make_norm(self.family, self.tuning)

    def __repr__(self) -> str:
        """Return string representation of the calibration."""
        what = "shape" if self.shape else "location"
        values = ", ".join(f"{v:.6g}" for v in self.tuning)
        return (
            f"Calibration(family={self.family!r}, {what} efficiency="
            f"{self.efficiency:.4g}, tuning=[{values}], source={self.source!r})"
        )


@dataclass(frozen=True, kw_only=True, eq=False)
class BreakdownCalibration:
    """Outcome of a breakdown-point calibration.

    Attributes
    ----------
    family : str
        Rho/psi family tag.
    bdp : float
        Breakdown point.
    params : tuple[float, ...] | None
        Family extras used.
    tuning : NDArray[np.floating]
        Full tuning vector.
    kc : float
        Consistency constant of the M-scale, ``E[rho]`` under N(0, 1),
        which equals ``bdp * sup(rho)``.
    """

    family: str
    bdp: float
    params: tuple[float, ...] | None
    tuning: NDArray[np.floating[Any]]
    kc: float

    @property
    def c(self) -> float:
        """Main tuning constant."""
        return float(self.tuning[0])

    def norm(self) -> RhoPsiNorm:
        """Build the calibrated norm."""
        return make_norm(self.family, self.tuning)


# ---------------------------------------------------------------------------
# Efficiencies
# ---------------------------------------------------------------------------


def location_efficiency(norm: RhoPsiNorm) -> float:
    """Asymptotic efficiency of the location M-estimator at the normal.

    Parameters
    ----------
    norm : RhoPsiNorm
        The rho/psi family instance.

    Returns
    -------
    float
        ``(E psi')^2 / E psi^2`` under N(0, 1).
    """
    if isinstance(norm, MDPD):
        return mdpd_location_efficiency(norm.alpha)

    points = norm.breakpoints()
    slope = normal_expectation(norm.psi_deriv, points)
    variance = normal_expectation(lambda x: norm.psi(x) ** 2, points)
    if variance <= 0:
        raise NegativeOrZeroVariance(f"E[psi^2] is not positive for {norm!r}")
    return slope**2 / variance


def shape_efficiency(norm: RhoPsiNorm) -> float:
    """Asymptotic efficiency of the shape (scatter) estimator at the normal.

    Parameters
    ----------
    norm : RhoPsiNorm
        The rho/psi family instance.

    Returns
    -------
    float
        ``(E[psi' x^2 + 2 psi x])^2 / (3 E[psi^2 x^2])`` under N(0, 1).
    """
    points = norm.breakpoints()
    num = normal_expectation(
        lambda x: norm.psi_deriv(x) * x**2 + 2 * norm.psi(x) * x, points
    )
    den = normal_expectation(lambda x: norm.psi(x) ** 2 * x**2, points)
    if den <= 0:
        raise NegativeOrZeroVariance(f"E[psi^2 x^2] is not positive for {norm!r}")
    return num**2 / (3 * den)


def asymptotic_efficiency(norm: RhoPsiNorm, shape: bool = False) -> float:
    """Location or shape efficiency of a norm."""
    return shape_efficiency(norm) if shape else location_efficiency(norm)


def mdpd_location_efficiency(alpha: float) -> float:
    """Closed-form location efficiency of the mdpd family.

    Decreasing in ``alpha``: ``((1 + 2 alpha) / (1 + alpha)^2)^(3/2)``.
    """
    return float(((1 + 2 * alpha) / (1 + alpha) ** 2) ** 1.5)


# ---------------------------------------------------------------------------
# Root finding
# ---------------------------------------------------------------------------


def _norm_builder(
    family: str, params: tuple[float, ...] | None
) -> Callable[[float], RhoPsiNorm]:
    if family == "bisquare":
        return Bisquare
    if family == "optimal":
        return Optimal
    if family == "hyperbolic":
        k = params[0] if params else 4.5
        return lambda c: Hyperbolic.from_rejection_point(c, k)
    if family == "hampel":
        a, b, r = params if params else (2.0, 4.0, 8.0)
        return lambda c: Hampel(c, a, b, r)
    if family == "mdpd":
        return MDPD
    return AndrewSine


def _solve_on_grid(
    objective: Callable[[float], float],
    grid: NDArray[np.floating[Any]],
    describe: str,
    family: str,
    efficiency: float | None,
    params: tuple[float, ...] | None,
) -> float:
    """Scan ``grid`` for a sign change of ``objective`` and refine it.

    Grid points where the objective cannot be evaluated are skipped.
    """
    prev_x: float | None = None
    prev_f: float | None = None
    for x in grid:
        try:
            fx = objective(float(x))
        except (ValueError, ArithmeticError):
            continue
        if not np.isfinite(fx):
            continue
        if fx == 0:
            return float(x)
        if prev_f is not None and np.sign(fx) != np.sign(prev_f):
            try:
                return float(
                    optimize.brentq(objective, prev_x, float(x), xtol=BRENTQ_XTOL)
                )
            except (ValueError, ArithmeticError) as exc:
                raise UnsupportedEfficiencyRequest(
                    f"root finding failed for {describe} of {family!r}: {exc}",
                    family=family,
                    efficiency=efficiency,
                    params=params,
                ) from exc
        prev_x, prev_f = float(x), fx

    raise UnsupportedEfficiencyRequest(
        f"no tuning constant of {family!r} attains {describe}"
        + (f" with parameters {params}" if params else ""),
        family=family,
        efficiency=efficiency,
        params=params,
    )


def _check_efficiency(
    family: str, efficiency: float, params: tuple[float, ...] | None
) -> None:
    if not MIN_EFFICIENCY <= efficiency < MAX_EFFICIENCY:
        raise UnsupportedEfficiencyRequest(
            f"efficiency must lie in [{MIN_EFFICIENCY}, {MAX_EFFICIENCY}), "
            f"got {efficiency}",
            family=family,
            efficiency=efficiency,
            params=params,
        )


def _table_node(efficiency: float, k: float) -> tuple[int, int] | None:
    i = int(np.argmin(np.abs(HYPERBOLIC_EFFICIENCY_GRID - efficiency)))
    j = int(np.argmin(np.abs(HYPERBOLIC_K_GRID - k)))
    if (
        abs(HYPERBOLIC_EFFICIENCY_GRID[i] - efficiency) < TABLE_TOLERANCE
        and abs(HYPERBOLIC_K_GRID[j] - k) < TABLE_TOLERANCE
    ):
        return i, j
    return None


@functools.lru_cache(maxsize=None)
def _hyperbolic_table_entry(i: int, j: int) -> tuple[float, ...]:
    """Tuning vector ``(c, k, A, B, d)`` at a table node, solved once."""
    efficiency = float(HYPERBOLIC_EFFICIENCY_GRID[i])
    k = float(HYPERBOLIC_K_GRID[j])
    c = _solve_location_constant("hyperbolic", efficiency, (k,))
    return (c, k, *hyperbolic_constants(c, k))


def _solve_location_constant(
    family: str, efficiency: float, params: tuple[float, ...] | None
) -> float:
    build = _norm_builder(family, params)
    return _solve_on_grid(
        lambda c: location_efficiency(build(c)) - efficiency,
        _SEARCH_GRIDS[family],
        f"location efficiency {efficiency}",
        family,
        efficiency,
        params,
    )


@functools.lru_cache(maxsize=256)
def _calibrate(
    family: str,
    efficiency: float,
    shape: bool,
    params: tuple[float, ...] | None,
) -> Calibration:
    source: CalibrationSource = "solver"

    if family == "mdpd" and not shape:
        # Invert ((1 + 2a) / (1 + a)^2)^(3/2) = eff exactly.
        e = efficiency ** (2 / 3)
        alpha = (1 - e + np.sqrt(1 - e)) / e
        tuning = np.array([alpha])
        source = "closed_form"
    elif family == "hyperbolic" and not shape and (
        node := _table_node(efficiency, params[0] if params else 4.5)
    ):
        tuning = np.array(_hyperbolic_table_entry(*node))
        source = "table"
    else:
        build = _norm_builder(family, params)
        c = _solve_on_grid(
            lambda c: asymptotic_efficiency(build(c), shape) - efficiency,
            _SEARCH_GRIDS[family],
            f"{'shape' if shape else 'location'} efficiency {efficiency}",
            family,
            efficiency,
            params,
        )
        tuning = build(c).tuning

    tuning.setflags(write=False)
    return Calibration(
        family=family,
        efficiency=efficiency,
        shape=shape,
        params=params,
        tuning=tuning,
        source=source,
    )


def calibrate_efficiency(
    family: str,
    efficiency: float,
    shape: bool = False,
    params: float | tuple[float, ...] | None = None,
) -> Calibration:
    """Find the tuning constants giving a target asymptotic efficiency.

    Parameters
    ----------
    family : str
        Rho/psi family tag.
    efficiency : float
        Target efficiency in [0.5, 0.999).
    shape : bool
        If True the efficiency refers to shape, otherwise to location.
    params : float | tuple[float, ...] | None
        Family extras: ``k`` for "hyperbolic" (default 4.5), ``(a, b, r)``
        for "hampel" (default (2, 4, 8)).

    Returns
    -------
    Calibration
        Tuning vector and its provenance. Identical requests return the
        same (cached) object.

    Raises
    ------
    UnsupportedFamily
        If the family tag is unknown.
    UnsupportedEfficiencyRequest
        If the efficiency is out of range or cannot be attained.

    Examples
    --------
    >>> from mmreg.calibration import calibrate_efficiency
    >>> round(calibrate_efficiency("bisquare", 0.95).c, 4)
    4.6851
    """
    resolved = resolve_family_params(family, params)
    efficiency = float(efficiency)
    _check_efficiency(family, efficiency, resolved)
    return _calibrate(family, efficiency, bool(shape), resolved)


def calibrate_breakdown(
    family: str,
    bdp: float,
    params: float | tuple[float, ...] | None = None,
) -> BreakdownCalibration:
    """Find the tuning constants giving a target breakdown point.

    The constant solves ``E[rho_c(X)] / sup(rho_c) = bdp`` for
    ``X ~ N(0, 1)``.

    Parameters
    ----------
    family : str
        Rho/psi family tag.
    bdp : float
        Breakdown point in (0, 0.5].
    params : float | tuple[float, ...] | None
        Family extras, as for :func:`calibrate_efficiency`.

    Returns
    -------
    BreakdownCalibration
        Tuning vector and M-scale consistency constant.
    """
    resolved = resolve_family_params(family, params)
    if not 0 < bdp <= 0.5:
        raise ValueError(f"breakdown point must lie in (0, 0.5], got {bdp}")
    return _calibrate_breakdown(family, float(bdp), resolved)


@functools.lru_cache(maxsize=64)
def _calibrate_breakdown(
    family: str, bdp: float, params: tuple[float, ...] | None
) -> BreakdownCalibration:
    build = _norm_builder(family, params)

    def objective(c: float) -> float:
        norm = build(c)
        return normal_expectation(norm.rho, norm.breakpoints()) / norm.rho_sup - bdp

    c = _solve_on_grid(
        objective, _SEARCH_GRIDS[family], f"breakdown point {bdp}", family, None, params
    )
    norm = build(c)
    tuning = norm.tuning
    tuning.setflags(write=False)
    return BreakdownCalibration(
        family=family,
        bdp=bdp,
        params=params,
        tuning=tuning,
        kc=bdp * norm.rho_sup,
    )


def hyperbolic_table(
    efficiencies: NDArray[np.floating[Any]] | None = None,
    ks: NDArray[np.floating[Any]] | None = None,
) -> pd.DataFrame:
    """Tabulate hyperbolic constants over efficiency and ``k``.

    Parameters
    ----------
    efficiencies : array-like, optional
        Location efficiencies. Default is the lookup-table grid 0.50-0.99.
    ks : array-like, optional
        Values of ``k``. Default ``[4, 4.5, 5]``.

    Returns
    -------
    pd.DataFrame
        Columns ``efficiency, k, c, A, B, d``. Combinations that cannot be
        attained are omitted.
    """
    effs = HYPERBOLIC_EFFICIENCY_GRID if efficiencies is None else np.asarray(efficiencies)
    k_values = HYPERBOLIC_K_GRID if ks is None else np.asarray(ks)

    rows = []
    for k in k_values:
        for eff in effs:
            try:
                cal = calibrate_efficiency("hyperbolic", float(eff), params=float(k))
            except UnsupportedEfficiencyRequest:
                continue
            c, _, A, B, d = cal.tuning
            rows.append(
                {"efficiency": float(eff), "k": float(k), "c": c, "A": A, "B": B, "d": d}
            )
    return pd.DataFrame(rows, columns=["efficiency", "k", "c", "A", "B", "d"])
