"""Option set shared by the MM estimation components."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Literal

from mmreg.exceptions import UnsupportedEfficiencyRequest, UnsupportedFamily

RhoFamily = Literal["bisquare", "optimal", "hyperbolic", "hampel", "mdpd", "AS"]

RHO_FAMILIES: tuple[str, ...] = (
    "bisquare",
    "optimal",
    "hyperbolic",
    "hampel",
    "mdpd",
    "AS",
)

#: Family-specific extra parameters used when none are supplied.
DEFAULT_FAMILY_PARAMS: dict[str, tuple[float, ...] | None] = {
    "bisquare": None,
    "optimal": None,
    "hyperbolic": (4.5,),
    "hampel": (2.0, 4.0, 8.0),
    "mdpd": None,
    "AS": None,
}


def resolve_family_params(
    family: str, params: float | tuple[float, ...] | list[float] | None
) -> tuple[float, ...] | None:
    """Return the extra parameters of a family, filling in defaults.

    Parameters
    ----------
    family : str
        Family tag.
    params : float | tuple[float, ...] | None
        User supplied parameters. For ``"hyperbolic"`` only the first value
        (``k``) is used; ``"hampel"`` needs ``(a, b, c)``.

    Returns
    -------
    tuple[float, ...] | None
        Normalised parameters, or None for families without extras.

    Raises
    ------
    ValueError
        If the parameters are inconsistent with the family.
    """
    if family not in RHO_FAMILIES:
        raise UnsupportedFamily(family, RHO_FAMILIES)

    default = DEFAULT_FAMILY_PARAMS[family]
    if params is None or (not isinstance(params, (int, float)) and len(params) == 0):
        return default
    if default is None:
        raise ValueError(f"rho family {family!r} takes no extra parameters")

    values = (
        (float(params),)
        if isinstance(params, (int, float))
        else tuple(float(v) for v in params)
    )

    if family == "hyperbolic":
        k = values[0]
        if k <= 1:
            raise ValueError(f"hyperbolic k (sup CVC) must exceed 1, got {k}")
        return (k,)

    if len(values) != 3:
        raise ValueError(f"hampel needs three parameters (a, b, c), got {values}")
    a, b, c = values
    if not 0 < a <= b < c:
        raise ValueError(f"hampel parameters must satisfy 0 < a <= b < c, got {values}")
    return values


@dataclass(frozen=True, kw_only=True)
class MMOptions:
    """Options for MM refinement, calibration and outlier declaration.

    Parameters
    ----------
    rho_family : RhoFamily
        Rho/psi family used to weight the residuals. Default "bisquare".
    rho_family_params : tuple[float, ...] | None
        Extra family parameters: ``(k,)`` for "hyperbolic" (default 4.5),
        ``(a, b, c)`` for "hampel" (default (2, 4, 8)). None selects the
        family defaults.
    efficiency : float
        Nominal asymptotic efficiency, in [0.5, 0.999). Default 0.95.
    efficiency_refers_to_shape : bool
        If True, efficiency refers to shape rather than location.
    max_iterations : int
        Maximum number of refinement iterations. Default 100.
    tolerance : float
        Convergence tolerance on the largest absolute coefficient change.
        Default 1e-7.
    confidence_level : float
        Confidence level used to declare outliers. Default 0.975.
    """

    rho_family: RhoFamily = "bisquare"
    rho_family_params: tuple[float, ...] | None = None
    efficiency: float = 0.95
    efficiency_refers_to_shape: bool = False
    max_iterations: int = 100
    tolerance: float = 1e-7
    confidence_level: float = 0.975

    def __post_init__(self) -> None:
        """Validate and normalise the option values."""
        params = resolve_family_params(self.rho_family, self.rho_family_params)
        object.__setattr__(self, "rho_family_params", params)

        if not 0.5 <= self.efficiency < 0.999:
            raise UnsupportedEfficiencyRequest(
                f"efficiency must lie in [0.5, 0.999), got {self.efficiency}",
                family=self.rho_family,
                efficiency=self.efficiency,
                params=params,
            )
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 0:
            raise ValueError(
                f"max_iterations must be a non-negative integer, got {self.max_iterations}"
            )
        if not self.tolerance > 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if not 0 < self.confidence_level < 1:
            raise ValueError(
                f"confidence_level must lie in (0, 1), got {self.confidence_level}"
            )

    def replace(self, **changes: Any) -> MMOptions:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)
