"""Rho/psi families for MM estimation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from mmreg.config import RHO_FAMILIES
from mmreg.exceptions import UnsupportedFamily
from mmreg.norms.base import RhoPsiNorm
from mmreg.norms.families import (
    MDPD,
    AndrewSine,
    Bisquare,
    Hampel,
    Hyperbolic,
    Optimal,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

NORM_CLASSES: dict[str, type[RhoPsiNorm]] = {
    "bisquare": Bisquare,
    "optimal": Optimal,
    "hyperbolic": Hyperbolic,
    "hampel": Hampel,
    "mdpd": MDPD,
    "AS": AndrewSine,
}

_TUNING_SIZES = {
    "bisquare": 1,
    "optimal": 1,
    "hyperbolic": 5,
    "hampel": 4,
    "mdpd": 1,
    "AS": 1,
}


def make_norm(family: str, tuning: ArrayLike) -> RhoPsiNorm:
    """Build a rho/psi norm from its family tag and tuning vector.

    Parameters
    ----------
    family : str
        One of "bisquare", "optimal", "hyperbolic", "hampel", "mdpd", "AS".
    tuning : ArrayLike
        Tuning payload: ``[c]`` for bisquare, optimal, mdpd (alpha) and AS;
        ``[c, k, A, B, d]`` for hyperbolic; ``[c, a, b, r]`` for hampel.

    Returns
    -------
    RhoPsiNorm
        The norm instance.

    Raises
    ------
    UnsupportedFamily
        If the family tag is unknown.
    ValueError
        If the tuning vector has the wrong length.
    """
    if family not in NORM_CLASSES:
        raise UnsupportedFamily(family, RHO_FAMILIES)

    values: list[Any] = np.atleast_1d(np.asarray(tuning, dtype=np.float64)).tolist()
    expected = _TUNING_SIZES[family]
    if len(values) != expected:
        raise ValueError(
            f"{family} norm needs {expected} tuning values, got {len(values)}"
        )
    return NORM_CLASSES[family](*values)


def family_names() -> tuple[str, ...]:
    """Return the supported family tags."""
    return RHO_FAMILIES


__all__ = [
    "MDPD",
    "NORM_CLASSES",
    "AndrewSine",
    "Bisquare",
    "Hampel",
    "Hyperbolic",
    "Optimal",
    "RhoPsiNorm",
    "family_names",
    "make_norm",
]
