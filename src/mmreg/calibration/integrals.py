"""Expectations of even functions under the standard normal distribution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
from scipy import integrate

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

_SQRT_2PI = np.sqrt(2 * np.pi)

# Beyond this abscissa the normal density is below 1e-30.
_UPPER = 12.0

# Fixed splits so that wide smooth segments are not integrated in one piece.
_DEFAULT_SPLITS = (1.0, 3.0, 6.0)


def normal_pdf(x: float) -> float:
    """Standard normal density for a scalar."""
    return float(np.exp(-0.5 * x * x) / _SQRT_2PI)


def normal_expectation(
    func: Callable[[Any], Any],
    breakpoints: Iterable[float] = (),
) -> float:
    """Compute ``E[f(X)]`` for an even function ``f`` and ``X ~ N(0, 1)``.

    The integral ``2 * int_0^inf f(x) phi(x) dx`` is split at the supplied
    breakpoints (where ``f`` changes piece) and evaluated with adaptive
    quadrature.

    Parameters
    ----------
    func : Callable
        Even function of a scalar; may return a 0-d array.
    breakpoints : Iterable[float]
        Positive abscissae where ``f`` is not smooth.

    Returns
    -------
    float
        The expectation.
    """
    edges = sorted(
        {0.0, _UPPER, *_DEFAULT_SPLITS, *(float(b) for b in breakpoints if b > 0)}
    )

    def integrand(x: float) -> float:
        return float(func(x)) * normal_pdf(x)

    total = 0.0
    for lo, hi in zip(edges[:-1], edges[1:]):
        value, _ = integrate.quad(integrand, lo, hi, limit=200, epsabs=1e-13, epsrel=1e-11)
        total += value
    return 2.0 * total
