"""Constants of the hyperbolic tangent rho/psi family.

For a rejection point ``c`` and a sup change-of-variance ``k`` the tanh
estimator has three further constants tied together by

* continuity at ``d``:  ``d = sqrt(A (k-1)) tanh(0.5 sqrt((k-1) B^2 / A) (c - d))``
* ``A = E[psi^2]``
* ``B = E[psi']``

under the standard normal. They are solved jointly with
:func:`scipy.optimize.root`, using a parametrisation that keeps ``A`` and
``B`` positive and ``d`` inside ``(0, c)``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
from scipy import integrate, optimize, special, stats

from mmreg.calibration.integrals import normal_pdf
from mmreg.exceptions import UnsupportedEfficiencyRequest

if TYPE_CHECKING:
    from numpy.typing import NDArray

_RESIDUAL_TOL = 1e-9


def _unpack(x: NDArray[np.floating[Any]], c: float) -> tuple[float, float, float]:
    A = float(np.exp(x[0]))
    B = float(np.exp(x[1]))
    d = float(c * special.expit(x[2]))
    return A, B, d


def _equations(x: NDArray[np.floating[Any]], c: float, k: float) -> list[float]:
    A, B, d = _unpack(x, c)
    q = np.sqrt(A * (k - 1))
    s = B * np.sqrt((k - 1) / A)

    Phi_d = float(stats.norm.cdf(d))
    head_A = Phi_d - 0.5 - d * normal_pdf(d)
    head_B = Phi_d - 0.5

    tail_A, _ = integrate.quad(
        lambda t: (q * np.tanh(0.5 * s * (c - t))) ** 2 * normal_pdf(t), d, c
    )
    tail_B, _ = integrate.quad(
        lambda t: -0.5 * q * s / np.cosh(0.5 * s * (c - t)) ** 2 * normal_pdf(t), d, c
    )

    return [
        2 * (head_A + tail_A) - A,
        2 * (head_B + tail_B) - B,
        q * np.tanh(0.5 * s * (c - d)) - d,
    ]


def hyperbolic_constants(c: float, k: float = 4.5) -> tuple[float, float, float]:
    """Solve the constants ``(A, B, d)`` of the hyperbolic family.

    Parameters
    ----------
    c : float
        Rejection point.
    k : float
        Supremum of the change-of-variance curve, ``k > 1``. Default 4.5.

    Returns
    -------
    tuple[float, float, float]
        ``A`` (= E psi^2), ``B`` (= E psi') and ``d`` (end of the linear part).

    Raises
    ------
    UnsupportedEfficiencyRequest
        If no solution is found for this ``(c, k)`` pair.
    """
    if not (c > 0 and k > 1):
        raise ValueError(f"need c > 0 and k > 1, got c={c}, k={k}")

    d0 = min(1.5, 0.5 * c)
    x0 = np.array([np.log(0.8), np.log(0.85), special.logit(d0 / c)])

    sol = optimize.root(_equations, x0, args=(c, k), method="hybr", tol=1e-12)
    residual = np.max(np.abs(sol.fun)) if sol.fun is not None else np.inf
    if not sol.success and residual > _RESIDUAL_TOL:
        raise UnsupportedEfficiencyRequest(
            f"hyperbolic constants could not be solved for c={c:.6g}, k={k:.6g}: "
            f"{sol.message}",
            family="hyperbolic",
            params=(k,),
        )
    if residual > _RESIDUAL_TOL:
        raise UnsupportedEfficiencyRequest(
            f"hyperbolic constants for c={c:.6g}, k={k:.6g} did not reach "
            f"tolerance (max residual {residual:.3g})",
            family="hyperbolic",
            params=(k,),
        )

    return _unpack(sol.x, c)
