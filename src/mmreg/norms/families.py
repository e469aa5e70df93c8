"""The six rho/psi families available to the MM estimators.

All functions operate on standardized residuals and are vectorized. Weights
are even, non-increasing in ``|z|``, equal to one at zero and bounded in
[0, 1].

References
----------
Hampel, F.R., Rousseeuw, P.J. and Ronchetti, E. (1981). The change-of-variance
    curve and optimal redescending M-estimators. *JASA*, 76, 643-648.
Maronna, R.A., Martin, R.D. and Yohai, V.J. (2006). *Robust Statistics:
    Theory and Methods*. Wiley.
Riani, M., Cerioli, A., Atkinson, A.C. and Perrotta, D. (2014). Monitoring
    robust regression. *Electronic Journal of Statistics*, 8, 646-677.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from mmreg.norms.base import RhoPsiNorm, _as_float_array

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray


def _log_cosh(x: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """Overflow-safe log(cosh(x))."""
    return np.logaddexp(x, -x) - np.log(2.0)


class Bisquare(RhoPsiNorm):
    """Tukey's biweight (bisquare) family.

    Parameters
    ----------
    c : float
        Tuning constant (rejection point). Default 4.685061 gives 95%
        location efficiency.

    Notes
    -----
    ``psi(z) = z (1 - (z/c)^2)^2`` for ``|z| <= c`` and 0 otherwise.
    """

    family = "bisquare"
    continuous = 2

    def __init__(self, c: float = 4.685061) -> None:
        if not c > 0:
            raise ValueError(f"bisquare tuning constant must be positive, got {c}")
        self.c = float(c)

    @property
    def tuning(self) -> NDArray[np.floating[Any]]:
        """Tuning vector ``[c]``."""
        return np.array([self.c])

    @property
    def rho_sup(self) -> float:
        """Supremum of rho, c^2 / 6."""
        return self.c**2 / 6

    def breakpoints(self) -> Sequence[float]:
        """Rejection point."""
        return (self.c,)

    def rho(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Bisquare rho function."""
        z = _as_float_array(z)
        t2 = (z / self.c) ** 2
        inside = t2 <= 1
        return np.where(inside, self.rho_sup * (1 - (1 - t2) ** 3), self.rho_sup)

    def psi(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Bisquare psi function."""
        z = _as_float_array(z)
        t2 = (z / self.c) ** 2
        return np.where(t2 <= 1, z * (1 - t2) ** 2, 0.0)

    def psi_deriv(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Derivative of the bisquare psi function."""
        z = _as_float_array(z)
        t2 = (z / self.c) ** 2
        return np.where(t2 <= 1, (1 - t2) * (1 - 5 * t2), 0.0)

    def weights(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Bisquare weights ``(1 - (z/c)^2)^2``."""
        z = _as_float_array(z)
        t2 = (z / self.c) ** 2
        return np.where(t2 <= 1, (1 - t2) ** 2, 0.0)


class Optimal(RhoPsiNorm):
    """Yohai-Zamar optimal family (polynomial approximation).

    Parameters
    ----------
    c : float
        Tuning constant. psi is linear on ``|z| <= 2c`` and zero beyond
        ``3c``. Default 1.060158 gives 95% location efficiency.

    Notes
    -----
    On ``2c < |z| <= 3c``,
    ``psi(z) = c (-1.944 t + 1.728 t^3 - 0.312 t^5 + 0.016 t^7)``
    with ``t = z / c`` (Maronna, Martin and Yohai, 2006, section 5.9.1).
    """

    family = "optimal"
    continuous = 2

    _G = (-1.944, 1.728, -0.312, 0.016)

    def __init__(self, c: float = 1.060158) -> None:
        if not c > 0:
            raise ValueError(f"optimal tuning constant must be positive, got {c}")
        self.c = float(c)

    @property
    def tuning(self) -> NDArray[np.floating[Any]]:
        """Tuning vector ``[c]``."""
        return np.array([self.c])

    @property
    def rho_sup(self) -> float:
        """Supremum of rho, 3.25 c^2."""
        return 3.25 * self.c**2

    def breakpoints(self) -> Sequence[float]:
        """End of the linear part and rejection point."""
        return (2 * self.c, 3 * self.c)

    def _poly_weight(self, t2: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        g0, g1, g2, g3 = self._G
        return g0 + g1 * t2 + g2 * t2**2 + g3 * t2**3

    def rho(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Optimal rho function."""
        z = _as_float_array(z)
        t2 = (z / self.c) ** 2
        middle = (
            1.792 - 0.972 * t2 + 0.432 * t2**2 - 0.052 * t2**3 + 0.002 * t2**4
        )
        out = np.where(t2 <= 4, t2 / 2, np.where(t2 <= 9, middle, 3.25))
        return self.c**2 * out

    def psi(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Optimal psi function."""
        z = _as_float_array(z)
        return z * self.weights(z)

    def psi_deriv(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Derivative of the optimal psi function."""
        z = _as_float_array(z)
        t2 = (z / self.c) ** 2
        middle = -1.944 + 5.184 * t2 - 1.56 * t2**2 + 0.112 * t2**3
        return np.where(t2 <= 4, 1.0, np.where(t2 <= 9, middle, 0.0))

    def weights(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Optimal weights."""
        z = _as_float_array(z)
        t2 = (z / self.c) ** 2
        return np.where(t2 <= 4, 1.0, np.where(t2 <= 9, self._poly_weight(t2), 0.0))


class Hyperbolic(RhoPsiNorm):
    """Hyperbolic tangent family of Hampel, Rousseeuw and Ronchetti (1981).

    Parameters
    ----------
    c : float
        Rejection point.
    k : float
        Supremum of the change-of-variance curve (k > 1).
    A : float
        Variance constant, ``E[psi^2]`` at the standard normal.
    B : float
        ``E[psi']`` at the standard normal.
    d : float
        End of the linear part, ``0 < d < c``.

    Notes
    -----
    psi is linear on ``|z| <= d``,
    ``sqrt(A (k-1)) tanh(0.5 sqrt((k-1) B^2 / A) (c - |z|)) sign(z)`` on
    ``d < |z| <= c`` and zero beyond. The constants ``A``, ``B`` and ``d``
    are tied to ``c`` and ``k``; use :meth:`from_rejection_point` to solve
    for them.
    """

    family = "hyperbolic"

    def __init__(self, c: float, k: float, A: float, B: float, d: float) -> None:
        if not (c > 0 and k > 1 and A > 0 and B > 0 and 0 < d < c):
            raise ValueError(
                "hyperbolic constants must satisfy c > 0, k > 1, A > 0, B > 0 "
                f"and 0 < d < c, got c={c}, k={k}, A={A}, B={B}, d={d}"
            )
        self.c = float(c)
        self.k = float(k)
        self.A = float(A)
        self.B = float(B)
        self.d = float(d)
        self._q = np.sqrt(self.A * (self.k - 1))
        self._s = self.B * np.sqrt((self.k - 1) / self.A)

    @classmethod
    def from_rejection_point(cls, c: float, k: float = 4.5) -> Hyperbolic:
        """Build the norm from its rejection point and sup CVC.

        Parameters
        ----------
        c : float
            Rejection point.
        k : float
            Supremum of the change-of-variance curve. Default 4.5.

        Returns
        -------
        Hyperbolic
            Norm with the constants ``A``, ``B`` and ``d`` solved.
        """
        from mmreg.calibration.hyperbolic import hyperbolic_constants

        A, B, d = hyperbolic_constants(c, k)
        return cls(c, k, A, B, d)

    @property
    def tuning(self) -> NDArray[np.floating[Any]]:
        """Tuning vector ``[c, k, A, B, d]``."""
        return np.array([self.c, self.k, self.A, self.B, self.d])

    @property
    def rho_sup(self) -> float:
        """Supremum of rho."""
        half = 0.5 * self._s * (self.c - self.d)
        return float(
            self.d**2 / 2 + 2 * self._q / self._s * _log_cosh(np.asarray(half))
        )

    def breakpoints(self) -> Sequence[float]:
        """End of the linear part and rejection point."""
        return (self.d, self.c)

    def _arg(self, a: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
        return 0.5 * self._s * (self.c - np.minimum(a, self.c))

    def rho(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Hyperbolic rho function."""
        a = np.abs(_as_float_array(z))
        head = self.d**2 / 2
        half_d = 0.5 * self._s * (self.c - self.d)
        middle = head + 2 * self._q / self._s * (
            _log_cosh(np.asarray(half_d)) - _log_cosh(self._arg(a))
        )
        return np.where(a <= self.d, a**2 / 2, np.where(a <= self.c, middle, self.rho_sup))

    def psi(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Hyperbolic psi function."""
        z = _as_float_array(z)
        a = np.abs(z)
        middle = np.sign(z) * self._q * np.tanh(self._arg(a))
        return np.where(a <= self.d, z, np.where(a <= self.c, middle, 0.0))

    def psi_deriv(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Derivative of the hyperbolic psi function."""
        a = np.abs(_as_float_array(z))
        middle = -0.5 * self._q * self._s / np.cosh(self._arg(a)) ** 2
        return np.where(a <= self.d, 1.0, np.where(a <= self.c, middle, 0.0))

    def weights(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Hyperbolic weights."""
        a = np.abs(_as_float_array(z))
        with np.errstate(divide="ignore", invalid="ignore"):
            middle = self._q * np.tanh(self._arg(a)) / a
        return np.where(a <= self.d, 1.0, np.where(a <= self.c, middle, 0.0))


class Hampel(RhoPsiNorm):
    """Hampel's three-part redescending family.

    Parameters
    ----------
    c : float
        Tuning constant scaling the breakpoints. Default 1.
    a, b, r : float
        Breakpoints of the standardized psi function, ``0 < a <= b < r``.
        Defaults 2, 4 and 8.

    Notes
    -----
    With ``t = z / c`` the standardized psi is ``t`` on ``|t| <= a``,
    ``a sign(t)`` on ``a < |t| <= b``, ``a (r - |t|) / (r - b) sign(t)`` on
    ``b < |t| <= r`` and zero beyond; ``psi(z) = c psi_H(t)``.
    """

    family = "hampel"

    def __init__(
        self, c: float = 1.0, a: float = 2.0, b: float = 4.0, r: float = 8.0
    ) -> None:
        if not (c > 0 and 0 < a <= b < r):
            raise ValueError(
                "hampel constants must satisfy c > 0 and 0 < a <= b < r, "
                f"got c={c}, a={a}, b={b}, r={r}"
            )
        self.c = float(c)
        self.a = float(a)
        self.b = float(b)
        self.r = float(r)

    @property
    def tuning(self) -> NDArray[np.floating[Any]]:
        """Tuning vector ``[c, a, b, r]``."""
        return np.array([self.c, self.a, self.b, self.r])

    @property
    def rho_sup(self) -> float:
        """Supremum of rho."""
        a, b, r = self.a, self.b, self.r
        return self.c**2 * (a * b - a**2 / 2 + a * (r - b) / 2)

    def breakpoints(self) -> Sequence[float]:
        """The three scaled breakpoints."""
        return (self.a * self.c, self.b * self.c, self.r * self.c)

    def rho(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Hampel rho function."""
        t = np.abs(_as_float_array(z)) / self.c
        a, b, r = self.a, self.b, self.r
        descent = a * b - a**2 / 2 + a / (r - b) * (r * (t - b) - (t**2 - b**2) / 2)
        out = np.where(
            t <= a,
            t**2 / 2,
            np.where(
                t <= b,
                a * t - a**2 / 2,
                np.where(t <= r, descent, a * b - a**2 / 2 + a * (r - b) / 2),
            ),
        )
        return self.c**2 * out

    def psi(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Hampel psi function."""
        z = _as_float_array(z)
        return z * self.weights(z)

    def psi_deriv(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Derivative of the Hampel psi function."""
        t = np.abs(_as_float_array(z)) / self.c
        a, b, r = self.a, self.b, self.r
        return np.where(
            t <= a, 1.0, np.where(t <= b, 0.0, np.where(t <= r, -a / (r - b), 0.0))
        )

    def weights(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Hampel weights."""
        t = np.abs(_as_float_array(z)) / self.c
        a, b, r = self.a, self.b, self.r
        with np.errstate(divide="ignore", invalid="ignore"):
            flat = a / t
            descent = a * (r - t) / ((r - b) * t)
        return np.where(
            t <= a, 1.0, np.where(t <= b, flat, np.where(t <= r, descent, 0.0))
        )


class MDPD(RhoPsiNorm):
    """Minimum density power divergence family.

    Parameters
    ----------
    alpha : float
        Power divergence parameter (> 0). Default 0.2245 gives 95%
        location efficiency.

    Notes
    -----
    ``psi(z) = z exp(-alpha z^2 / 2)``; the weights are strictly positive
    and psi only tends to zero, so the family is soft redescending.
    """

    family = "mdpd"
    redescending = "soft"
    continuous = 2

    def __init__(self, alpha: float = 0.2245) -> None:
        if not alpha > 0:
            raise ValueError(f"mdpd alpha must be positive, got {alpha}")
        self.alpha = float(alpha)

    @property
    def c(self) -> float:
        """Tuning constant (alias of alpha)."""
        return self.alpha

    @property
    def tuning(self) -> NDArray[np.floating[Any]]:
        """Tuning vector ``[alpha]``."""
        return np.array([self.alpha])

    @property
    def rho_sup(self) -> float:
        """Supremum of rho, 1 / alpha."""
        return 1 / self.alpha

    def breakpoints(self) -> Sequence[float]:
        """No breakpoints: the family is smooth."""
        return ()

    def rho(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """MDPD rho function."""
        z = _as_float_array(z)
        return (1 - np.exp(-self.alpha * z**2 / 2)) / self.alpha

    def psi(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """MDPD psi function."""
        z = _as_float_array(z)
        return z * np.exp(-self.alpha * z**2 / 2)

    def psi_deriv(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Derivative of the MDPD psi function."""
        z = _as_float_array(z)
        return (1 - self.alpha * z**2) * np.exp(-self.alpha * z**2 / 2)

    def weights(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """MDPD weights ``exp(-alpha z^2 / 2)``."""
        z = _as_float_array(z)
        return np.exp(-self.alpha * z**2 / 2)


class AndrewSine(RhoPsiNorm):
    """Andrews' sine family.

    Parameters
    ----------
    c : float
        Tuning constant. psi vanishes beyond ``pi c``. Default 1.339 gives
        95% location efficiency.
    """

    family = "AS"
    continuous = 2

    def __init__(self, c: float = 1.339) -> None:
        if not c > 0:
            raise ValueError(f"Andrews' sine tuning constant must be positive, got {c}")
        self.c = float(c)

    @property
    def tuning(self) -> NDArray[np.floating[Any]]:
        """Tuning vector ``[c]``."""
        return np.array([self.c])

    @property
    def rho_sup(self) -> float:
        """Supremum of rho, 2 c^2."""
        return 2 * self.c**2

    def breakpoints(self) -> Sequence[float]:
        """Rejection point pi c."""
        return (np.pi * self.c,)

    def rho(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Andrews' sine rho function."""
        t = _as_float_array(z) / self.c
        return np.where(
            np.abs(t) <= np.pi, self.c**2 * (1 - np.cos(t)), self.rho_sup
        )

    def psi(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Andrews' sine psi function."""
        t = _as_float_array(z) / self.c
        return np.where(np.abs(t) <= np.pi, self.c * np.sin(t), 0.0)

    def psi_deriv(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Derivative of the Andrews' sine psi function."""
        t = _as_float_array(z) / self.c
        return np.where(np.abs(t) <= np.pi, np.cos(t), 0.0)

    def weights(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Andrews' sine weights ``sin(z/c) / (z/c)``."""
        t = _as_float_array(z) / self.c
        return np.where(np.abs(t) <= np.pi, np.sinc(t / np.pi), 0.0)
