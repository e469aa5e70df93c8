"""Base class for the rho/psi families used by the MM estimators.

Every family is a :class:`statsmodels.robust.norms.RobustNorm`, so the
objects can also be handed to statsmodels' own robust machinery. On top of
the statsmodels interface (``rho``, ``psi``, ``psi_deriv``, ``weights``)
each family exposes its full tuning payload, the supremum of its rho
function and the abscissae where the functions change piece, which the
calibration routines use to split their numerical integrals.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np
from statsmodels.robust.norms import RobustNorm

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray


def _as_float_array(z: ArrayLike) -> NDArray[np.floating[Any]]:
    """Convert input residuals to a float array (0-d for scalars)."""
    return np.asarray(z, dtype=np.float64)


class RhoPsiNorm(RobustNorm, ABC):
    """Abstract rho/psi family with a tuning-constant payload.

    Subclasses implement the four statsmodels functions for standardized
    residuals ``z``. ``weights(z)`` is ``psi(z) / z`` with the value 1 at
    ``z = 0``.

    Attributes
    ----------
    family : str
        Family tag ("bisquare", "optimal", "hyperbolic", "hampel", "mdpd",
        "AS").
    redescending : str
        "hard" if psi is exactly zero beyond a rejection point, "soft" if
        psi only tends to zero.
    """

    family: ClassVar[str]
    redescending: ClassVar[str] = "hard"
    continuous: ClassVar[int] = 1

    @property
    @abstractmethod
    def tuning(self) -> NDArray[np.floating[Any]]:
        """Full tuning vector, first entry is the main tuning constant."""
        ...

    @property
    @abstractmethod
    def rho_sup(self) -> float:
        """Supremum of the rho function."""
        ...

    @abstractmethod
    def breakpoints(self) -> Sequence[float]:
        """Positive abscissae where the piecewise definition changes."""
        ...

    @abstractmethod
    def rho(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Rho (loss) function."""
        ...

    @abstractmethod
    def psi(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Psi function, the derivative of rho."""
        ...

    @abstractmethod
    def psi_deriv(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Derivative of psi."""
        ...

    @abstractmethod
    def weights(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """IRLS weight function psi(z) / z."""
        ...

    def __call__(self, z: ArrayLike) -> NDArray[np.floating[Any]]:
        """Return rho(z), matching the statsmodels convention."""
        return self.rho(z)

    def __eq__(self, other: object) -> bool:
        """Norms are equal when family and tuning vector coincide."""
        if not isinstance(other, RhoPsiNorm):
            return NotImplemented
        return self.family == other.family and np.array_equal(
            self.tuning, other.tuning
        )

    def __hash__(self) -> int:
        """Hash on family and tuning vector."""
        return hash((self.family, tuple(self.tuning.tolist())))

    def __repr__(self) -> str:
        """Return string representation of the norm."""
        values = ", ".join(f"{v:.6g}" for v in self.tuning)
        return f"{self.__class__.__name__}({values})"
