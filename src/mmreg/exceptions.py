"""Exceptions and warnings raised by the mmreg package.

Errors derive from the built-in exception a caller would already catch
(``ValueError`` for bad requests, ``LinAlgError`` for linear-algebra
failures) so that generic handlers keep working.
"""

from __future__ import annotations

import numpy as np
from statsmodels.tools.sm_exceptions import ConvergenceWarning


class UnsupportedFamily(ValueError):
    """Unknown rho/psi family tag."""

    def __init__(self, family: object, supported: tuple[str, ...]) -> None:
        self.family = family
        self.supported = supported
        super().__init__(
            f"Specified rho function {family!r} is not supported: possible "
            f"values are {', '.join(repr(s) for s in supported)}"
        )


class UnsupportedEfficiencyRequest(ValueError):
    """Efficiency, shape and parameter combination cannot be calibrated."""

    def __init__(
        self,
        message: str,
        family: str | None = None,
        efficiency: float | None = None,
        params: object = None,
    ) -> None:
        self.family = family
        self.efficiency = efficiency
        self.params = params
        super().__init__(message)


class SingularWeightedDesign(np.linalg.LinAlgError):
    """The weighted least squares step has a rank-deficient design.

    Attributes
    ----------
    iteration : int
        Refinement iteration at which the solve failed (0-based).
    rank : int
        Numerical rank of the weighted design.
    n_params : int
        Number of columns of the design.
    """

    def __init__(self, iteration: int, rank: int, n_params: int) -> None:
        self.iteration = iteration
        self.rank = rank
        self.n_params = n_params
        super().__init__(
            f"Weighted design matrix is rank deficient at iteration {iteration}: "
            f"rank {rank} < {n_params} columns"
        )


class NegativeOrZeroVariance(ArithmeticError):
    """A scale or variance that must be positive is not."""


class SweepError(RuntimeError):
    """An efficiency sweep was aborted because one grid value failed.

    Attributes
    ----------
    index : int
        Position of the failing value in the efficiency grid.
    efficiency : float
        The failing efficiency value.
    """

    def __init__(self, index: int, efficiency: float, cause: BaseException) -> None:
        self.index = index
        self.efficiency = efficiency
        super().__init__(
            f"MM fit failed for efficiency {efficiency:.4g} (grid position "
            f"{index}): {cause}"
        )


class NonConvergenceWarning(ConvergenceWarning):
    """Refinement stopped at the iteration cap before reaching tolerance."""


class SweepFailureWarning(UserWarning):
    """A grid value of an efficiency sweep failed and was skipped."""
