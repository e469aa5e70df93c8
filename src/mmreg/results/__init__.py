"""Result containers."""

from mmreg.results.base import RobustRegressionResults, RobustResultsBase

__all__ = [
    "RobustRegressionResults",
    "RobustResultsBase",
]
