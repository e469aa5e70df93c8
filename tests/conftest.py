"""Pytest configuration and fixtures for mmreg tests."""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest
from numpy.typing import NDArray

import mmreg as mm


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def regression_data(
    rng: np.random.Generator,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """Simple regression data: y = 1 + 2*x + e.

    Returns
    -------
    tuple[NDArray[np.floating], NDArray[np.floating]]
        y and X arrays (X includes the constant).
    """
    n = 100
    x = rng.standard_normal(n)
    e = rng.standard_normal(n)
    y = 1 + 2 * x + e
    X = np.column_stack([np.ones(n), x])
    return y, X


@pytest.fixture
def contaminated_data(
    rng: np.random.Generator,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """Standard normal y and X (n=200, 3 regressors) with y[:10] += 7.

    Returns
    -------
    tuple[NDArray[np.floating], NDArray[np.floating]]
        y and X arrays; X includes the constant as first column.
    """
    n = 200
    X = np.column_stack([np.ones(n), rng.standard_normal((n, 3))])
    y = rng.standard_normal(n)
    y[:10] += 7
    return y, X


@pytest.fixture
def clean_start(
    contaminated_data: tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]],
) -> mm.InitialEstimate:
    """OLS fit on the 190 uncontaminated rows of ``contaminated_data``."""
    y, X = contaminated_data
    return mm.ols_initial_estimate(y[10:], X[10:])


@pytest.fixture
def leverage_data(
    rng: np.random.Generator,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """y = 1 + 2*x1 - x2 + e with 20 gross outliers (y += 20) in front.

    Returns
    -------
    tuple[NDArray[np.floating], NDArray[np.floating]]
        y and the two regressors (no constant).
    """
    n = 150
    X = rng.standard_normal((n, 2))
    y = 1 + X @ np.array([2.0, -1.0]) + rng.standard_normal(n)
    y[:20] += 20
    return y, X
