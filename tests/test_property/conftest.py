"""Hypothesis strategies for property-based testing of mmreg.

This module provides reusable data generators for property tests using
the Hypothesis library.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from hypothesis import strategies as st
from numpy.typing import NDArray


@st.composite
def regression_data(
    draw: st.DrawFn,
    min_n: int = 30,
    max_n: int = 100,
    min_k: int = 1,
    max_k: int = 4,
    with_constant: bool = True,
    contamination: float = 0.0,
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """Generate regression data (y, X), optionally with shifted responses.

    Uses a seeded random generator to ensure data has variation.

    Parameters
    ----------
    draw : st.DrawFn
        Hypothesis draw function.
    min_n : int
        Minimum number of observations.
    max_n : int
        Maximum number of observations.
    min_k : int
        Minimum number of regressors (excluding constant).
    max_k : int
        Maximum number of regressors (excluding constant).
    with_constant : bool
        Whether to include a constant column in X.
    contamination : float
        Fraction of leading responses shifted by a large amount.

    Returns
    -------
    tuple[NDArray, NDArray]
        y (n,) and X (n, k) arrays.
    """
    k_regressors = draw(st.integers(min_value=min_k, max_value=max_k))
    n = draw(st.integers(min_value=max(min_n, k_regressors + 5), max_value=max_n))

    seed = draw(st.integers(min_value=0, max_value=2**31 - 1))
    rng = np.random.default_rng(seed)

    X_data = rng.standard_normal((n, k_regressors)) * 2
    X = np.column_stack([np.ones(n), X_data]) if with_constant else X_data
    k_total = X.shape[1]

    beta = rng.uniform(-3, 3, size=k_total)
    noise_scale = draw(st.floats(min_value=0.5, max_value=2.0))
    y = X @ beta + rng.standard_normal(n) * noise_scale

    n_bad = int(contamination * n)
    if n_bad:
        y[:n_bad] += 15 * noise_scale

    return y, X


@st.composite
def scaled_residuals(
    draw: st.DrawFn,
    min_n: int = 1,
    max_n: int = 200,
) -> NDArray[np.floating[Any]]:
    """Generate a vector of scaled residuals with a heavy right tail."""
    n = draw(st.integers(min_value=min_n, max_value=max_n))
    seed = draw(st.integers(min_value=0, max_value=2**31 - 1))
    rng = np.random.default_rng(seed)
    return rng.standard_t(df=3, size=n)


def rho_families() -> st.SearchStrategy[str]:
    """Family tags with closed-form constants (no root finding)."""
    return st.sampled_from(["bisquare", "optimal", "hampel", "mdpd", "AS"])
