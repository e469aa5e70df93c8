"""Data preparation and the base class of the robust regression models.

Every model follows the statsmodels convention
``Model(endog, exog).fit() -> Results``. Input handling is shared: pandas or
array input is converted to float arrays, rows with a non-finite value in
either ``endog`` or ``exog`` are dropped, and an intercept column is added
when requested and not already present.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


CovType = Literal["H1", "H2", "H3"]


def _ensure_array(
    data: ArrayLike | pd.Series[Any] | pd.DataFrame | None,
    name: str = "data",
    ndim: int | None = None,
) -> NDArray[np.floating[Any]] | None:
    """Convert input data to a numpy array.

    Parameters
    ----------
    data : ArrayLike | pd.Series | pd.DataFrame | None
        Input data to convert.
    name : str
        Name of the variable for error messages.
    ndim : int | None
        Expected number of dimensions. If None, no check is performed.

    Returns
    -------
    NDArray[np.floating] | None
        Converted array, or None if input is None.

    Raises
    ------
    ValueError
        If data has unexpected dimensions.
    """
    if data is None:
        return None

    if isinstance(data, (pd.Series, pd.DataFrame)):
        arr = data.to_numpy(dtype=np.float64)
    else:
        arr = np.asarray(data, dtype=np.float64)

    if ndim is not None and arr.ndim != ndim:
        raise ValueError(f"{name} must be {ndim}-dimensional, got {arr.ndim}")

    return arr


def _has_constant_column(X: NDArray[np.floating[Any]]) -> bool:
    """Check if X already has a constant column."""
    return any(np.allclose(X[:, i], 1.0) for i in range(X.shape[1]))


@dataclass
class PreparedData:
    """Sanitised regression data.

    Attributes
    ----------
    endog : NDArray[np.floating]
        Response, shape (nobs,).
    exog : NDArray[np.floating]
        Design matrix, shape (nobs, k).
    names : list[str]
        Column names of ``exog``.
    dropped : NDArray[np.intp]
        Positions (in the raw input) of the rows that were removed.
    """

    endog: NDArray[np.floating[Any]]
    exog: NDArray[np.floating[Any]]
    names: list[str]
    dropped: NDArray[np.intp]

    @property
    def nobs(self) -> int:
        """Number of retained observations."""
        return len(self.endog)


def prepare_data(
    endog: ArrayLike | pd.Series[Any] | pd.DataFrame,
    exog: ArrayLike | pd.Series[Any] | pd.DataFrame,
    has_constant: bool = True,
    nocheck: bool = False,
) -> PreparedData:
    """Validate and clean regression input.

    Parameters
    ----------
    endog : ArrayLike | pd.Series | pd.DataFrame
        Response vector (n,) or a single-column frame.
    exog : ArrayLike | pd.Series | pd.DataFrame
        Regressors (n, k) or (n,).
    has_constant : bool
        If True, a column of ones named "const" is prepended unless a
        constant column is already present. Default True.
    nocheck : bool
        If True the data are taken as they are: no rows are dropped and no
        constant is added. Shapes are still checked. Default False.

    Returns
    -------
    PreparedData
        Cleaned data and bookkeeping.

    Raises
    ------
    ValueError
        If shapes are inconsistent or too few observations remain.
    """
    y = _ensure_array(endog, "endog")
    X = _ensure_array(exog, "exog")
    if y is None or X is None:
        raise ValueError("endog and exog cannot be None")

    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise ValueError(f"endog must be 1-dimensional, got shape {y.shape}")

    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2:
        raise ValueError("exog must be 1D or 2D")
    if len(X) != len(y):
        raise ValueError(
            f"endog and exog must have same length, got {len(y)} and {len(X)}"
        )

    # Extract names from pandas objects if available
    if isinstance(exog, pd.DataFrame):
        names = [str(c) for c in exog.columns]
    elif isinstance(exog, pd.Series):
        names = [str(exog.name) if exog.name is not None else "x1"]
    else:
        names = [f"x{i + 1}" for i in range(X.shape[1])]

    dropped = np.array([], dtype=np.intp)
    if not nocheck:
        finite = np.isfinite(y) & np.all(np.isfinite(X), axis=1)
        dropped = np.flatnonzero(~finite)
        y = y[finite]
        X = X[finite]

        if has_constant and (X.shape[1] == 0 or not _has_constant_column(X)):
            X = np.column_stack([np.ones(len(y)), X])
            names = ["const", *names]

    n, p = X.shape
    if n <= p:
        raise ValueError(
            f"need more observations than regressors, got n={n} and p={p}"
        )

    return PreparedData(
        endog=np.ascontiguousarray(y),
        exog=np.ascontiguousarray(X),
        names=names,
        dropped=dropped,
    )


class RobustModelBase(ABC):
    """Abstract base class for the robust regression models.

    Parameters
    ----------
    endog : ArrayLike
        Dependent variable (n_obs,).
    exog : ArrayLike
        Regressors (n_obs, k).
    has_constant : bool
        Whether to add an intercept when none is present. Default True.
    nocheck : bool
        Skip row removal and intercept handling. Default False.

    Attributes
    ----------
    endog : NDArray[np.floating]
        Cleaned response.
    exog : NDArray[np.floating]
        Cleaned design matrix.
    exog_names : list[str]
        Names of the design columns.
    dropped : NDArray[np.intp]
        Raw row positions removed for non-finite values.
    """

    def __init__(
        self,
        endog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        exog: ArrayLike | pd.Series[Any] | pd.DataFrame,
        has_constant: bool = True,
        nocheck: bool = False,
    ) -> None:
        """Initialize the model with sanitised data."""
        data = prepare_data(endog, exog, has_constant=has_constant, nocheck=nocheck)
        self.endog: NDArray[np.floating[Any]] = data.endog
        self.exog: NDArray[np.floating[Any]] = data.exog
        self.exog_names: list[str] = data.names
        self.dropped: NDArray[np.intp] = data.dropped

    @property
    def nobs(self) -> int:
        """Number of observations."""
        return len(self.endog)

    @property
    def k_exog(self) -> int:
        """Number of design columns, intercept included."""
        return self.exog.shape[1]

    @abstractmethod
    def fit(self, **kwargs: Any) -> Any:
        """Fit the model and return a results object."""
        ...

    def __repr__(self) -> str:
        """Return string representation of the model."""
        return f"{self.__class__.__name__}(nobs={self.nobs}, k_exog={self.k_exog})"
