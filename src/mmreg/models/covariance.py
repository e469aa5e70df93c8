"""Huber's sandwich covariance for M-type regression estimators.

The three forms follow Huber (1973, 1981) as also used by statsmodels' RLM:

* ``H1``: ``K^2 [sum psi^2 / (n - p)] / [sum psi' / n]^2 (X'X)^{-1}``
* ``H2``: ``K [sum psi^2 / (n - p)] / [sum psi' / n] W^{-1}``
* ``H3``: ``K^{-1} [sum psi^2 / (n - p)] W^{-1} X'X W^{-1}``

with ``W = X' diag(psi') X``, all psi functions evaluated at the scaled
residuals, every form multiplied by ``scale^2``, and the small-sample
correction ``K = 1 + (p / n) var(psi') / mean(psi')^2``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from mmreg.exceptions import NegativeOrZeroVariance

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

    from mmreg.models.base import CovType
    from mmreg.norms import RhoPsiNorm


def robust_covariance(
    exog: ArrayLike,
    scaled_resid: ArrayLike,
    scale: float,
    norm: RhoPsiNorm,
    cov_type: CovType = "H1",
) -> NDArray[np.floating[Any]]:
    """Asymptotic covariance matrix of an M-type coefficient estimate.

    Parameters
    ----------
    exog : ArrayLike
        Design matrix (n, p).
    scaled_resid : ArrayLike
        Residuals divided by ``scale``.
    scale : float
        Scale estimate used to standardise the residuals.
    norm : RhoPsiNorm
        Rho/psi family the coefficients were estimated with.
    cov_type : {"H1", "H2", "H3"}
        Huber's covariance form. Default "H1".

    Returns
    -------
    NDArray[np.floating]
        Covariance matrix (p, p).

    Raises
    ------
    NegativeOrZeroVariance
        If the mean of psi' is zero, the matrix to invert is singular, or a
        diagonal element of the result is not positive.
    ValueError
        If ``cov_type`` is unknown.
    """
    X = np.asarray(exog, dtype=np.float64)
    r = np.asarray(scaled_resid, dtype=np.float64)
    n, p = X.shape

    psi = norm.psi(r)
    psi_deriv = norm.psi_deriv(r)
    m = float(np.mean(psi_deriv))
    if m == 0 or not np.isfinite(m):
        raise NegativeOrZeroVariance(
            "mean of psi' at the scaled residuals is zero; covariance undefined"
        )

    k = 1 + p / n * float(np.var(psi_deriv)) / m**2
    sigma2_psi = float(np.sum(psi**2)) / (n - p) * scale**2

    try:
        if cov_type == "H1":
            cov = k**2 * sigma2_psi / m**2 * np.linalg.inv(X.T @ X)
        elif cov_type in ("H2", "H3"):
            W_inv = np.linalg.inv((X.T * psi_deriv) @ X)
            if cov_type == "H2":
                cov = k * sigma2_psi / m * W_inv
            else:
                cov = sigma2_psi / k * W_inv @ (X.T @ X) @ W_inv
        else:
            raise ValueError(f"Unknown cov_type: {cov_type}")
    except np.linalg.LinAlgError as exc:
        raise NegativeOrZeroVariance(
            f"covariance matrix ({cov_type}) is singular: {exc}"
        ) from exc

    diag = np.diag(cov)
    if np.any(~np.isfinite(diag)) or np.any(diag <= 0):
        raise NegativeOrZeroVariance(
            f"covariance matrix ({cov_type}) has non-positive diagonal elements"
        )
    return cov
