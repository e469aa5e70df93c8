"""Robust regression models: S, MM and the MM efficiency sweep."""

from mmreg.models.base import CovType, PreparedData, RobustModelBase, prepare_data
from mmreg.models.covariance import robust_covariance
from mmreg.models.eda import (
    DEFAULT_EFFICIENCIES,
    MMEfficiencySweep,
    MMSweepResults,
    SweepFailure,
)
from mmreg.models.mm import MM, MMResults, RefinementResult, mm_refine
from mmreg.models.s_estimator import (
    InitialEstimate,
    SRegression,
    SResults,
    m_scale,
    ols_initial_estimate,
)

__all__ = [
    "DEFAULT_EFFICIENCIES",
    "MM",
    "CovType",
    "InitialEstimate",
    "MMEfficiencySweep",
    "MMResults",
    "MMSweepResults",
    "PreparedData",
    "RefinementResult",
    "RobustModelBase",
    "SRegression",
    "SResults",
    "SweepFailure",
    "m_scale",
    "mm_refine",
    "ols_initial_estimate",
    "prepare_data",
    "robust_covariance",
]
