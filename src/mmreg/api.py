"""Public API for mmreg package.

This module provides a clean namespace for the most commonly used
classes and functions in the mmreg package.
"""

# Calibration
from mmreg.calibration import (
    BreakdownCalibration,
    Calibration,
    asymptotic_efficiency,
    calibrate_breakdown,
    calibrate_efficiency,
    hyperbolic_constants,
    hyperbolic_table,
    location_efficiency,
    shape_efficiency,
)

# Options
from mmreg.config import RHO_FAMILIES, MMOptions, RhoFamily

# Diagnostics
from mmreg.diagnostics import OutlierResults, detect_outliers, outlier_threshold

# Errors and warnings
from mmreg.exceptions import (
    NegativeOrZeroVariance,
    NonConvergenceWarning,
    SingularWeightedDesign,
    SweepError,
    SweepFailureWarning,
    UnsupportedEfficiencyRequest,
    UnsupportedFamily,
)

# Models
from mmreg.models import (
    DEFAULT_EFFICIENCIES,
    MM,
    CovType,
    InitialEstimate,
    MMEfficiencySweep,
    MMResults,
    MMSweepResults,
    RefinementResult,
    RobustModelBase,
    SRegression,
    SResults,
    SweepFailure,
    m_scale,
    mm_refine,
    ols_initial_estimate,
    prepare_data,
    robust_covariance,
)

# Rho/psi families
from mmreg.norms import (
    MDPD,
    AndrewSine,
    Bisquare,
    Hampel,
    Hyperbolic,
    Optimal,
    RhoPsiNorm,
    make_norm,
)

# Results base classes (for extension)
from mmreg.results import RobustRegressionResults, RobustResultsBase

__all__ = [
    "MDPD",
    "MM",
    "RHO_FAMILIES",
    "AndrewSine",
    "Bisquare",
    "BreakdownCalibration",
    "Calibration",
    "CovType",
    "Hampel",
    "Hyperbolic",
    "InitialEstimate",
    "MMEfficiencySweep",
    "MMOptions",
    "MMResults",
    "MMSweepResults",
    "NegativeOrZeroVariance",
    "NonConvergenceWarning",
    "Optimal",
    "OutlierResults",
    "RefinementResult",
    "RhoFamily",
    "RhoPsiNorm",
    "RobustModelBase",
    "RobustRegressionResults",
    "RobustResultsBase",
    "SRegression",
    "SResults",
    "SingularWeightedDesign",
    "SweepError",
    "SweepFailure",
    "SweepFailureWarning",
    "UnsupportedEfficiencyRequest",
    "UnsupportedFamily",
    "asymptotic_efficiency",
    "calibrate_breakdown",
    "calibrate_efficiency",
    "detect_outliers",
    "hyperbolic_constants",
    "hyperbolic_table",
    "location_efficiency",
    "make_norm",
    "mm_refine",
    "ols_initial_estimate",
    "outlier_threshold",
    "prepare_data",
    "robust_covariance",
    "shape_efficiency",
]
