"""mmreg: MM-estimation of regression with efficiency monitoring.

A Python package built on statsmodels and scipy for robust regression:
six rho/psi families, calibration of their tuning constants to a target
asymptotic efficiency, fixed-scale MM refinement from a high-breakdown
S-estimate, outlier detection, and monitoring of the MM fit over a grid of
efficiencies.

Example
-------
>>> import mmreg as mm
>>> import numpy as np
>>>
>>> # Simulate data with 10 shifted responses
>>> rng = np.random.default_rng(42)
>>> X = rng.standard_normal((200, 3))
>>> y = X @ [1.0, 2.0, -1.0] + rng.standard_normal(200)
>>> y[:10] += 7
>>>
>>> # MM fit at 95% efficiency with the bisquare family
>>> results = mm.MM(y, X).fit(random_state=0)
>>> print(results.summary())
>>>
>>> # Another family and efficiency
>>> opts = mm.MMOptions(rho_family="optimal", efficiency=0.9)
>>> results = mm.MM(y, X, options=opts).fit(random_state=0)
>>> print(results.outliers)
>>>
>>> # Monitor the fit as efficiency moves from 0.5 to 0.99
>>> sweep = mm.MMEfficiencySweep(y, X).fit(random_state=0)
>>> print(sweep.summary())
"""

from mmreg._version import __version__
from mmreg.api import (
    DEFAULT_EFFICIENCIES,
    MDPD,
    MM,
    RHO_FAMILIES,
    AndrewSine,
    Bisquare,
    BreakdownCalibration,
    Calibration,
    CovType,
    Hampel,
    Hyperbolic,
    InitialEstimate,
    MMEfficiencySweep,
    MMOptions,
    MMResults,
    MMSweepResults,
    NegativeOrZeroVariance,
    NonConvergenceWarning,
    Optimal,
    OutlierResults,
    RefinementResult,
    RhoFamily,
    RhoPsiNorm,
    RobustModelBase,
    RobustRegressionResults,
    RobustResultsBase,
    SRegression,
    SResults,
    SingularWeightedDesign,
    SweepError,
    SweepFailure,
    SweepFailureWarning,
    UnsupportedEfficiencyRequest,
    UnsupportedFamily,
    asymptotic_efficiency,
    calibrate_breakdown,
    calibrate_efficiency,
    detect_outliers,
    hyperbolic_constants,
    hyperbolic_table,
    location_efficiency,
    m_scale,
    make_norm,
    mm_refine,
    ols_initial_estimate,
    outlier_threshold,
    prepare_data,
    robust_covariance,
    shape_efficiency,
)

__all__ = [
    "DEFAULT_EFFICIENCIES",
    "AndrewSine",
    "Bisquare",
    "BreakdownCalibration",
    "Calibration",
    "CovType",
    "Hampel",
    "Hyperbolic",
    "InitialEstimate",
    "MDPD",
    "MM",
    "MMEfficiencySweep",
    "MMOptions",
    "MMResults",
    "MMSweepResults",
    "NegativeOrZeroVariance",
    "NonConvergenceWarning",
    "Optimal",
    "OutlierResults",
    "RHO_FAMILIES",
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
    "__version__",
    "asymptotic_efficiency",
    "calibrate_breakdown",
    "calibrate_efficiency",
    "detect_outliers",
    "hyperbolic_constants",
    "hyperbolic_table",
    "location_efficiency",
    "m_scale",
    "make_norm",
    "mm_refine",
    "ols_initial_estimate",
    "outlier_threshold",
    "prepare_data",
    "robust_covariance",
    "shape_efficiency",
]
