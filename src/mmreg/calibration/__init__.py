"""Efficiency and breakdown calibration of rho/psi tuning constants."""

from mmreg.calibration.efficiency import (
    BreakdownCalibration,
    Calibration,
    asymptotic_efficiency,
    calibrate_breakdown,
    calibrate_efficiency,
    hyperbolic_table,
    location_efficiency,
    mdpd_location_efficiency,
    shape_efficiency,
)
from mmreg.calibration.hyperbolic import hyperbolic_constants
from mmreg.calibration.integrals import normal_expectation

__all__ = [
    "BreakdownCalibration",
    "Calibration",
    "asymptotic_efficiency",
    "calibrate_breakdown",
    "calibrate_efficiency",
    "hyperbolic_constants",
    "hyperbolic_table",
    "location_efficiency",
    "mdpd_location_efficiency",
    "normal_expectation",
    "shape_efficiency",
]
