"""Outlier diagnostics for robust regression fits."""

from mmreg.diagnostics.outliers import (
    OutlierResults,
    detect_outliers,
    outlier_threshold,
)

__all__ = [
    "OutlierResults",
    "detect_outliers",
    "outlier_threshold",
]
