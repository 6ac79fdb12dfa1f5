"""
RANSAC package

This module provides:
- Typed geometry primitives and the success/failure result type
- Closed-form similarity and affine least-squares solvers
- Sample validation helpers (coincidence, collinearity, bounding box)
- The first-consensus RANSAC loop
"""

from .types import (
    FloatArray, BoolArray, Points2D, Mask, Mat2x3, SAMPLE_SIZE,
    ModelFitter, RansacConfig, FailureReason, EstimationResult,
    as_points, as_homogeneous, is_valid_mat2x3,
)

from .geometry import Rect, is_degenerate_sample, are_coincident, bounding_box

from .solvers import (
    fit_affine, fit_similarity, apply_transform, residuals_l1, residuals_sq,
)

from .fitters import AffineFitter, SimilarityFitter, fitter_for

from .core import ransac, ransac_rigid, draw_sample, inlier_threshold

__all__ = [
    "FloatArray", "BoolArray", "Points2D", "Mask", "Mat2x3", "SAMPLE_SIZE",
    "ModelFitter", "RansacConfig", "FailureReason", "EstimationResult",
    "as_points", "as_homogeneous", "is_valid_mat2x3",
    "Rect", "is_degenerate_sample", "are_coincident", "bounding_box",
    "fit_affine", "fit_similarity", "apply_transform", "residuals_l1", "residuals_sq",
    "AffineFitter", "SimilarityFitter", "fitter_for",
    "ransac", "ransac_rigid", "draw_sample", "inlier_threshold",
]
