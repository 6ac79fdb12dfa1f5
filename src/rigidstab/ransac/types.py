"""
Shared typed primitives for the rigid motion estimator.

Defines:
- Typed NumPy aliases for geometry
    - Points are (N,2) float arrays
    - Transforms are 2x3 matrices: dest = M @ [x, y, 1]^T
- Model fitter protocol used by the RANSAC loop
- RANSAC configuration
- Success/failure result container (model + inliers + stats, or a reason)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol, TypeVar, Optional, TypeAlias

import numpy as np
import numpy.typing as npt

# ---------- Numpy typing aliases ----------
# - float64 for geometry / matrices (more stable for linear algebra)
# - bool_ for masks

FloatArray: TypeAlias = npt.NDArray[np.float64]
BoolArray: TypeAlias = npt.NDArray[np.bool_]

# Points in 2D image coordinates.
Points2D: TypeAlias = FloatArray      # shape: (N, 2)

# Boolean inlier mask: True as inlier, False as outlier
Mask: TypeAlias = BoolArray           # shape: (N,)

# 2x3 transform matrix [[m00, m01, m02], [m10, m11, m12]].
Mat2x3: TypeAlias = FloatArray        # shape: (2, 3)

M = TypeVar("M")

# Minimal sample for both similarity and affine models.
SAMPLE_SIZE = 3


class ModelFitter(Protocol[M]):
    """
    Interface a motion model implements to be usable by the RANSAC loop.

    The same closed-form solve serves the 3-point hypothesis and the
    all-inlier refit, so there is a single fit() entry.
    """

    def fit(self, src: Points2D, dst: Points2D) -> Optional[M]:
        """
        Least-squares fit from N >= 3 correspondences.
        Return None if the solve fails.
        """
        ...

    def residuals(self, model: M, src: Points2D, dst: Points2D) -> FloatArray:
        """
        Return a vector of residual errors, one per correspondence. Shape: (N,).
        """
        ...


# ---------- Configuration ----------
@dataclass(frozen=True)
class RansacConfig:
    """
    max_iters:
      - Number of hypothesis iterations.
      - Also the retry budget for drawing one non-degenerate 3-point sample.
    min_inlier_ratio:
      - First hypothesis whose inlier fraction reaches this value is accepted.
    """
    max_iters: int = 500
    min_inlier_ratio: float = 0.5

    def __post_init__(self) -> None:
        if self.max_iters < 1:
            raise ValueError("RansacConfig.max_iters must be >= 1")
        if not (0.0 < self.min_inlier_ratio <= 1.0):
            raise ValueError("RansacConfig.min_inlier_ratio must be in (0, 1]")

    @property
    def sample_size(self) -> int:
        return SAMPLE_SIZE


# ---------- Result container ----------
class FailureReason(enum.Enum):
    INSUFFICIENT_POINTS = "insufficient_points"
    SIZE_MISMATCH = "size_mismatch"
    FORMAT_MISMATCH = "format_mismatch"
    UNSUPPORTED_FORMAT = "unsupported_format"
    DEGENERATE_SAMPLE_EXHAUSTED = "degenerate_sample_exhausted"
    RANSAC_EXHAUSTED = "ransac_exhausted"


# frozen=True means "immutable" after construction
@dataclass(frozen=True)
class EstimationResult:
    """
    Either a refined model or a tagged failure. Check `ok` first.

    On success:
      model: refined 2x3 transform (translation already rescaled in image mode)
      inliers: boolean mask of the accepted consensus set
      num_inliers: count of True values in inliers
      iterations: how many RANSAC iterations were run (1-based)
      threshold: the L1 inlier threshold used
      scale: image downscale factor the correspondences were measured at
    """
    model: Optional[Mat2x3] = None
    inliers: Optional[Mask] = None
    num_inliers: int = 0
    iterations: int = 0
    threshold: float = 0.0
    scale: float = 1.0
    reason: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None and self.model is not None

    @classmethod
    def success(
            cls,
            model: Mat2x3,
            inliers: Mask,
            *,
            iterations: int,
            threshold: float,
            scale: float = 1.0,
    ) -> "EstimationResult":
        return cls(
            model=model,
            inliers=inliers,
            num_inliers=int(np.count_nonzero(inliers)),
            iterations=iterations,
            threshold=float(threshold),
            scale=float(scale),
        )

    @classmethod
    def failure(cls, reason: FailureReason, detail: str = "", *, iterations: int = 0) -> "EstimationResult":
        return cls(reason=reason, detail=detail, iterations=iterations)


# ---------- Helper Functions ----------
def as_points(pts: npt.ArrayLike) -> Points2D:
    """
    Coerce (N,2) or OpenCV-style (N,1,2) point data into a float64 (N,2) array.
    """
    arr = np.asarray(pts, dtype=np.float64)
    if arr.size == 0:
        return arr.reshape(0, 2)
    if arr.ndim == 3 and arr.shape[1] == 1 and arr.shape[2] == 2:
        arr = arr.reshape(-1, 2)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {arr.shape}")
    return arr


def as_homogeneous(pts: Points2D) -> FloatArray:
    """
    Convert (N,2) points -> (N,3) homogeneous points: [x, y, 1].
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected points shape (N, 2) but got {pts.shape}")

    ones = np.ones((pts.shape[0], 1), dtype=np.float64)
    return np.hstack([pts.astype(np.float64), ones])


def is_valid_mat2x3(T: Mat2x3) -> bool:
    """
    Verify a 2x3 transform matrix. Used for rejecting failed fits.
    """
    return isinstance(T, np.ndarray) and T.shape == (2, 3) and bool(np.isfinite(T).all())
