"""
Image-mode preprocessing: turn two frames into point correspondences.

Steps:
  1) downscale both frames to a small working resolution (never upscale)
  2) convert BGR -> gray if needed
  3) lay a regular grid of points over frame A at cell centres
  4) track the grid into frame B with a sparse tracker (LK by default)
  5) keep only the successfully tracked pairs, in order

The downscale factor is returned with the points so the caller can bring
the estimated translation back to full resolution.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import cv2

from ..ransac.types import Points2D, BoolArray, FailureReason
from .lk_tracking import Tracker, LKTracker


@dataclass(frozen=True)
class SamplerParams:
    """
    work_width / work_height:
      - Target working resolution; the factor is the larger of the two ratios,
        capped at 1.
    grid_rows:
      - Number of grid rows; columns follow the aspect ratio.
    """
    work_width: int = 160
    work_height: int = 120
    grid_rows: int = 15

    def __post_init__(self) -> None:
        if self.work_width < 1 or self.work_height < 1:
            raise ValueError("SamplerParams working size must be positive")
        if self.grid_rows < 1:
            raise ValueError("SamplerParams.grid_rows must be >= 1")


@dataclass(frozen=True)
class SampledCorrespondences:
    src: Points2D       # (M,2) grid points in the downscaled frame A
    dst: Points2D       # (M,2) tracked positions in the downscaled frame B
    scale: float        # downscale factor applied to both frames


@dataclass(frozen=True)
class SampleResult:
    correspondences: Optional[SampledCorrespondences] = None
    reason: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None and self.correspondences is not None


def downscale_factor(width: int, height: int, params: SamplerParams = SamplerParams()) -> float:
    """
    Uniform factor <= 1 mapping (width, height) to the working resolution.
    """
    scale = max(params.work_width / float(width), params.work_height / float(height))
    return min(scale, 1.0)


def grid_points(width: int, height: int, rows: int) -> Points2D:
    """
    Row-major grid over a (width, height) frame at cell centres.

    rows is fixed; cols = round(rows * width / height).
    """
    cols = max(1, int(round(rows * width / float(height))))

    j, i = np.meshgrid(np.arange(cols), np.arange(rows))
    xs = (j.ravel() + 0.5) * width / cols
    ys = (i.ravel() + 0.5) * height / rows
    return np.stack([xs, ys], axis=1).astype(np.float64)


def repack(src: Points2D, dst: Points2D, success: BoolArray) -> tuple[Points2D, Points2D]:
    """
    Keep pairs whose track succeeded and whose positions are finite,
    preserving relative order.
    """
    mask = np.array(success, dtype=bool).reshape(-1)
    if mask.shape[0] != src.shape[0]:
        raise ValueError(f"success must have length N; got {mask.shape[0]} vs {src.shape[0]}")

    mask &= np.isfinite(src).all(axis=1)
    mask &= np.isfinite(dst).all(axis=1)
    return src[mask], dst[mask]


def _check_images(img_a: np.ndarray, img_b: np.ndarray) -> Optional[SampleResult]:
    if img_a.shape[:2] != img_b.shape[:2]:
        return SampleResult(
            reason=FailureReason.SIZE_MISMATCH,
            detail=f"both images must have the same size, got {img_a.shape[:2]} vs {img_b.shape[:2]}",
        )
    if img_a.dtype != img_b.dtype or img_a.shape != img_b.shape:
        return SampleResult(
            reason=FailureReason.FORMAT_MISMATCH,
            detail=f"both images must have the same type, got {img_a.dtype}{img_a.shape} vs {img_b.dtype}{img_b.shape}",
        )

    single = img_a.ndim == 2 or (img_a.ndim == 3 and img_a.shape[2] == 1)
    three = img_a.ndim == 3 and img_a.shape[2] == 3
    if img_a.dtype != np.uint8 or not (single or three) or img_a.size == 0:
        return SampleResult(
            reason=FailureReason.UNSUPPORTED_FORMAT,
            detail=f"images must be 8-bit with 1 or 3 channels, got {img_a.dtype} {img_a.shape}",
        )
    return None


def _to_working_gray(img: np.ndarray, size: tuple[int, int], resize: bool) -> np.ndarray:
    if img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    elif img.ndim == 3:
        img = img[:, :, 0]
    if resize:
        img = cv2.resize(img, size, interpolation=cv2.INTER_AREA)
    return np.ascontiguousarray(img)


@dataclass(frozen=True)
class CorrespondenceSampler:
    """
    Produces grid correspondences between two frames.

    tracker:
      - any Tracker; defaults to pyramidal LK
    """
    params: SamplerParams = field(default_factory=SamplerParams)
    tracker: Tracker = field(default_factory=LKTracker)

    def sample(self, img_a: np.ndarray, img_b: np.ndarray) -> SampleResult:
        img_a = np.asarray(img_a)
        img_b = np.asarray(img_b)

        bad = _check_images(img_a, img_b)
        if bad is not None:
            return bad

        h0, w0 = img_a.shape[:2]
        scale = downscale_factor(w0, h0, self.params)
        w1 = int(round(w0 * scale))
        h1 = int(round(h0 * scale))
        resize = (w1, h1) != (w0, h0)

        gray_a = _to_working_gray(img_a, (w1, h1), resize)
        gray_b = _to_working_gray(img_b, (w1, h1), resize)

        pts_a = grid_points(w1, h1, self.params.grid_rows)
        pts_b, success = self.tracker(gray_a, gray_b, pts_a)
        pts_b = np.asarray(pts_b, dtype=np.float64).reshape(-1, 2)

        src, dst = repack(pts_a, pts_b, success)
        return SampleResult(correspondences=SampledCorrespondences(src=src, dst=dst, scale=scale))
