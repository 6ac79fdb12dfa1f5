"""
Frame-to-frame motion for a stabilization run.

The estimator itself never substitutes a default transform on failure.
Reusing the previous frame's transform is a policy of the video loop, and
this class is that loop-side policy:

    motion = FrameMotionEstimator(seed=0)
    for prev, curr in pairs:
        T = motion.update(prev, curr)     # 2x3, never None

Two ways to get correspondences from a pair of frames:
  - default: the estimator's own grid sampling on a downscaled copy
  - features=ShiTomasiParams(...): detect corners on the full-resolution
    previous frame, track them with LK, then estimate in point mode
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import cv2

from ..ransac.types import Points2D, Mat2x3, RansacConfig, EstimationResult
from ..estimate import estimate_rigid_transform
from ..matching.corners import ShiTomasiParams, shitomasi_detect
from ..matching.lk_tracking import LKParams, Tracker, lk_track
from ..matching.sampler import repack
from .trajectory import TransformParam

logger = logging.getLogger(__name__)


def _feature_lk_params() -> LKParams:
    # Full-resolution corners move further than grid points on the
    # downscaled copy, hence the larger window
    return LKParams(
        winSize=(21, 21),
        maxLevel=3,
        criteria=(cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT, 30, 0.01),
    )


def _is_frame(arr: np.ndarray) -> bool:
    return arr.dtype == np.uint8 and (arr.ndim == 2 or (arr.ndim == 3 and arr.shape[2] in (1, 3)))


def _gray(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 3 and frame.shape[2] == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    if frame.ndim == 3:
        return np.ascontiguousarray(frame[:, :, 0])
    return frame


@dataclass
class FrameMotionEstimator:
    """
    Stateful wrapper that turns consecutive frames (or tracked point pairs)
    into per-frame TransformParam values.

    full_affine:
      - False for similarity (default for stabilization)
    config:
      - RANSAC settings handed to every estimate
    seed:
      - seeds this instance's own Generator (not shared with other instances)
    tracker:
      - grid-sampling tracker handed to image-mode estimation
    features:
      - when set, frames go through corner detection + LK instead of
        grid sampling
    feature_lk:
      - LK settings for tracking the detected corners
    """
    full_affine: bool = False
    config: RansacConfig = field(default_factory=RansacConfig)
    seed: Optional[int] = None
    tracker: Optional[Tracker] = None
    features: Optional[ShiTomasiParams] = None
    feature_lk: LKParams = field(default_factory=_feature_lk_params)

    # ---------- Internal state ----------
    _rng: np.random.Generator = field(init=False)
    _last: Mat2x3 = field(init=False)
    _params: list[TransformParam] = field(init=False)
    _failures: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        self._rng = np.random.default_rng(self.seed)
        self.reset()

    def reset(self) -> None:
        """
        Forget the previous transform and collected motion.
        """
        self._last = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], dtype=np.float64)
        self._params = []
        self._failures = 0

    @property
    def params(self) -> list[TransformParam]:
        return list(self._params)

    @property
    def failures(self) -> int:
        return self._failures

    def track_features(self, prev: np.ndarray, curr: np.ndarray) -> tuple[Points2D, Points2D]:
        """
        Corners of prev and where LK finds them in curr.
        Lost tracks are dropped; the pairs keep detection order.
        """
        if self.features is None:
            raise ValueError("track_features needs FrameMotionEstimator.features to be set")

        gray0 = _gray(prev)
        gray1 = _gray(curr)
        pts0 = shitomasi_detect(gray0, params=self.features)
        pts1, success = lk_track(gray0, gray1, pts0, params=self.feature_lk)
        src, dst = repack(pts0, pts1, success)
        logger.debug("features: %d corners detected, %d tracked", pts0.shape[0], src.shape[0])
        return src, dst

    def estimate(self, prev, curr) -> EstimationResult:
        if self.features is not None:
            prev = np.asarray(prev)
            curr = np.asarray(curr)
            if _is_frame(prev) and _is_frame(curr) and prev.shape == curr.shape:
                prev, curr = self.track_features(prev, curr)

        return estimate_rigid_transform(
            prev,
            curr,
            self.full_affine,
            config=self.config,
            rng=self._rng,
            tracker=self.tracker,
        )

    def update(self, prev, curr) -> Mat2x3:
        """
        Estimate prev -> curr, falling back to the last good transform
        (identity before the first success). Records the motion parameters.
        """
        res = self.estimate(prev, curr)
        if res.ok:
            self._last = res.model
        else:
            self._failures += 1
            logger.warning("motion estimate failed (%s: %s); reusing previous transform",
                           res.reason.value if res.reason else "unknown", res.detail)

        self._params.append(TransformParam.from_matrix(self._last))
        return self._last.copy()
