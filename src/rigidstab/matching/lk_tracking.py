"""
Lucas–Kanade (LK) optical flow tracking wrapper

Default sparse tracker for image-mode estimation:
    track(prev_gray, curr_gray, prev_pts) -> (curr_pts, success)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Tuple

import numpy as np
import cv2

from ..ransac.types import Points2D, BoolArray


class Tracker(Protocol):
    """
    Anything that maps points from one grayscale frame to the next.

    Returns:
      curr_pts: (N,2) float64 positions in the current frame
      success:  (N,) bool, False where the track was lost
    """

    def __call__(
            self,
            prev_gray: np.ndarray,
            curr_gray: np.ndarray,
            prev_pts: Points2D,
    ) -> tuple[Points2D, BoolArray]:
        ...


@dataclass(frozen=True)
class LKParams:
    """
    Parameters for pyramidal Lucas–Kanade tracking.

    winSize:
      - Size of the search window at each pyramid level.
    maxLevel:
      - Number of pyramid levels (0 means single-scale).
    criteria:
      - (type, max_iter, epsilon)
      - stops after max_iter iterations.
    """
    winSize: Tuple[int, int] = (10, 10)
    maxLevel: int = 3
    criteria: Tuple[int, int, float] = (cv2.TERM_CRITERIA_COUNT, 40, 0.1)


@dataclass(frozen=True)
class LKTracker:
    """
    Callable Tracker backed by cv2.calcOpticalFlowPyrLK.
    """
    params: LKParams = field(default_factory=LKParams)

    def __call__(
            self,
            prev_gray: np.ndarray,
            curr_gray: np.ndarray,
            prev_pts: Points2D,
    ) -> tuple[Points2D, BoolArray]:
        return lk_track(prev_gray, curr_gray, prev_pts, params=self.params)


def lk_track(
    gray0: np.ndarray,
    gray1: np.ndarray,
    pts0: Points2D,
    *,
    params: LKParams = LKParams(),
) -> tuple[Points2D, BoolArray]:
    """
    Track points from gray0 -> gray1.

    Inputs:
        gray0, gray1:
          - Grayscale images (H,W), uint8.
        pts0:
          - (N,2) float array of points in frame 0.

    Returns:
        pts1:
          - (N,2) float64 tracked points in frame 1
        success:
          - (N,) bool array
    """
    # ---------- Input Check ----------
    if gray0.ndim != 2 or gray1.ndim != 2:
        raise ValueError("lk_track expects grayscale frames (H,W). Convert BGR->gray before calling.")

    pts0 = np.asarray(pts0, dtype=np.float32)
    if pts0.ndim != 2 or pts0.shape[1] != 2:
        raise ValueError(f"pts0 must be (N,2), got {pts0.shape}")

    n = pts0.shape[0]
    if n == 0:
        return np.zeros((0, 2), dtype=np.float64), np.zeros((0,), dtype=bool)

    # Match OpenCV expected point shape (N,1,2)
    p0 = pts0.reshape(-1, 1, 2)

    # ---------- Run LK ----------
    p1, status, _err = cv2.calcOpticalFlowPyrLK(
        gray0,
        gray1,
        p0,
        None,
        winSize=params.winSize,
        maxLevel=params.maxLevel,
        criteria=params.criteria,
    )

    if p1 is None or status is None:
        # Every track failed
        return pts0.astype(np.float64), np.zeros((n,), dtype=bool)

    pts1 = p1.reshape(-1, 2).astype(np.float64)
    success = status.reshape(-1).astype(np.uint8) == 1
    return pts1, success
