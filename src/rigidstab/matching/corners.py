"""
Corner detection for feature-based frame motion

Shi–Tomasi via cv2.goodFeaturesToTrack. The detected corners are tracked into
the next frame and the resulting pairs go through point-mode estimation.
"""

from __future__ import annotations
from dataclasses import dataclass
import numpy as np
import cv2

from ..ransac.types import Points2D


@dataclass(frozen=True)
class ShiTomasiParams:
    """
    Parameters for Shi–Tomasi corner detection (goodFeaturesToTrack).

    maxCorners:
      - Upper bound on number of corners returned.
    qualityLevel:
      - Rejects corners with response < qualityLevel * best_response.
    minDistance:
      - Minimum allowed distance between detected corners, in pixels.
        Spreads the corners over the frame.
    blockSize:
      - Size of neighborhood used for corner score.
    """
    maxCorners: int = 200
    qualityLevel: float = 0.01
    minDistance: float = 30.0
    blockSize: int = 3


def shitomasi_detect(
        gray: np.ndarray,
        *,
        params: ShiTomasiParams = ShiTomasiParams(),
) -> Points2D:
    """
    Detect Shi–Tomasi corners on a grayscale image.

    Input:
      gray: (H,W) grayscale image (uint8 preferred)
    Output:
      pts: (N,2) float64 points, N may be 0 on a flat image
    """
    if gray.ndim != 2:
        raise ValueError("shitomasi_detect expects grayscale (H,W). Convert BGR->gray before calling.")

    pts = cv2.goodFeaturesToTrack(
        gray,
        maxCorners=params.maxCorners,
        qualityLevel=params.qualityLevel,
        minDistance=params.minDistance,
        blockSize=params.blockSize,
    )

    if pts is None:
        return np.zeros((0, 2), dtype=np.float64)

    return pts.reshape(-1, 2).astype(np.float64)
