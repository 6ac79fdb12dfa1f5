"""
Apply a correction transform to a frame with OpenCV.

Motion here is always a 2x3 matrix, which is exactly what cv2.warpAffine
expects.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
import cv2

from ..ransac.types import Mat2x3


# ---------- Warp parameters ----------
@dataclass(frozen=True)
class WarpParams:
    """
    Settings for pixels exposed when the frame shifts.

    - border_mode:
        - cv2.BORDER_CONSTANT: fill with border_value
        - cv2.BORDER_REFLECT: mirror reflect at edge
        - cv2.BORDER_REPLICATE: repeat edge pixels
    - border_value:
      Used only when border_mode == cv2.BORDER_CONSTANT.
    - interpolation:
      - cv2.INTER_LINEAR: good default for video.
    """
    border_mode: int = cv2.BORDER_CONSTANT
    border_value: Tuple[int, int, int] = (0, 0, 0)
    interpolation: int = cv2.INTER_LINEAR


def warp_frame(
        frame: np.ndarray,
        T: Mat2x3,
        *,
        params: WarpParams = WarpParams(),
) -> np.ndarray:
    """
    Warp an image (H,W) or (H,W,3) by a 2x3 transform, keeping its size.
    """
    if frame is None or frame.size == 0:
        return frame

    T = np.asarray(T, dtype=np.float64)
    if T.shape != (2, 3):
        raise ValueError(f"warp_frame expected T shape (2,3), got {T.shape}")

    # OpenCV wants output size (width, height)
    H, W = frame.shape[:2]

    return cv2.warpAffine(
        frame,
        T,
        (W, H),
        flags=params.interpolation,
        borderMode=params.border_mode,
        borderValue=params.border_value,
    )


def crop_borders(frame: np.ndarray, horizontal_crop: int) -> np.ndarray:
    """
    Crop `horizontal_crop` columns from each side and a proportional number
    of rows (horizontal_crop * H / W), then resize back to the input size.
    Hides the black borders introduced by the correction warp.
    """
    if horizontal_crop < 0:
        raise ValueError("horizontal_crop must be >= 0")
    if frame is None or frame.size == 0 or horizontal_crop == 0:
        return frame

    H, W = frame.shape[:2]
    vertical_crop = horizontal_crop * H // W
    if 2 * horizontal_crop >= W or 2 * vertical_crop >= H:
        raise ValueError(f"crop {horizontal_crop} too large for frame {W}x{H}")

    inner = frame[vertical_crop:H - vertical_crop, horizontal_crop:W - horizontal_crop]
    return cv2.resize(inner, (W, H))


def stabilize_frame(
        frame: np.ndarray,
        T: Mat2x3,
        *,
        horizontal_crop: int = 30,
        params: WarpParams = WarpParams(),
) -> np.ndarray:
    """
    warp_frame followed by crop_borders.
    """
    return crop_borders(warp_frame(frame, T, params=params), horizontal_crop)
