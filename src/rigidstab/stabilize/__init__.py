from .trajectory import (
    TransformParam, decompose_similarity, accumulate, smooth, corrected_transforms,
)
from .motion import FrameMotionEstimator
from .warp import WarpParams, warp_frame, crop_borders, stabilize_frame


__all__ = [
    "TransformParam", "decompose_similarity", "accumulate", "smooth", "corrected_transforms",
    "FrameMotionEstimator",
    "WarpParams", "warp_frame", "crop_borders", "stabilize_frame",
]
