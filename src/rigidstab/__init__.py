"""
rigidstab: robust 2D similarity / affine motion estimation for video stabilization.
"""
from .ransac import RansacConfig, EstimationResult, FailureReason
from .estimate import estimate_rigid_transform

__version__ = "0.1.0"

__all__ = [
    "RansacConfig", "EstimationResult", "FailureReason",
    "estimate_rigid_transform",
]
