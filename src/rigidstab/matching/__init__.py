"""
Correspondence sampling: image-mode grid tracking and corner features
"""
from .corners import ShiTomasiParams, shitomasi_detect
from .lk_tracking import lk_track, LKParams, LKTracker, Tracker
from .sampler import (
    CorrespondenceSampler, SamplerParams, SampledCorrespondences, SampleResult,
    downscale_factor, grid_points, repack,
)

__all__ = [
    "ShiTomasiParams", "shitomasi_detect",
    "lk_track", "LKParams", "LKTracker", "Tracker",
    "CorrespondenceSampler", "SamplerParams", "SampledCorrespondences", "SampleResult",
    "downscale_factor", "grid_points", "repack",
]
