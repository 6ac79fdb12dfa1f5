"""
Top-level entry point: robust rigid/affine transform between two inputs.

Inputs are either
  - two point arrays, (N,2) or OpenCV-style (N,1,2), float or integer
  - two 8-bit images (H,W) or (H,W,3) of the same size and type

In image mode a grid of points is tracked from the first image into the
second on a downscaled copy; the translation of the result is scaled back
to full resolution.

Example:
    res = estimate_rigid_transform(prev_pts, curr_pts, full_affine=False, seed=0)
    if res.ok:
        M = res.model   # 2x3
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .ransac.types import RansacConfig, EstimationResult, FailureReason, as_points
from .ransac.core import ransac_rigid
from .matching.lk_tracking import Tracker
from .matching.sampler import CorrespondenceSampler, SamplerParams

logger = logging.getLogger(__name__)


def _is_point_array(arr: np.ndarray) -> bool:
    if arr.dtype == np.uint8 or not (np.issubdtype(arr.dtype, np.floating) or np.issubdtype(arr.dtype, np.integer)):
        return False
    # [] and friends are an empty point set
    if arr.size == 0:
        return True
    if arr.ndim == 2 and arr.shape[1] == 2:
        return True
    return arr.ndim == 3 and arr.shape[1] == 1 and arr.shape[2] == 2


def estimate_rigid_transform(
        a,
        b,
        full_affine: bool = False,
        *,
        config: Optional[RansacConfig] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        tracker: Optional[Tracker] = None,
        sampler_params: Optional[SamplerParams] = None,
) -> EstimationResult:
    """
    Estimate the 2x3 transform mapping a -> b.

    full_affine:
      - False: similarity (rotation + uniform scale + translation)
      - True: full 6-parameter affine
    config:
      - RansacConfig (max_iters, min_inlier_ratio)
    rng / seed:
      - per-call random source; a fresh default_rng(seed) is built if rng is None
    tracker / sampler_params:
      - image mode only; default is pyramidal LK on a 160x120 working copy
    """
    a = np.asarray(a)
    b = np.asarray(b)
    if config is None:
        config = RansacConfig()
    if rng is None:
        rng = np.random.default_rng(seed)

    a_points = _is_point_array(a)
    b_points = _is_point_array(b)

    # ---------- Point mode ----------
    if a_points and b_points:
        src = as_points(a)
        dst = as_points(b)
        if src.shape != dst.shape:
            return EstimationResult.failure(
                FailureReason.SIZE_MISMATCH,
                f"point arrays differ in length: {src.shape[0]} vs {dst.shape[0]}",
            )
        return ransac_rigid(src, dst, full_affine=full_affine, config=config, rng=rng)

    if a_points != b_points:
        return EstimationResult.failure(
            FailureReason.FORMAT_MISMATCH,
            "cannot mix a point array with an image",
        )

    # ---------- Image mode ----------
    sampler_kwargs = {}
    if sampler_params is not None:
        sampler_kwargs["params"] = sampler_params
    if tracker is not None:
        sampler_kwargs["tracker"] = tracker
    sampler = CorrespondenceSampler(**sampler_kwargs)

    sampled = sampler.sample(a, b)
    if not sampled.ok:
        logger.debug("image preprocessing failed: %s (%s)", sampled.reason, sampled.detail)
        return EstimationResult.failure(sampled.reason, sampled.detail)

    corr = sampled.correspondences
    logger.debug("image mode: %d tracked grid points at scale %.4f", corr.src.shape[0], corr.scale)
    return ransac_rigid(
        corr.src,
        corr.dst,
        full_affine=full_affine,
        config=config,
        rng=rng,
        scale=corr.scale,
    )
