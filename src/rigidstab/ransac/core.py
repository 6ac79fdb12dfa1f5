"""
RANSAC consensus loop for rigid (similarity) and affine 2D motion.

RANSAC overview:
- Randomly sample a *minimal* subset of 3 correspondences
- Reject coincident or nearly collinear samples and redraw
- Fit a candidate model from that subset
- Score all correspondences with the L1 residual
- Mark inliers where error < threshold
- Accept the FIRST hypothesis whose inlier fraction reaches min_inlier_ratio
- Refit using all inliers of that hypothesis to get the final model

The inlier threshold is tied to the scene extent:

    threshold = 0.05 * max(bbox(dst).width, bbox(dst).height)

Nothing here keeps state between calls. Randomness comes from the
numpy Generator handed in by the caller (or created for the call).
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import numpy as np

from .types import (
    Points2D, Mat2x3, Mask, ModelFitter, RansacConfig,
    EstimationResult, FailureReason, SAMPLE_SIZE, as_points,
)
from .geometry import is_degenerate_sample, are_coincident, bounding_box
from .fitters import fitter_for

logger = logging.getLogger(__name__)
_RANSAC_DEBUG = os.environ.get("RIGIDSTAB_RANSAC_DEBUG", "0") == "1"

# Fraction of the destination bounding box used as the L1 inlier threshold
THRESHOLD_FRACTION = 0.05


def inlier_threshold(dst: Points2D) -> float:
    """
    L1 inlier cutoff scaled to the destination point spread.
    """
    rect = bounding_box(dst)
    return max(rect.width, rect.height) * THRESHOLD_FRACTION


def _is_valid_sample(src: Points2D, dst: Points2D, idx: np.ndarray) -> bool:
    """
    A sample is usable when its indices are distinct, no two points coincide
    (in either frame), and neither triple is nearly collinear.
    """
    if len(set(idx.tolist())) != SAMPLE_SIZE:
        return False

    for i in range(SAMPLE_SIZE):
        for j in range(i):
            if are_coincident(src[idx[i]], src[idx[j]]):
                return False
            if are_coincident(dst[idx[i]], dst[idx[j]]):
                return False

    a = src[idx]
    b = dst[idx]
    return not is_degenerate_sample(a[0], a[1], a[2], b[0], b[1], b[2])


def draw_sample(
        src: Points2D,
        dst: Points2D,
        rng: np.random.Generator,
        *,
        max_tries: int,
) -> Optional[np.ndarray]:
    """
    Draw 3 distinct indices uniformly without replacement, redrawing until the
    sample passes validation.

    Returns:
      index array of shape (3,), or None if max_tries draws were all rejected.
    """
    n = src.shape[0]
    for _ in range(max_tries):
        idx = rng.choice(n, size=SAMPLE_SIZE, replace=False)
        if _is_valid_sample(src, dst, idx):
            return idx
    return None


def ransac(
        model_fitter: ModelFitter[Mat2x3],
        src: Points2D,
        dst: Points2D,
        *,
        config: Optional[RansacConfig] = None,
        rng: np.random.Generator,
        scale: float = 1.0,
) -> EstimationResult:
    """
    Run RANSAC to fit a model between src -> dst.

    Inputs:
    - model_fitter: provides fit and residuals
    - src, dst: (N,2) corresponding points (same N)
    - config: max_iters and min_inlier_ratio
    - rng: random generator owned by the caller for this call
    - scale: downscale factor the points were measured at; the translation
      of the refined model is divided by it

    Returns:
    - EstimationResult holding the refined model, or a failure reason.
    """
    if config is None:
        config = RansacConfig()

    # ---------- Input validation ----------
    if src.shape != dst.shape:
        raise ValueError(f"src and dst must have same shape, got {src.shape} vs {dst.shape}")
    if src.ndim != 2 or src.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {src.shape}")

    n = src.shape[0]
    if n < SAMPLE_SIZE:
        return EstimationResult.failure(
            FailureReason.INSUFFICIENT_POINTS,
            f"need at least {SAMPLE_SIZE} correspondences, got {n}",
        )

    threshold = inlier_threshold(dst)
    needed = n * config.min_inlier_ratio

    accepted: Optional[Mask] = None
    iters_run = 0

    # ---------- Main RANSAC Loop ----------
    for k in range(config.max_iters):
        iters_run = k + 1

        # Sampling
        idx = draw_sample(src, dst, rng, max_tries=config.max_iters)
        if idx is None:
            logger.debug("RANSAC: no valid 3-point sample after %d draws (iteration %d)",
                         config.max_iters, iters_run)
            return EstimationResult.failure(
                FailureReason.DEGENERATE_SAMPLE_EXHAUSTED,
                f"no non-degenerate sample within {config.max_iters} draws",
                iterations=iters_run,
            )

        # Fit the hypothesis from the minimal sample
        model = model_fitter.fit(src[idx], dst[idx])
        if model is None:
            continue

        # Scoring
        err = model_fitter.residuals(model, src, dst)
        inliers: Mask = err < threshold
        num_inliers = int(np.count_nonzero(inliers))

        if _RANSAC_DEBUG:
            logger.debug("[RANSAC] iter=%d sample=%s inliers=%d/%d threshold=%.3f",
                         iters_run, idx.tolist(), num_inliers, n, threshold)

        # Accept the first hypothesis that reaches the consensus ratio
        if num_inliers >= needed:
            accepted = inliers
            break

    if accepted is None:
        logger.debug("RANSAC: no consensus of %.2f within %d iterations",
                     config.min_inlier_ratio, config.max_iters)
        return EstimationResult.failure(
            FailureReason.RANSAC_EXHAUSTED,
            f"no hypothesis reached inlier ratio {config.min_inlier_ratio} in {config.max_iters} iterations",
            iterations=iters_run,
        )

    # ---------- Refit on all inliers ----------
    refit = model_fitter.fit(src[accepted], dst[accepted])
    if refit is None:
        return EstimationResult.failure(
            FailureReason.RANSAC_EXHAUSTED,
            "least-squares refit on the inlier set failed",
            iterations=iters_run,
        )

    final_model = refit.copy()
    if scale != 1.0:
        final_model[:, 2] /= scale

    if _RANSAC_DEBUG:
        logger.debug("[RANSAC] accepted at iter=%d inliers=%d/%d model=%s",
                     iters_run, int(np.count_nonzero(accepted)), n, final_model.tolist())

    return EstimationResult.success(
        final_model,
        accepted,
        iterations=iters_run,
        threshold=threshold,
        scale=scale,
    )


def ransac_rigid(
        src,
        dst,
        *,
        full_affine: bool = False,
        config: Optional[RansacConfig] = None,
        rng: Optional[np.random.Generator] = None,
        scale: float = 1.0,
) -> EstimationResult:
    """
    Robust similarity (full_affine=False) or affine (full_affine=True) fit
    between two point arrays.

    A fresh generator is created when rng is None; there is no module-level
    random state.
    """
    src = as_points(src)
    dst = as_points(dst)
    if rng is None:
        rng = np.random.default_rng()
    return ransac(
        fitter_for(full_affine),
        src,
        dst,
        config=config if config is not None else RansacConfig(),
        rng=rng,
        scale=scale,
    )
