"""
Geometry helpers for RANSAC sample validation and threshold scaling.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .types import Points2D

# float32 machine epsilon; tracked points come from OpenCV as float32.
FLT_EPSILON = float(np.finfo(np.float32).eps)


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


# ---------- Degeneracy Check Helpers ----------
def _is_near_collinear(p0: np.ndarray, p1: np.ndarray, p2: np.ndarray, eps: float) -> bool:
    """
    Compare the 2D cross product of the edges (p1 - p0), (p2 - p0) against
    eps * |p1 - p0| * |p2 - p0|, i.e. |sin(angle between edges)| < eps.
    """
    dx1, dy1 = float(p1[0] - p0[0]), float(p1[1] - p0[1])
    dx2, dy2 = float(p2[0] - p0[0]), float(p2[1] - p0[1])

    cross = abs(dx1 * dy2 - dy1 * dx2)
    norms = np.hypot(dx1, dy1) * np.hypot(dx2, dy2)
    return cross < eps * norms


def is_degenerate_sample(
        a0: np.ndarray, a1: np.ndarray, a2: np.ndarray,
        b0: np.ndarray, b1: np.ndarray, b2: np.ndarray,
        eps: float = 0.01,
) -> bool:
    """
    True if the source triple (a0, a1, a2) or the destination triple
    (b0, b1, b2) is nearly collinear.

    A collinear triple makes the normal equations singular for affine, and
    gives a hypothesis that cannot be trusted for similarity either.
    """
    return _is_near_collinear(a0, a1, a2, eps) or _is_near_collinear(b0, b1, b2, eps)


def are_coincident(p: np.ndarray, q: np.ndarray, eps: float = FLT_EPSILON) -> bool:
    """L1 distance between two points is below eps."""
    return abs(float(p[0] - q[0])) + abs(float(p[1] - q[1])) < eps


def bounding_box(points: Points2D) -> Rect:
    """
    Axis-aligned bounding box of (N,2) points.
    """
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(f"Expected points shape (N,2), got {points.shape}")
    if points.shape[0] == 0:
        raise ValueError("bounding_box needs at least one point")

    lo = points.min(axis=0)
    hi = points.max(axis=0)
    return Rect(
        x=float(lo[0]),
        y=float(lo[1]),
        width=float(hi[0] - lo[0]),
        height=float(hi[1] - lo[1]),
    )
