"""
Stabilization: remove high-frequency jitter while keeping the intended motion.

  1) Decompose each frame-to-frame transform into (dx, dy, da)
  2) Accumulate them into a camera trajectory
  3) Smooth the trajectory with a centred moving average
  4) Shift each frame-to-frame transform by the gap between the smoothed
     and the actual path at that frame:

        new_i = param_i + (smoothed_i - cumulative_i)

     new_i is applied to frame i on its own as that frame's warp; the
     corrected values are not accumulated again.

Trajectory arrays are (K,3) float64 with columns (x, y, angle).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..ransac.types import Mat2x3, FloatArray


@dataclass(frozen=True)
class TransformParam:
    """
    Rigid frame-to-frame motion: translation (dx, dy) and rotation da (radians).
    """
    dx: float
    dy: float
    da: float

    @classmethod
    def from_matrix(cls, T: Mat2x3) -> "TransformParam":
        """
        Keep translation and rotation of a 2x3 transform; scale and shear
        are dropped.
        """
        T = np.asarray(T, dtype=np.float64)
        if T.shape != (2, 3):
            raise ValueError(f"Expected T shape (2,3), got {T.shape}")
        return cls(
            dx=float(T[0, 2]),
            dy=float(T[1, 2]),
            da=math.atan2(float(T[1, 0]), float(T[0, 0])),
        )

    def to_matrix(self) -> Mat2x3:
        """
        [[cos(da), -sin(da), dx],
         [sin(da),  cos(da), dy]]
        """
        c, s = math.cos(self.da), math.sin(self.da)
        return np.array(
            [
                [c, -s, self.dx],
                [s, c, self.dy],
            ],
            dtype=np.float64,
        )


def decompose_similarity(T: Mat2x3) -> tuple[float, float, float, float]:
    """
    Split a similarity transform [[c, -s, tx], [s, c, ty]] into
    (tx, ty, angle, scale) with angle = atan2(s, c), scale = sqrt(c^2 + s^2).
    """
    p = TransformParam.from_matrix(T)
    scale = math.hypot(float(T[0, 0]), float(T[1, 0]))
    return p.dx, p.dy, p.da, scale


def _as_array(params: Sequence[TransformParam]) -> FloatArray:
    if len(params) == 0:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([[p.dx, p.dy, p.da] for p in params], dtype=np.float64)


def accumulate(params: Sequence[TransformParam]) -> FloatArray:
    """
    Camera path: running sum of (dx, dy, da).
    """
    return np.cumsum(_as_array(params), axis=0)


def smooth(traj: FloatArray, radius: int) -> FloatArray:
    """
    Centred moving average over [i - radius, i + radius], clipped at both ends
    (the window shrinks near the ends instead of padding).

    radius:
      Larger => more stable video, less reactive to sudden panning.
    """
    if radius < 0:
        raise ValueError("smooth radius must be >= 0")
    traj = np.asarray(traj, dtype=np.float64)
    if traj.ndim != 2:
        raise ValueError(f"Expected trajectory shape (K,D), got {traj.shape}")

    k = traj.shape[0]
    if k == 0:
        return traj.copy()

    # Prefix sums give each window sum in O(1)
    csum = np.vstack([np.zeros((1, traj.shape[1])), np.cumsum(traj, axis=0)])
    idx = np.arange(k)
    lo = np.clip(idx - radius, 0, k)
    hi = np.clip(idx + radius + 1, 0, k)
    counts = (hi - lo).astype(np.float64)[:, None]
    return (csum[hi] - csum[lo]) / counts


def corrected_transforms(params: Sequence[TransformParam], radius: int) -> list[TransformParam]:
    """
    Per-frame warp parameters: param_i + (smooth(cum)_i - cum_i).

    Each result is applied to its own frame (see TransformParam.to_matrix);
    they are not meant to be accumulated.
    """
    raw = _as_array(params)
    cum = np.cumsum(raw, axis=0)
    target = smooth(cum, radius)
    new = raw + (target - cum)
    return [TransformParam(dx=float(r[0]), dy=float(r[1]), da=float(r[2])) for r in new]
