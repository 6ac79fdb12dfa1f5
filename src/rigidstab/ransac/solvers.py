"""
Closed-form least-squares solvers for the two motion models (2x3 form).

Affine (6 parameters):

    dx = a*x + b*y + tx
    dy = c*x + d*y + ty

Similarity (4 parameters: rotation + uniform scale + translation):

    dx = c*x - s*y + tx
    dy = s*x + c*y + ty

Both solvers accumulate the normal equations A^T A theta = A^T b directly
from point sums, then solve with an SVD-based least-squares solve so that
N = 3 (exact) and N > 3 (overdetermined) go through the same code, and a
rank-deficient system still yields the minimum-norm solution instead of
raising.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .types import Points2D, Mat2x3, FloatArray, as_homogeneous, is_valid_mat2x3


def _check_pair(src: Points2D, dst: Points2D) -> None:
    if src.shape != dst.shape:
        raise ValueError(f"src and dst must have same shape, got {src.shape} vs {dst.shape}")
    if src.ndim != 2 or src.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {src.shape}")


def _solve_normal(A: FloatArray, b: FloatArray) -> Optional[FloatArray]:
    """
    Solve the small symmetric normal system with SVD least squares.
    """
    try:
        theta, _, _, _ = np.linalg.lstsq(A, b, rcond=None)
    except np.linalg.LinAlgError:
        return None
    return theta


# ---------- Affine Fitting ----------
def fit_affine(src: Points2D, dst: Points2D) -> Optional[Mat2x3]:
    """
    Fit a full affine transform from N >= 3 correspondences.

    The 6x6 normal matrix is block diagonal: the x' row parameters (a, b, tx)
    and the y' row parameters (c, d, ty) share the same 3x3 block

        G = [[Sxx, Sxy, Sx],
             [Sxy, Syy, Sy],
             [Sx,  Sy,  N ]]

    with right-hand sides (Sx*dx, Sy*dx, Sdx) and (Sx*dy, Sy*dy, Sdy).

    Returns:
      2x3 affine matrix, or None if fewer than 3 points or the solve fails.
    """
    _check_pair(src, dst)
    if src.shape[0] < 3:
        return None

    ph = as_homogeneous(src)                 # (N,3) rows [x, y, 1]
    G = ph.T @ ph                            # 3x3 block

    A = np.zeros((6, 6), dtype=np.float64)
    A[:3, :3] = G
    A[3:, 3:] = G

    b = np.concatenate([ph.T @ dst[:, 0], ph.T @ dst[:, 1]])

    theta = _solve_normal(A, b)
    if theta is None:
        return None

    T = theta.reshape(2, 3).astype(np.float64)
    if not is_valid_mat2x3(T):
        return None
    return T


# ---------- Similarity Fitting ----------
def fit_similarity(src: Points2D, dst: Points2D) -> Optional[Mat2x3]:
    """
    Fit a similarity transform from N >= 3 correspondences.

    Per point the design rows for unknowns (c, s, tx, ty) are

        [x, -y, 1, 0] -> dx
        [y,  x, 0, 1] -> dy

    so the normal equations become

        [[Sr,  0,   Sx,  Sy],      [c ]    [S(x*dx + y*dy)]
         [0,   Sr, -Sy,  Sx],   .  [s ] =  [S(x*dy - y*dx)]
         [Sx, -Sy,  N,   0 ],      [tx]    [Sdx           ]
         [Sy,  Sx,  0,   N ]]      [ty]    [Sdy           ]

    where Sr = S(x^2 + y^2). The result expands to [[c, -s, tx], [s, c, ty]].
    """
    _check_pair(src, dst)
    n = src.shape[0]
    if n < 3:
        return None

    x, y = src[:, 0], src[:, 1]
    u, v = dst[:, 0], dst[:, 1]

    sr = float(np.sum(x * x + y * y))
    sx = float(np.sum(x))
    sy = float(np.sum(y))

    A = np.array(
        [
            [sr, 0.0, sx, sy],
            [0.0, sr, -sy, sx],
            [sx, -sy, float(n), 0.0],
            [sy, sx, 0.0, float(n)],
        ],
        dtype=np.float64,
    )
    b = np.array(
        [
            np.sum(x * u + y * v),
            np.sum(x * v - y * u),
            np.sum(u),
            np.sum(v),
        ],
        dtype=np.float64,
    )

    theta = _solve_normal(A, b)
    if theta is None:
        return None

    c, s, tx, ty = map(float, theta.tolist())
    T = np.array(
        [
            [c, -s, tx],
            [s, c, ty],
        ],
        dtype=np.float64,
    )
    if not is_valid_mat2x3(T):
        return None
    return T


# ---------- Apply transform + residuals ----------
def apply_transform(T: Mat2x3, pts: Points2D) -> Points2D:
    """
    Apply a 2x3 transform to (N,2) points, returning (N,2) points.
    """
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")
    if T.shape != (2, 3):
        raise ValueError(f"Expected T shape (2,3), got {T.shape}")

    # Each point is a row, so multiply by T^T
    return (as_homogeneous(pts) @ T.T).astype(np.float64)


def residuals_l1(T: Mat2x3, src: Points2D, dst: Points2D) -> FloatArray:
    """
    Per-point L1 residual used for inlier scoring:

        e_i = |x'_i - dst_x| + |y'_i - dst_y|

    Returns shape (N,)
    """
    _check_pair(src, dst)
    diff = apply_transform(T, src) - dst.astype(np.float64)
    return np.abs(diff).sum(axis=1)


def residuals_sq(T: Mat2x3, src: Points2D, dst: Points2D) -> FloatArray:
    """
    Per-point squared L2 residual (the quantity the solvers minimize).
    """
    _check_pair(src, dst)
    diff = apply_transform(T, src) - dst.astype(np.float64)
    return np.sum(diff * diff, axis=1)
