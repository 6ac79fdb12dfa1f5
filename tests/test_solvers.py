import math

import numpy as np
import pytest

from rigidstab.ransac.solvers import (
    apply_transform,
    fit_affine,
    fit_similarity,
    residuals_l1,
    residuals_sq,
)


def _similarity(angle, scale, tx, ty):
    c = scale * math.cos(angle)
    s = scale * math.sin(angle)
    return np.array([[c, -s, tx], [s, c, ty]], dtype=np.float64)


def test_affine_pure_translation_three_points():
    src = np.array([[0, 0], [10, 0], [0, 10]], dtype=np.float64)
    dst = np.array([[5, 5], [15, 5], [5, 15]], dtype=np.float64)
    T = fit_affine(src, dst)
    assert T is not None
    assert np.allclose(T, [[1, 0, 5], [0, 1, 5]], atol=1e-9)


def test_affine_exact_on_three_non_collinear_points():
    T_true = np.array([[1.05, 0.02, 15.0], [-0.01, 0.98, -8.0]])
    src = np.array([[12.0, 40.0], [300.0, 55.0], [150.0, 410.0]])
    dst = apply_transform(T_true, src)

    T = fit_affine(src, dst)
    assert T is not None
    assert np.allclose(T, T_true, atol=1e-8)
    assert np.all(residuals_l1(T, src, dst) < 1e-8)


def test_affine_least_squares_many_points():
    rng = np.random.default_rng(3)
    T_true = np.array([[0.9, -0.15, 4.0], [0.2, 1.1, -12.0]])
    src = rng.uniform([0, 0], [640, 480], size=(60, 2))
    dst = apply_transform(T_true, src)

    T = fit_affine(src, dst)
    assert np.allclose(T, T_true, atol=1e-7)


def test_similarity_recovers_rotation_scale_translation():
    T_true = _similarity(angle=0.3, scale=1.2, tx=7.0, ty=-3.0)
    src = np.array([[0.0, 0.0], [50.0, 10.0], [20.0, 80.0], [-30.0, 45.0], [90.0, -60.0]])
    dst = apply_transform(T_true, src)

    T = fit_similarity(src, dst)
    assert T is not None
    assert np.allclose(T, T_true, atol=1e-8)
    assert math.isclose(math.atan2(T[1, 0], T[0, 0]), 0.3, abs_tol=1e-9)
    assert math.isclose(math.hypot(T[0, 0], T[1, 0]), 1.2, abs_tol=1e-9)


def test_similarity_exact_on_three_points():
    T_true = _similarity(angle=-1.1, scale=0.7, tx=-20.0, ty=33.0)
    src = np.array([[1.0, 2.0], [40.0, 7.0], [15.0, 60.0]])
    dst = apply_transform(T_true, src)

    T = fit_similarity(src, dst)
    assert np.allclose(T, T_true, atol=1e-8)


def test_similarity_block_structure_on_arbitrary_data():
    rng = np.random.default_rng(11)
    for _ in range(20):
        src = rng.uniform(-100, 100, size=(8, 2))
        dst = rng.uniform(-100, 100, size=(8, 2))
        T = fit_similarity(src, dst)
        assert T is not None
        assert math.isclose(T[0, 0], T[1, 1], rel_tol=1e-12, abs_tol=1e-12)
        assert math.isclose(T[1, 0], -T[0, 1], rel_tol=1e-12, abs_tol=1e-12)


def test_similarity_is_least_squares_optimal():
    rng = np.random.default_rng(5)
    T_true = _similarity(angle=0.05, scale=1.0, tx=3.0, ty=1.0)
    src = rng.uniform(0, 200, size=(40, 2))
    dst = apply_transform(T_true, src) + rng.normal(0.0, 0.5, size=(40, 2))

    T = fit_similarity(src, dst)
    best = residuals_sq(T, src, dst).sum()
    assert best <= residuals_sq(T_true, src, dst).sum()


def test_fit_needs_three_points():
    src = np.array([[0.0, 0.0], [1.0, 1.0]])
    assert fit_affine(src, src) is None
    assert fit_similarity(src, src) is None


def test_fit_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        fit_affine(np.zeros((3, 2)), np.zeros((4, 2)))


def test_rank_deficient_affine_still_returns_finite_model():
    # Collinear points leave the affine system rank deficient
    src = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0], [3.0, 3.0]])
    dst = src + 2.0
    T = fit_affine(src, dst)
    assert T is not None
    assert np.allclose(apply_transform(T, src), dst, atol=1e-8)


def test_residuals_l1_per_point():
    T = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    src = np.array([[0.0, 0.0], [1.0, 1.0]])
    dst = np.array([[1.0, -2.0], [1.0, 1.0]])
    assert np.allclose(residuals_l1(T, src, dst), [3.0, 0.0])
    assert np.allclose(residuals_sq(T, src, dst), [5.0, 0.0])
