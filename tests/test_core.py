import math

import numpy as np
import pytest

from rigidstab.ransac.core import draw_sample, inlier_threshold, ransac, ransac_rigid
from rigidstab.ransac.fitters import AffineFitter, SimilarityFitter
from rigidstab.ransac.solvers import apply_transform, fit_affine, residuals_sq
from rigidstab.ransac.types import EstimationResult, FailureReason, RansacConfig

T_AFFINE = np.array([[1.05, 0.02, 15.0], [-0.01, 0.98, -8.0]])
T_SIMILARITY = np.array(
    [[math.cos(0.1) * 1.1, -math.sin(0.1) * 1.1, -6.0],
     [math.sin(0.1) * 1.1, math.cos(0.1) * 1.1, 12.0]]
)


def _scene(T, n_in=80, n_out=20, noise=0.0, seed=0):
    """
    Inliers follow T; outliers are displaced from T by 300-500 px, so their
    L1 residual under T is far above the scene-scaled threshold.
    """
    rng = np.random.default_rng(seed)
    n = n_in + n_out
    src = rng.uniform([0, 0], [640, 480], size=(n, 2))
    dst = apply_transform(T, src)
    if noise > 0:
        dst[:n_in] += rng.normal(0.0, noise, size=(n_in, 2))

    angle = rng.uniform(0, 2 * np.pi, size=n_out)
    radius = rng.uniform(300, 500, size=n_out)
    dst[n_in:] += np.stack([radius * np.cos(angle), radius * np.sin(angle)], axis=1)

    truth = np.zeros(n, dtype=bool)
    truth[:n_in] = True
    return src, dst, truth


def test_recovers_affine_with_outliers():
    src, dst, truth = _scene(T_AFFINE)
    res = ransac(
        AffineFitter(), src, dst,
        config=RansacConfig(max_iters=500, min_inlier_ratio=0.7),
        rng=np.random.default_rng(42),
    )
    assert res.ok
    assert np.array_equal(res.inliers, truth)
    assert res.num_inliers == 80
    assert np.allclose(res.model, T_AFFINE, atol=1e-6)


def test_recovers_similarity_with_outliers():
    src, dst, truth = _scene(T_SIMILARITY, seed=1)
    res = ransac_rigid(
        src, dst,
        full_affine=False,
        config=RansacConfig(min_inlier_ratio=0.7),
        rng=np.random.default_rng(7),
    )
    assert res.ok
    assert np.array_equal(res.inliers, truth)
    assert np.allclose(res.model, T_SIMILARITY, atol=1e-6)


def test_recovers_with_half_outliers_at_default_ratio():
    src, dst, _ = _scene(T_AFFINE, n_in=30, n_out=20, seed=2)
    res = ransac_rigid(src, dst, full_affine=True, rng=np.random.default_rng(0))
    assert res.ok
    assert np.allclose(res.model, T_AFFINE, atol=1e-3)


def test_insufficient_points():
    src = np.array([[0.0, 0.0], [1.0, 1.0]])
    res = ransac_rigid(src, src, rng=np.random.default_rng(0))
    assert not res.ok
    assert res.reason is FailureReason.INSUFFICIENT_POINTS
    assert res.model is None


def test_collinear_sources_exhaust_sampling():
    xs = np.arange(30, dtype=np.float64)
    src = np.stack([xs, 2.0 * xs], axis=1)
    dst = np.random.default_rng(1).uniform(0, 100, size=(30, 2))
    res = ransac_rigid(
        src, dst,
        full_affine=True,
        config=RansacConfig(max_iters=20),
        rng=np.random.default_rng(0),
    )
    assert res.reason is FailureReason.DEGENERATE_SAMPLE_EXHAUSTED
    assert res.iterations == 1


def test_no_consensus_exhausts_iterations():
    rng = np.random.default_rng(4)
    src = rng.uniform(0, 500, size=(50, 2))
    dst = rng.uniform(0, 500, size=(50, 2))
    res = ransac_rigid(
        src, dst,
        full_affine=True,
        config=RansacConfig(max_iters=25, min_inlier_ratio=0.9),
        rng=np.random.default_rng(0),
    )
    assert res.reason is FailureReason.RANSAC_EXHAUSTED
    assert res.iterations == 25


def test_first_consensus_wins():
    src, dst, _ = _scene(T_AFFINE, n_out=0)
    res = ransac_rigid(src, dst, full_affine=True, rng=np.random.default_rng(3))
    assert res.ok
    assert res.iterations == 1
    assert res.num_inliers == src.shape[0]


def test_refit_is_no_worse_than_sample_fit():
    src, dst, _ = _scene(T_AFFINE, noise=1.5, seed=8)
    res = ransac_rigid(
        src, dst,
        full_affine=True,
        config=RansacConfig(min_inlier_ratio=0.7),
        rng=np.random.default_rng(9),
    )
    assert res.ok

    s_in, d_in = src[res.inliers], dst[res.inliers]
    idx = draw_sample(s_in, d_in, np.random.default_rng(10), max_tries=100)
    sample_model = fit_affine(s_in[idx], d_in[idx])

    refit_sse = residuals_sq(res.model, s_in, d_in).sum()
    sample_sse = residuals_sq(sample_model, s_in, d_in).sum()
    assert refit_sse <= sample_sse


def test_scale_divides_translation_only():
    src, dst, _ = _scene(T_AFFINE, n_out=0)
    res = ransac(AffineFitter(), src, dst, rng=np.random.default_rng(0), scale=0.25)
    assert res.ok
    assert np.allclose(res.model[:, :2], T_AFFINE[:, :2], atol=1e-8)
    assert np.allclose(res.model[:, 2], T_AFFINE[:, 2] / 0.25, atol=1e-6)
    assert res.scale == 0.25


def test_same_generator_seed_is_reproducible():
    src, dst, _ = _scene(T_SIMILARITY, n_in=60, n_out=40, noise=0.5, seed=5)
    a = ransac(SimilarityFitter(), src, dst, rng=np.random.default_rng(123))
    b = ransac(SimilarityFitter(), src, dst, rng=np.random.default_rng(123))
    assert a.ok and b.ok
    assert np.array_equal(a.model, b.model)
    assert a.iterations == b.iterations


def test_threshold_scales_with_destination_extent():
    dst = np.array([[0.0, 0.0], [200.0, 50.0], [10.0, 100.0]])
    assert inlier_threshold(dst) == pytest.approx(10.0)


def test_draw_sample_returns_distinct_valid_indices():
    rng = np.random.default_rng(0)
    src = rng.uniform(0, 100, size=(10, 2))
    idx = draw_sample(src, src, rng, max_tries=50)
    assert idx is not None
    assert len(set(idx.tolist())) == 3


def test_mismatched_arrays_raise():
    with pytest.raises(ValueError):
        ransac(AffineFitter(), np.zeros((5, 2)), np.zeros((4, 2)), rng=np.random.default_rng(0))


def test_config_validation():
    with pytest.raises(ValueError):
        RansacConfig(max_iters=0)
    with pytest.raises(ValueError):
        RansacConfig(min_inlier_ratio=0.0)
    assert RansacConfig().sample_size == 3


def test_failure_result_has_no_model():
    res = EstimationResult.failure(FailureReason.RANSAC_EXHAUSTED, "x")
    assert not res.ok
    assert res.inliers is None
