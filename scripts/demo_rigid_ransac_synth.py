import logging

import numpy as np

from rigidstab import RansacConfig, estimate_rigid_transform
from rigidstab.ransac.solvers import apply_transform
from rigidstab.stabilize import decompose_similarity


def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    rng = np.random.default_rng(0)

    # True similarity: 3 degrees, scale 1.02, shift (15, -8)
    a = np.deg2rad(3.0)
    T_true = np.array(
        [[1.02 * np.cos(a), -1.02 * np.sin(a), 15.0],
         [1.02 * np.sin(a),  1.02 * np.cos(a), -8.0]],
        dtype=np.float64,
    )

    # Generate inlier points
    n_in = 200
    pts0 = rng.uniform([0, 0], [640, 480], size=(n_in, 2))
    pts1 = apply_transform(T_true, pts0)

    # Add Gaussian noise (pixel noise)
    pts1 += rng.normal(0.0, 0.8, size=pts1.shape)

    # Add outliers (wrong matches)
    n_out = 80
    o0 = rng.uniform([0, 0], [640, 480], size=(n_out, 2))
    o1 = rng.uniform([0, 0], [640, 480], size=(n_out, 2))

    pts0_all = np.vstack([pts0, o0])
    pts1_all = np.vstack([pts1, o1])

    for full_affine in (False, True):
        res = estimate_rigid_transform(
            pts0_all,
            pts1_all,
            full_affine=full_affine,
            config=RansacConfig(max_iters=500, min_inlier_ratio=0.6),
            seed=42,
        )

        print("model:", "affine" if full_affine else "similarity")
        if not res.ok:
            print("RANSAC failed:", res.reason, res.detail)
            continue

        print("T_est:\n", res.model)
        print("num_inliers:", res.num_inliers, "/", pts0_all.shape[0])
        print("iterations:", res.iterations, "threshold:", res.threshold)
        if not full_affine:
            tx, ty, angle, scale = decompose_similarity(res.model)
            print(f"tx={tx:.2f} ty={ty:.2f} angle={np.rad2deg(angle):.2f}deg scale={scale:.4f}")

    print("T_true:\n", T_true)


if __name__ == "__main__":
    main()
