"""
Adapters: make the solver functions conform to the ModelFitter Protocol.

This keeps ransac/core.py model-agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .types import Points2D, Mat2x3, FloatArray, ModelFitter
from .solvers import fit_affine, fit_similarity, residuals_l1


@dataclass(frozen=True)
class AffineFitter(ModelFitter[Mat2x3]):
    name: str = "affine"

    def fit(self, src: Points2D, dst: Points2D) -> Optional[Mat2x3]:
        return fit_affine(src, dst)

    def residuals(self, model: Mat2x3, src: Points2D, dst: Points2D) -> FloatArray:
        return residuals_l1(model, src, dst)


@dataclass(frozen=True)
class SimilarityFitter(ModelFitter[Mat2x3]):
    """
    Rotation + uniform scale + translation.
    """
    name: str = "similarity"

    def fit(self, src: Points2D, dst: Points2D) -> Optional[Mat2x3]:
        return fit_similarity(src, dst)

    def residuals(self, model: Mat2x3, src: Points2D, dst: Points2D) -> FloatArray:
        return residuals_l1(model, src, dst)


def fitter_for(full_affine: bool) -> ModelFitter[Mat2x3]:
    return AffineFitter() if full_affine else SimilarityFitter()
