"""Continuous substance fields."""
from .substance import STABILITY_BOUND, GradientSampler, SubstanceField
from .initializers import GaussianBand, Uniform

__all__ = ["STABILITY_BOUND", "GradientSampler", "SubstanceField", "GaussianBand", "Uniform"]
