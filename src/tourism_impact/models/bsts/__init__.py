"""Structural time-series engines."""

from tourism_impact.models.bsts.bsts_pymc import PyMCStructuralModel
from tourism_impact.models.bsts.statespace import StateSpaceStructuralModel

__all__ = ["PyMCStructuralModel", "StateSpaceStructuralModel"]
