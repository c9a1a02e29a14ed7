"""Pairwise safety margins and work-piece clearance for collision costs."""

from .safety_margin import (
    MarginData,
    SafetyMarginSpec,
    create_safety_margin_data_vector,
    pair_key,
)
from .sphere_cylinder import (
    SphereCylinderConfig,
    SphereCylinderDistance,
    point_cylinder_distance,
)

__all__ = [
    "MarginData",
    "SafetyMarginSpec",
    "SphereCylinderConfig",
    "SphereCylinderDistance",
    "create_safety_margin_data_vector",
    "pair_key",
    "point_cylinder_distance",
]
