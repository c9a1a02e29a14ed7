"""Surface coverage path generation."""

from .cylinder import (
    CylinderPathConfig,
    Waypoint,
    make_cylinder_path,
    ring_angles,
    surface_frame,
)

__all__ = [
    "CylinderPathConfig",
    "Waypoint",
    "make_cylinder_path",
    "ring_angles",
    "surface_frame",
]
