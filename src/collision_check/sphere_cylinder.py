"""FK-based clearance between tool spheres and a cylinder work-piece.

Each checked link is approximated by a sphere at its origin. The
work-piece is a solid cylinder. Distances are signed: positive means
separated, negative means the sphere penetrates the cylinder.
"""

from dataclasses import dataclass, field
from typing import Mapping

import numpy as np


def point_cylinder_distance(
    point: np.ndarray,
    radius: float,
    length: float,
) -> float:
    """Signed distance from a point to a solid cylinder.

    The cylinder is centered on the origin with its axis along z.

    Args:
        point: Point in the cylinder frame (3,).
        radius: Cylinder radius [m].
        length: Cylinder length [m].

    Returns:
        Signed distance [m], negative inside.
    """
    r = float(np.hypot(point[0], point[1]))
    dz_abs = abs(float(point[2]))
    half = length / 2

    if r <= radius and dz_abs <= half:
        return -min(radius - r, half - dz_abs)

    dr = max(r - radius, 0.0)
    dz = max(dz_abs - half, 0.0)
    return float(np.hypot(dr, dz))


@dataclass
class SphereCylinderConfig:
    """Geometry of the clearance model.

    Attributes:
        cylinder_name: Collision body name of the cylinder.
        radius: Cylinder radius [m].
        length: Cylinder length [m].
        transform: Cylinder frame in the kinematics base frame (4, 4).
        link_radii: Sphere radius for each checked link [m].
    """

    cylinder_name: str = "part"
    radius: float = 0.2
    length: float = 1.0
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))
    link_radii: dict[str, float] = field(default_factory=dict)


class SphereCylinderDistance:
    """Pairwise signed distances between link spheres and a cylinder.

    Usage:
        distance_fn = SphereCylinderDistance(config, {"sander_disk": disk_kin})
        distances = distance_fn(q)  # {("sander_disk", "part"): 0.031}
    """

    def __init__(self, config: SphereCylinderConfig, link_kinematics: Mapping):
        """Initialize the clearance model.

        Args:
            config: Cylinder geometry and link sphere radii.
            link_kinematics: Forward kinematics per checked link, each
                with a forward_kinematics(q) -> (position, rotation) method.
        """
        self.config = config
        self.link_kinematics = dict(link_kinematics)

        T = np.asarray(config.transform, dtype=np.float64)
        self._R_inv = T[:3, :3].T
        self._p = T[:3, 3]

    def __call__(self, q: np.ndarray) -> dict[tuple[str, str], float]:
        distances = {}
        for link, kinematics in self.link_kinematics.items():
            position, _ = kinematics.forward_kinematics(q)
            local = self._R_inv @ (position - self._p)
            sphere_radius = self.config.link_radii.get(link, 0.0)
            distances[(link, self.config.cylinder_name)] = point_cylinder_distance(
                local, self.config.radius, self.config.length,
            ) - sphere_radius
        return distances
