"""Coverage path over the lateral surface of a cylinder.

The path is a stack of rings. Each ring samples the angle from 0
through 2*pi inclusive, so the first and last waypoint of a ring
coincide and close the loop.

Every waypoint frame follows the tool convention:
- z-axis: from the surface point toward the cylinder axis (into the part)
- y-axis: direction of increasing angle (tangent to the ring)
- x-axis: y x z (along the cylinder axis)
"""

from dataclasses import dataclass, field

import numpy as np
from scipy.spatial.transform import Rotation

# Angle samples within this tolerance of 2*pi are treated as exactly 2*pi
_ANGLE_EPS = 1e-9


@dataclass(frozen=True, eq=False)
class Waypoint:
    """Oriented surface waypoint.

    Attributes:
        position: Position (3,) [m].
        rotation: Rotation matrix (3, 3) whose columns are the x, y and
            z axes of the waypoint frame.
    """

    position: np.ndarray
    rotation: np.ndarray

    def __post_init__(self):
        position = np.array(self.position, dtype=np.float64).reshape(3)
        rotation = np.array(self.rotation, dtype=np.float64).reshape(3, 3)
        position.flags.writeable = False
        rotation.flags.writeable = False
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "rotation", rotation)

    @property
    def x_axis(self) -> np.ndarray:
        return self.rotation[:, 0]

    @property
    def y_axis(self) -> np.ndarray:
        return self.rotation[:, 1]

    @property
    def z_axis(self) -> np.ndarray:
        return self.rotation[:, 2]

    @property
    def xyz(self) -> np.ndarray:
        """Position (3,) [m]."""
        return self.position

    @property
    def xyzw(self) -> np.ndarray:
        """Orientation as a scalar-last quaternion (4,)."""
        return Rotation.from_matrix(self.rotation).as_quat()

    @property
    def wxyz(self) -> np.ndarray:
        """Orientation as a scalar-first quaternion (4,)."""
        x, y, z, w = self.xyzw
        return np.array([w, x, y, z])

    @property
    def transform(self) -> np.ndarray:
        """Homogeneous transform (4, 4)."""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.position
        return T


@dataclass
class CylinderPathConfig:
    """Parameters of the ring-stack coverage path.

    Attributes:
        radius: Cylinder radius [m].
        slice_height: Height increment between rings [m].
        n_slices: Number of rings.
        angle_step: Angular increment within a ring [rad].
        origin: Pose of the first ring center (4, 4). Rings stack along
            the origin's z-axis.
    """

    radius: float = 0.2
    slice_height: float = 0.1
    n_slices: int = 5
    angle_step: float = np.pi / 12
    origin: np.ndarray = field(default_factory=lambda: np.array([
        [1.0, 0.0, 0.0, 1.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.5],
        [0.0, 0.0, 0.0, 1.0],
    ]))


def ring_angles(angle_step: float) -> np.ndarray:
    """Angle samples of one ring, 0 through 2*pi inclusive.

    Produces ceil(2*pi / angle_step) + 1 samples spaced by angle_step.
    The last sample is clamped to exactly 2*pi, which also covers steps
    that do not divide the full turn.

    Args:
        angle_step: Angular increment [rad].

    Returns:
        Angles (M,) [rad].
    """
    if angle_step <= 0:
        raise ValueError(f"angle_step must be positive, got {angle_step}")

    n_steps = int(np.ceil(2 * np.pi / angle_step - _ANGLE_EPS))
    angles = np.arange(n_steps + 1) * angle_step
    angles[-1] = 2 * np.pi
    return angles


def surface_frame(theta: float) -> np.ndarray:
    """Waypoint frame at angle theta, in the ring frame.

    Args:
        theta: Angle around the cylinder axis [rad].

    Returns:
        Rotation matrix (3, 3) with columns x, y, z.
    """
    z_axis = -np.array([np.cos(theta), np.sin(theta), 0.0])
    y_axis = np.array([-np.sin(theta), np.cos(theta), 0.0])
    x_axis = np.cross(y_axis, z_axis)

    R = np.column_stack([x_axis, y_axis, z_axis])
    return R / np.linalg.norm(R, axis=0)


def make_cylinder_path(config: CylinderPathConfig | None = None) -> tuple[Waypoint, ...]:
    """Generate the oriented waypoint sequence over the cylinder surface.

    Outer loop over rings (increasing height), inner loop over angle.
    Both angle 0 and 2*pi are emitted for every ring.

    Args:
        config: Path parameters. Uses defaults if None.

    Returns:
        Waypoints ordered as they should be visited.
    """
    config = config or CylinderPathConfig()
    if config.radius <= 0:
        raise ValueError(f"radius must be positive, got {config.radius}")
    if config.n_slices < 1:
        raise ValueError(f"n_slices must be at least 1, got {config.n_slices}")

    origin = np.asarray(config.origin, dtype=np.float64)
    R0 = origin[:3, :3]
    p0 = origin[:3, 3]
    angles = ring_angles(config.angle_step)

    waypoints = []
    for i in range(config.n_slices):
        z = i * config.slice_height
        for theta in angles:
            offset = np.array([
                config.radius * np.cos(theta),
                config.radius * np.sin(theta),
                z,
            ])
            waypoints.append(Waypoint(
                position=p0 + R0 @ offset,
                rotation=R0 @ surface_frame(theta),
            ))

    return tuple(waypoints)
