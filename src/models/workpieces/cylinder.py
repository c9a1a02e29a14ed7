"""Cylinder work-piece model for surface finishing passes."""

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np


@dataclass
class CylinderWorkpiece:
    """Cylinder work-piece definition.

    The cylinder axis is the z-axis of its own frame and the shape is
    centered on that frame (it spans [-length/2, length/2] along z).
    The frame is rigidly attached to ``parent_link`` at ``offset``.
    Default: 20cm radius, 1m long part standing 0.5m above world_frame,
    1m in front of the robot.
    """

    name: str = "part"
    radius: float = 0.20    # [m]
    length: float = 1.0     # [m]
    parent_link: str = "world_frame"
    offset: Tuple[float, float, float] = field(
        default_factory=lambda: (1.0, 0.0, 0.5)
    )

    @property
    def transform(self) -> np.ndarray:
        """Homogeneous transform from ``parent_link`` to the cylinder frame (4, 4)."""
        T = np.eye(4)
        T[:3, 3] = self.offset
        return T
