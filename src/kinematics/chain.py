"""Pinocchio-based forward kinematics of a serial joint chain.

The chain is given as URDF-style joint records (parent link, child
link, origin xyz/rpy, axis, type). Fixed joints are folded into the
placement of the next moving joint, so the Pinocchio model only holds
the actuated joints plus one operational frame for the tip link.
"""

from dataclasses import dataclass, field
from typing import Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

JOINT_TYPES = ("revolute", "continuous", "prismatic", "fixed")


@dataclass(frozen=True)
class JointSpec:
    """One joint of a kinematic tree.

    Attributes:
        name: Joint name.
        parent: Parent link name.
        child: Child link name.
        xyz: Origin translation in the parent link frame [m].
        rpy: Origin rotation as fixed-axis roll, pitch, yaw [rad].
        axis: Motion axis in the joint frame.
        joint_type: One of JOINT_TYPES.
    """

    name: str
    parent: str
    child: str
    xyz: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    rpy: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    axis: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    joint_type: str = field(default="revolute")

    def __post_init__(self):
        if self.joint_type not in JOINT_TYPES:
            raise ValueError(
                f"Unknown joint type '{self.joint_type}' for joint '{self.name}'"
            )

    @property
    def is_actuated(self) -> bool:
        return self.joint_type != "fixed"

    @property
    def origin(self) -> np.ndarray:
        """Joint origin in the parent link frame (4, 4)."""
        T = np.eye(4)
        T[:3, :3] = Rotation.from_euler("xyz", self.rpy).as_matrix()
        T[:3, 3] = self.xyz
        return T


class ChainKinematics:
    """Forward kinematics of a serial chain from base link to tip link.

    Usage:
        kin = ChainKinematics(env.get_chain("my_robot"), tip_link="sander_tcp")
        position, rotation = kin.forward_kinematics(q)
    """

    def __init__(self, joints: Sequence[JointSpec], tip_link: str):
        """Build the Pinocchio model.

        Args:
            joints: Chain joints ordered from base to tip (fixed joints
                included).
            tip_link: Link whose pose is reported.
        """
        import pinocchio as pin

        self._pin = pin
        self.tip_link = tip_link
        self.model = pin.Model()

        parent_id = 0  # universe
        pending = np.eye(4)
        self.joint_names = []
        for joint in joints:
            T = pending @ joint.origin
            if not joint.is_actuated:
                pending = T
                continue

            axis = np.asarray(joint.axis, dtype=np.float64)
            axis = axis / np.linalg.norm(axis)
            if joint.joint_type == "prismatic":
                joint_model = pin.JointModelPrismaticUnaligned(*axis)
            else:
                joint_model = pin.JointModelRevoluteUnaligned(*axis)

            placement = pin.SE3(T[:3, :3].copy(), T[:3, 3].copy())
            parent_id = self.model.addJoint(
                parent_id, joint_model, placement, joint.name,
            )
            self.joint_names.append(joint.name)
            pending = np.eye(4)

        tip_placement = pin.SE3(pending[:3, :3].copy(), pending[:3, 3].copy())
        self._tip_id = self.model.addFrame(pin.Frame(
            tip_link, parent_id, 0, tip_placement, pin.FrameType.OP_FRAME,
        ))
        self.data = self.model.createData()

    @property
    def num_joints(self) -> int:
        return len(self.joint_names)

    def forward_kinematics(self, q: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Compute the tip link pose in the base frame.

        Args:
            q: Joint configuration (num_joints,).

        Returns:
            Tuple of (position (3,), rotation (3, 3)).
        """
        q = np.asarray(q, dtype=np.float64).ravel()
        self._pin.forwardKinematics(self.model, self.data, q)
        self._pin.updateFramePlacements(self.model, self.data)
        oMf = self.data.oMf[self._tip_id]
        return oMf.translation.copy(), oMf.rotation.copy()
