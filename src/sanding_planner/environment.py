"""Environment context shared by scene setup and problem formulation.

The environment holds the kinematic tree, the joint state, the
registered manipulators and the collision world (attachable objects
and their attachments). One instance is owned by the pipeline for the
duration of a run and passed explicitly to every stage.
"""

import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

import numpy as np

from kinematics import JointSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Cylinder:
    """Cylinder shape centered on its frame, axis along z."""

    radius: float
    length: float

    def to_dict(self) -> dict:
        return {"type": "cylinder", "radius": self.radius, "length": self.length}


@dataclass
class Geometry:
    """Shapes and their poses relative to the object frame."""

    shapes: list = field(default_factory=list)
    shape_poses: list[np.ndarray] = field(default_factory=list)

    def add(self, shape, pose: np.ndarray | None = None) -> None:
        self.shapes.append(shape)
        self.shape_poses.append(np.eye(4) if pose is None else np.asarray(pose))


@dataclass
class AttachableObject:
    """Named rigid body that can be attached to a link.

    Attributes:
        name: Object name, unique within the environment.
        visual: Geometry used for display.
        collision: Geometry used for contact checking.
    """

    name: str
    visual: Geometry = field(default_factory=Geometry)
    collision: Geometry = field(default_factory=Geometry)


@dataclass
class AttachedBodyInfo:
    """Rigid attachment of a registered object to a parent link.

    Attributes:
        object_name: Name of a registered AttachableObject.
        parent_link_name: Link the object is fixed to.
        transform: Object frame in the parent link frame (4, 4).
    """

    object_name: str
    parent_link_name: str
    transform: np.ndarray = field(default_factory=lambda: np.eye(4))


@dataclass(frozen=True)
class Manipulator:
    """Named kinematic group from a base link to a tip link."""

    name: str
    base_link_name: str
    tip_link_name: str
    joint_names: tuple[str, ...]

    @property
    def num_joints(self) -> int:
        return len(self.joint_names)


class Environment(Protocol):
    """Operations the planner needs from an environment."""

    def add_attachable_object(self, obj: AttachableObject) -> bool: ...

    def remove_attachable_object(self, name: str) -> bool: ...

    def attach_body(self, info: AttachedBodyInfo) -> bool: ...

    def add_manipulator(self, base_link: str, tip_link: str, name: str) -> bool: ...

    def get_manipulator(self, name: str) -> Manipulator | None: ...

    def get_current_joint_values(self, manipulator: str) -> np.ndarray: ...

    def get_joint_names(self) -> list[str]: ...

    def set_state(self, names: Sequence[str], values: Sequence[float]) -> None: ...


class KinematicEnvironment:
    """In-memory environment built from a list of joints.

    Usage:
        env = KinematicEnvironment(joints)
        env.add_manipulator("world_frame", "sander_tcp", "my_robot")
        q = env.get_current_joint_values("my_robot")
    """

    def __init__(self, joints: Sequence[JointSpec]):
        """Initialize the kinematic tree.

        Args:
            joints: Joints of the tree. Every link may have at most one
                parent joint.
        """
        self._joints = list(joints)
        self._parent_joint: dict[str, JointSpec] = {}
        links = []
        for joint in self._joints:
            if joint.child in self._parent_joint:
                raise ValueError(f"Link '{joint.child}' has more than one parent joint")
            self._parent_joint[joint.child] = joint
            for link in (joint.parent, joint.child):
                if link not in links:
                    links.append(link)
        self._links = links

        self._state = {
            j.name: 0.0 for j in self._joints if j.is_actuated
        }
        self._manipulators: dict[str, Manipulator] = {}
        self._objects: dict[str, AttachableObject] = {}
        self._attached: dict[str, AttachedBodyInfo] = {}

    @classmethod
    def from_chain(cls, chain: Sequence[tuple]) -> "KinematicEnvironment":
        """Build from (name, parent, child, xyz, rpy, axis, type) tuples."""
        return cls([JointSpec(*row) for row in chain])

    # ----------------------------------------------------------------
    # Kinematic tree
    # ----------------------------------------------------------------

    def get_link_names(self) -> list[str]:
        return list(self._links)

    def get_joint_names(self) -> list[str]:
        """Names of all actuated joints, in definition order."""
        return list(self._state)

    def get_chain(self, manipulator: str) -> list[JointSpec]:
        """Joints from the manipulator base to its tip, fixed joints included.

        Raises:
            KeyError: If the manipulator is not registered.
        """
        manip = self._manipulators[manipulator]
        return self.get_link_chain(manip.base_link_name, manip.tip_link_name)

    def get_link_chain(self, base_link: str, tip_link: str) -> list[JointSpec] | None:
        """Joints from base_link down to tip_link, or None if not connected."""
        chain = []
        link = tip_link
        while link != base_link:
            joint = self._parent_joint.get(link)
            if joint is None:
                return None
            chain.append(joint)
            link = joint.parent
        chain.reverse()
        return chain

    # ----------------------------------------------------------------
    # Manipulators and joint state
    # ----------------------------------------------------------------

    def add_manipulator(self, base_link: str, tip_link: str, name: str) -> bool:
        """Register a kinematic group.

        Returns:
            False if the name is taken, a link is unknown, or tip_link
            does not descend from base_link.
        """
        if name in self._manipulators:
            logger.warning("Manipulator '%s' already exists", name)
            return False
        if base_link not in self._links or tip_link not in self._links:
            logger.warning(
                "Unknown link for manipulator '%s': %s -> %s",
                name, base_link, tip_link,
            )
            return False

        chain = self.get_link_chain(base_link, tip_link)
        if chain is None:
            logger.warning("'%s' is not a descendant of '%s'", tip_link, base_link)
            return False

        joint_names = tuple(j.name for j in chain if j.is_actuated)
        self._manipulators[name] = Manipulator(
            name=name,
            base_link_name=base_link,
            tip_link_name=tip_link,
            joint_names=joint_names,
        )
        logger.info(
            "Added manipulator '%s' (%s -> %s, %d joints)",
            name, base_link, tip_link, len(joint_names),
        )
        return True

    def get_manipulator(self, name: str) -> Manipulator | None:
        return self._manipulators.get(name)

    def set_state(self, names: Sequence[str], values: Sequence[float]) -> None:
        """Set joint positions by name.

        Raises:
            ValueError: On length mismatch or unknown joint name.
        """
        if len(names) != len(values):
            raise ValueError(
                f"Got {len(names)} joint names but {len(values)} values"
            )
        unknown = [n for n in names if n not in self._state]
        if unknown:
            raise ValueError(f"Unknown joints: {unknown}")
        for name, value in zip(names, values):
            self._state[name] = float(value)

    def get_current_joint_values(self, manipulator: str | None = None) -> np.ndarray:
        """Current joint positions of a manipulator (or of all joints).

        Raises:
            KeyError: If the manipulator is not registered.
        """
        if manipulator is None:
            names = list(self._state)
        else:
            names = self._manipulators[manipulator].joint_names
        return np.array([self._state[n] for n in names])

    # ----------------------------------------------------------------
    # Collision world
    # ----------------------------------------------------------------

    def add_attachable_object(self, obj: AttachableObject) -> bool:
        """Register an object without attaching it.

        Returns:
            False if the name is empty or already used by a link or object.
        """
        if not obj.name or obj.name in self._objects or obj.name in self._links:
            logger.warning("Rejected attachable object name '%s'", obj.name)
            return False
        self._objects[obj.name] = obj
        return True

    def remove_attachable_object(self, name: str) -> bool:
        """Unregister an object that is not attached.

        Returns:
            False if the object is unknown or still attached.
        """
        if name not in self._objects or name in self._attached:
            return False
        del self._objects[name]
        return True

    def attach_body(self, info: AttachedBodyInfo) -> bool:
        """Attach a registered object to a link.

        Returns:
            False if the object is unknown or already attached, or the
            parent link does not exist.
        """
        if info.object_name not in self._objects:
            logger.warning("Cannot attach unknown object '%s'", info.object_name)
            return False
        if info.object_name in self._attached:
            logger.warning("Object '%s' is already attached", info.object_name)
            return False
        if info.parent_link_name not in self._links:
            logger.warning("Unknown parent link '%s'", info.parent_link_name)
            return False
        self._attached[info.object_name] = info
        return True

    def get_attachable_objects(self) -> dict[str, AttachableObject]:
        return dict(self._objects)

    def get_attached_bodies(self) -> dict[str, AttachedBodyInfo]:
        return dict(self._attached)
