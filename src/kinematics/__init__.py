"""Forward kinematics for serial manipulators."""

from .chain import ChainKinematics, JointSpec

__all__ = ["ChainKinematics", "JointSpec"]
