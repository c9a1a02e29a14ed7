"""Cost and constraint terms of a trajectory optimization problem.

Each term is a small declarative record. Terms are tagged with a
TermKind so a solver backend can dispatch on them, and with a TermType
saying whether the term is penalized (cost) or enforced (constraint).
Step ranges are inclusive.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

import numpy as np

from collision_check import SafetyMarginSpec


class TermType(Enum):
    COST = "cost"
    CONSTRAINT = "constraint"


class TermKind(Enum):
    JOINT_VELOCITY = "joint_vel"
    JOINT_ACCELERATION = "joint_acc"
    COLLISION = "collision"
    POSE = "pose"


def _frozen_array(values) -> np.ndarray:
    arr = np.array(values, dtype=np.float64)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class JointVelocityTerm:
    """Squared joint velocity penalty, one coefficient per joint."""

    coeffs: np.ndarray
    first_step: int
    last_step: int
    name: str = "joint_vel"
    term_type: TermType = TermType.COST
    kind = TermKind.JOINT_VELOCITY

    def __post_init__(self):
        object.__setattr__(self, "coeffs", _frozen_array(self.coeffs))


@dataclass(frozen=True, eq=False)
class JointAccelerationTerm:
    """Squared joint acceleration penalty, one coefficient per joint."""

    coeffs: np.ndarray
    first_step: int
    last_step: int
    name: str = "joint_acc"
    term_type: TermType = TermType.COST
    kind = TermKind.JOINT_ACCELERATION

    def __post_init__(self):
        object.__setattr__(self, "coeffs", _frozen_array(self.coeffs))


@dataclass(frozen=True, eq=False)
class CollisionTerm:
    """Pairwise clearance penalty.

    Attributes:
        margins: One SafetyMarginSpec per step in [first_step, last_step],
            stored as frozen copies.
        continuous: Whether swept volumes between steps are checked.
            Only discrete (per-step) checking is produced by this package.
        gap: Step stride of the check.
    """

    margins: tuple[SafetyMarginSpec, ...]
    first_step: int
    last_step: int
    name: str = "collision"
    term_type: TermType = TermType.COST
    continuous: bool = False
    gap: int = 1
    kind = TermKind.COLLISION

    def __post_init__(self):
        object.__setattr__(self, "margins", tuple(m.frozen() for m in self.margins))
        n_expected = self.last_step - self.first_step + 1
        if len(self.margins) != n_expected:
            raise ValueError(
                f"Expected {n_expected} safety margin entries, got {len(self.margins)}"
            )

    @property
    def coeffs(self) -> np.ndarray:
        """Default penalty coefficient at each step."""
        return np.array([m.default.coeff for m in self.margins])

    def margin_at(self, step: int) -> SafetyMarginSpec:
        if not self.first_step <= step <= self.last_step:
            raise IndexError(
                f"Step {step} outside [{self.first_step}, {self.last_step}]"
            )
        return self.margins[step - self.first_step]


@dataclass(frozen=True, eq=False)
class PoseTerm:
    """Cartesian pose of a link at one timestep.

    Attributes:
        link: Link whose pose is pinned.
        timestep: Step the term applies to.
        xyz: Target position (3,) [m].
        wxyz: Target orientation as a scalar-first quaternion (4,).
        pos_coeffs: Weights on the x, y, z position error.
        rot_coeffs: Weights on the rotation error about the target's
            x, y, z axes.
    """

    link: str
    timestep: int
    xyz: np.ndarray
    wxyz: np.ndarray
    pos_coeffs: np.ndarray = field(default_factory=lambda: np.ones(3))
    rot_coeffs: np.ndarray = field(default_factory=lambda: np.ones(3))
    name: str = "pose"
    term_type: TermType = TermType.CONSTRAINT
    kind = TermKind.POSE

    def __post_init__(self):
        for attr in ("xyz", "wxyz", "pos_coeffs", "rot_coeffs"):
            object.__setattr__(self, attr, _frozen_array(getattr(self, attr)))

    @property
    def first_step(self) -> int:
        return self.timestep

    @property
    def last_step(self) -> int:
        return self.timestep

    @property
    def coeffs(self) -> np.ndarray:
        """Position weights followed by rotation weights (6,)."""
        return np.concatenate([self.pos_coeffs, self.rot_coeffs])


TermInfo = Union[JointVelocityTerm, JointAccelerationTerm, CollisionTerm, PoseTerm]
