"""Trajectory optimization problem for a sanding pass.

Turns an oriented waypoint path into a declarative problem:
- one timestep per waypoint, first step free
- stationary initialization at the current joint configuration
- joint velocity and acceleration costs over the whole horizon
- discrete collision cost with per-pair safety margins
- one pose constraint per waypoint on the tool link

The problem is only described here; solving is left to a
NonlinearSolver.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

import numpy as np

from collision_check import SafetyMarginSpec, create_safety_margin_data_vector
from models.robots.sander.sander import (
    MANIPULATOR_NAME,
    SANDER_DISK,
    SANDER_SHAFT,
    TOOL_LINK,
)
from surface_paths import Waypoint

from .environment import Environment
from .errors import ConfigurationError
from .terms import (
    CollisionTerm,
    JointAccelerationTerm,
    JointVelocityTerm,
    PoseTerm,
    TermInfo,
    TermType,
)

logger = logging.getLogger(__name__)


class InitType(Enum):
    STATIONARY = "stationary"


@dataclass
class CostConfig:
    """Smoothness cost weights.

    Attributes:
        joint_vel_coeff: Weight of squared joint velocity, every joint.
        joint_acc_coeff: Weight of squared joint acceleration, every joint.
    """

    joint_vel_coeff: float = 2.5
    joint_acc_coeff: float = 5.0


@dataclass
class CollisionConfig:
    """Discrete collision cost configuration.

    Attributes:
        default_distance: Minimum clearance for all pairs [m].
        default_coeff: Penalty coefficient for all pairs.
        workpiece_name: Collision body name of the work-piece.
        workpiece_overrides: (link, distance, coeff) entries that replace
            the default for the pair (link, work-piece). The sanding disk
            may press slightly into the part; the shaft may come closer
            than the default.
        pair_overrides: (body_a, body_b, distance, coeff) entries for any
            other unordered pair.
    """

    default_distance: float = 0.025
    default_coeff: float = 20.0
    workpiece_name: str = "part"
    workpiece_overrides: list[tuple[str, float, float]] = field(
        default_factory=lambda: [
            (SANDER_DISK, -0.01, 20.0),
            (SANDER_SHAFT, 0.005, 20.0),
        ]
    )
    pair_overrides: list[tuple[str, str, float, float]] = field(default_factory=list)

    def make_margin_table(self, n_steps: int) -> list[SafetyMarginSpec]:
        """Per-step safety margins with the pair overrides applied."""
        margins = create_safety_margin_data_vector(
            n_steps, self.default_distance, self.default_coeff,
        )
        for margin in margins:
            for link, distance, coeff in self.workpiece_overrides:
                margin.set_pair(link, self.workpiece_name, distance, coeff)
            for link_a, link_b, distance, coeff in self.pair_overrides:
                margin.set_pair(link_a, link_b, distance, coeff)
        return margins


@dataclass
class PoseConstraintConfig:
    """Waypoint pose constraint configuration.

    Attributes:
        link: Link pinned to the waypoints.
        pos_coeffs: Position weights (x, y, z).
        rot_coeffs: Rotation weights about the waypoint x, y, z axes.
            The z weight is zero so the tool may spin about the surface
            normal.
    """

    link: str = TOOL_LINK
    pos_coeffs: np.ndarray = field(
        default_factory=lambda: np.array([10.0, 10.0, 10.0])
    )
    rot_coeffs: np.ndarray = field(
        default_factory=lambda: np.array([10.0, 10.0, 0.0])
    )


@dataclass
class FormulatorConfig:
    """Configuration of the problem formulation.

    Attributes:
        manipulator: Name of a manipulator registered in the environment.
        start_fixed: Whether the first step is pinned to the current state.
        costs: Smoothness cost weights.
        collision: Collision cost configuration.
        pose: Waypoint pose constraint configuration.
    """

    manipulator: str = MANIPULATOR_NAME
    start_fixed: bool = False
    costs: CostConfig = field(default_factory=CostConfig)
    collision: CollisionConfig = field(default_factory=CollisionConfig)
    pose: PoseConstraintConfig = field(default_factory=PoseConstraintConfig)


@dataclass(frozen=True, eq=False)
class ProblemSpec:
    """Declarative trajectory optimization problem.

    Attributes:
        n_steps: Number of timesteps.
        manipulator: Manipulator name.
        joint_names: Ordered joints of the manipulator.
        start_fixed: Whether step 0 may not move.
        init_type: How init_traj was produced.
        init_traj: Initial guess (n_steps, dof).
        costs: Cost terms.
        constraints: Constraint terms.
    """

    n_steps: int
    manipulator: str
    joint_names: tuple[str, ...]
    start_fixed: bool
    init_type: InitType
    init_traj: np.ndarray
    costs: tuple[TermInfo, ...]
    constraints: tuple[TermInfo, ...]

    def __post_init__(self):
        init_traj = np.array(self.init_traj, dtype=np.float64)
        init_traj.flags.writeable = False
        object.__setattr__(self, "init_traj", init_traj)
        object.__setattr__(self, "joint_names", tuple(self.joint_names))
        object.__setattr__(self, "costs", tuple(self.costs))
        object.__setattr__(self, "constraints", tuple(self.constraints))

    @property
    def dof(self) -> int:
        return len(self.joint_names)

    @property
    def terms(self) -> tuple[TermInfo, ...]:
        return self.costs + self.constraints


class ProblemFormulator:
    """Builds a ProblemSpec from a waypoint path and the environment.

    Usage:
        formulator = ProblemFormulator(FormulatorConfig())
        problem = formulator.formulate(path, env)
    """

    def __init__(self, config: FormulatorConfig | None = None):
        self.config = config or FormulatorConfig()

    def formulate(self, path: Sequence[Waypoint], env: Environment) -> ProblemSpec:
        """Assemble the problem.

        Args:
            path: Ordered waypoints, one per timestep.
            env: Environment with the manipulator already registered.

        Returns:
            Complete ProblemSpec.

        Raises:
            ConfigurationError: If the path is empty, the manipulator is
                unknown, or its joint state cannot be read.
        """
        if len(path) == 0:
            raise ConfigurationError("Cannot formulate a problem for an empty path")

        manip_name = self.config.manipulator
        manip = env.get_manipulator(manip_name)
        if manip is None:
            raise ConfigurationError(f"Unknown manipulator '{manip_name}'")

        start_pos = self._read_joint_state(env, manip_name, manip.num_joints)
        n_steps = len(path)
        dof = manip.num_joints

        costs = [
            self._joint_velocity_cost(n_steps, dof),
            self._joint_acceleration_cost(n_steps, dof),
            self._collision_cost(n_steps),
        ]
        constraints = [
            self._pose_constraint(i, waypoint)
            for i, waypoint in enumerate(path)
        ]

        problem = ProblemSpec(
            n_steps=n_steps,
            manipulator=manip_name,
            joint_names=manip.joint_names,
            start_fixed=self.config.start_fixed,
            init_type=InitType.STATIONARY,
            init_traj=np.tile(start_pos, (n_steps, 1)),
            costs=costs,
            constraints=constraints,
        )

        logger.info(
            "Formulated problem: %d steps, %d joints, %d costs, %d constraints",
            n_steps, dof, len(costs), len(constraints),
        )
        return problem

    @staticmethod
    def _read_joint_state(env: Environment, manip_name: str, dof: int) -> np.ndarray:
        try:
            start_pos = np.asarray(
                env.get_current_joint_values(manip_name), dtype=np.float64,
            ).ravel()
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Could not read joint state of '{manip_name}': {e}"
            ) from e

        if start_pos.shape != (dof,):
            raise ConfigurationError(
                f"Joint state of '{manip_name}' has {start_pos.size} values, "
                f"expected {dof}"
            )
        if not np.all(np.isfinite(start_pos)):
            raise ConfigurationError(f"Joint state of '{manip_name}' is not finite")
        return start_pos

    def _joint_velocity_cost(self, n_steps: int, dof: int) -> JointVelocityTerm:
        return JointVelocityTerm(
            coeffs=np.full(dof, self.config.costs.joint_vel_coeff),
            first_step=0,
            last_step=n_steps - 1,
        )

    def _joint_acceleration_cost(self, n_steps: int, dof: int) -> JointAccelerationTerm:
        return JointAccelerationTerm(
            coeffs=np.full(dof, self.config.costs.joint_acc_coeff),
            first_step=0,
            last_step=n_steps - 1,
        )

    def _collision_cost(self, n_steps: int) -> CollisionTerm:
        return CollisionTerm(
            margins=self.config.collision.make_margin_table(n_steps),
            first_step=0,
            last_step=n_steps - 1,
            continuous=False,
            gap=1,
        )

    def _pose_constraint(self, timestep: int, waypoint: Waypoint) -> PoseTerm:
        return PoseTerm(
            name=f"waypoint_cart_{timestep}",
            term_type=TermType.CONSTRAINT,
            link=self.config.pose.link,
            timestep=timestep,
            xyz=waypoint.xyz,
            wxyz=waypoint.wxyz,
            pos_coeffs=self.config.pose.pos_coeffs,
            rot_coeffs=self.config.pose.rot_coeffs,
        )
