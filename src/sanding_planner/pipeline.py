"""Sanding pass pipeline.

geometry -> scene setup -> problem formulation -> solve -> extract -> execute

Every stage runs once, synchronously, on one environment instance that
the caller owns for the whole run. The solver and the executor are the
only blocking calls. A run can be cancelled up to the moment the solver
is called, not afterwards.
"""

import logging
import warnings
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Callable

import numpy as np

from models.robots.sander.sander import BASE_LINK, TOOL_LINK
from models.workpieces import CylinderWorkpiece
from surface_paths import CylinderPathConfig, Waypoint, make_cylinder_path

from .environment import KinematicEnvironment
from .errors import ConfigurationError, PlanningError, SolverNonConvergence
from .executor import GOAL_TIME_TOLERANCE, TrajectoryExecutor, execute_trajectory
from .problem import FormulatorConfig, ProblemFormulator, ProblemSpec
from .result import ResultTrajectory, extract_trajectory
from .scene import add_workpiece
from .snapshots import pose_array_snapshot, scene_snapshot, write_snapshot
from .solver import NonlinearSolver, SolverStatus

logger = logging.getLogger(__name__)


class PlanningCancelled(PlanningError):
    """The run was cancelled before the solver was called."""


@dataclass
class PlannerConfig:
    """Configuration of a sanding pass.

    Attributes:
        path: Coverage path parameters.
        workpiece: Work-piece added to the scene.
        formulator: Problem formulation settings.
        base_link: Base link of the manipulator.
        tip_link: Tip link of the manipulator.
        initial_joint_values: Joint state set before planning (all
            joints, in environment order). Keeps the current state if None.
        time_step: Time between trajectory samples [s].
        time_tolerance: Goal time tolerance passed to the executor [s].
        snapshot_dir: Directory for path/scene snapshots, or None.
    """

    path: CylinderPathConfig = field(default_factory=CylinderPathConfig)
    workpiece: CylinderWorkpiece = field(default_factory=CylinderWorkpiece)
    formulator: FormulatorConfig = field(default_factory=FormulatorConfig)
    base_link: str = BASE_LINK
    tip_link: str = TOOL_LINK
    initial_joint_values: list[float] | None = None
    time_step: float = 1.0
    time_tolerance: float = GOAL_TIME_TOLERANCE
    snapshot_dir: Path | None = None


@dataclass
class PlanningOutcome:
    """Everything produced by one planning run."""

    path: tuple[Waypoint, ...]
    problem: ProblemSpec
    status: SolverStatus
    trajectory: ResultTrajectory

    @property
    def converged(self) -> bool:
        return self.status is SolverStatus.CONVERGED


@dataclass
class RunResult:
    """Planning outcome plus the execution report."""

    outcome: PlanningOutcome
    executed: bool

    @property
    def success(self) -> bool:
        return self.executed


def setup_environment(env: KinematicEnvironment, config: PlannerConfig) -> None:
    """Add the work-piece, register the manipulator and set the joint state.

    Raises:
        AttachmentError: If the work-piece cannot be added.
        ConfigurationError: If the manipulator cannot be created.
    """
    add_workpiece(env, config.workpiece)

    name = config.formulator.manipulator
    if env.get_manipulator(name) is None:
        if not env.add_manipulator(config.base_link, config.tip_link, name):
            raise ConfigurationError(
                f"Could not create manipulator '{name}' "
                f"({config.base_link} -> {config.tip_link})"
            )

    if config.initial_joint_values is not None:
        names = env.get_joint_names()
        try:
            env.set_state(names, config.initial_joint_values)
        except ValueError as e:
            raise ConfigurationError(f"Invalid initial joint values: {e}") from e


def plan_sanding_pass(
    env: KinematicEnvironment,
    solver: NonlinearSolver,
    config: PlannerConfig | None = None,
    cancel: Callable[[], bool] | None = None,
) -> PlanningOutcome:
    """Plan a sanding pass on a prepared environment.

    Args:
        env: Environment with the work-piece and manipulator in place.
        solver: Solver called exactly once.
        config: Pass configuration. Uses defaults if None.
        cancel: Polled once before the solver is called.

    Returns:
        The planning outcome, converged or not.

    Raises:
        ConfigurationError: If the problem cannot be formulated.
        PlanningCancelled: If cancel() returned True.
    """
    config = config or PlannerConfig()

    path = make_cylinder_path(config.path)
    logger.info("Generated %d waypoints", len(path))

    manip = env.get_manipulator(config.formulator.manipulator)
    if manip is None:
        raise ConfigurationError(
            f"Unknown manipulator '{config.formulator.manipulator}'"
        )
    if config.snapshot_dir is not None:
        write_snapshot(
            pose_array_snapshot(path, manip.base_link_name),
            Path(config.snapshot_dir) / "poses.json",
        )

    # Collision margins follow the work-piece actually placed in the scene
    formulator_config = replace(
        config.formulator,
        collision=replace(
            config.formulator.collision, workpiece_name=config.workpiece.name,
        ),
    )
    problem = ProblemFormulator(formulator_config).formulate(path, env)

    if config.snapshot_dir is not None:
        write_snapshot(scene_snapshot(env), Path(config.snapshot_dir) / "scene.json")

    if cancel is not None and cancel():
        raise PlanningCancelled("Cancelled before optimization")

    status, joint_matrix = solver.solve(problem, problem.init_traj)
    if status is not SolverStatus.CONVERGED:
        logger.warning("Did not converge, using best-effort trajectory")
        warnings.warn(
            "Trajectory optimization did not converge", SolverNonConvergence,
        )

    trajectory = extract_trajectory(
        np.asarray(joint_matrix),
        problem.joint_names,
        n_steps=problem.n_steps,
        time_step=config.time_step,
    )
    return PlanningOutcome(
        path=path,
        problem=problem,
        status=status,
        trajectory=trajectory,
    )


def run_sanding_pass(
    env: KinematicEnvironment,
    solver: NonlinearSolver,
    executor: TrajectoryExecutor,
    config: PlannerConfig | None = None,
    cancel: Callable[[], bool] | None = None,
) -> RunResult:
    """Set up the scene, plan the pass and execute it once.

    Raises:
        AttachmentError: If the work-piece cannot be added.
        ConfigurationError: If the manipulator or joint state is invalid.
        PlanningCancelled: If cancel() returned True before solving.
    """
    config = config or PlannerConfig()
    setup_environment(env, config)
    outcome = plan_sanding_pass(env, solver, config, cancel=cancel)

    executed = execute_trajectory(executor, outcome.trajectory, config.time_tolerance)
    if executed:
        logger.info("Sanding pass executed (%d points)", len(outcome.trajectory))
    return RunResult(outcome=outcome, executed=executed)

