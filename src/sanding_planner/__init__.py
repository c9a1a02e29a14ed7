"""Collision-aware trajectory planning for sanding a cylindrical part.

Provides tools for:
- Scene setup (work-piece registration and attachment)
- Trajectory optimization problem formulation (costs, constraints)
- Solving, result extraction and execution of the planned pass
"""

from .environment import (
    AttachableObject,
    AttachedBodyInfo,
    Cylinder,
    Environment,
    KinematicEnvironment,
    Manipulator,
)
from .errors import (
    AttachmentError,
    ConfigurationError,
    ExecutionFailure,
    PlanningError,
    SolverNonConvergence,
)
from .executor import (
    CONNECT_TIMEOUT,
    GOAL_TIME_TOLERANCE,
    JsonTrajectoryExecutor,
    TrajectoryExecutor,
    execute_trajectory,
)
from .pipeline import (
    PlannerConfig,
    PlanningCancelled,
    PlanningOutcome,
    RunResult,
    plan_sanding_pass,
    run_sanding_pass,
    setup_environment,
)
from .problem import (
    CollisionConfig,
    CostConfig,
    FormulatorConfig,
    InitType,
    PoseConstraintConfig,
    ProblemFormulator,
    ProblemSpec,
)
from .result import ResultTrajectory, TrajectoryPoint, extract_trajectory
from .scene import add_workpiece, make_workpiece_object
from .solver import NonlinearSolver, ScipySolver, SolverConfig, SolverStatus
from .terms import (
    CollisionTerm,
    JointAccelerationTerm,
    JointVelocityTerm,
    PoseTerm,
    TermKind,
    TermType,
)

__all__ = [
    "AttachableObject",
    "AttachedBodyInfo",
    "AttachmentError",
    "CONNECT_TIMEOUT",
    "CollisionConfig",
    "CollisionTerm",
    "ConfigurationError",
    "CostConfig",
    "Cylinder",
    "Environment",
    "ExecutionFailure",
    "FormulatorConfig",
    "GOAL_TIME_TOLERANCE",
    "InitType",
    "JointAccelerationTerm",
    "JointVelocityTerm",
    "JsonTrajectoryExecutor",
    "KinematicEnvironment",
    "Manipulator",
    "NonlinearSolver",
    "PlannerConfig",
    "PlanningCancelled",
    "PlanningError",
    "PlanningOutcome",
    "PoseConstraintConfig",
    "PoseTerm",
    "ProblemFormulator",
    "ProblemSpec",
    "ResultTrajectory",
    "RunResult",
    "ScipySolver",
    "SolverConfig",
    "SolverNonConvergence",
    "SolverStatus",
    "TermKind",
    "TermType",
    "TrajectoryExecutor",
    "TrajectoryPoint",
    "add_workpiece",
    "execute_trajectory",
    "extract_trajectory",
    "make_workpiece_object",
    "plan_sanding_pass",
    "run_sanding_pass",
    "setup_environment",
]
