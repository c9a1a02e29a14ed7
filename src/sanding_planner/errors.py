"""Error taxonomy of the sanding planner.

ConfigurationError and AttachmentError abort a run before the solver
is called. ExecutionFailure ends a run unsuccessfully once a
trajectory exists. SolverNonConvergence is a warning: the best-effort
trajectory is still used.
"""


class PlanningError(Exception):
    """Base class for planner errors."""


class ConfigurationError(PlanningError):
    """Unknown manipulator or unreadable joint state."""


class AttachmentError(PlanningError):
    """The environment rejected a scene object or its parent frame."""


class ExecutionFailure(PlanningError):
    """The actuation service rejected the goal or timed out."""


class SolverNonConvergence(RuntimeWarning):
    """The solver stopped before converging."""
