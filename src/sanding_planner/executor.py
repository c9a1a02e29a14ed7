"""Trajectory execution interface.

An executor sends one joint-trajectory goal to an actuation service
and blocks until the service reports a terminal result or the connect
timeout elapses. A failed execution is reported to the caller and
never retried.
"""

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Protocol, Sequence

from .errors import ExecutionFailure
from .result import ResultTrajectory

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 2.0      # [s]
GOAL_TIME_TOLERANCE = 1.0  # [s]

SUCCEEDED = "succeeded"
_POLL_PERIOD = 0.05  # [s]


class TrajectoryExecutor(Protocol):
    """Blocking, single-attempt trajectory execution."""

    def run(
        self,
        trajectory: ResultTrajectory,
        joint_names: Sequence[str],
        time_tolerance: float,
    ) -> bool: ...


class JsonTrajectoryExecutor:
    """Hands the trajectory goal to a controller through JSON files.

    The goal is published as ``<goal_dir>/<name>.json`` with an atomic
    rename, so the controller never sees a partial goal. The controller
    answers with ``<goal_dir>/<name>.result.json``::

        {"status": "succeeded"}
        {"status": "aborted", "error": "path tolerance violated"}

    The directory is the controller's inbox: if it does not appear
    within the connect timeout the controller is considered unreachable.
    A result is expected by the end of the trajectory plus the goal time
    tolerance plus the connect timeout, unless ``result_timeout`` is set.

    Usage:
        executor = JsonTrajectoryExecutor("data/goals")
        ok = executor.run(trajectory, trajectory.joint_names, 1.0)
    """

    def __init__(
        self,
        goal_dir: str | Path,
        name: str = "joint_trajectory_action",
        connect_timeout: float = CONNECT_TIMEOUT,
        result_timeout: float | None = None,
    ):
        self.goal_dir = Path(goal_dir)
        self.name = name
        self.connect_timeout = connect_timeout
        self.result_timeout = result_timeout

    @property
    def goal_path(self) -> Path:
        return self.goal_dir / f"{self.name}.json"

    @property
    def result_path(self) -> Path:
        return self.goal_dir / f"{self.name}.result.json"

    def _wait_for_server(self) -> bool:
        deadline = time.monotonic() + self.connect_timeout
        while not self.goal_dir.is_dir():
            if time.monotonic() >= deadline:
                return False
            time.sleep(_POLL_PERIOD)
        return True

    def _send_goal(self, goal: dict) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.name}.", suffix=".tmp", dir=self.goal_dir,
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(goal, f, indent=2)
            os.replace(tmp_name, self.goal_path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _wait_for_result(self, timeout: float) -> dict:
        deadline = time.monotonic() + timeout
        while True:
            if self.result_path.is_file():
                try:
                    with open(self.result_path) as f:
                        return json.load(f)
                except json.JSONDecodeError:
                    # Result still being written
                    pass
            if time.monotonic() >= deadline:
                raise ExecutionFailure(
                    f"No result from '{self.name}' within {timeout:.1f}s"
                )
            time.sleep(_POLL_PERIOD)

    def run(
        self,
        trajectory: ResultTrajectory,
        joint_names: Sequence[str],
        time_tolerance: float = GOAL_TIME_TOLERANCE,
    ) -> bool:
        """Send the goal and block until the controller reports back.

        Returns:
            True if the controller reported status "succeeded".

        Raises:
            ExecutionFailure: If the controller is unreachable, the goal
                cannot be written, or no result arrives in time.
        """
        if not self._wait_for_server():
            raise ExecutionFailure(
                f"Could not connect to '{self.name}' within {self.connect_timeout}s: "
                f"{self.goal_dir} does not exist"
            )

        goal = {
            "trajectory": {
                **trajectory.to_dict(),
                "joint_names": list(joint_names),
            },
            "goal_time_tolerance": time_tolerance,
        }
        try:
            self.result_path.unlink(missing_ok=True)
            self._send_goal(goal)
        except OSError as e:
            raise ExecutionFailure(f"Could not send goal to '{self.name}': {e}") from e
        logger.info("Sent %d-point goal to %s", len(trajectory), self.goal_path)

        timeout = self.result_timeout
        if timeout is None:
            duration = float(trajectory.times[-1]) if len(trajectory) else 0.0
            timeout = duration + time_tolerance + self.connect_timeout
        result = self._wait_for_result(timeout)

        status = result.get("status")
        if status != SUCCEEDED:
            logger.error(
                "Controller '%s' reported %s: %s",
                self.name, status, result.get("error", ""),
            )
            return False
        return True


def execute_trajectory(
    executor: TrajectoryExecutor,
    trajectory: ResultTrajectory,
    time_tolerance: float = GOAL_TIME_TOLERANCE,
) -> bool:
    """Execute a trajectory once and report the outcome.

    Args:
        executor: Executor to use.
        trajectory: Trajectory to execute.
        time_tolerance: Allowed lateness at the goal [s].

    Returns:
        True if the service reported success.
    """
    try:
        succeeded = executor.run(trajectory, trajectory.joint_names, time_tolerance)
    except ExecutionFailure as e:
        logger.error("Trajectory execution failed: %s", e)
        return False

    if not succeeded:
        logger.error("Trajectory execution did not succeed")
    return bool(succeeded)
