"""Conversion of a solver joint matrix into a timed trajectory."""

from dataclasses import dataclass
from typing import Sequence

import numpy as np


@dataclass(frozen=True)
class TrajectoryPoint:
    """Joint positions reached at a time offset from the start."""

    positions: tuple[float, ...]
    time_from_start: float


@dataclass(frozen=True)
class ResultTrajectory:
    """Timed joint trajectory.

    Attributes:
        joint_names: Ordered joint names, one per position entry.
        points: Samples with strictly increasing time_from_start.
    """

    joint_names: tuple[str, ...]
    points: tuple[TrajectoryPoint, ...]

    def __len__(self) -> int:
        return len(self.points)

    @property
    def positions(self) -> np.ndarray:
        """Joint positions (N, dof)."""
        return np.array([p.positions for p in self.points])

    @property
    def times(self) -> np.ndarray:
        """Time from start of each sample (N,) [s]."""
        return np.array([p.time_from_start for p in self.points])

    def to_dict(self) -> dict:
        return {
            "joint_names": list(self.joint_names),
            "points": [
                {
                    "positions": list(p.positions),
                    "time_from_start": p.time_from_start,
                }
                for p in self.points
            ],
        }


def extract_trajectory(
    joint_matrix: np.ndarray,
    joint_names: Sequence[str],
    n_steps: int | None = None,
    time_step: float = 1.0,
) -> ResultTrajectory:
    """Build a ResultTrajectory from a solver joint matrix.

    Row i becomes the sample at time i * time_step.

    Args:
        joint_matrix: Joint positions (rows = steps, columns = joints).
        joint_names: Names of the columns.
        n_steps: Expected number of rows, if known.
        time_step: Spacing between samples [s].

    Returns:
        The timed trajectory.

    Raises:
        ValueError: If the matrix shape does not match joint_names or
            n_steps, or time_step is not positive.
    """
    if time_step <= 0:
        raise ValueError(f"time_step must be positive, got {time_step}")

    joint_matrix = np.asarray(joint_matrix, dtype=np.float64)
    if joint_matrix.ndim != 2:
        raise ValueError(
            f"Expected a 2-D joint matrix, got shape {joint_matrix.shape}"
        )
    n_rows, n_cols = joint_matrix.shape
    if n_cols != len(joint_names):
        raise ValueError(
            f"Joint matrix has {n_cols} columns but {len(joint_names)} joint names"
        )
    if n_steps is not None and n_rows != n_steps:
        raise ValueError(f"Joint matrix has {n_rows} rows, expected {n_steps}")

    points = tuple(
        TrajectoryPoint(
            positions=tuple(float(v) for v in joint_matrix[i]),
            time_from_start=time_step * i,
        )
        for i in range(n_rows)
    )
    return ResultTrajectory(joint_names=tuple(joint_names), points=points)
