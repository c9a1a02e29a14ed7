"""Shared pytest fixtures."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from models.robots.sander.sander import (
    BASE_LINK,
    JOINT_CHAIN,
    MANIPULATOR_NAME,
    TOOL_LINK,
)
from models.workpieces import CylinderWorkpiece
from sanding_planner import KinematicEnvironment, SolverStatus, add_workpiece
from surface_paths import CylinderPathConfig, make_cylinder_path


class StubSolver:
    """Solver returning the initial guess unchanged."""

    def __init__(self, status=SolverStatus.CONVERGED):
        self.status = status
        self.calls = []

    def solve(self, problem, initial_guess):
        self.calls.append((problem, initial_guess))
        return self.status, np.array(initial_guess, copy=True)


class StubExecutor:
    """Executor recording goals and returning a fixed outcome."""

    def __init__(self, succeed=True, error=None):
        self.succeed = succeed
        self.error = error
        self.goals = []

    def run(self, trajectory, joint_names, time_tolerance):
        self.goals.append((trajectory, list(joint_names), time_tolerance))
        if self.error is not None:
            raise self.error
        return self.succeed


@pytest.fixture
def bare_env() -> KinematicEnvironment:
    """Sanding robot environment without manipulator or work-piece."""
    return KinematicEnvironment.from_chain(JOINT_CHAIN)


@pytest.fixture
def env(bare_env) -> KinematicEnvironment:
    """Sanding robot environment with manipulator and part attached."""
    assert bare_env.add_manipulator(BASE_LINK, TOOL_LINK, MANIPULATOR_NAME)
    add_workpiece(bare_env, CylinderWorkpiece())
    return bare_env


@pytest.fixture
def seed_config() -> np.ndarray:
    """Non-trivial joint configuration used as the optimization seed."""
    return np.array([0.1, -0.4, 0.7, 0.0, -0.3, 0.2])


@pytest.fixture
def default_path():
    """Default ring-stack path (5 rings x 25 samples)."""
    return make_cylinder_path(CylinderPathConfig())


@pytest.fixture
def stub_solver() -> StubSolver:
    return StubSolver()


@pytest.fixture
def stub_executor() -> StubExecutor:
    return StubExecutor()
