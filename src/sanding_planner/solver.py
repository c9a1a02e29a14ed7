"""Nonlinear solver interface and a SciPy reference backend.

A solver takes a ProblemSpec plus an initial guess and returns a
status and a joint matrix (n_steps, dof). It is called exactly once
per run. Not converging is not an error: the caller keeps whatever
trajectory the solver produced.

ScipySolver evaluates the problem terms directly and hands SLSQP
their derivatives (see TrajectoryFunctions):
- joint velocity / acceleration: weighted squared finite differences
- collision: hinge penalty coeff * max(0, margin - distance) per pair,
  using a caller-supplied signed distance function
- pose: weighted position and rotation residuals of the tool link,
  computed with Pinocchio forward kinematics
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Protocol

import numpy as np
from scipy.optimize import minimize
from scipy.spatial.transform import Rotation

from kinematics import ChainKinematics

from .errors import ConfigurationError
from .problem import ProblemSpec
from .terms import (
    CollisionTerm,
    JointAccelerationTerm,
    JointVelocityTerm,
    PoseTerm,
    TermKind,
    TermType,
)

logger = logging.getLogger(__name__)

# Signed distances between body pairs for one joint configuration
DistanceFn = Callable[[np.ndarray], Mapping[tuple[str, str], float]]

# Forward-difference step for row-local derivatives
FD_STEP = float(np.sqrt(np.finfo(np.float64).eps))


class SolverStatus(Enum):
    CONVERGED = "converged"
    NOT_CONVERGED = "not_converged"


class NonlinearSolver(Protocol):
    """Single-shot trajectory optimizer."""

    def solve(
        self,
        problem: ProblemSpec,
        initial_guess: np.ndarray,
    ) -> tuple[SolverStatus, np.ndarray]: ...


@dataclass
class SolverConfig:
    """Configuration of the SciPy backend.

    Attributes:
        method: scipy.optimize method name.
        max_iter: Maximum iterations.
        ftol: Function tolerance for convergence.
    """

    method: str = "SLSQP"
    max_iter: int = 200
    ftol: float = 1e-6


def joint_velocity_cost(term: JointVelocityTerm, q: np.ndarray) -> float:
    dq = np.diff(q[term.first_step:term.last_step + 1], axis=0)
    return float(np.sum(term.coeffs * dq**2))


def joint_acceleration_cost(term: JointAccelerationTerm, q: np.ndarray) -> float:
    window = q[term.first_step:term.last_step + 1]
    ddq = window[2:] - 2 * window[1:-1] + window[:-2]
    return float(np.sum(term.coeffs * ddq**2))


def joint_velocity_gradient(term: JointVelocityTerm, q: np.ndarray) -> np.ndarray:
    """Gradient of joint_velocity_cost with respect to q, shape of q."""
    grad = np.zeros_like(q)
    s, e = term.first_step, term.last_step + 1
    g = 2 * term.coeffs * np.diff(q[s:e], axis=0)
    grad[s:e - 1] -= g
    grad[s + 1:e] += g
    return grad


def joint_acceleration_gradient(term: JointAccelerationTerm, q: np.ndarray) -> np.ndarray:
    """Gradient of joint_acceleration_cost with respect to q, shape of q."""
    grad = np.zeros_like(q)
    s, e = term.first_step, term.last_step + 1
    if e - s < 3:
        return grad
    window = q[s:e]
    g = 2 * term.coeffs * (window[2:] - 2 * window[1:-1] + window[:-2])
    grad[s:e - 2] += g
    grad[s + 1:e - 1] -= 2 * g
    grad[s + 2:e] += g
    return grad


def _collision_step_cost(margins, q_t: np.ndarray, distance_fn: DistanceFn) -> float:
    cost = 0.0
    for (link_a, link_b), distance in distance_fn(q_t).items():
        margin = margins.get_pair(link_a, link_b)
        cost += margin.coeff * max(0.0, margin.distance - distance)
    return cost


def collision_cost(term: CollisionTerm, q: np.ndarray, distance_fn: DistanceFn) -> float:
    """Hinge penalty over all checked steps and body pairs."""
    return sum(
        _collision_step_cost(term.margin_at(step), q[step], distance_fn)
        for step in range(term.first_step, term.last_step + 1, term.gap)
    )


def collision_gradient(
    term: CollisionTerm,
    q: np.ndarray,
    distance_fn: DistanceFn,
    eps: float = FD_STEP,
) -> np.ndarray:
    """Forward-difference gradient of collision_cost, shape of q.

    The penalty of a checked step only depends on that step's joint row,
    so each row is differenced on its own: dof extra distance queries
    per checked step.
    """
    grad = np.zeros_like(q)
    for step in range(term.first_step, term.last_step + 1, term.gap):
        margins = term.margin_at(step)
        base = _collision_step_cost(margins, q[step], distance_fn)
        for j in range(q.shape[1]):
            q_t = q[step].copy()
            h = eps * max(1.0, abs(q_t[j]))
            q_t[j] += h
            grad[step, j] = (_collision_step_cost(margins, q_t, distance_fn) - base) / h
    return grad


def pose_error(
    term: PoseTerm,
    position: np.ndarray,
    rotation: np.ndarray,
) -> np.ndarray:
    """Weighted pose error (6,): position then rotation about the target axes."""
    w, x, y, z = term.wxyz
    target = Rotation.from_quat([x, y, z, w])
    rot_err = (target.inv() * Rotation.from_matrix(rotation)).as_rotvec()
    pos_err = position - term.xyz
    return np.concatenate([term.pos_coeffs * pos_err, term.rot_coeffs * rot_err])


class _ForwardKinematicsCache:
    """Cache tool poses for the last evaluated variable vector.

    The objective, the pose constraints and their Jacobians are
    evaluated with the same x, so forward kinematics only runs once per
    distinct x.
    """

    def __init__(self, kinematics: ChainKinematics, n_steps: int, dof: int):
        self._kinematics = kinematics
        self._shape = (n_steps, dof)
        self._last_x_hash: int | None = None
        self._last_result: list[tuple[np.ndarray, np.ndarray]] | None = None

    def get(self, x: np.ndarray) -> list[tuple[np.ndarray, np.ndarray]]:
        x_hash = hash(x.tobytes())
        if x_hash != self._last_x_hash:
            q = x.reshape(self._shape)
            self._last_result = [
                self._kinematics.forward_kinematics(q_t) for q_t in q
            ]
            self._last_x_hash = x_hash
        return self._last_result


class _PoseResiduals:
    """Stacked residuals of a group of pose terms and their Jacobian.

    Only the components with a nonzero weight are kept. Each term
    depends on a single joint row, so its Jacobian rows are zero except
    for a (k, dof) block at that row. Blocks are forward differences of
    the tool pose on that row alone, which costs dof extra forward
    kinematics calls per distinct timestep.
    """

    def __init__(
        self,
        terms: list[PoseTerm],
        kinematics: ChainKinematics,
        fk_cache: _ForwardKinematicsCache,
        shape: tuple[int, int],
        eps: float = FD_STEP,
    ):
        self.terms = terms
        self._kinematics = kinematics
        self._fk_cache = fk_cache
        self._shape = shape
        self._eps = eps
        self._masks = [t.coeffs != 0 for t in terms]
        sizes = [int(m.sum()) for m in self._masks]
        self._offsets = np.concatenate([[0], np.cumsum(sizes)]).astype(int)

    @property
    def size(self) -> int:
        return int(self._offsets[-1])

    def _residual(self, i: int, pose: tuple[np.ndarray, np.ndarray]) -> np.ndarray:
        position, rotation = pose
        return pose_error(self.terms[i], position, rotation)[self._masks[i]]

    def residuals(self, x: np.ndarray) -> np.ndarray:
        if not self.terms:
            return np.zeros(0)
        poses = self._fk_cache.get(x)
        return np.concatenate([
            self._residual(i, poses[term.timestep]) for i, term in enumerate(self.terms)
        ])

    def jacobian(self, x: np.ndarray) -> np.ndarray:
        n_steps, dof = self._shape
        q = x.reshape(self._shape)
        poses = self._fk_cache.get(x)

        # Perturbed poses per timestep, shared by terms on the same step
        perturbed: dict[int, list[tuple[float, tuple[np.ndarray, np.ndarray]]]] = {}
        for term in self.terms:
            t = term.timestep
            if t in perturbed:
                continue
            perturbed[t] = []
            for j in range(dof):
                q_t = q[t].copy()
                h = self._eps * max(1.0, abs(q_t[j]))
                q_t[j] += h
                perturbed[t].append((h, self._kinematics.forward_kinematics(q_t)))

        jac = np.zeros((self.size, n_steps * dof))
        for i, term in enumerate(self.terms):
            t = term.timestep
            rows = slice(self._offsets[i], self._offsets[i + 1])
            base = self._residual(i, poses[t])
            for j, (h, pose) in enumerate(perturbed[t]):
                jac[rows, t * dof + j] = (self._residual(i, pose) - base) / h
        return jac


class TrajectoryFunctions:
    """Objective, equality constraints and their derivatives for one problem.

    The smoothness costs have closed-form gradients. Collision and pose
    terms are row-local, so their derivatives are assembled block by
    block instead of differencing the whole trajectory.

    Usage:
        fns = TrajectoryFunctions(problem, kinematics, distance_fn)
        cost, grad = fns.cost(x), fns.gradient(x)
        c, jac = fns.constraints(x), fns.constraint_jacobian(x)
    """

    def __init__(
        self,
        problem: ProblemSpec,
        kinematics: ChainKinematics | None = None,
        distance_fn: DistanceFn | None = None,
    ):
        self.problem = problem
        self.distance_fn = distance_fn
        self.shape = (problem.n_steps, problem.dof)
        self.n_evals = 0

        pose_costs = [t for t in problem.costs if t.kind is TermKind.POSE]
        pose_constraints = [t for t in problem.constraints if t.kind is TermKind.POSE]
        self._pose_costs = None
        self._pose_constraints = None
        if kinematics is not None:
            fk_cache = _ForwardKinematicsCache(kinematics, *self.shape)
            self._pose_costs = _PoseResiduals(pose_costs, kinematics, fk_cache, self.shape)
            self._pose_constraints = _PoseResiduals(
                pose_constraints, kinematics, fk_cache, self.shape,
            )

    @property
    def has_constraints(self) -> bool:
        return self._pose_constraints is not None and self._pose_constraints.size > 0

    def cost(self, x: np.ndarray) -> float:
        self.n_evals += 1
        q = x.reshape(self.shape)
        cost = 0.0
        for term in self.problem.costs:
            if term.kind is TermKind.JOINT_VELOCITY:
                cost += joint_velocity_cost(term, q)
            elif term.kind is TermKind.JOINT_ACCELERATION:
                cost += joint_acceleration_cost(term, q)
            elif term.kind is TermKind.COLLISION and self.distance_fn is not None:
                cost += collision_cost(term, q, self.distance_fn)
        if self._pose_costs is not None and self._pose_costs.size:
            cost += float(np.sum(self._pose_costs.residuals(x) ** 2))
        return cost

    def gradient(self, x: np.ndarray) -> np.ndarray:
        q = x.reshape(self.shape)
        grad = np.zeros(self.shape)
        for term in self.problem.costs:
            if term.kind is TermKind.JOINT_VELOCITY:
                grad += joint_velocity_gradient(term, q)
            elif term.kind is TermKind.JOINT_ACCELERATION:
                grad += joint_acceleration_gradient(term, q)
            elif term.kind is TermKind.COLLISION and self.distance_fn is not None:
                grad += collision_gradient(term, q, self.distance_fn)
        grad = grad.ravel()
        if self._pose_costs is not None and self._pose_costs.size:
            r = self._pose_costs.residuals(x)
            grad += 2 * self._pose_costs.jacobian(x).T @ r
        return grad

    def constraints(self, x: np.ndarray) -> np.ndarray:
        return self._pose_constraints.residuals(x)

    def constraint_jacobian(self, x: np.ndarray) -> np.ndarray:
        return self._pose_constraints.jacobian(x)


class ScipySolver:
    """Trajectory optimizer built on scipy.optimize.minimize.

    Gradients and constraint Jacobians are supplied to the optimizer,
    see TrajectoryFunctions.

    Usage:
        kin = ChainKinematics(env.get_chain("my_robot"), tip_link="sander_tcp")
        solver = ScipySolver(kin)
        status, q = solver.solve(problem, problem.init_traj)
    """

    def __init__(
        self,
        kinematics: ChainKinematics | None = None,
        distance_fn: DistanceFn | None = None,
        config: SolverConfig | None = None,
    ):
        """Initialize solver.

        Args:
            kinematics: Forward kinematics of the tool link. Required
                when the problem has pose terms.
            distance_fn: Pairwise signed distances for a configuration.
                Collision terms are skipped if None.
            config: Solver configuration. Uses defaults if None.
        """
        self.kinematics = kinematics
        self.distance_fn = distance_fn
        self.config = config or SolverConfig()

    def _check_problem(self, problem: ProblemSpec) -> None:
        for term in problem.terms:
            if term.kind is TermKind.POSE:
                if self.kinematics is None:
                    raise ConfigurationError(
                        f"Pose term '{term.name}' needs forward kinematics"
                    )
                if term.link != self.kinematics.tip_link:
                    raise ConfigurationError(
                        f"Pose term '{term.name}' targets '{term.link}', "
                        f"kinematics tip is '{self.kinematics.tip_link}'"
                    )
            elif term.term_type is TermType.CONSTRAINT:
                raise ConfigurationError(
                    f"Term '{term.name}' ({term.kind.value}) is only supported as a cost"
                )
        if self.kinematics is not None and self.kinematics.num_joints != problem.dof:
            raise ConfigurationError(
                f"Kinematics has {self.kinematics.num_joints} joints, "
                f"problem has {problem.dof}"
            )

    def solve(
        self,
        problem: ProblemSpec,
        initial_guess: np.ndarray,
    ) -> tuple[SolverStatus, np.ndarray]:
        """Run one optimization from the initial guess.

        Args:
            problem: Problem to solve.
            initial_guess: Joint matrix (n_steps, dof).

        Returns:
            Tuple of (status, joint matrix (n_steps, dof)).
        """
        self._check_problem(problem)
        shape = (problem.n_steps, problem.dof)
        x0 = np.asarray(initial_guess, dtype=np.float64).reshape(shape).ravel()

        fns = TrajectoryFunctions(problem, self.kinematics, self.distance_fn)

        constraints = []
        if fns.has_constraints:
            constraints.append({
                "type": "eq",
                "fun": fns.constraints,
                "jac": fns.constraint_jacobian,
            })

        bounds = None
        if problem.start_fixed:
            bounds = [(None, None)] * x0.size
            for j in range(problem.dof):
                bounds[j] = (x0[j], x0[j])

        has_collision = any(t.kind is TermKind.COLLISION for t in problem.costs)
        if has_collision and self.distance_fn is None:
            logger.warning("No distance function given, collision costs are ignored")

        t_start = time.time()
        result = minimize(
            fns.cost,
            x0,
            jac=fns.gradient,
            method=self.config.method,
            bounds=bounds,
            constraints=constraints,
            options={
                "maxiter": self.config.max_iter,
                "ftol": self.config.ftol,
                "disp": False,
            },
        )
        wall_time = time.time() - t_start

        status = SolverStatus.CONVERGED if result.success else SolverStatus.NOT_CONVERGED
        logger.info(
            "Solver finished: %s (cost = %.4f, %d iterations, %d evaluations, %.1fs) %s",
            status.value, float(result.fun), result.nit, fns.n_evals, wall_time,
            result.message,
        )
        return status, np.asarray(result.x).reshape(shape)
