#!/usr/bin/env python3
"""Plan and execute a sanding pass over a cylindrical part.

Builds the sanding robot environment, attaches the part, formulates
the trajectory optimization problem over the ring-stack path, solves
it with SciPy and hands the resulting trajectory to the controller.

Usage:
    python3 run_sanding_demo.py [--slices 5] [--angle-step-deg 15] [--goal-dir DIR]
"""

import argparse
import json
import logging
from pathlib import Path

import numpy as np

from collision_check import SphereCylinderConfig, SphereCylinderDistance
from kinematics import ChainKinematics
from models.robots.sander.sander import (
    BASE_LINK,
    JOINT_CHAIN,
    LINK_RADII,
    TOOL_LINK,
)
from models.workpieces import CylinderWorkpiece
from sanding_planner import (
    JsonTrajectoryExecutor,
    KinematicEnvironment,
    PlannerConfig,
    PlanningError,
    ScipySolver,
    SolverConfig,
    run_sanding_pass,
)
from surface_paths import CylinderPathConfig


def main() -> None:
    """Run the sanding pass."""
    parser = argparse.ArgumentParser(
        description="Plan a collision-aware sanding pass over a cylinder",
    )
    parser.add_argument(
        "--radius", type=float, default=0.2,
        help="Cylinder radius in meters (default: 0.2)",
    )
    parser.add_argument(
        "--slices", type=int, default=5,
        help="Number of rings along the cylinder (default: 5)",
    )
    parser.add_argument(
        "--slice-height", type=float, default=0.1,
        help="Height between rings in meters (default: 0.1)",
    )
    parser.add_argument(
        "--angle-step-deg", type=float, default=15.0,
        help="Angular step within a ring in degrees (default: 15)",
    )
    parser.add_argument(
        "--max-iter", type=int, default=200,
        help="Max solver iterations (default: 200)",
    )
    parser.add_argument(
        "--no-collision", action="store_true",
        help="Do not evaluate collision costs",
    )
    parser.add_argument(
        "--goal-dir", type=str, default=None,
        help="Controller goal directory (default: data/goals)",
    )
    parser.add_argument(
        "--result-timeout", type=float, default=None,
        help="Seconds to wait for the controller result "
             "(default: trajectory duration + tolerances)",
    )
    parser.add_argument(
        "--snapshot-dir", type=str, default=None,
        help="Directory for pose and scene snapshots (default: none)",
    )
    parser.add_argument(
        "--output", type=str, default=None,
        help="Output JSON path (default: data/sanding_trajectory.json)",
    )
    args = parser.parse_args()

    base_dir = Path(__file__).parent.parent / "data"
    if args.output is None:
        args.output = str(base_dir / "sanding_trajectory.json")
    if args.goal_dir is None:
        args.goal_dir = str(base_dir / "goals")

    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
    )
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("Sanding Pass Planning")
    logger.info("=" * 60)

    workpiece = CylinderWorkpiece(radius=args.radius)
    config = PlannerConfig(
        path=CylinderPathConfig(
            radius=args.radius,
            slice_height=args.slice_height,
            n_slices=args.slices,
            angle_step=np.deg2rad(args.angle_step_deg),
        ),
        workpiece=workpiece,
        snapshot_dir=Path(args.snapshot_dir) if args.snapshot_dir else None,
    )

    logger.info(f"  Radius: {config.path.radius} m")
    logger.info(f"  Slices: {config.path.n_slices} x {config.path.slice_height} m")
    logger.info(f"  Angle step: {args.angle_step_deg} deg")
    logger.info(f"  Max iter: {args.max_iter}")
    logger.info("")

    env = KinematicEnvironment.from_chain(JOINT_CHAIN)
    kin = ChainKinematics(env.get_link_chain(BASE_LINK, TOOL_LINK), tip_link=TOOL_LINK)

    distance_fn = None
    if not args.no_collision:
        distance_fn = SphereCylinderDistance(
            SphereCylinderConfig(
                cylinder_name=workpiece.name,
                radius=workpiece.radius,
                length=workpiece.length,
                transform=workpiece.transform,
                link_radii=LINK_RADII,
            ),
            {
                link: ChainKinematics(env.get_link_chain(BASE_LINK, link), tip_link=link)
                for link in LINK_RADII
            },
        )

    solver = ScipySolver(
        kinematics=kin,
        distance_fn=distance_fn,
        config=SolverConfig(max_iter=args.max_iter),
    )
    Path(args.goal_dir).mkdir(parents=True, exist_ok=True)
    executor = JsonTrajectoryExecutor(args.goal_dir, result_timeout=args.result_timeout)

    try:
        result = run_sanding_pass(env, solver, executor, config)
    except PlanningError as e:
        logger.error(f"Planning aborted: {e}")
        raise SystemExit(1)

    outcome = result.outcome
    logger.info("")
    logger.info("=" * 60)
    logger.info("Results")
    logger.info("=" * 60)
    logger.info(f"  Waypoints: {len(outcome.path)}")
    logger.info(f"  Converged: {outcome.converged}")
    logger.info(f"  Trajectory points: {len(outcome.trajectory)}")
    logger.info(f"  Executed: {result.executed}")

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_data = {
        "config": {
            "radius": config.path.radius,
            "n_slices": config.path.n_slices,
            "slice_height": config.path.slice_height,
            "angle_step": config.path.angle_step,
        },
        "status": outcome.status.value,
        "trajectory": outcome.trajectory.to_dict(),
    }
    with open(output_path, "w") as f:
        json.dump(output_data, f, indent=2)

    logger.info("")
    logger.info(f"Saved to {output_path}")

    if not result.success:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
