"""Write-only snapshots of the generated path and the collision world.

Snapshots are plain dictionaries ready for JSON serialization. They
are produced for display and inspection only; nothing reads them back.
"""

import json
import time
from pathlib import Path
from typing import Sequence

import numpy as np

from surface_paths import Waypoint

from .environment import KinematicEnvironment


def _to_list(value):
    if isinstance(value, np.ndarray):
        return value.tolist()
    return value


def pose_array_snapshot(path: Sequence[Waypoint], frame_id: str) -> dict:
    """Pose list of a path, orientations as scalar-last quaternions.

    Args:
        path: Waypoints to record.
        frame_id: Frame the poses are expressed in.

    Returns:
        Dictionary with frame_id, stamp and poses.
    """
    return {
        "frame_id": frame_id,
        "stamp": time.time(),
        "poses": [
            {
                "position": wp.position.tolist(),
                "orientation": wp.xyzw.tolist(),
            }
            for wp in path
        ],
    }


def scene_snapshot(env: KinematicEnvironment) -> dict:
    """State of the collision world and the joints."""
    joint_names = env.get_joint_names()
    objects = {}
    for name, obj in env.get_attachable_objects().items():
        objects[name] = {
            "collision": [
                {"shape": shape.to_dict(), "pose": _to_list(pose)}
                for shape, pose in zip(obj.collision.shapes, obj.collision.shape_poses)
            ],
        }
    attached = {
        name: {
            "parent_link": info.parent_link_name,
            "transform": _to_list(info.transform),
        }
        for name, info in env.get_attached_bodies().items()
    }
    return {
        "stamp": time.time(),
        "links": env.get_link_names(),
        "joint_state": {
            "names": joint_names,
            "positions": env.get_current_joint_values().tolist(),
        },
        "attachable_objects": objects,
        "attached_bodies": attached,
    }


def write_snapshot(data: dict, path: str | Path) -> Path:
    """Dump a snapshot as JSON, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data, f, indent=2)
    return path
