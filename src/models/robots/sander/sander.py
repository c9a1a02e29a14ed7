"""Sanding robot model constants.

A six-axis arm carrying a sander spindle. The tool center point
(``sander_tcp``) sits on the face of the sanding disk with its
z-axis pointing out of the disk.
"""

import numpy as np

MANIPULATOR_NAME = "my_robot"
BASE_LINK = "world_frame"
TOOL_LINK = "sander_tcp"

# Collision bodies of the end effector
SANDER_DISK = "sander_disk"
SANDER_SHAFT = "sander_shaft"

JOINT_NAMES = [
    "joint_1",
    "joint_2",
    "joint_3",
    "joint_4",
    "joint_5",
    "joint_6",
]

LINK_NAMES = [
    "world_frame",
    "base_link",
    "link_1",
    "link_2",
    "link_3",
    "link_4",
    "link_5",
    "link_6",
    SANDER_SHAFT,
    SANDER_DISK,
    TOOL_LINK,
]

# (name, parent, child, xyz, rpy, axis, type)
# Revolute axes follow the usual 6R industrial layout.
JOINT_CHAIN = [
    ("base_joint", "world_frame", "base_link",
        (0.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 0.0, 1.0), "fixed"),
    ("joint_1", "base_link", "link_1",
        (0.0, 0.0, 0.450), (0.0, 0.0, 0.0), (0.0, 0.0, 1.0), "revolute"),
    ("joint_2", "link_1", "link_2",
        (0.150, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), "revolute"),
    ("joint_3", "link_2", "link_3",
        (0.0, 0.0, 0.600), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), "revolute"),
    ("joint_4", "link_3", "link_4",
        (0.0, 0.0, 0.120), (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), "revolute"),
    ("joint_5", "link_4", "link_5",
        (0.640, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), "revolute"),
    ("joint_6", "link_5", "link_6",
        (0.100, 0.0, 0.0), (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), "revolute"),
    ("shaft_joint", "link_6", SANDER_SHAFT,
        (0.0, 0.0, 0.0), (0.0, np.pi / 2, 0.0), (0.0, 0.0, 1.0), "fixed"),
    ("disk_joint", SANDER_SHAFT, SANDER_DISK,
        (0.0, 0.0, 0.150), (0.0, 0.0, 0.0), (0.0, 0.0, 1.0), "fixed"),
    ("tcp_joint", SANDER_DISK, TOOL_LINK,
        (0.0, 0.0, 0.010), (0.0, 0.0, 0.0), (0.0, 0.0, 1.0), "fixed"),
]

# Sphere approximation of the end effector bodies for clearance checks [m]
LINK_RADII = {
    SANDER_DISK: 0.060,
    SANDER_SHAFT: 0.030,
}
