"""Work-piece registration in the collision environment.

Registering an object only adds it to the environment's object
database. It takes part in contact checking once it is attached to a
link, so both steps are always done together here.
"""

import logging

import numpy as np

from models.workpieces import CylinderWorkpiece

from .environment import (
    AttachableObject,
    AttachedBodyInfo,
    Cylinder,
    Environment,
)
from .errors import AttachmentError

logger = logging.getLogger(__name__)


def make_workpiece_object(workpiece: CylinderWorkpiece) -> AttachableObject:
    """Build the attachable object for a cylinder work-piece.

    The same cylinder is used for the visual and collision geometry,
    both at identity pose in the object frame.
    """
    shape = Cylinder(radius=workpiece.radius, length=workpiece.length)

    obj = AttachableObject(name=workpiece.name)
    obj.visual.add(shape, np.eye(4))
    obj.collision.add(shape, np.eye(4))
    return obj


def add_workpiece(
    env: Environment,
    workpiece: CylinderWorkpiece | None = None,
) -> AttachedBodyInfo:
    """Register the work-piece and attach it rigidly to its parent link.

    Args:
        env: Environment to modify.
        workpiece: Work-piece to add. Uses defaults if None.

    Returns:
        The attachment that was applied.

    Raises:
        AttachmentError: If the environment rejects the object or the
            attachment (duplicate name, unknown parent link). A rejected
            attachment leaves the object unregistered.
    """
    workpiece = workpiece or CylinderWorkpiece()

    obj = make_workpiece_object(workpiece)
    if not env.add_attachable_object(obj):
        raise AttachmentError(
            f"Environment rejected attachable object '{workpiece.name}'"
        )

    attached_body = AttachedBodyInfo(
        object_name=workpiece.name,
        parent_link_name=workpiece.parent_link,
        transform=workpiece.transform,
    )
    if not env.attach_body(attached_body):
        env.remove_attachable_object(workpiece.name)
        raise AttachmentError(
            f"Could not attach '{workpiece.name}' to '{workpiece.parent_link}'"
        )

    logger.info(
        "Attached '%s' (cylinder r=%.3f m, l=%.3f m) to '%s' at %s",
        workpiece.name, workpiece.radius, workpiece.length,
        workpiece.parent_link, list(workpiece.offset),
    )
    return attached_body
