"""Tests for the environment context and scene setup."""

import numpy as np
import pytest

from kinematics import JointSpec
from models.robots.sander.sander import (
    BASE_LINK,
    JOINT_NAMES,
    MANIPULATOR_NAME,
    SANDER_DISK,
    TOOL_LINK,
)
from models.workpieces import CylinderWorkpiece
from sanding_planner import (
    AttachableObject,
    AttachedBodyInfo,
    AttachmentError,
    Cylinder,
    KinematicEnvironment,
    add_workpiece,
    make_workpiece_object,
)


# ============================================================
# TestKinematicEnvironment
# ============================================================

class TestKinematicEnvironment:
    """Tests for the kinematic tree, manipulators and joint state."""

    def test_joint_names_are_actuated_joints(self, bare_env):
        assert bare_env.get_joint_names() == JOINT_NAMES

    def test_links(self, bare_env):
        links = bare_env.get_link_names()
        assert BASE_LINK in links
        assert TOOL_LINK in links

    def test_add_manipulator(self, bare_env):
        assert bare_env.add_manipulator(BASE_LINK, TOOL_LINK, MANIPULATOR_NAME)
        manip = bare_env.get_manipulator(MANIPULATOR_NAME)
        assert manip.base_link_name == BASE_LINK
        assert manip.tip_link_name == TOOL_LINK
        assert list(manip.joint_names) == JOINT_NAMES
        assert manip.num_joints == 6

    def test_add_manipulator_rejects_duplicates(self, bare_env):
        assert bare_env.add_manipulator(BASE_LINK, TOOL_LINK, MANIPULATOR_NAME)
        assert not bare_env.add_manipulator(BASE_LINK, TOOL_LINK, MANIPULATOR_NAME)

    def test_add_manipulator_rejects_unknown_link(self, bare_env):
        assert not bare_env.add_manipulator(BASE_LINK, "no_such_link", "arm")
        assert bare_env.get_manipulator("arm") is None

    def test_add_manipulator_rejects_reversed_chain(self, bare_env):
        assert not bare_env.add_manipulator(TOOL_LINK, BASE_LINK, "arm")

    def test_unknown_manipulator_is_none(self, bare_env):
        assert bare_env.get_manipulator("missing") is None

    def test_partial_manipulator(self, bare_env):
        assert bare_env.add_manipulator("link_2", "link_4", "forearm")
        assert bare_env.get_manipulator("forearm").joint_names == ("joint_3", "joint_4")

    def test_set_state(self, env):
        env.set_state(["joint_2", "joint_5"], [0.5, -1.0])
        q = env.get_current_joint_values(MANIPULATOR_NAME)
        np.testing.assert_allclose(q, [0.0, 0.5, 0.0, 0.0, -1.0, 0.0])

    def test_set_state_validation(self, env):
        with pytest.raises(ValueError):
            env.set_state(["joint_1"], [0.1, 0.2])
        with pytest.raises(ValueError):
            env.set_state(["joint_7"], [0.1])

    def test_joint_values_of_unknown_manipulator(self, env):
        with pytest.raises(KeyError):
            env.get_current_joint_values("missing")

    def test_get_chain(self, env):
        chain = env.get_chain(MANIPULATOR_NAME)
        assert chain[0].parent == BASE_LINK
        assert chain[-1].child == TOOL_LINK
        for parent, child in zip(chain[:-1], chain[1:]):
            assert parent.child == child.parent

    def test_link_with_two_parents_rejected(self):
        with pytest.raises(ValueError):
            KinematicEnvironment([
                JointSpec("j1", "a", "b"),
                JointSpec("j2", "c", "b"),
            ])

    def test_invalid_joint_type(self):
        with pytest.raises(ValueError):
            JointSpec("j1", "a", "b", joint_type="ball")


class TestCollisionWorld:
    """Tests for attachable objects and attachments."""

    def test_attach_requires_registration(self, bare_env):
        info = AttachedBodyInfo(object_name="part", parent_link_name=BASE_LINK)
        assert not bare_env.attach_body(info)

    def test_reject_duplicate_object(self, bare_env):
        assert bare_env.add_attachable_object(AttachableObject(name="part"))
        assert not bare_env.add_attachable_object(AttachableObject(name="part"))

    def test_reject_link_name_as_object(self, bare_env):
        assert not bare_env.add_attachable_object(AttachableObject(name=SANDER_DISK))

    def test_reject_empty_name(self, bare_env):
        assert not bare_env.add_attachable_object(AttachableObject(name=""))

    def test_remove_object(self, bare_env):
        assert not bare_env.remove_attachable_object("part")
        bare_env.add_attachable_object(AttachableObject(name="part"))
        assert bare_env.remove_attachable_object("part")
        assert bare_env.get_attachable_objects() == {}

    def test_attached_object_not_removed(self, bare_env):
        bare_env.add_attachable_object(AttachableObject(name="part"))
        assert bare_env.attach_body(AttachedBodyInfo("part", BASE_LINK))
        assert not bare_env.remove_attachable_object("part")

    def test_reject_unknown_parent(self, bare_env):
        bare_env.add_attachable_object(AttachableObject(name="part"))
        info = AttachedBodyInfo(object_name="part", parent_link_name="nowhere")
        assert not bare_env.attach_body(info)
        assert bare_env.get_attached_bodies() == {}


# ============================================================
# TestSceneBuilder
# ============================================================

class TestSceneBuilder:
    """Tests for work-piece registration."""

    def test_workpiece_object_geometry(self):
        obj = make_workpiece_object(CylinderWorkpiece(radius=0.2, length=1.0))
        assert obj.name == "part"
        assert obj.visual.shapes == [Cylinder(radius=0.2, length=1.0)]
        assert obj.collision.shapes == [Cylinder(radius=0.2, length=1.0)]
        np.testing.assert_array_equal(obj.collision.shape_poses[0], np.eye(4))

    def test_add_workpiece(self, bare_env):
        info = add_workpiece(bare_env)

        assert "part" in bare_env.get_attachable_objects()
        attached = bare_env.get_attached_bodies()["part"]
        assert attached is info
        assert attached.parent_link_name == BASE_LINK
        np.testing.assert_allclose(attached.transform[:3, 3], [1.0, 0.0, 0.5])
        np.testing.assert_allclose(attached.transform[:3, :3], np.eye(3))

    def test_custom_offset(self, bare_env):
        workpiece = CylinderWorkpiece(offset=(0.8, 0.2, 0.3))
        info = add_workpiece(bare_env, workpiece)
        np.testing.assert_allclose(info.transform[:3, 3], [0.8, 0.2, 0.3])

    def test_duplicate_name_raises(self, bare_env):
        add_workpiece(bare_env)
        with pytest.raises(AttachmentError):
            add_workpiece(bare_env)

    def test_unknown_parent_raises(self, bare_env):
        with pytest.raises(AttachmentError):
            add_workpiece(bare_env, CylinderWorkpiece(parent_link="table"))

    def test_rejected_attachment_can_be_retried(self, bare_env):
        with pytest.raises(AttachmentError):
            add_workpiece(bare_env, CylinderWorkpiece(parent_link="table"))
        assert "part" not in bare_env.get_attachable_objects()

        info = add_workpiece(bare_env, CylinderWorkpiece())
        assert bare_env.get_attached_bodies()["part"] is info
