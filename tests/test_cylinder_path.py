"""Tests for the cylinder coverage path."""

import numpy as np
import pytest

from surface_paths import (
    CylinderPathConfig,
    Waypoint,
    make_cylinder_path,
    ring_angles,
    surface_frame,
)


# ============================================================
# TestRingAngles
# ============================================================

class TestRingAngles:
    """Tests for angle sampling within a ring."""

    def test_default_step_gives_25_samples(self):
        angles = ring_angles(np.pi / 12)
        assert len(angles) == 25

    def test_includes_zero_and_full_turn(self):
        """Both 0 and 2*pi are emitted."""
        angles = ring_angles(np.pi / 12)
        assert angles[0] == 0.0
        assert angles[-1] == 2 * np.pi

    @pytest.mark.parametrize("step", [np.pi / 2, np.pi / 6, np.pi / 12, 0.5, 1.0])
    def test_sample_count(self, step):
        """ceil(2*pi / step) + 1 samples per ring."""
        angles = ring_angles(step)
        assert len(angles) == int(np.ceil(2 * np.pi / step - 1e-9)) + 1

    def test_non_dividing_step_ends_at_full_turn(self):
        angles = ring_angles(1.0)
        np.testing.assert_allclose(angles[:-1], np.arange(7) * 1.0)
        assert angles[-1] == 2 * np.pi

    def test_dividing_steps_end_exactly_at_full_turn(self):
        """k * step may land just below 2*pi; the last sample is still exact."""
        for n in range(1, 200):
            angles = ring_angles(2 * np.pi / n)
            assert len(angles) == n + 1
            assert angles[-1] == 2 * np.pi
            assert np.all(np.diff(angles) > 0)

    def test_strictly_increasing(self):
        angles = ring_angles(0.5)
        assert np.all(np.diff(angles) > 0)

    def test_non_positive_step_rejected(self):
        with pytest.raises(ValueError):
            ring_angles(0.0)


# ============================================================
# TestSurfaceFrame
# ============================================================

class TestSurfaceFrame:
    """Tests for waypoint orientation frames."""

    @pytest.mark.parametrize("theta", [0.0, 0.3, np.pi / 2, 2.0, np.pi, 5.5])
    def test_orthonormal_right_handed(self, theta):
        R = surface_frame(theta)
        np.testing.assert_allclose(R.T @ R, np.eye(3), atol=1e-12)
        assert np.isclose(np.linalg.det(R), 1.0)
        np.testing.assert_allclose(R[:, 0], np.cross(R[:, 1], R[:, 2]), atol=1e-12)

    def test_frame_at_zero(self):
        """At theta=0 the tool looks along -x, tangent +y, x-axis up."""
        R = surface_frame(0.0)
        np.testing.assert_allclose(R[:, 2], [-1.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(R[:, 1], [0.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(R[:, 0], [0.0, 0.0, 1.0], atol=1e-12)


# ============================================================
# TestMakeCylinderPath
# ============================================================

class TestMakeCylinderPath:
    """Tests for the full ring-stack path."""

    def test_default_path_length(self, default_path):
        """5 slices x 25 angle samples."""
        assert len(default_path) == 125

    @pytest.mark.parametrize("n_slices,step", [(1, np.pi / 2), (3, np.pi / 6), (2, 1.0)])
    def test_path_length(self, n_slices, step):
        path = make_cylinder_path(CylinderPathConfig(n_slices=n_slices, angle_step=step))
        per_slice = int(np.ceil(2 * np.pi / step - 1e-9)) + 1
        assert len(path) == n_slices * per_slice

    def test_all_waypoints_are_waypoints(self, default_path):
        assert all(isinstance(wp, Waypoint) for wp in default_path)

    def test_frames_orthonormal(self, default_path):
        for wp in default_path:
            for axis in (wp.x_axis, wp.y_axis, wp.z_axis):
                assert np.isclose(np.linalg.norm(axis), 1.0)
            assert abs(np.dot(wp.x_axis, wp.y_axis)) < 1e-12
            assert abs(np.dot(wp.y_axis, wp.z_axis)) < 1e-12
            assert abs(np.dot(wp.x_axis, wp.z_axis)) < 1e-12
            np.testing.assert_allclose(
                wp.x_axis, np.cross(wp.y_axis, wp.z_axis), atol=1e-12,
            )

    def test_z_axis_points_to_cylinder_axis(self, default_path):
        """z-axis is the unit vector from the point to the axis at its height."""
        center = np.array([1.0, 0.0])
        for wp in default_path:
            to_axis = np.array([center[0] - wp.position[0], center[1] - wp.position[1], 0.0])
            to_axis /= np.linalg.norm(to_axis)
            np.testing.assert_allclose(wp.z_axis, to_axis, atol=1e-12)

    def test_points_on_cylinder_surface(self, default_path):
        for wp in default_path:
            r = np.hypot(wp.position[0] - 1.0, wp.position[1])
            assert np.isclose(r, 0.2)

    def test_slice_heights(self, default_path):
        """Outer loop over slices, 25 samples per slice."""
        z = np.array([wp.position[2] for wp in default_path]).reshape(5, 25)
        expected = 0.5 + 0.1 * np.arange(5)
        np.testing.assert_allclose(z, np.repeat(expected[:, None], 25, axis=1))

    def test_ring_closes_on_itself(self, default_path):
        """First and last waypoint of each ring coincide (not deduplicated)."""
        for i in range(5):
            first = default_path[25 * i]
            last = default_path[25 * i + 24]
            np.testing.assert_allclose(first.position, last.position, atol=1e-12)
            np.testing.assert_allclose(first.rotation, last.rotation, atol=1e-12)

    def test_rotated_origin(self):
        """Rings stack along the origin's z-axis and frames rotate with it."""
        origin = np.eye(4)
        origin[:3, :3] = np.array([
            [1.0, 0.0, 0.0],
            [0.0, 0.0, -1.0],
            [0.0, 1.0, 0.0],
        ])  # x-axis rotation by 90 deg
        path = make_cylinder_path(CylinderPathConfig(n_slices=2, origin=origin))
        second_ring = path[25]
        # Ring offset 0.1 along the origin z-axis, which is world -y
        assert np.isclose(second_ring.position[1], -0.1)
        np.testing.assert_allclose(
            second_ring.z_axis, origin[:3, :3] @ [-1.0, 0.0, 0.0], atol=1e-12,
        )

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            make_cylinder_path(CylinderPathConfig(radius=0.0))
        with pytest.raises(ValueError):
            make_cylinder_path(CylinderPathConfig(n_slices=0))


# ============================================================
# TestWaypoint
# ============================================================

class TestWaypoint:
    """Tests for waypoint representation."""

    def test_quaternion_scalar_first(self):
        wp = Waypoint(position=np.zeros(3), rotation=np.eye(3))
        np.testing.assert_allclose(np.abs(wp.wxyz), [1.0, 0.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(np.abs(wp.xyzw), [0.0, 0.0, 0.0, 1.0], atol=1e-12)

    def test_quaternion_matches_rotation(self, default_path):
        from scipy.spatial.transform import Rotation

        for wp in default_path[:25]:
            w, x, y, z = wp.wxyz
            R = Rotation.from_quat([x, y, z, w]).as_matrix()
            np.testing.assert_allclose(R, wp.rotation, atol=1e-9)

    def test_transform(self):
        wp = Waypoint(position=[1.0, 2.0, 3.0], rotation=np.eye(3))
        T = wp.transform
        np.testing.assert_allclose(T[:3, 3], [1.0, 2.0, 3.0])
        np.testing.assert_allclose(T[:3, :3], np.eye(3))

    def test_immutable(self, default_path):
        wp = default_path[0]
        with pytest.raises(ValueError):
            wp.position[0] = 5.0
        with pytest.raises(AttributeError):
            wp.position = np.zeros(3)
