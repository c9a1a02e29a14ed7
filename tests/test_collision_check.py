"""Tests for safety margins and sphere-cylinder clearance."""

import numpy as np
import pytest

from collision_check import (
    MarginData,
    SafetyMarginSpec,
    SphereCylinderConfig,
    SphereCylinderDistance,
    create_safety_margin_data_vector,
    pair_key,
    point_cylinder_distance,
)


# ============================================================
# TestSafetyMarginSpec
# ============================================================

class TestSafetyMarginSpec:
    """Tests for pairwise margin lookup."""

    def test_defaults(self):
        spec = SafetyMarginSpec()
        assert spec.default == MarginData(distance=0.025, coeff=20.0)
        assert spec.overrides == {}

    def test_unlisted_pair_uses_default(self):
        spec = SafetyMarginSpec.uniform(0.03, 10.0)
        assert spec.get_pair("link_1", "link_4") == MarginData(0.03, 10.0)

    def test_override_is_symmetric(self):
        spec = SafetyMarginSpec()
        spec.set_pair("sander_disk", "part", -0.01, 20.0)
        assert spec.get_pair("sander_disk", "part") == MarginData(-0.01, 20.0)
        assert spec.get_pair("part", "sander_disk") == MarginData(-0.01, 20.0)

    def test_override_does_not_leak(self):
        spec = SafetyMarginSpec()
        spec.set_pair("sander_disk", "part", -0.01, 20.0)
        assert spec.get_pair("sander_shaft", "part") == spec.default
        assert spec.get_pair("sander_disk", "link_6") == spec.default
        assert spec.get_pair("part", "part") == spec.default

    def test_later_override_replaces_earlier(self):
        spec = SafetyMarginSpec()
        spec.set_pair("a", "b", 0.1, 1.0)
        spec.set_pair("b", "a", 0.2, 2.0)
        assert len(spec.overrides) == 1
        assert spec.get_pair("a", "b") == MarginData(0.2, 2.0)

    def test_frozen_copy(self):
        spec = SafetyMarginSpec()
        spec.set_pair("a", "b", 0.1, 1.0)
        frozen = spec.frozen()
        with pytest.raises(TypeError):
            frozen.set_pair("a", "c", 0.2, 2.0)
        spec.set_pair("a", "b", 0.3, 3.0)
        assert frozen.get_pair("b", "a") == MarginData(0.1, 1.0)
        assert frozen.default == spec.default

    def test_pair_key_unordered(self):
        assert pair_key("a", "b") == pair_key("b", "a")
        assert pair_key("a", "b") != pair_key("a", "c")


class TestSafetyMarginDataVector:
    """Tests for per-step margin tables."""

    def test_length_and_defaults(self):
        margins = create_safety_margin_data_vector(10, 0.025, 20.0)
        assert len(margins) == 10
        assert all(m.default == MarginData(0.025, 20.0) for m in margins)

    def test_steps_are_independent(self):
        margins = create_safety_margin_data_vector(3, 0.025, 20.0)
        margins[0].set_pair("a", "b", 0.0, 1.0)
        assert margins[1].get_pair("a", "b") == MarginData(0.025, 20.0)


# ============================================================
# TestPointCylinderDistance
# ============================================================

class TestPointCylinderDistance:
    """Tests for signed point to solid cylinder distance."""

    def test_outside_radially(self):
        d = point_cylinder_distance(np.array([0.5, 0.0, 0.0]), radius=0.2, length=1.0)
        assert np.isclose(d, 0.3)

    def test_on_surface(self):
        d = point_cylinder_distance(np.array([0.0, 0.2, 0.3]), radius=0.2, length=1.0)
        assert np.isclose(d, 0.0)

    def test_inside_is_negative(self):
        d = point_cylinder_distance(np.array([0.15, 0.0, 0.0]), radius=0.2, length=1.0)
        assert np.isclose(d, -0.05)

    def test_inside_near_cap(self):
        d = point_cylinder_distance(np.array([0.0, 0.0, 0.45]), radius=0.2, length=1.0)
        assert np.isclose(d, -0.05)

    def test_beyond_rim(self):
        d = point_cylinder_distance(np.array([0.5, 0.0, 0.9]), radius=0.2, length=1.0)
        assert np.isclose(d, np.hypot(0.3, 0.4))


class _FixedKinematics:
    """Kinematics stub reporting a fixed position."""

    def __init__(self, position):
        self.position = np.asarray(position, dtype=np.float64)

    def forward_kinematics(self, q):
        return self.position, np.eye(3)


class TestSphereCylinderDistance:
    """Tests for link sphere clearance against the work-piece."""

    def test_distance_per_link(self):
        T = np.eye(4)
        T[:3, 3] = [1.0, 0.0, 0.5]
        config = SphereCylinderConfig(
            radius=0.2, length=1.0, transform=T,
            link_radii={"sander_disk": 0.05, "sander_shaft": 0.0},
        )
        distance_fn = SphereCylinderDistance(config, {
            "sander_disk": _FixedKinematics([0.7, 0.0, 0.5]),
            "sander_shaft": _FixedKinematics([1.0, 0.0, 0.5]),
        })

        distances = distance_fn(np.zeros(6))

        assert set(distances) == {("sander_disk", "part"), ("sander_shaft", "part")}
        assert np.isclose(distances[("sander_disk", "part")], 0.1 - 0.05)
        assert np.isclose(distances[("sander_shaft", "part")], -0.2)

    @pytest.mark.parametrize("link_radius", [0.0, 0.02])
    def test_sphere_radius_reduces_clearance(self, link_radius):
        config = SphereCylinderConfig(link_radii={"tool": link_radius})
        distance_fn = SphereCylinderDistance(config, {"tool": _FixedKinematics([0.5, 0.0, 0.0])})
        assert np.isclose(distance_fn(np.zeros(1))[("tool", "part")], 0.3 - link_radius)
