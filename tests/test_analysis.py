"""Tests for kinematics, mass properties, thermals and cable routing."""

from __future__ import annotations

import math

import pytest

from mechgate.analysis.cables import CableRouter, RoutedWaypoint, bend_radius, polyline_length
from mechgate.analysis.kinematics import leg_pose, stance_poses
from mechgate.analysis.mass import (
    MassAnalyzer,
    MassProperties,
    assert_stable,
    convex_hull,
    stability_margin,
)
from mechgate.analysis.thermal import ThermalEstimator, interpolate_efficiency
from mechgate.errors import CableFitFailure, ConfigError, StabilityFailure, ThermalOverrun
from mechgate.geometry import BoundingBox, BoxKernel, BoxSolid, FrameTree, Placement
from mechgate.models.assembly import JointAngles, Leg, Stance
from mechgate.models.cable import CableRun
from mechgate.models.part import BoxFeature, PartModel, Range
from mechgate.params.documents import ActuatorSpec, Material


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SQUARE = [(0.0, 0.0), (100.0, 0.0), (100.0, 100.0), (0.0, 100.0)]


def _frames(assembly_params) -> FrameTree:
    frames = FrameTree.from_interfaces(assembly_params.interfaces)
    frames.resolve_all()
    return frames


def _props(name: str, subsystem: str, mass: float, com=(0.0, 0.0, 0.0)) -> MassProperties:
    zero = (0.0, 0.0, 0.0)
    return MassProperties(name, subsystem, mass, com, (zero, zero, zero))


def _leg(**kw) -> Leg:
    defaults = dict(name="fl", hip=Placement(), coxa_mm=50, femur_mm=100, tibia_mm=100)
    defaults.update(kw)
    return Leg(**defaults)


def _servo(**kw) -> ActuatorSpec:
    defaults = dict(
        rated_peak_torque_nm=10,
        efficiency_curve=((0, 0.5), (50, 0.8), (100, 0.7)),
        thermal_resistance_k_per_w=2.0,
        max_winding_temp_c=120,
        operating_speed_rad_s=5,
    )
    defaults.update(kw)
    return ActuatorSpec(**defaults)


def _aluminium() -> Material:
    return Material(
        density_kg_m3=2700,
        yield_strength_mpa=276,
        elastic_modulus_gpa=68.9,
        thermal_conductivity_w_mk=167,
        max_service_temp_c=150,
    )


def _routed(*points) -> list[RoutedWaypoint]:
    return [RoutedWaypoint(f"w{i}", p, None) for i, p in enumerate(points)]


def _solid(name: str, *boxes: tuple[float, ...]) -> BoxSolid:
    """Box solid from ``(x0, y0, z0, x1, y1, z1)`` tuples."""
    bounds = [
        BoundingBox(min_x=b[0], min_y=b[1], min_z=b[2], max_x=b[3], max_y=b[4], max_z=b[5])
        for b in boxes
    ]
    return BoxSolid(bounds, label=name)


# ---------------------------------------------------------------------------
# Kinematics
# ---------------------------------------------------------------------------

class TestKinematics:

    def test_straight_leg(self):
        pose = leg_pose(_leg(), JointAngles(), FrameTree({}))
        assert pose.joints["hip_pitch"] == (50.0, 0.0, 0.0)
        assert pose.foot == pytest.approx((250.0, 0.0, 0.0))

    def test_crouched_leg(self):
        pose = leg_pose(_leg(), JointAngles(hip_pitch=45, knee=45), FrameTree({}))
        reach = 100 * math.cos(math.radians(45))
        assert pose.foot == pytest.approx((50 + reach, 0.0, -reach - 100), abs=1e-9)
        assert pose.moment_arm_mm("hip_pitch") == pytest.approx(reach)
        assert pose.moment_arm_mm("knee") == pytest.approx(0.0, abs=1e-9)

    def test_mount_yaw_mirrors_leg(self):
        pose = leg_pose(_leg(mount_yaw_deg=180), JointAngles(), FrameTree({}))
        assert pose.foot == pytest.approx((-250.0, 0.0, 0.0), abs=1e-9)

    def test_fixture_stance(self, assembly, pset):
        poses = stance_poses(assembly, assembly.stances["stand"], _frames(pset))
        assert [p.leg for p in poses] == ["fl", "fr", "rl", "rr"]
        xs = sorted(round(p.foot[0], 3) for p in poses)
        assert xs == [-270.711, -270.711, 270.711, 270.711]

    def test_unknown_contact_leg(self, assembly, pset):
        stance = Stance(name="hop", angles={}, contacts=("fl", "tail"))
        with pytest.raises(ConfigError, match="tail|fl"):
            stance_poses(assembly, stance, _frames(pset))


# ---------------------------------------------------------------------------
# Mass
# ---------------------------------------------------------------------------

class TestMassAnalyzer:

    def test_part_mass_uses_density(self):
        part = PartModel(name="p", material="al", boxes=(BoxFeature(size=(100, 100, 100)),))
        solid = BoxKernel().realize(part, part.placement.local_transform())
        analyzer = MassAnalyzer({"al": _aluminium()})
        assert analyzer.part_mass(part, solid) == pytest.approx(2.7)

    def test_unknown_material(self):
        part = PartModel(name="p", material="unobtainium", boxes=(BoxFeature(size=(1, 1, 1)),))
        solid = BoxKernel().realize(part, part.placement.local_transform())
        with pytest.raises(ConfigError, match="unobtainium"):
            MassAnalyzer({}).part_mass(part, solid)

    def test_subsystem_totals(self):
        props = [_props("a", "legs", 1.0), _props("b", "power", 0.5), _props("c", "legs", 0.25)]
        assert MassAnalyzer.subsystem_masses(props) == {"legs": 1.25, "power": 0.5}
        assert MassAnalyzer.total_mass(props) == pytest.approx(1.75)

    def test_center_of_mass_is_mass_weighted(self):
        # Equal volumes, different densities: COM shifts toward the heavy part
        props = [_props("steel", "x", 3.0, (0, 0, 0)), _props("foam", "x", 1.0, (100, 0, 0))]
        assert MassAnalyzer.center_of_mass(props) == pytest.approx((25.0, 0.0, 0.0))

    def test_massless(self):
        with pytest.raises(ConfigError):
            MassAnalyzer.center_of_mass([])

    def test_mass_band(self):
        band = Range(min=2.0, max=5.0)
        assert MassAnalyzer.check_mass_band(3.0, band)[:2] == (True, 0.0)
        ok, delta, diag = MassAnalyzer.check_mass_band(5.5, band)
        assert not ok
        assert delta == pytest.approx(0.5)
        assert "upper bound" in diag
        ok, delta, _ = MassAnalyzer.check_mass_band(1.5, band)
        assert not ok and delta == pytest.approx(-0.5)

    def test_band_edges_inclusive(self):
        band = Range(min=2.0, max=5.0)
        assert MassAnalyzer.check_mass_band(5.0, band)[0]
        assert MassAnalyzer.check_mass_band(2.0, band)[0]


class TestStability:

    def test_hull_drops_interior_points(self):
        hull = convex_hull(SQUARE + [(50.0, 50.0), (50.0, 0.0)])
        assert sorted(hull) == sorted(SQUARE)

    def test_margin_at_centroid(self):
        assert stability_margin((50.0, 50.0), convex_hull(SQUARE)) == pytest.approx(50.0)

    def test_margin_negative_outside(self):
        assert stability_margin((150.0, 50.0), convex_hull(SQUARE)) == pytest.approx(-50.0)

    def test_point_on_edge_fails(self):
        with pytest.raises(StabilityFailure) as info:
            assert_stable("stand", (0.0, 50.0), SQUARE, margin_mm=10)
        assert info.value.measured == pytest.approx(0.0)
        assert "outside or on" in info.value.diagnostic

    def test_inside_but_short_of_margin(self):
        with pytest.raises(StabilityFailure):
            assert_stable("stand", (50.0, 45.0), SQUARE, margin_mm=50)

    def test_passes_with_margin(self):
        assert assert_stable("stand", (50.0, 50.0), SQUARE, margin_mm=50) == pytest.approx(50.0)

    def test_degenerate_polygon(self):
        with pytest.raises(StabilityFailure, match="degenerate"):
            assert_stable("tripod", (0.0, 0.0), [(0.0, 0.0), (10.0, 0.0)])


# ---------------------------------------------------------------------------
# Thermals
# ---------------------------------------------------------------------------

class TestThermalEstimator:

    def test_efficiency_interpolation(self):
        curve = ((0, 0.5), (50, 0.8), (100, 0.7))
        assert interpolate_efficiency(curve, 25) == pytest.approx(0.65)
        assert interpolate_efficiency(curve, 75) == pytest.approx(0.75)
        assert interpolate_efficiency(curve, 250) == 0.7
        assert interpolate_efficiency(curve, -5) == 0.5

    def test_joint_load_chain(self):
        estimator = ThermalEstimator({"servo": _servo()}, ambient_c=25, multiplier=2.0)
        pose = leg_pose(_leg(), JointAngles(), FrameTree({}))
        # 1 kg at 200 mm from the hip pitch axis
        load = estimator.joint_load("stand", pose, "hip_pitch", "servo", 1.0)
        static = 9.80665 * 0.2
        assert load.static_torque_nm == pytest.approx(static)
        assert load.required_torque_nm == pytest.approx(2 * static)
        power = 2 * static * 5
        eff = 0.5 + 0.3 * (100 * 2 * static / 10) / 50
        assert load.heat_w == pytest.approx(power / eff - power)
        assert load.winding_temp_c == pytest.approx(25 + 2.0 * (power / eff - power))
        assert load.winding_limit_c == pytest.approx(108.0)
        assert load.subject == "stand/fl/hip_pitch"

    def test_overrun_raises(self):
        estimator = ThermalEstimator({"hot": _servo(thermal_resistance_k_per_w=50)}, ambient_c=25)
        pose = leg_pose(_leg(), JointAngles(), FrameTree({}))
        load = estimator.joint_load("stand", pose, "hip_pitch", "hot", 1.0)
        with pytest.raises(ThermalOverrun) as info:
            ThermalEstimator.assert_within_limits(load)
        assert info.value.check == "thermal.winding"
        assert info.value.threshold == pytest.approx(108.0)

    def test_torque_above_peak(self):
        estimator = ThermalEstimator({"tiny": _servo(rated_peak_torque_nm=1)})
        pose = leg_pose(_leg(), JointAngles(), FrameTree({}))
        load = estimator.joint_load("stand", pose, "hip_pitch", "tiny", 2.0)
        with pytest.raises(ThermalOverrun, match="rated peak"):
            ThermalEstimator.assert_torque(load)

    def test_stance_loads_share_mass(self, assembly, pset):
        poses = stance_poses(assembly, assembly.stances["stand"], _frames(pset))
        loads = ThermalEstimator(pset.actuators).stance_loads("stand", assembly.legs, poses, 4.0)
        assert len(loads) == 8
        hip = next(load for load in loads if load.leg == "fl" and load.joint == "hip_pitch")
        assert hip.static_torque_nm == pytest.approx(1.0 * 9.80665 * 100 * math.cos(math.radians(45)) / 1000)
        for load in loads:
            ThermalEstimator.assert_within_limits(load)

    def test_unknown_actuator(self):
        with pytest.raises(ConfigError, match="missing"):
            ThermalEstimator({}).actuator("missing")


# ---------------------------------------------------------------------------
# Cables
# ---------------------------------------------------------------------------

class TestCableGeometry:

    def test_straight_run_has_infinite_radius(self):
        assert bend_radius((0, 0, 0), (10, 0, 0), (20, 0, 0)) == math.inf

    def test_right_angle_radius(self):
        # Circumradius of a right triangle is half the hypotenuse
        assert bend_radius((0, 0, 0), (10, 0, 0), (10, 10, 0)) == pytest.approx(math.sqrt(200) / 2)

    def test_polyline_length(self):
        assert polyline_length([(0, 0, 0), (3, 4, 0), (3, 4, 12)]) == pytest.approx(17.0)


class TestCableRouter:

    @pytest.fixture
    def router(self, assembly, pset):
        return CableRouter(assembly, pset.cable_types, _frames(pset))

    def test_route_resolves_world_points(self, router, assembly):
        routed = router.route(assembly.cable_runs["main"])
        assert [w.name for w in routed] == ["controller", "g_main", "hip_motor"]
        assert routed[1].point == (0.0, 50.0, 50.0)
        assert routed[0].part == "battery_box"

    def test_fixture_run_passes(self, router, assembly):
        run = assembly.cable_runs["main"]
        routed = router.route(run)
        assert router.assert_bend_radius(run, routed, 1) > 20
        assert router.assert_length(run, routed) < 500
        assert router.assert_grommet_fill("g_main") < 0.05

    def test_tight_bend(self, router):
        run = CableRun(name="loom", cable_type="signal", waypoints=("a", "b", "c"))
        routed = _routed((-6, 0, 0), (0, 6, 0), (6, 0, 0))
        with pytest.raises(CableFitFailure) as info:
            router.assert_bend_radius(run, routed, 1)
        assert info.value.subject == "loom#001"
        assert info.value.measured == pytest.approx(6.0)

    def test_clearance_intrusion(self, router):
        run = CableRun(name="loom", cable_type="signal", waypoints=("a", "b"))
        solids = {"wall": _solid("wall", (40, -10, -10, 60, 10, 10))}
        with pytest.raises(CableFitFailure) as info:
            router.assert_segment_clearance(run, _routed((0, 0, 0), (100, 0, 0)), 0, solids)
        assert info.value.details["parts"] == ["wall"]

    def test_clearance_margin(self, router):
        run = CableRun(name="loom", cable_type="signal", waypoints=("a", "b"))
        solids = {"wall": _solid("wall", (40, 14, -10, 60, 30, 10))}
        path = _routed((0, 10, 0), (100, 10, 0))
        with pytest.raises(CableFitFailure):
            router.assert_segment_clearance(run, path, 0, solids, margin_mm=5)
        assert router.assert_segment_clearance(run, path, 0, solids, margin_mm=3) == ["wall"]

    def test_inner_corner_of_l_bracket_is_clear(self, router):
        run = CableRun(name="loom", cable_type="signal", waypoints=("a", "b"))
        solids = {"l": _solid("l", (-50, -50, 0, 50, 50, 10), (-50, -50, 10, -40, 50, 110))}
        path = _routed((-20, -80, 40), (-20, 80, 40))
        assert router.assert_segment_clearance(run, path, 0, solids, margin_mm=5) == ["l"]

    def test_endpoint_parts_exempt(self, router):
        run = CableRun(name="loom", cable_type="signal", waypoints=("a", "b"))
        solids = {"board": _solid("board", (-5, -5, -5, 5, 5, 5))}
        path = [RoutedWaypoint("a", (0, 0, 0), "board"), RoutedWaypoint("b", (100, 0, 0), None)]
        assert router.assert_segment_clearance(run, path, 0, solids) == []

    def test_short_declared_length(self, router):
        run = CableRun(name="loom", cable_type="signal", waypoints=("a", "b"), length_mm=50)
        with pytest.raises(CableFitFailure, match="shorter"):
            router.assert_length(run, _routed((0, 0, 0), (100, 0, 0)))

    def test_overfull_grommet(self, router):
        with pytest.raises(CableFitFailure) as info:
            router.assert_grommet_fill("g_main", ceiling=0.01)
        assert info.value.details["cables"] == ["main"]

    def test_unknown_waypoint(self, router):
        run = CableRun(name="loom", cable_type="signal", waypoints=("controller", "nowhere"))
        with pytest.raises(ConfigError, match="nowhere"):
            router.route(run)
