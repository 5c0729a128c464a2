"""Tests for the invariant gate — Validator, checks, reports and waivers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import layer
from mechgate.audit import OverrideLog
from mechgate.errors import ConfigError, GeometryError, StabilityFailure
from mechgate.geometry import BoxKernel, BoxSolid, HoleFeature
from mechgate.interfaces.specs import BoltPattern
from mechgate.models.assembly import AssemblyModel
from mechgate.validation import ClashDetector, MassOverride, ValidationReport, Validator, Verdict
from mechgate.validation.alignment import greedy_match
from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.verdict import failed, passed


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _validate(pset, assembly, **kwargs) -> ValidationReport:
    return Validator(BoxKernel(), **kwargs).validate(assembly, pset)


def _verdict(report: ValidationReport, check_id: str) -> Verdict:
    matches = [v for v in report.verdicts if v.check_id == check_id]
    assert matches, f"no verdict {check_id}"
    return matches[0]


def _tight_mass_band_layers():
    return (
        layer("design-rules", "mass_min", 0.5, "kg"),
        layer("design-rules", "mass_max", 1.0, "kg"),
    )


class BrokenPartKernel(BoxKernel):
    """Box kernel that cannot realize one named part."""

    def __init__(self, broken: str) -> None:
        self.broken = broken

    def realize(self, part, placement):
        if part.name == self.broken:
            raise GeometryError("sketch is over-constrained", part=part.name)
        return super().realize(part, placement)


class PocketedKernel(BoxKernel):
    """Box kernel that mills an unplanned pocket into the top of one named part."""

    def __init__(self, pocketed: str, diameter: float = 40.0, depth: float = 10.0) -> None:
        self.pocketed = pocketed
        self.diameter = diameter
        self.depth = depth

    def realize(self, part, placement):
        solid = super().realize(part, placement)
        if part.name != self.pocketed:
            return solid
        bb = solid.bounding_box()
        pocket = HoleFeature(
            center=((bb.min_x + bb.max_x) / 2.0, (bb.min_y + bb.max_y) / 2.0, bb.max_z),
            axis=(0.0, 0.0, -1.0),
            diameter=self.diameter,
            depth=self.depth,
        )
        return BoxSolid(solid.boxes, [*solid.holes(), pocket], solid.recompute_errors(), label=part.name)


class MissingHoleKernel(BoxKernel):
    """Box kernel that drops the first drilled hole of one named part."""

    def __init__(self, undrilled: str) -> None:
        self.undrilled = undrilled

    def realize(self, part, placement):
        solid = super().realize(part, placement)
        if part.name != self.undrilled:
            return solid
        return BoxSolid(solid.boxes, solid.holes()[1:], solid.recompute_errors(), label=part.name)


class ExplodingCheck(InvariantCheck):

    @property
    def name(self) -> str:
        return "custom.explode"

    @property
    def description(self) -> str:
        return "Always raises."

    def evaluate(self, ctx):
        raise RuntimeError("boom")


class StanceFailureCheck(InvariantCheck):

    @property
    def name(self) -> str:
        return "custom.stance"

    @property
    def description(self) -> str:
        return "Raises an invariant failure instead of returning verdicts."

    def evaluate(self, ctx):
        raise StabilityFailure("custom.stance", "hop", "feet off the ground", measured=-1.0, threshold=0.0)


# ---------------------------------------------------------------------------
# Baseline
# ---------------------------------------------------------------------------

class TestBaseline:

    def test_fixture_passes(self, pset, assembly):
        report = _validate(pset, assembly)
        assert report.passed, report.summary_line()
        assert report.exit_code() == 0
        assert report.summary_line() == f"PASS: {len(report.verdicts)} checks"

    def test_every_family_reports(self, pset, assembly):
        report = _validate(pset, assembly)
        checks = {v.check for v in report.verdicts}
        assert checks >= {
            "part.bounding_box", "part.volume", "part.hole_pattern", "part.recompute",
            "params.traceability", "interface.binding", "interface.alignment",
            "interface.unmatched_hole", "assembly.collision", "export.step", "export.mesh",
            "mass.budget", "stability.margin", "thermal.winding", "thermal.torque",
            "cable.bend_radius", "cable.clearance", "cable.grommet_fill", "cable.length",
        }

    def test_baseline_measurements(self, pset, assembly):
        report = _validate(pset, assembly)
        assert _verdict(report, "mass.budget:quadruped").measured == pytest.approx(3.74, abs=0.01)
        assert _verdict(report, "stability.margin:stand").measured == pytest.approx(95.5, abs=0.5)
        assert len(report.by_check("interface.alignment")) == 4

    def test_verdicts_sorted(self, pset, assembly):
        report = _validate(pset, assembly)
        keys = [v.sort_key() for v in report.verdicts]
        assert keys == sorted(keys)

    def test_report_metadata(self, pset, assembly):
        report = _validate(pset, assembly)
        assert report.assembly == "quadruped"
        assert report.kernel == "box"
        assert report.parameter_fingerprint == pset.fingerprint


# ---------------------------------------------------------------------------
# Failure scenarios
# ---------------------------------------------------------------------------

class TestScenarios:

    def test_mass_over_budget(self, make_pset, make_assembly):
        pset = make_pset(*_tight_mass_band_layers())
        report = _validate(pset, make_assembly(pset))
        assert report.failed_checks() == ["mass.budget:quadruped"]
        verdict = _verdict(report, "mass.budget:quadruped")
        assert verdict.threshold == 1.0
        assert verdict.details["delta"] == pytest.approx(verdict.measured - 1.0)
        assert verdict.details["subsystems"].keys() == {"chassis", "legs", "power"}
        assert report.exit_code() == 1

    def test_misaligned_bracket(self, make_pset, make_assembly):
        pset = make_pset(layer("dimensions", "bracket.x", 150.5))
        report = _validate(pset, make_assembly(pset))
        failures = report.failures()
        assert len(failures) == 4
        assert {v.check for v in failures} == {"interface.alignment"}
        for v in failures:
            assert v.measured == pytest.approx(0.5)
            assert v.threshold == pytest.approx(0.2)

    def test_alignment_tolerance_is_exclusive(self, make_pset, make_assembly):
        pset = make_pset(
            layer("design-rules", "alignment_tolerance", 0.25),
            layer("dimensions", "bracket.x", 150.25),
        )
        report = _validate(pset, make_assembly(pset))
        alignment = report.by_check("interface.alignment")
        assert alignment and all(not v.passed for v in alignment)

    def test_alignment_inside_tolerance(self, make_pset, make_assembly):
        pset = make_pset(
            layer("design-rules", "alignment_tolerance", 0.25),
            layer("dimensions", "bracket.x", 150.125),
        )
        report = _validate(pset, make_assembly(pset))
        assert all(v.passed for v in report.by_check("interface.alignment"))

    def test_tripod_stance_unstable(self, pset, make_assembly, assembly_doc):
        angles = {"hip_pitch": "dimensions.stance.hip_pitch", "knee": "dimensions.stance.knee"}
        assembly_doc["stances"]["tripod"] = {
            "contacts": ["fl", "fr", "rl"],
            "angles": {leg: dict(angles) for leg in ("fl", "fr", "rl")},
        }
        report = _validate(pset, make_assembly(pset, assembly_doc))
        assert report.failed_checks() == ["stability.margin:tripod"]
        verdict = _verdict(report, "stability.margin:tripod")
        assert 0 < verdict.measured < 50
        assert verdict.failure == "StabilityFailure"
        assert _verdict(report, "stability.margin:stand").passed

    def test_tight_cable_bend(self, make_pset, make_assembly):
        pset = make_pset(
            layer("dimensions", "cable.controller_x", -6),
            layer("dimensions", "cable.controller_z", 200),
            layer("dimensions", "cable.grommet_y", 6),
            layer("dimensions", "cable.grommet_z", 200),
            layer("dimensions", "cable.motor_x", 6),
            layer("dimensions", "cable.motor_y", 0),
            layer("dimensions", "cable.motor_z", 200),
        )
        report = _validate(pset, make_assembly(pset))
        assert report.failed_checks() == ["cable.bend_radius:main#001"]
        verdict = _verdict(report, "cable.bend_radius:main#001")
        assert verdict.measured == pytest.approx(6.0)
        assert verdict.threshold == 20.0
        assert verdict.failure == "CableFitFailure"

    def test_collision(self, make_pset, make_assembly):
        pset = make_pset(
            layer("dimensions", "battery.x", 150),
            layer("dimensions", "battery.width", 300),
        )
        report = _validate(pset, make_assembly(pset))
        verdict = _verdict(report, "assembly.collision:battery_box|hip_bracket")
        assert not verdict.passed
        assert verdict.measured > 0
        assert _verdict(report, "assembly.collision:base_plate|battery_box").passed

    def test_missing_hole_reported_as_unmatched(self, pset, assembly):
        report = Validator(MissingHoleKernel("hip_bracket")).validate(assembly, pset)
        unmatched = [v for v in report.by_check("interface.unmatched_hole") if not v.passed]
        assert len(unmatched) == 1
        verdict = unmatched[0]
        assert verdict.details["part"] == "base_plate"
        assert verdict.subject.startswith("base_plate:hip_mount~hip_bracket:hip_mount/base_plate#")
        alignment = report.by_check("interface.alignment")
        assert len(alignment) == 3
        assert all(v.passed for v in alignment)
        assert not _verdict(report, "part.hole_pattern:hip_bracket/hip_mount").passed

    def test_mating_pair_not_collision_checked(self, pset, assembly):
        report = _validate(pset, assembly)
        subjects = [v.subject for v in report.by_check("assembly.collision")]
        assert "base_plate|hip_bracket" not in subjects


# ---------------------------------------------------------------------------
# Determinism
# ---------------------------------------------------------------------------

class TestDeterminism:

    def test_repeated_runs_identical(self, pset, assembly):
        first = _validate(pset, assembly)
        second = _validate(pset, assembly)
        assert first == second
        assert first.to_json() == second.to_json()

    def test_concurrent_matches_sequential(self, make_pset, make_assembly):
        pset = make_pset(layer("dimensions", "bracket.x", 150.5))
        assembly = make_assembly(pset)
        sequential = _validate(pset, assembly, workers=1)
        concurrent = _validate(pset, assembly, workers=4)
        assert sequential.to_json() == concurrent.to_json()

    def test_invalid_worker_count(self):
        with pytest.raises(ConfigError):
            Validator(BoxKernel(), workers=0)


class TestClashDetector:

    def test_symmetric(self, assembly, kernel):
        solids = {
            name: kernel.realize(part, part.placement.local_transform())
            for name, part in assembly.parts.items()
        }
        detector = ClashDetector()
        for a in solids:
            for b in solids:
                assert detector.intersection_volume(solids[a], solids[b]) == pytest.approx(
                    detector.intersection_volume(solids[b], solids[a])
                )

    def test_subject_order_independent(self, assembly, kernel):
        solids = {
            name: kernel.realize(part, part.placement.local_transform())
            for name, part in assembly.parts.items()
        }
        results = ClashDetector().detect(solids)
        assert [r.subject for r in results] == [
            "base_plate|battery_box", "base_plate|hip_bracket", "battery_box|hip_bracket",
        ]

    def test_allowance_boundary(self):
        detector = ClashDetector(allowance_mm3=1.0)
        assert detector.is_clash(1.0)
        assert not detector.is_clash(0.999)


class TestGreedyMatch:

    def test_pairs_nearest_first(self):
        pairs, lone_a, lone_b = greedy_match([(0, 0), (10, 0)], [(10.1, 0), (0.2, 0)], capture_radius=1.0)
        assert [(p.a, p.b) for p in pairs] == [(0, 1), (1, 0)]
        assert lone_a == [] and lone_b == []

    def test_outside_capture_unmatched(self):
        pairs, lone_a, lone_b = greedy_match([(0, 0)], [(5, 0)], capture_radius=1.0)
        assert pairs == []
        assert lone_a == [0] and lone_b == [0]


# ---------------------------------------------------------------------------
# Error isolation
# ---------------------------------------------------------------------------

class TestErrorIsolation:

    def test_geometry_error_isolated_to_part(self, pset, assembly):
        report = Validator(BrokenPartKernel("battery_box")).validate(assembly, pset)
        recompute = _verdict(report, "part.recompute:battery_box")
        assert not recompute.passed
        assert recompute.failure == "GeometryError"
        assert "over-constrained" in recompute.diagnostic
        assert not _verdict(report, "part.volume:battery_box").passed
        assert not _verdict(report, "export.step:battery_box").passed
        # Other parts still evaluated
        assert _verdict(report, "part.volume:base_plate").passed
        assert _verdict(report, "part.recompute:hip_bracket").passed
        assert all(v.passed for v in report.by_check("interface.alignment"))
        # Aggregates cannot be evaluated
        mass = _verdict(report, "mass.budget:quadruped")
        assert not mass.passed and "not evaluated" in mass.diagnostic

    def test_volume_failure_leaves_other_part_checks(self, make_pset, make_assembly):
        pset = make_pset(layer("design-rules", "volume_tolerance", 0.05, "1"))
        report = Validator(PocketedKernel("hip_bracket")).validate(make_assembly(pset), pset)
        assert report.failed_checks() == ["part.volume:hip_bracket"]
        volume = _verdict(report, "part.volume:hip_bracket")
        assert volume.failure == "InvariantFailure"
        assert volume.details["delta"] < 0
        for axis in ("x", "y", "z"):
            assert _verdict(report, f"part.bounding_box:hip_bracket/{axis}").passed
        assert _verdict(report, "part.hole_pattern:hip_bracket/hip_mount").passed
        assert _verdict(report, "part.recompute:hip_bracket").passed

    def test_cable_clearance_not_evaluated_without_geometry(self, pset, assembly):
        report = Validator(BrokenPartKernel("base_plate")).validate(assembly, pset)
        for subject in ("main#000", "main#001"):
            verdict = _verdict(report, f"cable.clearance:{subject}")
            assert not verdict.passed
            assert verdict.failure == "GeometryError"
            assert "not evaluated" in verdict.diagnostic
            assert "base_plate" in verdict.diagnostic

    def test_cable_clearance_exempt_endpoint_part_broken(self, pset, assembly):
        report = Validator(BrokenPartKernel("battery_box")).validate(assembly, pset)
        # controller sits on the battery box, so its segment does not need it
        assert _verdict(report, "cable.clearance:main#000").passed
        assert not _verdict(report, "cable.clearance:main#001").passed

    def test_interface_mismatch(self, params_doc, assembly_doc, make_pset, make_assembly):
        params_doc["interfaces"]["hip_mount_m4"] = {
            "kind": "bolt_pattern",
            "fastener": "M4",
            "pattern": "rectangular",
            "spacing": [60, 60],
            "hole_diameter": 4.5,
        }
        assembly_doc["parts"]["hip_bracket"]["interfaces"][0]["interface"] = "hip_mount_m4"
        assembly_doc["mates"][0]["interface_b"] = "hip_mount_m4"
        pset = make_pset()
        report = _validate(pset, make_assembly(pset, assembly_doc))

        label = "base_plate:hip_mount~hip_bracket:hip_mount_m4"
        verdict = _verdict(report, f"interface.binding:{label}")
        assert not verdict.passed
        assert verdict.failure == "InterfaceMismatch"
        assert "M5 != M4" in verdict.diagnostic
        assert report.by_check("interface.alignment") == []
        assert _verdict(report, "part.hole_pattern:hip_bracket/hip_mount_m4").passed

    def test_unexpected_exception_becomes_verdict(self, pset, assembly):
        validator = Validator(BoxKernel())
        validator.add_rule(ExplodingCheck())
        report = validator.validate(assembly, pset)
        verdict = _verdict(report, "custom.explode:<error>")
        assert not verdict.passed
        assert verdict.failure == "RuntimeError"
        assert verdict.diagnostic == "RuntimeError: boom"
        assert report.failed_checks() == ["custom.explode:<error>"]

    def test_raised_invariant_failure_becomes_verdict(self, pset, assembly):
        validator = Validator(BoxKernel())
        validator.add_rule(StanceFailureCheck())
        report = validator.validate(assembly, pset)
        verdict = _verdict(report, "custom.stance:hop")
        assert verdict.failure == "StabilityFailure"
        assert verdict.measured == -1.0


class TestConfigErrors:

    def test_unknown_material(self, pset, make_assembly, assembly_doc):
        assembly_doc["parts"]["battery_box"]["material"] = "steel"
        with pytest.raises(ConfigError, match="steel"):
            _validate(pset, make_assembly(pset, assembly_doc))

    def test_unknown_frame(self, pset, make_assembly, assembly_doc):
        assembly_doc["parts"]["base_plate"]["placement"]["frame"] = "pelvis"
        with pytest.raises(ConfigError, match="pelvis"):
            _validate(pset, make_assembly(pset, assembly_doc))

    def test_unknown_actuator(self, pset, make_assembly, assembly_doc):
        assembly_doc["legs"]["fl"]["actuators"]["knee"] = "stepper"
        with pytest.raises(ConfigError, match="stepper"):
            _validate(pset, make_assembly(pset, assembly_doc))

    def test_missing_mass_band(self, params_doc, make_pset, make_assembly):
        del params_doc["design-rules"]
        pset = make_pset()
        with pytest.raises(ConfigError, match="mass_min"):
            _validate(pset, make_assembly(pset))

    def test_inverted_mass_band(self, make_pset, make_assembly):
        pset = make_pset(layer("design-rules", "mass_min", 6.0, "kg"))
        with pytest.raises(ConfigError, match="mass band"):
            _validate(pset, make_assembly(pset))


class TestModelRoundTrip:

    @staticmethod
    def _declare(assembly: AssemblyModel, **changes) -> AssemblyModel:
        contract = {
            "fastener": "M5", "pattern": "rectangular", "spacing": (60, 60), "hole_diameter": 5.5,
            **changes,
        }
        data = assembly.model_dump()
        data["parts"]["hip_bracket"]["interfaces"][0]["declared"] = BoltPattern(**contract).model_dump()
        return AssemblyModel.model_validate(data)

    def test_declared_contract_rebuilt(self, pset, assembly):
        restored = self._declare(assembly)
        declared = restored.parts["hip_bracket"].interfaces[0].declared
        assert isinstance(declared, BoltPattern)
        assert _validate(pset, restored).passed

    def test_declared_mismatch_after_round_trip(self, pset, assembly):
        restored = self._declare(assembly, fastener="M6")
        report = _validate(pset, restored)
        verdict = _verdict(report, "part.hole_pattern:hip_bracket/hip_mount")
        assert not verdict.passed
        assert verdict.failure == "InterfaceMismatch"

    def test_undeclared_binding_round_trips(self, pset, assembly):
        restored = AssemblyModel.model_validate(assembly.model_dump())
        assert restored == assembly
        assert restored.parts["hip_bracket"].interfaces[0].declared is None


# ---------------------------------------------------------------------------
# Envelopes and exports
# ---------------------------------------------------------------------------

class TestKeepOut:

    def _with_envelope(self, params_doc, assembly_doc, x_key: str):
        params_doc["interfaces"]["motor_keep_out"] = {
            "kind": "clearance_envelope",
            "shape": "box",
            "dimensions": [40, 40, 30],
        }
        assembly_doc["parts"]["base_plate"]["interfaces"].append({
            "interface": "motor_keep_out",
            "offset": [x_key, "dimensions.zero", "dimensions.base.thickness"],
        })

    def test_intrusion(self, params_doc, assembly_doc, make_pset, make_assembly):
        self._with_envelope(params_doc, assembly_doc, "dimensions.battery.x")
        pset = make_pset()
        report = _validate(pset, make_assembly(pset, assembly_doc))
        verdict = _verdict(report, "assembly.keep_out:base_plate/motor_keep_out|battery_box")
        assert not verdict.passed
        assert verdict.measured == pytest.approx(40 * 40 * 30)

    def test_clear_envelope_and_mating_exemption(self, params_doc, assembly_doc, make_pset, make_assembly):
        self._with_envelope(params_doc, assembly_doc, "dimensions.zero")
        pset = make_pset()
        report = _validate(pset, make_assembly(pset, assembly_doc))
        subjects = [v.subject for v in report.by_check("assembly.keep_out")]
        assert subjects == ["base_plate/motor_keep_out|battery_box"]
        assert report.passed


class TestExports:

    def test_exports_kept(self, pset, assembly, tmp_path: Path):
        out = tmp_path / "exports"
        report = _validate(pset, assembly, export_dir=out)
        assert report.passed
        assert sorted(p.name for p in out.iterdir()) == [
            "base_plate.step", "base_plate.stl",
            "battery_box.step", "battery_box.stl",
            "hip_bracket.step", "hip_bracket.stl",
        ]

    def test_step_size_floor(self, make_pset, make_assembly):
        pset = make_pset(layer("design-rules", "step_min_bytes", 1e9, "1"))
        report = _validate(pset, make_assembly(pset))
        assert [v.subject for v in report.failures()] == ["base_plate", "battery_box", "hip_bracket"]
        assert {v.check for v in report.failures()} == {"export.step"}

    def test_triangle_budget(self, make_pset, make_assembly):
        pset = make_pset(layer("design-rules", "mesh_max_triangles", 4, "1"))
        report = _validate(pset, make_assembly(pset))
        verdict = _verdict(report, "export.mesh:base_plate")
        assert not verdict.passed
        assert "exceed budget" in verdict.diagnostic


# ---------------------------------------------------------------------------
# Mass waiver
# ---------------------------------------------------------------------------

class TestMassOverride:

    def test_waived_and_recorded(self, make_pset, make_assembly):
        pset = make_pset(*_tight_mass_band_layers())
        log = OverrideLog()
        override = MassOverride(reason="prototype battery", user="alice")
        report = _validate(pset, make_assembly(pset), mass_override=override, audit_log=log)

        assert report.passed
        verdict = _verdict(report, "mass.budget:quadruped")
        assert verdict.details["waived"] is True
        assert verdict.diagnostic.startswith("WAIVED by alice")
        assert verdict.measured > 1.0

        entries = log.get_log(check_id="mass.budget:quadruped")
        assert len(entries) == 1
        assert entries[0].user == "alice"
        assert entries[0].parameter_fingerprint == pset.fingerprint
        assert log.verify_chain()
        log.close()

    def test_override_unused_when_within_band(self, pset, assembly):
        log = OverrideLog()
        override = MassOverride(reason="unused", user="alice")
        report = _validate(pset, assembly, mass_override=override, audit_log=log)
        assert "waived" not in _verdict(report, "mass.budget:quadruped").details
        assert log.get_log() == []
        log.close()

    def test_override_needs_reason(self):
        with pytest.raises(ValueError):
            MassOverride(reason="", user="alice")


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class TestValidationReport:

    def _report(self) -> ValidationReport:
        return ValidationReport(
            assembly="quadruped",
            verdicts=[
                failed("part.volume", "hub", "volume 10.0 mm^3 outside [20.0, 30.0]", measured=10.0, threshold=20.0),
                passed("mass.budget", "quadruped", "ok", measured=3.0, threshold=5.0),
                failed("cable.length", "main", "declared length | too short", measured=100.0, threshold=120.0),
            ],
            parameter_fingerprint="ab" * 32,
            kernel="box",
        )

    def test_ordering_and_summary(self):
        report = self._report()
        assert [v.check for v in report.verdicts] == ["cable.length", "mass.budget", "part.volume"]
        assert report.summary_line() == "FAIL: cable.length:main, part.volume:hub"
        assert report.status == "failed"

    def test_empty_report_passes(self):
        report = ValidationReport()
        assert report.passed
        assert report.summary_line() == "PASS: 0 checks"

    def test_to_json(self):
        data = json.loads(self._report().to_json())
        assert data["status"] == "failed"
        assert data["passed"] is False
        assert len(data["verdicts"]) == 3
        assert data["verdicts"][0]["check"] == "cable.length"

    def test_to_markdown(self):
        md = self._report().to_markdown()
        assert "# Validation Report" in md
        assert "**Status:** FAILED" in md
        assert "## Failures" in md
        assert "declared length \\| too short" in md
        assert "| PASS | mass.budget | quadruped |" in md
