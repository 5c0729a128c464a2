"""Assembly checks — collisions, keep-out envelopes and export readiness."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from mechgate.errors import GeometryError
from mechgate.interfaces.specs import ClearanceEnvelope
from mechgate.validation.clash import ClashDetector
from mechgate.validation.context import ValidationContext
from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.verdict import Verdict, failed, passed

logger = logging.getLogger(__name__)


class NoCollision(InvariantCheck):
    """Non-mating parts must not interpenetrate."""

    @property
    def name(self) -> str:
        return "assembly.collision"

    @property
    def description(self) -> str:
        return "Verify every non-mating pair of parts intersects by less than the allowance."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        allowance = ctx.thresholds.collision_allowance_mm3
        detector = ClashDetector(allowance)
        verdicts: list[Verdict] = []
        for result in detector.detect(ctx.solids, skip=ctx.assembly.is_mating):
            volume = result.overlap_volume
            if detector.is_clash(volume):
                verdicts.append(failed(
                    self.name, result.subject,
                    f"{result.element_a} and {result.element_b} intersect by {volume:.3f} mm^3",
                    measured=volume, threshold=allowance, details=result.to_dict(),
                ))
            else:
                verdicts.append(passed(
                    self.name, result.subject, f"intersection {volume:.3f} mm^3",
                    measured=volume, threshold=allowance,
                ))
        return verdicts


class KeepOutClear(InvariantCheck):
    """No part may enter a keep-out envelope bound by another part.

    Parts mating with the envelope's owner are exempt.
    """

    @property
    def name(self) -> str:
        return "assembly.keep_out"

    @property
    def description(self) -> str:
        return "Verify keep-out clearance envelopes are not intruded by other parts."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        allowance = ctx.thresholds.collision_allowance_mm3
        detector = ClashDetector(allowance)
        verdicts: list[Verdict] = []
        for owner in ctx.assembly.part_names():
            for binding in ctx.assembly.parts[owner].interfaces:
                spec = ctx.bound.get((owner, binding.interface))
                if not isinstance(spec, ClearanceEnvelope) or not spec.keep_out:
                    continue
                prefix = f"{owner}/{binding.interface}"
                try:
                    envelope = ctx.kernel.primitive(
                        spec.shape, spec.dimensions, ctx.binding_transform(owner, binding.interface)
                    )
                except GeometryError as exc:
                    verdicts.append(failed(
                        self.name, prefix, f"envelope not realizable: {exc.cause}",
                        failure="GeometryError",
                    ))
                    continue
                for other in sorted(ctx.solids):
                    if other == owner or ctx.assembly.is_mating(owner, other):
                        continue
                    volume = detector.intersection_volume(envelope, ctx.solids[other])
                    subject = f"{prefix}|{other}"
                    if detector.is_clash(volume):
                        verdicts.append(failed(
                            self.name, subject,
                            f"{other} enters keep-out envelope by {volume:.3f} mm^3",
                            measured=volume, threshold=allowance,
                        ))
                    else:
                        verdicts.append(passed(
                            self.name, subject, "envelope clear", measured=volume, threshold=allowance,
                        ))
        return verdicts


class ExportReady(InvariantCheck):
    """Every part must export a non-trivial STEP file and a watertight mesh.

    Emits ``export.step`` and ``export.mesh`` per part.
    """

    step_check = "export.step"
    mesh_check = "export.mesh"

    @property
    def name(self) -> str:
        return "export"

    @property
    def description(self) -> str:
        return "Verify STEP export size and mesh watertightness and triangle budget."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        if ctx.export_dir is not None:
            ctx.export_dir.mkdir(parents=True, exist_ok=True)
            return self._export_all(ctx, ctx.export_dir)
        with tempfile.TemporaryDirectory(prefix="mechgate-export-") as tmp:
            return self._export_all(ctx, Path(tmp))

    def _export_all(self, ctx: ValidationContext, out: Path) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for name in ctx.assembly.part_names():
            if name in ctx.geometry_errors:
                for check in (self.step_check, self.mesh_check):
                    verdicts.append(failed(
                        check, name, f"geometry unavailable for {name}: {ctx.geometry_errors[name]}",
                        failure="GeometryError",
                    ))
                continue
            solid = ctx.solids[name]
            verdicts.append(self._step(ctx, name, solid, out / f"{name}.step"))
            verdicts.append(self._mesh(ctx, name, solid, out / f"{name}.stl"))
        return verdicts

    def _step(self, ctx, name, solid, path: Path) -> Verdict:
        minimum = ctx.thresholds.step_min_bytes
        try:
            written = solid.export_step(path)
        except GeometryError as exc:
            return failed(self.step_check, name, f"STEP export failed: {exc.cause}", failure="GeometryError")
        size = float(written.stat().st_size) if written.is_file() else 0.0
        if size < minimum:
            return failed(
                self.step_check, name, f"STEP file {size:.0f} bytes, minimum {minimum:.0f}",
                measured=size, threshold=minimum,
            )
        return passed(self.step_check, name, f"STEP file {size:.0f} bytes", measured=size, threshold=minimum)

    def _mesh(self, ctx, name, solid, path: Path) -> Verdict:
        budget = ctx.thresholds.mesh_max_triangles
        try:
            mesh = solid.export_mesh(path)
        except GeometryError as exc:
            return failed(self.mesh_check, name, f"mesh export failed: {exc.cause}", failure="GeometryError")
        count = float(mesh.triangle_count())
        watertight = mesh.is_watertight()
        details = {"watertight": watertight, "triangles": int(count)}
        problems = []
        if not watertight:
            problems.append("mesh is not watertight")
        if count > budget:
            problems.append(f"{count:.0f} triangles exceed budget {budget:.0f}")
        if problems:
            return failed(
                self.mesh_check, name, "; ".join(problems),
                measured=count, threshold=budget, details=details,
            )
        return passed(
            self.mesh_check, name, f"watertight, {count:.0f} triangles",
            measured=count, threshold=budget, details=details,
        )


class AssemblyRules:
    """Collection of assembly-level geometric checks."""

    @staticmethod
    def all_rules() -> list[InvariantCheck]:
        return [NoCollision(), KeepOutClear(), ExportReady()]
