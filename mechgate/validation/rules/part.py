"""Per-part checks — bounding box, volume, hole pattern, recompute, traceability.

Each part is evaluated independently.  A part the kernel could not realize
gets a failing verdict from every check here.
"""

from __future__ import annotations

import logging

from mechgate.interfaces.specs import BoltPattern
from mechgate.validation.alignment import match_pattern
from mechgate.validation.context import ValidationContext
from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.verdict import Verdict, failed, passed

logger = logging.getLogger(__name__)

_AXES = ("x", "y", "z")


class BoundingBoxRange(InvariantCheck):
    """Realized bounding-box extents must lie in the declared ranges."""

    @property
    def name(self) -> str:
        return "part.bounding_box"

    @property
    def description(self) -> str:
        return "Verify each realized bounding-box extent is within the part's declared range."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for name in ctx.assembly.part_names():
            part = ctx.assembly.parts[name]
            axes = [a for a in _AXES if a in part.bbox_range]
            if not axes:
                logger.debug("Part %s declares no bounding-box range", name)
                continue
            if name in ctx.geometry_errors:
                verdicts.extend(self.geometry_unavailable(ctx, name, f"{name}/{a}") for a in axes)
                continue
            extents = dict(zip(_AXES, ctx.part_boxes[name].extents()))
            for axis in axes:
                rng = part.bbox_range[axis]
                value = extents[axis]
                delta = rng.delta(value)
                subject = f"{name}/{axis}"
                if delta == 0:
                    verdicts.append(passed(
                        self.name, subject,
                        f"{axis} extent {value:.3f} mm within [{rng.min:g}, {rng.max:g}]",
                        measured=value, threshold=rng.max,
                    ))
                else:
                    bound = rng.min if delta < 0 else rng.max
                    verdicts.append(failed(
                        self.name, subject,
                        f"{axis} extent {value:.3f} mm outside [{rng.min:g}, {rng.max:g}] "
                        f"by {delta:+.3f} mm",
                        measured=value, threshold=bound, details={"delta": delta},
                    ))
        return verdicts


class VolumeRange(InvariantCheck):
    """Realized volume must lie in the declared range."""

    @property
    def name(self) -> str:
        return "part.volume"

    @property
    def description(self) -> str:
        return "Verify the realized solid volume is within the part's declared range."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for name in ctx.assembly.part_names():
            rng = ctx.assembly.parts[name].volume_range
            if rng is None:
                continue
            if name in ctx.geometry_errors:
                verdicts.append(self.geometry_unavailable(ctx, name, name))
                continue
            volume = ctx.solids[name].volume()
            delta = rng.delta(volume)
            if delta == 0:
                verdicts.append(passed(
                    self.name, name, f"volume {volume:.1f} mm^3 within range",
                    measured=volume, threshold=rng.max,
                ))
            else:
                verdicts.append(failed(
                    self.name, name,
                    f"volume {volume:.1f} mm^3 outside [{rng.min:.1f}, {rng.max:.1f}] "
                    f"by {delta:+.1f} mm^3",
                    measured=volume,
                    threshold=rng.min if delta < 0 else rng.max,
                    details={"delta": delta},
                ))
        return verdicts


class HolePatternMatch(InvariantCheck):
    """Realized holes must reproduce every bound bolt pattern."""

    @property
    def name(self) -> str:
        return "part.hole_pattern"

    @property
    def description(self) -> str:
        return "Verify hole count and positions match each bolt-pattern interface the part binds."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        tol = ctx.thresholds.alignment_tolerance_mm
        for name in ctx.assembly.part_names():
            part = ctx.assembly.parts[name]
            for binding in part.interfaces:
                subject = f"{name}/{binding.interface}"
                key = (name, binding.interface)
                if key in ctx.binding_errors:
                    verdicts.append(failed(
                        self.name, subject, str(ctx.binding_errors[key]), failure="InterfaceMismatch",
                    ))
                    continue
                spec = ctx.bound.get(key)
                if not isinstance(spec, BoltPattern):
                    continue
                if name in ctx.geometry_errors:
                    verdicts.append(self.geometry_unavailable(ctx, name, subject))
                    continue
                match = match_pattern(
                    ctx.solids[name], ctx.binding_transform(name, binding.interface), spec, tol
                )
                verdicts.append(self._verdict(subject, spec, match, tol))
        return verdicts

    def _verdict(self, subject, spec, match, tol) -> Verdict:
        expected = len(match.expected)
        missing = [i for i, h in enumerate(match.holes) if h is None]
        off = [i for i, d in enumerate(match.deviations) if d is not None and d >= tol]
        details = {
            "expected_count": expected,
            "realized_count": match.realized_count,
            "missing": missing,
            "misplaced": off,
        }
        deviation = match.max_deviation()
        if match.realized_count == expected and not missing and not off:
            return passed(
                self.name, subject,
                f"{expected} hole(s) of {spec.fastener} pattern, max deviation {deviation:.4f} mm",
                measured=deviation, threshold=tol, details=details,
            )
        problems = []
        if match.realized_count != expected:
            problems.append(f"{match.realized_count} hole(s) realized, {expected} expected")
        if missing:
            problems.append(f"no hole at position(s) {missing}")
        if off:
            problems.append(f"position(s) {off} off by up to {deviation:.3f} mm")
        return failed(
            self.name, subject, "; ".join(problems),
            measured=deviation, threshold=tol, details=details,
        )


class RecomputeClean(InvariantCheck):
    """Every part must realize without solver errors."""

    @property
    def name(self) -> str:
        return "part.recompute"

    @property
    def description(self) -> str:
        return "Verify the kernel realized each part without recompute errors."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for name in ctx.assembly.part_names():
            if name in ctx.geometry_errors:
                verdicts.append(failed(
                    self.name, name, ctx.geometry_errors[name], failure="GeometryError",
                    measured=1.0, threshold=0.0,
                ))
                continue
            errors = ctx.solids[name].recompute_errors()
            if errors:
                verdicts.append(failed(
                    self.name, name, "; ".join(errors),
                    measured=float(len(errors)), threshold=0.0, details={"errors": errors},
                ))
            else:
                verdicts.append(passed(self.name, name, "recompute clean", measured=0.0, threshold=0.0))
        return verdicts


class ParameterTraceability(InvariantCheck):
    """Every value a part was built from must still equal the ParameterSet."""

    @property
    def name(self) -> str:
        return "params.traceability"

    @property
    def description(self) -> str:
        return "Verify each part's recorded parameter values originate from the ParameterSet."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for name in ctx.assembly.part_names():
            provenance = ctx.assembly.parts[name].provenance
            if not provenance:
                verdicts.append(passed(self.name, name, "no parameter provenance recorded"))
                continue
            unknown = sorted(k for k in provenance if k not in ctx.params)
            changed = sorted(
                k for k in provenance if k in ctx.params and ctx.params[k] != provenance[k]
            )
            if unknown or changed:
                parts = []
                if unknown:
                    parts.append(f"not in parameter set: {', '.join(unknown)}")
                if changed:
                    parts.append(f"value differs from parameter set: {', '.join(changed)}")
                verdicts.append(failed(
                    self.name, name, "; ".join(parts),
                    measured=float(len(unknown) + len(changed)), threshold=0.0,
                    details={"unknown": unknown, "changed": changed},
                ))
            else:
                verdicts.append(passed(
                    self.name, name, f"{len(provenance)} parameter(s) traced",
                    measured=0.0, threshold=0.0,
                ))
        return verdicts


class PartRules:
    """Collection of per-part checks."""

    @staticmethod
    def all_rules() -> list[InvariantCheck]:
        return [
            BoundingBoxRange(),
            VolumeRange(),
            HolePatternMatch(),
            RecomputeClean(),
            ParameterTraceability(),
        ]
