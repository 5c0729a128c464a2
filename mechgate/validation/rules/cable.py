"""Cable checks — bend radius, segment clearance, grommet fill, cut length.

Every waypoint, segment and grommet is evaluated; one failure never hides
another.
"""

from __future__ import annotations

from mechgate.errors import CableFitFailure
from mechgate.validation.context import ValidationContext
from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.verdict import Verdict, failed, passed


class BendRadius(InvariantCheck):
    """Local bend radius at each interior waypoint must not undercut the cable minimum."""

    @property
    def name(self) -> str:
        return "cable.bend_radius"

    @property
    def description(self) -> str:
        return "Verify the bend radius at every interior waypoint meets the cable type minimum."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for name in sorted(ctx.routes):
            run, routed = ctx.assembly.cable_runs[name], ctx.routes[name]
            minimum = ctx.router.cable_type(run).min_bend_radius_mm
            for i in range(1, len(routed) - 1):
                try:
                    radius = ctx.router.assert_bend_radius(run, routed, i)
                except CableFitFailure as exc:
                    verdicts.append(exc.to_verdict())
                    continue
                verdicts.append(passed(
                    self.name, f"{name}#{i:03d}", f"bend radius at {routed[i].name!r} ok",
                    measured=radius, threshold=minimum,
                ))
        return verdicts


class SegmentClearance(InvariantCheck):
    """Cable segments must keep the clearance margin from every realized part."""

    @property
    def name(self) -> str:
        return "cable.clearance"

    @property
    def description(self) -> str:
        return "Verify each cable segment keeps the clearance margin from non-endpoint parts."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        margin = ctx.thresholds.cable_clearance_mm
        for name in sorted(ctx.routes):
            run, routed = ctx.assembly.cable_runs[name], ctx.routes[name]
            for i in range(len(routed) - 1):
                exempt = {routed[i].part, routed[i + 1].part}
                missing = sorted(set(ctx.geometry_errors) - exempt)
                if missing:
                    verdicts.append(failed(
                        self.name, f"{name}#{i:03d}",
                        f"not evaluated: geometry unavailable for {', '.join(missing)}",
                        failure="GeometryError",
                    ))
                    continue
                try:
                    tested = ctx.router.assert_segment_clearance(run, routed, i, ctx.solids, margin)
                except CableFitFailure as exc:
                    verdicts.append(exc.to_verdict())
                    continue
                verdicts.append(passed(
                    self.name, f"{name}#{i:03d}",
                    f"segment {routed[i].name!r} -> {routed[i + 1].name!r} clear of {len(tested)} part(s)",
                    measured=0.0, threshold=0.0,
                ))
        return verdicts


class GrommetFill(InvariantCheck):
    """Cable cross-section through each grommet must stay under the fill ceiling."""

    @property
    def name(self) -> str:
        return "cable.grommet_fill"

    @property
    def description(self) -> str:
        return "Verify the summed cable area through each grommet is at most the fill ceiling."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        ceiling = ctx.thresholds.grommet_fill_max
        for name in sorted(ctx.assembly.grommets):
            try:
                fill = ctx.router.assert_grommet_fill(name, ceiling)
            except CableFitFailure as exc:
                verdicts.append(exc.to_verdict())
                continue
            verdicts.append(passed(
                self.name, name, f"fill ratio {fill:.1%}", measured=fill, threshold=ceiling,
            ))
        return verdicts


class CableLength(InvariantCheck):
    """A declared cut length must cover the routed path."""

    @property
    def name(self) -> str:
        return "cable.length"

    @property
    def description(self) -> str:
        return "Verify each run's declared length is at least its routed polyline length."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for name in sorted(ctx.routes):
            run = ctx.assembly.cable_runs[name]
            if run.length_mm is None:
                continue
            try:
                needed = ctx.router.assert_length(run, ctx.routes[name])
            except CableFitFailure as exc:
                verdicts.append(exc.to_verdict())
                continue
            verdicts.append(passed(
                self.name, name, f"declared {run.length_mm:g} mm covers {needed:.1f} mm",
                measured=run.length_mm, threshold=needed,
            ))
        return verdicts


class CableRules:
    """Collection of cable routing checks."""

    @staticmethod
    def all_rules() -> list[InvariantCheck]:
        return [BendRadius(), SegmentClearance(), GrommetFill(), CableLength()]
