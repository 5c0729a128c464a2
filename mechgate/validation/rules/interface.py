"""Interface checks — mate binding compatibility and hole alignment.

Alignment distances are measured in the XY plane of part A's interface
frame.  A mate whose interfaces do not bind is reported once by
``interface.binding`` and not aligned.
"""

from __future__ import annotations

import logging

from mechgate.interfaces.specs import BoltPattern
from mechgate.models.assembly import Mate
from mechgate.validation.alignment import greedy_match, local_xy, match_pattern
from mechgate.validation.context import ValidationContext
from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.verdict import Verdict, failed, passed

logger = logging.getLogger(__name__)


class MateBinding(InvariantCheck):
    """Both sides of every mate must bind structurally compatible interfaces."""

    @property
    def name(self) -> str:
        return "interface.binding"

    @property
    def description(self) -> str:
        return "Verify the two interfaces of each mate agree on variant, fastener, pattern and count."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for mate in ctx.assembly.mates:
            label = mate.label()
            error = ctx.mate_errors.get(label)
            if error is not None:
                verdicts.append(failed(
                    self.name, label, error.detail, failure="InterfaceMismatch",
                    details={"interface": error.interface, "parts": list(error.parts)},
                ))
            else:
                verdicts.append(passed(self.name, label, "interfaces compatible"))
        return verdicts


class HoleAlignment(InvariantCheck):
    """Matched hole pairs of mating bolt patterns must be concentric.

    Emits ``interface.alignment`` per matched pair and
    ``interface.unmatched_hole`` for holes without a partner.
    """

    unmatched_check = "interface.unmatched_hole"

    @property
    def name(self) -> str:
        return "interface.alignment"

    @property
    def description(self) -> str:
        return "Verify mating hole centres coincide within the alignment tolerance."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        for mate in ctx.assembly.mates:
            if mate.label() in ctx.mate_errors:
                continue
            if mate.part_a in ctx.geometry_errors or mate.part_b in ctx.geometry_errors:
                logger.debug("Alignment of %s skipped: geometry unavailable", mate.label())
                continue
            spec_a = ctx.bound.get((mate.part_a, mate.interface_a))
            spec_b = ctx.bound.get((mate.part_b, mate.interface_b))
            if not (isinstance(spec_a, BoltPattern) and isinstance(spec_b, BoltPattern)):
                continue
            verdicts.extend(self._align(ctx, mate, spec_a, spec_b))
        return verdicts

    def _align(
        self, ctx: ValidationContext, mate: Mate, spec_a: BoltPattern, spec_b: BoltPattern
    ) -> list[Verdict]:
        tol = ctx.thresholds.alignment_tolerance_mm
        label = mate.label()
        frame_a = ctx.binding_transform(mate.part_a, mate.interface_a)
        frame_b = ctx.binding_transform(mate.part_b, mate.interface_b)
        holes_a = match_pattern(ctx.solids[mate.part_a], frame_a, spec_a, tol).matched_centers()
        holes_b = match_pattern(ctx.solids[mate.part_b], frame_b, spec_b, tol).matched_centers()

        points_a = [local_xy(frame_a, c) for _, c in holes_a]
        points_b = [local_xy(frame_a, c) for _, c in holes_b]
        capture = max(spec_a.hole_diameter, spec_b.hole_diameter)
        pairs, lone_a, lone_b = greedy_match(points_a, points_b, capture)

        verdicts: list[Verdict] = []
        for pair in pairs:
            index_a, index_b = holes_a[pair.a][0], holes_b[pair.b][0]
            subject = f"{label}#{index_a:02d}"
            details = {"hole_a": index_a, "hole_b": index_b}
            if pair.distance < tol:
                verdicts.append(passed(
                    self.name, subject, f"holes {index_a}/{index_b} offset {pair.distance:.4f} mm",
                    measured=pair.distance, threshold=tol, details=details,
                ))
            else:
                verdicts.append(failed(
                    self.name, subject,
                    f"holes {index_a}/{index_b} offset {pair.distance:.4f} mm, "
                    f"must be below {tol:g} mm",
                    measured=pair.distance, threshold=tol, details=details,
                ))

        for part, holes, lone in ((mate.part_a, holes_a, lone_a), (mate.part_b, holes_b, lone_b)):
            for i in lone:
                index = holes[i][0]
                verdicts.append(failed(
                    self.unmatched_check, f"{label}/{part}#{index:02d}",
                    f"hole {index} of {part} has no partner within {capture:g} mm",
                    threshold=capture, details={"part": part, "hole": index},
                ))
        if not lone_a and not lone_b:
            verdicts.append(passed(
                self.unmatched_check, label, f"all {len(pairs)} hole(s) paired",
                measured=0.0, threshold=0.0,
            ))
        return verdicts


class InterfaceRules:
    """Collection of interface checks."""

    @staticmethod
    def all_rules() -> list[InvariantCheck]:
        return [MateBinding(), HoleAlignment()]
