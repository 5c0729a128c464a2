"""Physical checks — total mass band, static stability, actuator thermals.

These aggregate over every part, so they cannot be evaluated while any part
lacks geometry; in that case each subject gets a failing verdict saying so.
"""

from __future__ import annotations

import logging

from mechgate.analysis.kinematics import contact_points
from mechgate.analysis.mass import MassAnalyzer, assert_stable
from mechgate.analysis.thermal import ThermalEstimator
from mechgate.errors import StabilityFailure, ThermalOverrun
from mechgate.validation.context import ValidationContext
from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.verdict import Verdict, failed, passed

logger = logging.getLogger(__name__)


def _incomplete(check: str, subject: str, ctx: ValidationContext) -> Verdict:
    missing = ", ".join(sorted(ctx.geometry_errors))
    return failed(
        check, subject, f"not evaluated: geometry unavailable for {missing}", failure="GeometryError"
    )


class MassBudget(InvariantCheck):
    """Total assembly mass must lie in the design target band."""

    @property
    def name(self) -> str:
        return "mass.budget"

    @property
    def description(self) -> str:
        return "Verify total mass lies within [design-rules.mass_min, design-rules.mass_max]."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        subject = ctx.assembly.name
        if ctx.geometry_errors:
            return [_incomplete(self.name, subject, ctx)]

        props = ctx.mass_properties()
        band = ctx.thresholds.mass_band
        total = MassAnalyzer.total_mass(props)
        ok, delta, diagnostic = MassAnalyzer.check_mass_band(total, band)
        details = {
            "subsystems": MassAnalyzer.subsystem_masses(props),
            "delta": delta,
            "band": [band.min, band.max],
        }
        threshold = band.max if delta >= 0 else band.min
        if ok:
            return [passed(self.name, subject, diagnostic, measured=total, threshold=threshold, details=details)]

        override = ctx.mass_override
        if override is not None:
            logger.warning(
                "Mass budget waived by %s (%s): %s", override.user, override.reason, diagnostic
            )
            details.update({"waived": True, "override_user": override.user, "override_reason": override.reason})
            return [passed(
                self.name, subject, f"WAIVED by {override.user} ({override.reason}): {diagnostic}",
                measured=total, threshold=threshold, details=details,
            )]
        return [failed(self.name, subject, diagnostic, measured=total, threshold=threshold, details=details)]


class StaticStability(InvariantCheck):
    """The centre of mass must sit inside each stance's support polygon with margin."""

    @property
    def name(self) -> str:
        return "stability.margin"

    @property
    def description(self) -> str:
        return "Verify the COM projection lies inside the support polygon by the stability margin."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        verdicts: list[Verdict] = []
        margin = ctx.thresholds.stability_margin_mm
        for stance in sorted(ctx.poses):
            if ctx.geometry_errors:
                verdicts.append(_incomplete(self.name, stance, ctx))
                continue
            com = MassAnalyzer.center_of_mass(ctx.mass_properties())
            contacts = contact_points(ctx.poses[stance])
            try:
                signed = assert_stable(stance, (com[0], com[1]), contacts, margin)
            except StabilityFailure as exc:
                verdicts.append(exc.to_verdict())
                continue
            verdicts.append(passed(
                self.name, stance, f"centre of mass {signed:.1f} mm inside support polygon",
                measured=signed, threshold=margin, details={"com": list(com)},
            ))
        return verdicts


class ActuatorThermals(InvariantCheck):
    """Static joint loads must keep windings below the derated limit and torque below peak.

    Emits ``thermal.winding`` and ``thermal.torque`` per stance/leg/joint.
    """

    torque_check = "thermal.torque"

    @property
    def name(self) -> str:
        return "thermal.winding"

    @property
    def description(self) -> str:
        return "Verify steady-state winding temperature and torque demand of every actuated joint."

    def evaluate(self, ctx: ValidationContext) -> list[Verdict]:
        estimator = ThermalEstimator(
            ctx.params.actuators,
            ambient_c=ctx.thresholds.ambient_temperature_c,
            multiplier=ctx.thresholds.dynamic_torque_multiplier,
        )
        verdicts: list[Verdict] = []
        for stance in sorted(ctx.poses):
            if ctx.geometry_errors:
                verdicts.append(_incomplete(self.name, stance, ctx))
                verdicts.append(_incomplete(self.torque_check, stance, ctx))
                continue
            total = MassAnalyzer.total_mass(ctx.mass_properties())
            for load in estimator.stance_loads(stance, ctx.assembly.legs, ctx.poses[stance], total):
                try:
                    estimator.assert_within_limits(load)
                    verdicts.append(passed(
                        self.name, load.subject,
                        f"{load.actuator}: winding {load.winding_temp_c:.1f} degC",
                        measured=load.winding_temp_c, threshold=load.winding_limit_c,
                        details={"heat_w": load.heat_w, "efficiency": load.efficiency},
                    ))
                except ThermalOverrun as exc:
                    verdicts.append(exc.to_verdict())
                try:
                    estimator.assert_torque(load)
                    verdicts.append(passed(
                        self.torque_check, load.subject,
                        f"{load.actuator}: {load.required_torque_nm:.2f} N*m "
                        f"({load.torque_percent:.0f}% of peak)",
                        measured=load.required_torque_nm, threshold=load.peak_torque_nm,
                    ))
                except ThermalOverrun as exc:
                    verdicts.append(exc.to_verdict())
        return verdicts


class PhysicalRules:
    """Collection of mass, stability and thermal checks."""

    @staticmethod
    def all_rules() -> list[InvariantCheck]:
        return [MassBudget(), StaticStability(), ActuatorThermals()]
