"""ThermalEstimator — static torque → power → steady-state winding temperature.

Two independent safety factors apply: the dynamic torque multiplier on the
load side and the winding temperature headroom on the limit side.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from mechgate.analysis.kinematics import PITCH_JOINTS, LegPose
from mechgate.config import (
    DEFAULT_AMBIENT_TEMPERATURE_C,
    DYNAMIC_TORQUE_MULTIPLIER,
    GRAVITY_M_S2,
    THERMAL_HEADROOM,
)
from mechgate.errors import ConfigError, ThermalOverrun
from mechgate.models.assembly import Leg
from mechgate.params.documents import ActuatorSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JointLoad:
    """Thermal operating point of one joint actuator in one stance."""

    stance: str
    leg: str
    joint: str
    actuator: str
    moment_arm_mm: float
    static_torque_nm: float
    required_torque_nm: float
    torque_percent: float
    efficiency: float
    mechanical_power_w: float
    heat_w: float
    winding_temp_c: float
    winding_limit_c: float
    peak_torque_nm: float

    @property
    def subject(self) -> str:
        return f"{self.stance}/{self.leg}/{self.joint}"


def interpolate_efficiency(curve: Sequence[tuple[float, float]], percent: float) -> float:
    """Piecewise-linear efficiency lookup, clamped to the first/last point."""
    if percent <= curve[0][0]:
        return curve[0][1]
    if percent >= curve[-1][0]:
        return curve[-1][1]
    for (x0, y0), (x1, y1) in zip(curve, curve[1:]):
        if x0 <= percent <= x1:
            return y0 + (y1 - y0) * (percent - x0) / (x1 - x0)
    return curve[-1][1]


class ThermalEstimator:
    """Per-actuator static thermal model.

    Parameters
    ----------
    actuators:
        Actuator table (usually ``ParameterSet.actuators``).
    ambient_c:
        Ambient temperature in degC.
    multiplier:
        Dynamic safety multiplier applied to static torque.
    """

    def __init__(
        self,
        actuators: Mapping[str, ActuatorSpec],
        ambient_c: float = DEFAULT_AMBIENT_TEMPERATURE_C,
        multiplier: float = DYNAMIC_TORQUE_MULTIPLIER,
    ) -> None:
        self.actuators = actuators
        self.ambient_c = ambient_c
        self.multiplier = multiplier

    def actuator(self, name: str) -> ActuatorSpec:
        spec = self.actuators.get(name)
        if spec is None:
            raise ConfigError(f"Unknown actuator: {name!r}")
        return spec

    def joint_load(
        self,
        stance: str,
        pose: LegPose,
        joint: str,
        actuator_name: str,
        supported_mass_kg: float,
    ) -> JointLoad:
        """Operating point of *joint* when its foot carries *supported_mass_kg*."""
        spec = self.actuator(actuator_name)
        arm_mm = pose.moment_arm_mm(joint)
        static = supported_mass_kg * GRAVITY_M_S2 * arm_mm / 1000.0
        required = static * self.multiplier
        percent = 100.0 * required / spec.rated_peak_torque_nm
        efficiency = interpolate_efficiency(spec.efficiency_curve, percent)
        power = required * spec.operating_speed_rad_s
        heat = power / efficiency - power
        winding = self.ambient_c + heat * spec.thermal_resistance_k_per_w
        return JointLoad(
            stance=stance,
            leg=pose.leg,
            joint=joint,
            actuator=actuator_name,
            moment_arm_mm=arm_mm,
            static_torque_nm=static,
            required_torque_nm=required,
            torque_percent=percent,
            efficiency=efficiency,
            mechanical_power_w=power,
            heat_w=heat,
            winding_temp_c=winding,
            winding_limit_c=THERMAL_HEADROOM * spec.max_winding_temp_c,
            peak_torque_nm=spec.rated_peak_torque_nm,
        )

    def stance_loads(
        self,
        stance: str,
        legs: Mapping[str, Leg],
        poses: Sequence[LegPose],
        total_mass_kg: float,
    ) -> list[JointLoad]:
        """Loads for every actuated pitch joint of the legs in contact."""
        if not poses:
            return []
        supported = total_mass_kg / len(poses)
        loads: list[JointLoad] = []
        for pose in poses:
            leg = legs[pose.leg]
            for joint in PITCH_JOINTS:
                actuator = leg.actuators.get(joint)
                if actuator is None:
                    continue
                loads.append(self.joint_load(stance, pose, joint, actuator, supported))
        return loads

    @staticmethod
    def assert_within_limits(load: JointLoad) -> None:
        """Raise :class:`ThermalOverrun` when the winding exceeds the derated limit."""
        if load.winding_temp_c > load.winding_limit_c:
            raise ThermalOverrun(
                "thermal.winding",
                load.subject,
                f"{load.actuator}: winding {load.winding_temp_c:.1f} degC exceeds "
                f"{load.winding_limit_c:.1f} degC ({THERMAL_HEADROOM:.0%} of rated maximum)",
                measured=load.winding_temp_c,
                threshold=load.winding_limit_c,
                details={"heat_w": load.heat_w, "efficiency": load.efficiency},
            )

    @staticmethod
    def assert_torque(load: JointLoad) -> None:
        """Raise :class:`ThermalOverrun` when required torque exceeds the rated peak."""
        if load.required_torque_nm > load.peak_torque_nm:
            raise ThermalOverrun(
                "thermal.torque",
                load.subject,
                f"{load.actuator}: required {load.required_torque_nm:.2f} N*m exceeds "
                f"rated peak {load.peak_torque_nm:.2f} N*m",
                measured=load.required_torque_nm,
                threshold=load.peak_torque_nm,
                details={"torque_percent": load.torque_percent},
            )
