"""Leg forward kinematics for foot-contact and moment-arm computation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from mechgate.errors import ConfigError
from mechgate.geometry.frames import FrameTree
from mechgate.geometry.transforms import Vec3
from mechgate.models.assembly import AssemblyModel, JointAngles, Leg, Stance

# Joints whose axis is horizontal and therefore carries gravity torque
PITCH_JOINTS = ("hip_pitch", "knee")


@dataclass(frozen=True)
class LegPose:
    """World positions of a leg's joint axes and foot for one stance."""

    leg: str
    joints: dict[str, Vec3] = field(default_factory=dict)
    foot: Vec3 = (0.0, 0.0, 0.0)

    def moment_arm_mm(self, joint: str) -> float:
        """Horizontal distance from the joint axis to the foot contact."""
        j = self.joints[joint]
        return math.hypot(self.foot[0] - j[0], self.foot[1] - j[1])


def leg_pose(leg: Leg, angles: JointAngles, frames: FrameTree) -> LegPose:
    hip = frames.locate(leg.hip)
    psi = math.radians(leg.mount_yaw_deg + angles.hip_yaw)
    ux, uy = math.cos(psi), math.sin(psi)
    t1 = math.radians(angles.hip_pitch)
    t2 = t1 + math.radians(angles.knee)

    pitch = (hip[0] + leg.coxa_mm * ux, hip[1] + leg.coxa_mm * uy, hip[2])
    r1, z1 = leg.femur_mm * math.cos(t1), -leg.femur_mm * math.sin(t1)
    knee = (pitch[0] + r1 * ux, pitch[1] + r1 * uy, pitch[2] + z1)
    r2, z2 = leg.tibia_mm * math.cos(t2), -leg.tibia_mm * math.sin(t2)
    foot = (knee[0] + r2 * ux, knee[1] + r2 * uy, knee[2] + z2)

    return LegPose(
        leg=leg.name,
        joints={"hip_yaw": hip, "hip_pitch": pitch, "knee": knee},
        foot=foot,
    )


def stance_poses(assembly: AssemblyModel, stance: Stance, frames: FrameTree) -> list[LegPose]:
    """Poses of the legs in contact with the ground for *stance*, sorted by leg."""
    poses: list[LegPose] = []
    for name in assembly.contact_legs(stance):
        leg = assembly.legs.get(name)
        if leg is None:
            raise ConfigError(f"Stance {stance.name!r} references unknown leg {name!r}")
        angles = stance.angles.get(name)
        if angles is None:
            raise ConfigError(f"Stance {stance.name!r} gives no joint angles for leg {name!r}")
        poses.append(leg_pose(leg, angles, frames))
    return poses


def contact_points(poses: list[LegPose]) -> list[tuple[float, float]]:
    """Foot contacts projected on the ground plane."""
    return [(p.foot[0], p.foot[1]) for p in poses]
