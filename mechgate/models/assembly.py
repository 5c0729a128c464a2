"""AssemblyModel — parts connected through mates, plus legs, stances and cabling."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from mechgate.geometry.transforms import Placement
from mechgate.models.cable import CableRun, ComponentLocation, Grommet
from mechgate.models.part import PartModel

JOINTS = ("hip_yaw", "hip_pitch", "knee")


class Mate(BaseModel):
    """``mates(part_a, interface_a, part_b, interface_b)``."""

    model_config = ConfigDict(frozen=True)

    part_a: str
    interface_a: str
    part_b: str
    interface_b: str

    def pair(self) -> tuple[str, str]:
        return tuple(sorted((self.part_a, self.part_b)))  # type: ignore[return-value]

    def label(self) -> str:
        return f"{self.part_a}:{self.interface_a}~{self.part_b}:{self.interface_b}"


class Leg(BaseModel):
    """Three-joint leg: hip yaw, hip pitch, knee pitch.

    The hip yaw axis passes through ``hip``; the coxa extends horizontally
    along the mount yaw direction, followed by femur and tibia in the leg plane.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    hip: Placement
    mount_yaw_deg: float = 0.0
    coxa_mm: float = Field(ge=0)
    femur_mm: float = Field(gt=0)
    tibia_mm: float = Field(gt=0)
    actuators: dict[str, str] = Field(default_factory=dict)
    """Joint name (``hip_yaw``, ``hip_pitch``, ``knee``) -> actuator name."""


class JointAngles(BaseModel):
    """Joint angles in degrees.  Pitch angles are measured downwards."""

    model_config = ConfigDict(frozen=True)

    hip_yaw: float = 0.0
    hip_pitch: float = 0.0
    knee: float = 0.0


class Stance(BaseModel):
    """Named pose; ``contacts`` lists the legs on the ground (all legs if empty)."""

    model_config = ConfigDict(frozen=True)

    name: str
    angles: dict[str, JointAngles]
    contacts: tuple[str, ...] = ()


class AssemblyModel(BaseModel):
    """Graph of parts plus everything the assembly-level checks need."""

    model_config = ConfigDict(frozen=True)

    name: str = "assembly"
    parts: dict[str, PartModel] = Field(default_factory=dict)
    mates: tuple[Mate, ...] = ()
    legs: dict[str, Leg] = Field(default_factory=dict)
    stances: dict[str, Stance] = Field(default_factory=dict)
    grommets: dict[str, Grommet] = Field(default_factory=dict)
    components: dict[str, ComponentLocation] = Field(default_factory=dict)
    cable_runs: dict[str, CableRun] = Field(default_factory=dict)

    @classmethod
    def of(cls, parts: list[PartModel], **kwargs) -> AssemblyModel:
        """Build from a list of parts keyed by their names."""
        return cls(parts={p.name: p for p in parts}, **kwargs)

    def part_names(self) -> list[str]:
        return sorted(self.parts)

    def is_mating(self, a: str, b: str) -> bool:
        pair = tuple(sorted((a, b)))
        return any(m.pair() == pair for m in self.mates)

    def contact_legs(self, stance: Stance) -> list[str]:
        return sorted(stance.contacts) if stance.contacts else sorted(self.legs)

    def grommet_cables(self, grommet: str) -> list[str]:
        """Cable runs passing through *grommet*: declared ones plus routed ones."""
        names = set(self.grommets[grommet].cables)
        names.update(r.name for r in self.cable_runs.values() if grommet in r.waypoints)
        return sorted(names)
