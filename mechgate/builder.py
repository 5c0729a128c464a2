"""AssemblyBuilder — builds an AssemblyModel from an assembly document.

Every number in an assembly document is a parameter key; the builder looks
it up in the ParameterSet and records the key and value it consumed on the
part it built.  A literal number in the document is a configuration error.

Example document (YAML)::

    name: quadruped
    parts:
      base_plate:
        material: al6061
        boxes:
          - size: [dimensions.base.length, dimensions.base.width, dimensions.base.thickness]
        interfaces:
          - interface: hip_mount
            offset: [dimensions.hip.x, dimensions.hip.y, dimensions.base.top]
    mates:
      - {part_a: base_plate, interface_a: hip_mount, part_b: hip_bracket, interface_b: hip_mount}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictStr

from mechgate.config import DEFAULT_BBOX_TOLERANCE_MM, DEFAULT_VOLUME_TOLERANCE
from mechgate.errors import ConfigError
from mechgate.geometry.transforms import Placement, Transform, Vec3
from mechgate.interfaces.registry import InterfaceRegistry
from mechgate.interfaces.specs import BoltPattern
from mechgate.models.assembly import AssemblyModel, JointAngles, Leg, Mate, Stance
from mechgate.models.cable import CableRun, ComponentLocation, Grommet
from mechgate.models.part import BoxFeature, HoleSpec, InterfaceBinding, PartModel, Range
from mechgate.params.documents import read_raw

logger = logging.getLogger(__name__)

Ref = StrictStr
RefVec = tuple[Ref, Ref, Ref]


class _Doc(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class PlacementDoc(_Doc):
    frame: str = "world"
    offset: RefVec | None = None
    rpy_deg: RefVec | None = None


class BoxDoc(_Doc):
    size: RefVec
    center: RefVec | None = None


class BindingDoc(_Doc):
    interface: str
    offset: RefVec | None = None
    rpy_deg: RefVec | None = None
    hole_depth: Ref | None = None
    """Depth of pattern holes; defaults to the part's Z extent (through holes)."""


class PartDoc(_Doc):
    material: str
    subsystem: str = "chassis"
    boxes: list[BoxDoc] = Field(min_length=1)
    placement: PlacementDoc = Field(default_factory=PlacementDoc)
    interfaces: list[BindingDoc] = Field(default_factory=list)
    volume_tolerance: Ref | None = None
    """Absolute volume tolerance key (mm^3); replaces the relative default."""


class MateDoc(_Doc):
    part_a: str
    interface_a: str
    part_b: str
    interface_b: str


class LegDoc(_Doc):
    hip: PlacementDoc
    mount_yaw: Ref | None = None
    coxa: Ref
    femur: Ref
    tibia: Ref
    actuators: dict[str, str] = Field(default_factory=dict)


class AnglesDoc(_Doc):
    hip_yaw: Ref | None = None
    hip_pitch: Ref | None = None
    knee: Ref | None = None


class StanceDoc(_Doc):
    contacts: list[str] = Field(default_factory=list)
    angles: dict[str, AnglesDoc]


class GrommetDoc(_Doc):
    placement: PlacementDoc
    inner_diameter: Ref
    part: str | None = None
    cables: list[str] = Field(default_factory=list)


class ComponentDoc(_Doc):
    placement: PlacementDoc
    part: str | None = None


class CableRunDoc(_Doc):
    cable_type: str
    waypoints: list[str] = Field(min_length=2)
    length: Ref | None = None


class AssemblyDocument(_Doc):
    name: str = "assembly"
    parts: dict[str, PartDoc]
    mates: list[MateDoc] = Field(default_factory=list)
    legs: dict[str, LegDoc] = Field(default_factory=dict)
    stances: dict[str, StanceDoc] = Field(default_factory=dict)
    grommets: dict[str, GrommetDoc] = Field(default_factory=dict)
    components: dict[str, ComponentDoc] = Field(default_factory=dict)
    cable_runs: dict[str, CableRunDoc] = Field(default_factory=dict, alias="cable-runs")

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


def parse_assembly(data: Mapping[str, Any]) -> AssemblyDocument:
    """Validate a raw assembly mapping.  Literal numbers are rejected."""
    try:
        return AssemblyDocument.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(
            f"Invalid assembly document (numbers must be parameter keys): {problems}"
        ) from exc


def load_assembly(path: str | Path) -> AssemblyDocument:
    return parse_assembly(read_raw(path))


class _Lookup:
    """Parameter lookups that remember what they consumed."""

    def __init__(self, params: Any) -> None:
        self.params = params
        self.used: dict[str, float | str] = {}

    def num(self, key: str) -> float:
        value = self.params.number(key)
        self.used[key] = value
        return value

    def opt(self, key: str | None, default: float = 0.0) -> float:
        return default if key is None else self.num(key)

    def vec(self, keys: RefVec | None) -> Vec3:
        if keys is None:
            return (0.0, 0.0, 0.0)
        return (self.num(keys[0]), self.num(keys[1]), self.num(keys[2]))

    def placement(self, doc: PlacementDoc) -> Placement:
        return Placement(frame=doc.frame, offset=self.vec(doc.offset), rpy_deg=self.vec(doc.rpy_deg))


def pattern_holes(binding: InterfaceBinding, pattern: BoltPattern, depth: float) -> list[HoleSpec]:
    """Hole features realizing *pattern* at *binding*, drilled along the binding's -Z."""
    frame = binding.local_transform()
    axis = frame.apply_vector((0.0, 0.0, -1.0))
    return [
        HoleSpec(center=frame.apply((x, y, 0.0)), axis=axis, diameter=pattern.hole_diameter, depth=depth)
        for x, y in pattern.hole_positions()
    ]


def _world_extents(extents: Vec3, placement: Placement) -> Vec3:
    rot = Transform.from_pose((0.0, 0.0, 0.0), placement.rpy_deg).rotation
    return tuple(sum(abs(rot[i][j]) * extents[j] for j in range(3)) for i in range(3))  # type: ignore[return-value]


class AssemblyBuilder:
    """Build :class:`AssemblyModel` instances from assembly documents.

    Parameters
    ----------
    params:
        Resolved ParameterSet supplying every number.
    registry:
        Registry the parts' interfaces are bound against.
    """

    def __init__(self, params: Any, registry: InterfaceRegistry | None = None) -> None:
        self.params = params
        self.registry = registry or InterfaceRegistry.from_parameters(params)

    def build(self, document: AssemblyDocument | Mapping[str, Any]) -> AssemblyModel:
        if not isinstance(document, AssemblyDocument):
            document = parse_assembly(document)

        parts = {name: self.build_part(name, doc) for name, doc in sorted(document.parts.items())}
        shared = _Lookup(self.params)
        assembly = AssemblyModel(
            name=document.name,
            parts=parts,
            mates=tuple(Mate(**m.model_dump()) for m in document.mates),
            legs={n: self._leg(shared, n, d) for n, d in sorted(document.legs.items())},
            stances={n: self._stance(shared, n, d) for n, d in sorted(document.stances.items())},
            grommets={
                n: Grommet(
                    name=n,
                    placement=shared.placement(d.placement),
                    inner_diameter_mm=shared.num(d.inner_diameter),
                    part=d.part,
                    cables=tuple(d.cables),
                )
                for n, d in sorted(document.grommets.items())
            },
            components={
                n: ComponentLocation(name=n, placement=shared.placement(d.placement), part=d.part)
                for n, d in sorted(document.components.items())
            },
            cable_runs={
                n: CableRun(
                    name=n,
                    cable_type=d.cable_type,
                    waypoints=tuple(d.waypoints),
                    length_mm=None if d.length is None else shared.num(d.length),
                )
                for n, d in sorted(document.cable_runs.items())
            },
        )
        logger.info(
            "Built assembly %s: %d part(s), %d mate(s), %d leg(s)",
            assembly.name, len(assembly.parts), len(assembly.mates), len(assembly.legs),
        )
        return assembly

    def build_part(self, name: str, doc: PartDoc) -> PartModel:
        """Build one part; holes are added for every bolt pattern it binds."""
        lookup = _Lookup(self.params)
        boxes = tuple(
            BoxFeature(size=lookup.vec(b.size), center=lookup.vec(b.center)) for b in doc.boxes
        )
        placement = lookup.placement(doc.placement)
        bindings = tuple(
            InterfaceBinding(interface=b.interface, offset=lookup.vec(b.offset), rpy_deg=lookup.vec(b.rpy_deg))
            for b in doc.interfaces
        )
        draft = PartModel(name=name, material=doc.material, boxes=boxes)
        extents = draft.nominal_extents()

        holes: list[HoleSpec] = []
        for binding, bdoc in zip(bindings, doc.interfaces):
            spec = self.registry.bind(name, binding)
            if isinstance(spec, BoltPattern):
                depth = lookup.opt(bdoc.hole_depth, extents[2])
                holes.extend(pattern_holes(binding, spec, depth))

        bbox_tol = self.params.number("tolerances.bbox", DEFAULT_BBOX_TOLERANCE_MM)
        if "tolerances.bbox" in self.params:
            lookup.used["tolerances.bbox"] = bbox_tol
        world = _world_extents(extents, placement)
        bbox_range = {
            axis: Range.around(world[i], absolute=bbox_tol) for i, axis in enumerate(("x", "y", "z"))
        }

        nominal = PartModel(name=name, material=doc.material, boxes=boxes, holes=tuple(holes)).nominal_volume()
        if doc.volume_tolerance is not None:
            volume_range = Range.around(nominal, absolute=lookup.num(doc.volume_tolerance))
        else:
            relative = self.params.number("design-rules.volume_tolerance", DEFAULT_VOLUME_TOLERANCE)
            volume_range = Range.around(nominal, relative=relative)

        part = PartModel(
            name=name,
            material=doc.material,
            subsystem=doc.subsystem,
            boxes=boxes,
            holes=tuple(holes),
            placement=placement,
            interfaces=bindings,
            bbox_range=bbox_range,
            volume_range=volume_range,
            provenance=dict(sorted(lookup.used.items())),
        )
        logger.debug("Built part %s: %d box(es), %d hole(s)", name, len(boxes), len(holes))
        return part

    @staticmethod
    def _leg(lookup: _Lookup, name: str, doc: LegDoc) -> Leg:
        return Leg(
            name=name,
            hip=lookup.placement(doc.hip),
            mount_yaw_deg=lookup.opt(doc.mount_yaw),
            coxa_mm=lookup.num(doc.coxa),
            femur_mm=lookup.num(doc.femur),
            tibia_mm=lookup.num(doc.tibia),
            actuators=dict(doc.actuators),
        )

    @staticmethod
    def _stance(lookup: _Lookup, name: str, doc: StanceDoc) -> Stance:
        angles = {
            leg: JointAngles(
                hip_yaw=lookup.opt(a.hip_yaw),
                hip_pitch=lookup.opt(a.hip_pitch),
                knee=lookup.opt(a.knee),
            )
            for leg, a in sorted(doc.angles.items())
        }
        return Stance(name=name, angles=angles, contacts=tuple(doc.contacts))


def build_assembly(
    document: AssemblyDocument | Mapping[str, Any],
    params: Any,
    registry: InterfaceRegistry | None = None,
) -> AssemblyModel:
    """Convenience wrapper around :meth:`AssemblyBuilder.build`."""
    return AssemblyBuilder(params, registry).build(document)
