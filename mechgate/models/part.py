"""PartModel — one generated solid plus its declared interfaces and targets."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field, model_validator

from mechgate.geometry.transforms import Placement, Transform, Vec3
from mechgate.interfaces.specs import InterfaceSpec


class Range(BaseModel):
    """Closed acceptance interval ``[min, max]``."""

    model_config = ConfigDict(frozen=True)

    min: float
    max: float

    @model_validator(mode="after")
    def _ordered(self) -> Range:
        if self.min > self.max:
            raise ValueError(f"range min {self.min} exceeds max {self.max}")
        return self

    @classmethod
    def around(
        cls,
        nominal: float,
        *,
        relative: float | None = None,
        absolute: float | None = None,
    ) -> Range:
        """Range centred on *nominal*; an absolute tolerance wins over a relative one."""
        if absolute is not None:
            half = absolute
        else:
            half = abs(nominal) * (relative if relative is not None else 0.0)
        return cls(min=nominal - half, max=nominal + half)

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max

    def delta(self, value: float) -> float:
        """Signed distance outside the range (negative below, positive above, 0 inside)."""
        if value < self.min:
            return value - self.min
        if value > self.max:
            return value - self.max
        return 0.0


class BoxFeature(BaseModel):
    """Solid box in part-local coordinates, given by its centre and size."""

    model_config = ConfigDict(frozen=True)

    center: Vec3 = (0.0, 0.0, 0.0)
    size: Vec3

    @model_validator(mode="after")
    def _positive(self) -> BoxFeature:
        if any(s <= 0 for s in self.size):
            raise ValueError("box size must be positive")
        return self

    def volume(self) -> float:
        return self.size[0] * self.size[1] * self.size[2]


class HoleSpec(BaseModel):
    """Cylindrical hole cut from the entry point along ``axis`` for ``depth`` mm."""

    model_config = ConfigDict(frozen=True)

    center: Vec3
    axis: Vec3 = (0.0, 0.0, -1.0)
    diameter: float = Field(gt=0)
    depth: float = Field(gt=0)

    def volume(self) -> float:
        return math.pi * (self.diameter / 2.0) ** 2 * self.depth


class InterfaceBinding(BaseModel):
    """A part's use of a named interface, placed in the part's local frame.

    ``declared`` optionally carries the contract the part was designed
    against; it is compared structurally with the registered definition.
    """

    model_config = ConfigDict(frozen=True)

    interface: str
    offset: Vec3 = (0.0, 0.0, 0.0)
    rpy_deg: Vec3 = (0.0, 0.0, 0.0)
    declared: InterfaceSpec | None = None

    def local_transform(self) -> Transform:
        return Transform.from_pose(self.offset, self.rpy_deg)


class PartModel(BaseModel):
    """In-memory description of a part prior to and independent of realization.

    The realized solid is owned by the geometric kernel; validation keeps it in
    its own context and never stores it on the model.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    material: str
    subsystem: str = "chassis"
    boxes: tuple[BoxFeature, ...] = ()
    holes: tuple[HoleSpec, ...] = ()
    placement: Placement = Field(default_factory=Placement)
    interfaces: tuple[InterfaceBinding, ...] = ()
    bbox_range: dict[str, Range] = Field(default_factory=dict)
    """Accepted extent per axis (``x``, ``y``, ``z``) of the realized bounding box."""

    volume_range: Range | None = None
    provenance: dict[str, float | str] = Field(default_factory=dict)
    """Parameter keys consumed by the builder and the values it used."""

    def binding(self, interface: str) -> InterfaceBinding:
        for b in self.interfaces:
            if b.interface == interface:
                return b
        raise KeyError(f"Part {self.name!r} does not bind interface {interface!r}")

    def nominal_volume(self) -> float:
        return sum(b.volume() for b in self.boxes) - sum(h.volume() for h in self.holes)

    def nominal_extents(self) -> Vec3:
        if not self.boxes:
            return (0.0, 0.0, 0.0)
        lo = [min(b.center[i] - b.size[i] / 2.0 for b in self.boxes) for i in range(3)]
        hi = [max(b.center[i] + b.size[i] / 2.0 for b in self.boxes) for i in range(3)]
        return (hi[0] - lo[0], hi[1] - lo[1], hi[2] - lo[2])
