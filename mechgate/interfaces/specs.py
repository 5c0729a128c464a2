"""InterfaceSpec variants: bolt patterns, datum frames, clearance envelopes.

All variants are frozen once declared.  A part or assembly binds to an
interface by name and supplies its own placement.
"""

from __future__ import annotations

import math
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator


class _Spec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    description: str = ""


class BoltPattern(_Spec):
    """A fastener hole pattern, defined in the XY plane of its binding frame.

    ``rectangular`` uses ``spacing = [sx, sy]`` and places four holes at the
    corners of an sx × sy rectangle centred on the origin.  ``linear`` places
    ``count`` holes along X with pitch ``spacing[0]``, centred.  ``circular``
    places ``count`` holes on a circle of diameter ``spacing[0]`` starting on +X.
    """

    kind: Literal["bolt_pattern"] = "bolt_pattern"
    fastener: str
    pattern: Literal["rectangular", "circular", "linear"]
    spacing: tuple[float, ...]
    count: int = 4
    hole_diameter: float = Field(gt=0)
    counterbore_diameter: float | None = None
    counterbore_depth: float | None = None
    min_edge_distance: float = 0.0

    @model_validator(mode="after")
    def _check_shape(self) -> BoltPattern:
        if self.pattern == "rectangular":
            if len(self.spacing) != 2:
                raise ValueError("rectangular pattern needs spacing [sx, sy]")
            if self.count != 4:
                raise ValueError("rectangular pattern has exactly 4 holes")
        elif len(self.spacing) != 1:
            raise ValueError(f"{self.pattern} pattern needs a single spacing value")
        if self.count < 1:
            raise ValueError("count must be at least 1")
        if self.counterbore_diameter is not None and self.counterbore_diameter <= self.hole_diameter:
            raise ValueError("counterbore_diameter must exceed hole_diameter")
        return self

    def hole_positions(self) -> list[tuple[float, float]]:
        """Return pattern-local hole centres, in a fixed order."""
        if self.pattern == "rectangular":
            hx, hy = self.spacing[0] / 2.0, self.spacing[1] / 2.0
            return [(-hx, -hy), (hx, -hy), (hx, hy), (-hx, hy)]
        if self.pattern == "linear":
            pitch = self.spacing[0]
            start = -pitch * (self.count - 1) / 2.0
            return [(start + i * pitch, 0.0) for i in range(self.count)]
        radius = self.spacing[0] / 2.0
        step = 2.0 * math.pi / self.count
        return [
            (round(radius * math.cos(i * step), 9), round(radius * math.sin(i * step), 9))
            for i in range(self.count)
        ]

    def min_spacing(self) -> float:
        """Smallest centre-to-centre distance between two holes of the pattern."""
        points = self.hole_positions()
        if len(points) < 2:
            return math.inf
        return min(
            math.dist(points[i], points[j])
            for i in range(len(points))
            for j in range(i + 1, len(points))
        )


class DatumFrame(_Spec):
    """A named coordinate frame relative to a parent frame (``world`` is the root)."""

    kind: Literal["datum_frame"] = "datum_frame"
    parent: str = "world"
    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rpy_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)


class ClearanceEnvelope(_Spec):
    """A primitive volume; when ``keep_out`` is set no other part may enter it.

    ``box`` dimensions are ``[x, y, z]``; ``cylinder`` dimensions are
    ``[diameter, height]`` along the local Z axis.  Both are centred on the
    binding origin in X/Y and extend from z=0 upwards.
    """

    kind: Literal["clearance_envelope"] = "clearance_envelope"
    shape: Literal["box", "cylinder"]
    dimensions: tuple[float, ...]
    keep_out: bool = True

    @model_validator(mode="after")
    def _check_dimensions(self) -> ClearanceEnvelope:
        expected = 3 if self.shape == "box" else 2
        if len(self.dimensions) != expected:
            raise ValueError(f"{self.shape} envelope needs {expected} dimensions")
        if any(d <= 0 for d in self.dimensions):
            raise ValueError("envelope dimensions must be positive")
        return self


InterfaceSpec = Annotated[
    Union[BoltPattern, DatumFrame, ClearanceEnvelope],
    Field(discriminator="kind"),
]

INTERFACE_ADAPTER: TypeAdapter[BoltPattern | DatumFrame | ClearanceEnvelope] = TypeAdapter(
    InterfaceSpec
)


def structural_mismatch(
    a: BoltPattern | DatumFrame | ClearanceEnvelope,
    b: BoltPattern | DatumFrame | ClearanceEnvelope,
) -> str | None:
    """Compare two declarations of the same interface.

    Returns a description of the first incompatibility, or *None* when the two
    are structurally compatible.  Placement-independent: only the contract is
    compared.
    """
    if a.kind != b.kind:
        return f"variant {a.kind} != {b.kind}"
    if isinstance(a, BoltPattern) and isinstance(b, BoltPattern):
        if a.fastener != b.fastener:
            return f"fastener {a.fastener} != {b.fastener}"
        if a.pattern != b.pattern:
            return f"pattern shape {a.pattern} != {b.pattern}"
        if a.count != b.count:
            return f"hole count {a.count} != {b.count}"
    if isinstance(a, ClearanceEnvelope) and isinstance(b, ClearanceEnvelope):
        if a.shape != b.shape:
            return f"envelope shape {a.shape} != {b.shape}"
    return None
