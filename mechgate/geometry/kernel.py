"""Abstract geometric kernel interface consumed by the invariant engine.

A concrete kernel (a CAD backend, or :class:`~mechgate.geometry.boxkernel.BoxKernel`)
realizes :class:`~mechgate.models.part.PartModel` instances into solids placed
in assembly coordinates.  Every operation may raise
:class:`~mechgate.errors.GeometryError`.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from pydantic import BaseModel, ConfigDict

from mechgate.geometry.transforms import Transform, Vec3

if TYPE_CHECKING:
    from mechgate.models.part import PartModel


class BoundingBox(BaseModel):
    """Axis-aligned bounding box in millimetres."""

    model_config = ConfigDict(frozen=True)

    min_x: float = 0.0
    min_y: float = 0.0
    min_z: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0
    max_z: float = 0.0

    def extents(self) -> Vec3:
        return (self.max_x - self.min_x, self.max_y - self.min_y, self.max_z - self.min_z)

    def inflate(self, margin: float) -> BoundingBox:
        return BoundingBox(
            min_x=self.min_x - margin, min_y=self.min_y - margin, min_z=self.min_z - margin,
            max_x=self.max_x + margin, max_y=self.max_y + margin, max_z=self.max_z + margin,
        )

    def overlap_volume(self, other: BoundingBox) -> float:
        dx = min(self.max_x, other.max_x) - max(self.min_x, other.min_x)
        dy = min(self.max_y, other.max_y) - max(self.min_y, other.min_y)
        dz = min(self.max_z, other.max_z) - max(self.min_z, other.min_z)
        if dx <= 0 or dy <= 0 or dz <= 0:
            return 0.0
        return dx * dy * dz

    def intersects_segment(self, p0: Sequence[float], p1: Sequence[float]) -> bool:
        """Slab test: does the closed segment p0→p1 touch the box interior?"""
        lo = (self.min_x, self.min_y, self.min_z)
        hi = (self.max_x, self.max_y, self.max_z)
        t0, t1 = 0.0, 1.0
        for axis in range(3):
            d = p1[axis] - p0[axis]
            if abs(d) < 1e-12:
                if p0[axis] <= lo[axis] or p0[axis] >= hi[axis]:
                    return False
                continue
            a = (lo[axis] - p0[axis]) / d
            b = (hi[axis] - p0[axis]) / d
            if a > b:
                a, b = b, a
            t0, t1 = max(t0, a), min(t1, b)
            if t0 >= t1:
                return False
        return True


class HoleFeature(BaseModel):
    """A realized cylindrical hole: centre of its entry face, axis and size."""

    model_config = ConfigDict(frozen=True)

    center: Vec3
    axis: Vec3 = (0.0, 0.0, 1.0)
    diameter: float
    depth: float = 0.0


class Mesh(abc.ABC):
    """Triangle mesh produced by :meth:`Solid.export_mesh`."""

    @abc.abstractmethod
    def is_watertight(self) -> bool:
        """True for a closed 2-manifold."""

    @abc.abstractmethod
    def triangle_count(self) -> int:
        """Number of triangles."""


class Solid(abc.ABC):
    """A realized solid in assembly coordinates (mm)."""

    @abc.abstractmethod
    def volume(self) -> float:
        """Volume in mm^3."""

    @abc.abstractmethod
    def bounding_box(self) -> BoundingBox:
        """Axis-aligned bounding box."""

    @abc.abstractmethod
    def center_of_mass(self) -> Vec3:
        """Centroid assuming uniform density."""

    @abc.abstractmethod
    def inertia_tensor(self) -> tuple[Vec3, Vec3, Vec3]:
        """Inertia about the centre of mass per unit density (mm^5)."""

    @abc.abstractmethod
    def intersect(self, other: Solid) -> Solid:
        """Boolean intersection."""

    @abc.abstractmethod
    def export_step(self, path: str | Path) -> Path:
        """Write a STEP file and return its path."""

    @abc.abstractmethod
    def export_mesh(self, path: str | Path) -> Mesh:
        """Write a mesh file (STL) and return the mesh."""

    def touches_segment(self, p0: Sequence[float], p1: Sequence[float], margin: float = 0.0) -> bool:
        """Does the segment p0→p1 come within *margin* of material?

        Falls back to the inflated bounding box for kernels that cannot
        query their own faces.
        """
        return self.bounding_box().inflate(margin).intersects_segment(p0, p1)

    def holes(self) -> list[HoleFeature]:
        """Realized hole features; empty for kernels without feature access."""
        return []

    def recompute_errors(self) -> list[str]:
        """Constraint-solver diagnostics from the last recompute."""
        return []


class GeometryKernel(abc.ABC):
    """Factory of solids."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short kernel identifier."""

    @abc.abstractmethod
    def realize(self, part: PartModel, placement: Transform) -> Solid:
        """Build the solid of *part* positioned by the world *placement*."""

    @abc.abstractmethod
    def primitive(self, shape: str, dimensions: Sequence[float], placement: Transform) -> Solid:
        """Build a clearance primitive (``box`` or ``cylinder``)."""
