"""BoxKernel — reference kernel over unions of axis-aligned boxes.

Solids are sets of disjoint axis-aligned boxes with cylindrical holes.  Hole
volumes are subtracted analytically; booleans, inertia and meshes consider
the boxes only.  Placements must be quarter-turn rotations so boxes stay
axis-aligned.

Uses pure Python box math, enough to run the full invariant battery
without a CAD backend.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from mechgate.errors import GeometryError
from mechgate.geometry.kernel import BoundingBox, GeometryKernel, HoleFeature, Mesh, Solid
from mechgate.geometry.transforms import Transform, Vec3

if TYPE_CHECKING:
    from mechgate.models.part import PartModel

logger = logging.getLogger(__name__)

# Tolerance when deciding whether a hole entry point touches material (mm)
_TOUCH_TOLERANCE_MM = 1e-6

# Corner index triples, two triangles per box face, outward winding
_BOX_FACES = (
    (0, 2, 1), (0, 3, 2),  # -z
    (4, 5, 6), (4, 6, 7),  # +z
    (0, 1, 5), (0, 5, 4),  # -y
    (3, 7, 6), (3, 6, 2),  # +y
    (0, 4, 7), (0, 7, 3),  # -x
    (1, 2, 6), (1, 6, 5),  # +x
)

# Grid step to the neighbouring cell across each face of _BOX_FACES, in order
_FACE_NEIGHBOURS = ((2, -1), (2, 1), (1, -1), (1, 1), (0, -1), (0, 1))


def _corners(box: BoundingBox) -> list[Vec3]:
    return [
        (box.min_x, box.min_y, box.min_z),
        (box.max_x, box.min_y, box.min_z),
        (box.max_x, box.max_y, box.min_z),
        (box.min_x, box.max_y, box.min_z),
        (box.min_x, box.min_y, box.max_z),
        (box.max_x, box.min_y, box.max_z),
        (box.max_x, box.max_y, box.max_z),
        (box.min_x, box.max_y, box.max_z),
    ]


def _box_volume(box: BoundingBox) -> float:
    dx, dy, dz = box.extents()
    return dx * dy * dz


def _box_center(box: BoundingBox) -> Vec3:
    return (
        (box.min_x + box.max_x) / 2.0,
        (box.min_y + box.max_y) / 2.0,
        (box.min_z + box.max_z) / 2.0,
    )


def _hole_volume(hole: HoleFeature) -> float:
    return math.pi * (hole.diameter / 2.0) ** 2 * hole.depth


def _contains(box: BoundingBox, p: Sequence[float], tol: float) -> bool:
    return (
        box.min_x - tol <= p[0] <= box.max_x + tol
        and box.min_y - tol <= p[1] <= box.max_y + tol
        and box.min_z - tol <= p[2] <= box.max_z + tol
    )


def _transform_box(box: BoundingBox, placement: Transform) -> BoundingBox:
    pts = [placement.apply(c) for c in _corners(box)]
    xs, ys, zs = zip(*pts)
    return BoundingBox(
        min_x=min(xs), min_y=min(ys), min_z=min(zs),
        max_x=max(xs), max_y=max(ys), max_z=max(zs),
    )


def _surface_triangles(boxes: Sequence[BoundingBox]) -> list[tuple[Vec3, Vec3, Vec3]]:
    """Boundary triangles of a union of disjoint boxes.

    Boxes are split on a common grid so faces shared by touching boxes
    cancel and every surface edge is shared by exactly two triangles.
    """
    xs = sorted({v for b in boxes for v in (b.min_x, b.max_x)})
    ys = sorted({v for b in boxes for v in (b.min_y, b.max_y)})
    zs = sorted({v for b in boxes for v in (b.min_z, b.max_z)})

    filled: set[tuple[int, int, int]] = set()
    for i in range(len(xs) - 1):
        for j in range(len(ys) - 1):
            for k in range(len(zs) - 1):
                mid = ((xs[i] + xs[i + 1]) / 2.0, (ys[j] + ys[j + 1]) / 2.0, (zs[k] + zs[k + 1]) / 2.0)
                if any(_contains(b, mid, 0.0) for b in boxes):
                    filled.add((i, j, k))

    triangles: list[tuple[Vec3, Vec3, Vec3]] = []
    for i, j, k in sorted(filled):
        cell = BoundingBox(
            min_x=xs[i], min_y=ys[j], min_z=zs[k],
            max_x=xs[i + 1], max_y=ys[j + 1], max_z=zs[k + 1],
        )
        corners = _corners(cell)
        for face, (axis, step) in enumerate(_FACE_NEIGHBOURS):
            neighbour = [i, j, k]
            neighbour[axis] += step
            if tuple(neighbour) in filled:
                continue
            for a, b, c in _BOX_FACES[2 * face:2 * face + 2]:
                triangles.append((corners[a], corners[b], corners[c]))
    return triangles


class TriangleMesh(Mesh):
    """Triangle soup with an edge-manifold watertightness test."""

    def __init__(self, triangles: list[tuple[Vec3, Vec3, Vec3]]) -> None:
        self.triangles = triangles

    def triangle_count(self) -> int:
        return len(self.triangles)

    def is_watertight(self) -> bool:
        """Every undirected edge must be shared by exactly two triangles."""
        if not self.triangles:
            return False
        edges: dict[tuple[tuple[float, ...], tuple[float, ...]], int] = {}
        for tri in self.triangles:
            verts = [tuple(round(c, 6) for c in v) for v in tri]
            if len(set(verts)) < 3:
                return False
            for i in range(3):
                a, b = verts[i], verts[(i + 1) % 3]
                key = (a, b) if a < b else (b, a)
                edges[key] = edges.get(key, 0) + 1
        return all(count == 2 for count in edges.values())


class BoxSolid(Solid):
    """Union of disjoint axis-aligned boxes minus cylindrical holes."""

    def __init__(
        self,
        boxes: list[BoundingBox],
        holes: list[HoleFeature] | None = None,
        errors: list[str] | None = None,
        label: str = "solid",
    ) -> None:
        self.boxes = boxes
        self._holes = holes or []
        self._errors = errors or []
        self.label = label

    def volume(self) -> float:
        return sum(_box_volume(b) for b in self.boxes) - sum(_hole_volume(h) for h in self._holes)

    def bounding_box(self) -> BoundingBox:
        if not self.boxes:
            return BoundingBox()
        return BoundingBox(
            min_x=min(b.min_x for b in self.boxes),
            min_y=min(b.min_y for b in self.boxes),
            min_z=min(b.min_z for b in self.boxes),
            max_x=max(b.max_x for b in self.boxes),
            max_y=max(b.max_y for b in self.boxes),
            max_z=max(b.max_z for b in self.boxes),
        )

    def center_of_mass(self) -> Vec3:
        total = self.volume()
        if total <= 0:
            raise GeometryError("solid has no volume", part=self.label)
        acc = [0.0, 0.0, 0.0]
        for box in self.boxes:
            v, c = _box_volume(box), _box_center(box)
            for i in range(3):
                acc[i] += v * c[i]
        for hole in self._holes:
            v = _hole_volume(hole)
            c = [hole.center[i] + hole.axis[i] * hole.depth / 2.0 for i in range(3)]
            for i in range(3):
                acc[i] -= v * c[i]
        return (acc[0] / total, acc[1] / total, acc[2] / total)

    def inertia_tensor(self) -> tuple[Vec3, Vec3, Vec3]:
        com = self.center_of_mass()
        m = [[0.0] * 3 for _ in range(3)]
        for box in self.boxes:
            v = _box_volume(box)
            a, b, c = box.extents()
            d = [_box_center(box)[i] - com[i] for i in range(3)]
            own = (v * (b * b + c * c) / 12.0, v * (a * a + c * c) / 12.0, v * (a * a + b * b) / 12.0)
            for i in range(3):
                for j in range(3):
                    if i == j:
                        shift = v * (sum(x * x for x in d) - d[i] * d[i])
                        m[i][j] += own[i] + shift
                    else:
                        m[i][j] -= v * d[i] * d[j]
        return (tuple(m[0]), tuple(m[1]), tuple(m[2]))  # type: ignore[return-value]

    def intersect(self, other: Solid) -> Solid:
        if not isinstance(other, BoxSolid):
            raise GeometryError(f"cannot intersect with {type(other).__name__}", part=self.label)
        pieces: list[BoundingBox] = []
        for a in self.boxes:
            for b in other.boxes:
                if a.overlap_volume(b) > 0:
                    pieces.append(BoundingBox(
                        min_x=max(a.min_x, b.min_x), min_y=max(a.min_y, b.min_y),
                        min_z=max(a.min_z, b.min_z), max_x=min(a.max_x, b.max_x),
                        max_y=min(a.max_y, b.max_y), max_z=min(a.max_z, b.max_z),
                    ))
        return BoxSolid(pieces, label=f"{self.label}&{other.label}")

    def touches_segment(self, p0: Sequence[float], p1: Sequence[float], margin: float = 0.0) -> bool:
        return any(box.inflate(margin).intersects_segment(p0, p1) for box in self.boxes)

    def holes(self) -> list[HoleFeature]:
        return list(self._holes)

    def recompute_errors(self) -> list[str]:
        return list(self._errors)

    def export_step(self, path: str | Path) -> Path:
        p = Path(path)
        lines = [
            "ISO-10303-21;",
            "HEADER;",
            f"FILE_DESCRIPTION(('mechgate box solid {self.label}'),'2;1');",
            f"FILE_NAME('{p.name}','',(''),(''),'mechgate','boxkernel','');",
            "FILE_SCHEMA(('AUTOMOTIVE_DESIGN'));",
            "ENDSEC;",
            "DATA;",
        ]
        eid = 1
        for box in self.boxes:
            for corner in _corners(box):
                lines.append(f"#{eid}=CARTESIAN_POINT('',({corner[0]:.6f},{corner[1]:.6f},{corner[2]:.6f}));")
                eid += 1
        for hole in self._holes:
            c, a = hole.center, hole.axis
            lines.append(f"#{eid}=CARTESIAN_POINT('',({c[0]:.6f},{c[1]:.6f},{c[2]:.6f}));")
            lines.append(f"#{eid + 1}=DIRECTION('',({a[0]:.6f},{a[1]:.6f},{a[2]:.6f}));")
            lines.append(f"#{eid + 2}=CYLINDRICAL_SURFACE('',#{eid},{hole.diameter / 2.0:.6f});")
            eid += 3
        lines.extend(["ENDSEC;", "END-ISO-10303-21;"])
        p.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return p

    def export_mesh(self, path: str | Path) -> Mesh:
        triangles = _surface_triangles(self.boxes)

        p = Path(path)
        out = [f"solid {self.label}"]
        for tri in triangles:
            out.append("  facet normal 0 0 0")
            out.append("    outer loop")
            for v in tri:
                out.append(f"      vertex {v[0]:.6f} {v[1]:.6f} {v[2]:.6f}")
            out.append("    endloop")
            out.append("  endfacet")
        out.append(f"endsolid {self.label}")
        p.write_text("\n".join(out) + "\n", encoding="utf-8")
        return TriangleMesh(triangles)


class BoxKernel(GeometryKernel):
    """Kernel realizing :class:`PartModel` box and hole features."""

    @property
    def name(self) -> str:
        return "box"

    def realize(self, part: PartModel, placement: Transform) -> Solid:
        if not part.boxes:
            raise GeometryError("part has no solid features", part=part.name)
        if not placement.is_axis_aligned():
            raise GeometryError("box kernel supports quarter-turn placements only", part=part.name)

        boxes: list[BoundingBox] = []
        for feature in part.boxes:
            half = [s / 2.0 for s in feature.size]
            local = BoundingBox(
                min_x=feature.center[0] - half[0], min_y=feature.center[1] - half[1],
                min_z=feature.center[2] - half[2], max_x=feature.center[0] + half[0],
                max_y=feature.center[1] + half[1], max_z=feature.center[2] + half[2],
            )
            boxes.append(_transform_box(local, placement))

        for i in range(len(boxes)):
            for j in range(i + 1, len(boxes)):
                if boxes[i].overlap_volume(boxes[j]) > 0:
                    raise GeometryError(
                        f"box features {i} and {j} overlap; features must be disjoint",
                        part=part.name,
                    )

        holes: list[HoleFeature] = []
        errors: list[str] = []
        for i, spec in enumerate(part.holes):
            center = placement.apply(spec.center)
            holes.append(HoleFeature(
                center=center,
                axis=placement.apply_vector(spec.axis),
                diameter=spec.diameter,
                depth=spec.depth,
            ))
            if not any(_contains(b, center, _TOUCH_TOLERANCE_MM) for b in boxes):
                errors.append(f"hole {i} at {tuple(round(c, 3) for c in center)} cuts no material")

        logger.debug("Realized %s: %d boxes, %d holes", part.name, len(boxes), len(holes))
        return BoxSolid(boxes, holes, errors, label=part.name)

    def primitive(self, shape: str, dimensions: Sequence[float], placement: Transform) -> Solid:
        if not placement.is_axis_aligned():
            raise GeometryError("box kernel supports quarter-turn placements only")
        if shape == "box":
            sx, sy, sz = dimensions
        elif shape == "cylinder":
            # Conservative: the cylinder's bounding box
            sx = sy = dimensions[0]
            sz = dimensions[1]
        else:
            raise GeometryError(f"unsupported primitive {shape!r}")
        local = BoundingBox(min_x=-sx / 2.0, min_y=-sy / 2.0, min_z=0.0, max_x=sx / 2.0, max_y=sy / 2.0, max_z=sz)
        return BoxSolid([_transform_box(local, placement)], label=f"{shape}-envelope")
