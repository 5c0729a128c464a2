"""MassAnalyzer — part/subsystem/total mass, centre of mass and static stability.

Volumes come from the kernel in mm^3 and are converted to m^3 before
multiplying by density (kg/m^3).  The assembly centre of mass is weighted by
mass, not volume, since densities differ across materials.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from mechgate.config import STABILITY_MARGIN_MM
from mechgate.errors import ConfigError, StabilityFailure
from mechgate.geometry.kernel import Solid
from mechgate.geometry.transforms import Vec3
from mechgate.models.part import PartModel, Range
from mechgate.params.documents import Material

logger = logging.getLogger(__name__)

MM3_TO_M3 = 1e-9
MM2_TO_M2 = 1e-6

Point2 = tuple[float, float]


@dataclass(frozen=True)
class MassProperties:
    """Mass properties of one realized part."""

    part: str
    subsystem: str
    mass_kg: float
    center_of_mass: Vec3
    inertia_kg_m2: tuple[Vec3, Vec3, Vec3]


class MassAnalyzer:
    """Aggregate mass properties over realized parts.

    Parameters
    ----------
    materials:
        Material table (usually ``ParameterSet.materials``).
    """

    def __init__(self, materials: Mapping[str, Material]) -> None:
        self.materials = materials

    def density(self, part: PartModel) -> float:
        material = self.materials.get(part.material)
        if material is None:
            raise ConfigError(f"Part {part.name!r} references unknown material {part.material!r}")
        return material.density_kg_m3

    def part_mass(self, part: PartModel, solid: Solid) -> float:
        return solid.volume() * MM3_TO_M3 * self.density(part)

    def part_properties(self, part: PartModel, solid: Solid) -> MassProperties:
        density = self.density(part)
        scale = density * MM3_TO_M3 * MM2_TO_M2
        tensor = solid.inertia_tensor()
        return MassProperties(
            part=part.name,
            subsystem=part.subsystem,
            mass_kg=solid.volume() * MM3_TO_M3 * density,
            center_of_mass=solid.center_of_mass(),
            inertia_kg_m2=tuple(tuple(v * scale for v in row) for row in tensor),  # type: ignore[arg-type]
        )

    @staticmethod
    def subsystem_masses(props: Sequence[MassProperties]) -> dict[str, float]:
        out: dict[str, float] = {}
        for p in props:
            out[p.subsystem] = out.get(p.subsystem, 0.0) + p.mass_kg
        return dict(sorted(out.items()))

    @classmethod
    def total_mass(cls, props: Sequence[MassProperties]) -> float:
        return sum(cls.subsystem_masses(props).values())

    @staticmethod
    def center_of_mass(props: Sequence[MassProperties]) -> Vec3:
        total = sum(p.mass_kg for p in props)
        if total <= 0:
            raise ConfigError("Cannot compute centre of mass of a massless assembly")
        return tuple(
            sum(p.mass_kg * p.center_of_mass[i] for p in props) / total for i in range(3)
        )  # type: ignore[return-value]

    @staticmethod
    def check_mass_band(total_kg: float, band: Range) -> tuple[bool, float, str]:
        """Return ``(passed, delta, diagnostic)`` for the total-mass target band."""
        delta = band.delta(total_kg)
        if delta < 0:
            return False, delta, (
                f"total mass {total_kg:.3f} kg is {delta:+.3f} kg from lower bound {band.min:g} kg"
            )
        if delta > 0:
            return False, delta, (
                f"total mass {total_kg:.3f} kg is {delta:+.3f} kg from upper bound {band.max:g} kg"
            )
        return True, 0.0, f"total mass {total_kg:.3f} kg within [{band.min:g}, {band.max:g}] kg"


# ---------------------------------------------------------------------------
# Support polygon
# ---------------------------------------------------------------------------


def _cross(o: Point2, a: Point2, b: Point2) -> float:
    return (a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0])


def convex_hull(points: Sequence[Point2]) -> list[Point2]:
    """Monotone-chain convex hull, counter-clockwise, without collinear points."""
    pts = sorted(set((float(x), float(y)) for x, y in points))
    if len(pts) <= 2:
        return pts
    lower: list[Point2] = []
    for p in pts:
        while len(lower) >= 2 and _cross(lower[-2], lower[-1], p) <= 0:
            lower.pop()
        lower.append(p)
    upper: list[Point2] = []
    for p in reversed(pts):
        while len(upper) >= 2 and _cross(upper[-2], upper[-1], p) <= 0:
            upper.pop()
        upper.append(p)
    return lower[:-1] + upper[:-1]


def stability_margin(point: Point2, hull: Sequence[Point2]) -> float:
    """Signed distance from *point* to the nearest hull edge (positive inside).

    Returns ``-inf`` for a degenerate hull (fewer than three vertices).
    """
    if len(hull) < 3:
        return -math.inf
    margin = math.inf
    for i in range(len(hull)):
        a, b = hull[i], hull[(i + 1) % len(hull)]
        length = math.dist(a, b)
        # Counter-clockwise hull: interior lies to the left of each edge
        signed = _cross(a, b, point) / length
        margin = min(margin, signed)
    return margin


def assert_stable(
    stance: str,
    com_xy: Point2,
    contacts: Sequence[Point2],
    margin_mm: float = STABILITY_MARGIN_MM,
) -> float:
    """Raise :class:`StabilityFailure` unless the COM is inside the hull by *margin_mm*.

    Returns the signed margin on success.
    """
    hull = convex_hull(contacts)
    if len(hull) < 3:
        raise StabilityFailure(
            "stability.margin",
            stance,
            f"degenerate support polygon from {len(contacts)} contact point(s)",
            measured=None,
            threshold=margin_mm,
            details={"hull": [list(p) for p in hull]},
        )
    signed = stability_margin(com_xy, hull)
    if signed < margin_mm:
        where = "inside" if signed > 0 else "outside or on"
        raise StabilityFailure(
            "stability.margin",
            stance,
            f"centre of mass {where} support polygon; nearest edge at {signed:.3f} mm "
            f"(required >= {margin_mm:g} mm)",
            measured=signed,
            threshold=margin_mm,
            details={"com_xy": list(com_xy), "hull": [list(p) for p in hull]},
        )
    logger.debug("Stance %s stable with margin %.3f mm", stance, signed)
    return signed
