"""CableRouter — polyline reconstruction, bend radius, clearance and grommet fill."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from mechgate.config import CABLE_CLEARANCE_MM, GROMMET_FILL_MAX
from mechgate.errors import CableFitFailure, ConfigError
from mechgate.geometry.frames import FrameTree
from mechgate.geometry.kernel import Solid
from mechgate.geometry.transforms import Vec3, cross, distance, norm, sub
from mechgate.models.assembly import AssemblyModel
from mechgate.models.cable import CableRun
from mechgate.params.documents import CableType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutedWaypoint:
    name: str
    point: Vec3
    part: str | None


def bend_radius(p0: Sequence[float], p1: Sequence[float], p2: Sequence[float]) -> float:
    """Local bend radius at *p1*: circumradius of the triangle p0-p1-p2.

    Collinear (straight-through) waypoints give ``inf``.
    """
    a = sub(p1, p0)
    b = sub(p2, p1)
    area2 = norm(cross(a, b))
    if area2 < 1e-12:
        return math.inf
    return distance(p0, p1) * distance(p1, p2) * distance(p0, p2) / (2.0 * area2)


def polyline_length(points: Sequence[Sequence[float]]) -> float:
    return sum(distance(points[i], points[i + 1]) for i in range(len(points) - 1))


class CableRouter:
    """Checks declared cable runs against the assembly.

    Parameters
    ----------
    assembly:
        Assembly holding grommets, component locations and runs.
    cable_types:
        Cable type table (usually ``ParameterSet.cable_types``).
    frames:
        Resolved datum frames.
    """

    def __init__(
        self,
        assembly: AssemblyModel,
        cable_types: Mapping[str, CableType],
        frames: FrameTree,
    ) -> None:
        self.assembly = assembly
        self.cable_types = cable_types
        self.frames = frames

    def cable_type(self, run: CableRun) -> CableType:
        ct = self.cable_types.get(run.cable_type)
        if ct is None:
            raise ConfigError(f"Cable run {run.name!r} references unknown cable type {run.cable_type!r}")
        return ct

    def route(self, run: CableRun) -> list[RoutedWaypoint]:
        """Resolve every waypoint of *run* into world coordinates."""
        routed: list[RoutedWaypoint] = []
        for name in run.waypoints:
            grommet = self.assembly.grommets.get(name)
            if grommet is not None:
                routed.append(RoutedWaypoint(name, self.frames.locate(grommet.placement), grommet.part))
                continue
            component = self.assembly.components.get(name)
            if component is not None:
                routed.append(RoutedWaypoint(name, self.frames.locate(component.placement), component.part))
                continue
            raise ConfigError(
                f"Cable run {run.name!r}: waypoint {name!r} is neither a grommet nor a component"
            )
        return routed

    # ------------------------------------------------------------------
    # Checks; each raises CableFitFailure on violation
    # ------------------------------------------------------------------

    def assert_bend_radius(self, run: CableRun, routed: Sequence[RoutedWaypoint], index: int) -> float:
        """Check the interior waypoint at *index*; returns the measured radius."""
        minimum = self.cable_type(run).min_bend_radius_mm
        radius = bend_radius(routed[index - 1].point, routed[index].point, routed[index + 1].point)
        if radius < minimum:
            raise CableFitFailure(
                "cable.bend_radius",
                f"{run.name}#{index:03d}",
                f"bend radius {radius:.2f} mm at waypoint {routed[index].name!r} "
                f"below minimum {minimum:g} mm",
                measured=radius,
                threshold=minimum,
                details={"waypoint": routed[index].name},
            )
        return radius

    def assert_segment_clearance(
        self,
        run: CableRun,
        routed: Sequence[RoutedWaypoint],
        index: int,
        solids: Mapping[str, Solid],
        margin_mm: float = CABLE_CLEARANCE_MM,
    ) -> list[str]:
        """Check segment *index* → *index+1* against every realized solid; returns tested parts.

        Parts the segment's own endpoints are mounted on are skipped.
        """
        start, end = routed[index], routed[index + 1]
        exempt = {start.part, end.part} - {None}
        tested: list[str] = []
        intruded: list[str] = []
        for name in sorted(solids):
            if name in exempt:
                continue
            tested.append(name)
            if solids[name].touches_segment(start.point, end.point, margin_mm):
                intruded.append(name)
        if intruded:
            raise CableFitFailure(
                "cable.clearance",
                f"{run.name}#{index:03d}",
                f"segment {start.name!r} -> {end.name!r} passes within {margin_mm:g} mm of "
                f"{', '.join(intruded)}",
                measured=float(len(intruded)),
                threshold=0.0,
                details={"parts": intruded},
            )
        return tested

    def grommet_fill(self, grommet: str) -> float:
        """Fraction of the grommet bore occupied by the cables routed through it."""
        g = self.assembly.grommets[grommet]
        bore = math.pi * (g.inner_diameter_mm / 2.0) ** 2
        cables = 0.0
        for run_name in self.assembly.grommet_cables(grommet):
            run = self.assembly.cable_runs.get(run_name)
            if run is None:
                raise ConfigError(f"Grommet {grommet!r} lists unknown cable run {run_name!r}")
            d = self.cable_type(run).diameter_mm()
            cables += math.pi * (d / 2.0) ** 2
        return cables / bore

    def assert_grommet_fill(self, grommet: str, ceiling: float = GROMMET_FILL_MAX) -> float:
        fill = self.grommet_fill(grommet)
        if fill > ceiling:
            raise CableFitFailure(
                "cable.grommet_fill",
                grommet,
                f"fill ratio {fill:.1%} exceeds {ceiling:.0%} "
                f"({len(self.assembly.grommet_cables(grommet))} cable(s))",
                measured=fill,
                threshold=ceiling,
                details={"cables": self.assembly.grommet_cables(grommet)},
            )
        return fill

    def assert_length(self, run: CableRun, routed: Sequence[RoutedWaypoint]) -> float:
        """The declared length must cover the routed polyline."""
        needed = polyline_length([w.point for w in routed])
        if run.length_mm is not None and run.length_mm < needed:
            raise CableFitFailure(
                "cable.length",
                run.name,
                f"declared length {run.length_mm:g} mm shorter than routed path {needed:.1f} mm",
                measured=run.length_mm,
                threshold=needed,
            )
        return needed
