"""Hole matching for bolt-pattern and mating-interface checks.

Holes are compared in the XY plane of an interface binding frame.  Matching
is greedy nearest-neighbour and one-to-one: all candidate pairs within the
capture radius are sorted by distance and accepted while both ends are free.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from mechgate.geometry.kernel import HoleFeature, Solid
from mechgate.geometry.transforms import Transform, Vec3
from mechgate.interfaces.specs import BoltPattern

Point2 = tuple[float, float]


@dataclass(frozen=True)
class HolePair:
    a: int
    b: int
    distance: float


def greedy_match(
    a: Sequence[Point2], b: Sequence[Point2], capture_radius: float
) -> tuple[list[HolePair], list[int], list[int]]:
    """Match points of *a* to points of *b*.

    Returns ``(pairs, unmatched_a, unmatched_b)``; pairs are ordered by their
    index in *a*.  Ties are broken by index so the result is deterministic.
    """
    candidates = sorted(
        (math.dist(pa, pb), i, j)
        for i, pa in enumerate(a)
        for j, pb in enumerate(b)
        if math.dist(pa, pb) <= capture_radius
    )
    used_a: set[int] = set()
    used_b: set[int] = set()
    pairs: list[HolePair] = []
    for d, i, j in candidates:
        if i in used_a or j in used_b:
            continue
        used_a.add(i)
        used_b.add(j)
        pairs.append(HolePair(i, j, d))
    pairs.sort(key=lambda p: p.a)
    return (
        pairs,
        [i for i in range(len(a)) if i not in used_a],
        [j for j in range(len(b)) if j not in used_b],
    )


@dataclass
class PatternMatch:
    """Realized holes of one solid assigned to the expected positions of a pattern."""

    expected: list[Point2]
    holes: list[HoleFeature | None] = field(default_factory=list)
    deviations: list[float | None] = field(default_factory=list)
    extras: list[HoleFeature] = field(default_factory=list)

    @property
    def realized_count(self) -> int:
        return sum(1 for h in self.holes if h is not None) + len(self.extras)

    def matched_centers(self) -> list[tuple[int, Vec3]]:
        return [(i, h.center) for i, h in enumerate(self.holes) if h is not None]

    def max_deviation(self) -> float:
        found = [d for d in self.deviations if d is not None]
        return max(found) if found else 0.0


def local_xy(frame: Transform, point: Sequence[float]) -> Point2:
    """Coordinates of a world *point* in the XY plane of *frame*."""
    x, y, _z = frame.inverse().apply(point)
    return (x, y)


def match_pattern(
    solid: Solid, frame: Transform, pattern: BoltPattern, diameter_tolerance: float
) -> PatternMatch:
    """Assign *solid*'s holes to *pattern* placed at world *frame*.

    Only holes whose diameter equals the pattern's within tolerance and whose
    centre lies within one hole diameter of an expected position are
    considered part of the pattern.
    """
    expected = pattern.hole_positions()
    capture = pattern.hole_diameter
    inverse = frame.inverse()

    candidates: list[HoleFeature] = []
    points: list[Point2] = []
    for hole in solid.holes():
        if abs(hole.diameter - pattern.hole_diameter) > diameter_tolerance:
            continue
        x, y, _z = inverse.apply(hole.center)
        if any(math.dist((x, y), e) <= capture for e in expected):
            candidates.append(hole)
            points.append((x, y))

    pairs, _, unmatched = greedy_match(expected, points, capture)
    result = PatternMatch(expected=expected)
    result.holes = [None] * len(expected)
    result.deviations = [None] * len(expected)
    for pair in pairs:
        result.holes[pair.a] = candidates[pair.b]
        result.deviations[pair.a] = pair.distance
    result.extras = [candidates[j] for j in unmatched]
    return result
