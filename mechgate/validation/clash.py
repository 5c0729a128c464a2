"""ClashDetector — pairwise interference between realized solids.

Bounding boxes are compared first; the kernel's exact intersection is only
requested for pairs whose boxes overlap.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from mechgate.config import COLLISION_ALLOWANCE_MM3
from mechgate.geometry.kernel import Solid

logger = logging.getLogger(__name__)


class ClashResult:
    """Intersection volume between two solids."""

    def __init__(self, element_a: str, element_b: str, overlap_volume: float) -> None:
        # Subjects are order-independent
        self.element_a, self.element_b = sorted((element_a, element_b))
        self.overlap_volume = overlap_volume

    @property
    def subject(self) -> str:
        return f"{self.element_a}|{self.element_b}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "element_a": self.element_a,
            "element_b": self.element_b,
            "overlap_volume": self.overlap_volume,
        }


class ClashDetector:
    """Detect interference between solids.

    Parameters
    ----------
    allowance_mm3:
        Intersection volumes strictly below this are not clashes.
    """

    def __init__(self, allowance_mm3: float = COLLISION_ALLOWANCE_MM3) -> None:
        self.allowance_mm3 = allowance_mm3

    @staticmethod
    def intersection_volume(a: Solid, b: Solid) -> float:
        if a.bounding_box().overlap_volume(b.bounding_box()) <= 0:
            return 0.0
        return max(0.0, a.intersect(b).volume())

    def is_clash(self, volume: float) -> bool:
        return volume >= self.allowance_mm3

    def detect(
        self,
        solids: Mapping[str, Solid],
        skip: Callable[[str, str], bool] | None = None,
    ) -> list[ClashResult]:
        """Intersection volume for every unordered pair not excluded by *skip*.

        Pairs are visited in name order, so results are deterministic.
        """
        names = sorted(solids)
        results: list[ClashResult] = []
        for i in range(len(names)):
            for j in range(i + 1, len(names)):
                a, b = names[i], names[j]
                if skip is not None and skip(a, b):
                    continue
                volume = self.intersection_volume(solids[a], solids[b])
                results.append(ClashResult(a, b, volume))
        clashes = sum(1 for r in results if self.is_clash(r.overlap_volume))
        logger.debug("Clash detection: %d pair(s), %d clash(es)", len(results), clashes)
        return results
