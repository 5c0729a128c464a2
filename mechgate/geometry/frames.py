"""FrameTree — resolves named datum frames into world transforms."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from mechgate.config import WORLD_FRAME
from mechgate.errors import ConfigError
from mechgate.geometry.transforms import Placement, Transform, Vec3
from mechgate.interfaces.specs import DatumFrame

logger = logging.getLogger(__name__)


class FrameTree:
    """Lookup of ``frame name -> world transform``.

    Built from every :class:`DatumFrame` in an interface table.  Resolution
    results are memoised; the tree itself is read-only after construction.
    """

    def __init__(self, frames: Mapping[str, DatumFrame]) -> None:
        self._frames = dict(frames)
        self._resolved: dict[str, Transform] = {WORLD_FRAME: Transform.identity()}

    @classmethod
    def from_interfaces(cls, interfaces: Mapping[str, Any]) -> FrameTree:
        return cls({n: s for n, s in interfaces.items() if isinstance(s, DatumFrame)})

    def __contains__(self, name: object) -> bool:
        return name == WORLD_FRAME or name in self._frames

    def resolve_all(self) -> None:
        """Resolve every frame up front so later lookups are read-only."""
        for name in sorted(self._frames):
            self.world(name)

    def world(self, name: str) -> Transform:
        """Return the transform mapping frame *name* into world coordinates."""
        if name in self._resolved:
            return self._resolved[name]

        chain: list[str] = []
        current = name
        while current not in self._resolved:
            if current in chain:
                raise ConfigError(f"Datum frame cycle: {' -> '.join(chain + [current])}")
            spec = self._frames.get(current)
            if spec is None:
                raise ConfigError(f"Unknown datum frame: {current!r} (referenced via {name!r})")
            chain.append(current)
            current = spec.parent

        # Resolve from the known ancestor downwards
        for frame in reversed(chain):
            spec = self._frames[frame]
            parent = self._resolved[spec.parent]
            self._resolved[frame] = parent @ Transform.from_pose(spec.origin, spec.rpy_deg)
        return self._resolved[name]

    def placement_transform(self, placement: Placement) -> Transform:
        """World transform of a placement given relative to a datum frame."""
        return self.world(placement.frame) @ placement.local_transform()

    def locate(self, placement: Placement) -> Vec3:
        """World coordinates of the origin of *placement*."""
        return self.placement_transform(placement).translation
