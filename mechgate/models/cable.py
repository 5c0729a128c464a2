"""Cable routing records: grommets, component locations and cable runs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from mechgate.geometry.transforms import Placement


class Grommet(BaseModel):
    """A bore through a panel that cables pass through."""

    model_config = ConfigDict(frozen=True)

    name: str
    placement: Placement
    inner_diameter_mm: float = Field(gt=0)
    part: str | None = None
    """Part the grommet is fitted into; excluded from adjacent segment clearance."""

    cables: tuple[str, ...] = ()


class ComponentLocation(BaseModel):
    """A named cable end point (connector, board, motor)."""

    model_config = ConfigDict(frozen=True)

    name: str
    placement: Placement
    part: str | None = None


class CableRun(BaseModel):
    """Ordered waypoints of one cable; waypoints name grommets or components."""

    model_config = ConfigDict(frozen=True)

    name: str
    cable_type: str
    waypoints: tuple[str, ...]
    length_mm: float | None = None
    """Estimated (cut) length; compared with the routed polyline when given."""
