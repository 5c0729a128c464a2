"""Explicit waivers for gating checks."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MassOverride(BaseModel):
    """Waiver for a total mass outside the target band.

    The failing measurement is still reported; the verdict is marked waived
    and the override is logged and recorded in the audit log.
    """

    model_config = ConfigDict(frozen=True)

    reason: str = Field(min_length=1)
    user: str = Field(min_length=1)
