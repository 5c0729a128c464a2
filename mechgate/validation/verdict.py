"""Verdict — outcome of a single invariant check on a single subject."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Verdict(BaseModel):
    """``{check identifier, pass/fail, measured value, threshold, diagnostic}``.

    ``check`` names the check family (``part.volume``); ``subject`` names what
    it was applied to (``base_plate``, ``stand/fl/knee``).  ``failure`` carries
    the error category for failing verdicts (``InvariantFailure``,
    ``ThermalOverrun``, ``GeometryError``, ...).
    """

    model_config = ConfigDict(frozen=True)

    check: str
    subject: str
    passed: bool
    measured: float | None = None
    threshold: float | None = None
    diagnostic: str = ""
    failure: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def check_id(self) -> str:
        return f"{self.check}:{self.subject}"

    def sort_key(self) -> tuple[str, str]:
        return (self.check, self.subject)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def passed(check: str, subject: str, diagnostic: str = "", **kwargs: Any) -> Verdict:
    return Verdict(check=check, subject=subject, passed=True, diagnostic=diagnostic, **kwargs)


def failed(
    check: str,
    subject: str,
    diagnostic: str,
    failure: str = "InvariantFailure",
    **kwargs: Any,
) -> Verdict:
    return Verdict(
        check=check, subject=subject, passed=False, diagnostic=diagnostic, failure=failure, **kwargs
    )
