"""Exception taxonomy for the build/validation pipeline.

``ConfigError`` halts a run before any geometry is realized.
``GeometryError`` is isolated to the part that caused it.
``InterfaceMismatch`` only affects the checks of the mating pair involved.
``InvariantFailure`` and its subclasses are always recovered into the report.
"""

from __future__ import annotations

from typing import Any


class MechgateError(Exception):
    """Base class for all mechgate errors."""


class ConfigError(MechgateError):
    """Malformed or missing parameter, interface or material entry."""


class UnknownParameter(ConfigError, KeyError):
    """A parameter key is not present in any source document."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown parameter: {key}")
        self.key = key

    def __str__(self) -> str:
        return self.args[0]


class ValidationError(ConfigError):
    """Resolved parameters violate a declared range, choice or unit constraint."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        super().__init__(
            f"{len(self.violations)} parameter violation(s): " + "; ".join(self.violations)
        )


class UnknownInterface(ConfigError, KeyError):
    """An interface name is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown interface: {name}")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class DuplicateInterface(ConfigError):
    """An interface name is already bound to a different definition."""


class GeometryError(MechgateError):
    """The geometric kernel cannot realize or solve a shape."""

    def __init__(self, cause: str, part: str = "") -> None:
        super().__init__(f"{part}: {cause}" if part else cause)
        self.cause = cause
        self.part = part


class InterfaceMismatch(MechgateError):
    """Two declarations of the same named interface are structurally incompatible."""

    def __init__(self, interface: str, detail: str, parts: tuple[str, ...] = ()) -> None:
        super().__init__(f"Interface '{interface}' mismatch: {detail}")
        self.interface = interface
        self.detail = detail
        self.parts = parts


class InvariantFailure(MechgateError):
    """A single check's threshold was violated.

    Carries the full verdict payload so it can be recorded in a report.
    """

    def __init__(
        self,
        check: str,
        subject: str,
        diagnostic: str,
        measured: float | None = None,
        threshold: float | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"{check}:{subject}: {diagnostic}")
        self.check = check
        self.subject = subject
        self.diagnostic = diagnostic
        self.measured = measured
        self.threshold = threshold
        self.details = details or {}

    def to_verdict(self) -> Any:
        """Convert into a failing :class:`~mechgate.validation.verdict.Verdict`."""
        from mechgate.validation.verdict import Verdict

        return Verdict(
            check=self.check,
            subject=self.subject,
            passed=False,
            measured=self.measured,
            threshold=self.threshold,
            diagnostic=self.diagnostic,
            failure=type(self).__name__,
            details=dict(self.details),
        )


class ThermalOverrun(InvariantFailure):
    """Derived winding temperature or torque demand exceeds the actuator limit."""


class CableFitFailure(InvariantFailure):
    """Cable bend radius, clearance, grommet fill or length violation."""


class StabilityFailure(InvariantFailure):
    """Center of mass is not inside the support polygon with the required margin."""
