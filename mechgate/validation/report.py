"""ValidationReport — ordered verdicts plus the overall gate decision."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from mechgate.validation.verdict import Verdict


class ValidationReport:
    """Complete validation report for an assembly.

    Verdicts are ordered by ``(check, subject)``, never by completion order,
    so two runs over unchanged inputs serialize identically.
    """

    def __init__(
        self,
        assembly: str = "",
        verdicts: Iterable[Verdict] | None = None,
        parameter_fingerprint: str = "",
        kernel: str = "",
    ) -> None:
        self.assembly = assembly
        self.verdicts: list[Verdict] = sorted(verdicts or [], key=Verdict.sort_key)
        self.parameter_fingerprint = parameter_fingerprint
        self.kernel = kernel

    @property
    def passed(self) -> bool:
        """Logical AND of every verdict."""
        return all(v.passed for v in self.verdicts)

    @property
    def status(self) -> str:
        return "passed" if self.passed else "failed"

    def failures(self) -> list[Verdict]:
        return [v for v in self.verdicts if not v.passed]

    def failed_checks(self) -> list[str]:
        """Identifiers of failing verdicts, in report order."""
        return [v.check_id for v in self.failures()]

    def by_check(self, check: str) -> list[Verdict]:
        return [v for v in self.verdicts if v.check == check]

    def summary_line(self) -> str:
        """First output line for a driving CLI."""
        if self.passed:
            return f"PASS: {len(self.verdicts)} checks"
        return "FAIL: " + ", ".join(self.failed_checks())

    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationReport):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"ValidationReport({self.assembly!r}, {self.status}, {len(self.verdicts)} verdicts)"

    def to_markdown(self) -> str:
        """Generate VALIDATION.md content."""
        lines: list[str] = []

        lines.append(f"# Validation Report — {self.assembly or 'Unknown'}")
        lines.append("")
        lines.append(f"**Status:** {self.status.upper()}")
        lines.append(f"**Kernel:** `{self.kernel}`")
        lines.append(f"**Parameters:** `{self.parameter_fingerprint[:16]}`")
        lines.append("")

        fails = len(self.failures())
        lines.append(f"**Summary:** {len(self.verdicts) - fails} passed, {fails} failed")
        lines.append("")

        if self.failures():
            lines.append("## Failures")
            lines.append("")
            lines.append("| Check | Subject | Measured | Threshold | Diagnostic |")
            lines.append("|-------|---------|----------|-----------|------------|")
            for v in self.failures():
                diag = v.diagnostic.replace("|", "\\|")
                lines.append(
                    f"| {v.check} | {v.subject} | {_fmt(v.measured)} | {_fmt(v.threshold)} | {diag} |"
                )
            lines.append("")

        lines.append("## All Checks")
        lines.append("")
        lines.append("| Status | Check | Subject |")
        lines.append("|--------|-------|---------|")
        for v in self.verdicts:
            lines.append(f"| {'PASS' if v.passed else 'FAIL'} | {v.check} | {v.subject} |")
        lines.append("")

        return "\n".join(lines)

    def to_json(self) -> str:
        """Return structured JSON report for the CI gate."""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def to_dict(self) -> dict[str, Any]:
        return {
            "assembly": self.assembly,
            "status": self.status,
            "passed": self.passed,
            "kernel": self.kernel,
            "parameter_fingerprint": self.parameter_fingerprint,
            "verdicts": [v.to_dict() for v in self.verdicts],
        }


def _fmt(value: float | None) -> str:
    if value is None:
        return "-"
    return f"{value:.4g}"
