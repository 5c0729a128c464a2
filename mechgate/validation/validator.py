"""Validator — main entry point for the invariant gate.

Usage::

    from mechgate.geometry import BoxKernel
    from mechgate.validation import Validator

    report = Validator(BoxKernel(), workers=4).validate(assembly, params)
    print(report.summary_line())
    raise SystemExit(report.exit_code())
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from mechgate import settings as settings_mod
from mechgate.audit import OverrideLog
from mechgate.errors import ConfigError, InvariantFailure
from mechgate.geometry.kernel import GeometryKernel
from mechgate.interfaces.registry import InterfaceRegistry
from mechgate.models.assembly import AssemblyModel
from mechgate.validation.context import ValidationContext
from mechgate.validation.overrides import MassOverride
from mechgate.validation.report import ValidationReport
from mechgate.validation.rules.assembly import AssemblyRules
from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.rules.cable import CableRules
from mechgate.validation.rules.interface import InterfaceRules
from mechgate.validation.rules.part import PartRules
from mechgate.validation.rules.physical import PhysicalRules
from mechgate.validation.thresholds import ValidationThresholds
from mechgate.validation.verdict import Verdict, failed

logger = logging.getLogger(__name__)


class Validator:
    """Central invariant engine with pluggable check registry.

    Loads the default checks on init.  Additional checks can be registered
    via :meth:`add_rule`.

    Parameters
    ----------
    kernel:
        Geometric kernel used to realize parts.
    registry:
        Interface registry; built from the ParameterSet when omitted.
    workers:
        Number of threads evaluating checks.  ``1`` runs sequentially.
    mass_override:
        Waiver for a failing total-mass band.
    audit_log:
        Where waivers are recorded.
    export_dir:
        Keep STEP and mesh exports here instead of a temporary directory.
    """

    def __init__(
        self,
        kernel: GeometryKernel,
        registry: InterfaceRegistry | None = None,
        *,
        workers: int | None = None,
        mass_override: MassOverride | None = None,
        audit_log: OverrideLog | None = None,
        export_dir: str | Path | None = None,
    ) -> None:
        if workers is not None and workers < 1:
            raise ConfigError(f"workers must be at least 1, got {workers}")
        self.kernel = kernel
        self.registry = registry
        self.workers = workers or 1
        self.mass_override = mass_override
        self.audit_log = audit_log
        self.export_dir = Path(export_dir) if export_dir else None
        self.rules: list[InvariantCheck] = []
        self._load_default_rules()

    @classmethod
    def from_settings(
        cls,
        kernel: GeometryKernel,
        settings: dict[str, str],
        **kwargs: Any,
    ) -> Validator:
        """Build a validator configured by ``SettingsManager.load_settings`` output."""
        kwargs.setdefault("workers", settings_mod.workers(settings))
        if "audit_log" not in kwargs and settings.get("MECHGATE_AUDIT_DB"):
            kwargs["audit_log"] = OverrideLog(settings["MECHGATE_AUDIT_DB"])
        if "export_dir" not in kwargs and settings.get("MECHGATE_EXPORT_DIR"):
            kwargs["export_dir"] = settings["MECHGATE_EXPORT_DIR"]
        return cls(kernel, **kwargs)

    def _load_default_rules(self) -> None:
        """Register all built-in checks."""
        self.rules.extend(PartRules.all_rules())
        self.rules.extend(InterfaceRules.all_rules())
        self.rules.extend(AssemblyRules.all_rules())
        self.rules.extend(PhysicalRules.all_rules())
        self.rules.extend(CableRules.all_rules())

    def add_rule(self, rule: InvariantCheck) -> None:
        """Register an additional check."""
        self.rules.append(rule)

    def validate(self, assembly: AssemblyModel, params: Any) -> ValidationReport:
        """Evaluate every registered check against *assembly* built from *params*.

        Raises
        ------
        ConfigError
            When any reference cannot be resolved; no report is produced.
        """
        thresholds = ValidationThresholds.from_parameters(params)
        registry = self.registry or InterfaceRegistry.from_parameters(params)
        ctx = ValidationContext.prepare(
            assembly,
            params,
            registry,
            self.kernel,
            thresholds,
            mass_override=self.mass_override,
            export_dir=self.export_dir,
        )

        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                results = list(executor.map(lambda rule: self._run_rule(rule, ctx), self.rules))
        else:
            results = [self._run_rule(rule, ctx) for rule in self.rules]

        verdicts = [v for batch in results for v in batch]
        report = ValidationReport(
            assembly=assembly.name,
            verdicts=verdicts,
            parameter_fingerprint=params.fingerprint,
            kernel=self.kernel.name,
        )
        self._record_waivers(report)

        logger.info(
            "Validated %s: %d check(s), %d failed -> %s",
            assembly.name, len(report.verdicts), len(report.failures()), report.status,
        )
        return report

    @staticmethod
    def _run_rule(rule: InvariantCheck, ctx: ValidationContext) -> list[Verdict]:
        try:
            verdicts = rule.evaluate(ctx)
        except ConfigError:
            raise
        except InvariantFailure as exc:
            return [exc.to_verdict()]
        except Exception as exc:
            logger.exception("Check %s raised unexpectedly", rule.name)
            return [failed(rule.name, "<error>", f"{type(exc).__name__}: {exc}", failure=type(exc).__name__)]
        logger.debug("Check %s produced %d verdict(s)", rule.name, len(verdicts))
        return verdicts

    def _record_waivers(self, report: ValidationReport) -> None:
        if self.audit_log is None:
            return
        for verdict in report.verdicts:
            if not verdict.details.get("waived"):
                continue
            self.audit_log.record(
                user=verdict.details["override_user"],
                check_id=verdict.check_id,
                reason=verdict.details["override_reason"],
                assembly=report.assembly,
                parameter_fingerprint=report.parameter_fingerprint,
                measured=verdict.measured,
            )
