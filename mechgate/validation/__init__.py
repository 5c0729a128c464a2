"""Invariant engine — checks every realized assembly and gates the build."""

from mechgate.validation.validator import Validator
from mechgate.validation.clash import ClashDetector
from mechgate.validation.context import ValidationContext
from mechgate.validation.overrides import MassOverride
from mechgate.validation.report import ValidationReport
from mechgate.validation.thresholds import ValidationThresholds
from mechgate.validation.verdict import Verdict

__all__ = [
    "Validator",
    "ClashDetector",
    "MassOverride",
    "ValidationContext",
    "ValidationReport",
    "ValidationThresholds",
    "Verdict",
]
