"""mechgate — parameter-driven chassis build pipeline and invariant gate for legged robots."""

__version__ = "0.1.0"

from mechgate.audit import OverrideLog
from mechgate.builder import AssemblyBuilder, build_assembly, load_assembly, parse_assembly
from mechgate.errors import (
    CableFitFailure,
    ConfigError,
    GeometryError,
    InterfaceMismatch,
    InvariantFailure,
    MechgateError,
    StabilityFailure,
    ThermalOverrun,
)
from mechgate.geometry import BoxKernel, FrameTree, GeometryKernel, Placement, Transform
from mechgate.interfaces import InterfaceRegistry
from mechgate.models import AssemblyModel, PartModel
from mechgate.params import ParameterSet, ParameterStore, resolve_parameters
from mechgate.settings import SettingsManager, apply_log_level
from mechgate.validation import MassOverride, ValidationReport, Validator, Verdict

__all__ = [
    "AssemblyBuilder",
    "AssemblyModel",
    "BoxKernel",
    "CableFitFailure",
    "ConfigError",
    "FrameTree",
    "GeometryError",
    "GeometryKernel",
    "InterfaceMismatch",
    "InterfaceRegistry",
    "InvariantFailure",
    "MassOverride",
    "MechgateError",
    "OverrideLog",
    "ParameterSet",
    "ParameterStore",
    "PartModel",
    "Placement",
    "SettingsManager",
    "StabilityFailure",
    "ThermalOverrun",
    "Transform",
    "ValidationReport",
    "Validator",
    "Verdict",
    "apply_log_level",
    "build_assembly",
    "load_assembly",
    "parse_assembly",
    "resolve_parameters",
]
