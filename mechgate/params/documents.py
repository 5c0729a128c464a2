"""Typed records for parameter documents and document loading.

A parameter document is a mapping whose top-level keys are a subset of
:data:`mechgate.config.RECOGNIZED_SECTIONS`.  Unknown keys, at any level,
are rejected at load time.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from mechgate.config import RECOGNIZED_SECTIONS, SCALAR_SECTIONS
from mechgate.errors import ConfigError
from mechgate.interfaces.specs import INTERFACE_ADAPTER

logger = logging.getLogger(__name__)


class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ParameterEntry(_Record):
    """A single scalar parameter: numeric with unit and range, or an enum."""

    value: float | str
    unit: str = "1"
    min: float | None = None
    max: float | None = None
    choices: tuple[str, ...] | None = None
    material: str | None = None
    """Material whose ``min_thickness_mm`` bounds this (length) value from below."""

    description: str = ""

    @model_validator(mode="after")
    def _check_kind(self) -> ParameterEntry:
        if isinstance(self.value, str) and self.choices is None:
            raise ValueError("string values must declare 'choices'")
        return self


class Material(_Record):
    """Material properties referenced (not owned) by parts."""

    density_kg_m3: float = Field(gt=0)
    yield_strength_mpa: float = Field(gt=0)
    elastic_modulus_gpa: float = Field(gt=0)
    thermal_conductivity_w_mk: float = Field(gt=0)
    max_service_temp_c: float
    min_thickness_mm: float | None = None
    description: str = ""


class CableType(_Record):
    """Cable type; outer diameter is estimated from the AWG gauge unless given."""

    gauge_awg: int
    insulation_mm: float = Field(default=0.0, ge=0)
    min_bend_radius_mm: float = Field(gt=0)
    max_current_a: float = Field(gt=0)
    outer_diameter_mm: float | None = None
    description: str = ""

    def diameter_mm(self) -> float:
        if self.outer_diameter_mm is not None:
            return self.outer_diameter_mm
        conductor = 0.127 * 92.0 ** ((36 - self.gauge_awg) / 39.0)
        return conductor + 2.0 * self.insulation_mm


class ActuatorSpec(_Record):
    """Joint actuator ratings used by the thermal estimator."""

    rated_peak_torque_nm: float = Field(gt=0)
    efficiency_curve: tuple[tuple[float, float], ...]
    """``(torque_percent_of_peak, efficiency)`` points, efficiency in (0, 1]."""

    thermal_resistance_k_per_w: float = Field(gt=0)
    max_winding_temp_c: float
    operating_speed_rad_s: float = Field(gt=0)
    description: str = ""

    @model_validator(mode="after")
    def _check_curve(self) -> ActuatorSpec:
        if not self.efficiency_curve:
            raise ValueError("efficiency_curve needs at least one point")
        pcts = [p for p, _ in self.efficiency_curve]
        if pcts != sorted(pcts) or len(set(pcts)) != len(pcts):
            raise ValueError("efficiency_curve must be strictly increasing in torque percent")
        if any(not 0.0 < eff <= 1.0 for _, eff in self.efficiency_curve):
            raise ValueError("efficiency values must lie in (0, 1]")
        return self


class ParameterDocument(BaseModel):
    """One layer of parameter sources, validated section by section."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    dimensions: dict[str, Any] = Field(default_factory=dict)
    tolerances: dict[str, Any] = Field(default_factory=dict)
    materials: dict[str, Material] = Field(default_factory=dict)
    interfaces: dict[str, Any] = Field(default_factory=dict)
    cable_types: dict[str, CableType] = Field(default_factory=dict, alias="cable-types")
    actuators: dict[str, ActuatorSpec] = Field(default_factory=dict)
    design_rules: dict[str, Any] = Field(default_factory=dict, alias="design-rules")

    name: str = Field(default="<memory>", exclude=True)

    def scalars(self) -> dict[str, ParameterEntry]:
        """Flatten the scalar sections into ``section.ns.name`` keys."""
        out: dict[str, ParameterEntry] = {}
        for section in SCALAR_SECTIONS:
            tree = getattr(self, section.replace("-", "_"))
            _flatten(section, tree, out)
        return out

    def interface_specs(self) -> dict[str, Any]:
        specs: dict[str, Any] = {}
        for name, raw in self.interfaces.items():
            try:
                specs[name] = INTERFACE_ADAPTER.validate_python(raw)
            except PydanticValidationError as exc:
                raise ConfigError(f"{self.name}: interface '{name}' is malformed: {exc}") from exc
        return specs


def _flatten(prefix: str, tree: Any, out: dict[str, ParameterEntry]) -> None:
    if not isinstance(tree, Mapping):
        raise ConfigError(f"'{prefix}' must be a record with 'value' and 'unit'")
    if "value" in tree:
        try:
            out[prefix] = ParameterEntry.model_validate(dict(tree))
        except PydanticValidationError as exc:
            raise ConfigError(f"Parameter '{prefix}' is malformed: {exc}") from exc
        return
    for name, sub in tree.items():
        if "." in str(name):
            raise ConfigError(f"Namespace key '{prefix}.{name}' must not contain '.'")
        _flatten(f"{prefix}.{name}", sub, out)


def parse_document(data: Mapping[str, Any], name: str = "<memory>") -> ParameterDocument:
    """Validate a raw mapping as a parameter document."""
    if not isinstance(data, Mapping):
        raise ConfigError(f"{name}: parameter document must be a mapping")
    unknown = sorted(set(data) - set(RECOGNIZED_SECTIONS))
    if unknown:
        raise ConfigError(f"{name}: unrecognized section(s): {', '.join(unknown)}")
    try:
        doc = ParameterDocument.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ConfigError(f"{name}: {exc}") from exc
    doc = doc.model_copy(update={"name": name})
    # Fail early on malformed nested records
    doc.scalars()
    doc.interface_specs()
    return doc


def read_raw(path: str | Path) -> dict[str, Any]:
    """Read a YAML or JSON document from *path*."""
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Parameter document not found: {p}")
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"{p}: cannot parse document: {exc}") from exc
    logger.debug("Read parameter document %s", p)
    return data


def load_document(path: str | Path) -> ParameterDocument:
    """Load and validate a parameter document from disk."""
    return parse_document(read_raw(path), name=str(path))
