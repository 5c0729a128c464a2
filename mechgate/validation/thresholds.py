"""Thresholds derived from the ``design-rules`` section of a ParameterSet."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from mechgate import config
from mechgate.errors import ConfigError
from mechgate.models.part import Range


@dataclass(frozen=True)
class ValidationThresholds:
    """Every numeric threshold the check battery uses, for one run."""

    mass_band: Range
    alignment_tolerance_mm: float = config.ALIGNMENT_TOLERANCE_MM
    collision_allowance_mm3: float = config.COLLISION_ALLOWANCE_MM3
    stability_margin_mm: float = config.STABILITY_MARGIN_MM
    dynamic_torque_multiplier: float = config.DYNAMIC_TORQUE_MULTIPLIER
    ambient_temperature_c: float = config.DEFAULT_AMBIENT_TEMPERATURE_C
    cable_clearance_mm: float = config.CABLE_CLEARANCE_MM
    grommet_fill_max: float = config.GROMMET_FILL_MAX
    step_min_bytes: float = config.STEP_MIN_BYTES
    mesh_max_triangles: float = config.MESH_MAX_TRIANGLES

    @classmethod
    def from_parameters(cls, params) -> ValidationThresholds:
        """Read ``design-rules.*`` values, falling back to module defaults.

        The total-mass band (``design-rules.mass_min`` / ``mass_max``) has no
        default: it gates every build and must be supplied.
        """
        if "design-rules.mass_min" not in params or "design-rules.mass_max" not in params:
            raise ConfigError("design-rules.mass_min and design-rules.mass_max are required")

        def rule(name: str, default: float) -> float:
            return params.number(f"design-rules.{name}", default)

        try:
            band = Range(min=rule("mass_min", 0.0), max=rule("mass_max", 0.0))
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid design-rules mass band: {exc.errors()[0]['msg']}") from exc

        return cls(
            mass_band=band,
            alignment_tolerance_mm=rule("alignment_tolerance", config.ALIGNMENT_TOLERANCE_MM),
            collision_allowance_mm3=rule("collision_allowance", config.COLLISION_ALLOWANCE_MM3),
            stability_margin_mm=rule("stability_margin", config.STABILITY_MARGIN_MM),
            dynamic_torque_multiplier=rule(
                "dynamic_torque_multiplier", config.DYNAMIC_TORQUE_MULTIPLIER
            ),
            ambient_temperature_c=rule("ambient_temperature", config.DEFAULT_AMBIENT_TEMPERATURE_C),
            cable_clearance_mm=rule("cable_clearance", config.CABLE_CLEARANCE_MM),
            grommet_fill_max=rule("grommet_fill_max", config.GROMMET_FILL_MAX),
            step_min_bytes=rule("step_min_bytes", config.STEP_MIN_BYTES),
            mesh_max_triangles=rule("mesh_max_triangles", config.MESH_MAX_TRIANGLES),
        )
