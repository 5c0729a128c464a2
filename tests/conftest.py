"""Shared fixtures: a small quadruped chassis that passes every check.

Layout (world frame, mm)::

    base_plate   400 x 300 x 10 plate, z 0..10, centred on the origin
    hip_bracket  80 x 80 x 10 block on top of the plate at (150, 100)
    battery_box  100 x 80 x 40 block on top of the plate at (-100, 0)

The plate and bracket mate through a rectangular M5 pattern.  Four legs
stand at (+-270.7, +-100); one signal cable runs from the controller on
the battery box through a grommet to the hip motor.
"""

from __future__ import annotations

import copy
from typing import Any

import pytest

from mechgate.builder import AssemblyBuilder
from mechgate.geometry.boxkernel import BoxKernel
from mechgate.interfaces.registry import InterfaceRegistry
from mechgate.params.store import ParameterStore


def _mm(value: float, **extra: Any) -> dict[str, Any]:
    return {"value": value, "unit": "mm", **extra}


def _deg(value: float) -> dict[str, Any]:
    return {"value": value, "unit": "deg"}


PARAMS: dict[str, Any] = {
    "dimensions": {
        "zero": _mm(0),
        "base": {
            "length": _mm(400, min=100, max=800),
            "width": _mm(300),
            "thickness": _mm(10, material="al6061"),
            "center_z": _mm(5),
        },
        "bracket": {
            "size": _mm(80),
            "thickness": _mm(10),
            "center_z": _mm(5),
            "x": _mm(150),
            "y": _mm(100),
        },
        "battery": {
            "length": _mm(100),
            "width": _mm(80),
            "height": _mm(40),
            "center_z": _mm(20),
            "x": _mm(-100),
        },
        "hip": {"x": _mm(150), "y": _mm(100)},
        "leg": {
            "hip_x": _mm(150),
            "hip_y": _mm(100),
            "neg_hip_x": _mm(-150),
            "neg_hip_y": _mm(-100),
            "coxa": _mm(50),
            "femur": _mm(100),
            "tibia": _mm(100),
            "yaw_front": _deg(0),
            "yaw_rear": _deg(180),
        },
        "stance": {"hip_pitch": _deg(45), "knee": _deg(45)},
        "cable": {
            "controller_x": _mm(-100),
            "controller_z": _mm(40),
            "grommet_y": _mm(50),
            "grommet_z": _mm(50),
            "grommet_bore": _mm(8),
            "motor_x": _mm(150),
            "motor_y": _mm(100),
            "motor_z": _mm(60),
            "main_length": _mm(500),
        },
    },
    "tolerances": {"bbox": _mm(1)},
    "materials": {
        "al6061": {
            "density_kg_m3": 2700,
            "yield_strength_mpa": 276,
            "elastic_modulus_gpa": 68.9,
            "thermal_conductivity_w_mk": 167,
            "max_service_temp_c": 150,
            "min_thickness_mm": 2,
        },
        "abs": {
            "density_kg_m3": 1050,
            "yield_strength_mpa": 40,
            "elastic_modulus_gpa": 2.3,
            "thermal_conductivity_w_mk": 0.17,
            "max_service_temp_c": 80,
        },
    },
    "interfaces": {
        "body": {"kind": "datum_frame", "parent": "world", "origin": [0, 0, 0]},
        "hip_mount": {
            "kind": "bolt_pattern",
            "fastener": "M5",
            "pattern": "rectangular",
            "spacing": [60, 60],
            "hole_diameter": 5.5,
        },
    },
    "cable-types": {
        "signal": {
            "gauge_awg": 24,
            "insulation_mm": 0.3,
            "min_bend_radius_mm": 20,
            "max_current_a": 1,
        },
    },
    "actuators": {
        "servo": {
            "rated_peak_torque_nm": 10,
            "efficiency_curve": [[0, 0.5], [50, 0.8], [100, 0.7]],
            "thermal_resistance_k_per_w": 2.0,
            "max_winding_temp_c": 120,
            "operating_speed_rad_s": 5,
        },
    },
    "design-rules": {
        "mass_min": {"value": 2.0, "unit": "kg"},
        "mass_max": {"value": 5.0, "unit": "kg"},
    },
}


def _leg(x: str, y: str, yaw: str) -> dict[str, Any]:
    return {
        "hip": {"frame": "body", "offset": [x, y, "dimensions.zero"]},
        "mount_yaw": yaw,
        "coxa": "dimensions.leg.coxa",
        "femur": "dimensions.leg.femur",
        "tibia": "dimensions.leg.tibia",
        "actuators": {"hip_pitch": "servo", "knee": "servo"},
    }


_ANGLES = {"hip_pitch": "dimensions.stance.hip_pitch", "knee": "dimensions.stance.knee"}

ASSEMBLY: dict[str, Any] = {
    "name": "quadruped",
    "parts": {
        "base_plate": {
            "material": "al6061",
            "boxes": [{
                "size": ["dimensions.base.length", "dimensions.base.width", "dimensions.base.thickness"],
                "center": ["dimensions.zero", "dimensions.zero", "dimensions.base.center_z"],
            }],
            "placement": {"frame": "body"},
            "interfaces": [{
                "interface": "hip_mount",
                "offset": ["dimensions.hip.x", "dimensions.hip.y", "dimensions.base.thickness"],
            }],
        },
        "hip_bracket": {
            "material": "al6061",
            "subsystem": "legs",
            "boxes": [{
                "size": ["dimensions.bracket.size", "dimensions.bracket.size", "dimensions.bracket.thickness"],
                "center": ["dimensions.zero", "dimensions.zero", "dimensions.bracket.center_z"],
            }],
            "placement": {
                "frame": "body",
                "offset": ["dimensions.bracket.x", "dimensions.bracket.y", "dimensions.base.thickness"],
            },
            "interfaces": [{
                "interface": "hip_mount",
                "offset": ["dimensions.zero", "dimensions.zero", "dimensions.bracket.thickness"],
            }],
        },
        "battery_box": {
            "material": "abs",
            "subsystem": "power",
            "boxes": [{
                "size": ["dimensions.battery.length", "dimensions.battery.width", "dimensions.battery.height"],
                "center": ["dimensions.zero", "dimensions.zero", "dimensions.battery.center_z"],
            }],
            "placement": {
                "frame": "body",
                "offset": ["dimensions.battery.x", "dimensions.zero", "dimensions.base.thickness"],
            },
        },
    },
    "mates": [
        {"part_a": "base_plate", "interface_a": "hip_mount", "part_b": "hip_bracket", "interface_b": "hip_mount"},
    ],
    "legs": {
        "fl": _leg("dimensions.leg.hip_x", "dimensions.leg.hip_y", "dimensions.leg.yaw_front"),
        "fr": _leg("dimensions.leg.hip_x", "dimensions.leg.neg_hip_y", "dimensions.leg.yaw_front"),
        "rl": _leg("dimensions.leg.neg_hip_x", "dimensions.leg.hip_y", "dimensions.leg.yaw_rear"),
        "rr": _leg("dimensions.leg.neg_hip_x", "dimensions.leg.neg_hip_y", "dimensions.leg.yaw_rear"),
    },
    "stances": {
        "stand": {"angles": {leg: dict(_ANGLES) for leg in ("fl", "fr", "rl", "rr")}},
    },
    "grommets": {
        "g_main": {
            "placement": {
                "frame": "body",
                "offset": ["dimensions.zero", "dimensions.cable.grommet_y", "dimensions.cable.grommet_z"],
            },
            "inner_diameter": "dimensions.cable.grommet_bore",
        },
    },
    "components": {
        "controller": {
            "placement": {
                "frame": "body",
                "offset": ["dimensions.cable.controller_x", "dimensions.zero", "dimensions.cable.controller_z"],
            },
            "part": "battery_box",
        },
        "hip_motor": {
            "placement": {
                "frame": "body",
                "offset": ["dimensions.cable.motor_x", "dimensions.cable.motor_y", "dimensions.cable.motor_z"],
            },
            "part": "hip_bracket",
        },
    },
    "cable-runs": {
        "main": {
            "cable_type": "signal",
            "waypoints": ["controller", "g_main", "hip_motor"],
            "length": "dimensions.cable.main_length",
        },
    },
}



def layer(section: str, key: str, value: float, unit: str = "mm") -> dict[str, Any]:
    """One-entry override layer: ``layer("dimensions", "bracket.x", 150.5)``."""
    tree: dict[str, Any] = {"value": value, "unit": unit}
    for part in reversed(key.split(".")):
        tree = {part: tree}
    return {section: tree}


@pytest.fixture
def params_doc() -> dict[str, Any]:
    return copy.deepcopy(PARAMS)


@pytest.fixture
def assembly_doc() -> dict[str, Any]:
    return copy.deepcopy(ASSEMBLY)


@pytest.fixture
def make_pset(params_doc):
    """Resolve the base parameters plus any override layers."""

    def _make(*overrides: dict[str, Any]):
        return ParameterStore([params_doc, *overrides]).resolve_all()

    return _make


@pytest.fixture
def pset(make_pset):
    return make_pset()


@pytest.fixture
def registry(pset) -> InterfaceRegistry:
    return InterfaceRegistry.from_parameters(pset)


@pytest.fixture
def make_assembly(assembly_doc):
    """Build the assembly document against a given ParameterSet."""

    def _make(params, document: dict[str, Any] | None = None):
        return AssemblyBuilder(params).build(document or assembly_doc)

    return _make


@pytest.fixture
def assembly(make_assembly, pset):
    return make_assembly(pset)


@pytest.fixture
def kernel() -> BoxKernel:
    return BoxKernel()
