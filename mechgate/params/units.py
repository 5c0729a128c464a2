"""Unit table and conversion to canonical units.

Canonical units per physical dimension::

    length       mm
    area         mm^2
    volume       mm^3
    mass         kg
    density      kg/m^3
    angle        deg
    temperature  degC
    torque       N*m
    current      A
    ratio        1
"""

from __future__ import annotations

import math

from mechgate.errors import ConfigError

# unit -> (dimension, scale to canonical, offset to canonical)
_UNITS: dict[str, tuple[str, float, float]] = {
    "mm": ("length", 1.0, 0.0),
    "cm": ("length", 10.0, 0.0),
    "m": ("length", 1000.0, 0.0),
    "in": ("length", 25.4, 0.0),
    "mm^2": ("area", 1.0, 0.0),
    "cm^2": ("area", 100.0, 0.0),
    "mm^3": ("volume", 1.0, 0.0),
    "cm^3": ("volume", 1000.0, 0.0),
    "m^3": ("volume", 1e9, 0.0),
    "kg": ("mass", 1.0, 0.0),
    "g": ("mass", 1e-3, 0.0),
    "lb": ("mass", 0.45359237, 0.0),
    "kg/m^3": ("density", 1.0, 0.0),
    "g/cm^3": ("density", 1000.0, 0.0),
    "deg": ("angle", 1.0, 0.0),
    "rad": ("angle", 180.0 / math.pi, 0.0),
    "degC": ("temperature", 1.0, 0.0),
    "K": ("temperature", 1.0, -273.15),
    "N*m": ("torque", 1.0, 0.0),
    "N*mm": ("torque", 1e-3, 0.0),
    "A": ("current", 1.0, 0.0),
    "mA": ("current", 1e-3, 0.0),
    "1": ("ratio", 1.0, 0.0),
    "%": ("ratio", 0.01, 0.0),
}

CANONICAL_UNITS: dict[str, str] = {
    "length": "mm",
    "area": "mm^2",
    "volume": "mm^3",
    "mass": "kg",
    "density": "kg/m^3",
    "angle": "deg",
    "temperature": "degC",
    "torque": "N*m",
    "current": "A",
    "ratio": "1",
}


def is_known(unit: str) -> bool:
    return unit in _UNITS


def dimension_of(unit: str) -> str:
    """Return the physical dimension of *unit* (e.g. ``'length'``)."""
    try:
        return _UNITS[unit][0]
    except KeyError:
        raise ConfigError(f"Unknown unit: {unit!r}") from None


def canonical_unit(unit: str) -> str:
    return CANONICAL_UNITS[dimension_of(unit)]


def to_canonical(value: float, unit: str) -> float:
    """Convert *value* expressed in *unit* to the canonical unit of its dimension."""
    try:
        _dim, scale, offset = _UNITS[unit]
    except KeyError:
        raise ConfigError(f"Unknown unit: {unit!r}") from None
    return float(value) * scale + offset
