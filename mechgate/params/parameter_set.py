"""ParameterSet — immutable, fingerprinted snapshot of resolved parameters."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from mechgate.errors import UnknownParameter
from mechgate.params.documents import ActuatorSpec, CableType, Material
from mechgate.params.hasher import Hasher


class ResolvedParameter:
    """A resolved scalar value in canonical units, with its provenance."""

    __slots__ = ("key", "value", "unit", "source")

    def __init__(self, key: str, value: float | str, unit: str, source: str) -> None:
        self.key = key
        self.value = value
        self.unit = unit
        self.source = source

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "value": self.value, "unit": self.unit, "source": self.source}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResolvedParameter):
            return NotImplemented
        return (self.key, self.value, self.unit) == (other.key, other.value, other.unit)

    def __repr__(self) -> str:
        return f"ResolvedParameter({self.key}={self.value!r} {self.unit})"


class ParameterSet(Mapping[str, Any]):
    """Read-only mapping ``key -> value`` plus typed material/interface tables.

    Never mutated after construction; safe to share across checker threads.
    Two sets resolved from identical documents compare equal and carry the
    same :attr:`fingerprint`.
    """

    def __init__(
        self,
        scalars: Mapping[str, ResolvedParameter],
        materials: Mapping[str, Material] | None = None,
        interfaces: Mapping[str, Any] | None = None,
        cable_types: Mapping[str, CableType] | None = None,
        actuators: Mapping[str, ActuatorSpec] | None = None,
    ) -> None:
        self._scalars = MappingProxyType(dict(sorted(scalars.items())))
        self.materials: Mapping[str, Material] = MappingProxyType(dict(sorted((materials or {}).items())))
        self.interfaces: Mapping[str, Any] = MappingProxyType(dict(sorted((interfaces or {}).items())))
        self.cable_types: Mapping[str, CableType] = MappingProxyType(
            dict(sorted((cable_types or {}).items()))
        )
        self.actuators: Mapping[str, ActuatorSpec] = MappingProxyType(
            dict(sorted((actuators or {}).items()))
        )
        canonical = self.to_dict()
        for record in canonical["scalars"].values():
            record.pop("source")
        self.fingerprint = Hasher.hash_data(canonical)

    # -- Mapping protocol -----------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        try:
            return self._scalars[key].value
        except KeyError:
            raise UnknownParameter(key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._scalars)

    def __len__(self) -> int:
        return len(self._scalars)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterSet):
            return NotImplemented
        return self.fingerprint == other.fingerprint

    def __hash__(self) -> int:
        return hash(self.fingerprint)

    # -- accessors ------------------------------------------------------------

    def entry(self, key: str) -> ResolvedParameter:
        try:
            return self._scalars[key]
        except KeyError:
            raise UnknownParameter(key) from None

    def number(self, key: str, default: float | None = None) -> float:
        """Return a numeric value; *default* is used only when the key is absent."""
        if key not in self._scalars:
            if default is None:
                raise UnknownParameter(key)
            return default
        value = self._scalars[key].value
        if isinstance(value, str):
            raise UnknownParameter(f"{key} (not numeric)")
        return float(value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "scalars": {k: v.to_dict() for k, v in self._scalars.items()},
            "materials": {k: v.model_dump(mode="json") for k, v in self.materials.items()},
            "interfaces": {k: v.model_dump(mode="json") for k, v in self.interfaces.items()},
            "cable_types": {k: v.model_dump(mode="json") for k, v in self.cable_types.items()},
            "actuators": {k: v.model_dump(mode="json") for k, v in self.actuators.items()},
        }

    def __repr__(self) -> str:
        return f"ParameterSet({len(self)} scalars, fingerprint={self.fingerprint[:12]})"
