"""ParameterStore — layered parameter documents resolved into a ParameterSet.

Usage::

    from mechgate.params import ParameterStore

    store = ParameterStore(["params/base.yaml", "params/overrides.yaml"])
    pset = store.resolve_all()
    length = store.resolve("dimensions.base_plate.length")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from mechgate.errors import UnknownParameter, ValidationError
from mechgate.params import units
from mechgate.params.documents import (
    ParameterDocument,
    ParameterEntry,
    parse_document,
    read_raw,
)
from mechgate.params.hasher import Hasher
from mechgate.params.parameter_set import ParameterSet, ResolvedParameter

logger = logging.getLogger(__name__)

Source = str | Path | Mapping[str, Any]

# Record sections addressable as ``section.name.field`` through resolve()
_RECORD_SECTIONS = {
    "materials": "materials",
    "cable-types": "cable_types",
    "actuators": "actuators",
}


class _Merged:
    """Result of layering documents, before validation."""

    def __init__(self) -> None:
        self.scalars: dict[str, tuple[ParameterEntry, str]] = {}
        self.materials: dict[str, Any] = {}
        self.interfaces: dict[str, Any] = {}
        self.cable_types: dict[str, Any] = {}
        self.actuators: dict[str, Any] = {}
        self.unit_conflicts: list[str] = []


class ParameterStore:
    """Single source of truth for named dimensions, tolerances and materials.

    Parameters
    ----------
    sources:
        Ordered layers: file paths (YAML or JSON) or in-memory mappings.
        Later layers replace earlier ones entry by entry.
    """

    def __init__(self, sources: Sequence[Source]) -> None:
        if isinstance(sources, (str, Path, Mapping)):
            sources = [sources]
        self._sources: list[Source] = list(sources)
        self._cached: ParameterSet | None = None
        self._cached_hashes: list[str] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, key: str) -> Any:
        """Return the value of *key* in canonical units.

        Scalar keys look like ``dimensions.base_plate.length``; record fields
        like ``materials.al6061.density_kg_m3``.  Interface specs are returned
        whole for ``interfaces.<name>``.

        Raises :class:`UnknownParameter` when the key is absent.
        """
        merged = self._merge(self._load())
        if key in merged.scalars:
            entry, _source = merged.scalars[key]
            return _canonical_value(entry)

        section, _, rest = key.partition(".")
        if section == "interfaces" and rest in merged.interfaces:
            return merged.interfaces[rest]
        if section in _RECORD_SECTIONS:
            name, _, field = rest.partition(".")
            table = getattr(merged, _RECORD_SECTIONS[section])
            record = table.get(name)
            if record is not None:
                if not field:
                    return record
                if field in type(record).model_fields:
                    return getattr(record, field)
        raise UnknownParameter(key)

    def resolve_all(self) -> ParameterSet:
        """Resolve and validate every parameter into an immutable snapshot.

        The snapshot is cached and reused until a source file changes.
        Raises :class:`ValidationError` on range, choice or unit violations.
        """
        if self._cached is not None and not self.is_stale():
            return self._cached

        documents = self._load()
        merged = self._merge(documents)
        violations = list(merged.unit_conflicts)
        scalars: dict[str, ResolvedParameter] = {}

        for key, (entry, source) in sorted(merged.scalars.items()):
            problems = _check_entry(key, entry, merged.materials)
            if problems:
                violations.extend(problems)
                continue
            unit = units.canonical_unit(entry.unit) if not isinstance(entry.value, str) else ""
            scalars[key] = ResolvedParameter(key, _canonical_value(entry), unit, source)

        if violations:
            logger.info("Parameter resolution failed with %d violation(s)", len(violations))
            raise ValidationError(violations)

        pset = ParameterSet(
            scalars,
            materials=merged.materials,
            interfaces=merged.interfaces,
            cable_types=merged.cable_types,
            actuators=merged.actuators,
        )
        self._cached = pset
        self._cached_hashes = self._source_hashes()
        logger.info(
            "Resolved %d parameters from %d document(s) (fingerprint %s)",
            len(pset), len(documents), pset.fingerprint[:12],
        )
        return pset

    def is_stale(self) -> bool:
        """True when no snapshot exists or any source changed since it was made."""
        if self._cached is None:
            return True
        return self._source_hashes() != self._cached_hashes

    def invalidate(self) -> None:
        """Drop the cached snapshot; the next resolve_all() re-reads all sources."""
        self._cached = None
        self._cached_hashes = []

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _source_hashes(self) -> list[str]:
        hashes: list[str] = []
        for src in self._sources:
            if isinstance(src, Mapping):
                hashes.append(Hasher.hash_data(src))
            else:
                path = Path(src)
                hashes.append(Hasher.hash_file(path) if path.is_file() else "")
        return hashes

    def _load(self) -> list[ParameterDocument]:
        documents: list[ParameterDocument] = []
        for i, src in enumerate(self._sources):
            if isinstance(src, Mapping):
                documents.append(parse_document(src, name=f"<layer {i}>"))
            else:
                documents.append(parse_document(read_raw(src), name=str(src)))
        return documents

    def _merge(self, documents: list[ParameterDocument]) -> _Merged:
        merged = _Merged()
        for doc in documents:
            for key, entry in doc.scalars().items():
                previous = merged.scalars.get(key)
                if previous is not None:
                    conflict = _unit_conflict(key, previous[0], entry)
                    if conflict:
                        merged.unit_conflicts.append(f"{conflict} (in {doc.name})")
                merged.scalars[key] = (entry, doc.name)
            merged.materials.update(doc.materials)
            merged.interfaces.update(doc.interface_specs())
            merged.cable_types.update(doc.cable_types)
            merged.actuators.update(doc.actuators)
        return merged


def _canonical_value(entry: ParameterEntry) -> float | str:
    if isinstance(entry.value, str):
        return entry.value
    return units.to_canonical(entry.value, entry.unit)


def _unit_conflict(key: str, old: ParameterEntry, new: ParameterEntry) -> str | None:
    if not (units.is_known(old.unit) and units.is_known(new.unit)):
        return None
    if units.dimension_of(old.unit) != units.dimension_of(new.unit):
        return (
            f"{key}: unit changed from {old.unit} ({units.dimension_of(old.unit)}) "
            f"to {new.unit} ({units.dimension_of(new.unit)})"
        )
    return None


def _check_entry(key: str, entry: ParameterEntry, materials: Mapping[str, Any]) -> list[str]:
    problems: list[str] = []

    if isinstance(entry.value, str):
        if entry.choices is not None and entry.value not in entry.choices:
            problems.append(f"{key}: {entry.value!r} not in {list(entry.choices)}")
        return problems

    if not units.is_known(entry.unit):
        return [f"{key}: unknown unit {entry.unit!r}"]

    if entry.min is not None and entry.value < entry.min:
        problems.append(f"{key}: {entry.value} {entry.unit} below minimum {entry.min}")
    if entry.max is not None and entry.value > entry.max:
        problems.append(f"{key}: {entry.value} {entry.unit} above maximum {entry.max}")

    if entry.material is not None:
        material = materials.get(entry.material)
        if material is None:
            problems.append(f"{key}: unknown material {entry.material!r}")
        elif units.dimension_of(entry.unit) != "length":
            problems.append(f"{key}: material minimum applies to lengths, got {entry.unit}")
        elif material.min_thickness_mm is not None:
            value_mm = units.to_canonical(entry.value, entry.unit)
            if value_mm < material.min_thickness_mm:
                problems.append(
                    f"{key}: {value_mm:g} mm below {entry.material} minimum "
                    f"thickness {material.min_thickness_mm:g} mm"
                )
    return problems


def resolve_parameters(sources: Sequence[Source]) -> ParameterSet:
    """Convenience wrapper: build a store and resolve all parameters once."""
    return ParameterStore(sources).resolve_all()
