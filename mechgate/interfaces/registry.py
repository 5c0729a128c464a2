"""InterfaceRegistry — explicit lookup service for named mechanical contracts.

The registry is passed by reference to whoever needs it; there is no
module-level registry, so independent validation runs never interfere.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from mechgate.errors import DuplicateInterface, InterfaceMismatch, UnknownInterface
from mechgate.interfaces.specs import BoltPattern, ClearanceEnvelope, DatumFrame, structural_mismatch

logger = logging.getLogger(__name__)

AnySpec = BoltPattern | DatumFrame | ClearanceEnvelope


class InterfaceRegistry:
    """Catalog of reusable interfaces keyed by name."""

    def __init__(self) -> None:
        self._specs: dict[str, AnySpec] = {}

    @classmethod
    def from_parameters(cls, params: Any) -> InterfaceRegistry:
        """Build a registry from the ``interfaces`` table of a ParameterSet."""
        registry = cls()
        for name, spec in params.interfaces.items():
            registry.register(name, spec)
        logger.info("Interface registry built with %d interface(s)", len(registry))
        return registry

    def register(self, name: str, spec: AnySpec) -> None:
        """Add *spec* under *name*.

        Re-registering an identical definition is a no-op; a conflicting one
        raises :class:`DuplicateInterface`.
        """
        existing = self._specs.get(name)
        if existing is not None:
            if existing == spec:
                return
            raise DuplicateInterface(
                f"Interface '{name}' already registered with a different definition"
            )
        self._specs[name] = spec
        logger.debug("Registered interface %s (%s)", name, spec.kind)

    def lookup(self, name: str) -> AnySpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownInterface(name) from None

    def names(self) -> list[str]:
        return sorted(self._specs)

    def of_kind(self, kind: type) -> Mapping[str, Any]:
        return {n: s for n, s in sorted(self._specs.items()) if isinstance(s, kind)}

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def bind(self, part: str, binding: Any) -> AnySpec:
        """Resolve a part's interface binding against the registry.

        When the binding carries a ``declared`` contract it must be
        structurally compatible with the registered one.
        """
        spec = self.lookup(binding.interface)
        declared = binding.declared
        if declared is not None:
            problem = structural_mismatch(spec, declared)
            if problem:
                raise InterfaceMismatch(binding.interface, f"{part} declares {problem}", (part,))
        return spec

    def bind_pair(
        self,
        part_a: str,
        binding_a: Any,
        part_b: str,
        binding_b: Any,
    ) -> tuple[AnySpec, AnySpec]:
        """Bind both sides of a mate and check them against each other.

        Geometry is not consulted: incompatibility is decided on the
        contracts alone.
        """
        spec_a = self.bind(part_a, binding_a)
        spec_b = self.bind(part_b, binding_b)
        contract_a = binding_a.declared or spec_a
        contract_b = binding_b.declared or spec_b
        problem = structural_mismatch(contract_a, contract_b)
        if problem:
            raise InterfaceMismatch(
                binding_a.interface,
                f"{part_a} vs {part_b}: {problem}",
                (part_a, part_b),
            )
        return spec_a, spec_b
