"""Parameter Store — layered documents resolved into immutable ParameterSets."""

from mechgate.params.documents import (
    ActuatorSpec,
    CableType,
    Material,
    ParameterDocument,
    ParameterEntry,
    load_document,
    parse_document,
)
from mechgate.params.hasher import Hasher
from mechgate.params.parameter_set import ParameterSet, ResolvedParameter
from mechgate.params.store import ParameterStore, resolve_parameters

__all__ = [
    "ActuatorSpec",
    "CableType",
    "Hasher",
    "Material",
    "ParameterDocument",
    "ParameterEntry",
    "ParameterSet",
    "ParameterStore",
    "ResolvedParameter",
    "load_document",
    "parse_document",
    "resolve_parameters",
]
