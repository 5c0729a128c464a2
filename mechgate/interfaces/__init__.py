"""Interface Registry — bolt patterns, datum frames and clearance envelopes."""

from mechgate.interfaces.registry import InterfaceRegistry
from mechgate.interfaces.specs import (
    BoltPattern,
    ClearanceEnvelope,
    DatumFrame,
    InterfaceSpec,
    structural_mismatch,
)

__all__ = [
    "BoltPattern",
    "ClearanceEnvelope",
    "DatumFrame",
    "InterfaceRegistry",
    "InterfaceSpec",
    "structural_mismatch",
]
