"""Invariant checks — part, interface, assembly, physical, cable."""

from mechgate.validation.rules.base import InvariantCheck
from mechgate.validation.rules.part import PartRules
from mechgate.validation.rules.interface import InterfaceRules
from mechgate.validation.rules.assembly import AssemblyRules
from mechgate.validation.rules.physical import PhysicalRules
from mechgate.validation.rules.cable import CableRules

__all__ = [
    "InvariantCheck",
    "PartRules",
    "InterfaceRules",
    "AssemblyRules",
    "PhysicalRules",
    "CableRules",
]
