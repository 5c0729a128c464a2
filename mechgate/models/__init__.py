"""Part, assembly and cable models."""

from mechgate.models.assembly import AssemblyModel, JointAngles, Leg, Mate, Stance
from mechgate.models.cable import CableRun, ComponentLocation, Grommet
from mechgate.models.part import BoxFeature, HoleSpec, InterfaceBinding, PartModel, Range

__all__ = [
    "AssemblyModel",
    "BoxFeature",
    "CableRun",
    "ComponentLocation",
    "Grommet",
    "HoleSpec",
    "InterfaceBinding",
    "JointAngles",
    "Leg",
    "Mate",
    "PartModel",
    "Range",
    "Stance",
]
