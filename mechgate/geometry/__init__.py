"""Geometry: transforms, datum frames, the kernel interface and a reference kernel."""

from mechgate.geometry.boxkernel import BoxKernel, BoxSolid, TriangleMesh
from mechgate.geometry.frames import FrameTree
from mechgate.geometry.kernel import BoundingBox, GeometryKernel, HoleFeature, Mesh, Solid
from mechgate.geometry.transforms import Placement, Transform

__all__ = [
    "BoundingBox",
    "BoxKernel",
    "BoxSolid",
    "FrameTree",
    "GeometryKernel",
    "HoleFeature",
    "Mesh",
    "Placement",
    "Solid",
    "Transform",
    "TriangleMesh",
]
