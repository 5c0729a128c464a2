"""Rigid transforms in millimetres, built from roll/pitch/yaw in degrees.

Pure-Python 3x3 rotation + translation; no numpy needed at this scale.
"""

from __future__ import annotations

import math
from typing import Sequence

from pydantic import BaseModel, ConfigDict

Vec3 = tuple[float, float, float]
Mat3 = tuple[Vec3, Vec3, Vec3]

_IDENTITY: Mat3 = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))


def rotation_from_rpy(rpy_deg: Sequence[float]) -> Mat3:
    """Rotation matrix R = Rz(yaw) · Ry(pitch) · Rx(roll)."""
    roll, pitch, yaw = (math.radians(a) for a in rpy_deg)
    cr, sr = math.cos(roll), math.sin(roll)
    cp, sp = math.cos(pitch), math.sin(pitch)
    cy, sy = math.cos(yaw), math.sin(yaw)
    rows = (
        (cy * cp, cy * sp * sr - sy * cr, cy * sp * cr + sy * sr),
        (sy * cp, sy * sp * sr + cy * cr, sy * sp * cr - cy * sr),
        (-sp, cp * sr, cp * cr),
    )
    # Snap numerical noise so quarter turns stay exact
    return tuple(tuple(_snap(v) for v in row) for row in rows)  # type: ignore[return-value]


def _snap(v: float) -> float:
    for target in (-1.0, 0.0, 1.0):
        if abs(v - target) < 1e-12:
            return target
    return v


def _matmul(a: Mat3, b: Mat3) -> Mat3:
    return tuple(
        tuple(sum(a[i][k] * b[k][j] for k in range(3)) for j in range(3)) for i in range(3)
    )  # type: ignore[return-value]


def _transpose(a: Mat3) -> Mat3:
    return tuple(tuple(a[j][i] for j in range(3)) for i in range(3))  # type: ignore[return-value]


class Transform:
    """Maps points from a child frame into its parent frame: p' = R·p + t."""

    __slots__ = ("rotation", "translation")

    def __init__(self, rotation: Mat3 = _IDENTITY, translation: Sequence[float] = (0.0, 0.0, 0.0)) -> None:
        self.rotation: Mat3 = rotation
        self.translation: Vec3 = (float(translation[0]), float(translation[1]), float(translation[2]))

    @classmethod
    def identity(cls) -> Transform:
        return cls()

    @classmethod
    def from_pose(cls, offset: Sequence[float], rpy_deg: Sequence[float] = (0.0, 0.0, 0.0)) -> Transform:
        return cls(rotation_from_rpy(rpy_deg), offset)

    def apply(self, point: Sequence[float]) -> Vec3:
        r, t = self.rotation, self.translation
        return (
            r[0][0] * point[0] + r[0][1] * point[1] + r[0][2] * point[2] + t[0],
            r[1][0] * point[0] + r[1][1] * point[1] + r[1][2] * point[2] + t[1],
            r[2][0] * point[0] + r[2][1] * point[1] + r[2][2] * point[2] + t[2],
        )

    def apply_vector(self, vector: Sequence[float]) -> Vec3:
        r = self.rotation
        return (
            r[0][0] * vector[0] + r[0][1] * vector[1] + r[0][2] * vector[2],
            r[1][0] * vector[0] + r[1][1] * vector[1] + r[1][2] * vector[2],
            r[2][0] * vector[0] + r[2][1] * vector[1] + r[2][2] * vector[2],
        )

    def __matmul__(self, other: Transform) -> Transform:
        """``self @ other`` applies *other* first, then *self*."""
        return Transform(_matmul(self.rotation, other.rotation), self.apply(other.translation))

    def inverse(self) -> Transform:
        rt = _transpose(self.rotation)
        t = self.translation
        inv = Transform(rt)
        neg = inv.apply_vector((-t[0], -t[1], -t[2]))
        return Transform(rt, neg)

    def is_axis_aligned(self, tol: float = 1e-9) -> bool:
        """True when the rotation only permutes/flips axes (quarter turns)."""
        for row in self.rotation:
            for v in row:
                if min(abs(v), abs(abs(v) - 1.0)) > tol:
                    return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return self.rotation == other.rotation and self.translation == other.translation

    def __repr__(self) -> str:
        return f"Transform(t={self.translation}, R={self.rotation})"


class Placement(BaseModel):
    """Location of something relative to a named datum frame."""

    model_config = ConfigDict(frozen=True)

    frame: str = "world"
    offset: Vec3 = (0.0, 0.0, 0.0)
    rpy_deg: Vec3 = (0.0, 0.0, 0.0)

    def local_transform(self) -> Transform:
        return Transform.from_pose(self.offset, self.rpy_deg)


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


def sub(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def cross(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def norm(a: Sequence[float]) -> float:
    return math.sqrt(a[0] * a[0] + a[1] * a[1] + a[2] * a[2])
