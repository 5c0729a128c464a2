"""ValidationContext — pre-flight resolution and realization for one run.

Everything a check needs is computed here, once, before any check runs.
After :meth:`ValidationContext.prepare` returns, the context is only read,
so checks may run concurrently against it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from mechgate.analysis.cables import CableRouter, RoutedWaypoint
from mechgate.analysis.kinematics import LegPose, stance_poses
from mechgate.analysis.mass import MassAnalyzer, MassProperties
from mechgate.errors import ConfigError, GeometryError, InterfaceMismatch
from mechgate.geometry.frames import FrameTree
from mechgate.geometry.kernel import BoundingBox, GeometryKernel, Solid
from mechgate.geometry.transforms import Transform
from mechgate.interfaces.registry import InterfaceRegistry
from mechgate.interfaces.specs import DatumFrame
from mechgate.models.assembly import AssemblyModel
from mechgate.validation.overrides import MassOverride
from mechgate.validation.thresholds import ValidationThresholds

logger = logging.getLogger(__name__)


@dataclass
class ValidationContext:
    """Resolved inputs shared by every check of one validation run."""

    assembly: AssemblyModel
    params: Any
    registry: InterfaceRegistry
    kernel: GeometryKernel
    thresholds: ValidationThresholds
    frames: FrameTree
    router: CableRouter
    mass_override: MassOverride | None = None
    export_dir: Path | None = None

    bound: dict[tuple[str, str], Any] = field(default_factory=dict)
    binding_errors: dict[tuple[str, str], InterfaceMismatch] = field(default_factory=dict)
    mate_errors: dict[str, InterfaceMismatch] = field(default_factory=dict)
    part_transforms: dict[str, Transform] = field(default_factory=dict)
    solids: dict[str, Solid] = field(default_factory=dict)
    part_boxes: dict[str, BoundingBox] = field(default_factory=dict)
    mass: dict[str, MassProperties] = field(default_factory=dict)
    geometry_errors: dict[str, str] = field(default_factory=dict)
    poses: dict[str, list[LegPose]] = field(default_factory=dict)
    routes: dict[str, list[RoutedWaypoint]] = field(default_factory=dict)

    @classmethod
    def prepare(
        cls,
        assembly: AssemblyModel,
        params: Any,
        registry: InterfaceRegistry,
        kernel: GeometryKernel,
        thresholds: ValidationThresholds,
        *,
        mass_override: MassOverride | None = None,
        export_dir: Path | None = None,
    ) -> ValidationContext:
        """Resolve every reference, then realize every part.

        Raises :class:`ConfigError` on the first dangling reference.
        Kernel failures are recorded per part in :attr:`geometry_errors`.
        """
        frames = FrameTree.from_interfaces(registry.of_kind(DatumFrame))
        frames.resolve_all()
        ctx = cls(
            assembly=assembly,
            params=params,
            registry=registry,
            kernel=kernel,
            thresholds=thresholds,
            frames=frames,
            router=CableRouter(assembly, params.cable_types, frames),
            mass_override=mass_override,
            export_dir=export_dir,
        )
        ctx._resolve_parts()
        ctx._resolve_mates()
        ctx._resolve_legs()
        ctx._resolve_cables()
        ctx._realize()
        return ctx

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------

    def _resolve_parts(self) -> None:
        for name in self.assembly.part_names():
            part = self.assembly.parts[name]
            if part.name != name:
                raise ConfigError(f"Part registered as {name!r} is named {part.name!r}")
            if part.material not in self.params.materials:
                raise ConfigError(f"Part {name!r} references unknown material {part.material!r}")
            self.frames.world(part.placement.frame)
            for binding in part.interfaces:
                key = (name, binding.interface)
                try:
                    self.bound[key] = self.registry.bind(name, binding)
                except InterfaceMismatch as exc:
                    logger.warning("Binding %s/%s rejected: %s", name, binding.interface, exc)
                    self.binding_errors[key] = exc

    def _resolve_mates(self) -> None:
        for mate in self.assembly.mates:
            sides = []
            for part_name, iface in ((mate.part_a, mate.interface_a), (mate.part_b, mate.interface_b)):
                part = self.assembly.parts.get(part_name)
                if part is None:
                    raise ConfigError(f"Mate {mate.label()} references unknown part {part_name!r}")
                try:
                    sides.append(part.binding(iface))
                except KeyError:
                    raise ConfigError(
                        f"Mate {mate.label()}: part {part_name!r} does not bind interface {iface!r}"
                    ) from None
            try:
                self.registry.bind_pair(mate.part_a, sides[0], mate.part_b, sides[1])
            except InterfaceMismatch as exc:
                logger.warning("Mate %s rejected: %s", mate.label(), exc)
                self.mate_errors[mate.label()] = exc

    def _resolve_legs(self) -> None:
        for name in sorted(self.assembly.legs):
            leg = self.assembly.legs[name]
            self.frames.world(leg.hip.frame)
            for joint, actuator in sorted(leg.actuators.items()):
                if actuator not in self.params.actuators:
                    raise ConfigError(f"Leg {name!r} joint {joint} uses unknown actuator {actuator!r}")
        for name in sorted(self.assembly.stances):
            stance = self.assembly.stances[name]
            unknown = sorted(set(stance.angles) - set(self.assembly.legs))
            if unknown:
                raise ConfigError(f"Stance {name!r} gives angles for unknown leg(s) {unknown}")
            self.poses[name] = stance_poses(self.assembly, stance, self.frames)

    def _resolve_cables(self) -> None:
        known_parts = set(self.assembly.parts)
        for kind, table in (("Grommet", self.assembly.grommets), ("Component", self.assembly.components)):
            for name in sorted(table):
                item = table[name]
                self.frames.world(item.placement.frame)
                if item.part is not None and item.part not in known_parts:
                    raise ConfigError(f"{kind} {name!r} is mounted on unknown part {item.part!r}")
        for name in sorted(self.assembly.cable_runs):
            run = self.assembly.cable_runs[name]
            self.router.cable_type(run)
            if len(run.waypoints) < 2:
                raise ConfigError(f"Cable run {name!r} needs at least two waypoints")
            self.routes[name] = self.router.route(run)
        for name in sorted(self.assembly.grommets):
            for run_name in self.assembly.grommet_cables(name):
                if run_name not in self.assembly.cable_runs:
                    raise ConfigError(f"Grommet {name!r} lists unknown cable run {run_name!r}")

    # ------------------------------------------------------------------
    # Realization
    # ------------------------------------------------------------------

    def _realize(self) -> None:
        analyzer = MassAnalyzer(self.params.materials)
        for name in self.assembly.part_names():
            part = self.assembly.parts[name]
            transform = self.frames.placement_transform(part.placement)
            self.part_transforms[name] = transform
            try:
                solid = self.kernel.realize(part, transform)
                self.part_boxes[name] = solid.bounding_box()
                self.mass[name] = analyzer.part_properties(part, solid)
            except GeometryError as exc:
                logger.warning("Geometry unavailable for %s: %s", name, exc.cause)
                self.geometry_errors[name] = exc.cause
                self.part_boxes.pop(name, None)
                continue
            self.solids[name] = solid
        logger.info(
            "Realized %d/%d part(s) with kernel %s",
            len(self.solids), len(self.assembly.parts), self.kernel.name,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def binding_transform(self, part: str, interface: str) -> Transform:
        """World transform of *part*'s binding of *interface*."""
        binding = self.assembly.parts[part].binding(interface)
        return self.part_transforms[part] @ binding.local_transform()

    def mass_properties(self) -> list[MassProperties]:
        return [self.mass[n] for n in sorted(self.mass)]
