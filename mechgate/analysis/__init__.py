"""Sub-analyzers: mass/stability, leg kinematics, thermal and cable routing."""

from mechgate.analysis.cables import CableRouter, bend_radius, polyline_length
from mechgate.analysis.kinematics import LegPose, contact_points, leg_pose, stance_poses
from mechgate.analysis.mass import (
    MassAnalyzer,
    MassProperties,
    assert_stable,
    convex_hull,
    stability_margin,
)
from mechgate.analysis.thermal import JointLoad, ThermalEstimator, interpolate_efficiency

__all__ = [
    "CableRouter",
    "JointLoad",
    "LegPose",
    "MassAnalyzer",
    "MassProperties",
    "ThermalEstimator",
    "assert_stable",
    "bend_radius",
    "contact_points",
    "convex_hull",
    "interpolate_efficiency",
    "leg_pose",
    "polyline_length",
    "stability_margin",
    "stance_poses",
]
