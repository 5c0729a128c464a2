"""Global configuration: tolerances, thresholds, recognized document sections."""

# Single system-wide linear tolerance for hole positions and cross-part alignment
ALIGNMENT_TOLERANCE_MM = 0.2

# Intersection volume below which two solids are not considered colliding.
# Covers floating-point/meshing noise only.
COLLISION_ALLOWANCE_MM3 = 1.0

# Relative volume tolerance applied when a part gives no absolute tolerance
DEFAULT_VOLUME_TOLERANCE = 0.20

# Default bounding-box extent tolerance (mm) used by the builder
DEFAULT_BBOX_TOLERANCE_MM = 1.0

# Minimum inward distance from the support polygon edges (mm)
STABILITY_MARGIN_MM = 50.0

# Static torque -> walking torque approximation
DYNAMIC_TORQUE_MULTIPLIER = 2.5

# Winding temperature may reach at most this fraction of the rated maximum.
# Not overridable from design rules.
THERMAL_HEADROOM = 0.90

DEFAULT_AMBIENT_TEMPERATURE_C = 25.0

# Cable segments must keep this distance from every part
CABLE_CLEARANCE_MM = 5.0

# Maximum fraction of a grommet bore occupied by cables
GROMMET_FILL_MAX = 0.40

# Export validity
STEP_MIN_BYTES = 256
MESH_MAX_TRIANGLES = 200_000

GRAVITY_M_S2 = 9.80665

# Top-level sections accepted in a parameter document
RECOGNIZED_SECTIONS = (
    "dimensions",
    "tolerances",
    "materials",
    "interfaces",
    "cable-types",
    "actuators",
    "design-rules",
)

# Sections whose entries are scalar parameter records
SCALAR_SECTIONS = ("dimensions", "tolerances", "design-rules")

# Name of the implicit root datum frame
WORLD_FRAME = "world"
