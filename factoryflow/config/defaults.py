"""
Default configuration values for the FactoryFlow engine.

These values come from the refrigerator assembly line the engine was first
built for. The physical constants (product spacing factor, fallback line
length) describe that line's conveyor and are kept as defaults so other
lines can override them through a configuration file.
"""

from typing import Any

# =============================================================================
# LINE BALANCER
# =============================================================================

# Smallest station count the balancer offers
MIN_STATIONS: int = 3

# A solved x[task][station] is treated as 1 above this value
ASSIGNMENT_THRESHOLD: float = 0.9

# =============================================================================
# LINE GEOMETRY
# =============================================================================

# Conveyor length (feet) occupied per minute of station work
PRODUCT_SPACING_FACTOR: float = 15.0

# Space per unit is this multiple of the largest "shortest dimension"
UNIT_SPACE_MULTIPLIER: float = 2.0

# Used when the task model carries no dimensions to size the line from
DEFAULT_LINE_LENGTH: float = 486.0

# =============================================================================
# OPERATING HORIZON
# =============================================================================

# Longest theoretical operating day
MAX_OPERATING_HOURS: float = 24.0

# Operating hours are planned in quarter-hour steps
HOURS_GRANULARITY: float = 0.25

# =============================================================================
# PRODUCT MIX
# =============================================================================

# Warn when model ratios are further than this from summing to 1.0
RATIO_TOLERANCE: float = 0.05

# Default three-model mix (used when a balancer request names no models)
DEFAULT_MODELS: list[dict[str, Any]] = [
    {"id": 1, "name": "Super", "ratio": 0.35, "length": 3.0, "width": 3.0, "height": 6.0, "weight": 300.0},
    {"id": 2, "name": "Ultra", "ratio": 0.45, "length": 3.0, "width": 3.0, "height": 6.0, "weight": 320.0},
    {"id": 3, "name": "Mega", "ratio": 0.20, "length": 3.5, "width": 3.5, "height": 7.0, "weight": 400.0},
]

# =============================================================================
# COMBINED DEFAULT CONFIG
# =============================================================================

DEFAULT_CONFIG: dict[str, Any] = {
    "balancer": {
        "min_stations": MIN_STATIONS,
        "max_stations": None,
        "time_limit_seconds": None,
        "solver_msg": False,
        "assignment_threshold": ASSIGNMENT_THRESHOLD,
        "use_processes": True,
        "max_workers": None,
    },
    "geometry": {
        "product_spacing_factor": PRODUCT_SPACING_FACTOR,
        "unit_space_multiplier": UNIT_SPACE_MULTIPLIER,
        "default_line_length": DEFAULT_LINE_LENGTH,
    },
    "capacity": {
        "max_operating_hours": MAX_OPERATING_HOURS,
        "hours_granularity": HOURS_GRANULARITY,
    },
    "sequencing": {
        "ratio_tolerance": RATIO_TOLERANCE,
    },
}
