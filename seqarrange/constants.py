"""Numeric constants of the sequential arrangement engine."""

from __future__ import annotations

from fractions import Fraction

# Application (slicer) coordinates are divided by this factor to get solver units.
SLICER_SCALE_FACTOR = 100000

OBJECT_GROUP_SIZE = 4
FIXED_OBJECT_GROUPING_LIMIT = 64
SCHEDULING_TEMPORAL_SPREAD = 16

BOUNDING_BOX_SIZE_OPTIMIZATION_STEP = 4
MINIMUM_BOUNDING_BOX_SIZE = 16

MAX_REFINES = 2

SOLVER_TIMEOUT_MS = 8000

INTERSECTION_REPULSION_MIN = Fraction(-1, 100)
INTERSECTION_REPULSION_MAX = Fraction(101, 100)

GROUND_PRESENCE_TIME = 32

PROGRESS_RANGE = 100
PROGRESS_PHASES_PER_OBJECT = 4
PROGRESS_EXTRA_FACTOR = 1.15

DECIMATION_TOLERANCE_VALUE_UNDEFINED = 0.0
DECIMATION_TOLERANCE_VALUE_LOW = 150000.0
DECIMATION_TOLERANCE_VALUE_HIGH = 650000.0


def make_extra_progress(phases: int) -> int:
    return int(phases * PROGRESS_EXTRA_FACTOR / PROGRESS_PHASES_PER_OBJECT) * PROGRESS_PHASES_PER_OBJECT
