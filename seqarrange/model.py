"""Core data structures for sequential print arrangement."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .constants import (
    BOUNDING_BOX_SIZE_OPTIMIZATION_STEP,
    DECIMATION_TOLERANCE_VALUE_HIGH,
    DECIMATION_TOLERANCE_VALUE_LOW,
    DECIMATION_TOLERANCE_VALUE_UNDEFINED,
    FIXED_OBJECT_GROUPING_LIMIT,
    MAX_REFINES,
    MINIMUM_BOUNDING_BOX_SIZE,
    OBJECT_GROUP_SIZE,
    SCHEDULING_TEMPORAL_SPREAD,
    SLICER_SCALE_FACTOR,
    SOLVER_TIMEOUT_MS,
)
from .geometry import BoundingBox, Polygon, trunc_div

ProgressCallback = Callable[[int], None]


class SequentialArrangeError(RuntimeError):
    """Base class for errors raised by the arrangement engine."""


class ObjectTooLargeError(SequentialArrangeError):
    """Raised when an object's footprint cannot fit the plate in any position."""

    def __init__(self, message: str, object_id: Optional[int] = None):
        super().__init__(message)
        self.object_id = object_id


class UnsupportedConfigurationError(SequentialArrangeError, ValueError):
    """Raised when printer geometry, objects or configuration are rejected up front."""


class SchedulingFailure(SequentialArrangeError):
    """No object at all could be placed on a plate."""

    def __init__(self, message: str, unplaced_ids: Sequence[int] = ()):
        super().__init__(message)
        self.unplaced_ids = list(unplaced_ids)


class InvariantViolationError(SequentialArrangeError):
    """Raised when an internal consistency check fails."""


class DecimationPrecision(enum.Enum):
    UNDEFINED = "undefined"
    LOW = "low"
    HIGH = "high"


@dataclass
class PrinterGeometry:
    """Plate outline and extruder swept-volume slices, in application units."""

    plate: Polygon
    convex_heights: Set[int] = field(default_factory=set)
    box_heights: Set[int] = field(default_factory=set)
    extruder_slices: Dict[int, List[Polygon]] = field(default_factory=dict)

    def convert_to_plate_bounds(self) -> Tuple[Optional[BoundingBox], Optional[Polygon]]:
        """Return the plate as a solver-unit box, or as a CCW polygon when it is not a rectangle."""

        plate_box = self.plate.bounding_box()
        if abs(self.plate.area() - plate_box.area()) > 1e-4:
            scaled = Polygon(
                tuple(
                    (trunc_div(x, SLICER_SCALE_FACTOR), trunc_div(y, SLICER_SCALE_FACTOR))
                    for x, y in self.plate.points
                )
            )
            return None, scaled.make_counter_clockwise()
        return plate_box.scaled_down(SLICER_SCALE_FACTOR), None


@dataclass
class SolverConfiguration:
    bounding_box_size_optimization_step: int = BOUNDING_BOX_SIZE_OPTIMIZATION_STEP
    minimum_bounding_box_size: int = MINIMUM_BOUNDING_BOX_SIZE
    plate_bounding_box: Optional[BoundingBox] = None
    plate_bounding_polygon: Optional[Polygon] = None
    max_refines: int = MAX_REFINES
    object_group_size: int = OBJECT_GROUP_SIZE
    fixed_object_grouping_limit: int = FIXED_OBJECT_GROUPING_LIMIT
    temporal_spread: int = SCHEDULING_TEMPORAL_SPREAD
    decimation_precision: DecimationPrecision = DecimationPrecision.LOW
    optimization_timeout: int = SOLVER_TIMEOUT_MS

    @classmethod
    def from_printer_geometry(cls, printer_geometry: PrinterGeometry, **overrides) -> "SolverConfiguration":
        config = cls(**overrides)
        config.setup(printer_geometry)
        return config

    def setup(self, printer_geometry: PrinterGeometry) -> None:
        self.plate_bounding_box, self.plate_bounding_polygon = printer_geometry.convert_to_plate_bounds()

    def set_decimation_precision(self, decimation_precision: DecimationPrecision) -> None:
        self.decimation_precision = decimation_precision

    def set_object_group_size(self, object_group_size: int) -> None:
        self.object_group_size = object_group_size

    @staticmethod
    def decimation_tolerance(decimation_precision: DecimationPrecision) -> float:
        if decimation_precision == DecimationPrecision.LOW:
            return DECIMATION_TOLERANCE_VALUE_HIGH
        if decimation_precision == DecimationPrecision.HIGH:
            return DECIMATION_TOLERANCE_VALUE_LOW
        return DECIMATION_TOLERANCE_VALUE_UNDEFINED

    def plate_extents(self) -> BoundingBox:
        if self.plate_bounding_polygon is not None and not self.plate_bounding_polygon.is_empty():
            return self.plate_bounding_polygon.bounding_box()
        if self.plate_bounding_box is None:
            raise UnsupportedConfigurationError("solver configuration has no plate bounds")
        return self.plate_bounding_box

    def uses_bounding_polygon(self) -> bool:
        return self.plate_bounding_polygon is not None and not self.plate_bounding_polygon.is_empty()


@dataclass
class ObjectToPrint:
    id: int = 0
    glued_to_next: bool = False
    total_height: int = 0
    pgns_at_height: List[Tuple[int, Polygon]] = field(default_factory=list)


@dataclass
class SolvableObject:
    """Object prepared for the solver: footprint and unreachable zones in solver units."""

    id: int
    polygon: Polygon
    unreachable_polygons: List[Polygon] = field(default_factory=list)
    glued_to_next: bool = False


@dataclass(frozen=True)
class ScheduledObject:
    id: int
    x: int
    y: int


@dataclass
class ScheduledPlate:
    scheduled_objects: List[ScheduledObject] = field(default_factory=list)

    def ids(self) -> List[int]:
        return [scheduled.id for scheduled in self.scheduled_objects]


@dataclass(frozen=True)
class ProgressRange:
    min: int
    max: int


@dataclass
class ScheduleResult:
    """Plates scheduled so far and, if scheduling stopped early, why."""

    plates: List[ScheduledPlate] = field(default_factory=list)
    failure: Optional[SchedulingFailure] = None

    @property
    def success(self) -> bool:
        return self.failure is None

    def scheduled_ids(self) -> List[int]:
        return [object_id for plate in self.plates for object_id in plate.ids()]


__all__ = [
    "DecimationPrecision",
    "InvariantViolationError",
    "ObjectTooLargeError",
    "ObjectToPrint",
    "PrinterGeometry",
    "ProgressCallback",
    "ProgressRange",
    "ScheduledObject",
    "ScheduledPlate",
    "ScheduleResult",
    "SchedulingFailure",
    "SequentialArrangeError",
    "SolvableObject",
    "SolverConfiguration",
    "UnsupportedConfigurationError",
]
