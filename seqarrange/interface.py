"""Public entry points: multi-plate scheduling and schedule conflict checks."""

from __future__ import annotations

import copy
import logging
from dataclasses import replace
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple

from .config import get_default_solver_configuration
from .constants import GROUND_PRESENCE_TIME
from .geometry import placed_lines_intersect, point_inside_convex
from .logging_utils import apply_debug_logging
from .model import (
    ObjectTooLargeError,
    ObjectToPrint,
    PrinterGeometry,
    ProgressCallback,
    ScheduledObject,
    ScheduledPlate,
    ScheduleResult,
    SchedulingFailure,
    SolvableObject,
    SolverConfiguration,
    UnsupportedConfigurationError,
)
from .preprocess import (
    check_polygon_size_fit_to_plate,
    prepare_solvable_object,
    prepare_solvable_objects,
    scale_down_coordinate,
    scale_up_position,
)
from .solver.subglobal import PlateSchedule, ProgressTracker, schedule_plate
from .validate import (
    validate_objects_to_print,
    validate_printer_geometry,
    validate_solvable_objects,
    validate_solver_configuration,
)

logger = logging.getLogger(__name__)

Conflict = Tuple[int, int]
Placed = Tuple[SolvableObject, Fraction, Fraction, int]


def _configured(config: Optional[SolverConfiguration], printer_geometry: PrinterGeometry) -> SolverConfiguration:
    config = get_default_solver_configuration() if config is None else copy.deepcopy(config)
    if config.plate_bounding_box is None and not config.uses_bounding_polygon():
        config.setup(printer_geometry)
    return config


def _normalized(obj: SolvableObject) -> SolvableObject:
    return replace(
        obj,
        polygon=obj.polygon.make_counter_clockwise(),
        unreachable_polygons=[zone.make_counter_clockwise() for zone in obj.unreachable_polygons],
    )


def _scheduled_plate(arena: Sequence[SolvableObject], outcome: PlateSchedule) -> ScheduledPlate:
    scheduled = []
    for index in outcome.ordered():
        x, y = scale_up_position(outcome.decision.x[index], outcome.decision.y[index])
        scheduled.append(ScheduledObject(arena[index].id, x, y))
    return ScheduledPlate(scheduled)


def _split_lead(
    arena: Sequence[SolvableObject], outcome: PlateSchedule, successor_ids: Dict[int, int]
) -> Optional[int]:
    remaining_ids = {arena[index].id for index in outcome.remaining}
    leads = [
        successor_ids[arena[index].id]
        for index in outcome.ordered()
        if successor_ids.get(arena[index].id) in remaining_ids
    ]
    if len(leads) > 1:
        logger.warning("Several glued groups split across plates; only object %d leads the next plate", leads[0])
    return leads[0] if leads else None


def schedule_solvable_objects(
    config: SolverConfiguration,
    solvable_objects: Sequence[SolvableObject],
    progress_callback: Optional[ProgressCallback] = None,
) -> ScheduleResult:
    """Schedule already prepared objects onto as many plates as needed.

    A plate on which not a single object fits ends the run; the plates
    scheduled up to that point are returned together with the failure.
    """

    validate_solver_configuration(config)
    validate_solvable_objects(solvable_objects)
    plate = config.plate_extents()
    for obj in solvable_objects:
        if not check_polygon_size_fit_to_plate(config, obj.polygon, scale_factor=1):
            raise ObjectTooLargeError(f"object {obj.id} is larger than the plate {plate}", object_id=obj.id)

    objects = [_normalized(obj) for obj in solvable_objects]
    successor_ids = {
        obj.id: objects[index + 1].id for index, obj in enumerate(objects[:-1]) if obj.glued_to_next
    }
    tracker = ProgressTracker(progress_callback, len(objects))
    result = ScheduleResult()
    arena: List[SolvableObject] = objects
    lead_id: Optional[int] = None

    while arena:
        if lead_id is not None:
            arena = [obj for obj in arena if obj.id == lead_id] + [obj for obj in arena if obj.id != lead_id]
        index_of = {obj.id: index for index, obj in enumerate(arena)}
        successors = {
            index_of[first]: index_of[second]
            for first, second in successor_ids.items()
            if first in index_of and second in index_of
        }
        logger.info(
            "Scheduling plate %d with %d objects%s",
            len(result.plates) + 1,
            len(arena),
            f" led by object {lead_id}" if lead_id is not None else "",
        )
        outcome = schedule_plate(
            config,
            arena,
            successors=successors,
            lead=index_of.get(lead_id) if lead_id is not None else None,
            progress=tracker,
        )
        if outcome is None:
            result.failure = SchedulingFailure(
                "complete scheduling failure: unable to schedule even a single object",
                [obj.id for obj in arena],
            )
            logger.info("Scheduling stopped after %d plates: %s", len(result.plates), result.failure)
            tracker.finish()
            return result

        result.plates.append(_scheduled_plate(arena, outcome))
        lead_id = _split_lead(arena, outcome, successor_ids)
        arena = [arena[index] for index in outcome.remaining]

    tracker.finish()
    logger.info("Scheduled %d objects onto %d plates", len(objects), len(result.plates))
    return result


def schedule_objects_for_sequential_print(
    config: Optional[SolverConfiguration],
    printer_geometry: PrinterGeometry,
    objects_to_print: Sequence[ObjectToPrint],
    progress_callback: Optional[ProgressCallback] = None,
) -> List[ScheduledPlate]:
    validate_printer_geometry(printer_geometry)
    config = _configured(config, printer_geometry)
    validate_solver_configuration(config)
    validate_objects_to_print(objects_to_print, printer_geometry)

    solvable_objects = prepare_solvable_objects(config, printer_geometry, objects_to_print)
    result = schedule_solvable_objects(config, solvable_objects, progress_callback)
    if result.failure is not None:
        raise result.failure
    return result.plates


def _placed_objects(
    config: SolverConfiguration,
    printer_geometry: PrinterGeometry,
    objects_to_print: Sequence[ObjectToPrint],
) -> Dict[int, SolvableObject]:
    return {obj.id: prepare_solvable_object(config, printer_geometry, obj) for obj in objects_to_print}


def _ordered_pairs(placed: Sequence[Placed]):
    for i, first in enumerate(placed):
        for second in placed[i + 1 :]:
            yield (first, second) if first[3] <= second[3] else (second, first)


def _check_points_outside_polygons(placed: Sequence[Placed]) -> Optional[Conflict]:
    for (earlier, xi, yi, _), (later, xj, yj, _) in _ordered_pairs(placed):
        vertices = earlier.polygon.translated(xi, yi).points
        for zone in later.unreachable_polygons:
            shifted = zone.translated(xj, yj)
            if any(point_inside_convex(vertex, shifted, strict=True) for vertex in vertices):
                return earlier.id, later.id
    return None


def _check_polygon_line_intersections(placed: Sequence[Placed]) -> Optional[Conflict]:
    for (earlier, xi, yi, _), (later, xj, yj, _) in _ordered_pairs(placed):
        for line_1 in earlier.polygon.lines():
            for zone in later.unreachable_polygons:
                for line_2 in zone.lines():
                    if placed_lines_intersect(
                        line_1, float(xi), float(yi), line_2, float(xj), float(yj), closed=False
                    ):
                        return earlier.id, later.id
    return None


def check_scheduled_objects_for_sequential_conflict(
    config: Optional[SolverConfiguration],
    printer_geometry: PrinterGeometry,
    objects_to_print: Sequence[ObjectToPrint],
    scheduled_plates: Sequence[ScheduledPlate],
) -> Optional[Conflict]:
    """Return the first pair ``(earlier id, later id)`` that would collide, if any.

    Objects on a plate are assumed to print in the listed order.
    """

    config = _configured(config, printer_geometry)
    prepared = _placed_objects(config, printer_geometry, objects_to_print)

    for plate in scheduled_plates:
        placed = []
        time = GROUND_PRESENCE_TIME
        for scheduled in plate.scheduled_objects:
            if scheduled.id not in prepared:
                raise UnsupportedConfigurationError(f"scheduled object {scheduled.id} is not among the objects to print")
            time += 2 * config.temporal_spread * config.object_group_size
            placed.append(
                (
                    prepared[scheduled.id],
                    scale_down_coordinate(scheduled.x).as_fraction(),
                    scale_down_coordinate(scheduled.y).as_fraction(),
                    time,
                )
            )
        conflict = _check_points_outside_polygons(placed)
        if conflict is None:
            conflict = _check_polygon_line_intersections(placed)
        if conflict is not None:
            logger.info("Objects %d and %d collide", *conflict)
            return conflict
    return None


def check_scheduled_objects_for_sequential_printability(
    config: Optional[SolverConfiguration],
    printer_geometry: PrinterGeometry,
    objects_to_print: Sequence[ObjectToPrint],
    scheduled_plates: Sequence[ScheduledPlate],
) -> bool:
    return (
        check_scheduled_objects_for_sequential_conflict(config, printer_geometry, objects_to_print, scheduled_plates)
        is None
    )


apply_debug_logging(globals(), logger=logger)


__all__ = [
    "check_scheduled_objects_for_sequential_conflict",
    "check_scheduled_objects_for_sequential_printability",
    "schedule_objects_for_sequential_print",
    "schedule_solvable_objects",
]
