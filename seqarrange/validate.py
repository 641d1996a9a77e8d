from __future__ import annotations

import logging
from typing import Sequence

from .geometry import is_convex
from .model import ObjectToPrint, PrinterGeometry, SolvableObject, SolverConfiguration, UnsupportedConfigurationError

logger = logging.getLogger(__name__)


def validate_solver_configuration(config: SolverConfiguration) -> None:
    if config.object_group_size < 1:
        raise UnsupportedConfigurationError(f"object_group_size must be positive, got {config.object_group_size}")
    if config.temporal_spread <= 0:
        raise UnsupportedConfigurationError(f"temporal_spread must be positive, got {config.temporal_spread}")
    if config.bounding_box_size_optimization_step <= 0:
        raise UnsupportedConfigurationError("bounding_box_size_optimization_step must be positive")
    if config.minimum_bounding_box_size < 0:
        raise UnsupportedConfigurationError("minimum_bounding_box_size must not be negative")
    if config.max_refines < 0:
        raise UnsupportedConfigurationError("max_refines must not be negative")
    if config.fixed_object_grouping_limit < 1:
        raise UnsupportedConfigurationError("fixed_object_grouping_limit must be positive")
    if config.optimization_timeout <= 0:
        raise UnsupportedConfigurationError("optimization_timeout must be positive")

    if config.uses_bounding_polygon():
        polygon = config.plate_bounding_polygon
        if not is_convex(polygon):
            raise UnsupportedConfigurationError("plate bounding polygon must be convex")
        if not polygon.is_counter_clockwise():
            raise UnsupportedConfigurationError("plate bounding polygon must be counter-clockwise")
    else:
        box = config.plate_bounding_box
        if box is None:
            raise UnsupportedConfigurationError("solver configuration has no plate bounds")
        if box.width <= 0 or box.height <= 0:
            raise UnsupportedConfigurationError("plate bounding box must have a positive area")


def validate_printer_geometry(printer_geometry: PrinterGeometry) -> None:
    if len(printer_geometry.plate) < 3:
        raise UnsupportedConfigurationError("printer plate needs at least three vertices")
    if not is_convex(printer_geometry.plate):
        raise UnsupportedConfigurationError("printer plate must be convex")
    overlap = printer_geometry.convex_heights & printer_geometry.box_heights
    if overlap:
        raise UnsupportedConfigurationError(f"heights {sorted(overlap)} are both convex and box heights")
    for height in sorted(printer_geometry.convex_heights | printer_geometry.box_heights):
        if height not in printer_geometry.extruder_slices:
            raise UnsupportedConfigurationError(f"printer geometry has no extruder slice at height {height}")


def validate_objects_to_print(objects: Sequence[ObjectToPrint], printer_geometry: PrinterGeometry) -> None:
    seen = set()
    heights = printer_geometry.convex_heights | printer_geometry.box_heights
    for obj in objects:
        if obj.id in seen:
            raise UnsupportedConfigurationError(f"duplicate object id {obj.id}")
        seen.add(obj.id)
        if not obj.pgns_at_height:
            raise UnsupportedConfigurationError(f"object {obj.id} has no slices")
        has_convex_level = False
        for height, polygon in obj.pgns_at_height:
            if polygon.is_empty():
                continue
            if height not in heights:
                raise UnsupportedConfigurationError(
                    f"object {obj.id} slice height {height} does not match any printer slice height"
                )
            if height in printer_geometry.convex_heights:
                has_convex_level = True
        if not has_convex_level:
            raise UnsupportedConfigurationError(f"object {obj.id} has no slice at a convex (nozzle) height")
    if objects and objects[-1].glued_to_next:
        logger.warning("Last object %d is glued to a successor that does not exist", objects[-1].id)


def validate_solvable_objects(objects: Sequence[SolvableObject]) -> None:
    seen = set()
    for obj in objects:
        if obj.id in seen:
            raise UnsupportedConfigurationError(f"duplicate object id {obj.id}")
        seen.add(obj.id)
        if len(obj.polygon) < 3:
            raise UnsupportedConfigurationError(f"object {obj.id} footprint needs at least three vertices")
        for zone in obj.unreachable_polygons:
            if not zone.is_empty() and not is_convex(zone):
                raise UnsupportedConfigurationError(f"object {obj.id} has a non-convex unreachable zone")


__all__ = [
    "validate_objects_to_print",
    "validate_printer_geometry",
    "validate_solvable_objects",
    "validate_solver_configuration",
]
