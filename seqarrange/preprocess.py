"""Unit conversion and unreachable-zone preparation for objects to print.

Application (slicer) coordinates are large integers; the solver works on the
same geometry divided by :data:`SLICER_SCALE_FACTOR`. Every object is reduced
to a convex footprint plus a list of convex unreachable zones: the area swept
by the extruder assembly while printing the object, expressed relative to the
object's reference point.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .constants import SLICER_SCALE_FACTOR
from .geometry import (
    Polygon,
    box_sum,
    convex_hull,
    convex_hull_of_polygons,
    minkowski_sum_convex,
    polygon_inside_convex,
    trunc_div,
)
from .logging_utils import apply_debug_logging
from .model import (
    ObjectTooLargeError,
    ObjectToPrint,
    PrinterGeometry,
    SolvableObject,
    SolverConfiguration,
    UnsupportedConfigurationError,
)
from .rational import Rational

logger = logging.getLogger(__name__)

LevelZones = List[Polygon]


def scale_down_coordinate(value: int, scale_factor: int = SLICER_SCALE_FACTOR) -> Rational:
    return Rational(value, scale_factor).normalize()


def scale_down_polygon(polygon: Polygon, scale_factor: int = SLICER_SCALE_FACTOR) -> Polygon:
    scaled = Polygon(tuple((trunc_div(x, scale_factor), trunc_div(y, scale_factor)) for x, y in polygon.points))
    return scaled.make_counter_clockwise()


def scale_up_position(
    position_x: Rational, position_y: Rational, scale_factor: int = SLICER_SCALE_FACTOR
) -> Tuple[int, int]:
    """Convert a solver position back to application units, truncating toward zero."""

    return (
        (position_x.normalize() * scale_factor).as_int(),
        (position_y.normalize() * scale_factor).as_int(),
    )


def scale_up_polygon(polygon: Polygon, scale_factor: int = SLICER_SCALE_FACTOR) -> Polygon:
    return Polygon(tuple((x * scale_factor, y * scale_factor) for x, y in polygon.points))


def check_polygon_size_fit_to_plate(
    config: SolverConfiguration, polygon: Polygon, scale_factor: int = SLICER_SCALE_FACTOR
) -> bool:
    box = polygon.bounding_box()
    plate = config.plate_extents()
    if box.width > plate.width * scale_factor:
        return False
    if box.height > plate.height * scale_factor:
        return False
    return True


def check_polygon_position_within_plate(
    config: SolverConfiguration,
    x: int,
    y: int,
    polygon: Polygon,
    scale_factor: int = SLICER_SCALE_FACTOR,
) -> bool:
    """Whether ``polygon`` placed at application coordinates ``(x, y)`` stays on the plate."""

    box = polygon.bounding_box()
    corners = (
        (x + box.min_x, y + box.min_y),
        (x + box.max_x, y + box.min_y),
        (x + box.max_x, y + box.max_y),
        (x + box.min_x, y + box.max_y),
    )
    if config.uses_bounding_polygon():
        plate_polygon = scale_up_polygon(config.plate_bounding_polygon, scale_factor)
        return polygon_inside_convex(Polygon(corners), plate_polygon)
    plate = config.plate_extents()
    return all(
        plate.min_x * scale_factor <= cx <= plate.max_x * scale_factor
        and plate.min_y * scale_factor <= cy <= plate.max_y * scale_factor
        for cx, cy in corners
    )


def _extruder_slice(printer_geometry: PrinterGeometry, height: int) -> List[Polygon]:
    try:
        return printer_geometry.extruder_slices[height]
    except KeyError as exc:
        raise UnsupportedConfigurationError(f"printer geometry has no extruder slice at height {height}") from exc


def prepare_extruder_polygons(
    config: SolverConfiguration,
    printer_geometry: PrinterGeometry,
    object_to_print: ObjectToPrint,
) -> Tuple[List[Polygon], List[Polygon], List[List[Polygon]], List[List[Polygon]]]:
    """Split the object's slices into convex-height and box-height levels.

    Returns ``(convex_levels, box_levels, extruders_for_convex, extruders_for_box)``
    in application units. Slices are replaced by their convex hull.
    """

    convex_levels: List[Polygon] = []
    box_levels: List[Polygon] = []
    convex_extruders: List[List[Polygon]] = []
    box_extruders: List[List[Polygon]] = []

    for height, slice_polygon in object_to_print.pgns_at_height:
        if slice_polygon.is_empty():
            continue
        hull = convex_hull(slice_polygon.points)
        if not check_polygon_size_fit_to_plate(config, hull):
            raise ObjectTooLargeError(
                f"object {object_to_print.id} is too large to fit onto the plate", object_id=object_to_print.id
            )
        if height in printer_geometry.convex_heights:
            convex_levels.append(hull)
            convex_extruders.append(_extruder_slice(printer_geometry, height))
        elif height in printer_geometry.box_heights:
            box_levels.append(hull)
            box_extruders.append(_extruder_slice(printer_geometry, height))
        else:
            raise UnsupportedConfigurationError(
                f"object {object_to_print.id} slice height {height} does not match any printer slice height"
            )

    return convex_levels, box_levels, convex_extruders, box_extruders


def _zone_area(polygons: Sequence[Polygon]) -> float:
    hull = convex_hull_of_polygons(polygons)
    return hull.area()


def _level_consumed(level: LevelZones, consumer: LevelZones) -> bool:
    return all(any(polygon_inside_convex(polygon, other) for other in consumer) for polygon in level)


def simplify_unreachable_zone_polygons(levels: Sequence[LevelZones]) -> List[LevelZones]:
    """Drop levels whose zones are contained in a larger level's zones."""

    simplified: List[LevelZones] = []
    for i, level in enumerate(levels):
        area_i = _zone_area(level) if level else 0.0
        consumed = False
        for j, other in enumerate(levels):
            if i == j or not other:
                continue
            if _zone_area(other) > area_i and _level_consumed(level, other):
                logger.debug("Unreachable level %d consumed by level %d", i, j)
                consumed = True
                break
        if not consumed:
            simplified.append(list(level))
    return simplified


def prepare_unreachable_zone_polygons(
    convex_levels: Sequence[Polygon],
    box_levels: Sequence[Polygon],
    convex_extruders: Sequence[Sequence[Polygon]],
    box_extruders: Sequence[Sequence[Polygon]],
) -> List[Polygon]:
    levels: List[LevelZones] = []
    for polygon, extruders in zip(convex_levels, convex_extruders):
        levels.append([minkowski_sum_convex(polygon, extruder) for extruder in extruders if not extruder.is_empty()])
    for polygon, extruders in zip(box_levels, box_extruders):
        levels.append([box_sum(polygon, extruder) for extruder in extruders if not extruder.is_empty()])

    zones: List[Polygon] = []
    for level in simplify_unreachable_zone_polygons(levels):
        for zone in level:
            if not zone.is_empty():
                zones.append(scale_down_polygon(zone))
    return zones


def prepare_object_polygons(
    convex_levels: Sequence[Polygon],
    box_levels: Sequence[Polygon],
    convex_extruders: Sequence[Sequence[Polygon]],
    box_extruders: Sequence[Sequence[Polygon]],
) -> Tuple[Polygon, List[Polygon]]:
    if not convex_levels:
        raise UnsupportedConfigurationError("object has no slice at a convex (nozzle) height")
    unreachable = prepare_unreachable_zone_polygons(convex_levels, box_levels, convex_extruders, box_extruders)
    footprint = scale_down_polygon(convex_levels[0])
    return footprint, unreachable


def prepare_solvable_object(
    config: SolverConfiguration, printer_geometry: PrinterGeometry, object_to_print: ObjectToPrint
) -> SolvableObject:
    levels = prepare_extruder_polygons(config, printer_geometry, object_to_print)
    footprint, unreachable = prepare_object_polygons(*levels)
    return SolvableObject(
        id=object_to_print.id,
        polygon=footprint,
        unreachable_polygons=unreachable,
        glued_to_next=object_to_print.glued_to_next,
    )


def prepare_solvable_objects(
    config: SolverConfiguration,
    printer_geometry: PrinterGeometry,
    objects_to_print: Sequence[ObjectToPrint],
) -> List[SolvableObject]:
    logger.info("Preparing %d objects for sequential arrangement", len(objects_to_print))
    return [prepare_solvable_object(config, printer_geometry, obj) for obj in objects_to_print]


def unreachable_zone_area(polygon: Polygon, unreachable_polygons: Sequence[Polygon]) -> float:
    """Area covered by the footprint together with its unreachable zones.

    Zones are convex and all contain the footprint, so the convex hull of
    their union is used as the covered area.
    """

    return _zone_area([polygon, *unreachable_polygons])


def glue_low_objects(solvable_objects: Sequence[SolvableObject]) -> None:
    """Glue consecutive low objects pairwise, in place.

    An object is low when its footprint covers more than half of its
    unreachable area, i.e. the extruder barely reaches beyond it.
    """

    low = 0
    for i, obj in enumerate(solvable_objects):
        polygon_area = obj.polygon.area()
        if 2 * polygon_area > unreachable_zone_area(obj.polygon, obj.unreachable_polygons):
            low += 1
            if low >= 2:
                solvable_objects[i - 1].glued_to_next = True
                low = 1
        else:
            low = 0


apply_debug_logging(globals(), logger=logger)


__all__ = [
    "check_polygon_position_within_plate",
    "check_polygon_size_fit_to_plate",
    "glue_low_objects",
    "prepare_extruder_polygons",
    "prepare_object_polygons",
    "prepare_solvable_object",
    "prepare_solvable_objects",
    "prepare_unreachable_zone_polygons",
    "scale_down_coordinate",
    "scale_down_polygon",
    "scale_up_polygon",
    "scale_up_position",
    "simplify_unreachable_zone_polygons",
    "unreachable_zone_area",
]
