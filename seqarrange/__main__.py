import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

from seqarrange import (
    DecimationPrecision,
    ObjectToPrint,
    Polygon,
    PrinterGeometry,
    SchedulingFailure,
    SequentialArrangeError,
    check_scheduled_objects_for_sequential_conflict,
    get_default_solver_configuration,
    schedule_objects_for_sequential_print,
)

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _polygon(points: Sequence[Sequence[int]]) -> Polygon:
    return Polygon(tuple((int(x), int(y)) for x, y in points))


def load_scene(data: Dict[str, Any]) -> Tuple[PrinterGeometry, List[ObjectToPrint]]:
    """Build printer geometry and objects from a JSON scene in application units."""

    printer_data = data["printer"]
    printer = PrinterGeometry(
        plate=_polygon(printer_data["plate"]),
        convex_heights={int(height) for height in printer_data.get("convex_heights", [])},
        box_heights={int(height) for height in printer_data.get("box_heights", [])},
        extruder_slices={
            int(height): [_polygon(polygon) for polygon in polygons]
            for height, polygons in printer_data.get("extruder_slices", {}).items()
        },
    )
    objects = [
        ObjectToPrint(
            id=int(entry["id"]),
            glued_to_next=bool(entry.get("glued_to_next", False)),
            total_height=int(entry.get("total_height", 0)),
            pgns_at_height=[(int(item["height"]), _polygon(item["polygon"])) for item in entry["slices"]],
        )
        for entry in data["objects"]
    ]
    return printer, objects


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Arrange objects for sequential printing")
    parser.add_argument("path", help="Path to the JSON scene (printer geometry and objects)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--group-size",
        type=int,
        help="Number of objects placed together in one batch",
    )
    parser.add_argument(
        "--precision",
        choices=[precision.value for precision in DecimationPrecision],
        help="Decimation precision of object outlines",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        help="Solver timeout per check in milliseconds",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Re-check the resulting schedule for conflicts",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    with open(args.path) as fin:
        data = json.load(fin)

    logger.info("Loading scene from %s", args.path)
    printer, objects = load_scene(data)

    config = get_default_solver_configuration()
    if args.group_size is not None:
        config.set_object_group_size(args.group_size)
    if args.precision is not None:
        config.set_decimation_precision(DecimationPrecision(args.precision))
    if args.timeout is not None:
        config.optimization_timeout = args.timeout
    config.setup(printer)

    try:
        plates = schedule_objects_for_sequential_print(
            config, printer, objects, lambda percent: logger.debug("Progress %d%%", percent)
        )
    except SchedulingFailure as exc:
        logger.error("Scheduling failed: %s (unplaced: %s)", exc, exc.unplaced_ids)
        raise SystemExit(1)
    except SequentialArrangeError as exc:
        logger.error("Scene rejected: %s", exc)
        raise SystemExit(2)

    for number, plate in enumerate(plates, start=1):
        print(f"Plate {number}:")
        for scheduled in plate.scheduled_objects:
            print(f"  {scheduled.id}: ({scheduled.x}, {scheduled.y})")

    if args.check:
        conflict = check_scheduled_objects_for_sequential_conflict(config, printer, objects, plates)
        if conflict is None:
            print("No conflicts")
        else:
            print(f"Conflict: {conflict[0]} before {conflict[1]}")
            raise SystemExit(3)


if __name__ == "__main__":
    main(sys.argv[1:])
