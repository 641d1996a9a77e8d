import pytest

from seqarrange.geometry import BoundingBox, Polygon
from seqarrange.model import (
    ObjectTooLargeError,
    ObjectToPrint,
    PrinterGeometry,
    SolvableObject,
    SolverConfiguration,
    UnsupportedConfigurationError,
)
from seqarrange.preprocess import (
    check_polygon_position_within_plate,
    glue_low_objects,
    prepare_solvable_object,
    scale_down_coordinate,
    scale_down_polygon,
    scale_up_position,
    unreachable_zone_area,
)

SCALE = 100000


def _square(x0, y0, size):
    return Polygon(((x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)))


def _printer(plate_size=250, nozzle=10, gantry=None):
    heights = {0}
    slices = {0: [_square(-nozzle * SCALE, -nozzle * SCALE, 2 * nozzle * SCALE)]}
    box_heights = set()
    if gantry is not None:
        box_heights.add(100)
        slices[100] = [_square(-gantry * SCALE, -gantry * SCALE, 2 * gantry * SCALE)]
    return PrinterGeometry(
        plate=_square(0, 0, plate_size * SCALE),
        convex_heights=heights,
        box_heights=box_heights,
        extruder_slices=slices,
    )


@pytest.mark.parametrize('value', [0, 1, 99999, 12345678, -4200000, 250000000])
def test_scaling_round_trip_is_close(value):
    x, y = scale_up_position(scale_down_coordinate(value), scale_down_coordinate(-value))
    assert abs(x - value) <= 10
    assert abs(y + value) <= 10


def test_scale_down_polygon_truncates_and_orients():
    clockwise = Polygon(((0, 0), (0, 250000), (-150000, 250000), (-150000, 0)))
    scaled = scale_down_polygon(clockwise)

    assert scaled.is_counter_clockwise()
    assert set(scaled.points) == {(0, 0), (0, 2), (-1, 2), (-1, 0)}


def test_plate_conversion_prefers_box_for_rectangles():
    config = SolverConfiguration.from_printer_geometry(_printer(plate_size=250))
    assert config.plate_bounding_box == BoundingBox(0, 0, 250, 250)
    assert config.plate_bounding_polygon is None

    triangle = PrinterGeometry(plate=Polygon(((0, 0), (0, 100 * SCALE), (100 * SCALE, 0))))
    config = SolverConfiguration.from_printer_geometry(triangle)
    assert config.plate_bounding_box is None
    assert config.plate_bounding_polygon.is_counter_clockwise()
    assert set(config.plate_bounding_polygon.points) == {(0, 0), (100, 0), (0, 100)}


def test_convex_height_zone_is_minkowski_sum():
    printer = _printer()
    config = SolverConfiguration.from_printer_geometry(printer)
    obj = ObjectToPrint(id=7, total_height=10 * SCALE, pgns_at_height=[(0, _square(0, 0, 50 * SCALE))])

    solvable = prepare_solvable_object(config, printer, obj)

    assert solvable.id == 7
    assert set(solvable.polygon.points) == {(0, 0), (50, 0), (50, 50), (0, 50)}
    assert len(solvable.unreachable_polygons) == 1
    assert set(solvable.unreachable_polygons[0].points) == {(-10, -10), (60, -10), (60, 60), (-10, 60)}
    assert solvable.unreachable_polygons[0].is_counter_clockwise()


def test_contained_levels_are_dropped():
    printer = _printer(gantry=20)
    config = SolverConfiguration.from_printer_geometry(printer)
    obj = ObjectToPrint(
        id=1,
        total_height=200 * SCALE,
        pgns_at_height=[(0, _square(0, 0, 50 * SCALE)), (100, _square(0, 0, 50 * SCALE))],
    )

    solvable = prepare_solvable_object(config, printer, obj)

    assert len(solvable.unreachable_polygons) == 1
    assert solvable.unreachable_polygons[0].bounding_box() == BoundingBox(-20, -20, 70, 70)


def test_too_large_object_is_rejected():
    printer = _printer(plate_size=100)
    config = SolverConfiguration.from_printer_geometry(printer)
    obj = ObjectToPrint(id=3, pgns_at_height=[(0, _square(0, 0, 150 * SCALE))])

    with pytest.raises(ObjectTooLargeError) as exc:
        prepare_solvable_object(config, printer, obj)

    assert exc.value.object_id == 3


def test_unknown_slice_height_is_rejected():
    printer = _printer()
    config = SolverConfiguration.from_printer_geometry(printer)
    obj = ObjectToPrint(id=3, pgns_at_height=[(0, _square(0, 0, SCALE)), (55, _square(0, 0, SCALE))])

    with pytest.raises(UnsupportedConfigurationError):
        prepare_solvable_object(config, printer, obj)


def _solvable(object_id, size, margin):
    return SolvableObject(
        id=object_id,
        polygon=_square(0, 0, size),
        unreachable_polygons=[_square(-margin, -margin, size + 2 * margin)],
    )


def test_unreachable_zone_area_covers_footprint_and_zones():
    obj = _solvable(0, 50, 5)
    assert unreachable_zone_area(obj.polygon, obj.unreachable_polygons) == pytest.approx(3600.0)


def test_glue_low_objects_pairs_consecutive_low_objects():
    objects = [_solvable(0, 50, 5), _solvable(1, 50, 5), _solvable(2, 50, 5), _solvable(3, 10, 45), _solvable(4, 50, 5)]

    glue_low_objects(objects)

    assert [obj.glued_to_next for obj in objects] == [True, True, False, False, False]


@pytest.mark.parametrize(
    'x, y, expected',
    [
        (0, 0, True),
        (200 * SCALE, 200 * SCALE, True),
        (201 * SCALE, 0, False),
        (-1, 10 * SCALE, False),
    ],
)
def test_position_within_box_plate(x, y, expected):
    config = SolverConfiguration.from_printer_geometry(_printer(plate_size=250))
    assert check_polygon_position_within_plate(config, x, y, _square(0, 0, 50 * SCALE)) is expected


def test_position_within_polygon_plate():
    triangle = PrinterGeometry(plate=Polygon(((0, 0), (100 * SCALE, 0), (0, 100 * SCALE))))
    config = SolverConfiguration.from_printer_geometry(triangle)
    square = _square(0, 0, 20 * SCALE)

    assert check_polygon_position_within_plate(config, 10 * SCALE, 10 * SCALE, square)
    assert not check_polygon_position_within_plate(config, 60 * SCALE, 30 * SCALE, square)
