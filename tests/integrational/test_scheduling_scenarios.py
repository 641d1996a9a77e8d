from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

import pytest

from seqarrange import (
    BoundingBox,
    ObjectTooLargeError,
    ObjectToPrint,
    Polygon,
    PrinterGeometry,
    ScheduledObject,
    ScheduledPlate,
    SchedulingFailure,
    SolvableObject,
    SolverConfiguration,
    UnsupportedConfigurationError,
    check_scheduled_objects_for_sequential_conflict,
    check_scheduled_objects_for_sequential_printability,
    schedule_objects_for_sequential_print,
    schedule_solvable_objects,
)

SCALE = 100000


def _square(x0, y0, size):
    return Polygon(((x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)))


def _solvable(object_id, polygon, zone, glued=False):
    return SolvableObject(
        id=object_id,
        polygon=Polygon(polygon),
        unreachable_polygons=[Polygon(zone)],
        glued_to_next=glued,
    )


def _four_polygons() -> List[SolvableObject]:
    return [
        _solvable(
            0,
            ((0, 0), (50, 0), (50, 50), (0, 50)),
            ((-5, -5), (60, -5), (60, 60), (-5, 60)),
        ),
        _solvable(
            1,
            ((0, 0), (150, 10), (150, 50), (75, 120), (0, 50)),
            ((-20, -20), (170, -20), (170, 86), (85, 140), (-20, 60)),
        ),
        _solvable(
            2,
            ((40, 0), (80, 40), (40, 80), (0, 40)),
            ((40, -10), (90, 40), (40, 90), (-10, 40)),
        ),
        _solvable(
            3,
            ((20, 0), (40, 0), (60, 30), (30, 50), (0, 30)),
            ((10, -10), (40, -10), (70, 40), (30, 60), (-10, 40)),
        ),
    ]


def _printer(plate: Optional[Polygon] = None) -> PrinterGeometry:
    return PrinterGeometry(
        plate=plate if plate is not None else _square(0, 0, 250 * SCALE),
        convex_heights={0},
        box_heights={40 * SCALE},
        extruder_slices={
            0: [_square(-10 * SCALE, -10 * SCALE, 20 * SCALE)],
            40 * SCALE: [_square(-30 * SCALE, -20 * SCALE, 60 * SCALE)],
        },
    )


def _object(object_id, size_mm, tall=False, glued=False) -> ObjectToPrint:
    slices = [(0, _square(0, 0, size_mm * SCALE))]
    if tall:
        slices.append((40 * SCALE, _square(0, 0, size_mm * SCALE)))
    return ObjectToPrint(
        id=object_id,
        glued_to_next=glued,
        total_height=(60 if tall else 20) * SCALE,
        pgns_at_height=slices,
    )


def _place(*positions) -> ScheduledPlate:
    return ScheduledPlate([ScheduledObject(object_id, x * SCALE, y * SCALE) for object_id, x, y in positions])


@dataclass
class SolvableCase:
    case_id: str
    plate: BoundingBox
    objects: List[SolvableObject]
    expected_plates: Optional[List[List[int]]] = None


CASES = [
    SolvableCase('four-polygons-large-plate', BoundingBox(0, 0, 2500, 2100), _four_polygons()),
    SolvableCase('four-polygons-small-plate', BoundingBox(0, 0, 250, 210), _four_polygons()),
    SolvableCase(
        'glued-squares-one-per-plate',
        BoundingBox(0, 0, 70, 70),
        [
            _solvable(0, ((0, 0), (50, 0), (50, 50), (0, 50)), ((-5, -5), (60, -5), (60, 60), (-5, 60)), glued=True),
            _solvable(1, ((0, 0), (50, 0), (50, 50), (0, 50)), ((-5, -5), (60, -5), (60, 60), (-5, 60))),
            _solvable(2, ((0, 0), (50, 0), (50, 50), (0, 50)), ((-5, -5), (60, -5), (60, 60), (-5, 60))),
        ],
        expected_plates=[[0], [1], [2]],
    ),
]


@pytest.mark.parametrize('case', CASES, ids=[case.case_id for case in CASES])
def test_solvable_objects_are_scheduled_once(case):
    config = SolverConfiguration(plate_bounding_box=case.plate)
    reported: List[int] = []

    result = schedule_solvable_objects(config, case.objects, reported.append)

    assert result.success
    assert Counter(result.scheduled_ids()) == Counter(obj.id for obj in case.objects)
    assert reported == sorted(reported)
    assert reported[-1] == 100
    if case.expected_plates is not None:
        assert [plate.ids() for plate in result.plates] == case.expected_plates


def test_schedule_has_no_conflicts():
    printer = _printer()
    objects = [_object(1, 40), _object(2, 30, tall=True), _object(3, 25), _object(4, 35), _object(5, 20)]

    plates = schedule_objects_for_sequential_print(None, printer, objects)

    assert Counter(object_id for plate in plates for object_id in plate.ids()) == Counter([1, 2, 3, 4, 5])
    assert check_scheduled_objects_for_sequential_conflict(None, printer, objects, plates) is None
    assert check_scheduled_objects_for_sequential_printability(None, printer, objects, plates)


def _assert_printed_back_to_back(plates, first, second):
    locations = {
        object_id: (plate_index, position)
        for plate_index, plate in enumerate(plates)
        for position, object_id in enumerate(plate.ids())
    }
    first_plate, first_position = locations[first]
    second_plate, second_position = locations[second]
    if first_plate == second_plate:
        assert second_position == first_position + 1
    else:
        assert second_plate == first_plate + 1
        assert second_position == 0


def test_glued_objects_print_back_to_back():
    printer = _printer()
    objects = [_object(1, 40), _object(2, 30, glued=True), _object(3, 30), _object(4, 40), _object(5, 20)]

    plates = schedule_objects_for_sequential_print(None, printer, objects)

    _assert_printed_back_to_back(plates, 2, 3)


@pytest.mark.parametrize('group_size', [1, 2, 3])
def test_glued_pairs_survive_later_batches(group_size):
    square = ((0, 0), (50, 0), (50, 50), (0, 50))
    zone = ((-5, -5), (55, -5), (55, 55), (-5, 55))
    objects = [_solvable(index, square, zone, glued=index in (0, 3)) for index in range(7)]
    config = SolverConfiguration(
        plate_bounding_box=BoundingBox(0, 0, 400, 400), object_group_size=group_size, max_refines=20
    )

    result = schedule_solvable_objects(config, objects)

    assert result.success
    assert sorted(result.scheduled_ids()) == list(range(7))
    _assert_printed_back_to_back(result.plates, 0, 1)
    _assert_printed_back_to_back(result.plates, 3, 4)


def test_progress_reaches_completion():
    reported: List[int] = []

    schedule_objects_for_sequential_print(None, _printer(), [_object(1, 40), _object(2, 30)], reported.append)

    assert reported
    assert reported == sorted(set(reported))
    assert reported[-1] == 100


def test_oversized_object_is_rejected():
    with pytest.raises(ObjectTooLargeError) as exc:
        schedule_objects_for_sequential_print(None, _printer(), [_object(1, 40), _object(9, 300)])

    assert exc.value.object_id == 9


def test_oversized_solvable_object_is_rejected():
    config = SolverConfiguration(plate_bounding_box=BoundingBox(0, 0, 100, 100))
    objects = [_solvable(5, ((0, 0), (150, 0), (150, 20), (0, 20)), ((-5, -5), (155, -5), (155, 25), (-5, 25)))]

    with pytest.raises(ObjectTooLargeError):
        schedule_solvable_objects(config, objects)


def test_object_that_fits_no_plate_position_fails():
    triangle = Polygon(((0, 0), (100, 0), (0, 100)))
    config = SolverConfiguration(plate_bounding_polygon=triangle)
    objects = [_solvable(1, ((0, 0), (90, 0), (90, 90), (0, 90)), ((-5, -5), (95, -5), (95, 95), (-5, 95)))]

    reported: List[int] = []

    result = schedule_solvable_objects(config, objects, reported.append)

    assert not result.success
    assert result.plates == []
    assert result.failure.unplaced_ids == [1]
    assert reported[-1] == 100

    printer = _printer(Polygon(((0, 0), (100 * SCALE, 0), (0, 100 * SCALE))))
    with pytest.raises(SchedulingFailure):
        schedule_objects_for_sequential_print(None, printer, [_object(1, 90)])


def test_conflict_check_reports_earlier_and_later():
    printer = _printer()
    objects = [_object(1, 50), _object(2, 50)]

    overlapping = [_place((1, 0, 0), (2, 20, 20))]
    apart = [_place((1, 0, 0), (2, 150, 150))]
    split = [_place((1, 0, 0)), _place((2, 20, 20))]

    assert check_scheduled_objects_for_sequential_conflict(None, printer, objects, overlapping) == (1, 2)
    assert not check_scheduled_objects_for_sequential_printability(None, printer, objects, overlapping)
    assert check_scheduled_objects_for_sequential_conflict(None, printer, objects, apart) is None
    assert check_scheduled_objects_for_sequential_conflict(None, printer, objects, split) is None


def test_conflict_check_rejects_unknown_objects():
    with pytest.raises(UnsupportedConfigurationError):
        check_scheduled_objects_for_sequential_conflict(None, _printer(), [_object(1, 50)], [_place((7, 0, 0))])
