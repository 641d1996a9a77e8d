import pytest

from seqarrange.config import get_default_solver_configuration, set_default_solver_configuration
from seqarrange.geometry import BoundingBox, Polygon
from seqarrange.model import (
    DecimationPrecision,
    ObjectToPrint,
    PrinterGeometry,
    SolvableObject,
    SolverConfiguration,
    UnsupportedConfigurationError,
)
from seqarrange.validate import (
    validate_objects_to_print,
    validate_printer_geometry,
    validate_solvable_objects,
    validate_solver_configuration,
)


def _square(x0, y0, size):
    return Polygon(((x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)))


def _printer():
    return PrinterGeometry(
        plate=_square(0, 0, 1000),
        convex_heights={0},
        box_heights={50},
        extruder_slices={0: [_square(-1, -1, 2)], 50: [_square(-5, -5, 10)]},
    )


def _config(**overrides):
    return SolverConfiguration(plate_bounding_box=BoundingBox(0, 0, 100, 100), **overrides)


def test_default_configuration_values():
    config = SolverConfiguration()

    assert config.object_group_size == 4
    assert config.temporal_spread == 16
    assert config.bounding_box_size_optimization_step == 4
    assert config.minimum_bounding_box_size == 16
    assert config.fixed_object_grouping_limit == 64
    assert config.max_refines == 2
    assert config.optimization_timeout == 8000
    assert config.decimation_precision is DecimationPrecision.LOW


@pytest.mark.parametrize(
    'precision, tolerance',
    [
        (DecimationPrecision.UNDEFINED, 0.0),
        (DecimationPrecision.LOW, 650000.0),
        (DecimationPrecision.HIGH, 150000.0),
    ],
)
def test_decimation_tolerance(precision, tolerance):
    assert SolverConfiguration.decimation_tolerance(precision) == tolerance


def test_setters_update_configuration():
    config = _config()
    config.set_object_group_size(2)
    config.set_decimation_precision(DecimationPrecision.HIGH)

    assert config.object_group_size == 2
    assert config.decimation_precision is DecimationPrecision.HIGH


def test_default_configuration_is_copied():
    original = get_default_solver_configuration()
    try:
        changed = get_default_solver_configuration()
        changed.temporal_spread = 99
        assert get_default_solver_configuration().temporal_spread == original.temporal_spread

        set_default_solver_configuration(changed)
        changed.temporal_spread = 5
        assert get_default_solver_configuration().temporal_spread == 99
    finally:
        set_default_solver_configuration(original)


def test_valid_inputs_pass():
    printer = _printer()
    validate_printer_geometry(printer)
    validate_solver_configuration(_config())
    validate_objects_to_print(
        [ObjectToPrint(id=1, pgns_at_height=[(0, _square(0, 0, 10)), (50, _square(0, 0, 10))])], printer
    )


@pytest.mark.parametrize(
    'overrides, message_part',
    [
        ({'object_group_size': 0}, 'object_group_size'),
        ({'temporal_spread': 0}, 'temporal_spread'),
        ({'bounding_box_size_optimization_step': 0}, 'bounding_box_size_optimization_step'),
        ({'max_refines': -1}, 'max_refines'),
        ({'optimization_timeout': 0}, 'optimization_timeout'),
    ],
)
def test_bad_configuration_values(overrides, message_part):
    with pytest.raises(UnsupportedConfigurationError) as exc:
        validate_solver_configuration(_config(**overrides))

    assert message_part in str(exc.value)


def test_configuration_without_plate_is_rejected():
    with pytest.raises(UnsupportedConfigurationError):
        validate_solver_configuration(SolverConfiguration())


def test_non_convex_plate_is_rejected():
    printer = _printer()
    printer.plate = Polygon(((0, 0), (100, 0), (50, 30), (100, 100), (0, 100)))

    with pytest.raises(UnsupportedConfigurationError) as exc:
        validate_printer_geometry(printer)

    assert 'convex' in str(exc.value)


def test_missing_extruder_slice_is_rejected():
    printer = _printer()
    del printer.extruder_slices[50]

    with pytest.raises(UnsupportedConfigurationError):
        validate_printer_geometry(printer)


def test_object_needs_nozzle_level():
    with pytest.raises(UnsupportedConfigurationError) as exc:
        validate_objects_to_print([ObjectToPrint(id=4, pgns_at_height=[(50, _square(0, 0, 10))])], _printer())

    assert 'convex' in str(exc.value)


def test_object_heights_must_match_printer():
    with pytest.raises(UnsupportedConfigurationError):
        validate_objects_to_print(
            [ObjectToPrint(id=4, pgns_at_height=[(0, _square(0, 0, 10)), (7, _square(0, 0, 10))])], _printer()
        )


def test_duplicate_ids_are_rejected():
    objects = [
        SolvableObject(id=1, polygon=_square(0, 0, 10)),
        SolvableObject(id=1, polygon=_square(0, 0, 10)),
    ]

    with pytest.raises(UnsupportedConfigurationError):
        validate_solvable_objects(objects)


def test_unsupported_configuration_is_a_value_error():
    assert issubclass(UnsupportedConfigurationError, ValueError)
