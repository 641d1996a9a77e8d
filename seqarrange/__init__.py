from .rational import Rational
from .geometry import BoundingBox, Line, Polygon
from .model import (
    DecimationPrecision,
    InvariantViolationError,
    ObjectTooLargeError,
    ObjectToPrint,
    PrinterGeometry,
    ProgressRange,
    ScheduledObject,
    ScheduledPlate,
    ScheduleResult,
    SchedulingFailure,
    SequentialArrangeError,
    SolvableObject,
    SolverConfiguration,
    UnsupportedConfigurationError,
)
from .config import get_default_solver_configuration, set_default_solver_configuration
from .preprocess import glue_low_objects, prepare_solvable_objects, scale_down_coordinate, scale_up_position
from .interface import (
    check_scheduled_objects_for_sequential_conflict,
    check_scheduled_objects_for_sequential_printability,
    schedule_objects_for_sequential_print,
    schedule_solvable_objects,
)

__all__ = [
    'BoundingBox',
    'DecimationPrecision',
    'InvariantViolationError',
    'Line',
    'ObjectTooLargeError',
    'ObjectToPrint',
    'Polygon',
    'PrinterGeometry',
    'ProgressRange',
    'Rational',
    'ScheduledObject',
    'ScheduledPlate',
    'ScheduleResult',
    'SchedulingFailure',
    'SequentialArrangeError',
    'SolvableObject',
    'SolverConfiguration',
    'UnsupportedConfigurationError',
    'check_scheduled_objects_for_sequential_conflict',
    'check_scheduled_objects_for_sequential_printability',
    'get_default_solver_configuration',
    'glue_low_objects',
    'prepare_solvable_objects',
    'scale_down_coordinate',
    'scale_up_position',
    'schedule_objects_for_sequential_print',
    'schedule_solvable_objects',
    'set_default_solver_configuration',
]
