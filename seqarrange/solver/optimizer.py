"""Shrinking the area that the undecided objects of a batch may occupy.

Both strategies keep the last bounds for which the batch was solved and
refined successfully. Bounds are passed as assumption literals so the same
solver session serves every candidate.
"""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Callable, List, Optional, Sequence

import z3

from ..geometry import BoundingBox, Polygon
from ..model import InvariantViolationError, ProgressRange
from .builder import ArrangementProblem, Bounds
from .refine import refine_solution
from .types import DecisionVectors

logger = logging.getLogger(__name__)

ProgressReport = Callable[[int], None]


def check_area(bounds: Bounds, problem: ArrangementProblem, present: Sequence[int]) -> bool:
    """Cheap pre-filter: the bounds must at least hold the summed footprint area."""

    return bounds.area() >= problem.footprint_area(present)


def check_extents(values: DecisionVectors, problem: ArrangementProblem, present: Sequence[int], box: BoundingBox) -> bool:
    for index in present:
        extents = problem.objects[index].polygon.bounding_box()
        x = values.x[index].as_fraction()
        y = values.y[index].as_fraction()
        if x + extents.min_x < box.min_x or x + extents.max_x > box.max_x:
            return False
        if y + extents.min_y < box.min_y or y + extents.max_y > box.max_y:
            return False
    return True


def _solve_within(
    problem: ArrangementProblem, bounds: Bounds, present: Sequence[int], assumptions: List[z3.BoolRef]
) -> Optional[DecisionVectors]:
    if not check_area(bounds, problem, present):
        return None
    literal = problem.bounds_literal(bounds, present)
    values = refine_solution(problem, assumptions + [literal], present)
    if values is not None and isinstance(bounds, BoundingBox) and not check_extents(values, problem, present, bounds):
        raise InvariantViolationError(f"solver placed objects outside {bounds}")
    return values


def _report(progress: Optional[ProgressReport], progress_range: Optional[ProgressRange], done: int, total: int) -> None:
    if progress is None or progress_range is None:
        return
    span = progress_range.max - progress_range.min
    progress(progress_range.min + span * min(done, total) // max(total, 1))


def _expected_bisections(extent: Fraction, step: int) -> int:
    if extent <= step:
        return 1
    return int(math.ceil(math.log2(float(extent) / step))) + 1


def optimize_binary_centered(
    problem: ArrangementProblem,
    present: Sequence[int],
    *,
    progress: Optional[ProgressReport] = None,
    progress_range: Optional[ProgressRange] = None,
) -> Optional[DecisionVectors]:
    """Bisect the size of plate-centred bounds, checking the full plate first."""

    assumptions = problem.assumptions(present)
    plate = problem.plate_bounds()
    best = _solve_within(problem, plate, present, assumptions)
    if best is None:
        logger.debug("Batch %s does not fit the full plate", list(present))
        return None

    config = problem.config
    step = config.bounding_box_size_optimization_step
    if isinstance(plate, BoundingBox):
        best = _bisect_box(problem, plate, present, assumptions, best, step, progress, progress_range)
    else:
        best = _bisect_polygon(problem, plate, present, assumptions, best, step, progress, progress_range)
    _report(progress, progress_range, 1, 1)
    return best


def _bisect_box(
    problem: ArrangementProblem,
    plate: BoundingBox,
    present: Sequence[int],
    assumptions: List[z3.BoolRef],
    best: DecisionVectors,
    step: int,
    progress: Optional[ProgressReport],
    progress_range: Optional[ProgressRange],
) -> DecisionVectors:
    cx, cy = plate.center()
    outer_x, outer_y = Fraction(plate.width, 2), Fraction(plate.height, 2)
    half_minimum = Fraction(problem.config.minimum_bounding_box_size, 2)
    inner_x, inner_y = min(half_minimum, outer_x), min(half_minimum, outer_y)
    expected = _expected_bisections(max(outer_x - inner_x, outer_y - inner_y) * 2, step)

    iteration = 0
    while 2 * max(outer_x - inner_x, outer_y - inner_y) >= step:
        half_x = (inner_x + outer_x) / 2
        half_y = (inner_y + outer_y) / 2
        box = BoundingBox(cx - half_x, cy - half_y, cx + half_x, cy + half_y)
        values = _solve_within(problem, box, present, assumptions)
        if values is not None:
            best = values
            outer_x, outer_y = half_x, half_y
        else:
            inner_x, inner_y = half_x, half_y
        iteration += 1
        logger.debug("Bisection %d: half extents %s x %s feasible=%s", iteration, float(half_x), float(half_y), values is not None)
        _report(progress, progress_range, iteration, expected)
    return best


def _bisect_polygon(
    problem: ArrangementProblem,
    plate: Polygon,
    present: Sequence[int],
    assumptions: List[z3.BoolRef],
    best: DecisionVectors,
    step: int,
    progress: Optional[ProgressReport],
    progress_range: Optional[ProgressRange],
) -> DecisionVectors:
    box = plate.bounding_box()
    cx, cy = box.center()
    extent = Fraction(max(box.width, box.height))
    outer = Fraction(1)
    inner = min(Fraction(problem.config.minimum_bounding_box_size) / extent, outer)
    expected = _expected_bisections(extent, step)

    iteration = 0
    while (outer - inner) * extent >= step:
        factor = (inner + outer) / 2
        values = _solve_within(problem, plate.scaled_about(cx, cy, factor), present, assumptions)
        if values is not None:
            best = values
            outer = factor
        else:
            inner = factor
        iteration += 1
        logger.debug("Bisection %d: scale %s feasible=%s", iteration, float(factor), values is not None)
        _report(progress, progress_range, iteration, expected)
    return best


def optimize_linear(
    problem: ArrangementProblem,
    present: Sequence[int],
    *,
    progress: Optional[ProgressReport] = None,
    progress_range: Optional[ProgressRange] = None,
) -> Optional[DecisionVectors]:
    """Shrink the bounds step by step from the full plate until a solve fails."""

    assumptions = problem.assumptions(present)
    config = problem.config
    step = config.bounding_box_size_optimization_step
    minimum = config.minimum_bounding_box_size
    plate = problem.plate_bounds()

    best: Optional[DecisionVectors] = None
    if isinstance(plate, BoundingBox):
        width, height = plate.width, plate.height
        expected = max(1, int((min(width, height) - minimum) // step) + 1)
        iteration = 0
        while width >= minimum and height >= minimum:
            box = BoundingBox(plate.min_x, plate.min_y, plate.min_x + width, plate.min_y + height)
            values = _solve_within(problem, box, present, assumptions)
            if values is None:
                break
            best = values
            width -= step
            height -= step
            iteration += 1
            _report(progress, progress_range, iteration, expected)
    else:
        extents = plate.bounding_box()
        cx, cy = extents.center()
        extent = Fraction(max(extents.width, extents.height))
        decrement = Fraction(step) / extent
        floor = Fraction(minimum) / extent
        factor = Fraction(1)
        expected = max(1, int((1 - floor) / decrement) + 1)
        iteration = 0
        while factor >= floor and factor > 0:
            values = _solve_within(problem, plate.scaled_about(cx, cy, factor), present, assumptions)
            if values is None:
                break
            best = values
            factor -= decrement
            iteration += 1
            _report(progress, progress_range, iteration, expected)
    _report(progress, progress_range, 1, 1)
    return best


__all__ = ["check_area", "check_extents", "optimize_binary_centered", "optimize_linear"]
