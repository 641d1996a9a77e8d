"""Counter-example guided refinement of the weak non-overlap model.

The permanent model only keeps footprint *vertices* out of unreachable
zones, so edges may still cross. After each satisfying assignment the
placed edges are checked and every crossing pair is excluded with a line
non-intersection constraint before solving again.
"""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple

import z3

from ..geometry import Line, placed_lines_intersect
from .builder import ArrangementProblem
from .types import DecisionVectors, Fixed

logger = logging.getLogger(__name__)

Violation = Tuple[int, Line, int, Line]


def find_line_violations(
    problem: ArrangementProblem, positions: Dict[int, Fixed], undecided: Sequence[int]
) -> List[Violation]:
    """Edges of an earlier footprint that cross edges of a later object's unreachable zones."""

    open_set = set(undecided)
    violations: List[Violation] = []
    for a, b in combinations(sorted(positions), 2):
        if a not in open_set and b not in open_set:
            continue
        earlier, later = (a, b) if positions[a].t <= positions[b].t else (b, a)
        first = positions[earlier]
        second = positions[later]
        first_obj = problem.object_for(earlier)
        second_obj = problem.object_for(later)
        x1, y1 = first.x.as_float(), first.y.as_float()
        x2, y2 = second.x.as_float(), second.y.as_float()
        for line_1 in first_obj.polygon.lines():
            for zone in second_obj.unreachable_polygons:
                for line_2 in zone.lines():
                    if placed_lines_intersect(line_1, x1, y1, line_2, x2, y2, closed=True):
                        violations.append((earlier, line_1, later, line_2))
    return violations


def refine_solution(
    problem: ArrangementProblem,
    assumptions: Sequence[z3.BoolRef],
    present: Sequence[int],
    max_refines: Optional[int] = None,
) -> Optional[DecisionVectors]:
    """Solve under ``assumptions`` and refine until the placement has no crossing edges.

    Returns ``None`` when a solve is not ``sat`` or when more than
    ``max_refines`` refinement rounds would be needed.
    """

    limit = problem.config.max_refines if max_refines is None else max_refines
    session = problem.session
    refines = 0
    while True:
        if not session.check(assumptions):
            return None
        values = problem.extract(session.model(), present)
        positions = problem.resolved_positions(values, present)
        violations = find_line_violations(problem, positions, present)
        if not violations:
            return values
        refines += 1
        if refines > limit:
            logger.debug("Giving up after %d refinements with %d crossings left", refines - 1, len(violations))
            return None
        added = 0
        for earlier, line_1, later, line_2 in violations:
            added += problem.add_line_nonintersection(earlier, line_1, later, line_2)
        logger.debug("Refinement %d: %d crossings, %d constraints added", refines, len(violations), added)


__all__ = ["Violation", "find_line_violations", "refine_solution"]
