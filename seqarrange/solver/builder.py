"""Constraint emitters and the per-batch arrangement problem.

Each geometric predicate has exactly one emitter that works on
:class:`~seqarrange.solver.types.PositionRef` values, so the same code
covers undecided/undecided, undecided/fixed and fixed/undecided pairs.
Clauses that mention an undecided object are guarded by its presence
literal; a batch member is dropped by assuming the literal false.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from itertools import combinations
from typing import Dict, List, Optional, Sequence, Tuple, Union

import z3

from ..constants import INTERSECTION_REPULSION_MAX, INTERSECTION_REPULSION_MIN
from ..geometry import BoundingBox, Line, Polygon, convex_hull_of_polygons, lines_intersect_infinite
from ..model import InvariantViolationError, SolvableObject, SolverConfiguration
from ..logging_utils import apply_debug_logging
from ..rational import Rational
from .session import SolverSession
from .types import DecisionVectors, Fixed, PositionRef, Presence, Variable

logger = logging.getLogger(__name__)

Bounds = Union[BoundingBox, Polygon]
Terms = Tuple[z3.ArithRef, z3.ArithRef, z3.ArithRef]

PROXY_INDEX = -1


def _terms(session: SolverSession, ref: PositionRef) -> Terms:
    return session.term(ref.x), session.term(ref.y), session.term(ref.t)


def point_outside_polygon(
    session: SolverSession,
    px: z3.ArithRef,
    py: z3.ArithRef,
    polygon: Polygon,
    ox: z3.ArithRef,
    oy: z3.ArithRef,
) -> Optional[z3.BoolRef]:
    """``(px, py)`` lies strictly outside the CCW convex ``polygon`` shifted by ``(ox, oy)``."""

    sides = []
    for line in polygon.lines():
        if line.is_degenerate():
            continue
        nx, ny = line.normal()
        ax = ox + session.constant(line.a[0])
        ay = oy + session.constant(line.a[1])
        sides.append(session.constant(nx) * (px - ax) + session.constant(ny) * (py - ay) > 0)
    return session.disjunction(sides)


def point_inside_polygon(
    session: SolverSession, px: z3.ArithRef, py: z3.ArithRef, polygon: Polygon
) -> List[z3.BoolRef]:
    """Half-plane conditions keeping ``(px, py)`` inside the CCW convex ``polygon``."""

    sides = []
    for line in polygon.lines():
        if line.is_degenerate():
            continue
        nx, ny = line.normal()
        sides.append(
            session.constant(nx) * (px - session.constant(line.a[0]))
            + session.constant(ny) * (py - session.constant(line.a[1]))
            <= 0
        )
    return sides


def bed_box_formulas(
    session: SolverSession, ref: PositionRef, polygon: Polygon, box: BoundingBox
) -> List[z3.BoolRef]:
    x, y, _ = _terms(session, ref)
    extents = polygon.bounding_box()
    return [
        x + session.constant(extents.min_x) >= session.constant(box.min_x),
        x + session.constant(extents.max_x) <= session.constant(box.max_x),
        y + session.constant(extents.min_y) >= session.constant(box.min_y),
        y + session.constant(extents.max_y) <= session.constant(box.max_y),
    ]


def bed_polygon_formulas(
    session: SolverSession, ref: PositionRef, polygon: Polygon, plate: Polygon
) -> List[z3.BoolRef]:
    if not plate.is_counter_clockwise():
        raise InvariantViolationError("plate bounding polygon reached the builder in clockwise order")
    x, y, _ = _terms(session, ref)
    formulas: List[z3.BoolRef] = []
    for vx, vy in polygon.points:
        formulas.extend(point_inside_polygon(session, x + session.constant(vx), y + session.constant(vy), plate))
    return formulas


def bed_formulas(session: SolverSession, ref: PositionRef, polygon: Polygon, bounds: Bounds) -> List[z3.BoolRef]:
    if isinstance(bounds, BoundingBox):
        return bed_box_formulas(session, ref, polygon, bounds)
    return bed_polygon_formulas(session, ref, polygon, bounds)


def footprint_outside_zones(
    session: SolverSession,
    ref_a: PositionRef,
    obj_a: SolvableObject,
    ref_b: PositionRef,
    obj_b: SolvableObject,
) -> List[z3.BoolRef]:
    """Every vertex of A's footprint avoids B's unreachable zones unless A is printed after B."""

    xa, ya, ta = _terms(session, ref_a)
    xb, yb, tb = _terms(session, ref_b)
    later = ta > tb
    formulas: List[z3.BoolRef] = []
    for zone in obj_b.unreachable_polygons:
        if len(zone) < 3:
            continue
        for vx, vy in obj_a.polygon.points:
            outside = point_outside_polygon(
                session, xa + session.constant(vx), ya + session.constant(vy), zone, xb, yb
            )
            if outside is not None:
                formulas.append(z3.Or(later, outside))
    return formulas


def weak_nonoverlap_formulas(
    session: SolverSession,
    ref_a: PositionRef,
    obj_a: SolvableObject,
    ref_b: PositionRef,
    obj_b: SolvableObject,
) -> List[z3.BoolRef]:
    return footprint_outside_zones(session, ref_a, obj_a, ref_b, obj_b) + footprint_outside_zones(
        session, ref_b, obj_b, ref_a, obj_a
    )


def temporal_ordering_formula(
    session: SolverSession, ref_i: PositionRef, ref_j: PositionRef, spread: int
) -> z3.BoolRef:
    _, _, ti = _terms(session, ref_i)
    _, _, tj = _terms(session, ref_j)
    return z3.Or(ti > tj + spread, tj > ti + spread)


def lepox_window_formula(
    session: SolverSession, ref_i: PositionRef, ref_next: PositionRef, spread: int
) -> z3.BoolRef:
    """The glued successor starts within ``(T_i + spread, T_i + 1.5 * spread)``."""

    _, _, ti = _terms(session, ref_i)
    _, _, tn = _terms(session, ref_next)
    return z3.And(tn > ti + spread, tn < ti + session.constant(Fraction(3 * spread, 2)))


def lepox_reservation_formula(
    session: SolverSession, ref_i: PositionRef, ref_other: PositionRef, spread: int
) -> z3.BoolRef:
    """Keep the glued successor's window free of any other object."""

    _, _, ti = _terms(session, ref_i)
    _, _, tk = _terms(session, ref_other)
    return z3.Or(tk <= ti + spread, tk >= ti + session.constant(Fraction(3 * spread, 2)))


def lepox_gap_formula(
    session: SolverSession, ref_i: PositionRef, ref_next: PositionRef, ref_other: PositionRef
) -> z3.BoolRef:
    """Another object is printed before the glued pair or after it, never in between."""

    _, _, ti = _terms(session, ref_i)
    _, _, tn = _terms(session, ref_next)
    _, _, tk = _terms(session, ref_other)
    return z3.Or(tk < ti, tk > tn)


def trans_bed_lepox_formula(
    session: SolverSession, ref_lead: PositionRef, ref_other: PositionRef, spread: int
) -> z3.BoolRef:
    _, _, tl = _terms(session, ref_lead)
    _, _, tk = _terms(session, ref_other)
    return tk > tl + spread


def line_nonintersection_formulas(
    session: SolverSession,
    ref_1: PositionRef,
    line_1: Line,
    ref_2: PositionRef,
    line_2: Line,
) -> List[z3.BoolRef]:
    """Segment ``line_1`` of an earlier object must not cross ``line_2`` of a later one.

    Returns no formulas for parallel or zero-length segments.
    """

    if line_1.is_degenerate() or line_2.is_degenerate() or not lines_intersect_infinite(line_1, line_2):
        return []

    ux, uy = line_1.vector()
    vx, vy = line_2.vector()

    x1, y1, t1 = _terms(session, ref_1)
    x2, y2, t2 = _terms(session, ref_2)
    c = session.constant
    p1 = session.fresh_real("line-param")
    p2 = session.fresh_real("line-param")
    low = c(INTERSECTION_REPULSION_MIN)
    high = c(INTERSECTION_REPULSION_MAX)
    return [
        x1 + c(line_1.a[0]) + p1 * c(ux) == x2 + c(line_2.a[0]) + p2 * c(vx),
        y1 + c(line_1.a[1]) + p1 * c(uy) == y2 + c(line_2.a[1]) + p2 * c(vy),
        z3.Or(t1 > t2, p1 < low, p1 > high, p2 < low, p2 > high),
    ]


@dataclass
class ArenaEntry:
    index: int
    obj: SolvableObject
    presence: Presence
    ref: PositionRef
    literal: Optional[z3.BoolRef] = None


class ArrangementProblem:
    """Constraint model for one batch of undecided objects on one plate.

    ``fixed`` maps arena indices of already placed objects to their
    positions. Once there are more than ``fixed_object_grouping_limit`` of
    them they are replaced by a single proxy: the convex hull of their placed
    footprints at the latest fixed time, which every undecided object must
    follow.
    """

    def __init__(
        self,
        session: SolverSession,
        config: SolverConfiguration,
        objects: Sequence[SolvableObject],
        fixed: Dict[int, Fixed],
        batch: Sequence[int],
        *,
        successors: Optional[Dict[int, int]] = None,
        pending: Sequence[int] = (),
        lead: Optional[int] = None,
    ) -> None:
        self.session = session
        self.config = config
        self.objects = objects
        self.batch = list(batch)
        self.successors = dict(successors or {})
        self.pending = set(pending)
        self.lead = lead
        self.fixed = dict(fixed)
        self.entries: Dict[int, ArenaEntry] = {}
        self.proxy: Optional[ArenaEntry] = None

        for index in self.batch:
            ref = Variable(
                session.real(f"x-{index}"),
                session.real(f"y-{index}"),
                session.real(f"t-{index}"),
            )
            self.entries[index] = ArenaEntry(
                index, objects[index], Presence.UNDECIDED, ref, session.boolean(f"present-{index}")
            )

        if len(self.fixed) > config.fixed_object_grouping_limit:
            self.proxy = self._make_proxy()
        else:
            for index, position in self.fixed.items():
                self.entries[index] = ArenaEntry(index, objects[index], Presence.PRESENT, position)

    def _make_proxy(self) -> ArenaEntry:
        placed = [
            self.objects[index].polygon.translated(position.x.as_fraction(), position.y.as_fraction())
            for index, position in self.fixed.items()
        ]
        hull = convex_hull_of_polygons(placed)
        latest = max(position.t for position in self.fixed.values())
        logger.debug("Grouping %d fixed objects into a proxy of %d vertices", len(self.fixed), len(hull))
        proxy_object = SolvableObject(id=PROXY_INDEX, polygon=hull, unreachable_polygons=[])
        return ArenaEntry(PROXY_INDEX, proxy_object, Presence.PRESENT, Fixed(Rational(0), Rational(0), latest))

    def presence(self, index: int) -> Presence:
        entry = self.entries.get(index)
        return entry.presence if entry is not None else Presence.ABSENT

    def undecided(self) -> List[ArenaEntry]:
        return [self.entries[index] for index in self.batch]

    def fixed_entries(self) -> List[ArenaEntry]:
        if self.proxy is not None:
            return [self.proxy]
        return [entry for entry in self.entries.values() if entry.presence == Presence.PRESENT]

    def guard(self, *entries: ArenaEntry) -> List[z3.BoolRef]:
        return [entry.literal for entry in entries if entry.literal is not None]

    def add_guarded(self, guards: Sequence[z3.BoolRef], formulas: Sequence[z3.BoolRef]) -> None:
        if not formulas:
            return
        body = self.session.conjunction(formulas)
        condition = self.session.conjunction(guards)
        self.session.add(body if condition is None else z3.Implies(condition, body))

    def add_for(self, entries: Sequence[ArenaEntry], formulas: Sequence[z3.BoolRef]) -> None:
        self.add_guarded(self.guard(*entries), formulas)

    def build(self) -> None:
        """Emit the permanent constraints of the batch."""

        spread = self.config.temporal_spread
        session = self.session
        undecided = self.undecided()
        fixed = self.fixed_entries()

        for entry in undecided:
            _, _, t = _terms(session, entry.ref)
            session.add(t >= 0)
            self.add_for([entry], bed_formulas(session, entry.ref, entry.obj.polygon, self.plate_bounds()))

        for first, second in combinations(undecided, 2):
            self.add_for(
                [first, second], weak_nonoverlap_formulas(session, first.ref, first.obj, second.ref, second.obj)
            )
            self.add_for([first, second], [temporal_ordering_formula(session, first.ref, second.ref, spread)])

        for entry in undecided:
            for other in fixed:
                if other is self.proxy:
                    self.add_for(
                        [entry], footprint_outside_zones(session, other.ref, other.obj, entry.ref, entry.obj)
                    )
                    self.add_for([entry], [trans_bed_lepox_formula(session, other.ref, entry.ref, spread)])
                    continue
                self.add_for(
                    [entry], weak_nonoverlap_formulas(session, entry.ref, entry.obj, other.ref, other.obj)
                )
                self.add_for([entry], [temporal_ordering_formula(session, entry.ref, other.ref, spread)])

        self._build_lepox(spread)
        self._build_trans_bed_lepox(spread)

    def _time_ref(self, index: int) -> Optional[ArenaEntry]:
        entry = self.entries.get(index)
        if entry is not None:
            return entry
        if index in self.fixed:
            # grouped into the proxy; the own time still anchors a lepox window
            return ArenaEntry(index, self.objects[index], Presence.PRESENT, self.fixed[index])
        return None

    def _build_lepox(self, spread: int) -> None:
        session = self.session
        participants = self.undecided() + self.fixed_entries()
        for index, successor in self.successors.items():
            first = self._time_ref(index)
            if first is None:
                continue
            following = self._time_ref(successor)
            if following is not None:
                if first.literal is None and following.literal is None:
                    # pair placed together earlier: later objects stay out of its gap
                    for other in self.undecided():
                        self.add_for([other], [lepox_gap_formula(session, first.ref, following.ref, other.ref)])
                    continue
                self.add_for([first, following], [lepox_window_formula(session, first.ref, following.ref, spread)])
                if following.literal is None:
                    continue
                absent_guard = [z3.Not(following.literal)]
            elif successor in self.pending:
                absent_guard = []
            else:
                continue
            # successor postponed: nobody else may take its window
            for other in participants:
                if other.index in (index, successor):
                    continue
                if other.literal is None and first.literal is None:
                    continue
                self.add_guarded(
                    self.guard(first, other) + absent_guard,
                    [lepox_reservation_formula(session, first.ref, other.ref, spread)],
                )

    def _build_trans_bed_lepox(self, spread: int) -> None:
        if self.lead is None:
            return
        lead = self.entries.get(self.lead)
        if lead is None:
            return
        for other in self.undecided() + self.fixed_entries():
            if other.index == lead.index or (other.literal is None and lead.literal is None):
                continue
            self.add_for([lead, other], [trans_bed_lepox_formula(self.session, lead.ref, other.ref, spread)])

    def plate_bounds(self) -> Bounds:
        if self.config.uses_bounding_polygon():
            return self.config.plate_bounding_polygon
        return self.config.plate_extents()

    def assumptions(self, present: Sequence[int]) -> List[z3.BoolRef]:
        chosen = set(present)
        literals = []
        for entry in self.undecided():
            literals.append(entry.literal if entry.index in chosen else z3.Not(entry.literal))
        return literals

    def bounds_literal(self, bounds: Bounds, present: Sequence[int]) -> z3.BoolRef:
        """Fresh literal that, when assumed, keeps every present undecided object inside ``bounds``."""

        literal = self.session.fresh_boolean("bounds")
        formulas: List[z3.BoolRef] = []
        for index in present:
            entry = self.entries[index]
            formulas.extend(bed_formulas(self.session, entry.ref, entry.obj.polygon, bounds))
        body = self.session.conjunction(formulas)
        if body is not None:
            self.session.add(z3.Implies(literal, body))
        return literal

    def extract(self, model: z3.ModelRef, present: Sequence[int]) -> DecisionVectors:
        values = DecisionVectors()
        for index in present:
            entry = self.entries[index]
            x, y, t = self.session.values(model, [entry.ref.x, entry.ref.y, entry.ref.t])
            values.set(index, x, y, t)
        return values

    def resolved_positions(self, values: DecisionVectors, present: Sequence[int]) -> Dict[int, Fixed]:
        """Positions of every object the batch is checked against, including ``present`` ones."""

        positions: Dict[int, Fixed] = {}
        for entry in self.fixed_entries():
            positions[entry.index] = entry.ref
        for index in present:
            positions[index] = values.position(index)
        return positions

    def object_for(self, index: int) -> SolvableObject:
        if index == PROXY_INDEX and self.proxy is not None:
            return self.proxy.obj
        return self.objects[index]

    def entry_for(self, index: int) -> ArenaEntry:
        if index == PROXY_INDEX and self.proxy is not None:
            return self.proxy
        return self.entries[index]

    def add_line_nonintersection(self, earlier: int, line_1: Line, later: int, line_2: Line) -> int:
        first = self.entry_for(earlier)
        second = self.entry_for(later)
        formulas = line_nonintersection_formulas(self.session, first.ref, line_1, second.ref, line_2)
        self.add_for([first, second], formulas)
        return len(formulas)

    def footprint_area(self, present: Sequence[int]) -> float:
        return sum(self.objects[index].polygon.area() for index in present)


apply_debug_logging(globals(), logger=logger, skip={"ArenaEntry", "_terms"})


__all__ = [
    "ArenaEntry",
    "ArrangementProblem",
    "Bounds",
    "PROXY_INDEX",
    "bed_box_formulas",
    "bed_formulas",
    "bed_polygon_formulas",
    "footprint_outside_zones",
    "lepox_gap_formula",
    "lepox_reservation_formula",
    "lepox_window_formula",
    "line_nonintersection_formulas",
    "point_inside_polygon",
    "point_outside_polygon",
    "temporal_ordering_formula",
    "trans_bed_lepox_formula",
    "weak_nonoverlap_formulas",
]
