"""Polygon, line and bounding-box helpers shared by preprocessing and the solver."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np
from scipy.spatial import ConvexHull, QhullError

logger = logging.getLogger(__name__)

Number = Union[int, Fraction]
Point = Tuple[Number, Number]

_PARALLEL_EPS = 1e-12


def trunc_div(value: Number, divisor: int) -> int:
    """Integer division rounding toward zero."""

    quotient = abs(int(value)) // abs(divisor)
    return quotient if (value >= 0) == (divisor > 0) else -quotient


def _as_point(value: Sequence[Number]) -> Point:
    x, y = value
    return (x, y)


@dataclass(frozen=True)
class BoundingBox:
    min_x: Number
    min_y: Number
    max_x: Number
    max_y: Number

    @property
    def width(self) -> Number:
        return self.max_x - self.min_x

    @property
    def height(self) -> Number:
        return self.max_y - self.min_y

    def area(self) -> float:
        return float(self.width) * float(self.height)

    def center(self) -> Tuple[Fraction, Fraction]:
        return (Fraction(self.min_x + self.max_x, 2), Fraction(self.min_y + self.max_y, 2))

    def polygon(self) -> "Polygon":
        return Polygon(
            (
                (self.min_x, self.min_y),
                (self.max_x, self.min_y),
                (self.max_x, self.max_y),
                (self.min_x, self.max_y),
            )
        )

    def scaled_down(self, factor: int) -> "BoundingBox":
        return BoundingBox(
            trunc_div(self.min_x, factor),
            trunc_div(self.min_y, factor),
            trunc_div(self.max_x, factor),
            trunc_div(self.max_y, factor),
        )


@dataclass(frozen=True)
class Line:
    a: Point
    b: Point

    def vector(self) -> Point:
        return (self.b[0] - self.a[0], self.b[1] - self.a[1])

    def normal(self) -> Point:
        """Right-hand normal; points outward for edges of a CCW polygon."""

        dx, dy = self.vector()
        return (dy, -dx)

    def is_degenerate(self) -> bool:
        dx, dy = self.vector()
        return dx == 0 and dy == 0


@dataclass(frozen=True)
class Polygon:
    points: Tuple[Point, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(_as_point(p) for p in self.points))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def is_empty(self) -> bool:
        return not self.points

    def signed_area(self) -> float:
        if len(self.points) < 3:
            return 0.0
        coords = np.array([[float(x), float(y)] for x, y in self.points])
        xs, ys = coords[:, 0], coords[:, 1]
        return 0.5 * float(np.dot(xs, np.roll(ys, -1)) - np.dot(ys, np.roll(xs, -1)))

    def area(self) -> float:
        return abs(self.signed_area())

    def is_counter_clockwise(self) -> bool:
        return self.signed_area() > 0.0

    def make_counter_clockwise(self) -> "Polygon":
        if self.signed_area() < 0.0:
            return Polygon(tuple(reversed(self.points)))
        return self

    def bounding_box(self) -> BoundingBox:
        if not self.points:
            raise ValueError("bounding box of an empty polygon is undefined")
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return BoundingBox(min(xs), min(ys), max(xs), max(ys))

    def lines(self) -> List[Line]:
        count = len(self.points)
        if count < 2:
            return []
        return [Line(self.points[i], self.points[(i + 1) % count]) for i in range(count)]

    def translated(self, dx: Number, dy: Number) -> "Polygon":
        return Polygon(tuple((x + dx, y + dy) for x, y in self.points))

    def scaled_about(self, cx: Number, cy: Number, factor: Fraction) -> "Polygon":
        return Polygon(tuple((cx + (x - cx) * factor, cy + (y - cy) * factor) for x, y in self.points))


def get_extents(polygons: Iterable[Polygon]) -> BoundingBox:
    boxes = [polygon.bounding_box() for polygon in polygons if not polygon.is_empty()]
    if not boxes:
        raise ValueError("extents of an empty polygon set are undefined")
    return BoundingBox(
        min(box.min_x for box in boxes),
        min(box.min_y for box in boxes),
        max(box.max_x for box in boxes),
        max(box.max_y for box in boxes),
    )


def convex_hull(points: Iterable[Point]) -> Polygon:
    """Counter-clockwise convex hull; keeps the exact input coordinates."""

    unique: List[Point] = list(dict.fromkeys(_as_point(p) for p in points))
    if len(unique) < 3:
        return Polygon(tuple(unique))
    coords = np.array([[float(x), float(y)] for x, y in unique])
    try:
        hull = ConvexHull(coords)
    except QhullError:
        # Collinear input: keep the two extreme points.
        order = sorted(unique)
        return Polygon((order[0], order[-1]))
    return Polygon(tuple(unique[i] for i in hull.vertices)).make_counter_clockwise()


def convex_hull_of_polygons(polygons: Iterable[Polygon]) -> Polygon:
    return convex_hull(point for polygon in polygons for point in polygon.points)


def minkowski_sum_convex(first: Polygon, second: Polygon) -> Polygon:
    if first.is_empty() or second.is_empty():
        return Polygon()
    return convex_hull(
        (ax + bx, ay + by) for ax, ay in first.points for bx, by in second.points
    )


def box_sum(first: Polygon, second: Polygon) -> Polygon:
    if first.is_empty() or second.is_empty():
        return Polygon()
    a = first.bounding_box()
    b = second.bounding_box()
    return BoundingBox(a.min_x + b.min_x, a.min_y + b.min_y, a.max_x + b.max_x, a.max_y + b.max_y).polygon()


def point_inside_convex(point: Point, polygon: Polygon, *, strict: bool = False) -> bool:
    """Test ``point`` against a CCW convex polygon by edge half-planes."""

    if len(polygon) < 3:
        return False
    px, py = point
    for line in polygon.lines():
        nx, ny = line.normal()
        side = nx * (px - line.a[0]) + ny * (py - line.a[1])
        if side > 0 or (strict and side == 0):
            return False
    return True


def polygon_inside_convex(inner: Polygon, outer: Polygon) -> bool:
    return all(point_inside_convex(point, outer) for point in inner.points)


def is_convex(polygon: Polygon) -> bool:
    count = len(polygon)
    if count < 3:
        return False
    sign = 0
    for i in range(count):
        ax, ay = polygon.points[i]
        bx, by = polygon.points[(i + 1) % count]
        cx, cy = polygon.points[(i + 2) % count]
        cross = (bx - ax) * (cy - by) - (by - ay) * (cx - bx)
        if cross == 0:
            continue
        current = 1 if cross > 0 else -1
        if sign == 0:
            sign = current
        elif current != sign:
            return False
    return sign != 0


def _intersection_parameters(
    ax: float, ay: float, ux: float, uy: float, bx: float, by: float, vx: float, vy: float
) -> Tuple[float, float] | None:
    den = ux * vy - uy * vx
    if abs(den) <= _PARALLEL_EPS:
        return None
    dx = bx - ax
    dy = by - ay
    t = (dx * vy - dy * vx) / den
    s = (dx * uy - dy * ux) / den
    return t, s


def lines_intersect_infinite(line1: Line, line2: Line) -> bool:
    """Whether the infinite extensions of both lines meet in a single point."""

    ux, uy = line1.vector()
    vx, vy = line2.vector()
    return ux * vy - uy * vx != 0


def lines_intersect_closed(
    ax: float, ay: float, ux: float, uy: float, bx: float, by: float, vx: float, vy: float
) -> bool:
    """Segments ``a + t*u`` and ``b + s*v`` meet for some ``t, s`` in [0, 1]."""

    params = _intersection_parameters(ax, ay, ux, uy, bx, by, vx, vy)
    if params is None:
        return False
    t, s = params
    return 0.0 <= t <= 1.0 and 0.0 <= s <= 1.0


def lines_intersect_open(
    ax: float, ay: float, ux: float, uy: float, bx: float, by: float, vx: float, vy: float
) -> bool:
    """Like :func:`lines_intersect_closed` but excluding the segment endpoints."""

    params = _intersection_parameters(ax, ay, ux, uy, bx, by, vx, vy)
    if params is None:
        return False
    t, s = params
    return 0.0 < t < 1.0 and 0.0 < s < 1.0


def placed_lines_intersect(
    line1: Line, x1: float, y1: float, line2: Line, x2: float, y2: float, *, closed: bool = True
) -> bool:
    ux, uy = line1.vector()
    vx, vy = line2.vector()
    test = lines_intersect_closed if closed else lines_intersect_open
    return test(
        float(line1.a[0]) + x1,
        float(line1.a[1]) + y1,
        float(ux),
        float(uy),
        float(line2.a[0]) + x2,
        float(line2.a[1]) + y2,
        float(vx),
        float(vy),
    )


__all__ = [
    "BoundingBox",
    "Line",
    "Number",
    "Point",
    "Polygon",
    "box_sum",
    "convex_hull",
    "convex_hull_of_polygons",
    "get_extents",
    "is_convex",
    "lines_intersect_closed",
    "lines_intersect_infinite",
    "lines_intersect_open",
    "minkowski_sum_convex",
    "placed_lines_intersect",
    "point_inside_convex",
    "polygon_inside_convex",
    "trunc_div",
]
