"""
Plane geometry helpers for the layout engine.

All functions work on :class:`molsketch.types.Point` values and treat
vectors shorter than 1e-4 as degenerate.
"""

from __future__ import annotations

import math
from typing import Final

from ..types import Point


_EPSILON: Final[float] = 1e-4


def unit_vector(angle: float) -> Point:
    return Point(math.cos(angle), math.sin(angle))


def degrees_to_radians(degrees: int | float) -> float:
    return float(degrees) * math.pi / 180.0


def orientation(a: Point, b: Point, c: Point) -> float:
    """Signed area of the triangle ``a b c`` (twice over)."""
    return (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)


def segments_intersect(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """Proper intersection of segments ``p1p2`` and ``p3p4``.

    Touching endpoints and collinear overlaps do not count.
    """
    o1 = orientation(p1, p2, p3)
    o2 = orientation(p1, p2, p4)
    o3 = orientation(p3, p4, p1)
    o4 = orientation(p3, p4, p2)
    return o1 * o2 < 0 and o3 * o4 < 0


def point_segment_distance(p: Point, a: Point, b: Point) -> float:
    v = b - a
    len2 = v.dot(v)
    if len2 <= _EPSILON:
        return p.distance_to(a)
    t = max(0.0, min(1.0, (p - a).dot(v) / len2))
    return p.distance_to(a + v * t)


def segment_distance(p1: Point, p2: Point, p3: Point, p4: Point) -> float:
    """Closest approach between two segments; 0 when they cross."""
    if segments_intersect(p1, p2, p3, p4):
        return 0.0
    return min(
        point_segment_distance(p1, p3, p4),
        point_segment_distance(p2, p3, p4),
        point_segment_distance(p3, p1, p2),
        point_segment_distance(p4, p1, p2),
    )


def reflect(p: Point, a: Point, b: Point) -> Point:
    """Mirror ``p`` across the line through ``a`` and ``b``.

    A degenerate line leaves the point where it is.
    """
    v = b - a
    len2 = v.dot(v)
    if len2 <= _EPSILON:
        return p
    t = (p - a).dot(v) / len2
    projection = a + v * t
    return projection * 2.0 - p


def fan_directions(count: int, base_angle: float, total_spread: float) -> list[Point]:
    """``count`` unit vectors spread evenly over ``total_spread`` around ``base_angle``.

    A single direction points straight along ``base_angle``.
    """
    if count <= 0:
        return []
    if count == 1:
        return [unit_vector(base_angle)]
    start = base_angle - total_spread * 0.5
    step = total_spread / (count - 1)
    return [unit_vector(start + i * step) for i in range(count)]


def centroid(points: list[Point]) -> Point | None:
    if not points:
        return None
    n = len(points)
    return Point(sum(p.x for p in points) / n, sum(p.y for p in points) / n)


def open_direction(center: Point, neighbors: list[Point]) -> Point | None:
    """Unit vector pointing away from the neighbours of ``center``.

    None when there are no usable neighbours or their directions cancel.
    """
    total = Point()
    for p in neighbors:
        u = (p - center).normalized()
        if u is not None:
            total = total + u
    return (-total).normalized()


def largest_gap_direction(center: Point, neighbors: list[Point]) -> Point | None:
    """Unit vector bisecting the widest angular gap between neighbour directions."""
    angles = sorted((p - center).angle() for p in neighbors if (p - center).normalized() is not None)
    if not angles:
        return None
    best_start = angles[-1]
    best_gap = angles[0] + 2.0 * math.pi - angles[-1]
    for a, b in zip(angles, angles[1:]):
        if b - a > best_gap:
            best_start, best_gap = a, b - a
    return unit_vector(best_start + best_gap * 0.5)
