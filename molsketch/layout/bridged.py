"""
Fixed frames for bridged ring systems.

Fitting regular polygons ring by ring cannot draw a bridged system without
crossings: the third bridge of bicyclo[2.2.2]octane has nowhere to go once
two hexagons are down. Two topologies are therefore drawn whole from a
template in local coordinates:

* theta systems (two bridgeheads joined by three bridges of two or more
  bonds, e.g. norbornane, bicyclo[2.2.2]octane, DABCO): the shortest bridge
  runs straight between the bridgeheads and the other two bow out on
  either side as circular arcs of unit bonds;
* the adamantane cage (four bridgeheads, every pair linked by a one-atom
  bridge): a fixed crossing-free drawing.

Frames are rigid; refinement keeps their atoms where they are put.
"""

from __future__ import annotations

import math
from typing import Final, Iterable, Sequence

from ..rings import ring_edges
from ..types import Point


THETA_SQUEEZE: Final[float] = 0.85
_BISECTION_STEPS: Final[int] = 60

# Adamantane in unit bond lengths; D sits off-centre with a straight spoke
# to A so that the three spokes from D clear the hexagon.
_ADAMANTANE: Final[dict[str, tuple[float, float]]] = {
    "A": (1.1250, 0.0),
    "AB": (0.5625, 0.9743),
    "B": (-0.5625, 0.9743),
    "BC": (-1.1250, 0.0),
    "C": (-0.5625, -0.9743),
    "CA": (0.5625, -0.9743),
    "D": (-0.6, 0.0),
    "AD": (0.2625, 0.0),
    "BD": (0.4595, 0.4471),
    "CD": (0.4595, -0.4471),
}

Frame = dict[int, Point]


def _arc_angle(chord: float, bonds: int, bond_length: float) -> float:
    """Half the angle subtended by an arc of ``bonds`` unit chords spanning ``chord``."""
    lo, hi = 0.0, math.pi
    for _ in range(_BISECTION_STEPS):
        mid = 0.5 * (lo + hi)
        if bond_length * math.sin(mid) / math.sin(mid / bonds) > chord:
            lo = mid
        else:
            hi = mid
    return 0.5 * (lo + hi)


def arc_points(start: Point, end: Point, bonds: int, bond_length: float, side: float) -> list[Point]:
    """Interior points of a path of ``bonds`` equal bonds from ``start`` to ``end``.

    The path is a circular arc bulging to the left of ``start -> end`` for
    ``side`` 1 and to the right for -1. When the ends are too far apart
    for an arc the points are spaced evenly on the straight line instead.
    """
    if bonds < 2:
        return []
    chord = end - start
    length = chord.length()
    if length >= bonds * bond_length:
        return [start + chord * (k / bonds) for k in range(1, bonds)]

    along = chord.normalized() or Point(1.0, 0.0)
    normal = Point(-along.y, along.x) * side
    phi = _arc_angle(length, bonds, bond_length)
    radius = bond_length / (2.0 * math.sin(phi / bonds))
    center = (start + end) * 0.5 - normal * (radius * math.cos(phi))
    points = []
    for k in range(1, bonds):
        alpha = -phi + 2.0 * phi * k / bonds
        points.append(center + (along * math.sin(alpha) + normal * math.cos(alpha)) * radius)
    return points


def system_adjacency(rings: Iterable[Sequence[int]]) -> dict[int, set[int]]:
    adjacency: dict[int, set[int]] = {}
    for ring in rings:
        for a, b in ring_edges(ring):
            adjacency.setdefault(a, set()).add(b)
            adjacency.setdefault(b, set()).add(a)
    return adjacency


def trace_bridges(adjacency: dict[int, set[int]], heads: set[int]) -> list[tuple[int, ...]]:
    """Paths between bridgeheads whose inner atoms have exactly two ring neighbours.

    Each path is listed once, starting from its smaller end.
    """
    bridges: set[tuple[int, ...]] = set()
    for head in sorted(heads):
        for step in sorted(adjacency[head]):
            path = [head, step]
            while path[-1] not in heads:
                onward = [n for n in adjacency[path[-1]] if n != path[-2]]
                if len(onward) != 1:
                    break
                path.append(onward[0])
            if path[-1] not in heads:
                continue
            if (path[-1], path[-2]) < (path[0], path[1]):
                path.reverse()
            bridges.add(tuple(path))
    return sorted(bridges, key=lambda path: (len(path), path))


def theta_frame(bridges: Sequence[tuple[int, ...]], bond_length: float) -> Frame:
    """Shortest bridge straight along the x axis, the others as arcs above and below."""
    first = min(bridges[0][0], bridges[0][-1])
    oriented = [path if path[0] == first else path[::-1] for path in bridges]
    middle, upper, lower = oriented
    r = len(middle) - 1
    p = len(upper) - 1
    q = len(lower) - 1
    span = r * bond_length * (1.0 if min(p, q) > r else THETA_SQUEEZE)

    start = Point(-0.5 * span, 0.0)
    end = Point(0.5 * span, 0.0)
    frame: Frame = {middle[0]: start, middle[-1]: end}
    for k, idx in enumerate(middle[1:-1], start=1):
        frame[idx] = start + (end - start) * (k / r)
    for path, side in ((upper, 1.0), (lower, -1.0)):
        frame.update(zip(path[1:-1], arc_points(start, end, len(path) - 1, bond_length, side)))
    return frame


def adamantane_frame(heads: Sequence[int], bridges: Sequence[tuple[int, ...]], bond_length: float) -> Frame:
    roles = dict(zip("DABC", sorted(heads)))
    inner = {frozenset((path[0], path[-1])): path[1] for path in bridges}
    frame: Frame = {}
    for name, (x, y) in _ADAMANTANE.items():
        if len(name) == 1:
            idx = roles[name]
        else:
            idx = inner[frozenset((roles[name[0]], roles[name[1]]))]
        frame[idx] = Point(x * bond_length, y * bond_length)
    return frame


def bridged_frame(rings: Sequence[Sequence[int]], bond_length: float) -> Frame | None:
    """Local coordinates for a whole bridged ring system, or None.

    Only theta systems and the adamantane cage have a frame; fused, spiro
    and other bridged systems are left to ring-by-ring placement.
    """
    adjacency = system_adjacency(rings)
    heads = {idx for idx, nbrs in adjacency.items() if len(nbrs) >= 3}
    if not heads or any(len(nbrs) > 3 for nbrs in adjacency.values()):
        return None
    bridges = trace_bridges(adjacency, heads)
    if sum(len(path) - 1 for path in bridges) != sum(len(n) for n in adjacency.values()) // 2:
        return None

    if len(heads) == 2 and len(bridges) == 3 and all(len(path) >= 3 for path in bridges):
        return theta_frame(bridges, bond_length)

    pairs = {frozenset((path[0], path[-1])) for path in bridges}
    if (
        len(heads) == 4
        and len(bridges) == 6
        and all(len(path) == 3 for path in bridges)
        and len(pairs) == 6
        and all(len(pair) == 2 for pair in pairs)
    ):
        return adamantane_frame(sorted(heads), bridges, bond_length)
    return None
