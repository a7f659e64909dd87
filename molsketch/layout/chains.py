"""
Chain extension: zig-zag placement of the longest unplaced acyclic paths.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from ..types import Point
from .geometry import centroid, degrees_to_radians, largest_gap_direction, open_direction, unit_vector

if TYPE_CHECKING:
    from .graph import ComponentGraph
    from .tuning import LayoutTuning


logger = logging.getLogger(__name__)


def _better_path(path: Sequence[int], best: Sequence[int]) -> bool:
    """Longer wins; equal lengths compare lexicographically."""
    if len(path) != len(best):
        return len(path) > len(best)
    return list(path) < list(best)


def within_tolerance(preferred: float, alternate: float, tolerance: float) -> bool:
    """``preferred`` is at most ``tolerance - 1`` of ``|alternate|`` worse than ``alternate``.

    Scores can be negative, so the margin is taken from the magnitude.
    """
    return preferred - alternate <= abs(alternate) * (tolerance - 1.0)


def longest_unplaced_chain(
    graph: ComponentGraph,
    anchor: int,
    start: int,
    positions: dict[int, Point],
) -> list[int]:
    """Longest path ``anchor, start, ...`` through unplaced chain atoms.

    The path grows over non-ring heavy atoms joined by non-ring single
    bonds. Stepping onto a ring atom ends the path with that atom included.
    The search uses an explicit stack and visits neighbours in ascending id
    order; among equally long paths the lexicographically smaller one wins.
    """
    if start in positions:
        return [anchor]
    best = [anchor, start]
    if start in graph.ring_atoms:
        return best

    # Frames hold the path and the neighbours still to try from its tip.
    root = [anchor, start]
    stack: list[tuple[list[int], list[int], bool]] = []

    def expand(path: list[int]) -> list[int]:
        tip, prev = path[-1], path[-2]
        return [
            n for n in graph.neighbors(tip)
            if n != prev and n not in positions and n not in path
        ]

    if not graph.is_chain_atom(start):
        return best
    stack.append((root, expand(root), False))

    while stack:
        path, pending, extended = stack.pop()
        while pending:
            nxt = pending.pop(0)
            if nxt in graph.ring_atoms:
                candidate = path + [nxt]
                if _better_path(candidate, best):
                    best = candidate
                continue
            if not graph.is_chain_atom(nxt) or not graph.is_chain_edge(path[-1], nxt):
                continue
            child = path + [nxt]
            stack.append((path, pending, True))
            stack.append((child, expand(child), False))
            break
        else:
            if not extended and _better_path(path, best):
                best = path

    return best


def best_unplaced_chain(graph: ComponentGraph, positions: dict[int, Point]) -> list[int] | None:
    """Longest unplaced chain hanging off any placed atom.

    The first step may not follow a ring bond; rings are completed by ring
    placement instead.

    Returns:
        ``[anchor, ...]`` with at least two atoms, or None.
    """
    best: list[int] = []
    for anchor in graph.placed(positions):
        for start in graph.neighbors(anchor):
            if start in positions or graph.is_ring_edge(anchor, start):
                continue
            chain = longest_unplaced_chain(graph, anchor, start, positions)
            if not best or _better_path(chain, best):
                best = chain
    return best if len(best) >= 2 else None


def initial_chain_vector(
    graph: ComponentGraph,
    anchor: int,
    first: int,
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> Point:
    """Direction of the first chain bond.

    With one placed neighbour the chain continues the zig-zag: the bond is
    turned by the chain angle to the less crowded side. Otherwise it points
    away from the anchor's placed neighbours, or into their widest gap when
    those directions cancel out.
    """
    fallback = unit_vector(degrees_to_radians((anchor * 41 + first * 17) % 360))
    center = positions.get(anchor)
    if center is None:
        return fallback
    placed = [positions[n] for n in graph.neighbors(anchor) if n in positions]
    if len(placed) == 1:
        back = (placed[0] - center).normalized()
        if back is not None:
            reference = centroid(graph.placed_points(positions))
            options = [back.rotated(tuning.chain_angle), back.rotated(-tuning.chain_angle)]
            return min(
                options,
                key=lambda v: chain_point_score(center + v * tuning.bond_length, reference, positions, tuning),
            )
    return open_direction(center, placed) or largest_gap_direction(center, placed) or fallback


def chain_point_score(
    point: Point,
    reference: Point | None,
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> float:
    """Crowding penalty for a prospective chain atom; lower is better.

    Points far from ``reference`` (the centroid of the rest of the drawing)
    earn a small bonus.
    """
    hard = tuning.scaled(tuning.chain_hard_ratio)
    soft = tuning.scaled(tuning.chain_soft_ratio)
    score = 0.0
    for q in positions.values():
        d = point.distance_to(q)
        if d < hard:
            score += (hard - d) ** 2 * tuning.chain_hard_penalty
        elif d < soft:
            score += (soft - d) ** 2 * tuning.chain_soft_penalty
    if reference is not None:
        score -= point.distance_to(reference) * tuning.chain_centroid_weight
    return score


def place_linear_chain(
    graph: ComponentGraph,
    chain: Sequence[int],
    initial: Point,
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> None:
    """Lay out ``chain`` as a zig-zag starting at the placed ``chain[0]``.

    Each atom after the second turns the previous bond by the chain angle to
    one side or the other. The turn alternates unless the alternate point is
    crowded enough to score worse than ``chain_turn_tolerance`` times the
    other one.
    """
    if len(chain) < 2 or chain[0] not in positions:
        return
    b = tuning.bond_length
    anchor_pos = positions[chain[0]]
    direction = initial.normalized() or Point(1.0, 0.0)
    if chain[1] not in positions:
        positions[chain[1]] = anchor_pos + direction * b
    if len(chain) < 3:
        return

    reference = centroid(graph.placed_points(positions, excluding=chain[1:]))
    last_sign = 0

    for i in range(2, len(chain)):
        a, mid, c = chain[i - 2], chain[i - 1], chain[i]
        if a not in positions or mid not in positions:
            continue
        pa, pb = positions[a], positions[mid]
        back = (pa - pb).normalized() or Point(1.0, 0.0)
        p1 = pb + back.rotated(tuning.chain_angle) * b
        p2 = pb + back.rotated(-tuning.chain_angle) * b
        s1 = chain_point_score(p1, reference, positions, tuning)
        s2 = chain_point_score(p2, reference, positions, tuning)

        if last_sign == 0:
            pick_first = s1 <= s2
        else:
            preferred_sign = -last_sign
            preferred, alternate = (s1, s2) if preferred_sign > 0 else (s2, s1)
            if within_tolerance(preferred, alternate, tuning.chain_turn_tolerance):
                pick_first = preferred_sign > 0
            else:
                pick_first = s1 <= s2

        positions[c] = p1 if pick_first else p2
        last_sign = 1 if pick_first else -1


def place_longest_unplaced_chains(
    graph: ComponentGraph,
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> bool:
    """Repeatedly place the best remaining chain.

    Returns:
        True if any chain was placed.
    """
    placed_any = False
    for _ in range(tuning.chain_pass_limit):
        chain = best_unplaced_chain(graph, positions)
        if chain is None:
            break
        vector = initial_chain_vector(graph, chain[0], chain[1], positions, tuning)
        place_linear_chain(graph, chain, vector, positions, tuning)
        logger.debug("placed chain %s", chain)
        placed_any = True
    return placed_any
