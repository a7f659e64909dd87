"""
Post-placement refinement: bond flips and force relaxation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..elements import BondOrder
from ..types import Point
from .geometry import reflect, segment_distance, segments_intersect

if TYPE_CHECKING:
    from ..types import Bond
    from .graph import ComponentGraph
    from .tuning import LayoutTuning


logger = logging.getLogger(__name__)


def _share_atom(b1: Bond, b2: Bond) -> bool:
    return bool({b1.atom1_idx, b1.atom2_idx} & {b2.atom1_idx, b2.atom2_idx})


def count_crossings(graph: ComponentGraph, positions: dict[int, Point]) -> int:
    """Number of crossing pairs among bonds that share no atom."""
    bonds = graph.bonds()
    crossings = 0
    for i, b1 in enumerate(bonds):
        for b2 in bonds[i + 1:]:
            if _share_atom(b1, b2):
                continue
            ends = (b1.atom1_idx, b1.atom2_idx, b2.atom1_idx, b2.atom2_idx)
            if any(idx not in positions for idx in ends):
                continue
            if segments_intersect(*(positions[idx] for idx in ends)):
                crossings += 1
    return crossings


def layout_penalty(graph: ComponentGraph, positions: dict[int, Point], tuning: LayoutTuning) -> float:
    """Global badness of a component drawing.

    Quadratic terms for non-bonded atoms closer than the soft distance, a
    flat term per bond crossing and a quadratic term for bonds passing
    closer than the near distance.
    """
    atoms = graph.sorted_atoms()
    bonds = graph.bonds()
    bonded = {(min(b.atom1_idx, b.atom2_idx), max(b.atom1_idx, b.atom2_idx)) for b in bonds}
    hard = tuning.scaled(tuning.penalty_hard_ratio)
    soft = tuning.scaled(tuning.penalty_soft_ratio)
    near = tuning.scaled(tuning.penalty_near_ratio)
    score = 0.0

    for i, a in enumerate(atoms):
        if a not in positions:
            continue
        for b in atoms[i + 1:]:
            if (a, b) in bonded or b not in positions:
                continue
            d = positions[a].distance_to(positions[b])
            if d < hard:
                score += (hard - d) ** 2 * tuning.penalty_hard_weight
            elif d < soft:
                score += (soft - d) ** 2 * tuning.penalty_soft_weight

    for i, b1 in enumerate(bonds):
        for b2 in bonds[i + 1:]:
            if _share_atom(b1, b2):
                continue
            ends = (b1.atom1_idx, b1.atom2_idx, b2.atom1_idx, b2.atom2_idx)
            if any(idx not in positions for idx in ends):
                continue
            p1, p2, q1, q2 = (positions[idx] for idx in ends)
            if segments_intersect(p1, p2, q1, q2):
                score += tuning.penalty_crossing
            else:
                d = segment_distance(p1, p2, q1, q2)
                if d < near:
                    score += (near - d) ** 2 * tuning.penalty_near_weight

    return score


def optimize_by_bond_flips(
    graph: ComponentGraph,
    positions: dict[int, Point],
    locked: set[int],
    tuning: LayoutTuning,
) -> int:
    """Mirror substituent trees across single bonds when that lowers the penalty.

    Only acyclic single bonds that disconnect the component are tried, in
    bond id order. The smaller side is reflected across the bond line
    (the side of the first atom on a tie) unless it holds a locked atom.

    Returns:
        Number of accepted flips.
    """
    accepted = 0
    for bond in graph.bonds():
        a1, a2 = bond.atom1_idx, bond.atom2_idx
        if bond.order is not BondOrder.SINGLE or graph.is_ring_edge(a1, a2):
            continue
        left = graph.side_component(a1, a1, a2)
        if a2 in left:
            continue
        right = set(graph.atoms) - left
        side = left if len(left) <= len(right) else right
        if not side or side & locked:
            continue
        if a1 not in positions or a2 not in positions:
            continue

        p1, p2 = positions[a1], positions[a2]
        before = layout_penalty(graph, positions, tuning)
        trial = dict(positions)
        for idx in side:
            if idx in trial:
                trial[idx] = reflect(trial[idx], p1, p2)
        after = layout_penalty(graph, trial, tuning)
        if after < before * tuning.flip_gain_threshold:
            positions.update(trial)
            accepted += 1
            logger.debug("flipped bond %d: penalty %.3f -> %.3f", bond.idx, before, after)
    return accepted


def relax(
    graph: ComponentGraph,
    positions: dict[int, Point],
    locked: set[int],
    tuning: LayoutTuning,
    iterations: int | None = None,
) -> None:
    """Iteratively correct bond lengths, crowding and crossings in place.

    Each sweep pulls bonded pairs towards the bond length, pushes apart
    non-bonded pairs closer than the minimum distance and nudges crossing
    bonds sideways. Locked atoms never move.
    """
    atoms = graph.sorted_atoms()
    if len(atoms) < 2:
        return
    bonds = graph.bonds()
    bonded = {(min(b.atom1_idx, b.atom2_idx), max(b.atom1_idx, b.atom2_idx)) for b in bonds}
    b_len = tuning.bond_length
    min_distance = tuning.scaled(tuning.non_bonded_min_ratio)
    push = tuning.scaled(tuning.crossing_push_ratio)
    sweeps = tuning.relax_iterations if iterations is None else iterations

    def shift(idx: int, delta: Point) -> None:
        if idx not in locked and idx in positions:
            positions[idx] = positions[idx] + delta

    for _ in range(sweeps):
        for bond in bonds:
            a, b = bond.atom1_idx, bond.atom2_idx
            if a not in positions or b not in positions:
                continue
            v = positions[b] - positions[a]
            d = max(1e-4, v.length())
            u = v * (1.0 / d)
            delta = (d - b_len) * tuning.spring_factor
            shift(a, u * delta)
            shift(b, u * -delta)

        for i, a in enumerate(atoms):
            for b in atoms[i + 1:]:
                if (a, b) in bonded or a not in positions or b not in positions:
                    continue
                v = positions[b] - positions[a]
                d = max(1e-4, v.length())
                if d >= min_distance:
                    continue
                u = v * (1.0 / d)
                amount = (min_distance - d) * tuning.non_bonded_push_factor
                shift(a, u * -amount)
                shift(b, u * amount)

        for i, b1 in enumerate(bonds):
            for b2 in bonds[i + 1:]:
                if _share_atom(b1, b2):
                    continue
                ends = (b1.atom1_idx, b1.atom2_idx, b2.atom1_idx, b2.atom2_idx)
                if any(idx not in positions for idx in ends):
                    continue
                p1, p2, q1, q2 = (positions[idx] for idx in ends)
                if not segments_intersect(p1, p2, q1, q2):
                    continue
                v1 = (p2 - p1).normalized() or Point(1.0, 0.0)
                v2 = (q2 - q1).normalized() or Point(0.0, 1.0)
                sign = 1.0 if v1.cross(v2) >= 0 else -1.0
                perp1 = Point(-v1.y * sign, v1.x * sign) * push
                perp2 = Point(v2.y * sign, -v2.x * sign) * push
                shift(b1.atom1_idx, perp1)
                shift(b1.atom2_idx, perp1)
                shift(b2.atom1_idx, perp2)
                shift(b2.atom2_idx, perp2)
