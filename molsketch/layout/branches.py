"""
Branch placement: fan out the unplaced neighbours of placed atoms.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from ..types import Point
from .geometry import degrees_to_radians, fan_directions, open_direction, unit_vector
from .rings import attach_ring

if TYPE_CHECKING:
    from .graph import ComponentGraph
    from .tuning import LayoutTuning


logger = logging.getLogger(__name__)


def preferred_angle(graph: ComponentGraph, atom_idx: int, tuning: LayoutTuning) -> float:
    """Substituent angle at an atom: trigonal next to a pi system, else tetrahedral."""
    return tuning.sp2_angle if graph.has_pi_neighborhood(atom_idx) else tuning.sp3_angle


def proposed_directions(
    graph: ComponentGraph,
    center: int,
    placed_neighbors: list[int],
    unplaced_count: int,
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> list[Point]:
    """Unit vectors for the ``unplaced_count`` new neighbours of ``center``."""
    if unplaced_count <= 0:
        return []
    center_pos = positions.get(center)
    if center_pos is None:
        return [unit_vector(i * 2.0 * math.pi / unplaced_count) for i in range(unplaced_count)]

    if not placed_neighbors:
        base = degrees_to_radians((center * 47) % 360)
        return fan_directions(unplaced_count, base, 2.0 * math.pi)

    if len(placed_neighbors) == 1:
        parent = placed_neighbors[0]
        to_parent = (positions[parent] - center_pos).normalized() or Point(-1.0, 0.0)
        target = preferred_angle(graph, center, tuning)
        if unplaced_count == 1:
            sign = 1.0 if (center + parent) % 2 == 0 else -1.0
            return [to_parent.rotated(sign * target)]
        opposite = to_parent.rotated(math.pi)
        spread = min(tuning.branch_open_spread, target + 0.5)
        return fan_directions(unplaced_count, opposite.angle(), spread * 2.0)

    neighbor_points = [positions[n] for n in placed_neighbors]
    direction = open_direction(center_pos, neighbor_points)
    if direction is None:
        first = (neighbor_points[0] - center_pos).normalized()
        direction = Point(-first.y, first.x) if first is not None else Point(1.0, 0.0)
    return fan_directions(unplaced_count, direction.angle(), tuning.branch_fan_spread)


def place_distributed_partners(
    graph: ComponentGraph,
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> bool:
    """Place the unplaced neighbours of every placed atom.

    Rings through a placed atom are completed first; the neighbours still
    missing afterwards are fanned out around it. Sweeps repeat while they
    make progress, at most ``max(4, 2 * component size)`` times.

    Returns:
        True if any atom was placed.
    """
    placed_any = False
    progress = True
    passes = 0
    limit = max(4, 2 * len(graph.atoms))

    while progress and passes < limit:
        progress = False
        passes += 1
        for center in graph.sorted_atoms():
            if center not in positions:
                continue
            neighbors = graph.neighbors(center)
            if all(n in positions for n in neighbors):
                continue

            for ring in graph.rings:
                if center in ring and any(idx not in positions for idx in ring):
                    if attach_ring(graph, ring, positions, tuning):
                        progress = placed_any = True

            placed = [n for n in neighbors if n in positions]
            unplaced = [n for n in neighbors if n not in positions]
            if not unplaced:
                continue

            directions = proposed_directions(graph, center, placed, len(unplaced), positions, tuning)
            center_pos = positions[center]
            for i, atom_idx in enumerate(unplaced):
                direction = directions[min(i, len(directions) - 1)]
                positions[atom_idx] = center_pos + direction * tuning.bond_length
                progress = placed_any = True

    logger.debug("branch placement finished after %d passes", passes)
    return placed_any
