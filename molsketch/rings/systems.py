"""
Ring-system grouping and pairwise ring attachment classification.
"""

from __future__ import annotations

from collections import Counter
from enum import IntEnum
from typing import Sequence

from .detection import ring_edges


class RingAttachment(IntEnum):
    """How two rings relate, ordered by placement preference."""

    FUSED = 0
    SPIRO = 1
    BRIDGED = 2
    ISOLATED = 3


def classify_attachment(ring: Sequence[int], other: Sequence[int]) -> RingAttachment:
    """Classify how ``ring`` is attached to ``other``.

    Two or more shared atoms with a shared edge is fused; two or more
    without one is bridged; exactly one shared atom is spiro.

    Example:
        >>> classify_attachment((0, 1, 2, 3, 4, 5), (2, 3, 6, 7, 8, 9))
        <RingAttachment.FUSED: 0>
    """
    shared = set(ring) & set(other)
    if len(shared) >= 2:
        if set(ring_edges(ring)) & set(ring_edges(other)):
            return RingAttachment.FUSED
        return RingAttachment.BRIDGED
    if len(shared) == 1:
        return RingAttachment.SPIRO
    return RingAttachment.ISOLATED


def find_ring_systems(rings: Sequence[Sequence[int]]) -> list[list[tuple[int, ...]]]:
    """Group rings into ring systems.

    Two rings are in the same system if they share at least one atom,
    directly or through other rings. Rings keep their input order inside a
    system and systems are ordered by their first ring.

    Example:
        >>> rings = find_ring_basis(parse("c1ccc2ccccc2c1"))
        >>> len(find_ring_systems(rings))
        1
    """
    atom_sets = [set(ring) for ring in rings]
    visited: set[int] = set()
    systems: list[list[tuple[int, ...]]] = []

    for start in range(len(rings)):
        if start in visited:
            continue
        members: list[int] = []
        stack = [start]
        visited.add(start)
        while stack:
            current = stack.pop()
            members.append(current)
            for other in range(len(rings)):
                if other not in visited and atom_sets[current] & atom_sets[other]:
                    visited.add(other)
                    stack.append(other)
        systems.append([tuple(rings[i]) for i in sorted(members)])

    return systems


def ring_edge_multiplicity(rings: Sequence[Sequence[int]]) -> Counter[tuple[int, int]]:
    """Number of rings each edge belongs to."""
    multiplicity: Counter[tuple[int, int]] = Counter()
    for ring in rings:
        multiplicity.update(ring_edges(ring))
    return multiplicity


def fused_edge_count(
    system: Sequence[Sequence[int]],
    multiplicity: Counter[tuple[int, int]],
) -> int:
    """Distinct edges of a system shared by two or more rings."""
    edges = {edge for ring in system for edge in ring_edges(ring)}
    return sum(1 for edge in edges if multiplicity[edge] > 1)


def system_priority_key(
    system: Sequence[Sequence[int]],
    multiplicity: Counter[tuple[int, int]],
) -> tuple[int, int, int]:
    """Sort key placing the most fused, largest system first."""
    atoms = {atom for ring in system for atom in ring}
    return (-fused_edge_count(system, multiplicity), -len(atoms), -len(system))
