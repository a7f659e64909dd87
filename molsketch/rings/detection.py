"""
Ring detection algorithms.

This module provides functionality for finding a deterministic ring basis
(an SSSR-like set of smallest rings) in molecular structures.

The basis is used by both the layout engine and the identifier layers.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Sequence

from ..types import canonical_cycle

if TYPE_CHECKING:
    from ..types import Molecule


logger = logging.getLogger(__name__)

DEFAULT_MAX_CYCLE_SIZE = 12


def edge_key(a: int, b: int) -> tuple[int, int]:
    """Undirected edge key with the smaller id first."""
    return (a, b) if a < b else (b, a)


def ring_edges(ring: Sequence[int]) -> list[tuple[int, int]]:
    """Edges of a ring as sorted keys, in walk order."""
    n = len(ring)
    return [edge_key(ring[i], ring[(i + 1) % n]) for i in range(n)]


def cycle_rank(mol: "Molecule") -> int:
    """Cyclomatic number ``E - V + C``, clamped at 0."""
    if mol.num_atoms == 0:
        return 0
    components = len(mol.connected_components())
    return max(0, mol.num_bonds - mol.num_atoms + components)


def shortest_path_excluding_edge(
    mol: "Molecule",
    start: int,
    goal: int,
    max_depth: int,
) -> list[int] | None:
    """Breadth-first shortest path from ``start`` to ``goal``.

    The direct ``start``-``goal`` bond is not traversed. Neighbours are
    expanded in ascending id order so the result is deterministic.

    Args:
        mol: Molecule to search.
        start: Path start atom.
        goal: Path end atom.
        max_depth: Maximum number of bonds in the path.

    Returns:
        Atom ids from ``start`` to ``goal`` inclusive, or None.
    """
    excluded = edge_key(start, goal)
    parent: dict[int, int] = {start: -1}
    depth: dict[int, int] = {start: 0}
    queue: deque[int] = deque([start])

    while queue:
        current = queue.popleft()
        if depth[current] >= max_depth:
            continue
        for nbr in mol.neighbors(current):
            if edge_key(current, nbr) == excluded or nbr in parent:
                continue
            parent[nbr] = current
            depth[nbr] = depth[current] + 1
            if nbr == goal:
                path = [goal]
                while parent[path[-1]] != -1:
                    path.append(parent[path[-1]])
                path.reverse()
                return path
            queue.append(nbr)

    return None


def find_ring_basis(
    mol: "Molecule",
    max_cycle_size: int = DEFAULT_MAX_CYCLE_SIZE,
) -> list[tuple[int, ...]]:
    """Find a deterministic smallest-ring basis.

    The number of rings equals the cycle rank ``E - V + C``. Candidates
    are the shortest cycle through every edge plus every simple cycle up to
    ``max_cycle_size``; they are taken greedily (smallest first) while they
    cover a new edge.

    For example, naphthalene has cycle rank 2 (11 bonds - 10 atoms + 1),
    so its basis holds the two six-membered rings, not the ten-membered
    envelope.

    Args:
        mol: Molecule to analyze.
        max_cycle_size: Largest ring size considered.

    Returns:
        Canonical rings sorted by (length, atom ids).

    Example:
        >>> mol = parse("C1CCCCC1")
        >>> find_ring_basis(mol)
        [(0, 1, 2, 3, 4, 5)]
    """
    rank = cycle_rank(mol)
    if rank <= 0:
        return []

    candidates: set[tuple[int, ...]] = set()
    edges = sorted(edge_key(b.atom1_idx, b.atom2_idx) for b in mol.bonds)
    for u, v in edges:
        path = shortest_path_excluding_edge(mol, u, v, max_cycle_size - 1)
        if path is not None and 3 <= len(path) <= max_cycle_size:
            candidates.add(canonical_cycle(path))

    candidates.update(mol.simple_cycles(max_cycle_size))
    ordered = sorted(candidates, key=lambda ring: (len(ring), ring))

    selected: list[tuple[int, ...]] = []
    covered: set[tuple[int, int]] = set()
    for ring in ordered:
        if len(selected) >= rank:
            break
        new_edges = set(ring_edges(ring)) - covered
        if new_edges:
            selected.append(ring)
            covered.update(new_edges)

    if len(selected) < rank:
        chosen = set(selected)
        for ring in ordered:
            if len(selected) >= rank:
                break
            if ring not in chosen:
                selected.append(ring)
                chosen.add(ring)
        logger.debug("ring basis filled beyond edge coverage (%d of %d rings)", len(selected), rank)

    logger.debug("ring basis: rank=%d candidates=%d selected=%d", rank, len(ordered), len(selected))
    return sorted(selected[:rank], key=lambda ring: (len(ring), ring))


def ring_atoms(rings: Iterable[Sequence[int]]) -> set[int]:
    """All atom ids that belong to at least one ring."""
    atoms: set[int] = set()
    for ring in rings:
        atoms.update(ring)
    return atoms


def ring_edge_set(rings: Iterable[Sequence[int]]) -> set[tuple[int, int]]:
    """All edge keys that belong to at least one ring."""
    edges: set[tuple[int, int]] = set()
    for ring in rings:
        edges.update(ring_edges(ring))
    return edges


@dataclass(slots=True)
class RingInfo:
    """Per-atom ring membership derived from a ring basis.

    Attributes:
        rings: The ring basis.
        ring_count: Atom id -> number of basis rings containing it.
        ring_sizes: Atom id -> sizes of the basis rings containing it.
    """

    rings: list[tuple[int, ...]] = field(default_factory=list)
    ring_count: dict[int, int] = field(default_factory=dict)
    ring_sizes: dict[int, set[int]] = field(default_factory=dict)

    def is_ring_atom(self, idx: int) -> bool:
        return self.ring_count.get(idx, 0) > 0

    def min_ring_size(self, idx: int) -> int:
        """Smallest ring size through ``idx``, 0 for chain atoms."""
        sizes = self.ring_sizes.get(idx)
        return min(sizes) if sizes else 0

    def is_ring_bond(self, a: int, b: int) -> bool:
        key = edge_key(a, b)
        return any(key in ring_edges(ring) for ring in self.rings)


def get_ring_info(mol: "Molecule", max_cycle_size: int = DEFAULT_MAX_CYCLE_SIZE) -> RingInfo:
    """Get ring membership and sizes for each atom.

    Example:
        >>> info = get_ring_info(parse("c1ccc2ccccc2c1"))  # naphthalene
        >>> info.ring_count[3]  # fusion carbon
        2
        >>> info.min_ring_size(3)
        6
    """
    rings = find_ring_basis(mol, max_cycle_size)
    ring_count = {atom.idx: 0 for atom in mol.atoms}
    ring_sizes: dict[int, set[int]] = {atom.idx: set() for atom in mol.atoms}
    for ring in rings:
        for atom_idx in ring:
            ring_count[atom_idx] += 1
            ring_sizes[atom_idx].add(len(ring))
    return RingInfo(rings=rings, ring_count=ring_count, ring_sizes=ring_sizes)
