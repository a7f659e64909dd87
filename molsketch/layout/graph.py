"""
Component view of a molecule used while computing a layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from ..elements import BondOrder
from ..rings import edge_key, find_ring_systems, ring_edges
from .bridged import bridged_frame

if TYPE_CHECKING:
    from ..types import Bond, Molecule, Point


@dataclass(slots=True)
class ComponentGraph:
    """One connected component together with its rings.

    Attributes:
        mol: The molecule being laid out (never modified).
        atoms: Atom ids of the component.
        rings: Rings of the component, sorted by (size, atom ids).
        ring_atoms: Atoms that are members of any ring.
        ring_edge_keys: Edges that belong to any ring.
        systems: Ring systems in :func:`find_ring_systems` order.
        frame_atoms: Atoms of ring systems drawn from a fixed frame.
    """

    mol: Molecule
    atoms: frozenset[int]
    rings: list[tuple[int, ...]] = field(default_factory=list)
    ring_atoms: set[int] = field(default_factory=set)
    ring_edge_keys: set[tuple[int, int]] = field(default_factory=set)
    systems: list[list[tuple[int, ...]]] = field(default_factory=list)
    frame_atoms: set[int] = field(default_factory=set)

    @classmethod
    def build(cls, mol: Molecule, atoms: Iterable[int], basis: Iterable[tuple[int, ...]]) -> ComponentGraph:
        members = frozenset(atoms)
        rings = sorted(
            (ring for ring in basis if members.intersection(ring)),
            key=lambda ring: (len(ring), ring),
        )
        graph = cls(mol=mol, atoms=members, rings=rings)
        for ring in rings:
            graph.ring_atoms.update(ring)
            graph.ring_edge_keys.update(ring_edges(ring))
        graph.systems = find_ring_systems(rings)
        for system in graph.systems:
            if bridged_frame(system, 1.0) is not None:
                graph.frame_atoms.update(idx for ring in system for idx in ring)
        return graph

    def system_of(self, ring: tuple[int, ...]) -> list[tuple[int, ...]]:
        """The ring system containing ``ring``."""
        return next((system for system in self.systems if ring in system), [ring])

    def sorted_atoms(self) -> list[int]:
        return sorted(self.atoms)

    def neighbors(self, idx: int) -> list[int]:
        """Ascending ids of the neighbours of ``idx`` inside the component."""
        return [n for n in self.mol.neighbors(idx) if n in self.atoms]

    def bonds(self) -> list[Bond]:
        """Bonds with both ends in the component, in bond id order."""
        return [
            bond
            for bond in self.mol.bonds
            if bond.atom1_idx in self.atoms and bond.atom2_idx in self.atoms
        ]

    def is_ring_edge(self, a: int, b: int) -> bool:
        return edge_key(a, b) in self.ring_edge_keys

    def is_chain_atom(self, idx: int) -> bool:
        """Non-ring heavy atom, eligible for chain growth."""
        return idx not in self.ring_atoms and not self.mol.atoms[idx].is_hydrogen

    def is_chain_edge(self, a: int, b: int) -> bool:
        """Non-ring single bond."""
        if self.is_ring_edge(a, b):
            return False
        bond = self.mol.bond_between(a, b)
        return bond is not None and bond.order is BondOrder.SINGLE

    def is_aromatic_atom(self, idx: int) -> bool:
        """Aromatic flag on the atom or any aromatic bond at it."""
        if self.mol.atoms[idx].is_aromatic:
            return True
        return any(bond.is_aromatic for bond in self.mol.bonds_for_atom(idx))

    def locked_atoms(self) -> set[int]:
        """Atoms that refinement must not move: aromatic and frame atoms."""
        return {idx for idx in self.atoms if self.is_aromatic_atom(idx)} | self.frame_atoms

    def has_pi_neighborhood(self, idx: int) -> bool:
        """A multiple or aromatic bond at ``idx`` or one bond further out."""
        mol = self.mol
        if mol.atoms[idx].is_aromatic:
            return True
        if any(bond.order.is_pi for bond in mol.bonds_for_atom(idx)):
            return True
        for nbr in mol.neighbors(idx):
            for bond in mol.bonds_for_atom(nbr):
                if bond.other_atom(nbr) != idx and bond.order.is_pi:
                    return True
        return False

    def side_component(self, start: int, blocked_a: int, blocked_b: int) -> set[int]:
        """Atoms reachable from ``start`` without crossing the bond ``blocked_a``-``blocked_b``."""
        seen = {start}
        stack = [start]
        while stack:
            current = stack.pop()
            for nxt in self.neighbors(current):
                if {current, nxt} == {blocked_a, blocked_b}:
                    continue
                if nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        return seen

    def placed(self, positions: dict[int, Point]) -> list[int]:
        return [idx for idx in self.sorted_atoms() if idx in positions]

    def placed_points(self, positions: dict[int, Point], excluding: Iterable[int] = ()) -> list[Point]:
        skip = set(excluding)
        return [positions[idx] for idx in self.sorted_atoms() if idx in positions and idx not in skip]
