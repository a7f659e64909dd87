"""
Core molecular data types.

This module defines the fundamental data structures for representing molecules:
Point, Atom, Bond and Molecule, plus the stereo enumerations shared by the
parser, the layout engine and the identifier layers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Sequence

from .elements import (
    BondOrder,
    get_atomic_number,
    is_hydrogen_symbol,
    preferred_valence,
)

if TYPE_CHECKING:
    from typing import Self


_EPSILON = 1e-4


@dataclass(frozen=True, slots=True)
class Point:
    """Immutable 2D point, also used as a displacement vector."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> Point:
        return Point(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def __neg__(self) -> Point:
        return Point(-self.x, -self.y)

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def distance_to(self, other: Point) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def dot(self, other: Point) -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: Point) -> float:
        return self.x * other.y - self.y * other.x

    def normalized(self) -> Point | None:
        """Unit vector in the same direction, or None for near-zero vectors."""
        length = self.length()
        if length <= _EPSILON:
            return None
        return Point(self.x / length, self.y / length)

    def rotated(self, angle: float) -> Point:
        """Rotate counter-clockwise by ``angle`` radians."""
        c = math.cos(angle)
        s = math.sin(angle)
        return Point(self.x * c - self.y * s, self.x * s + self.y * c)

    def angle(self) -> float:
        return math.atan2(self.y, self.x)

    @classmethod
    def from_angle(cls, angle: float, radius: float = 1.0) -> Point:
        return cls(math.cos(angle) * radius, math.sin(angle) * radius)


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned box around a set of points."""

    min_x: float
    min_y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.min_x + self.width

    @property
    def max_y(self) -> float:
        return self.min_y + self.height

    @property
    def mid_x(self) -> float:
        return self.min_x + self.width / 2.0

    @property
    def mid_y(self) -> float:
        return self.min_y + self.height / 2.0

    @classmethod
    def around(cls, points: Sequence[Point]) -> BoundingBox | None:
        """Box around ``points``; width and height are floored at 1e-4."""
        if not points:
            return None
        min_x = min(p.x for p in points)
        min_y = min(p.y for p in points)
        max_x = max(p.x for p in points)
        max_y = max(p.y for p in points)
        return cls(min_x, min_y, max(_EPSILON, max_x - min_x), max(_EPSILON, max_y - min_y))


class Chirality(Enum):
    """Local tetrahedral parity of an atom."""

    NONE = "none"
    CLOCKWISE = "clockwise"
    ANTICLOCKWISE = "anticlockwise"

    def inverted(self) -> Chirality:
        if self is Chirality.CLOCKWISE:
            return Chirality.ANTICLOCKWISE
        if self is Chirality.ANTICLOCKWISE:
            return Chirality.CLOCKWISE
        return self


class BondStereo(Enum):
    """Wedge/hash stereo marker, local to one bond endpoint.

    ``UP_REVERSED`` and ``DOWN_REVERSED`` are wedges whose narrow end sits
    on ``atom2_idx`` instead of ``atom1_idx``.
    """

    NONE = "none"
    UP = "up"
    DOWN = "down"
    EITHER = "either"
    UP_REVERSED = "up_reversed"
    DOWN_REVERSED = "down_reversed"


def canonical_cycle(cycle: Sequence[int]) -> tuple[int, ...]:
    """Smallest rotation of a cycle, considering both directions.

    Example:
        >>> canonical_cycle([3, 1, 2])
        (1, 2, 3)
        >>> canonical_cycle([4, 2, 3, 1])
        (1, 3, 2, 4)
    """
    n = len(cycle)
    if n == 0:
        return ()
    forward = list(cycle)
    backward = forward[::-1]
    best: tuple[int, ...] | None = None
    for seq in (forward, backward):
        for i in range(n):
            rotation = tuple(seq[i:] + seq[:i])
            if best is None or rotation < best:
                best = rotation
    assert best is not None
    return best


@dataclass(slots=True)
class Bond:
    """Represents a chemical bond between two atoms.

    Attributes:
        idx: Unique index of this bond in the molecule.
        atom1_idx: Index of the first atom.
        atom2_idx: Index of the second atom.
        order: Bond order.
        stereo: Wedge/hash or either-double-bond marker.
        direction: SMILES directional marker ('/' or '\\') carried until
            double-bond stereo has been annotated.
        is_query: Whether this is a query bond (e.g. SMARTS "~").
    """

    idx: int
    atom1_idx: int
    atom2_idx: int
    order: BondOrder = BondOrder.SINGLE
    stereo: BondStereo = BondStereo.NONE
    direction: str | None = None
    is_query: bool = False

    def other_atom(self, atom_idx: int) -> int:
        """Get the index of the atom on the other end of this bond.

        Args:
            atom_idx: Index of one atom in the bond.

        Returns:
            Index of the other atom.

        Raises:
            ValueError: If atom_idx is not part of this bond.
        """
        if atom_idx == self.atom1_idx:
            return self.atom2_idx
        if atom_idx == self.atom2_idx:
            return self.atom1_idx
        raise ValueError(f"Atom {atom_idx} not in bond {self.idx}")

    @property
    def is_aromatic(self) -> bool:
        return self.order is BondOrder.AROMATIC

    def __contains__(self, atom_idx: int) -> bool:
        """Check if atom is part of this bond."""
        return atom_idx in (self.atom1_idx, self.atom2_idx)


@dataclass(slots=True)
class Atom:
    """Represents an atom in a molecule.

    Attributes:
        idx: Unique index of this atom in the molecule.
        symbol: Element symbol (e.g., "C", "N", "Cl").
        position: 2D coordinates; the origin until a layout is computed.
        charge: Formal charge.
        isotope: Mass number, or None for natural abundance.
        is_aromatic: Whether this atom is aromatic.
        chirality: Local tetrahedral parity.
        explicit_hydrogens: Fixed hydrogen count (bracket atoms), or None to
            infer hydrogens from valence.
        is_query: Whether this is a query atom such as "*".
        bond_indices: Indices of bonds connected to this atom.
    """

    idx: int
    symbol: str
    position: Point = field(default_factory=Point)
    charge: int = 0
    isotope: int | None = None
    is_aromatic: bool = False
    chirality: Chirality = Chirality.NONE
    explicit_hydrogens: int | None = None
    is_query: bool = False
    bond_indices: list[int] = field(default_factory=list)

    @property
    def atomic_number(self) -> int:
        """Get the atomic number for this element."""
        return get_atomic_number(self.symbol)

    @property
    def is_hydrogen(self) -> bool:
        """Whether this atom is H, D or T."""
        return is_hydrogen_symbol(self.symbol)

    @property
    def degree(self) -> int:
        """Number of bonds to this atom."""
        return len(self.bond_indices)


@dataclass(slots=True)
class Molecule:
    """Represents a molecular structure.

    Atom and bond indices are assigned at construction and equal their list
    positions. Queries never mutate the molecule.

    Attributes:
        atoms: List of atoms in the molecule.
        bonds: List of bonds in the molecule.
        name: Molecule name/title.

    Example:
        >>> mol = Molecule()
        >>> c1 = mol.add_atom("C")
        >>> c2 = mol.add_atom("C")
        >>> mol.add_bond(c1, c2)
        0
        >>> len(mol)
        2
    """

    atoms: list[Atom] = field(default_factory=list)
    bonds: list[Bond] = field(default_factory=list)
    name: str = "Untitled"

    def __len__(self) -> int:
        """Return number of atoms."""
        return len(self.atoms)

    def __iter__(self) -> Iterator[Atom]:
        """Iterate over atoms."""
        return iter(self.atoms)

    def __getitem__(self, idx: int) -> Atom:
        """Get atom by index."""
        return self.atoms[idx]

    def add_atom(
        self,
        symbol: str,
        *,
        position: Point | None = None,
        charge: int = 0,
        isotope: int | None = None,
        is_aromatic: bool = False,
        chirality: Chirality = Chirality.NONE,
        explicit_hydrogens: int | None = None,
        is_query: bool = False,
    ) -> int:
        """Add an atom to the molecule.

        Returns:
            Index of the newly added atom.
        """
        idx = len(self.atoms)
        self.atoms.append(Atom(
            idx=idx,
            symbol=symbol,
            position=position if position is not None else Point(),
            charge=charge,
            isotope=isotope,
            is_aromatic=is_aromatic,
            chirality=chirality,
            explicit_hydrogens=explicit_hydrogens,
            is_query=is_query,
        ))
        return idx

    def add_bond(
        self,
        atom1_idx: int,
        atom2_idx: int,
        order: BondOrder = BondOrder.SINGLE,
        *,
        stereo: BondStereo = BondStereo.NONE,
        direction: str | None = None,
        is_query: bool = False,
    ) -> int:
        """Add a bond between two atoms.

        Args:
            atom1_idx: Index of the first atom.
            atom2_idx: Index of the second atom.
            order: Bond order.
            stereo: Wedge/hash marker.
            direction: SMILES directional marker.
            is_query: Whether this is a query bond.

        Returns:
            Index of the newly added bond.

        Raises:
            IndexError: If atom indices are out of bounds.
            ValueError: For a self-loop or a second bond between the same pair.
        """
        n = len(self.atoms)
        if not (0 <= atom1_idx < n and 0 <= atom2_idx < n):
            raise IndexError(f"Atom index out of bounds: {atom1_idx}, {atom2_idx}")
        if atom1_idx == atom2_idx:
            raise ValueError(f"Bond would connect atom {atom1_idx} to itself")
        if self.bond_between(atom1_idx, atom2_idx) is not None:
            raise ValueError(f"Atoms {atom1_idx} and {atom2_idx} are already bonded")

        idx = len(self.bonds)
        self.bonds.append(Bond(
            idx=idx,
            atom1_idx=atom1_idx,
            atom2_idx=atom2_idx,
            order=BondOrder(order),
            stereo=stereo,
            direction=direction,
            is_query=is_query,
        ))
        self.atoms[atom1_idx].bond_indices.append(idx)
        self.atoms[atom2_idx].bond_indices.append(idx)
        return idx

    def atom(self, idx: int) -> Atom | None:
        """Atom with the given id, or None."""
        if 0 <= idx < len(self.atoms):
            return self.atoms[idx]
        return None

    def neighbors(self, idx: int) -> list[int]:
        """Ascending ids of atoms bonded to ``idx``."""
        atom = self.atoms[idx]
        return sorted(self.bonds[b].other_atom(idx) for b in atom.bond_indices)

    def bonds_for_atom(self, idx: int) -> list[Bond]:
        return [self.bonds[b] for b in self.atoms[idx].bond_indices]

    def degree(self, idx: int) -> int:
        return len(self.atoms[idx].bond_indices)

    def bond_between(self, atom1_idx: int, atom2_idx: int) -> Bond | None:
        """Find the bond between two atoms.

        Returns:
            Bond object if found, None otherwise.
        """
        for bond_idx in self.atoms[atom1_idx].bond_indices:
            bond = self.bonds[bond_idx]
            if atom2_idx in bond and atom1_idx in bond:
                return bond
        return None

    def implicit_hydrogen_count(self, idx: int) -> int:
        """Hydrogens implied on an atom by its preferred valence.

        The explicit count wins when set. Aromatic bonds contribute 1.5.
        """
        atom = self.atoms[idx]
        if atom.is_hydrogen:
            return 0
        if atom.explicit_hydrogens is not None:
            return max(0, atom.explicit_hydrogens)
        target = preferred_valence(atom.symbol, atom.charge, atom.is_aromatic)
        if target <= 0:
            return 0
        used = sum(bond.order.valence_contribution for bond in self.bonds_for_atom(idx))
        return max(0, int(round(target - used)))

    def simple_cycles(self, max_size: int = 8) -> list[tuple[int, ...]]:
        """Enumerate every simple cycle of length 3..max_size.

        Each cycle is reported once, in canonical rotation, and the search
        only extends through ids not smaller than the start atom.

        Returns:
            Cycles sorted by (length, atom ids).
        """
        if len(self.atoms) < 3 or max_size < 3:
            return []

        adjacency = {atom.idx: self.neighbors(atom.idx) for atom in self.atoms}
        found: set[tuple[int, ...]] = set()

        for start in sorted(adjacency):
            stack: list[tuple[int, ...]] = [(start,)]
            while stack:
                path = stack.pop()
                current = path[-1]
                for nxt in adjacency[current]:
                    if nxt == start:
                        if len(path) >= 3:
                            found.add(canonical_cycle(path))
                        continue
                    if nxt < start or nxt in path or len(path) >= max_size:
                        continue
                    stack.append(path + (nxt,))

        return sorted(found, key=lambda ring: (len(ring), ring))

    def connected_components(self) -> list[list[int]]:
        """Find connected components in the molecule.

        Returns:
            List of components, each a sorted list of atom indices, ordered
            by their smallest index.
        """
        visited: set[int] = set()
        components: list[list[int]] = []

        for start in range(len(self.atoms)):
            if start in visited:
                continue

            component: list[int] = []
            stack = [start]
            visited.add(start)

            while stack:
                atom_idx = stack.pop()
                component.append(atom_idx)
                for neighbor in self.neighbors(atom_idx):
                    if neighbor not in visited:
                        visited.add(neighbor)
                        stack.append(neighbor)

            components.append(sorted(component))

        return components

    def bounding_box(self) -> BoundingBox | None:
        """Box around all atom positions, or None for an empty molecule."""
        return BoundingBox.around([atom.position for atom in self.atoms])

    def with_positions(self, positions: dict[int, Point]) -> "Self":
        """Copy of the molecule with the given atom positions applied."""
        mol = self.copy()
        for idx, point in positions.items():
            mol.atoms[idx].position = point
        return mol

    def copy(self) -> "Self":
        """Create a deep copy of the molecule.

        Returns:
            New Molecule instance with copied data.
        """
        mol = Molecule(name=self.name)

        for atom in self.atoms:
            mol.atoms.append(Atom(
                idx=atom.idx,
                symbol=atom.symbol,
                position=atom.position,
                charge=atom.charge,
                isotope=atom.isotope,
                is_aromatic=atom.is_aromatic,
                chirality=atom.chirality,
                explicit_hydrogens=atom.explicit_hydrogens,
                is_query=atom.is_query,
                bond_indices=list(atom.bond_indices),
            ))

        for bond in self.bonds:
            mol.bonds.append(Bond(
                idx=bond.idx,
                atom1_idx=bond.atom1_idx,
                atom2_idx=bond.atom2_idx,
                order=bond.order,
                stereo=bond.stereo,
                direction=bond.direction,
                is_query=bond.is_query,
            ))

        return mol

    @property
    def num_atoms(self) -> int:
        """Number of atoms in the molecule."""
        return len(self.atoms)

    @property
    def num_bonds(self) -> int:
        """Number of bonds in the molecule."""
        return len(self.bonds)

    @property
    def is_connected(self) -> bool:
        """Check if molecule is a single connected component."""
        return len(self.connected_components()) <= 1
