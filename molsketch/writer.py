"""
SMILES string writer.

This module converts Molecule objects back to SMILES strings, using the
canonical ranks from :mod:`molsketch.canon` to make the output reproducible.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from molsketch.canon import canonical_ranks
from molsketch.elements import BondOrder, is_organic_symbol, preferred_valence
from molsketch.rings import find_ring_basis, ring_edge_set
from molsketch.types import Chirality

if TYPE_CHECKING:
    from molsketch.types import Atom, Bond, Molecule


# Rank offsets that order ring closures before ring bonds before chain bonds
_MAX_NATOMS: Final[int] = 1_000_000
_MAX_BONDTYPE: Final[int] = 4

_IMPLICIT_H: Final[int] = -1


def count_swaps_to_interconvert(ref: list[int], probe: list[int]) -> int:
    """Count swaps needed to convert probe to match ref.

    Args:
        ref: Reference ordering.
        probe: Ordering to transform.

    Returns:
        Number of swaps needed.

    Raises:
        ValueError: If the lists do not hold the same elements.
    """
    if len(ref) != len(probe):
        raise ValueError("Size mismatch")

    probe = list(probe)
    n_swaps = 0
    for i, ref_val in enumerate(ref):
        if probe[i] != ref_val:
            j = i + 1
            while j < len(probe) and probe[j] != ref_val:
                j += 1
            if j >= len(probe):
                raise ValueError(f"Element {ref_val} not found in probe")
            probe[i], probe[j] = probe[j], probe[i]
            n_swaps += 1
    return n_swaps


class SmilesWriter:
    """SMILES string writer with canonical traversal.

    The traversal algorithm:
    1. Start from the lowest-ranked atom in each component
    2. DFS visiting neighbours in rank order, ring bonds after ring closures
    3. Ring digits taken from the lowest free number and reused once closed

    Stereo parity is read relative to the order of an atom's bonds, with an
    implicit hydrogen counted right after the preceding atom (or first when
    there is none), and re-expressed for the output order.

    Example:
        >>> from molsketch import parse
        >>> SmilesWriter(parse("C1CC1")).to_smiles()
        'C1CC1'
    """

    def __init__(
        self,
        mol: Molecule,
        ranks: dict[int, int] | None = None,
        isomeric: bool = True,
    ) -> None:
        """Initialize writer.

        Args:
            mol: Molecule to write.
            ranks: Canonical ranks of heavy atoms (computed if None).
            isomeric: Whether to write isotopes and tetrahedral stereo.
        """
        self._mol = mol
        heavy = ranks if ranks is not None else canonical_ranks(mol)
        offset = len(heavy)
        self._ranks = {atom.idx: heavy.get(atom.idx, offset + atom.idx + 1) for atom in mol.atoms}
        self._isomeric = isomeric
        self._ring_keys = ring_edge_set(find_ring_basis(mol))

    def to_smiles(self) -> str:
        """Generate the SMILES string; components are sorted and joined by '.'."""
        parts = [self._write_component(set(comp)) for comp in self._mol.connected_components()]
        parts.sort()
        return ".".join(parts)

    def _is_ring_bond(self, bond: Bond) -> bool:
        return (min(bond.atom1_idx, bond.atom2_idx), max(bond.atom1_idx, bond.atom2_idx)) in self._ring_keys

    def _write_component(self, comp_atoms: set[int]) -> str:
        """Write SMILES for a single connected component."""
        if not comp_atoms:
            return ""
        mol = self._mol
        start = min(comp_atoms, key=lambda a: (self._ranks[a], a))

        # Phase 1: find ring closures
        WHITE, GREY, BLACK = 0, 1, 2
        colors: dict[int, int] = {a: WHITE for a in comp_atoms}
        ring_closures: dict[int, list[int]] = {a: [] for a in comp_atoms}

        def dfs_find_cycles(atom_idx: int, in_bond_idx: int | None) -> None:
            colors[atom_idx] = GREY
            possibles: list[tuple[int, int, int]] = []
            for bond_idx in mol.atoms[atom_idx].bond_indices:
                if bond_idx == in_bond_idx:
                    continue
                bond = mol.bonds[bond_idx]
                nbr = bond.other_atom(atom_idx)
                rank = self._ranks[nbr]
                if colors[nbr] == GREY:
                    rank -= (_MAX_BONDTYPE + 1) * _MAX_NATOMS * _MAX_NATOMS
                    rank += (_MAX_BONDTYPE - bond.order.rank) * _MAX_NATOMS
                elif self._is_ring_bond(bond):
                    rank += (_MAX_BONDTYPE - bond.order.rank) * _MAX_NATOMS * _MAX_NATOMS
                possibles.append((rank, nbr, bond_idx))

            possibles.sort(key=lambda x: (x[0], x[1]))
            for _, nbr, bond_idx in possibles:
                if colors[nbr] == WHITE:
                    dfs_find_cycles(nbr, bond_idx)
                elif colors[nbr] == GREY:
                    ring_closures[nbr].append(bond_idx)
                    ring_closures[atom_idx].append(bond_idx)
            colors[atom_idx] = BLACK

        dfs_find_cycles(start, None)

        # Phase 2: build the string
        colors = {a: WHITE for a in comp_atoms}
        open_digits: dict[int, int] = {}
        available: list[int] = list(range(1, 100))
        out: list[str] = []

        def dfs_build(atom_idx: int, in_bond_idx: int | None) -> None:
            colors[atom_idx] = GREY
            atom = mol.atoms[atom_idx]
            closure_bonds = list(ring_closures[atom_idx])
            skip = {mol.bonds[b].other_atom(atom_idx) for b in closure_bonds}

            children: list[tuple[int, int, int]] = []
            for bond_idx in atom.bond_indices:
                if bond_idx == in_bond_idx:
                    continue
                bond = mol.bonds[bond_idx]
                nbr = bond.other_atom(atom_idx)
                if colors[nbr] != WHITE or nbr in skip:
                    continue
                rank = self._ranks[nbr]
                if self._is_ring_bond(bond):
                    rank += (_MAX_BONDTYPE - bond.order.rank) * _MAX_NATOMS * _MAX_NATOMS
                children.append((rank, nbr, bond_idx))
            children.sort(key=lambda x: (x[0], x[1]))

            written_order = ([in_bond_idx] if in_bond_idx is not None else []) + closure_bonds
            written_order += [bond_idx for _, _, bond_idx in children]
            out.append(self._atom_to_smiles(atom, self._output_chirality(atom, in_bond_idx, written_order)))

            released: list[int] = []
            for bond_idx in closure_bonds:
                bond = mol.bonds[bond_idx]
                if bond_idx in open_digits:
                    digit = open_digits.pop(bond_idx)
                    out.append(self._bond_to_smiles(bond))
                    out.append(self._ring_number_to_smiles(digit))
                    released.append(digit)
                else:
                    digit = available.pop(0)
                    open_digits[bond_idx] = digit
                    out.append(self._ring_number_to_smiles(digit))
            available.extend(released)
            available.sort()

            for i, (_, nbr, bond_idx) in enumerate(children):
                if colors[nbr] != WHITE:
                    continue
                branch = i + 1 < len(children)
                if branch:
                    out.append("(")
                out.append(self._bond_to_smiles(mol.bonds[bond_idx]))
                dfs_build(nbr, bond_idx)
                if branch:
                    out.append(")")
            colors[atom_idx] = BLACK

        dfs_build(start, None)
        return "".join(out)

    def _output_chirality(self, atom: Atom, in_bond_idx: int | None, written_bonds: list[int]) -> Chirality:
        """Chirality re-expressed for the neighbour order of the output."""
        if not self._isomeric or atom.chirality is Chirality.NONE:
            return Chirality.NONE

        reference = list(atom.bond_indices)
        written = list(written_bonds)
        if self._mol.implicit_hydrogen_count(atom.idx) == 1:
            has_preceding = bool(reference) and self._mol.bonds[reference[0]].other_atom(atom.idx) < atom.idx
            reference.insert(1 if has_preceding else 0, _IMPLICIT_H)
            written.insert(0 if in_bond_idx is None else 1, _IMPLICIT_H)

        try:
            swaps = count_swaps_to_interconvert(written, reference)
        except ValueError:
            return atom.chirality
        return atom.chirality.inverted() if swaps % 2 == 1 else atom.chirality

    def _default_hydrogens(self, atom: Atom) -> int:
        target = preferred_valence(atom.symbol, atom.charge, atom.is_aromatic)
        used = sum(b.order.valence_contribution for b in self._mol.bonds_for_atom(atom.idx))
        return max(0, int(round(target - used)))

    def _needs_brackets(self, atom: Atom) -> bool:
        """Check if atom needs bracket notation.

        An atom needs brackets if it is outside the organic subset, carries
        a charge, an isotope or stereo (isomeric output only), or has a fixed
        hydrogen count that differs from the valence default.
        """
        if not is_organic_symbol(atom.symbol):
            return True
        if atom.charge != 0:
            return True
        if self._isomeric and (atom.isotope is not None or atom.chirality is not Chirality.NONE):
            return True
        if atom.explicit_hydrogens is not None:
            return atom.explicit_hydrogens != self._default_hydrogens(atom)
        return False

    def _atom_to_smiles(self, atom: Atom, chirality: Chirality) -> str:
        if atom.is_query or atom.symbol == "*":
            return "*"
        symbol = atom.symbol.lower() if atom.is_aromatic else atom.symbol
        if not self._needs_brackets(atom):
            return symbol

        parts = ["["]
        if self._isomeric and atom.isotope is not None:
            parts.append(str(atom.isotope))
        parts.append(symbol)
        if chirality is Chirality.ANTICLOCKWISE:
            parts.append("@")
        elif chirality is Chirality.CLOCKWISE:
            parts.append("@@")

        hydrogens = self._mol.implicit_hydrogen_count(atom.idx)
        if hydrogens > 0:
            parts.append("H" if hydrogens == 1 else f"H{hydrogens}")

        if atom.charge > 0:
            parts.append("+" if atom.charge == 1 else f"+{atom.charge}")
        elif atom.charge < 0:
            parts.append("-" if atom.charge == -1 else f"-{-atom.charge}")

        parts.append("]")
        return "".join(parts)

    def _bond_to_smiles(self, bond: Bond) -> str:
        """Single bonds between aromatic atoms need an explicit '-'."""
        if bond.is_query:
            return "~"
        if bond.order is BondOrder.AROMATIC:
            return ""
        if bond.order is BondOrder.SINGLE:
            a1 = self._mol.atoms[bond.atom1_idx]
            a2 = self._mol.atoms[bond.atom2_idx]
            return "-" if a1.is_aromatic and a2.is_aromatic else ""
        if bond.order is BondOrder.DOUBLE:
            return "="
        return "#"

    @staticmethod
    def _ring_number_to_smiles(n: int) -> str:
        if 1 <= n <= 9:
            return str(n)
        if 10 <= n <= 99:
            return f"%{n}"
        return f"%({n})"


def to_smiles(mol: Molecule, ranks: dict[int, int] | None = None, isomeric: bool = True) -> str:
    """Convert a Molecule to a SMILES string.

    Example:
        >>> to_smiles(parse("[Na+].[Cl-]"))
        '[Cl-].[Na+]'
    """
    return SmilesWriter(mol, ranks, isomeric=isomeric).to_smiles()


def canonical_smiles(smiles_or_mol: str | Molecule, isomeric: bool = True) -> str:
    """Canonical SMILES for a SMILES string or Molecule.

    Example:
        >>> canonical_smiles("OCC") == canonical_smiles("CCO")
        True
    """
    from molsketch.parser import parse

    mol = parse(smiles_or_mol) if isinstance(smiles_or_mol, str) else smiles_or_mol
    return SmilesWriter(mol, canonical_ranks(mol), isomeric=isomeric).to_smiles()
