"""
Hydrogen manipulation functions.

This module provides hydrogen counting and functions for adding and
removing explicit hydrogens from molecular structures.
"""

from __future__ import annotations

from molsketch.types import Molecule


def implicit_hydrogen_count(mol: Molecule, idx: int) -> int:
    """Hydrogens implied on an atom by its preferred valence.

    Hydrogen atoms carry none. A fixed ``explicit_hydrogens`` count wins;
    otherwise the count is the preferred valence minus the bond-order sum
    (aromatic bonds count 1.5), rounded and floored at zero.

    Example:
        >>> mol = parse("CC(=O)O")
        >>> [implicit_hydrogen_count(mol, i) for i in range(4)]
        [3, 0, 0, 1]
    """
    return mol.implicit_hydrogen_count(idx)


def hydrogen_counts(mol: Molecule) -> dict[int, int]:
    """Total hydrogens per heavy atom.

    The implicit (or fixed) count plus explicit hydrogen neighbours.

    Returns:
        Dict mapping each heavy atom index to its hydrogen tally.
    """
    counts: dict[int, int] = {}
    for atom in mol.atoms:
        if atom.is_hydrogen:
            continue
        attached = sum(1 for nbr in mol.neighbors(atom.idx) if mol.atoms[nbr].is_hydrogen)
        counts[atom.idx] = mol.implicit_hydrogen_count(atom.idx) + attached
    return counts


def add_explicit_hydrogens(mol: Molecule) -> Molecule:
    """Add explicit hydrogen atoms to a molecule.

    Converts implicit hydrogens to explicit hydrogen atoms with bonds. The
    heavy atoms keep their ids; new hydrogens follow them.

    Args:
        mol: Input molecule.

    Returns:
        New molecule with explicit hydrogens added.

    Example:
        >>> mol = parse("CCO")
        >>> mol_h = add_explicit_hydrogens(mol)
        >>> mol_h.num_atoms
        9
    """
    new_mol = mol.copy()
    for atom in new_mol.atoms:
        if not atom.is_hydrogen:
            atom.explicit_hydrogens = 0

    for atom in mol.atoms:
        for _ in range(mol.implicit_hydrogen_count(atom.idx)):
            h_idx = new_mol.add_atom("H", position=atom.position)
            new_mol.add_bond(atom.idx, h_idx)

    return new_mol


def remove_explicit_hydrogens(mol: Molecule, keep_isotopes: bool = False) -> Molecule:
    """Remove explicit hydrogen atoms from a molecule.

    Converts explicit hydrogen atoms to implicit hydrogens on their
    parent atoms. Remaining atoms are renumbered contiguously.

    Args:
        mol: Input molecule.
        keep_isotopes: If True, keep hydrogens with isotope labels (e.g., deuterium).

    Returns:
        New molecule with explicit hydrogens removed.

    Example:
        >>> mol = parse("[H]OC([H])([H])C([H])([H])[H]")
        >>> mol_noh = remove_explicit_hydrogens(mol)
        >>> mol_noh.num_atoms
        3
    """
    h_to_remove: set[int] = set()
    h_counts: dict[int, int] = {}  # parent_idx -> count of removed H

    for atom in mol.atoms:
        if not atom.is_hydrogen:
            continue
        if keep_isotopes and (atom.isotope is not None or atom.symbol in ("D", "T")):
            continue
        if atom.degree != 1:
            continue
        parent_idx = mol.bonds[atom.bond_indices[0]].other_atom(atom.idx)
        if mol.atoms[parent_idx].is_hydrogen:
            continue
        h_to_remove.add(atom.idx)
        h_counts[parent_idx] = h_counts.get(parent_idx, 0) + 1

    if not h_to_remove:
        return mol.copy()

    new_mol = Molecule(name=mol.name)
    old_to_new: dict[int, int] = {}
    for atom in mol.atoms:
        if atom.idx in h_to_remove:
            continue
        added_h = h_counts.get(atom.idx, 0)
        explicit = atom.explicit_hydrogens
        if explicit is not None:
            explicit += added_h
        elif added_h:
            explicit = mol.implicit_hydrogen_count(atom.idx) + added_h
        old_to_new[atom.idx] = new_mol.add_atom(
            atom.symbol,
            position=atom.position,
            charge=atom.charge,
            isotope=atom.isotope,
            is_aromatic=atom.is_aromatic,
            chirality=atom.chirality,
            explicit_hydrogens=explicit,
            is_query=atom.is_query,
        )

    for bond in mol.bonds:
        if bond.atom1_idx in h_to_remove or bond.atom2_idx in h_to_remove:
            continue
        new_mol.add_bond(
            old_to_new[bond.atom1_idx],
            old_to_new[bond.atom2_idx],
            bond.order,
            stereo=bond.stereo,
            is_query=bond.is_query,
        )

    return new_mol
