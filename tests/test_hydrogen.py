"""Tests for hydrogen counting and explicit hydrogen handling, compared with RDKit."""

from __future__ import annotations

import pytest

from molsketch import Molecule, parse
from molsketch.transform import (
    add_explicit_hydrogens,
    hydrogen_counts,
    implicit_hydrogen_count,
    remove_explicit_hydrogens,
)

# Skip if RDKit not available
rdkit = pytest.importorskip("rdkit")
from rdkit import Chem


def rdkit_total_hydrogens(smiles: str) -> int:
    rdmol = Chem.AddHs(Chem.MolFromSmiles(smiles))
    return sum(1 for a in rdmol.GetAtoms() if a.GetAtomicNum() == 1)


def hydrogen_atom_count(mol: Molecule) -> int:
    return sum(1 for a in mol.atoms if a.is_hydrogen)


class TestImplicitHydrogens:
    """Test valence-based hydrogen inference."""

    @pytest.mark.parametrize("smiles,expected", [
        ("C", [4]),
        ("CC(=O)O", [3, 0, 0, 1]),
        ("C#N", [1, 0]),
        ("[NH4+]", [4]),
        ("C[O-]", [3, 0]),
        ("CS", [3, 1]),
        ("CP", [3, 2]),
        ("CB", [3, 2]),
        ("CF", [3, 0]),
        ("c1ccccc1", [1] * 6),
    ])
    def test_counts(self, smiles: str, expected: list[int]) -> None:
        """Implicit counts per atom."""
        mol = parse(smiles)
        assert [implicit_hydrogen_count(mol, i) for i in range(mol.num_atoms)] == expected

    def test_hydrogen_atom_has_none(self) -> None:
        """Hydrogen atoms never carry implicit hydrogens."""
        mol = parse("[H]C")
        assert implicit_hydrogen_count(mol, 0) == 0

    def test_explicit_count_wins(self) -> None:
        """A bracket hydrogen count overrides valence."""
        mol = parse("[CH2]C")
        assert implicit_hydrogen_count(mol, 0) == 2

    def test_unknown_valence_element(self) -> None:
        """Elements without a valence rule get no hydrogens."""
        mol = parse("[Fe]")
        assert implicit_hydrogen_count(mol, 0) == 0

    def test_tally_includes_explicit_neighbours(self) -> None:
        """hydrogen_counts adds bonded hydrogen atoms to the implicit count."""
        mol = parse("[H]C([H])C")
        counts = hydrogen_counts(mol)
        assert set(counts) == {1, 3}
        assert counts[1] == 1 + 2
        assert counts[3] == 3

    @pytest.mark.parametrize("smiles", [
        "CCO", "C=C", "C#C", "CC(=O)O", "c1ccccc1", "c1ccncc1", "c1ccc2ccccc2c1", "CN", "C=O",
    ])
    def test_total_matches_rdkit(self, smiles: str) -> None:
        """Total hydrogen tally agrees with RDKit."""
        assert sum(hydrogen_counts(parse(smiles)).values()) == rdkit_total_hydrogens(smiles)


class TestAddExplicitHydrogens:
    """Test adding explicit hydrogens."""

    @pytest.mark.parametrize("smiles,expected_h_count", [
        ("C", 4),
        ("CC", 6),
        ("O", 2),
        ("[OH2]", 2),
        ("N", 3),
        ("C=C", 4),
        ("C#C", 2),
        ("CCO", 6),
        ("c1ccccc1", 6),
    ])
    def test_add_hydrogens_count(self, smiles: str, expected_h_count: int) -> None:
        """Correct number of hydrogens is added."""
        mol_h = add_explicit_hydrogens(parse(smiles))
        assert hydrogen_atom_count(mol_h) == expected_h_count

    @pytest.mark.parametrize("smiles", ["CCC", "CO", "c1ccncc1", "CC(=O)N"])
    def test_add_hydrogens_matches_rdkit(self, smiles: str) -> None:
        """Hydrogen atom count matches RDKit's AddHs."""
        mol_h = add_explicit_hydrogens(parse(smiles))
        assert hydrogen_atom_count(mol_h) == rdkit_total_hydrogens(smiles)

    def test_heavy_atoms_keep_ids(self) -> None:
        """Heavy atoms keep their ids and bonds; hydrogens follow."""
        mol = parse("CCO")
        mol_h = add_explicit_hydrogens(mol)
        assert [a.symbol for a in mol_h.atoms[:3]] == ["C", "C", "O"]
        assert mol_h.bond_between(0, 1) is not None
        assert mol_h.bond_between(1, 2) is not None
        assert all(a.is_hydrogen for a in mol_h.atoms[3:])

    def test_heavy_atoms_fixed_at_zero(self) -> None:
        """After expansion no heavy atom implies further hydrogens."""
        mol_h = add_explicit_hydrogens(parse("CCO"))
        assert all(mol_h.implicit_hydrogen_count(i) == 0 for i in range(3))

    def test_returns_new_molecule(self) -> None:
        """The input molecule is unchanged."""
        mol = parse("CC")
        mol_h = add_explicit_hydrogens(mol)
        assert mol.num_atoms == 2
        assert mol_h.num_atoms == 8


class TestRemoveExplicitHydrogens:
    """Test removing explicit hydrogens."""

    @pytest.mark.parametrize("smiles", ["[H]C([H])([H])[H]", "[H]OC([H])([H])C([H])([H])[H]", "[H][O][H]"])
    def test_remove_hydrogens_basic(self, smiles: str) -> None:
        """No hydrogen atoms remain."""
        mol_no_h = remove_explicit_hydrogens(parse(smiles))
        assert hydrogen_atom_count(mol_no_h) == 0

    @pytest.mark.parametrize("smiles", ["C", "CC", "CCO", "c1ccccc1", "CC(=O)O"])
    def test_roundtrip_preserves_tally(self, smiles: str) -> None:
        """Adding then removing hydrogens keeps every atom's hydrogen count."""
        mol = parse(smiles)
        restored = remove_explicit_hydrogens(add_explicit_hydrogens(mol))
        assert restored.num_atoms == mol.num_atoms
        assert hydrogen_counts(restored) == hydrogen_counts(mol)

    def test_removed_hydrogens_become_fixed_count(self) -> None:
        """Parents record the removed hydrogens."""
        mol = remove_explicit_hydrogens(parse("[H]OC"))
        assert mol.num_atoms == 2
        assert mol.atoms[0].symbol == "O"
        assert mol.atoms[0].explicit_hydrogens == 1

    def test_keep_isotopes(self) -> None:
        """Deuterium survives when isotopes are kept."""
        mol = parse("[2H]C")
        assert remove_explicit_hydrogens(mol, keep_isotopes=True).num_atoms == 2
        assert remove_explicit_hydrogens(mol).num_atoms == 1

    def test_h2_kept(self) -> None:
        """Hydrogen bonded only to hydrogen is not removed."""
        mol = parse("[H][H]")
        assert remove_explicit_hydrogens(mol).num_atoms == 2

    def test_no_hydrogens_returns_copy(self) -> None:
        """Nothing to remove gives an equal-sized copy."""
        mol = parse("CC")
        copy = remove_explicit_hydrogens(mol)
        assert copy is not mol
        assert copy.num_atoms == 2


class TestHydrogenEdgeCases:
    """Test edge cases for hydrogen manipulation."""

    def test_empty_molecule(self) -> None:
        """Empty molecules pass through."""
        mol = Molecule()
        assert add_explicit_hydrogens(mol).num_atoms == 0
        assert remove_explicit_hydrogens(mol).num_atoms == 0

    def test_bracket_carbon_without_hydrogens(self) -> None:
        """'[C]' fixes zero hydrogens."""
        mol_h = add_explicit_hydrogens(parse("[C]"))
        assert hydrogen_atom_count(mol_h) == 0
