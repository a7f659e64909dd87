"""Tests for rebuilding molecules from InChI strings."""

import warnings

import pytest

from molsketch import BondStereo, Chirality, EmptyInputError, ParseError, UnsupportedError, parse
from molsketch.depict import needs_layout
from molsketch.elements import BondOrder
from molsketch.inchi import InChIStatus, InChIToStructure, generate_inchi


ETHANOL = "InChI=1S/C2H6O/c1-2-3/h3H,2H2,1H3"
BENZENE = "InChI=1S/C6H6/c1-2-4-6-5-3-1/h1-6H"
BUTAN_2_OL = "InChI=1S/C4H10O/c1-3-4(2)5/h4-5H,3H2,1-2H3/t4-/m0/s1"


def read(inchi: str):
    """Convert and return the molecule, failing on any warning."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        conv = InChIToStructure(inchi)
    assert conv.status is InChIStatus.SUCCESS, conv.message
    return conv.get_molecule()


def double_bonds(mol) -> list[tuple[int, int]]:
    return sorted(
        (min(b.atom1_idx, b.atom2_idx), max(b.atom1_idx, b.atom2_idx))
        for b in mol.bonds
        if b.order is BondOrder.DOUBLE
    )


class TestCoreLayers:
    """Test formula, connectivity and hydrogen layers."""

    def test_ethanol(self):
        """Atoms follow the formula order and every bond stays single."""
        mol = read(ETHANOL)
        assert [a.symbol for a in mol.atoms] == ["C", "C", "O"]
        assert mol.num_bonds == 2
        assert all(b.order is BondOrder.SINGLE for b in mol.bonds)
        assert [a.explicit_hydrogens for a in mol.atoms] == [3, 2, 1]

    def test_molecule_is_laid_out(self):
        """The result carries coordinates."""
        mol = read(ETHANOL)
        assert not needs_layout(mol)

    def test_benzene_kekule(self):
        """Three alternating double bonds are inferred for benzene."""
        mol = read(BENZENE)
        assert mol.num_atoms == 6
        assert mol.num_bonds == 6
        doubles = double_bonds(mol)
        assert len(doubles) == 3
        assert len({atom for bond in doubles for atom in bond}) == 6

    def test_hydrogen_ranges(self):
        """'1-6H' gives one hydrogen to every atom."""
        mol = read(BENZENE)
        assert all(a.explicit_hydrogens == 1 for a in mol.atoms)

    def test_mobile_hydrogen(self):
        """Glycine's mobile proton goes to the first oxygen; the other becomes C=O."""
        mol = read("InChI=1S/C2H5NO2/c3-1-2(4)5/h1,3H2,(H,4,5)")
        assert [a.symbol for a in mol.atoms] == ["C", "C", "N", "O", "O"]
        assert mol.atoms[3].explicit_hydrogens == 1
        assert mol.atoms[4].explicit_hydrogens == 0
        assert mol.atoms[0].explicit_hydrogens == 2
        assert mol.atoms[2].explicit_hydrogens == 2
        assert double_bonds(mol) == [(1, 4)]

    def test_triple_bond(self):
        """Acetonitrile gets a C#N bond."""
        mol = read("InChI=1S/C2H3N/c1-2-3/h1H3")
        bond = mol.bond_between(1, 2)
        assert bond is not None
        assert bond.order is BondOrder.TRIPLE

    @pytest.mark.parametrize("inchi,symbols", [
        ("InChI=1S/C2H4/c1-2/h1-2H2", ["C", "C"]),
        ("InChI=1S/O2/c1-2", ["O", "O"]),
        ("InChI=1S/H2N2/c1-2/h1-2H", ["N", "N"]),
        ("InChI=1S/CH2O/c1-2/h1H2", ["C", "O"]),
    ])
    def test_two_atom_double_bond(self, inchi, symbols):
        """A lone pair of atoms that both lack valence is joined by a double bond."""
        mol = read(inchi)
        assert [a.symbol for a in mol.atoms] == symbols
        assert mol.num_bonds == 1
        assert mol.bonds[0].order is BondOrder.DOUBLE

    def test_ethene_round_trip(self):
        """Ethene read back from its InChI writes the same InChI."""
        inchi = generate_inchi(parse("C=C")).inchi
        assert inchi == "InChI=1S/C2H4/c1-2/h1-2H2"
        assert generate_inchi(read(inchi)).inchi == inchi

    def test_single_atom(self):
        """Water has one atom and no bonds."""
        mol = read("InChI=1S/H2O/h1H2")
        assert mol.num_atoms == 1
        assert mol.num_bonds == 0
        assert mol.atoms[0].explicit_hydrogens == 2


class TestChargesAndIsotopes:
    """Test /q, /p and /i."""

    def test_charge_layer(self):
        """The charge lands on nitrogen."""
        mol = read("InChI=1S/H4N/h1H4/q+1")
        assert mol.atoms[0].charge == 1

    def test_protonation_of_ammonia(self):
        """/p+1 adds a hydrogen and a positive charge."""
        mol = read("InChI=1S/H3N/h1H3/p+1")
        assert mol.atoms[0].charge == 1
        assert mol.atoms[0].explicit_hydrogens == 4

    def test_protonation_of_water(self):
        """Hydronium from water."""
        mol = read("InChI=1S/H2O/h1H2/p+1")
        assert mol.atoms[0].charge == 1
        assert mol.atoms[0].explicit_hydrogens == 3

    def test_deprotonation(self):
        """/p-1 removes the hydroxyl hydrogen from methanol."""
        mol = read("InChI=1S/CH4O/c1-2/h2H,1H3/p-1")
        assert mol.atoms[1].charge == -1
        assert mol.atoms[1].explicit_hydrogens == 0
        assert mol.atoms[0].explicit_hydrogens == 3

    def test_isotope_shift(self):
        """'1+1' makes carbon-13."""
        mol = read("InChI=1S/CH4/h1H4/i1+1")
        assert mol.atoms[0].isotope == 13

    def test_isotopic_hydrogen_count(self):
        """'1D' adds a hydrogen to the count."""
        mol = read("InChI=1S/CH4/h1H3/i1D")
        assert mol.atoms[0].explicit_hydrogens == 4


class TestStereo:
    """Test /t, /m and /b."""

    def test_parity_with_inversion(self):
        """'/m0' inverts the listed parity."""
        mol = read(BUTAN_2_OL)
        assert mol.atoms[3].chirality is Chirality.CLOCKWISE
        assert all(a.chirality is Chirality.NONE for a in mol.atoms if a.idx != 3)

    def test_parity_without_inversion(self):
        """'/m1' keeps the listed parity."""
        mol = read(BUTAN_2_OL.replace("/m0", "/m1"))
        assert mol.atoms[3].chirality is Chirality.ANTICLOCKWISE

    def test_wedge_assigned(self):
        """A stereocentre gets one wedge or hash bond."""
        mol = read(BUTAN_2_OL)
        wedged = [b for b in mol.bonds if b.stereo is not BondStereo.NONE]
        assert len(wedged) == 1
        assert 3 in (wedged[0].atom1_idx, wedged[0].atom2_idx)

    def test_double_bond_stereo(self):
        """/b marks the inferred double bond."""
        mol = read("InChI=1S/C4H8/c1-3-4-2/h3-4H,1-2H3/b4-3+")
        bond = mol.bond_between(2, 3)
        assert bond is not None
        assert bond.order is BondOrder.DOUBLE
        assert bond.stereo is BondStereo.EITHER


class TestStatus:
    """Test warnings and errors."""

    def test_unknown_layer_warns(self):
        """Unsupported layers give a WARNING status and a UserWarning."""
        with pytest.warns(UserWarning, match="x"):
            conv = InChIToStructure("InChI=1S/CH4/h1H4/x123")
        assert conv.status is InChIStatus.WARNING
        assert "x" in conv.message
        assert conv.get_molecule().num_atoms == 1

    def test_bad_stereo_token_warns(self):
        """A /b token on a single bond is ignored with a warning."""
        with pytest.warns(UserWarning):
            conv = InChIToStructure("InChI=1S/C2H6O/c1-2-3/h3H,2H2,1H3/b1-2+")
        assert conv.status is InChIStatus.WARNING
        assert "b1-2+" in conv.message

    def test_missing_prefix(self):
        """Non-InChI text is an error that get_molecule re-raises."""
        conv = InChIToStructure("CCO")
        assert conv.status is InChIStatus.ERROR
        with pytest.raises(ParseError):
            conv.get_molecule()

    def test_empty(self):
        """Blank input is an EmptyInputError."""
        conv = InChIToStructure("   ")
        assert conv.status is InChIStatus.ERROR
        with pytest.raises(EmptyInputError):
            conv.get_molecule()

    def test_version(self):
        """Only version 1 is read."""
        with pytest.raises(UnsupportedError):
            InChIToStructure("InChI=2S/CH4/h1H4").get_molecule()

    @pytest.mark.parametrize("inchi", [
        "InChI=1S",
        "InChI=1S/H2",
        "InChI=1S/C2H6/c1-5",
        "InChI=1S/C2H6/c1)2",
        "InChI=1S/C2H6/c(1-2",
        "InChI=1S/C2H6/c1-2!",
    ])
    def test_malformed(self, inchi):
        """Structural problems are parse errors."""
        conv = InChIToStructure(inchi)
        assert conv.status is InChIStatus.ERROR
        with pytest.raises(ParseError):
            conv.get_molecule()


class TestRoundTrip:
    """Generated strings can be read back."""

    @pytest.mark.parametrize("smiles", ["CCO", "CC(=O)O", "c1ccccc1", "CCN", "CC(C)C"])
    def test_formula_and_graph_size(self, smiles):
        """Reading a generated string restores the formula and graph size."""
        original = parse(smiles)
        inchi = generate_inchi(original).inchi
        mol = read(inchi)
        assert mol.num_atoms == original.num_atoms
        assert mol.num_bonds == original.num_bonds
        assert generate_inchi(mol).inchi.split("/")[1] == inchi.split("/")[1]
