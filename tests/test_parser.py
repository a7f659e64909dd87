"""Tests for the SMILES parser.

Atom and bond counts are checked against RDKit; stereo and error handling
against hand-worked expectations.
"""

import pytest
from rdkit import Chem

from molsketch import BondOrder, BondStereo, Chirality, Molecule, parse
from molsketch.exceptions import ChemError, EmptyInputError, ParseError, RingError
from molsketch.parser import SmilesParser


def rdkit_atom_count(smiles: str) -> int:
    """Get number of atoms from RDKit for comparison."""
    mol = Chem.MolFromSmiles(smiles)
    return mol.GetNumAtoms() if mol else 0


def rdkit_bond_count(smiles: str) -> int:
    """Get number of bonds from RDKit for comparison."""
    mol = Chem.MolFromSmiles(smiles)
    return mol.GetNumBonds() if mol else 0


class TestBasicParsing:
    """Test basic SMILES parsing functionality."""

    def test_parse_returns_molecule(self):
        """parse() should return a Molecule object."""
        assert isinstance(parse("C"), Molecule)

    def test_parser_class(self):
        """SmilesParser can be used directly."""
        mol = SmilesParser("CCO").parse()
        assert [a.symbol for a in mol.atoms] == ["C", "C", "O"]

    @pytest.mark.parametrize("smiles,order", [
        ("CC", BondOrder.SINGLE),
        ("C-C", BondOrder.SINGLE),
        ("C=C", BondOrder.DOUBLE),
        ("C#C", BondOrder.TRIPLE),
        ("c:c", BondOrder.AROMATIC),
    ])
    def test_bond_orders(self, smiles, order):
        """Explicit and default bond symbols."""
        mol = parse(smiles)
        assert len(mol.bonds) == 1
        assert mol.bonds[0].order is order

    def test_simple_chain_counts_match_rdkit(self, simple_smiles):
        """Atom and bond counts agree with RDKit."""
        for smiles in simple_smiles:
            mol = parse(smiles)
            assert mol.num_atoms == rdkit_atom_count(smiles), smiles
            assert mol.num_bonds == rdkit_bond_count(smiles), smiles

    def test_drug_counts_match_rdkit(self, drug_smiles):
        """Drug-like molecules parse to the RDKit graph size."""
        for smiles in drug_smiles:
            mol = parse(smiles)
            assert mol.num_atoms == rdkit_atom_count(smiles), smiles
            assert mol.num_bonds == rdkit_bond_count(smiles), smiles

    def test_two_letter_organic(self):
        """Cl and Br are read as single atoms."""
        mol = parse("ClCBr")
        assert [a.symbol for a in mol.atoms] == ["Cl", "C", "Br"]

    def test_name_after_whitespace(self):
        """Text after the SMILES becomes the molecule name."""
        mol = parse("CCO ethanol")
        assert mol.num_atoms == 3
        assert mol.name == "ethanol"

    def test_default_name(self):
        """Unnamed molecules get a placeholder title."""
        assert parse("C").name == "Untitled"


class TestAromaticParsing:
    """Test aromatic SMILES parsing."""

    def test_benzene(self):
        """Aromatic atoms get capitalized symbols and aromatic bonds."""
        mol = parse("c1ccccc1")
        assert mol.num_atoms == 6
        assert mol.num_bonds == 6
        assert all(a.is_aromatic and a.symbol == "C" for a in mol.atoms)
        assert all(b.order is BondOrder.AROMATIC for b in mol.bonds)

    def test_biphenyl_link_is_single(self):
        """An explicit '-' between aromatic atoms is a single bond."""
        mol = parse("c1ccccc1-c1ccccc1")
        link = mol.bond_between(5, 6)
        assert link is not None
        assert link.order is BondOrder.SINGLE

    def test_pyrrole_nh(self):
        """Bracket aromatic nitrogen keeps its hydrogen."""
        mol = parse("c1cc[nH]c1")
        nitrogen = mol.atoms[3]
        assert nitrogen.symbol == "N"
        assert nitrogen.is_aromatic
        assert nitrogen.explicit_hydrogens == 1

    def test_invalid_aromatic(self):
        """Only aromatic-capable elements may be lowercase."""
        with pytest.raises(ParseError):
            parse("x1ccccc1")


class TestBracketAtoms:
    """Test bracket atom properties."""

    @pytest.mark.parametrize("smiles,charge", [
        ("[NH4+]", 1),
        ("[O-]", -1),
        ("[Fe+2]", 2),
        ("[Fe++]", 2),
        ("[S-2]", -2),
    ])
    def test_charges(self, smiles, charge):
        """Charge forms +, ++, +n, -n."""
        assert parse(smiles).atoms[0].charge == charge

    def test_isotope(self):
        """Mass number precedes the symbol."""
        atom = parse("[13CH4]").atoms[0]
        assert atom.isotope == 13
        assert atom.explicit_hydrogens == 4

    def test_hydrogen_defaults_to_zero(self):
        """A bracket atom without H has no hydrogens."""
        mol = parse("[C]")
        assert mol.atoms[0].explicit_hydrogens == 0
        assert mol.implicit_hydrogen_count(0) == 0

    def test_atom_class_ignored(self):
        """Atom classes are read and dropped."""
        atom = parse("[CH3:7]").atoms[0]
        assert atom.symbol == "C"
        assert atom.explicit_hydrogens == 3

    def test_non_organic_element(self):
        """Elements outside the organic subset parse in brackets."""
        mol = parse("[Na+].[Cl-]")
        assert [a.symbol for a in mol.atoms] == ["Na", "Cl"]
        assert len(mol.connected_components()) == 2

    def test_unknown_element(self):
        """Unknown element symbols are rejected."""
        with pytest.raises(ParseError):
            parse("[Xx]")

    def test_bare_non_organic(self):
        """Elements outside the organic subset need brackets."""
        with pytest.raises(ParseError):
            parse("CNa")


class TestStereo:
    """Test chirality and directional bonds."""

    def test_anticlockwise(self):
        """'@' is anticlockwise."""
        assert parse("C[C@H](N)O").atoms[1].chirality is Chirality.ANTICLOCKWISE

    def test_clockwise(self):
        """'@@' is clockwise."""
        assert parse("C[C@@H](N)O").atoms[1].chirality is Chirality.CLOCKWISE

    def test_no_chirality(self):
        """Plain atoms have no chirality."""
        assert all(a.chirality is Chirality.NONE for a in parse("CC(N)O").atoms)

    @pytest.mark.parametrize("smiles", ["F/C=C/F", "F/C=C\\F", "C/C=C/C"])
    def test_directional_double_bond(self, smiles):
        """A double bond flanked by '/' or '\\' gets EITHER stereo."""
        mol = parse(smiles)
        double = next(b for b in mol.bonds if b.order is BondOrder.DOUBLE)
        assert double.stereo is BondStereo.EITHER
        assert all(b.direction is None for b in mol.bonds)

    def test_one_sided_direction(self):
        """A single directional bond is not enough."""
        mol = parse("F/C=CF")
        double = next(b for b in mol.bonds if b.order is BondOrder.DOUBLE)
        assert double.stereo is BondStereo.NONE


class TestRingParsing:
    """Test ring closure parsing."""

    def test_ring_counts_match_rdkit(self, ring_smiles):
        """Ring molecules parse to the RDKit graph size."""
        for smiles in ring_smiles:
            mol = parse(smiles)
            assert mol.num_atoms == rdkit_atom_count(smiles), smiles
            assert mol.num_bonds == rdkit_bond_count(smiles), smiles

    def test_ring_closure_bond_created_at_closure(self):
        """The closing bond is the last bond of cyclopropane."""
        mol = parse("C1CC1")
        closure = mol.bonds[-1]
        assert {closure.atom1_idx, closure.atom2_idx} == {0, 2}

    @pytest.mark.parametrize("smiles", ["C%10CCCCC%10", "C%(12)CCCCC%(12)"])
    def test_percent_ring_numbers(self, smiles):
        """Two-digit and parenthesized ring numbers."""
        mol = parse(smiles)
        assert mol.num_atoms == 6
        assert mol.num_bonds == 6

    def test_ring_number_reuse(self):
        """A closed ring number can be opened again."""
        mol = parse("C1CC1C1CC1")
        assert mol.num_atoms == 6
        assert mol.num_bonds == 7

    def test_closure_bond_order(self):
        """A bond symbol at the opening applies to the closure."""
        mol = parse("C=1CCCCC1")
        closure = mol.bond_between(0, 5)
        assert closure.order is BondOrder.DOUBLE

    def test_unclosed_ring(self):
        """An open ring number at the end is a RingError."""
        with pytest.raises(RingError) as excinfo:
            parse("C1CC")
        assert excinfo.value.ring_index == 1

    def test_self_closure(self):
        """Closing a ring on the same atom is a RingError."""
        with pytest.raises(RingError):
            parse("C11")

    def test_ring_error_is_parse_error(self):
        """RingError derives from ParseError and ChemError."""
        assert issubclass(RingError, ParseError)
        assert issubclass(ParseError, ChemError)


class TestParseErrors:
    """Test syntax errors."""

    @pytest.mark.parametrize("smiles", ["", "   "])
    def test_empty(self, smiles):
        """Empty input raises EmptyInputError."""
        with pytest.raises(EmptyInputError):
            parse(smiles)

    @pytest.mark.parametrize("smiles", ["C(C", "CC)", "(C)", "C[C", "C?C", "1CC"])
    def test_syntax_errors(self, smiles):
        """Malformed strings raise ParseError."""
        with pytest.raises(ParseError):
            parse(smiles)

    def test_error_position(self):
        """ParseError records the offending text and offset."""
        with pytest.raises(ParseError) as excinfo:
            parse("CC?C")
        assert excinfo.value.text == "CC?C"
        assert excinfo.value.position == 2


class TestQueryFeatures:
    """Test wildcard atoms and bonds."""

    def test_query_atom(self):
        """'*' is a query atom."""
        mol = parse("*C")
        assert mol.atoms[0].is_query
        assert mol.atoms[0].symbol == "*"

    def test_bracket_query_atom(self):
        """'[*]' is a query atom too."""
        assert parse("[*]C").atoms[0].is_query

    def test_query_bond(self):
        """'~' marks a query bond."""
        mol = parse("C~C")
        assert mol.bonds[0].is_query
