"""Tests for InChI-style identifier generation and the pseudo key."""

import pytest

from molsketch import EmptyInputError, Molecule, ParseError, UnsupportedError, parse
from molsketch.inchi import (
    INCHI_PREFIX,
    InChIGenerator,
    InChIStatus,
    generate_inchi,
    letter_block,
    normalize_input,
    pseudo_inchi_key,
)
from molsketch.inchi.layers import build_formula, signed_integer
from molsketch.transform import hydrogen_counts

from .conftest import SYMMETRIC_SMILES, rdkit_formula, renumbered


def layers_of(inchi: str) -> list[str]:
    """Layer segments after the prefix, formula first."""
    return inchi[len(INCHI_PREFIX):].split("/")


class TestExactStrings:
    """Small molecules whose identifier is fully determined."""

    @pytest.mark.parametrize("smiles,expected", [
        ("O", "InChI=1S/H2O/h1H2"),
        ("C", "InChI=1S/CH4/h1H4"),
        ("N", "InChI=1S/H3N/h1H3"),
        ("[NH4+]", "InChI=1S/H4N/h1H4/q+1"),
        ("[2H]C", "InChI=1S/CH4/h1H4/i1D"),
        ("[13CH4]", "InChI=1S/CH4/h1H4/i1+1"),
    ])
    def test_single_heavy_atom(self, smiles, expected):
        """One heavy atom: no connectivity layer, no empty segments."""
        assert generate_inchi(parse(smiles)).inchi == expected

    def test_signed_symbol(self):
        """A raw symbol with a sign supplies the charge."""
        mol = Molecule()
        mol.add_atom("N+")
        assert generate_inchi(mol).inchi == "InChI=1S/H4N/h1H4/q+1"

    def test_no_empty_segments(self, drug_smiles):
        """Omitted layers never leave '//' behind."""
        for smiles in drug_smiles:
            assert "//" not in generate_inchi(parse(smiles)).inchi, smiles


class TestFormula:
    """Test the formula layer."""

    @pytest.mark.parametrize("smiles", [
        "CCO", "CC(=O)O", "c1ccccc1", "c1ccncc1", "CCCl", "CS", "C#N",
        "CC(=O)OC1=CC=CC=C1C(=O)O", "CN1C=NC2=C1C(=O)N(C(=O)N2C)C", "CC(=O)NC1=CC=C(O)C=C1",
    ])
    def test_formula_matches_rdkit(self, smiles):
        """Carbon compounds follow the Hill order RDKit uses."""
        assert layers_of(generate_inchi(parse(smiles)).inchi)[0] == rdkit_formula(smiles)

    def test_detached_hydrogen_counted(self):
        """Hydrogen not bonded to a heavy atom joins the count."""
        mol = parse("C.[H+]")
        assert build_formula(normalize_input(mol), hydrogen_counts(mol)) == "CH5"

    def test_hydrogen_before_other_elements(self):
        """Without carbon, hydrogen still comes first."""
        assert layers_of(generate_inchi(parse("Cl")).inchi)[0] == "HCl"

    def test_signed_integer(self):
        """Explicit sign on every value."""
        assert signed_integer(0) == "+0"
        assert signed_integer(2) == "+2"
        assert signed_integer(-1) == "-1"


class TestLayers:
    """Test the optional layers."""

    def test_charge_and_isotope(self):
        """A labelled ammonium cation has both layers."""
        inchi = generate_inchi(parse("[13CH3][NH3+]")).inchi
        segments = layers_of(inchi)
        assert segments[0] == "CH6N"
        assert "q+1" in segments
        assert any(s.startswith("i") and s.endswith("+1") for s in segments)

    def test_net_charge_summed(self):
        """Charges of all atoms are summed."""
        segments = layers_of(generate_inchi(parse("C[O-].C[O-]")).inchi)
        assert "q-2" in segments

    def test_neutral_salt_has_no_charge_layer(self):
        """Balanced charges cancel."""
        segments = layers_of(generate_inchi(parse("[Na+].[Cl-]")).inchi)
        assert not any(s.startswith("q") for s in segments)

    def test_connectivity_tokens(self):
        """Ethanol has two edges over canonical numbers 1..3."""
        segments = layers_of(generate_inchi(parse("CCO")).inchi)
        connectivity = segments[1]
        assert connectivity.startswith("c")
        edges = connectivity[1:].split(";")
        assert len(edges) == 2
        numbers = {int(n) for edge in edges for n in edge.split("-")}
        assert numbers == {1, 2, 3}

    def test_double_bond_stereo(self):
        """A double bond with stereo marks gets a /b token."""
        assert any(s.startswith("b") for s in layers_of(generate_inchi(parse("C/C=C/C")).inchi))
        assert not any(s.startswith("b") for s in layers_of(generate_inchi(parse("CC=CC")).inchi))

    def test_tetrahedral_trailer(self):
        """A chiral centre adds /t with the fixed /m1/s1 trailer."""
        segments = layers_of(generate_inchi(parse("C[C@H](N)O")).inchi)
        assert segments[-2:] == ["m1", "s1"]
        assert segments[-3].startswith("t")
        assert segments[-3][-1] in "+-"

    def test_parity_follows_chirality(self):
        """Mirror images differ only in the parity sign."""
        left = generate_inchi(parse("C[C@H](N)O")).inchi
        right = generate_inchi(parse("C[C@@H](N)O")).inchi
        assert left != right
        assert left.replace("+", "-") == right.replace("+", "-")

    def test_no_stereo_no_trailer(self):
        """Achiral molecules have no /t, /m or /s."""
        segments = layers_of(generate_inchi(parse("CC(N)O")).inchi)
        assert not any(s[0] in "tms" for s in segments[1:])


class TestInvariance:
    """The identifier depends on the graph, not the atom order."""

    @pytest.mark.parametrize("first,second", [
        ("CCO", "OCC"),
        ("CC(=O)O", "OC(C)=O"),
        ("CCN(C)C", "CN(C)CC"),
        ("ClCCBr", "BrCCCl"),
        ("C[NH3+]", "[NH3+]C"),
        ("CC(C)O", "OC(C)C"),
    ])
    def test_same_identifier(self, first, second):
        """Differently written SMILES give the same string and key."""
        a = generate_inchi(parse(first))
        b = generate_inchi(parse(second))
        assert a.inchi == b.inchi
        assert a.key == b.key

    @pytest.mark.parametrize("smiles", SYMMETRIC_SMILES)
    def test_renumbered_symmetric_molecules(self, smiles):
        """Shuffled atom orders of symmetric molecules give one identifier."""
        mol = parse(smiles)
        expected = generate_inchi(mol)
        for seed in range(10):
            result = generate_inchi(renumbered(mol, seed))
            assert result.inchi == expected.inchi, seed
            assert result.key == expected.key

    def test_cyclohexane_connectivity(self):
        """A ring opened at different atoms gives the same /c layer."""
        first = layers_of(generate_inchi(parse("C1CCCCC1")).inchi)
        second = layers_of(generate_inchi(parse("C(C1)CCCC1")).inchi)
        assert first[1] == second[1] == "c1-2;1-3;2-4;3-5;4-6;5-6"

    def test_explicit_hydrogens_ignored(self):
        """Explicit hydrogen atoms fold into the heavy atom counts."""
        assert generate_inchi(parse("[H]OC([H])([H])[H]")).inchi == generate_inchi(parse("CO")).inchi

    def test_deterministic(self, drug_smiles):
        """Repeated generation gives identical results."""
        for smiles in drug_smiles:
            assert generate_inchi(parse(smiles)) == generate_inchi(parse(smiles))


class TestErrors:
    """Test failure modes."""

    def test_empty(self):
        """No atoms is an EmptyInputError."""
        with pytest.raises(EmptyInputError):
            generate_inchi(Molecule())

    def test_only_hydrogen(self):
        """A molecule without heavy atoms is unsupported."""
        with pytest.raises(UnsupportedError):
            generate_inchi(parse("[H][H]"))

    def test_query_atom(self):
        """Wildcards cannot be serialized."""
        with pytest.raises(UnsupportedError):
            generate_inchi(parse("*C"))

    def test_generator_reports_error(self):
        """The facade records the failure and the getters raise."""
        gen = InChIGenerator(parse("*C"))
        assert gen.status is InChIStatus.ERROR
        assert gen.message
        assert gen.result is None
        with pytest.raises(ParseError):
            gen.get_inchi()
        with pytest.raises(ParseError):
            gen.get_inchi_key()

    def test_generator_success(self):
        """Successful conversion exposes string and key."""
        gen = InChIGenerator(parse("O"))
        assert gen.status is InChIStatus.SUCCESS
        assert gen.get_inchi() == "InChI=1S/H2O/h1H2"
        assert gen.get_inchi_key() == pseudo_inchi_key("InChI=1S/H2O/h1H2")


class TestNormalizeInput:
    """Test symbol normalization before serialization."""

    def test_deuterium_symbol(self):
        """D becomes hydrogen of mass 2."""
        mol = Molecule()
        c = mol.add_atom("C")
        d = mol.add_atom("D")
        mol.add_bond(c, d)
        normalized = normalize_input(mol)
        assert normalized.atoms[1].symbol == "H"
        assert normalized.atoms[1].isotope == 2
        assert mol.atoms[1].symbol == "D"

    def test_lowercase_symbol(self):
        """Capitalization is fixed."""
        mol = Molecule()
        mol.add_atom("cl")
        assert normalize_input(mol).atoms[0].symbol == "Cl"


class TestPseudoKey:
    """Test the derived key."""

    def test_shape(self):
        """27 characters in 14-8-1 blocks of uppercase letters."""
        key = pseudo_inchi_key("InChI=1S/C2H6O/c1-3;2-3/h3H,2H2,1H3")
        assert len(key) == 27
        assert key[14] == "-"
        assert key[25] == "-"
        assert key[23:25] == "SA"
        assert key.replace("-", "").isalpha()
        assert key.replace("-", "").isupper()

    @pytest.mark.parametrize("inchi,flag", [
        ("InChI=1S/CH4/h1H4", "N"),
        ("InChI=1S/H3N/h1H3/p+1", "O"),
        ("InChI=1S/CH4O/c1-2/h2H,1H3/p-1", "M"),
    ])
    def test_protonation_flag(self, inchi, flag):
        """The last letter reflects the proton layer."""
        assert pseudo_inchi_key(inchi)[-1] == flag

    def test_distinct_inputs_distinct_keys(self):
        """Different strings give different keys."""
        assert pseudo_inchi_key("InChI=1S/CH4/h1H4") != pseudo_inchi_key("InChI=1S/H2O/h1H2")

    def test_stable(self):
        """Same string, same key."""
        assert pseudo_inchi_key("InChI=1S/CH4/h1H4") == pseudo_inchi_key("InChI=1S/CH4/h1H4")

    def test_letter_block_edges(self):
        """Empty digest or non-positive length give nothing."""
        assert letter_block(b"", 0, 5) == ""
        assert letter_block(b"abc", 0, 0) == ""
        assert len(letter_block(b"abc", 2, 10)) == 10
