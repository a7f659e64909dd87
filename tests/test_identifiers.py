"""Tests for the identifier bundle."""

from molsketch import Molecule, parse
from molsketch.identifiers import MoleculeIdentifiers, compute_identifiers, unavailable_text
from molsketch.inchi import InChIStatus, pseudo_inchi_key
from molsketch.writer import canonical_smiles


class TestUnavailableText:
    """Test the placeholder string."""

    def test_with_message(self):
        """The message is trimmed and put in parentheses."""
        assert unavailable_text("  no atoms ") == "Unavailable (no atoms)"

    def test_without_message(self):
        """Blank messages give the bare word."""
        assert unavailable_text() == "Unavailable"
        assert unavailable_text("   ") == "Unavailable"


class TestComputeIdentifiers:
    """Test identifier computation."""

    def test_water(self):
        """Every identifier is filled in."""
        ids = compute_identifiers(parse("O"))
        assert isinstance(ids, MoleculeIdentifiers)
        assert ids.smiles == "O"
        assert ids.iso_smiles == "O"
        assert ids.inchi == "InChI=1S/H2O/h1H2"
        assert ids.inchi_key == pseudo_inchi_key("InChI=1S/H2O/h1H2")
        assert ids.status is InChIStatus.SUCCESS
        assert ids.message == ""

    def test_smiles_match_writer(self):
        """SMILES fields are the canonical writer output."""
        mol = parse("OCC")
        ids = compute_identifiers(mol)
        assert ids.smiles == canonical_smiles(mol, isomeric=False)
        assert ids.iso_smiles == canonical_smiles(mol)

    def test_isomeric_difference(self):
        """Only the isomeric SMILES keeps stereo and isotopes."""
        ids = compute_identifiers(parse("[13CH3][C@H](N)O"))
        assert "@" in ids.iso_smiles
        assert "13" in ids.iso_smiles
        assert "@" not in ids.smiles
        assert "13" not in ids.smiles

    def test_query_atom(self):
        """InChI fails for wildcards but SMILES is still written."""
        ids = compute_identifiers(parse("*C"))
        assert ids.status is InChIStatus.ERROR
        assert ids.inchi.startswith("Unavailable (")
        assert ids.inchi_key == ids.inchi
        assert "*" in ids.smiles
        assert ids.message

    def test_empty_molecule(self):
        """No atoms: empty SMILES and an unavailable InChI."""
        ids = compute_identifiers(Molecule())
        assert ids.smiles == ""
        assert ids.status is InChIStatus.ERROR
        assert ids.inchi == unavailable_text("Input contains no atoms")

    def test_drugs(self, drug_smiles):
        """Drug-like molecules get a full set of identifiers."""
        for smiles in drug_smiles:
            ids = compute_identifiers(parse(smiles))
            assert ids.status is InChIStatus.SUCCESS, smiles
            assert ids.inchi.startswith("InChI=1S/C")
            assert len(ids.inchi_key) == 27
