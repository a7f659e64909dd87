"""
Molsketch - Pure Python 2D depiction and identifier toolkit.

A zero-dependency library that lays out molecular graphs as 2D structure
diagrams and derives ring-aware canonical identifiers from them.

    >>> from molsketch import parse, generate_coordinates, generate_inchi
    >>> mol = generate_coordinates(parse("CCO"))
    >>> generate_inchi(mol).inchi[:14]
    'InChI=1S/C2H6O'

Submodules:
    molsketch.rings     - Ring basis and ring systems
    molsketch.layout    - Structure diagram generation
    molsketch.inchi     - InChI-style layers, keys and reading
    molsketch.transform - Hydrogen handling
"""

__version__ = "0.1.0"

# Core types
from molsketch.types import Atom, Bond, BondStereo, BoundingBox, Chirality, Molecule, Point

# Parsing and writing
from molsketch.parser import parse, SmilesParser
from molsketch.writer import canonical_smiles, to_smiles, SmilesWriter
from molsketch.canon import canonical_ranks, Canonicalizer

# Exceptions
from molsketch.exceptions import ChemError, EmptyInputError, ParseError, RingError, UnsupportedError

# Element data
from molsketch.elements import Element, BondOrder, ORGANIC_SUBSET, AROMATIC_SUBSET

# Layout and depiction
from molsketch.layout import LayoutTuning, StructureDiagramGenerator, generate_coordinates
from molsketch.depict import assign_wedges, depict, needs_layout

# Identifiers
from molsketch.inchi import InChIGenerator, InChIResult, InChIStatus, InChIToStructure, generate_inchi
from molsketch.identifiers import MoleculeIdentifiers, compute_identifiers, unavailable_text

# Submodules
from molsketch import inchi, layout, rings, transform

__all__ = [
    # Types
    "Atom", "Bond", "BondStereo", "BoundingBox", "Chirality", "Molecule", "Point",
    # Parsing
    "parse", "SmilesParser",
    # Writing
    "canonical_smiles", "to_smiles", "SmilesWriter",
    # Canonicalization
    "canonical_ranks", "Canonicalizer",
    # Exceptions
    "ChemError", "EmptyInputError", "ParseError", "RingError", "UnsupportedError",
    # Elements
    "Element", "BondOrder", "ORGANIC_SUBSET", "AROMATIC_SUBSET",
    # Layout
    "LayoutTuning", "StructureDiagramGenerator", "generate_coordinates",
    "assign_wedges", "depict", "needs_layout",
    # Identifiers
    "InChIGenerator", "InChIResult", "InChIStatus", "InChIToStructure", "generate_inchi",
    "MoleculeIdentifiers", "compute_identifiers", "unavailable_text",
    # Submodules
    "inchi", "layout", "rings", "transform",
]
