"""Test configuration and fixtures for molsketch tests."""

import math
import random

import pytest

# RDKit is used as reference for ring counts, formulas and graph sizes
from rdkit import Chem
from rdkit.Chem import rdMolDescriptors

from molsketch import Molecule
from molsketch.layout.geometry import segments_intersect


def rdkit_mol(smiles: str):
    """Parse with RDKit, failing loudly on invalid input."""
    mol = Chem.MolFromSmiles(smiles)
    if mol is None:
        raise ValueError(f"RDKit could not parse: {smiles}")
    return mol


def rdkit_canonical(smiles: str, isomeric: bool = True) -> str:
    """RDKit canonical SMILES, used to compare structures written differently."""
    return Chem.MolToSmiles(rdkit_mol(smiles), isomericSmiles=isomeric)


def rdkit_ring_count(smiles: str) -> int:
    """Number of SSSR rings according to RDKit."""
    return rdMolDescriptors.CalcNumRings(rdkit_mol(smiles))


def rdkit_formula(smiles: str) -> str:
    """Hill formula according to RDKit."""
    return rdMolDescriptors.CalcMolFormula(rdkit_mol(smiles))


def bond_lengths(mol) -> list[float]:
    """Drawn length of every bond."""
    return [
        mol.atoms[b.atom1_idx].position.distance_to(mol.atoms[b.atom2_idx].position)
        for b in mol.bonds
    ]


def min_non_bonded_distance(mol) -> float:
    """Closest approach between two atoms that are not bonded."""
    best = math.inf
    for i, a in enumerate(mol.atoms):
        for b in mol.atoms[i + 1:]:
            if mol.bond_between(a.idx, b.idx) is not None:
                continue
            best = min(best, a.position.distance_to(b.position))
    return best


def crossing_count(mol) -> int:
    """Pairs of bonds without a common atom whose segments cross."""
    crossings = 0
    for i, b1 in enumerate(mol.bonds):
        for b2 in mol.bonds[i + 1:]:
            if {b1.atom1_idx, b1.atom2_idx} & {b2.atom1_idx, b2.atom2_idx}:
                continue
            if segments_intersect(
                mol.atoms[b1.atom1_idx].position,
                mol.atoms[b1.atom2_idx].position,
                mol.atoms[b2.atom1_idx].position,
                mol.atoms[b2.atom2_idx].position,
            ):
                crossings += 1
    return crossings


def renumbered(mol, seed: int):
    """Copy of an achiral molecule with atoms and bonds in shuffled order."""
    rng = random.Random(seed)
    old_order = list(range(mol.num_atoms))
    rng.shuffle(old_order)
    copy = Molecule(name=mol.name)
    new_idx = {}
    for old in old_order:
        atom = mol.atoms[old]
        new_idx[old] = copy.add_atom(
            atom.symbol,
            charge=atom.charge,
            isotope=atom.isotope,
            is_aromatic=atom.is_aromatic,
            explicit_hydrogens=atom.explicit_hydrogens,
            is_query=atom.is_query,
        )
    bonds = list(mol.bonds)
    rng.shuffle(bonds)
    for bond in bonds:
        ends = [new_idx[bond.atom1_idx], new_idx[bond.atom2_idx]]
        rng.shuffle(ends)
        copy.add_bond(ends[0], ends[1], bond.order)
    return copy


SYMMETRIC_SMILES = [
    "c1ccccc1",
    "C1CCCCC1",
    "c1ccc2ccccc2c1",
    "C1CCC2CCCCC2C1",
    "CC(C)C",
    "CC(C)CC(C)C",
    "C1CCC(CC1)C1CCCCC1",
    "OC(=O)CC(O)(CC(=O)O)C(=O)O",
    "CN1C=NC2=C1C(=O)N(C(=O)N2C)C",
    "C1C2CC3CC1CC(C2)C3",
    "C12C3C4C1C5C2C3C45",
]


def angle_degrees(a, center, b) -> float:
    """Angle a-center-b in degrees."""
    v1 = a - center
    v2 = b - center
    l1 = max(1e-4, v1.length())
    l2 = max(1e-4, v2.length())
    cos = max(-1.0, min(1.0, v1.dot(v2) / (l1 * l2)))
    return math.degrees(math.acos(cos))


@pytest.fixture
def simple_smiles() -> list[str]:
    """Basic acyclic SMILES strings."""
    return ["CC", "CCC", "CCCC", "CCO", "C=C", "C#C", "C=O", "C#N", "CC(C)C", "CC(C)(C)C"]


@pytest.fixture
def ring_smiles() -> list[str]:
    """SMILES with ring closures."""
    return [
        "C1CC1",
        "C1CCC1",
        "C1CCCC1",
        "C1CCCCC1",
        "C1CC2CCCCC2C1",
        "C12CC1CC2",
        "c1ccccc1",
        "c1ccc2ccccc2c1",
    ]


@pytest.fixture
def drug_smiles() -> list[str]:
    """Drug-like molecules with mixed rings and chains."""
    return [
        "CC(=O)OC1=CC=CC=C1C(=O)O",
        "CC(C)CC1=CC=C(C=C1)C(C)C(=O)O",
        "CN1C=NC2=C1C(=O)N(C(=O)N2C)C",
        "CC(=O)NC1=CC=C(O)C=C1",
        "OC(=O)C1=CC=CC=C1",
    ]
