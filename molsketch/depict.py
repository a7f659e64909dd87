"""
Depiction preparation.

Turns a parsed molecule into something a renderer can draw directly:
coordinates when the molecule has none, and wedge/hash markers on one
bond of every stereocentre.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from .elements import BondOrder
from .layout import generate_coordinates
from .parser import parse
from .types import BondStereo, Chirality, Molecule

if TYPE_CHECKING:
    from .layout import LayoutTuning
    from .types import Bond


logger = logging.getLogger(__name__)

_WEDGE_TIP_EXTENSION = 0.35
_CROWD_FLOOR = 0.15
_CROWD_WEIGHT = 0.14


def needs_layout(mol: Molecule) -> bool:
    """True when a molecule of two or more atoms has all atoms on one point."""
    if mol.num_atoms < 2:
        return False
    box = mol.bounding_box()
    return box is not None and box.width <= 1e-4 and box.height <= 1e-4


def _wedge_priority(mol: Molecule, bond: Bond, center: int) -> int:
    """Terminal substituents first, then by neighbour id."""
    neighbor = bond.other_atom(center)
    return (0 if mol.degree(neighbor) == 1 else 10) + neighbor


def _wedge_clearance(mol: Molecule, bond: Bond, center: int) -> float:
    """Free space around the far end of a wedge; larger is better."""
    neighbor = bond.other_atom(center)
    origin = mol.atoms[center].position
    end = mol.atoms[neighbor].position
    u = (end - origin).normalized()
    if u is None:
        return 0.0
    tip = end + u * _WEDGE_TIP_EXTENSION

    nearest = math.inf
    crowd = 0.0
    for atom in mol.atoms:
        if atom.idx in (center, neighbor):
            continue
        d = tip.distance_to(atom.position)
        nearest = min(nearest, d)
        crowd += 1.0 / max(_CROWD_FLOOR, d)
    if math.isinf(nearest):
        return 0.0
    return nearest - crowd * _CROWD_WEIGHT


def assign_wedges(mol: Molecule) -> Molecule:
    """Mark one single bond per chiral atom as a wedge or hash.

    Only single bonds without stereo are eligible. Clockwise centres get
    ``UP`` and anticlockwise centres ``DOWN``; the ``*_REVERSED`` variants
    are used when the centre is the bond's second atom.

    Returns:
        A copy of ``mol`` with updated bond stereo.
    """
    result = mol.copy()
    for atom in result.atoms:
        if atom.chirality is Chirality.NONE:
            continue
        candidates = [
            bond for bond in result.bonds_for_atom(atom.idx)
            if bond.order is BondOrder.SINGLE and bond.stereo is BondStereo.NONE
        ]
        if not candidates:
            logger.debug("no wedgeable bond at chiral atom %d", atom.idx)
            continue

        def key(bond: Bond) -> tuple[int, float, int]:
            clearance = round(_wedge_clearance(result, bond, atom.idx), 4)
            return (_wedge_priority(result, bond, atom.idx), -clearance, bond.idx)

        picked = min(candidates, key=key)
        from_first = picked.atom1_idx == atom.idx
        if atom.chirality is Chirality.CLOCKWISE:
            picked.stereo = BondStereo.UP if from_first else BondStereo.UP_REVERSED
        else:
            picked.stereo = BondStereo.DOWN if from_first else BondStereo.DOWN_REVERSED
    return result


def depict(mol_or_smiles: Molecule | str, tuning: LayoutTuning | None = None) -> Molecule:
    """Prepare a molecule or SMILES string for drawing.

    Example:
        >>> mol = depict("C[C@H](N)O")
        >>> needs_layout(mol)
        False
    """
    mol = parse(mol_or_smiles) if isinstance(mol_or_smiles, str) else mol_or_smiles
    if needs_layout(mol):
        mol = generate_coordinates(mol, tuning)
    return assign_wedges(mol)
