"""
Identifier bundle: SMILES, isomeric SMILES, InChI-style string and key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import ChemError
from .inchi import InChIGenerator, InChIStatus
from .writer import canonical_smiles

if TYPE_CHECKING:
    from .types import Molecule


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MoleculeIdentifiers:
    """Identifiers computed for one molecule.

    Values that could not be computed hold an ``unavailable_text`` string
    and ``status`` records the outcome of the InChI step.
    """

    smiles: str
    iso_smiles: str
    inchi: str
    inchi_key: str
    status: InChIStatus = InChIStatus.SUCCESS
    message: str = ""


def unavailable_text(message: str = "") -> str:
    """Placeholder for a value that could not be computed.

    Example:
        >>> unavailable_text("  ")
        'Unavailable'
        >>> unavailable_text("no atoms")
        'Unavailable (no atoms)'
    """
    trimmed = message.strip()
    return f"Unavailable ({trimmed})" if trimmed else "Unavailable"


def compute_identifiers(mol: Molecule) -> MoleculeIdentifiers:
    """Compute all identifiers; never raises for chemistry errors.

    Example:
        >>> ids = compute_identifiers(parse("O"))
        >>> ids.inchi
        'InChI=1S/H2O/h1H2'
    """
    try:
        smiles = canonical_smiles(mol, isomeric=False)
        iso_smiles = canonical_smiles(mol, isomeric=True)
    except ChemError as exc:
        logger.debug("SMILES generation failed: %s", exc)
        smiles = iso_smiles = unavailable_text(str(exc))

    generator = InChIGenerator(mol)
    if generator.result is None:
        inchi = inchi_key = unavailable_text(generator.message)
    else:
        inchi = generator.result.inchi
        inchi_key = generator.result.key

    return MoleculeIdentifiers(
        smiles=smiles,
        iso_smiles=iso_smiles,
        inchi=inchi,
        inchi_key=inchi_key,
        status=generator.status,
        message=generator.message,
    )
