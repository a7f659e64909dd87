"""
Structure-to-InChI generation.

The output follows the InChI layer conventions (``/c``, ``/h``, ``/q``,
``/i``, ``/b``, ``/t``, ``/m``, ``/s``) but is an approximation: canonical
numbering comes from the hash refinement in :mod:`molsketch.canon`, not
from the IUPAC algorithm, so strings are only comparable with each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ..canon import Canonicalizer
from ..elements import inferred_charge, normalize_symbol
from ..exceptions import ChemError, EmptyInputError, ParseError, UnsupportedError
from ..transform.hydrogen import hydrogen_counts
from ..types import Molecule
from . import layers


logger = logging.getLogger(__name__)

INCHI_PREFIX = "InChI=1S/"


class InChIStatus(Enum):
    """Outcome of an InChI conversion."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class InChIResult:
    """A generated identifier with its pseudo key."""

    inchi: str
    key: str
    status: InChIStatus = InChIStatus.SUCCESS
    message: str = ""


def normalize_input(mol: Molecule) -> Molecule:
    """Copy of ``mol`` ready for layer generation.

    Symbols get canonical capitalization, a signed raw symbol such as
    ``"N+"`` supplies the charge when the atom has none, and D/T become
    hydrogen with mass numbers 2/3.
    """
    copy = mol.copy()
    for atom in copy.atoms:
        raw = atom.symbol
        symbol = normalize_symbol(raw)
        if atom.charge == 0:
            atom.charge = inferred_charge(raw)
        if symbol == "D":
            symbol = "H"
            if atom.isotope is None:
                atom.isotope = 2
        elif symbol == "T":
            symbol = "H"
            if atom.isotope is None:
                atom.isotope = 3
        atom.symbol = symbol
    return copy


def generate_inchi(mol: Molecule, rounds: int = 8) -> InChIResult:
    """Generate the identifier string and pseudo key for a molecule.

    Args:
        mol: Molecule, with or without explicit hydrogen atoms.
        rounds: Canonical refinement rounds.

    Returns:
        Successful InChIResult.

    Raises:
        EmptyInputError: If the molecule has no atoms.
        UnsupportedError: For query atoms or bonds, or a molecule made only
            of hydrogens.

    Example:
        >>> generate_inchi(parse("O")).inchi
        'InChI=1S/H2O/h1H2'
    """
    normalized = normalize_input(mol)
    if not normalized.atoms:
        raise EmptyInputError()

    if any(atom.is_query for atom in normalized.atoms) or any(b.is_query for b in normalized.bonds):
        raise UnsupportedError("InChI generation does not support query atoms.")

    if all(atom.is_hydrogen for atom in normalized.atoms):
        raise UnsupportedError("InChI generation requires at least one non-hydrogen atom.")

    hydrogens = hydrogen_counts(normalized)
    canonicalizer = Canonicalizer(normalized, hydrogen_counts=hydrogens, rounds=rounds)
    order = canonicalizer.canonical_order()
    numbering = canonicalizer.compute_ranks()

    segments = [layers.build_formula(normalized, hydrogens)]
    for prefix, body in (
        ("c", layers.connectivity_layer(normalized, numbering)),
        ("h", layers.hydrogen_layer(order, numbering, hydrogens)),
        ("q", layers.charge_layer(normalized)),
        ("i", layers.isotope_layer(normalized, order, numbering)),
        ("b", layers.double_bond_layer(normalized, numbering)),
    ):
        if body:
            segments.append(prefix + body)

    parity = layers.tetrahedral_layer(normalized, order, numbering)
    if parity:
        segments.extend((f"t{parity}", "m1", "s1"))

    inchi = INCHI_PREFIX + "/".join(segments)
    logger.debug("generated %s", inchi)
    return InChIResult(inchi=inchi, key=layers.pseudo_inchi_key(inchi))


class InChIGenerator:
    """Facade that converts a molecule and records the outcome.

    Construction never raises; failures are reported through ``status``
    and ``message``, and the getters raise when there is no result.

    Example:
        >>> gen = InChIGenerator(parse("CCO"))
        >>> gen.status
        <InChIStatus.SUCCESS: 'success'>
        >>> gen.get_inchi()[:14]
        'InChI=1S/C2H6O'
    """

    def __init__(self, mol: Molecule, rounds: int = 8) -> None:
        self._result: InChIResult | None = None
        self.status = InChIStatus.SUCCESS
        self.message = ""
        try:
            self._result = generate_inchi(mol, rounds=rounds)
        except ChemError as exc:
            self.status = InChIStatus.ERROR
            self.message = str(exc)
            logger.debug("InChI generation failed: %s", exc)
        else:
            self.status = self._result.status
            self.message = self._result.message

    @property
    def result(self) -> InChIResult | None:
        return self._result

    def get_inchi(self) -> str:
        """Return the identifier string.

        Raises:
            ParseError: If generation failed.
        """
        if self._result is None:
            raise ParseError(self.message or "Could not generate InChI.")
        return self._result.inchi

    def get_inchi_key(self) -> str:
        """Return the pseudo key.

        Raises:
            ParseError: If generation failed.
        """
        if self._result is None:
            raise ParseError(self.message or "Could not generate InChIKey.")
        return self._result.key
