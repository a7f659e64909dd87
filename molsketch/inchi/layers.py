"""
InChI-style layer formatting.

Each builder takes the normalized molecule and the canonical numbering
(heavy atom index -> 1..N) and returns the layer body without its prefix
letter; an empty string means the layer is omitted.
"""

from __future__ import annotations

import hashlib
from collections import Counter
from typing import TYPE_CHECKING, Final, Sequence

from ..canon import MASK64, mix
from ..elements import STANDARD_MASS_NUMBERS, BondOrder
from ..exceptions import UnsupportedError
from ..types import BondStereo, Chirality

if TYPE_CHECKING:
    from ..types import Molecule


_KEY_STATE_SEED: Final[int] = 0x6A09E667F3BCC909
_KEY_OFFSET_MULTIPLIER: Final[int] = 1315423911


def signed_integer(value: int) -> str:
    """Format an integer with an explicit sign (``+1``, ``-2``, ``+0``)."""
    return f"+{value}" if value >= 0 else str(value)


def build_formula(mol: Molecule, hydrogens: dict[int, int]) -> str:
    """Hill-style formula: C, then H, then the rest alphabetically.

    Hydrogen atoms not attached to any heavy atom (H2, a lone proton) are
    added to the hydrogen count.

    Raises:
        UnsupportedError: For wildcard or empty symbols.
    """
    composition: Counter[str] = Counter()
    attached: set[int] = set()

    for atom in mol.atoms:
        if atom.is_hydrogen:
            continue
        if not atom.symbol or atom.symbol == "*":
            raise UnsupportedError(f"Unsupported atom symbol '{atom.symbol}' for InChI generation.")
        composition[atom.symbol] += 1
        attached.update(nbr for nbr in mol.neighbors(atom.idx) if mol.atoms[nbr].is_hydrogen)

    detached = sum(1 for atom in mol.atoms if atom.is_hydrogen and atom.idx not in attached)
    hydrogen_total = sum(hydrogens.values()) + detached
    if hydrogen_total > 0:
        composition["H"] += hydrogen_total

    def token(symbol: str, count: int) -> str:
        return symbol if count == 1 else f"{symbol}{count}"

    tokens: list[str] = []
    for leading in ("C", "H"):
        count = composition.pop(leading, 0)
        if count > 0:
            tokens.append(token(leading, count))
    for symbol in sorted(composition):
        tokens.append(token(symbol, composition[symbol]))
    return "".join(tokens)


def connectivity_layer(mol: Molecule, numbering: dict[int, int]) -> str:
    edges: set[tuple[int, int]] = set()
    for bond in mol.bonds:
        a = numbering.get(bond.atom1_idx)
        b = numbering.get(bond.atom2_idx)
        if a is None or b is None:
            continue
        edges.add((min(a, b), max(a, b)))
    return ";".join(f"{a}-{b}" for a, b in sorted(edges))


def hydrogen_layer(order: Sequence[int], numbering: dict[int, int], hydrogens: dict[int, int]) -> str:
    tokens: list[str] = []
    for atom_idx in order:
        count = hydrogens.get(atom_idx, 0)
        if count <= 0:
            continue
        tokens.append(f"{numbering[atom_idx]}H" if count == 1 else f"{numbering[atom_idx]}H{count}")
    return ",".join(tokens)


def charge_layer(mol: Molecule) -> str:
    total = sum(atom.charge for atom in mol.atoms)
    return signed_integer(total) if total != 0 else ""


def isotope_layer(mol: Molecule, order: Sequence[int], numbering: dict[int, int]) -> str:
    """Mass shifts of heavy atoms, then isotopic hydrogen neighbours.

    Elements without a reference mass number are skipped.
    """
    tokens: list[str] = []

    for atom_idx in order:
        atom = mol.atoms[atom_idx]
        base = STANDARD_MASS_NUMBERS.get(atom.symbol)
        if atom.isotope is None or base is None:
            continue
        shift = atom.isotope - base
        if shift != 0:
            tokens.append(f"{numbering[atom_idx]}{signed_integer(shift)}")

    for atom_idx in order:
        deuterium = tritium = 0
        for nbr in mol.neighbors(atom_idx):
            neighbor = mol.atoms[nbr]
            if not neighbor.is_hydrogen:
                continue
            mass = neighbor.isotope or 1
            if mass == 2:
                deuterium += 1
            elif mass == 3:
                tritium += 1
        for label, count in (("D", deuterium), ("T", tritium)):
            if count:
                tokens.append(f"{numbering[atom_idx]}{label}" + ("" if count == 1 else str(count)))

    return ",".join(tokens)


def double_bond_layer(mol: Molecule, numbering: dict[int, int]) -> str:
    pairs: list[tuple[int, int]] = []
    for bond in mol.bonds:
        if bond.order is not BondOrder.DOUBLE or bond.stereo is BondStereo.NONE:
            continue
        a = numbering.get(bond.atom1_idx)
        b = numbering.get(bond.atom2_idx)
        if a is None or b is None:
            continue
        pairs.append((min(a, b), max(a, b)))
    return ",".join(f"{a}-{b}" for a, b in sorted(pairs))


def tetrahedral_layer(mol: Molecule, order: Sequence[int], numbering: dict[int, int]) -> str:
    """``n+`` for clockwise and ``n-`` for anticlockwise centres."""
    tokens: list[str] = []
    for atom_idx in order:
        chirality = mol.atoms[atom_idx].chirality
        if chirality is Chirality.CLOCKWISE:
            tokens.append(f"{numbering[atom_idx]}+")
        elif chirality is Chirality.ANTICLOCKWISE:
            tokens.append(f"{numbering[atom_idx]}-")
    return ",".join(tokens)


# =============================================================================
# Pseudo key
# =============================================================================

def letter_block(digest: bytes, offset: int, length: int) -> str:
    """Map digest bytes to ``length`` uppercase letters."""
    if not digest or length <= 0:
        return ""
    state = _KEY_STATE_SEED ^ ((offset * _KEY_OFFSET_MULTIPLIER) & MASK64)
    letters: list[str] = []
    for index in range(length):
        byte = digest[(offset + index) % len(digest)]
        state = mix(state, byte + index + 1)
        letters.append(chr(65 + state % 26))
    return "".join(letters)


def pseudo_inchi_key(inchi: str) -> str:
    """Derive a 27-character ``XXXXXXXXXXXXXX-XXXXXXXXSA-X`` key.

    This is a fingerprint of the identifier string, not the standard
    InChIKey. The last letter flags protonation: ``M`` for a ``/p-``
    layer, ``O`` for ``/p+`` and ``N`` otherwise.

    Example:
        >>> key = pseudo_inchi_key("InChI=1S/CH4/h1H4")
        >>> len(key), key[14], key[-2]
        (27, '-', '-')
    """
    digest = hashlib.sha256(inchi.encode("utf-8")).digest()
    first = letter_block(digest, 0, 14)
    second = letter_block(digest, 14, 8) + "SA"
    if "/p-" in inchi:
        flag = "M"
    elif "/p+" in inchi:
        flag = "O"
    else:
        flag = "N"
    return f"{first}-{second}-{flag}"
