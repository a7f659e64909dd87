"""
Chemical elements and constants.

This module provides element data, bond orders, valence rules and the
symbol normalization used throughout the toolkit.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Final, FrozenSet


class BondOrder(IntEnum):
    """Bond order enumeration."""

    SINGLE = 1
    DOUBLE = 2
    TRIPLE = 3
    AROMATIC = 4

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def valence_contribution(self) -> float:
        """Electrons-pairs counted toward valence (aromatic bonds count 1.5)."""
        if self is BondOrder.AROMATIC:
            return 1.5
        return float(self.value)

    @property
    def is_pi(self) -> bool:
        """Whether the bond carries a pi component."""
        return self is not BondOrder.SINGLE

    @property
    def rank(self) -> int:
        """Integer rank fed into canonical hashing."""
        return int(self.value)


@dataclass(frozen=True, slots=True)
class Element:
    """Immutable element data.

    Attributes:
        atomic_number: Atomic number (proton count).
        symbol: Element symbol (e.g., "C", "Cl").
    """

    atomic_number: int
    symbol: str

    _by_symbol: ClassVar[dict[str, "Element"]] = {}
    _by_number: ClassVar[dict[int, "Element"]] = {}

    @classmethod
    def from_symbol(cls, symbol: str) -> "Element | None":
        """Look up an element by symbol, accepting aromatic lowercase forms."""
        if symbol in cls._by_symbol:
            return cls._by_symbol[symbol]
        return cls._by_symbol.get(symbol.capitalize())

    @classmethod
    def from_atomic_number(cls, atomic_number: int) -> "Element | None":
        return cls._by_number.get(atomic_number)


# Index + 1 is the atomic number.
_SYMBOLS: Final[tuple[str, ...]] = (
    "H", "He",
    "Li", "Be", "B", "C", "N", "O", "F", "Ne",
    "Na", "Mg", "Al", "Si", "P", "S", "Cl", "Ar",
    "K", "Ca", "Sc", "Ti", "V", "Cr", "Mn", "Fe", "Co", "Ni", "Cu", "Zn",
    "Ga", "Ge", "As", "Se", "Br", "Kr",
    "Rb", "Sr", "Y", "Zr", "Nb", "Mo", "Tc", "Ru", "Rh", "Pd", "Ag", "Cd",
    "In", "Sn", "Sb", "Te", "I", "Xe",
    "Cs", "Ba",
    "La", "Ce", "Pr", "Nd", "Pm", "Sm", "Eu", "Gd", "Tb", "Dy", "Ho", "Er",
    "Tm", "Yb", "Lu",
    "Hf", "Ta", "W", "Re", "Os", "Ir", "Pt", "Au", "Hg",
    "Tl", "Pb", "Bi", "Po", "At", "Rn",
    "Fr", "Ra",
    "Ac", "Th", "Pa", "U", "Np", "Pu", "Am", "Cm", "Bk", "Cf", "Es", "Fm",
    "Md", "No", "Lr",
    "Rf", "Db", "Sg", "Bh", "Hs", "Mt", "Ds", "Rg", "Cn",
    "Nh", "Fl", "Mc", "Lv", "Ts", "Og",
)

ELEMENTS: Final[tuple[Element, ...]] = tuple(
    Element(number, symbol) for number, symbol in enumerate(_SYMBOLS, start=1)
)

for _element in ELEMENTS:
    Element._by_symbol[_element.symbol] = _element
    Element._by_number[_element.atomic_number] = _element
del _element


ORGANIC_SUBSET: Final[FrozenSet[str]] = frozenset({
    "B", "C", "N", "O", "P", "S", "F", "Cl", "Br", "I",
})

AROMATIC_SUBSET: Final[FrozenSet[str]] = frozenset({
    "b", "c", "n", "o", "p", "s", "se", "as",
})

TWO_LETTER_ORGANIC: Final[FrozenSet[str]] = frozenset({"Cl", "Br"})

HYDROGEN_SYMBOLS: Final[FrozenSet[str]] = frozenset({"H", "D", "T"})

HALOGENS: Final[FrozenSet[str]] = frozenset({"F", "Cl", "Br", "I"})

# Reference mass numbers used for isotope shifts.
STANDARD_MASS_NUMBERS: Final[dict[str, int]] = {
    "H": 1,
    "B": 11,
    "C": 12,
    "N": 14,
    "O": 16,
    "F": 19,
    "P": 31,
    "S": 32,
    "Cl": 35,
    "Br": 79,
    "I": 127,
}


def get_atomic_number(symbol: str) -> int:
    """Get atomic number from element symbol.

    Hydrogen isotopes map to 1; unknown and wildcard symbols map to 0.

    Args:
        symbol: Element symbol (case-insensitive for aromatic forms).

    Returns:
        Atomic number, or 0 if the symbol is not an element.
    """
    if symbol in ("D", "T"):
        return 1
    elem = Element.from_symbol(symbol)
    return elem.atomic_number if elem else 0


def is_organic_symbol(symbol: str) -> bool:
    """Check if symbol is in the SMILES organic subset."""
    return symbol in ORGANIC_SUBSET


def is_aromatic_symbol(symbol: str) -> bool:
    """Check if symbol can be written as an aromatic atom."""
    return symbol in AROMATIC_SUBSET


def is_hydrogen_symbol(symbol: str) -> bool:
    """Check if symbol is hydrogen or one of its named isotopes."""
    return normalize_symbol(symbol) in HYDROGEN_SYMBOLS


def normalize_symbol(raw: str) -> str:
    """Normalize a raw element token to its canonical capitalization.

    Leading letters are kept; charge suffixes such as ``"N+"`` are dropped.
    A two-letter candidate that is not a known element falls back to its
    first letter.

    Example:
        >>> normalize_symbol("CL")
        'Cl'
        >>> normalize_symbol("n+")
        'N'
    """
    token = raw.strip()
    letters = ""
    for ch in token:
        if not ch.isalpha():
            break
        letters += ch
    if not letters:
        return token

    first = letters[0].upper()
    if len(letters) == 1:
        return first
    candidate = first + letters[1].lower()
    if candidate in Element._by_symbol:
        return candidate
    return first


def inferred_charge(raw: str) -> int:
    """Parse a signed suffix on a raw element token.

    Supports ``"N+"``, ``"O-"``, ``"Fe2+"``-style trailing signs,
    ``"O--"`` repeats and ``"S+2"`` counts.

    Args:
        raw: Element token as it appears in a source file.

    Returns:
        Net charge encoded in the suffix, 0 when there is none.
    """
    token = raw.strip()
    pos = 0
    while pos < len(token) and token[pos].isalpha():
        pos += 1
    suffix = token[pos:]
    if not suffix:
        return 0

    total = 0
    pending_digits = ""
    i = 0
    while i < len(suffix):
        ch = suffix[i]
        if ch.isdigit():
            pending_digits += ch
            i += 1
            continue
        if ch not in "+-":
            i += 1
            continue

        sign = 1 if ch == "+" else -1
        i += 1
        digits = ""
        while i < len(suffix) and suffix[i].isdigit():
            digits += suffix[i]
            i += 1
        if digits:
            total += sign * int(digits)
        elif pending_digits:
            total += sign * int(pending_digits)
        else:
            repeated = 1
            while i < len(suffix) and suffix[i] == ch:
                repeated += 1
                i += 1
            total += sign * repeated
        pending_digits = ""
    return total


def preferred_valence(symbol: str, charge: int = 0, aromatic: bool = False) -> int:
    """Target valence used for implicit hydrogen inference.

    Args:
        symbol: Element symbol.
        charge: Formal charge.
        aromatic: Whether the atom is aromatic.

    Returns:
        Preferred valence, or 0 for elements without a rule.
    """
    symbol = normalize_symbol(symbol)
    if symbol == "C":
        return 4
    if symbol == "N":
        if aromatic:
            return 3
        return 4 if charge > 0 else 3
    if symbol == "O":
        if charge > 0:
            return 3
        if charge < 0:
            return 1
        return 2
    if symbol == "S":
        return 3 if charge > 0 else 2
    if symbol == "P":
        return 4 if charge > 0 else 3
    if symbol == "B":
        return 3
    if symbol in HALOGENS:
        return 1
    if symbol not in Element._by_symbol and symbol not in HYDROGEN_SYMBOLS and symbol != "*":
        warnings.warn(f"Unknown element symbol {symbol!r}; assuming no implicit hydrogens")
    return 0
