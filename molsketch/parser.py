"""
SMILES string parser.

This module converts SMILES strings into unpositioned Molecule objects for
the layout and identifier engines.

Supported features:
    - Organic subset atoms and aromatic lowercase atoms
    - Bracket atoms with isotopes, chirality, hydrogens and charges
    - Single, double, triple and aromatic bonds
    - Ring closures (1-9, %nn, %(n)), branches, dot-separated components
    - Directional bonds (/ and \\) for double-bond stereo
    - The "*" query atom and "~" query bond
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .elements import (
    AROMATIC_SUBSET,
    TWO_LETTER_ORGANIC,
    BondOrder,
    Element,
    is_aromatic_symbol,
)
from .exceptions import EmptyInputError, ParseError, RingError
from .types import BondStereo, Chirality, Molecule


class _Tokenizer:
    """Low-level SMILES tokenizer.

    Provides character-by-character access to a SMILES string with
    lookahead capability.
    """

    __slots__ = ("_string", "_pos")

    def __init__(self, string: str) -> None:
        self._string = string
        self._pos = 0

    @property
    def position(self) -> int:
        """Index of the next unread character."""
        return self._pos

    def peek(self, offset: int = 0) -> str | None:
        """Look at the character at current position + offset without consuming."""
        pos = self._pos + offset
        if pos >= len(self._string):
            return None
        return self._string[pos]

    def next(self) -> str | None:
        """Consume and return the next character, or None at the end."""
        if self._pos >= len(self._string):
            return None
        char = self._string[self._pos]
        self._pos += 1
        return char

    def read_while(self, predicate) -> str:
        """Read characters while predicate is true."""
        start = self._pos
        while self._pos < len(self._string) and predicate(self._string[self._pos]):
            self._pos += 1
        return self._string[start:self._pos]

    def read_number(self) -> int | None:
        """Consume a run of digits as an int; None when there is none."""
        digits = self.read_while(str.isdigit)
        return int(digits) if digits else None

    def is_eof(self) -> bool:
        return self._pos >= len(self._string)

    def expect(self, char: str) -> None:
        """Consume expected character or raise ParseError."""
        actual = self.next()
        if actual != char:
            raise ParseError(
                f"Expected '{char}', got '{actual}'",
                self._string,
                self._pos - 1,
            )


@dataclass
class _ParserState:
    """Bookkeeping carried between tokens while a SMILES string is read."""

    # ring index -> (atom_idx, bond order written at the opening, direction)
    open_rings: dict[int, tuple[int, BondOrder | None, str | None]] = field(default_factory=dict)
    branch_stack: list[int] = field(default_factory=list)

    prev_atom: int | None = None
    pending_order: BondOrder | None = None
    pending_direction: str | None = None
    pending_query: bool = False


class SmilesParser:
    """SMILES string parser.

    Organic-subset atoms get their hydrogens inferred from valence; bracket
    atoms fix ``explicit_hydrogens``. ``@`` is read as anticlockwise and
    ``@@`` as clockwise. A double bond with directional single bonds on both
    ends is marked ``BondStereo.EITHER``.

    Example:
        >>> parser = SmilesParser("CCO")
        >>> mol = parser.parse()
        >>> len(mol.atoms)
        3

    For convenience, use the module-level `parse()` function:
        >>> from molsketch import parse
        >>> mol = parse("CCO")
    """

    _BOND_CHARS: Final[dict[str, BondOrder]] = {
        "-": BondOrder.SINGLE,
        "=": BondOrder.DOUBLE,
        "#": BondOrder.TRIPLE,
        ":": BondOrder.AROMATIC,
    }

    def __init__(self, smiles: str) -> None:
        text = smiles.strip()
        name = ""
        if " " in text or "\t" in text:
            text, _, name = text.partition(" ") if " " in text else text.partition("\t")
            name = name.strip()
        self._smiles = text
        self._tokenizer = _Tokenizer(text)
        self._mol = Molecule(name=name or "Untitled")
        self._state = _ParserState()

    def parse(self) -> Molecule:
        """Parse the SMILES string into a Molecule.

        Raises:
            EmptyInputError: If the string contains no atoms.
            ParseError: If SMILES syntax is invalid.
            RingError: If ring closures are invalid.
        """
        if not self._smiles:
            raise EmptyInputError("Empty SMILES string")

        tok = self._tokenizer
        while not tok.is_eof():
            char = tok.peek()
            assert char is not None

            if char == ".":
                tok.next()
                self._state.prev_atom = None
                self._reset_bond_state()
                continue

            if char in self._BOND_CHARS or char in "/\\~":
                self._parse_bond()
                continue

            if char == "(":
                tok.next()
                if self._state.prev_atom is None:
                    raise ParseError("Branch without preceding atom", self._smiles, tok.position - 1)
                self._state.branch_stack.append(self._state.prev_atom)
                continue

            if char == ")":
                tok.next()
                if not self._state.branch_stack:
                    raise ParseError("Unbalanced ')'", self._smiles, tok.position - 1)
                self._state.prev_atom = self._state.branch_stack.pop()
                continue

            if char.isdigit() or char == "%":
                self._parse_ring_closure()
                continue

            if char == "*":
                tok.next()
                self._add_atom("*", is_query=True)
                continue

            if char == "[":
                self._parse_bracket_atom()
                continue

            if char.isalpha():
                self._parse_organic_atom()
                continue

            raise ParseError(
                f"Unexpected character: '{char}'",
                self._smiles,
                tok.position,
            )

        if self._state.branch_stack:
            raise ParseError("Unclosed branch", self._smiles, len(self._smiles))

        if self._state.open_rings:
            unclosed = sorted(self._state.open_rings.keys())
            raise RingError(
                f"Unclosed ring indices: {unclosed}",
                ring_index=unclosed[0],
                text=self._smiles,
            )

        if not self._mol.atoms:
            raise EmptyInputError(f"No atoms in SMILES: {self._smiles!r}")

        annotate_directional_double_bonds(self._mol)
        return self._mol

    def _parse_bond(self) -> None:
        char = self._tokenizer.next()
        assert char is not None
        if char in "/\\":
            self._state.pending_direction = char
        elif char == "~":
            self._state.pending_query = True
        else:
            self._state.pending_order = self._BOND_CHARS[char]

    def _parse_ring_closure(self) -> None:
        """Open or close the ring bond named by the next ring index."""
        tok = self._tokenizer
        start = tok.position
        ring_idx = self._read_ring_index()

        if self._state.prev_atom is None:
            raise ParseError(
                "Ring closure without preceding atom",
                self._smiles,
                start,
            )

        if ring_idx in self._state.open_rings:
            atom1, order1, direction1 = self._state.open_rings.pop(ring_idx)
            atom2 = self._state.prev_atom
            if atom1 == atom2:
                raise RingError(f"Ring closure {ring_idx} bonds an atom to itself", ring_idx, self._smiles)
            if self._mol.bond_between(atom1, atom2) is not None:
                raise RingError(f"Ring closure {ring_idx} duplicates an existing bond", ring_idx, self._smiles)
            order = self._state.pending_order or order1
            if order is None:
                both_aromatic = self._mol.atoms[atom1].is_aromatic and self._mol.atoms[atom2].is_aromatic
                order = BondOrder.AROMATIC if both_aromatic else BondOrder.SINGLE
            self._mol.add_bond(
                atom1,
                atom2,
                order,
                direction=self._state.pending_direction or direction1,
                is_query=self._state.pending_query,
            )
        else:
            self._state.open_rings[ring_idx] = (
                self._state.prev_atom,
                self._state.pending_order,
                self._state.pending_direction,
            )

        self._reset_bond_state()

    def _read_ring_index(self) -> int:
        """Ring index forms: a digit, ``%nn`` or ``%(n)``."""
        tok = self._tokenizer

        if tok.peek() == "%":
            tok.next()
            if tok.peek() == "(":
                tok.next()
                num = tok.read_number()
                if num is None:
                    raise ParseError(
                        "Empty ring index in %()",
                        self._smiles,
                        tok.position,
                    )
                tok.expect(")")
                return num

            d1 = tok.next()
            d2 = tok.next()
            if not (d1 and d1.isdigit() and d2 and d2.isdigit()):
                raise ParseError(
                    "Expected two digits after %",
                    self._smiles,
                    tok.position,
                )
            return int(d1 + d2)

        char = tok.next()
        if not char or not char.isdigit():
            raise ParseError(
                "Invalid ring index",
                self._smiles,
                tok.position,
            )
        return int(char)

    def _parse_organic_atom(self) -> None:
        """Read a bare atom from the organic or aromatic subset."""
        tok = self._tokenizer
        start = tok.position
        char1 = tok.next()
        assert char1 is not None
        symbol = char1

        char2 = tok.peek()
        if char2 and char2.islower():
            candidate = char1 + char2
            if candidate in TWO_LETTER_ORGANIC:
                tok.next()
                symbol = candidate

        aromatic = symbol.islower()
        if aromatic and not is_aromatic_symbol(symbol):
            raise ParseError(f"Invalid aromatic atom '{symbol}'", self._smiles, start)
        if not aromatic and symbol not in ("B", "C", "N", "O", "P", "S", "F", "Cl", "Br", "I"):
            raise ParseError(f"Atom '{symbol}' must be written in brackets", self._smiles, start)

        self._add_atom(symbol.capitalize() if aromatic else symbol, is_aromatic=aromatic)

    def _parse_bracket_atom(self) -> None:
        """Parse a bracket atom [...].

        Supports isotopes, element symbols (aromatic lowercase included),
        chirality, hydrogen counts, charges and atom classes (ignored).
        """
        tok = self._tokenizer
        start = tok.position
        tok.expect("[")

        isotope = tok.read_number()

        char1 = tok.peek()
        if char1 == "*":
            tok.next()
            symbol = "*"
        elif char1 and char1.isalpha():
            tok.next()
            symbol = char1
            char2 = tok.peek()
            if char2 and char2.islower():
                candidate = char1 + char2
                if Element.from_symbol(candidate) is not None and candidate[0].isupper():
                    tok.next()
                    symbol = candidate
                elif candidate.lower() in AROMATIC_SUBSET:
                    tok.next()
                    symbol = candidate.lower()
        else:
            raise ParseError(
                "Expected element symbol",
                self._smiles,
                tok.position,
            )

        aromatic = symbol != "*" and symbol.islower()
        if symbol not in ("*", "D", "T") and Element.from_symbol(symbol) is None:
            raise ParseError(f"Unknown element '{symbol}'", self._smiles, start + 1)

        chirality = Chirality.NONE
        hydrogens = 0
        charge = 0

        while tok.peek() and tok.peek() != "]":
            char = tok.peek()
            if char == "@":
                tok.next()
                if tok.peek() == "@":
                    tok.next()
                    chirality = Chirality.CLOCKWISE
                else:
                    chirality = Chirality.ANTICLOCKWISE
            elif char == "H":
                tok.next()
                count = tok.read_number()
                hydrogens = count if count is not None else 1
            elif char in "+-":
                charge = self._parse_charge()
            elif char == ":":
                tok.next()
                if tok.read_number() is None:
                    raise ParseError("Expected atom class number", self._smiles, tok.position)
            else:
                raise ParseError(
                    f"Unexpected character in bracket atom: '{char}'",
                    self._smiles,
                    tok.position,
                )

        tok.expect("]")

        self._add_atom(
            symbol.capitalize() if aromatic else symbol,
            charge=charge,
            isotope=isotope,
            is_aromatic=aromatic,
            chirality=chirality,
            explicit_hydrogens=hydrogens,
            is_query=symbol == "*",
        )

    def _parse_charge(self) -> int:
        """Parse ``+``, ``++``, ``+2``, ``-``, ``--`` or ``-3``."""
        tok = self._tokenizer
        sign_char = tok.next()
        sign = 1 if sign_char == "+" else -1

        count = tok.read_number()
        if count is not None:
            return sign * count

        magnitude = 1
        while tok.peek() == sign_char:
            tok.next()
            magnitude += 1
        return sign * magnitude

    def _add_atom(self, symbol: str, **attrs) -> None:
        atom_idx = self._mol.add_atom(symbol, **attrs)
        self._add_bond_to_previous(atom_idx)
        self._state.prev_atom = atom_idx

    def _add_bond_to_previous(self, atom_idx: int) -> None:
        """Bond the new atom to the previous one using the pending bond state."""
        prev = self._state.prev_atom
        if prev is None:
            self._reset_bond_state()
            return

        order = self._state.pending_order
        if order is None:
            both_aromatic = self._mol.atoms[prev].is_aromatic and self._mol.atoms[atom_idx].is_aromatic
            order = BondOrder.AROMATIC if both_aromatic else BondOrder.SINGLE

        self._mol.add_bond(
            prev,
            atom_idx,
            order,
            direction=self._state.pending_direction,
            is_query=self._state.pending_query,
        )
        self._reset_bond_state()

    def _reset_bond_state(self) -> None:
        self._state.pending_order = None
        self._state.pending_direction = None
        self._state.pending_query = False


def annotate_directional_double_bonds(mol: Molecule) -> None:
    """Mark double bonds flanked by directional single bonds as stereo.

    A double bond whose two ends each carry a '/' or '\\' single bond gets
    ``BondStereo.EITHER``. The directional markers are consumed.
    """
    directional = [b for b in mol.bonds if b.direction is not None]
    if not directional:
        return

    for bond in mol.bonds:
        if bond.order is not BondOrder.DOUBLE or bond.stereo is not BondStereo.NONE:
            continue
        ends_marked = 0
        for end in (bond.atom1_idx, bond.atom2_idx):
            if any(
                other.direction is not None and other.idx != bond.idx
                for other in mol.bonds_for_atom(end)
            ):
                ends_marked += 1
        if ends_marked == 2:
            bond.stereo = BondStereo.EITHER

    for bond in directional:
        bond.direction = None


def parse(smiles: str) -> Molecule:
    """Parse a SMILES string into a Molecule.

    This is a convenience function that creates a SmilesParser and
    calls parse().

    Args:
        smiles: SMILES string to parse.

    Returns:
        Parsed Molecule object.

    Raises:
        ParseError: If SMILES syntax is invalid.

    Example:
        >>> mol = parse("CCO")
        >>> len(mol.atoms)
        3
    """
    return SmilesParser(smiles).parse()
