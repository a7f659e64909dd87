"""
InChI-to-structure conversion.

This module rebuilds a depicted Molecule from an InChI string.

Supported layers:
    - Formula (heavy atoms, in order) and ``/c`` connectivity
    - ``/h`` fixed hydrogens, ranges and mobile groups such as ``(H,4,5)``
    - ``/q`` charges, ``/p`` proton balance, ``/i`` isotopes
    - ``/b`` double-bond stereo, ``/t`` tetrahedral parity with ``/m``

Bond orders are not stored in InChI; they are inferred from the
remaining valence of each atom. Other layers are reported, not applied.
"""

from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass, field
from typing import Final, Iterable

from ..depict import assign_wedges
from ..elements import HALOGENS, STANDARD_MASS_NUMBERS, BondOrder
from ..exceptions import ChemError, EmptyInputError, ParseError, UnsupportedError
from ..layout import generate_coordinates
from ..rings.detection import edge_key, ring_edge_set
from ..types import BondStereo, Chirality, Molecule
from .generator import InChIStatus


logger = logging.getLogger(__name__)

_SUPPORTED_LAYERS: Final[frozenset[str]] = frozenset("chtmsqipb")
_FORMULA_ATOM: Final[re.Pattern[str]] = re.compile(r"([A-Z][a-z]?)(\d*)")
_MAX_IGNORED_TOKENS_SHOWN: Final[int] = 5


@dataclass(slots=True)
class _MobileHydrogenGroup:
    count: int
    candidates: list[int]


@dataclass(slots=True)
class _ParseResult:
    molecule: Molecule
    ignored_layers: set[str] = field(default_factory=set)
    ignored_tokens: list[str] = field(default_factory=list)


# =============================================================================
# Token helpers
# =============================================================================

def _split_top_level(text: str, separators: str) -> list[str]:
    """Split on separators that are not inside parentheses."""
    out: list[str] = []
    level = 0
    chunk = ""
    for ch in text:
        if ch == "(":
            level += 1
        elif ch == ")":
            level = max(0, level - 1)
        elif level == 0 and ch in separators:
            out.append(chunk)
            chunk = ""
            continue
        chunk += ch
    if chunk:
        out.append(chunk)
    return [token.strip() for token in out if token.strip()]


def _parse_atom_spec(spec: str, atom_count: int) -> list[int]:
    """Expand ``"1,3-5"`` into sorted InChI atom numbers within range."""
    clean = spec.strip()
    while len(clean) >= 2 and clean.startswith("(") and clean.endswith(")"):
        clean = clean[1:-1].strip()

    out: set[int] = set()
    for part in clean.split(","):
        token = part.strip()
        if token.endswith(("?", "+", "-")):
            token = token[:-1].strip()
        if not token:
            continue
        if "-" in token:
            left, _, right = token.partition("-")
            if left.isdigit() and right.isdigit():
                start, end = int(left), int(right)
                step = 1 if start <= end else -1
                out.update(n for n in range(start, end + step, step) if 1 <= n <= atom_count)
                continue
        if token.isdigit() and 1 <= int(token) <= atom_count:
            out.add(int(token))
    return sorted(out)


def _parse_leading_int(token: str) -> int | None:
    match = re.match(r"\d+", token)
    return int(match.group()) if match else None


def _parse_signed_integer(token: str) -> int | None:
    match = re.fullmatch(r"\s*([+-]?)(\d+)\s*", token)
    if match is None:
        return None
    value = int(match.group(2))
    return -value if match.group(1) == "-" else value


def _parse_component_integers(token: str) -> list[int] | None:
    """Parse ``"+1"``, ``"(-1)"`` or the repeat form ``"2*+1"``."""
    clean = token.strip()
    if len(clean) >= 2 and clean.startswith("(") and clean.endswith(")"):
        clean = clean[1:-1].strip()
    if not clean:
        return None

    value = _parse_signed_integer(clean)
    if value is not None:
        return [value]

    if "*" in clean:
        lhs, _, rhs = clean.partition("*")
        repeat = lhs.strip()
        value = _parse_signed_integer(rhs)
        if repeat.isdigit() and int(repeat) > 0 and value is not None:
            return [value] * int(repeat)
    return None


# =============================================================================
# Chemistry heuristics
# =============================================================================

def _preferred_valence(symbol: str, charge: int) -> int:
    if symbol == "C":
        return 4 if charge == 0 else 3
    if symbol == "N":
        return 4 if charge > 0 else (2 if charge < 0 else 3)
    if symbol in ("O", "S"):
        return 3 if charge > 0 else (1 if charge < 0 else 2)
    if symbol == "P":
        return 4 if charge > 0 else 3
    if symbol == "B":
        return 3
    if symbol in HALOGENS:
        return 1
    return 0


def _bond_order_value(order: BondOrder) -> int:
    return 2 if order is BondOrder.AROMATIC else int(order)


def _charge_placement_score(symbol: str, charge: int, degree: int, positive: bool) -> int:
    terminal_bonus = 8 if degree <= 1 else 0
    charge_penalty = abs(charge) * 28
    if positive:
        base = {"N": 96, "P": 92, "S": 84, "O": 72, "B": 60, "C": 46}.get(symbol, 30 if symbol in HALOGENS else 24)
        neutralize_bonus = 18 if charge < 0 else 0
    else:
        base = {"O": 100, "S": 88, "N": 78, "B": 58, "C": 44, "P": 36}.get(symbol, 72 if symbol in HALOGENS else 20)
        neutralize_bonus = 18 if charge > 0 else 0
    return base + terminal_bonus + neutralize_bonus - charge_penalty


def _best(candidates: Iterable[int], score) -> int | None:
    """Highest-scoring candidate; ties go to the smaller id."""
    best_idx: int | None = None
    best_score = 0
    for idx in sorted(candidates):
        value = score(idx)
        if value is None:
            continue
        if best_idx is None or value > best_score:
            best_idx, best_score = idx, value
    return best_idx


class _InChIParser:
    """Single-use parser holding the molecule under construction.

    Atom ``idx`` is the InChI atom number minus one.
    """

    def __init__(self, inchi: str) -> None:
        self._inchi = inchi
        self._mol = Molecule(name="InChI")
        self._hydrogens: dict[int, int] = {}
        self._ignored_tokens: list[str] = []

    def parse(self) -> _ParseResult:
        text = self._inchi.strip()
        if not text:
            raise EmptyInputError("Empty InChI string")
        if not text.startswith("InChI="):
            raise ParseError("Input is not an InChI string (missing 'InChI=' prefix).")

        parts = text[len("InChI="):].split("/")
        if len(parts) < 2:
            raise ParseError("InChI is missing required version/formula layers.")
        if not parts[0].startswith("1"):
            raise UnsupportedError("Only InChI version 1.x is supported.")

        symbols = self._heavy_atom_sequence(parts[1])
        if not symbols:
            raise ParseError("InChI formula does not contain heavy atoms supported by this parser.")

        layers: dict[str, str] = {}
        for segment in parts[2:]:
            if not segment:
                continue
            key, content = segment[0], segment[1:]
            if layers.get(key):
                layers[key] = layers[key] + ";" + content
            else:
                layers[key] = content

        for symbol in symbols:
            self._mol.add_atom(symbol)
        for a, b in sorted(self._connectivity(layers.get("c", ""))):
            self._mol.add_bond(a - 1, b - 1)

        fixed, mobile = self._hydrogen_layer(layers.get("h", ""))
        mass_numbers, isotopic_h = self._isotope_layer(layers.get("i", ""))
        for number, mass in mass_numbers.items():
            self._mol.atoms[number - 1].isotope = mass

        self._distribute_charges(self._charge_values(layers.get("q", ""), "q"))
        proton_delta = sum(self._charge_values(layers.get("p", ""), "p"))

        for number, count in fixed.items():
            self._hydrogens[number - 1] = self._hydrogens.get(number - 1, 0) + count
        for number, count in isotopic_h.items():
            self._hydrogens[number - 1] = self._hydrogens.get(number - 1, 0) + count
        self._apply_proton_delta(proton_delta)
        self._distribute_mobile_hydrogens(mobile)

        for atom in self._mol.atoms:
            atom.explicit_hydrogens = self._hydrogens.get(atom.idx, 0)

        self._infer_bond_orders()
        self._double_bond_stereo(layers.get("b", ""))
        self._tetrahedral_parity(layers.get("t", ""), layers.get("m", ""))

        ignored_layers = {key for key in layers if key not in _SUPPORTED_LAYERS}
        return _ParseResult(
            molecule=self._mol,
            ignored_layers=ignored_layers,
            ignored_tokens=sorted(set(self._ignored_tokens)),
        )

    @staticmethod
    def _heavy_atom_sequence(formula: str) -> list[str]:
        normalized = re.sub(r"[.;+\-]", "", formula)
        out: list[str] = []
        for symbol, count in _FORMULA_ATOM.findall(normalized):
            if symbol in ("H", "D", "T"):
                continue
            out.extend([symbol] * max(1, int(count) if count else 1))
        return out

    def _connectivity(self, layer: str) -> set[tuple[int, int]]:
        atom_count = self._mol.num_atoms
        edges: set[tuple[int, int]] = set()
        current: int | None = None
        stack: list[int] = []
        pos = 0

        while pos < len(layer):
            ch = layer[pos]
            if ch.isdigit():
                match = re.match(r"\d+", layer[pos:])
                assert match is not None
                number = int(match.group())
                pos += len(match.group())
                if not 1 <= number <= atom_count:
                    raise ParseError(
                        f"InChI connectivity references atom {number} outside formula range 1...{atom_count}.",
                        layer,
                        pos - len(match.group()),
                    )
                if current is not None and current != number:
                    edges.add(edge_key(current, number))
                current = number
                continue

            if ch == "(":
                if current is None:
                    raise ParseError("Malformed InChI connectivity branch near '('.", layer, pos)
                stack.append(current)
            elif ch == ")":
                if not stack:
                    raise ParseError("Unbalanced InChI connectivity parentheses.", layer, pos)
                current = stack.pop()
            elif ch == ",":
                current = stack[-1] if stack else None
            elif ch == ";":
                stack.clear()
                current = None
            elif ch in "-.*" or ch.isspace() or ch.isalpha():
                pass
            else:
                raise ParseError(f"Unsupported token '{ch}' in InChI connectivity layer.", layer, pos)
            pos += 1

        return edges

    def _hydrogen_layer(self, layer: str) -> tuple[dict[int, int], list[_MobileHydrogenGroup]]:
        """Fixed counts per InChI atom number, plus mobile groups.

        A bare atom list such as ``1`` in ``1,3H2`` shares the count of the
        next token; a trailing bare list means one hydrogen each.
        """
        atom_count = self._mol.num_atoms
        fixed: dict[int, int] = {}
        mobile: list[_MobileHydrogenGroup] = []
        pending: list[str] = []

        for token in _split_top_level(layer, ",;"):
            if token.startswith("(") and token.endswith(")"):
                group = self._mobile_group(token)
                if group is None:
                    self._ignored_tokens.append(token)
                else:
                    mobile.append(group)
                continue

            marker = next((i for i, ch in enumerate(token) if ch in "HDT"), None)
            if marker is None:
                if _parse_atom_spec(token, atom_count):
                    pending.append(token)
                else:
                    self._ignored_tokens.append(token)
                continue

            count = _parse_leading_int(token[marker + 1:]) or 1
            atoms = _parse_atom_spec(",".join(pending + [token[:marker]]), atom_count)
            pending.clear()
            if marker == 0 or not atoms:
                self._ignored_tokens.append(token)
                continue
            for number in atoms:
                fixed[number] = fixed.get(number, 0) + count

        for number in _parse_atom_spec(",".join(pending), atom_count):
            fixed[number] = fixed.get(number, 0) + 1

        return fixed, mobile

    def _mobile_group(self, token: str) -> _MobileHydrogenGroup | None:
        pieces = [piece.strip() for piece in token[1:-1].split(",")]
        if len(pieces) < 2 or not pieces[0] or pieces[0][0] not in "HDT":
            return None
        count = _parse_leading_int(pieces[0][1:]) or 1
        candidates = _parse_atom_spec(",".join(pieces[1:]), self._mol.num_atoms)
        if not candidates:
            return None
        return _MobileHydrogenGroup(count=count, candidates=candidates)

    def _isotope_layer(self, layer: str) -> tuple[dict[int, int], dict[int, int]]:
        """Mass numbers and isotopic hydrogen counts per InChI atom number."""
        atom_count = self._mol.num_atoms
        masses: dict[int, int] = {}
        isotopic_h: dict[int, int] = {}

        for token in _split_top_level(layer, ",;"):
            match = re.fullmatch(r"(.+?)([+-]\d+)", token)
            if match and _parse_atom_spec(match.group(1), atom_count):
                shift = int(match.group(2))
                for number in _parse_atom_spec(match.group(1), atom_count):
                    base = STANDARD_MASS_NUMBERS.get(self._mol.atoms[number - 1].symbol)
                    if base is not None:
                        masses[number] = max(1, base + shift)
                continue

            marker = next((i for i, ch in enumerate(token) if ch in "DT"), None)
            if marker:
                atoms = _parse_atom_spec(token[:marker], atom_count)
                count = _parse_leading_int(token[marker + 1:]) or 1
                if atoms:
                    for number in atoms:
                        isotopic_h[number] = isotopic_h.get(number, 0) + count
                    continue

            self._ignored_tokens.append(token)

        return masses, isotopic_h

    def _charge_values(self, layer: str, layer_key: str) -> list[int]:
        values: list[int] = []
        for token in _split_top_level(layer, ";,"):
            parsed = _parse_component_integers(token)
            if parsed:
                values.extend(parsed)
            else:
                self._ignored_tokens.append(f"{layer_key}{token}")
        return values

    def _distribute_charges(self, component_charges: list[int]) -> None:
        """Place per-component charges, or the total when counts disagree."""
        if not component_charges:
            return
        components = self._mol.connected_components()
        if len(component_charges) == len(components):
            for charge, component in zip(component_charges, components):
                self._place_charge(charge, component)
        else:
            self._place_charge(sum(component_charges), [atom.idx for atom in self._mol.atoms])

    def _place_charge(self, total: int, component: list[int]) -> None:
        positive = total > 0
        for _ in range(abs(total)):
            chosen = _best(
                component,
                lambda idx: _charge_placement_score(
                    self._mol.atoms[idx].symbol,
                    self._mol.atoms[idx].charge,
                    self._mol.degree(idx),
                    positive,
                ),
            )
            if chosen is None:
                break
            self._mol.atoms[chosen].charge += 1 if positive else -1

    def _used_valence(self, idx: int) -> int:
        bonds = sum(_bond_order_value(bond.order) for bond in self._mol.bonds_for_atom(idx))
        return bonds + self._hydrogens.get(idx, 0)

    def _apply_proton_delta(self, delta: int) -> None:
        """Add (or remove) protons at the most basic (or acidic) sites."""
        mol = self._mol

        def protonation_score(idx: int) -> int:
            atom = mol.atoms[idx]
            current_h = self._hydrogens.get(idx, 0)
            capacity = max(0, _preferred_valence(atom.symbol, atom.charge) - self._used_valence(idx))
            base = {"O": 108, "N": 96, "S": 88, "P": 82, "C": 52}.get(atom.symbol, 36)
            charge_bonus = 24 if atom.charge < 0 else (-10 if atom.charge > 0 else 0)
            return base + charge_bonus + capacity * 16 - current_h * 6

        def deprotonation_score(idx: int) -> int | None:
            atom = mol.atoms[idx]
            current_h = self._hydrogens.get(idx, 0)
            if current_h <= 0:
                return None
            base = {"O": 112, "S": 96, "N": 84, "C": 48}.get(atom.symbol, 30)
            return base + (20 if atom.charge > 0 else 0) + current_h * 8

        all_atoms = [atom.idx for atom in mol.atoms]
        for _ in range(abs(delta)):
            if delta > 0:
                chosen = _best(all_atoms, protonation_score)
                if chosen is None:
                    break
                self._hydrogens[chosen] = self._hydrogens.get(chosen, 0) + 1
                mol.atoms[chosen].charge += 1
            else:
                chosen = _best(all_atoms, deprotonation_score)
                if chosen is None:
                    break
                self._hydrogens[chosen] -= 1
                mol.atoms[chosen].charge -= 1

    def _distribute_mobile_hydrogens(self, groups: list[_MobileHydrogenGroup]) -> None:
        mol = self._mol

        def score(number: int) -> int:
            idx = number - 1
            atom = mol.atoms[idx]
            current_h = self._hydrogens.get(idx, 0)
            need = max(0, _preferred_valence(atom.symbol, atom.charge) - self._used_valence(idx))
            element_score = {"O": 96, "N": 90, "S": 82, "P": 70, "C": 44}.get(atom.symbol, 32)
            charge_bonus = 20 if atom.charge < 0 else (-20 if atom.charge > 0 else 0)
            return element_score + need * 18 + charge_bonus - current_h * 6

        for group in groups:
            for _ in range(group.count):
                chosen = _best(group.candidates, score)
                if chosen is not None:
                    self._hydrogens[chosen - 1] = self._hydrogens.get(chosen - 1, 0) + 1

    def _infer_bond_orders(self) -> None:
        """Raise single bonds to triple, then double, while valence allows.

        One bond is upgraded at a time, always the best-scoring one.
        """
        mol = self._mol
        if not mol.bonds:
            return

        ring_bonds = ring_edge_set(mol.simple_cycles(12))
        deficits = {
            atom.idx: max(0, _preferred_valence(atom.symbol, atom.charge) - self._used_valence(atom.idx))
            for atom in mol.atoms
        }

        def triple_score(bond) -> int:
            a, b = bond.atom1_idx, bond.atom2_idx
            ea, eb = mol.atoms[a].symbol, mol.atoms[b].symbol
            score = 0
            if edge_key(a, b) in ring_bonds:
                score -= 8
            if mol.degree(a) == 1 or mol.degree(b) == 1:
                score += 8
            if {ea, eb} == {"C", "N"}:
                score += 4
            if ea == eb == "C":
                score += 2
            return score

        def double_score(bond) -> int:
            a, b = bond.atom1_idx, bond.atom2_idx
            ea, eb = mol.atoms[a].symbol, mol.atoms[b].symbol
            da, db = mol.degree(a), mol.degree(b)
            score = 0
            if edge_key(a, b) in ring_bonds:
                score += 7
            if (ea == "C" and eb in ("O", "S", "N") and db == 1) or (
                eb == "C" and ea in ("O", "S", "N") and da == 1
            ):
                score += 10
            if ea == eb == "C" and da == 2 and db == 2:
                score += 5
            if (ea == "O" and da > 1) or (eb == "O" and db > 1):
                score -= 3
            return score + min(2, deficits[a]) + min(2, deficits[b])

        for order, need, score_fn in (
            (BondOrder.TRIPLE, 2, triple_score),
            (BondOrder.DOUBLE, 1, double_score),
        ):
            while True:
                best = None
                best_score = 0
                for bond in mol.bonds:
                    if bond.order is not BondOrder.SINGLE:
                        continue
                    if deficits[bond.atom1_idx] < need or deficits[bond.atom2_idx] < need:
                        continue
                    score = score_fn(bond)
                    if score > best_score:
                        best, best_score = bond, score
                if best is None:
                    break
                best.order = order
                for end in (best.atom1_idx, best.atom2_idx):
                    deficits[end] = max(0, deficits[end] - need)

    def _double_bond_stereo(self, layer: str) -> None:
        for token in _split_top_level(layer, ";,"):
            numbers = [int(n) for n in re.findall(r"\d+", token)[:2]]
            bond = None
            if len(numbers) == 2 and all(1 <= n <= self._mol.num_atoms for n in numbers) and numbers[0] != numbers[1]:
                bond = self._mol.bond_between(numbers[0] - 1, numbers[1] - 1)
            if bond is None or bond.order is not BondOrder.DOUBLE:
                self._ignored_tokens.append(f"b{token}")
                continue
            bond.stereo = BondStereo.EITHER

    def _tetrahedral_parity(self, t_layer: str, m_layer: str) -> None:
        if not t_layer:
            return
        m_tokens = _split_top_level(m_layer, ",;")
        invert = bool(m_tokens) and m_tokens[0] == "0"

        for token in _split_top_level(t_layer, ",;"):
            match = re.match(r"(\d+)(.*)", token)
            if match is None:
                continue
            number = int(match.group(1))
            if not 1 <= number <= self._mol.num_atoms:
                continue
            suffix = match.group(2)
            if "+" in suffix:
                chirality = Chirality.CLOCKWISE
            elif "-" in suffix:
                chirality = Chirality.ANTICLOCKWISE
            else:
                continue
            self._mol.atoms[number - 1].chirality = chirality.inverted() if invert else chirality


class InChIToStructure:
    """Convert an InChI string into a laid-out Molecule.

    Construction never raises. Unsupported layers and unparsed tokens
    give a WARNING status; failures give ERROR and make
    :meth:`get_molecule` raise.

    Example:
        >>> conv = InChIToStructure("InChI=1S/C2H6O/c1-2-3/h3H,2H2,1H3")
        >>> conv.status
        <InChIStatus.SUCCESS: 'success'>
        >>> conv.get_molecule().num_atoms
        3
    """

    def __init__(self, inchi: str) -> None:
        self._input = inchi
        self._molecule: Molecule | None = None
        self._error: ChemError | None = None
        self.status = InChIStatus.SUCCESS
        self.message = ""

        try:
            result = _InChIParser(inchi).parse()
        except ChemError as exc:
            self._error = exc
            self.status = InChIStatus.ERROR
            self.message = str(exc)
            logger.debug("InChI parse failed: %s", exc)
            return

        self._molecule = assign_wedges(generate_coordinates(result.molecule))

        if result.ignored_layers:
            self.status = InChIStatus.WARNING
            names = ", ".join(sorted(result.ignored_layers))
            self.message = f"Parsed InChI core layers; ignored unsupported layers: {names}."
        if result.ignored_tokens:
            self.status = InChIStatus.WARNING
            summary = ", ".join(result.ignored_tokens[:_MAX_IGNORED_TOKENS_SHOWN])
            if self.message:
                self.message += f" Ignored tokens: {summary}."
            else:
                self.message = f"Parsed with partial fidelity; ignored tokens: {summary}."
        if self.status is InChIStatus.WARNING:
            warnings.warn(self.message, stacklevel=2)

    def get_molecule(self) -> Molecule:
        """Return the parsed molecule.

        Raises:
            ChemError: The parse error when conversion failed.
        """
        if self._molecule is None:
            if self._error is not None:
                raise self._error
            raise ParseError(f"Could not parse InChI: {self._input}")
        return self._molecule
