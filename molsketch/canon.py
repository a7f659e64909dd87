"""
Canonical atom ranking.

This module provides a Morgan-style iterative hash refinement that assigns
reproducible ranks to heavy atoms for identifier serialization.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Final, Iterable

from molsketch.transform.hydrogen import hydrogen_counts as tally_hydrogens

if TYPE_CHECKING:
    from molsketch.types import Molecule


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MASK64: Final[int] = (1 << 64) - 1
GOLDEN_RATIO_64: Final[int] = 0x9E3779B97F4A7C15
FNV_OFFSET_64: Final[int] = 0xCBF29CE484222325

DEFAULT_ROUNDS: Final[int] = 8

_CHARGE_OFFSET: Final[int] = 128


# =============================================================================
# Helper functions
# =============================================================================

def mix(state: int, value: int) -> int:
    """Fold ``value`` into a 64-bit hash state with an avalanche finalizer.

    All arithmetic wraps at 2**64; negative inputs are taken modulo 2**64.
    """
    state &= MASK64
    value &= MASK64
    x = state ^ ((value + GOLDEN_RATIO_64 + ((state << 6) & MASK64) + (state >> 2)) & MASK64)
    x ^= x >> 33
    x = (x * 0xFF51AFD7ED558CCD) & MASK64
    x ^= x >> 33
    x = (x * 0xC4CEB9FE1A85EC53) & MASK64
    x ^= x >> 33
    return x


def _refine_round(atoms: dict[int, _CanonAtom], previous: dict[int, int]) -> dict[int, int]:
    hashes = {}
    for idx, atom in atoms.items():
        state = mix(GOLDEN_RATIO_64, previous[idx])
        for nbr, bond_rank in sorted(atom.bonds, key=lambda b: (-previous[b[0]], b[0])):
            state = mix(state, previous[nbr])
            state = mix(state, bond_rank)
        hashes[idx] = state
    return hashes


def _class_count(classes: dict[int, int]) -> int:
    return len(set(classes.values()))


def _ordered_classes(atoms: Iterable[int], key: Callable[[int], Any]) -> dict[int, int]:
    """Sort atoms by ``key`` and label each with the first position of its class."""
    keys = {idx: key(idx) for idx in atoms}
    classes: dict[int, int] = {}
    previous = None
    start = 0
    for position, idx in enumerate(sorted(keys, key=keys.__getitem__)):
        if position == 0 or keys[idx] != previous:
            start = position
            previous = keys[idx]
        classes[idx] = start
    return classes


def _first_tie(order: list[int], classes: dict[int, int]) -> list[int]:
    """Atoms of the earliest class in ``order`` holding more than one atom."""
    for position, idx in enumerate(order):
        if position + 1 < len(order) and classes[order[position + 1]] == classes[idx]:
            return [i for i in order if classes[i] == classes[idx]]
    return []


# =============================================================================
# Data structures for canonicalization
# =============================================================================

@dataclass(slots=True)
class _CanonAtom:
    """Internal atom representation for canonicalization."""
    atom_idx: int
    symbol: str
    atomic_num: int
    formal_charge: int
    isotope: int
    degree: int
    valence: int
    total_num_hs: int
    is_aromatic: bool
    # (neighbour atom index, bond rank) over heavy neighbours only
    bonds: list[tuple[int, int]] = field(default_factory=list)

    def seed(self) -> int:
        state = FNV_OFFSET_64
        for value in (
            self.atomic_num,
            self.formal_charge + _CHARGE_OFFSET,
            self.isotope,
            self.degree,
            self.valence,
            self.total_num_hs,
            int(self.is_aromatic),
        ):
            state = mix(state, value)
        return state


# =============================================================================
# Public API
# =============================================================================

class Canonicalizer:
    """Compute canonical atom ordering for a molecule.

    Hydrogens are excluded from the graph; their counts are folded into
    the invariants of the heavy atoms they are attached to. Each round
    rehashes every atom from its own previous hash and the previous hashes
    of its neighbours (largest first) together with the bond ranks. The
    default of 8 rounds is an empirical bound, not a proven fixed point.
    Classes still tied afterwards (same hash, symbol, charge and hydrogen
    count) are split by their neighbours' classes until nothing changes;
    the lowest-index atom of the first remaining tied class is then moved
    ahead of its class and splitting resumes, until every atom stands
    alone. Atom index therefore only chooses among symmetry-equivalent
    atoms, and equivalent atoms hold consecutive ranks.

    Example:
        >>> from molsketch import parse
        >>> mol = parse("OCC")
        >>> canonicalizer = Canonicalizer(mol)
        >>> ranks = canonicalizer.compute_ranks()
        >>> sorted(ranks.values())
        [1, 2, 3]
    """

    def __init__(
        self,
        mol: Molecule,
        hydrogen_counts: dict[int, int] | None = None,
        rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        """Initialize canonicalizer.

        Args:
            mol: Molecule to canonicalize.
            hydrogen_counts: Hydrogen tally per heavy atom; computed from the
                molecule when omitted.
            rounds: Number of refinement rounds.

        Raises:
            ValueError: If ``rounds`` is negative.
        """
        if rounds < 0:
            raise ValueError(f"rounds must be non-negative, got {rounds}")
        self._mol = mol
        self._hydrogen_counts = hydrogen_counts
        self._rounds = rounds
        self._atoms: dict[int, _CanonAtom] | None = None
        self._order: list[int] | None = None

    def compute_ranks(self) -> dict[int, int]:
        """Compute canonical ranks for all heavy atoms.

        Returns:
            Dict mapping heavy atom index to rank, 1..N.
        """
        return {atom_idx: rank for rank, atom_idx in enumerate(self.canonical_order(), start=1)}

    def canonical_order(self) -> list[int]:
        """Heavy atom indices in canonical order."""
        if self._order is None:
            self._build_canon_atoms()
            assert self._atoms is not None
            atoms = self._atoms
            seeds = {idx: atom.seed() for idx, atom in atoms.items()}
            hashes = self._refine(atoms, seeds, self._rounds)
            classes = _ordered_classes(atoms, lambda idx: self._invariant_key(idx, hashes))
            order = sorted(atoms, key=classes.__getitem__)

            tied = _first_tie(order, classes)
            while tied:
                refined = self._split_until_stable(atoms, classes)
                if _class_count(refined) == _class_count(classes):
                    # Tied atoms are now symmetry equivalent; fix one and
                    # let the refinement split the rest.
                    chosen = min(tied)
                    logger.debug("individualizing atom %d of %d tied", chosen, len(tied))
                    refined = _ordered_classes(
                        atoms, lambda idx: (classes[idx], idx != chosen)
                    )
                classes = refined
                order = sorted(atoms, key=classes.__getitem__)
                tied = _first_tie(order, classes)
            self._order = order
        return list(self._order)

    def _invariant_key(self, idx: int, hashes: dict[int, int]) -> tuple:
        atom = self._atoms[idx]
        return (-hashes[idx], atom.symbol, -atom.formal_charge, -atom.total_num_hs)

    def _refine(
        self,
        atoms: dict[int, _CanonAtom],
        hashes: dict[int, int],
        rounds: int,
    ) -> dict[int, int]:
        for round_no in range(rounds):
            hashes = _refine_round(atoms, hashes)
            logger.debug(
                "canonical round %d: %d distinct classes",
                round_no + 1,
                _class_count(hashes),
            )
        return hashes

    def _split_until_stable(
        self,
        atoms: dict[int, _CanonAtom],
        classes: dict[int, int],
    ) -> dict[int, int]:
        """Split classes by their neighbours' classes until nothing changes.

        Every split keeps the relative order of the existing classes.
        """
        while True:
            current = classes
            refined = _ordered_classes(
                atoms,
                lambda idx: (
                    current[idx],
                    sorted((current[nbr], rank) for nbr, rank in atoms[idx].bonds),
                ),
            )
            if _class_count(refined) == _class_count(classes):
                return classes
            classes = refined

    def _build_canon_atoms(self) -> None:
        """Build internal atom representations."""
        mol = self._mol
        counts = self._hydrogen_counts
        if counts is None:
            counts = tally_hydrogens(mol)

        self._atoms = {}
        for atom in mol.atoms:
            if atom.is_hydrogen:
                continue

            bonds = mol.bonds_for_atom(atom.idx)
            heavy_bonds = [
                (bond.other_atom(atom.idx), bond.order.rank)
                for bond in bonds
                if not mol.atoms[bond.other_atom(atom.idx)].is_hydrogen
            ]

            total_hs = counts.get(atom.idx, 0)
            self._atoms[atom.idx] = _CanonAtom(
                atom_idx=atom.idx,
                symbol=atom.symbol,
                atomic_num=atom.atomic_number,
                formal_charge=atom.charge,
                isotope=atom.isotope or 0,
                degree=len(heavy_bonds),
                valence=sum(rank for _, rank in heavy_bonds) + total_hs,
                total_num_hs=total_hs,
                is_aromatic=atom.is_aromatic,
                bonds=heavy_bonds,
            )


def canonical_ranks(mol: Molecule, rounds: int = DEFAULT_ROUNDS) -> dict[int, int]:
    """Compute canonical ranks for a molecule.

    This is a convenience function that creates a Canonicalizer
    and computes ranks with default settings.

    Args:
        mol: Molecule to rank.
        rounds: Number of refinement rounds.

    Returns:
        Dict mapping heavy atom index to rank, 1..N.

    Example:
        >>> mol = parse("C(C)CC")
        >>> ranks = canonical_ranks(mol)
        >>> first = min(ranks, key=ranks.get)
    """
    return Canonicalizer(mol, rounds=rounds).compute_ranks()
