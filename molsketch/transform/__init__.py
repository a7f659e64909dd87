"""Hydrogen counting and manipulation."""

from molsketch.transform.hydrogen import (
    add_explicit_hydrogens,
    hydrogen_counts,
    implicit_hydrogen_count,
    remove_explicit_hydrogens,
)

__all__ = [
    "add_explicit_hydrogens",
    "hydrogen_counts",
    "implicit_hydrogen_count",
    "remove_explicit_hydrogens",
]
