"""InChI-style identifier generation and parsing."""

from molsketch.inchi.generator import (
    INCHI_PREFIX,
    InChIGenerator,
    InChIResult,
    InChIStatus,
    generate_inchi,
    normalize_input,
)
from molsketch.inchi.layers import letter_block, pseudo_inchi_key
from molsketch.inchi.reader import InChIToStructure

__all__ = [
    "INCHI_PREFIX",
    "InChIGenerator",
    "InChIResult",
    "InChIStatus",
    "generate_inchi",
    "normalize_input",
    "letter_block",
    "pseudo_inchi_key",
    "InChIToStructure",
]
