"""Custom exceptions for molsketch."""

from __future__ import annotations


class ChemError(Exception):
    """Base exception for chemistry-related errors."""
    pass


class EmptyInputError(ChemError):
    """Input contains no atoms."""

    def __init__(self, message: str = "Input contains no atoms"):
        super().__init__(message)


class ParseError(ChemError):
    """Error while reading a line notation or identifier string."""

    def __init__(self, message: str, text: str | None = None, position: int | None = None):
        self.message = message
        self.text = text
        self.position = position

        if text is not None and position is not None:
            super().__init__(f"{message}\n  {text}\n  {' ' * position}^")
        elif text is not None:
            super().__init__(f"{message} in: {text}")
        else:
            super().__init__(message)


class RingError(ParseError):
    """Invalid ring closure."""

    def __init__(self, message: str, ring_index: int | None = None, text: str | None = None):
        self.ring_index = ring_index
        super().__init__(message, text)


class UnsupportedError(ChemError):
    """Valid structure outside the chemistry this toolkit models."""
    pass
