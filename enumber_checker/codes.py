# enumber_checker/codes.py
"""
Value types shared across the pipeline.

An E-number found in ingredient text goes through a few hands:
    - the extractor recognizes it in one of two dialects ("E-160a", "160a")
    - it is canonicalized to a single upper-case form ("E160A")
    - the classifier looks that form up in the reference table

ECode is the canonical form. Everything downstream of the extractor
compares ECodes, never raw strings.
"""

import re
from dataclasses import dataclass
from enum import Enum


# Canonical form: E + 3-4 digits + optional letter, upper-case
CANONICAL_REGEX = re.compile(r"E\d{3,4}[A-Z]?", re.ASCII)

# Separators tolerated between the "E" and the digits
_SEPARATORS = re.compile(r"[- ]")


# INPUT CHANNELS & MODES


class InputChannel(Enum):
    """Where the ingredient text came from."""

    MANUAL = "manual"   # typed or pasted by the user
    IMAGE = "image"     # recognized from a label photo


class ExtractionMode(Enum):
    """
    Token dialects the extractor accepts.

    STRICT only accepts codes written with their "E" prefix.
    LENIENT also accepts bare numbers, since people often type
    ingredient numbers without the prefix.
    """

    STRICT = "strict"
    LENIENT = "lenient"


# CANONICAL CODE


@dataclass(frozen=True, order=True)
class ECode:
    """
    Canonical E-number, e.g. ``E100`` or ``E160A``.

    Attributes:
        value: Upper-case canonical string
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not CANONICAL_REGEX.fullmatch(self.value):
            raise ValueError(f"Not a canonical E-number: {self.value!r}")

    @classmethod
    def parse(cls, token: str) -> "ECode":
        """
        Canonicalize a raw token.

        Strips "-" and spaces, upper-cases, and adds the "E" prefix
        to bare numbers: "e-160a" -> E160A, "322" -> E322.

        Raises:
            ValueError: If the token is not an E-number in either dialect
        """
        if not isinstance(token, str):
            raise ValueError(f"Expected string token, got {type(token)}")

        cleaned = _SEPARATORS.sub("", token.strip()).upper()
        if cleaned[:1].isdigit():
            cleaned = "E" + cleaned
        return cls(cleaned)

    def __str__(self) -> str:
        return self.value
