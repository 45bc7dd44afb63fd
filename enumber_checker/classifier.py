# enumber_checker/classifier.py
"""
All-or-nothing vegan classification of a set of E-numbers.

A product is vegan only if every code found on it is known to be vegan.
Codes missing from the reference table are shown as "Unknown" and count
as not vegan.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Tuple

from .codes import ECode
from .reference_table import ReferenceTable

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


class VeganVerdict(Enum):
    UNRESOLVED = "unresolved"
    ALL_VEGAN = "all_vegan"
    NOT_ALL_VEGAN = "not_all_vegan"


@dataclass(frozen=True)
class CodeAnnotation:
    """One extracted code, as shown to the user."""
    code: ECode
    name: str
    vegan: bool
    known: bool


@dataclass(frozen=True)
class Classification:
    verdict: VeganVerdict
    annotations: Tuple[CodeAnnotation, ...] = ()

    @property
    def is_vegan(self) -> bool:
        return self.verdict is VeganVerdict.ALL_VEGAN

    @property
    def non_vegan(self) -> Tuple[CodeAnnotation, ...]:
        return tuple(a for a in self.annotations if not a.vegan)


def annotate(code: ECode, table: ReferenceTable) -> CodeAnnotation:
    entry = table.lookup(code)
    if entry is None:
        return CodeAnnotation(code=code, name=UNKNOWN_NAME, vegan=False, known=False)
    return CodeAnnotation(code=code, name=entry.name, vegan=entry.vegan, known=True)


def classify(codes: Iterable[ECode], table: ReferenceTable) -> Classification:
    """
    Classify the extracted codes against the reference table.

    Never raises: an empty set is UNRESOLVED, unknown codes are
    annotated "Unknown" and treated as not vegan.

    Args:
        codes: Extracted canonical codes (duplicates are ignored)
        table: Reference table

    Returns:
        Verdict plus one annotation per distinct code, in input order
    """
    unique = tuple(dict.fromkeys(codes))
    if not unique:
        return Classification(verdict=VeganVerdict.UNRESOLVED)

    annotations = tuple(annotate(code, table) for code in unique)
    all_vegan = all(a.vegan for a in annotations)
    verdict = VeganVerdict.ALL_VEGAN if all_vegan else VeganVerdict.NOT_ALL_VEGAN

    unknown = sum(1 for a in annotations if not a.known)
    logger.info(
        f"Classified {len(annotations)} code(s): {verdict.value}"
        + (f" ({unknown} unknown)" if unknown else "")
    )
    return Classification(verdict=verdict, annotations=annotations)


def classification_to_dict(result: Classification) -> Dict:
    """Convert a Classification to a JSON-ready dictionary."""
    return {
        "verdict": result.verdict.value,
        "is_vegan": result.is_vegan,
        "codes": [
            {
                "code": str(a.code),
                "name": a.name,
                "vegan": a.vegan,
                "known": a.known,
            }
            for a in result.annotations
        ],
    }
