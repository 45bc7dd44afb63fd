# enumber_checker/text_extraction.py
"""
E-number extraction from free-form ingredient text.

Two token dialects:
  - strict:  "E100", "e-160a", "E 322"      (prefix required)
  - lenient: strict + bare "100", "160a"     (prefix synthesized)

Every match is canonicalized (separators stripped, upper-cased, "E"
prefixed) and deduplicated, keeping first-seen order for display.
"""

import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from . import config
from .codes import CANONICAL_REGEX, ECode, ExtractionMode, InputChannel

logger = logging.getLogger(__name__)

# PATTERNS


# "E" or "e", optional single "-" or space, 3-4 digits, optional letter
STRICT_REGEX = re.compile(
    r"\b[Ee][- ]?\d{3,4}[A-Za-z]?\b",
    re.IGNORECASE | re.ASCII,
)

# Bare 3-4 digit group, optional letter. The leading \b keeps it from
# matching digits glued to an "E" ("E100" is left to the strict pattern).
BARE_REGEX = re.compile(
    r"\b\d{3,4}[A-Za-z]?\b",
    re.ASCII,
)


# DATA CLASSES


@dataclass(frozen=True)
class CodeMatch:
    """One E-number occurrence in the source text."""
    code: ECode
    start: int
    end: int
    raw: str


# MATCHING


def find_code_matches(
    text: str,
    mode: ExtractionMode = ExtractionMode.STRICT,
) -> List[CodeMatch]:
    """
    Find every E-number occurrence in ``text``, in text order.

    Occurrences are not deduplicated: "E-200" in lenient mode yields
    both the strict "E-200" and the bare "200" match, which share
    the canonical code E200.

    Args:
        text: Raw ingredient text (typed or OCR)
        mode: Token dialect to accept

    Returns:
        Matches sorted by position
    """
    if not text or not isinstance(text, str):
        return []

    patterns = [STRICT_REGEX]
    if mode is ExtractionMode.LENIENT:
        patterns.append(BARE_REGEX)

    matches: List[CodeMatch] = []
    for pattern in patterns:
        for m in pattern.finditer(text):
            matches.append(
                CodeMatch(
                    code=ECode.parse(m.group(0)),
                    start=m.start(),
                    end=m.end(),
                    raw=m.group(0),
                )
            )

    matches.sort(key=lambda cm: (cm.start, -cm.end))
    return matches


def extract_codes(
    text: str,
    mode: ExtractionMode = ExtractionMode.STRICT,
) -> Tuple[ECode, ...]:
    """
    Extract the set of canonical E-numbers in ``text``.

    Duplicates are removed by canonical value; the first occurrence
    fixes the display order. Empty input yields an empty tuple.

    Examples:
        >>> extract_codes("Contains E100, E200 and salt")
        (ECode(value='E100'), ECode(value='E200'))
        >>> extract_codes("Contains 100, E-200", ExtractionMode.LENIENT)
        (ECode(value='E100'), ECode(value='E200'))
    """
    seen = set()
    codes: List[ECode] = []

    for cm in find_code_matches(text, mode):
        if cm.code in seen:
            continue
        seen.add(cm.code)
        codes.append(cm.code)

    logger.debug(f"Extracted {len(codes)} code(s) in {mode.value} mode")
    return tuple(codes)


class TokenExtractor:
    """
    Picks the token dialect per input channel.

    Whether bare numbers count as E-numbers is a per-channel switch:
    typed text usually benefits from it, OCR text is noisier (weights,
    percentages and dates all look like bare numbers).
    """

    def __init__(
        self,
        lenient_manual: Optional[bool] = None,
        lenient_ocr: Optional[bool] = None,
    ) -> None:
        self.lenient_manual = config.LENIENT_MANUAL if lenient_manual is None else lenient_manual
        self.lenient_ocr = config.LENIENT_OCR if lenient_ocr is None else lenient_ocr

    def mode_for(self, channel: InputChannel) -> ExtractionMode:
        lenient = self.lenient_ocr if channel is InputChannel.IMAGE else self.lenient_manual
        return ExtractionMode.LENIENT if lenient else ExtractionMode.STRICT

    def extract(self, text: str, channel: InputChannel) -> Tuple[ECode, ...]:
        return extract_codes(text, self.mode_for(channel))

    def matches(self, text: str, channel: InputChannel) -> List[CodeMatch]:
        return find_code_matches(text, self.mode_for(channel))


# VALIDATION


def is_canonical_code(text: str) -> bool:
    """True if ``text`` is already a canonical E-number (e.g. "E160A")."""
    if not text or not isinstance(text, str):
        return False
    return CANONICAL_REGEX.fullmatch(text) is not None


# TEXT HIGHLIGHTING

# Markdown (and Streamlit LaTeX "$") metacharacters
_MARKDOWN_SPECIALS = re.compile(r"([\\`*_{}\[\]()#+\-.!|<>~$])")


def escape_markdown(text: str) -> str:
    """Backslash-escape markdown metacharacters so ``text`` renders literally."""
    return _MARKDOWN_SPECIALS.sub(r"\\\1", text)


def highlight_codes_in_text(text: str, matches: Sequence[CodeMatch]) -> str:
    """
    Mark every matched E-number in the original text for display.

    Args:
        text: Original ingredient text
        matches: Matches from ``find_code_matches`` on the same text

    Returns:
        Markdown: each match wrapped in **bold**, everything else escaped
    """
    if not text:
        return ""
    if not matches:
        return escape_markdown(text)

    out: List[str] = []
    pos = 0
    for cm in sorted(matches, key=lambda m: (m.start, -m.end)):
        # Overlapping matches ("E-200" and its bare "200"): first one wins
        if cm.start < pos:
            continue
        out.append(escape_markdown(text[pos:cm.start]))
        out.append(f"**{text[cm.start:cm.end]}**")
        pos = cm.end

    out.append(escape_markdown(text[pos:]))
    return "".join(out)
