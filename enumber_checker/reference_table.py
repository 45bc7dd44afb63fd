# enumber_checker/reference_table.py
"""
Reference table of known E-numbers and whether they are vegan.

Loaded once per process from the bundled JSON list of
{code, name, vegan} records and never modified afterwards.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Union

from . import config
from .codes import ECode
from .errors import ReferenceDataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceEntry:
    """
    Known classification of one E-number.

    Attributes:
        code:  Canonical code
        name:  Display name ("Curcumin")
        vegan: True if the additive is free of animal products
    """
    code: ECode
    name: str
    vegan: bool


class ReferenceTable:
    """Read-only mapping ECode -> ReferenceEntry."""

    def __init__(self, entries: Iterable[ReferenceEntry]):
        by_code: Dict[ECode, ReferenceEntry] = {}
        for entry in entries:
            if entry.code in by_code:
                raise ReferenceDataError(f"Duplicate reference entry for {entry.code}")
            by_code[entry.code] = entry
        self._entries: Mapping[ECode, ReferenceEntry] = MappingProxyType(by_code)

    def lookup(self, code: Union[ECode, str]) -> Optional[ReferenceEntry]:
        """Entry for ``code`` (ECode or any spelling ECode.parse accepts), or None."""
        if not isinstance(code, ECode):
            try:
                code = ECode.parse(code)
            except ValueError:
                return None
        return self._entries.get(code)

    def vegan_codes(self) -> List[ECode]:
        """All codes known to be vegan, in table order."""
        return [e.code for e in self._entries.values() if e.vegan]

    def __contains__(self, code: object) -> bool:
        if not isinstance(code, (ECode, str)):
            return False
        return self.lookup(code) is not None

    def __iter__(self) -> Iterator[ReferenceEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        vegan = sum(1 for e in self._entries.values() if e.vegan)
        return f"ReferenceTable(entries={len(self)}, vegan={vegan})"


# LOADING


def _parse_record(index: int, record: object) -> ReferenceEntry:
    if not isinstance(record, dict):
        raise ReferenceDataError(f"Record {index} is not an object: {record!r}")

    try:
        code = ECode.parse(record["code"])
        name = record["name"]
        vegan = record["vegan"]
    except KeyError as e:
        raise ReferenceDataError(f"Record {index} is missing field {e}") from e
    except ValueError as e:
        raise ReferenceDataError(f"Record {index} has an invalid code: {e}") from e

    if not isinstance(name, str) or not name.strip():
        raise ReferenceDataError(f"Record {index} ({code}) has an empty name")
    if not isinstance(vegan, bool):
        raise ReferenceDataError(f"Record {index} ({code}) has a non-boolean 'vegan' flag")

    return ReferenceEntry(code=code, name=name.strip(), vegan=vegan)


def load_reference_table(path: Optional[Union[str, Path]] = None) -> ReferenceTable:
    """
    Parse a reference table from a JSON file.

    Args:
        path: JSON file (default: REFERENCE_DATA_PATH, the bundled table)

    Raises:
        ReferenceDataError: If the file is unreadable or malformed,
            or lists the same code twice
    """
    path = Path(path) if path is not None else config.REFERENCE_DATA_PATH

    try:
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)
    except OSError as e:
        raise ReferenceDataError(f"Cannot read reference data {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ReferenceDataError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(records, list):
        raise ReferenceDataError(f"Reference data in {path} must be a JSON list")

    table = ReferenceTable(_parse_record(i, r) for i, r in enumerate(records))
    logger.info(f"Loaded {table!r} from {path}")
    return table


_table_instance: Optional[ReferenceTable] = None


def get_reference_table() -> ReferenceTable:
    """Process-wide reference table, loaded on first use."""
    global _table_instance
    if _table_instance is None:
        _table_instance = load_reference_table()
    return _table_instance
