"""
Facility master roster (``eess_maestro.csv``) indexed by RENAES code.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence

from .renaes import ROSTER_CODE_KEYS, extract_code
from .rows import get_str

logger = logging.getLogger(__name__)

NAME_KEYS = ("raz_soc", "establecimiento", "nombre", "nom_estab", "nombre_establecimiento")
REGION_KEYS = ("ris",)
SUBREGION_KEYS = ("subregion",)
AREA_KEYS = ("ubigeo_rn", "ubigeo")


@dataclass(frozen=True)
class RosterEntry:
    code: str
    name: str
    ris: Optional[str] = None
    ubigeo: Optional[str] = None


@dataclass(frozen=True)
class DuplicateCode:
    code: str
    count: int


@dataclass(frozen=True)
class RosterIndex:
    """Read-only code -> entry mapping, plus the rows that had no usable code"""

    entries: Mapping[str, RosterEntry]
    skipped: int = 0

    def get(self, code: Optional[str]) -> Optional[RosterEntry]:
        if not code:
            return None
        return self.entries.get(code)

    def __contains__(self, code: str) -> bool:
        return code in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries.values())


EMPTY_ROSTER = RosterIndex(entries=MappingProxyType({}))


def strip_region_prefix(value: str) -> str:
    """``"03 RIS LIMA"`` -> ``"RIS LIMA"``"""
    value = value.strip()
    i = 0
    while i < len(value) and value[i].isdecimal():
        i += 1
    return value[i:].lstrip()


def region_of(row: Mapping[str, str]) -> Optional[str]:
    ris = get_str(row, *REGION_KEYS)
    if ris is not None:
        return strip_region_prefix(ris) or None
    sub = get_str(row, *SUBREGION_KEYS)
    return sub.strip() if sub is not None else None


def area_code_of(row: Mapping[str, str], code: Optional[str]) -> Optional[str]:
    value = get_str(row, *AREA_KEYS)
    if value is not None and value.strip().isdecimal():
        return value.strip()
    if code and code[:6].isdecimal():
        return code[:6]
    return None


def name_of(row: Mapping[str, str], code: str) -> str:
    name = get_str(row, *NAME_KEYS)
    return name.strip() if name is not None else code


def entry_from_row(row: Mapping[str, str]) -> Optional[RosterEntry]:
    match = extract_code(row, ROSTER_CODE_KEYS)
    if not match:
        return None
    return RosterEntry(
        code=match.code,
        name=name_of(row, match.code),
        ris=region_of(row),
        ubigeo=area_code_of(row, match.code),
    )


def build_roster_index(rows: Sequence[Mapping[str, str]]) -> RosterIndex:
    """Index roster rows by code; a repeated code keeps the last row"""
    entries: Dict[str, RosterEntry] = {}
    skipped = 0
    for row in rows:
        entry = entry_from_row(row)
        if entry is None:
            skipped += 1
            continue
        entries[entry.code] = entry

    if skipped:
        logger.info(f"Roster: {skipped} rows without a recognizable RENAES code")
    return RosterIndex(entries=MappingProxyType(entries), skipped=skipped)


def find_duplicate_codes(rows: Sequence[Mapping[str, str]]) -> List[DuplicateCode]:
    """Codes appearing more than once, by descending count then code"""
    counts = Counter()
    for row in rows:
        match = extract_code(row, ROSTER_CODE_KEYS)
        if match:
            counts[match.code] += 1

    duplicates = [DuplicateCode(code, n) for code, n in counts.items() if n > 1]
    duplicates.sort(key=lambda d: (-d.count, d.code))
    return duplicates


def region_options(roster: RosterIndex) -> List[str]:
    """Distinct region labels, compared case-insensitively, sorted"""
    seen: Dict[str, str] = {}
    for entry in roster:
        if entry.ris and entry.ris.strip():
            label = entry.ris.strip()
            seen.setdefault(label.casefold(), label)
    return sorted(seen.values())
