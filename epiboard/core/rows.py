"""
Typed accessors over loosely-typed CSV rows.

Header spellings differ between exports, so every lookup that needs to guess
column names lives here and nowhere else.
"""

import math
from typing import Mapping, Optional, Sequence

YEAR_KEYS = ("ano", "anio", "año")
WEEK_KEYS = ("semana", "se")


def get_str(row: Mapping[str, str], *keys: str) -> Optional[str]:
    """First non-blank value among ``keys``"""
    for key in keys:
        value = row.get(key)
        if value is not None and value.strip():
            return value
    return None


def get_int(row: Mapping[str, str], *keys: str) -> Optional[int]:
    """First value among ``keys`` that parses as an integer"""
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        try:
            return int(value.strip())
        except ValueError:
            continue
    return None


def to_number(value: Optional[str]) -> float:
    """Parse a count cell; anything unparseable counts as zero"""
    if value is None:
        return 0.0
    value = value.strip().replace(",", ".")
    if not value:
        return 0.0
    try:
        number = float(value)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def year_of(row: Mapping[str, str]) -> Optional[int]:
    return get_int(row, *YEAR_KEYS)


def week_of(row: Mapping[str, str]) -> Optional[int]:
    return get_int(row, *WEEK_KEYS)


def sum_prefixes(row: Mapping[str, str], prefixes: Sequence[str]) -> float:
    """Sum every column whose name equals or starts with one of ``prefixes``.

    Each column is counted once even if several prefixes match it.
    """
    total = 0.0
    for key, value in row.items():
        if any(key.startswith(p) for p in prefixes):
            total += to_number(value)
    return total
