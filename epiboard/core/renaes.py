"""
RENAES facility code detection.

A RENAES code is 6 digits + 1 letter + 3 digits (``150140D101``). Sources
write it in many ways: lowercase, with dashes or spaces, embedded in a longer
label, and under different column names. ``normalize_renaes`` recovers the
canonical form from a single value; ``extract_code`` picks the value out of a
row.

When a value holds more than one code-shaped window, the leftmost one wins.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

CODE_LENGTH = 10
MAX_BUFFER = 32
FALLBACK_COLUMNS = 5

# columnas típicas en iras/edas/febriles
SOURCE_CODE_KEYS = (
    "renaes", "e_salud", "e_sal", "eess", "cod_eess", "codigo_eess", "codigo", "sub_reg_nt",
)
# columnas típicas en eess_maestro
ROSTER_CODE_KEYS = ("renaes", "e_salud")


@dataclass(frozen=True)
class CodeMatch:
    """Outcome of a code lookup: the canonical code, or no match"""

    code: Optional[str] = None
    column: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.code is not None

    def __bool__(self) -> bool:
        return self.matched


NO_MATCH = CodeMatch()


def _is_code_window(buf: str, i: int) -> bool:
    return (
        buf[i:i + 6].isdecimal()
        and buf[i + 6].isalpha()
        and buf[i + 7:i + 10].isdecimal()
    )


def normalize_renaes(value: Optional[str]) -> CodeMatch:
    """Return the first code-shaped window of ``value``, uppercased."""
    if not value or not value.strip():
        return NO_MATCH

    chars = []
    size = 0
    for ch in value:
        if ch.isalnum():
            # upper() puede devolver más de un carácter ('ß' -> 'SS')
            up = ch.upper()
            if size + len(up) > MAX_BUFFER:
                break
            chars.append(up)
            size += len(up)
    if size < CODE_LENGTH:
        return NO_MATCH

    buf = "".join(chars)
    for i in range(len(buf) - CODE_LENGTH + 1):
        if _is_code_window(buf, i):
            return CodeMatch(code=buf[i:i + CODE_LENGTH])
    return NO_MATCH


def extract_code(row: Mapping[str, str], keys: Iterable[str] = SOURCE_CODE_KEYS) -> CodeMatch:
    """Find the facility code of a row.

    Known columns are tried first. Otherwise up to ``FALLBACK_COLUMNS`` of
    the remaining columns with short values (<= 32 chars) are scanned in
    column order.
    """
    keys = tuple(k.lower() for k in keys)
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        match = normalize_renaes(value)
        if match:
            return CodeMatch(code=match.code, column=key)

    seen = 0
    for key, value in row.items():
        if key in keys:
            continue
        seen += 1
        if seen > FALLBACK_COLUMNS:
            break
        value = value or ""
        if len(value) > MAX_BUFFER:
            continue
        match = normalize_renaes(value)
        if match:
            return CodeMatch(code=match.code, column=key)
    return NO_MATCH
