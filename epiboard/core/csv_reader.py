"""
Tolerant reader for the surveillance CSV exports.

Exports come from different tools: some use ``;``, some ``,``, some quote
fields, and headers vary in case and padding. Rows are returned as plain
dicts keyed by the lowercased header so the rest of the core can look columns
up by name.
"""

import io
import logging
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple

from ..config import settings

logger = logging.getLogger(__name__)

Row = Dict[str, str]


def detect_delimiter(header_line: str) -> str:
    """Pick the delimiter for the whole file from its first line"""
    return ";" if ";" in header_line else ","


def split_line(line: str, sep: str) -> List[str]:
    """Split on ``sep`` except inside double quotes.

    A quote only toggles the in-quotes state and is dropped; doubled quotes
    are not treated as escapes.
    """
    fields = []
    buf = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
            continue
        if ch == sep and not in_quotes:
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    fields.append("".join(buf))
    return fields


def parse_csv(
    stream: BinaryIO, max_line_length: Optional[int] = None
) -> Tuple[List[str], List[Row]]:
    """Parse a byte stream into ``(headers, rows)``.

    Blank lines and lines longer than ``max_line_length`` are skipped. Short
    rows are padded with empty strings, extra cells are ignored.
    """
    if max_line_length is None:
        max_line_length = settings.MAX_LINE_LENGTH

    text = io.TextIOWrapper(stream, encoding="utf-8-sig", errors="replace", newline=None)
    try:
        header_line = text.readline()
        if not header_line:
            return [], []

        header_line = header_line.rstrip("\r\n")
        sep = detect_delimiter(header_line)
        headers = [h.strip().lower() for h in split_line(header_line, sep)]
        width = len(headers)

        rows: List[Row] = []
        skipped = 0
        for raw in text:
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            if len(line) > max_line_length:
                skipped += 1
                continue

            cells = split_line(line, sep)
            if len(cells) < width:
                cells.extend([""] * (width - len(cells)))
            rows.append(dict(zip(headers, cells[:width])))

        if skipped:
            logger.warning(f"Skipped {skipped} over-long lines (> {max_line_length} chars)")
        return headers, rows
    finally:
        # no cerrar el stream del llamador
        text.detach()


def read_csv(path: Path) -> List[Row]:
    """Read a CSV file from disk; a missing file is an empty table"""
    path = Path(path)
    if not path.is_file():
        logger.info(f"Source file not found, using empty table: {path}")
        return []

    with path.open("rb") as fh:
        _, rows = parse_csv(fh)
    return rows
