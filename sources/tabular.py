from __future__ import annotations

import csv
import logging
from typing import Iterator, List, Optional, Sequence, Tuple

from services.errors import MalformedInputError
from sources.base import FileKind, ParsedFile, RawRow
from sources.detect import HEADER_SCAN_LIMIT, all_header_tokens, detect_file_kind


logger = logging.getLogger(__name__)

# A quoted value may span lines (message bodies); give up re-joining after this many
MAX_RECORD_LINES = 50


def clean_value(value: str) -> str:
    return value.replace('"', "").strip()


def split_line(line: str, *, filename: Optional[str] = None, line_no: Optional[int] = None) -> List[str]:
    """Split one logical CSV record, keeping delimiters that sit inside quotes."""
    try:
        fields = next(csv.reader([line], strict=True, skipinitialspace=True))
    except StopIteration:
        return []
    except csv.Error as e:
        raise MalformedInputError(f"Unparseable line: {e}", filename=filename, line_no=line_no) from e
    return [clean_value(f) for f in fields]


def _ends_in_quoted_field(line: str, in_quotes: bool = False) -> bool:
    """Whether a quoted field is still open at the end of ``line``.

    A quote only opens a field at field start; stray quotes inside an
    unquoted value (O"Neil) are literal.
    """
    field_start = not in_quotes
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and line[i + 1] == '"':
                    i += 1
                else:
                    in_quotes = False
        elif ch == '"' and field_start:
            in_quotes = True
            field_start = False
        elif ch == ",":
            field_start = True
        elif not ch.isspace():
            field_start = False
        i += 1
    return in_quotes


def _logical_records(lines: Sequence[str], start: int) -> Iterator[Tuple[int, str]]:
    """Yield (1-based line number, record text), re-joining quoted multi-line values."""
    i = start
    total = len(lines)
    while i < total:
        line = lines[i]
        if not _ends_in_quoted_field(line):
            yield i + 1, line
            i += 1
            continue
        buf = [line]
        j = i + 1
        open_field = True
        while j < total and open_field and len(buf) < MAX_RECORD_LINES:
            open_field = _ends_in_quoted_field(lines[j], in_quotes=True)
            buf.append(lines[j])
            j += 1
        if not open_field:
            yield i + 1, "\n".join(buf)
            i = j
        else:
            # Unterminated quote; hand back the single line so it is reported and skipped
            yield i + 1, line
            i += 1


def locate_header(lines: Sequence[str], filename: Optional[str] = None) -> int:
    """Return the index of the header line, skipping any free-text preamble."""
    tokens = set(all_header_tokens())
    fallback: Optional[int] = None
    for idx, line in enumerate(lines[:HEADER_SCAN_LIMIT]):
        if not line.strip():
            continue
        try:
            fields = split_line(line)
        except MalformedInputError:
            continue
        if any(f in tokens for f in fields):
            return idx
        if fallback is None and len([f for f in fields if f]) >= 2:
            fallback = idx
    if fallback is not None:
        return fallback
    raise MalformedInputError("No header row found", filename=filename)


def parse_table(filename: str, content: str, kind: Optional[FileKind] = None) -> ParsedFile:
    """Parse delimited text into rows keyed by the file's own header vocabulary."""
    text = (content or "").lstrip("\ufeff")
    lines = text.splitlines()
    detected = kind or detect_file_kind(filename, text)
    parsed = ParsedFile(filename=filename, kind=detected)
    if not any(line.strip() for line in lines):
        logger.warning(f"Empty file skipped: {filename}", extra={"step": "parse", "status": "empty"})
        return parsed

    header_idx = locate_header(lines, filename)
    parsed.headers = split_line(lines[header_idx], filename=filename, line_no=header_idx + 1)

    for line_no, record in _logical_records(lines, header_idx + 1):
        if not record.strip():
            continue
        try:
            values = split_line(record, filename=filename, line_no=line_no)
        except MalformedInputError as e:
            parsed.skipped_lines += 1
            logger.warning(str(e), extra={"step": "parse", "status": "skipped", "error": "malformed"})
            continue
        row: RawRow = {}
        # Short lines map only the overlapping prefix of the headers
        for header, value in zip(parsed.headers, values):
            if header and value:
                row[header] = value
        if row:
            parsed.rows.append(row)

    logger.info(
        f"Parsed {len(parsed.rows)} rows from {filename} as {parsed.kind} (skipped {parsed.skipped_lines})",
        extra={"step": "parse", "status": "ok"},
    )
    return parsed
