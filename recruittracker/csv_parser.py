"""
Lenient CSV tokenizer for spreadsheet exports.

Handles what Excel and Numbers actually produce rather than strict RFC 4180:
an optional BOM, an optional `sep=<char>` directive line, comma/semicolon/tab
delimiters, quoted fields with embedded delimiters or line breaks, doubled
quotes, stray quotes in the middle of fields, and a handful of Unicode line
separators.
"""

from typing import List

from .errors import InvalidEncodingError
from .normalize import normalize_header

BOM = "\ufeff"
DELIMITERS = (",", ";", "\t")
LINE_BREAKS = frozenset("\r\n\u2028\u2029\u0085\u000b\u000c")
QUOTE = '"'


def decode_csv(raw: bytes) -> str:
    """
    Decode UTF-8 bytes and drop every byte-order mark.

    Raises:
        InvalidEncodingError: If the bytes are not valid UTF-8
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidEncodingError() from e
    return text.replace(BOM, "")


def has_line_break(text: str) -> bool:
    return any(ch in LINE_BREAKS for ch in text)


def _is_directive(cell: str) -> bool:
    return normalize_header(cell).startswith("sep=")


def is_directive_row(row: List[str]) -> bool:
    """True for Excel's `sep=;` delimiter hint line."""
    return bool(row) and _is_directive(row[0])


def is_blank_row(row: List[str]) -> bool:
    return all(not cell.strip() for cell in row)


def detect_delimiter(text: str) -> str:
    """
    Guess the delimiter from the first non-blank, non-directive line.

    Counts commas, semicolons and tabs; the first highest count wins and a
    comma is returned when none of them occur.
    """
    line = ""
    for ch in text:
        if ch in LINE_BREAKS:
            trimmed = line.strip()
            if trimmed and not _is_directive(trimmed):
                break
            line = ""
        else:
            line += ch

    best, best_count = ",", 0
    for delimiter in DELIMITERS:
        count = line.count(delimiter)
        if count > best_count:
            best, best_count = delimiter, count
    return best


def parse_csv(text: str, delimiter: str = ",", respect_quotes: bool = True) -> List[List[str]]:
    """
    Split text into rows of fields.

    Quote handling when `respect_quotes` is set:
      - a quote opens a quoted field only at the start of the field
      - inside a quoted field `""` is a literal quote
      - a quote closes the field only when followed by the delimiter, a line
        break or the end of input; otherwise it is kept as data
    With `respect_quotes` off every quote is plain data, which rescues files
    with unbalanced quoting.

    `\\r\\n` ends a single row. A trailing row without a final line break is
    kept; a trailing line break does not produce an empty row.
    """
    rows: List[List[str]] = []
    current: List[str] = []
    field: List[str] = []
    in_quotes = False
    at_field_start = True
    last_was_cr = False

    def end_field():
        nonlocal at_field_start
        current.append("".join(field))
        field.clear()
        at_field_start = True

    def end_row():
        nonlocal current
        end_field()
        rows.append(current)
        current = []

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == QUOTE and respect_quotes:
            if in_quotes:
                nxt = text[i + 1] if i + 1 < n else None
                if nxt == QUOTE:
                    field.append(QUOTE)
                    i += 1
                elif nxt is None or nxt == delimiter or nxt in LINE_BREAKS:
                    in_quotes = False
                else:
                    field.append(QUOTE)
            elif at_field_start:
                in_quotes = True
                at_field_start = False
            else:
                field.append(QUOTE)
            last_was_cr = False
        elif in_quotes:
            field.append(ch)
            last_was_cr = False
        elif ch == delimiter:
            end_field()
            last_was_cr = False
        elif ch == "\r":
            end_row()
            last_was_cr = True
        elif ch == "\n":
            if not last_was_cr:
                end_row()
            last_was_cr = False
        elif ch in LINE_BREAKS:
            end_row()
            last_was_cr = False
        else:
            field.append(ch)
            at_field_start = False
            last_was_cr = False
        i += 1

    if field or current:
        end_row()
    return rows
