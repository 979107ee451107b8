import csv
import logging
import re
from io import StringIO
from typing import List, Optional, Sequence

from dataset_importer.domain.imports.column_types import analyze_columns
from dataset_importer.domain.imports.models import ParsedTable

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"\r?\n")


def _split_rows(content: str) -> List[List[str]]:
    """
    Tokenize CSV text into trimmed rows.

    Quote state is carried across line breaks, so a newline inside a quoted
    field is kept as part of the field instead of ending the row. Rows whose
    fields are all empty are dropped.
    """
    rows: List[List[str]] = []
    current_row: List[str] = []
    current_field: List[str] = []
    in_quotes = False

    def finish_row() -> None:
        current_row.append("".join(current_field).strip())
        if any(cell != "" for cell in current_row):
            rows.append(list(current_row))
        current_row.clear()
        current_field.clear()

    for line in _LINE_BREAK.split(content):
        i = 0
        length = len(line)
        while i < length:
            char = line[i]
            if char == '"':
                if not in_quotes:
                    in_quotes = True
                elif i + 1 < length and line[i + 1] == '"':
                    # Escaped quote
                    current_field.append('"')
                    i += 1
                else:
                    in_quotes = False
            elif char == "," and not in_quotes:
                current_row.append("".join(current_field).strip())
                current_field.clear()
            else:
                current_field.append(char)
            i += 1

        if in_quotes:
            # Multiline field, keep the line break
            current_field.append("\n")
        else:
            finish_row()

    # Unterminated quote at end of input
    if current_row or current_field:
        finish_row()

    return rows


def parse_csv(content: str, has_header: bool = True) -> Optional[ParsedTable]:
    """
    Parse CSV text into a rectangular table with per-column profiles.

    Handles quoted fields containing commas, doubled quotes and line breaks,
    and both LF and CRLF line endings.

    Args:
        content: Raw CSV text
        has_header: Treat the first surviving row as the header row. When
            False, headers are generated as col_0, col_1, ...

    Returns:
        ParsedTable, or None when the content is empty or no rows survive
        parsing (nothing to import).
    """
    if not content:
        return None

    rows = _split_rows(content)
    if not rows:
        logger.info("CSV content produced no rows")
        return None

    if has_header:
        headers = [name or f"col_{i}" for i, name in enumerate(rows[0])]
        data_rows = rows[1:]
    else:
        headers = [f"col_{i}" for i in range(len(rows[0]))]
        data_rows = rows

    width = len(headers)
    normalized = [(row + [""] * (width - len(row)))[:width] for row in data_rows]

    table = ParsedTable(
        headers=headers,
        rows=normalized,
        columns=analyze_columns(headers, normalized),
        estimated_byte_size=len(content.encode("utf-8")),
    )
    logger.info(
        f"Parsed CSV: {table.row_count} rows, {width} columns, "
        f"{table.estimated_byte_size} bytes (has_header={has_header})"
    )
    return table


def row_to_csv(row: Sequence[str]) -> str:
    """Serialize one row, quoting fields that contain commas, quotes or newlines."""
    buffer = StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(row)
    return buffer.getvalue()[:-1]


def serialize_rows_to_csv(headers: Optional[Sequence[str]], rows: Sequence[Sequence[str]]) -> str:
    """
    Serialize rows into a CSV document, optionally preceded by a header line.

    The output parses back to the same cells with parse_csv.
    """
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    if headers is not None:
        writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().rstrip("\n")
