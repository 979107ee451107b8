"""
Split CSV content into upload-sized chunks.

Each chunk is a complete CSV document (header line plus a run of data rows)
so the server can import it on its own. Chunks keep the input row order.
"""
import logging
from typing import List

from dataset_importer.domain.imports.processors.csv_processor import parse_csv, row_to_csv

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAYLOAD_SIZE = 500 * 1024  # 500KB


def _byte_size(text: str) -> int:
    return len(text.encode("utf-8"))


def chunk_csv_content(
    content: str,
    has_header: bool = True,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> List[str]:
    """
    Split CSV content into chunks whose UTF-8 size stays within a limit.

    Content that already fits is returned untouched as a single chunk.
    Larger content is parsed once and its rows are re-serialized greedily
    into chunks, each starting with the header line when the file has one.
    A row that is larger than the limit on its own becomes its own chunk.

    Args:
        content: Raw CSV text
        has_header: Whether the first row is a header row
        max_payload_size: Maximum chunk size in bytes

    Returns:
        Ordered list of CSV documents, empty when the content has no rows.
    """
    if max_payload_size <= 0:
        raise ValueError("max_payload_size must be positive")

    parsed = parse_csv(content, has_header)
    if parsed is None:
        return []

    if parsed.estimated_byte_size <= max_payload_size:
        return [content]

    header_line = row_to_csv(parsed.headers) + "\n" if has_header else ""
    header_size = _byte_size(header_line)

    chunks: List[str] = []
    current_rows: List[str] = []
    current_size = header_size

    for row in parsed.rows:
        row_line = row_to_csv(row)
        row_size = _byte_size(row_line) + 1  # trailing newline

        if current_rows and current_size + row_size > max_payload_size:
            chunks.append(header_line + "\n".join(current_rows))
            current_rows = []
            current_size = header_size

        if not current_rows and header_size + row_size > max_payload_size:
            logger.warning(
                f"Row of {row_size} bytes exceeds the {max_payload_size} byte chunk limit; "
                f"uploading it as its own chunk"
            )

        current_rows.append(row_line)
        current_size += row_size

    if current_rows:
        chunks.append(header_line + "\n".join(current_rows))

    logger.info(
        f"Split {parsed.estimated_byte_size} bytes ({parsed.row_count} rows) into "
        f"{len(chunks)} chunks of at most {max_payload_size} bytes"
    )
    return chunks
