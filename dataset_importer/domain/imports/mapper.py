"""
Column role detection and validation for dataset CSV imports.

Columns are assigned to dataset item roles: the input the model receives,
the expected output it is graded against, and extra metadata.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from dataset_importer.api.schemas.shared import ColumnMapping
from dataset_importer.domain.imports.errors import ColumnMappingError
from dataset_importer.domain.imports.models import ColumnProfile

logger = logging.getLogger(__name__)

COLUMN_DETECTION_PATTERNS: Dict[str, Tuple[str, ...]] = {
    "input": ("input", "prompt", "question", "query", "text", "message", "content"),
    "expected": ("expected", "output", "answer", "response", "completion", "result", "ground_truth", "label"),
    "metadata": ("metadata", "meta", "tags", "category", "type"),
}


def _matches(column_name: str, role: str) -> bool:
    lowered = column_name.lower()
    return any(keyword in lowered for keyword in COLUMN_DETECTION_PATTERNS[role])


def auto_detect_column_mapping(columns: Sequence[ColumnProfile]) -> Optional[ColumnMapping]:
    """
    Suggest a column mapping from column names.

    Columns are visited in order. The first input-like column becomes the
    input, the first expected-like column among the rest becomes the expected
    column, and every remaining metadata-like column is collected as metadata.
    When no column looks like an input, the first column is used and dropped
    from any other role it was given.

    The suggestion is advisory and meant to be edited before importing.

    Returns:
        ColumnMapping, or None when there are no columns.
    """
    if not columns:
        return None

    input_column: Optional[str] = None
    expected_column: Optional[str] = None
    metadata_columns: List[str] = []

    for column in columns:
        name = column.name
        if input_column is None and _matches(name, "input"):
            input_column = name
        elif expected_column is None and _matches(name, "expected"):
            expected_column = name
        elif _matches(name, "metadata"):
            metadata_columns.append(name)

    if input_column is None:
        input_column = columns[0].name
        if expected_column == input_column:
            expected_column = None
        metadata_columns = [name for name in metadata_columns if name != input_column]

    mapping = ColumnMapping(
        input_column=input_column,
        expected_column=expected_column,
        metadata_columns=metadata_columns,
    )
    logger.info(
        f"Suggested column mapping: input={mapping.input_column!r}, "
        f"expected={mapping.expected_column!r}, metadata={mapping.metadata_columns}"
    )
    return mapping


def validate_column_mapping(mapping: ColumnMapping, headers: Sequence[str]) -> None:
    """
    Check a user-confirmed mapping against the parsed headers.

    Every referenced column must exist and each column may play one role
    only.

    Raises:
        ColumnMappingError: On the first violation found
    """
    known = set(headers)

    if not mapping.input_column:
        raise ColumnMappingError("input_column is required")
    if mapping.input_column not in known:
        raise ColumnMappingError(f"input column '{mapping.input_column}' not found in CSV")

    if mapping.expected_column is not None:
        if mapping.expected_column not in known:
            raise ColumnMappingError(f"expected column '{mapping.expected_column}' not found in CSV")
        if mapping.expected_column == mapping.input_column:
            raise ColumnMappingError(
                f"column '{mapping.input_column}' cannot be both the input and the expected column"
            )

    seen = set()
    for column in mapping.metadata_columns:
        if column not in known:
            raise ColumnMappingError(f"metadata column '{column}' not found in CSV")
        if column == mapping.input_column:
            raise ColumnMappingError(f"input column '{column}' cannot also be a metadata column")
        if column == mapping.expected_column:
            raise ColumnMappingError(f"expected column '{column}' cannot also be a metadata column")
        if column in seen:
            raise ColumnMappingError(f"metadata column '{column}' is listed more than once")
        seen.add(column)
