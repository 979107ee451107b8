"""
Column type inference for CSV previews.

Types are inferred from a sample of each column's non-empty values. This is a
heuristic for display and mapping suggestions, not a schema validator:
columns inferred as MIXED are rendered as plain text.
"""
import json
import re
from typing import Iterable, List, Sequence

from dataset_importer.domain.imports.models import ColumnProfile, ColumnType

TYPE_SAMPLE_SIZE = 100
PREVIEW_SAMPLE_SIZE = 5

_NUMBER_PATTERN = re.compile(r"^-?\d+(\.\d+)?$|^-?\.\d+$")
_BOOLEAN_VALUES = {"true", "false"}


def _reject_constant(name: str) -> None:
    # NaN/Infinity are not valid JSON
    raise ValueError(f"Invalid JSON constant: {name}")


def _is_valid_json(value: str) -> bool:
    try:
        json.loads(value, parse_constant=_reject_constant)
    except ValueError:
        return False
    return True


def detect_value_type(value: str) -> ColumnType:
    """Detect the type of a single cell value."""
    trimmed = value.strip()

    if trimmed == "":
        return ColumnType.NULL

    if trimmed.lower() in _BOOLEAN_VALUES:
        return ColumnType.BOOLEAN

    if _NUMBER_PATTERN.match(trimmed):
        return ColumnType.NUMBER

    if trimmed.startswith("{") and trimmed.endswith("}") and _is_valid_json(trimmed):
        return ColumnType.JSON

    if trimmed.startswith("[") and trimmed.endswith("]") and _is_valid_json(trimmed):
        return ColumnType.ARRAY

    return ColumnType.STRING


def infer_column_type(values: Iterable[str]) -> ColumnType:
    """
    Infer a column type from its values.

    Only the first 100 non-empty values are sampled. A JSON/array mix still
    counts as JSON; any other disagreement yields MIXED.
    """
    sample: List[str] = []
    for value in values:
        if value is None or value.strip() == "":
            continue
        sample.append(value)
        if len(sample) >= TYPE_SAMPLE_SIZE:
            break

    types = {detect_value_type(value) for value in sample}
    types.discard(ColumnType.NULL)

    if not types:
        return ColumnType.NULL
    if len(types) == 1:
        return next(iter(types))
    if types == {ColumnType.JSON, ColumnType.ARRAY}:
        return ColumnType.JSON
    return ColumnType.MIXED


def analyze_columns(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> List[ColumnProfile]:
    """Build a profile for every column of a rectangular table."""
    profiles = []
    for index, name in enumerate(headers):
        values = [row[index] for row in rows]
        non_empty = [value for value in values if value != ""]
        profiles.append(
            ColumnProfile(
                name=name,
                type=infer_column_type(non_empty),
                sample_values=non_empty[:PREVIEW_SAMPLE_SIZE],
                null_count=len(values) - len(non_empty),
                unique_count=len(set(values)),
            )
        )
    return profiles
