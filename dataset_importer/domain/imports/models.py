"""
In-process values produced and consumed by the CSV import pipeline.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List


class ColumnType(str, Enum):
    """Semantic type inferred for a CSV column"""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"
    ARRAY = "array"
    NULL = "null"
    MIXED = "mixed"

    @property
    def label(self) -> str:
        return COLUMN_TYPE_LABELS[self]


COLUMN_TYPE_LABELS = {
    ColumnType.STRING: "Text",
    ColumnType.NUMBER: "Number",
    ColumnType.BOOLEAN: "Boolean",
    ColumnType.JSON: "JSON Object",
    ColumnType.ARRAY: "Array",
    ColumnType.NULL: "Empty",
    ColumnType.MIXED: "Mixed",
}


@dataclass(frozen=True)
class ColumnProfile:
    """Summary of a single column, used for previews and role detection"""
    name: str
    type: ColumnType
    sample_values: List[str]
    null_count: int
    unique_count: int


@dataclass(frozen=True)
class ParsedTable:
    """
    Header row plus rectangular data rows.

    Every row holds exactly len(headers) cells.
    """
    headers: List[str]
    rows: List[List[str]]
    columns: List[ColumnProfile]
    estimated_byte_size: int

    @property
    def row_count(self) -> int:
        return len(self.rows)


@dataclass
class ImportProgress:
    current_chunk: int = 0
    completed_chunks: int = 0
    total_chunks: int = 0
    items_created: int = 0
    items_skipped: int = 0
    errors: List[str] = field(default_factory=list)
    failed_chunks: List[int] = field(default_factory=list)
    cancelled: bool = False

    @property
    def is_complete(self) -> bool:
        return self.cancelled or self.completed_chunks >= self.total_chunks

    def snapshot(self) -> "ImportProgress":
        """Copy safe to hand to observers while the loop keeps mutating."""
        return replace(self, errors=list(self.errors), failed_chunks=list(self.failed_chunks))
