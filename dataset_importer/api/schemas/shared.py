from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator


T = TypeVar("T")


class ColumnMapping(BaseModel):
    """Assignment of CSV columns to dataset item roles."""
    input_column: str
    expected_column: Optional[str] = None
    metadata_columns: List[str] = Field(default_factory=list)

    @field_validator("expected_column")
    def normalize_expected_column(cls, value: Optional[str]) -> Optional[str]:
        """Treat blank expected columns as unset."""
        if value is None:
            return None
        value = value.strip()
        return value or None

    def to_payload(self) -> Dict[str, Any]:
        """Wire format: optional keys are omitted rather than sent empty."""
        payload: Dict[str, Any] = {"input_column": self.input_column}
        if self.expected_column:
            payload["expected_column"] = self.expected_column
        if self.metadata_columns:
            payload["metadata_columns"] = list(self.metadata_columns)
        return payload


class ImportCsvRequest(BaseModel):
    """Body of POST .../items/import-csv (one chunk of CSV content)."""
    content: str
    column_mapping: ColumnMapping
    has_header: bool = True
    deduplicate: bool = True

    def to_payload(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "column_mapping": self.column_mapping.to_payload(),
            "has_header": self.has_header,
            "deduplicate": self.deduplicate,
        }


class BulkImportResult(BaseModel):
    created: int = 0
    skipped: int = 0
    errors: Optional[List[str]] = None


class KeysMapping(BaseModel):
    input_keys: List[str] = Field(default_factory=list)
    expected_keys: List[str] = Field(default_factory=list)
    metadata_keys: List[str] = Field(default_factory=list)


class ImportJsonRequest(BaseModel):
    items: List[Dict[str, Any]]
    keys_mapping: Optional[KeysMapping] = None
    deduplicate: bool = True
    source: Optional[str] = None


class Pagination(BaseModel):
    page: int = 1
    limit: int = 50
    total: int = 0
    total_pages: int = Field(0, alias="totalPages")
    has_next: bool = Field(False, alias="hasNext")
    has_prev: bool = Field(False, alias="hasPrev")

    model_config = {"populate_by_name": True}


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class Dataset(BaseModel):
    id: str
    project_id: str
    name: str
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    current_version_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CreateDatasetRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class UpdateDatasetRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class DatasetItem(BaseModel):
    id: str
    dataset_id: str
    input: Dict[str, Any]
    expected: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    source: str = "manual"
    created_at: Optional[datetime] = None


class CreateDatasetItemRequest(BaseModel):
    input: Dict[str, Any]
    expected: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Preview / import endpoints
# ---------------------------------------------------------------------------


class ColumnProfileResponse(BaseModel):
    name: str
    type: str
    type_label: str
    sample_values: List[str]
    null_count: int
    unique_count: int


class CsvPreviewRequest(BaseModel):
    content: str
    has_header: bool = True
    max_payload_size: Optional[int] = Field(None, gt=0)


class CsvPreviewResponse(BaseModel):
    success: bool
    headers: List[str]
    rows: List[List[str]]
    row_count: int
    estimated_byte_size: int
    columns: List[ColumnProfileResponse]
    suggested_mapping: ColumnMapping
    chunk_count: int


class ImportCsvApiRequest(BaseModel):
    content: str
    column_mapping: ColumnMapping
    has_header: bool = True
    deduplicate: bool = True
    max_payload_size: Optional[int] = Field(None, gt=0)


class ImportCsvApiResponse(BaseModel):
    success: bool
    created: int
    skipped: int
    errors: List[str] = Field(default_factory=list)
    failed_chunks: List[int] = Field(default_factory=list)
    total_chunks: int
