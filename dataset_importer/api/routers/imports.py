"""
CSV preview and chunked import endpoints.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from dataset_importer.api.dependencies import get_datasets_client
from dataset_importer.api.schemas.shared import (
    ColumnProfileResponse,
    CsvPreviewRequest,
    CsvPreviewResponse,
    ImportCsvApiRequest,
    ImportCsvApiResponse,
)
from dataset_importer.core.config import settings
from dataset_importer.domain.imports.chunker import chunk_csv_content
from dataset_importer.domain.imports.errors import ColumnMappingError, EmptyCsvError
from dataset_importer.domain.imports.mapper import auto_detect_column_mapping
from dataset_importer.domain.imports.orchestrator import CsvImportOrchestrator
from dataset_importer.domain.imports.processors.csv_processor import parse_csv
from dataset_importer.integrations.datasets_api import DatasetsApiClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["imports"])


@router.post("/csv/preview", response_model=CsvPreviewResponse)
def preview_csv_endpoint(request: CsvPreviewRequest):
    """
    Parse CSV content for the import preview.

    Returns the first rows, per-column type profiles, a suggested column
    mapping, and how many chunks an import of this content would upload.
    """
    parsed = parse_csv(request.content, request.has_header)
    if parsed is None or parsed.row_count == 0:
        raise HTTPException(status_code=400, detail="Could not parse CSV content or no data rows found")

    max_payload_size = request.max_payload_size or settings.csv_max_payload_size
    chunk_count = len(chunk_csv_content(request.content, request.has_header, max_payload_size))

    return CsvPreviewResponse(
        success=True,
        headers=parsed.headers,
        rows=parsed.rows[:settings.preview_row_limit],
        row_count=parsed.row_count,
        estimated_byte_size=parsed.estimated_byte_size,
        columns=[
            ColumnProfileResponse(
                name=column.name,
                type=column.type.value,
                type_label=column.type.label,
                sample_values=column.sample_values,
                null_count=column.null_count,
                unique_count=column.unique_count,
            )
            for column in parsed.columns
        ],
        suggested_mapping=auto_detect_column_mapping(parsed.columns),
        chunk_count=chunk_count,
    )


@router.post(
    "/projects/{project_id}/datasets/{dataset_id}/import-csv",
    response_model=ImportCsvApiResponse,
)
def import_csv_endpoint(
    project_id: str,
    dataset_id: str,
    request: ImportCsvApiRequest,
    client: DatasetsApiClient = Depends(get_datasets_client),
):
    """
    Import CSV content into a dataset in sequential, size-bounded chunks.

    Chunks that keep failing are reported in `failed_chunks` and `errors`
    while the remaining chunks are still imported.
    """
    orchestrator = CsvImportOrchestrator(client, project_id, dataset_id)
    try:
        result = orchestrator.import_csv(
            content=request.content,
            column_mapping=request.column_mapping,
            has_header=request.has_header,
            deduplicate=request.deduplicate,
            max_payload_size=request.max_payload_size,
        )
    except (EmptyCsvError, ColumnMappingError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        client.invalidate_items(dataset_id)

    progress = orchestrator.progress
    return ImportCsvApiResponse(
        success=not progress.failed_chunks,
        created=result.created,
        skipped=result.skipped,
        errors=result.errors or [],
        failed_chunks=progress.failed_chunks,
        total_chunks=progress.total_chunks,
    )
