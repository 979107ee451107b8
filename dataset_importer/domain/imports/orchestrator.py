"""
Chunked CSV import orchestration.

Content is split into size-bounded chunks that are uploaded strictly one
after another. Each chunk is retried with exponential backoff; a chunk that
keeps failing is recorded and skipped so the rest of the import still lands.
The caller always gets a created/skipped/errors summary back instead of an
exception that would hide the work already done.
"""
import logging
import threading
import time
from typing import Callable, List, Optional, Protocol

from dataset_importer.api.schemas.shared import BulkImportResult, ColumnMapping, ImportCsvRequest
from dataset_importer.core.config import settings
from dataset_importer.domain.imports.chunker import chunk_csv_content
from dataset_importer.domain.imports.errors import EmptyCsvError
from dataset_importer.domain.imports.mapper import validate_column_mapping
from dataset_importer.domain.imports.models import ImportProgress
from dataset_importer.domain.imports.processors.csv_processor import parse_csv
from dataset_importer.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class ImportTransport(Protocol):
    """Anything that can send one import-csv request for a dataset."""

    def import_csv(self, project_id: str, dataset_id: str, request: ImportCsvRequest) -> BulkImportResult:
        ...


ProgressCallback = Callable[[ImportProgress], None]


class CsvImportOrchestrator:
    """
    Uploads CSV content to one dataset in sequential chunks.

    The orchestrator owns its ImportProgress; observers read `progress` or
    receive snapshots through `on_progress` at every chunk boundary.
    """

    def __init__(
        self,
        transport: ImportTransport,
        project_id: str,
        dataset_id: str,
        max_retries: Optional[int] = None,
        initial_backoff: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.project_id = project_id
        self.dataset_id = dataset_id
        self.max_retries = settings.csv_chunk_max_retries if max_retries is None else max_retries
        self.initial_backoff = (
            settings.csv_chunk_initial_backoff_ms / 1000 if initial_backoff is None else initial_backoff
        )
        self.on_progress = on_progress
        self._sleep = sleep
        self._cancel_event = threading.Event()
        self.progress = ImportProgress()

    def cancel(self) -> None:
        """
        Stop the running import before its next chunk.

        The chunk in flight finishes its retries. The next call to import_csv
        starts uncancelled.
        """
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.progress.snapshot())

    def _upload_chunk(self, chunk: str, column_mapping: ColumnMapping, has_header: bool, deduplicate: bool) -> BulkImportResult:
        request = ImportCsvRequest(
            content=chunk,
            column_mapping=column_mapping,
            has_header=has_header,
            deduplicate=deduplicate,
        )
        return self.transport.import_csv(self.project_id, self.dataset_id, request)

    def import_csv(
        self,
        content: str,
        column_mapping: ColumnMapping,
        has_header: bool = True,
        deduplicate: bool = True,
        max_payload_size: Optional[int] = None,
        delay_between_chunks: Optional[float] = None,
    ) -> BulkImportResult:
        """
        Import CSV content into the dataset.

        Args:
            content: Raw CSV text
            column_mapping: User-confirmed column roles
            has_header: Whether the first row is a header row
            deduplicate: Ask the server to skip items that already exist
            max_payload_size: Maximum chunk size in bytes
            delay_between_chunks: Pause in seconds between chunk uploads

        Returns:
            BulkImportResult summed over every successful chunk. Errors list
            server-reported item errors and one "Chunk <n>: ..." entry per
            chunk that failed after all retries, in chunk order.

        Raises:
            EmptyCsvError: The content has no data rows
            ColumnMappingError: The mapping does not fit the CSV headers
        """
        if max_payload_size is None:
            max_payload_size = settings.csv_max_payload_size
        if delay_between_chunks is None:
            delay_between_chunks = settings.csv_delay_between_chunks_ms / 1000

        parsed = parse_csv(content, has_header)
        if parsed is None or parsed.row_count == 0:
            raise EmptyCsvError("Could not parse CSV content or no data rows found")
        validate_column_mapping(column_mapping, parsed.headers)

        chunks = chunk_csv_content(content, has_header, max_payload_size)
        self.progress = ImportProgress(total_chunks=len(chunks))
        self._cancel_event.clear()
        self._notify()

        logger.info(
            f"Importing {parsed.row_count} rows into dataset {self.dataset_id} "
            f"in {len(chunks)} chunk(s)"
        )

        created = 0
        skipped = 0
        errors: List[str] = []

        for index, chunk in enumerate(chunks):
            chunk_number = index + 1

            if self.cancelled:
                logger.warning(
                    f"Import into dataset {self.dataset_id} cancelled before chunk "
                    f"{chunk_number}/{len(chunks)}"
                )
                self.progress.cancelled = True
                break

            self.progress.current_chunk = chunk_number
            self._notify()

            try:
                result = retry_with_backoff(
                    lambda: self._upload_chunk(chunk, column_mapping, has_header, deduplicate),
                    max_retries=self.max_retries,
                    initial_delay=self.initial_backoff,
                    sleep=self._sleep,
                    description=f"Chunk {chunk_number}/{len(chunks)}",
                )
            except Exception as e:
                message = f"Chunk {chunk_number}: {e}"
                errors.append(message)
                self.progress.errors.append(message)
                self.progress.failed_chunks.append(chunk_number)
            else:
                created += result.created
                skipped += result.skipped
                if result.errors:
                    errors.extend(result.errors)
                    self.progress.errors.extend(result.errors)
                self.progress.items_created = created
                self.progress.items_skipped = skipped
                logger.info(
                    f"Chunk {chunk_number}/{len(chunks)} imported: "
                    f"{result.created} created, {result.skipped} skipped"
                )

            self.progress.completed_chunks = chunk_number
            self._notify()

            if chunk_number < len(chunks) and delay_between_chunks > 0:
                self._sleep(delay_between_chunks)

        if self.progress.failed_chunks:
            logger.warning(
                f"Import into dataset {self.dataset_id} finished with failed chunks "
                f"{self.progress.failed_chunks}: {created} created, {skipped} skipped"
            )
        else:
            logger.info(f"Import into dataset {self.dataset_id} finished: {created} created, {skipped} skipped")

        return BulkImportResult(created=created, skipped=skipped, errors=errors or None)
