"""
Pytest configuration and shared fakes for the dataset importer tests.

Nothing here talks to a real API: transports and HTTP sessions are replaced
with in-memory fakes that record what they were asked to do.
"""

from typing import Dict, List, Optional, Set

import pytest

from dataset_importer.api.schemas.shared import BulkImportResult, ImportCsvRequest


class FakeTransport:
    """
    Import transport that answers per chunk.

    Chunks are numbered (1-based) in the order their content is first seen,
    so retries of the same chunk keep the same number.
    """

    def __init__(
        self,
        fail_chunks: Optional[Set[int]] = None,
        flaky_failures: Optional[Dict[int, int]] = None,
        created_per_chunk: int = 2,
        skipped_per_chunk: int = 0,
        item_errors: Optional[Dict[int, List[str]]] = None,
    ):
        self.fail_chunks = fail_chunks or set()
        self.flaky_failures = dict(flaky_failures or {})
        self.created_per_chunk = created_per_chunk
        self.skipped_per_chunk = skipped_per_chunk
        self.item_errors = item_errors or {}
        self.calls: List[ImportCsvRequest] = []
        self.targets: List[tuple] = []
        self._seen: List[str] = []

    def chunk_number(self, content: str) -> int:
        if content not in self._seen:
            self._seen.append(content)
        return self._seen.index(content) + 1

    def import_csv(self, project_id: str, dataset_id: str, request: ImportCsvRequest) -> BulkImportResult:
        self.calls.append(request)
        self.targets.append((project_id, dataset_id))
        number = self.chunk_number(request.content)

        if number in self.fail_chunks:
            raise RuntimeError("boom")
        if self.flaky_failures.get(number, 0) > 0:
            self.flaky_failures[number] -= 1
            raise ConnectionError("temporary network error")

        return BulkImportResult(
            created=self.created_per_chunk,
            skipped=self.skipped_per_chunk,
            errors=self.item_errors.get(number),
        )


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_three_chunk_csv() -> str:
    """Six equal rows that split into three chunks of two rows at 44 bytes."""
    rows = [f"question_{i},answer_{i}" for i in range(1, 7)]
    return "q,a\n" + "\n".join(rows)


THREE_CHUNK_LIMIT = 44


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()
