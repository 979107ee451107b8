"""
HTTP client for the dataset REST API.

Uses requests for JSON calls against the project/dataset endpoints, including
the import-csv endpoint the chunked importer posts to.
"""
import logging
import threading
import time
from typing import Any, Dict, Optional, Tuple

import requests

from dataset_importer.api.schemas.shared import (
    BulkImportResult,
    CreateDatasetItemRequest,
    CreateDatasetRequest,
    Dataset,
    DatasetItem,
    ImportCsvRequest,
    ImportJsonRequest,
    PaginatedResponse,
    UpdateDatasetRequest,
)
from dataset_importer.core.config import settings
from dataset_importer.utils.optimistic import apply_optimistic_update

logger = logging.getLogger(__name__)


class DatasetsApiError(Exception):
    """Base exception for dataset API calls."""
    pass


class DatasetsApiConnectionError(DatasetsApiError):
    """Raised when the API cannot be reached."""
    pass


class DatasetsApiHTTPError(DatasetsApiError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message


def _error_message(response: requests.Response) -> str:
    """Pull a readable message out of an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason or "Unknown error"

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if body.get("message"):
            return str(body["message"])
    return response.text[:200] or "Unknown error"


def _unwrap(body: Any) -> Any:
    """Accept both bare payloads and {"success": ..., "data": ...} envelopes."""
    if isinstance(body, dict) and "success" in body and "data" in body and "pagination" not in body:
        return body["data"]
    return body


class ItemListCache:
    """
    TTL cache of dataset item listings keyed by (dataset_id, page, limit).

    Imports change item listings, so callers invalidate a dataset's entries
    once an import finishes.
    """

    def __init__(self, ttl_seconds: float, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Tuple[str, int, int], Tuple[float, PaginatedResponse[DatasetItem]]] = {}
        self._lock = threading.Lock()

    def get(self, dataset_id: str, page: int, limit: int) -> Optional[PaginatedResponse[DatasetItem]]:
        key = (dataset_id, page, limit)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def put(self, dataset_id: str, page: int, limit: int, value: PaginatedResponse[DatasetItem]) -> None:
        now = self._clock()
        with self._lock:
            # Expired entries are dropped on write so unread pages do not pile up
            for key in [k for k, (stored_at, _) in self._entries.items() if now - stored_at > self.ttl_seconds]:
                del self._entries[key]
            self._entries[(dataset_id, page, limit)] = (now, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def snapshot(self, dataset_id: str) -> Dict[Tuple[str, int, int], Tuple[float, PaginatedResponse[DatasetItem]]]:
        with self._lock:
            return {
                key: (stored_at, value.model_copy(deep=True))
                for key, (stored_at, value) in self._entries.items()
                if key[0] == dataset_id
            }

    def restore(self, dataset_id: str, entries: Dict[Tuple[str, int, int], Tuple[float, PaginatedResponse[DatasetItem]]]) -> None:
        with self._lock:
            for key in [k for k in self._entries if k[0] == dataset_id]:
                del self._entries[key]
            self._entries.update(entries)

    def remove_item(self, dataset_id: str, item_id: str) -> None:
        """Drop one item from every cached page of a dataset."""
        with self._lock:
            for key, (stored_at, value) in list(self._entries.items()):
                if key[0] != dataset_id:
                    continue
                remaining = [item for item in value.data if item.id != item_id]
                if len(remaining) != len(value.data):
                    pagination = value.pagination.model_copy(
                        update={"total": max(0, value.pagination.total - 1)}
                    )
                    self._entries[key] = (
                        stored_at,
                        PaginatedResponse[DatasetItem](data=remaining, pagination=pagination),
                    )

    def invalidate(self, dataset_id: str) -> None:
        with self._lock:
            for key in [k for k in self._entries if k[0] == dataset_id]:
                del self._entries[key]


class DatasetsApiClient:
    """JSON client for datasets, dataset items and bulk imports."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        items_cache_ttl: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.request_timeout_seconds if timeout is None else timeout
        self.session = session or requests.Session()
        key = settings.api_key if api_key is None else api_key
        if key:
            self.session.headers.update({"Authorization": f"Bearer {key}"})
        else:
            logger.warning("No API key configured; requests are sent unauthenticated")
        self.items_cache = ItemListCache(
            settings.items_cache_ttl_seconds if items_cache_ttl is None else items_cache_ttl
        )

    # -------------------------------------------------------
    # Transport
    # -------------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a JSON request and return the decoded body.

        Raises:
            DatasetsApiConnectionError: Network failure or timeout
            DatasetsApiHTTPError: Non-2xx response
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, json=json, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Dataset API {method} {path} failed: {e}")
            raise DatasetsApiConnectionError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"Dataset API {method} {path} -> {response.status_code}: {message}")
            raise DatasetsApiHTTPError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return _unwrap(response.json())
        except ValueError as e:
            raise DatasetsApiError(f"{method} {path} returned invalid JSON") from e

    # -------------------------------------------------------
    # Datasets
    # -------------------------------------------------------

    def list_datasets(self, project_id: str, page: int = 1, limit: int = 50) -> PaginatedResponse[Dataset]:
        body = self.request("GET", f"projects/{project_id}/datasets", params={"page": page, "limit": limit})
        return PaginatedResponse[Dataset].model_validate(body)

    def get_dataset(self, project_id: str, dataset_id: str) -> Dataset:
        body = self.request("GET", f"projects/{project_id}/datasets/{dataset_id}")
        return Dataset.model_validate(body)

    def create_dataset(self, project_id: str, request: CreateDatasetRequest) -> Dataset:
        body = self.request("POST", f"projects/{project_id}/datasets", json=request.model_dump(exclude_none=True))
        return Dataset.model_validate(body)

    def update_dataset(self, project_id: str, dataset_id: str, request: UpdateDatasetRequest) -> Dataset:
        body = self.request(
            "PUT",
            f"projects/{project_id}/datasets/{dataset_id}",
            json=request.model_dump(exclude_none=True),
        )
        return Dataset.model_validate(body)

    def delete_dataset(self, project_id: str, dataset_id: str) -> None:
        self.request("DELETE", f"projects/{project_id}/datasets/{dataset_id}")
        self.items_cache.invalidate(dataset_id)

    # -------------------------------------------------------
    # Items
    # -------------------------------------------------------

    def list_items(self, project_id: str, dataset_id: str, page: int = 1, limit: int = 50) -> PaginatedResponse[DatasetItem]:
        cached = self.items_cache.get(dataset_id, page, limit)
        if cached is not None:
            return cached
        body = self.request(
            "GET",
            f"projects/{project_id}/datasets/{dataset_id}/items",
            params={"page": page, "limit": limit},
        )
        listing = PaginatedResponse[DatasetItem].model_validate(body)
        self.items_cache.put(dataset_id, page, limit, listing)
        return listing

    def create_item(self, project_id: str, dataset_id: str, request: CreateDatasetItemRequest) -> DatasetItem:
        body = self.request(
            "POST",
            f"projects/{project_id}/datasets/{dataset_id}/items",
            json=request.model_dump(exclude_none=True),
        )
        self.items_cache.invalidate(dataset_id)
        return DatasetItem.model_validate(body)

    def delete_item(self, project_id: str, dataset_id: str, item_id: str) -> None:
        """Delete an item, hiding it from cached listings until the server confirms."""
        apply_optimistic_update(
            snapshot=lambda: self.items_cache.snapshot(dataset_id),
            apply=lambda: self.items_cache.remove_item(dataset_id, item_id),
            restore=lambda previous: self.items_cache.restore(dataset_id, previous),
            commit=lambda: self.request("DELETE", f"projects/{project_id}/datasets/{dataset_id}/items/{item_id}"),
        )

    def invalidate_items(self, dataset_id: str) -> None:
        self.items_cache.invalidate(dataset_id)

    # -------------------------------------------------------
    # Bulk imports
    # -------------------------------------------------------

    def import_json(self, project_id: str, dataset_id: str, request: ImportJsonRequest) -> BulkImportResult:
        body = self.request(
            "POST",
            f"projects/{project_id}/datasets/{dataset_id}/items/import-json",
            json=request.model_dump(exclude_none=True),
        )
        self.items_cache.invalidate(dataset_id)
        return BulkImportResult.model_validate(body or {})

    def import_csv(self, project_id: str, dataset_id: str, request: ImportCsvRequest) -> BulkImportResult:
        """POST one chunk of CSV content to the dataset's import-csv endpoint."""
        body = self.request(
            "POST",
            f"projects/{project_id}/datasets/{dataset_id}/items/import-csv",
            json=request.to_payload(),
        )
        return BulkImportResult.model_validate(body or {})
