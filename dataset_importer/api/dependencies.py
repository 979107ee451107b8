"""
Shared dependencies for the API routers.
"""
from typing import Optional

from dataset_importer.integrations.datasets_api import DatasetsApiClient

_datasets_client: Optional[DatasetsApiClient] = None


def get_datasets_client() -> DatasetsApiClient:
    """Return the process-wide dataset API client, creating it on first use."""
    global _datasets_client
    if _datasets_client is None:
        _datasets_client = DatasetsApiClient()
    return _datasets_client
