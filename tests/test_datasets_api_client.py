import json

import pytest
import requests

from dataset_importer.api.schemas.shared import (
    ColumnMapping,
    CreateDatasetItemRequest,
    CreateDatasetRequest,
    ImportCsvRequest,
    ImportJsonRequest,
    UpdateDatasetRequest,
)
from dataset_importer.integrations.datasets_api import (
    DatasetsApiClient,
    DatasetsApiConnectionError,
    DatasetsApiError,
    DatasetsApiHTTPError,
    ItemListCache,
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        if text is None:
            text = json.dumps(body) if body is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class FakeSession:
    def __init__(self, responses=None, error=None):
        self.headers = {}
        self.responses = list(responses or [])
        self.error = error
        self.calls = []

    def request(self, method, url, json=None, params=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(session, **kwargs):
    return DatasetsApiClient(base_url="http://api.test/v1/", api_key="secret", timeout=5, session=session, **kwargs)


def _items_page(*ids, total=None):
    return {
        "data": [{"id": item_id, "dataset_id": "d1", "input": {"text": item_id}} for item_id in ids],
        "pagination": {"page": 1, "limit": 50, "total": total if total is not None else len(ids), "totalPages": 1, "hasNext": False, "hasPrev": False},
    }


def test_api_key_is_sent_as_bearer_token():
    session = FakeSession()

    _client(session)

    assert session.headers["Authorization"] == "Bearer secret"


def test_import_csv_posts_chunk_payload():
    session = FakeSession([FakeResponse(body={"created": 3, "skipped": 1, "errors": ["row 2: missing input"]})])
    client = _client(session)
    request = ImportCsvRequest(
        content="prompt\nhi",
        column_mapping=ColumnMapping(input_column="prompt"),
        deduplicate=False,
    )

    result = client.import_csv("p1", "d1", request)

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://api.test/v1/projects/p1/datasets/d1/items/import-csv"
    assert call["json"] == {
        "content": "prompt\nhi",
        "column_mapping": {"input_column": "prompt"},
        "has_header": True,
        "deduplicate": False,
    }
    assert call["timeout"] == 5
    assert result.created == 3
    assert result.skipped == 1
    assert result.errors == ["row 2: missing input"]


def test_success_envelope_is_unwrapped():
    session = FakeSession([FakeResponse(body={"success": True, "data": {"created": 2, "skipped": 0}})])

    result = _client(session).import_json("p1", "d1", ImportJsonRequest(items=[{"input": "a"}, {"input": "b"}]))

    assert result.created == 2
    assert session.calls[0]["url"].endswith("/projects/p1/datasets/d1/items/import-json")


def test_http_error_uses_message_from_body():
    session = FakeSession([FakeResponse(413, body={"error": {"message": "Payload too large"}}, reason="Too Large")])

    with pytest.raises(DatasetsApiHTTPError) as exc_info:
        _client(session).get_dataset("p1", "d1")

    assert exc_info.value.status_code == 413
    assert exc_info.value.message == "Payload too large"
    assert "413" in str(exc_info.value)


def test_http_error_with_plain_text_body():
    session = FakeSession([FakeResponse(502, text="Bad gateway", reason="Bad Gateway")])

    with pytest.raises(DatasetsApiHTTPError, match="Bad gateway"):
        _client(session).get_dataset("p1", "d1")


def test_network_failure_is_wrapped():
    session = FakeSession(error=requests.exceptions.ConnectionError("refused"))

    with pytest.raises(DatasetsApiConnectionError):
        _client(session).list_datasets("p1")


def test_invalid_json_is_reported():
    session = FakeSession([FakeResponse(200, text="<html>")])

    with pytest.raises(DatasetsApiError):
        _client(session).get_dataset("p1", "d1")


def test_list_datasets_parses_pagination():
    body = {
        "data": [{"id": "d1", "project_id": "p1", "name": "Golden set"}],
        "pagination": {"page": 2, "limit": 10, "total": 11, "totalPages": 2, "hasNext": False, "hasPrev": True},
    }
    session = FakeSession([FakeResponse(body=body)])

    listing = _client(session).list_datasets("p1", page=2, limit=10)

    assert session.calls[0]["params"] == {"page": 2, "limit": 10}
    assert listing.data[0].name == "Golden set"
    assert listing.pagination.total_pages == 2
    assert listing.pagination.has_prev is True


def test_item_listings_are_cached_until_invalidated():
    session = FakeSession([FakeResponse(body=_items_page("i1")), FakeResponse(body=_items_page("i1", "i2"))])
    client = _client(session)

    first = client.list_items("p1", "d1")
    second = client.list_items("p1", "d1")
    client.invalidate_items("d1")
    third = client.list_items("p1", "d1")

    assert len(session.calls) == 2
    assert [item.id for item in first.data] == ["i1"]
    assert second is first
    assert [item.id for item in third.data] == ["i1", "i2"]


def test_item_cache_entries_expire():
    now = [0.0]
    cache = ItemListCache(ttl_seconds=10, clock=lambda: now[0])
    session = FakeSession([FakeResponse(body=_items_page("i1"))])
    listing = _client(session).list_items("p1", "d1")

    cache.put("d1", 1, 50, listing)
    now[0] = 5
    assert cache.get("d1", 1, 50) is listing
    now[0] = 11
    assert cache.get("d1", 1, 50) is None


def test_delete_item_removes_it_from_cached_listing():
    session = FakeSession([FakeResponse(body=_items_page("i1", "i2")), FakeResponse(204)])
    client = _client(session)
    client.list_items("p1", "d1")

    client.delete_item("p1", "d1", "i1")

    listing = client.list_items("p1", "d1")
    assert [item.id for item in listing.data] == ["i2"]
    assert listing.pagination.total == 1
    assert session.calls[1]["method"] == "DELETE"
    assert session.calls[1]["url"].endswith("/projects/p1/datasets/d1/items/i1")


def test_failed_delete_restores_cached_listing():
    session = FakeSession([
        FakeResponse(body=_items_page("i1", "i2")),
        FakeResponse(500, body={"error": "Internal error"}, reason="Server Error"),
    ])
    client = _client(session)
    client.list_items("p1", "d1")

    with pytest.raises(DatasetsApiHTTPError, match="Internal error"):
        client.delete_item("p1", "d1", "i1")

    listing = client.list_items("p1", "d1")
    assert [item.id for item in listing.data] == ["i1", "i2"]
    assert listing.pagination.total == 2
    assert len(session.calls) == 2


DATASET = {"id": "d1", "project_id": "p1", "name": "Golden set", "description": "Reference answers"}


def test_get_dataset():
    session = FakeSession([FakeResponse(body={"success": True, "data": DATASET})])

    dataset = _client(session).get_dataset("p1", "d1")

    assert session.calls[0]["method"] == "GET"
    assert session.calls[0]["url"] == "http://api.test/v1/projects/p1/datasets/d1"
    assert dataset.name == "Golden set"
    assert dataset.description == "Reference answers"


def test_create_dataset_omits_unset_fields():
    session = FakeSession([FakeResponse(201, body=DATASET)])

    dataset = _client(session).create_dataset("p1", CreateDatasetRequest(name="Golden set"))

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://api.test/v1/projects/p1/datasets"
    assert call["json"] == {"name": "Golden set"}
    assert dataset.id == "d1"


def test_update_dataset_sends_only_changed_fields():
    session = FakeSession([FakeResponse(body={**DATASET, "description": "v2"})])

    dataset = _client(session).update_dataset("p1", "d1", UpdateDatasetRequest(description="v2"))

    call = session.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == "http://api.test/v1/projects/p1/datasets/d1"
    assert call["json"] == {"description": "v2"}
    assert dataset.description == "v2"


def test_delete_dataset_drops_cached_items():
    session = FakeSession([
        FakeResponse(body=_items_page("i1")),
        FakeResponse(204),
        FakeResponse(body=_items_page()),
    ])
    client = _client(session)
    client.list_items("p1", "d1")

    assert client.delete_dataset("p1", "d1") is None
    client.list_items("p1", "d1")

    assert session.calls[1]["method"] == "DELETE"
    assert session.calls[1]["url"] == "http://api.test/v1/projects/p1/datasets/d1"
    assert len(session.calls) == 3


def test_create_item_posts_body_and_drops_cached_items():
    created = {"id": "i2", "dataset_id": "d1", "input": {"text": "hi"}, "expected": {"text": "hello"}}
    session = FakeSession([
        FakeResponse(body=_items_page("i1")),
        FakeResponse(201, body=created),
        FakeResponse(body=_items_page("i1", "i2")),
    ])
    client = _client(session)
    client.list_items("p1", "d1")

    item = client.create_item(
        "p1", "d1", CreateDatasetItemRequest(input={"text": "hi"}, expected={"text": "hello"})
    )
    listing = client.list_items("p1", "d1")

    call = session.calls[1]
    assert call["method"] == "POST"
    assert call["url"] == "http://api.test/v1/projects/p1/datasets/d1/items"
    assert call["json"] == {"input": {"text": "hi"}, "expected": {"text": "hello"}}
    assert item.id == "i2"
    assert [i.id for i in listing.data] == ["i1", "i2"]
    assert len(session.calls) == 3


def test_item_cache_prunes_expired_entries_on_write():
    now = [0.0]
    cache = ItemListCache(ttl_seconds=10, clock=lambda: now[0])
    session = FakeSession([FakeResponse(body=_items_page("i1"))])
    listing = _client(session).list_items("p1", "d1")

    for page in range(1, 6):
        cache.put("d1", page, 50, listing)
    assert len(cache) == 5

    now[0] = 20
    cache.put("d2", 1, 50, listing)

    assert len(cache) == 1
    assert cache.get("d2", 1, 50) is listing
