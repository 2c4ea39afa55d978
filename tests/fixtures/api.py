"""In-memory stand-ins for the admin REST API."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import unquote

import pytest

from kibomigrate.bulk.paginator import RemoteCollectionPage
from kibomigrate.errors import ApiError

KEY_FIELDS = ("id", "productCode", "attributeFQN", "code")


class FakeCollection:
    """Remote collection exposing ``list`` and ``delete`` capabilities."""

    def __init__(self, items: List[Dict[str, Any]], key: str = "id"):
        self.items = [dict(item) for item in items]
        self.key = key
        self.list_calls: List[int] = []
        self.deleted: List[Any] = []
        self.failing_keys = set()

    async def list(self, start_index: int, page_size: int) -> RemoteCollectionPage:
        self.list_calls.append(start_index)
        return RemoteCollectionPage(
            items=[dict(item) for item in self.items[start_index : start_index + page_size]],
            total_count=len(self.items),
            start_index=start_index,
            page_size=page_size,
        )

    async def delete(self, key: Any) -> None:
        if key in self.failing_keys:
            raise ApiError(409, "DELETE", f"/items/{key}", "Item is in use")
        for index, item in enumerate(self.items):
            if item.get(self.key) == key:
                del self.items[index]
                self.deleted.append(key)
                return None
        raise ApiError(404, "DELETE", f"/items/{key}", "Item not found")

    async def delete_item(self, item: Dict[str, Any]) -> None:
        return await self.delete(item[self.key])


@dataclass
class RecordedCall:
    method: str
    path: str
    params: Dict[str, Any]
    body: Any
    context: Any
    api_host: str


class FakeApiStore:
    """State shared by a FakeKiboApi and its sibling sessions."""

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.calls: List[RecordedCall] = []
        self.failures: Dict[Any, ApiError] = {}
        self.next_id = 1000

    def add(self, path: str, items: List[Dict[str, Any]]):
        self.collections[path].extend(dict(item) for item in items)

    def fail(self, method: str, path: str, status: int = 400, message: str = "Bad request"):
        self.failures[(method, path)] = ApiError(status, method, path, message)

    def calls_to(self, method: str, path_prefix: str = "") -> List[RecordedCall]:
        return [
            call
            for call in self.calls
            if call.method == method and call.path.startswith(path_prefix)
        ]

    def handle(self, api: "FakeKiboApi", method, path, params, body):
        self.calls.append(RecordedCall(method, path, params, body, api.context, api.api_host))
        if (method, path) in self.failures:
            raise self.failures[(method, path)]

        if method == "GET" and "startIndex" in params:
            items = self.collections[path]
            start = int(params["startIndex"])
            size = int(params.get("pageSize", 200))
            return {
                "items": [dict(item) for item in items[start : start + size]],
                "totalCount": len(items),
                "startIndex": start,
                "pageSize": size,
            }

        if method == "POST":
            created = dict(body)
            if "id" not in created:
                created["id"] = self.next_id
                self.next_id += 1
            self.collections[path].append(created)
            return created

        if method == "PUT":
            return None

        parent, key = path.rsplit("/", 1)
        key = unquote(key)
        for index, item in enumerate(self.collections[parent]):
            if any(str(item.get(field)) == key for field in KEY_FIELDS if field in item):
                if method == "DELETE":
                    del self.collections[parent][index]
                    return None
                return dict(item)
        raise ApiError(404, method, path, "Item not found", error_code="ITEM_NOT_FOUND")


class FakeKiboApi:
    """Stands in for KiboSession, serving requests from a FakeApiStore."""

    def __init__(
        self,
        store: Optional[FakeApiStore] = None,
        context: Any = None,
        api_host: str = "t100.sandbox.mozu.com",
    ):
        self.store = store if store is not None else FakeApiStore()
        self.context = context
        self.api_host = api_host

    def with_context(self, context, api_host: Optional[str] = None) -> "FakeKiboApi":
        return FakeKiboApi(self.store, context, api_host or self.api_host)

    async def request(self, method: str, path: str, params=None, json=None):
        return self.store.handle(self, method, path, dict(params or {}), json)


@pytest.fixture
def kibo_api():
    """In-memory admin API session."""
    return FakeKiboApi()
