"""Admin REST API resources.

Each class exposes the capabilities one batch needs from a collection
(``list``, ``get``, ``create``, ``delete``, ``publish``). List calls return a
``RemoteCollectionPage`` so they plug straight into the paginator.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..bulk.paginator import DEFAULT_PAGE_SIZE, RemoteCollectionPage
from .session import KiboSession

Item = Dict[str, Any]

CATALOG_ADMIN = "/api/commerce/catalog/admin"
CONTENT = "/api/content"


def _segment(value: Any) -> str:
    return quote(str(value), safe="@~")


class Resource:
    """Base class binding a collection path to a session."""

    path = ""
    collection = ""

    def __init__(self, session: KiboSession):
        self.session = session

    async def _list(
        self, path: str, start_index: int, page_size: int, **params: Any
    ) -> RemoteCollectionPage:
        response = await self.session.request(
            "GET", path, params={"startIndex": start_index, "pageSize": page_size, **params}
        )
        return RemoteCollectionPage.from_response(response, start_index, page_size)

    async def list(
        self, start_index: int = 0, page_size: int = DEFAULT_PAGE_SIZE
    ) -> RemoteCollectionPage:
        return await self._list(self.path, start_index, page_size)

    async def create(self, item: Item) -> Item:
        return await self.session.request("POST", self.path, json=item)

    async def delete(self, key: str) -> Any:
        return await self.session.request("DELETE", f"{self.path}/{_segment(key)}")


class ProductsApi(Resource):
    """Products of the master catalog, keyed by product code."""

    path = f"{CATALOG_ADMIN}/products"
    collection = "products"


class CategoriesApi(Resource):
    path = f"{CATALOG_ADMIN}/categories"
    collection = "categories"

    async def delete(self, key: str, cascade: bool = True) -> Any:
        """Delete a category by id; ``cascade`` also removes its subcategories."""
        return await self.session.request(
            "DELETE", f"{self.path}/{_segment(key)}", params={"cascadeDelete": cascade}
        )


class ProductTypesApi(Resource):
    path = f"{CATALOG_ADMIN}/attributedefinition/producttypes"
    collection = "product_types"


class ProductAttributesApi(Resource):
    """Attribute definitions, keyed by attribute FQN."""

    path = f"{CATALOG_ADMIN}/attributedefinition/attributes"
    collection = "product_attributes"


class DocumentsApi(Resource):
    """Documents of content document lists."""

    collection = "documents"

    def _documents_path(self, list_name: str) -> str:
        return f"{CONTENT}/documentlists/{_segment(list_name)}/documents"

    async def list(
        self,
        start_index: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
        list_name: Optional[str] = None,
    ) -> RemoteCollectionPage:
        if not list_name:
            raise ValueError("list_name is required to list documents")
        return await self._list(self._documents_path(list_name), start_index, page_size)

    async def get(self, list_name: str, document_id: str) -> Item:
        return await self.session.request(
            "GET", f"{self._documents_path(list_name)}/{_segment(document_id)}"
        )

    async def create(self, item: Item, list_name: Optional[str] = None) -> Item:
        """Create a document in ``list_name``, defaulting to the document's listFQN."""
        list_name = list_name or item.get("listFQN")
        if not list_name:
            raise ValueError("Document has no listFQN and no list name was given")
        return await self.session.request("POST", self._documents_path(list_name), json=item)


class DocumentTypesApi(Resource):
    path = f"{CONTENT}/documenttypes"
    collection = "document_types"


class DocumentListsApi(Resource):
    path = f"{CONTENT}/documentlists"
    collection = "document_lists"


class DocumentPublishingApi(Resource):
    path = f"{CONTENT}/documentpublishing/active"
    collection = "document_publishing"

    async def publish(self, keys: List[str]) -> Any:
        """Publish the pending drafts of the given document ids."""
        return await self.session.request("PUT", self.path, json=list(keys))


class ChannelsApi(Resource):
    path = "/api/commerce/channels"
    collection = "channels"
