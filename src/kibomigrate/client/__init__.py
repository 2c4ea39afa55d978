"""Client for the Kibo Commerce admin REST API.

This package provides the authenticated session and the per-resource
capability classes used by the batches:
- OAuth app ticket handling and tenant/site/catalog scoping
- Paginated list calls returning RemoteCollectionPage
- Create, delete and publish calls
"""

from .resources import (
    CategoriesApi,
    ChannelsApi,
    DocumentListsApi,
    DocumentPublishingApi,
    DocumentsApi,
    DocumentTypesApi,
    ProductAttributesApi,
    ProductsApi,
    ProductTypesApi,
)
from .session import ApiContext, KiboSession, TokenCache

__all__ = [
    "ApiContext",
    "KiboSession",
    "TokenCache",
    "ProductsApi",
    "CategoriesApi",
    "ProductTypesApi",
    "ProductAttributesApi",
    "DocumentsApi",
    "DocumentTypesApi",
    "DocumentListsApi",
    "DocumentPublishingApi",
    "ChannelsApi",
]
