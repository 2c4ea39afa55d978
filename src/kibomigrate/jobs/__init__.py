"""Concrete migration and seeding batches.

Every job takes the loaded ``Settings``, an open ``KiboSession`` and the
process-wide ``RateLimiter`` and returns its batch outcome(s).
"""

from .catalog_cleanup import (
    delete_catalog,
    delete_categories,
    delete_product_attributes,
    delete_product_types,
    delete_products,
)
from .documents import (
    copy_documents,
    create_document_list,
    create_document_type,
    create_documents,
    view_document,
)
from .sandbox_seed import (
    create_categories,
    create_product_attributes,
    create_product_types,
    seed_sandbox,
)
from .sandbox_setup import create_channels, list_channels

__all__ = [
    "copy_documents",
    "create_document_type",
    "create_document_list",
    "create_documents",
    "view_document",
    "delete_products",
    "delete_categories",
    "delete_product_types",
    "delete_product_attributes",
    "delete_catalog",
    "create_product_attributes",
    "create_product_types",
    "create_categories",
    "seed_sandbox",
    "list_channels",
    "create_channels",
]
