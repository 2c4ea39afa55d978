"""Destructive catalog batches.

Each batch polls its collection from ``startIndex=0`` and deletes the page
it gets back before polling again, until the collection is empty.
"""

from typing import Any, Dict, List

from ..bulk import (
    BASE_PRODUCT_TYPE,
    SYSTEM_ATTRIBUTES,
    BatchExecutor,
    BatchOutcome,
    PaginationMode,
    Paginator,
    RateLimiter,
)
from ..client import (
    ApiContext,
    CategoriesApi,
    KiboSession,
    ProductAttributesApi,
    ProductsApi,
    ProductTypesApi,
)
from ..config import Settings
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MASTER_CATALOG = "1"


def _product_name(product: Dict[str, Any]) -> Any:
    return (product.get("content") or {}).get("productName")


def _category_name(category: Dict[str, Any]) -> Any:
    return (category.get("content") or {}).get("name")


def master_catalog_context(settings: Settings) -> ApiContext:
    """Context addressing the master catalog itself, with no site or child catalog."""
    return ApiContext(
        tenant_id=settings.tenant_id or None,
        master_catalog=settings.master_catalog or DEFAULT_MASTER_CATALOG,
    )


async def delete_products(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Delete every product of the master catalog."""
    context = master_catalog_context(settings)
    api = ProductsApi(session.with_context(context))
    logger.info(
        "Starting master catalog products deletion",
        extra={"master_catalog": context.master_catalog},
    )

    paginator = Paginator(settings.page_size, limiter, collection="products")
    executor = BatchExecutor(
        limiter,
        key_of="productCode",
        label_of=_product_name,
        context_of=lambda p: {
            "product_code": p.get("productCode"),
            "product_name": _product_name(p),
            "master_catalog": context.master_catalog,
        },
        item_name="product",
    )

    async def delete_product(product: Dict[str, Any]) -> Any:
        return await api.delete(product["productCode"])

    return await executor.run_pages(
        paginator.pages(api.list, PaginationMode.REFETCH),
        delete_product,
        operation_name="delete",
        collection="products",
    )


def children_first(categories: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Reverse a page of categories so subcategories go before their parents."""
    return list(reversed(categories))


async def delete_categories(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Delete every category, cascading to subcategories."""
    api = CategoriesApi(session)
    logger.info("Starting categories deletion")

    paginator = Paginator(settings.page_size, limiter, collection="categories")
    executor = BatchExecutor(
        limiter,
        key_of="id",
        label_of=_category_name,
        context_of=lambda c: {"category_id": c.get("id"), "category_name": _category_name(c)},
        item_name="category",
    )

    async def delete_category(category: Dict[str, Any]) -> Any:
        return await api.delete(str(category["id"]), cascade=True)

    return await executor.run_pages(
        paginator.pages(api.list, PaginationMode.REFETCH),
        delete_category,
        operation_name="delete",
        collection="categories",
        reorder=children_first,
    )


async def delete_product_types(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Delete every product type except the Base type."""
    api = ProductTypesApi(session)
    logger.info("Starting product types deletion")

    paginator = Paginator(settings.page_size, limiter, collection="product_types")
    executor = BatchExecutor(
        limiter,
        key_of="id",
        label_of="name",
        protected=BASE_PRODUCT_TYPE,
        context_of=lambda t: {"product_type_id": t.get("id"), "product_type_name": t.get("name")},
        item_name="product type",
    )

    async def delete_product_type(product_type: Dict[str, Any]) -> Any:
        return await api.delete(str(product_type["id"]))

    return await executor.run_pages(
        paginator.pages(api.list, PaginationMode.REFETCH),
        delete_product_type,
        operation_name="delete",
        collection="product_types",
    )


async def delete_product_attributes(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Delete every product attribute except the built-in system attributes."""
    api = ProductAttributesApi(session)
    logger.info("Starting product attributes deletion")

    paginator = Paginator(settings.page_size, limiter, collection="product_attributes")
    executor = BatchExecutor(
        limiter,
        key_of="attributeFQN",
        label_of="attributeCode",
        protected=SYSTEM_ATTRIBUTES,
        context_of=lambda a: {
            "attribute_fqn": a.get("attributeFQN"),
            "attribute_code": a.get("attributeCode"),
        },
        item_name="attribute",
    )

    async def delete_attribute(attribute: Dict[str, Any]) -> Any:
        return await api.delete(attribute["attributeFQN"])

    return await executor.run_pages(
        paginator.pages(api.list, PaginationMode.REFETCH),
        delete_attribute,
        operation_name="delete",
        collection="product_attributes",
    )


async def delete_catalog(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> List[BatchOutcome]:
    """Delete products, categories, product types and attributes, in that order."""
    outcomes = []
    for batch in (
        delete_products,
        delete_categories,
        delete_product_types,
        delete_product_attributes,
    ):
        outcomes.append(await batch(settings, session, limiter))
    return outcomes
