"""Sandbox catalog seeding from the JSON templates."""

from typing import Any, Dict, List

from ..bulk import BatchExecutor, BatchOutcome, HierarchyResolver, RateLimiter, topological_order
from ..bulk.resolver import category_name
from ..client import CategoriesApi, KiboSession, ProductAttributesApi, ProductTypesApi
from ..config import Settings
from ..logging_config import get_logger
from .templates import load_template

logger = get_logger(__name__)


async def create_product_attributes(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Create one attribute definition per entry of ``product_attributes.json``."""
    templates = load_template(settings, "product_attributes.json")
    api = ProductAttributesApi(session)
    logger.info("Starting product attributes creation", extra={"total": len(templates)})

    executor = BatchExecutor(
        limiter,
        key_of="attributeCode",
        label_of="adminName",
        context_of=lambda a: {"attribute_code": a.get("attributeCode")},
        item_name="attribute",
    )
    return await executor.run(
        templates, api.create, operation_name="create", collection="product_attributes"
    )


async def create_product_types(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Create one product type per entry of ``product_types.json``."""
    templates = load_template(settings, "product_types.json")
    api = ProductTypesApi(session)
    logger.info("Starting product types creation", extra={"total": len(templates)})

    executor = BatchExecutor(
        limiter,
        key_of="name",
        context_of=lambda t: {"product_type_name": t.get("name")},
        item_name="product type",
    )
    return await executor.run(
        templates, api.create, operation_name="create", collection="product_types"
    )


def _category_context(category: Dict[str, Any]) -> Dict[str, Any]:
    context = {"category_name": category_name(category)}
    if category.get("parentCategoryName"):
        context["parent_category_name"] = category["parentCategoryName"]
    if category.get("parentCategoryId") is not None:
        context["parent_category_id"] = category["parentCategoryId"]
    return context


async def create_categories(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Create the category tree of ``categories.json``.

    Templates name their parent with ``parentCategoryName``; parents are
    created first and children get the assigned ``parentCategoryId``.
    """
    templates = load_template(settings, "categories.json")
    ordered = topological_order(templates)
    api = CategoriesApi(session)
    logger.info("Starting categories creation", extra={"total": len(ordered)})

    executor = BatchExecutor(
        limiter,
        key_of=category_name,
        context_of=_category_context,
        item_name="category",
    )
    resolver = HierarchyResolver()
    return await resolver.run(
        ordered, api.create, executor, operation_name="create", collection="categories"
    )


async def seed_sandbox(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> List[BatchOutcome]:
    """Create attributes, then product types, then categories."""
    outcomes = [
        await create_product_attributes(settings, session, limiter),
        await create_product_types(settings, session, limiter),
        await create_categories(settings, session, limiter),
    ]
    logger.info("Sandbox catalog seeding complete")
    return outcomes
