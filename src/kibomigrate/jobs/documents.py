"""Content document batches.

Copy a document list's documents from one tenant/site to another, create the
sample document type, list and documents from the JSON templates, and
inspect a single document.
"""

import json
from typing import Any, Dict, List, Optional

from ..bulk import BatchExecutor, BatchOutcome, Paginator, RateLimiter
from ..client import (
    ApiContext,
    DocumentListsApi,
    DocumentPublishingApi,
    DocumentsApi,
    DocumentTypesApi,
    KiboSession,
)
from ..config import Settings
from ..errors import ConfigurationError
from ..logging_config import get_logger
from .templates import load_template

logger = get_logger(__name__)

# Fields carried over when a document is copied to another tenant
COPIED_DOCUMENT_FIELDS = ("name", "documentTypeFQN", "listFQN", "properties", "publishState")


def _fqn(item: Dict[str, Any], field: str) -> Optional[str]:
    if item.get(field):
        return item[field]
    if item.get("name") and item.get("namespace"):
        return f"{item['name']}@{item['namespace']}"
    return None


def _document_key(document: Dict[str, Any]) -> str:
    return str(document.get("id") or document.get("name") or "unnamed document")


def copy_payload(document: Dict[str, Any]) -> Dict[str, Any]:
    """Subset of a source document sent to the destination create call."""
    return {field: document.get(field) for field in COPIED_DOCUMENT_FIELDS}


async def copy_documents(
    settings: Settings,
    session: KiboSession,
    limiter: RateLimiter,
    list_name: Optional[str] = None,
) -> BatchOutcome:
    """Copy every document of a list from the source to the destination tenant.

    Args:
        settings: Source settings; DEST_TENANT_ID/DEST_SITE_ID name the destination
        session: Session scoped to the source tenant/site
        limiter: Shared rate limiter
        list_name: Document list name, defaults to DOCUMENT_LIST_NAME

    Returns:
        Outcome of the create calls against the destination
    """
    list_name = list_name or settings.target_collection_name
    if not list_name:
        raise ConfigurationError(
            "Missing required configuration: DOCUMENT_LIST_NAME",
            missing=["target_collection_name"],
        )
    destination_settings = settings.for_destination()

    source_api = DocumentsApi(session)
    destination_api = DocumentsApi(
        session.with_context(
            ApiContext.from_settings(destination_settings),
            api_host=destination_settings.resolved_api_host,
        )
    )

    logger.info("Fetching documents from source", extra={"list_name": list_name})
    paginator = Paginator(settings.page_size, limiter, collection=f"documents:{list_name}")
    documents = await paginator.fetch_all(
        lambda start_index, page_size: source_api.list(start_index, page_size, list_name=list_name)
    )

    executor = BatchExecutor(
        limiter,
        key_of=_document_key,
        label_of="name",
        context_of=lambda d: {
            "list_name": list_name,
            "document_id": d.get("id"),
            "document_name": d.get("name"),
        },
        item_name="document",
    )
    outcome = executor.new_outcome("copy", "documents")
    outcome.fetched = len(documents)

    if not documents:
        logger.info("No documents found to copy", extra={"list_name": list_name})
        outcome.mark_started()
        outcome.mark_finished()
        return outcome

    logger.info(
        "Copying documents to destination",
        extra={
            "list_name": list_name,
            "total": len(documents),
            "dest_tenant_id": destination_settings.tenant_id,
            "dest_site_id": destination_settings.site_id,
        },
    )

    async def copy_document(document: Dict[str, Any]) -> Dict[str, Any]:
        return await destination_api.create(copy_payload(document), list_name=list_name)

    return await executor.run(documents, copy_document, outcome=outcome)


async def create_document_type(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Create the document type described by ``document_type.json``."""
    template = load_template(settings, "document_type.json", expect=dict)
    api = DocumentTypesApi(session)
    executor = BatchExecutor(
        limiter,
        key_of=lambda t: _fqn(t, "documentTypeFQN"),
        label_of="name",
        context_of=lambda t: {
            "document_type_fqn": _fqn(t, "documentTypeFQN"),
            "document_type_name": t.get("name"),
        },
        item_name="document type",
    )
    return await executor.run(
        [template], api.create, operation_name="create", collection="document_types"
    )


async def create_document_list(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Create the document list described by ``document_list.json``.

    The list is scoped to the configured site.
    """
    settings.require("site_id")
    try:
        scope_id = int(settings.site_id)
    except ValueError as e:
        raise ConfigurationError(f"SITE_ID must be numeric: {settings.site_id!r}", cause=e)

    template = load_template(settings, "document_list.json", expect=dict)
    document_list = {**template, "scopeId": scope_id}

    api = DocumentListsApi(session)
    executor = BatchExecutor(
        limiter,
        key_of=lambda t: _fqn(t, "listFQN"),
        label_of="name",
        context_of=lambda t: {"list_fqn": _fqn(t, "listFQN"), "scope_id": t.get("scopeId")},
        item_name="document list",
    )
    return await executor.run(
        [document_list], api.create, operation_name="create", collection="document_lists"
    )


async def create_documents(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> List[BatchOutcome]:
    """Create every document of ``documents.json`` and publish each one created.

    Returns:
        The create outcome and the publish outcome, in that order
    """
    templates = load_template(settings, "documents.json")
    documents_api = DocumentsApi(session)
    publishing_api = DocumentPublishingApi(session)

    create_executor = BatchExecutor(
        limiter,
        key_of="name",
        context_of=lambda d: {"document_name": d.get("name"), "list_fqn": d.get("listFQN")},
        item_name="document",
    )
    publish_executor = BatchExecutor(
        limiter,
        key_of="id",
        label_of="name",
        context_of=lambda d: {"document_id": d.get("id"), "list_fqn": d.get("listFQN")},
        item_name="document",
    )
    create_outcome = create_executor.new_outcome("create", "documents")
    publish_outcome = publish_executor.new_outcome("publish", "documents")
    create_outcome.mark_started()
    publish_outcome.mark_started()

    async def publish(document: Dict[str, Any]) -> Any:
        return await publishing_api.publish([document["id"]])

    for index, template in enumerate(templates):
        result = await create_executor.process_item(
            template, documents_api.create, create_outcome, index, len(templates)
        )
        if result.status != "success":
            continue

        created = result.value if isinstance(result.value, dict) else {}
        if not created.get("id"):
            logger.warning(
                "Created document has no id, not publishing",
                extra={"document_name": template.get("name")},
            )
            continue

        await publish_executor.process_item(
            {**created, "listFQN": created.get("listFQN") or template.get("listFQN")},
            publish,
            publish_outcome,
            index,
            len(templates),
        )

    create_outcome.mark_finished()
    publish_outcome.mark_finished()
    return [create_outcome, publish_outcome]


def decode_messages(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Decode the JSON-encoded entries of a document's ``messages`` property."""
    properties = document.get("properties") or {}
    messages = properties.get("messages") or []
    if isinstance(messages, str):
        messages = [messages]

    decoded = []
    for index, raw in enumerate(messages, 1):
        if isinstance(raw, dict):
            decoded.append(raw)
            continue
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(
                "Message is not valid JSON", extra={"index": index, "error": str(e)}
            )
            continue
        if isinstance(value, dict):
            decoded.append(value)
        else:
            decoded.append({"text": value})
    return decoded


async def view_document(
    settings: Settings,
    session: KiboSession,
    limiter: RateLimiter,
    list_name: str,
    document_id: str,
) -> Dict[str, Any]:
    """Fetch one document and log it along with its decoded messages."""
    logger.info("Viewing document", extra={"document_id": document_id, "list_name": list_name})
    api = DocumentsApi(session)
    document = await limiter.schedule(api.get, list_name, document_id)
    document = document or {}

    logger.info("Document retrieved successfully", extra={"document": document})
    for index, message in enumerate(decode_messages(document), 1):
        logger.info(
            "Document message",
            extra={
                "index": index,
                "text": message.get("text"),
                "redirect_url": message.get("redirectUrl"),
            },
        )
    return document
