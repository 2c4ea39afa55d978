"""One-off sandbox setup: sales channels."""

from typing import Any, Dict, List, Union

from ..bulk import BatchExecutor, BatchOutcome, Paginator, RateLimiter
from ..client import ChannelsApi, KiboSession
from ..config import Settings
from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CHANNEL_CODES = ("online", "phone", "crm")
DEFAULT_COUNTRY_CODE = "US"


def _tenant(tenant_id: str) -> Union[int, str]:
    return int(tenant_id) if tenant_id.isdigit() else tenant_id


def default_channels(settings: Settings) -> List[Dict[str, Any]]:
    """Channel payloads for the default online/phone/crm channels."""
    return [
        {
            "tenantId": _tenant(settings.tenant_id),
            "code": code,
            "name": code,
            "countryCode": DEFAULT_COUNTRY_CODE,
            "siteIds": [],
        }
        for code in DEFAULT_CHANNEL_CODES
    ]


async def list_channels(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> List[Dict[str, Any]]:
    """Fetch and log every channel of the tenant."""
    api = ChannelsApi(session)
    paginator = Paginator(settings.page_size, limiter, collection="channels")
    channels = await paginator.fetch_all(api.list)
    for channel in channels:
        logger.info(
            "Channel",
            extra={
                "code": channel.get("code"),
                "channel_name": channel.get("name"),
                "country_code": channel.get("countryCode"),
                "site_ids": channel.get("siteIds"),
            },
        )
    return channels


async def create_channels(
    settings: Settings, session: KiboSession, limiter: RateLimiter
) -> BatchOutcome:
    """Create the default channels for the configured tenant."""
    settings.require("tenant_id")
    api = ChannelsApi(session)
    executor = BatchExecutor(
        limiter,
        key_of="code",
        context_of=lambda c: {"channel_code": c.get("code"), "tenant_id": c.get("tenantId")},
        item_name="channel",
    )
    return await executor.run(
        default_channels(settings), api.create, operation_name="create", collection="channels"
    )
