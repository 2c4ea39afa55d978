"""Paging through remote collections.

Two strategies are supported:

ACCUMULATE
    Read-all walk: ``startIndex`` advances by the page size until the number
    of accumulated items reaches the collection's ``totalCount``.
REFETCH
    Destructive walk: always ask for ``startIndex=0``. The caller removes the
    items of each page before the next poll, so every poll returns the next
    unprocessed page. Stops on an empty page or a short page.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

from ..errors import FATAL_ERRORS, PaginationError
from ..logging_config import get_logger
from .limiter import RateLimiter

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 200


@dataclass
class RemoteCollectionPage:
    """One page of a paginated list call."""

    items: List[Dict[str, Any]] = field(default_factory=list)
    total_count: int = 0
    start_index: int = 0
    page_size: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_response(
        cls,
        response: Optional[Dict[str, Any]],
        start_index: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> "RemoteCollectionPage":
        """Build a page from the API's collection envelope."""
        response = response or {}
        return cls(
            items=list(response.get("items") or []),
            total_count=int(response.get("totalCount") or 0),
            start_index=int(response.get("startIndex") or start_index),
            page_size=int(response.get("pageSize") or page_size),
        )

    def __len__(self) -> int:
        return len(self.items)


ListPage = Callable[[int, int], Awaitable[RemoteCollectionPage]]


class PaginationMode(str, Enum):
    """Paging strategies."""

    ACCUMULATE = "accumulate"
    REFETCH = "refetch"


class Paginator:
    """Fetches every page of a remote collection."""

    def __init__(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        limiter: Optional[RateLimiter] = None,
        collection: str = "",
    ):
        """Initialize the paginator.

        Args:
            page_size: Items requested per list call
            limiter: When given, every list call is scheduled through it
            collection: Collection name used in log events and errors
        """
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.page_size = page_size
        self.limiter = limiter
        self.collection = collection
        self.calls = 0

    async def _fetch_page(self, list_page: ListPage, start_index: int) -> RemoteCollectionPage:
        self.calls += 1
        try:
            if self.limiter is not None:
                return await self.limiter.schedule(list_page, start_index, self.page_size)
            return await list_page(start_index, self.page_size)
        except FATAL_ERRORS:
            raise
        except Exception as e:
            logger.error(
                "Error fetching page",
                extra={
                    "collection": self.collection,
                    "start_index": start_index,
                    "error": str(e),
                },
            )
            raise PaginationError(self.collection, start_index, e) from e

    async def pages(
        self, list_page: ListPage, mode: PaginationMode = PaginationMode.ACCUMULATE
    ) -> AsyncIterator[RemoteCollectionPage]:
        """Yield pages as they are fetched.

        In REFETCH mode the consumer must finish processing a page before
        asking for the next one, since the next poll starts again at zero.
        """
        start_index = 0
        fetched = 0

        while True:
            request_index = 0 if mode == PaginationMode.REFETCH else start_index
            page = await self._fetch_page(list_page, request_index)
            fetched += len(page.items)

            logger.info(
                "Fetched page",
                extra={
                    "collection": self.collection,
                    "fetched": len(page.items),
                    "total": fetched,
                    "total_count": page.total_count,
                    "start_index": request_index,
                },
            )

            if not page.items:
                if mode == PaginationMode.REFETCH:
                    logger.info("No more items found", extra={"collection": self.collection})
                return

            yield page

            if mode == PaginationMode.REFETCH:
                if len(page.items) < self.page_size:
                    return
            else:
                start_index += self.page_size
                if fetched >= page.total_count:
                    return

    async def fetch_all(
        self, list_page: ListPage, mode: PaginationMode = PaginationMode.ACCUMULATE
    ) -> List[Dict[str, Any]]:
        """Return every item of the collection."""
        items: List[Dict[str, Any]] = []
        async for page in self.pages(list_page, mode):
            items.extend(page.items)

        logger.info(
            "Fetched all items",
            extra={"collection": self.collection, "total": len(items), "calls": self.calls},
        )
        return items
