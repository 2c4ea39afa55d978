"""Batch execution components for bulk operations.

This module drives one remote operation per item through the shared rate
limiter and records the outcome of every item without ever letting a single
failure stop the batch. Configuration and authentication errors are the
exception: they abort the batch instead of being recorded.

Classes:
    ItemResult: Tagged result of one item (success, failed or skipped)
    BatchOutcome: Aggregated counters and results of one batch run
    BatchExecutor: Runs an operation per item through the rate limiter
"""

import time
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Union,
)

from ..errors import FATAL_ERRORS, format_error
from ..logging_config import get_logger
from .filters import ProtectedItemFilter
from .limiter import RateLimiter
from .paginator import RemoteCollectionPage

logger = get_logger(__name__)

Item = Dict[str, Any]
Operation = Callable[[Item], Awaitable[Any]]
ItemAccessor = Union[str, Callable[[Item], Any]]


@dataclass
class ItemResult:
    """Result of a single item operation."""

    key: Optional[str]
    label: str
    status: str  # 'success', 'failed', 'skipped'
    error_message: Optional[str] = None
    value: Any = None
    processing_time: float = 0.0
    item_index: Optional[int] = None
    timestamp: Optional[float] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = time.time()


@dataclass
class BatchOutcome:
    """Results of a batch run.

    Counters only ever grow while the batch runs; the outcome is final once
    the executor returns it.
    """

    operation: str = ""
    collection: str = ""
    fetched: int = 0
    attempted: int = 0
    successes: List[ItemResult] = field(default_factory=list)
    failures: List[ItemResult] = field(default_factory=list)
    skips: List[ItemResult] = field(default_factory=list)
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    duration: float = 0.0

    @property
    def succeeded(self) -> int:
        return len(self.successes)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def skipped(self) -> int:
        return len(self.skips)

    @property
    def success_rate(self) -> float:
        """Success rate over attempted items, as a percentage."""
        if self.attempted == 0:
            return 0.0
        return (self.succeeded / self.attempted) * 100

    def add_result(self, result: ItemResult):
        """Add a result to the appropriate category."""
        if result.status == "success":
            self.successes.append(result)
        elif result.status == "failed":
            self.failures.append(result)
        elif result.status == "skipped":
            self.skips.append(result)
        else:
            raise ValueError(f"Invalid status: {result.status}")

    def get_all_results(self) -> List[ItemResult]:
        """Get all results ordered by completion time."""
        return sorted(
            self.successes + self.failures + self.skips, key=lambda r: r.timestamp or 0.0
        )

    def values(self) -> List[Any]:
        """Values returned by the successful operations, in order."""
        return [result.value for result in self.successes]

    def counts(self) -> Dict[str, int]:
        return {
            "fetched": self.fetched,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }

    def mark_started(self):
        if self.start_time is None:
            self.start_time = time.time()

    def mark_finished(self):
        self.end_time = time.time()
        if self.start_time is not None:
            self.duration = self.end_time - self.start_time


def _accessor(accessor: Optional[ItemAccessor]) -> Callable[[Item], Any]:
    if accessor is None:
        return lambda item: None
    if callable(accessor):
        return accessor
    return lambda item: item.get(accessor)


class BatchExecutor:
    """Runs one operation per item through the rate limiter."""

    def __init__(
        self,
        limiter: RateLimiter,
        key_of: ItemAccessor = "id",
        label_of: Optional[ItemAccessor] = None,
        protected: Optional[ProtectedItemFilter] = None,
        context_of: Optional[Callable[[Item], Dict[str, Any]]] = None,
        item_name: str = "item",
    ):
        """Initialize the executor.

        Args:
            limiter: Shared rate limiter every operation is scheduled through
            key_of: Field name or callable giving the identifying key of an item
            label_of: Field name or callable giving a human-readable label
            protected: Items matching this filter are skipped, never attempted
            context_of: Callable giving the structured log fields of an item
            item_name: Noun used in log messages ("product", "category"...)
        """
        self.limiter = limiter
        self.key_name = key_of if isinstance(key_of, str) else "key"
        self.key_of = _accessor(key_of)
        self.label_of = _accessor(label_of)
        self.protected = protected
        self.context_of = context_of
        self.item_name = item_name

    def new_outcome(self, operation: str = "", collection: str = "") -> BatchOutcome:
        return BatchOutcome(operation=operation, collection=collection)

    def _context(self, item: Item, key: Any) -> Dict[str, Any]:
        if self.context_of is not None:
            return dict(self.context_of(item))
        return {self.key_name: key}

    def _label(self, item: Item, key: Any) -> str:
        label = self.label_of(item)
        if label:
            return str(label)
        return str(key) if key is not None else "unknown"

    async def run(
        self,
        items: Iterable[Item],
        operation: Operation,
        outcome: Optional[BatchOutcome] = None,
        operation_name: str = "process",
        collection: str = "",
    ) -> BatchOutcome:
        """Run ``operation`` for every item, in order.

        Args:
            items: Items to process
            operation: Async callable invoked with each item
            outcome: Existing outcome to accumulate into
            operation_name: Name of the operation, for logs and reports
            collection: Name of the collection, for logs and reports

        Returns:
            BatchOutcome with the results of every item
        """
        if outcome is None:
            outcome = self.new_outcome(operation_name, collection)
        outcome.mark_started()

        items = list(items)
        for index, item in enumerate(items):
            await self.process_item(item, operation, outcome, index=index, total=len(items))

        outcome.mark_finished()
        return outcome

    async def process_item(
        self,
        item: Item,
        operation: Operation,
        outcome: BatchOutcome,
        index: Optional[int] = None,
        total: Optional[int] = None,
    ) -> ItemResult:
        """Process one item: skip, or schedule the operation and record the result."""
        key = self.key_of(item)
        label = self._label(item, key)
        context = self._context(item, key)
        operation_name = outcome.operation or "process"

        if key is None or key == "":
            result = ItemResult(
                key=None,
                label=label,
                status="skipped",
                error_message=f"{self.item_name.capitalize()} has no {self.key_name}",
                item_index=index,
            )
            logger.warning(
                f"{self.item_name.capitalize()} has no {self.key_name}, skipping",
                extra={**context, "label": label},
            )
            outcome.add_result(result)
            return result

        if self.protected is not None and self.protected.is_protected(item):
            result = ItemResult(
                key=str(key),
                label=label,
                status="skipped",
                error_message=f"Skipped {self.protected.description}",
                item_index=index,
            )
            logger.info(f"Skipping {self.protected.description}", extra=context)
            outcome.add_result(result)
            return result

        outcome.attempted += 1
        if total is not None and index is not None:
            logger.debug(
                f"Processing {self.item_name}",
                extra={**context, "index": index + 1, "total": total},
            )

        timing: Dict[str, float] = {}

        async def timed_operation():
            timing["start"] = time.time()
            return await operation(item)

        try:
            value = await self.limiter.schedule(timed_operation)
        except FATAL_ERRORS as e:
            logger.error(
                f"Aborting {operation_name} batch",
                extra={**context, "error": format_error(e)},
            )
            raise
        except Exception as e:
            error_message = format_error(e)
            result = ItemResult(
                key=str(key),
                label=label,
                status="failed",
                error_message=error_message,
                processing_time=time.time() - timing.get("start", time.time()),
                item_index=index,
            )
            logger.error(
                f"Error during {operation_name} of {self.item_name}",
                extra={**context, "error": error_message},
            )
            outcome.add_result(result)
            return result

        result = ItemResult(
            key=str(key),
            label=label,
            status="success",
            value=value,
            processing_time=time.time() - timing["start"],
            item_index=index,
        )
        logger.info(f"Completed {operation_name} of {self.item_name}", extra=context)
        outcome.add_result(result)
        return result

    def fail(
        self, item: Item, message: str, outcome: BatchOutcome, index: Optional[int] = None
    ) -> ItemResult:
        """Record an item as failed without invoking any operation."""
        key = self.key_of(item)
        result = ItemResult(
            key=str(key) if key is not None else None,
            label=self._label(item, key),
            status="failed",
            error_message=message,
            item_index=index,
        )
        logger.error(message, extra=self._context(item, key))
        outcome.add_result(result)
        return result

    async def run_pages(
        self,
        pages: AsyncIterator[RemoteCollectionPage],
        operation: Operation,
        outcome: Optional[BatchOutcome] = None,
        operation_name: str = "process",
        collection: str = "",
        reorder: Optional[Callable[[List[Item]], List[Item]]] = None,
    ) -> BatchOutcome:
        """Run ``operation`` over every page yielded by a REFETCH paginator.

        Each page is fully processed before the next one is requested. A page
        on which no operation succeeded ends the loop, since polling again
        would return the same items.
        """
        if outcome is None:
            outcome = self.new_outcome(operation_name, collection)
        outcome.mark_started()

        try:
            async for page in pages:
                outcome.fetched += len(page.items)
                items = reorder(list(page.items)) if reorder else page.items
                succeeded_before = outcome.succeeded

                await self.run(items, operation, outcome=outcome)

                logger.info(
                    "Completed page",
                    extra={
                        "collection": collection or outcome.collection,
                        "page_items": len(page.items),
                        "total_succeeded": outcome.succeeded,
                        "total_skipped": outcome.skipped,
                        "total_failed": outcome.failed,
                    },
                )

                if outcome.succeeded == succeeded_before:
                    if len(page.items) >= page.page_size:
                        logger.warning(
                            "No items were processed on a full page, stopping",
                            extra={"collection": collection or outcome.collection},
                        )
                    break
        finally:
            aclose = getattr(pages, "aclose", None)
            if aclose is not None:
                await aclose()

        outcome.mark_finished()
        return outcome
