"""Tests for batch execution components."""

import logging
from unittest.mock import AsyncMock

import pytest

from kibomigrate.bulk.batch import BatchExecutor, BatchOutcome, ItemResult
from kibomigrate.bulk.filters import BASE_PRODUCT_TYPE, SYSTEM_ATTRIBUTES
from kibomigrate.bulk.paginator import PaginationMode, Paginator
from kibomigrate.errors import ApiError, AuthenticationError, ConfigurationError
from tests.fixtures.api import FakeCollection


class TestBatchOutcome:
    """Test cases for BatchOutcome."""

    def test_counts_follow_results(self):
        outcome = BatchOutcome(operation="delete", collection="products")
        outcome.attempted = 3
        outcome.add_result(ItemResult(key="a", label="a", status="success", value=1))
        outcome.add_result(ItemResult(key="b", label="b", status="failed", error_message="x"))
        outcome.add_result(ItemResult(key="c", label="c", status="success", value=3))
        outcome.add_result(ItemResult(key="d", label="d", status="skipped"))

        assert outcome.counts() == {
            "fetched": 0,
            "attempted": 3,
            "succeeded": 2,
            "failed": 1,
            "skipped": 1,
        }
        assert outcome.values() == [1, 3]
        assert outcome.success_rate == pytest.approx(200 / 3)

    def test_invalid_status_rejected(self):
        with pytest.raises(ValueError):
            BatchOutcome().add_result(ItemResult(key="a", label="a", status="unknown"))

    def test_success_rate_without_attempts(self):
        assert BatchOutcome().success_rate == 0.0

    def test_duration_recorded(self):
        outcome = BatchOutcome()
        outcome.mark_started()
        outcome.mark_finished()

        assert outcome.end_time >= outcome.start_time
        assert outcome.duration >= 0


class TestBatchExecutorRun:
    """Test cases for BatchExecutor.run."""

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_batch(self, limiter):
        seen = []

        async def operation(item):
            seen.append(item["id"])
            if item["id"] == "B":
                raise ApiError(500, "DELETE", "/items/B", "Internal error")
            return item["id"].lower()

        executor = BatchExecutor(limiter)
        outcome = await executor.run(
            [{"id": "A"}, {"id": "B"}, {"id": "C"}], operation, operation_name="delete"
        )

        assert seen == ["A", "B", "C"]
        assert (outcome.attempted, outcome.succeeded, outcome.failed, outcome.skipped) == (
            3,
            2,
            1,
            0,
        )
        assert outcome.failures[0].key == "B"
        assert "Internal error" in outcome.failures[0].error_message
        assert outcome.values() == ["a", "c"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("Missing required configuration: CLIENT_ID, SHARED_SECRET"),
            AuthenticationError("Authentication failed with HTTP 401: invalid client"),
        ],
    )
    async def test_fatal_error_aborts_the_batch(self, limiter, error):
        operation = AsyncMock(side_effect=error)
        executor = BatchExecutor(limiter, key_of="name")
        outcome = executor.new_outcome("create", "product_types")

        items = [{"name": "Apparel"}, {"name": "Shoes"}]

        with pytest.raises(type(error)):
            await executor.run(items, operation, outcome=outcome)

        assert operation.await_count == 1
        assert outcome.failed == 0

    @pytest.mark.asyncio
    async def test_every_operation_goes_through_limiter(self, limiter, clock):
        starts = []

        async def operation(item):
            starts.append(clock())

        executor = BatchExecutor(limiter)
        await executor.run([{"id": i} for i in range(3)], operation)

        assert starts == [0.0, 0.5, 1.0]
        assert limiter.completed == 3

    @pytest.mark.asyncio
    async def test_missing_key_is_skipped_not_attempted(self, limiter, caplog):
        operation = AsyncMock()
        executor = BatchExecutor(limiter, key_of="productCode", item_name="product")

        with caplog.at_level(logging.WARNING, logger="kibomigrate"):
            outcome = await executor.run(
                [{"productCode": "P1"}, {"content": {"productName": "No code"}}], operation
            )

        assert operation.await_count == 1
        assert outcome.attempted == 1
        assert outcome.skipped == 1
        assert "Product has no productCode, skipping" in caplog.text

    @pytest.mark.asyncio
    async def test_protected_item_never_reaches_operation(self, limiter):
        operation = AsyncMock()
        executor = BatchExecutor(limiter, key_of="attributeFQN", protected=SYSTEM_ATTRIBUTES)

        outcome = await executor.run(
            [
                {"attributeFQN": "tenant~availability", "attributeCode": "availability"},
                {"attributeFQN": "tenant~color", "attributeCode": "color"},
            ],
            operation,
        )

        operation.assert_awaited_once_with(
            {"attributeFQN": "tenant~color", "attributeCode": "color"}
        )
        assert outcome.skipped == 1
        assert outcome.attempted == 1
        assert outcome.skips[0].error_message == "Skipped system attribute"

    @pytest.mark.asyncio
    async def test_callable_key_and_label(self, limiter):
        executor = BatchExecutor(
            limiter,
            key_of=lambda c: c["content"]["name"],
            label_of=lambda c: f"Category {c['content']['name']}",
        )

        outcome = await executor.run([{"content": {"name": "Men"}}], AsyncMock(return_value={}))

        assert outcome.successes[0].key == "Men"
        assert outcome.successes[0].label == "Category Men"

    @pytest.mark.asyncio
    async def test_runs_accumulate_into_one_outcome(self, limiter):
        executor = BatchExecutor(limiter)
        outcome = executor.new_outcome("create", "categories")

        await executor.run([{"id": 1}], AsyncMock(), outcome=outcome)
        await executor.run([{"id": 2}, {"id": 3}], AsyncMock(), outcome=outcome)

        assert outcome.attempted == 3
        assert outcome.succeeded == 3
        assert outcome.operation == "create"

    @pytest.mark.asyncio
    async def test_fail_counts_failed_but_not_attempted(self, limiter):
        executor = BatchExecutor(limiter)
        outcome = executor.new_outcome("create")

        result = executor.fail({"id": "X"}, "Parent not found: 'Z'", outcome)

        assert result.status == "failed"
        assert outcome.failed == 1
        assert outcome.attempted == 0


class TestBatchExecutorRunPages:
    """Test cases for destructive page-by-page runs."""

    @pytest.mark.asyncio
    async def test_deletes_whole_collection(self, limiter):
        collection = FakeCollection([{"id": i} for i in range(450)])
        paginator = Paginator(page_size=200, limiter=limiter, collection="items")
        executor = BatchExecutor(limiter)

        outcome = await executor.run_pages(
            paginator.pages(collection.list, PaginationMode.REFETCH),
            collection.delete_item,
            operation_name="delete",
            collection="items",
        )

        assert collection.items == []
        assert collection.list_calls == [0, 0, 0]
        assert outcome.fetched == 450
        assert outcome.attempted == 450
        assert outcome.succeeded == 450

    @pytest.mark.asyncio
    async def test_page_without_progress_stops_the_loop(self, limiter, caplog):
        collection = FakeCollection([{"id": i} for i in range(200)])
        collection.failing_keys = set(range(200))
        paginator = Paginator(page_size=200, collection="items")
        executor = BatchExecutor(limiter)

        with caplog.at_level(logging.WARNING, logger="kibomigrate"):
            outcome = await executor.run_pages(
                paginator.pages(collection.list, PaginationMode.REFETCH),
                collection.delete_item,
                operation_name="delete",
            )

        assert collection.list_calls == [0]
        assert outcome.failed == 200
        assert outcome.succeeded == 0
        assert "No items were processed on a full page" in caplog.text

    @pytest.mark.asyncio
    async def test_protected_items_are_recounted_on_each_poll(self, limiter):
        product_types = [{"id": 1, "name": "Base"}] + [
            {"id": i, "name": f"Type {i}"} for i in range(2, 7)
        ]
        collection = FakeCollection(product_types)
        paginator = Paginator(page_size=3)
        executor = BatchExecutor(limiter, label_of="name", protected=BASE_PRODUCT_TYPE)

        outcome = await executor.run_pages(
            paginator.pages(collection.list, PaginationMode.REFETCH),
            collection.delete_item,
            operation_name="delete",
        )

        assert collection.items == [{"id": 1, "name": "Base"}]
        assert collection.list_calls == [0, 0, 0]
        assert outcome.succeeded == 5
        assert outcome.skipped == 3
        assert outcome.attempted == 5

    @pytest.mark.asyncio
    async def test_reorder_is_applied_per_page(self, limiter):
        collection = FakeCollection([{"id": i} for i in range(1, 4)])
        paginator = Paginator(page_size=200)
        executor = BatchExecutor(limiter)

        await executor.run_pages(
            paginator.pages(collection.list, PaginationMode.REFETCH),
            collection.delete_item,
            reorder=lambda items: list(reversed(items)),
        )

        assert collection.deleted == [3, 2, 1]
