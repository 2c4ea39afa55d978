"""Rate-limited paginated bulk-operation driver.

This package contains the reusable core shared by every batch: paging
through a remote collection, ordering parents before children, running one
operation per item under a global rate limiter, and reporting the tally.

Modules:
    limiter: Process-wide fixed-rate limiter
    paginator: Accumulating and re-fetch-from-zero paging strategies
    resolver: Parent name to id resolution for create batches
    filters: Protected items that delete batches must skip
    batch: Batch executor and outcome tracking
    reporting: Summary logging and Rich reports
"""

from .batch import BatchExecutor, BatchOutcome, ItemResult, Operation
from .filters import BASE_PRODUCT_TYPE, SYSTEM_ATTRIBUTES, ProtectedItemFilter
from .limiter import RateLimiter
from .paginator import ListPage, PaginationMode, Paginator, RemoteCollectionPage
from .reporting import ReportGenerator
from .resolver import HierarchyResolver, ParentIndex, ResolutionResult, topological_order

__all__ = [
    "RateLimiter",
    "Paginator",
    "PaginationMode",
    "RemoteCollectionPage",
    "HierarchyResolver",
    "ParentIndex",
    "ResolutionResult",
    "topological_order",
    "ProtectedItemFilter",
    "BASE_PRODUCT_TYPE",
    "SYSTEM_ATTRIBUTES",
    "BatchExecutor",
    "BatchOutcome",
    "ItemResult",
    "Operation",
    "ListPage",
    "ReportGenerator",
]
