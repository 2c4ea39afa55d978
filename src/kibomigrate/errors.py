"""Exception hierarchy for kibomigrate.

Errors fall into two tiers. Fatal errors (configuration, authentication,
pagination, dependency cycles) abort the batch and surface at the CLI with a
non-zero exit status. Per-item errors (``ApiError`` raised by a single
create/delete/publish call) are caught by the batch executor, recorded in the
batch outcome and never stop the remaining items.
"""

from typing import Any, Optional


class KiboMigrateError(Exception):
    """Base exception for kibomigrate errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ConfigurationError(KiboMigrateError):
    """A required configuration value is missing or invalid."""

    def __init__(
        self, message: str, missing: Optional[list] = None, cause: Optional[Exception] = None
    ):
        super().__init__(message, cause)
        self.missing = missing or []


class AuthenticationError(KiboMigrateError):
    """The OAuth app ticket could not be obtained."""

    pass


class PaginationError(KiboMigrateError):
    """A list call failed while paging through a remote collection."""

    def __init__(self, collection: str, start_index: int, cause: Optional[Exception] = None):
        message = f"Failed to fetch '{collection}' at startIndex={start_index}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, cause)
        self.collection = collection
        self.start_index = start_index


class DependencyCycleError(ConfigurationError):
    """Items reference each other as parents in a cycle."""

    def __init__(self, cycle: list):
        super().__init__(f"Parent reference cycle detected: {' -> '.join(cycle)}")
        self.cycle = cycle


FATAL_ERRORS = (ConfigurationError, AuthenticationError)


class ApiError(KiboMigrateError):
    """The admin REST API answered with an error status."""

    def __init__(
        self,
        status: int,
        method: str,
        path: str,
        message: str = "",
        error_code: Optional[str] = None,
        body: Any = None,
    ):
        detail = f" ({error_code})" if error_code else ""
        super().__init__(f"HTTP {status} on {method} {path}{detail}: {message}".rstrip(": "))
        self.status = status
        self.method = method
        self.path = path
        self.api_message = message
        self.error_code = error_code
        self.body = body

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


def format_error(error: BaseException) -> str:
    """Render an exception the way log events carry it."""
    message = str(error)
    return message if message else error.__class__.__name__
