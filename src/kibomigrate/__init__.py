"""kibomigrate - Rate-limited migration and seeding batches for the Kibo Commerce admin API."""

from .bulk import (
    BatchExecutor,
    BatchOutcome,
    HierarchyResolver,
    PaginationMode,
    Paginator,
    RateLimiter,
    RemoteCollectionPage,
)
from .config import Settings, load_settings
from .errors import (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    DependencyCycleError,
    KiboMigrateError,
    PaginationError,
)


# Version will be set by build system
def _get_version():
    """Get the version from package metadata or pyproject.toml."""
    try:
        from importlib.metadata import PackageNotFoundError, version

        return version("kibomigrate")
    except PackageNotFoundError:
        # Fallback for development checkouts that are not installed
        import re
        from pathlib import Path

        pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
        if not pyproject_path.exists():
            raise RuntimeError(f"Could not find pyproject.toml at {pyproject_path}")

        with open(pyproject_path, "r", encoding="utf-8") as f:
            content = f.read()
            version_match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
            if not version_match:
                raise RuntimeError("Could not find version in pyproject.toml")
            return version_match.group(1)


__version__ = _get_version()

__all__ = [
    "__version__",
    # Bulk driver
    "RateLimiter",
    "Paginator",
    "PaginationMode",
    "RemoteCollectionPage",
    "HierarchyResolver",
    "BatchExecutor",
    "BatchOutcome",
    # Configuration
    "Settings",
    "load_settings",
    # Errors
    "KiboMigrateError",
    "ConfigurationError",
    "AuthenticationError",
    "PaginationError",
    "DependencyCycleError",
    "ApiError",
]
