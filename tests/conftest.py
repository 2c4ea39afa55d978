"""Shared pytest fixtures for kibomigrate tests."""

from tests.fixtures.api import kibo_api  # noqa: F401
from tests.fixtures.common import (  # noqa: F401
    clock,
    fast_limiter,
    limiter,
    reset_kibomigrate_logger,
    settings,
)
