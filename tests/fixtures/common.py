"""Common test fixtures and configuration shared across all kibomigrate tests."""

import logging

import pytest

from kibomigrate.bulk.limiter import RateLimiter
from kibomigrate.config import Settings


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds

    async def sleep(self, seconds: float):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock shared by a limiter and the operations it schedules."""
    return FakeClock()


@pytest.fixture
def limiter(clock):
    """Rate limiter with the default 500 ms spacing on a fake clock."""
    return RateLimiter(min_time=0.5, clock=clock, sleep=clock.sleep)


@pytest.fixture
def fast_limiter():
    """Rate limiter without spacing, for job-level tests."""
    return RateLimiter(min_time=0)


@pytest.fixture
def settings(tmp_path):
    """Settings for a sandbox tenant with credentials filled in."""
    return Settings(
        tenant_id="100",
        site_id="200",
        catalog_id="1",
        master_catalog="1",
        client_id="tenant.app.1.0.0.Release",
        shared_secret="s3cr3t",
        auth_host="home.mozu.com",
        api_env="sandbox.mozu.com",
        dest_tenant_id="300",
        dest_site_id="400",
        target_collection_name="promo-banners@tenant",
        log_directory=str(tmp_path / "logs"),
        min_time_ms=0,
    )


@pytest.fixture(autouse=True)
def reset_kibomigrate_logger():
    """Undo handlers and propagation changes made by setup_logging."""
    yield
    root_logger = logging.getLogger("kibomigrate")
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.propagate = True
    root_logger.setLevel(logging.NOTSET)
