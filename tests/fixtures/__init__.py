"""Test fixtures package for kibomigrate.

- common: fake clock, limiters, settings and logger cleanup
- api: in-memory remote collections and admin API session

Usage:
    from tests.fixtures.api import FakeCollection, FakeKiboApi
    from tests.fixtures.common import FakeClock
"""
