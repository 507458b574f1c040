"""Pytest configuration and fixtures."""

import os

import pytest

from tests.fixtures import FakeRenderer, FakeSite, FakeStore

# Set test environment before any app code reads settings
os.environ["ENV"] = "test"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings for every test."""
    from contact_crawler.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
