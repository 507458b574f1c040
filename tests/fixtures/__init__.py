"""Test fixtures: fake site, renderer and cache store."""

from tests.fixtures.site import FakePage, FakeRenderer, FakeSite, FakeStore

__all__ = [
    "FakePage",
    "FakeRenderer",
    "FakeSite",
    "FakeStore",
]
