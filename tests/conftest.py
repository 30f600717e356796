"""Shared fixtures."""

import pytest

from fakes import FakeBackend


@pytest.fixture
def default_backend() -> FakeBackend:
    return FakeBackend("local-small")


@pytest.fixture
def power_backend() -> FakeBackend:
    return FakeBackend("cloud-large")
