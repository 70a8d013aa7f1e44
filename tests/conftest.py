"""Shared fixtures for the scheduling engine tests."""

import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"
