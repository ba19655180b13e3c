"""Pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from datastar_aiohttp.server.session import ServerSentEventGenerator
from datastar_aiohttp.transport.in_process import BufferTransport


@pytest.fixture
def transport() -> BufferTransport:
    """In-memory transport capturing everything written."""
    return BufferTransport()


@pytest.fixture
def sse(transport: BufferTransport) -> ServerSentEventGenerator:
    """Open session writing to the in-memory transport."""
    return ServerSentEventGenerator(transport)
