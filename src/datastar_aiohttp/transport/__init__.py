"""Transport - host bindings for stream sessions.

Available transports:
    ResponseTransport: aiohttp ``StreamResponse`` (see ``transport.http``).
    BufferTransport: In-memory buffer for tests and embedding.
"""

from datastar_aiohttp.transport.http import (
    DatastarConfig,
    ResponseTransport,
    datastar,
    datastar_stream,
    is_datastar_request,
    read_signals,
    setup_datastar,
)
from datastar_aiohttp.transport.in_process import BufferTransport

__all__ = [
    "BufferTransport",
    "DatastarConfig",
    "ResponseTransport",
    "datastar",
    "datastar_stream",
    "is_datastar_request",
    "read_signals",
    "setup_datastar",
]
