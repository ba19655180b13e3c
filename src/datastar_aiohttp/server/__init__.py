"""Server - stream sessions and their lifecycle.

The session writes encoded events to a ``StreamTransport``; the lifecycle
functions open sessions, run managed callbacks and watch for disconnects.
"""

from datastar_aiohttp.server.lifecycle import open_session, run_managed, watch_disconnect
from datastar_aiohttp.server.protocols import StreamOptions, StreamOutcome, StreamTransport
from datastar_aiohttp.server.session import ServerSentEventGenerator

__all__ = [
    "ServerSentEventGenerator",
    "StreamOptions",
    "StreamOutcome",
    "StreamTransport",
    "open_session",
    "run_managed",
    "watch_disconnect",
]
