"""datastar-aiohttp - Datastar server-sent events for aiohttp.

The server pushes typed patch events over a long-lived ``text/event-stream``
response; the Datastar browser runtime applies them to the DOM and to its
reactive signal store.

Layers:
    core/       Protocol literals, patch requests, frame encoding, signal decoding
    server/     Stream sessions and their lifecycle
    transport/  Host bindings (aiohttp, in-memory buffer)
    frontends/  CLI

Quick Start:
    >>> from aiohttp import web
    >>> from datastar_aiohttp import datastar, read_signals, setup_datastar
    >>>
    >>> async def counter(request: web.Request) -> web.StreamResponse:
    ...     snapshot = await read_signals(request)
    ...     count = snapshot.values.get("count", 0) + 1
    ...
    ...     async def update(sse):
    ...         await sse.patch_elements(f'<div id="count">{count}</div>')
    ...         await sse.patch_signals({"count": count})
    ...
    ...     return (await datastar(request, update)).response
    >>>
    >>> app = web.Application()
    >>> setup_datastar(app)
    >>> app.router.add_get("/api/counter", counter)

Long-lived streams:
    >>> async def clock(request: web.Request) -> web.StreamResponse:
    ...     sse = await datastar_stream(request)
    ...     try:
    ...         while not sse.is_closed:
    ...             await sse.patch_signals({"now": time.time()})
    ...             await asyncio.sleep(1)
    ...     finally:
    ...         await sse.close()
    ...     return sse.response
"""

from datastar_aiohttp.__version__ import __version__
from datastar_aiohttp.core import (
    DATASTAR_KEY,
    DATASTAR_VERSION,
    DataLine,
    Defaults,
    EventType,
    ExecuteScript,
    Headers,
    PatchElements,
    PatchMode,
    PatchSignals,
    SignalSnapshot,
    encode_event,
)
from datastar_aiohttp.core.helpers import (
    delete_sse,
    escape_html,
    get_sse,
    patch_sse,
    post_sse,
    put_sse,
    safe_json,
    signals_attr,
)
from datastar_aiohttp.server import ServerSentEventGenerator, StreamOptions, StreamOutcome
from datastar_aiohttp.transport import (
    DatastarConfig,
    datastar,
    datastar_stream,
    is_datastar_request,
    read_signals,
    setup_datastar,
)

__all__ = [
    "__version__",
    # aiohttp integration
    "DatastarConfig",
    "datastar",
    "datastar_stream",
    "is_datastar_request",
    "read_signals",
    "setup_datastar",
    # Sessions
    "ServerSentEventGenerator",
    "StreamOptions",
    "StreamOutcome",
    # Protocol
    "DATASTAR_KEY",
    "DATASTAR_VERSION",
    "DataLine",
    "Defaults",
    "EventType",
    "Headers",
    "PatchMode",
    "ExecuteScript",
    "PatchElements",
    "PatchSignals",
    "SignalSnapshot",
    "encode_event",
    # Attribute helpers
    "delete_sse",
    "escape_html",
    "get_sse",
    "patch_sse",
    "post_sse",
    "put_sse",
    "safe_json",
    "signals_attr",
]
