"""aiohttp binding - Datastar streams and signal reading for aiohttp handlers.

Provides:
- setup_datastar(app, config)      Install stream defaults on an application
- read_signals(request)            Decode the client's signals
- is_datastar_request(request)     Check the ``datastar-request`` header
- datastar(request, callback)      Managed stream, closed automatically
- datastar_stream(request)         Unmanaged stream, closed by the caller

Example:
    >>> async def increment(request: web.Request) -> web.StreamResponse:
    ...     snapshot = await read_signals(request)
    ...     count = snapshot.values.get("count", 0) + 1
    ...
    ...     async def update(sse: ServerSentEventGenerator) -> None:
    ...         await sse.patch_elements(f'<span id="count">{count}</span>')
    ...         await sse.patch_signals({"count": count})
    ...
    ...     outcome = await datastar(request, update)
    ...     return outcome.response
    >>>
    >>> app = web.Application()
    >>> setup_datastar(app)
    >>> app.router.add_get("/api/increment", increment)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aiohttp import web

from datastar_aiohttp.core.constants import SSE_RESPONSE_HEADERS, Defaults
from datastar_aiohttp.core.signals import (
    SignalSnapshot,
    is_datastar_request_headers,
    read_signals_from,
    uses_query_signals,
)
from datastar_aiohttp.server.lifecycle import (
    DISCONNECT_POLL_INTERVAL,
    open_session,
    run_managed,
    start_disconnect_watcher,
)
from datastar_aiohttp.server.protocols import StreamCallback, StreamOptions, StreamOutcome
from datastar_aiohttp.server.session import ServerSentEventGenerator

if TYPE_CHECKING:
    import asyncio

logger = logging.getLogger(__name__)


@dataclass
class DatastarConfig:
    """Stream defaults for an aiohttp application.

    Attributes:
        default_retry_duration: ``retry:`` value sent when a stream opens (ms).
        disconnect_poll_interval: Seconds between client disconnect checks.
        extra_headers: Additional response headers for every stream.
    """

    default_retry_duration: int = Defaults.SSE_RETRY_DURATION
    disconnect_poll_interval: float = DISCONNECT_POLL_INTERVAL
    extra_headers: dict[str, str] = field(default_factory=dict)


DATASTAR_CONFIG_KEY = web.AppKey("datastar_config", DatastarConfig)


def setup_datastar(app: web.Application, config: DatastarConfig | None = None) -> DatastarConfig:
    """Install Datastar stream defaults on ``app``.

    Handlers on applications without this setup use ``DatastarConfig()``.
    """
    config = config or DatastarConfig()
    app[DATASTAR_CONFIG_KEY] = config
    return config


def get_datastar_config(request: web.Request) -> DatastarConfig:
    """The config installed on the request's application, or the defaults."""
    return request.app.get(DATASTAR_CONFIG_KEY) or DatastarConfig()


class ResponseTransport:
    """StreamTransport over an aiohttp ``StreamResponse``."""

    def __init__(self, request: web.Request, response: web.StreamResponse) -> None:
        self.request = request
        self.response = response
        self.watcher: asyncio.Task[None] | None = None
        self._finished = False

    async def write(self, data: bytes) -> None:
        # aiohttp raises ClientConnectionResetError, a ConnectionResetError
        try:
            await self.response.write(data)
        except RuntimeError as e:
            # Raised once aiohttp has sent EOF for the response
            self._finished = True
            raise ConnectionResetError(str(e)) from e

    async def close(self) -> None:
        try:
            await self.response.write_eof()
        finally:
            self._finished = True

    def is_finished(self) -> bool:
        if self._finished:
            return True
        # aiohttp drops the response's request once EOF is sent, e.g. after
        # the handler returned the response
        return self.response.prepared and self.response.task is None

    def is_closing(self) -> bool:
        if self.is_finished():
            return True
        transport = self.request.transport
        return transport is None or transport.is_closing()


async def read_signals(request: web.Request) -> SignalSnapshot:
    """Read Datastar signals from an aiohttp request.

    GET requests read the ``datastar`` query parameter; other methods read
    the JSON body. Never raises for malformed input.
    """
    if uses_query_signals(request.method):
        return read_signals_from(request.method, request.query, None)

    if not request.body_exists:
        return SignalSnapshot.empty()

    try:
        body = await request.read()
    except ConnectionResetError as e:
        return SignalSnapshot.failure(f"Failed to read request body: {e}")

    return read_signals_from(request.method, request.query, body)


def is_datastar_request(request: web.Request) -> bool:
    """Whether the request carries ``datastar-request: true``."""
    return is_datastar_request_headers(request.headers)


async def _open(request: web.Request) -> ServerSentEventGenerator:
    config = get_datastar_config(request)
    response = web.StreamResponse(
        status=200,
        headers={**SSE_RESPONSE_HEADERS, **config.extra_headers},
    )
    transport = ResponseTransport(request, response)

    try:
        await response.prepare(request)
    except ConnectionResetError:
        logger.debug("Client disconnected before stream headers were sent")
        sse = ServerSentEventGenerator(transport)
        sse.mark_disconnected()
        return sse

    return await open_session(transport, config.default_retry_duration)


async def datastar(
    request: web.Request,
    callback: StreamCallback,
    options: StreamOptions | None = None,
) -> StreamOutcome:
    """Open a managed stream, run ``callback`` on it and close it.

    The stream is closed on every exit path unless ``options.keep_alive``
    is set. Return ``outcome.response`` from the handler.

    aiohttp ends the response as soon as the handler returns. To keep a
    stream open for another task, hand the session over inside ``callback``
    and ``await sse.wait_closed()`` before returning. Once the response has
    ended, further operations on the session are no-ops.

    Args:
        request: The incoming request.
        callback: Sync or async callable receiving the session.
        options: Error/abort callbacks and keep-alive flag.

    Returns:
        StreamOutcome for the run, carrying the aiohttp response.
    """
    sse = await _open(request)
    outcome = await run_managed(sse, callback, options)
    outcome.response = sse.response
    return outcome


async def datastar_stream(
    request: web.Request,
    options: StreamOptions | None = None,
) -> ServerSentEventGenerator:
    """Open an unmanaged stream. The caller must ``close()`` it.

    A background watcher reports client disconnects: the session becomes
    closed, ``wait_closed()`` returns and ``options.on_abort`` is called.
    Return ``sse.response`` from the handler, after ``close()`` or after
    ``await sse.wait_closed()`` when another task drives the stream. If the
    handler returns first, aiohttp ends the response; the session then
    closes without an abort and the watcher stops.
    """
    sse = await _open(request)
    transport = sse.transport
    if isinstance(transport, ResponseTransport):
        transport.watcher = start_disconnect_watcher(
            sse,
            options,
            get_datastar_config(request).disconnect_poll_interval,
        )
    return sse
