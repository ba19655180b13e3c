"""Stream lifecycle - managed and unmanaged session handling.

Managed streams run a caller-supplied operation sequence and always close the
session afterwards (normal return, raised error, or client disconnect) unless
``keep_alive`` is set. Unmanaged streams are handed to the caller, who closes
them; a watcher task reports client disconnects through the session's
``wait_closed()`` notification and the optional ``on_abort`` callback.

These functions are transport-agnostic; ``datastar_aiohttp.transport.http``
wires them to aiohttp requests.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from datastar_aiohttp.core.constants import Defaults
from datastar_aiohttp.core.encoder import encode_retry_preamble
from datastar_aiohttp.server.protocols import (
    StreamCallback,
    StreamOptions,
    StreamOutcome,
    StreamTransport,
)
from datastar_aiohttp.server.session import ServerSentEventGenerator

logger = logging.getLogger(__name__)

DISCONNECT_POLL_INTERVAL = 0.1  # seconds


async def open_session(
    transport: StreamTransport,
    retry_duration: int = Defaults.SSE_RETRY_DURATION,
) -> ServerSentEventGenerator:
    """Create a session and write the ``retry:`` preamble.

    The transport must already have sent the event-stream status and headers.
    """
    sse = ServerSentEventGenerator(transport)
    try:
        await transport.write(encode_retry_preamble(retry_duration).encode("utf-8"))
    except ConnectionResetError:
        logger.debug("Client disconnected before stream preamble")
        sse.mark_disconnected()
    return sse


async def _invoke(callback: Any, *args: Any) -> Any:
    """Call a sync or async callback and await its result if needed."""
    result = callback(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def _notify_abort(options: StreamOptions) -> None:
    if options.on_abort is None:
        return
    try:
        await _invoke(options.on_abort)
    except Exception:
        logger.exception("on_abort callback failed")


async def run_managed(
    sse: ServerSentEventGenerator,
    callback: StreamCallback,
    options: StreamOptions | None = None,
) -> StreamOutcome:
    """Run ``callback`` against ``sse`` and close the session afterwards.

    Exceptions raised by the callback are logged, passed to ``on_error`` and
    recorded in the outcome; they never leave the session open. Task
    cancellation closes the session and propagates.

    Args:
        sse: An open session.
        callback: Sync or async callable receiving the session.
        options: Stream options; defaults apply when None.

    Returns:
        StreamOutcome describing how the run ended.
    """
    options = options or StreamOptions()
    outcome = StreamOutcome(completed=False)

    try:
        await _invoke(callback, sse)
        outcome.completed = True
    except asyncio.CancelledError:
        logger.debug("Managed stream cancelled, closing")
        await sse.close()
        raise
    except Exception as e:
        logger.exception("Error in managed stream callback")
        outcome.error = e
        if options.on_error is not None:
            try:
                await _invoke(options.on_error, e)
            except Exception:
                logger.exception("on_error callback failed")
    finally:
        aborted = sse.is_closed and sse.aborted
        if aborted:
            await _notify_abort(options)

        if options.keep_alive and not sse.is_closed:
            outcome.kept_alive = True
        else:
            await sse.close()

        outcome.aborted = sse.aborted

    return outcome


async def watch_disconnect(
    sse: ServerSentEventGenerator,
    options: StreamOptions | None = None,
    poll_interval: float = DISCONNECT_POLL_INTERVAL,
) -> None:
    """Poll the transport until the session closes.

    When the client disconnects first, the session is marked closed and
    ``on_abort`` is called. A local ``close()`` ends the watch silently.
    """
    options = options or StreamOptions()

    while not sse.is_closed:
        try:
            await asyncio.wait_for(sse.wait_closed(), timeout=poll_interval)
        except TimeoutError:
            continue

    if sse.aborted:
        await _notify_abort(options)


def start_disconnect_watcher(
    sse: ServerSentEventGenerator,
    options: StreamOptions | None = None,
    poll_interval: float = DISCONNECT_POLL_INTERVAL,
) -> asyncio.Task[None]:
    """Run ``watch_disconnect`` in the background for an unmanaged session."""
    return asyncio.create_task(
        watch_disconnect(sse, options, poll_interval),
        name="datastar-disconnect-watcher",
    )
