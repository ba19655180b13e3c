"""Server protocols - the transport contract and lifecycle result types.

A ``StreamTransport`` is the outbound half of one response. Transports live
in ``datastar_aiohttp.transport``; the session and lifecycle code only depend
on this protocol.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from datastar_aiohttp.server.session import ServerSentEventGenerator


class StreamTransport(Protocol):
    """Outbound byte stream for a single response."""

    async def write(self, data: bytes) -> None:
        """Write bytes. Raises ConnectionResetError if the peer is gone."""
        ...

    async def close(self) -> None:
        """End the stream. Called at most once per session."""
        ...

    def is_closing(self) -> bool:
        """Whether the underlying connection has been closed by either side."""
        ...

    def is_finished(self) -> bool:
        """Whether the host ended the stream, as opposed to the peer going away."""
        ...


# Operation sequence run by a managed stream; may be sync or async
StreamCallback = Callable[["ServerSentEventGenerator"], "Awaitable[Any] | Any"]


@dataclass
class StreamOptions:
    """Options for opening a stream.

    Attributes:
        on_error: Called with the exception raised by a managed callback.
        on_abort: Called once when the client disconnects.
        keep_alive: Leave a managed stream open after the callback returns.
    """

    on_error: Callable[[Exception], Any] | None = None
    on_abort: Callable[[], Any] | None = None
    keep_alive: bool = False


@dataclass
class StreamOutcome:
    """How a managed stream ended.

    Attributes:
        completed: The callback returned without raising.
        error: The exception raised by the callback, if any.
        aborted: The client disconnected before the session was closed.
        kept_alive: The session was left open because of ``keep_alive``.
        response: Host framework response object to return from the handler.
    """

    completed: bool
    error: Exception | None = None
    aborted: bool = False
    kept_alive: bool = False
    response: Any = None
