"""ServerSentEventGenerator - one live Datastar stream.

Wraps a single ``StreamTransport`` and exposes the patch operations. The
session is either open or closed; closed is terminal. Once closed every
operation is a silent no-op: nothing is written, nothing is buffered and no
error is raised. A client disconnect is an expected event, so a reset
connection during a write closes the session instead of raising. A response
the host has already finished closes the session the same way, without
counting as an abort.

Callers running multi-step sequences should check ``is_closed`` between steps
to stop early; the no-op behaviour only prevents corrupt output.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from datastar_aiohttp.core.constants import Defaults, PatchMode
from datastar_aiohttp.core.encoder import encode_event, format_frame
from datastar_aiohttp.core.events import (
    Event,
    ExecuteScript,
    PatchElements,
    PatchSignals,
    remove_elements,
)
from datastar_aiohttp.core.helpers import format_url
from datastar_aiohttp.server.protocols import StreamTransport

logger = logging.getLogger(__name__)


def _escape_js_string(message: str) -> str:
    """Escape backslashes and double quotes for a double-quoted JS literal."""
    return message.replace("\\", "\\\\").replace('"', '\\"')


class ServerSentEventGenerator:
    """Sends Datastar events over one streamed response.

    Example:
        >>> sse = ServerSentEventGenerator(transport)
        >>> await sse.patch_elements('<div id="count">1</div>')
        >>> await sse.patch_signals({"count": 1})
        >>> await sse.close()
    """

    def __init__(self, transport: StreamTransport) -> None:
        self._transport = transport
        self._closed = False
        self._aborted = False
        self._closed_event = asyncio.Event()

    @property
    def transport(self) -> StreamTransport:
        """The underlying transport."""
        return self._transport

    @property
    def response(self) -> Any:
        """Host framework response object, if the transport has one."""
        return getattr(self._transport, "response", None)

    @property
    def is_closed(self) -> bool:
        """Whether the session is closed, locally, by the host or by the client."""
        if not self._closed and self._transport.is_closing():
            self._mark_closed(aborted=self._peer_gone())
        return self._closed

    @property
    def aborted(self) -> bool:
        """Whether the client went away before the session was closed.

        False when the stream ended because the host finished the response.
        """
        return self._aborted

    async def wait_closed(self) -> None:
        """Wait until the session is closed or the client disconnects."""
        await self._closed_event.wait()

    def _peer_gone(self) -> bool:
        return self._transport.is_closing() and not self._transport.is_finished()

    def _mark_closed(self, aborted: bool = False) -> None:
        if self._closed:
            return
        self._closed = True
        self._aborted = aborted
        self._closed_event.set()

    def mark_disconnected(self) -> None:
        """Record that the transport reported the client has disconnected."""
        if not self._closed:
            logger.debug("Client disconnected, closing stream")
        self._mark_closed(aborted=True)

    async def _write(self, frame: str) -> None:
        if self.is_closed:
            return

        try:
            # One write per frame so frames never interleave
            await self._transport.write(frame.encode("utf-8"))
        except ConnectionResetError:
            if self._transport.is_finished():
                logger.debug("Response already finished, dropping event")
                self._mark_closed(aborted=False)
            else:
                logger.debug("Client disconnected during write, dropping event")
                self._mark_closed(aborted=True)

    # ------------------------------------------------------------------
    # Raw events
    # ------------------------------------------------------------------

    async def send(
        self,
        event_type: str,
        data_lines: Iterable[str],
        event_id: str | None = None,
        retry_duration: int | None = None,
    ) -> None:
        """Send a custom SSE event with pre-built data lines.

        For event names outside the Datastar protocol, e.g. ``connected``.
        """
        await self._write(format_frame(event_type, data_lines, event_id, retry_duration))

    async def send_json(
        self,
        event_type: str,
        data: Any,
        event_id: str | None = None,
        retry_duration: int | None = None,
    ) -> None:
        """Send a custom SSE event with a single JSON data line."""
        data_line = data if isinstance(data, str) else json.dumps(data, separators=(",", ":"))
        await self.send(event_type, [data_line], event_id, retry_duration)

    async def send_event(self, event: Event) -> None:
        """Encode and send a prebuilt patch request."""
        if self.is_closed:
            return
        await self._write(encode_event(event))

    # ------------------------------------------------------------------
    # Patch operations
    # ------------------------------------------------------------------

    async def patch_elements(
        self,
        elements: str = "",
        *,
        selector: str | None = None,
        mode: PatchMode | str = Defaults.PATCH_MODE,
        use_view_transition: bool = Defaults.USE_VIEW_TRANSITION,
        event_id: str | None = None,
        retry_duration: int | None = None,
    ) -> None:
        """Patch HTML elements into the DOM.

        Args:
            elements: HTML fragment(s); may span several lines.
            selector: CSS selector for the target element(s).
            mode: Patch mode, default ``outer``.
            use_view_transition: Use the View Transition API.
            event_id: SSE event id.
            retry_duration: SSE retry duration in milliseconds.

        Raises:
            ValueError: If ``mode`` is not a valid patch mode.
        """
        await self.send_event(
            PatchElements(
                elements=elements,
                selector=selector,
                mode=mode,
                use_view_transition=use_view_transition,
                event_id=event_id,
                retry_duration=retry_duration,
            )
        )

    async def patch_signals(
        self,
        signals: str | Mapping[str, Any],
        *,
        only_if_missing: bool = Defaults.ONLY_IF_MISSING,
        event_id: str | None = None,
        retry_duration: int | None = None,
    ) -> None:
        """Patch the client's signal store.

        A mapping is sent as compact JSON; a string is sent verbatim.
        """
        await self.send_event(
            PatchSignals(
                signals=signals,
                only_if_missing=only_if_missing,
                event_id=event_id,
                retry_duration=retry_duration,
            )
        )

    async def remove_elements(
        self,
        selector: str,
        *,
        event_id: str | None = None,
        retry_duration: int | None = None,
    ) -> None:
        """Remove every element matching ``selector``."""
        await self.send_event(remove_elements(selector, event_id, retry_duration))

    async def execute_script(
        self,
        script: str,
        *,
        auto_remove: bool = Defaults.AUTO_REMOVE,
        attributes: Mapping[str, str] | None = None,
        event_id: str | None = None,
        retry_duration: int | None = None,
    ) -> None:
        """Run JavaScript by appending a ``<script>`` element to the body.

        Args:
            script: Script body.
            auto_remove: Remove the tag once it has run.
            attributes: Extra tag attributes, written verbatim.
            event_id: SSE event id.
            retry_duration: SSE retry duration in milliseconds.
        """
        request = ExecuteScript(
            script=script,
            auto_remove=auto_remove,
            attributes=attributes or {},
            event_id=event_id,
            retry_duration=retry_duration,
        )
        await self.send_event(request.to_patch_elements())

    # ------------------------------------------------------------------
    # Script conveniences
    # ------------------------------------------------------------------

    async def redirect(self, url: str, **script_options: Any) -> None:
        """Navigate the browser to ``url``.

        ``setTimeout`` lets the client finish processing the event first.
        """
        await self.execute_script(f'setTimeout(() => window.location = "{url}")', **script_options)

    async def redirectf(self, url_format: str, *args: Any) -> None:
        """Redirect to ``url_format`` with ``%s``/``%v`` placeholders filled in."""
        await self.redirect(format_url(url_format, *args))

    async def replace_url(self, url: str, **script_options: Any) -> None:
        """Replace the current URL without navigating."""
        await self.execute_script(f"history.replaceState({{}}, '', \"{url}\")", **script_options)

    async def replace_url_querystring(self, querystring: str, **script_options: Any) -> None:
        """Replace the query string (including ``?``) without navigating."""
        await self.execute_script(
            f"history.replaceState({{}}, '', window.location.pathname + \"{querystring}\")",
            **script_options,
        )

    async def console_log(self, message: str, **script_options: Any) -> None:
        await self.execute_script(
            f'console.log("{_escape_js_string(message)}")', **script_options
        )

    async def console_error(self, message: str, **script_options: Any) -> None:
        await self.execute_script(
            f'console.error("{_escape_js_string(message)}")', **script_options
        )

    async def dispatch_custom_event(
        self,
        event_name: str,
        detail: Any = None,
        *,
        selector: str = "document",
        bubbles: bool = True,
        cancelable: bool = True,
        composed: bool = True,
        **script_options: Any,
    ) -> None:
        """Dispatch a ``CustomEvent`` on ``document`` or the first match of ``selector``."""
        event_options = json.dumps(
            {
                "detail": {} if detail is None else detail,
                "bubbles": bubbles,
                "cancelable": cancelable,
                "composed": composed,
            },
            separators=(",", ":"),
        )
        event = f'new CustomEvent("{event_name}", {event_options})'

        if selector == "document":
            script = f"document.dispatchEvent({event})"
        else:
            script = f'document.querySelector("{selector}")?.dispatchEvent({event})'

        await self.execute_script(script, **script_options)

    async def prefetch(self, urls: Sequence[str], **script_options: Any) -> None:
        """Prefetch ``urls`` with the Speculation Rules API."""
        rules = json.dumps(
            {"prefetch": [{"source": "list", "urls": list(urls)}]},
            separators=(",", ":"),
        )
        script = (
            "const script = document.createElement('script'); "
            "script.type = 'speculationrules'; "
            f"script.textContent = '{rules}'; "
            "document.head.appendChild(script);"
        )
        await self.execute_script(script, **script_options)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """End the stream. Closing twice is a no-op."""
        if self._closed:
            return

        finished = self._transport.is_finished()
        self._mark_closed(aborted=self._peer_gone())
        if finished:
            return

        try:
            await self._transport.close()
        except ConnectionResetError:
            logger.debug("Client already gone while closing stream")
