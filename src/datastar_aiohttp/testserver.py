"""SDK conformance test server.

Exposes ``POST /test`` for the cross-SDK Datastar test suite. The request body
(read as signals) holds an ``events`` array; each event is replayed through a
managed stream and the resulting SSE output is compared against the reference
output by the suite.

Event payloads::

    {"type": "patchElements", "elements": "...", "selector": "#id", "mode": "inner",
     "useViewTransition": true, "eventId": "1", "retryDuration": 2000}
    {"type": "patchSignals", "signals": {...}, "signals-raw": "...", "onlyIfMissing": true}
    {"type": "executeScript", "script": "...", "autoRemove": false,
     "attributes": {"type": "module"}}

Unknown event types are logged and skipped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from aiohttp import web

from datastar_aiohttp.core.constants import Defaults
from datastar_aiohttp.core.events import ExecuteScript, PatchElements, PatchSignals
from datastar_aiohttp.server.session import ServerSentEventGenerator
from datastar_aiohttp.transport.http import (
    DatastarConfig,
    datastar,
    read_signals,
    setup_datastar,
)

logger = logging.getLogger(__name__)

DEFAULT_PORT = 7331


@dataclass(frozen=True)
class UnknownEvent:
    """An event payload whose ``type`` is not recognised."""

    type: str | None
    payload: Mapping[str, Any] = field(default_factory=dict)


ReplayEvent = PatchElements | PatchSignals | ExecuteScript | UnknownEvent


def _retry_duration(payload: Mapping[str, Any]) -> int | None:
    value = payload.get("retryDuration")
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None


def _event_id(payload: Mapping[str, Any]) -> str | None:
    return payload.get("eventId") or None


def parse_test_event(payload: Mapping[str, Any]) -> ReplayEvent:
    """Turn one externally supplied event payload into a request.

    Raises:
        ValueError: If a patchElements payload names an unknown mode.
    """
    event_type = payload.get("type")

    if event_type == "patchElements":
        return PatchElements(
            elements=payload.get("elements") or "",
            selector=payload.get("selector") or None,
            mode=payload.get("mode") or Defaults.PATCH_MODE,
            use_view_transition=bool(payload.get("useViewTransition", False)),
            event_id=_event_id(payload),
            retry_duration=_retry_duration(payload),
        )

    if event_type == "patchSignals":
        # signals-raw carries pre-formatted (possibly multi-line) JSON
        signals: str | Mapping[str, Any]
        if payload.get("signals-raw"):
            signals = payload["signals-raw"]
        else:
            signals = payload.get("signals") or {}
        return PatchSignals(
            signals=signals,
            only_if_missing=bool(payload.get("onlyIfMissing", False)),
            event_id=_event_id(payload),
            retry_duration=_retry_duration(payload),
        )

    if event_type == "executeScript":
        script = payload.get("script") or ""
        return ExecuteScript(
            # The suite escapes newlines in scripts
            script=script.replace("\\n", "\n"),
            auto_remove=bool(payload.get("autoRemove", Defaults.AUTO_REMOVE)),
            attributes=payload.get("attributes") or {},
            event_id=_event_id(payload),
            retry_duration=_retry_duration(payload),
        )

    return UnknownEvent(type=event_type, payload=payload)


async def replay_events(sse: ServerSentEventGenerator, payloads: list[Any]) -> int:
    """Send each event payload in order, stopping early if the client leaves.

    Payloads with an unknown type or an invalid field value are skipped with
    a warning.

    Returns:
        Number of events sent.
    """
    sent = 0
    for payload in payloads:
        if sse.is_closed:
            logger.warning("SSE connection closed, stopping event processing")
            break

        try:
            event = (
                parse_test_event(payload)
                if isinstance(payload, Mapping)
                else UnknownEvent(type=None)
            )
        except ValueError as e:
            logger.warning("Skipping invalid event: %s", e)
            continue

        if isinstance(event, UnknownEvent):
            logger.warning("Unknown event type: %s", event.type)
            continue

        if isinstance(event, ExecuteScript):
            await sse.send_event(event.to_patch_elements())
        else:
            await sse.send_event(event)
        sent += 1

    return sent


@dataclass
class ConformanceServerConfig:
    """Configuration for the conformance test server."""

    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    default_retry_duration: int = Defaults.SSE_RETRY_DURATION


@dataclass
class ConformanceServer:
    """aiohttp server running the Datastar SDK test endpoint.

    Example:
        >>> server = ConformanceServer(config=ConformanceServerConfig(port=7331))
        >>> await server.serve()
    """

    config: ConformanceServerConfig = field(default_factory=ConformanceServerConfig)
    _app: web.Application | None = None
    _runner: web.AppRunner | None = None
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)

    def build_app(self) -> web.Application:
        """Create the aiohttp application with the test routes."""
        app = web.Application()
        setup_datastar(
            app,
            DatastarConfig(default_retry_duration=self.config.default_retry_duration),
        )
        app.router.add_post("/test", self._handle_test)
        app.router.add_get("/health", self._handle_health)
        return app

    async def serve(self) -> None:
        """Start the server and block until ``shutdown()``."""
        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()

        logger.info(
            "Test server starting on http://%s:%d",
            self.config.host,
            self.config.port,
        )

        await self._shutdown_event.wait()

    async def shutdown(self) -> None:
        """Stop the server."""
        logger.info("Shutting down test server...")
        self._shutdown_event.set()
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    def _error_response(self, message: str, status: int) -> web.Response:
        return web.json_response({"error": message}, status=status)

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle GET /health."""
        return web.json_response({"status": "ok"})

    async def _handle_test(self, request: web.Request) -> web.StreamResponse:
        """Handle POST /test - replay the posted events as SSE."""
        snapshot = await read_signals(request)
        if not snapshot.ok:
            return self._error_response(f"Failed to read signals: {snapshot.error}", 400)

        events = snapshot.values.get("events")
        if not isinstance(events, list):
            return self._error_response("Missing or invalid events array", 400)

        logger.debug("Replaying %d events", len(events))

        async def replay(sse: ServerSentEventGenerator) -> None:
            await replay_events(sse, events)

        outcome = await datastar(request, replay)
        if outcome.error is not None:
            logger.error("Event replay failed: %s", outcome.error)
        return outcome.response
