"""Tests for the SDK conformance test server."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import aiohttp
import pytest
from aiohttp import web

from datastar_aiohttp.core.constants import PatchMode
from datastar_aiohttp.core.events import ExecuteScript, PatchElements, PatchSignals
from datastar_aiohttp.testserver import (
    ConformanceServer,
    ConformanceServerConfig,
    UnknownEvent,
    parse_test_event,
    replay_events,
)


class TestParseTestEvent:
    """Tests for turning posted payloads into requests."""

    def test_patch_elements(self):
        event = parse_test_event(
            {
                "type": "patchElements",
                "elements": "<div>x</div>",
                "selector": "#t",
                "mode": "inner",
                "useViewTransition": True,
                "eventId": "1",
                "retryDuration": 2000,
            }
        )

        assert event == PatchElements(
            elements="<div>x</div>",
            selector="#t",
            mode=PatchMode.INNER,
            use_view_transition=True,
            event_id="1",
            retry_duration=2000,
        )

    def test_patch_elements_defaults(self):
        event = parse_test_event({"type": "patchElements"})

        assert event == PatchElements()

    def test_non_positive_retry_ignored(self):
        event = parse_test_event({"type": "patchElements", "retryDuration": 0})

        assert event.retry_duration is None

    def test_patch_signals(self):
        event = parse_test_event(
            {"type": "patchSignals", "signals": {"a": 1}, "onlyIfMissing": True}
        )

        assert event == PatchSignals(signals={"a": 1}, only_if_missing=True)

    def test_signals_raw_preferred(self):
        event = parse_test_event(
            {"type": "patchSignals", "signals": {"a": 1}, "signals-raw": '{\n"b": 2\n}'}
        )

        assert event.signals == '{\n"b": 2\n}'

    def test_execute_script_unescapes_newlines(self):
        event = parse_test_event(
            {
                "type": "executeScript",
                "script": "a();\\nb();",
                "autoRemove": False,
                "attributes": {"type": "module"},
            }
        )

        assert event == ExecuteScript(
            script="a();\nb();", auto_remove=False, attributes={"type": "module"}
        )

    def test_unknown_type(self):
        event = parse_test_event({"type": "mystery", "x": 1})

        assert isinstance(event, UnknownEvent)
        assert event.type == "mystery"


class TestReplayEvents:
    """Tests for replaying payloads onto a session."""

    async def test_replays_in_order(self, sse, transport):
        sent = await replay_events(
            sse,
            [
                {"type": "patchSignals", "signals": {"a": 1}},
                {"type": "executeScript", "script": "x()"},
                {"type": "patchElements", "elements": "<p id='p'></p>"},
            ],
        )

        assert sent == 3
        assert transport.text() == (
            'event: datastar-patch-signals\ndata: signals {"a":1}\n\n'
            "event: datastar-patch-elements\n"
            "data: mode append\n"
            "data: selector body\n"
            'data: elements <script data-on:load="this.remove()">x()</script>\n'
            "\n"
            "event: datastar-patch-elements\ndata: elements <p id='p'></p>\n\n"
        )

    async def test_unknown_events_skipped(self, sse, transport, caplog):
        sent = await replay_events(
            sse,
            [{"type": "mystery"}, "not an object", {"type": "patchSignals", "signals": {"b": 2}}],
        )

        assert sent == 1
        assert "Unknown event type: mystery" in caplog.text
        assert transport.text() == 'event: datastar-patch-signals\ndata: signals {"b":2}\n\n'

    async def test_stops_when_closed(self, sse, transport, caplog):
        transport.disconnect()

        sent = await replay_events(sse, [{"type": "patchSignals", "signals": {"a": 1}}])

        assert sent == 0
        assert "SSE connection closed, stopping event processing" in caplog.text

    async def test_invalid_mode_skipped(self, sse, transport, caplog):
        sent = await replay_events(
            sse,
            [
                {"type": "patchElements", "elements": "<p></p>", "mode": "sideways"},
                {"type": "patchSignals", "signals": {"c": 3}},
            ],
        )

        assert sent == 1
        assert "Skipping invalid event" in caplog.text
        assert transport.text() == 'event: datastar-patch-signals\ndata: signals {"c":3}\n\n'
        assert not sse.is_closed


class TestConformanceServer:
    """Behavior tests for the /test endpoint."""

    @pytest.fixture
    async def running_server(self):
        """Start the conformance app on a free port."""
        server = ConformanceServer(config=ConformanceServerConfig(port=0))
        runner = web.AppRunner(server.build_app())
        await runner.setup()
        site = web.TCPSite(runner, "127.0.0.1", 0)
        await site.start()

        actual_port = site._server.sockets[0].getsockname()[1]

        yield f"http://127.0.0.1:{actual_port}"

        await runner.cleanup()

    async def test_replays_posted_events(self, running_server):
        payload = {
            "events": [
                {"type": "patchElements", "elements": "<div id='a'>1</div>", "eventId": "e1"},
                {"type": "patchSignals", "signals-raw": '{"x": 1}'},
            ]
        }

        async with aiohttp.ClientSession() as session:
            async with session.post(f"{running_server}/test", json=payload) as resp:
                body = await resp.text()

        assert resp.status == 200
        assert body == (
            "retry: 1000\n\n"
            "event: datastar-patch-elements\nid: e1\ndata: elements <div id='a'>1</div>\n\n"
            'event: datastar-patch-signals\ndata: signals {"x": 1}\n\n'
        )

    async def test_missing_events_array(self, running_server):
        async with aiohttp.ClientSession() as session:
            async with session.post(f"{running_server}/test", json={"events": "nope"}) as resp:
                data = await resp.json()

        assert resp.status == 400
        assert data == {"error": "Missing or invalid events array"}

    async def test_malformed_body(self, running_server):
        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"{running_server}/test",
                data="{broken",
                headers={"Content-Type": "application/json"},
            ) as resp:
                data = await resp.json()

        assert resp.status == 400
        assert data["error"].startswith("Failed to read signals:")

    async def test_invalid_mode_is_skipped(self, running_server):
        """An event with an unknown mode is dropped and the batch continues."""
        payload = {
            "events": [
                {"type": "patchSignals", "signals": {"ok": True}},
                {"type": "patchElements", "elements": "<p></p>", "mode": "sideways"},
                {"type": "patchSignals", "signals": {"after": 1}},
            ]
        }

        async with aiohttp.ClientSession() as session:
            async with session.post(f"{running_server}/test", json=payload) as resp:
                body = await resp.text()

        assert body == (
            "retry: 1000\n\n"
            'event: datastar-patch-signals\ndata: signals {"ok":true}\n\n'
            'event: datastar-patch-signals\ndata: signals {"after":1}\n\n'
        )

    async def test_unexpected_error_is_500(self, running_server):
        with patch(
            "datastar_aiohttp.testserver.datastar",
            new_callable=AsyncMock,
            side_effect=RuntimeError("stream setup failed"),
        ):
            async with aiohttp.ClientSession() as session:
                async with session.post(f"{running_server}/test", json={"events": []}) as resp:
                    status = resp.status

        assert status == 500

    async def test_health(self, running_server):
        async with aiohttp.ClientSession() as session:
            async with session.get(f"{running_server}/health") as resp:
                data = await resp.json()

        assert data == {"status": "ok"}
