"""Tests for managed and unmanaged stream lifecycles."""

from __future__ import annotations

import asyncio

import pytest

from datastar_aiohttp.server.lifecycle import (
    open_session,
    run_managed,
    start_disconnect_watcher,
    watch_disconnect,
)
from datastar_aiohttp.server.protocols import StreamOptions
from datastar_aiohttp.transport.in_process import BufferTransport


class TestOpenSession:
    async def test_writes_retry_preamble(self, transport):
        sse = await open_session(transport)

        assert transport.text() == "retry: 1000\n\n"
        assert not sse.is_closed

    async def test_custom_retry(self, transport):
        await open_session(transport, retry_duration=250)

        assert transport.text() == "retry: 250\n\n"

    async def test_disconnected_before_preamble(self):
        transport = BufferTransport(disconnected=True)

        sse = await open_session(transport)

        assert sse.is_closed
        assert sse.aborted
        assert transport.chunks == []


class TestRunManaged:
    """Tests for run_managed."""

    async def test_closes_after_success(self, sse, transport):
        async def callback(s):
            await s.patch_signals({"a": 1})

        outcome = await run_managed(sse, callback)

        assert outcome.completed
        assert outcome.error is None
        assert not outcome.aborted
        assert sse.is_closed
        assert transport.close_count == 1

    async def test_sync_callback(self, sse, transport):
        calls = []

        outcome = await run_managed(sse, lambda s: calls.append(s))

        assert outcome.completed
        assert calls == [sse]
        assert transport.close_count == 1

    async def test_error_closes_and_reports(self, sse, transport):
        """An error after one patch closes the stream with that patch delivered."""
        errors = []

        async def callback(s):
            await s.patch_signals({"a": 1})
            raise RuntimeError("boom")

        outcome = await run_managed(
            sse, callback, StreamOptions(on_error=errors.append)
        )

        assert not outcome.completed
        assert isinstance(outcome.error, RuntimeError)
        assert errors == [outcome.error]
        assert transport.text() == 'event: datastar-patch-signals\ndata: signals {"a":1}\n\n'
        assert transport.close_count == 1
        assert sse.is_closed

    async def test_error_logged(self, sse, caplog):
        def callback(s):
            raise ValueError("bad input")

        await run_managed(sse, callback)

        assert "Error in managed stream callback" in caplog.text

    async def test_failing_on_error_still_closes(self, sse, transport):
        def on_error(e):
            raise RuntimeError("handler broke")

        def callback(s):
            raise ValueError("bad input")

        outcome = await run_managed(sse, callback, StreamOptions(on_error=on_error))

        assert isinstance(outcome.error, ValueError)
        assert transport.close_count == 1

    async def test_keep_alive_leaves_open(self, sse, transport):
        outcome = await run_managed(
            sse, lambda s: None, StreamOptions(keep_alive=True)
        )

        assert outcome.kept_alive
        assert not sse.is_closed
        assert transport.close_count == 0

        await sse.close()
        assert transport.close_count == 1

    async def test_keep_alive_after_disconnect(self, sse, transport):
        async def callback(s):
            transport.disconnect()

        outcome = await run_managed(sse, callback, StreamOptions(keep_alive=True))

        assert not outcome.kept_alive
        assert outcome.aborted

    async def test_keep_alive_after_host_finished(self, sse, transport):
        async def callback(s):
            transport.finish()

        outcome = await run_managed(sse, callback, StreamOptions(keep_alive=True))

        assert not outcome.kept_alive
        assert not outcome.aborted
        assert transport.close_count == 0

    async def test_abort_notified(self, sse, transport):
        """A client disconnect during the sequence calls on_abort once."""
        aborts = []

        async def callback(s):
            await s.patch_signals({"step": 1})
            transport.disconnect()
            await s.patch_signals({"step": 2})

        outcome = await run_managed(
            sse, callback, StreamOptions(on_abort=lambda: aborts.append(True))
        )

        assert outcome.completed
        assert outcome.aborted
        assert aborts == [True]
        assert '"step":2' not in transport.text()

    async def test_cancellation_closes_and_propagates(self, sse, transport):
        started = asyncio.Event()

        async def callback(s):
            started.set()
            await asyncio.sleep(60)

        task = asyncio.create_task(run_managed(sse, callback))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert sse.is_closed
        assert transport.close_count == 1


class TestDisconnectWatcher:
    """Tests for the unmanaged-stream disconnect watcher."""

    async def test_reports_client_disconnect(self, sse, transport):
        aborts = []
        task = start_disconnect_watcher(
            sse, StreamOptions(on_abort=lambda: aborts.append(True)), poll_interval=0.01
        )

        await asyncio.sleep(0.03)
        assert not task.done()

        transport.disconnect()
        await asyncio.wait_for(task, timeout=1)

        assert sse.is_closed
        assert sse.aborted
        assert aborts == [True]

    async def test_local_close_ends_silently(self, sse):
        aborts = []
        task = start_disconnect_watcher(
            sse, StreamOptions(on_abort=lambda: aborts.append(True)), poll_interval=0.01
        )

        await sse.close()
        await asyncio.wait_for(task, timeout=1)

        assert aborts == []
        assert not sse.aborted

    async def test_wait_closed_wakes_on_disconnect(self, sse, transport):
        watcher = asyncio.create_task(watch_disconnect(sse, poll_interval=0.01))

        transport.disconnect()
        await asyncio.wait_for(sse.wait_closed(), timeout=1)
        await watcher

        assert sse.aborted

    async def test_failing_on_abort_is_logged(self, sse, transport, caplog):
        def on_abort():
            raise RuntimeError("abort handler broke")

        transport.disconnect()
        await watch_disconnect(sse, StreamOptions(on_abort=on_abort), poll_interval=0.01)

        assert "on_abort callback failed" in caplog.text

    async def test_host_finished_ends_silently(self, sse, transport):
        """A response the host ended stops the watcher without on_abort."""
        aborts = []
        task = start_disconnect_watcher(
            sse, StreamOptions(on_abort=lambda: aborts.append(True)), poll_interval=0.01
        )

        transport.finish()
        await asyncio.wait_for(task, timeout=1)

        assert sse.is_closed
        assert not sse.aborted
        assert aborts == []
