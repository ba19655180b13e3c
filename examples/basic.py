#!/usr/bin/env python
"""Counter, message and clock demo using datastar-aiohttp.

Usage:
    python examples/basic.py

Then open http://127.0.0.1:3000 in a browser.
"""

import asyncio
import logging
import time

from aiohttp import web

from datastar_aiohttp import (
    PatchMode,
    ServerSentEventGenerator,
    datastar,
    get_sse,
    post_sse,
    read_signals,
    setup_datastar,
    signals_attr,
)

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

DATASTAR_BUNDLE = "https://cdn.jsdelivr.net/gh/starfederation/datastar@v1.0.0-RC.7/bundles/datastar.js"

# Demo state, shared by every client
store = {"count": 0, "message": "Hello from Datastar!"}


async def index(request: web.Request) -> web.Response:
    initial = signals_attr({**store, "fetching": False})
    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Datastar + aiohttp</title>
  <script type="module" src="{DATASTAR_BUNDLE}"></script>
</head>
<body>
  <h1>Datastar + aiohttp</h1>
  <div data-signals='{initial}'>
    <section>
      <h2>Counter</h2>
      <p>Count: <span data-text="$count">{store["count"]}</span></p>
      <button data-on:click="{get_sse("/api/increment")}">Increment</button>
      <button data-on:click="{get_sse("/api/decrement")}">Decrement</button>
      <button data-on:click="{post_sse("/api/reset")}">Reset</button>
    </section>
    <section>
      <h2>Message</h2>
      <div id="message-output"><p data-text="$message">{store["message"]}</p></div>
      <input type="text" data-bind:message>
      <button data-on:click="{post_sse("/api/update-message")}">Update Message</button>
    </section>
    <section>
      <h2>Scripts</h2>
      <button data-on:click="{get_sse("/api/console-log")}">Console Log</button>
    </section>
    <section>
      <h2>Real-time Updates</h2>
      <p>Server time: <span id="server-time">--</span></p>
      <button data-on:click="{get_sse("/api/time-stream")}">Start Time Stream (5s)</button>
    </section>
  </div>
</body>
</html>
"""
    return web.Response(text=html, content_type="text/html")


async def _count_from(request: web.Request) -> int:
    snapshot = await read_signals(request)
    return int(snapshot.values.get("count", store["count"]))


async def increment(request: web.Request) -> web.StreamResponse:
    store["count"] = await _count_from(request) + 1

    async def update(sse: ServerSentEventGenerator) -> None:
        await sse.patch_signals({"count": store["count"]})

    return (await datastar(request, update)).response


async def decrement(request: web.Request) -> web.StreamResponse:
    store["count"] = max(0, await _count_from(request) - 1)

    async def update(sse: ServerSentEventGenerator) -> None:
        await sse.patch_signals({"count": store["count"]})

    return (await datastar(request, update)).response


async def reset(request: web.Request) -> web.StreamResponse:
    store.update(count=0, message="Hello from Datastar!")

    async def update(sse: ServerSentEventGenerator) -> None:
        await sse.patch_signals(store)

    return (await datastar(request, update)).response


async def update_message(request: web.Request) -> web.StreamResponse:
    snapshot = await read_signals(request)
    if not snapshot.ok:
        return web.json_response({"error": snapshot.error}, status=400)
    if snapshot.values.get("message"):
        store["message"] = snapshot.values["message"]

    async def update(sse: ServerSentEventGenerator) -> None:
        await sse.patch_signals({"message": store["message"]})
        await sse.patch_elements(
            f'<p id="status">Message updated at {time.strftime("%H:%M:%S")}</p>',
            selector="#message-output",
            mode=PatchMode.APPEND,
        )

    return (await datastar(request, update)).response


async def console_log(request: web.Request) -> web.StreamResponse:
    async def update(sse: ServerSentEventGenerator) -> None:
        await sse.console_log(f"Server says hello at {time.strftime('%H:%M:%S')}")

    return (await datastar(request, update)).response


async def time_stream(request: web.Request) -> web.StreamResponse:
    async def update(sse: ServerSentEventGenerator) -> None:
        for _ in range(5):
            if sse.is_closed:
                return
            await sse.patch_elements(f'<span id="server-time">{time.strftime("%H:%M:%S")}</span>')
            await asyncio.sleep(1)
        await sse.patch_elements('<span id="server-time">Stream ended</span>')

    return (await datastar(request, update)).response


def create_app() -> web.Application:
    app = web.Application()
    setup_datastar(app)
    app.router.add_get("/", index)
    app.router.add_get("/api/increment", increment)
    app.router.add_get("/api/decrement", decrement)
    app.router.add_post("/api/reset", reset)
    app.router.add_post("/api/update-message", update_message)
    app.router.add_get("/api/console-log", console_log)
    app.router.add_get("/api/time-stream", time_stream)
    return app


if __name__ == "__main__":
    web.run_app(create_app(), host="127.0.0.1", port=3000)
