"""Encode subcommands - render Datastar frames without a server."""

from __future__ import annotations

import json
import sys

import rich_click as click

from datastar_aiohttp.core.constants import PatchMode
from datastar_aiohttp.core.encoder import encode_event
from datastar_aiohttp.core.events import ExecuteScript, PatchElements, PatchSignals

_MODES = [mode.value for mode in PatchMode]


def _read_input(file: str | None) -> str:
    """Read FILE (or stdin when omitted or '-'), dropping one trailing newline."""
    if file and file != "-":
        with open(file, encoding="utf-8") as f:
            text = f.read()
    else:
        text = sys.stdin.read()
    return text.removesuffix("\n")


@click.group()
def encode() -> None:
    """Render Datastar SSE frames to stdout.

    Input is read from FILE, or from stdin when FILE is omitted.

    **Commands:**

        datastar-aiohttp encode elements    patch-elements frame

        datastar-aiohttp encode signals     patch-signals frame

        datastar-aiohttp encode script      execute-script frame
    """
    pass


@encode.command("elements")
@click.argument("file", required=False)
@click.option("--selector", "-s", default=None, help="CSS selector for the target")
@click.option("--mode", "-m", type=click.Choice(_MODES), default="outer", help="Patch mode")
@click.option("--view-transition", is_flag=True, help="Use the View Transition API")
@click.option("--event-id", default=None, help="SSE event id")
@click.option("--retry", "retry_duration", type=int, default=None, help="SSE retry (ms)")
def encode_elements(
    file: str | None,
    selector: str | None,
    mode: str,
    view_transition: bool,
    event_id: str | None,
    retry_duration: int | None,
) -> None:
    """Render a patch-elements frame for HTML read from FILE.

    **Examples:**

        datastar-aiohttp encode elements fragment.html --selector "#list" --mode append

        echo '<div id="a">hi</div>' | datastar-aiohttp encode elements
    """
    event = PatchElements(
        elements=_read_input(file),
        selector=selector,
        mode=PatchMode(mode),
        use_view_transition=view_transition,
        event_id=event_id,
        retry_duration=retry_duration,
    )
    click.echo(encode_event(event), nl=False)


@encode.command("signals")
@click.argument("file", required=False)
@click.option("--only-if-missing", is_flag=True, help="Only patch missing signals")
@click.option("--raw", is_flag=True, help="Send the input verbatim instead of re-serializing")
@click.option("--event-id", default=None, help="SSE event id")
@click.option("--retry", "retry_duration", type=int, default=None, help="SSE retry (ms)")
def encode_signals(
    file: str | None,
    only_if_missing: bool,
    raw: bool,
    event_id: str | None,
    retry_duration: int | None,
) -> None:
    """Render a patch-signals frame for a JSON object read from FILE.

    **Examples:**

        echo '{"count": 1}' | datastar-aiohttp encode signals

        datastar-aiohttp encode signals state.json --only-if-missing
    """
    text = _read_input(file)
    signals: str | dict[str, object]
    if raw:
        signals = text
    else:
        try:
            signals = json.loads(text)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON: {e}", param_hint="FILE") from e
        if not isinstance(signals, dict):
            raise click.BadParameter("Signals must be a JSON object", param_hint="FILE")

    event = PatchSignals(
        signals=signals,
        only_if_missing=only_if_missing,
        event_id=event_id,
        retry_duration=retry_duration,
    )
    click.echo(encode_event(event), nl=False)


@encode.command("script")
@click.argument("file", required=False)
@click.option("--keep", is_flag=True, help="Do not auto-remove the script tag")
@click.option(
    "--attr",
    "-a",
    "attrs",
    multiple=True,
    help="Script tag attribute as key=value (repeatable)",
)
@click.option("--event-id", default=None, help="SSE event id")
@click.option("--retry", "retry_duration", type=int, default=None, help="SSE retry (ms)")
def encode_script(
    file: str | None,
    keep: bool,
    attrs: tuple[str, ...],
    event_id: str | None,
    retry_duration: int | None,
) -> None:
    """Render the frame that runs JavaScript read from FILE.

    **Examples:**

        echo 'console.log("hi")' | datastar-aiohttp encode script

        datastar-aiohttp encode script app.js --attr type=module --keep
    """
    attributes: dict[str, str] = {}
    for attr in attrs:
        key, sep, value = attr.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected key=value, got {attr!r}", param_hint="--attr")
        attributes[key] = value

    request = ExecuteScript(
        script=_read_input(file),
        auto_remove=not keep,
        attributes=attributes,
        event_id=event_id,
        retry_duration=retry_duration,
    )
    click.echo(encode_event(request.to_patch_elements()), nl=False)
