"""Event encoder - renders patch requests into SSE frames.

Frame layout::

    event: <kind>
    id: <event_id>            (only if set)
    retry: <retry_duration>   (only if set)
    data: <key> <value>       (one per payload line)
    <blank line>

Options equal to their protocol default are never written. Every ``data:``
line carries exactly one logical line of payload; multi-line payloads are
re-prefixed per line.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from datastar_aiohttp.core.constants import DataLine, Defaults, EventType
from datastar_aiohttp.core.events import Event, PatchElements, PatchSignals

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> list[str]:
    """Split on any line break, keeping empty lines.

    Unlike ``str.splitlines`` an empty string yields ``[""]`` and a trailing
    break yields a trailing empty line.
    """
    return _LINE_BREAK.split(text)


def format_frame(
    event_type: str,
    data_lines: Iterable[str],
    event_id: str | None = None,
    retry_duration: int | None = None,
) -> str:
    """Assemble one complete SSE frame.

    Args:
        event_type: Value of the ``event:`` line.
        data_lines: Payload lines, each written as ``data: <line>``.
        event_id: Optional ``id:`` value.
        retry_duration: Optional ``retry:`` value in milliseconds.

    Returns:
        Frame text ending with a blank line.
    """
    lines = [f"event: {event_type}"]

    if event_id:
        lines.append(f"id: {event_id}")

    if retry_duration is not None:
        lines.append(f"retry: {retry_duration}")

    lines.extend(f"data: {line}" for line in data_lines)

    # Frames end with two consecutive line breaks
    lines.extend(["", ""])
    return "\n".join(lines)


def patch_elements_lines(event: PatchElements) -> list[str]:
    """Data lines for a patch-elements event."""
    data_lines = []

    if event.mode != Defaults.PATCH_MODE:
        data_lines.append(f"{DataLine.MODE} {event.mode.value}")

    if event.selector:
        data_lines.append(f"{DataLine.SELECTOR} {event.selector}")

    if event.use_view_transition:
        data_lines.append(f"{DataLine.USE_VIEW_TRANSITION} true")

    for line in split_lines(event.elements):
        data_lines.append(f"{DataLine.ELEMENTS} {line}")

    return data_lines


def patch_signals_lines(event: PatchSignals) -> list[str]:
    """Data lines for a patch-signals event."""
    data_lines = []

    if event.only_if_missing:
        data_lines.append(f"{DataLine.ONLY_IF_MISSING} true")

    # Mappings serialize to a single line; raw text may span several
    for line in split_lines(event.payload()):
        data_lines.append(f"{DataLine.SIGNALS} {line}")

    return data_lines


def encode_event(event: Event) -> str:
    """Render a patch request as a complete SSE frame.

    Raises:
        TypeError: If ``event`` is not a PatchElements or PatchSignals.
    """
    if isinstance(event, PatchElements):
        event_type = EventType.PATCH_ELEMENTS
        data_lines = patch_elements_lines(event)
    elif isinstance(event, PatchSignals):
        event_type = EventType.PATCH_SIGNALS
        data_lines = patch_signals_lines(event)
    else:
        raise TypeError(f"Cannot encode {type(event).__name__}")

    return format_frame(
        event_type.value,
        data_lines,
        event_id=event.event_id,
        retry_duration=event.retry_duration,
    )


def encode_retry_preamble(retry_duration: int = Defaults.SSE_RETRY_DURATION) -> str:
    """The frame written once when a stream opens, before any events."""
    return f"retry: {retry_duration}\n\n"
