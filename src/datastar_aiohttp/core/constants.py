"""Datastar protocol constants.

These values are a cross-implementation wire contract and are pinned here
rather than derived. They track Datastar 1.0.0-RC.7.
"""

from __future__ import annotations

from enum import Enum

DATASTAR_VERSION = "1.0.0-RC.7"

# Key used for the signals query parameter and the request marker header prefix
DATASTAR_KEY = "datastar"


class EventType(str, Enum):
    """SSE event names understood by the browser runtime.

    There is no execute-script or remove event: both are patch-elements
    events with specific options.
    """

    PATCH_ELEMENTS = "datastar-patch-elements"
    PATCH_SIGNALS = "datastar-patch-signals"


class PatchMode(str, Enum):
    """How patched elements are applied to the target."""

    OUTER = "outer"  # Morph the outer HTML (default)
    INNER = "inner"  # Morph the inner HTML
    REPLACE = "replace"  # Replace the outer HTML without morphing
    PREPEND = "prepend"
    APPEND = "append"
    BEFORE = "before"
    AFTER = "after"
    REMOVE = "remove"


class DataLine:
    """Keys that prefix each ``data:`` line of a frame."""

    SELECTOR = "selector"
    MODE = "mode"
    ELEMENTS = "elements"
    USE_VIEW_TRANSITION = "useViewTransition"
    SIGNALS = "signals"
    ONLY_IF_MISSING = "onlyIfMissing"


class Defaults:
    """Protocol defaults. Values equal to these are never written to the wire."""

    SSE_RETRY_DURATION = 1000  # milliseconds
    USE_VIEW_TRANSITION = False
    ONLY_IF_MISSING = False
    AUTO_REMOVE = True
    PATCH_MODE = PatchMode.OUTER


class Headers:
    """Request/response header names and content types."""

    DATASTAR_REQUEST = "datastar-request"
    CONTENT_TYPE_SSE = "text/event-stream"
    CONTENT_TYPE_JSON = "application/json"
    SIGNALS_QUERY_PARAM = DATASTAR_KEY


# Selector and attribute used when running scripts in the browser
SCRIPT_SELECTOR = "body"
AUTO_REMOVE_ATTRIBUTE = 'data-on:load="this.remove()"'

# Headers written when a stream is opened
SSE_RESPONSE_HEADERS = {
    "Content-Type": Headers.CONTENT_TYPE_SSE,
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering
}
