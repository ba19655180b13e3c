"""Patch request types.

Each request is an explicit, frozen configuration object with named fields and
documented defaults. The encoder only accepts the closed union ``Event``
(``PatchElements | PatchSignals``); higher-level operations such as script
execution are lowered to a ``PatchElements`` before encoding.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from datastar_aiohttp.core.constants import (
    AUTO_REMOVE_ATTRIBUTE,
    SCRIPT_SELECTOR,
    Defaults,
    PatchMode,
)


@dataclass(frozen=True)
class PatchElements:
    """Patch HTML elements into the DOM.

    Attributes:
        elements: HTML text, possibly multi-line or empty.
        selector: CSS selector for the target. None targets elements by id.
        mode: How to apply the patch. Strings are coerced to PatchMode.
        use_view_transition: Wrap the patch in a View Transition.
        event_id: Optional SSE event id.
        retry_duration: Optional SSE retry duration in milliseconds.
    """

    elements: str = ""
    selector: str | None = None
    mode: PatchMode = Defaults.PATCH_MODE
    use_view_transition: bool = Defaults.USE_VIEW_TRANSITION
    event_id: str | None = None
    retry_duration: int | None = None

    def __post_init__(self) -> None:
        # Raises ValueError for unknown mode strings
        object.__setattr__(self, "mode", PatchMode(self.mode))


@dataclass(frozen=True)
class PatchSignals:
    """Patch the client's signal store.

    Attributes:
        signals: A mapping to serialize, or pre-formatted JSON text sent verbatim.
        only_if_missing: Only set signals the client does not already have.
        event_id: Optional SSE event id.
        retry_duration: Optional SSE retry duration in milliseconds.
    """

    signals: str | Mapping[str, Any] = field(default_factory=dict)
    only_if_missing: bool = Defaults.ONLY_IF_MISSING
    event_id: str | None = None
    retry_duration: int | None = None

    def payload(self) -> str:
        """Signals as text: compact JSON for mappings, verbatim for strings."""
        if isinstance(self.signals, str):
            return self.signals
        return json.dumps(self.signals, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True)
class ExecuteScript:
    """Run JavaScript in the browser by appending a ``<script>`` to the body.

    Attribute values are written verbatim; callers supply well-formed text.
    """

    script: str
    auto_remove: bool = Defaults.AUTO_REMOVE
    attributes: Mapping[str, str] = field(default_factory=dict)
    event_id: str | None = None
    retry_duration: int | None = None

    def script_element(self) -> str:
        """Render the ``<script>`` tag carrying the script body."""
        attrs = [f'{key}="{value}"' for key, value in self.attributes.items()]
        if self.auto_remove:
            attrs.append(AUTO_REMOVE_ATTRIBUTE)

        attr_str = " " + " ".join(attrs) if attrs else ""
        return f"<script{attr_str}>{self.script}</script>"

    def to_patch_elements(self) -> PatchElements:
        """Lower to the patch-elements request that carries it on the wire."""
        return PatchElements(
            elements=self.script_element(),
            selector=SCRIPT_SELECTOR,
            mode=PatchMode.APPEND,
            event_id=self.event_id,
            retry_duration=self.retry_duration,
        )


def remove_elements(
    selector: str,
    event_id: str | None = None,
    retry_duration: int | None = None,
) -> PatchElements:
    """Build the request that removes every element matching ``selector``."""
    return PatchElements(
        elements="",
        selector=selector,
        mode=PatchMode.REMOVE,
        event_id=event_id,
        retry_duration=retry_duration,
    )


# Closed set of events the encoder accepts
Event = PatchElements | PatchSignals
