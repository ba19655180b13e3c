"""Helpers for building Datastar HTML attribute values.

Example:
    >>> get_sse("/api/users/%s", 123)
    "@get('/api/users/123')"
    >>> f'<button data-on:click="{post_sse("/api/submit")}">Submit</button>'
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

_PLACEHOLDER = re.compile(r"%[sv]")


def format_url(url_format: str, *args: Any) -> str:
    """Substitute ``%s``/``%v`` placeholders in order. Missing args become ''."""
    remaining = iter(args)

    def substitute(_match: re.Match[str]) -> str:
        arg = next(remaining, None)
        return "" if arg is None else str(arg)

    return _PLACEHOLDER.sub(substitute, url_format)


def _action(verb: str, url: str, args: tuple[Any, ...]) -> str:
    if args:
        url = format_url(url, *args)
    return f"@{verb}('{url}')"


def get_sse(url: str, *args: Any) -> str:
    """``@get('<url>')`` action for a ``data-on:*`` attribute."""
    return _action("get", url, args)


def post_sse(url: str, *args: Any) -> str:
    """``@post('<url>')`` action for a ``data-on:*`` attribute."""
    return _action("post", url, args)


def put_sse(url: str, *args: Any) -> str:
    return _action("put", url, args)


def patch_sse(url: str, *args: Any) -> str:
    return _action("patch", url, args)


def delete_sse(url: str, *args: Any) -> str:
    return _action("delete", url, args)


def signals_attr(signals: Mapping[str, Any]) -> str:
    """Compact JSON for a ``data-signals`` attribute."""
    return json.dumps(signals, separators=(",", ":"), ensure_ascii=False)


def escape_html(text: str) -> str:
    """Escape ``& < > " '`` for safe embedding in HTML."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
    )


def safe_json(obj: Any) -> str:
    """Compact JSON escaped for use inside an HTML attribute."""
    return escape_html(json.dumps(obj, separators=(",", ":"), ensure_ascii=False))
