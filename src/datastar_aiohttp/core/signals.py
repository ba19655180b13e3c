"""Signal reading - decode the client's reactive state from a request.

GET requests carry signals as JSON in the ``datastar`` query parameter; every
other method sends them as the JSON request body. Failures are reported in the
returned ``SignalSnapshot``, never raised.

This module is framework-agnostic. ``datastar_aiohttp.transport.http`` adapts
it to aiohttp requests.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from datastar_aiohttp.core.constants import Headers

logger = logging.getLogger(__name__)

# Methods whose signals travel in the query string
_QUERY_METHODS = frozenset({"GET"})


@dataclass
class SignalSnapshot:
    """Result of reading signals from one request.

    Attributes:
        ok: Whether the signals were decoded.
        values: Decoded signals (empty when ``ok`` is False).
        error: Decode error message when ``ok`` is False.
    """

    ok: bool
    values: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def empty(cls) -> SignalSnapshot:
        return cls(ok=True, values={})

    @classmethod
    def failure(cls, message: str) -> SignalSnapshot:
        return cls(ok=False, error=message or "Unknown error reading signals")


def parse_signals(source: str | bytes | Mapping[str, Any] | None) -> SignalSnapshot:
    """Decode a signals document.

    Args:
        source: Raw JSON text, an already-decoded mapping, or None.

    Returns:
        SignalSnapshot with the decoded mapping, or a failure result.
    """
    if source is None:
        return SignalSnapshot.empty()

    if isinstance(source, Mapping):
        return SignalSnapshot(ok=True, values=dict(source))

    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8")
        except UnicodeDecodeError as e:
            return SignalSnapshot.failure(str(e))

    if not source.strip():
        return SignalSnapshot.empty()

    try:
        decoded = json.loads(source)
    except json.JSONDecodeError as e:
        logger.debug("Malformed signals payload: %s", e)
        return SignalSnapshot.failure(str(e))

    if not isinstance(decoded, dict):
        return SignalSnapshot.failure(
            f"Signals must be a JSON object, got {type(decoded).__name__}"
        )

    return SignalSnapshot(ok=True, values=decoded)


def uses_query_signals(method: str) -> bool:
    """Whether signals for ``method`` are read from the query string."""
    return method.upper() in _QUERY_METHODS


def read_signals_from(
    method: str,
    query: Mapping[str, str],
    body: str | bytes | Mapping[str, Any] | None,
) -> SignalSnapshot:
    """Pick the signals source for a request and decode it.

    Args:
        method: HTTP method.
        query: Decoded query parameters.
        body: Request body (ignored for GET).
    """
    if uses_query_signals(method):
        return parse_signals(query.get(Headers.SIGNALS_QUERY_PARAM))
    return parse_signals(body)


def is_datastar_request_headers(headers: Mapping[str, str]) -> bool:
    """Whether the request carries ``datastar-request: true``.

    Header lookup is case-insensitive; the value must be exactly ``"true"``.
    """
    value = headers.get(Headers.DATASTAR_REQUEST)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == Headers.DATASTAR_REQUEST:
                value = candidate
                break
    return value == "true"
