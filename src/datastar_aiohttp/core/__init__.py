"""Core - framework-agnostic protocol logic.

Modules:
    constants   Pinned protocol literals and defaults
    events      Patch request types
    encoder     Frame rendering
    signals     Signal decoding
    helpers     HTML attribute helpers
"""

from datastar_aiohttp.core.constants import (
    DATASTAR_KEY,
    DATASTAR_VERSION,
    DataLine,
    Defaults,
    EventType,
    Headers,
    PatchMode,
)
from datastar_aiohttp.core.encoder import encode_event, format_frame
from datastar_aiohttp.core.events import Event, ExecuteScript, PatchElements, PatchSignals
from datastar_aiohttp.core.signals import SignalSnapshot, parse_signals

__all__ = [
    # Constants
    "DATASTAR_KEY",
    "DATASTAR_VERSION",
    "DataLine",
    "Defaults",
    "EventType",
    "Headers",
    "PatchMode",
    # Requests
    "Event",
    "ExecuteScript",
    "PatchElements",
    "PatchSignals",
    # Encoding
    "encode_event",
    "format_frame",
    # Signals
    "SignalSnapshot",
    "parse_signals",
]
