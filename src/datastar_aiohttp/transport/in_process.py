"""In-process transport - collects stream output in memory.

Useful for:
- Testing encoders and sessions without a server
- Rendering frames for non-HTTP sinks (files, queues)
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class BufferTransport:
    """StreamTransport that appends every write to an in-memory buffer.

    Example:
        >>> transport = BufferTransport()
        >>> sse = ServerSentEventGenerator(transport)
        >>> await sse.patch_signals({"count": 1})
        >>> transport.text()
        'event: datastar-patch-signals\\ndata: signals {"count":1}\\n\\n'
    """

    chunks: list[bytes] = field(default_factory=list)
    close_count: int = 0
    disconnected: bool = False
    finished: bool = False

    async def write(self, data: bytes) -> None:
        if self.disconnected or self.finished:
            raise ConnectionResetError("Stream is closed")
        self.chunks.append(data)

    async def close(self) -> None:
        self.close_count += 1

    def is_closing(self) -> bool:
        return self.disconnected or self.finished or self.close_count > 0

    def is_finished(self) -> bool:
        return self.finished

    def disconnect(self) -> None:
        """Simulate the client going away."""
        self.disconnected = True

    def finish(self) -> None:
        """Simulate the host ending the response."""
        self.finished = True

    def text(self) -> str:
        """Everything written so far, decoded."""
        return b"".join(self.chunks).decode("utf-8")

    @property
    def bytes_written(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)
