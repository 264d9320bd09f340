"""Append-only store of received chunks."""

from __future__ import annotations

import logging
from typing import Callable, List

from typeguard import typechecked

from .types import ChunkSequence

logger = logging.getLogger("serial_hex_terminal.byte_buffer")


@typechecked
class ByteBuffer:
    """Ordered sequence of inbound chunks, the source for full re-renders.

    Chunks are kept exactly as they arrived: never merged, reordered or
    dropped.  The only way to remove data is ``clear()``, which also notifies
    every registered clear listener so dependent decode state is reset.

    One writer (the read loop) and one reader (the control flow requesting
    renders) may use a buffer concurrently.
    """

    def __init__(self) -> None:
        self._chunks: List[bytes] = []
        self._total_bytes = 0
        self._clear_listeners: List[Callable[[], None]] = []

    def append(self, chunk: bytes) -> None:
        """Append one chunk in arrival order."""
        self._chunks.append(bytes(chunk))
        self._total_bytes += len(chunk)

    def clear(self) -> None:
        """Drop every chunk and signal clear listeners."""
        dropped = len(self._chunks)
        self._chunks = []
        self._total_bytes = 0
        logger.debug("[BUFFER-CLEAR] Dropped %d chunks", dropped)
        for listener in list(self._clear_listeners):
            listener()

    def snapshot(self) -> ChunkSequence:
        """Return the chunks received so far, oldest first."""
        return tuple(self._chunks)

    def add_clear_listener(self, listener: Callable[[], None]) -> None:
        self._clear_listeners.append(listener)

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def __len__(self) -> int:
        return len(self._chunks)
