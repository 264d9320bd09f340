"""Incremental hex / text rendering of an arbitrarily chunked byte stream.

The text view decodes UTF-8 with a tolerant decoder: malformed input turns
into U+FFFD instead of raising, and a multi-byte character whose bytes are
split across two chunks decodes into one character once both chunks have
arrived.

The bytes of an incomplete trailing character are carried between chunks as
an explicit ``DecodeState`` value.  ``decode_step`` is a pure function of
``(state, chunk)``, so folding it over a buffer from scratch and applying it
chunk-by-chunk as data arrives always produce the same text.

Two entry points matter to callers:

- ``render(chunks)`` recomputes the whole view from a buffer snapshot.
- ``append_tail(chunk)`` returns only the text contributed by a new chunk,
  for append-only display updates.
"""

from __future__ import annotations

import codecs
import dataclasses
import logging
from typing import Iterable, List, Tuple

from typeguard import typechecked

from .hex_codec import bytes_to_hex_groups
from .types import ViewMode

logger = logging.getLogger("serial_hex_terminal.renderer")

_TEXT_ENCODING = "utf-8"


@dataclasses.dataclass(frozen=True)
class DecodeState:
    """Text-view decode cursor.

    Attributes:
        pending: Leading bytes (0–3) of a UTF-8 sequence that has not been
            completed yet by the chunks seen so far.
    """
    pending: bytes = b""


def decode_step(
    state: DecodeState,
    chunk: bytes,
    final: bool = False,
) -> Tuple[str, DecodeState]:
    """Decode *chunk* given the carried *state*.

    Args:
        state: Decode state left by the previous chunk.
        chunk: Newly arrived bytes (may be empty).
        final: ``False`` while more chunks may follow, so an incomplete
            trailing sequence is held back in the returned state.  ``True``
            flushes it as a replacement character.

    Returns:
        ``(text, new_state)``.
    """
    decoder = codecs.getincrementaldecoder(_TEXT_ENCODING)("replace")
    decoder.setstate((state.pending, 0))
    text = decoder.decode(chunk, final)
    pending, _ = decoder.getstate()
    return text, DecodeState(pending=bytes(pending))


def _non_empty(chunks: Iterable[bytes]) -> List[bytes]:
    return [c for c in chunks if c]


@typechecked
class StreamRenderer:
    """Stateful renderer of the inbound log in one of two view modes.

    The running state belongs to the view currently displayed.  Switching the
    mode or clearing the buffer invalidates it; callers then rebuild the view
    with ``refresh(buffer.snapshot())``.

    Example::

        renderer = StreamRenderer(ViewMode.TEXT)
        view = renderer.append_tail(b"\\xe2")       # -> ""
        view += renderer.append_tail(b"\\x82\\xac")  # -> "€"
    """

    def __init__(self, mode: ViewMode = ViewMode.HEX) -> None:
        self._mode = mode
        self._state = DecodeState()
        self._has_output = False

    @property
    def mode(self) -> ViewMode:
        return self._mode

    @property
    def decode_state(self) -> DecodeState:
        return self._state

    def set_mode(self, mode: ViewMode) -> None:
        """Switch view mode and drop the running decode state."""
        if mode is not self._mode:
            logger.debug("[RENDER] View mode %s -> %s", self._mode.value, mode.value)
        self._mode = mode
        self.reset()

    def reset(self) -> None:
        self._state = DecodeState()
        self._has_output = False

    def render(self, chunks: Iterable[bytes], final: bool = True) -> str:
        """Recompute the whole view from *chunks* without touching the running state.

        In text mode every chunk is replayed from a fresh state with the
        continuation flag set, then a final flush turns any incomplete
        trailing sequence into a replacement character (skipped when
        *final* is ``False``).
        """
        if self._mode is ViewMode.HEX:
            return " ".join(bytes_to_hex_groups(c) for c in _non_empty(chunks))

        state = DecodeState()
        parts = []
        for chunk in chunks:
            text, state = decode_step(state, chunk)
            parts.append(text)
        if final:
            text, state = decode_step(state, b"", final=True)
            parts.append(text)
        return "".join(parts)

    def append_tail(self, chunk: bytes) -> str:
        """Return the text a newly arrived *chunk* adds to the displayed view."""
        if self._mode is ViewMode.HEX:
            if not chunk:
                return ""
            groups = bytes_to_hex_groups(chunk)
            tail = " " + groups if self._has_output else groups
            self._has_output = True
            return tail

        text, self._state = decode_step(self._state, chunk)
        if text:
            self._has_output = True
        return text

    def refresh(self, chunks: Iterable[bytes]) -> str:
        """Rebuild the displayed view from scratch.

        Equivalent to ``reset()`` followed by ``append_tail`` for every
        chunk, so later incremental tails continue exactly where this view
        leaves off.
        """
        self.reset()
        return "".join(self.append_tail(c) for c in chunks)

