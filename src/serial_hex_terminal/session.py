"""Connection session: lifecycle, background read loop and write path.

A ``ConnectionSession`` owns exactly one transport (the device handle) from
the moment a connect starts until the session is closed again::

    CLOSED --connect--> OPENING --open ok--> OPEN --disconnect--> CLOSING --> CLOSED
                           |                  |
                           +--open failed-----+--read error / end-of-stream--> CLOSED

While OPEN a background thread drains inbound chunks into the session's
``ByteBuffer`` and ``StreamRenderer`` and publishes the rendered tail to the
observer.  Only one session in the process may be active at a time.

Example::

    class Printer(SessionObserver):
        def on_chunk_appended(self, tail_text):
            print(tail_text, end="", flush=True)

    with ConnectionSession(observer=Printer()) as session:
        session.connect(PySerialTransport("/dev/ttyUSB0"), LineConfig(baud_rate=9600))
        session.send_hex("0x41 42,43")
        ...
"""

from __future__ import annotations

import logging
import threading
from typing import ClassVar, Optional

from typeguard import typechecked

from .byte_buffer import ByteBuffer
from .exceptions import (
    AlreadyOpenError,
    HexParseError,
    NotConnectedError,
    TransportError,
    TransportOpenError,
    TransportReadError,
)
from .hex_codec import parse_hex_text
from .renderer import StreamRenderer
from .transport import OutboundWriter, Transport
from .types import ConnectionState, LineConfig, ViewMode

logger = logging.getLogger("serial_hex_terminal.session")


class SessionObserver:
    """Receives session events.  Override only the callbacks you need.

    Callbacks run on whichever thread produced the event: state changes and
    status messages may come from the background read thread.  Tails and full
    renders are published while the session view is locked, so they arrive
    in the order the view changed; these two callbacks must not call back
    into the session's view operations.
    """

    def on_state_changed(self, state: ConnectionState) -> None:
        pass

    def on_chunk_appended(self, tail_text: str) -> None:
        pass

    def on_full_render(self, text: str) -> None:
        pass

    def on_status(self, message: str) -> None:
        pass


@typechecked
class ConnectionSession:
    """One connection to a serial endpoint plus its inbound log."""

    _active_lock: ClassVar[threading.Lock] = threading.Lock()
    _active_session: ClassVar[Optional["ConnectionSession"]] = None

    def __init__(
        self,
        observer: Optional[SessionObserver] = None,
        view_mode: ViewMode = ViewMode.HEX,
    ) -> None:
        self.observer = observer if observer is not None else SessionObserver()
        self.buffer = ByteBuffer()
        self.renderer = StreamRenderer(view_mode)
        self.buffer.add_clear_listener(self.renderer.reset)

        self._state = ConnectionState.CLOSED
        self._state_lock = threading.RLock()
        self._closed = threading.Condition(self._state_lock)
        self._view_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._transport: Optional[Transport] = None
        self._writer: Optional[OutboundWriter] = None
        self._reader: Optional[threading.Thread] = None
        self._teardown_thread: Optional[threading.Thread] = None
        self._line_config: Optional[LineConfig] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def line_config(self) -> Optional[LineConfig]:
        return self._line_config

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.info("[SESSION-STATE] %s -> %s", self._state.value, state.value)
        self._state = state
        self._notify("on_state_changed", state)

    def _notify(self, callback: str, *args: object) -> None:
        try:
            getattr(self.observer, callback)(*args)
        except Exception as exc:
            logger.warning(
                "[SESSION-OBSERVER] %s raised %s: %s",
                callback, type(exc).__name__, exc,
            )

    def _status(self, message: str) -> None:
        self._notify("on_status", message)

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------

    def connect(self, transport: Transport, line_config: LineConfig) -> None:
        """Open *transport* with *line_config* and start the read loop.

        Raises:
            AlreadyOpenError: If this session is not closed or another session
                in the process is active.  The active session is left untouched.
            TransportOpenError: If the transport cannot be opened.  The session
                is back in CLOSED when this is raised.
        """
        with self._state_lock:
            if self._state is not ConnectionState.CLOSED:
                raise AlreadyOpenError(
                    f"Cannot connect to {transport.name}: session is already "
                    f"{self._state.value}. Disconnect first."
                )
            with ConnectionSession._active_lock:
                active = ConnectionSession._active_session
                if active is not None and active is not self:
                    active_name = active.transport.name if active.transport else "?"
                    raise AlreadyOpenError(
                        f"Cannot connect to {transport.name}: another session is "
                        f"already active on {active_name}."
                    )
                ConnectionSession._active_session = self
            self._transport = transport
            self._set_state(ConnectionState.OPENING)

        logger.info(
            "[SESSION-CONNECT] Opening %s (%s)", transport.name, line_config.describe(),
        )
        try:
            transport.open(line_config)
        except Exception as exc:
            if isinstance(exc, TransportOpenError):
                error = exc
            else:
                error = TransportOpenError(
                    f"Failed to open {transport.name}: {exc}", reason=str(exc),
                )
            logger.error("[SESSION-CONNECT] FAILED — %s", error)
            self._release()
            self._status(f"Connect failed: {error.reason}")
            if error is exc:
                raise
            raise error from exc

        with self._state_lock:
            self._line_config = line_config
            self._reader = threading.Thread(
                target=self._read_loop,
                args=(transport,),
                name=f"serial-reader-{transport.name}",
                daemon=True,
            )
            self._set_state(ConnectionState.OPEN)
            self._reader.start()
        self._status(f"Connected to {transport.name} ({line_config.describe()}).")

    def disconnect(self) -> None:
        """Close the session.

        Teardown is best-effort: cancelling the read, closing the writer and
        closing the transport are attempted independently and their failures
        are logged, never raised.  Returns once the read thread has stopped
        and the session is CLOSED.  Calling this on a closed session is a
        no-op.  If the session is already closing (for example after a read
        error) this waits for that teardown to reach CLOSED, unless it is
        called from the thread doing the teardown.
        """
        with self._state_lock:
            if self._state is ConnectionState.CLOSING:
                current = threading.current_thread()
                if current is self._teardown_thread or current is self._reader:
                    logger.debug("[SESSION-DISCONNECT] Ignored during own teardown")
                    return
                logger.debug("[SESSION-DISCONNECT] Waiting for teardown in progress")
                self._closed.wait_for(lambda: self._state is not ConnectionState.CLOSING)
                return
            if self._state is not ConnectionState.OPEN:
                logger.debug(
                    "[SESSION-DISCONNECT] Ignored in state %s", self._state.value,
                )
                return
            self._teardown_thread = threading.current_thread()
            self._set_state(ConnectionState.CLOSING)
            transport = self._transport
            reader = self._reader

        logger.info("[SESSION-DISCONNECT] Closing %s", transport.name)
        transport_closed = False

        try:
            transport.cancel_read()
        except NotImplementedError:
            logger.debug(
                "[SESSION-DISCONNECT] %s cannot abort reads — closing it to unblock the reader",
                transport.name,
            )
            self._close_transport(transport)
            transport_closed = True
        except Exception as exc:
            logger.warning(
                "[SESSION-DISCONNECT] cancel_read on %s failed: %s — closing it instead",
                transport.name, exc,
            )
            self._close_transport(transport)
            transport_closed = True

        if reader is not None and reader is not threading.current_thread():
            reader.join()

        self._close_writer()
        if not transport_closed:
            self._close_transport(transport)
        self._release()
        self._status("Disconnected.")

    def _close_writer(self) -> None:
        # Waits for an in-flight send to finish
        with self._write_lock:
            writer, self._writer = self._writer, None
            if writer is None:
                return
            try:
                writer.close()
            except Exception as exc:
                logger.warning("[SESSION-TEARDOWN] Error closing writer: %s", exc)

    @staticmethod
    def _close_transport(transport: Transport) -> None:
        try:
            transport.close()
        except Exception as exc:
            logger.warning(
                "[SESSION-TEARDOWN] Error closing transport %s: %s", transport.name, exc,
            )

    def _release(self) -> None:
        with self._state_lock:
            self._transport = None
            self._reader = None
            self._line_config = None
            self._teardown_thread = None
            with ConnectionSession._active_lock:
                if ConnectionSession._active_session is self:
                    ConnectionSession._active_session = None
            self._set_state(ConnectionState.CLOSED)
            self._closed.notify_all()

    # ------------------------------------------------------------------
    # Read loop
    # ------------------------------------------------------------------

    def _read_loop(self, transport: Transport) -> None:
        logger.info("[SESSION-READ] Read loop started on %s", transport.name)
        error: Optional[TransportReadError] = None
        chunks = 0

        try:
            while True:
                chunk = transport.read_chunk()
                if chunk is None:
                    break
                if not chunk:
                    continue
                chunks += 1
                self._deliver(chunk)
        except TransportReadError as exc:
            error = exc
        except Exception as exc:
            error = TransportReadError(
                f"Unexpected read failure on {transport.name}: {exc}", reason=str(exc),
            )

        logger.info(
            "[SESSION-READ] Read loop on %s finished after %d chunks (%s)",
            transport.name, chunks, "error" if error else "end of stream",
        )
        self._on_reader_exit(transport, error)

    def _deliver(self, chunk: bytes) -> None:
        with self._view_lock:
            self.buffer.append(chunk)
            tail = self.renderer.append_tail(chunk)
            logger.debug(
                "[SESSION-READ] +%d bytes (log %d bytes)", len(chunk), self.buffer.total_bytes,
            )
            # Tails and full renders reach the observer in view order
            if tail:
                self._notify("on_chunk_appended", tail)

    def _on_reader_exit(self, transport: Transport, error: Optional[TransportReadError]) -> None:
        with self._state_lock:
            if self._state is not ConnectionState.OPEN or self._transport is not transport:
                # Requested disconnect: the caller finishes the teardown
                return
            self._teardown_thread = threading.current_thread()
            self._set_state(ConnectionState.CLOSING)

        if error is not None:
            logger.error("[SESSION-READ] FAILED — %s", error)
        self._close_writer()
        self._close_transport(transport)
        self._release()
        if error is not None:
            self._status(f"Read error: {error.reason}")
        else:
            self._status("Device closed the connection.")

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def send(self, data: bytes) -> int:
        """Write *data* to the open transport.

        Sends are serialized; the outbound writer is acquired on first use.
        An empty payload is a no-op.

        Returns:
            Number of bytes written.

        Raises:
            NotConnectedError: If the session is not OPEN.  Nothing is written.
            TransportWriteError: If the transport rejects the write.  The
                session stays open.
        """
        with self._write_lock:
            with self._state_lock:
                if self._state is not ConnectionState.OPEN:
                    raise NotConnectedError(
                        f"Cannot send {len(data)} bytes: session is {self._state.value}. "
                        f"Connect first."
                    )
                transport = self._transport
            if not data:
                return 0
            if self._writer is None:
                self._writer = transport.open_writer()
            self._writer.write(data)

        logger.info("[SESSION-SEND] Sent %d bytes to %s", len(data), transport.name)
        return len(data)

    def send_hex(self, text: str) -> int:
        """Parse hex *text* and send the resulting bytes.

        Reports the outcome through the observer's status channel.

        Returns:
            Number of bytes sent (0 when the text holds no hex digits).

        Raises:
            HexParseError: If the text has an odd number of hex digits.
            NotConnectedError: If the session is not OPEN.
            TransportWriteError: If the transport rejects the write.
        """
        try:
            payload = parse_hex_text(text)
            if not payload:
                self._status("Nothing to send (hex input is empty).")
                return 0
            sent = self.send(payload)
        except (HexParseError, NotConnectedError, TransportError) as exc:
            self._status(f"Send failed: {getattr(exc, 'reason', exc)}")
            raise
        self._status(f"Sent {sent} bytes.")
        return sent

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    @property
    def view_mode(self) -> ViewMode:
        return self.renderer.mode

    def set_view_mode(self, mode: ViewMode) -> str:
        """Switch the view mode and re-render the whole log."""
        with self._view_lock:
            self.renderer.set_mode(mode)
            text = self.renderer.refresh(self.buffer.snapshot())
            self._notify("on_full_render", text)
        return text

    def clear_log(self) -> str:
        """Drop all received chunks and re-render the (now empty) view."""
        with self._view_lock:
            self.buffer.clear()
            text = self.renderer.refresh(self.buffer.snapshot())
            self._notify("on_full_render", text)
        return text

    def render_view(self) -> str:
        """Re-render the whole log in the current mode."""
        with self._view_lock:
            text = self.renderer.refresh(self.buffer.snapshot())
            self._notify("on_full_render", text)
        return text

    # ---- Context manager ----

    def __enter__(self) -> ConnectionSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.disconnect()
