"""Serial transports used by a connection session.

``Transport`` and ``OutboundWriter`` define the contract a session relies on;
``PySerialTransport`` implements it on top of pyserial.

Cross-platform: works on both Windows 10 (COMx) and Ubuntu 24.04
(/dev/ttyUSB*, /dev/ttyS*, /dev/ttyACM*).

Reads block until at least one byte arrives, then drain whatever else is
already waiting so the caller sees the same chunking the driver delivers.
A pending read is aborted with ``cancel_read()``; the aborted read reports
end-of-stream.
"""

from __future__ import annotations

import abc
import logging
import platform
import threading
from typing import Optional

import serial
import serial.tools.list_ports
from typeguard import typechecked

from . import SERIAL_READ_CHUNK_SIZE, SERIAL_WRITE_TIMEOUT
from .exceptions import (
    TransportOpenError,
    TransportReadError,
    TransportWriteError,
)
from .types import FlowControl, LineConfig, Parity

logger = logging.getLogger("serial_hex_terminal.transport")

_IS_WINDOWS = platform.system() == "Windows"

# Map parity values to pyserial constants
_PARITY_MAP = {
    Parity.NONE: serial.PARITY_NONE,
    Parity.EVEN: serial.PARITY_EVEN,
    Parity.ODD: serial.PARITY_ODD,
}

# Map integer stopbits to pyserial constants
_STOPBITS_MAP = {
    1: serial.STOPBITS_ONE,
    2: serial.STOPBITS_TWO,
}

# Map integer bytesize to pyserial constants
_BYTESIZE_MAP = {
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class OutboundWriter(abc.ABC):
    """Single outbound channel to a transport."""

    @abc.abstractmethod
    def write(self, data: bytes) -> None:
        """Write all of *data*.

        Raises:
            TransportWriteError: If the bytes could not be written.
        """

    @abc.abstractmethod
    def close(self) -> None:
        """Flush pending output and release the channel."""


class Transport(abc.ABC):
    """Byte-oriented link to one serial endpoint (the device handle)."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Identity of the endpoint, used in log and error messages."""

    @abc.abstractmethod
    def open(self, line_config: LineConfig) -> None:
        """Open the link with the given line settings.

        Raises:
            TransportOpenError: If the link cannot be opened or configured.
        """

    @abc.abstractmethod
    def close(self) -> None:
        """Close the link.  Best-effort: never raises."""

    @abc.abstractmethod
    def read_chunk(self) -> Optional[bytes]:
        """Block until inbound bytes are available.

        Returns:
            The next chunk, or ``None`` at end-of-stream (including a read
            aborted by ``cancel_read``).

        Raises:
            TransportReadError: On a fatal link error.
        """

    @abc.abstractmethod
    def cancel_read(self) -> None:
        """Abort a pending ``read_chunk`` call.

        Raises:
            NotImplementedError: If the link cannot abort a read.  Closing the
                transport is then the way to unblock the reader.
        """

    @abc.abstractmethod
    def open_writer(self) -> OutboundWriter:
        """Return the outbound channel for this link."""


# ---------------------------------------------------------------------------
# pyserial implementation
# ---------------------------------------------------------------------------


def _platform_hint() -> str:
    """Return a platform-specific troubleshooting hint."""
    available = ", ".join(p.device for p in serial.tools.list_ports.comports()) or "none"
    if _IS_WINDOWS:
        return (
            "On Windows: verify the COM port number in Device Manager "
            "(Ports → COM & LPT). Ensure no other application (PuTTY, "
            "TeraTerm, Arduino IDE) has the port open. "
            f"Available ports: {available}."
        )
    return (
        "On Linux: verify the device path exists (ls /dev/ttyUSB* /dev/ttyACM* "
        "/dev/ttyS*). Ensure your user is in the 'dialout' group "
        "(sudo usermod -aG dialout $USER) and that no other process "
        "(minicom, screen, picocom) has the port open. "
        f"Available ports: {available}."
    )


class SerialWriter(OutboundWriter):
    """Outbound channel over an open ``serial.Serial``."""

    def __init__(self, ser: serial.Serial, port_name: str) -> None:
        self._serial = ser
        self._port_name = port_name

    def write(self, data: bytes) -> None:
        """Write *all* bytes and flush the OS transmit buffer.

        With a blocking ``write_timeout`` pyserial loops internally until every
        byte has been accepted by the driver.  A short write therefore means
        the timeout expired with the kernel buffer still full.
        """
        try:
            n = self._serial.write(data)
            if n != len(data):
                raise TransportWriteError(
                    f"Short write on {self._port_name}: wrote {n}/{len(data)} bytes. "
                    f"The device is not draining its input (check flow control).",
                    reason=f"short write ({n}/{len(data)} bytes)",
                )
            self._serial.flush()
        except serial.SerialTimeoutException as exc:
            msg = (
                f"Write to {self._port_name} timed out after sending part of "
                f"{len(data)} bytes: {exc}. With hardware flow control enabled "
                f"the device may be holding CTS low."
            )
            logger.error("[SERIAL-WRITE] TIMEOUT — %s", msg)
            raise TransportWriteError(msg, reason=str(exc)) from exc
        except serial.SerialException as exc:
            msg = (
                f"Failed to write {len(data)} bytes to {self._port_name}: {exc}. "
                f"The device may have been disconnected."
            )
            logger.error("[SERIAL-WRITE] ERROR — %s", msg)
            raise TransportWriteError(msg, reason=str(exc)) from exc
        except OSError as exc:
            msg = (
                f"OS error writing {len(data)} bytes to {self._port_name}: {exc}. "
                f"The device may have been physically removed."
            )
            logger.error("[SERIAL-WRITE] OS ERROR — %s", msg)
            raise TransportWriteError(msg, reason=str(exc)) from exc

        logger.debug("[SERIAL-WRITE] Wrote %d bytes to %s", n, self._port_name)

    def close(self) -> None:
        if self._serial.is_open:
            self._serial.flush()
        logger.debug("[SERIAL-WRITE] Writer for %s closed", self._port_name)


@typechecked
class PySerialTransport(Transport):
    """Transport over a local serial port using pyserial.

    Example::

        transport = PySerialTransport("/dev/ttyUSB0")
        transport.open(LineConfig(baud_rate=9600))
        chunk = transport.read_chunk()
        transport.close()
    """

    def __init__(
        self,
        port: str,
        write_timeout: Optional[float] = SERIAL_WRITE_TIMEOUT,
        read_chunk_size: int = SERIAL_READ_CHUNK_SIZE,
    ) -> None:
        """Initialize the transport without opening the port.

        Args:
            port: Serial port path — e.g. ``/dev/ttyUSB0`` (Linux) or ``COM3`` (Windows).
            write_timeout: Write timeout in seconds.  Default: 10 (blocking with
                          failsafe).  ``None`` means block forever.
            read_chunk_size: Upper bound on bytes returned by one ``read_chunk``.
        """
        if read_chunk_size <= 0:
            raise ValueError(f"read_chunk_size must be positive, got {read_chunk_size}")
        self.port = port
        self.write_timeout = write_timeout
        self.read_chunk_size = read_chunk_size
        self._serial: Optional[serial.Serial] = None
        self._read_cancelled = threading.Event()

    @property
    def name(self) -> str:
        return self.port

    def open(self, line_config: LineConfig) -> None:
        if self._serial is not None and self._serial.is_open:
            raise TransportOpenError(
                f"Serial port {self.port} is already open.", reason="already open",
            )

        logger.info(
            "[SERIAL-OPEN] Opening %s at %s ...", self.port, line_config.describe(),
        )
        self._read_cancelled.clear()

        try:
            # timeout=None: read() blocks until data arrives or cancel_read()
            self._serial = serial.Serial(
                port=self.port,
                baudrate=line_config.baud_rate,
                bytesize=_BYTESIZE_MAP[line_config.data_bits],
                parity=_PARITY_MAP[line_config.parity],
                stopbits=_STOPBITS_MAP[line_config.stop_bits],
                timeout=None,
                write_timeout=self.write_timeout,
                rtscts=line_config.flow_control is FlowControl.HARDWARE,
            )
        except (serial.SerialException, ValueError) as exc:
            msg = (
                f"Failed to open serial port {self.port} at {line_config.describe()}: {exc}. "
                f"{_platform_hint()}"
            )
            logger.error("[SERIAL-OPEN] FAILED — %s", msg)
            raise TransportOpenError(msg, reason=str(exc)) from exc
        except OSError as exc:
            msg = f"OS error opening serial port {self.port}: {exc}. {_platform_hint()}"
            logger.error("[SERIAL-OPEN] OS ERROR — %s", msg)
            raise TransportOpenError(msg, reason=str(exc)) from exc

        logger.info("[SERIAL-OPEN] Successfully opened %s", self.port)

    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def close(self) -> None:
        was_open = self.is_open()

        if self._serial is not None:
            try:
                self._serial.close()
            except Exception as exc:
                logger.warning(
                    "[SERIAL-CLOSE] Error closing port %s: %s", self.port, exc,
                )
            finally:
                self._serial = None

        if was_open:
            logger.info("[SERIAL-CLOSE] Closed %s", self.port)
        else:
            logger.debug(
                "[SERIAL-CLOSE] close() called on already-closed port %s", self.port,
            )

    def read_chunk(self) -> Optional[bytes]:
        ser = self._serial
        if ser is None or not ser.is_open:
            return None

        try:
            data = ser.read(1)
            if not data:
                # Only an aborted blocking read comes back empty
                logger.debug(
                    "[SERIAL-READ] Read on %s returned no data (cancelled=%s)",
                    self.port, self._read_cancelled.is_set(),
                )
                return None
            waiting = ser.in_waiting
            if waiting > 0:
                data += ser.read(min(waiting, self.read_chunk_size - 1))
        except serial.SerialException as exc:
            if self._read_cancelled.is_set():
                return None
            msg = (
                f"Serial read error on {self.port}: {exc}. "
                f"The device may have been disconnected during the read."
            )
            logger.error("[SERIAL-READ] ERROR — %s", msg)
            raise TransportReadError(msg, reason=str(exc)) from exc
        except (OSError, TypeError, AttributeError) as exc:
            # TypeError/AttributeError: the port was closed under a blocked read
            if self._read_cancelled.is_set():
                return None
            msg = (
                f"OS error reading from {self.port}: {exc}. "
                f"The device may have been physically removed."
            )
            logger.error("[SERIAL-READ] OS ERROR — %s", msg)
            raise TransportReadError(msg, reason=str(exc)) from exc

        logger.debug("[SERIAL-READ] +%d bytes from %s", len(data), self.port)
        return bytes(data)

    def cancel_read(self) -> None:
        ser = self._serial
        if ser is None:
            return
        cancel = getattr(ser, "cancel_read", None)
        if cancel is None:
            raise NotImplementedError(
                f"{type(ser).__name__} on {self.port} cannot abort a pending read"
            )
        self._read_cancelled.set()
        cancel()
        logger.debug("[SERIAL-READ] Pending read on %s cancelled", self.port)

    def open_writer(self) -> OutboundWriter:
        ser = self._serial
        if ser is None or not ser.is_open:
            raise TransportWriteError(
                f"Cannot write to serial port {self.port}: port is not open.",
                reason="port is not open",
            )
        return SerialWriter(ser, self.port)

    # ---- Context manager ----

    def __enter__(self) -> PySerialTransport:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        self.close()
