"""Custom exceptions for serial sessions, transports and hex parsing."""

from __future__ import annotations


class SerialTerminalError(Exception):
    """Common base exception for all serial_hex_terminal errors."""
    pass


class SessionStateError(SerialTerminalError):
    """Exception for operations issued in the wrong session state."""
    pass


class AlreadyOpenError(SessionStateError):
    """Raised when connecting while a session is already opening or open."""
    pass


class NotConnectedError(SessionStateError):
    """Raised when sending while the session is not open."""
    pass


class TransportError(SerialTerminalError):
    """Base exception for failures reported by the underlying transport.

    Attributes:
        reason: Short, human-readable cause as reported by the transport
            (OS error text, driver message, ...).
    """

    def __init__(self, message: str, *, reason: str = "") -> None:
        super().__init__(message)
        self.reason = reason or message


class TransportOpenError(TransportError):
    """Exception for a transport that could not be opened or configured.

    Raised for missing devices, permission problems, and line settings the
    hardware refuses (for example an unsupported baud rate).
    """
    pass


class TransportReadError(TransportError):
    """Exception for a fatal inbound read failure.

    Ends the read loop and forces the session closed.
    """
    pass


class TransportWriteError(TransportError):
    """Exception for a failed outbound write.

    Reported to the caller of ``send``; the session stays open.
    """
    pass


class HexParseError(SerialTerminalError, ValueError):
    """Exception for hex text that cannot be turned into bytes.

    Attributes:
        kind: Machine-readable error kind (``"OddDigitCount"``).
        digit_count: Number of hex digits left after cleaning the input.
    """

    ODD_DIGIT_COUNT = "OddDigitCount"

    def __init__(self, message: str, *, kind: str, digit_count: int) -> None:
        super().__init__(message)
        self.kind = kind
        self.digit_count = digit_count


class LineConfigError(SerialTerminalError, ValueError):
    """Exception for line settings outside the supported set."""
    pass


class UserCancelledError(SerialTerminalError):
    """Raised when a port authorization request is dismissed."""
    pass
