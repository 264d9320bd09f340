"""Type definitions for Serial Hex Terminal."""

from __future__ import annotations

import dataclasses
import enum
from typing import Tuple

from . import (
    SERIAL_BAUD_RATE,
    SERIAL_DATA_BITS,
    SERIAL_FLOW_CONTROL,
    SERIAL_PARITY,
    SERIAL_STOP_BITS,
)
from .exceptions import LineConfigError

# One arrival unit of inbound bytes
Chunk = bytes
ChunkSequence = Tuple[bytes, ...]


class ConnectionState(enum.Enum):
    """Lifecycle states of a connection session."""
    CLOSED = "closed"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"


class ViewMode(enum.Enum):
    """How the inbound log is displayed."""
    HEX = "hex"
    TEXT = "text"


class Parity(enum.Enum):
    NONE = "none"
    EVEN = "even"
    ODD = "odd"


class FlowControl(enum.Enum):
    NONE = "none"
    HARDWARE = "hardware"


_VALID_DATA_BITS = (7, 8)
_VALID_STOP_BITS = (1, 2)


@dataclasses.dataclass(frozen=True)
class LineConfig:
    """Serial line parameters applied when a transport is opened.

    Attributes:
        baud_rate: Positive integer.  No upper bound is enforced here; rates
            the hardware refuses surface as ``TransportOpenError`` on open.
        data_bits: 7 or 8.
        stop_bits: 1 or 2.
        parity: ``Parity.NONE``, ``Parity.EVEN`` or ``Parity.ODD``.
        flow_control: ``FlowControl.NONE`` or ``FlowControl.HARDWARE`` (RTS/CTS).

    Raises:
        LineConfigError: If any value is outside the supported set.
    """
    baud_rate: int = SERIAL_BAUD_RATE
    data_bits: int = SERIAL_DATA_BITS
    stop_bits: int = SERIAL_STOP_BITS
    parity: Parity = Parity(SERIAL_PARITY)
    flow_control: FlowControl = FlowControl(SERIAL_FLOW_CONTROL)

    def __post_init__(self) -> None:
        if isinstance(self.baud_rate, bool) or not isinstance(self.baud_rate, int) \
                or self.baud_rate <= 0:
            raise LineConfigError(
                f"Invalid baud rate {self.baud_rate!r}. "
                f"Baud rate must be a positive integer. "
                f"Common values: 9600, 19200, 38400, 57600, 115200."
            )
        if self.data_bits not in _VALID_DATA_BITS:
            raise LineConfigError(
                f"Invalid data bits {self.data_bits!r}. Must be one of: 7, 8."
            )
        if self.stop_bits not in _VALID_STOP_BITS:
            raise LineConfigError(
                f"Invalid stop bits {self.stop_bits!r}. Must be one of: 1, 2."
            )
        if not isinstance(self.parity, Parity):
            raise LineConfigError(f"Invalid parity {self.parity!r}.")
        if not isinstance(self.flow_control, FlowControl):
            raise LineConfigError(f"Invalid flow control {self.flow_control!r}.")

    @classmethod
    def default(cls) -> LineConfig:
        """Config built from the package defaults (``SERIAL_BAUD_RATE`` and friends)."""
        return cls.from_strings()

    @classmethod
    def from_strings(
        cls,
        baud_rate: int = SERIAL_BAUD_RATE,
        data_bits: int = SERIAL_DATA_BITS,
        stop_bits: int = SERIAL_STOP_BITS,
        parity: str = SERIAL_PARITY,
        flow_control: str = SERIAL_FLOW_CONTROL,
    ) -> LineConfig:
        """Build a config from the spellings used on the command line."""
        try:
            parity_value = Parity(parity.lower())
        except ValueError as exc:
            valid = ", ".join(f'"{p.value}"' for p in Parity)
            raise LineConfigError(
                f"Invalid parity {parity!r}. Must be one of: {valid}."
            ) from exc
        try:
            flow_value = FlowControl(flow_control.lower())
        except ValueError as exc:
            valid = ", ".join(f'"{f.value}"' for f in FlowControl)
            raise LineConfigError(
                f"Invalid flow control {flow_control!r}. Must be one of: {valid}."
            ) from exc
        return cls(
            baud_rate=baud_rate,
            data_bits=data_bits,
            stop_bits=stop_bits,
            parity=parity_value,
            flow_control=flow_value,
        )

    def describe(self) -> str:
        """Short form such as ``115200 8N1`` (with ``+RTS/CTS`` when enabled)."""
        flow = "+RTS/CTS" if self.flow_control is FlowControl.HARDWARE else ""
        return (
            f"{self.baud_rate} {self.data_bits}"
            f"{self.parity.value[0].upper()}{self.stop_bits}{flow}"
        )
