"""Serial port registry: which endpoints the user has authorized.

A port becomes usable once it has been authorized, either up front (ports
named on the command line or in the environment) or through an
authorization request that lets a chooser pick among the ports currently
attached.  Authorizations are kept in memory only.

Vendor and product identifiers are carried for display; the registry never
interprets them beyond filter matching.
"""

from __future__ import annotations

import abc
import dataclasses
import logging
from typing import Callable, Iterable, List, Optional, Sequence

import serial.tools.list_ports
from typeguard import typechecked

from .exceptions import UserCancelledError

logger = logging.getLogger("serial_hex_terminal.registry")


@dataclasses.dataclass(frozen=True)
class DeviceDescriptor:
    """Describes one serial endpoint.

    Attributes:
        identity: Opaque identity used to open the endpoint (device path or
            COM port name).
        vendor_id: USB vendor id, if known.
        product_id: USB product id, if known.
        description: Free-form description reported by the OS.
    """
    identity: str
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None
    description: str = ""

    @property
    def label(self) -> str:
        """Display label, e.g. ``/dev/ttyACM0 (VID:PID 2341:0043)``."""
        if self.vendor_id is not None and self.product_id is not None:
            return f"{self.identity} (VID:PID {self.vendor_id:04x}:{self.product_id:04x})"
        return self.identity


@dataclasses.dataclass(frozen=True)
class PortFilter:
    """Restricts authorization candidates by USB identifiers."""
    vendor_id: Optional[int] = None
    product_id: Optional[int] = None

    def matches(self, descriptor: DeviceDescriptor) -> bool:
        if self.vendor_id is not None and descriptor.vendor_id != self.vendor_id:
            return False
        if self.product_id is not None and descriptor.product_id != self.product_id:
            return False
        return True


# Picks one of the offered descriptors, or None when the user dismisses the prompt
PortChooser = Callable[[Sequence[DeviceDescriptor]], Optional[DeviceDescriptor]]


class PortRegistry(abc.ABC):
    """Source of device descriptors for a connection session."""

    @abc.abstractmethod
    def list_authorized(self) -> List[DeviceDescriptor]:
        """Return previously authorized endpoints that are currently present."""

    @abc.abstractmethod
    def request_authorization(self, port_filter: PortFilter = PortFilter()) -> DeviceDescriptor:
        """Ask for a new endpoint to be authorized.

        Raises:
            UserCancelledError: If the request is dismissed.
        """


@typechecked
class SerialPortRegistry(PortRegistry):
    """Registry backed by the ports pyserial can enumerate.

    Example::

        registry = SerialPortRegistry(chooser=lambda ports: ports[0] if ports else None)
        descriptor = registry.request_authorization(PortFilter(vendor_id=0x2341))
        transport = PySerialTransport(descriptor.identity)
    """

    def __init__(
        self,
        chooser: Optional[PortChooser] = None,
        authorized: Iterable[str] = (),
    ) -> None:
        self.chooser = chooser
        self._authorized = set(authorized)

    def list_available(self) -> List[DeviceDescriptor]:
        """Return every serial port visible to the operating system."""
        descriptors = []
        for p in serial.tools.list_ports.comports():
            descriptor = DeviceDescriptor(
                identity=p.device,
                vendor_id=p.vid,
                product_id=p.pid,
                description=p.description or "",
            )
            logger.debug("[PORT-LIST] Found port: %s (%s)", descriptor.label, descriptor.description)
            descriptors.append(descriptor)
        return descriptors

    def list_authorized(self) -> List[DeviceDescriptor]:
        present = [d for d in self.list_available() if d.identity in self._authorized]
        logger.info(
            "[PORT-LIST] %d of %d authorized ports present",
            len(present), len(self._authorized),
        )
        return present

    def authorize(self, identity: str) -> None:
        self._authorized.add(identity)

    def request_authorization(self, port_filter: PortFilter = PortFilter()) -> DeviceDescriptor:
        candidates = [d for d in self.list_available() if port_filter.matches(d)]
        if self.chooser is None:
            raise UserCancelledError("No port chooser configured; authorization dismissed.")

        chosen = self.chooser(candidates)
        if chosen is None:
            logger.info("[PORT-AUTH] Authorization dismissed (%d candidates)", len(candidates))
            raise UserCancelledError("Port selection was cancelled.")

        self._authorized.add(chosen.identity)
        logger.info("[PORT-AUTH] Authorized %s", chosen.label)
        return chosen
