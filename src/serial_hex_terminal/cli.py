"""Command-line interface for the serial hex terminal."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Optional, Sequence, TextIO

from . import (
    DEFAULT_SERIAL_PORT,
    DEFAULT_VIEW_MODE,
    SERIAL_BAUD_RATE,
    SERIAL_DATA_BITS,
    SERIAL_FLOW_CONTROL,
    SERIAL_PARITY,
    SERIAL_STOP_BITS,
)
from .exceptions import (
    HexParseError,
    LineConfigError,
    NotConnectedError,
    SerialTerminalError,
    TransportWriteError,
    UserCancelledError,
)
from .registry import DeviceDescriptor, PortFilter, SerialPortRegistry
from .session import ConnectionSession, SessionObserver
from .transport import PySerialTransport
from .types import ConnectionState, LineConfig, ViewMode


class ConsoleObserver(SessionObserver):
    """Prints inbound data to *out* and status lines to *err*."""

    def __init__(
        self,
        out: Optional[TextIO] = None,
        err: Optional[TextIO] = None,
        live: bool = True,
    ) -> None:
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.live = live

    def on_chunk_appended(self, tail_text: str) -> None:
        if self.live:
            self.out.write(tail_text)
            self.out.flush()

    def on_full_render(self, text: str) -> None:
        if self.live:
            self.out.write(f"\n{text}")
            self.out.flush()

    def on_status(self, message: str) -> None:
        print(f"[{message}]", file=self.err, flush=True)

    def on_state_changed(self, state: ConnectionState) -> None:
        if state is ConnectionState.CLOSED and self.live:
            self.out.write("\n")
            self.out.flush()


def prompt_for_port(candidates: Sequence[DeviceDescriptor]) -> Optional[DeviceDescriptor]:
    """Let the user pick a port on the console; an empty answer cancels."""
    if not candidates:
        print("No serial ports found.", file=sys.stderr)
        return None
    for index, descriptor in enumerate(candidates, start=1):
        print(f"  {index}) {descriptor.label}  {descriptor.description}", file=sys.stderr)
    answer = input("Select port number (empty to cancel): ").strip()
    if not answer:
        return None
    try:
        return candidates[int(answer) - 1]
    except (ValueError, IndexError):
        print(f"Invalid selection {answer!r}.", file=sys.stderr)
        return None


def _parse_usb_id(value: str) -> int:
    return int(value, 16)


def line_config_from_args(args) -> LineConfig:
    return LineConfig.from_strings(
        baud_rate=args.baud_rate,
        data_bits=args.data_bits,
        stop_bits=args.stop_bits,
        parity=args.parity,
        flow_control=args.flow_control,
    )


def resolve_port(args) -> str:
    """Pick the port to open.

    An explicit ``--serial-port`` wins.  Otherwise the first authorized port
    that is present is used, and if there is none the user is asked to
    authorize one.

    Raises:
        UserCancelledError: If no port was chosen.
    """
    if args.serial_port:
        return args.serial_port

    registry = SerialPortRegistry(chooser=prompt_for_port)
    if DEFAULT_SERIAL_PORT:
        registry.authorize(DEFAULT_SERIAL_PORT)
    authorized = registry.list_authorized()
    if authorized:
        return authorized[0].identity

    port_filter = PortFilter(vendor_id=args.vid, product_id=args.pid)
    return registry.request_authorization(port_filter).identity


def command_ports(args) -> int:
    """List available serial ports."""
    ports = SerialPortRegistry().list_available()
    if not ports:
        print("No serial ports found.")
    else:
        print("Available serial ports:")
        for p in ports:
            print(f"  {p.label} — {p.description}")
    return 0


def command_send(args) -> int:
    """Send one hex payload, listen for a while, and print what came back."""
    try:
        line_config = line_config_from_args(args)
        port = resolve_port(args)
    except (LineConfigError, UserCancelledError) as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1

    observer = ConsoleObserver(live=False)
    try:
        with ConnectionSession(observer=observer, view_mode=ViewMode(args.view)) as session:
            session.connect(PySerialTransport(port), line_config)
            session.send_hex(args.hex)
            time.sleep(args.listen / 1000.0)
            received = session.renderer.render(session.buffer.snapshot())
        print(received)
        return 0

    except SerialTerminalError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1


def command_terminal(args) -> int:
    """Interactive terminal: hex lines from stdin go out, inbound data is printed live."""
    try:
        line_config = line_config_from_args(args)
        port = resolve_port(args)
    except (LineConfigError, UserCancelledError) as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1

    observer = ConsoleObserver()
    print(
        "Type hex bytes to send (e.g. 0x41 42,43). "
        "Commands: :hex  :text  :clear  :quit",
        file=sys.stderr,
    )

    try:
        with ConnectionSession(observer=observer, view_mode=ViewMode(args.view)) as session:
            session.connect(PySerialTransport(port), line_config)
            for line in sys.stdin:
                command = line.strip()
                if command == ":quit":
                    break
                if command in (":hex", ":text"):
                    session.set_view_mode(ViewMode(command[1:]))
                    continue
                if command == ":clear":
                    session.clear_log()
                    continue
                if not session.is_open():
                    break
                try:
                    session.send_hex(line)
                except (HexParseError, NotConnectedError, TransportWriteError):
                    # Already reported through the observer's status line
                    continue
        return 0

    except KeyboardInterrupt:
        return 0
    except SerialTerminalError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1


def _add_line_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--serial-port", type=str, default=None,
        help="Serial port path (e.g. /dev/ttyUSB0 or COM3). "
             "Overrides SERIAL_TERMINAL_PORT.",
    )
    parser.add_argument(
        "--vid", type=_parse_usb_id, default=None,
        help="Only offer ports with this USB vendor id (hex) when choosing",
    )
    parser.add_argument(
        "--pid", type=_parse_usb_id, default=None,
        help="Only offer ports with this USB product id (hex) when choosing",
    )
    parser.add_argument(
        "--baud-rate", type=int, default=SERIAL_BAUD_RATE,
        help=f"Baud rate (default: {SERIAL_BAUD_RATE})",
    )
    parser.add_argument(
        "--data-bits", type=int, default=SERIAL_DATA_BITS, choices=[7, 8],
        help=f"Data bits (default: {SERIAL_DATA_BITS})",
    )
    parser.add_argument(
        "--stop-bits", type=int, default=SERIAL_STOP_BITS, choices=[1, 2],
        help=f"Stop bits (default: {SERIAL_STOP_BITS})",
    )
    parser.add_argument(
        "--parity", type=str, default=SERIAL_PARITY, choices=["none", "even", "odd"],
        help=f"Parity (default: {SERIAL_PARITY})",
    )
    parser.add_argument(
        "--flow-control", type=str, default=SERIAL_FLOW_CONTROL,
        choices=["none", "hardware"],
        help=f"Flow control; 'hardware' enables RTS/CTS (default: {SERIAL_FLOW_CONTROL})",
    )
    parser.add_argument(
        "--view", type=str, default=DEFAULT_VIEW_MODE, choices=["hex", "text"],
        help=f"How received bytes are shown (default: {DEFAULT_VIEW_MODE})",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Serial Hex Terminal - send hex payloads, watch serial traffic"
    )
    parser.add_argument(
        "--verbose", action="store_true", default=False,
        help="Log library activity to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # List ports
    ports_parser = subparsers.add_parser("ports", help="List available serial ports")
    ports_parser.set_defaults(func=command_ports)

    # One-shot send
    send_parser = subparsers.add_parser(
        "send", help="Send a hex payload and print the response",
    )
    send_parser.add_argument("hex", metavar="HEX", help="Payload as hex text, e.g. '0x41 42,43'")
    send_parser.add_argument(
        "--listen", type=int, default=1000,
        help="How long to collect the response, in milliseconds (default: 1000)",
    )
    _add_line_options(send_parser)
    send_parser.set_defaults(func=command_send)

    # Interactive terminal
    term_parser = subparsers.add_parser("terminal", help="Interactive hex terminal")
    _add_line_options(term_parser)
    term_parser.set_defaults(func=command_terminal)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
            stream=sys.stderr,
        )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
