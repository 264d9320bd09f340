"""
Serial Hex Terminal - hex-oriented serial terminal core

This package provides the moving parts of a byte-oriented serial terminal
that runs on Windows 10 or Ubuntu 24.04. It includes:

- **Connection sessions** with a strict closed/opening/open/closing lifecycle
- **Background read loop** that drains inbound bytes without blocking the caller
- **Hex payload parsing** for outbound data typed as hex text
- **Dual-view rendering** of the inbound stream as hex groups or decoded UTF-8
- **Port registry** for authorized serial devices with VID:PID descriptors

Raw bytes in, raw bytes out: no framing, no checksums.
"""

import logging
import os

logging.getLogger("serial_hex_terminal").addHandler(logging.NullHandler())

__version__ = "0.1.0"

# Default serial device path.
# On Windows this is a COM port (COM3, COM4, …).
# On Linux this is a /dev/ttyS*, /dev/ttyUSB*, or /dev/ttyACM* path.
# Override via the SERIAL_TERMINAL_PORT environment variable.
DEFAULT_SERIAL_PORT = os.environ.get("SERIAL_TERMINAL_PORT", "")

# Line settings
SERIAL_BAUD_RATE = int(os.environ.get("SERIAL_TERMINAL_BAUD", "115200"))
SERIAL_DATA_BITS = 8       # 8 data bits
SERIAL_STOP_BITS = 1       # 1 stop bit
SERIAL_PARITY = "none"     # "none" | "even" | "odd"
SERIAL_FLOW_CONTROL = "none"  # "none" | "hardware" (RTS/CTS)

# Transport settings
SERIAL_WRITE_TIMEOUT = 10  # seconds
SERIAL_READ_CHUNK_SIZE = 4096  # upper bound on bytes drained per inbound chunk

# Display settings
DEFAULT_VIEW_MODE = os.environ.get("SERIAL_TERMINAL_VIEW", "hex")  # "hex" | "text"
