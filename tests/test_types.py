"""
Line configuration test suite.

Run with full visibility:
    pytest tests/test_types.py -v -s
"""

from __future__ import annotations

import dataclasses

import pytest

from serial_hex_terminal.exceptions import LineConfigError, SerialTerminalError
from serial_hex_terminal.types import FlowControl, LineConfig, Parity


def _report(label, detail=""):
    # type: (str, str) -> None
    if detail:
        print("  [{}] {}".format(label, detail))
    else:
        print("  [{}]".format(label))


# ═══════════════════════════════════════════════════════════════════════════
#  TESTS — Parameter validation
# ═══════════════════════════════════════════════════════════════════════════

class TestLineConfigValidation:
    """LineConfig rejects settings outside the supported set."""

    def test_defaults(self):
        # type: () -> None
        _report("TEST", "Default config should be 115200 8N1, no flow control")
        config = LineConfig()
        assert config.baud_rate == 115200
        assert config.data_bits == 8
        assert config.stop_bits == 1
        assert config.parity is Parity.NONE
        assert config.flow_control is FlowControl.NONE
        assert config.describe() == "115200 8N1"
        _report("PASS", "Defaults correct")

    @pytest.mark.parametrize("baud", [0, -1, True])
    def test_invalid_baud_rate(self, baud):
        # type: (object) -> None
        with pytest.raises(LineConfigError) as exc_info:
            LineConfig(baud_rate=baud)  # type: ignore[arg-type]
        assert "baud rate" in str(exc_info.value).lower()

    def test_large_baud_rate_accepted(self):
        # type: () -> None
        assert LineConfig(baud_rate=12_000_000).baud_rate == 12_000_000

    @pytest.mark.parametrize("bits", [5, 6, 9])
    def test_invalid_data_bits(self, bits):
        # type: (int) -> None
        with pytest.raises(LineConfigError) as exc_info:
            LineConfig(data_bits=bits)
        assert "data bits" in str(exc_info.value).lower()

    def test_invalid_stop_bits(self):
        # type: () -> None
        with pytest.raises(LineConfigError) as exc_info:
            LineConfig(stop_bits=3)
        assert "stop bits" in str(exc_info.value).lower()

    def test_parity_must_be_enum(self):
        # type: () -> None
        with pytest.raises(LineConfigError):
            LineConfig(parity="N")  # type: ignore[arg-type]

    def test_error_hierarchy(self):
        # type: () -> None
        assert issubclass(LineConfigError, SerialTerminalError)
        assert issubclass(LineConfigError, ValueError)

    def test_frozen(self):
        # type: () -> None
        config = LineConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.baud_rate = 9600  # type: ignore[misc]


class TestFromStrings:
    """Command-line spellings map onto the enums."""

    def test_all_fields(self):
        # type: () -> None
        config = LineConfig.from_strings(
            baud_rate=9600, data_bits=7, stop_bits=2, parity="Even", flow_control="hardware",
        )
        assert config == LineConfig(
            baud_rate=9600, data_bits=7, stop_bits=2,
            parity=Parity.EVEN, flow_control=FlowControl.HARDWARE,
        )
        assert config.describe() == "9600 7E2+RTS/CTS"

    def test_invalid_parity(self):
        # type: () -> None
        with pytest.raises(LineConfigError) as exc_info:
            LineConfig.from_strings(parity="mark")
        assert "parity" in str(exc_info.value).lower()

    def test_invalid_flow_control(self):
        # type: () -> None
        with pytest.raises(LineConfigError) as exc_info:
            LineConfig.from_strings(flow_control="xonxoff")
        assert "flow control" in str(exc_info.value).lower()

    def test_default_uses_package_constants(self):
        # type: () -> None
        from serial_hex_terminal import (
            SERIAL_BAUD_RATE, SERIAL_DATA_BITS, SERIAL_FLOW_CONTROL, SERIAL_PARITY, SERIAL_STOP_BITS,
        )
        config = LineConfig.default()
        assert config.baud_rate == SERIAL_BAUD_RATE
        assert config.data_bits == SERIAL_DATA_BITS
        assert config.stop_bits == SERIAL_STOP_BITS
        assert config.parity is Parity(SERIAL_PARITY)
        assert config.flow_control is FlowControl(SERIAL_FLOW_CONTROL)
        assert config == LineConfig()
