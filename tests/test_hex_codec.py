"""
Hex codec test suite.

Run with full visibility:
    pytest tests/test_hex_codec.py -v -s
"""

from __future__ import annotations

import pytest

from serial_hex_terminal.exceptions import HexParseError, SerialTerminalError
from serial_hex_terminal.hex_codec import (
    bytes_to_hex_groups,
    clean_hex_text,
    parse_hex_text,
)

# typeguard 4.x raises TypeCheckError (extends Exception, not TypeError).
try:
    from typeguard import TypeCheckError
    _TYPEGUARD_ERRORS = (TypeError, TypeCheckError)
except ImportError:
    _TYPEGUARD_ERRORS = (TypeError,)


def _report(label, detail=""):
    # type: (str, str) -> None
    if detail:
        print("  [{}] {}".format(label, detail))
    else:
        print("  [{}]".format(label))


# ═══════════════════════════════════════════════════════════════════════════
#  TESTS — bytes_to_hex_groups
# ═══════════════════════════════════════════════════════════════════════════

class TestBytesToHexGroups:
    """Display form: uppercase pairs, single-space separated."""

    def test_basic(self):
        # type: () -> None
        assert bytes_to_hex_groups(b"ABC") == "41 42 43"

    def test_empty(self):
        # type: () -> None
        assert bytes_to_hex_groups(b"") == ""

    def test_single_byte_no_separator(self):
        # type: () -> None
        assert bytes_to_hex_groups(b"\x0a") == "0A"

    def test_uppercase_and_zero_padding(self):
        # type: () -> None
        _report("TEST", "0x00, 0x0f, 0xab, 0xff render padded and uppercase")
        assert bytes_to_hex_groups(bytes([0x00, 0x0F, 0xAB, 0xFF])) == "00 0F AB FF"

    def test_rejects_str(self):
        # type: () -> None
        with pytest.raises(_TYPEGUARD_ERRORS):
            bytes_to_hex_groups("ABC")  # type: ignore[arg-type]


# ═══════════════════════════════════════════════════════════════════════════
#  TESTS — parse_hex_text
# ═══════════════════════════════════════════════════════════════════════════

class TestParseHexText:
    """Loose input, strict digit pairing."""

    def test_mixed_separators_and_prefix(self):
        # type: () -> None
        _report("TEST", "'0x41 42,43' -> b'ABC'")
        assert parse_hex_text("0x41 42,43") == b"ABC"

    @pytest.mark.parametrize("text, expected", [
        ("deadbeef", b"\xde\xad\xbe\xef"),
        ("DE AD BE EF", b"\xde\xad\xbe\xef"),
        ("de:ad:be:ef", b"\xde\xad\xbe\xef"),
        ("0xDE, 0XAD,\n0xbe_0xef", b"\xde\xad\xbe\xef"),
        ("  01\t02\r\n", b"\x01\x02"),
    ])
    def test_accepted_spellings(self, text, expected):
        # type: (str, bytes) -> None
        assert parse_hex_text(text) == expected

    def test_prefix_removed_anywhere(self):
        # type: () -> None
        _report("TEST", "'0x' inside a digit run is removed too")
        assert clean_hex_text("100x20") == "1020"
        assert parse_hex_text("100x20") == b"\x10\x20"

    @pytest.mark.parametrize("text", ["", "   ", "\n\t", "0x", "zz ,, --"])
    def test_no_digits_yields_empty(self, text):
        # type: (str) -> None
        assert parse_hex_text(text) == b""

    @pytest.mark.parametrize("text, digits", [
        ("4", 1),
        ("41 4", 3),
        ("0x41 0x4", 3),
        ("abcde", 5),
    ])
    def test_odd_digit_count(self, text, digits):
        # type: (str, int) -> None
        _report("TEST", "{!r} should be rejected ({} digits)".format(text, digits))
        with pytest.raises(HexParseError) as exc_info:
            parse_hex_text(text)
        assert exc_info.value.kind == HexParseError.ODD_DIGIT_COUNT
        assert exc_info.value.digit_count == digits
        assert "odd" in str(exc_info.value).lower()
        _report("PASS", "Rejected with OddDigitCount")

    def test_parse_error_hierarchy(self):
        # type: () -> None
        assert issubclass(HexParseError, SerialTerminalError)
        assert issubclass(HexParseError, ValueError)

    @pytest.mark.parametrize("data", [
        b"",
        b"\x00",
        b"ABC",
        bytes(range(256)),
        "héllo €".encode("utf-8"),
    ])
    def test_round_trip(self, data):
        # type: (bytes) -> None
        assert parse_hex_text(bytes_to_hex_groups(data)) == data
