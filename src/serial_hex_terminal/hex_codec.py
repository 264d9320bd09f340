"""Conversion between raw bytes and hex text.

``bytes_to_hex_groups`` is the display form used by the hex view
(``"41 42 43"``).  ``parse_hex_text`` accepts the loose form people actually
type into a terminal: ``0x`` prefixes, commas, spaces, newlines and
underscores are all tolerated, but the remaining digits must pair up.
"""

from __future__ import annotations

import logging
import re

from typeguard import typechecked

from .exceptions import HexParseError

logger = logging.getLogger("serial_hex_terminal.hex_codec")

# "0x"/"0X" anywhere in the text, not only at group starts
_PREFIX_RE = re.compile(r"0x", re.IGNORECASE)
_NON_HEX_RE = re.compile(r"[^0-9a-fA-F]")


@typechecked
def bytes_to_hex_groups(data: bytes) -> str:
    """Render *data* as two uppercase hex digits per byte, space separated.

    Empty input renders as an empty string.
    """
    return data.hex(" ").upper() if data else ""


@typechecked
def clean_hex_text(text: str) -> str:
    """Strip ``0x`` prefixes and every non-hex character from *text*."""
    return _NON_HEX_RE.sub("", _PREFIX_RE.sub("", text))


@typechecked
def parse_hex_text(text: str) -> bytes:
    """Parse user-authored hex text into bytes.

    Args:
        text: Hex text such as ``"0x41 42,43"`` or ``"de:ad:be:ef"``.

    Returns:
        The parsed bytes.  Empty or whitespace-only input yields ``b""``.

    Raises:
        HexParseError: If an odd number of hex digits remains after cleaning.
            No partial output is produced.
    """
    if not text or not text.strip():
        return b""

    digits = clean_hex_text(text)
    if len(digits) % 2 != 0:
        msg = (
            f"Odd number of hex digits after cleaning input "
            f"({len(digits)} digits). Every byte needs exactly two digits."
        )
        logger.debug("[HEX-PARSE] Rejected %r — %s", text, msg)
        raise HexParseError(
            msg, kind=HexParseError.ODD_DIGIT_COUNT, digit_count=len(digits),
        )

    payload = bytes.fromhex(digits)
    logger.debug("[HEX-PARSE] Parsed %d bytes from %d characters", len(payload), len(text))
    return payload
