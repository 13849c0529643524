# utils.py
import re
import logging
from typing import Iterator, List

from errors import InvalidRangeFormat, AddressOutOfRange

logger = logging.getLogger(__name__)

UNKNOWN_MAC = "Unknown"

# ESC, optionally followed by a CSI sequence that ends at the next letter.
_ANSI_PATTERN = re.compile(r"\x1b(?:\[[^A-Za-z]*[A-Za-z]?)?")
# ESC or an unterminated CSI sequence at the very end of a read.
_PARTIAL_ANSI_PATTERN = re.compile(r"\x1b(?:\[[0-9;?]*)?\Z")

def format_mac(mac: str) -> str:
    """Formats a MAC address to uppercase with colons."""
    return mac.upper().replace("-", ":")

def is_valid_ipv4(ip: str) -> bool:
    """Checks if a string is a valid IPv4 address."""
    try:
        parse_ip(ip)
    except InvalidRangeFormat:
        return False
    return True

def parse_ip(ip: str) -> int:
    """Converts a dotted-quad address into its 32-bit integer value.

    Raises:
        InvalidRangeFormat: The text is not four dot-separated decimal groups.
        AddressOutOfRange: A group is larger than 255.
    """
    parts = ip.strip().split(".")
    if len(parts) != 4:
        raise InvalidRangeFormat(f"Invalid IP address: {ip}")

    value = 0
    for index, part in enumerate(parts):
        if not (part.isascii() and part.isdigit()):
            raise InvalidRangeFormat(f"Invalid IP octet: {part!r}")
        octet = int(part)
        if octet > 255:
            raise AddressOutOfRange(f"IP octet out of range: {octet}")
        value |= octet << (24 - index * 8)
    return value

def format_ip(value: int) -> str:
    """Renders a 32-bit integer as a dotted-quad address."""
    return ".".join(str((value >> shift) & 0xFF) for shift in (24, 16, 8, 0))

def iter_range(start: int, end: int) -> Iterator[str]:
    """Yields every address from start to end inclusive, ascending."""
    for value in range(start, end + 1):
        yield format_ip(value)

def enumerate_range(start_ip: str, end_ip: str) -> List[str]:
    """Parses textual bounds and returns the inclusive list of addresses."""
    start = parse_ip(start_ip)
    end = parse_ip(end_ip)
    if start > end:
        raise InvalidRangeFormat(f"Range start {start_ip} is after range end {end_ip}")
    return list(iter_range(start, end))

def strip_ansi_codes(text: str) -> str:
    """Removes ANSI/VT escape sequences and carriage returns."""
    return _ANSI_PATTERN.sub("", text).replace("\r", "")

def split_partial_escape(text: str):
    """Splits off an escape sequence cut short at the end of text.

    Returns (complete, tail); tail is empty unless text ends mid-sequence.
    """
    match = _PARTIAL_ANSI_PATTERN.search(text)
    if match is None:
        return text, ""
    return text[:match.start()], text[match.start():]
