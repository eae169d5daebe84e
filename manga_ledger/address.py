"""Participant address helpers"""
import re

from manga_ledger.errors import InvalidAddressError

ZERO_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """
    Validate and lower-case an address.

    Raises:
        InvalidAddressError: If the address is malformed or the zero address
    """
    if not isinstance(address, str) or not _ADDRESS_RE.match(address):
        raise InvalidAddressError(f"Malformed address: {address!r}")

    normalized = address.lower()
    if normalized == ZERO_ADDRESS:
        raise InvalidAddressError("Zero address is not a valid participant")
    return normalized


def is_valid_address(address: str) -> bool:
    """Non-raising variant of normalize_address"""
    try:
        normalize_address(address)
    except InvalidAddressError:
        return False
    return True
