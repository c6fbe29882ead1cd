"""
EVM address utilities: normalisation and shape validation.

EVM addresses are 20 bytes, written as ``0x`` + 40 hex digits. Comparison
in the firewall is case-insensitive, so the canonical form is lower-case.
EIP-55 checksums are not verified here.
"""

from __future__ import annotations

import re

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")

ZERO_ADDRESS = "0x" + "00" * 20


class AddressError(Exception):
    """Raised for malformed EVM addresses."""

    pass


def normalize_address(address: str) -> str:
    """
    Canonical lookup key for an address.

    Never raises: malformed input is simply stripped and lower-cased so it
    can still be matched literally against block/allow sets.
    """
    return str(address).strip().lower()


def is_valid_address(address: str) -> bool:
    """True if ``address`` has the shape of a 20-byte hex address."""
    return bool(_ADDRESS_RE.match(normalize_address(address)))


def validate_address(address: str) -> str:
    """
    Validate an address and return its normalised form.

    Raises:
        AddressError: if the address is not ``0x`` + 40 hex digits
    """
    normalized = normalize_address(address)
    if not _ADDRESS_RE.match(normalized):
        raise AddressError(f"Invalid EVM address: {address!r}")
    return normalized
