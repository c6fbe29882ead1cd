"""
Contract allowlist/blocklist for destination addresses.

Precedence, strictly in order:
  1. blocklist (known malicious + user-supplied)  -> blocked
  2. safe system contracts (if honoured)          -> system_safe
  3. allowlist, when one was configured           -> allowed / not_in_allowlist
  4. no allowlist configured                      -> allowed
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Any

from evm_guard.core.address import ZERO_ADDRESS, normalize_address
from evm_guard.core.models import ContractCheckResult, ContractStatus

# Always blocked regardless of user config
KNOWN_MALICIOUS_CONTRACTS: tuple[str, ...] = (
    ZERO_ADDRESS,  # burns funds; never a legitimate call target
)

# Common system contracts on Base
SAFE_SYSTEM_CONTRACTS: tuple[str, ...] = (
    "0x4200000000000000000000000000000000000006",  # WETH
    "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",  # USDC
    "0xd9aAEc86B65D86f6A7B5B1b0c42FFA531710b6CA",  # USDbC
    "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",  # DAI
    "0x2Ae3F1Ec7F1F5012CFEab0185bfc7aa3cf0DEc22",  # cbETH
    "0x940181a94A35A4569E4529A3CDfB74e38FD98631",  # AERO
)


class AddressSet:
    """A case-insensitive address set that is safe to share between threads."""

    def __init__(self, addresses: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._items = {normalize_address(a) for a in addresses}

    def add(self, address: str) -> None:
        with self._lock:
            self._items.add(normalize_address(address))

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, str):
            return False
        key = normalize_address(address)
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class ContractClassifier:
    """
    Classifies destination addresses as blocked, system-safe or allowed.

    Args:
        allowed_contracts:      If given (even empty), ONLY these contracts pass
                                (plus system contracts, if honoured)
        blocked_contracts:      Added to the built-in malicious list
        allow_system_contracts: Let SAFE_SYSTEM_CONTRACTS through (default True)
    """

    def __init__(
        self,
        allowed_contracts: Iterable[str] | None = None,
        blocked_contracts: Iterable[str] = (),
        allow_system_contracts: bool = True,
    ) -> None:
        self._allowlist = AddressSet(allowed_contracts) if allowed_contracts is not None else None
        self._blocklist = AddressSet([*KNOWN_MALICIOUS_CONTRACTS, *blocked_contracts])
        self._system = AddressSet(SAFE_SYSTEM_CONTRACTS)
        self.allow_system_contracts = allow_system_contracts

    @property
    def allowlist_mode(self) -> bool:
        return self._allowlist is not None

    def classify(self, address: str) -> ContractCheckResult:
        """Classify a single destination address."""
        if address in self._blocklist:
            return ContractCheckResult(
                allowed=False,
                reason=f"Contract {address} is blocked (malicious or user-blocked blocklist entry)",
                contract_address=address,
                status=ContractStatus.BLOCKED,
            )

        if self.allow_system_contracts and address in self._system:
            return ContractCheckResult(
                allowed=True, contract_address=address, status=ContractStatus.SYSTEM_SAFE
            )

        if self._allowlist is not None:
            if address in self._allowlist:
                return ContractCheckResult(
                    allowed=True, contract_address=address, status=ContractStatus.ALLOWED
                )
            return ContractCheckResult(
                allowed=False,
                reason=f"Contract {address} is not in allowlist",
                contract_address=address,
                status=ContractStatus.NOT_IN_ALLOWLIST,
            )

        return ContractCheckResult(
            allowed=True, contract_address=address, status=ContractStatus.ALLOWED
        )

    def classify_all(self, addresses: Iterable[str]) -> list[ContractCheckResult]:
        """Classify several addresses, preserving input order."""
        return [self.classify(a) for a in addresses]

    def block(self, address: str) -> None:
        """Add a contract to the blocklist at runtime."""
        self._blocklist.add(address)

    def allow(self, address: str) -> bool:
        """
        Add a contract to the allowlist at runtime.

        Returns:
            False (and does nothing) when not in allowlist mode
        """
        if self._allowlist is None:
            return False
        self._allowlist.add(address)
        return True

    def status(self) -> dict[str, Any]:
        """Return current allowlist/blocklist status."""
        return {
            "mode": "allowlist" if self.allowlist_mode else "blocklist_only",
            "allowlist_size": len(self._allowlist) if self._allowlist is not None else None,
            "blocklist_size": len(self._blocklist),
        }
