"""firewall module init"""
from evm_guard.firewall.allowlist import (
    KNOWN_MALICIOUS_CONTRACTS,
    SAFE_SYSTEM_CONTRACTS,
    AddressSet,
    ContractClassifier,
)
from evm_guard.firewall.calldata import CalldataRiskScanner, RiskyOperation
from evm_guard.firewall.config import FirewallConfig
from evm_guard.firewall.errors import (
    ConfigurationError,
    FirewallError,
    LedgerOverflowError,
    UnknownReservationError,
)
from evm_guard.firewall.limits import Clock, SpendLedger, SystemClock
from evm_guard.firewall.pipeline import TransactionFirewall
from evm_guard.firewall.simulator import ChainReader, PreflightSimulator

__all__ = [
    "AddressSet",
    "CalldataRiskScanner",
    "ChainReader",
    "Clock",
    "ConfigurationError",
    "ContractClassifier",
    "FirewallConfig",
    "FirewallError",
    "KNOWN_MALICIOUS_CONTRACTS",
    "LedgerOverflowError",
    "PreflightSimulator",
    "RiskyOperation",
    "SAFE_SYSTEM_CONTRACTS",
    "SpendLedger",
    "SystemClock",
    "TransactionFirewall",
    "UnknownReservationError",
]
