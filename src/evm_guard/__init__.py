"""
evm-agent-guard: pre-signing transaction firewall for autonomous EVM agents.

Usage:
    from evm_guard import FirewallConfig, TransactionFirewall, TransactionIntent, parse_ether
"""

from evm_guard.core.models import (
    FirewallDecision,
    SimulationOutcome,
    TransactionIntent,
    format_wei,
    parse_ether,
)
from evm_guard.core.rpc import EvmRpc
from evm_guard.firewall.config import FirewallConfig
from evm_guard.firewall.pipeline import TransactionFirewall

__version__ = "0.1.0"
__all__ = [
    "EvmRpc",
    "FirewallConfig",
    "FirewallDecision",
    "SimulationOutcome",
    "TransactionFirewall",
    "TransactionIntent",
    "format_wei",
    "parse_ether",
]
