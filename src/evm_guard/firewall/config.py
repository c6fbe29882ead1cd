"""
Firewall configuration.

Amounts are wei. ``FirewallConfig.from_env()`` builds a config from
``EVM_GUARD_*`` environment variables for the HTTP service.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from evm_guard.core.address import AddressError, validate_address
from evm_guard.core.models import MAX_UINT256, parse_ether
from evm_guard.core.rpc import PUBLIC_RPC_ENDPOINTS
from evm_guard.firewall.errors import ConfigurationError


@dataclass
class FirewallConfig:
    """
    Configuration for the transaction firewall.

    Args:
        max_period_spend:       Cap on wei committed per accounting period (UTC day)
        max_per_tx_spend:       Cap on wei for a single transaction
        allowed_contracts:      If set, ONLY these destinations pass (allowlist mode)
        blocked_contracts:      Always blocked, in addition to the built-in list
        allow_system_contracts: Honour the built-in safe system contracts
        require_simulation:     Dry-run every transaction before allowing it
        rpc_url:                JSON-RPC endpoint; defaults to the chain's public one
        chain:                  Network name ("base" or "mainnet")
        payer_address:          Account whose spend is estimated and limited
        max_retries:            Attempts for the dry-run call
        simulation_timeout:     Overall seconds allowed per simulation
        rpc_timeout:            Seconds per individual RPC request; may not exceed
                                ``simulation_timeout``
    """
    max_period_spend: int
    max_per_tx_spend: int
    allowed_contracts: list[str] | None = None
    blocked_contracts: list[str] = field(default_factory=list)
    allow_system_contracts: bool = True
    require_simulation: bool = True
    rpc_url: str | None = None
    chain: str = "base"
    payer_address: str | None = None
    max_retries: int = 2
    simulation_timeout: float = 10.0
    rpc_timeout: float = 5.0

    def __post_init__(self) -> None:
        for name in ("max_period_spend", "max_per_tx_spend"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer number of wei, got {value!r}")
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")
            if value > MAX_UINT256:
                raise ConfigurationError(f"{name} exceeds uint256 range")
        if self.chain not in PUBLIC_RPC_ENDPOINTS:
            raise ConfigurationError(
                f"Unknown chain '{self.chain}'. Known: {sorted(PUBLIC_RPC_ENDPOINTS)}"
            )
        if self.max_retries < 1:
            raise ConfigurationError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.simulation_timeout <= 0 or self.rpc_timeout <= 0:
            raise ConfigurationError("Timeouts must be positive")
        if self.rpc_timeout > self.simulation_timeout:
            raise ConfigurationError(
                f"rpc_timeout ({self.rpc_timeout}s) must not exceed simulation_timeout "
                f"({self.simulation_timeout}s)"
            )
        if self.payer_address is not None:
            try:
                validate_address(self.payer_address)
            except AddressError as e:
                raise ConfigurationError(f"payer_address: {e}") from None

    @property
    def chain_id(self) -> int:
        return PUBLIC_RPC_ENDPOINTS[self.chain][0]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FirewallConfig:
        """
        Build a config from environment variables.

        ETH amounts (``EVM_GUARD_MAX_DAILY_ETH``, ``EVM_GUARD_MAX_PER_TX_ETH``)
        are given in ETH; address lists are comma-separated.
        """
        env = os.environ if environ is None else environ

        def _list(key: str) -> list[str] | None:
            raw = env.get(key)
            if raw is None:
                return None
            return [a.strip() for a in raw.split(",") if a.strip()]

        def _flag(key: str, default: bool) -> bool:
            raw = env.get(key)
            if raw is None:
                return default
            return raw.strip().lower() in ("1", "true", "yes", "on")

        try:
            return cls(
                max_period_spend=parse_ether(env.get("EVM_GUARD_MAX_DAILY_ETH", "1.0")),
                max_per_tx_spend=parse_ether(env.get("EVM_GUARD_MAX_PER_TX_ETH", "0.1")),
                allowed_contracts=_list("EVM_GUARD_ALLOWED_CONTRACTS"),
                blocked_contracts=_list("EVM_GUARD_BLOCKED_CONTRACTS") or [],
                allow_system_contracts=_flag("EVM_GUARD_ALLOW_SYSTEM_CONTRACTS", True),
                require_simulation=_flag("EVM_GUARD_REQUIRE_SIMULATION", True),
                rpc_url=env.get("EVM_GUARD_RPC_URL"),
                chain=env.get("EVM_GUARD_CHAIN", "base"),
                payer_address=env.get("EVM_GUARD_PAYER_ADDRESS"),
                max_retries=int(env.get("EVM_GUARD_MAX_RETRIES", "2")),
                simulation_timeout=float(env.get("EVM_GUARD_SIMULATION_TIMEOUT", "10")),
                rpc_timeout=float(env.get("EVM_GUARD_RPC_TIMEOUT", "5")),
            )
        except ArithmeticError as e:
            raise ConfigurationError(f"Invalid ETH amount in environment: {e}") from None
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment value: {e}") from None
