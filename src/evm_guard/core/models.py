"""
Core data models for the transaction firewall.
All amounts are in wei (1 ETH = 10**18 wei) internally.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

WEI_PER_ETH = 10**18
WEI_PER_GWEI = 10**9
MAX_UINT256 = 2**256 - 1


def parse_ether(amount: str | int | float | Decimal) -> int:
    """Convert an ETH amount (e.g. "0.5") to wei."""
    return int(Decimal(str(amount)) * WEI_PER_ETH)


def format_wei(wei: int) -> str:
    """Human-readable amount: ETH with 4 decimals, or raw wei for dust."""
    if wei >= WEI_PER_ETH // 1000:
        return f"{Decimal(wei) / WEI_PER_ETH:.4f} ETH"
    return f"{wei} wei"


def normalize_hex_data(value: Any) -> str:
    """Return calldata as a lower-case ``0x``-prefixed hex string."""
    if value is None:
        return "0x"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError(f"calldata must be hex string or bytes, got {type(value).__name__}")
    body = value[2:] if value[:2].lower() == "0x" else value
    if len(body) % 2 != 0:
        raise ValueError("calldata hex must have an even number of digits")
    try:
        bytes.fromhex(body)
    except ValueError:
        raise ValueError(f"calldata is not valid hex: {value[:20]}...") from None
    return "0x" + body.lower()


class ContractStatus(str, Enum):
    BLOCKED = "blocked"
    SYSTEM_SAFE = "system_safe"
    ALLOWED = "allowed"
    NOT_IN_ALLOWLIST = "not_in_allowlist"


class RejectionCode(str, Enum):
    """Machine-checkable reason a transaction was rejected."""
    LIMIT_PER_TX = "limit_per_tx"
    LIMIT_PERIOD = "limit_period"
    CONTRACT_BLOCKED = "contract_blocked"
    CONTRACT_NOT_ALLOWLISTED = "contract_not_allowlisted"
    SIMULATION_INSUFFICIENT_FUNDS = "simulation_insufficient_funds"
    SIMULATION_REVERT = "simulation_revert"
    SIMULATION_TIMEOUT = "simulation_timeout"
    SIMULATION_UNKNOWN = "simulation_unknown"
    INTERNAL_ERROR = "internal_error"


class SimulationFailureKind(str, Enum):
    INSUFFICIENT_FUNDS = "insufficient_funds"
    REVERT = "revert"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    @property
    def rejection_code(self) -> RejectionCode:
        return RejectionCode(f"simulation_{self.value}")


class TransactionIntent(BaseModel):
    """A transaction the agent wants to sign. ``to=None`` means contract creation."""
    model_config = ConfigDict(frozen=True)

    to: str | None = None
    value: int = Field(default=0, ge=0)  # wei
    data: str = "0x"
    sender: str | None = None
    gas: int | None = Field(default=None, ge=0)

    @field_validator("data", mode="before")
    @classmethod
    def _normalize_data(cls, v: Any) -> str:
        return normalize_hex_data(v)

    @property
    def calldata(self) -> bytes:
        return bytes.fromhex(self.data[2:])

    @property
    def has_calldata(self) -> bool:
        return self.data != "0x"


class SimulationError(BaseModel):
    """Classified failure of a dry run."""
    model_config = ConfigDict(frozen=True)

    kind: SimulationFailureKind
    message: str

    @property
    def retryable(self) -> bool:
        # Insufficient funds and reverts are deterministic; retrying cannot help.
        return self.kind == SimulationFailureKind.UNKNOWN


class SimulationOutcome(BaseModel):
    """Result of a pre-flight dry run."""
    model_config = ConfigDict(frozen=True)

    success: bool
    gas_used: int | None = None
    return_data: str | None = None
    warnings: list[str] = Field(default_factory=list)
    error: SimulationError | None = None
    attempts: int = 0


class ContractCheckResult(BaseModel):
    """Classification of one destination address."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    contract_address: str
    status: ContractStatus


class SpendCheck(BaseModel):
    """Answer from the spend ledger for a prospective amount."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    code: RejectionCode | None = None
    current_period_spend: int
    remaining_period: int
    reservation_id: str | None = None


class SpendEstimate(BaseModel):
    """Estimated total outlay (value + gas) of an intent."""
    model_config = ConfigDict(frozen=True)

    estimated_spend: int
    gas_price: int
    gas_estimate: int | None = None
    warnings: list[str] = Field(default_factory=list)


class FirewallDecision(BaseModel):
    """Final verdict of the firewall for one intent."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None
    code: RejectionCode | None = None
    warnings: list[str] = Field(default_factory=list)
    simulation: SimulationOutcome | None = None
    contracts_checked: list[ContractCheckResult] = Field(default_factory=list)
    estimated_spend: int | None = None
    reservation_id: str | None = None

    def to_agent_summary(self) -> str:
        """Human-readable summary for the LLM."""
        if not self.allowed:
            return f"BLOCKED ({self.code.value if self.code else 'unknown'}): {self.reason}"
        parts = ["ALLOWED"]
        if self.estimated_spend is not None:
            parts.append(f"est. spend {format_wei(self.estimated_spend)}")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warning(s): " + "; ".join(self.warnings))
        return ", ".join(parts)
