"""core module init"""
from evm_guard.core.address import (
    ZERO_ADDRESS,
    AddressError,
    is_valid_address,
    normalize_address,
    validate_address,
)
from evm_guard.core.models import (
    MAX_UINT256,
    WEI_PER_ETH,
    WEI_PER_GWEI,
    ContractCheckResult,
    ContractStatus,
    FirewallDecision,
    RejectionCode,
    SimulationError,
    SimulationFailureKind,
    SimulationOutcome,
    SpendCheck,
    SpendEstimate,
    TransactionIntent,
    format_wei,
    parse_ether,
)
from evm_guard.core.rpc import EvmRpc, RpcError, RpcRemoteError, RpcTransportError

__all__ = [
    "AddressError",
    "ContractCheckResult",
    "ContractStatus",
    "EvmRpc",
    "FirewallDecision",
    "MAX_UINT256",
    "RejectionCode",
    "RpcError",
    "RpcRemoteError",
    "RpcTransportError",
    "SimulationError",
    "SimulationFailureKind",
    "SimulationOutcome",
    "SpendCheck",
    "SpendEstimate",
    "TransactionIntent",
    "WEI_PER_ETH",
    "WEI_PER_GWEI",
    "ZERO_ADDRESS",
    "format_wei",
    "is_valid_address",
    "normalize_address",
    "parse_ether",
    "validate_address",
]
