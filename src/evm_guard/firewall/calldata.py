"""
Calldata risk heuristics.

Looks at the 4-byte function selector (and, for some functions, the ABI
encoded arguments) of a transaction's calldata. Purely advisory: findings
are returned as warning strings and never block a transaction.
"""

from __future__ import annotations

from enum import Enum

SELECTOR_SIZE = 4
WORD_SIZE = 32

_MAX_WORD = b"\xff" * WORD_SIZE


class RiskyOperation(Enum):
    """Known high-signal function selectors."""

    APPROVE = ("095ea7b3", "approve - check spender address carefully", True)
    SET_APPROVAL_FOR_ALL = ("a22cb465", "setApprovalForAll - grants full NFT access", True)
    TRANSFER_FROM = ("23b872dd", "transferFrom - ensure authorized", False)
    SAFE_TRANSFER_FROM = ("42842e0e", "safeTransferFrom (NFT)", False)
    WITHDRAW = ("2e1a7d4d", "withdraw(uint256) - moves funds out of the contract", True)
    WITHDRAW_ALL = ("3ccfd60b", "withdraw() - moves funds out of the contract", True)

    def __init__(self, selector_hex: str, label: str, high_risk: bool) -> None:
        self.selector = bytes.fromhex(selector_hex)
        self.label = label
        self.high_risk = high_risk

    @classmethod
    def from_calldata(cls, calldata: bytes) -> RiskyOperation | None:
        if len(calldata) < SELECTOR_SIZE:
            return None
        selector = calldata[:SELECTOR_SIZE]
        for op in cls:
            if op.selector == selector:
                return op
        return None


def _word(calldata: bytes, index: int) -> bytes | None:
    """Return ABI argument slot ``index`` (0-based), or None if truncated."""
    start = SELECTOR_SIZE + index * WORD_SIZE
    end = start + WORD_SIZE
    if len(calldata) < end:
        return None
    return calldata[start:end]


class CalldataRiskScanner:
    """Inspects calldata for risky operations."""

    def scan(self, calldata: bytes) -> list[str]:
        """
        Return warnings for the calldata. Empty or short calldata yields none.
        """
        op = RiskyOperation.from_calldata(calldata)
        if op is None:
            return []

        match op:
            case RiskyOperation.APPROVE:
                warnings = [f"APPROVE: {op.label}"]
                if _word(calldata, 1) == _MAX_WORD:
                    warnings.append(
                        "UNLIMITED_APPROVAL: unlimited approval detected - consider using exact amount"
                    )
                return warnings
            case RiskyOperation.SET_APPROVAL_FOR_ALL:
                approved = _word(calldata, 1)
                if approved is not None and int.from_bytes(approved, "big") == 0:
                    return ["SET_APPROVAL_FOR_ALL: setApprovalForAll(false) - revokes operator access"]
                return [f"SET_APPROVAL_FOR_ALL: {op.label}"]
            case RiskyOperation.TRANSFER_FROM | RiskyOperation.SAFE_TRANSFER_FROM:
                return [f"{op.name}: {op.label}"]
            case RiskyOperation.WITHDRAW | RiskyOperation.WITHDRAW_ALL:
                return [f"WITHDRAW: {op.label}"]
        return []

    @staticmethod
    def is_high_risk(calldata: bytes) -> bool:
        """True if the selector is one of the high-risk operations."""
        op = RiskyOperation.from_calldata(calldata)
        return op is not None and op.high_risk
