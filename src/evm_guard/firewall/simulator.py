"""
Pre-flight simulation: dry-run a transaction against live chain state.

An ``eth_call`` only fails when the node itself rejects the call. Return
data that merely encodes ``Error(string)`` or ``Panic(uint256)`` is still
a successful call and is reported as a warning, not a failure.

Failed attempts are turned into a :class:`SimulationError` value once,
right where the exception is caught; the retry loop only looks at
``SimulationError.retryable``.

The dry run is bounded by one overall deadline, and a call that answers
after it counts as a timeout. Gas-price and gas-estimate queries in
:meth:`PreflightSimulator.estimate_spend` are bounded only by the chain
client's per-request timeout (``FirewallConfig.rpc_timeout``, which may not
exceed ``simulation_timeout``); on expiry they fall back to defaults.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from evm_guard.core.models import (
    WEI_PER_ETH,
    WEI_PER_GWEI,
    SimulationError,
    SimulationFailureKind,
    SimulationOutcome,
    SpendEstimate,
    TransactionIntent,
)
from evm_guard.core.rpc import RpcRemoteError
from evm_guard.firewall.calldata import CalldataRiskScanner
from evm_guard.firewall.errors import ConfigurationError

logger = logging.getLogger("evm_guard.simulator")

DEFAULT_GAS_PRICE = WEI_PER_GWEI  # 1 gwei
TRANSFER_GAS = 21_000
CONTRACT_CALL_GAS = 100_000
HIGH_GAS_THRESHOLD = 500_000
FALLBACK_SPEND = WEI_PER_ETH // 10  # 0.1 ETH when estimation fails outright

ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")  # Error(string)
PANIC_SELECTOR = bytes.fromhex("4e487b71")  # Panic(uint256)

# Solidity panic codes
PANIC_CODES: dict[int, str] = {
    0x00: "generic compiler panic",
    0x01: "assertion failed",
    0x11: "arithmetic overflow or underflow",
    0x12: "division or modulo by zero",
    0x21: "invalid enum conversion",
    0x22: "corrupted storage byte array",
    0x31: "pop on empty array",
    0x32: "array index out of bounds",
    0x41: "out of memory",
    0x51: "call to zero-initialized function",
}

# JSON-RPC error code nodes use for "execution reverted"
_EXECUTION_REVERTED = 3


class ChainReader(Protocol):
    """Read-only chain access used by the simulator."""

    def call(
        self, to: str | None, data: str, value: int, gas: int | None, from_address: str | None
    ) -> bytes: ...

    def estimate_gas(
        self, to: str | None, data: str, value: int, from_address: str | None
    ) -> int: ...

    def get_gas_price(self) -> int: ...


@dataclass(frozen=True)
class _CallResult:
    data: bytes | None = None
    error: SimulationError | None = None
    attempts: int = 1


def classify_failure(exc: Exception) -> SimulationError:
    """Map an exception from the chain reader onto a simulation failure kind."""
    raw = str(exc) or type(exc).__name__
    lowered = raw.lower()
    if "insufficient funds" in lowered:
        return SimulationError(
            kind=SimulationFailureKind.INSUFFICIENT_FUNDS,
            message="Transaction would fail: insufficient funds",
        )
    if "revert" in lowered or (isinstance(exc, RpcRemoteError) and exc.code == _EXECUTION_REVERTED):
        return SimulationError(kind=SimulationFailureKind.REVERT, message="Transaction would revert")
    return SimulationError(kind=SimulationFailureKind.UNKNOWN, message=raw)


def decode_revert_reason(data: bytes) -> str | None:
    """Decode ABI ``Error(string)`` return data, or None if malformed."""
    if not data.startswith(ERROR_STRING_SELECTOR) or len(data) < 4 + 64:
        return None
    offset = int.from_bytes(data[4:36], "big")
    length_start = 4 + offset
    if len(data) < length_start + 32:
        return None
    length = int.from_bytes(data[length_start:length_start + 32], "big")
    raw = data[length_start + 32:length_start + 32 + length]
    if len(raw) != length:
        return None
    return raw.decode("utf-8", errors="replace")


def analyze_return_data(data: bytes) -> list[str]:
    """Warnings for failure payloads carried inside a successful call."""
    warnings: list[str] = []
    if data.startswith(ERROR_STRING_SELECTOR):
        reason = decode_revert_reason(data)
        if reason is not None:
            warnings.append(f"Transaction includes revert reason '{reason}' - check contract state")
        else:
            warnings.append("Transaction includes revert reason - check contract state")
    elif data.startswith(PANIC_SELECTOR):
        if len(data) >= 36:
            code = int.from_bytes(data[4:36], "big")
            meaning = PANIC_CODES.get(code, "unknown panic code")
            warnings.append(f"Transaction would trigger panic 0x{code:02x} ({meaning})")
        else:
            warnings.append("Transaction would trigger panic (overflow, div by zero, etc.)")
    return warnings


class PreflightSimulator:
    """
    Dry-runs transactions and estimates their cost.

    Args:
        chain:        read-only chain access (e.g. :class:`evm_guard.core.rpc.EvmRpc`)
        max_retries:  total attempts for the dry-run call (default 2)
        timeout:      overall seconds allowed per simulation, retries included
        retry_delay:  base backoff; attempt ``n`` waits ``retry_delay * n``
    """

    def __init__(
        self,
        chain: ChainReader,
        max_retries: int = 2,
        timeout: float = 10.0,
        retry_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_retries < 1:
            raise ConfigurationError(f"max_retries must be at least 1, got {max_retries}")
        if timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {timeout}")
        self._chain = chain
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._monotonic = monotonic
        self._scanner = CalldataRiskScanner()

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def simulate(self, intent: TransactionIntent) -> SimulationOutcome:
        """Dry-run ``intent`` with ``eth_call`` semantics."""
        result = self._call_with_retry(
            lambda: self._chain.call(intent.to, intent.data, intent.value, intent.gas, intent.sender)
        )

        if result.error is not None:
            return self._failure(result.error, result.attempts)

        return_data = result.data or b""
        warnings = analyze_return_data(return_data)
        gas_used: int | None = None

        if intent.gas is None and intent.to and intent.sender:
            try:
                gas_used = self._chain.estimate_gas(intent.to, intent.data, intent.value, intent.sender)
                if gas_used > HIGH_GAS_THRESHOLD:
                    warnings.append(f"High gas usage estimated: {gas_used:,} gas")
            except Exception as e:
                logger.debug(f"Gas estimation after simulation failed: {e}")
                warnings.append("Could not estimate gas usage")

        return SimulationOutcome(
            success=True,
            gas_used=gas_used,
            return_data="0x" + return_data.hex(),
            warnings=warnings,
            attempts=result.attempts,
        )

    def _failure(self, error: SimulationError, attempts: int) -> SimulationOutcome:
        warnings: list[str] = []
        match error.kind:
            case SimulationFailureKind.INSUFFICIENT_FUNDS:
                warnings.append("Check ETH balance and gas requirements")
            case SimulationFailureKind.REVERT:
                warnings.append("Contract execution would fail")
            case SimulationFailureKind.TIMEOUT:
                warnings.append("Chain did not answer in time - transaction not verified")
        logger.warning(f"Simulation failed after {attempts} attempt(s): {error.kind.value}: {error.message}")
        return SimulationOutcome(success=False, error=error, warnings=warnings, attempts=attempts)

    def _call_with_retry(self, fn: Callable[[], bytes]) -> _CallResult:
        deadline = self._monotonic() + self.timeout
        last: SimulationError | None = None

        for attempt in range(1, self.max_retries + 1):
            try:
                data = fn()
            except Exception as e:
                last = classify_failure(e)
            else:
                # A late answer is not trusted
                if self._monotonic() >= deadline:
                    return _CallResult(error=self._timeout_error(None), attempts=attempt)
                return _CallResult(data=data, attempts=attempt)

            if not last.retryable:
                return _CallResult(error=last, attempts=attempt)

            logger.debug(f"Simulation attempt {attempt}/{self.max_retries} failed: {last.message}")
            if attempt == self.max_retries:
                break

            delay = self.retry_delay * attempt
            if self._monotonic() + delay >= deadline:
                return _CallResult(error=self._timeout_error(last), attempts=attempt)
            self._sleep(delay)

        if self._monotonic() >= deadline:
            return _CallResult(error=self._timeout_error(last), attempts=self.max_retries)
        return _CallResult(error=last, attempts=self.max_retries)

    def _timeout_error(self, last: SimulationError | None) -> SimulationError:
        detail = f" (last error: {last.message})" if last is not None else ""
        return SimulationError(
            kind=SimulationFailureKind.TIMEOUT,
            message=f"Simulation timed out after {self.timeout:.1f}s{detail}",
        )

    # ------------------------------------------------------------------
    # Spend estimation
    # ------------------------------------------------------------------

    def estimate_spend(self, intent: TransactionIntent, payer: str) -> SpendEstimate:
        """
        Estimate the wei that leaves ``payer``: value plus gas cost.

        Never raises. Falls back to conservative defaults (with a warning)
        when the chain cannot be queried, so limit checks always have a number.
        """
        warnings: list[str] = []
        try:
            gas_price = DEFAULT_GAS_PRICE
            try:
                gas_price = self._chain.get_gas_price()
            except Exception as e:
                logger.warning(f"Could not fetch gas price: {e}")
                warnings.append("Could not fetch gas price, using default 1 gwei")

            calldata = intent.calldata
            sender = intent.sender or payer
            if intent.gas is not None:
                gas_estimate = intent.gas
            else:
                gas_estimate = CONTRACT_CALL_GAS if calldata else TRANSFER_GAS
                if intent.to and sender:
                    try:
                        gas_estimate = self._chain.estimate_gas(intent.to, intent.data, intent.value, sender)
                    except Exception as e:
                        logger.warning(f"Could not estimate gas: {e}")
                        warnings.append("Could not estimate gas, using default")

            estimated_spend = intent.value + gas_price * gas_estimate

            if self._scanner.is_high_risk(calldata):
                warnings.append("Transaction contains high-risk function calls")
            if gas_estimate > HIGH_GAS_THRESHOLD:
                warnings.append(f"High gas estimate: {gas_estimate:,} gas")
            if intent.value == 0 and calldata:
                warnings.append("Contract interaction with no ETH value - check token approvals")

            return SpendEstimate(
                estimated_spend=estimated_spend,
                gas_price=gas_price,
                gas_estimate=gas_estimate,
                warnings=warnings,
            )
        except Exception as e:
            logger.error(f"Spend estimation failed: {e}")
            warnings.append(f"Spend estimation failed: {e}")
            return SpendEstimate(
                estimated_spend=FALLBACK_SPEND, gas_price=DEFAULT_GAS_PRICE, warnings=warnings
            )

    @staticmethod
    def extract_destinations(intent: TransactionIntent) -> list[str]:
        """Contract addresses the transaction touches (just ``to`` for now)."""
        return [intent.to] if intent.to else []
