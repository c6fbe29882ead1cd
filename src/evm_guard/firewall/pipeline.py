"""
TransactionFirewall: the ordered decision procedure every transaction
passes before it is signed.

Stages (the first rejection ends the check):
  1. Destination contracts against the allowlist/blocklist
  2. Estimated spend (value + gas) against the spend ledger, if a payer is set
  3. Pre-flight simulation, if required
  4. Calldata risk scan (warnings only)

Usage:
    from evm_guard import FirewallConfig, TransactionFirewall, TransactionIntent, parse_ether

    firewall = TransactionFirewall(FirewallConfig(
        max_period_spend=parse_ether("10"),
        max_per_tx_spend=parse_ether("1"),
        payer_address="0x742d35cc6634c0532925a3b8d23c5d3ce87cdd4b",
    ))
    decision = firewall.check(TransactionIntent(to="0x...", value=parse_ether("0.5")))
    if decision.allowed:
        ...  # sign + broadcast, then:
        firewall.record_spend(decision.estimated_spend)
"""

from __future__ import annotations

import logging
from typing import Any

from evm_guard.collaborators import AuditLog
from evm_guard.core.models import (
    ContractCheckResult,
    ContractStatus,
    FirewallDecision,
    RejectionCode,
    SimulationOutcome,
    TransactionIntent,
    format_wei,
)
from evm_guard.core.rpc import EvmRpc
from evm_guard.firewall.allowlist import ContractClassifier
from evm_guard.firewall.calldata import CalldataRiskScanner
from evm_guard.firewall.config import FirewallConfig
from evm_guard.firewall.limits import Clock, SpendLedger
from evm_guard.firewall.simulator import ChainReader, PreflightSimulator

logger = logging.getLogger("evm_guard.firewall")

NO_PAYER_WARNING = "No payer address provided - spending limits not enforced"


class TransactionFirewall:
    """
    Pre-signing guard for agent transactions.

    The firewall owns its spend ledger and contract classifier. It never
    records spend on its own: an allowed check does not mean the transaction
    was sent. Report spend with :meth:`record_spend` after broadcast, or use
    :meth:`check_and_reserve` with :meth:`confirm_spend` / :meth:`release_spend`.

    Args:
        config:     firewall settings
        chain:      read-only chain access; an :class:`EvmRpc` is built from
                    ``config`` when omitted
        clock:      time source for the spend ledger's accounting period
        audit_log:  optional sink receiving one entry per decision
        simulator:  pre-built simulator (overrides ``chain``)
    """

    def __init__(
        self,
        config: FirewallConfig,
        chain: ChainReader | None = None,
        clock: Clock | None = None,
        audit_log: AuditLog | None = None,
        simulator: PreflightSimulator | None = None,
    ) -> None:
        self.config = config
        self._ledger = SpendLedger(config.max_period_spend, config.max_per_tx_spend, clock=clock)
        self._classifier = ContractClassifier(
            allowed_contracts=config.allowed_contracts,
            blocked_contracts=config.blocked_contracts,
            allow_system_contracts=config.allow_system_contracts,
        )

        self._owned_rpc: EvmRpc | None = None
        if simulator is None:
            if chain is None:
                self._owned_rpc = EvmRpc(
                    rpc_url=config.rpc_url, chain=config.chain, timeout=config.rpc_timeout
                )
                chain = self._owned_rpc
            simulator = PreflightSimulator(
                chain, max_retries=config.max_retries, timeout=config.simulation_timeout
            )
        self._simulator = simulator
        self._scanner = CalldataRiskScanner()
        self._audit_log = audit_log

        self.require_simulation = config.require_simulation
        self.payer_address = config.payer_address

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check(self, intent: TransactionIntent) -> FirewallDecision:
        """Run every stage and return a decision. Never raises for chain faults."""
        return self._guarded(intent, reserve=False)

    def check_and_reserve(self, intent: TransactionIntent) -> FirewallDecision:
        """
        Like :meth:`check`, but holds the estimated spend in the ledger.

        An allowed decision carries ``reservation_id``; pass it to
        :meth:`confirm_spend` after broadcast or :meth:`release_spend` if the
        transaction is abandoned. Rejected decisions hold nothing.
        """
        return self._guarded(intent, reserve=True)

    def simulate(self, intent: TransactionIntent) -> SimulationOutcome:
        """Simulate a transaction without the other firewall checks."""
        return self._simulator.simulate(intent)

    def _guarded(self, intent: TransactionIntent, reserve: bool) -> FirewallDecision:
        try:
            decision = self._run(intent, reserve)
        except Exception as e:
            logger.error(f"Firewall check failed unexpectedly for {intent.to}: {e}")
            decision = FirewallDecision(
                allowed=False,
                reason=f"Firewall error: {e}",
                code=RejectionCode.INTERNAL_ERROR,
            )

        if decision.allowed:
            logger.info(f"Allowed transaction to {intent.to} ({format_wei(intent.value)})")
        else:
            logger.warning(f"Blocked transaction to {intent.to}: {decision.reason}")
        self._audit(intent, decision)
        return decision

    def _run(self, intent: TransactionIntent, reserve: bool) -> FirewallDecision:
        warnings: list[str] = []

        # Step 1: destination contracts
        contract_checks = self._classifier.classify_all(self._simulator.extract_destinations(intent))
        rejected = next((c for c in contract_checks if not c.allowed), None)
        if rejected is not None:
            return FirewallDecision(
                allowed=False,
                reason=rejected.reason,
                code=_contract_code(rejected),
                contracts_checked=contract_checks,
                warnings=warnings,
            )

        # Step 2: spend limits
        estimated_spend: int | None = None
        reservation_id: str | None = None
        if self.payer_address:
            # Value alone is a lower bound on spend; reject without touching the chain.
            floor = self._ledger.check(intent.value)
            if not floor.allowed:
                return FirewallDecision(
                    allowed=False,
                    reason=floor.reason,
                    code=floor.code,
                    contracts_checked=contract_checks,
                    warnings=warnings,
                )

            estimate = self._simulator.estimate_spend(intent, self.payer_address)
            estimated_spend = estimate.estimated_spend
            warnings.extend(estimate.warnings)

            limit = (
                self._ledger.reserve(estimated_spend) if reserve else self._ledger.check(estimated_spend)
            )
            if not limit.allowed:
                return FirewallDecision(
                    allowed=False,
                    reason=limit.reason,
                    code=limit.code,
                    contracts_checked=contract_checks,
                    estimated_spend=estimated_spend,
                    warnings=warnings,
                )
            reservation_id = limit.reservation_id
        else:
            warnings.append(NO_PAYER_WARNING)

        try:
            # Step 3: simulation
            simulation: SimulationOutcome | None = None
            if self.require_simulation:
                simulation = self._simulator.simulate(intent)
                if not simulation.success:
                    self._release(reservation_id)
                    error = simulation.error
                    return FirewallDecision(
                        allowed=False,
                        reason=f"Simulation failed: {error.message if error else 'unknown error'}",
                        code=error.kind.rejection_code if error else RejectionCode.SIMULATION_UNKNOWN,
                        simulation=simulation,
                        contracts_checked=contract_checks,
                        estimated_spend=estimated_spend,
                        warnings=[*warnings, *simulation.warnings],
                    )
                warnings.extend(simulation.warnings)

            # Step 4: calldata heuristics
            warnings.extend(self._scanner.scan(intent.calldata))
        except Exception:
            self._release(reservation_id)
            raise

        return FirewallDecision(
            allowed=True,
            warnings=warnings,
            simulation=simulation,
            contracts_checked=contract_checks,
            estimated_spend=estimated_spend,
            reservation_id=reservation_id,
        )

    def _release(self, reservation_id: str | None) -> None:
        if reservation_id is not None:
            self._ledger.release(reservation_id)

    def _audit(self, intent: TransactionIntent, decision: FirewallDecision) -> None:
        if self._audit_log is None:
            return
        entry = {
            "event": "firewall_check",
            "to": intent.to,
            "value": intent.value,
            "allowed": decision.allowed,
            "code": decision.code.value if decision.code else None,
            "reason": decision.reason,
            "warnings": list(decision.warnings),
            "estimated_spend": decision.estimated_spend,
        }
        try:
            self._audit_log.log(entry)
        except Exception as e:
            logger.error(f"Audit log write failed: {e}")

    # ------------------------------------------------------------------
    # Spend bookkeeping
    # ------------------------------------------------------------------

    def record_spend(self, amount_wei: int) -> None:
        """Record a broadcast transaction's spend. Call after the transaction is sent."""
        self._ledger.record_spend(amount_wei)

    def confirm_spend(self, reservation_id: str, realized_wei: int | None = None) -> int:
        """Convert a reservation from :meth:`check_and_reserve` into recorded spend."""
        return self._ledger.confirm(reservation_id, realized_wei)

    def release_spend(self, reservation_id: str) -> bool:
        """Give back a reservation whose transaction was never broadcast."""
        return self._ledger.release(reservation_id)

    def reset_period_spend(self) -> None:
        """Reset the period spend counter."""
        self._ledger.reset()

    def get_remaining_period(self) -> int:
        """Wei still available in the current accounting period."""
        return self._ledger.remaining()

    # ------------------------------------------------------------------
    # Contract lists
    # ------------------------------------------------------------------

    def block(self, contract_address: str) -> None:
        """Add a contract to the blocklist at runtime."""
        self._classifier.block(contract_address)
        logger.info(f"Blocked contract {contract_address}")

    def allow(self, contract_address: str) -> bool:
        """Add a contract to the allowlist at runtime (allowlist mode only)."""
        return self._classifier.allow(contract_address)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return spending, contract-list and simulation settings."""
        return {
            "spending": self._ledger.status(),
            "contracts": self._classifier.status(),
            "require_simulation": self.require_simulation,
            "payer_address": self.payer_address,
            "chain": self.config.chain,
            "chain_id": self.config.chain_id,
        }

    def close(self) -> None:
        """Close the RPC client if the firewall created it."""
        if self._owned_rpc is not None:
            self._owned_rpc.close()

    def __enter__(self) -> TransactionFirewall:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()


def _contract_code(result: ContractCheckResult) -> RejectionCode:
    if result.status == ContractStatus.BLOCKED:
        return RejectionCode.CONTRACT_BLOCKED
    return RejectionCode.CONTRACT_NOT_ALLOWLISTED
