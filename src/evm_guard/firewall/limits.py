"""
Spend ledger: per-transaction and per-period caps on value leaving the wallet.

The accounting period is the calendar day in UTC. Spend recorded at 23:59
and at 00:01 falls into two different periods, so up to twice the period
cap can leave the wallet across a boundary.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import date, datetime, timezone
from typing import Any, Protocol

from evm_guard.core.models import MAX_UINT256, RejectionCode, SpendCheck, format_wei
from evm_guard.firewall.errors import ConfigurationError, LedgerOverflowError, UnknownReservationError

logger = logging.getLogger("evm_guard.limits")


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an integer number of wei, got {amount!r}")
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")
    if amount > MAX_UINT256:
        raise ValueError(f"Amount {amount} exceeds uint256 range")


class SpendLedger:
    """
    Tracks value committed within the current accounting period.

    Two usage styles are supported:

    * ``check()`` then, after broadcast, ``record_spend()``. Simple, but two
      concurrent callers can both pass ``check()`` before either records.
    * ``reserve()`` then ``confirm()`` or ``release()``. The reservation is
      validated and counted against the period cap in one locked step.

    Args:
        period_cap:  Max wei committed per period (calendar day, UTC)
        per_tx_cap:  Max wei for a single transaction
        clock:       Time source; defaults to :class:`SystemClock`
    """

    def __init__(self, period_cap: int, per_tx_cap: int, clock: Clock | None = None) -> None:
        for name, cap in (("period_cap", period_cap), ("per_tx_cap", per_tx_cap)):
            if isinstance(cap, bool) or not isinstance(cap, int):
                raise ConfigurationError(f"{name} must be an integer number of wei, got {cap!r}")
            if cap <= 0:
                raise ConfigurationError(f"{name} must be positive, got {cap}")
            if cap > MAX_UINT256:
                raise ConfigurationError(f"{name} exceeds uint256 range")

        self.period_cap = period_cap
        self.per_tx_cap = per_tx_cap
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._period_spend = 0
        self._period_start = self._current_period()
        self._reservations: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check(self, amount: int) -> SpendCheck:
        """Check whether ``amount`` wei fits within both caps. Does not commit it."""
        _check_amount(amount)
        with self._lock:
            self._maybe_reset_period()
            return self._evaluate(amount)

    def reserve(self, amount: int) -> SpendCheck:
        """
        Check ``amount`` and, if allowed, hold it against the period cap.

        Returns:
            SpendCheck: carries ``reservation_id`` when allowed
        """
        _check_amount(amount)
        with self._lock:
            self._maybe_reset_period()
            result = self._evaluate(amount)
            if not result.allowed:
                return result
            reservation_id = uuid.uuid4().hex
            self._reservations[reservation_id] = amount
            logger.debug(f"Reserved {format_wei(amount)} as {reservation_id}")
            return result.model_copy(update={"reservation_id": reservation_id})

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record_spend(self, amount: int) -> None:
        """Record a broadcast transaction's spend. Never rejects."""
        _check_amount(amount)
        with self._lock:
            self._maybe_reset_period()
            self._add(amount)

    def confirm(self, reservation_id: str, realized: int | None = None) -> int:
        """
        Turn a reservation into recorded spend.

        Args:
            reservation_id: id returned by :meth:`reserve`
            realized:       actual wei spent, if it differs from the reservation

        Returns:
            int: the amount recorded
        """
        if realized is not None:
            _check_amount(realized)
        with self._lock:
            if reservation_id not in self._reservations:
                raise UnknownReservationError(f"No pending reservation '{reservation_id}'")
            reserved = self._reservations.pop(reservation_id)
            amount = reserved if realized is None else realized
            self._maybe_reset_period()
            self._add(amount)
            return amount

    def release(self, reservation_id: str) -> bool:
        """Drop a reservation whose transaction was never broadcast."""
        with self._lock:
            released = self._reservations.pop(reservation_id, None)
        if released is None:
            return False
        logger.debug(f"Released reservation {reservation_id} ({format_wei(released)})")
        return True

    def reset(self) -> None:
        """Manually zero the period spend counter."""
        with self._lock:
            self._period_spend = 0
            self._period_start = self._current_period()
        logger.info("Period spend reset by operator")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return current spend counters."""
        with self._lock:
            self._maybe_reset_period()
            reserved = sum(self._reservations.values())
            return {
                "period_spend": self._period_spend,
                "period_cap": self.period_cap,
                "per_tx_cap": self.per_tx_cap,
                "reserved": reserved,
                "remaining_period": max(0, self.period_cap - self._period_spend - reserved),
                "period_start": self._period_start.isoformat(),
            }

    def remaining(self) -> int:
        """Wei still available in the current period."""
        return self.status()["remaining_period"]

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _committed(self) -> int:
        return self._period_spend + sum(self._reservations.values())

    def _evaluate(self, amount: int) -> SpendCheck:
        committed = self._committed()
        headroom = max(0, self.period_cap - committed)

        if amount > self.per_tx_cap:
            return SpendCheck(
                allowed=False,
                reason=(
                    f"Transaction amount {format_wei(amount)} exceeds per-tx limit "
                    f"of {format_wei(self.per_tx_cap)}"
                ),
                code=RejectionCode.LIMIT_PER_TX,
                current_period_spend=committed,
                remaining_period=headroom,
            )

        projected = committed + amount
        if projected > self.period_cap:
            return SpendCheck(
                allowed=False,
                reason=(
                    f"Transaction would exceed daily limit. Current: {format_wei(committed)}, "
                    f"Tx: {format_wei(amount)}, Limit: {format_wei(self.period_cap)}"
                ),
                code=RejectionCode.LIMIT_PERIOD,
                current_period_spend=committed,
                remaining_period=headroom,
            )

        return SpendCheck(
            allowed=True,
            current_period_spend=committed,
            remaining_period=self.period_cap - projected,
        )

    def _add(self, amount: int) -> None:
        total = self._period_spend + amount
        if total > MAX_UINT256:
            raise LedgerOverflowError(
                f"Period spend would overflow uint256 ({self._period_spend} + {amount})"
            )
        self._period_spend = total
        if total > self.period_cap:
            logger.warning(
                f"Recorded spend {format_wei(total)} is above the period cap "
                f"{format_wei(self.period_cap)}"
            )

    def _current_period(self) -> date:
        return self._clock.now().astimezone(timezone.utc).date()

    def _maybe_reset_period(self) -> None:
        today = self._current_period()
        if today != self._period_start:
            logger.info(f"New accounting period {today}; resetting spend of {format_wei(self._period_spend)}")
            self._period_spend = 0
            self._period_start = today
