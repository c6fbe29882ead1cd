"""
Unit tests for the spend ledger.
These run without network access (pure Python logic).
"""

import threading
from datetime import datetime, timezone

import pytest

from evm_guard.core.models import MAX_UINT256, RejectionCode, parse_ether
from evm_guard.firewall.errors import ConfigurationError, LedgerOverflowError, UnknownReservationError
from evm_guard.firewall.limits import SpendLedger

ETH = parse_ether("1")


@pytest.fixture
def ledger(clock):
    return SpendLedger(period_cap=10 * ETH, per_tx_cap=2 * ETH, clock=clock)


def test_per_tx_limit(ledger):
    result = ledger.check(3 * ETH)
    assert result.allowed is False
    assert result.code == RejectionCode.LIMIT_PER_TX
    assert "per-tx limit" in result.reason


def test_per_tx_limit_ignores_period_spend(clock):
    ledger = SpendLedger(period_cap=100 * ETH, per_tx_cap=ETH, clock=clock)
    assert ledger.check(ETH + 1).code == RejectionCode.LIMIT_PER_TX
    ledger.record_spend(50 * ETH)
    assert ledger.check(ETH + 1).code == RejectionCode.LIMIT_PER_TX


def test_per_tx_passes_at_cap(ledger):
    result = ledger.check(2 * ETH)
    assert result.allowed is True
    assert result.remaining_period == 8 * ETH


def test_period_boundary_exact(ledger):
    ledger.record_spend(9 * ETH)

    at_cap = ledger.check(ETH)
    assert at_cap.allowed is True
    assert at_cap.remaining_period == 0
    assert at_cap.current_period_spend == 9 * ETH

    over = ledger.check(ETH + 1)
    assert over.allowed is False
    assert over.code == RejectionCode.LIMIT_PERIOD
    assert "daily limit" in over.reason
    assert "9.0000 ETH" in over.reason
    assert "10.0000 ETH" in over.reason


def test_check_does_not_commit(ledger):
    ledger.check(ETH)
    ledger.check(ETH)
    assert ledger.status()["period_spend"] == 0


def test_record_spend_sums(ledger):
    amounts = [ETH // 2, ETH, 3 * ETH // 4, 12345]
    for amount in amounts:
        assert ledger.check(amount).allowed
        ledger.record_spend(amount)
    status = ledger.status()
    assert status["period_spend"] == sum(amounts)
    assert status["period_spend"] <= status["period_cap"]


def test_record_spend_never_rejects(ledger):
    ledger.record_spend(20 * ETH)
    assert ledger.status()["period_spend"] == 20 * ETH
    assert ledger.remaining() == 0


def test_new_day_resets_spend(ledger, clock):
    ledger.record_spend(9 * ETH)
    clock.advance(days=1)
    result = ledger.check(ETH)
    assert result.current_period_spend == 0
    assert result.remaining_period == 9 * ETH


def test_same_day_does_not_reset(ledger, clock):
    ledger.record_spend(5 * ETH)
    clock.advance(hours=11, minutes=59)  # 23:59 UTC
    assert ledger.status()["period_spend"] == 5 * ETH


def test_calendar_day_boundary_is_utc():
    class Clock:
        current = datetime(2026, 3, 14, 23, 59, tzinfo=timezone.utc)

        def now(self):
            return self.current

    clock = Clock()
    ledger = SpendLedger(period_cap=10 * ETH, per_tx_cap=10 * ETH, clock=clock)
    ledger.record_spend(10 * ETH)
    assert ledger.check(1).allowed is False

    clock.current = datetime(2026, 3, 15, 0, 1, tzinfo=timezone.utc)
    assert ledger.check(10 * ETH).allowed is True


def test_record_after_boundary_starts_fresh(ledger, clock):
    ledger.record_spend(9 * ETH)
    clock.advance(days=1)
    ledger.record_spend(ETH)
    assert ledger.status()["period_spend"] == ETH


def test_manual_reset(ledger):
    ledger.record_spend(5 * ETH)
    assert ledger.remaining() == 5 * ETH
    ledger.reset()
    assert ledger.remaining() == 10 * ETH


def test_status_structure(ledger):
    ledger.record_spend(3 * ETH)
    status = ledger.status()
    assert status["period_spend"] == 3 * ETH
    assert status["period_cap"] == 10 * ETH
    assert status["per_tx_cap"] == 2 * ETH
    assert status["reserved"] == 0
    assert status["remaining_period"] == 7 * ETH
    assert status["period_start"] == "2026-03-14"


# ------------------------------------------------------------------
# Reservations
# ------------------------------------------------------------------

def test_reserve_counts_against_headroom(ledger):
    first = ledger.reserve(2 * ETH)
    assert first.allowed
    assert first.reservation_id

    for _ in range(3):
        assert ledger.reserve(2 * ETH).allowed
    assert ledger.status()["reserved"] == 8 * ETH

    assert ledger.check(2 * ETH).allowed is True
    fifth = ledger.reserve(2 * ETH)
    assert fifth.allowed
    sixth = ledger.reserve(1)
    assert sixth.allowed is False
    assert sixth.code == RejectionCode.LIMIT_PERIOD
    assert sixth.reservation_id is None


def test_threaded_reservations_never_exceed_cap(clock):
    ledger = SpendLedger(period_cap=10 * ETH, per_tx_cap=ETH, clock=clock)
    amount = ETH * 3 // 4
    workers = 32
    barrier = threading.Barrier(workers)
    results = []
    results_lock = threading.Lock()

    def agent():
        barrier.wait()
        result = ledger.reserve(amount)
        with results_lock:
            results.append(result)

    threads = [threading.Thread(target=agent) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    allowed = [r for r in results if r.allowed]
    assert len(results) == workers
    assert len(allowed) == (10 * ETH) // amount
    assert len({r.reservation_id for r in allowed}) == len(allowed)
    assert all(r.code == RejectionCode.LIMIT_PERIOD for r in results if not r.allowed)

    status = ledger.status()
    assert status["reserved"] == len(allowed) * amount
    assert status["reserved"] <= status["period_cap"]


def test_confirm_moves_reservation_into_spend(ledger):
    reservation = ledger.reserve(ETH)
    recorded = ledger.confirm(reservation.reservation_id)
    assert recorded == ETH
    status = ledger.status()
    assert status["period_spend"] == ETH
    assert status["reserved"] == 0


def test_confirm_with_realized_amount(ledger):
    reservation = ledger.reserve(ETH)
    assert ledger.confirm(reservation.reservation_id, realized=ETH // 2) == ETH // 2
    assert ledger.status()["period_spend"] == ETH // 2


def test_release_frees_headroom(ledger):
    reservation = ledger.reserve(2 * ETH)
    assert ledger.remaining() == 8 * ETH
    assert ledger.release(reservation.reservation_id) is True
    assert ledger.remaining() == 10 * ETH
    assert ledger.release(reservation.reservation_id) is False


def test_confirm_unknown_reservation(ledger):
    with pytest.raises(UnknownReservationError):
        ledger.confirm("nope")


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

@pytest.mark.parametrize("period_cap,per_tx_cap", [(0, 1), (1, 0), (-5, 1), (MAX_UINT256 + 1, 1)])
def test_invalid_caps_rejected(period_cap, per_tx_cap):
    with pytest.raises(ConfigurationError):
        SpendLedger(period_cap=period_cap, per_tx_cap=per_tx_cap)


def test_negative_amount_rejected(ledger):
    with pytest.raises(ValueError):
        ledger.check(-1)
    with pytest.raises(ValueError):
        ledger.record_spend(-1)


def test_float_amount_rejected(ledger):
    with pytest.raises(ValueError):
        ledger.check(0.5)


def test_accumulator_overflow_is_fatal(ledger):
    ledger.record_spend(MAX_UINT256)
    with pytest.raises(LedgerOverflowError):
        ledger.record_spend(1)
