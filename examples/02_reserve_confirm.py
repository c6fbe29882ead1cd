#!/usr/bin/env python3
"""
Example 02: Reserve / confirm / release.

Several agents share one daily budget. Each holds its estimated spend with
check_and_reserve() so concurrent checks cannot overshoot the cap, then
confirms after broadcast or releases if the transaction is dropped.

Usage:
    python examples/02_reserve_confirm.py
"""

from evm_guard import FirewallConfig, TransactionFirewall, TransactionIntent, format_wei, parse_ether

PAYER = "0x4200000000000000000000000000000000000016"
RECIPIENT = "0x000000000000000000000000000000000000dead"

config = FirewallConfig(
    max_period_spend=parse_ether("0.25"),
    max_per_tx_spend=parse_ether("0.1"),
    payer_address=PAYER,
    require_simulation=False,  # the payer is not funded; only the ledger is shown here
)

with TransactionFirewall(config) as firewall:
    reservations = []
    for i in range(4):
        decision = firewall.check_and_reserve(
            TransactionIntent(to=RECIPIENT, value=parse_ether("0.08"), sender=PAYER)
        )
        print(f"Agent {i + 1}: {decision.to_agent_summary()}")
        if decision.allowed:
            reservations.append(decision)

    print(f"Remaining after reservations: {format_wei(firewall.get_remaining_period())}")

    # First transaction broadcast, second dropped
    firewall.confirm_spend(reservations[0].reservation_id)
    firewall.release_spend(reservations[1].reservation_id)
    print(f"Remaining after confirm + release: {format_wei(firewall.get_remaining_period())}")

    print(firewall.status()["spending"])
