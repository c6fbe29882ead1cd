#!/usr/bin/env python3
"""
Example 01: Transaction firewall demo.

Runs a handful of intents through the firewall against the public Base RPC
and prints each decision. Nothing is signed or broadcast.

Usage:
    python examples/01_firewall_demo.py
"""

import logging

from evm_guard import FirewallConfig, TransactionFirewall, TransactionIntent, parse_ether

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

PAYER = "0x4200000000000000000000000000000000000016"
WETH = "0x4200000000000000000000000000000000000006"
UNKNOWN_CONTRACT = "0x1111111111111111111111111111111111111111"
SPENDER = "000000000000000000000000" + UNKNOWN_CONTRACT[2:]

firewall = TransactionFirewall(FirewallConfig(
    max_period_spend=parse_ether("1"),
    max_per_tx_spend=parse_ether("0.1"),
    blocked_contracts=[UNKNOWN_CONTRACT],
    payer_address=PAYER,
))

print("=== Transaction Firewall Demo ===")

# Test 1: read-only call to WETH (passes)
print()
print("[Test 1] WETH decimals() call")
decision = firewall.check(TransactionIntent(to=WETH, data="0x313ce567", sender=PAYER))
print(f"  -> {decision.to_agent_summary()}")

# Test 2: per-transaction limit (blocked before any RPC call)
print()
print("[Test 2] Send 2 ETH (exceeds 0.1 ETH per-tx limit)")
decision = firewall.check(TransactionIntent(to=WETH, value=parse_ether("2"), sender=PAYER))
print(f"  -> {decision.to_agent_summary()}")

# Test 3: blocklisted destination
print()
print("[Test 3] Send to a blocklisted contract")
decision = firewall.check(TransactionIntent(to=UNKNOWN_CONTRACT, value=1, sender=PAYER))
print(f"  -> {decision.to_agent_summary()}")

# Test 4: unlimited ERC-20 approval (allowed with warnings)
print()
print("[Test 4] approve(spender, MAX_UINT256) on WETH")
decision = firewall.check(TransactionIntent(
    to=WETH, data="0x095ea7b3" + SPENDER + "ff" * 32, sender=PAYER
))
print(f"  -> {decision.to_agent_summary()}")

print()
print("=== Current Status ===")
for key, value in firewall.status().items():
    print(f"  {key}: {value}")

firewall.close()
