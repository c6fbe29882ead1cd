#!/usr/bin/env python3
"""
Example 03: Run the firewall as an HTTP service.

The firewall is configured from EVM_GUARD_* environment variables, e.g.

    export EVM_GUARD_PAYER_ADDRESS=0x...
    export EVM_GUARD_MAX_DAILY_ETH=1.0
    export EVM_GUARD_MAX_PER_TX_ETH=0.1
    export EVM_GUARD_ALLOWED_CONTRACTS=0x...,0x...

Usage:
    pip install -e ".[server]"
    python examples/03_run_api.py

Then:
    curl -X POST localhost:8000/check -H 'content-type: application/json' \
         -d '{"to": "0x4200000000000000000000000000000000000006", "value": 1000}'
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run("evm_guard.api.server:app", host="127.0.0.1", port=8000)
