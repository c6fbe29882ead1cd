"""
Shared fakes for the unit tests: an in-memory chain reader and a manual clock.
No network access.
"""

from datetime import datetime, timedelta, timezone

import pytest

PAYER = "0x742d35cc6634c0532925a3b8d23c5d3ce87cdd4b"
CONTRACT = "0x1234567890123456789012345678901234567890"


class FakeChain:
    """
    Stand-in for EvmRpc. ``call_effects`` is consumed in order: an Exception
    entry is raised, a bytes entry is returned; once empty, ``call_result``
    is returned.
    """

    def __init__(self, call_result=b"", gas=21_000, gas_price=1_000_000_000):
        self.call_result = call_result
        self.call_effects = []
        self.gas = gas
        self.gas_price = gas_price
        self.requests = []

    def call(self, to, data, value, gas, from_address):
        self.requests.append("call")
        if self.call_effects:
            effect = self.call_effects.pop(0)
            if isinstance(effect, Exception):
                raise effect
            return effect
        return self.call_result

    def estimate_gas(self, to, data, value, from_address):
        self.requests.append("estimate_gas")
        if isinstance(self.gas, Exception):
            raise self.gas
        return self.gas

    def get_gas_price(self):
        self.requests.append("get_gas_price")
        if isinstance(self.gas_price, Exception):
            raise self.gas_price
        return self.gas_price

    def count(self, method):
        return self.requests.count(method)


class ManualClock:
    def __init__(self, start=None):
        self.current = start or datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def clock():
    return ManualClock()
