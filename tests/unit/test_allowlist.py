"""
Unit tests for the contract classifier.
"""

import threading

from evm_guard.core.models import ContractStatus
from evm_guard.firewall.allowlist import (
    KNOWN_MALICIOUS_CONTRACTS,
    SAFE_SYSTEM_CONTRACTS,
    AddressSet,
    ContractClassifier,
)

TEST_CONTRACT = "0x742d35Cc6634C0532925a3b8D23C5d3ce87CDD4b"
MALICIOUS = "0x1111111111111111111111111111111111111111"
UNKNOWN = "0x2222222222222222222222222222222222222222"
WETH = SAFE_SYSTEM_CONTRACTS[0]


class TestBlocklistMode:
    def test_unknown_contract_allowed(self):
        result = ContractClassifier().classify(TEST_CONTRACT)
        assert result.allowed is True
        assert result.status == ContractStatus.ALLOWED
        assert result.contract_address == TEST_CONTRACT

    def test_system_contract(self):
        result = ContractClassifier().classify(WETH)
        assert result.allowed is True
        assert result.status == ContractStatus.SYSTEM_SAFE

    def test_user_blocklist(self):
        result = ContractClassifier(blocked_contracts=[MALICIOUS]).classify(MALICIOUS)
        assert result.allowed is False
        assert result.status == ContractStatus.BLOCKED
        assert "blocked" in result.reason
        assert MALICIOUS in result.reason

    def test_known_malicious_always_blocked(self):
        result = ContractClassifier().classify(KNOWN_MALICIOUS_CONTRACTS[0])
        assert result.status == ContractStatus.BLOCKED

    def test_case_insensitive(self):
        classifier = ContractClassifier(blocked_contracts=[TEST_CONTRACT.lower()])
        assert classifier.classify(TEST_CONTRACT.lower()).allowed is False
        assert classifier.classify("0x" + TEST_CONTRACT[2:].upper()).allowed is False
        assert classifier.classify(TEST_CONTRACT).allowed is False

    def test_allow_is_noop(self):
        classifier = ContractClassifier()
        assert classifier.allow(UNKNOWN) is False
        assert classifier.status()["allowlist_size"] is None


class TestAllowlistMode:
    def test_only_listed_contracts_pass(self):
        classifier = ContractClassifier(allowed_contracts=[TEST_CONTRACT])
        assert classifier.classify(TEST_CONTRACT).status == ContractStatus.ALLOWED

        unknown = classifier.classify(UNKNOWN)
        assert unknown.allowed is False
        assert unknown.status == ContractStatus.NOT_IN_ALLOWLIST
        assert "not in allowlist" in unknown.reason

    def test_empty_allowlist_still_allowlist_mode(self):
        classifier = ContractClassifier(allowed_contracts=[])
        assert classifier.allowlist_mode is True
        assert classifier.classify(UNKNOWN).status == ContractStatus.NOT_IN_ALLOWLIST

    def test_system_contracts_pass(self):
        classifier = ContractClassifier(allowed_contracts=[TEST_CONTRACT])
        assert classifier.classify(WETH).status == ContractStatus.SYSTEM_SAFE

    def test_system_contracts_can_be_disabled(self):
        classifier = ContractClassifier(allowed_contracts=[TEST_CONTRACT], allow_system_contracts=False)
        result = classifier.classify(WETH)
        assert result.allowed is False
        assert result.status == ContractStatus.NOT_IN_ALLOWLIST

    def test_runtime_allow(self):
        classifier = ContractClassifier(allowed_contracts=[])
        assert classifier.classify(UNKNOWN).status == ContractStatus.NOT_IN_ALLOWLIST
        assert classifier.allow(UNKNOWN) is True
        assert classifier.classify(UNKNOWN).status == ContractStatus.ALLOWED


class TestPrecedence:
    def test_block_beats_allowlist(self):
        classifier = ContractClassifier(allowed_contracts=[MALICIOUS], blocked_contracts=[MALICIOUS])
        assert classifier.classify(MALICIOUS).status == ContractStatus.BLOCKED

    def test_block_beats_system_safe(self):
        classifier = ContractClassifier()
        classifier.block(WETH)
        result = classifier.classify(WETH)
        assert result.allowed is False
        assert result.status == ContractStatus.BLOCKED

    def test_runtime_block_after_allow(self):
        classifier = ContractClassifier(allowed_contracts=[TEST_CONTRACT])
        classifier.block(TEST_CONTRACT)
        assert classifier.classify(TEST_CONTRACT).status == ContractStatus.BLOCKED


class TestMalformedInput:
    def test_garbage_does_not_raise(self):
        classifier = ContractClassifier()
        for value in ["", "not-an-address", "0x123", "  0xZZ  "]:
            assert classifier.classify(value).status == ContractStatus.ALLOWED

    def test_garbage_matches_literally(self):
        classifier = ContractClassifier(blocked_contracts=["Not-An-Address"])
        assert classifier.classify(" not-an-address ").status == ContractStatus.BLOCKED

    def test_garbage_not_in_allowlist(self):
        classifier = ContractClassifier(allowed_contracts=[TEST_CONTRACT])
        assert classifier.classify("0x123").status == ContractStatus.NOT_IN_ALLOWLIST


def test_classify_all_preserves_order():
    classifier = ContractClassifier(blocked_contracts=[MALICIOUS])
    results = classifier.classify_all([UNKNOWN, MALICIOUS, WETH])
    assert [r.contract_address for r in results] == [UNKNOWN, MALICIOUS, WETH]
    assert [r.status for r in results] == [
        ContractStatus.ALLOWED,
        ContractStatus.BLOCKED,
        ContractStatus.SYSTEM_SAFE,
    ]


def test_status():
    classifier = ContractClassifier(allowed_contracts=[TEST_CONTRACT], blocked_contracts=[MALICIOUS])
    status = classifier.status()
    assert status["mode"] == "allowlist"
    assert status["allowlist_size"] == 1
    assert status["blocklist_size"] == len(KNOWN_MALICIOUS_CONTRACTS) + 1

    assert ContractClassifier().status()["mode"] == "blocklist_only"


def test_address_set_concurrent_adds():
    addresses = AddressSet()

    def add_range(start):
        for i in range(start, start + 200):
            addresses.add(f"0x{i:040x}")

    threads = [threading.Thread(target=add_range, args=(n * 200,)) for n in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(addresses) == 1000
    assert "0x" + "0" * 39 + "1" in addresses
    assert None not in addresses
