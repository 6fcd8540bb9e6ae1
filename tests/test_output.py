"""Tests for safesentinel.output, safesentinel.networks and safesentinel.tags."""
from __future__ import annotations

import pytest

from safesentinel.constants import MULTISEND_CALL_ONLY
from safesentinel.networks import (
    explorer_address_url,
    explorer_tx_url,
    get_network,
    is_network_supported,
    safe_url,
    supported_networks,
)
from safesentinel.output import format_hash, report_to_dict
from safesentinel.pipeline import verify_service_record
from safesentinel.tags import AddressBook, AddressTag
from tests.conftest import LOCKSTAKE, OWNER, SAFE


class TestFormatHash:
    def test_ledger_style(self):
        assert format_hash("0xabcdef12") == "0xABCDEF12"

    def test_prefix_required(self):
        with pytest.raises(ValueError, match="0x prefix"):
            format_hash("abcdef12")


class TestNetworks:
    def test_lookup(self):
        assert get_network("ethereum").chain_id == 1
        assert get_network("sepolia").chain_id == 11155111
        assert is_network_supported("gnosis")
        assert supported_networks()[0] == "ethereum"

    def test_unknown(self):
        with pytest.raises(ValueError, match='Unsupported network: "mars"'):
            get_network("mars")

    def test_urls(self):
        assert safe_url("ethereum", SAFE) == f"https://app.safe.global/home?safe=eth:{SAFE}"
        assert explorer_address_url("sepolia", SAFE) == f"https://sepolia.etherscan.io/address/{SAFE}"
        assert explorer_tx_url("ethereum", "0x01") == "https://etherscan.io/tx/0x01"


class TestAddressBook:
    def test_builtin(self):
        book = AddressBook()
        assert book.get(MULTISEND_CALL_ONLY[0].lower()).label == "MultiSendCallOnly"
        assert book.get(LOCKSTAKE).category == "protocol"
        assert book.describe(LOCKSTAKE) == f"{LOCKSTAKE} (LockstakeEngine)"

    def test_unknown(self):
        book = AddressBook()
        assert not book.has(OWNER)
        assert book.describe(OWNER) == OWNER
        assert book.get(None) is None

    def test_register(self):
        book = AddressBook({OWNER: AddressTag("vitalik.eth", "ENS name", "other")})
        assert book.get(OWNER.lower()).label == "vitalik.eth"
        assert not AddressBook().has(OWNER)


def test_report_to_dict(record_434):
    d = report_to_dict(verify_service_record(record_434, 1, "1.3.0", network="ethereum"))
    assert d["hash_matches"] is True
    assert d["hashes"]["safe_tx_hash"] == record_434["safeTxHash"]
    assert d["security"]["overall_risk"] == "none"
    assert d["operation"] == "Call"
    assert d["sub_calls"] == []
