"""Tests for safesentinel.hashing: EIP-712 domain, message and Safe tx hash."""
from __future__ import annotations

from dataclasses import replace

import pytest
from eth_utils import decode_hex, keccak

from safesentinel.errors import UnsupportedVersion
from safesentinel.hashing import (
    calculate_hashes,
    domain_hash,
    hashes_match,
    message_hash,
    safe_tx_hash,
)
from safesentinel.models import SafeTx
from tests.conftest import DOMAIN_434, MESSAGE_434, SAFE, SAFE_TX_HASH_434, UNTRUSTED


@pytest.fixture
def plain_tx() -> SafeTx:
    return SafeTx(to=UNTRUSTED, value=0, data="0x", nonce=0)


class TestMainnetTransaction:
    """Nonce 434 of a real mainnet Safe, hashes as shown by a Ledger."""

    def test_all_three_hashes(self, tx_434):
        h = calculate_hashes(1, SAFE, tx_434, "1.3.0")
        assert h.domain_hash.lower() == DOMAIN_434
        assert h.message_hash.lower() == MESSAGE_434
        assert h.safe_tx_hash.lower() == SAFE_TX_HASH_434

    def test_from_service_record(self, record_434):
        h = calculate_hashes(1, SAFE, SafeTx.from_dict(record_434), "1.3.0")
        assert h.safe_tx_hash == SAFE_TX_HASH_434

    def test_lowercase_safe_address(self, tx_434):
        h = calculate_hashes(1, SAFE.lower(), tx_434, "1.3.0")
        assert h.safe_tx_hash == SAFE_TX_HASH_434

    def test_l2_suffix_same_hash(self, tx_434):
        assert calculate_hashes(1, SAFE, tx_434, "1.3.0+L2") == calculate_hashes(1, SAFE, tx_434, "1.3.0")


class TestComposition:
    def test_safe_tx_hash_is_prefixed_keccak(self, tx_434):
        h = calculate_hashes(1, SAFE, tx_434, "1.3.0")
        expected = keccak(b"\x19\x01" + decode_hex(h.domain_hash) + decode_hex(h.message_hash))
        assert h.safe_tx_hash == "0x" + expected.hex()
        assert safe_tx_hash(h.domain_hash, h.message_hash) == h.safe_tx_hash

    def test_hex_shape(self, plain_tx):
        h = calculate_hashes(1, SAFE, replace(plain_tx, value=10 ** 18), "1.3.0")
        for v in (h.domain_hash, h.message_hash, h.safe_tx_hash):
            assert v.startswith("0x") and len(v) == 66
        assert len({h.domain_hash, h.message_hash, h.safe_tx_hash}) == 3


class TestVersionRules:
    def test_legacy_domain_has_no_chain_id(self, plain_tx):
        old = calculate_hashes(1, SAFE, plain_tx, "1.2.0")
        new = calculate_hashes(1, SAFE, plain_tx, "1.3.0")
        assert old.domain_hash != new.domain_hash
        assert old.message_hash == new.message_hash
        assert old.safe_tx_hash != new.safe_tx_hash

    def test_legacy_domain_ignores_chain(self):
        assert domain_hash(1, SAFE, "1.2.0") == domain_hash(137, SAFE, "1.2.0")

    def test_chain_id_changes_domain(self):
        assert domain_hash(1, SAFE, "1.3.0") != domain_hash(11155111, SAFE, "1.3.0")

    def test_domain_constant_across_new_versions(self):
        assert domain_hash(1, SAFE, "1.3.0") == domain_hash(1, SAFE, "1.4.1") == domain_hash(1, SAFE, "1.5.0")

    def test_data_gas_typehash_before_1_0(self, plain_tx):
        assert message_hash(plain_tx, "0.1.0") != message_hash(plain_tx, "1.0.0")
        assert message_hash(plain_tx, "1.0.0") == message_hash(plain_tx, "1.3.0")

    def test_l2_legacy(self, plain_tx):
        assert calculate_hashes(1, SAFE, plain_tx, "1.2.0+L2") == calculate_hashes(1, SAFE, plain_tx, "1.2.0")

    def test_nonce_changes_message(self, plain_tx):
        assert message_hash(plain_tx, "1.3.0") != message_hash(replace(plain_tx, nonce=1), "1.3.0")


class TestErrors:
    def test_below_floor(self, plain_tx):
        with pytest.raises(UnsupportedVersion, match='"0.0.9" is not supported'):
            calculate_hashes(1, SAFE, plain_tx, "0.0.9")

    def test_empty_version(self, plain_tx):
        with pytest.raises(UnsupportedVersion, match="No Safe multisig contract found"):
            calculate_hashes(1, SAFE, plain_tx, "")


class TestHashesMatch:
    def test_case_insensitive(self):
        assert hashes_match(SAFE_TX_HASH_434, SAFE_TX_HASH_434.upper().replace("0X", "0x"))

    def test_missing_prefix(self):
        assert hashes_match(SAFE_TX_HASH_434, SAFE_TX_HASH_434[2:])

    def test_different(self):
        assert not hashes_match(SAFE_TX_HASH_434, DOMAIN_434)

    def test_empty(self):
        assert not hashes_match(SAFE_TX_HASH_434, "")
