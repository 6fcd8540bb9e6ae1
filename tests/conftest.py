"""Shared fixtures: the nonce-434 mainnet transaction and calldata builders."""
from __future__ import annotations

from typing import List

import pytest
from eth_abi import encode as abi_encode
from eth_utils import to_canonical_address

from safesentinel.constants import selector
from safesentinel.models import SafeTx, SubCall

SAFE = "0xf65475e74C1Ed6d004d5240b06E3088724dFDA5d"
LOCKSTAKE = "0xCe01C90dE7FD1bcFa39e237FE6D8D9F569e8A6a3"
ZERO = "0x0000000000000000000000000000000000000000"
UNTRUSTED = "0x1234567890123456789012345678901234567890"
OWNER = "0xd8dA6BF26964aF9D7eEd9e03E53415D37aA96045"

# multicall(bytes[]) wrapping one lock() on the LockstakeEngine
LOCK_MULTICALL = (
    "0xac9650d8"
    "0000000000000000000000000000000000000000000000000000000000000020"
    "0000000000000000000000000000000000000000000000000000000000000001"
    "0000000000000000000000000000000000000000000000000000000000000020"
    "0000000000000000000000000000000000000000000000000000000000000084"
    "6c3dead4000000000000000000000000f65475e74c1ed6d004d5240b06e30887"
    "24dfda5d00000000000000000000000000000000000000000000000000000000"
    "000000000000000000000000000000000000000000000000002caaf1dd9f3a1f"
    "f600000000000000000000000000000000000000000000000000000000000000"
    "0000000100000000000000000000000000000000000000000000000000000000"
)

DOMAIN_434 = "0xaf88393f1c14cf4d8f0b773c4f37cf80a29d606bed88e0fd8f61350debb3ac65"
MESSAGE_434 = "0x4d51fb13b155063239c656f466a7d1810bfa863edb4f96aad775643d4afe3675"
SAFE_TX_HASH_434 = "0x57f5c1a8390932d29f5aa6e321a2e689c483a728fa5bccfc4ac7becb91239801"


def call(sig: str, types: List[str], args: list) -> str:
    """ABI calldata for ``sig``; address arguments may be given as hex strings."""
    coerced = [to_canonical_address(a) if t == "address" else a for t, a in zip(types, args)]
    return selector(sig) + abi_encode(types, coerced).hex()


def add_owner(owner: str = OWNER, threshold: int = 2) -> str:
    return call("addOwnerWithThreshold(address,uint256)", ["address", "uint256"], [owner, threshold])


def transfer(to: str = OWNER, amount: int = 10 ** 18) -> str:
    return call("transfer(address,uint256)", ["address", "uint256"], [to, amount])


def sub(to: str, data: str = "0x", value: int = 0, operation: int = 0) -> SubCall:
    return SubCall(operation=operation, to=to, value=value, data=data)


@pytest.fixture
def tx_434() -> SafeTx:
    return SafeTx(to=LOCKSTAKE, value=0, data=LOCK_MULTICALL, operation=0, nonce=434)


@pytest.fixture
def record_434() -> dict:
    """Safe Transaction Service shaped record (string numerics)."""
    return {
        "safe": SAFE,
        "to": LOCKSTAKE,
        "value": "0",
        "data": LOCK_MULTICALL,
        "operation": 0,
        "safeTxGas": "0",
        "baseGas": "0",
        "gasPrice": "0",
        "gasToken": ZERO,
        "refundReceiver": ZERO,
        "nonce": "434",
        "safeTxHash": SAFE_TX_HASH_434,
        "dataDecoded": None,
        "isExecuted": False,
        "confirmations": [],
        "confirmationsRequired": 2,
    }
