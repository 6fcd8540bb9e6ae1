"""
EIP-712 hashes of a Safe transaction.

  domain hash    keccak(abi.encode(DOMAIN_TYPEHASH[, chainId], safe))
  message hash   keccak(abi.encode(SAFE_TX_TYPEHASH, to, value, keccak(data), operation, ...))
  safe tx hash   keccak(0x1901 ++ domain hash ++ message hash)

The safe tx hash is what a hardware wallet shows when signing.
"""

from eth_abi import encode as abi_encode
from eth_utils import decode_hex, keccak, to_canonical_address

from . import version as semver
from .constants import (
    BASE_GAS_MIN_VERSION,
    DOMAIN_SEPARATOR_TYPEHASH,
    DOMAIN_SEPARATOR_TYPEHASH_OLD,
    EIP712_PREFIX,
    LEGACY_DOMAIN_MAX_VERSION,
    SAFE_TX_TYPEHASH,
    SAFE_TX_TYPEHASH_OLD,
)
from .models import HashTriple, SafeTx


def _hex(b: bytes) -> str:
    return "0x" + b.hex()


def domain_hash(chain_id: int, safe_address: str, version: str) -> str:
    # chainId joined the domain in 1.3.0 (safe-smart-account#264)
    if semver.lte(semver.clean(version), LEGACY_DOMAIN_MAX_VERSION):
        encoded = abi_encode(
            ["bytes32", "address"],
            [decode_hex(DOMAIN_SEPARATOR_TYPEHASH_OLD), to_canonical_address(safe_address)],
        )
    else:
        encoded = abi_encode(
            ["bytes32", "uint256", "address"],
            [decode_hex(DOMAIN_SEPARATOR_TYPEHASH), int(chain_id), to_canonical_address(safe_address)],
        )
    return _hex(keccak(encoded))


def message_hash(tx: SafeTx, version: str) -> str:
    # bytes are a dynamic EIP-712 type: the struct carries their hash
    data_hash = keccak(decode_hex(tx.data or "0x"))
    # baseGas was called dataGas before 1.0.0 (safe-smart-account#90)
    if semver.lt(semver.clean(version), BASE_GAS_MIN_VERSION):
        type_hash = SAFE_TX_TYPEHASH_OLD
    else:
        type_hash = SAFE_TX_TYPEHASH
    encoded = abi_encode(
        ["bytes32", "address", "uint256", "bytes32", "uint8", "uint256",
         "uint256", "uint256", "address", "address", "uint256"],
        [
            decode_hex(type_hash),
            to_canonical_address(tx.to),
            int(tx.value),
            data_hash,
            int(tx.operation),
            int(tx.safe_tx_gas),
            int(tx.base_gas),
            int(tx.gas_price),
            to_canonical_address(tx.gas_token),
            to_canonical_address(tx.refund_receiver),
            int(tx.nonce),
        ],
    )
    return _hex(keccak(encoded))


def safe_tx_hash(domain: str, message: str) -> str:
    return _hex(keccak(EIP712_PREFIX + decode_hex(domain) + decode_hex(message)))


def calculate_hashes(chain_id: int, safe_address: str, tx: SafeTx, version: str) -> HashTriple:
    """
    Compute domain, message and final Safe transaction hash.

    Raises UnsupportedVersion for an empty version or one below 0.1.0; nothing
    is computed in that case.
    """
    semver.validate(version)
    d = domain_hash(chain_id, safe_address, version)
    m = message_hash(tx, version)
    return HashTriple(domain_hash=d, message_hash=m, safe_tx_hash=safe_tx_hash(d, m))


def hashes_match(calculated: str, expected: str) -> bool:
    """Hex comparison that ignores case (and a missing 0x on either side)."""
    if not calculated or not expected:
        return False
    a = calculated.lower()
    b = expected.lower()
    a = a[2:] if a.startswith("0x") else a
    b = b[2:] if b.startswith("0x") else b
    return a == b
