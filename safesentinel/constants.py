"""
EIP-712 type hashes, trusted contract lists and Safe function selectors.

The type hashes are the values precomputed in the Safe contracts:

  DOMAIN_SEPARATOR_TYPEHASH      keccak256("EIP712Domain(uint256 chainId,address verifyingContract)")  >= 1.3.0
  DOMAIN_SEPARATOR_TYPEHASH_OLD  keccak256("EIP712Domain(address verifyingContract)")                  <= 1.2.0
  SAFE_TX_TYPEHASH               SafeTx(...,uint256 baseGas,...)                                        >= 1.0.0
  SAFE_TX_TYPEHASH_OLD           SafeTx(...,uint256 dataGas,...)                                        <  1.0.0
"""

from typing import Dict, Tuple

from eth_utils import keccak

DOMAIN_SEPARATOR_TYPEHASH = "0x47e79534a245952e8b16893a336b85a3d9ea9fa8c573f3d803afb92a79469218"
DOMAIN_SEPARATOR_TYPEHASH_OLD = "0x035aff83d86937d35b32e04f0ddc6ff469290eef2f1b692d8a815c89404d4749"
SAFE_TX_TYPEHASH = "0xbb8310d486368db6bd6f849402fdd73ad53d316b5a4b2644ad6efe0f941286d8"
SAFE_TX_TYPEHASH_OLD = "0x14d461bc7412367e924637b363c7bf29b8f47e2f84869f4426e5633d8af47b20"

EIP712_PREFIX = b"\x19\x01"

MIN_SAFE_VERSION = "0.1.0"
LEGACY_DOMAIN_MAX_VERSION = "1.2.0"   # <= uses the domain without chainId
BASE_GAS_MIN_VERSION = "1.0.0"        # <  uses dataGas in SafeTx

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Batches nested deeper than this are not walked; checks fail closed instead.
MAX_BATCH_DEPTH = 16

# ---------------------------- Trusted contracts ----------------------------

MULTISEND_CALL_ONLY = (
    "0x40A2aCCbd92BCA938b02010E17A5b8929b49130D",  # v1.3.0 (canonical)
    "0xA1dabEF33b3B82c7814B6D82A79e50F4AC44102B",  # v1.3.0 (eip155)
    "0xf220D3b4DFb23C4ade8C88E526C1353AbAcbC38F",  # v1.3.0 (zksync)
    "0x9641d764fc13c8B624c04430C7356C1C7C8102e2",  # v1.4.1 (canonical)
    "0x0408EF011960d02349d50286D20531229BCef773",  # v1.4.1 (zksync)
    "0xA83c336B20401Af773B6219BA5027174338D1836",  # v1.5.0 (canonical)
)

SAFE_MIGRATION = (
    "0x526643F69b81B008F46d95CD5ced5eC0edFFDaC6",  # v1.4.1 (canonical)
    "0x817756C6c555A94BCEE39eB5a102AbC1678b09A7",  # v1.4.1 (zksync)
    "0x6439e7ABD8Bb915A5263094784C5CF561c4172AC",  # v1.5.0 (canonical)
)

SIGN_MESSAGE_LIB = (
    "0xA65387F16B013cf2Af4605Ad8aA5ec25a2cbA3a2",  # v1.3.0 (canonical)
    "0x98FFBBF51bb33A056B08ddf711f289936AafF717",  # v1.3.0 (eip155)
    "0x357147caf9C0cCa67DfA0CF5369318d8193c8407",  # v1.3.0 (zksync)
    "0xd53cd0aB83D845Ac265BE939c57F53AD838012c9",  # v1.4.1 (canonical)
    "0xAca1ec0a1A575CDCCF1DC3d5d296202Eb6061888",  # v1.4.1 (zksync)
    "0x4FfeF8222648872B3dE295Ba1e49110E61f5b5aa",  # v1.5.0 (canonical)
)

TRUSTED_DELEGATE_CALL_ADDRESSES = MULTISEND_CALL_ONLY + SAFE_MIGRATION + SIGN_MESSAGE_LIB

# Allowance Module (mainnet). Trusted modules still produce warnings.
TRUSTED_MODULES = (
    "0xcfbfac74c26f8647cbdb8c5caf80bb5b32e43134",
)

TRUSTED_GUARDS: Tuple[str, ...] = ()

# ---------------------------- Selectors ----------------------------

def selector(sig: str) -> str:
    return "0x" + keccak(text=sig)[:4].hex()

MULTISEND_SIG = "multiSend(bytes)"
MULTISEND_SELECTOR = selector(MULTISEND_SIG)

OWNER_MODIFICATION_SIGS = (
    "addOwnerWithThreshold(address,uint256)",
    "removeOwner(address,address,uint256)",
    "swapOwner(address,address,address)",
    "changeThreshold(uint256)",
)

MODULE_MANAGEMENT_SIGS = (
    "enableModule(address)",
    "disableModule(address,address)",
)

GUARD_MANAGEMENT_SIGS = (
    "setGuard(address)",
)

def _by_selector(sigs) -> Dict[str, str]:
    return {selector(s): s for s in sigs}

OWNER_MODIFICATION_SEL = _by_selector(OWNER_MODIFICATION_SIGS)
MODULE_MANAGEMENT_SEL = _by_selector(MODULE_MANAGEMENT_SIGS)
GUARD_MANAGEMENT_SEL = _by_selector(GUARD_MANAGEMENT_SIGS)

OWNER_MODIFICATION_FUNCTIONS = tuple(s.split("(")[0] for s in OWNER_MODIFICATION_SIGS)
MODULE_MANAGEMENT_FUNCTIONS = tuple(s.split("(")[0] for s in MODULE_MANAGEMENT_SIGS)
GUARD_MANAGEMENT_FUNCTIONS = tuple(s.split("(")[0] for s in GUARD_MANAGEMENT_SIGS)
