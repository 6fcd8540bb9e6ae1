"""
Sky LockstakeEngine (0xCe01C90dE7FD1bcFa39e237FE6D8D9F569e8A6a3, Ethereum mainnet).

Each supported function is one row in FUNCTIONS: signature, parameter names,
risk and a formatter for the human-readable explanation. ``multicall(bytes[])``
is unwound and every inner call decoded against the same table.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Tuple

from eth_abi import decode as abi_decode

from ..constants import ZERO_ADDRESS, selector
from ..models import Severity
from ..multisend import split_selector_and_payload
from .base import ContractDecoder, DecodedCall, DecodedFunction, DecodedParam

logger = logging.getLogger(__name__)

LOCKSTAKE_ENGINE = "0xCe01C90dE7FD1bcFa39e237FE6D8D9F569e8A6a3"

MULTICALL_SIG = "multicall(bytes[])"
MULTICALL_SELECTOR = selector(MULTICALL_SIG)

WAD = Decimal(10) ** 18


def _units(wad: int) -> str:
    return f"{(Decimal(wad) / WAD).normalize():,f}"


def _sky(wad: int) -> str:
    return f"{_units(wad)} SKY"


def _usds(wad: int) -> str:
    return f"{_units(wad)} USDS"


def _ref(p: Dict) -> str:
    return f" Using referral code {p['ref']}." if p["ref"] > 0 else ""


def _is_zero(address: str) -> bool:
    return address.lower() == ZERO_ADDRESS


def _vote_delegate(p: Dict) -> str:
    if _is_zero(p["voteDelegate"]):
        return (f"Remove the vote delegation of urn #{p['index']} owned by {p['owner']}. "
                "The locked SKY stops counting towards governance votes.")
    return (f"Delegate the SKY locked in urn #{p['index']} owned by {p['owner']} to vote delegate "
            f"{p['voteDelegate']}. An urn with debt must stay safely collateralized, "
            "and the delegate cannot change while the urn is in auction.")


def _farm(p: Dict) -> str:
    if _is_zero(p["farm"]):
        return (f"Unstake the SKY of urn #{p['index']} owned by {p['owner']} from its current farm. "
                "The SKY stays locked but no longer earns rewards.")
    return (f"Stake the SKY locked in urn #{p['index']} owned by {p['owner']} in farm {p['farm']}."
            f"{_ref(p)} Any previous farm is left first. Cannot change while the urn is in auction.")


@dataclass(frozen=True)
class FunctionSpec:
    signature: str
    names: Tuple[str, ...]
    risk: Severity
    explain: Callable[[Dict], str]
    warnings: Callable[[Dict], List[str]] = lambda p: []

    @property
    def name(self) -> str:
        return self.signature.split("(")[0]

    @property
    def types(self) -> List[str]:
        inner = self.signature[self.signature.index("(") + 1:-1]
        return inner.split(",") if inner else []


FUNCTIONS = [
    # urn management
    FunctionSpec(
        "open(uint256)", ("index",), Severity.NONE,
        lambda p: (f"Create urn #{p['index']} for the sender. The urn can lock SKY, delegate votes, "
                   "stake in farms and borrow USDS."),
    ),
    FunctionSpec(
        "hope(address,uint256,address)", ("owner", "index", "usr"), Severity.HIGH,
        lambda p: (f"Allow {p['usr']} to manage urn #{p['index']} owned by {p['owner']}: lock, free, "
                   "draw, wipe and change delegate or farm on the owner's behalf."),
        lambda p: [f"Granting urn permissions lets {p['usr']} control collateral and debt. "
                   "Only authorize trusted addresses."],
    ),
    FunctionSpec(
        "nope(address,uint256,address)", ("owner", "index", "usr"), Severity.LOW,
        lambda p: f"Revoke the permission of {p['usr']} to manage urn #{p['index']} owned by {p['owner']}.",
    ),
    # deposit / withdraw
    FunctionSpec(
        "lock(address,uint256,uint256,uint16)", ("owner", "index", "wad", "ref"), Severity.LOW,
        lambda p: (f"Deposit {_sky(p['wad'])} into urn #{p['index']} owned by {p['owner']}.{_ref(p)} "
                   "The SKY follows the urn's vote delegate and farm, if any."),
    ),
    FunctionSpec(
        "free(address,uint256,address,uint256)", ("owner", "index", "to", "wad"), Severity.LOW,
        lambda p: (f"Withdraw {_sky(p['wad'])} from urn #{p['index']} owned by {p['owner']} to {p['to']}. "
                   "An exit fee is deducted and burned. The SKY is unstaked and undelegated first."),
    ),
    FunctionSpec(
        "freeNoFee(address,uint256,address,uint256)", ("owner", "index", "to", "wad"), Severity.MEDIUM,
        lambda p: (f"[ADMIN ONLY] Withdraw {_sky(p['wad'])} from urn #{p['index']} owned by {p['owner']} "
                   f"to {p['to']} without the exit fee."),
        lambda p: ["This is an admin-only function. Only authorized addresses can execute it."],
    ),
    # delegation and farming
    FunctionSpec(
        "selectVoteDelegate(address,uint256,address)", ("owner", "index", "voteDelegate"), Severity.MEDIUM,
        _vote_delegate,
    ),
    FunctionSpec(
        "selectFarm(address,uint256,address,uint16)", ("owner", "index", "farm", "ref"), Severity.MEDIUM,
        _farm,
    ),
    # borrow / repay
    FunctionSpec(
        "draw(address,uint256,address,uint256)", ("owner", "index", "to", "wad"), Severity.HIGH,
        lambda p: (f"Borrow {_usds(p['wad'])} against urn #{p['index']} owned by {p['owner']}, paid to "
                   f"{p['to']}. Debt increases and the urn must stay safely collateralized."),
    ),
    FunctionSpec(
        "wipe(address,uint256,uint256)", ("owner", "index", "wad"), Severity.LOW,
        lambda p: (f"Repay {_usds(p['wad'])} of the debt of urn #{p['index']} owned by {p['owner']}. "
                   "The USDS is taken from the sender."),
    ),
    FunctionSpec(
        "wipeAll(address,uint256)", ("owner", "index"), Severity.LOW,
        lambda p: (f"Repay all debt of urn #{p['index']} owned by {p['owner']}, accrued interest included. "
                   "The USDS is taken from the sender."),
    ),
    # rewards
    FunctionSpec(
        "getReward(address,uint256,address,address)", ("owner", "index", "farm", "to"), Severity.LOW,
        lambda p: (f"Claim the rewards of urn #{p['index']} owned by {p['owner']} from farm {p['farm']}, "
                   f"paid to {p['to']}."),
    ),
]

BY_SELECTOR: Dict[str, FunctionSpec] = {selector(f.signature): f for f in FUNCTIONS}


def _normalize(v):
    if isinstance(v, (bytes, bytearray)):
        return "0x" + v.hex()
    return v


class LockstakeEngineDecoder(ContractDecoder):
    contract_address = LOCKSTAKE_ENGINE
    contract_name = "LockstakeEngine"
    network = "ethereum"

    def supported_functions(self) -> List[str]:
        return [f.name for f in FUNCTIONS] + ["multicall"]

    def decode(self, data: str) -> DecodedCall:
        sel, _ = split_selector_and_payload(data)
        if sel == MULTICALL_SELECTOR:
            return self._decode_multicall(data)
        return DecodedCall(main=self.decode_function(data))

    def _decode_multicall(self, data: str) -> DecodedCall:
        _, payload = split_selector_and_payload(data)
        try:
            (calls,) = abi_decode(["bytes[]"], payload)
        except Exception as e:
            raise ValueError(f"Failed to decode multicall: {e}")
        nested = [self.decode_function("0x" + c.hex()) for c in calls]
        main = DecodedFunction(
            name="multicall",
            signature=MULTICALL_SIG,
            parameters=[DecodedParam("data", "bytes[]", f"{len(calls)} calls")],
            explanation=f"Batch execution of {len(calls)} function call(s) in a single transaction.",
        )
        return DecodedCall(main=main, nested=nested, is_multicall=True)

    def decode_function(self, data: str) -> DecodedFunction:
        """Decode one call; anything outside the table comes back as ``unknown`` with high risk."""
        sel, payload = split_selector_and_payload(data)
        spec = BY_SELECTOR.get(sel)
        if spec is not None:
            try:
                values = [_normalize(v) for v in abi_decode(spec.types, payload)]
            except Exception as e:
                logger.debug("%s: cannot decode %s arguments: %s", self.contract_name, spec.name, e)
            else:
                p = dict(zip(spec.names, values))
                return DecodedFunction(
                    name=spec.name,
                    signature=spec.signature,
                    parameters=[DecodedParam(n, t, v) for n, t, v in zip(spec.names, spec.types, values)],
                    explanation=spec.explain(p),
                    warnings=spec.warnings(p),
                    risk_level=spec.risk,
                )
        shown = sel or data
        return DecodedFunction(
            name="unknown",
            signature=shown,
            parameters=[],
            explanation=f"Function with selector {shown} is not recognized by this decoder.",
            warnings=["This function is not in the supported LockstakeEngine function list."],
            risk_level=Severity.HIGH,
        )
