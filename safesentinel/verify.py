"""
Check decoded data from the Safe Transaction Service against the raw calldata.

The service's ``dataDecoded`` is never trusted as-is: the claimed method and
parameters are ABI-encoded again and must reproduce the raw bytes exactly.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from eth_abi import encode as abi_encode
from eth_utils import decode_hex, to_canonical_address

from .constants import selector
from .models import SubCall, VerificationResult
from .multisend import decode_batch

logger = logging.getLogger(__name__)


def _strip(h: str) -> str:
    h = h.lower()
    return h[2:] if h.startswith("0x") else h


def canonical_type(abi_type: str) -> str:
    t = abi_type.strip()
    suffix = ""
    if "[" in t:
        suffix = t[t.index("["):]
        t = t[:t.index("[")]
    if t == "uint":
        t = "uint256"
    elif t == "int":
        t = "int256"
    elif t == "byte":
        t = "bytes1"
    return t + suffix


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if s.lower().startswith(("0x", "-0x")):
        return int(s, 16)
    return int(s)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s == "true":
        return True
    if s == "false":
        return False
    raise ValueError(f"Expected 'true' or 'false', got {value!r}")


def coerce_value(abi_type: str, value: Any) -> Any:
    """Convert a decoded (usually stringly) value into what eth-abi encodes for ``abi_type``."""
    if abi_type.endswith("]"):
        base = abi_type[:abi_type.rindex("[")]
        items = json.loads(value) if isinstance(value, str) else value
        if not isinstance(items, list):
            raise ValueError(f"Expected a list for {abi_type}, got {value!r}")
        return [coerce_value(base, v) for v in items]
    if abi_type == "address":
        return to_canonical_address(value)
    if abi_type.startswith(("uint", "int")):
        return _to_int(value)
    if abi_type == "bool":
        return _to_bool(value)
    if abi_type == "string":
        return str(value)
    if abi_type.startswith("bytes"):
        return decode_hex(value)
    raise ValueError(f"Unsupported parameter type: {abi_type}")


def verify_decoded_claim(raw_data: Optional[str], claim: Optional[Dict]) -> VerificationResult:
    """
    Re-encode ``claim`` (``{"method": ..., "parameters": [{"name", "type", "value"}]}``)
    and compare it with ``raw_data``.

    Never raises: missing inputs, unparsable values and mismatches all come
    back as ``verified=False`` with a readable ``error``.
    """
    if not claim or not isinstance(claim, dict):
        return VerificationResult(False, "No decoded data provided")
    if not raw_data or _strip(raw_data) == "":
        return VerificationResult(False, "No raw data to verify against")

    try:
        raw = _strip(raw_data)
        if len(raw) < 8:
            return VerificationResult(False, "Raw data is shorter than a function selector")
        raw_selector = "0x" + raw[:8]
        params = claim.get("parameters") or []

        # zero-argument call: the selector and nothing else
        if not params:
            verified = raw == raw_selector[2:]
            return VerificationResult(
                verified,
                None if verified else "Raw data has extra bytes beyond function selector",
                raw_selector,
            )

        types = [canonical_type(p["type"]) for p in params]
        signature = f"{claim['method']}({','.join(types)})"
        claimed_selector = selector(signature)
        if claimed_selector != raw_selector:
            return VerificationResult(
                False,
                f"Function selector mismatch: {signature} is {claimed_selector}, raw data has {raw_selector}",
            )

        args = [coerce_value(t, p.get("value")) for t, p in zip(types, params)]
        reencoded = claimed_selector + abi_encode(types, args).hex()
        verified = _strip(reencoded) == raw
        return VerificationResult(
            verified,
            None if verified else "Re-encoded data does not match raw data",
            reencoded,
        )
    except Exception as e:
        logger.debug("verification of %s failed", claim.get("method"), exc_info=True)
        return VerificationResult(False, f"Verification failed: {e}")


# ---------------------------- Batches ----------------------------

def nested_claims(claim: Optional[Dict]) -> Optional[List[Dict]]:
    """The ``valueDecoded`` list the service attaches to a multiSend ``transactions`` parameter."""
    if not isinstance(claim, dict):
        return None
    params = claim.get("parameters")
    for p in params if isinstance(params, list) else []:
        vd = p.get("valueDecoded") if isinstance(p, dict) else None
        if isinstance(vd, list):
            return vd
    return None


def verify_sub_call_claim(call: SubCall, entry: Dict) -> VerificationResult:
    if not isinstance(entry, dict):
        return VerificationResult(False, "Nested transaction entry is not an object")
    try:
        mismatches = []
        if int(entry.get("operation", 0)) != int(call.operation):
            mismatches.append("operation")
        if _strip(str(entry.get("to", ""))) != _strip(call.to):
            mismatches.append("to")
        if int(entry.get("value") or 0) != call.value:
            mismatches.append("value")
        if _strip(entry.get("data") or "0x") != _strip(call.data):
            mismatches.append("data")
    except (TypeError, ValueError) as e:
        return VerificationResult(False, f"Verification failed: {e}")
    if mismatches:
        return VerificationResult(False, f"Nested transaction mismatch in: {', '.join(mismatches)}")
    decoded = entry.get("dataDecoded")
    if decoded and _strip(call.data):
        return verify_decoded_claim(call.data, decoded)
    return VerificationResult(True)


def verify_batch_claim(raw_data: Optional[str], claim: Optional[Dict]) -> List[VerificationResult]:
    """One result per sub-call of a MultiSend, checked against the claim's nested transactions."""
    calls = decode_batch(raw_data)
    if calls is None:
        return [VerificationResult(False, "Raw data is not a decodable MultiSend batch")]
    entries = nested_claims(claim)
    if entries is None:
        return [VerificationResult(False, "Decoded data carries no nested transactions")]
    if len(entries) != len(calls):
        return [VerificationResult(
            False,
            f"Decoded data lists {len(entries)} nested transaction(s), raw batch has {len(calls)}",
        )]
    return [verify_sub_call_claim(c, e) for c, e in zip(calls, entries)]
