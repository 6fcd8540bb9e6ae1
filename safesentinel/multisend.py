"""
MultiSend batch decoding.

A ``multiSend(bytes transactions)`` call carries one ABI ``bytes`` argument
whose content is a tight concatenation of frames:

  operation:uint8 | to:20 | value:uint256 | dataLength:uint256 | data:<dataLength>

There are no delimiters; the walk stops exactly at the end of the blob.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import decode_hex, to_canonical_address, to_checksum_address

from .constants import MULTISEND_SELECTOR
from .errors import DecodeNotApplicable, MalformedBinary
from .models import SubCall

logger = logging.getLogger(__name__)

FRAME_HEADER = 1 + 20 + 32 + 32


def split_selector_and_payload(data_hex: str) -> Tuple[str, bytes]:
    h = data_hex[2:] if data_hex.startswith(("0x", "0X")) else data_hex
    if len(h) < 8:
        return ("", bytes())
    return ("0x" + h[:8].lower(), bytes.fromhex(h[8:]))


def parse_packed_transactions(blob: bytes) -> List[SubCall]:
    """Walk packed frames. Raises MalformedBinary when a frame overruns the blob."""
    items = []
    i = 0
    n = len(blob)
    while i < n:
        if i + FRAME_HEADER > n:
            raise MalformedBinary(f"Truncated MultiSend frame header at offset {i}")
        op = blob[i]
        i += 1
        to = to_checksum_address("0x" + blob[i:i+20].hex())
        i += 20
        value = int.from_bytes(blob[i:i+32], "big")
        i += 32
        data_len = int.from_bytes(blob[i:i+32], "big")
        i += 32
        if i + data_len > n:
            raise MalformedBinary(f"MultiSend frame data overruns buffer at offset {i} (length {data_len})")
        items.append(SubCall(operation=op, to=to, value=value, data="0x" + blob[i:i+data_len].hex()))
        i += data_len
    return items


def is_batch(data: Optional[str]) -> bool:
    """Selector-only check for ``multiSend(bytes)``."""
    if not data:
        return False
    h = data[2:] if data.startswith(("0x", "0X")) else data
    return len(h) >= 8 and "0x" + h[:8].lower() == MULTISEND_SELECTOR


def unwrap_batch(data: str) -> List[SubCall]:
    """Strict decode. Raises DecodeNotApplicable / MalformedBinary."""
    if not is_batch(data):
        raise DecodeNotApplicable("Not a multiSend(bytes) call")
    _, payload = split_selector_and_payload(data)
    try:
        (blob,) = abi_decode(["bytes"], payload)
    except Exception as e:
        raise DecodeNotApplicable(f"Failed to decode multiSend payload: {e}")
    return parse_packed_transactions(blob)


def decode_batch(data: Optional[str]) -> Optional[List[SubCall]]:
    """Sub-calls of a MultiSend call, or None when the data is not a decodable batch."""
    if not is_batch(data):
        return None
    try:
        return unwrap_batch(data)
    except (DecodeNotApplicable, ValueError) as e:
        logger.debug("treating data as opaque: %s", e)
        return None


# ---------------------------- Encoding ----------------------------

def encode_batch(calls: Iterable[SubCall]) -> bytes:
    out = b""
    for c in calls:
        payload = decode_hex(c.data or "0x")
        out += (
            bytes([int(c.operation)])
            + to_canonical_address(c.to)
            + int(c.value).to_bytes(32, "big")
            + len(payload).to_bytes(32, "big")
            + payload
        )
    return out


def encode_multisend_call(calls: Iterable[SubCall]) -> str:
    """Full ``multiSend(bytes)`` calldata for the given sub-calls."""
    return MULTISEND_SELECTOR + abi_encode(["bytes"], [encode_batch(calls)]).hex()
