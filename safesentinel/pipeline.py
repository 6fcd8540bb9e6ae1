"""
Hash, analyze and cross-check one Safe transaction.

verify_transaction() runs the full flow for a single record:

  1. validate the Safe version and compute domain / message / safe tx hash
  2. compare the safe tx hash with the expected one (if any)
  3. run the security checks over the record
  4. unwind MultiSend batches and run the checks on every sub-call
  5. re-encode the service's decoded data, outer call and nested calls
  6. attach protocol decodes from the decoder registry
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .constants import MAX_BATCH_DEPTH
from .decoders import DecodedCall, DecoderRegistry
from .hashing import calculate_hashes, hashes_match
from .models import HashTriple, RiskVerdict, SafeTx, SubCall, VerificationResult
from .multisend import decode_batch, is_batch
from .security import analyze_security
from .verify import nested_claims, verify_decoded_claim, verify_sub_call_claim

logger = logging.getLogger(__name__)


@dataclass
class SubCallReport:
    path: Tuple[int, ...]       # index at each batch level, (0,) is the first top-level sub-call
    call: SubCall
    security: RiskVerdict
    claim: Optional[Dict] = None
    verification: Optional[VerificationResult] = None
    decoded: Optional[DecodedCall] = None

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def needs_review(self) -> bool:
        return (self.security.requires_careful_review
                or (self.verification is not None and not self.verification.verified))


@dataclass
class TransactionReport:
    tx: SafeTx
    safe_address: str
    chain_id: int
    version: str
    network: Optional[str] = None
    hashes: Optional[HashTriple] = None
    hash_error: Optional[str] = None
    expected_safe_tx_hash: Optional[str] = None
    security: Optional[RiskVerdict] = None
    claim: Optional[Dict] = None
    claim_verification: Optional[VerificationResult] = None
    sub_calls: List[SubCallReport] = field(default_factory=list)
    batch_truncated: bool = False
    decoded: Optional[DecodedCall] = None
    has_custom_decoder: bool = False

    @property
    def hash_matches(self) -> Optional[bool]:
        """None when there is nothing to compare against."""
        if self.hashes is None or not self.expected_safe_tx_hash:
            return None
        return hashes_match(self.hashes.safe_tx_hash, self.expected_safe_tx_hash)

    @property
    def is_batch(self) -> bool:
        return is_batch(self.tx.data)

    @property
    def safe_to_sign(self) -> bool:
        if self.hashes is None or self.hash_matches is False:
            return False
        if self.claim_verification is not None and not self.claim_verification.verified:
            return False
        if self.batch_truncated or (self.security and self.security.requires_careful_review):
            return False
        return not any(s.needs_review for s in self.sub_calls)


def _as_tx(call: SubCall) -> SafeTx:
    return SafeTx(to=call.to, value=call.value, data=call.data, operation=call.operation)


def _has_data(data: Optional[str]) -> bool:
    return bool(data) and data.lower() not in ("0x", "")


def _decode(registry: Optional[DecoderRegistry], to: str, data: str, network: Optional[str]):
    if registry is None or not _has_data(data):
        return None
    return registry.decode(to, data, network)


def walk_sub_calls(data: str, claim: Optional[Dict] = None, network: Optional[str] = None,
                   registry: Optional[DecoderRegistry] = None) -> Tuple[List[SubCallReport], bool]:
    """
    Reports for every sub-call of a (possibly nested) MultiSend batch, depth-first.

    Nested claims from the service are matched to sub-calls by position. The
    second return value is True when nesting went past MAX_BATCH_DEPTH.
    """
    truncated = False
    reports: List[SubCallReport] = []
    stack: List[Tuple[SubCall, Optional[Dict], Optional[VerificationResult], Tuple[int, ...]]] = []

    def push_children(batch_data, batch_claim, path):
        nonlocal truncated
        calls = decode_batch(batch_data)
        if not calls:
            return
        if len(path) + 1 > MAX_BATCH_DEPTH:
            logger.warning("batch nesting exceeds %d levels; sub-calls not reported", MAX_BATCH_DEPTH)
            truncated = True
            return
        entries = nested_claims(batch_claim)
        count_error = None
        if entries is not None and len(entries) != len(calls):
            count_error = VerificationResult(
                False, f"Decoded data lists {len(entries)} nested transaction(s), raw batch has {len(calls)}")
            entries = None
        for i in reversed(range(len(calls))):
            stack.append((calls[i], entries[i] if entries else None, count_error, path + (i,)))

    push_children(data, claim, ())
    while stack:
        call, entry, preset, path = stack.pop()
        if preset is not None:
            verification = preset
        elif entry is not None:
            verification = verify_sub_call_claim(call, entry)
        else:
            verification = None
        sub_claim = entry.get("dataDecoded") if isinstance(entry, dict) else None
        reports.append(SubCallReport(
            path=path,
            call=call,
            security=analyze_security(_as_tx(call)),
            claim=sub_claim,
            verification=verification,
            decoded=_decode(registry, call.to, call.data, network),
        ))
        push_children(call.data, sub_claim, path)
    return reports, truncated


def verify_transaction(tx: SafeTx, safe_address: str, chain_id: int, version: str,
                       expected_safe_tx_hash: Optional[str] = None, claim: Optional[Dict] = None,
                       network: Optional[str] = None,
                       registry: Optional[DecoderRegistry] = None) -> TransactionReport:
    report = TransactionReport(
        tx=tx, safe_address=safe_address, chain_id=chain_id, version=version, network=network,
        expected_safe_tx_hash=expected_safe_tx_hash, claim=claim,
    )

    if not safe_address:
        report.hash_error = "No Safe address to build the domain hash from"
    else:
        try:
            report.hashes = calculate_hashes(chain_id, safe_address, tx, version)
        except (TypeError, ValueError) as e:
            logger.error("hash calculation failed: %s", e)
            report.hash_error = str(e)

    report.security = analyze_security(tx)

    if claim and _has_data(tx.data):
        report.claim_verification = verify_decoded_claim(tx.data, claim)

    if is_batch(tx.data):
        report.sub_calls, report.batch_truncated = walk_sub_calls(tx.data, claim, network, registry)
    else:
        report.decoded = _decode(registry, tx.to, tx.data, network)
        report.has_custom_decoder = registry is not None and registry.has_decoder(tx.to, network)
    return report


def verify_service_record(record: Dict, chain_id: int, version: str, network: Optional[str] = None,
                          registry: Optional[DecoderRegistry] = None,
                          safe_address: Optional[str] = None) -> TransactionReport:
    """verify_transaction() for a Safe Transaction Service multisig-transaction record."""
    return verify_transaction(
        SafeTx.from_dict(record),
        safe_address=safe_address or record.get("safe"),
        chain_id=chain_id,
        version=version,
        expected_safe_tx_hash=record.get("safeTxHash"),
        claim=record.get("dataDecoded"),
        network=network,
        registry=registry,
    )
