"""
Security checks for a Safe transaction before it is signed.

Four independent checks, combined by ``analyze_security``:

  • delegate call to a contract outside the audited allow-list
  • custom gas token / refund receiver (value hidden in gas refunds)
  • owner or threshold changes, directly or inside MultiSend batches
  • module enable/disable and guard changes, directly or inside batches
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from eth_abi import decode as abi_decode

from .constants import (
    GUARD_MANAGEMENT_FUNCTIONS,
    GUARD_MANAGEMENT_SEL,
    MAX_BATCH_DEPTH,
    MODULE_MANAGEMENT_FUNCTIONS,
    MODULE_MANAGEMENT_SEL,
    OWNER_MODIFICATION_FUNCTIONS,
    OWNER_MODIFICATION_SEL,
    TRUSTED_DELEGATE_CALL_ADDRESSES,
    TRUSTED_GUARDS,
    TRUSTED_MODULES,
    ZERO_ADDRESS,
)
from .models import (
    DelegateCallCheck,
    GasTokenCheck,
    ModuleGuardCheck,
    ModuleGuardDetection,
    Operation,
    OwnerModificationCheck,
    OwnerModificationDetection,
    RiskVerdict,
    SafeTx,
    Severity,
)
from .multisend import decode_batch, split_selector_and_payload

logger = logging.getLogger(__name__)

TRUNCATED_WARNING = (
    f"WARNING: This transaction nests MultiSend batches deeper than {MAX_BATCH_DEPTH} levels. "
    "Its contents could not be fully inspected. Do not sign unless you can verify every nested call!"
)


def _in(address: Optional[str], allow_list: Iterable[str]) -> bool:
    if not address:
        return False
    a = address.lower()
    return any(a == t.lower() for t in allow_list)


def _is_zero(address: Optional[str]) -> bool:
    return not address or address.lower() == ZERO_ADDRESS


def _selector_of(data: str) -> Optional[str]:
    h = data[2:] if data.startswith(("0x", "0X")) else data
    if len(h) < 8:
        return None
    return "0x" + h[:8].lower()


def scan_calls(data: str, match: Callable[[str, int], list]) -> Tuple[list, bool]:
    """
    Apply ``match(data, depth)`` to ``data`` and, when it finds nothing there,
    to every sub-call of a MultiSend batch, depth-first in batch order.

    Uses an explicit stack; batches nested deeper than MAX_BATCH_DEPTH are not
    entered and set the returned ``truncated`` flag.
    """
    found: list = []
    truncated = False
    stack: List[Tuple[str, int]] = [(data, 0)]
    while stack:
        d, depth = stack.pop()
        if not d or _selector_of(d) is None:
            continue
        hits = match(d, depth)
        if hits:
            found.extend(hits)
            continue
        calls = decode_batch(d)
        if not calls:
            continue
        if depth + 1 > MAX_BATCH_DEPTH:
            logger.warning("batch nesting exceeds %d levels; not inspecting further", MAX_BATCH_DEPTH)
            truncated = True
            continue
        stack.extend((c.data, depth + 1) for c in reversed(calls))
    return found, truncated


# ---------------------------- Delegate call ----------------------------

def is_trusted_for_delegate_call(address: str) -> bool:
    return _in(address, TRUSTED_DELEGATE_CALL_ADDRESSES)


def check_delegate_call(operation: int, to: str) -> DelegateCallCheck:
    if operation != Operation.DELEGATE_CALL:
        return DelegateCallCheck(is_delegate_call=False, is_trusted=False)
    if is_trusted_for_delegate_call(to):
        return DelegateCallCheck(is_delegate_call=True, is_trusted=True, target_address=to)
    return DelegateCallCheck(
        is_delegate_call=True,
        is_trusted=False,
        target_address=to,
        warning=(
            f"WARNING: The transaction includes an untrusted delegate call to address {to}! "
            "This may lead to unexpected behaviour or vulnerabilities. "
            "Please review it carefully before you sign!"
        ),
        warning_level=Severity.CRITICAL,
    )


def operation_description(operation: int, to: str) -> str:
    if operation == Operation.CALL:
        return "Call"
    if operation == Operation.DELEGATE_CALL:
        if is_trusted_for_delegate_call(to):
            return "DelegateCall (trusted)"
        return "DelegateCall (UNTRUSTED - carefully verify before proceeding!)"
    return "Unknown"


# ---------------------------- Gas token ----------------------------

GAS_TOKEN_AND_RECEIVER_WARNING = (
    "WARNING: This transaction uses a custom gas token and a custom refund receiver. "
    "This combination can be used to hide a rerouting of funds through gas refunds."
)
NON_ZERO_GAS_PRICE_WARNING = (
    "Furthermore, the gas price is non-zero, which increases the potential for hidden value transfers."
)
GAS_TOKEN_WARNING = "WARNING: This transaction uses a custom gas token. Please verify that this is intended."
REFUND_RECEIVER_WARNING = (
    "WARNING: This transaction uses a custom refund receiver. Please verify that this is intended."
)


def check_gas_token(gas_price: int, gas_token: str, refund_receiver: str) -> GasTokenCheck:
    custom_token = not _is_zero(gas_token)
    custom_receiver = not _is_zero(refund_receiver)
    non_zero_price = int(gas_price) > 0

    warnings: List[str] = []
    if custom_token and custom_receiver:
        warnings.append(GAS_TOKEN_AND_RECEIVER_WARNING)
        if non_zero_price:
            warnings.append(NON_ZERO_GAS_PRICE_WARNING)
            level = Severity.CRITICAL
        else:
            level = Severity.HIGH
    elif custom_token:
        warnings.append(GAS_TOKEN_WARNING)
        level = Severity.MEDIUM
    elif custom_receiver:
        warnings.append(REFUND_RECEIVER_WARNING)
        level = Severity.LOW
    else:
        level = Severity.NONE

    return GasTokenCheck(
        uses_custom_gas_token=custom_token,
        uses_custom_refund_receiver=custom_receiver,
        has_non_zero_gas_price=non_zero_price,
        gas_token=gas_token,
        refund_receiver=refund_receiver,
        gas_price=int(gas_price),
        risk_level=level,
        warnings=warnings,
    )


# ---------------------------- Owners / threshold ----------------------------

def is_owner_modification_function(name: str) -> bool:
    return name in OWNER_MODIFICATION_FUNCTIONS


def _match_owner(data: str, depth: int) -> List[OwnerModificationDetection]:
    sig = OWNER_MODIFICATION_SEL.get(_selector_of(data))
    if sig is None:
        return []
    return [OwnerModificationDetection(function_name=sig.split("(")[0], depth=depth)]


def _owner_result(mods: List[OwnerModificationDetection], truncated: bool) -> OwnerModificationCheck:
    if not mods and not truncated:
        return OwnerModificationCheck(modifies_owners=False, modifications=[], warning_level=Severity.INFO)
    parts = []
    if mods:
        names = ", ".join(m.function_name for m in mods)
        parts.append(
            f"WARNING: This transaction modifies the owners or threshold of the Safe! "
            f"Functions: {names}. Proceed with caution!"
        )
    if truncated:
        parts.append(TRUNCATED_WARNING)
    return OwnerModificationCheck(
        modifies_owners=bool(mods),
        modifications=mods,
        warning=" ".join(parts),
        warning_level=Severity.CRITICAL,
        truncated=truncated,
    )


def check_owner_modifications(data: Optional[str]) -> OwnerModificationCheck:
    mods, truncated = scan_calls(data or "0x", _match_owner)
    return _owner_result(mods, truncated)


def check_owner_modifications_from_decoded(method: str, parameters: Optional[Sequence[dict]] = None) -> OwnerModificationCheck:
    """Same check over already-decoded data (method name plus nested raw calls, if any)."""
    mods: List[OwnerModificationDetection] = []
    truncated = False
    if is_owner_modification_function(method):
        mods.append(OwnerModificationDetection(function_name=method, depth=0))
    if method == "multiSend" and parameters:
        for p in parameters:
            if (p.get("name") == "data" or p.get("type") == "bytes[]") and isinstance(p.get("value"), list):
                for nested in p["value"]:
                    if isinstance(nested, str):
                        found, cut = scan_calls(nested, lambda d, depth: _match_owner(d, depth + 1))
                        mods.extend(found)
                        truncated = truncated or cut
    return _owner_result(mods, truncated)


# ---------------------------- Modules / guards ----------------------------

def is_module_management_function(name: str) -> bool:
    return name in MODULE_MANAGEMENT_FUNCTIONS


def is_guard_management_function(name: str) -> bool:
    return name in GUARD_MANAGEMENT_FUNCTIONS


def _target(data: str, types: List[str], index: int) -> Optional[str]:
    try:
        _, payload = split_selector_and_payload(data)
        return abi_decode(types, payload)[index]
    except Exception as e:
        logger.debug("could not decode target address: %s", e)
        return None


def _match_module_guard(data: str, depth: int) -> List[ModuleGuardDetection]:
    sel = _selector_of(data)
    sig = MODULE_MANAGEMENT_SEL.get(sel)
    if sig is not None:
        name = sig.split("(")[0]
        if name == "enableModule":
            target = _target(data, ["address"], 0)
        else:
            # disableModule(prevModule, module)
            target = _target(data, ["address", "address"], 1)
        return [ModuleGuardDetection(
            kind="module", function_name=name, is_trusted=_in(target, TRUSTED_MODULES),
            depth=depth, target_address=target,
        )]
    sig = GUARD_MANAGEMENT_SEL.get(sel)
    if sig is not None:
        target = _target(data, ["address"], 0)
        return [ModuleGuardDetection(
            kind="guard", function_name=sig.split("(")[0], is_trusted=_in(target, TRUSTED_GUARDS),
            depth=depth, target_address=target,
        )]
    return []


def _module_guard_result(detections: List[ModuleGuardDetection], truncated: bool) -> ModuleGuardCheck:
    if not detections and not truncated:
        return ModuleGuardCheck(
            has_module_operation=False, has_guard_operation=False,
            detections=[], warning_level=Severity.INFO,
        )
    modules = [d for d in detections if d.kind == "module"]
    guards = [d for d in detections if d.kind == "guard"]
    warnings: List[str] = []
    if modules:
        names = ", ".join(d.function_name for d in modules)
        if any(not d.is_trusted for d in modules):
            warnings.append(
                f"WARNING: This transaction modifies Safe modules ({names})! "
                "Modules have unlimited access to the Safe and can execute arbitrary transactions, "
                "bypassing signature requirements. This is a significant security risk."
            )
        else:
            warnings.append(
                f"WARNING: This transaction modifies Safe modules ({names})! "
                "Even though this involves a trusted module, modules have significant power and risk. "
                "Verify the module address and ensure this change is intended."
            )
    if guards:
        names = ", ".join(d.function_name for d in guards)
        warnings.append(
            f"WARNING: This transaction modifies the Safe guard ({names})! "
            "Guards can block transaction execution. An improperly configured guard can cause "
            "denial of service, effectively bricking the Safe. Proceed with extreme caution!"
        )
    if truncated:
        warnings.append(TRUNCATED_WARNING)
    return ModuleGuardCheck(
        has_module_operation=bool(modules),
        has_guard_operation=bool(guards),
        detections=detections,
        warnings=warnings,
        warning_level=Severity.CRITICAL if truncated else Severity.HIGH,
        truncated=truncated,
    )


def check_module_guard(data: Optional[str]) -> ModuleGuardCheck:
    detections, truncated = scan_calls(data or "0x", _match_module_guard)
    return _module_guard_result(detections, truncated)


def check_module_guard_from_decoded(method: str) -> ModuleGuardCheck:
    """Method-name-only variant; targets are unknown so nothing counts as trusted."""
    detections = []
    if is_module_management_function(method):
        detections.append(ModuleGuardDetection(kind="module", function_name=method, is_trusted=False, depth=0))
    if is_guard_management_function(method):
        detections.append(ModuleGuardDetection(kind="guard", function_name=method, is_trusted=False, depth=0))
    return _module_guard_result(detections, False)


# ---------------------------- Combined ----------------------------

def analyze_security(tx: SafeTx) -> RiskVerdict:
    delegate_call = check_delegate_call(tx.operation, tx.to)
    gas_token = check_gas_token(tx.gas_price, tx.gas_token, tx.refund_receiver)
    owners = check_owner_modifications(tx.data)
    module_guard = check_module_guard(tx.data)

    worst = max(
        (delegate_call.severity, gas_token.severity, owners.severity, module_guard.severity),
        key=lambda s: s.rank,
    )
    overall = Severity.NONE if worst.rank == 0 else worst

    requires_review = (
        overall in (Severity.HIGH, Severity.CRITICAL)
        or delegate_call.warning is not None
        or bool(gas_token.warnings)
        or owners.modifies_owners
        or owners.truncated
        or module_guard.has_module_operation
        or module_guard.has_guard_operation
        or module_guard.truncated
    )
    return RiskVerdict(
        delegate_call=delegate_call,
        gas_token=gas_token,
        owner_modification=owners,
        module_guard=module_guard,
        overall_risk=overall,
        requires_careful_review=requires_review,
    )
