"""Tests for safesentinel.security: rule checks and the combined verdict."""
from __future__ import annotations

from safesentinel.constants import MAX_BATCH_DEPTH, MULTISEND_CALL_ONLY, TRUSTED_MODULES
from safesentinel.models import SafeTx, Severity
from safesentinel.multisend import encode_multisend_call
from safesentinel.security import (
    analyze_security,
    check_delegate_call,
    check_gas_token,
    check_module_guard,
    check_module_guard_from_decoded,
    check_owner_modifications,
    check_owner_modifications_from_decoded,
    operation_description,
)
from tests.conftest import OWNER, SAFE, UNTRUSTED, ZERO, add_owner, call, sub, transfer

TOKEN = "0x6B175474E89094C44Da98b954EedeAC495271d0F"


def nest(data: str, levels: int) -> str:
    """Wrap ``data`` in ``levels`` MultiSend batches sent to the Safe."""
    for _ in range(levels):
        data = encode_multisend_call([sub(SAFE, data)])
    return data


def enable_module(module: str) -> str:
    return call("enableModule(address)", ["address"], [module])


def disable_module(prev: str, module: str) -> str:
    return call("disableModule(address,address)", ["address", "address"], [prev, module])


def set_guard(guard: str) -> str:
    return call("setGuard(address)", ["address"], [guard])


class TestDelegateCall:
    def test_call(self):
        r = check_delegate_call(0, UNTRUSTED)
        assert not r.is_delegate_call
        assert r.warning is None
        assert r.severity == Severity.NONE

    def test_untrusted(self):
        r = check_delegate_call(1, UNTRUSTED)
        assert r.is_delegate_call and not r.is_trusted
        assert r.warning_level == Severity.CRITICAL
        assert UNTRUSTED in r.warning

    def test_trusted_any_case(self):
        r = check_delegate_call(1, MULTISEND_CALL_ONLY[0].lower())
        assert r.is_trusted
        assert r.warning is None
        assert r.warning_level is None

    def test_operation_description(self):
        assert operation_description(0, UNTRUSTED) == "Call"
        assert operation_description(1, MULTISEND_CALL_ONLY[0]) == "DelegateCall (trusted)"
        assert "UNTRUSTED" in operation_description(1, UNTRUSTED)
        assert operation_description(7, UNTRUSTED) == "Unknown"


class TestGasToken:
    def test_defaults(self):
        r = check_gas_token(0, ZERO, ZERO)
        assert r.risk_level == Severity.NONE
        assert r.warnings == []

    def test_token_receiver_and_price(self):
        r = check_gas_token(1, TOKEN, UNTRUSTED)
        assert r.risk_level == Severity.CRITICAL
        assert len(r.warnings) == 2
        assert "non-zero" in r.warnings[1]

    def test_token_and_receiver(self):
        r = check_gas_token(0, TOKEN, UNTRUSTED)
        assert r.risk_level == Severity.HIGH
        assert len(r.warnings) == 1

    def test_token_only(self):
        r = check_gas_token(5, TOKEN, ZERO)
        assert r.risk_level == Severity.MEDIUM
        assert r.warnings == ["WARNING: This transaction uses a custom gas token. Please verify that this is intended."]

    def test_receiver_only(self):
        r = check_gas_token(0, ZERO, UNTRUSTED)
        assert r.risk_level == Severity.LOW
        assert "refund receiver" in r.warnings[0]


class TestOwnerModifications:
    def test_direct(self):
        r = check_owner_modifications(add_owner())
        assert r.modifies_owners
        assert r.warning_level == Severity.CRITICAL
        assert [(m.function_name, m.depth, m.is_nested) for m in r.modifications] == [
            ("addOwnerWithThreshold", 0, False)]
        assert "addOwnerWithThreshold" in r.warning

    def test_in_batch(self):
        data = encode_multisend_call([sub(OWNER, transfer()), sub(SAFE, add_owner())])
        r = check_owner_modifications(data)
        assert r.modifies_owners
        assert len(r.modifications) == 1
        assert r.modifications[0].is_nested
        assert r.modifications[0].depth >= 1
        assert r.warning_level == Severity.CRITICAL

    def test_nested_order(self):
        threshold = call("changeThreshold(uint256)", ["uint256"], [3])
        swap = call("swapOwner(address,address,address)", ["address"] * 3, [ZERO, OWNER, UNTRUSTED])
        data = encode_multisend_call([sub(SAFE, nest(threshold, 2)), sub(SAFE, swap)])
        r = check_owner_modifications(data)
        assert [(m.function_name, m.depth) for m in r.modifications] == [("changeThreshold", 3), ("swapOwner", 1)]

    def test_none(self):
        r = check_owner_modifications(transfer())
        assert not r.modifies_owners
        assert r.warning_level == Severity.INFO
        assert r.warning is None

    def test_empty_data(self):
        assert not check_owner_modifications("0x").modifies_owners
        assert not check_owner_modifications(None).modifies_owners

    def test_from_decoded(self):
        assert check_owner_modifications_from_decoded("removeOwner").modifies_owners
        assert not check_owner_modifications_from_decoded("transfer").modifies_owners

    def test_from_decoded_multisend(self):
        params = [{"name": "data", "type": "bytes[]", "value": [transfer(), add_owner()]}]
        r = check_owner_modifications_from_decoded("multiSend", params)
        assert [m.depth for m in r.modifications] == [1]


class TestModuleGuard:
    def test_untrusted_module(self):
        r = check_module_guard(enable_module(UNTRUSTED))
        assert r.has_module_operation and not r.has_guard_operation
        assert r.warning_level == Severity.HIGH
        (d,) = r.detections
        assert d.kind == "module" and not d.is_trusted
        assert d.target_address.lower() == UNTRUSTED.lower()
        assert "significant security risk" in r.warnings[0]

    def test_trusted_module_still_warns(self):
        r = check_module_guard(enable_module(TRUSTED_MODULES[0]))
        assert r.detections[0].is_trusted
        assert r.warning_level == Severity.HIGH
        assert "trusted module" in r.warnings[0]

    def test_disable_module_uses_second_argument(self):
        r = check_module_guard(disable_module(UNTRUSTED, TRUSTED_MODULES[0]))
        (d,) = r.detections
        assert d.function_name == "disableModule"
        assert d.target_address.lower() == TRUSTED_MODULES[0].lower()
        assert d.is_trusted

    def test_guard(self):
        r = check_module_guard(set_guard(UNTRUSTED))
        assert r.has_guard_operation
        assert "bricking" in r.warnings[0]

    def test_nested_module_and_guard(self):
        data = encode_multisend_call([sub(SAFE, enable_module(UNTRUSTED)), sub(SAFE, nest(set_guard(UNTRUSTED), 1))])
        r = check_module_guard(data)
        assert [(d.kind, d.depth) for d in r.detections] == [("module", 1), ("guard", 2)]
        assert len(r.warnings) == 2

    def test_truncated_arguments_still_detected(self):
        r = check_module_guard(enable_module(UNTRUSTED)[:12])
        assert r.has_module_operation
        assert r.detections[0].target_address is None
        assert not r.detections[0].is_trusted

    def test_none(self):
        r = check_module_guard(transfer())
        assert r.warning_level == Severity.INFO
        assert r.warnings == []

    def test_from_decoded(self):
        assert check_module_guard_from_decoded("setGuard").has_guard_operation
        assert check_module_guard_from_decoded("disableModule").has_module_operation


class TestDepthCap:
    def test_at_cap_is_inspected(self):
        r = check_owner_modifications(nest(add_owner(), MAX_BATCH_DEPTH))
        assert r.modifies_owners
        assert not r.truncated
        assert r.modifications[0].depth == MAX_BATCH_DEPTH

    def test_beyond_cap_fails_closed(self):
        data = nest(transfer(), MAX_BATCH_DEPTH + 1)
        owners = check_owner_modifications(data)
        modules = check_module_guard(data)
        assert owners.truncated and modules.truncated
        assert owners.warning_level == Severity.CRITICAL
        assert modules.warning_level == Severity.CRITICAL
        assert "could not be fully inspected" in owners.warning
        assert analyze_security(SafeTx(to=SAFE, data=data)).requires_careful_review


class TestAnalyzeSecurity:
    def test_plain_transfer(self):
        v = analyze_security(SafeTx(to=TOKEN, data=transfer()))
        assert v.overall_risk == Severity.NONE
        assert not v.requires_careful_review

    def test_untrusted_delegate_call(self):
        v = analyze_security(SafeTx(to=UNTRUSTED, operation=1))
        assert v.overall_risk == Severity.CRITICAL
        assert not v.delegate_call.is_trusted
        assert v.delegate_call.warning
        assert v.requires_careful_review

    def test_gas_refund(self):
        v = analyze_security(SafeTx(to=TOKEN, gas_price=1, gas_token=TOKEN, refund_receiver=UNTRUSTED))
        assert v.overall_risk == Severity.CRITICAL
        assert len(v.gas_token.warnings) == 2

    def test_low_risk_still_reviewed(self):
        v = analyze_security(SafeTx(to=TOKEN, refund_receiver=UNTRUSTED))
        assert v.overall_risk == Severity.LOW
        assert v.requires_careful_review

    def test_batched_owner_change(self):
        data = encode_multisend_call([sub(SAFE, add_owner())])
        v = analyze_security(SafeTx(to=MULTISEND_CALL_ONLY[0], data=data, operation=1))
        assert v.delegate_call.is_trusted
        assert v.owner_modification.modifies_owners
        assert v.overall_risk == Severity.CRITICAL

    def test_module_is_high(self):
        v = analyze_security(SafeTx(to=SAFE, data=enable_module(UNTRUSTED)))
        assert v.overall_risk == Severity.HIGH
        assert v.requires_careful_review

    def test_to_dict(self):
        d = analyze_security(SafeTx(to=SAFE, data=encode_multisend_call([sub(SAFE, add_owner())]))).to_dict()
        assert d["overall_risk"] == "critical"
        assert d["owner_modification"]["modifications"][0]["is_nested"] is True
