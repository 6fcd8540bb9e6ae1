"""Text and JSON rendering of reports."""

from typing import Dict, List, Optional

import click

from .decoders import DecodedCall, DecodedFunction
from .models import Operation, RiskVerdict, Severity, to_jsonable
from .networks import explorer_address_url
from .pipeline import SubCallReport, TransactionReport
from .security import operation_description
from .tags import AddressBook

SEVERITY_COLORS = {
    Severity.NONE: "green",
    Severity.INFO: "green",
    Severity.LOW: "cyan",
    Severity.MEDIUM: "yellow",
    Severity.HIGH: "red",
    Severity.CRITICAL: "red",
}


def format_hash(h: str) -> str:
    """Hash the way a Ledger shows it: lowercase ``0x``, uppercase digits."""
    if not h.lower().startswith("0x"):
        raise ValueError("Hash must start with 0x prefix")
    return "0x" + h[2:].upper()


def _header(text: str) -> None:
    click.echo("")
    click.secho("=" * 40, bold=True)
    click.secho(f"= {text:<36} =", bold=True)
    click.secho("=" * 40, bold=True)


def _subheader(text: str) -> None:
    click.echo("\n" + click.style(text, underline=True))


def _field(label: str, value) -> None:
    click.echo(f"{label}: {click.style(str(value), fg='green')}")


def _badge(verified: bool) -> str:
    return click.style("✓ Verified", fg="green") if verified else click.style("⚠ Mismatch", fg="red")


def _short(data: str, n: int = 66) -> str:
    return data if len(data) <= n else data[:n] + "..."


# ---------------------------- Sections ----------------------------

def print_network(network: Optional[str], chain_id: int) -> None:
    _subheader("Network")
    if network:
        _field("Network", network)
    _field("Chain ID", chain_id)


def print_transaction(report: TransactionReport, book: AddressBook) -> None:
    tx = report.tx
    _header("Transaction Data and Decoded Info")
    _subheader("Transaction Data")
    _field("Safe address", report.safe_address)
    tag = book.get(tx.to)
    if tag:
        click.echo(f"To: {click.style(tx.to, fg='green')} {click.style(f'[{tag.label}]', fg='blue')}")
        click.secho(f"    {tag.description}", dim=True)
    else:
        _field("To", tx.to)
    _field("Value", f"{tx.value} wei")
    _field("Data", tx.data or "0x")
    _field("Operation", operation_description(tx.operation, tx.to))
    _field("Safe Transaction Gas", tx.safe_tx_gas)
    _field("Base Gas", tx.base_gas)
    _field("Gas Price", tx.gas_price)
    _field("Gas Token", tx.gas_token)
    _field("Refund Receiver", tx.refund_receiver)
    _field("Nonce", tx.nonce)


def _print_params(params: List[Dict], indent: str = "") -> None:
    params = [p for p in params if isinstance(p, dict)] if isinstance(params, list) else []
    if not params:
        click.echo(f"{indent}Parameters: []")
        return
    click.echo(f"{indent}Parameters:")
    for p in params:
        click.echo(f"{indent}  {click.style(str(p.get('name')), dim=True)} "
                   f"({click.style(str(p.get('type')), dim=True)}): {click.style(str(p.get('value')), fg='cyan')}")


def print_claim(report: TransactionReport) -> None:
    _subheader("Decoded Data")
    tx = report.tx
    claim = report.claim if isinstance(report.claim, dict) else None
    if not claim:
        if not tx.data or tx.data == "0x":
            self_call = tx.to.lower() == (report.safe_address or "").lower()
            if self_call:
                method = "0x (On-Chain Rejection)" if tx.value == 0 else "0x (ETH Self-Transfer)"
            else:
                method = "0x (Zero-Value ETH Transfer)" if tx.value == 0 else "0x (ETH Transfer)"
            _field("Method", method)
            _field("Parameters", "[]")
        else:
            _field("Method", "Unknown")
            _field("Parameters", "Unknown (no decoding available from API)")
        return
    v = report.claim_verification
    method = click.style(str(claim.get("method")), fg="green")
    click.echo(f"Method: {method} {_badge(v.verified)}" if v else f"Method: {method}")
    if v and not v.verified and v.error:
        click.secho(f"  ⚠️  Warning: {v.error}", fg="red")
    _print_params(claim.get("parameters") or [])


def _print_function(fn: DecodedFunction, indent: str = "") -> None:
    color = SEVERITY_COLORS.get(fn.risk_level, "white")
    click.echo(f"{indent}{click.style(fn.name, bold=True)} {click.style(fn.signature, dim=True)} "
               f"[{click.style(fn.risk_level.value, fg=color)}]")
    click.echo(f"{indent}  {fn.explanation}")
    for p in fn.parameters:
        click.echo(f"{indent}  {click.style(p.name, dim=True)} ({p.type}): {click.style(str(p.value), fg='cyan')}")
    for w in fn.warnings:
        click.secho(f"{indent}  ⚠️  {w}", fg="yellow")


def print_custom_decode(decoded: DecodedCall, indent: str = "") -> None:
    _print_function(decoded.main, indent)
    for i, fn in enumerate(decoded.nested):
        click.secho(f"{indent}  [{i + 1}/{len(decoded.nested)}]", fg="cyan")
        _print_function(fn, indent + "    ")
    for w in decoded.general_warnings:
        click.secho(f"{indent}⚠️  {w}", fg="yellow")


def print_sub_call(sub: SubCallReport, total: int, book: AddressBook) -> None:
    indent = "  " * (sub.depth - 1)
    label = ".".join(str(i + 1) for i in sub.path)
    click.secho(f"\n{indent}[Transaction {label}/{total}]" if sub.depth == 1 else f"\n{indent}[Transaction {label}]",
                fg="cyan", bold=True)
    click.secho(indent + "─" * 50, dim=True)
    c = sub.call
    click.echo(f"{indent}To: {click.style(book.describe(c.to), fg='green')}")
    click.echo(f"{indent}Value: {click.style(str(c.value), fg='green')} wei")
    click.echo(f"{indent}Operation: {click.style(operation_description(c.operation, c.to), fg='green')}")
    if sub.decoded:
        click.secho(f"{indent}Custom Decoder Analysis:", dim=True)
        print_custom_decode(sub.decoded, indent + "  ")
    elif isinstance(sub.claim, dict):
        v = sub.verification
        method = click.style(str(sub.claim.get("method")), fg="green")
        click.echo(f"{indent}Method: {method} {_badge(v.verified)}" if v else f"{indent}Method: {method}")
        if v and not v.verified and v.error:
            click.secho(f"{indent}  ⚠️  Warning: {v.error}", fg="red")
        _print_params(sub.claim.get("parameters") or [], indent)
    elif c.data and c.data != "0x":
        click.secho(f"{indent}Data: {_short(c.data)}", dim=True)
    if sub.verification is not None and not sub.verification.verified and not sub.claim:
        click.secho(f"{indent}⚠️  {sub.verification.error}", fg="red")
    if sub.security.delegate_call.warning:
        click.secho(f"{indent}{sub.security.delegate_call.warning}", fg="red")


def print_security(verdict: RiskVerdict) -> None:
    _header("Security Analysis")
    color = SEVERITY_COLORS[verdict.overall_risk]
    click.echo(f"Overall risk: {click.style(verdict.overall_risk.value.upper(), fg=color, bold=True)}")
    warnings = []
    if verdict.delegate_call.warning:
        warnings.append((verdict.delegate_call.severity, verdict.delegate_call.warning))
    warnings.extend((verdict.gas_token.risk_level, w) for w in verdict.gas_token.warnings)
    if verdict.owner_modification.warning:
        warnings.append((verdict.owner_modification.warning_level, verdict.owner_modification.warning))
    warnings.extend((verdict.module_guard.warning_level, w) for w in verdict.module_guard.warnings)
    for level, w in warnings:
        click.secho(f"\n{w}", fg=SEVERITY_COLORS[level])
    for d in verdict.module_guard.detections:
        if d.target_address:
            trust = "trusted" if d.is_trusted else "untrusted"
            click.secho(f"  {d.function_name} -> {d.target_address} ({trust})", dim=True)
    if verdict.requires_careful_review:
        click.secho("\nThis transaction requires careful review before signing.", fg="yellow", bold=True)
    elif not warnings:
        click.secho("No security warnings.", fg="green")


def print_hashes(report: TransactionReport) -> None:
    _header("Hash Calculation & Verification")
    if report.hashes is None:
        click.secho("\n✗ Hash calculation failed", fg="red")
        click.secho(f"  Error: {report.hash_error}", dim=True)
        click.secho("\n⚠️  Cannot verify transaction hash - proceed with caution!", fg="yellow")
        return
    _subheader("Legacy Ledger Format")
    _field("Binary string literal", report.hashes.safe_tx_hash)
    _subheader("Hashes")
    _field("Safe version", report.version)
    _field("Domain hash", format_hash(report.hashes.domain_hash))
    _field("Message hash", format_hash(report.hashes.message_hash))
    _field("Safe transaction hash", report.hashes.safe_tx_hash)
    if report.expected_safe_tx_hash:
        _field("API safe transaction hash", report.expected_safe_tx_hash)
        if report.hash_matches:
            click.secho("\n✓ Calculated hash matches the Safe Transaction Service", fg="green", bold=True)
        else:
            click.secho("\n✗ HASH MISMATCH: the calculated hash differs from the Safe Transaction Service!",
                        fg="red", bold=True)


def print_report(report: TransactionReport, book: Optional[AddressBook] = None) -> None:
    book = book or AddressBook()
    print_network(report.network, report.chain_id)
    print_transaction(report, book)
    print_claim(report)
    if report.is_batch:
        _header("MultiSend Batched Transactions")
        top = sum(1 for s in report.sub_calls if s.depth == 1)
        click.secho(f"\nFound {top} nested transaction(s)", dim=True)
        for sub in report.sub_calls:
            print_sub_call(sub, top, book)
        if report.batch_truncated:
            click.secho("\n⚠️  Batch nesting too deep: not every sub-call is shown.", fg="red")
    elif report.decoded:
        _subheader("Custom Decoder Analysis")
        print_custom_decode(report.decoded)
    elif report.has_custom_decoder:
        click.secho("\n⚠️  This contract has a custom decoder, but the function is not yet supported.", fg="yellow")
        click.secho("   Please verify the transaction carefully.", dim=True)
    if report.security:
        print_security(report.security)
    print_hashes(report)
    if report.network and report.safe_address:
        click.secho(f"\nSafe on explorer: {explorer_address_url(report.network, report.safe_address)}", dim=True)
    verdict = click.style("YES", fg="green", bold=True) if report.safe_to_sign else click.style("NO", fg="red", bold=True)
    click.echo(f"\nSafe to sign without further review: {verdict}")


# ---------------------------- JSON ----------------------------

def report_to_dict(report: TransactionReport) -> Dict:
    out = {
        "safe_address": report.safe_address,
        "network": report.network,
        "chain_id": report.chain_id,
        "version": report.version,
        "transaction": to_jsonable(report.tx),
        "operation": Operation.describe(report.tx.operation),
        "hashes": to_jsonable(report.hashes),
        "hash_error": report.hash_error,
        "expected_safe_tx_hash": report.expected_safe_tx_hash,
        "hash_matches": report.hash_matches,
        "security": to_jsonable(report.security),
        "claim_verification": to_jsonable(report.claim_verification),
        "sub_calls": [
            {
                "path": list(s.path),
                "call": to_jsonable(s.call),
                "security": to_jsonable(s.security),
                "verification": to_jsonable(s.verification),
                "decoded": to_jsonable(s.decoded),
            }
            for s in report.sub_calls
        ],
        "batch_truncated": report.batch_truncated,
        "decoded": to_jsonable(report.decoded),
        "safe_to_sign": report.safe_to_sign,
    }
    return out
