"""
safesentinel: recompute and risk-check Safe multisig transactions before signing.

Examples:
  $ safesentinel verify --address 0xf654...DA5d --nonce 434
  $ safesentinel verify --file tx.json --json report.json
  $ safesentinel hash --address 0xf654...DA5d --version 1.3.0 --to 0x... --data 0x... --nonce 434
  $ safesentinel analyze 0x8d80ff0a... --pretty
"""

import json
import logging
import os
from typing import Dict, Optional, Tuple

import click
from eth_utils import is_address

from . import __version__
from .client import SafeApiClient
from .constants import ZERO_ADDRESS
from .decoders import default_registry
from .errors import AmbiguousTransaction, ApiErrorKind, SafeApiError
from .hashing import calculate_hashes
from .models import SafeTx, to_jsonable
from .networks import DEFAULT_NETWORK, NETWORKS, get_network, safe_url, supported_networks
from .output import format_hash, print_report, print_security, print_sub_call, report_to_dict
from .pipeline import verify_service_record, walk_sub_calls
from .security import analyze_security
from .tags import AddressBook

logger = logging.getLogger(__name__)

DEFAULT_FILE_VERSION = "1.3.0"

NETWORK_OPTION = click.option(
    "--network", type=click.Choice(supported_networks()), default=DEFAULT_NETWORK,
    envvar="SAFESENTINEL_NETWORK", show_default=True, help="Network name.",
)


def _write_json(path: str, obj: Dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)
    click.echo(f"Wrote JSON report: {path}")


def _check_address(value: Optional[str], name: str) -> None:
    if value is not None and not is_address(value):
        raise click.BadParameter(f"Invalid address format: {value}", param_hint=name)


def load_transaction_file(path: str) -> Tuple[Dict, str, Optional[int]]:
    """``{"transaction": {...}, "version": "1.3.0", "chainId": 1}`` -> (record, version, chain id)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Failed to read transaction file: {e}")
    record = obj.get("transaction") if isinstance(obj, dict) else None
    if not isinstance(record, dict):
        raise click.ClickException('Invalid JSON: missing "transaction" field')
    if not record.get("to"):
        raise click.ClickException('Invalid JSON: missing "to" in "transaction"')
    chain_id = obj.get("chainId")
    return record, obj.get("version") or DEFAULT_FILE_VERSION, int(chain_id) if chain_id is not None else None


def _describe_candidates(e: AmbiguousTransaction) -> str:
    lines = [str(e)]
    for i, c in enumerate(e.candidates):
        if c.get("isExecuted"):
            status = "executed" if c.get("isSuccessful") else "failed"
        else:
            status = f"pending ({len(c.get('confirmations') or [])}/{c.get('confirmationsRequired')} sigs)"
        lines.append(f"  [{i + 1}] {c.get('safeTxHash')}  {status}  submitted {c.get('submissionDate') or 'unknown'}")
    lines.append("Re-run with --safe-tx-hash <hash> to pick one.")
    return "\n".join(lines)


def _on_retry(message: str, attempt: int, max_retries: int, delay: float) -> None:
    click.secho(message, fg="yellow", err=True)


# ---------------------------- CLI ----------------------------

@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.version_option(__version__, prog_name="safesentinel")
def cli(verbose):
    """safesentinel: independent Safe transaction hash and risk checks."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command("verify")
@click.option("-a", "--address", type=str, default=None, help="Safe multisig address.")
@click.option("-n", "--nonce", type=click.IntRange(min=0), default=None, help="Transaction nonce.")
@click.option("-f", "--file", "file_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Read the transaction from a JSON file instead of the API.")
@NETWORK_OPTION
@click.option("--api-url", envvar="SAFESENTINEL_API_URL", default=None,
              help="Override the Safe Transaction Service URL.")
@click.option("--safe-tx-hash", default=None, help="Pick one of several transactions sharing a nonce.")
@click.option("--json", "json_out", type=click.Path(writable=True), default=None, help="Write JSON report.")
@click.pass_context
def verify_cmd(ctx, address, nonce, file_path, network, api_url, safe_tx_hash, json_out):
    """Fetch (or load) a Safe transaction, recompute its hash and check it for risks."""
    if file_path and (address or nonce is not None):
        raise click.UsageError("Use either --file (local mode) or --address/--nonce (API mode), not both.")
    if not file_path and (not address or nonce is None):
        raise click.UsageError("Missing required options: --file <file> or --address <address> --nonce <nonce>.")
    _check_address(address, "--address")

    config = get_network(network)
    if file_path:
        record, version, chain_id = load_transaction_file(file_path)
        chain_id = chain_id or config.chain_id
        safe_address = record.get("safe")
    else:
        client = SafeApiClient(network, on_retry=_on_retry, api_url=api_url)
        try:
            record = client.fetch_transaction(address, nonce, safe_tx_hash=safe_tx_hash)
            version = client.fetch_safe_version(address)
        except AmbiguousTransaction as e:
            raise click.ClickException(_describe_candidates(e))
        except SafeApiError as e:
            msg = str(e)
            if e.kind == ApiErrorKind.NOT_FOUND:
                msg += "\nMake sure the Safe exists on this network and the transaction has been proposed."
            raise click.ClickException(msg)
        chain_id = config.chain_id
        safe_address = address

    report = verify_service_record(record, chain_id, version, network=network,
                                   registry=default_registry(), safe_address=safe_address)
    print_report(report, AddressBook())
    if safe_address:
        click.secho(f"Safe UI: {safe_url(network, safe_address)}", dim=True)

    if json_out:
        _write_json(json_out, report_to_dict(report))

    if report.hashes is None or report.hash_matches is False:
        ctx.exit(1)


@cli.command("hash")
@click.option("-a", "--address", required=True, help="Safe multisig address.")
@click.option("--version", "safe_version", required=True, help="Safe contract version, e.g. 1.3.0 or 1.4.1+L2.")
@click.option("--chain-id", type=int, default=None, help="Chain id (defaults to the network's).")
@NETWORK_OPTION
@click.option("--to", required=True, help="Target address.")
@click.option("--value", type=int, default=0, show_default=True)
@click.option("--data", default="0x", show_default=True)
@click.option("--operation", type=click.IntRange(0, 1), default=0, show_default=True)
@click.option("--safe-tx-gas", type=int, default=0)
@click.option("--base-gas", type=int, default=0)
@click.option("--gas-price", type=int, default=0)
@click.option("--gas-token", default=ZERO_ADDRESS)
@click.option("--refund-receiver", default=ZERO_ADDRESS)
@click.option("--nonce", type=click.IntRange(min=0), required=True)
def hash_cmd(address, safe_version, chain_id, network, to, value, data, operation,
             safe_tx_gas, base_gas, gas_price, gas_token, refund_receiver, nonce):
    """Compute domain, message and Safe transaction hash offline."""
    for name, a in (("--address", address), ("--to", to), ("--gas-token", gas_token),
                    ("--refund-receiver", refund_receiver)):
        _check_address(a, name)
    tx = SafeTx(to=to, value=value, data=data, operation=operation, safe_tx_gas=safe_tx_gas,
                base_gas=base_gas, gas_price=gas_price, gas_token=gas_token,
                refund_receiver=refund_receiver, nonce=nonce)
    chain_id = chain_id if chain_id is not None else NETWORKS[network].chain_id
    try:
        hashes = calculate_hashes(chain_id, address, tx, safe_version)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(f"Domain hash: {format_hash(hashes.domain_hash)}")
    click.echo(f"Message hash: {format_hash(hashes.message_hash)}")
    click.echo(f"Safe transaction hash: {hashes.safe_tx_hash}")


@cli.command("analyze")
@click.argument("data", type=str)
@click.option("--to", default=ZERO_ADDRESS, help="Target address of the call.")
@click.option("--operation", type=click.IntRange(0, 1), default=0, show_default=True)
@NETWORK_OPTION
@click.option("--json", "json_out", type=click.Path(writable=True), default=None, help="Write JSON report.")
@click.option("--pretty", is_flag=True, help="Prints a human-readable summary.")
def analyze_cmd(data, to, operation, network, json_out, pretty):
    """Risk-check raw calldata (hex or a file holding it); MultiSend batches are unwound."""
    if not data.startswith("0x"):
        if not os.path.isfile(data):
            raise click.ClickException("Input must be a 0x-hex string or a file path.")
        with open(data, "r", encoding="utf-8") as f:
            data = f.read().strip()
    _check_address(to, "--to")
    try:
        bytes.fromhex(data[2:])
    except ValueError:
        raise click.ClickException("Calldata is not valid hex.")

    tx = SafeTx(to=to, data=data, operation=operation)
    verdict = analyze_security(tx)
    subs, truncated = walk_sub_calls(data, network=network, registry=default_registry())

    report = {
        "items": len(subs),
        "security": to_jsonable(verdict),
        "sub_calls": [
            {"path": list(s.path), "call": to_jsonable(s.call), "security": to_jsonable(s.security),
             "decoded": to_jsonable(s.decoded)}
            for s in subs
        ],
        "batch_truncated": truncated,
    }

    if pretty:
        book = AddressBook()
        top = sum(1 for s in subs if s.depth == 1)
        click.echo(f"safesentinel: {len(subs)} ops, overall risk {verdict.overall_risk.value}")
        for s in subs:
            print_sub_call(s, top, book)
        print_security(verdict)

    if json_out:
        _write_json(json_out, report)

    if not (pretty or json_out):
        click.echo(json.dumps(report, indent=2))


@cli.command("networks")
def networks_cmd():
    """List supported networks."""
    for n in NETWORKS.values():
        click.echo(f"{n.name:<10} chain {n.chain_id:<10} {n.api_url}")


if __name__ == "__main__":
    cli()
