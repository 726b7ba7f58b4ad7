"""
multisig.cli.main
-----------------

Thin adapter over `MultisigService`. Every command prints one JSON document on
stdout. Rejected operations print ``{"ok": false, "error": {...}}`` on stderr
and exit with status 1; bad configuration exits with status 2.

Examples
--------
# Three owners, two approvals required, funded with 1000 units
multisig --db sqlite:///dev.db create-wallet --owner $A --owner $B --owner $C --threshold 2 --idx 1
multisig --db sqlite:///dev.db deposit --wallet $W --amount 1000

# A proposes, B approves, anyone executes
multisig --db sqlite:///dev.db propose --as $A --wallet $W --to $D --amount 500
multisig --db sqlite:///dev.db approve --as $B --wallet $W --proposal 0
multisig --db sqlite:///dev.db execute --wallet $W --proposal 0

# Inspect
multisig --db sqlite:///dev.db list-wallets --owner $A
multisig --db sqlite:///dev.db list-proposals --wallet $W
"""

from __future__ import annotations

import json
import sys
from typing import Any, Callable, List, Optional

import typer

from .. import logging as mlog
from ..config import load_config, summary
from ..errors import MultisigError, error_to_dict
from ..keys import format_identity
from ..service import MultisigService
from ..store.records import RecordStore
from ..version import version_metadata

app = typer.Typer(
    name="multisig",
    add_completion=False,
    no_args_is_help=True,
    help="Threshold multisig wallets: create, propose, approve, execute.",
)

log = mlog.get_logger("multisig.cli")


# -------------------- utils --------------------


def _emit(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _svc(ctx: typer.Context) -> MultisigService:
    return ctx.obj


def _run(fn: Callable[[], Any]) -> Any:
    """Invoke a service call, mapping engine errors to exit status 1."""
    try:
        return fn()
    except MultisigError as e:
        log.debug("operation rejected", extra={"code": e.code})
        typer.echo(json.dumps(error_to_dict(e), sort_keys=True), err=True)
        raise typer.Exit(1)


# -------------------- global options --------------------


@app.callback()
def main(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None, "--db", envvar="MULTISIG_DB", help="Record store URI (sqlite:///path.db)."
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="MULTISIG_LOG_LEVEL", help="Log level for stderr."
    ),
) -> None:
    overrides = {"log_level": log_level}
    if db:
        overrides["db_uri"] = db
    try:
        cfg = load_config(overrides=overrides)
    except ValueError as e:
        typer.secho(f"invalid configuration: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)

    mlog.configure(
        json=None if cfg.log_format is None else cfg.log_format == "json",
        level=cfg.log_level,
        stream=sys.stderr,
    )
    log.debug(summary(cfg))

    ctx.meta["config"] = cfg
    if ctx.invoked_subcommand == "version":
        return
    store = RecordStore.open(cfg.db_uri, namespace=cfg.namespace_bytes)
    ctx.call_on_close(store.close)
    ctx.obj = MultisigService(store, config=cfg)


# -------------------- operations --------------------


@app.command("create-wallet")
def create_wallet_cmd(
    ctx: typer.Context,
    owner: List[str] = typer.Option([], "--owner", help="Owner identity (64 hex chars); repeat per owner."),
    threshold: int = typer.Option(..., "--threshold", help="Approvals required to execute."),
    idx: Optional[int] = typer.Option(None, "--idx", help="Wallet seed (default: current time)."),
) -> None:
    """Create a wallet with a fixed owner set and threshold."""
    wallet = _run(lambda: _svc(ctx).create_wallet(owner, threshold, idx=idx))
    _emit(wallet.to_dict())


@app.command("deposit")
def deposit_cmd(
    ctx: typer.Context,
    wallet: str = typer.Option(..., "--wallet", help="Wallet address."),
    amount: int = typer.Option(..., "--amount", help="Units to credit."),
) -> None:
    """Fund a wallet."""
    balance = _run(lambda: _svc(ctx).deposit(wallet, amount))
    _emit({"wallet": wallet, "balance": balance})


@app.command("propose")
def propose_cmd(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--as", help="Identity of the proposing owner."),
    wallet: str = typer.Option(..., "--wallet", help="Wallet address."),
    to: str = typer.Option(..., "--to", help="Destination identity."),
    amount: int = typer.Option(..., "--amount", help="Units to transfer."),
) -> None:
    """Propose a transfer; the proposer's approval is recorded immediately."""
    svc = _svc(ctx)
    proposal = _run(lambda: svc.propose(caller, wallet, to, amount))
    out = proposal.to_dict()
    out["address"] = format_identity(proposal.address(svc.store.namespace))
    _emit(out)


@app.command("approve")
def approve_cmd(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--as", help="Identity of the approving owner."),
    wallet: str = typer.Option(..., "--wallet", help="Wallet address."),
    proposal: int = typer.Option(..., "--proposal", help="Proposal id."),
) -> None:
    """Approve a pending proposal (idempotent)."""
    _emit(_run(lambda: _svc(ctx).approve(caller, wallet, proposal)).to_dict())


@app.command("execute")
def execute_cmd(
    ctx: typer.Context,
    wallet: str = typer.Option(..., "--wallet", help="Wallet address."),
    proposal: int = typer.Option(..., "--proposal", help="Proposal id."),
) -> None:
    """Execute a proposal that has reached its threshold."""
    _emit(_run(lambda: _svc(ctx).execute(wallet, proposal)).to_dict())


# -------------------- read models --------------------


@app.command("show-wallet")
def show_wallet_cmd(
    ctx: typer.Context,
    wallet: str = typer.Option(..., "--wallet", help="Wallet address."),
) -> None:
    svc = _svc(ctx)
    w = _run(lambda: svc.get_wallet(wallet))
    out = w.to_dict()
    out["balance"] = svc.balance_of(w.address)
    _emit(out)


@app.command("show-proposal")
def show_proposal_cmd(
    ctx: typer.Context,
    wallet: str = typer.Option(..., "--wallet", help="Wallet address."),
    proposal: int = typer.Option(..., "--proposal", help="Proposal id."),
) -> None:
    """Show a proposal with its approval count and whether it can execute now."""
    svc = _svc(ctx)
    p = _run(lambda: svc.get_proposal(wallet, proposal))
    out = p.to_dict()
    out["address"] = format_identity(p.address(svc.store.namespace))
    out["status"] = _run(lambda: svc.proposal_status(wallet, proposal)).to_dict()
    _emit(out)


@app.command("list-wallets")
def list_wallets_cmd(
    ctx: typer.Context,
    address: Optional[str] = typer.Option(None, "--address", help="Only this wallet."),
    owner: Optional[str] = typer.Option(None, "--owner", help="Only wallets this identity owns."),
) -> None:
    wallets = _run(lambda: _svc(ctx).list_wallets(address=address, owner=owner))
    _emit([w.to_dict() for w in wallets])


@app.command("list-proposals")
def list_proposals_cmd(
    ctx: typer.Context,
    wallet: str = typer.Option(..., "--wallet", help="Wallet address."),
) -> None:
    proposals = _run(lambda: _svc(ctx).list_proposals(wallet))
    _emit([p.to_dict() for p in proposals])


@app.command("balance")
def balance_cmd(
    ctx: typer.Context,
    address: str = typer.Option(..., "--address", help="Any identity."),
) -> None:
    _emit({"address": address, "balance": _run(lambda: _svc(ctx).balance_of(address))})


@app.command("version")
def version_cmd(ctx: typer.Context) -> None:
    """Release, record layout and derivation namespace of this build."""
    _emit(version_metadata(ctx.meta["config"].namespace_bytes))
