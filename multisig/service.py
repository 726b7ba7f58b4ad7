"""
multisig.service — host binding of the engine to the record store.

`MultisigService` is the entry point adapters call. Each public operation:

  1. authenticates the caller (where the operation has one),
  2. opens one record-store transaction,
  3. loads the records, runs the pure engine step, writes the results,
  4. logs the outcome and records metrics.

Engine errors propagate unchanged; the transaction rolls back, so a rejected
operation leaves no trace in storage. No state is kept between calls.

Usage
-----
    store = RecordStore.open("sqlite:///multisig.db")
    svc = MultisigService(store)

    w = svc.create_wallet([a, b, c], threshold=2, idx=1)
    svc.deposit(w.address, 1_000)
    p = svc.propose(a, w.address, dest, 500)
    svc.approve(b, w.address, p.proposal_id)
    effect = svc.execute(w.address, p.proposal_id)
"""

from __future__ import annotations

import threading
import time
from typing import Any, Iterable, List, Optional

from . import logging as mlog
from . import metrics
from .config import MultisigConfig, get_config
from .engine import (
    approve_transaction,
    create_wallet,
    execute_transaction,
    propose_transaction,
)
from .engine.validation import check_amount
from .identity import Authenticator, PresentedIdentity
from .keys import IdentityLike, parse_identity
from .store.records import RecordStore
from .types import Proposal, ProposalStatus, TransferEffect, Wallet

log = mlog.get_logger("multisig.service")


def _identity(value: Any) -> Any:
    # Hex text is normalized here; raw values go to the engine as-is so that
    # its own validation order decides which error a malformed list reports.
    if isinstance(value, str):
        return parse_identity(value)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


_idx_lock = threading.Lock()
_last_idx = 0


def default_wallet_idx() -> int:
    """
    Wallet seed used when the caller does not pick one: unix time in
    microseconds, strictly increasing within the process.
    """
    global _last_idx
    with _idx_lock:
        _last_idx = max(time.time_ns() // 1_000, _last_idx + 1)
        return _last_idx


class MultisigService:
    def __init__(
        self,
        store: RecordStore,
        *,
        authenticator: Optional[Authenticator] = None,
        config: Optional[MultisigConfig] = None,
    ):
        self.store = store
        self.auth: Authenticator = authenticator or PresentedIdentity()
        self.config = config or get_config()

    # ------------------------------------------------------------ operations

    def create_wallet(
        self,
        owners: Iterable[IdentityLike],
        threshold: int,
        *,
        idx: Optional[int] = None,
    ) -> Wallet:
        """CreateWallet. Raises RecordExists if a wallet with this seed exists."""
        idx = default_wallet_idx() if idx is None else check_amount(idx, what="idx")
        address = self.store.wallet_address(idx)
        with mlog.trace_scope(op="create_wallet", wallet=address), metrics.OpTimer("create_wallet"):
            wallet = create_wallet(
                address,
                [_identity(o) for o in owners],
                threshold,
                idx=idx,
                max_owners=self.config.max_owners,
            )
            with self.store.transaction() as tx:
                tx.create_wallet(wallet)
            log.info(
                "wallet created",
                extra={"owners": len(wallet.owners), "threshold": wallet.threshold, "idx": idx},
            )
            return wallet

    def deposit(self, wallet: IdentityLike, amount: int) -> int:
        """Credit ``amount`` to an existing wallet; returns the new balance."""
        wallet = parse_identity(wallet)
        with mlog.trace_scope(op="deposit", wallet=wallet), metrics.OpTimer("deposit"):
            check_amount(amount)
            with self.store.transaction() as tx:
                tx.get_wallet(wallet)
                balance = tx.ledger.credit(wallet, amount)
            log.info("wallet funded", extra={"amount": amount, "balance": balance})
            return balance

    def propose(
        self,
        credentials: Any,
        wallet: IdentityLike,
        destination: IdentityLike,
        amount: int,
    ) -> Proposal:
        """ProposeTransaction on behalf of the authenticated caller."""
        wallet = parse_identity(wallet)
        with mlog.trace_scope(op="propose", wallet=wallet), metrics.OpTimer("propose"):
            caller = self.auth.authenticate(credentials)
            with self.store.transaction() as tx:
                current = tx.get_wallet(wallet)
                updated, proposal = propose_transaction(
                    current, caller, _identity(destination), amount
                )
                tx.update_wallet(updated)
                tx.create_proposal(proposal)
            mlog.bind(proposal=proposal.proposal_id)
            log.info("proposal created", extra={"amount": amount, "proposer": caller})
            return proposal

    def approve(self, credentials: Any, wallet: IdentityLike, proposal_id: int) -> Proposal:
        """ApproveTransaction; re-approving is a no-op."""
        wallet = parse_identity(wallet)
        with mlog.trace_scope(op="approve", wallet=wallet, proposal=proposal_id), metrics.OpTimer("approve"):
            caller = self.auth.authenticate(credentials)
            with self.store.transaction() as tx:
                w = tx.get_wallet(wallet)
                current = tx.get_proposal(wallet, proposal_id)
                updated = approve_transaction(current, w, caller)
                if updated is not current:
                    tx.update_proposal(updated)
            log.info(
                "proposal approved" if updated is not current else "approval already recorded",
                extra={"approver": caller, "approvals": updated.approval_count},
            )
            return updated

    def execute(self, wallet: IdentityLike, proposal_id: int) -> TransferEffect:
        """
        ExecuteTransaction. Open to any caller: authority comes from the
        recorded approvals. The executed flag and both balance legs commit in
        the same transaction.
        """
        wallet = parse_identity(wallet)
        with mlog.trace_scope(op="execute", wallet=wallet, proposal=proposal_id), metrics.OpTimer("execute"):
            with self.store.transaction() as tx:
                w = tx.get_wallet(wallet)
                current = tx.get_proposal(wallet, proposal_id)
                executed, effect = execute_transaction(current, w, tx.ledger)
                tx.update_proposal(executed)
            metrics.observe_execution(effect.amount, executed.approval_count)
            log.info(
                "proposal executed",
                extra={"amount": effect.amount, "destination": effect.destination},
            )
            return effect

    # ----------------------------------------------------------- read models

    def get_wallet(self, wallet: IdentityLike) -> Wallet:
        return self.store.get_wallet(parse_identity(wallet))

    def get_proposal(self, wallet: IdentityLike, proposal_id: int) -> Proposal:
        return self.store.get_proposal(parse_identity(wallet), proposal_id)

    def proposal_status(self, wallet: IdentityLike, proposal_id: int) -> ProposalStatus:
        w = self.get_wallet(wallet)
        return ProposalStatus.of(self.store.get_proposal(w.address, proposal_id), w)

    def list_wallets(
        self,
        *,
        address: Optional[IdentityLike] = None,
        owner: Optional[IdentityLike] = None,
    ) -> List[Wallet]:
        """All wallets, optionally narrowed to one address and/or one owner."""
        wallets = self.store.list_wallets()
        if address is not None:
            a = parse_identity(address)
            wallets = [w for w in wallets if w.address == a]
        if owner is not None:
            o = parse_identity(owner)
            wallets = [w for w in wallets if w.is_owner(o)]
        return wallets

    def list_proposals(self, wallet: IdentityLike) -> List[Proposal]:
        return self.store.list_proposals(parse_identity(wallet))

    def balance_of(self, address: IdentityLike) -> int:
        return self.store.balance_of(parse_identity(address))


__all__ = ["MultisigService", "default_wallet_idx"]
