"""
multisig.engine.execution — ExecuteTransaction.

Execution is the only step that moves value. It may be triggered by anyone;
authority comes from the accumulated approvals, not from the caller.

Checks, each a distinct failure and all before any mutation:

  0. proposal belongs to the wallet              → WalletMismatch
  1. not yet executed                            → AlreadyExecuted
  2. snapshot matches current owner-set version  → StaleMandate
  3. approvals ≥ threshold                       → InsufficientApprovals
  4. wallet balance ≥ amount                     → InsufficientFunds

Then the ledger transfer runs and the proposal is returned with
``executed=True``. If the transfer raises, no executed proposal exists and the
host's transaction discards whatever the ledger may have staged.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol, Tuple, runtime_checkable

from ..errors import AlreadyExecuted, InsufficientApprovals, InsufficientFunds
from ..types import Proposal, TransferEffect, Wallet
from .approval import ensure_bound, ensure_current


@runtime_checkable
class BalanceLedger(Protocol):
    """What execution needs from the balance collaborator (see multisig.ledger)."""

    def balance_of(self, address: bytes) -> int: ...
    def transfer(self, source: bytes, destination: bytes, amount: int) -> Tuple[int, int]: ...


def execute_transaction(
    proposal: Proposal,
    wallet: Wallet,
    ledger: BalanceLedger,
) -> Tuple[Proposal, TransferEffect]:
    ensure_bound(proposal, wallet)
    if proposal.executed:
        raise AlreadyExecuted(proposal_id=proposal.proposal_id)
    ensure_current(proposal, wallet)

    if not proposal.has_quorum(wallet.threshold):
        raise InsufficientApprovals(approvals=proposal.approval_count, threshold=wallet.threshold)

    balance = ledger.balance_of(wallet.address)
    if balance < proposal.amount:
        raise InsufficientFunds(balance=balance, amount=proposal.amount)

    src_after, dst_after = ledger.transfer(wallet.address, proposal.destination, proposal.amount)

    effect = TransferEffect(
        wallet=wallet.address,
        proposal_id=proposal.proposal_id,
        source=wallet.address,
        destination=proposal.destination,
        amount=proposal.amount,
        source_balance=src_after,
        destination_balance=dst_after,
    )
    return replace(proposal, executed=True), effect


__all__ = ["BalanceLedger", "execute_transaction"]
