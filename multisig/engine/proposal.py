"""
multisig.engine.proposal — ProposeTransaction.

The proposer must be a current owner. The new proposal takes the wallet's
current counter as its id, snapshots the owner-set version, and starts with
exactly one approval: the proposer's own. The returned wallet carries the
incremented counter; callers persist both records in one transaction so an id
is never handed out twice.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Tuple

from ..types import Proposal, Wallet
from .validation import check_amount, check_identity, checked_add, require_owner


def propose_transaction(
    wallet: Wallet,
    proposer: bytes,
    destination: bytes,
    amount: int,
) -> Tuple[Wallet, Proposal]:
    """
    Create proposal number ``wallet.proposal_counter``.

    Raises:
        UnauthorizedCaller:  proposer is not an owner.
        InvalidIdentity:     destination is not a 32-byte identity.
        ArithmeticUnderflow / ArithmeticOverflow:
                             amount outside u64, or the counter is exhausted.
    """
    proposer_index = require_owner(wallet, proposer)
    check_identity(destination, what="destination")
    check_amount(amount)
    next_counter = checked_add(wallet.proposal_counter, 1)

    approvals = tuple(i == proposer_index for i in range(len(wallet.owners)))
    proposal = Proposal(
        wallet=wallet.address,
        proposal_id=wallet.proposal_counter,
        destination=destination,
        amount=amount,
        approvals=approvals,
        owner_set_version=wallet.owner_set_version,
        executed=False,
    )
    return replace(wallet, proposal_counter=next_counter), proposal


__all__ = ["propose_transaction"]
