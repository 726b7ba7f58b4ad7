"""
multisig.engine.approval — ApproveTransaction.

Approvals are unweighted, permanent and idempotent: approving twice leaves the
proposal unchanged and is not an error.
"""

from __future__ import annotations

from dataclasses import replace

from ..errors import AlreadyExecuted, StaleMandate, WalletMismatch
from ..types import Proposal, Wallet
from .validation import require_owner


def ensure_bound(proposal: Proposal, wallet: Wallet) -> None:
    """The proposal must reference the wallet it is checked against."""
    if proposal.wallet != wallet.address:
        raise WalletMismatch(expected=wallet.address, actual=proposal.wallet)


def ensure_current(proposal: Proposal, wallet: Wallet) -> None:
    """Reject proposals created under an older owner set."""
    if proposal.owner_set_version != wallet.owner_set_version:
        raise StaleMandate(
            snapshot=proposal.owner_set_version,
            current=wallet.owner_set_version,
        )


def approve_transaction(proposal: Proposal, wallet: Wallet, approver: bytes) -> Proposal:
    """
    Record ``approver``'s approval.

    Check order: WalletMismatch, UnauthorizedCaller, AlreadyExecuted,
    StaleMandate. A stale proposal's bitmap is indexed by an owner list that
    no longer exists, so approving it would set the wrong bit.
    """
    ensure_bound(proposal, wallet)
    index = require_owner(wallet, approver)
    if proposal.executed:
        raise AlreadyExecuted(proposal_id=proposal.proposal_id)
    ensure_current(proposal, wallet)

    if proposal.approvals[index]:
        return proposal
    approvals = list(proposal.approvals)
    approvals[index] = True
    return replace(proposal, approvals=tuple(approvals))


__all__ = ["ensure_bound", "ensure_current", "approve_transaction"]
