"""
multisig.engine.wallet — CreateWallet.

Establishes an owner set and threshold. Validation order matters for which
error a caller sees: an empty owner list reports EmptyOwnerSet even though
any threshold would also be out of range for it.
"""

from __future__ import annotations

from typing import Iterable, Optional

from ..types import Wallet
from .validation import check_identity, check_owner_set, check_threshold


def create_wallet(
    address: bytes,
    owners: Iterable[bytes],
    threshold: int,
    *,
    idx: int = 0,
    max_owners: Optional[int] = None,
) -> Wallet:
    """
    Build a fresh Wallet record.

    Raises EmptyOwnerSet, OwnerSetTooLarge, InvalidIdentity, DuplicateOwner
    or InvalidThreshold, in that order of precedence. Refusing to overwrite an
    existing record at ``address`` is the store's job.
    """
    check_identity(address, what="wallet address")
    owner_tuple = check_owner_set(owners, max_owners=max_owners)
    check_threshold(threshold, len(owner_tuple))
    return Wallet(
        address=address,
        owners=owner_tuple,
        threshold=threshold,
        proposal_counter=0,
        owner_set_version=0,
        idx=idx,
    )


__all__ = ["create_wallet"]
