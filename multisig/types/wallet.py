"""
multisig.types.wallet — the Wallet record.

Fields
------
* address           : bytes            — 32-byte identity of the record
* owners            : tuple[bytes, ...] — distinct owner identities, order is meaningful
* threshold         : int              — approvals required, 1 ≤ threshold ≤ len(owners)
* proposal_counter  : int              — next proposal id
* owner_set_version : int              — bumped whenever owners/threshold change
* idx               : int              — u64 seed the address was derived from

The record does not validate itself; construction through
`multisig.engine.wallet.create_wallet` enforces the invariants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..keys import format_identity


@dataclass(frozen=True)
class Wallet:
    address: bytes
    owners: Tuple[bytes, ...]
    threshold: int
    proposal_counter: int = 0
    owner_set_version: int = 0
    idx: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.owners, tuple):
            object.__setattr__(self, "owners", tuple(self.owners))

    # ----------------------------- conveniences ------------------------------

    def owner_index(self, identity: bytes) -> Optional[int]:
        """Position of ``identity`` in the owner list, or None."""
        for i, owner in enumerate(self.owners):
            if owner == identity:
                return i
        return None

    def is_owner(self, identity: bytes) -> bool:
        return self.owner_index(identity) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": format_identity(self.address),
            "idx": self.idx,
            "owners": [format_identity(o) for o in self.owners],
            "threshold": self.threshold,
            "proposal_counter": self.proposal_counter,
            "owner_set_version": self.owner_set_version,
        }


__all__ = ["Wallet"]
