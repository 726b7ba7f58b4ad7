"""
multisig.types.proposal — the Proposal record.

A proposal is created by one owner, collects approvals from the owner set it
was created under, and executes at most once. The `approvals` tuple is aligned
with that owner set: ``approvals[i]`` records whether owner ``i`` approved.
Both `approvals[i]` and `executed` only ever move from False to True.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from ..keys import DEFAULT_NAMESPACE, format_identity, proposal_address


@dataclass(frozen=True)
class Proposal:
    wallet: bytes
    proposal_id: int
    destination: bytes
    amount: int
    approvals: Tuple[bool, ...]
    owner_set_version: int
    executed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "approvals", tuple(bool(a) for a in self.approvals))

    @property
    def approval_count(self) -> int:
        return sum(1 for a in self.approvals if a)

    def address(self, namespace: bytes = DEFAULT_NAMESPACE) -> bytes:
        """Derived identity of this proposal; stable for (wallet, proposal_id)."""
        return proposal_address(self.wallet, self.proposal_id, namespace=namespace)

    def has_quorum(self, threshold: int) -> bool:
        return self.approval_count >= threshold

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wallet": format_identity(self.wallet),
            "proposal_id": self.proposal_id,
            "destination": format_identity(self.destination),
            "amount": self.amount,
            "approvals": list(self.approvals),
            "approval_count": self.approval_count,
            "owner_set_version": self.owner_set_version,
            "executed": self.executed,
        }


__all__ = ["Proposal"]
