"""
multisig.types.effects — values returned to callers after an operation.

* TransferEffect : the balance movement produced by a successful execution
* ProposalStatus : read model answering "can this proposal be executed now?"
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from ..keys import format_identity
from .proposal import Proposal
from .wallet import Wallet


@dataclass(frozen=True)
class TransferEffect:
    wallet: bytes
    proposal_id: int
    source: bytes
    destination: bytes
    amount: int
    source_balance: int
    destination_balance: int

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for k in ("wallet", "source", "destination"):
            d[k] = format_identity(d[k])
        return d


@dataclass(frozen=True)
class ProposalStatus:
    proposal_id: int
    approvals: int
    threshold: int
    executed: bool
    stale: bool

    @property
    def executable(self) -> bool:
        return not self.executed and not self.stale and self.approvals >= self.threshold

    @classmethod
    def of(cls, proposal: Proposal, wallet: Wallet) -> "ProposalStatus":
        return cls(
            proposal_id=proposal.proposal_id,
            approvals=proposal.approval_count,
            threshold=wallet.threshold,
            executed=proposal.executed,
            stale=proposal.owner_set_version != wallet.owner_set_version,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["executable"] = self.executable
        return d


__all__ = ["TransferEffect", "ProposalStatus"]
