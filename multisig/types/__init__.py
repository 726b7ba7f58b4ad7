"""Record types: Wallet, Proposal, and the results derived from them."""

from .effects import ProposalStatus, TransferEffect
from .proposal import Proposal
from .wallet import Wallet

__all__ = ["Wallet", "Proposal", "TransferEffect", "ProposalStatus"]
