"""
Pure authorization state machine.

Each operation takes the current records, validates, and returns new records.
Nothing here reads or writes storage; `multisig.service` binds these functions
to the record store inside one transaction per call.
"""

from .approval import approve_transaction
from .execution import execute_transaction
from .proposal import propose_transaction
from .wallet import create_wallet

__all__ = [
    "create_wallet",
    "propose_transaction",
    "approve_transaction",
    "execute_transaction",
]
