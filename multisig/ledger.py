"""
multisig.ledger — balance ledger collaborator.

The engine moves value only through this interface:

    class BalanceLedger(Protocol):
        def balance_of(self, address: bytes) -> int: ...
        def transfer(self, source: bytes, destination: bytes, amount: int) -> tuple[int, int]: ...

`transfer` carries no authorization of its own: it assumes the engine has
already decided the movement is allowed and only guards the arithmetic. It
either applies both legs or raises before writing anything.

`KVBalanceLedger` keeps u64 balances in any get/put mapping view. The record
store hands one out per transaction, so balance changes commit or roll back
together with the proposal they belong to.
"""

from __future__ import annotations

from typing import Optional, Protocol, Tuple

from .engine.execution import BalanceLedger
from .engine.validation import check_amount, checked_add, checked_sub
from .errors import CodecError
from .store.kv import Prefix, be_u64


class BalanceView(Protocol):
    def get(self, key: bytes) -> Optional[bytes]: ...
    def put(self, key: bytes, value: bytes) -> None: ...


BALANCES = Prefix(b"bal:")


class KVBalanceLedger:
    """u64 balances stored big-endian under the ``bal:`` prefix."""

    def __init__(self, view: BalanceView):
        self._view = view

    def balance_of(self, address: bytes) -> int:
        raw = self._view.get(BALANCES.key(address))
        if raw is None:
            return 0
        if len(raw) != 8:
            raise CodecError("balance entry must be 8 bytes", data={"len": len(raw)})
        return int.from_bytes(raw, "big")

    def _set(self, address: bytes, value: int) -> None:
        self._view.put(BALANCES.key(address), be_u64(value))

    def credit(self, address: bytes, amount: int) -> int:
        """Increase ``address`` by ``amount``; returns the new balance."""
        check_amount(amount)
        new = checked_add(self.balance_of(address), amount)
        self._set(address, new)
        return new

    def transfer(self, source: bytes, destination: bytes, amount: int) -> Tuple[int, int]:
        """
        Move ``amount`` from ``source`` to ``destination``.

        Both new balances are computed before either is written. Returns
        (source_balance, destination_balance) after the move.
        """
        check_amount(amount)
        if source == destination:
            bal = self.balance_of(source)
            checked_sub(bal, amount)
            return bal, bal
        src = checked_sub(self.balance_of(source), amount)
        dst = checked_add(self.balance_of(destination), amount)
        self._set(source, src)
        self._set(destination, dst)
        return src, dst


__all__ = ["BalanceLedger", "BalanceView", "KVBalanceLedger", "BALANCES"]
