"""
multisig.store.records — typed, transactional record access.

Every engine operation runs as one `RecordStore.transaction()`:

    with store.transaction() as tx:
        wallet = tx.get_wallet(addr)
        wallet, proposal = propose_transaction(wallet, caller, dest, amount)
        tx.update_wallet(wallet)
        tx.create_proposal(proposal)

The block commits when it exits cleanly and rolls back otherwise, so a
half-applied operation is never visible.

Stored values are ``revision:u64 | codec payload``. `Txn` remembers the
revision of each record it reads; `update_*` re-checks it and writes the next
revision. A record that changed underneath the transaction, or one that was
never read through it, is rejected with WriteConflict instead of being
overwritten.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from .. import codec
from ..errors import CodecError, RecordExists, RecordNotFound, WriteConflict
from ..keys import DEFAULT_NAMESPACE, U64_MAX, proposal_address, wallet_address
from ..ledger import KVBalanceLedger
from ..types import Proposal, Wallet
from .kv import KV, PROPOSALS, WALLETS, Batch, be_u64
from .sqlite import open_sqlite_kv

_REV_LEN = 8


def _split_rev(raw: bytes) -> Tuple[int, bytes]:
    if len(raw) < _REV_LEN:
        raise CodecError("stored record missing revision")
    return int.from_bytes(raw[:_REV_LEN], "big"), raw[_REV_LEN:]


def _wallet_key(address: bytes) -> bytes:
    return WALLETS.key(address)


def _proposal_key(wallet: bytes, proposal_id: int) -> bytes:
    if not (0 <= proposal_id <= U64_MAX):
        raise RecordNotFound(kind="proposal", data={"proposal_id": proposal_id})
    return PROPOSALS.key(wallet, be_u64(proposal_id))


class Txn:
    """
    One atomic unit of work against the store. Reads observe this
    transaction's own writes.
    """

    def __init__(self, kv: KV, batch: Batch):
        self._kv = kv
        self._batch = batch
        self._seen: Dict[bytes, int] = {}
        self.ledger = KVBalanceLedger(self)

    # raw view (used by the ledger)

    def get(self, key: bytes) -> Optional[bytes]:
        return self._kv.get(key)

    def put(self, key: bytes, value: bytes) -> None:
        self._batch.put(key, value)

    # ------------------------------------------------------------------ reads

    def _read(self, key: bytes, kind: str) -> bytes:
        raw = self._kv.get(key)
        if raw is None:
            raise RecordNotFound(kind=kind, key=key)
        rev, payload = _split_rev(raw)
        self._seen[key] = rev
        return payload

    def get_wallet(self, address: bytes) -> Wallet:
        return codec.decode_wallet(self._read(_wallet_key(address), "wallet"))

    def get_proposal(self, wallet: bytes, proposal_id: int) -> Proposal:
        return codec.decode_proposal(self._read(_proposal_key(wallet, proposal_id), "proposal"))

    # ----------------------------------------------------------------- writes

    def _create(self, key: bytes, payload: bytes, kind: str) -> None:
        if self._kv.get(key) is not None:
            raise RecordExists(kind=kind, key=key)
        self._batch.put(key, be_u64(0) + payload)
        self._seen[key] = 0

    def _update(self, key: bytes, payload: bytes) -> None:
        if key not in self._seen:
            raise WriteConflict("record was not read in this transaction", key=key)
        raw = self._kv.get(key)
        current = None if raw is None else _split_rev(raw)[0]
        if current != self._seen[key]:
            raise WriteConflict(key=key, data={"seen": self._seen[key], "current": current})
        nxt = current + 1
        self._batch.put(key, be_u64(nxt) + payload)
        self._seen[key] = nxt

    def create_wallet(self, wallet: Wallet) -> None:
        self._create(_wallet_key(wallet.address), codec.encode_wallet(wallet), "wallet")

    def update_wallet(self, wallet: Wallet) -> None:
        self._update(_wallet_key(wallet.address), codec.encode_wallet(wallet))

    def create_proposal(self, proposal: Proposal) -> None:
        key = _proposal_key(proposal.wallet, proposal.proposal_id)
        self._create(key, codec.encode_proposal(proposal), "proposal")

    def update_proposal(self, proposal: Proposal) -> None:
        key = _proposal_key(proposal.wallet, proposal.proposal_id)
        self._update(key, codec.encode_proposal(proposal))


class RecordStore:
    """
    Wallet/proposal/balance storage over a KV backend.

    One writer at a time per store instance (thread lock); across processes
    the backend's own write lock applies and contention surfaces as
    WriteConflict.
    """

    def __init__(self, kv: KV, *, namespace: bytes = DEFAULT_NAMESPACE):
        self._kv = kv
        self._lock = threading.RLock()
        self.namespace = namespace

    @classmethod
    def open(cls, uri: str, *, namespace: bytes = DEFAULT_NAMESPACE, **kwargs) -> "RecordStore":
        return cls(open_sqlite_kv(uri, **kwargs), namespace=namespace)

    def close(self) -> None:
        with self._lock:
            self._kv.close()

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------ addressing

    def wallet_address(self, idx: int) -> bytes:
        return wallet_address(idx, namespace=self.namespace)

    def proposal_address(self, wallet: bytes, proposal_id: int) -> bytes:
        return proposal_address(wallet, proposal_id, namespace=self.namespace)

    # ----------------------------------------------------------- transactions

    @contextmanager
    def transaction(self) -> Iterator[Txn]:
        with self._lock:
            with self._kv.batch() as batch:
                yield Txn(self._kv, batch)

    # ------------------------------------------------------------ read models

    def get_wallet(self, address: bytes) -> Wallet:
        with self._lock:
            raw = self._kv.get(_wallet_key(address))
        if raw is None:
            raise RecordNotFound(kind="wallet", key=address)
        return codec.decode_wallet(_split_rev(raw)[1])

    def get_proposal(self, wallet: bytes, proposal_id: int) -> Proposal:
        with self._lock:
            raw = self._kv.get(_proposal_key(wallet, proposal_id))
        if raw is None:
            raise RecordNotFound(kind="proposal", data={"wallet": wallet.hex(), "proposal_id": proposal_id})
        return codec.decode_proposal(_split_rev(raw)[1])

    def list_wallets(self) -> List[Wallet]:
        with self._lock:
            rows = list(self._kv.iter_prefix(WALLETS.raw))
        return [codec.decode_wallet(_split_rev(v)[1]) for _, v in rows]

    def list_proposals(self, wallet: bytes) -> List[Proposal]:
        """Proposals of ``wallet`` in id order."""
        with self._lock:
            rows = list(self._kv.iter_prefix(PROPOSALS.key(wallet)))
        return [codec.decode_proposal(_split_rev(v)[1]) for _, v in rows]

    def balance_of(self, address: bytes) -> int:
        with self._lock:
            return KVBalanceLedger(self._kv).balance_of(address)


__all__ = ["Txn", "RecordStore"]
