"""
KV interface & namespace prefixes
=================================

Backend-agnostic Key–Value interface for the record store, plus the key
prefixes used for its buckets:

- WALLETS   (b"w:")   : wallet records by address
- PROPOSALS (b"p:")   : proposal records by (wallet, proposal_id)
- balances  (b"bal:") : u64 balances by identity (see multisig.ledger)

Key building
------------
`Prefix.key(*parts)` builds prefix + Σ(uvarint(len) | part). Length-prefixing
keeps composite keys unambiguous and lets a shorter key act as a scan prefix:

>>> PROPOSALS.key(wallet)                      # every proposal of `wallet`
>>> PROPOSALS.key(wallet, be_u64(7))           # proposal 7

Integers that must sort numerically go through `be_u64`.

Batching
--------
`KV.batch()` returns a context manager. Writes inside it are atomic; an
exception escaping the block rolls the whole batch back.
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol, Tuple, Union, runtime_checkable

NS_SEP = b":"


class Prefix:
    """
    A logical namespace prefix (e.g., b"w:" for wallets).

    .raw gives the raw bytes prefix.
    .key(*parts) builds a composite key under it.
    """

    __slots__ = ("_raw",)

    def __init__(self, ns: Union[bytes, str]) -> None:
        ns_b = ns.encode("ascii") if isinstance(ns, str) else bytes(ns)
        if len(ns_b) == 0:
            raise ValueError("namespace must be non-empty")
        self._raw = ns_b.rstrip(NS_SEP) + NS_SEP

    @property
    def raw(self) -> bytes:
        return self._raw

    def key(self, *parts: bytes) -> bytes:
        out = bytearray(self._raw)
        for p in parts:
            pb = bytes(p)
            out.extend(_uvarint_len(len(pb)))
            out.extend(pb)
        return bytes(out)


def _uvarint_len(n: int) -> bytes:
    """LEB128 unsigned length prefix."""
    if n < 0:
        raise ValueError("length must be non-negative")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(0x80 | b)
        else:
            out.append(b)
            break
    return bytes(out)


def be_u64(n: int) -> bytes:
    if not (0 <= n < (1 << 64)):
        raise ValueError("be_u64 out of range")
    return n.to_bytes(8, "big")


WALLETS = Prefix(b"w")
PROPOSALS = Prefix(b"p")


# ---------------------------------------------------------------------------
# KV protocols & Batch
# ---------------------------------------------------------------------------


@runtime_checkable
class ReadOnlyKV(Protocol):
    def get(self, key: bytes) -> Optional[bytes]:
        """Fetch value or None if missing."""
        ...

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        """(key, value) pairs whose key starts with `prefix`, in byte order."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class Batch(Protocol):
    """
    A write-batch context manager. Atomic when the block exits cleanly,
    rolled back when an exception escapes.
    """

    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...

    def __enter__(self) -> "Batch": ...
    def __exit__(self, exc_type, exc, tb) -> Optional[bool]: ...


@runtime_checkable
class KV(ReadOnlyKV, Protocol):
    def put(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def batch(self) -> Batch: ...


__all__ = [
    "ReadOnlyKV",
    "KV",
    "Batch",
    "Prefix",
    "WALLETS",
    "PROPOSALS",
    "be_u64",
]
