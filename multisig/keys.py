"""
multisig.keys
=============

Identity helpers and deterministic record addresses.

Identities (owners, destinations, wallet/proposal addresses) are opaque
32-byte strings. Text forms are lowercase hex with an optional ``0x`` prefix.

Record addresses are derived, never chosen by callers:

    wallet   = sha3_256( len|ns || len|"multisig"    || idx u64le )
    proposal = sha3_256( len|ns || len|"transaction" || len|wallet || id u64le )

Each seed part is prefixed with a one-byte length so that different part
splits can never hash to the same preimage. The namespace keeps deployments
(test/dev/prod databases) from sharing an address space.
"""

from __future__ import annotations

import hashlib
from typing import Union

from .errors import InvalidIdentity

IDENTITY_LEN = 32
U64_MAX = (1 << 64) - 1

WALLET_SEED = b"multisig"
PROPOSAL_SEED = b"transaction"
DEFAULT_NAMESPACE = b"multisig.v1"

IdentityLike = Union[bytes, bytearray, memoryview, str]


# ---------------------
# Identity parsing
# ---------------------


def strip0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def parse_identity(value: IdentityLike) -> bytes:
    """
    Normalize an identity to 32 raw bytes.

    Accepts raw bytes-like values or a 64-char hex string (``0x`` optional).
    Raises InvalidIdentity otherwise.
    """
    if isinstance(value, (bytearray, memoryview)):
        value = bytes(value)
    if isinstance(value, bytes):
        if len(value) != IDENTITY_LEN:
            raise InvalidIdentity(value=value)
        return value
    if isinstance(value, str):
        h = strip0x(value.strip())
        if len(h) != IDENTITY_LEN * 2:
            raise InvalidIdentity(value=value)
        try:
            return bytes.fromhex(h)
        except ValueError:
            raise InvalidIdentity(value=value) from None
    raise InvalidIdentity(f"unsupported identity type: {type(value).__name__}", value=value)


def format_identity(value: bytes, *, prefix: bool = True) -> str:
    h = bytes(value).hex()
    return f"0x{h}" if prefix else h


def is_identity(value: object) -> bool:
    return isinstance(value, bytes) and len(value) == IDENTITY_LEN


# ---------------------
# Address derivation
# ---------------------


def _u64le(n: int) -> bytes:
    if isinstance(n, bool) or not isinstance(n, int) or not (0 <= n <= U64_MAX):
        raise ValueError(f"u64 out of range: {n!r}")
    return n.to_bytes(8, "little")


def _seed(*parts: bytes) -> bytes:
    out = bytearray()
    for p in parts:
        if len(p) > 0xFF:
            raise ValueError("seed part longer than 255 bytes")
        out.append(len(p))
        out += p
    return bytes(out)


def wallet_address(idx: int, *, namespace: bytes = DEFAULT_NAMESPACE) -> bytes:
    """Address of the wallet created with seed ``idx``."""
    return hashlib.sha3_256(_seed(namespace, WALLET_SEED, _u64le(idx))).digest()


def proposal_address(
    wallet: bytes, proposal_id: int, *, namespace: bytes = DEFAULT_NAMESPACE
) -> bytes:
    """Address of proposal number ``proposal_id`` of ``wallet``."""
    return hashlib.sha3_256(
        _seed(namespace, PROPOSAL_SEED, parse_identity(wallet), _u64le(proposal_id))
    ).digest()


__all__ = [
    "IDENTITY_LEN",
    "U64_MAX",
    "IdentityLike",
    "parse_identity",
    "format_identity",
    "is_identity",
    "wallet_address",
    "proposal_address",
]
