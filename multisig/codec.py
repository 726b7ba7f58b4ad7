"""
multisig.codec — fixed-layout, versioned encoding of Wallet and Proposal.

All integers are big-endian and fixed width. Each record starts with a one-byte
tag and a one-byte layout version so that later layouts can be added without
breaking records already on disk.

    Wallet v1
      b"W" | ver:u8 | address[32] | idx:u64 | threshold:u16
           | proposal_counter:u64 | owner_set_version:u64
           | n:u16 | owners[32 * n]

    Proposal v1
      b"P" | ver:u8 | wallet[32] | proposal_id:u64 | destination[32]
           | amount:u64 | owner_set_version:u64 | executed:u8
           | n:u16 | approvals[n]            (each 0x00 or 0x01)

Decoding is strict: unknown tag/version, truncation, trailing bytes and
non-canonical booleans all raise CodecError.
"""

from __future__ import annotations

import struct
from typing import Tuple

from .errors import CodecError
from .keys import IDENTITY_LEN
from .types import Proposal, Wallet

WALLET_TAG = b"W"
PROPOSAL_TAG = b"P"
VERSION = 1

_WALLET_HEAD = struct.Struct(">B32sQHQQH")
_PROPOSAL_HEAD = struct.Struct(">B32sQ32sQQBH")


def _pack(fmt: struct.Struct, *values: object) -> bytes:
    try:
        return fmt.pack(*values)
    except struct.error as e:
        raise CodecError(f"field out of range: {e}") from None


def _split_header(data: bytes, tag: bytes) -> memoryview:
    if len(data) < 2:
        raise CodecError("record too short")
    if data[:1] != tag:
        raise CodecError(f"unexpected record tag {data[:1]!r}", data={"expected": tag.decode()})
    return memoryview(data)[1:]


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------


def encode_wallet(wallet: Wallet) -> bytes:
    if len(wallet.address) != IDENTITY_LEN:
        raise CodecError("wallet address must be 32 bytes")
    head = _pack(
        _WALLET_HEAD,
        VERSION,
        wallet.address,
        wallet.idx,
        wallet.threshold,
        wallet.proposal_counter,
        wallet.owner_set_version,
        len(wallet.owners),
    )
    for owner in wallet.owners:
        if len(owner) != IDENTITY_LEN:
            raise CodecError("owner must be 32 bytes")
    return WALLET_TAG + head + b"".join(wallet.owners)


def decode_wallet(data: bytes) -> Wallet:
    body = _split_header(bytes(data), WALLET_TAG)
    if len(body) < _WALLET_HEAD.size:
        raise CodecError("wallet record truncated")
    ver, address, idx, threshold, counter, osv, n = _WALLET_HEAD.unpack_from(body)
    if ver != VERSION:
        raise CodecError(f"unsupported wallet layout v{ver}")
    rest = body[_WALLET_HEAD.size:]
    if len(rest) != n * IDENTITY_LEN:
        raise CodecError(
            "wallet owner section length mismatch",
            data={"expected": n * IDENTITY_LEN, "got": len(rest)},
        )
    owners = tuple(bytes(rest[i * IDENTITY_LEN:(i + 1) * IDENTITY_LEN]) for i in range(n))
    return Wallet(
        address=address,
        owners=owners,
        threshold=threshold,
        proposal_counter=counter,
        owner_set_version=osv,
        idx=idx,
    )


# ---------------------------------------------------------------------------
# Proposal
# ---------------------------------------------------------------------------


def _decode_flag(b: int, what: str) -> bool:
    if b not in (0, 1):
        raise CodecError(f"non-canonical boolean in {what}", data={"byte": b})
    return b == 1


def encode_proposal(proposal: Proposal) -> bytes:
    head = _pack(
        _PROPOSAL_HEAD,
        VERSION,
        proposal.wallet,
        proposal.proposal_id,
        proposal.destination,
        proposal.amount,
        proposal.owner_set_version,
        1 if proposal.executed else 0,
        len(proposal.approvals),
    )
    if len(proposal.wallet) != IDENTITY_LEN or len(proposal.destination) != IDENTITY_LEN:
        raise CodecError("wallet and destination must be 32 bytes")
    return PROPOSAL_TAG + head + bytes(1 if a else 0 for a in proposal.approvals)


def decode_proposal(data: bytes) -> Proposal:
    body = _split_header(bytes(data), PROPOSAL_TAG)
    if len(body) < _PROPOSAL_HEAD.size:
        raise CodecError("proposal record truncated")
    ver, wallet, pid, dest, amount, osv, executed, n = _PROPOSAL_HEAD.unpack_from(body)
    if ver != VERSION:
        raise CodecError(f"unsupported proposal layout v{ver}")
    rest = bytes(body[_PROPOSAL_HEAD.size:])
    if len(rest) != n:
        raise CodecError(
            "proposal approvals length mismatch", data={"expected": n, "got": len(rest)}
        )
    approvals: Tuple[bool, ...] = tuple(_decode_flag(b, "approvals") for b in rest)
    return Proposal(
        wallet=wallet,
        proposal_id=pid,
        destination=dest,
        amount=amount,
        approvals=approvals,
        owner_set_version=osv,
        executed=_decode_flag(executed, "executed"),
    )


__all__ = [
    "VERSION",
    "encode_wallet",
    "decode_wallet",
    "encode_proposal",
    "decode_proposal",
]
