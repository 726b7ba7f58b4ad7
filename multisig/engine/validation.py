"""
multisig.engine.validation — checks shared by the four operations.

All helpers are pure: they either return a normalized value or raise the
specific MultisigError for the violated rule. Nothing here touches storage.

Amounts and counters live in the unsigned 64-bit domain; arithmetic on them
goes through `checked_add` / `checked_sub` so that a would-be wrap is an error
rather than a silent modulo result.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

from ..config import OWNER_COUNT_CEILING
from ..errors import (
    ArithmeticOverflow,
    ArithmeticUnderflow,
    DuplicateOwner,
    EmptyOwnerSet,
    InvalidIdentity,
    InvalidThreshold,
    OwnerSetTooLarge,
    UnauthorizedCaller,
)
from ..keys import U64_MAX, is_identity
from ..types import Wallet


# =============================================================================
# u64 arithmetic
# =============================================================================


def _require_int(value: object, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an int, got {type(value).__name__}")
    return value


def check_amount(amount: int, *, what: str = "amount") -> int:
    """Ensure ``amount`` is representable as u64."""
    _require_int(amount, what)
    if amount < 0:
        raise ArithmeticUnderflow(f"{what} must be >= 0", data={what: amount})
    if amount > U64_MAX:
        raise ArithmeticOverflow(f"{what} exceeds u64", data={what: amount})
    return amount


def checked_add(a: int, b: int) -> int:
    res = a + b
    if res > U64_MAX:
        raise ArithmeticOverflow(data={"lhs": a, "rhs": b})
    return res


def checked_sub(a: int, b: int) -> int:
    res = a - b
    if res < 0:
        raise ArithmeticUnderflow(data={"lhs": a, "rhs": b})
    return res


# =============================================================================
# Owner set & threshold
# =============================================================================


def assert_unique_owners(owners: Sequence[bytes]) -> None:
    """
    Fail with DuplicateOwner if any identity appears at two positions.

    Compares every pair of distinct positions. Owner sets are capped small, so
    the quadratic scan is fine and keeps the check independent of hashing.
    """
    n = len(owners)
    for i in range(n):
        for j in range(i + 1, n):
            if owners[i] == owners[j]:
                raise DuplicateOwner(owner=owners[i], positions=[i, j])


def check_owner_set(owners: Iterable[bytes], *, max_owners: Optional[int] = None) -> Tuple[bytes, ...]:
    """
    Validate shape of an owner list and return it as a tuple.

    Order of checks: empty, too large, malformed identity, duplicates.
    """
    out = tuple(owners)
    if not out:
        raise EmptyOwnerSet()
    limit = OWNER_COUNT_CEILING if max_owners is None else min(max_owners, OWNER_COUNT_CEILING)
    if len(out) > limit:
        raise OwnerSetTooLarge(owners=len(out), limit=limit)
    for i, owner in enumerate(out):
        if not is_identity(owner):
            raise InvalidIdentity(f"owner #{i} must be 32 bytes", value=owner)
    assert_unique_owners(out)
    return out


def check_threshold(threshold: int, owner_count: int) -> int:
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise InvalidThreshold(threshold=repr(threshold), owners=owner_count)
    if threshold < 1 or threshold > owner_count:
        raise InvalidThreshold(threshold=threshold, owners=owner_count)
    return threshold


def check_identity(value: object, *, what: str = "identity") -> bytes:
    if not is_identity(value):
        raise InvalidIdentity(f"{what} must be 32 bytes", value=value)
    return value  # type: ignore[return-value]


# =============================================================================
# Membership
# =============================================================================


def require_owner(wallet: Wallet, identity: bytes) -> int:
    """Return the owner index of ``identity`` or raise UnauthorizedCaller."""
    idx = wallet.owner_index(identity)
    if idx is None:
        raise UnauthorizedCaller(caller=identity if isinstance(identity, bytes) else None)
    return idx


__all__ = [
    "check_amount",
    "checked_add",
    "checked_sub",
    "assert_unique_owners",
    "check_owner_set",
    "check_threshold",
    "check_identity",
    "require_owner",
]
