"""
multisig.errors — typed failures of the authorization engine and its host.

Every rejected operation raises exactly one of these; none of them is recovered
locally. Adapters (CLI, service callers) render them via `to_dict()`.

Hierarchy
---------
MultisigError (base)
 ├─ UnauthorizedCaller     : caller identity is not an owner of the wallet
 ├─ EmptyOwnerSet          : wallet created with no owners
 ├─ InsufficientApprovals  : approval count below the wallet threshold
 ├─ AlreadyExecuted        : proposal has been executed (replay guard)
 ├─ InvalidThreshold       : threshold outside 1..len(owners)
 ├─ DuplicateOwner         : owner appears at two positions
 ├─ InsufficientFunds      : wallet balance below the proposal amount
 ├─ WalletMismatch         : proposal references a different wallet
 ├─ StaleMandate           : proposal snapshot predates the current owner set
 ├─ ArithmeticOverflow     : checked u64 arithmetic would exceed the domain
 ├─ ArithmeticUnderflow    : checked u64 arithmetic would go below zero
 ├─ OwnerSetTooLarge       : more owners than the configured cap
 ├─ InvalidIdentity        : malformed 32-byte identity
 └─ StoreError             : record-store failures raised by the host
     ├─ RecordNotFound
     ├─ RecordExists
     ├─ WriteConflict      : concurrent writer touched the record (retryable)
     └─ CodecError         : stored bytes do not decode to a known layout

Numbers 6000..6006 keep the historical error numbering of the on-chain program
so that existing clients can keep matching on them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class MultisigError(Exception):
    """
    Base engine error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'ALREADY_EXECUTED').
        number:  Stable numeric code.
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "multisig error"
    code: str = "MULTISIG_ERROR"
    number: int = 0
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and adapter output."""
        out: Dict[str, Any] = {
            "code": self.code,
            "number": self.number,
            "message": self.message,
        }
        if self.data is not None:
            out["data"] = self.data
        return out


def _details(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is None:
            continue
        d.setdefault(k, v.hex() if isinstance(v, (bytes, bytearray)) else v)
    return d or None


class UnauthorizedCaller(MultisigError):
    """The presented identity is not in the wallet's owner list."""
    def __init__(
        self,
        message: str = "The given owner is not part of this wallet.",
        *,
        caller: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="UNAUTHORIZED_CALLER",
            number=6000,
            data=_details(data, caller=caller),
        )


class EmptyOwnerSet(MultisigError):
    def __init__(
        self,
        message: str = "Owners length must be non zero.",
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="EMPTY_OWNER_SET", number=6001, data=data)


class InsufficientApprovals(MultisigError):
    """Quorum not reached; carries the observed count and the threshold."""
    def __init__(
        self,
        message: str = "Not enough owners signed this transaction.",
        *,
        approvals: Optional[int] = None,
        threshold: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_APPROVALS",
            number=6002,
            data=_details(data, approvals=approvals, threshold=threshold),
        )


class AlreadyExecuted(MultisigError):
    def __init__(
        self,
        message: str = "The given transaction has already been executed.",
        *,
        proposal_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="ALREADY_EXECUTED",
            number=6003,
            data=_details(data, proposal_id=proposal_id),
        )


class InvalidThreshold(MultisigError):
    def __init__(
        self,
        message: str = "Threshold must be less than or equal to the number of owners.",
        *,
        threshold: Any = None,
        owners: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INVALID_THRESHOLD",
            number=6004,
            data=_details(data, threshold=threshold, owners=owners),
        )


class DuplicateOwner(MultisigError):
    """Owner set contains the same identity at two positions."""
    def __init__(
        self,
        message: str = "Owners must be unique.",
        *,
        owner: Optional[bytes] = None,
        positions: Optional[list] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="DUPLICATE_OWNER",
            number=6005,
            data=_details(data, owner=owner, positions=positions),
        )


class InsufficientFunds(MultisigError):
    def __init__(
        self,
        message: str = "Not enough balance on the multisig wallet.",
        *,
        balance: Optional[int] = None,
        amount: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="INSUFFICIENT_FUNDS",
            number=6006,
            data=_details(data, balance=balance, amount=amount),
        )


class WalletMismatch(MultisigError):
    """The proposal record belongs to a different wallet than the one supplied."""
    def __init__(
        self,
        message: str = "The given transaction does not belong to this wallet.",
        *,
        expected: Optional[bytes] = None,
        actual: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="WALLET_MISMATCH",
            number=6007,
            data=_details(data, expected=expected, actual=actual),
        )


class StaleMandate(MultisigError):
    """
    The proposal was created under an owner set that is no longer current.

    Stale proposals are rejected permanently; the approval bitmap is never
    re-indexed against a new owner list.
    """
    def __init__(
        self,
        message: str = "The owner set changed since this transaction was proposed.",
        *,
        snapshot: Optional[int] = None,
        current: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="STALE_MANDATE",
            number=6008,
            data=_details(data, snapshot=snapshot, current=current),
        )


class ArithmeticOverflow(MultisigError):
    def __init__(
        self,
        message: str = "Arithmetic overflow.",
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="ARITHMETIC_OVERFLOW", number=6009, data=data)


class ArithmeticUnderflow(MultisigError):
    def __init__(
        self,
        message: str = "Arithmetic underflow.",
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="ARITHMETIC_UNDERFLOW", number=6010, data=data)


class OwnerSetTooLarge(MultisigError):
    def __init__(
        self,
        message: str = "Too many owners for a single wallet.",
        *,
        owners: Optional[int] = None,
        limit: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="OWNER_SET_TOO_LARGE",
            number=6011,
            data=_details(data, owners=owners, limit=limit),
        )


class InvalidIdentity(MultisigError):
    def __init__(
        self,
        message: str = "Identity must be 32 bytes.",
        *,
        value: Any = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        shown = None if value is None else repr(value)[:80]
        super().__init__(
            message=message,
            code="INVALID_IDENTITY",
            number=6012,
            data=_details(data, value=shown),
        )


# -------- host / storage errors ---------------------------------------------


class StoreError(MultisigError):
    def __init__(
        self,
        message: str = "record store error",
        *,
        code: str = "STORE_ERROR",
        number: int = 7000,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, number=number, data=data)


class RecordNotFound(StoreError):
    def __init__(
        self,
        message: str = "record not found",
        *,
        key: Optional[bytes] = None,
        kind: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="RECORD_NOT_FOUND",
            number=7001,
            data=_details(data, kind=kind, key=key),
        )


class RecordExists(StoreError):
    def __init__(
        self,
        message: str = "record already exists",
        *,
        key: Optional[bytes] = None,
        kind: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="RECORD_EXISTS",
            number=7002,
            data=_details(data, kind=kind, key=key),
        )


class WriteConflict(StoreError):
    """
    A concurrent writer modified the record between read and write.

    The operation had no effect and may be retried from scratch.
    """
    def __init__(
        self,
        message: str = "concurrent write conflict",
        *,
        key: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="WRITE_CONFLICT",
            number=7003,
            data=_details(data, key=key),
        )


class CodecError(StoreError):
    def __init__(
        self,
        message: str = "malformed record",
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="CODEC_ERROR", number=7004, data=data)


# -------- helper utilities ---------------------------------------------------


def error_to_dict(err: BaseException) -> Dict[str, Any]:
    """
    Map any exception to the adapter error payload.

    Engine errors keep their code/number; anything else is reported as an
    internal error without leaking a traceback.
    """
    if isinstance(err, MultisigError):
        return {"ok": False, "error": err.to_dict()}
    return {
        "ok": False,
        "error": {"code": "INTERNAL", "number": -1, "message": str(err) or type(err).__name__},
    }


__all__ = [
    "MultisigError",
    "UnauthorizedCaller",
    "EmptyOwnerSet",
    "InsufficientApprovals",
    "AlreadyExecuted",
    "InvalidThreshold",
    "DuplicateOwner",
    "InsufficientFunds",
    "WalletMismatch",
    "StaleMandate",
    "ArithmeticOverflow",
    "ArithmeticUnderflow",
    "OwnerSetTooLarge",
    "InvalidIdentity",
    "StoreError",
    "RecordNotFound",
    "RecordExists",
    "WriteConflict",
    "CodecError",
    "error_to_dict",
]
