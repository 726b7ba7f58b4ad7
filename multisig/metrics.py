"""
multisig.metrics — Prometheus counters & histograms for the engine host.

Exposed metrics (prefixed with `multisig_`):
  - ops_total{op,result}            : Counter — operations by outcome
  - op_seconds{op}                  : Histogram — wall time per operation
  - executed_amount                 : Histogram — value moved per execution
  - approvals_at_execution          : Histogram — approval count when a proposal executed

Labels:
  - op     ∈ {create_wallet, deposit, propose, approve, execute}
  - result ∈ {ok} ∪ lowercase error codes (e.g. insufficient_approvals)

The registry is module-local so embedding hosts (and tests) can inject their
own with `set_registry()` before the first observation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

_PREFIX = "multisig_"

_SECONDS_BUCKETS = (0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
_AMOUNT_BUCKETS = (1, 10, 100, 1_000, 10_000, 100_000, 1_000_000, 10_000_000, 1e9, 1e12, 1e15, 1e18)
_APPROVAL_BUCKETS = (1, 2, 3, 4, 5, 7, 10, 15, 20, 32, 64)


@dataclass
class _Metrics:
    ops_total: Counter
    op_seconds: Histogram
    executed_amount: Histogram
    approvals_at_execution: Histogram


_registry: Optional[CollectorRegistry] = None
_metrics: Optional[_Metrics] = None


def _build_metrics(reg: CollectorRegistry) -> _Metrics:
    return _Metrics(
        ops_total=Counter(
            _PREFIX + "ops_total",
            "Multisig operations processed (by op and result).",
            labelnames=("op", "result"),
            registry=reg,
        ),
        op_seconds=Histogram(
            _PREFIX + "op_seconds",
            "Wall time per multisig operation, including storage.",
            labelnames=("op",),
            buckets=_SECONDS_BUCKETS,
            registry=reg,
        ),
        executed_amount=Histogram(
            _PREFIX + "executed_amount",
            "Amount moved per executed proposal.",
            buckets=_AMOUNT_BUCKETS,
            registry=reg,
        ),
        approvals_at_execution=Histogram(
            _PREFIX + "approvals_at_execution",
            "Approval count of proposals at execution time.",
            buckets=_APPROVAL_BUCKETS,
            registry=reg,
        ),
    )


def set_registry(registry: CollectorRegistry) -> None:
    """Bind metrics to ``registry``, replacing any previous binding."""
    global _registry, _metrics
    _registry = registry
    _metrics = _build_metrics(registry)


def get_registry() -> CollectorRegistry:
    if _registry is None:
        set_registry(CollectorRegistry())
    return _registry  # type: ignore[return-value]


def _m() -> _Metrics:
    get_registry()
    return _metrics  # type: ignore[return-value]


# ------------------------------ helpers -------------------------------------


def observe_op(op: str, result: str, seconds: Optional[float] = None) -> None:
    m = _m()
    m.ops_total.labels(op=op, result=(result or "error").lower()).inc()
    if seconds is not None:
        m.op_seconds.labels(op=op).observe(max(0.0, seconds))


def observe_execution(amount: int, approvals: int) -> None:
    m = _m()
    m.executed_amount.observe(float(amount))
    m.approvals_at_execution.observe(float(approvals))


@dataclass
class OpTimer:
    """
    Times one operation and records its outcome.

        with OpTimer("approve") as t:
            ...
            t.result = "ok"

    An exception escaping the block is recorded under its error code.
    """

    op: str
    result: str = "ok"
    t0: float = 0.0

    def __enter__(self) -> "OpTimer":
        self.t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            self.result = getattr(exc, "code", None) or "error"
        observe_op(self.op, self.result, time.perf_counter() - self.t0)


def generate_latest_text() -> bytes:
    """Prometheus exposition format for the current registry."""
    return generate_latest(get_registry())


__all__ = [
    "get_registry",
    "set_registry",
    "observe_op",
    "observe_execution",
    "OpTimer",
    "generate_latest_text",
]
