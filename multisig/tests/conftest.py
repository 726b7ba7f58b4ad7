# -*- coding: utf-8 -*-
"""
multisig.tests.conftest
=======================

Shared fixtures for the engine, store, service and CLI tests.

- `ids`      : stable 32-byte identities (A, B, C, D, E) plus `ident(n)`
- `ledger`   : KVBalanceLedger over a plain dict, for pure-engine tests
- `store`    : RecordStore on a throwaway SQLite file
- `service`  : MultisigService bound to `store`
- metrics are re-bound to a fresh registry for every test

Hypothesis profiles follow the repo convention: "dev" locally, "ci" when CI
is set, overridable with HYPOTHESIS_PROFILE.
"""
from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Dict, Optional

import pytest
from hypothesis import HealthCheck, settings
from prometheus_client import CollectorRegistry

from multisig import metrics
from multisig.config import load_config
from multisig.ledger import KVBalanceLedger
from multisig.service import MultisigService
from multisig.store.records import RecordStore

os.environ.setdefault("PYTHONHASHSEED", "0")
os.environ.setdefault("TZ", "UTC")

# Per-test metrics fixture is function-scoped and autouse.
_SUPPRESS = (HealthCheck.too_slow, HealthCheck.function_scoped_fixture)

settings.register_profile(
    "dev",
    settings(max_examples=60, deadline=None, suppress_health_check=_SUPPRESS),
)
settings.register_profile(
    "ci",
    settings(
        max_examples=200,
        deadline=None,
        derandomize=True,
        suppress_health_check=_SUPPRESS,
    ),
)
settings.load_profile(
    os.getenv("HYPOTHESIS_PROFILE") or ("ci" if os.getenv("CI") else "dev")
)


def ident(n: int) -> bytes:
    return bytes([n]) * 32


class DictView:
    """get/put view over a dict; stands in for a store transaction."""

    def __init__(self) -> None:
        self.data: Dict[bytes, bytes] = {}

    def get(self, key: bytes) -> Optional[bytes]:
        return self.data.get(key)

    def put(self, key: bytes, value: bytes) -> None:
        self.data[key] = value


@pytest.fixture
def ids() -> SimpleNamespace:
    return SimpleNamespace(
        A=ident(0xA1),
        B=ident(0xB2),
        C=ident(0xC3),
        D=ident(0xD4),
        E=ident(0xE5),
        W=ident(0x77),
        ident=ident,
    )


@pytest.fixture
def ledger() -> KVBalanceLedger:
    return KVBalanceLedger(DictView())


@pytest.fixture
def config():
    return load_config(env={}, overrides={"max_owners": 8})


@pytest.fixture
def store(tmp_path):
    s = RecordStore.open(str(tmp_path / "multisig.db"))
    yield s
    s.close()


@pytest.fixture
def service(store, config) -> MultisigService:
    return MultisigService(store, config=config)


@pytest.fixture(autouse=True)
def fresh_metrics() -> CollectorRegistry:
    reg = CollectorRegistry()
    metrics.set_registry(reg)
    return reg
