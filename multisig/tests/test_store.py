"""
Record store: transactions, revisions, listing, and the SQLite backend under it.
"""
import sqlite3

import pytest

from multisig.errors import RecordExists, RecordNotFound, WriteConflict
from multisig.store.kv import PROPOSALS, WALLETS, Prefix, be_u64
from multisig.store.records import RecordStore
from multisig.store.sqlite import _prefix_hi, _resolve_path, open_sqlite_kv
from multisig.types import Proposal, Wallet


def mk_wallet(ids, address=None, **kw):
    return Wallet(address=address or ids.W, owners=(ids.A, ids.B), threshold=2, **kw)


def mk_proposal(ids, pid, wallet=None):
    return Proposal(
        wallet=wallet or ids.W,
        proposal_id=pid,
        destination=ids.D,
        amount=10 + pid,
        approvals=(True, False),
        owner_set_version=0,
    )


# ----------------------------------------------------------------- records


def test_create_and_read_back(store, ids):
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))
    assert store.get_wallet(ids.W) == mk_wallet(ids)


def test_create_twice_is_rejected(store, ids):
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))
    with pytest.raises(RecordExists):
        with store.transaction() as tx:
            tx.create_wallet(mk_wallet(ids, proposal_counter=5))
    assert store.get_wallet(ids.W).proposal_counter == 0


def test_missing_records(store, ids):
    with pytest.raises(RecordNotFound):
        store.get_wallet(ids.W)
    with pytest.raises(RecordNotFound):
        store.get_proposal(ids.W, 0)
    with pytest.raises(RecordNotFound):
        with store.transaction() as tx:
            tx.get_wallet(ids.W)


def test_exception_rolls_back_everything(store, ids):
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))

    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            w = tx.get_wallet(ids.W)
            tx.update_wallet(mk_wallet(ids, proposal_counter=w.proposal_counter + 1))
            tx.create_proposal(mk_proposal(ids, 0))
            tx.ledger.credit(ids.W, 100)
            raise RuntimeError("boom")

    assert store.get_wallet(ids.W).proposal_counter == 0
    assert store.list_proposals(ids.W) == []
    assert store.balance_of(ids.W) == 0


def test_reads_see_own_writes(store, ids):
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))
        assert tx.get_wallet(ids.W) == mk_wallet(ids)
        tx.ledger.credit(ids.W, 3)
        tx.ledger.credit(ids.W, 4)
        assert tx.ledger.balance_of(ids.W) == 7


def test_update_requires_prior_read(store, ids):
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))
    with pytest.raises(WriteConflict):
        with store.transaction() as tx:
            tx.update_wallet(mk_wallet(ids, proposal_counter=1))


def test_update_detects_concurrent_change(store, ids):
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))

    with pytest.raises(WriteConflict):
        with store.transaction() as tx:
            tx.get_wallet(ids.W)
            # another writer bumps the revision underneath this transaction
            tx.put(WALLETS.key(ids.W), be_u64(9) + tx.get(WALLETS.key(ids.W))[8:])
            tx.update_wallet(mk_wallet(ids, proposal_counter=1))
    assert store.get_wallet(ids.W).proposal_counter == 0


def test_repeated_updates_in_one_transaction(store, ids):
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))
    with store.transaction() as tx:
        tx.get_wallet(ids.W)
        tx.update_wallet(mk_wallet(ids, proposal_counter=1))
        tx.update_wallet(mk_wallet(ids, proposal_counter=2))
    assert store.get_wallet(ids.W).proposal_counter == 2


def test_listing_orders(store, ids):
    other = ids.ident(0x01)
    with store.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))
        tx.create_wallet(mk_wallet(ids, address=other))
        for pid in (2, 0, 1, 300):
            tx.create_proposal(mk_proposal(ids, pid))
        tx.create_proposal(mk_proposal(ids, 0, wallet=other))

    assert [w.address for w in store.list_wallets()] == [other, ids.W]
    assert [p.proposal_id for p in store.list_proposals(ids.W)] == [0, 1, 2, 300]
    assert [p.wallet for p in store.list_proposals(other)] == [other]


def test_addresses_depend_on_namespace(tmp_path, ids):
    a = RecordStore.open(str(tmp_path / "a.db"), namespace=b"ns-a")
    b = RecordStore.open(str(tmp_path / "b.db"), namespace=b"ns-b")
    try:
        assert a.wallet_address(1) != b.wallet_address(1)
        assert a.wallet_address(1) == a.wallet_address(1)
        assert a.proposal_address(ids.W, 0) != a.proposal_address(ids.W, 1)
    finally:
        a.close()
        b.close()


def test_second_connection_is_locked_out(tmp_path, ids):
    path = str(tmp_path / "shared.db")
    first = RecordStore.open(path)
    second = RecordStore(open_sqlite_kv(path, busy_timeout=0.05))
    try:
        with first.transaction() as tx:
            tx.create_wallet(mk_wallet(ids))
            with pytest.raises(WriteConflict):
                with second.transaction():
                    pass
        assert second.get_wallet(ids.W) == mk_wallet(ids)
    finally:
        first.close()
        second.close()


# ------------------------------------------------------------------ sqlite


def test_sqlite_kv_basic(tmp_path):
    kv = open_sqlite_kv(str(tmp_path / "kv.db"))
    try:
        kv.put(b"a:1", b"x")
        kv.put(b"a:2", b"y")
        kv.put(b"b:1", b"z")
        assert kv.get(b"a:1") == b"x"
        assert list(kv.iter_prefix(b"a:")) == [(b"a:1", b"x"), (b"a:2", b"y")]
        kv.delete(b"a:1")
        assert kv.get(b"a:1") is None
    finally:
        kv.close()


def test_sqlite_open_missing_without_create(tmp_path):
    with pytest.raises(FileNotFoundError):
        open_sqlite_kv(str(tmp_path / "nope.db"), create=False)


def test_sqlite_memory_uri():
    kv = open_sqlite_kv("sqlite:///:memory:")
    try:
        kv.put(b"k", b"v")
        assert kv.get(b"k") == b"v"
    finally:
        kv.close()


@pytest.mark.parametrize(
    "uri,expected",
    [
        ("sqlite:///multisig.db", "multisig.db"),
        ("sqlite:////var/lib/ms.db", "/var/lib/ms.db"),
        ("sqlite:///:memory:", ":memory:"),
        ("/tmp/plain.db", "/tmp/plain.db"),
    ],
)
def test_resolve_path(uri, expected):
    assert _resolve_path(uri) == expected


def test_prefix_helpers():
    assert _prefix_hi(b"ab\x01") == b"ab\x02"
    assert _prefix_hi(b"a\xff") == b"b"
    assert _prefix_hi(b"\xff\xff") is None
    assert Prefix("x").raw == b"x:"
    assert Prefix(b"bal:").raw == b"bal:"
    k = PROPOSALS.key(b"\x01" * 32, be_u64(5))
    assert k.startswith(PROPOSALS.key(b"\x01" * 32))
    with pytest.raises(ValueError):
        be_u64(-1)


def test_store_file_is_plain_sqlite(tmp_path, ids):
    path = tmp_path / "inspect.db"
    s = RecordStore.open(str(path))
    with s.transaction() as tx:
        tx.create_wallet(mk_wallet(ids))
    s.close()
    conn = sqlite3.connect(str(path))
    try:
        (count,) = conn.execute("SELECT COUNT(*) FROM kv").fetchone()
    finally:
        conn.close()
    assert count == 1
