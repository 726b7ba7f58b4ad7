"""
End-to-end flows through MultisigService on a real SQLite store.

Covers the canonical scenarios (quorum, replay, immediate execution attempt,
invalid configurations) plus atomicity of the executed flag with the transfer
and proposal numbering under concurrent writers.
"""
import threading

import pytest

from multisig.errors import (
    AlreadyExecuted,
    DuplicateOwner,
    EmptyOwnerSet,
    InsufficientApprovals,
    InsufficientFunds,
    InvalidThreshold,
    RecordExists,
    RecordNotFound,
    UnauthorizedCaller,
)
from multisig.identity import TokenAuthenticator
from multisig.service import MultisigService
from multisig.store.records import RecordStore


@pytest.fixture
def funded(service, ids):
    w = service.create_wallet([ids.A, ids.B, ids.C], 2, idx=1)
    service.deposit(w.address, 1_000)
    return w


def test_quorum_then_replay(service, funded, ids):
    p = service.propose(ids.A, funded.address, ids.D, 500)
    assert p.proposal_id == 0
    assert p.approvals == (True, False, False)
    assert service.get_wallet(funded.address).proposal_counter == 1

    service.approve(ids.B, funded.address, 0)
    effect = service.execute(funded.address, 0)
    assert effect.amount == 500
    assert service.balance_of(funded.address) == 500
    assert service.balance_of(ids.D) == 500
    assert service.get_proposal(funded.address, 0).executed

    with pytest.raises(AlreadyExecuted):
        service.execute(funded.address, 0)
    assert service.balance_of(funded.address) == 500
    assert service.balance_of(ids.D) == 500


def test_immediate_execution_below_threshold(service, ids):
    w = service.create_wallet([ids.A, ids.B], 2, idx=2)
    service.deposit(w.address, 10)
    service.propose(ids.A, w.address, ids.D, 1)
    with pytest.raises(InsufficientApprovals):
        service.execute(w.address, 0)
    assert service.get_proposal(w.address, 0).executed is False


@pytest.mark.parametrize(
    "owners,threshold,err",
    [
        ("AAB", 1, DuplicateOwner),
        ("AB", 0, InvalidThreshold),
        ("", 1, EmptyOwnerSet),
    ],
)
def test_invalid_wallets_are_not_stored(service, ids, owners, threshold, err):
    with pytest.raises(err):
        service.create_wallet([getattr(ids, o) for o in owners], threshold, idx=3)
    assert service.list_wallets() == []


def test_wallet_seed_cannot_be_reused(service, ids):
    service.create_wallet([ids.A], 1, idx=4)
    with pytest.raises(RecordExists):
        service.create_wallet([ids.B], 1, idx=4)


def test_default_seed_gives_distinct_wallets(service, ids):
    w1 = service.create_wallet([ids.A], 1)
    w2 = service.create_wallet([ids.A], 1)
    assert w1.address != w2.address


def test_hex_identities_accepted(service, ids):
    w = service.create_wallet([ids.A.hex(), "0x" + ids.B.hex()], 1, idx=5)
    assert w.owners == (ids.A, ids.B)
    p = service.propose("0x" + ids.B.hex(), "0x" + w.address.hex(), ids.D.hex(), 0)
    assert p.destination == ids.D


def test_failed_execution_leaves_proposal_open(service, funded, ids):
    p = service.propose(ids.A, funded.address, ids.D, 5_000)
    service.approve(ids.C, funded.address, p.proposal_id)
    with pytest.raises(InsufficientFunds):
        service.execute(funded.address, p.proposal_id)
    assert not service.get_proposal(funded.address, p.proposal_id).executed

    service.deposit(funded.address, 4_000)
    service.execute(funded.address, p.proposal_id)
    assert service.balance_of(funded.address) == 0
    assert service.balance_of(ids.D) == 5_000


def test_transfer_failure_rolls_back_executed_flag(service, funded, ids):
    # destination already at the u64 ceiling: the credit leg overflows
    service.create_wallet([ids.E], 1, idx=99)
    sink = service.store.wallet_address(99)
    service.deposit(sink, 2**64 - 1)

    p = service.propose(ids.A, funded.address, sink, 1)
    service.approve(ids.B, funded.address, p.proposal_id)
    from multisig.errors import ArithmeticOverflow

    with pytest.raises(ArithmeticOverflow):
        service.execute(funded.address, p.proposal_id)
    assert not service.get_proposal(funded.address, p.proposal_id).executed
    assert service.balance_of(funded.address) == 1_000


def test_outsider_is_rejected_and_counter_unchanged(service, funded, ids):
    with pytest.raises(UnauthorizedCaller):
        service.propose(ids.E, funded.address, ids.D, 1)
    assert service.get_wallet(funded.address).proposal_counter == 0
    service.propose(ids.A, funded.address, ids.D, 1)
    with pytest.raises(UnauthorizedCaller):
        service.approve(ids.E, funded.address, 0)


def test_reapproval_is_noop(service, funded, ids):
    service.propose(ids.A, funded.address, ids.D, 1)
    p1 = service.approve(ids.B, funded.address, 0)
    p2 = service.approve(ids.B, funded.address, 0)
    assert p1 == p2
    assert p2.approval_count == 2


def test_status_and_listing(service, funded, ids):
    service.propose(ids.A, funded.address, ids.D, 1)
    service.propose(ids.B, funded.address, ids.D, 2)

    st = service.proposal_status(funded.address, 0)
    assert (st.approvals, st.threshold, st.executable) == (1, 2, False)
    service.approve(ids.C, funded.address, 0)
    assert service.proposal_status(funded.address, 0).executable
    service.execute(funded.address, 0)
    st = service.proposal_status(funded.address, 0)
    assert st.executed and not st.executable

    assert [p.amount for p in service.list_proposals(funded.address)] == [1, 2]

    other = service.create_wallet([ids.D, ids.E], 1, idx=7)
    assert {w.address for w in service.list_wallets()} == {funded.address, other.address}
    assert [w.address for w in service.list_wallets(owner=ids.E)] == [other.address]
    assert [w.address for w in service.list_wallets(address=funded.address)] == [funded.address]
    assert service.list_wallets(address=funded.address, owner=ids.E) == []


def test_unknown_records(service, funded, ids):
    with pytest.raises(RecordNotFound):
        service.approve(ids.A, funded.address, 42)
    with pytest.raises(RecordNotFound):
        service.deposit(ids.D, 1)
    with pytest.raises(RecordNotFound):
        service.execute(ids.D, 0)


def test_token_authenticated_service(store, config, ids):
    auth = TokenAuthenticator({"alice": ids.A, "bob": ids.B})
    svc = MultisigService(store, authenticator=auth, config=config)
    w = svc.create_wallet([ids.A, ids.B], 2, idx=11)
    svc.deposit(w.address, 3)
    svc.propose("alice", w.address, ids.D, 3)
    with pytest.raises(UnauthorizedCaller):
        svc.approve("mallory", w.address, 0)
    svc.approve("bob", w.address, 0)
    assert svc.execute(w.address, 0).destination_balance == 3


def test_metrics_recorded(service, funded, ids, fresh_metrics):
    service.propose(ids.A, funded.address, ids.D, 10)
    with pytest.raises(InsufficientApprovals):
        service.execute(funded.address, 0)
    service.approve(ids.B, funded.address, 0)
    service.execute(funded.address, 0)

    def count(op, result):
        return fresh_metrics.get_sample_value(
            "multisig_ops_total", {"op": op, "result": result}
        )

    assert count("execute", "ok") == 1
    assert count("execute", "insufficient_approvals") == 1
    assert count("create_wallet", "ok") == 1
    assert fresh_metrics.get_sample_value("multisig_executed_amount_sum") == 10


def test_concurrent_proposers_get_distinct_ids(tmp_path, config, ids):
    # every worker has its own connection to the same database file
    path = str(tmp_path / "shared.db")
    with RecordStore.open(path) as setup:
        w = MultisigService(setup, config=config).create_wallet([ids.A, ids.B, ids.C], 2, idx=21)

    workers, per_worker = 4, 25
    proposers = [ids.A, ids.B, ids.C, ids.A]
    start = threading.Barrier(workers)
    seen, failures = [], []
    lock = threading.Lock()

    def run(proposer):
        store = RecordStore.open(path)
        svc = MultisigService(store, config=config)
        try:
            start.wait()
            for _ in range(per_worker):
                p = svc.propose(proposer, w.address, ids.D, 1)
                with lock:
                    seen.append(p.proposal_id)
        except Exception as e:  # surfaced by the assertions below
            with lock:
                failures.append(e)
        finally:
            store.close()

    threads = [threading.Thread(target=run, args=(p,)) for p in proposers]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert failures == []
    total = workers * per_worker
    assert sorted(seen) == list(range(total))
    with RecordStore.open(path) as check:
        assert check.get_wallet(w.address).proposal_counter == total
        assert [p.proposal_id for p in check.list_proposals(w.address)] == list(range(total))
