import pytest

from multisig import codec
from multisig.errors import CodecError
from multisig.types import Proposal, Wallet


@pytest.fixture
def wallet(ids):
    return Wallet(
        address=ids.W,
        owners=(ids.A, ids.B, ids.C),
        threshold=2,
        proposal_counter=7,
        owner_set_version=1,
        idx=1_700_000_000,
    )


@pytest.fixture
def proposal(ids):
    return Proposal(
        wallet=ids.W,
        proposal_id=6,
        destination=ids.D,
        amount=2**64 - 1,
        approvals=(True, False, True),
        owner_set_version=1,
        executed=True,
    )


def test_wallet_layout(wallet, ids):
    raw = codec.encode_wallet(wallet)
    assert raw[:2] == b"W\x01"
    assert raw[2:34] == ids.W
    assert raw[34:42] == (1_700_000_000).to_bytes(8, "big")
    assert raw[42:44] == b"\x00\x02"
    assert len(raw) == 2 + 32 + 8 + 2 + 8 + 8 + 2 + 3 * 32
    assert raw[-32:] == ids.C
    assert codec.decode_wallet(raw) == wallet


def test_proposal_layout(proposal):
    raw = codec.encode_proposal(proposal)
    assert raw[:2] == b"P\x01"
    assert raw[-3:] == b"\x01\x00\x01"
    assert codec.decode_proposal(raw) == proposal


def test_decode_rejects_wrong_tag(wallet, proposal):
    with pytest.raises(CodecError):
        codec.decode_proposal(codec.encode_wallet(wallet))
    with pytest.raises(CodecError):
        codec.decode_wallet(codec.encode_proposal(proposal))


def test_decode_rejects_unknown_version(wallet):
    raw = bytearray(codec.encode_wallet(wallet))
    raw[1] = 2
    with pytest.raises(CodecError, match="v2"):
        codec.decode_wallet(bytes(raw))


@pytest.mark.parametrize("cut", [1, 10, 40, 100])
def test_decode_rejects_truncation(wallet, cut):
    raw = codec.encode_wallet(wallet)
    with pytest.raises(CodecError):
        codec.decode_wallet(raw[:-cut])


def test_decode_rejects_trailing_bytes(proposal):
    with pytest.raises(CodecError):
        codec.decode_proposal(codec.encode_proposal(proposal) + b"\x00")


def test_decode_rejects_non_canonical_bool(proposal):
    raw = bytearray(codec.encode_proposal(proposal))
    raw[-1] = 2
    with pytest.raises(CodecError):
        codec.decode_proposal(bytes(raw))


def test_encode_rejects_out_of_range(wallet):
    from dataclasses import replace

    with pytest.raises(CodecError):
        codec.encode_wallet(replace(wallet, proposal_counter=2**64))
