"""
Header Chain Codec Tests

Canonical RLP encoding of headers, authority sets and justifications.
"""

import pytest
import rlp

from headerchain.chain import decode_chain_state
from headerchain.encoding import (
    decode_authority_set,
    decode_commit,
    decode_header,
    decode_header_id,
    decode_justification,
    decode_pending_change,
    decode_vote,
    encode_authority_set,
    encode_commit,
    encode_header,
    encode_header_id,
    encode_justification,
    encode_pending_change,
    encode_vote,
    header_hash,
    vote_signing_payload,
)
from headerchain.exceptions import DecodeError
from headerchain.finality import (
    ForcedChange,
    HeaderId,
    OtherDigest,
    PendingChange,
    ScheduledChange,
)
from headerchain.test_utils import Keyring, make_chain, make_header, make_justification

KEYRING = Keyring(3)


def _nested_lists(depth: int) -> bytes:
    """RLP for `depth` lists wrapped around an empty list."""
    data = b"\xc0"
    for _ in range(depth):
        length = len(data)
        if length < 56:
            prefix = bytes([0xc0 + length])
        else:
            size = length.to_bytes((length.bit_length() + 7) // 8, "big")
            prefix = bytes([0xf7 + len(size)]) + size
        data = prefix + data
    return data


@pytest.fixture
def genesis():
    return make_header()


@pytest.fixture
def header(genesis):
    return make_header(genesis, digest=[
        ScheduledChange(next_authorities=KEYRING.authorities([1, 2, 3]), delay=4),
        OtherDigest(engine=b'BABE', data=b'\x00\x01'),
        ForcedChange(next_authorities=KEYRING.authorities(), delay=0),
    ])


class TestRoundTrip:
    """decode(encode(x)) == x"""

    def test_header(self, header):
        assert decode_header(encode_header(header)) == header

    def test_genesis_header(self, genesis):
        assert decode_header(encode_header(genesis)) == genesis

    def test_header_id(self, header):
        assert decode_header_id(encode_header_id(header.id)) == header.id

    def test_authority_set(self):
        authority_set = KEYRING.authority_set(set_id=42, weights=[5, 1, 300])
        assert decode_authority_set(encode_authority_set(authority_set)) == authority_set

    def test_pending_change(self):
        change = PendingChange(
            next_authorities=KEYRING.authority_set(set_id=1), delay=10, delay_start=20, forced=True,
        )
        assert decode_pending_change(encode_pending_change(change)) == change

    def test_justification(self, genesis, header):
        chain = make_chain(header, 2)
        justification = make_justification(
            KEYRING, header, round_number=9, set_id=3,
            vote_targets={2: chain[1].id}, ancestry=chain, equivocations={0: chain[0].id},
        )

        decoded = decode_justification(encode_justification(justification))

        assert decoded == justification
        assert decoded.ancestry_headers[1].hash == chain[1].hash

    def test_commit_and_vote(self, header):
        commit = make_justification(KEYRING, header).commit

        assert decode_commit(encode_commit(commit)) == commit
        assert decode_vote(encode_vote(commit.votes[0])) == commit.votes[0]


class TestHashing:

    def test_header_hash_is_keccak_of_encoding(self, header):
        assert len(header.hash) == 32
        assert header.hash == header_hash(decode_header(encode_header(header)))

    def test_digest_changes_hash(self, genesis):
        plain = make_header(genesis)
        signalled = make_header(genesis, digest=[ScheduledChange(KEYRING.authorities(), delay=1)])

        assert plain.hash != signalled.hash

    def test_child_links_parent(self, genesis):
        assert make_header(genesis).parent_hash == genesis.hash

    def test_signing_payload_binds_round_and_set(self, header):
        base = vote_signing_payload(1, 0, header.id)

        assert vote_signing_payload(1, 0, header.id) == base
        assert vote_signing_payload(2, 0, header.id) != base
        assert vote_signing_payload(1, 1, header.id) != base
        assert vote_signing_payload(1, 0, HeaderId(header.number + 1, header.hash)) != base


class TestMalformedInput:
    """Malformed bytes raise DecodeError and nothing else."""

    @pytest.mark.parametrize("data", [b'', b'\x80', b'\xc0', b'\xc1\xc0', b'\xf8'])
    def test_garbage_header(self, data):
        with pytest.raises(DecodeError):
            decode_header(data)

    def test_trailing_bytes(self, header):
        with pytest.raises(DecodeError):
            decode_header(encode_header(header) + b'\x00')

    def test_truncated(self, header):
        with pytest.raises(DecodeError):
            decode_justification(encode_justification(make_justification(KEYRING, header))[:-3])

    def test_short_hash(self):
        with pytest.raises(DecodeError):
            decode_header_id(rlp.encode([1, b'\x01' * 31]))

    def test_empty_authority_set(self):
        with pytest.raises(DecodeError):
            decode_authority_set(rlp.encode([0, []]))

    def test_duplicate_authority(self):
        with pytest.raises(DecodeError):
            decode_authority_set(rlp.encode([0, [[b'a' * 64, 1], [b'a' * 64, 2]]]))

    def test_zero_weight(self):
        with pytest.raises(DecodeError):
            decode_authority_set(rlp.encode([0, [[b'a' * 64, 0]]]))

    def test_unknown_digest_kind(self, genesis):
        data = rlp.encode([genesis.hash, 1, genesis.hash, genesis.hash, [[9, b'']]])

        with pytest.raises(DecodeError, match="digest item kind"):
            decode_header(data)

    def test_malformed_digest_payload(self, genesis):
        data = rlp.encode([genesis.hash, 1, genesis.hash, genesis.hash, [[1, b'\xff\xff']]])

        with pytest.raises(DecodeError):
            decode_header(data)

    def test_non_canonical_integer(self):
        # Leading zero byte in the number field
        data = rlp.encode([b'\x00\x01', b'\x01' * 32])

        with pytest.raises(DecodeError):
            decode_header_id(data)

    @pytest.mark.parametrize("decode", [decode_header, decode_justification, decode_commit])
    def test_deeply_nested_lists(self, decode):
        data = _nested_lists(10000)

        with pytest.raises(DecodeError):
            decode(data)

    def test_deeply_nested_chain_state(self):
        with pytest.raises(DecodeError):
            decode_chain_state(_nested_lists(10000))
