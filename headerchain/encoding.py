"""
Header Chain Codec

Deterministic RLP encoding for headers, authority sets, votes, commits and
justifications. Every decoder either returns a value that re-encodes to the
exact input bytes or raises DecodeError.
"""

from typing import Any, Callable, TypeVar

import rlp
from eth_utils import keccak
from rlp.exceptions import RLPException
from rlp.sedes import Binary, CountableList, List, big_endian_int, binary, boolean

from .constants import (
    DIGEST_FORCED_CHANGE,
    DIGEST_OTHER,
    DIGEST_SCHEDULED_CHANGE,
    HASH_LENGTH,
    PRECOMMIT_MESSAGE_TAG,
)
from .exceptions import DecodeError, InvalidAuthoritySetError
from .finality.types import (
    Authority,
    AuthoritySet,
    Commit,
    DigestItem,
    ForcedChange,
    Header,
    HeaderId,
    Justification,
    OtherDigest,
    PendingChange,
    ScheduledChange,
    Vote,
)

T = TypeVar('T')

# =============================================================================
# SEDES
# =============================================================================
hash32 = Binary.fixed_length(HASH_LENGTH)

header_id_sedes = List([big_endian_int, hash32])
authority_sedes = List([binary, big_endian_int])
authority_list_sedes = CountableList(authority_sedes)
authority_set_sedes = List([big_endian_int, authority_list_sedes])
pending_change_sedes = List([authority_set_sedes, big_endian_int, big_endian_int, boolean])

digest_item_sedes = List([big_endian_int, binary])
change_payload_sedes = List([authority_list_sedes, big_endian_int])
other_payload_sedes = List([binary, binary])

header_sedes = List([hash32, big_endian_int, hash32, hash32, CountableList(digest_item_sedes)])
vote_sedes = List([header_id_sedes, binary, binary])
commit_sedes = List([header_id_sedes, big_endian_int, big_endian_int, CountableList(vote_sedes)])
justification_sedes = List([commit_sedes, CountableList(header_sedes)])

signing_payload_sedes = List([big_endian_int, hash32, big_endian_int, big_endian_int, big_endian_int])


def decode_with(data: bytes, sedes: Any, build: Callable[[Any], T], what: str) -> T:
    """
    Decode `data` with `sedes` and turn the fields into a model value.

    Any codec failure or model invariant violation surfaces as DecodeError.
    rlp decodes nested lists recursively, so deeply nested input exhausts
    the interpreter stack before the sedes ever sees it.
    """
    try:
        fields = rlp.decode(data, sedes=sedes, strict=True)
        return build(fields)
    except (RLPException, ValueError, TypeError, InvalidAuthoritySetError, RecursionError) as e:
        raise DecodeError(f"Malformed {what}: {e}") from e


# =============================================================================
# FIELD CONVERSION
# =============================================================================

def header_id_fields(header_id: HeaderId) -> list:
    return [header_id.number, header_id.hash]


def header_id_from_fields(fields) -> HeaderId:
    number, hash_ = fields
    return HeaderId(number=number, hash=hash_)


def authorities_fields(authorities) -> list:
    return [[a.id, a.weight] for a in authorities]


def authorities_from_fields(fields) -> tuple:
    return tuple(Authority(id=authority_id, weight=weight) for authority_id, weight in fields)


def authority_set_fields(authority_set: AuthoritySet) -> list:
    return [authority_set.set_id, authorities_fields(authority_set.authorities)]


def authority_set_from_fields(fields) -> AuthoritySet:
    set_id, authorities = fields
    return AuthoritySet(set_id=set_id, authorities=authorities_from_fields(authorities))


def pending_change_fields(change: PendingChange) -> list:
    return [
        authority_set_fields(change.next_authorities),
        change.delay,
        change.delay_start,
        change.forced,
    ]


def pending_change_from_fields(fields) -> PendingChange:
    next_authorities, delay, delay_start, forced = fields
    return PendingChange(
        next_authorities=authority_set_from_fields(next_authorities),
        delay=delay,
        delay_start=delay_start,
        forced=forced,
    )


def _digest_item_fields(item: DigestItem) -> list:
    if isinstance(item, ScheduledChange):
        payload = [authorities_fields(item.next_authorities), item.delay]
        return [DIGEST_SCHEDULED_CHANGE, rlp.encode(payload, sedes=change_payload_sedes)]
    if isinstance(item, ForcedChange):
        payload = [authorities_fields(item.next_authorities), item.delay]
        return [DIGEST_FORCED_CHANGE, rlp.encode(payload, sedes=change_payload_sedes)]
    if isinstance(item, OtherDigest):
        return [DIGEST_OTHER, rlp.encode([item.engine, item.data], sedes=other_payload_sedes)]
    raise TypeError(f"Cannot encode digest item of type {type(item).__name__}")


def _digest_item_from_fields(fields) -> DigestItem:
    kind, payload = fields
    if kind == DIGEST_SCHEDULED_CHANGE:
        authorities, delay = rlp.decode(payload, sedes=change_payload_sedes, strict=True)
        return ScheduledChange(next_authorities=authorities_from_fields(authorities), delay=delay)
    if kind == DIGEST_FORCED_CHANGE:
        authorities, delay = rlp.decode(payload, sedes=change_payload_sedes, strict=True)
        return ForcedChange(next_authorities=authorities_from_fields(authorities), delay=delay)
    if kind == DIGEST_OTHER:
        engine, data = rlp.decode(payload, sedes=other_payload_sedes, strict=True)
        return OtherDigest(engine=engine, data=data)
    raise ValueError(f"Unknown digest item kind {kind}")


def header_fields(header: Header) -> list:
    return [
        header.parent_hash,
        header.number,
        header.state_root,
        header.extrinsics_root,
        [_digest_item_fields(item) for item in header.digest],
    ]


def header_from_fields(fields) -> Header:
    parent_hash, number, state_root, extrinsics_root, digest = fields
    return Header(
        parent_hash=parent_hash,
        number=number,
        state_root=state_root,
        extrinsics_root=extrinsics_root,
        digest=tuple(_digest_item_from_fields(item) for item in digest),
    )


def vote_fields(vote: Vote) -> list:
    return [header_id_fields(vote.target), vote.voter, vote.signature]


def vote_from_fields(fields) -> Vote:
    target, voter, signature = fields
    return Vote(target=header_id_from_fields(target), voter=voter, signature=signature)


def commit_fields(commit: Commit) -> list:
    return [
        header_id_fields(commit.target),
        commit.round,
        commit.set_id,
        [vote_fields(v) for v in commit.votes],
    ]


def commit_from_fields(fields) -> Commit:
    target, round_, set_id, votes = fields
    return Commit(
        target=header_id_from_fields(target),
        round=round_,
        set_id=set_id,
        votes=tuple(vote_from_fields(v) for v in votes),
    )


def justification_fields(justification: Justification) -> list:
    return [
        commit_fields(justification.commit),
        [header_fields(h) for h in justification.ancestry_headers],
    ]


def justification_from_fields(fields) -> Justification:
    commit, ancestry = fields
    return Justification(
        commit=commit_from_fields(commit),
        ancestry_headers=tuple(header_from_fields(h) for h in ancestry),
    )


# =============================================================================
# PUBLIC CODEC
# =============================================================================

def encode_header_id(header_id: HeaderId) -> bytes:
    return rlp.encode(header_id_fields(header_id), sedes=header_id_sedes)


def decode_header_id(data: bytes) -> HeaderId:
    return decode_with(data, header_id_sedes, header_id_from_fields, "header id")


def encode_authority_set(authority_set: AuthoritySet) -> bytes:
    return rlp.encode(authority_set_fields(authority_set), sedes=authority_set_sedes)


def decode_authority_set(data: bytes) -> AuthoritySet:
    return decode_with(data, authority_set_sedes, authority_set_from_fields, "authority set")


def encode_pending_change(change: PendingChange) -> bytes:
    return rlp.encode(pending_change_fields(change), sedes=pending_change_sedes)


def decode_pending_change(data: bytes) -> PendingChange:
    return decode_with(data, pending_change_sedes, pending_change_from_fields, "pending change")


def encode_header(header: Header) -> bytes:
    return rlp.encode(header_fields(header), sedes=header_sedes)


def decode_header(data: bytes) -> Header:
    return decode_with(data, header_sedes, header_from_fields, "header")


def encode_vote(vote: Vote) -> bytes:
    return rlp.encode(vote_fields(vote), sedes=vote_sedes)


def decode_vote(data: bytes) -> Vote:
    return decode_with(data, vote_sedes, vote_from_fields, "vote")


def encode_commit(commit: Commit) -> bytes:
    return rlp.encode(commit_fields(commit), sedes=commit_sedes)


def decode_commit(data: bytes) -> Commit:
    return decode_with(data, commit_sedes, commit_from_fields, "commit")


def encode_justification(justification: Justification) -> bytes:
    return rlp.encode(justification_fields(justification), sedes=justification_sedes)


def decode_justification(data: bytes) -> Justification:
    return decode_with(data, justification_sedes, justification_from_fields, "justification")


def header_hash(header: Header) -> bytes:
    """Keccak-256 of the canonical header encoding."""
    return keccak(encode_header(header))


def vote_signing_payload(round_number: int, set_id: int, target: HeaderId) -> bytes:
    """
    Canonical message an authority signs for a precommit.

    Binds the vote to its round and set id so it cannot be replayed into
    another round or under another authority set.
    """
    return rlp.encode(
        [PRECOMMIT_MESSAGE_TAG, target.hash, target.number, round_number, set_id],
        sedes=signing_payload_sedes,
    )
