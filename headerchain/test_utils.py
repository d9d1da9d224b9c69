"""
Test helpers: deterministic authority keyrings and builders for headers and
justifications.

    keyring = Keyring(4)
    genesis = make_header()
    chain = make_chain(genesis, 3)
    justification = make_justification(keyring, chain[-1])
"""

from typing import Dict, Iterable, List, Optional, Sequence

from eth_utils import keccak

from .crypto.keys import PrivateKey
from .crypto.verifier import sign_message
from .encoding import vote_signing_payload
from .finality.types import (
    Authority,
    AuthoritySet,
    Commit,
    DigestItem,
    Header,
    HeaderId,
    Justification,
    Vote,
    ZERO_HASH,
)


class Keyring:
    """Deterministic authority keys derived from a seed prefix."""

    def __init__(self, size: int, seed: str = 'authority'):
        self.keys: List[PrivateKey] = [PrivateKey.from_seed(f'{seed}-{i}') for i in range(size)]

    def __len__(self) -> int:
        return len(self.keys)

    def __getitem__(self, index: int) -> PrivateKey:
        return self.keys[index]

    @property
    def ids(self) -> List[bytes]:
        return [key.public_key.to_bytes() for key in self.keys]

    def authorities(self, weights: Optional[Sequence[int]] = None) -> tuple:
        weights = weights if weights is not None else [1] * len(self.keys)
        return tuple(Authority(id=authority_id, weight=w) for authority_id, w in zip(self.ids, weights))

    def authority_set(self, set_id: int = 0, weights: Optional[Sequence[int]] = None) -> AuthoritySet:
        return AuthoritySet(set_id=set_id, authorities=self.authorities(weights))


def sign_vote(key: PrivateKey, target: HeaderId, round_number: int, set_id: int) -> Vote:
    """Precommit for `target` signed by `key`."""
    signature = sign_message(key, vote_signing_payload(round_number, set_id, target))
    return Vote(target=target, voter=key.public_key.to_bytes(), signature=signature)


def make_header(
    parent: Optional[Header] = None,
    *,
    digest: Iterable[DigestItem] = (),
    fork: int = 0,
) -> Header:
    """
    Child of `parent`, or a genesis header when `parent` is None.

    Headers built with different `fork` values are siblings with distinct
    hashes.
    """
    number = 0 if parent is None else parent.number + 1
    return Header(
        parent_hash=ZERO_HASH if parent is None else parent.hash,
        number=number,
        state_root=keccak(b'state:' + number.to_bytes(8, 'big') + fork.to_bytes(4, 'big')),
        extrinsics_root=keccak(b'extrinsics:' + fork.to_bytes(4, 'big')),
        digest=tuple(digest),
    )


def make_chain(parent: Header, length: int, fork: int = 0) -> List[Header]:
    """`length` consecutive descendants of `parent`, oldest first."""
    headers: List[Header] = []
    for _ in range(length):
        parent = make_header(parent, fork=fork)
        headers.append(parent)
    return headers


def make_justification(
    keyring: Keyring,
    target: Header,
    *,
    set_id: int = 0,
    round_number: int = 1,
    signers: Optional[Iterable[int]] = None,
    vote_targets: Optional[Dict[int, HeaderId]] = None,
    ancestry: Sequence[Header] = (),
    forged: Iterable[int] = (),
    equivocations: Optional[Dict[int, HeaderId]] = None,
) -> Justification:
    """
    Justification for `target` signed by keyring members.

    Args:
        keyring: Authority keys
        target: Header being finalized
        set_id: Set id of the commit and of every signature
        round_number: Round of the commit
        signers: Keyring indices that vote, all by default
        vote_targets: Per-signer vote target, the commit target by default
        ancestry: Ancestry headers shipped with the justification
        forged: Signers whose signature is made over the wrong round
        equivocations: Per-signer second vote target, appended after all first votes
    """
    signers = list(range(len(keyring))) if signers is None else list(signers)
    vote_targets = vote_targets or {}
    forged = set(forged)

    votes = []
    for index in signers:
        vote_target = vote_targets.get(index, target.id)
        signed_round = round_number + 1 if index in forged else round_number
        vote = sign_vote(keyring[index], vote_target, signed_round, set_id)
        votes.append(vote)

    for index, second_target in (equivocations or {}).items():
        votes.append(sign_vote(keyring[index], second_target, round_number, set_id))

    commit = Commit(target=target.id, round=round_number, set_id=set_id, votes=tuple(votes))
    return Justification(commit=commit, ancestry_headers=tuple(ancestry))
