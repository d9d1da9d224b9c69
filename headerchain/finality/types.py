"""
Finality Types

Core data types shared by the justification verifier, the authority set
registry and the header chain tracker.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from ..constants import HASH_LENGTH
from ..exceptions import InvalidAuthoritySetError

# Opaque public-key identifier of an authority
AuthorityId = bytes

ZERO_HASH = b'\x00' * HASH_LENGTH


def short_hash(value: bytes) -> str:
    """Abbreviated hex form used in log lines."""
    return '0x' + value.hex()[:16]


@dataclass(frozen=True, order=True)
class HeaderId:
    """
    Identity of a remote chain header.

    Attributes:
        number: Header number (height)
        hash: Header hash (32 bytes)
    """
    number: int
    hash: bytes

    def __post_init__(self):
        if self.number < 0:
            raise ValueError("Header number must be non-negative")
        if len(self.hash) != HASH_LENGTH:
            raise ValueError(f"Header hash must be {HASH_LENGTH} bytes, got {len(self.hash)}")

    def __str__(self) -> str:
        return f"#{self.number} ({short_hash(self.hash)})"


@dataclass(frozen=True)
class Authority:
    """
    A voter of the remote finality protocol.

    Attributes:
        id: Public key of the authority
        weight: Voting power, strictly positive
    """
    id: AuthorityId
    weight: int = 1

    def __post_init__(self):
        if self.weight <= 0:
            raise InvalidAuthoritySetError(
                f"Authority {short_hash(self.id)} has non-positive weight {self.weight}"
            )


@dataclass(frozen=True)
class AuthoritySet:
    """
    Weighted voter roster valid for one set id.

    Attributes:
        set_id: Monotonically increasing set identifier
        authorities: Ordered authorities, ids unique within the set
    """
    set_id: int
    authorities: Tuple[Authority, ...]
    _weights: Dict[AuthorityId, int] = field(
        init=False, repr=False, compare=False, hash=False, default_factory=dict
    )

    def __post_init__(self):
        object.__setattr__(self, 'authorities', tuple(self.authorities))
        if self.set_id < 0:
            raise InvalidAuthoritySetError(f"Negative set_id {self.set_id}")
        if not self.authorities:
            raise InvalidAuthoritySetError(f"Authority set {self.set_id} is empty")

        weights: Dict[AuthorityId, int] = {}
        for authority in self.authorities:
            if authority.id in weights:
                raise InvalidAuthoritySetError(
                    f"Duplicate authority {short_hash(authority.id)} in set {self.set_id}"
                )
            weights[authority.id] = authority.weight
        object.__setattr__(self, '_weights', weights)

    @classmethod
    def from_weights(
        cls,
        set_id: int,
        weights: Iterable[Tuple[AuthorityId, int]],
    ) -> 'AuthoritySet':
        """Create from (id, weight) pairs."""
        return cls(set_id=set_id, authorities=tuple(Authority(a, w) for a, w in weights))

    @property
    def total_weight(self) -> int:
        """Sum of all authority weights."""
        return sum(self._weights.values())

    def weight_of(self, authority_id: AuthorityId) -> Optional[int]:
        """Weight of an authority, None if it is not a member."""
        return self._weights.get(authority_id)

    def __contains__(self, authority_id: object) -> bool:
        return authority_id in self._weights

    def __iter__(self) -> Iterator[Authority]:
        return iter(self.authorities)

    def __len__(self) -> int:
        return len(self.authorities)

    def with_set_id(self, set_id: int) -> 'AuthoritySet':
        """Same roster under another set id."""
        return AuthoritySet(set_id=set_id, authorities=self.authorities)


@dataclass(frozen=True)
class PendingChange:
    """
    Authority set rotation waiting for its delay to elapse.

    Attributes:
        next_authorities: Set that becomes current on activation
        delay: Number of headers to wait
        delay_start: Header number the countdown starts from
        forced: Whether the change was forced
    """
    next_authorities: AuthoritySet
    delay: int
    delay_start: int
    forced: bool = False

    def __post_init__(self):
        if self.delay < 0:
            raise ValueError("Change delay must be non-negative")

    @property
    def effective_number(self) -> int:
        """Header number at which the change activates."""
        return self.delay_start + self.delay


# -- Header digest -----------------------------------------------------------

@dataclass(frozen=True)
class ScheduledChange:
    """Standard authority set change signalled in a header digest."""
    next_authorities: Tuple[Authority, ...]
    delay: int

    def __post_init__(self):
        object.__setattr__(self, 'next_authorities', tuple(self.next_authorities))


@dataclass(frozen=True)
class ForcedChange:
    """Forced authority set change signalled in a header digest."""
    next_authorities: Tuple[Authority, ...]
    delay: int

    def __post_init__(self):
        object.__setattr__(self, 'next_authorities', tuple(self.next_authorities))


@dataclass(frozen=True)
class OtherDigest:
    """Digest item belonging to another engine, carried but not interpreted."""
    engine: bytes
    data: bytes


DigestItem = Union[ScheduledChange, ForcedChange, OtherDigest]
ChangeDirective = Union[ScheduledChange, ForcedChange]


@dataclass(frozen=True)
class Header:
    """
    Remote chain header.

    The hash is keccak-256 over the canonical encoding, so two headers with
    the same hash have the same content.
    """
    parent_hash: bytes
    number: int
    state_root: bytes = ZERO_HASH
    extrinsics_root: bytes = ZERO_HASH
    digest: Tuple[DigestItem, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'digest', tuple(self.digest))
        if self.number < 0:
            raise ValueError("Header number must be non-negative")
        for name in ('parent_hash', 'state_root', 'extrinsics_root'):
            if len(getattr(self, name)) != HASH_LENGTH:
                raise ValueError(f"Header {name} must be {HASH_LENGTH} bytes")

    @property
    def hash(self) -> bytes:
        # Lazy import, the codec depends on this module
        from ..encoding import header_hash
        return header_hash(self)

    @property
    def id(self) -> HeaderId:
        return HeaderId(number=self.number, hash=self.hash)


# -- Votes and justifications ------------------------------------------------

@dataclass(frozen=True)
class Vote:
    """
    A signed precommit, bound to the round and set id of its commit.

    Attributes:
        target: Header the authority votes to finalize
        voter: Authority id of the signer
        signature: Signature over (round, set_id, target)
    """
    target: HeaderId
    voter: AuthorityId
    signature: bytes


@dataclass(frozen=True)
class Commit:
    """Set of votes finalizing `target` in one round."""
    target: HeaderId
    round: int
    set_id: int
    votes: Tuple[Vote, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'votes', tuple(self.votes))


@dataclass(frozen=True)
class Justification:
    """
    Finality proof for a header.

    Attributes:
        commit: The commit being proven
        ancestry_headers: Headers linking every vote target down to the commit target
    """
    commit: Commit
    ancestry_headers: Tuple[Header, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'ancestry_headers', tuple(self.ancestry_headers))

    @property
    def target(self) -> HeaderId:
        return self.commit.target


@dataclass(frozen=True)
class Equivocation:
    """Two conflicting votes cast by one authority within the same commit."""
    voter: AuthorityId
    first: Vote
    second: Vote
