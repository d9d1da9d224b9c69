"""
Header Chain State

The exposed operations of the bridge core. A ChainState value is created by
`initialize` and advanced only by `import_header`; every other operation is
a read.

An import either commits completely or leaves the state untouched: authority
changes are staged on a copy of the registry, and the tracker insert happens
only after every check passed.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import rlp
from rlp.sedes import CountableList, List, big_endian_int, boolean

from .. import encoding
from ..constants import DEFAULT_HEADERS_TO_KEEP
from ..exceptions import (
    HaltedError,
    InvalidAuthoritySetError,
    JustificationError,
    JustificationTargetMismatchError,
    MissingJustificationError,
    SchedulingError,
    VerificationFailedError,
)
from ..finality.authorities import AuthoritySetRegistry
from ..finality.changes import ChangeScheduler
from ..finality.justification import JustificationVerifier, VerificationResult
from ..finality.types import AuthoritySet, Header, HeaderId, Justification, PendingChange
from ..logger import get_logger
from .tracker import AncestryAnswer, FinalizedHeader, HeaderChainTracker

logger = get_logger(__name__)


@dataclass
class ChainState:
    """
    Bridge state for one remote chain.

    Attributes:
        authorities: Current authority set and pending change
        headers: Best finalized header and the retained window
        halted: Whether imports are suspended
    """
    authorities: AuthoritySetRegistry
    headers: HeaderChainTracker
    halted: bool = False

    @property
    def current_set(self) -> AuthoritySet:
        return self.authorities.current()

    @property
    def pending_change(self) -> Optional[PendingChange]:
        return self.authorities.pending()

    @property
    def best_finalized(self) -> HeaderId:
        return self.headers.best_finalized


@dataclass(frozen=True)
class ImportOutcome:
    """
    Result of a successful header import.

    Attributes:
        best_finalized: New best finalized header
        verification: Verification of the justification, with its findings
        activated_sets: Authority sets that became current at this header
        pending_change: Pending change left after the import
    """
    best_finalized: HeaderId
    verification: VerificationResult
    activated_sets: Tuple[AuthoritySet, ...] = ()
    pending_change: Optional[PendingChange] = None


_scheduler = ChangeScheduler()


def initialize(
    genesis_header: Header,
    genesis_authority_set: AuthoritySet,
    *,
    headers_to_keep: int = DEFAULT_HEADERS_TO_KEEP,
    halted: bool = False,
) -> ChainState:
    """
    Create the bridge state from a trusted header and authority set.

    Args:
        genesis_header: Header the bridge starts from, trusted as finalized
        genesis_authority_set: Authority set that finalizes its descendants
        headers_to_keep: Capacity of the retained header window
        halted: Start with imports suspended

    Returns:
        New ChainState
    """
    state = ChainState(
        authorities=AuthoritySetRegistry(genesis_authority_set),
        headers=HeaderChainTracker(genesis_header, capacity=headers_to_keep),
        halted=halted,
    )
    logger.info(
        f"Initialized header chain at {state.best_finalized} with set_id="
        f"{genesis_authority_set.set_id} ({len(genesis_authority_set)} authorities, "
        f"weight={genesis_authority_set.total_weight})"
    )
    return state


def import_header(
    state: ChainState,
    header: Header,
    justification: Optional[Justification],
    *,
    verifier: Optional[JustificationVerifier] = None,
) -> ImportOutcome:
    """
    Verify a header's finality proof and advance the state.

    Args:
        state: Bridge state, modified only on success
        header: Candidate header
        justification: Finality proof for exactly this header
        verifier: Justification verifier, secp256k1 and lenient policy by default

    Returns:
        ImportOutcome

    Raises:
        HaltedError: imports are suspended
        ObsoleteHeaderError: header is not newer than the best finalized one
        MissingJustificationError: no justification given
        JustificationTargetMismatchError: justification finalizes another header
        VerificationFailedError: justification rejected (cause on `.error`)
        ConflictingScheduledChangeError: header signals a change that cannot be scheduled
    """
    if state.halted:
        raise HaltedError()

    state.headers.check_importable(header)

    if justification is None:
        raise MissingJustificationError(header.number)

    header_id = header.id
    target = justification.target
    if target != header_id:
        raise JustificationTargetMismatchError(header_id.number, header_id.hash, target.number, target.hash)

    if verifier is None:
        verifier = JustificationVerifier()
    try:
        result = verifier.verify(justification, state.current_set)
    except JustificationError as e:
        raise VerificationFailedError(e) from e

    staged = ChainState(authorities=state.authorities.copy(), headers=state.headers, halted=state.halted)
    try:
        activated = _scheduler.enact(staged, header)
    except (SchedulingError, InvalidAuthoritySetError) as e:
        logger.warning(f"Rejected header {header_id}: {e}")
        raise

    best = state.headers.import_header(header, result)
    state.authorities = staged.authorities

    return ImportOutcome(
        best_finalized=best,
        verification=result,
        activated_sets=tuple(activated),
        pending_change=state.pending_change,
    )


def is_ancestor(state: ChainState, ancestor: HeaderId, descendant: HeaderId) -> AncestryAnswer:
    return state.headers.is_ancestor(ancestor, descendant)


def current_authority_set(state: ChainState) -> AuthoritySet:
    return state.current_set


def set_operational(state: ChainState, operational: bool) -> None:
    """Suspend or resume header imports."""
    if state.halted == (not operational):
        return
    state.halted = not operational
    if operational:
        logger.info("Header imports resumed")
    else:
        logger.warning("Header imports halted")


# =============================================================================
# SNAPSHOT CODEC
# =============================================================================

finalized_header_sedes = List([
    encoding.header_id_sedes,
    encoding.hash32,
    encoding.hash32,
    CountableList(encoding.header_id_sedes, max_length=1),
])
chain_state_sedes = List([
    boolean,
    encoding.authority_set_sedes,
    CountableList(encoding.pending_change_sedes, max_length=1),
    big_endian_int,
    CountableList(finalized_header_sedes),
])


def _finalized_header_fields(entry: FinalizedHeader) -> list:
    previous = [] if entry.previous_finalized is None else [encoding.header_id_fields(entry.previous_finalized)]
    return [encoding.header_id_fields(entry.id), entry.parent_hash, entry.state_root, previous]


def _finalized_header_from_fields(fields) -> FinalizedHeader:
    header_id, parent_hash, state_root, previous = fields
    return FinalizedHeader(
        id=encoding.header_id_from_fields(header_id),
        parent_hash=parent_hash,
        state_root=state_root,
        previous_finalized=encoding.header_id_from_fields(previous[0]) if previous else None,
    )


def encode_chain_state(state: ChainState) -> bytes:
    """Snapshot of the whole state for host persistence."""
    pending = state.pending_change
    fields = [
        state.halted,
        encoding.authority_set_fields(state.current_set),
        [] if pending is None else [encoding.pending_change_fields(pending)],
        state.headers.capacity,
        [_finalized_header_fields(entry) for entry in state.headers.entries()],
    ]
    return rlp.encode(fields, sedes=chain_state_sedes)


def _chain_state_from_fields(fields) -> ChainState:
    halted, current, pending, capacity, entries = fields
    return ChainState(
        authorities=AuthoritySetRegistry(
            encoding.authority_set_from_fields(current),
            encoding.pending_change_from_fields(pending[0]) if pending else None,
        ),
        headers=HeaderChainTracker.from_entries(
            (_finalized_header_from_fields(entry) for entry in entries),
            capacity=capacity,
        ),
        halted=halted,
    )


def decode_chain_state(data: bytes) -> ChainState:
    """
    Raises:
        DecodeError: malformed snapshot
    """
    return encoding.decode_with(data, chain_state_sedes, _chain_state_from_fields, "chain state")
