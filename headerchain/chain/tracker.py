"""
Header Chain Tracker

Keeps the best finalized header of the remote chain plus a bounded window of
recently finalized headers, and answers ancestor-of queries against that
window.

Headers live in a flat arena keyed by hash. Each entry links to its parent
hash and to the header finalized before it, so walks never need an object
graph and eviction is a plain dict removal.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, Iterable, Iterator, Optional

from ..constants import DEFAULT_HEADERS_TO_KEEP
from ..exceptions import (
    InsufficientWeightError,
    MissingJustificationError,
    ObsoleteHeaderError,
    VerificationFailedError,
)
from ..finality.justification import VerificationResult
from ..finality.types import Header, HeaderId, short_hash
from ..logger import get_logger

logger = get_logger(__name__)


class AncestryAnswer(Enum):
    """Answer of an ancestor-of query."""
    YES = "yes"
    NO = "no"
    # Outside the retained window, nothing can be proven
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FinalizedHeader:
    """
    Arena entry of a finalized header.

    Attributes:
        id: Number and hash of the header
        parent_hash: Hash of the direct parent
        state_root: State root committed by the header
        previous_finalized: Header finalized just before this one (None for genesis)
    """
    id: HeaderId
    parent_hash: bytes
    state_root: bytes
    previous_finalized: Optional[HeaderId] = None

    @property
    def number(self) -> int:
        return self.id.number

    @property
    def hash(self) -> bytes:
        return self.id.hash


class HeaderChainTracker:
    """
    Bounded store of finalized headers.

    Finalized numbers strictly increase, so insertion order is number order
    and the oldest entry is always at the left of the deque. The best
    finalized header is the most recent insert and is never evicted.
    """

    def __init__(self, genesis_header: Header, capacity: int = DEFAULT_HEADERS_TO_KEEP):
        if capacity < 1:
            raise ValueError("Tracker capacity must be at least 1")
        self.capacity = capacity
        self._headers: Dict[bytes, FinalizedHeader] = {}
        self._order: Deque[bytes] = deque()

        genesis = FinalizedHeader(
            id=genesis_header.id,
            parent_hash=genesis_header.parent_hash,
            state_root=genesis_header.state_root,
        )
        self._insert(genesis)
        self._best = genesis.id

    @classmethod
    def from_entries(cls, entries: Iterable[FinalizedHeader], capacity: int) -> 'HeaderChainTracker':
        """
        Rebuild a tracker from entries ordered oldest first.

        Raises:
            ValueError: no entries, or numbers not strictly increasing
        """
        entries = list(entries)
        if not entries:
            raise ValueError("Tracker needs at least one finalized header")
        if capacity < 1:
            raise ValueError("Tracker capacity must be at least 1")

        tracker = cls.__new__(cls)
        tracker.capacity = capacity
        tracker._headers = {}
        tracker._order = deque()
        previous: Optional[FinalizedHeader] = None
        for entry in entries:
            if previous is not None and entry.number <= previous.number:
                raise ValueError(
                    f"Finalized header #{entry.number} follows #{previous.number}"
                )
            tracker._insert(entry)
            previous = entry
        tracker._best = entries[-1].id
        tracker._evict()
        return tracker

    # -- Queries ---------------------------------------------------------------

    @property
    def best_finalized(self) -> HeaderId:
        return self._best

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, header_hash: object) -> bool:
        return header_hash in self._headers

    def entries(self) -> Iterator[FinalizedHeader]:
        """Retained headers, oldest first."""
        for header_hash in self._order:
            yield self._headers[header_hash]

    def finalized_header(self, header_hash: bytes) -> Optional[FinalizedHeader]:
        """Retained finalized header with this hash, if any."""
        return self._headers.get(header_hash)

    def finalized_state_root(self, header_hash: bytes) -> Optional[bytes]:
        """State root of a retained finalized header, for storage proof checks."""
        entry = self._headers.get(header_hash)
        return entry.state_root if entry is not None else None

    def is_ancestor(self, ancestor: HeaderId, descendant: HeaderId) -> AncestryAnswer:
        """
        Whether `ancestor` is `descendant` or one of its ancestors.

        The walk follows parent links through the retained window. When the
        direct parent was never imported it follows the finality link to the
        previously finalized header instead.
        """
        if ancestor.number > descendant.number:
            return AncestryAnswer.NO
        if ancestor.number == descendant.number:
            return AncestryAnswer.YES if ancestor.hash == descendant.hash else AncestryAnswer.NO

        # A retained hash pins its number, so a mismatched id names no header
        known = self._headers.get(ancestor.hash)
        if known is not None and known.number != ancestor.number:
            return AncestryAnswer.NO

        current = self._headers.get(descendant.hash)
        if current is None:
            return AncestryAnswer.UNKNOWN
        if current.number != descendant.number:
            return AncestryAnswer.NO

        while current.number > ancestor.number:
            parent = self._headers.get(current.parent_hash)
            if parent is None and current.previous_finalized is not None:
                parent = self._headers.get(current.previous_finalized.hash)
            if parent is None:
                return AncestryAnswer.UNKNOWN
            current = parent

        if current.number == ancestor.number:
            return AncestryAnswer.YES if current.hash == ancestor.hash else AncestryAnswer.NO

        # Jumped over the ancestor's number through a finality link. Only a
        # retained header can be proven off the path.
        if ancestor.hash in self._headers:
            return AncestryAnswer.NO
        return AncestryAnswer.UNKNOWN

    # -- Import ----------------------------------------------------------------

    def check_importable(self, header: Header) -> None:
        """
        Raises:
            ObsoleteHeaderError: header is not newer than the best finalized one
        """
        if header.number <= self._best.number:
            raise ObsoleteHeaderError(header.number, self._best.number)

    def import_header(self, header: Header, verification: Optional[VerificationResult]) -> HeaderId:
        """
        Record a header as finalized.

        Args:
            header: Header to finalize
            verification: Accepted verification of the header's justification

        Returns:
            The new best finalized id

        Raises:
            MissingJustificationError: no verification result
            ObsoleteHeaderError: header is not newer than the best finalized one
            VerificationFailedError: verification result below the threshold
        """
        if verification is None:
            raise MissingJustificationError(header.number)
        self.check_importable(header)
        if not verification.accepted:
            raise VerificationFailedError(
                InsufficientWeightError(verification.valid_weight, verification.total_weight, verification)
            )

        entry = FinalizedHeader(
            id=header.id,
            parent_hash=header.parent_hash,
            state_root=header.state_root,
            previous_finalized=self._best,
        )
        self._insert(entry)
        self._best = entry.id
        self._evict()

        logger.info(f"Finalized header {entry.id}, parent {short_hash(entry.parent_hash)}")
        return entry.id

    def _insert(self, entry: FinalizedHeader) -> None:
        self._headers[entry.hash] = entry
        self._order.append(entry.hash)

    def _evict(self) -> None:
        while len(self._order) > self.capacity:
            evicted = self._headers.pop(self._order.popleft())
            logger.debug(f"Evicted finalized header {evicted.id}")
