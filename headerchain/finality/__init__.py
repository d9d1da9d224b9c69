"""
Header Chain Finality Module

Verifies finality proofs of the remote chain and tracks its authority sets.

Components:
- AuthoritySetRegistry: Current authority set and pending rotation
- VoteAncestryResolver: Parent-pointer walks over justification ancestry
- JustificationVerifier: Weighted supermajority check of commits
- ChangeScheduler: Scheduled and forced authority set changes from headers

Usage:
    from headerchain.finality import JustificationVerifier

    verifier = JustificationVerifier()
    result = verifier.verify(justification, current_set)
"""

from .ancestry import VoteAncestryResolver
from .authorities import AuthoritySetRegistry
from .changes import ChangeScheduler
from .justification import JustificationVerifier, VerificationResult, has_supermajority
from .types import (
    Authority,
    AuthorityId,
    AuthoritySet,
    ChangeDirective,
    Commit,
    DigestItem,
    Equivocation,
    ForcedChange,
    Header,
    HeaderId,
    Justification,
    OtherDigest,
    PendingChange,
    ScheduledChange,
    Vote,
    ZERO_HASH,
)

__all__ = [
    # Components
    "AuthoritySetRegistry",
    "VoteAncestryResolver",
    "JustificationVerifier",
    "VerificationResult",
    "has_supermajority",
    "ChangeScheduler",
    # Types
    "Authority",
    "AuthorityId",
    "AuthoritySet",
    "ChangeDirective",
    "Commit",
    "DigestItem",
    "Equivocation",
    "ForcedChange",
    "Header",
    "HeaderId",
    "Justification",
    "OtherDigest",
    "PendingChange",
    "ScheduledChange",
    "Vote",
    "ZERO_HASH",
]
