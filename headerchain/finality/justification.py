"""
Justification Verifier

Validates a finality justification against an authority set: set id,
voter membership, equivocation, signatures, vote ancestry and the weighted
supermajority threshold.

The verifier is pure. It never touches chain state; the caller commits
state changes after a successful verification.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..config.loader import VerifierConfig
from ..constants import SUPERMAJORITY_DENOMINATOR, SUPERMAJORITY_NUMERATOR
from ..crypto.verifier import Secp256k1Verifier, SignatureVerifier
from .. import encoding
from ..exceptions import (
    BrokenAncestryError,
    EquivocationError,
    InsufficientWeightError,
    RedundantAncestryError,
    SetIdMismatchError,
    UnknownVoterError,
)
from ..logger import get_logger
from .ancestry import VoteAncestryResolver
from .types import AuthorityId, AuthoritySet, Equivocation, HeaderId, Justification, Vote, short_hash

logger = get_logger(__name__)


def has_supermajority(valid_weight: int, total_weight: int) -> bool:
    """Strictly more than two thirds of the total weight."""
    return valid_weight * SUPERMAJORITY_DENOMINATOR > total_weight * SUPERMAJORITY_NUMERATOR


@dataclass
class VerificationResult:
    """
    Outcome of a justification verification.

    Attributes:
        target: Header finalized by the justification
        round: Voting round of the commit
        set_id: Authority set that produced the commit
        valid_weight: Weight of unique voters whose vote survived every check
        total_weight: Total weight of the authority set
        counted_voters: Authorities whose weight was counted, in vote order
        unknown_voters: Voters outside the authority set (ignored)
        invalid_signatures: Votes dropped for a bad signature
        equivocations: Conflicting later votes (first vote kept)
        broken_ancestries: Votes whose target does not descend from the commit target
        duplicate_votes: Identical repeated votes (ignored)
    """
    target: HeaderId
    round: int
    set_id: int
    total_weight: int
    valid_weight: int = 0
    counted_voters: List[AuthorityId] = field(default_factory=list)
    unknown_voters: List[AuthorityId] = field(default_factory=list)
    invalid_signatures: List[Vote] = field(default_factory=list)
    equivocations: List[Equivocation] = field(default_factory=list)
    broken_ancestries: List[Tuple[Vote, BrokenAncestryError]] = field(default_factory=list)
    duplicate_votes: int = 0

    @property
    def accepted(self) -> bool:
        return has_supermajority(self.valid_weight, self.total_weight)

    @property
    def equivocators(self) -> List[AuthorityId]:
        return [e.voter for e in self.equivocations]


class JustificationVerifier:
    """
    Verifies finality justifications.

    Args:
        crypto: Signature capability, secp256k1 by default
        config: Acceptance policy, lenient by default
    """

    def __init__(
        self,
        crypto: Optional[SignatureVerifier] = None,
        config: Optional[VerifierConfig] = None,
    ):
        self.crypto = crypto if crypto is not None else Secp256k1Verifier()
        self.config = config if config is not None else VerifierConfig()

    def verify(self, justification: Justification, current_set: AuthoritySet) -> VerificationResult:
        """
        Verify a justification against the current authority set.

        Each vote goes through membership, de-duplication, signature and
        ancestry checks. Only the first vote per authority is considered; a
        later vote for another target is recorded as an equivocation. If the
        first vote carries a bad signature the authority counts nothing.

        Args:
            justification: Commit plus ancestry headers
            current_set: Authority set the commit must come from

        Returns:
            VerificationResult with every non-fatal finding

        Raises:
            SetIdMismatchError: commit is from another set
            UnknownVoterError: unknown voter while reject_unknown_voters is set
            EquivocationError: equivocation while reject_equivocations is set
            RedundantAncestryError: unused ancestry while reject_redundant_ancestry is set
            InsufficientWeightError: valid weight not above two thirds
        """
        commit = justification.commit

        if commit.set_id != current_set.set_id:
            logger.warning(
                f"Rejected justification for {commit.target}: "
                f"set_id={commit.set_id}, current set_id={current_set.set_id}"
            )
            raise SetIdMismatchError(expected=current_set.set_id, actual=commit.set_id)

        result = VerificationResult(
            target=commit.target,
            round=commit.round,
            set_id=commit.set_id,
            total_weight=current_set.total_weight,
        )
        resolver = VoteAncestryResolver(justification.ancestry_headers)
        first_votes: Dict[AuthorityId, Vote] = {}

        for vote in commit.votes:
            weight = current_set.weight_of(vote.voter)
            if weight is None:
                if self.config.reject_unknown_voters:
                    logger.warning(f"Rejected justification for {commit.target}: unknown voter")
                    raise UnknownVoterError(vote.voter)
                logger.debug(f"Ignoring vote from unknown authority {short_hash(vote.voter)}")
                result.unknown_voters.append(vote.voter)
                continue

            first = first_votes.get(vote.voter)
            if first is not None:
                if first.target == vote.target:
                    result.duplicate_votes += 1
                    continue
                logger.warning(
                    f"Equivocation by {short_hash(vote.voter)} in round {commit.round}: "
                    f"{first.target} and {vote.target}"
                )
                if self.config.reject_equivocations:
                    raise EquivocationError(vote.voter)
                result.equivocations.append(Equivocation(vote.voter, first, vote))
                continue
            first_votes[vote.voter] = vote

            payload = encoding.vote_signing_payload(commit.round, commit.set_id, vote.target)
            if not self.crypto.verify(vote.voter, payload, vote.signature):
                logger.debug(f"Dropping vote with invalid signature from {short_hash(vote.voter)}")
                result.invalid_signatures.append(vote)
                continue

            try:
                resolver.resolve(commit.target, vote.target)
            except BrokenAncestryError as e:
                logger.debug(f"Dropping vote from {short_hash(vote.voter)}: {e}")
                result.broken_ancestries.append((vote, e))
                continue

            result.valid_weight += weight
            result.counted_voters.append(vote.voter)

        if self.config.reject_redundant_ancestry and resolver.unused():
            logger.warning(f"Rejected justification for {commit.target}: redundant ancestry")
            raise RedundantAncestryError(resolver.unused())

        if not result.accepted:
            logger.warning(
                f"Rejected justification for {commit.target}: "
                f"weight={result.valid_weight}/{result.total_weight} set_id={commit.set_id}"
            )
            raise InsufficientWeightError(result.valid_weight, result.total_weight, result)

        logger.info(
            f"Justification for {commit.target} accepted: "
            f"weight={result.valid_weight}/{result.total_weight} set_id={commit.set_id}"
        )
        return result
