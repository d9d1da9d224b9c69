"""
Header Chain Exceptions

Custom exception classes for the finality verifier and header chain tracker.
"""

from typing import Any, Optional


def _short(value: bytes) -> str:
    return '0x' + value.hex()[:16]


class HeaderChainException(Exception):
    """Base exception for the header chain core."""
    pass


class ConfigurationError(HeaderChainException):
    """Configuration error."""
    pass


class DecodeError(HeaderChainException):
    """Malformed bytes handed to the codec."""
    pass


class InvalidKeyError(HeaderChainException):
    """Invalid cryptographic key or signature encoding."""
    pass


class InvalidAuthoritySetError(HeaderChainException):
    """Authority set violates its construction invariants."""
    pass


# -- Justification verification ----------------------------------------------

class JustificationError(HeaderChainException):
    """Base exception for a rejected finality justification."""
    pass


class SetIdMismatchError(JustificationError):
    """Justification was produced by a different authority set."""
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Justification set_id {actual} does not match current set_id {expected}"
        )


class InsufficientWeightError(JustificationError):
    """Valid vote weight does not reach the supermajority threshold."""
    def __init__(self, valid_weight: int, total_weight: int, result: Any = None):
        self.valid_weight = valid_weight
        self.total_weight = total_weight
        self.result = result
        super().__init__(
            f"Insufficient vote weight: {valid_weight}/{total_weight} "
            f"(need more than two thirds)"
        )


class UnknownVoterError(JustificationError):
    """Vote cast by an id outside the current set (strict mode only)."""
    def __init__(self, voter: bytes):
        self.voter = voter
        super().__init__(f"Vote from unknown authority {_short(voter)}")


class EquivocationError(JustificationError):
    """Authority cast conflicting votes (only raised when equivocations are rejected)."""
    def __init__(self, voter: bytes):
        self.voter = voter
        super().__init__(f"Authority {_short(voter)} equivocated")


class RedundantAncestryError(JustificationError):
    """Justification carries ancestry headers no vote needed."""
    def __init__(self, unused: int):
        self.unused = unused
        super().__init__(f"Justification carries {unused} unused ancestry header(s)")


class BrokenAncestryError(HeaderChainException):
    """No parent path links a vote target to the commit target."""
    def __init__(self, base_number: int, target_number: int, reason: str):
        self.base_number = base_number
        self.target_number = target_number
        self.reason = reason
        super().__init__(
            f"No ancestry path from #{target_number} down to #{base_number}: {reason}"
        )


# -- Authority set scheduling ------------------------------------------------

class SchedulingError(HeaderChainException):
    """Base exception for authority set change scheduling."""
    pass


class ConflictingScheduledChangeError(SchedulingError):
    """A standard change was signalled while another one is still pending."""
    def __init__(self, pending_effective: int, new_effective: int):
        self.pending_effective = pending_effective
        self.new_effective = new_effective
        super().__init__(
            f"Standard change (effective at #{new_effective}) conflicts with "
            f"pending change effective at #{pending_effective}"
        )


# -- Header import -----------------------------------------------------------

class HeaderImportError(HeaderChainException):
    """Base exception for a rejected header import."""
    pass


class ObsoleteHeaderError(HeaderImportError):
    """Header is not newer than the best finalized header."""
    def __init__(self, number: int, best_number: int):
        self.number = number
        self.best_number = best_number
        super().__init__(
            f"Header #{number} is not newer than best finalized #{best_number}"
        )


class MissingJustificationError(HeaderImportError):
    """Header was submitted without a finality justification."""
    def __init__(self, number: int):
        self.number = number
        super().__init__(f"Header #{number} has no finality justification")


class JustificationTargetMismatchError(HeaderImportError):
    """Justification finalizes a different header than the one submitted."""
    def __init__(self, header_number: int, header_hash: bytes, target_number: int, target_hash: bytes):
        self.header_number = header_number
        self.header_hash = header_hash
        self.target_number = target_number
        self.target_hash = target_hash
        super().__init__(
            f"Justification targets #{target_number} ({_short(target_hash)}), "
            f"header is #{header_number} ({_short(header_hash)})"
        )


class VerificationFailedError(HeaderImportError):
    """Justification verification rejected the header."""
    def __init__(self, error: JustificationError):
        self.error = error
        super().__init__(f"Justification verification failed: {error}")


class HaltedError(HeaderImportError):
    """Imports are halted by the host."""
    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Header imports are halted")
