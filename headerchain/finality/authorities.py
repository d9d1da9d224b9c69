"""
Authority Set Registry

Owns the currently trusted authority set and at most one pending rotation.
Sets and pending changes are immutable values, replaced wholesale.
"""

from typing import Optional

from ..exceptions import ConflictingScheduledChangeError
from ..logger import get_logger
from .types import AuthoritySet, PendingChange

logger = get_logger(__name__)


class AuthoritySetRegistry:
    """
    Current authority set plus the pending change slot.

    Rules:
    - A forced change replaces whatever is pending.
    - A standard change is refused while another change is pending.
    - A pending change activates once the header number reaches
      `delay_start + delay`; the new set gets `set_id = current.set_id + 1`.
    """

    def __init__(self, current: AuthoritySet, pending: Optional[PendingChange] = None):
        self._current = current
        self._pending = pending

    def current(self) -> AuthoritySet:
        return self._current

    def total_weight(self) -> int:
        return self._current.total_weight

    def pending(self) -> Optional[PendingChange]:
        return self._pending

    def schedule(self, change: PendingChange) -> None:
        """
        Put a change into the pending slot.

        Raises:
            ConflictingScheduledChangeError: standard change while one is pending
        """
        if change.forced:
            if self._pending is not None:
                logger.warning(
                    f"Forced change effective at #{change.effective_number} replaces "
                    f"pending {'forced' if self._pending.forced else 'standard'} change "
                    f"effective at #{self._pending.effective_number}"
                )
            self._pending = change
            return

        if self._pending is not None:
            raise ConflictingScheduledChangeError(
                pending_effective=self._pending.effective_number,
                new_effective=change.effective_number,
            )

        self._pending = change

    def apply_due(self, at_number: int) -> Optional[AuthoritySet]:
        """
        Activate the pending change if its delay has elapsed at `at_number`.

        Returns:
            The new current set, or None if nothing was activated
        """
        change = self._pending
        if change is None or at_number < change.effective_number:
            return None

        new_set = change.next_authorities.with_set_id(self._current.set_id + 1)
        logger.info(
            f"Authority set rotated at #{at_number}: set_id={self._current.set_id} -> "
            f"set_id={new_set.set_id} ({len(new_set)} authorities, "
            f"{'forced' if change.forced else 'standard'} change)"
        )
        self._current = new_set
        self._pending = None
        return new_set

    def copy(self) -> 'AuthoritySetRegistry':
        """Independent registry for staging changes."""
        return AuthoritySetRegistry(self._current, self._pending)

    def __eq__(self, other) -> bool:
        if not isinstance(other, AuthoritySetRegistry):
            return False
        return self._current == other._current and self._pending == other._pending

    def __repr__(self) -> str:
        return f"AuthoritySetRegistry(current={self._current!r}, pending={self._pending!r})"
