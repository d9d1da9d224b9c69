"""
Change Scheduler

Reads authority set change directives from a header digest and applies them
to the authority set registry of a chain state.
"""

from typing import TYPE_CHECKING, List

from ..logger import get_logger
from .types import AuthoritySet, ChangeDirective, ForcedChange, Header, PendingChange, ScheduledChange

if TYPE_CHECKING:
    from ..chain.state import ChainState

logger = get_logger(__name__)


class ChangeScheduler:
    """
    Applies the authority rotation signalled by finalized headers.

    Both change kinds count their delay from the number of the header that
    signals them. A forced change replaces whatever is pending; a standard
    change is refused while another change is pending.
    """

    def extract_changes(self, header: Header) -> List[ChangeDirective]:
        """Change directives of a header, in digest order."""
        return [item for item in header.digest if isinstance(item, (ScheduledChange, ForcedChange))]

    def apply(self, state: 'ChainState', header: Header, directives: List[ChangeDirective]) -> None:
        """
        Schedule `directives` on `state.authorities`, in order.

        Raises:
            ConflictingScheduledChangeError: standard change while one is pending
        """
        registry = state.authorities
        for directive in directives:
            forced = isinstance(directive, ForcedChange)
            change = PendingChange(
                next_authorities=AuthoritySet(
                    set_id=registry.current().set_id + 1,
                    authorities=directive.next_authorities,
                ),
                delay=directive.delay,
                delay_start=header.number,
                forced=forced,
            )
            registry.schedule(change)
            logger.info(
                f"{'Forced' if forced else 'Standard'} authority set change signalled at "
                f"#{header.number}: {len(change.next_authorities)} authorities, "
                f"effective at #{change.effective_number}"
            )

    def enact(self, state: 'ChainState', header: Header) -> List[AuthoritySet]:
        """
        Full rotation step for a newly finalized header.

        A due pending change activates first, unless the header signals a
        forced change that supersedes it. The header's directives are then
        scheduled and a change that is already due (zero delay) activates at
        this header.

        Returns:
            Authority sets that became current, oldest first
        """
        registry = state.authorities
        directives = self.extract_changes(header)
        activated: List[AuthoritySet] = []

        if not any(isinstance(d, ForcedChange) for d in directives):
            new_set = registry.apply_due(header.number)
            if new_set is not None:
                activated.append(new_set)

        self.apply(state, header, directives)

        new_set = registry.apply_due(header.number)
        if new_set is not None:
            activated.append(new_set)
        return activated
