"""
Vote Ancestry Resolver

Reconstructs, from the headers supplied with a justification, the path from
a vote's target down to the commit target.
"""

from typing import Dict, Iterable, List, NamedTuple, Set

from ..exceptions import BrokenAncestryError
from .types import Header, HeaderId


class _ParentLink(NamedTuple):
    number: int
    parent_hash: bytes


class VoteAncestryResolver:
    """
    Parent-pointer table over a justification's ancestry headers.

    Every header visited by a successful resolution is remembered in
    `visited`, so callers can tell which supplied headers were needed.
    """

    def __init__(self, ancestry_headers: Iterable[Header]):
        self._links: Dict[bytes, _ParentLink] = {}
        # Same hash means same content, so repeats only count as redundant
        self.duplicates = 0
        for header in ancestry_headers:
            header_hash = header.hash
            if header_hash in self._links:
                self.duplicates += 1
                continue
            self._links[header_hash] = _ParentLink(header.number, header.parent_hash)
        self.visited: Set[bytes] = set()

    def __len__(self) -> int:
        return len(self._links)

    def resolve(self, base: HeaderId, target: HeaderId) -> List[HeaderId]:
        """
        Path from `target` down to `base`.

        Args:
            base: Commit target, the expected ancestor
            target: Vote target

        Returns:
            HeaderIds from `target` down to, but excluding, `base`. Empty
            when both ids are equal.

        Raises:
            BrokenAncestryError: no path links the two headers
        """
        if target.number < base.number:
            raise BrokenAncestryError(base.number, target.number, "target is below the base")

        path: List[HeaderId] = []
        seen: Set[bytes] = set()
        current_hash = target.hash
        current_number = target.number

        while current_hash != base.hash:
            if current_number <= base.number:
                raise BrokenAncestryError(
                    base.number, target.number, f"walked past #{base.number} without reaching it"
                )
            if current_hash in seen:
                raise BrokenAncestryError(base.number, target.number, "cycle in ancestry headers")
            seen.add(current_hash)

            link = self._links.get(current_hash)
            if link is None:
                raise BrokenAncestryError(
                    base.number, target.number, f"missing header #{current_number}"
                )
            if link.number != current_number:
                raise BrokenAncestryError(
                    base.number, target.number,
                    f"header number {link.number} does not match expected #{current_number}",
                )

            path.append(HeaderId(number=current_number, hash=current_hash))
            current_hash = link.parent_hash
            current_number -= 1

        if current_number != base.number:
            raise BrokenAncestryError(
                base.number, target.number,
                f"base reached at #{current_number} instead of #{base.number}",
            )

        self.visited.update(h.hash for h in path)
        return path

    def unused(self) -> int:
        """Number of supplied headers no successful resolution needed."""
        return len(self._links.keys() - self.visited) + self.duplicates
