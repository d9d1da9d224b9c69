"""
Authority Set and Registry Tests
"""

import pytest

from headerchain.exceptions import ConflictingScheduledChangeError, InvalidAuthoritySetError
from headerchain.finality import Authority, AuthoritySet, AuthoritySetRegistry, PendingChange


# ============================================================================
# TEST HELPERS
# ============================================================================

def _authority_id(index: int) -> bytes:
    return bytes([index + 1]) * 64


def _make_set(set_id: int = 0, weights=(1, 1, 1, 1), offset: int = 0) -> AuthoritySet:
    return AuthoritySet.from_weights(
        set_id, [(_authority_id(offset + i), w) for i, w in enumerate(weights)]
    )


def _make_change(delay: int, delay_start: int, forced: bool = False, offset: int = 10) -> PendingChange:
    return PendingChange(
        next_authorities=_make_set(offset=offset),
        delay=delay,
        delay_start=delay_start,
        forced=forced,
    )


# ============================================================================
# AUTHORITY SET
# ============================================================================

class TestAuthoritySet:
    """Construction invariants and weight lookups."""

    def test_total_weight(self):
        assert _make_set(weights=(1, 2, 3, 4)).total_weight == 10

    def test_weight_of(self):
        authority_set = _make_set(weights=(5, 7))

        assert authority_set.weight_of(_authority_id(1)) == 7
        assert authority_set.weight_of(_authority_id(9)) is None
        assert _authority_id(0) in authority_set
        assert _authority_id(9) not in authority_set
        assert len(authority_set) == 2

    def test_order_preserved(self):
        authority_set = _make_set(weights=(3, 1, 2))
        assert [a.weight for a in authority_set] == [3, 1, 2]

    def test_empty_set_rejected(self):
        with pytest.raises(InvalidAuthoritySetError):
            AuthoritySet(set_id=0, authorities=())

    def test_duplicate_ids_rejected(self):
        with pytest.raises(InvalidAuthoritySetError, match="Duplicate"):
            AuthoritySet(set_id=0, authorities=(Authority(b'a' * 64), Authority(b'a' * 64, 2)))

    @pytest.mark.parametrize("weight", [0, -1])
    def test_non_positive_weight_rejected(self, weight):
        with pytest.raises(InvalidAuthoritySetError):
            Authority(b'a' * 64, weight)

    def test_negative_set_id_rejected(self):
        with pytest.raises(InvalidAuthoritySetError):
            _make_set(set_id=-1)

    def test_equality_ignores_cached_weights(self):
        assert _make_set(set_id=3) == _make_set(set_id=3)
        assert _make_set(set_id=3) != _make_set(set_id=4)

    def test_with_set_id(self):
        authority_set = _make_set(set_id=1).with_set_id(2)

        assert authority_set.set_id == 2
        assert authority_set.authorities == _make_set().authorities

    def test_list_input_becomes_tuple(self):
        authority_set = AuthoritySet(set_id=0, authorities=[Authority(b'a' * 64)])
        assert isinstance(authority_set.authorities, tuple)


# ============================================================================
# REGISTRY
# ============================================================================

class TestAuthoritySetRegistry:
    """Pending change slot and activation."""

    def test_initial_state(self):
        registry = AuthoritySetRegistry(_make_set())

        assert registry.current() == _make_set()
        assert registry.total_weight() == 4
        assert registry.pending() is None

    def test_pending_change_effective_number(self):
        assert _make_change(delay=3, delay_start=5).effective_number == 8

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            _make_change(delay=-1, delay_start=5)

    def test_not_due_before_effective_number(self):
        registry = AuthoritySetRegistry(_make_set())
        registry.schedule(_make_change(delay=3, delay_start=5))

        assert registry.apply_due(7) is None
        assert registry.current().set_id == 0
        assert registry.pending() is not None

    def test_activation_increments_set_id(self):
        registry = AuthoritySetRegistry(_make_set(set_id=4))
        change = _make_change(delay=3, delay_start=5)
        registry.schedule(change)

        new_set = registry.apply_due(8)

        assert new_set.set_id == 5
        assert new_set.authorities == change.next_authorities.authorities
        assert registry.current() == new_set
        assert registry.pending() is None

    def test_late_activation(self):
        registry = AuthoritySetRegistry(_make_set())
        registry.schedule(_make_change(delay=3, delay_start=5))

        assert registry.apply_due(100).set_id == 1

    def test_nothing_pending(self):
        assert AuthoritySetRegistry(_make_set()).apply_due(10) is None

    def test_second_standard_change_conflicts(self):
        registry = AuthoritySetRegistry(_make_set())
        first = _make_change(delay=3, delay_start=5)
        registry.schedule(first)

        with pytest.raises(ConflictingScheduledChangeError) as exc_info:
            registry.schedule(_make_change(delay=1, delay_start=6, offset=20))

        assert exc_info.value.pending_effective == 8
        assert exc_info.value.new_effective == 7
        assert registry.pending() == first

    def test_forced_replaces_standard(self):
        registry = AuthoritySetRegistry(_make_set())
        registry.schedule(_make_change(delay=3, delay_start=5))
        forced = _make_change(delay=10, delay_start=10, forced=True, offset=20)

        registry.schedule(forced)

        assert registry.pending() == forced

    def test_forced_replaces_forced(self):
        registry = AuthoritySetRegistry(_make_set())
        registry.schedule(_make_change(delay=3, delay_start=5, forced=True))
        forced = _make_change(delay=1, delay_start=6, forced=True, offset=20)

        registry.schedule(forced)

        assert registry.pending() == forced

    def test_standard_after_forced_conflicts(self):
        registry = AuthoritySetRegistry(_make_set())
        registry.schedule(_make_change(delay=3, delay_start=5, forced=True))

        with pytest.raises(ConflictingScheduledChangeError):
            registry.schedule(_make_change(delay=3, delay_start=6))

    def test_copy_is_independent(self):
        registry = AuthoritySetRegistry(_make_set())
        staged = registry.copy()

        staged.schedule(_make_change(delay=0, delay_start=1))
        staged.apply_due(1)

        assert staged.current().set_id == 1
        assert registry.current().set_id == 0
        assert registry.pending() is None
        assert staged != registry
        assert registry.copy() == registry
