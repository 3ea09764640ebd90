"""
Unit tests for CredentialPool.
"""

import logging

import pytest

from key_rotator.core.config import RotatorConfig
from key_rotator.core.types import CredentialStatus
from key_rotator.pool.manager import CredentialPool

from tests.conftest import FakeClock


class TestSelection:
    """Round-robin selection."""

    @pytest.mark.parametrize("size", [1, 2, 3, 7])
    def test_each_index_once_in_cyclic_order(self, size):
        """N selections without failures return every index once, from the cursor."""
        pool = CredentialPool([f"key-{i:04d}-secret" for i in range(size)])
        # Move the cursor off zero so the cycle has to wrap
        pool.select()
        start = pool.cursor

        indices = [pool.select().index for _ in range(size)]

        assert indices == [(start + i) % size for i in range(size)]
        assert sorted(indices) == list(range(size))

    def test_selection_carries_credential(self, pool, keys):
        """Selection returns the credential at the selected index."""
        selection = pool.select()
        assert selection.index == 0
        assert selection.credential == keys[0]

    def test_cursor_advances_past_selection(self, pool):
        """Cursor moves to the slot after the selected index."""
        pool.select()
        assert pool.cursor == 1
        pool.select()
        pool.select()
        assert pool.cursor == 0

    def test_skips_exhausted(self, pool):
        """Exhausted credentials are skipped and the cursor jumps past the pick."""
        pool.mark_exhausted(0)
        selection = pool.select()
        assert selection.index == 1
        assert pool.cursor == 2

    def test_excluded_positions_are_skipped(self, pool):
        selection = pool.select(exclude={0, 1})
        assert selection.index == 2
        assert pool.cursor == 0
        assert pool.select(exclude={0, 1, 2}) is None
        assert pool.cursor == 0

    def test_all_exhausted_returns_none_and_keeps_cursor(self, pool):
        """With every credential cooling down, nothing is selected."""
        pool.select()
        cursor = pool.cursor
        for index in range(pool.count_total()):
            pool.mark_exhausted(index)

        assert pool.select() is None
        assert pool.cursor == cursor

    def test_selection_repr_hides_credential(self, pool, keys):
        """The credential never shows up in a repr."""
        assert keys[0] not in repr(pool.select())


class TestCooldown:
    """Exhaustion marking and self-healing."""

    def test_not_selected_until_cooldown_elapses(self, keys, clock):
        """A marked credential comes back exactly when its cooldown ends."""
        pool = CredentialPool(keys, clock=clock)
        pool.mark_exhausted(1, 10)

        for _ in range(6):
            assert pool.select().index != 1

        clock.advance(9.5)
        assert [pool.select().index for _ in range(2)] == [0, 2]

        clock.advance(0.5)
        assert pool.status_of(1) is CredentialStatus.RECOVERED
        seen = {pool.select().index for _ in range(3)}
        assert 1 in seen

    def test_default_cooldown_is_one_hour(self, keys, clock):
        """Without a duration the pool default applies."""
        pool = CredentialPool(keys, clock=clock)
        pool.mark_exhausted(0)
        assert pool.get_state(0).exhausted_until == clock.now + 3600

    def test_from_config_uses_configured_cooldown(self, keys, clock):
        """Pools built from config inherit its cooldown."""
        config = RotatorConfig(api_keys=tuple(keys), cooldown_seconds=120)
        pool = CredentialPool.from_config(config, clock=clock)
        pool.mark_exhausted(2)
        assert pool.get_state(2).exhausted_until == clock.now + 120

    def test_mark_overwrites_previous_cooldown(self, pool, clock):
        """A later mark replaces the previous cooldown."""
        pool.mark_exhausted(0, 100)
        pool.mark_exhausted(0, 10)
        assert pool.get_state(0).exhausted_until == clock.now + 10

    def test_mark_out_of_range_is_noop(self, pool, caplog):
        """Out-of-range indexes are ignored with a warning."""
        with caplog.at_level(logging.WARNING, logger="key_rotator"):
            pool.mark_exhausted(3)
            pool.mark_exhausted(-1)

        assert pool.count_exhausted() == 0
        assert "Invalid key index" in caplog.text

    def test_status_tri_state(self, pool, clock):
        """Fresh, cooling down and recovered are distinct."""
        assert pool.status_of(0) is CredentialStatus.FRESH
        pool.mark_exhausted(0, 5)
        assert pool.status_of(0) is CredentialStatus.COOLING_DOWN
        clock.advance(5)
        assert pool.status_of(0) is CredentialStatus.RECOVERED


class TestCounts:
    """Read accessors."""

    def test_counts(self, pool, clock):
        """Total, available and exhausted counts agree."""
        pool.mark_exhausted(0, 60)
        assert pool.count_total() == 3
        assert pool.count_available() == 2
        assert pool.count_exhausted() == 1

        assert pool.count_available(clock.now + 60) == 3
        assert pool.count_exhausted(clock.now + 60) == 0

    def test_counts_are_idempotent(self, pool):
        """Repeated queries without mutation return the same values."""
        pool.mark_exhausted(1)
        first = (pool.count_total(), pool.count_available(), pool.count_exhausted())
        second = (pool.count_total(), pool.count_available(), pool.count_exhausted())
        assert first == second

    def test_get_all_states_returns_copies(self, pool):
        """Mutating returned states does not touch the pool."""
        states = pool.get_all_states()
        states[0].exhausted_until = 1.0
        assert pool.get_state(0).exhausted_until is None

    def test_empty_pool_rejected(self):
        """A pool needs at least one credential."""
        with pytest.raises(ValueError):
            CredentialPool([])

    def test_isolated_pools(self, keys):
        """Separate pools keep separate state."""
        first = CredentialPool(keys, clock=FakeClock())
        second = CredentialPool(keys, clock=FakeClock())
        first.mark_exhausted(0)
        first.select()
        assert second.count_exhausted() == 0
        assert second.cursor == 0
