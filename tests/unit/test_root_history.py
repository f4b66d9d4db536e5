"""Unit tests for the root history ring buffer."""

import pytest

from zkpool.core.root_history import ROOT_HISTORY_SIZE, ZERO_ROOT, RootHistory


def root(n: int) -> bytes:
    return n.to_bytes(32, "big")


class TestRootHistoryInitialization:
    """Test a fresh ring."""

    def test_fresh_ring_is_all_zero(self):
        history = RootHistory()
        assert len(history) == ROOT_HISTORY_SIZE
        assert history.roots == [ZERO_ROOT] * ROOT_HISTORY_SIZE
        assert history.current_root_index == 0
        assert history.known_roots() == []

    def test_zero_root_never_known(self):
        history = RootHistory()
        assert not history.is_known_root(ZERO_ROOT)
        history.push_root(ZERO_ROOT)
        assert not history.is_known_root(ZERO_ROOT)

    def test_invalid_slot_count(self):
        with pytest.raises(ValueError):
            RootHistory(roots=[ZERO_ROOT] * 29)

    def test_invalid_index(self):
        with pytest.raises(ValueError):
            RootHistory(current_root_index=ROOT_HISTORY_SIZE)

    def test_invalid_root_length(self):
        roots = [ZERO_ROOT] * ROOT_HISTORY_SIZE
        roots[3] = b"\x01" * 31
        with pytest.raises(ValueError):
            RootHistory(roots=roots)


class TestPushRoot:
    """Test cursor advance and overwrite."""

    def test_first_push_lands_in_slot_one(self):
        history = RootHistory()
        slot = history.push_root(root(1))
        assert slot == 1
        assert history.current_root_index == 1
        assert history.roots[1] == root(1)
        assert history.roots[0] == ZERO_ROOT
        assert history.is_known_root(root(1))

    def test_latest_root_is_at_cursor(self):
        history = RootHistory()
        for n in range(1, 6):
            history.push_root(root(n))
            assert history.latest_root() == root(n)
            assert history.roots[history.current_root_index] == root(n)

    def test_wraps_to_slot_zero(self):
        history = RootHistory()
        for n in range(1, ROOT_HISTORY_SIZE):
            history.push_root(root(n))
        assert history.current_root_index == ROOT_HISTORY_SIZE - 1

        slot = history.push_root(root(ROOT_HISTORY_SIZE))
        assert slot == 0
        assert history.roots[0] == root(ROOT_HISTORY_SIZE)

    def test_thirty_one_pushes_expire_the_first(self):
        """After 31 pushes the first root has been overwritten."""
        history = RootHistory()
        for n in range(1, ROOT_HISTORY_SIZE + 2):
            history.push_root(root(n))

        assert not history.is_known_root(root(1))
        for n in range(2, ROOT_HISTORY_SIZE + 2):
            assert history.is_known_root(root(n))
        assert history.current_root_index == 1

    def test_last_thirty_always_known(self):
        history = RootHistory()
        for n in range(1, 100):
            history.push_root(root(n))
        for n in range(100 - ROOT_HISTORY_SIZE, 100):
            assert history.is_known_root(root(n))
        assert not history.is_known_root(root(100 - ROOT_HISTORY_SIZE - 1))

    def test_duplicate_push_occupies_two_slots(self):
        history = RootHistory()
        history.push_root(root(7))
        history.push_root(root(7))
        assert history.roots[1] == history.roots[2] == root(7)
        assert history.known_roots() == [root(7)]

    def test_rejects_wrong_length(self):
        history = RootHistory()
        with pytest.raises(ValueError):
            history.push_root(b"\x01" * 33)
        assert history.current_root_index == 0


class TestKnownRoots:
    """Test listing and comparisons."""

    def test_known_roots_newest_first(self):
        history = RootHistory()
        for n in (1, 2, 3):
            history.push_root(root(n))
        assert history.known_roots() == [root(3), root(2), root(1)]

    def test_unknown_root(self):
        history = RootHistory()
        history.push_root(root(1))
        assert not history.is_known_root(root(2))

    def test_equality(self):
        a, b = RootHistory(), RootHistory()
        assert a == b
        a.push_root(root(1))
        assert a != b
        b.push_root(root(1))
        assert a == b
