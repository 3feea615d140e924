"""Tests for the segment planner."""

import random

import pytest

from divide_it.planner import plan


def _check_invariants(windows, duration, min_duration, max_duration):
    starts = [w.start_time for w in windows]
    assert starts == sorted(starts)
    assert [w.index for w in windows] == list(range(1, len(windows) + 1))
    for i, window in enumerate(windows):
        assert window.start_time >= 0
        assert window.end_time <= duration
        assert min_duration - 0.011 <= window.duration <= max_duration + 0.011
        assert round(window.start_time, 2) == window.start_time
        assert round(window.end_time, 2) == window.end_time
        for other in windows[i + 1:]:
            assert other.start_time - window.start_time >= min_duration * 0.5


class TestPlan:
    """Tests for plan()."""

    def test_typical_request(self):
        """A long source gets the requested number of valid windows."""
        windows = plan(600, 5, 5, 60, rng=random.Random(1))

        assert len(windows) == 5
        _check_invariants(windows, 600, 5, 60)

    @pytest.mark.parametrize("seed", range(25))
    def test_invariants_hold_for_many_seeds(self, seed):
        """Ordering, bounds, lengths and spacing hold across random draws."""
        windows = plan(97.3, 8, 4, 20, rng=random.Random(seed))

        assert 1 <= len(windows) <= 8
        _check_invariants(windows, 97.3, 4, 20)

    def test_deterministic_with_seeded_rng(self):
        """The same seed yields the same plan."""
        first = plan(300, 6, 5, 30, rng=random.Random(42))
        second = plan(300, 6, 5, 30, rng=random.Random(42))

        assert first == second

    def test_source_shorter_than_min(self):
        """Nothing fits in a source shorter than one minimum window."""
        assert plan(3, 5, 5, 60) == []

    def test_count_capped_by_duration(self):
        """At most floor(duration / min_duration) windows are planned."""
        windows = plan(12, 10, 5, 60, rng=random.Random(3))

        assert len(windows) <= 2
        _check_invariants(windows, 12, 5, 12)

    def test_source_exactly_min_duration(self):
        """A source exactly one minimum long yields the whole source."""
        windows = plan(5, 3, 5, 60, rng=random.Random(0))

        assert len(windows) == 1
        assert windows[0].start_time == 0
        assert windows[0].end_time == 5

    def test_zero_count(self):
        assert plan(100, 0, 5, 60) == []

    def test_max_equal_min(self):
        """Fixed-length windows when min equals max."""
        windows = plan(200, 4, 10, 10, rng=random.Random(7))

        assert windows
        for window in windows:
            assert window.duration == pytest.approx(10, abs=0.01)

    def test_crowded_source_may_return_fewer(self):
        """Spacing can leave slots unfilled; the plan is still valid."""
        windows = plan(20, 20, 1, 2, rng=random.Random(5))

        assert len(windows) <= 20
        _check_invariants(windows, 20, 1, 2)

    @pytest.mark.parametrize(
        "min_duration, max_duration",
        [(0, 10), (-1, 10), (5, 0), (10, 5)],
    )
    def test_invalid_durations(self, min_duration, max_duration):
        """Non-positive durations and an inverted range are rejected."""
        with pytest.raises(ValueError):
            plan(100, 3, min_duration, max_duration)
