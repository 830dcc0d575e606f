"""Tests for exponential backoff with jitter."""

from datetime import timedelta

import pytest

from hooksafe.retry import compute_backoff


def minutes(delay: timedelta) -> float:
    return delay.total_seconds() / 60


class TestComputeBackoff:
    """Tests for compute_backoff()."""

    @pytest.mark.parametrize(
        ("attempt", "expected"),
        [(1, 1), (2, 2), (3, 4), (4, 8), (5, 16), (6, 32)],
    )
    def test_doubles_without_jitter(self, attempt: int, expected: float) -> None:
        """With rand=0.5 the delay doubles each attempt."""
        assert minutes(compute_backoff(attempt, 0.5)) == pytest.approx(expected)

    def test_capped_at_sixty_minutes(self) -> None:
        """Attempts 7 and beyond are capped at 60 minutes."""
        assert minutes(compute_backoff(7, 0.5)) == pytest.approx(60)
        assert minutes(compute_backoff(10, 0.5)) == pytest.approx(60)

    def test_very_large_attempt_stays_capped(self) -> None:
        """Huge attempt numbers neither overflow nor exceed the cap."""
        assert minutes(compute_backoff(10_000, 0.5)) == pytest.approx(60)

    def test_minimum_jitter(self) -> None:
        """rand=0.0 takes 10% off the base delay."""
        assert minutes(compute_backoff(1, 0.0)) == pytest.approx(0.9)

    def test_maximum_jitter(self) -> None:
        """rand just under 1 adds just under 10%."""
        assert minutes(compute_backoff(1, 0.999)) == pytest.approx(1.0998)

    def test_jitter_scales_with_base(self) -> None:
        """Jitter is proportional to the capped base delay."""
        assert minutes(compute_backoff(8, 0.0)) == pytest.approx(54)
        assert minutes(compute_backoff(8, 0.999)) == pytest.approx(65.988)

    def test_floor_applies_after_jitter(self) -> None:
        """Delay never drops below the floor even with large jitter."""
        delay = compute_backoff(1, 0.0, base_minutes=0.5, jitter_fraction=0.5)
        assert minutes(delay) == pytest.approx(0.5)

    def test_never_below_thirty_seconds(self) -> None:
        """Default settings never produce a delay under 30 seconds."""
        for rand in (0.0, 0.25, 0.5, 0.75, 0.999):
            assert compute_backoff(1, rand) >= timedelta(seconds=30)

    def test_custom_base_and_cap(self) -> None:
        """Base and cap are configurable."""
        assert minutes(compute_backoff(1, 0.5, base_minutes=2, cap_minutes=5)) == pytest.approx(2)
        assert minutes(compute_backoff(3, 0.5, base_minutes=2, cap_minutes=5)) == pytest.approx(5)

    @pytest.mark.parametrize("attempt", [0, -1])
    def test_rejects_attempt_below_one(self, attempt: int) -> None:
        """Attempt numbers are 1-indexed."""
        with pytest.raises(ValueError, match="attempt_number"):
            compute_backoff(attempt, 0.5)
