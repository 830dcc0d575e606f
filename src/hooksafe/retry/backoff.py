"""Exponential backoff with jitter for retry scheduling.

The delay before attempt n is ``base * 2**(n-1)`` minutes, capped, then
spread by up to +/- jitter_fraction of itself and floored:

    attempt   1  2  3  4   5   6   7   8 ...
    minutes   1  2  4  8  16  32  60  60 ...   (rand = 0.5, defaults)

The random value is supplied by the caller so a fixed value gives an exact,
testable delay.
"""

from __future__ import annotations

from datetime import timedelta

# Exponent ceiling; 2**64 minutes is already far beyond any sane cap
_MAX_EXPONENT = 64


def compute_backoff(
    attempt_number: int,
    rand: float,
    base_minutes: float = 1.0,
    cap_minutes: float = 60.0,
    jitter_fraction: float = 0.1,
    min_delay_minutes: float = 0.5,
) -> timedelta:
    """Compute the delay before a retry attempt.

    Args:
        attempt_number: Attempt being scheduled (1-indexed).
        rand: Random value in [0, 1). 0.5 means no jitter.
        base_minutes: Delay before the first attempt.
        cap_minutes: Upper bound on the exponential delay (before jitter).
        jitter_fraction: Maximum jitter as a fraction of the delay.
        min_delay_minutes: Floor applied after jitter.

    Returns:
        Delay as a timedelta.

    Raises:
        ValueError: If attempt_number is less than 1.
    """
    if attempt_number < 1:
        raise ValueError(f"attempt_number must be >= 1, got {attempt_number}")

    exponent = min(attempt_number - 1, _MAX_EXPONENT)
    base = min(base_minutes * (2**exponent), cap_minutes)
    jitter = base * jitter_fraction * (rand - 0.5) * 2
    minutes = max(base + jitter, min_delay_minutes)
    return timedelta(minutes=minutes)
