"""Retry machinery for Hooksafe.

Classifies processing failures, computes backoff, persists retry records and
re-drives them in the background.

Example:
    ```python
    from hooksafe.retry import RetryScheduler, RetrySweeper, is_retryable

    scheduler = RetryScheduler(db)
    sweeper = RetrySweeper(orchestrator, scheduler, interval_seconds=60)
    await sweeper.start()
    ```
"""

from .backoff import compute_backoff
from .classifier import RETRYABLE_KINDS, is_retryable, kind_of
from .scheduler import RetryScheduler
from .sweeper import RetrySweeper, SweepResult
from .translation import translate_error

__all__ = [
    "RETRYABLE_KINDS",
    "RetryScheduler",
    "RetrySweeper",
    "SweepResult",
    "compute_backoff",
    "is_retryable",
    "kind_of",
    "translate_error",
]
