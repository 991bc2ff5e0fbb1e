"""Wall-clock deadline shared by the stages of one comparison.

Stages call `check()` between pixel rows or row bands. Expiry raises
ComparisonTimeout, and whatever the stage had built so far is dropped.
"""

import time

from fidelity_checker.core.errors import ComparisonTimeout


class Deadline:
    def __init__(self, seconds: float | None):
        self.seconds = seconds
        self._expires_at = None if not seconds else time.monotonic() + seconds

    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self, stage: str) -> None:
        if self.expired():
            raise ComparisonTimeout(f'Comparison exceeded {self.seconds}s during {stage}')


def check(deadline: Deadline | None, stage: str) -> None:
    """Check an optional deadline."""
    if deadline is not None:
        deadline.check(stage)
