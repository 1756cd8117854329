"""
=============================================================================
REQUEST COUNTER
=============================================================================

How many more responses the server may deliver before it stops.

    handler threads                      controller (main thread)
    ───────────────                      ────────────────────────
    counter.consume()  ─┐
    counter.consume()  ─┼──► Condition ──► counter.wait_exhausted()
    counter.consume()  ─┘     notify          returns once value <= 0

Every mutation happens under one lock and wakes any waiter, so the
controller blocks instead of spinning on the value.

The counter only goes down. It may go below zero when requests that were
already in flight finish after the budget ran out; that is expected and
"exhausted" simply means "<= 0".

=============================================================================
"""

import logging
import threading
from typing import Optional


logger = logging.getLogger(__name__)


class RequestCounter:
    """
    Thread-safe countdown of remaining deliveries.

    Usage:
        counter = RequestCounter(2)
        counter.consume()          # True, 1 left
        counter.consume()          # True, 0 left
        counter.wait_exhausted()   # returns immediately
    """

    def __init__(self, initial: int):
        self._value = initial
        self._condition = threading.Condition()

    def remaining(self) -> int:
        with self._condition:
            return self._value

    @property
    def exhausted(self) -> bool:
        return self.remaining() <= 0

    def consume(self) -> bool:
        """
        Record one delivered response.

        Returns:
            True if budget remained before this call, False if the counter
            was already at or below zero.
        """
        with self._condition:
            had_budget = self._value > 0
            self._value -= 1
            remaining = self._value
            self._condition.notify_all()

        logger.debug(f"Request counted, {remaining} remaining")
        return had_budget

    def wait_exhausted(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the counter reaches zero or below.

        Args:
            timeout: Seconds to wait. None = wait forever.

        Returns:
            True if exhausted, False if the timeout expired first.
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._value <= 0, timeout)

    def __repr__(self) -> str:
        return f"RequestCounter(remaining={self.remaining()})"
