# georoute/core/context.py
# -*- coding: utf-8 -*-

"""
Per-request cancellation / deadline carrier.

A RequestContext is created by the caller of `compute_route` and handed to
every upstream call made on its behalf. Adapters:

    - call `raise_if_cancelled()` before sending a request,
    - use `clip_timeout(read_timeout)` so no call outlives the deadline,
    - call `raise_if_cancelled()` again once the response (or error) is back.

`cancel()` may be called from any thread.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from georoute.core.errors import CancelledError


class RequestContext:
    """
    Cancellation flag plus optional deadline.

    Parameters
    ----------
    timeout_s : float | None
        Total budget for the request, in seconds. None means no deadline.
    clock : callable
        Monotonic clock (seconds). Injectable for tests.
    """

    def __init__(
          self
        , timeout_s: Optional[float] = None
        , *
        , clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._clock = clock
        self._event = threading.Event()
        self._reason = ""
        self.deadline: Optional[float] = None
        if timeout_s is not None:
            self.deadline = clock() + float(timeout_s)

    @classmethod
    def background(cls) -> "RequestContext":
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self._reason = reason
        self._event.set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (never negative), or None."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def wait(self, timeout_s: float) -> bool:
        """
        Block up to `timeout_s` seconds or until `cancel()` is called.
        Returns True when woken by a cancel.
        """
        return self._event.wait(max(0.0, float(timeout_s)))

    def clip_timeout(self, read_timeout_s: float) -> float:
        """Return the read timeout bounded by whatever budget is left."""
        left = self.remaining()
        if left is None:
            return float(read_timeout_s)
        return max(0.001, min(float(read_timeout_s), left))

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError(self._reason or "cancelled by caller")
        if self.expired:
            raise CancelledError("request deadline exceeded")
