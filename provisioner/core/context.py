"""Caller-supplied cancellation and deadlines.

Every blocking provider call takes a ``Context``. Cancelling it from another
thread wakes any pending ``sleep`` immediately.
"""

from __future__ import annotations

import threading
import time

from provisioner.core.errors import DeadlineExceeded, OperationCancelled


class Context:
    def __init__(
        self,
        timeout: float | None = None,
        *,
        _event: threading.Event | None = None,
        _deadline: float | None = None,
    ):
        self._event = _event or threading.Event()
        self._deadline = _deadline
        if timeout is not None:
            own = time.monotonic() + timeout
            self._deadline = own if self._deadline is None else min(self._deadline, own)

    @classmethod
    def background(cls) -> Context:
        """A context that is never cancelled and has no deadline."""
        return cls()

    def child(self, timeout: float | None = None) -> Context:
        """Derive a context that shares this one's cancellation.

        The child's deadline is the earlier of the parent's and ``timeout``.
        """
        return Context(timeout, _event=self._event, _deadline=self._deadline)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def sleep(self, seconds: float) -> bool:
        """Block for ``seconds`` unless the context finishes first.

        Returns True if the full interval elapsed, False if the context was
        cancelled or hit its deadline.
        """
        if self.done():
            return False
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            return False
        if self._event.wait(seconds):
            return False
        return not self.expired

    def error(self, instance_id: str | None = None) -> OperationCancelled:
        if self.cancelled:
            return OperationCancelled(instance_id)
        return DeadlineExceeded(instance_id)

    def check(self, instance_id: str | None = None) -> None:
        """Raise the matching cancellation error if the context is done."""
        if self.done():
            raise self.error(instance_id)


def ensure_context(ctx: Context | None) -> Context:
    return ctx if ctx is not None else Context.background()
