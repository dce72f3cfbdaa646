"""Cancellation and deadline carrier threaded through storage operations."""

from __future__ import annotations

import threading
import time

from kvbucket.exceptions import CancelledError, DeadlineExceededError


class Context:
    """Execution context for a storage call.

    A context is cancelled explicitly with :meth:`cancel` or implicitly once its
    deadline passes. Children created with :meth:`with_timeout` are cancelled
    together with their parent and never outlive its deadline.

    Usage:
        ctx = Context(timeout=5.0)
        storage.put("runs/1/log.txt", b"hello", ctx=ctx)
    """

    def __init__(self, timeout: float | None = None, parent: "Context | None" = None) -> None:
        self._cancelled = threading.Event()
        self._parent = parent
        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

    @classmethod
    def background(cls) -> "Context":
        """Return a context that is never cancelled and has no deadline."""
        return cls()

    def with_timeout(self, timeout: float) -> "Context":
        return Context(timeout=timeout, parent=self)

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def err(self) -> CancelledError | None:
        """Return the error describing why the context is done, if it is."""
        if self.cancelled:
            return CancelledError("context cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceededError("context deadline exceeded")
        return None

    @property
    def done(self) -> bool:
        return self.err() is not None

    def check(self) -> None:
        error = self.err()
        if error is not None:
            raise error


def ensure_context(ctx: Context | None) -> Context:
    return ctx if ctx is not None else Context.background()


__all__ = ["Context", "ensure_context"]
