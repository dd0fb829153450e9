"""Cancellation and deadline propagation for request-scoped work.

Deadlines are wall-clock timestamps in seconds since the epoch (as returned by
``time.time()``); timeouts are durations in seconds.
"""

from __future__ import annotations

import threading
import time
from typing import Optional


class ContextError(Exception):
    """Base class for the reasons a context ends."""


class Canceled(ContextError):
    """The context was canceled explicitly or by its parent."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceeded(ContextError):
    """The context's deadline passed."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class Context:
    """A cancellation signal with an optional deadline, shared down a call tree.

    Build contexts with :func:`background`, :func:`with_cancel`,
    :func:`with_deadline` and :func:`with_timeout`. A root context (one without
    a parent) cannot be canceled. A child never outlives its parent's deadline,
    and canceling a parent cancels all of its children.
    """

    def __init__(self, parent: Optional["Context"] = None, deadline: Optional[float] = None) -> None:
        if parent is not None:
            inherited = parent.deadline()
            if inherited is not None and (deadline is None or inherited <= deadline):
                deadline = inherited
        self._parent = parent
        self._deadline = deadline
        self._cancellable = parent is not None
        self._may_finish = self._cancellable or deadline is not None
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: Optional[ContextError] = None
        self._children: set[Context] = set()
        if parent is not None and parent._may_finish:
            parent._attach(self)

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()

    def deadline(self) -> Optional[float]:
        """Return the deadline as an epoch timestamp, or None when there is none."""
        return self._deadline

    def done(self) -> bool:
        """Return True once the context has ended."""
        return self.err() is not None

    def err(self) -> Optional[ContextError]:
        """Return why the context ended, or None while it is still live."""
        with self._lock:
            error = self._error
        if error is None and self._deadline is not None and time.time() >= self._deadline:
            self._finish(DeadlineExceeded())
            with self._lock:
                error = self._error
        return error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the context ends or ``timeout`` seconds pass.

        Returns True if the context ended, False if the wait timed out first.
        """
        end = None if timeout is None else time.monotonic() + timeout
        while True:
            if self.err() is not None:
                return True
            remaining: Optional[float] = None
            if self._deadline is not None:
                remaining = max(0.0, self._deadline - time.time())
            if end is not None:
                left = end - time.monotonic()
                if left <= 0:
                    return False
                remaining = left if remaining is None else min(remaining, left)
            self._event.wait(remaining)

    def cancel(self) -> None:
        """End the context with :class:`Canceled`; a no-op on roots and ended contexts."""
        if not self._cancellable:
            return
        if self.err() is None:
            self._finish(Canceled())

    def _finish(self, error: ContextError) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = error
            children = list(self._children)
            self._children.clear()
            self._event.set()
        for child in children:
            child._finish(error)
        if self._parent is not None:
            self._parent._detach(self)

    def _attach(self, child: "Context") -> None:
        error = self.err()
        if error is None:
            with self._lock:
                if self._error is None:
                    self._children.add(child)
                    return
                error = self._error
        child._finish(error)

    def _detach(self, child: "Context") -> None:
        with self._lock:
            self._children.discard(child)


_BACKGROUND = Context()


def background() -> Context:
    """Return the shared root context: no deadline, never ends."""
    return _BACKGROUND


def _require_parent(parent: Optional[Context]) -> Context:
    if parent is None:
        raise TypeError("cannot derive a context from a None parent")
    return parent


def with_cancel(parent: Context) -> Context:
    """Derive a child context that can be canceled independently."""
    return Context(_require_parent(parent))


def with_deadline(parent: Context, deadline: float) -> Context:
    """Derive a child that ends at ``deadline`` or at the parent's earlier deadline."""
    return Context(_require_parent(parent), deadline)


def with_timeout(parent: Context, timeout: float) -> Context:
    """Derive a child that ends ``timeout`` seconds from now."""
    return with_deadline(parent, time.time() + timeout)