"""Cooperative timeout middleware.

The middleware derives a request context with a deadline and passes it
downstream. It writes no response of its own and starts no threads; downstream
code must watch the context. When the derived context ends with
:class:`DeadlineExceeded`, an optional hook is told about it for metrics or logs.
"""

from __future__ import annotations

import json
import sys
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from zkit.context import DeadlineExceeded, with_deadline
from zkit.http import Handler, Middleware, Request, Response

TimeoutFunc = Callable[[Request], Optional[float]]


@dataclass(frozen=True)
class TimeoutInfo:
    """Describes a timeout event; times are in seconds."""

    timeout: float
    deadline: float
    elapsed: float


TimeoutHandler = Callable[[Request, TimeoutInfo], None]

_stderr_lock = threading.Lock()


def _report_hook_failure(request: Request, exc: BaseException) -> None:
    parts = ["zkit: timeout handler raised"]
    if request.method:
        parts.append(f" method={request.method}")
    parts.append(f" url={json.dumps(request.url)}")
    parts.append(f" value={exc}\n")
    with _stderr_lock:
        sys.stderr.write("".join(parts))


def timeout(
    duration: float,
    timeout_func: Optional[TimeoutFunc] = None,
    on_timeout: Optional[TimeoutHandler] = None,
    now: Optional[Callable[[], float]] = None,
) -> Middleware:
    """Return a middleware that bounds each request's context by a deadline.

    ``duration`` is the default timeout in seconds. ``timeout_func``, if given,
    decides per request: None skips the middleware, otherwise its value is the
    timeout. A timeout <= 0 also skips it, and an existing earlier or equal
    deadline on the request context is never extended. ``on_timeout`` runs after
    downstream returns, only when a derived context ended by its deadline; an
    exception it raises is reported to stderr and swallowed. ``now`` replaces the
    clock (epoch seconds) used for the deadline and elapsed time.
    """
    clock = now or time.time

    def middleware(next_handler: Handler) -> Handler:
        if next_handler is None:
            raise TypeError("next handler must not be None")

        def handler(request: Request) -> Response:
            limit = duration
            if timeout_func is not None:
                limit = timeout_func(request)
                if limit is None:
                    return next_handler(request)
            if limit <= 0:
                return next_handler(request)

            parent = request.context
            start = clock()
            wanted = start + limit
            existing = parent.deadline()
            if existing is not None and wanted >= existing:
                return next_handler(request)

            ctx = with_deadline(parent, wanted)
            try:
                derived = request.with_context(ctx)
                response = next_handler(derived)
                if on_timeout is not None and isinstance(ctx.err(), DeadlineExceeded):
                    info = TimeoutInfo(timeout=limit, deadline=wanted, elapsed=clock() - start)
                    try:
                        on_timeout(derived, info)
                    except Exception as exc:
                        _report_hook_failure(derived, exc)
                return response
            finally:
                ctx.cancel()

        return handler

    return middleware