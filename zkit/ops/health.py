"""Liveness and readiness handlers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from zkit.context import Context, DeadlineExceeded, background, with_timeout
from zkit.http import Handler, Request, Response
from zkit.ops.common import Format, _respond, format_from_request

CheckFunc = Callable[[Context], None]

_READ_METHODS = ("GET", "HEAD")
_READ_ALLOW = "GET, HEAD"


def _nanos(seconds: float) -> int:
    return int(round(seconds * 1e9))


@dataclass(frozen=True)
class ReadyCheck:
    """A named readiness check.

    ``func`` receives a context and raises to report failure; it should be fast
    and honour the context. ``timeout`` (seconds) adds a per-check limit when > 0.
    """

    name: str
    func: Optional[CheckFunc]
    timeout: float = 0.0


@dataclass
class ReadyCheckResult:
    """Outcome of one check; ``duration`` is in seconds."""

    name: str
    ok: bool = False
    duration: float = 0.0
    error: str = ""
    timed_out: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; the duration is given in nanoseconds."""
        out: dict[str, Any] = {"name": self.name, "ok": self.ok, "duration": _nanos(self.duration)}
        if self.error:
            out["error"] = self.error
        if self.timed_out:
            out["timed_out"] = True
        return out


@dataclass
class ReadyzReport:
    """Point-in-time readiness report; ``duration`` is in seconds."""

    ok: bool
    duration: float = 0.0
    checks: list[ReadyCheckResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; durations are given in nanoseconds."""
        out: dict[str, Any] = {"ok": self.ok, "duration": _nanos(self.duration)}
        if self.checks:
            out["checks"] = [c.to_dict() for c in self.checks]
        return out


def _health_response(request: Request, fmt: Format, status: int, ok: bool, error: str = "") -> Response:
    payload: dict[str, Any] = {"ok": ok}
    if error:
        payload["error"] = error
    if status == 200 and ok:
        text = "ok\n"
    else:
        text = f"{error}\n" if error else "error\n"
    allow = _READ_ALLOW if status == 405 else None
    return _respond(request, fmt, status, payload, text, allow=allow)


def healthz_handler(default_format: Format = Format.TEXT) -> Handler:
    """Return a liveness handler: 200 for GET/HEAD, 405 for anything else."""

    def handler(request: Request) -> Response:
        fmt = format_from_request(request, default_format)
        if request.method not in _READ_METHODS:
            return _health_response(request, fmt, 405, ok=False, error="method not allowed")
        return _health_response(request, fmt, 200, ok=True)

    return handler


def _ready_text(report: ReadyzReport) -> str:
    if report.ok:
        return "ok\n"
    lines = []
    for check in report.checks:
        if check.ok:
            continue
        if check.error:
            lines.append(f"fail {check.name}: {check.error}\n")
        else:
            lines.append(f"fail {check.name}\n")
    return "".join(lines)


def _ready_response(request: Request, fmt: Format, status: int, report: ReadyzReport) -> Response:
    allow = _READ_ALLOW if status == 405 else None
    return _respond(request, fmt, status, report.to_dict(), _ready_text(report), allow=allow)


def readyz_handler(checks: Optional[Iterable[ReadyCheck]], default_format: Format = Format.TEXT) -> Handler:
    """Return a readiness handler that runs ``checks`` in order.

    Responds 200 when all pass and 503 when any fails or times out; GET/HEAD
    only. The checks are copied, so later changes to the caller's list have no
    effect. Raises ValueError for a check without a name or function.
    """
    snapshot = tuple(checks or ())
    for index, check in enumerate(snapshot):
        if not check.name:
            raise ValueError(f"ready check[{index}] has empty name")
        if check.func is None:
            raise ValueError(f"ready check[{index}] {check.name!r} has no function")

    def handler(request: Request) -> Response:
        fmt = format_from_request(request, default_format)
        if request.method not in _READ_METHODS:
            report = ReadyzReport(
                ok=False,
                checks=[ReadyCheckResult(name="method", ok=False, error="method not allowed")],
            )
            return _ready_response(request, fmt, 405, report)
        report = run_readyz_checks(request.context, snapshot)
        return _ready_response(request, fmt, 200 if report.ok else 503, report)

    return handler


def _run_one(parent: Context, check: ReadyCheck) -> ReadyCheckResult:
    result = ReadyCheckResult(name=check.name)
    start = time.monotonic()
    ctx = with_timeout(parent, check.timeout) if check.timeout > 0 else parent
    try:
        if check.func is None:
            result.error = "nil check func"
        else:
            check.func(ctx)
            result.ok = True
    except Exception as exc:
        result.ok = False
        result.error = str(exc) or type(exc).__name__
    result.duration = time.monotonic() - start
    if isinstance(ctx.err(), DeadlineExceeded):
        result.timed_out = True
        result.ok = False
        if not result.error:
            result.error = "timeout"
    if ctx is not parent:
        ctx.cancel()
    return result


def run_readyz_checks(context: Optional[Context], checks: Iterable[ReadyCheck]) -> ReadyzReport:
    """Run ``checks`` one after another and return the report."""
    parent = context if context is not None else background()
    start = time.monotonic()
    results = [_run_one(parent, check) for check in checks]
    return ReadyzReport(
        ok=all(r.ok for r in results),
        duration=time.monotonic() - start,
        checks=results,
    )