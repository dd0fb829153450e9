"""A handler that renders values handed to it as named snapshots.

The items are copied when the handler is built, so later changes to the
caller's mapping do not show up. Each value is serialised on every request;
a value that fails to serialise is reported alongside the others instead of
failing the whole response.
"""

from __future__ import annotations

import dataclasses
import json
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from zkit.http import Handler, Request, Response
from zkit.ops.common import (
    _JSON_ESCAPES,
    JSON_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
    Format,
    format_from_request,
)

DEFAULT_MAX_BYTES = 4 << 20

_TOO_LARGE_JSON = '{"ok":false,"error":"response too large"}'
_TOO_LARGE_TEXT = "response too large\n"


class AtomicValue:
    """A thread-safe holder for a copy-on-write snapshot value.

    ``load`` returns None until something has been stored. Storing None is
    refused, and every stored value must keep the type of the first one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Any = None

    def store(self, value: Any) -> None:
        """Replace the held value."""
        if value is None:
            raise ValueError("cannot store None in an AtomicValue")
        with self._lock:
            if self._value is not None and type(self._value) is not type(value):
                raise TypeError("store of inconsistently typed value into AtomicValue")
            self._value = value

    def load(self) -> Any:
        """Return the held value, or None when nothing was stored."""
        with self._lock:
            return self._value


@dataclass(frozen=True)
class ProvidedSnapshotError:
    """Why one item could not be rendered."""

    name: str
    error: str
    panicked: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form."""
        out: dict[str, Any] = {"name": self.name, "error": self.error}
        if self.panicked:
            out["panicked"] = True
        return out


class _HookError(Exception):
    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.cause = cause


def _escape(text: str) -> str:
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def _dumps(value: Any) -> str:
    return _escape(json.dumps(value, ensure_ascii=False, separators=(",", ":")))


def _convert(obj: Any) -> Any:
    if isinstance(obj, AtomicValue):
        return obj.load()
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        try:
            return to_dict()
        except Exception as exc:
            raise _HookError(exc) from exc
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _marshal(value: Any) -> tuple[Optional[str], str, bool]:
    """Serialise ``value``; return (raw JSON, error message, raised-by-value)."""
    try:
        if isinstance(value, AtomicValue):
            value = value.load()
        text = json.dumps(
            value,
            ensure_ascii=False,
            separators=(",", ":"),
            allow_nan=False,
            default=_convert,
        )
    except _HookError as exc:
        return None, f"panic: {exc.cause}", True
    except (TypeError, ValueError) as exc:
        return None, str(exc) or type(exc).__name__, False
    except Exception as exc:
        return None, f"panic: {exc}", True
    return _escape(text), "", False


def _build(items: Mapping[str, Any]) -> tuple[dict[str, str], list[ProvidedSnapshotError]]:
    snapshots: dict[str, str] = {}
    errors: list[ProvidedSnapshotError] = []
    for name, value in items.items():
        raw, message, panicked = _marshal(value)
        if message:
            errors.append(ProvidedSnapshotError(name=name, error=message, panicked=panicked))
        else:
            snapshots[name] = raw or "null"
    return snapshots, errors


def _json_body(
    ok: bool, error: str, snapshots: Mapping[str, str], errors: Iterable[ProvidedSnapshotError]
) -> str:
    parts = ['"ok":' + ("true" if ok else "false")]
    if error:
        parts.append('"error":' + _dumps(error))
    if snapshots:
        entries = ",".join(f"{_dumps(name)}:{raw}" for name, raw in sorted(snapshots.items()))
        parts.append('"snapshots":{' + entries + "}")
    error_list = list(errors)
    if error_list:
        parts.append('"errors":[' + ",".join(_dumps(e.to_dict()) for e in error_list) + "]")
    return "{" + ",".join(parts) + "}"


def _render_raw(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == '"' and raw[-1] == '"':
        try:
            text = json.loads(raw)
        except ValueError:
            text = None
        if isinstance(text, str):
            return text if text.endswith("\n") else text + "\n"
    try:
        return json.dumps(json.loads(raw), indent=2, ensure_ascii=False) + "\n"
    except ValueError:
        return raw + "\n"


def render_provided_snapshot_text(
    ok: bool,
    error: str,
    snapshots: Optional[Mapping[str, str]],
    errors: Optional[Iterable[ProvidedSnapshotError]],
) -> str:
    """Render a status line followed by one ``== name ==`` section per item.

    ``snapshots`` maps names to raw JSON. JSON strings are shown unquoted,
    other values indented; failed items show their error.
    """
    snapshots = snapshots or {}
    if ok:
        out = ["ok\n"]
    else:
        out = [f"error: {error}\n" if error else "error\n"]

    error_by_name = {e.name: e for e in (errors or ()) if e.name}
    names = sorted({n for n in snapshots if n} | set(error_by_name))
    for name in names:
        out.append(f"\n== {name} ==\n")
        failure = error_by_name.get(name)
        if failure is not None:
            out.append(f"error: {failure.error or 'error'}\n")
            continue
        raw = snapshots.get(name)
        if not raw:
            out.append("error\n")
            continue
        out.append(_render_raw(raw))
    return "".join(out)


def _headers(fmt: Format, allow: Optional[str]) -> dict[str, str]:
    headers = {"Cache-Control": "no-store"}
    if allow:
        headers["Allow"] = allow
    headers["Content-Type"] = JSON_CONTENT_TYPE if fmt is Format.JSON else TEXT_CONTENT_TYPE
    return headers


def _write(
    request: Request,
    fmt: Format,
    max_bytes: int,
    status: int,
    ok: bool,
    error: str,
    snapshots: Mapping[str, str],
    errors: list[ProvidedSnapshotError],
    allow: Optional[str] = None,
) -> Response:
    headers = _headers(fmt, allow)
    if request.method == "HEAD":
        return Response(status=status, headers=headers)
    if fmt is Format.JSON:
        body = _json_body(ok, error, snapshots, errors).encode("utf-8")
        if max_bytes > 0 and len(body) + 1 > max_bytes:
            status = 413
            body = _TOO_LARGE_JSON.encode("utf-8")
        return Response(status=status, headers=headers, body=body + b"\n")
    body = render_provided_snapshot_text(ok, error, snapshots, errors).encode("utf-8")
    if max_bytes > 0 and len(body) > max_bytes:
        status = 413
        body = _TOO_LARGE_TEXT.encode("utf-8")
    return Response(status=status, headers=headers, body=body)


def provided_snapshot_handler(
    items: Optional[Mapping[str, Any]],
    default_format: Format = Format.TEXT,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> Handler:
    """Return a read-only handler that renders ``items`` (GET/HEAD only).

    ``max_bytes`` caps the rendered body; a larger body is replaced by a 413
    response. A value <= 0 disables the cap. Raises ValueError for an empty name.
    """
    snapshot: dict[str, Any] = {}
    for name, value in (items or {}).items():
        if not name:
            raise ValueError("provided snapshot item has empty name")
        snapshot[name] = value
    ordered = {name: snapshot[name] for name in sorted(snapshot)}

    def handler(request: Request) -> Response:
        fmt = format_from_request(request, default_format)
        if request.method not in ("GET", "HEAD"):
            return _write(
                request, fmt, max_bytes, 405, False, "method not allowed", {}, [], allow="GET, HEAD"
            )
        snapshots, errors = _build(ordered)
        ok = not errors
        status = 200 if ok else 500
        message = "" if ok else "one or more items failed"
        return _write(request, fmt, max_bytes, status, ok, message, snapshots, errors)

    return handler