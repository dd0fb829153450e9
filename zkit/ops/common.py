"""Shared pieces of the operational handlers: output format and response writing.

The handlers here are meant to be mounted into an existing routing tree. They
choose no paths, make no authentication decisions and manage no servers.
Output is text by default, or JSON; ``?format=text`` or ``?format=json`` on the
request overrides the configured default.
"""

from __future__ import annotations

import enum
import json
from typing import Any, Optional

from zkit.http import Request, Response

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


class Format(enum.IntEnum):
    """Response rendering format."""

    TEXT = 0
    JSON = 1


def _coerce_format(value: Any) -> Format:
    try:
        return Format(value)
    except (ValueError, TypeError):
        return Format.TEXT


def format_from_request(request: Optional[Request], default: Any) -> Format:
    """Pick the format from ``?format=`` or fall back to ``default``.

    An unknown default falls back to text.
    """
    fallback = _coerce_format(default)
    if request is None:
        return fallback
    requested = request.query_value("format")
    if requested == "json":
        return Format.JSON
    if requested == "text":
        return Format.TEXT
    return fallback


def _encode_json(payload: Any) -> bytes:
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    for raw, escaped in _JSON_ESCAPES:
        text = text.replace(raw, escaped)
    return (text + "\n").encode("utf-8")


def _respond(
    request: Request,
    fmt: Format,
    status: int,
    payload: Any,
    text: str,
    *,
    allow: Optional[str] = None,
    body_on_head: bool = False,
) -> Response:
    headers = {"Cache-Control": "no-store"}
    if allow:
        headers["Allow"] = allow
    if fmt is Format.JSON:
        headers["Content-Type"] = JSON_CONTENT_TYPE
        body = _encode_json(payload)
    else:
        headers["Content-Type"] = TEXT_CONTENT_TYPE
        body = text.encode("utf-8")
    if request.method == "HEAD" and not body_on_head:
        body = b""
    return Response(status=status, headers=headers, body=body)