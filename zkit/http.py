"""Minimal request and response values for handlers and middleware.

A handler is any callable that takes a :class:`Request` and returns a
:class:`Response`; a middleware takes a handler and returns a handler.
"""

from __future__ import annotations

import dataclasses
import json as _json
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import parse_qs, urlsplit

from zkit.context import Context, background


@dataclass(frozen=True)
class Request:
    """An incoming request with its method, URL and context."""

    method: str = "GET"
    url: str = "/"
    context: Context = field(default_factory=background)
    headers: dict[str, str] = field(default_factory=dict)

    def _query(self) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self.url).query, keep_blank_values=True)

    def query_value(self, name: str) -> str:
        """Return the first value of query parameter ``name``, or "" if absent."""
        values = self._query().get(name)
        return values[0] if values else ""

    def has_query(self, name: str) -> bool:
        """Return True if query parameter ``name`` is present, even when empty."""
        return name in self._query()

    def with_context(self, context: Context) -> "Request":
        """Return a copy of this request carrying ``context``."""
        return dataclasses.replace(self, context=context)


@dataclass
class Response:
    """A complete response: status, headers and body bytes."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def text(self) -> str:
        """Return the body decoded as UTF-8."""
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Return the body parsed as JSON."""
        return _json.loads(self.body)


Handler = Callable[[Request], Response]
Middleware = Callable[[Handler], Handler]