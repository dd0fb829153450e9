# zkit

Small building blocks for the operational side of an HTTP service. It uses only
the standard library.

- **Contexts** (`zkit.context`): a cancellation signal with an optional
  deadline that is passed down a call tree.
- **Requests and responses** (`zkit.http`): plain values that the handlers
  take and return.
- **A cooperative timeout middleware** (`zkit.timeout`): it gives each request
  a context with a deadline.
- **Operational handlers** (`zkit.ops`): liveness and readiness, a log-level
  getter and setter, and a dump of snapshots you provide yourself.

## Installation

```
pip install zkit
```

Python 3.10 or later is required.

## Contexts

```python
from zkit.context import Canceled, DeadlineExceeded, background, with_cancel, with_timeout

ctx = with_timeout(background(), 0.5)   # ends 0.5 seconds from now
ctx.deadline()                          # epoch seconds, or None
ctx.wait(1.0)                           # True once the context has ended
isinstance(ctx.err(), DeadlineExceeded) # why it ended; None while live

with with_cancel(background()) as child:
    ...                                 # child.cancel() runs on exit
```

- `background()` is the shared root context. It has no deadline and never ends.
- A child never outlives the deadline of its parent. Canceling a parent cancels
  all of its children.
- `err()` returns `Canceled` or `DeadlineExceeded`. Both subclass
  `ContextError`.

## Requests, responses and handlers

A handler is any callable that takes a `zkit.http.Request` and returns a
`zkit.http.Response`. A middleware takes a handler and returns a handler.

```python
from zkit.http import Request

request = Request(method="GET", url="/readyz?format=json")
request.query_value("format")   # "json"; "" when the parameter is absent
request.has_query("format")     # True, even when the value is empty
request.with_context(ctx)       # a copy that carries another context
```

A `Response` has `status`, `headers` and `body` (bytes). `text()` decodes the
body as UTF-8, and `json()` parses it as JSON.

## Conventions of the ops handlers

- Output is plain text by default: line based and easy to grep. JSON is also
  available.
- Each handler factory takes `default_format` (`Format.TEXT` or `Format.JSON`
  from `zkit.ops.common`). A single request can override it with
  `?format=text` or `?format=json`. An unknown default falls back to text.
- Read handlers accept `GET` and `HEAD`. A `HEAD` response has no body. The
  log-level setter accepts only `POST`. Any other method gets `405` with an
  `Allow` header.
- Every response carries `Cache-Control: no-store`.

## Health

```python
from zkit.ops.common import Format
from zkit.ops.health import ReadyCheck, healthz_handler, readyz_handler, run_readyz_checks


def database_ping(context):
    # Raise to report failure, and honour the context.
    ...


healthz = healthz_handler()
readyz = readyz_handler(
    [ReadyCheck(name="database", func=database_ping, timeout=0.5)],
    default_format=Format.JSON,
)

healthz(Request()).text()   # "ok\n"
```

- `healthz` answers `200` with `ok`.
- `readyz` runs the checks in order against the request's context. It answers
  `200` when all of them pass and `503` when any of them raises or runs past its
  timeout (in seconds; `0` means no extra limit). In text form, each failure
  is written as `fail <name>: <error>`. The check list is copied when the handler
  is built. A check without a name or function raises `ValueError`.
- `run_readyz_checks(context, checks)` returns the same `ReadyzReport` without
  going through HTTP. In JSON, durations are given in nanoseconds.

## Log level

```python
from zkit.ops.log_level import LevelVar, log_level_get_handler, log_level_set_handler

level_var = LevelVar()                       # starts at info (0)
get_level = log_level_get_handler(level_var)
set_level = log_level_set_handler(level_var)

set_level(Request(method="POST", url="/log_level?level=WARNING"))
level_var.level                              # 4
get_level(Request()).text()                  # "log\tlevel\twarn\nlog\tlevel_value\t4\n"
```

Levels are integers: debug `-4`, info `0`, warn `4`, error `8`. Values in
between are named by the range they fall in (`level_name`). The setter ignores
case and surrounding whitespace, accepts `warning` and `err` as aliases, and
answers `400` for anything else (`normalize_level` raises `ValueError`). The
setter reports both the old and the new level.

## Provided snapshots

```python
from zkit.ops.provided_snapshot import AtomicValue, provided_snapshot_handler

config = AtomicValue()
config.store({"feature_x": True})

snapshots = provided_snapshot_handler(
    {"version": "1.2.3", "config": config},
    max_bytes=1 << 20,
)
```

- The items are copied when the handler is built and rendered sorted by name.
  The text form has one `== name ==` section per item. Strings are shown
  unquoted, and other values are shown as indented JSON.
- Values are serialised as JSON on every request. An `AtomicValue` is read at
  that moment. Objects with a `to_dict()` method and dataclasses are also
  accepted.
- If an item fails to serialise, the response gets status `500` and lists the
  error for that item. The other items are still rendered.
- If the body would be larger than `max_bytes` (4 MiB by default; `0` or less
  disables the limit), the handler answers `413` with `response too large`.
- An empty item name raises `ValueError`.

## Request timeouts

```python
from zkit.timeout import timeout


def record(request, info):
    print("timed out", info.timeout, info.deadline, info.elapsed)


middleware = timeout(2.0, on_timeout=record)
handler = middleware(readyz)
```

- The middleware derives a context with a deadline of now plus the timeout. It
  writes no response and starts no thread. Downstream code has to watch
  `request.context` itself.
- It never extends a deadline that is already earlier or equal. It is skipped
  when the timeout is `0` or less.
- `timeout_func(request)` can decide the timeout for each request. If it
  returns `None`, the middleware is skipped for that request.
- `on_timeout` is called after downstream returns, and only when the context
  the middleware derived ended by its deadline. If the hook raises, the error is
  written to stderr and swallowed.
- `now` replaces the clock (epoch seconds). It is mainly useful in tests.

## What zkit does not do

zkit does not choose routes, run a server or make authentication decisions.
You mount the handlers in your own framework, adapt its requests to
`zkit.http.Request`, and protect the endpoints yourself. Operational endpoints
often expose sensitive data. zkit has no endpoint for build metadata or for
process and memory statistics, and it has no command-line program.