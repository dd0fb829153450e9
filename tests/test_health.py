import pytest

from zkit.context import Canceled, background
from zkit.http import Request
from zkit.ops.common import Format
from zkit.ops.health import (
    ReadyCheck,
    ReadyCheckResult,
    ReadyzReport,
    healthz_handler,
    readyz_handler,
    run_readyz_checks,
)

HEALTHZ = "http://example/healthz"
READYZ = "http://example/readyz"


def _canceled(ctx):
    raise Canceled()


def _fine(ctx):
    return None


def test_healthz_text_ok():
    resp = healthz_handler()(Request(url=HEALTHZ))
    assert resp.status == 200
    assert resp.headers["Content-Type"].startswith("text/plain")
    assert resp.text() == "ok\n"


def test_healthz_json_ok():
    resp = healthz_handler(Format.JSON)(Request(url=HEALTHZ))
    assert resp.status == 200
    assert resp.headers["Content-Type"].startswith("application/json")
    assert resp.json()["ok"] is True


def test_healthz_query_format_overrides_option():
    resp = healthz_handler(Format.JSON)(Request(url=HEALTHZ + "?format=text"))
    assert resp.status == 200
    assert resp.headers["Content-Type"].startswith("text/plain")
    assert resp.text() == "ok\n"


def test_healthz_query_json_overrides_default_text():
    resp = healthz_handler()(Request(url=HEALTHZ + "?format=json"))
    assert resp.status == 200
    assert resp.headers["Content-Type"].startswith("application/json")
    assert resp.json()["ok"] is True


def test_healthz_method_not_allowed():
    resp = healthz_handler()(Request(method="POST", url=HEALTHZ))
    assert resp.status == 405
    assert resp.headers["Allow"] == "GET, HEAD"
    assert resp.text() == "method not allowed\n"


def test_healthz_head_no_body():
    resp = healthz_handler()(Request(method="HEAD", url=HEALTHZ))
    assert resp.status == 200
    assert resp.body == b""


def test_healthz_cache_control_no_store():
    resp = healthz_handler()(Request(url=HEALTHZ))
    assert resp.headers["Cache-Control"] == "no-store"


def test_healthz_invalid_format_falls_back_to_text():
    resp = healthz_handler(999)(Request(url=HEALTHZ))
    assert resp.headers["Content-Type"].startswith("text/plain")


def test_readyz_no_checks_ok():
    resp = readyz_handler(None)(Request(url=READYZ))
    assert resp.status == 200
    assert resp.text() == "ok\n"


def test_readyz_fail_503_text():
    resp = readyz_handler([ReadyCheck("dep-a", _canceled)])(Request(url=READYZ))
    assert resp.status == 503
    assert "fail dep-a" in resp.text()


def test_readyz_fail_503_json():
    h = readyz_handler([ReadyCheck("dep-a", _canceled)], Format.JSON)
    resp = h(Request(url=READYZ))
    assert resp.status == 503
    rep = resp.json()
    assert rep["ok"] is False
    assert len(rep["checks"]) == 1
    assert rep["checks"][0]["name"] == "dep-a"
    assert rep["checks"][0]["ok"] is False


def test_readyz_check_timeout():
    def slow(ctx):
        ctx.wait(2.0)
        raise ctx.err()

    h = readyz_handler([ReadyCheck("slow", slow, timeout=0.05)], Format.JSON)
    resp = h(Request(url=READYZ))
    assert resp.status == 503
    checks = resp.json()["checks"]
    assert len(checks) == 1
    assert checks[0]["timed_out"] is True


def test_readyz_check_exception_becomes_failure():
    def boom(ctx):
        raise RuntimeError("x")

    resp = readyz_handler([ReadyCheck("boom", boom)])(Request(url=READYZ))
    assert resp.status == 503
    assert "fail boom: x" in resp.text()


def test_readyz_method_not_allowed_json_shape_consistent():
    h = readyz_handler([ReadyCheck("ok", _fine)])
    resp = h(Request(method="POST", url=READYZ + "?format=json"))
    assert resp.status == 405
    assert resp.headers["Allow"] == "GET, HEAD"
    rep = resp.json()
    assert rep["ok"] is False
    assert len(rep["checks"]) == 1
    assert rep["checks"][0]["name"] == "method"
    assert rep["checks"][0]["ok"] is False


def test_readyz_query_format_overrides_option():
    h = readyz_handler([ReadyCheck("dep-a", _canceled)], Format.TEXT)
    resp = h(Request(url=READYZ + "?format=json"))
    assert resp.status == 503
    assert resp.headers["Content-Type"].startswith("application/json")
    rep = resp.json()
    assert rep["ok"] is False
    assert rep["checks"][0]["name"] == "dep-a"
    assert rep["checks"][0]["ok"] is False


def test_readyz_head_no_body():
    resp = readyz_handler([ReadyCheck("ok", _fine)])(Request(method="HEAD", url=READYZ))
    assert resp.status == 200
    assert resp.body == b""


def test_readyz_cache_control_no_store():
    resp = readyz_handler(None)(Request(url=READYZ))
    assert resp.headers["Cache-Control"] == "no-store"


def test_readyz_invalid_format_falls_back_to_text():
    resp = readyz_handler(None, 999)(Request(url=READYZ))
    assert resp.headers["Content-Type"].startswith("text/plain")


def test_readyz_invalid_check_rejected():
    with pytest.raises(ValueError):
        readyz_handler([ReadyCheck("", _fine)])
    with pytest.raises(ValueError):
        readyz_handler([ReadyCheck("a", None)])


def test_readyz_check_list_is_snapshotted():
    checks = [ReadyCheck("a", _canceled)]
    h = readyz_handler(checks)
    checks[0] = ReadyCheck("b", _canceled)
    resp = h(Request(url=READYZ))
    assert resp.status == 503
    body = resp.text()
    assert "fail a" in body
    assert "fail b" not in body


def test_run_readyz_checks_keeps_order_and_overall_status():
    rep = run_readyz_checks(background(), [ReadyCheck("first", _fine), ReadyCheck("second", _canceled)])
    assert [c.name for c in rep.checks] == ["first", "second"]
    assert [c.ok for c in rep.checks] == [True, False]
    assert rep.ok is False
    assert rep.duration >= 0


def test_run_readyz_checks_none_context_all_pass():
    rep = run_readyz_checks(None, [ReadyCheck("a", _fine)])
    assert rep.ok is True
    assert rep.checks[0].error == ""


def test_to_dict_omits_empty_fields():
    result = ReadyCheckResult(name="a", ok=True)
    assert set(result.to_dict()) == {"name", "ok", "duration"}
    report = ReadyzReport(ok=True)
    assert "checks" not in report.to_dict()