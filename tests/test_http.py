from zkit.context import background, with_cancel
from zkit.http import Request, Response


def test_query_value_returns_first_value():
    req = Request(url="http://example.com/p?a=one&a=two&b=x")
    assert req.query_value("a") == "one"
    assert req.query_value("b") == "x"


def test_query_value_missing_is_empty():
    req = Request(url="http://example.com/p")
    assert req.query_value("a") == ""
    assert req.has_query("a") is False


def test_has_query_true_for_blank_value():
    req = Request(url="http://example.com/p?timeout=")
    assert req.has_query("timeout") is True
    assert req.query_value("timeout") == ""


def test_with_context_returns_copy():
    req = Request(method="POST", url="/x?y=1")
    ctx = with_cancel(background())
    other = req.with_context(ctx)
    assert other.context is ctx
    assert other.method == "POST"
    assert other.url == "/x?y=1"
    assert req.context is background()


def test_default_request_uses_background():
    req = Request()
    assert req.context is background()
    assert req.method == "GET"


def test_response_text_and_json():
    resp = Response(status=201, body=b'{"ok":true}\n')
    assert resp.text() == '{"ok":true}\n'
    assert resp.json() == {"ok": True}
    assert resp.status == 201