from zkit.http import Request
from zkit.ops.common import Format, format_from_request


def test_query_json_overrides_default_text():
    req = Request(url="http://example/x?format=json")
    assert format_from_request(req, Format.TEXT) is Format.JSON


def test_query_text_overrides_default_json():
    req = Request(url="http://example/x?format=text")
    assert format_from_request(req, Format.JSON) is Format.TEXT


def test_unknown_query_uses_default():
    req = Request(url="http://example/x?format=yaml")
    assert format_from_request(req, Format.JSON) is Format.JSON
    assert format_from_request(Request(url="/x"), Format.TEXT) is Format.TEXT


def test_invalid_default_falls_back_to_text():
    assert format_from_request(Request(url="/x"), 999) is Format.TEXT
    assert format_from_request(None, 999) is Format.TEXT


def test_none_request_uses_default():
    assert format_from_request(None, Format.JSON) is Format.JSON