import pytest

from relay.services.payload import InvalidBody, decode_body


@pytest.mark.parametrize(
    "content_type",
    ["application/json", "application/json; charset=utf-8", "application/vnd.meta+json"],
)
def test_json(content_type):
    assert decode_body(b'{"object": "page"}', content_type) == {"object": "page"}


def test_form():
    body = b"object=page&tag=a&tag=b&empty="
    assert decode_body(body, "application/x-www-form-urlencoded") == {
        "object": "page",
        "tag": ["a", "b"],
        "empty": "",
    }


def test_text():
    assert decode_body(b"hello", "text/plain; charset=utf-8") == "hello"


@pytest.mark.parametrize("content_type", [None, "application/octet-stream"])
def test_raw(content_type):
    assert decode_body(b"\x00\x01", content_type) == b"\x00\x01"


@pytest.mark.parametrize(
    "body,content_type",
    [(b"", "application/json"), (b"", None), (b"null", "application/json"), (b"{", "application/json")],
)
def test_invalid(body, content_type):
    with pytest.raises(InvalidBody):
        decode_body(body, content_type)


@pytest.mark.parametrize("body", [b"NaN", b'{"v": Infinity}', b"[" * 100000 + b"]" * 100000])
def test_rejects_non_finite_and_deep_json(body):
    with pytest.raises(InvalidBody):
        decode_body(body, "application/json")
