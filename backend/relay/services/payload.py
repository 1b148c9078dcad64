import json
import logging
from typing import Any
from urllib.parse import parse_qs

from fastapi import Request

logger = logging.getLogger(__name__)


class InvalidBody(Exception):
    pass


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def _is_json(content_type: str) -> bool:
    return content_type == "application/json" or content_type.endswith("+json")


def decode_body(raw: bytes, content_type: str | None) -> Any:
    """
    Decode a request body according to its content type.

    JSON documents and url-encoded forms become Python objects, text/* stays
    a string and anything else is returned as bytes. Raise InvalidBody when
    the body is empty or is malformed JSON.
    """
    if not raw:
        raise InvalidBody("Empty request body")

    media_type = (content_type or "").split(";")[0].strip().lower()
    if _is_json(media_type):
        try:
            payload = json.loads(raw, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            raise InvalidBody(f"Malformed JSON: {e}") from e
        if payload is None:
            raise InvalidBody("Empty request body")
        return payload

    if media_type == "application/x-www-form-urlencoded":
        form = parse_qs(raw.decode("utf-8", errors="replace"), keep_blank_values=True)
        return {k: v[0] if len(v) == 1 else v for k, v in form.items()}

    if media_type.startswith("text/"):
        return raw.decode("utf-8", errors="replace")

    return raw


async def read_payload(request: Request) -> Any:
    raw = await request.body()
    return decode_body(raw, request.headers.get("content-type"))
