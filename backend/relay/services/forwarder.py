import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

from relay.core.config import Settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Workflow-Api-Key"


class ConfigurationError(Exception):
    pass


class ForwardingError(Exception):
    def __init__(self, message: str, response: httpx.Response | None = None):
        super().__init__(message)
        self.response = response


@dataclass(frozen=True)
class ForwardResult:
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""


def mask_url(url: str) -> str:
    """Hide the last path segment, which usually carries the workflow id."""
    return re.sub(r"/[^/]+$", "/***", url)


def new_client() -> httpx.AsyncClient:
    # 3xx responses are followed, not reported as failures
    return httpx.AsyncClient(follow_redirects=True)


def check_configuration(settings: Settings) -> None:
    if not settings.retool_api_key:
        raise ConfigurationError("RETOOL_API_KEY is not configured")
    if not settings.retool_webhook_url:
        raise ConfigurationError("RETOOL_WEBHOOK_URL is not configured")


async def forward_event(
    payload: Any, settings: Settings, client: httpx.AsyncClient | None = None
) -> ForwardResult:
    """
    POST the payload as JSON to the workflow endpoint. Makes exactly one attempt.

    Raises ConfigurationError before any network I/O when the endpoint or
    its API key is missing, and ForwardingError on network errors, timeouts,
    requests that cannot be built and non-2xx responses.
    """
    check_configuration(settings)

    if client is None:
        async with new_client() as own_client:
            return await forward_event(payload, settings, own_client)

    logger.info(f"Forwarding to Retool at: {mask_url(settings.retool_webhook_url)}")
    headers = {
        "Content-Type": "application/json",
        API_KEY_HEADER: settings.retool_api_key,
    }

    try:
        r = await client.post(
            settings.retool_webhook_url,
            json=payload,
            headers=headers,
            timeout=settings.forward_timeout,
        )
    except (httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError) as exc:
        raise ForwardingError(f"{type(exc).__name__}: {exc}") from exc

    if not 200 <= r.status_code < 300:
        raise ForwardingError(f"Retool responded with status {r.status_code}", response=r)

    return ForwardResult(status_code=r.status_code, headers=dict(r.headers), body=r.text)
