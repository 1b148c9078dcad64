import os
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

# Environment used by the module-level app; tests build their own apps from
# explicit Settings below.
os.environ.update(
    {
        "VERIFY_TOKEN": "env-verify-token",
        "RETOOL_WEBHOOK_URL": "https://retool.test/workflows/env/startTrigger",
        "RETOOL_API_KEY": "env_api_key",
        "NODE_ENV": "test",
    }
)

from relay.core.config import Settings
from relay.main import create_app

VERIFY_TOKEN = "test-verify-token"
RETOOL_URL = "https://retool.test/workflows/wf_123/startTrigger"
RETOOL_KEY = "retool_test_key"


def _make_settings(**overrides) -> Settings:
    values = {
        "verify_token": VERIFY_TOKEN,
        "retool_webhook_url": RETOOL_URL,
        "retool_api_key": RETOOL_KEY,
        "node_env": "test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return _make_settings()


@pytest.fixture
def make_client():
    clients = []

    def _make(settings: Settings) -> TestClient:
        client = TestClient(create_app(settings))
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(settings) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def whatsapp_event() -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "102290129340398",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "messages": [
                                {"id": "wamid.1", "type": "text", "text": {"body": "hi"}},
                                {"id": "wamid.2", "type": "image"},
                            ],
                        },
                    }
                ],
            }
        ],
    }


@pytest.fixture
def make_settings():
    return _make_settings
