#!/usr/bin/env python3

import json
import secrets
import sys

import httpx

SAMPLE_EVENT = {
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
                            {"from": "15551234567", "id": "wamid.test", "type": "text",
                             "text": {"body": "hello"}}
                        ],
                    },
                }
            ],
        }
    ],
}

USAGE = (
    "Usage:\n"
    "  send_event.py verify <base_url> <verify_token> [challenge]\n"
    "  send_event.py event <base_url> [payload_json]"
)


def send_verification(base_url: str, token: str, challenge: str | None = None) -> httpx.Response:
    """Play Meta's subscription handshake against a running relay."""
    params = {
        "hub.mode": "subscribe",
        "hub.verify_token": token,
        "hub.challenge": challenge or secrets.token_hex(8),
    }
    return httpx.get(f"{base_url.rstrip('/')}/api/webhook", params=params, timeout=10)


def send_event(base_url: str, payload: dict) -> httpx.Response:
    return httpx.post(f"{base_url.rstrip('/')}/api/webhook", json=payload, timeout=30)


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(USAGE)
        sys.exit(1)

    command, base_url = sys.argv[1], sys.argv[2]
    if command == "verify" and len(sys.argv) in (4, 5):
        r = send_verification(base_url, sys.argv[3], sys.argv[4] if len(sys.argv) == 5 else None)
    elif command == "event" and len(sys.argv) in (3, 4):
        try:
            payload = json.loads(sys.argv[3]) if len(sys.argv) == 4 else SAMPLE_EVENT
        except json.JSONDecodeError:
            print("Error: Payload must be valid JSON", file=sys.stderr)
            sys.exit(1)
        r = send_event(base_url, payload)
    else:
        print(USAGE)
        sys.exit(1)

    print(f"{r.status_code} {r.text}")
