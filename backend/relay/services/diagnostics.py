import logging
from typing import Any

from pydantic import ValidationError

from relay.schemas.ingest import WebhookPayload

logger = logging.getLogger(__name__)


def summarize(payload: Any) -> list[str]:
    """
    Describe the entries, changes and WhatsApp messages of a Meta event.

    Returns an empty list for payloads that do not look like a Meta envelope.
    """
    if not isinstance(payload, dict):
        return []
    try:
        event = WebhookPayload.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Payload does not match the Meta envelope: {e.error_count()} errors")
        return []

    if not event.entry:
        return []

    lines = [f"Webhook contains {len(event.entry)} entries"]
    for i, entry in enumerate(event.entry):
        lines.append(f"Entry {i} ID: {entry.id}")
        if not entry.changes:
            continue
        lines.append(f"Entry {i} has {len(entry.changes)} changes")
        for j, change in enumerate(entry.changes):
            lines.append(f"Change {j} field: {change.field}")
            value = change.value
            if value is None or value.messaging_product != "whatsapp":
                continue
            lines.append("WhatsApp message detected!")
            if value.messages:
                lines.append(f"Contains {len(value.messages)} messages")
                for k, msg in enumerate(value.messages):
                    lines.append(f"Message {k} type: {msg.type}")
    return lines


def log_summary(payload: Any) -> None:
    for line in summarize(payload):
        logger.info(line)
