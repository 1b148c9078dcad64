from typing import Any

from pydantic import BaseModel, Field

# Envelope of a Meta webhook event. Only used for diagnostics, so every
# field is optional and unknown fields are kept.


class Message(BaseModel, extra="allow"):
    type: str | None = None


class ChangeValue(BaseModel, extra="allow"):
    messaging_product: str | None = None
    messages: list[Message] = Field(default_factory=list)


class Change(BaseModel, extra="allow"):
    field: str | None = None
    value: ChangeValue | None = None


class Entry(BaseModel, extra="allow"):
    id: Any = None
    changes: list[Change] = Field(default_factory=list)


class WebhookPayload(BaseModel, extra="allow"):
    object: Any = Field(None, description="Subscription type, e.g. page")
    entry: list[Entry] = Field(default_factory=list)
