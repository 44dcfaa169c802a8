"""Live-stream control protocol.

Clients send JSON objects:
- {"subscribe": "<channel>"}  → server replies "Subscribed to <channel>"
- {"unsubscribe": true}       → server replies "Unsubscribed from <channel>"

Anything that isn't a JSON object, or a subscribe whose value isn't a
string, raises MalformedControlMessage; the handler logs it and keeps
the connection open. Objects without a known key are ignored.
"""

import json
from dataclasses import dataclass
from typing import Optional

SUBSCRIBE = "subscribe"
UNSUBSCRIBE = "unsubscribe"


class MalformedControlMessage(Exception):
    """Raised for client messages that can't be interpreted."""
    pass


@dataclass(frozen=True)
class ControlMessage:
    action: str
    channel: Optional[str] = None


def parse_control_message(raw: str) -> Optional[ControlMessage]:
    """Parse one client frame. Returns None for messages with nothing to do."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedControlMessage(f"invalid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise MalformedControlMessage("expected a JSON object")

    if SUBSCRIBE in data:
        channel = data[SUBSCRIBE]
        if not isinstance(channel, str):
            raise MalformedControlMessage("subscribe must be a string")
        if not channel:
            return None
        return ControlMessage(action=SUBSCRIBE, channel=channel)

    if data.get(UNSUBSCRIBE):
        return ControlMessage(action=UNSUBSCRIBE)

    return None


def subscribed_ack(channel: str) -> str:
    return f"Subscribed to {channel}"


def unsubscribed_ack(channel: str) -> str:
    return f"Unsubscribed from {channel}"
