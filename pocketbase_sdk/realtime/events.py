#!/usr/bin/env python3
"""
Realtime events delivered by a RealtimeChannel.

Incoming stream messages are classified once, by topic, into a small tagged
union: the PB_CONNECT handshake, record changes on the channel's topic, and
the synthetic disconnect emitted when the stream ends.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from ..exceptions import RealtimeDecodeError
from ..models import RecordModel, decode_record
from ..sse import ServerSentEvent

# Reserved topic of the handshake message
CONNECT_TOPIC = "PB_CONNECT"


class RealtimeAction(str, Enum):
    """What happened to a record"""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ConnectEvent:
    """Handshake completed; the server assigned ``client_id``"""
    client_id: str


@dataclass(frozen=True)
class RecordEvent:
    """A record on the subscribed topic changed"""
    action: RealtimeAction
    record: Any


@dataclass(frozen=True)
class DisconnectEvent:
    """The stream is gone (closed remotely or unsubscribed)"""
    pass


ChannelEvent = Union[ConnectEvent, RecordEvent, DisconnectEvent]


def _load_json_object(message: ServerSentEvent) -> dict:
    if not message.data:
        raise RealtimeDecodeError(f"No data received for {message.event}")
    try:
        payload = json.loads(message.data)
    except ValueError as e:
        raise RealtimeDecodeError(f"Invalid JSON for {message.event}: {e}") from e
    if not isinstance(payload, dict):
        raise RealtimeDecodeError(f"Expected a JSON object for {message.event}")
    return payload


def decode_connect(message: ServerSentEvent) -> ConnectEvent:
    """Decode a PB_CONNECT payload: ``{"clientId": "..."}``"""
    payload = _load_json_object(message)
    client_id = payload.get("clientId")
    if not isinstance(client_id, str) or not client_id:
        raise RealtimeDecodeError("PB_CONNECT payload has no clientId")
    return ConnectEvent(client_id=client_id)


def decode_record_event(message: ServerSentEvent, model: RecordModel = None) -> RecordEvent:
    """Decode a data payload: ``{"action": ..., "record": {...}}``"""
    payload = _load_json_object(message)
    try:
        action = RealtimeAction(payload.get("action"))
    except ValueError as e:
        raise RealtimeDecodeError(f"Unknown realtime action: {payload.get('action')!r}") from e
    if "record" not in payload:
        raise RealtimeDecodeError("Realtime event has no record")
    # model is caller code; whatever it raises counts as a bad record
    try:
        record = decode_record(payload["record"], model)
    except Exception as e:
        raise RealtimeDecodeError(f"Cannot decode realtime record: {e!r}") from e
    return RecordEvent(action=action, record=record)


def decode_message(message: ServerSentEvent, topic: str,
                   model: RecordModel = None) -> Optional[ChannelEvent]:
    """
    Classify a stream message for a channel bound to ``topic``.

    Returns:
        ConnectEvent for the handshake, RecordEvent for ``topic``,
        None for any other topic

    Raises:
        RealtimeDecodeError: If a handshake or topic payload is malformed
    """
    if message.event == CONNECT_TOPIC:
        return decode_connect(message)
    if message.event == topic:
        return decode_record_event(message, model)
    return None
