"""
Realtime subscriptions for the PocketBase SDK.
One RealtimeChannel per collection topic, fed by a Server-Sent Events stream.
"""

from .channel import (
    RealtimeChannel,
    ChannelState,
    ChannelEventStream,
    REALTIME_PATH
)

from .events import (
    CONNECT_TOPIC,
    RealtimeAction,
    ConnectEvent,
    RecordEvent,
    DisconnectEvent,
    ChannelEvent,
    decode_message
)

__all__ = [
    # Channel
    'RealtimeChannel',
    'ChannelState',
    'ChannelEventStream',
    'REALTIME_PATH',

    # Events
    'CONNECT_TOPIC',
    'RealtimeAction',
    'ConnectEvent',
    'RecordEvent',
    'DisconnectEvent',
    'ChannelEvent',
    'decode_message'
]
