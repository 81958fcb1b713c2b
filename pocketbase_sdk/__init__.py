"""
PocketBase SDK
Async Python client for PocketBase: record CRUD, query builders,
authentication and realtime subscriptions.
"""

from .client import PocketBase, Collection
from .auth import AuthStore
from .config import Config
from .exceptions import (
    PocketBaseError,
    InvalidEndpointError,
    ClientResponseError,
    RealtimeDecodeError,
    InvalidFilterError
)
from .models import ListResult, AuthResult, AuthMethods
from .query import (
    FilterOperator,
    FilterExpression,
    FilterQueryBuilder,
    FilterBuilder,
    ExpandQuery,
    ExpandBuilder
)
from .realtime import (
    RealtimeChannel,
    ChannelState,
    RealtimeAction,
    ConnectEvent,
    RecordEvent,
    DisconnectEvent
)

__version__ = "0.1.0"

__all__ = [
    "PocketBase",
    "Collection",
    "AuthStore",
    "Config",
    "PocketBaseError",
    "InvalidEndpointError",
    "ClientResponseError",
    "RealtimeDecodeError",
    "InvalidFilterError",
    "ListResult",
    "AuthResult",
    "AuthMethods",
    "FilterOperator",
    "FilterExpression",
    "FilterQueryBuilder",
    "FilterBuilder",
    "ExpandQuery",
    "ExpandBuilder",
    "RealtimeChannel",
    "ChannelState",
    "RealtimeAction",
    "ConnectEvent",
    "RecordEvent",
    "DisconnectEvent"
]
