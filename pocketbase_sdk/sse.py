#!/usr/bin/env python3
"""
Server-Sent Events messages.
Parsing of ``text/event-stream`` bodies is done by aiohttp-sse-client2; this
module holds the SDK-side event type and the formatter used by fake servers.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ServerSentEvent:
    """One dispatched event from an event stream"""
    data: str
    event: str = "message"
    id: Optional[str] = None
    retry: Optional[int] = None

    @classmethod
    def from_message(cls, message: Any) -> 'ServerSentEvent':
        """Convert an aiohttp-sse-client2 MessageEvent"""
        return cls(
            data=message.data,
            event=message.type or "message",
            id=message.last_event_id or None
        )

    def to_sse(self) -> str:
        """Format as Server-Sent Event"""
        lines = []
        if self.id is not None:
            lines.append(f"id: {self.id}")
        if self.event != "message":
            lines.append(f"event: {self.event}")
        if self.retry is not None:
            lines.append(f"retry: {self.retry}")
        for line in self.data.split("\n"):
            lines.append(f"data: {line}")
        return "\n".join(lines) + "\n\n"
