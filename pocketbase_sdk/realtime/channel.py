#!/usr/bin/env python3
"""
Realtime Channel
One Server-Sent Events connection to ``/api/realtime`` bound to a single
``<collection>/<record>`` topic.

Lifecycle:
    idle -> connecting -> identified -> subscribed -> closed

The server opens every stream with a PB_CONNECT message carrying a client
id. The channel then POSTs that id together with its topic back to
``/api/realtime``; from then on record changes arrive on the stream under
the topic name.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, List, Optional

import aiohttp

from ..exceptions import PocketBaseError, RealtimeDecodeError
from ..http_client import HttpClient, build_url
from ..log_manager import get_logger
from ..models import RecordModel
from ..sse import ServerSentEvent
from .events import (
    ChannelEvent,
    ConnectEvent,
    DisconnectEvent,
    RecordEvent,
    decode_message
)

REALTIME_PATH = "/api/realtime"

# Buffer limit for ChannelEventStream
DEFAULT_MAX_PENDING = 1000


class ChannelState(str, Enum):
    """Connection states of a RealtimeChannel"""
    IDLE = "idle"
    CONNECTING = "connecting"
    IDENTIFIED = "identified"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"


class ChannelEventStream:
    """
    Async iterator over the events of one channel.

    Registered with the channel on creation, so nothing is missed between
    ``channel.events()`` and the first ``__anext__``. Iteration ends after
    the DisconnectEvent.

    At most ``max_pending`` undelivered events are buffered (0 = unbounded);
    when the buffer is full the oldest event is dropped. A stream that will
    not be iterated to the end should be closed with ``aclose()`` or used as
    ``async with channel.events() as events:``.
    """

    def __init__(self, channel: 'RealtimeChannel', max_pending: int = DEFAULT_MAX_PENDING):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self.dropped = 0
        self._finished = channel.state is ChannelState.CLOSED
        if not self._finished:
            channel._listeners.append(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChannelEvent:
        if self._finished:
            raise StopAsyncIteration
        event = await self._queue.get()
        if isinstance(event, DisconnectEvent):
            self.close()
        return event

    async def __aenter__(self) -> 'ChannelEventStream':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    def push(self, event: ChannelEvent):
        """Buffer an event, dropping the oldest one if full"""
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            self._channel.logger.warning(
                f"Event stream for {self._channel.topic} is full, dropped oldest event"
            )
        self._queue.put_nowait(event)

    def close(self):
        """Stop receiving events"""
        self._finished = True
        if self in self._channel._listeners:
            self._channel._listeners.remove(self)

    async def aclose(self):
        self.close()


class RealtimeChannel:
    """
    Realtime subscription to one collection topic.

    Events are delivered through the optional callbacks, through
    ``events()``, or both, in stream order:

        channel = RealtimeChannel("http://127.0.0.1:8090", "posts")
        async with channel:
            async for event in channel.events():
                if isinstance(event, RecordEvent):
                    print(event.action, event.record)

    Faults after ``subscribe()`` returns (bad payloads, failed registration,
    stream errors) are logged and never raised. A dropped connection is
    re-opened by the transport; the server's new PB_CONNECT then repeats the
    handshake and registration.

    There is no finalizer: dropping the last reference does not close the
    stream. Release it with ``unsubscribe()`` or by using the channel as an
    async context manager.
    """

    def __init__(
        self,
        base_url: str,
        collection: str,
        record: str = "*",
        on_connect: Optional[Callable[[], Any]] = None,
        on_disconnect: Optional[Callable[[], Any]] = None,
        on_event: Optional[Callable[[RecordEvent], Any]] = None,
        model: RecordModel = None,
        http: Optional[HttpClient] = None
    ):
        """
        Initialize the channel (nothing is opened until subscribe()).

        Args:
            base_url: Server URL
            collection: Collection name
            record: Record id, or "*" for every record of the collection
            on_connect: Called after each successful PB_CONNECT handshake
            on_disconnect: Called once when the stream closes
            on_event: Called with each RecordEvent on the topic
            model: Record model used to decode event records
            http: Shared transport (default: a private HttpClient)
        """
        self.logger = get_logger('RealtimeChannel', component='realtime')

        self.base_url = base_url
        self.collection = collection
        self.record = record
        self.model = model
        self.on_connect = on_connect
        self.on_disconnect = on_disconnect
        self.on_event = on_event

        self.http = http or HttpClient(base_url)
        self._owns_http = http is None

        # Session state
        self.state = ChannelState.IDLE
        self.connected = False
        self._client_id: Optional[str] = None

        # Lifecycle
        self._stream_task: Optional[asyncio.Task] = None
        self._register_task: Optional[asyncio.Task] = None
        self._listeners: List[ChannelEventStream] = []

    @property
    def topic(self) -> str:
        return f"{self.collection}/{self.record}"

    @property
    def realtime_url(self) -> str:
        return build_url(self.base_url, REALTIME_PATH)

    @property
    def client_id(self) -> Optional[str]:
        return self._client_id

    def _set_client_id(self, client_id: str):
        """Store a new client id and register the topic for it"""
        self._client_id = client_id
        self._start_registration()

    def __eq__(self, other):
        if not isinstance(other, RealtimeChannel):
            return NotImplemented
        return self._client_id == other._client_id

    __hash__ = None

    def __repr__(self):
        return (f"RealtimeChannel(topic={self.topic!r}, state={self.state.value}, "
                f"client_id={self._client_id!r})")

    async def __aenter__(self) -> 'RealtimeChannel':
        await self.subscribe()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.unsubscribe()

    def events(self, max_pending: int = DEFAULT_MAX_PENDING) -> ChannelEventStream:
        """Iterate over this channel's events as they arrive."""
        return ChannelEventStream(self, max_pending)

    @property
    def _stream_running(self) -> bool:
        return self._stream_task is not None and not self._stream_task.done()

    async def subscribe(self):
        """
        Open the event stream.

        Returns as soon as the connection attempt has started; handshake and
        record events arrive later through callbacks / events().

        Raises:
            InvalidEndpointError: If the realtime URL cannot be built
        """
        url = self.realtime_url

        if self._stream_running:
            if self.state is ChannelState.IDENTIFIED and self._client_id:
                self.logger.info(f"Retrying subscription registration for {self.topic}")
                self._start_registration()
            else:
                self.logger.debug(f"Channel {self.topic} already streaming ({self.state.value})")
            return

        self._client_id = None
        self.state = ChannelState.CONNECTING
        self._stream_task = asyncio.create_task(self._run(url))

    async def unsubscribe(self):
        """
        Close the stream and stop all delivery.

        Idempotent: DisconnectEvent / on_disconnect fire at most once per
        stream. No callback runs after this returns.
        """
        tasks = [t for t in (self._register_task, self._stream_task)
                 if t is not None and not t.done()]

        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._register_task = None
        self._stream_task = None

        self._mark_closed()

        if self._owns_http:
            await self.http.close()

    # ------------------------------------------------------------------
    # Stream processing
    # ------------------------------------------------------------------

    def _on_open(self):
        self.connected = True
        self.logger.info(f"Realtime connected ({self.topic})")

    def _on_error(self):
        # The transport reconnects on its own; state is left as is
        self.logger.warning(f"Realtime stream interrupted ({self.topic}), reconnecting")

    async def _run(self, url: str):
        """Consume the stream until the transport gives up or is cancelled"""
        stream = self.http.stream(url, on_open=self._on_open, on_error=self._on_error)
        try:
            async for message in stream:
                self._handle_message(message)
        except (ConnectionError, aiohttp.ClientError, asyncio.TimeoutError, PocketBaseError) as e:
            self.logger.error(f"Realtime stream error ({self.topic}): {e}")
        finally:
            await stream.aclose()

        self.logger.info(f"Realtime stream ended ({self.topic})")
        self._mark_closed()

    def _handle_message(self, message: ServerSentEvent):
        self.logger.debug(f"id: {message.id}, event: {message.event}, data: {message.data}")

        try:
            event = decode_message(message, self.topic, self.model)
        except RealtimeDecodeError as e:
            self.logger.warning(f"Dropped realtime message {message.event!r}: {e}")
            return

        if isinstance(event, ConnectEvent):
            self.state = ChannelState.IDENTIFIED
            self._set_client_id(event.client_id)
            self.logger.info(f"Realtime client id: {event.client_id}")
            self._emit(event, self.on_connect)
        elif isinstance(event, RecordEvent):
            self._emit(event, self.on_event, event)

    def _mark_closed(self):
        """Enter the closed state, announcing it once"""
        self.connected = False
        if self.state is ChannelState.CLOSED:
            return
        self.state = ChannelState.CLOSED
        self._emit(DisconnectEvent(), self.on_disconnect)

    def _emit(self, event: ChannelEvent, callback: Optional[Callable], *args):
        """Deliver an event to listeners and its callback"""
        for stream in list(self._listeners):
            stream.push(event)

        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            self.logger.exception(f"Realtime callback failed for {type(event).__name__}: {e}")

    # ------------------------------------------------------------------
    # Subscription registration
    # ------------------------------------------------------------------

    def _start_registration(self):
        if self._register_task is not None and not self._register_task.done():
            self._register_task.cancel()
        self._register_task = asyncio.create_task(self._register(self._client_id))

    async def _register(self, client_id: str):
        """Bind the client id to this channel's topic"""
        body = {
            "clientId": client_id,
            "subscriptions": [self.topic]
        }

        try:
            await self.http.post(self.realtime_url, body)
        except (aiohttp.ClientError, asyncio.TimeoutError, PocketBaseError) as e:
            self.logger.error(f"Failed to register realtime subscription {self.topic}: {e}")
            return

        # A newer handshake or a close may have happened meanwhile
        if self._client_id == client_id and self.state is ChannelState.IDENTIFIED:
            self.state = ChannelState.SUBSCRIBED
            self.logger.info(f"Subscribed to {self.topic}")
