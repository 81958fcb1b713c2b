"""
Shared pytest fixtures for pocketbase-sdk tests.
Provides a scripted realtime transport and an in-process fake PocketBase
server built on aiohttp.web.
"""

import asyncio
import json
import sys
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from pocketbase_sdk.realtime import RealtimeChannel
from pocketbase_sdk.sse import ServerSentEvent


# ============================================================================
# Helpers
# ============================================================================

async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0):
    """Poll until predicate() is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("Timed out waiting for condition")
        await asyncio.sleep(0.01)


def connect_message(client_id: str) -> ServerSentEvent:
    return ServerSentEvent(
        id=client_id,
        event="PB_CONNECT",
        data=json.dumps({"clientId": client_id})
    )


def record_message(topic: str, action: str, record: Dict[str, Any]) -> ServerSentEvent:
    return ServerSentEvent(
        event=topic,
        data=json.dumps({"action": action, "record": record})
    )


# ============================================================================
# Scripted transport
# ============================================================================

# Scripted stand-in for a dropped connection that the EventSource re-opens
RECONNECT = object()


class FakeTransport:
    """
    Stand-in for HttpClient as seen by RealtimeChannel.

    Push ServerSentEvents into ``messages``. RECONNECT simulates a dropped and
    re-opened connection (on_error then on_open). An exception is raised from
    the stream, as when the EventSource gives up, and None ends the stream.
    Registration POSTs are recorded in ``posts``.
    """

    def __init__(self):
        self.messages: asyncio.Queue = asyncio.Queue()
        self.posts: List[Dict[str, Any]] = []
        self.post_error: Optional[Exception] = None
        self.streams_opened = 0
        self.streams_closed = 0
        self.reconnects = 0
        self.closed = False

    async def stream(self, url: str, on_open=None, on_error=None):
        self.streams_opened += 1
        try:
            if on_open:
                on_open()
            while True:
                item = await self.messages.get()
                if item is None:
                    return
                if item is RECONNECT:
                    if on_error:
                        on_error()
                    if on_open:
                        on_open()
                    self.reconnects += 1
                    continue
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.streams_closed += 1

    async def post(self, url: str, json_body: Any = None):
        self.posts.append({"url": url, "body": json_body})
        if self.post_error is not None:
            raise self.post_error
        return None

    async def close(self):
        self.closed = True


@pytest.fixture
def transport():
    return FakeTransport()


@pytest_asyncio.fixture
async def make_channel(transport):
    """Factory for channels on the fake transport; unsubscribes them afterwards."""
    channels = []

    def factory(**kwargs):
        kwargs.setdefault("base_url", "http://127.0.0.1:8090")
        kwargs.setdefault("collection", "posts")
        channel = RealtimeChannel(http=transport, **kwargs)
        channels.append(channel)
        return channel

    yield factory

    for channel in channels:
        await channel.unsubscribe()


# ============================================================================
# Fake PocketBase server
# ============================================================================

class FakePocketBase:
    """Minimal in-memory PocketBase: records, password auth and realtime."""

    TOKEN = "test-token"

    def __init__(self):
        self.records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.requests: List[Dict[str, Any]] = []
        self.subscriptions: Dict[str, List[str]] = {}
        self.streams: Dict[str, asyncio.Queue] = {}
        self.fail_registration = False
        self.reject_streams = False

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/realtime", self.realtime_stream)
        app.router.add_post("/api/realtime", self.realtime_register)
        app.router.add_post("/api/collections/{collection}/auth-with-password", self.auth_with_password)
        app.router.add_post("/api/collections/{collection}/auth-refresh", self.auth_refresh)
        app.router.add_post("/api/collections/{collection}/request-password-reset", self.no_content)
        app.router.add_post("/api/collections/{collection}/confirm-password-reset", self.no_content)
        app.router.add_post("/api/collections/{collection}/request-verification", self.no_content)
        app.router.add_post("/api/collections/{collection}/confirm-verification", self.no_content)
        app.router.add_get("/api/collections/{collection}/auth-methods", self.auth_methods)
        app.router.add_get("/api/collections/{collection}/records", self.list_records)
        app.router.add_post("/api/collections/{collection}/records", self.create_record)
        app.router.add_get("/api/collections/{collection}/records/{id}", self.get_record)
        app.router.add_patch("/api/collections/{collection}/records/{id}", self.update_record)
        app.router.add_delete("/api/collections/{collection}/records/{id}", self.delete_record)
        return app

    def _log(self, request: web.Request, body: Any = None):
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "query": dict(request.query),
            "headers": dict(request.headers),
            "body": body
        })

    def _not_found(self):
        return web.json_response({"code": 404, "message": "The requested resource wasn't found."},
                                 status=404)

    async def no_content(self, request: web.Request):
        self._log(request, await request.json())
        return web.Response(status=204)

    async def auth_with_password(self, request: web.Request):
        body = await request.json()
        self._log(request, body)
        if body.get("password") != "supersecret":
            return web.json_response({"code": 400, "message": "Failed to authenticate."}, status=400)
        return web.json_response({
            "token": self.TOKEN,
            "record": {"id": "user1", "email": body["identity"], "verified": True}
        })

    async def auth_refresh(self, request: web.Request):
        self._log(request, await request.json())
        if request.headers.get("Authorization") != self.TOKEN:
            return web.json_response({"code": 401, "message": "Missing auth."}, status=401)
        return web.json_response({
            "token": "refreshed-token",
            "record": {"id": "user1", "email": "user@example.com", "verified": True}
        })

    async def auth_methods(self, request: web.Request):
        self._log(request)
        return web.json_response({
            "password": {"enabled": True, "identityFields": ["email"]}
        })

    async def list_records(self, request: web.Request):
        self._log(request)
        collection = request.match_info["collection"]
        items = list(self.records.get(collection, {}).values())
        page = int(request.query.get("page", 1))
        per_page = int(request.query.get("perPage", 30))
        start = (page - 1) * per_page
        return web.json_response({
            "page": page,
            "perPage": per_page,
            "totalItems": len(items),
            "totalPages": (len(items) + per_page - 1) // per_page,
            "items": items[start:start + per_page]
        })

    async def create_record(self, request: web.Request):
        body = await request.json()
        self._log(request, body)
        collection = request.match_info["collection"]
        record = dict(body)
        record.setdefault("id", uuid.uuid4().hex[:15])
        record.update({
            "collectionName": collection,
            "created": "2025-07-12 10:00:00.000Z",
            "updated": "2025-07-12 10:00:00.000Z"
        })
        self.records.setdefault(collection, {})[record["id"]] = record
        await self.broadcast(collection, "create", record)
        return web.json_response(record)

    async def get_record(self, request: web.Request):
        self._log(request)
        record = self.records.get(request.match_info["collection"], {}).get(request.match_info["id"])
        if record is None:
            return self._not_found()
        return web.json_response(record)

    async def update_record(self, request: web.Request):
        body = await request.json()
        self._log(request, body)
        collection = request.match_info["collection"]
        record = self.records.get(collection, {}).get(request.match_info["id"])
        if record is None:
            return self._not_found()
        record.update(body)
        await self.broadcast(collection, "update", record)
        return web.json_response(record)

    async def delete_record(self, request: web.Request):
        self._log(request)
        collection = request.match_info["collection"]
        record = self.records.get(collection, {}).pop(request.match_info["id"], None)
        if record is None:
            return self._not_found()
        await self.broadcast(collection, "delete", record)
        return web.Response(status=204)

    async def realtime_register(self, request: web.Request):
        body = await request.json()
        self._log(request, body)
        if self.fail_registration:
            return web.json_response({"code": 400, "message": "Invalid client."}, status=400)
        if body.get("clientId") not in self.streams:
            return web.json_response({"code": 404, "message": "Missing client."}, status=404)
        self.subscriptions[body["clientId"]] = list(body.get("subscriptions", []))
        return web.Response(status=204)

    async def realtime_stream(self, request: web.Request):
        self._log(request)
        if self.reject_streams:
            return web.json_response({"code": 403, "message": "Realtime is disabled."}, status=403)
        client_id = uuid.uuid4().hex
        queue: asyncio.Queue = asyncio.Queue()
        self.streams[client_id] = queue

        response = web.StreamResponse(headers={
            "Content-Type": "text/event-stream",
            "Cache-Control": "no-store"
        })
        await response.prepare(request)
        await response.write(connect_message(client_id).to_sse().encode("utf-8"))

        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                await response.write(item.to_sse().encode("utf-8"))
        except ConnectionResetError:
            pass
        finally:
            self.streams.pop(client_id, None)
            self.subscriptions.pop(client_id, None)
        return response

    async def broadcast(self, collection: str, action: str, record: Dict[str, Any]):
        """Push a record change to every client subscribed to a matching topic"""
        for client_id, topics in self.subscriptions.items():
            for topic in (f"{collection}/*", f"{collection}/{record['id']}"):
                if topic in topics:
                    await self.streams[client_id].put(record_message(topic, action, record))

    async def end_streams(self):
        for queue in list(self.streams.values()):
            await queue.put(None)


@pytest_asyncio.fixture
async def pb_server():
    """Run a FakePocketBase on a local port; yields (fake, base_url)."""
    fake = FakePocketBase()
    server = TestServer(fake.app())
    await server.start_server()
    base_url = str(server.make_url("/")).rstrip("/")
    try:
        yield fake, base_url
    finally:
        await fake.end_streams()
        await server.close()
