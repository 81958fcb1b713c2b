#!/usr/bin/env python3
"""
HTTP transport for the PocketBase SDK.
Thin aiohttp wrapper: JSON requests, auth header, error mapping and the
long-lived Server-Sent Events stream (aiohttp-sse-client2) used by realtime
channels.
"""

import json
from datetime import timedelta
from typing import Any, AsyncIterator, Callable, Dict, Optional
from urllib.parse import quote, urlencode, urlsplit, urlunsplit

import aiohttp
from aiohttp_sse_client2 import client as sse_client

from .auth import AuthStore
from .exceptions import ClientResponseError, InvalidEndpointError
from .log_manager import get_logger
from .sse import ServerSentEvent

# Initial delay before reconnecting a dropped event stream
DEFAULT_RECONNECTION_TIME = timedelta(seconds=5)


def build_url(base_url: str, path: str, params: Optional[Dict[str, Any]] = None) -> str:
    """
    Append ``path`` to the path of ``base_url`` and encode ``params``.

    Raises:
        InvalidEndpointError: If the base URL is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(base_url)
    except ValueError as e:
        raise InvalidEndpointError(f"Invalid base URL {base_url!r}: {e}") from e

    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidEndpointError(f"Invalid base URL {base_url!r}")

    full_path = parts.path.rstrip("/") + path
    query = urlencode(params, quote_via=quote) if params else ""
    return urlunsplit((parts.scheme, parts.netloc, full_path, query, ""))


class HttpClient:
    """
    JSON-over-HTTP client bound to one PocketBase server.

    The aiohttp session is created lazily. A session passed in by the caller
    is used as-is and never closed here.
    """

    def __init__(self,
                 base_url: str,
                 auth_store: Optional[AuthStore] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 reconnection_time: Optional[timedelta] = None):
        """
        Initialize the HTTP client.

        Args:
            base_url: Server URL, e.g. http://127.0.0.1:8090
            auth_store: Source of the Authorization token
            session: Optional externally managed aiohttp session
            reconnection_time: Initial event stream reconnect delay
        """
        self.base_url = base_url.rstrip("/")
        self.auth_store = auth_store or AuthStore()
        self.session = session
        self.reconnection_time = reconnection_time or DEFAULT_RECONNECTION_TIME
        self._owns_session = session is None
        self.logger = get_logger('HttpClient', component='http')

    async def _ensure_session(self):
        """Ensure aiohttp session exists"""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
            self._owns_session = True

    async def close(self):
        """Close the HTTP session"""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    def url(self, path_or_url: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Absolute URL for an API path; absolute URLs pass through."""
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return build_url(self.base_url, path_or_url, params)

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {}
        if self.auth_store.token:
            headers["Authorization"] = self.auth_store.token
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, path_or_url: str,
                       params: Optional[Dict[str, Any]] = None,
                       json_body: Optional[Any] = None) -> Any:
        """Make HTTP request and return the decoded JSON body (None if empty)"""
        await self._ensure_session()

        url = self.url(path_or_url, params)
        headers = self._headers()
        data = None
        if json_body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(json_body)

        self.logger.info(f"{method} {url}")
        async with self.session.request(method, url, data=data, headers=headers) as response:
            text = await response.text()
            try:
                payload = json.loads(text) if text else None
            except ValueError:
                payload = text

            if response.status >= 400:
                self.logger.warning(f"{method} {url} failed with status {response.status}")
                raise ClientResponseError(response.status, url, payload)

            return payload

    async def get(self, path_or_url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("GET", path_or_url, params=params)

    async def post(self, path_or_url: str, json_body: Optional[Any] = None) -> Any:
        return await self._request("POST", path_or_url, json_body=json_body if json_body is not None else {})

    async def patch(self, path_or_url: str, json_body: Any) -> Any:
        return await self._request("PATCH", path_or_url, json_body=json_body)

    async def delete(self, path_or_url: str) -> Any:
        return await self._request("DELETE", path_or_url)

    async def stream(self, path_or_url: str,
                     on_open: Optional[Callable[[], None]] = None,
                     on_error: Optional[Callable[[], None]] = None) -> AsyncIterator[ServerSentEvent]:
        """
        Open a Server-Sent Events stream and yield its events.

        The connection has no timeout. When the server ends the stream the
        EventSource reconnects after ``reconnection_time`` (doubling on each
        attempt, or as set by the server's ``retry`` field) and calls
        ``on_error``; iteration only stops when reconnecting fails or the
        consuming task is cancelled.

        Args:
            path_or_url: Stream endpoint
            on_open: Called every time a connection is established
            on_error: Called when the connection drops or fails

        Yields:
            ServerSentEvents in arrival order

        Raises:
            ConnectionError: If the server refuses the stream
            aiohttp.ClientError: If the server cannot be reached
        """
        await self._ensure_session()

        url = self.url(path_or_url)
        timeout = aiohttp.ClientTimeout(total=None, sock_read=None)

        self.logger.info(f"GET {url} (event stream)")
        async with sse_client.EventSource(
            url,
            session=self.session,
            reconnection_time=self.reconnection_time,
            on_open=on_open,
            on_error=on_error,
            headers=self._headers(),
            timeout=timeout
        ) as source:
            async for message in source:
                yield ServerSentEvent.from_message(message)
