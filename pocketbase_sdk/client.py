"""
PocketBase client: the main entry point for record CRUD, authentication and
realtime subscriptions.
"""

from datetime import timedelta
from typing import Any, Callable, Dict, Optional

import aiohttp

from .auth import AuthStore
from .config import Config
from .http_client import HttpClient
from .log_manager import get_logger
from .models import (
    AuthMethods,
    AuthResult,
    ListResult,
    RecordModel,
    decode_record,
    encode_record
)
from .query import ExpandQuery, FilterQueryBuilder
from .realtime import RealtimeChannel, RecordEvent


def _records_path(collection: str, record_id: Optional[str] = None) -> str:
    path = f"/api/collections/{collection}/records"
    return f"{path}/{record_id}" if record_id else path


def _query_params(expand: Optional[ExpandQuery] = None,
                  filters: Optional[FilterQueryBuilder] = None,
                  **extra) -> Dict[str, Any]:
    params = {k: v for k, v in extra.items() if v is not None}
    if expand is not None and not expand.is_empty:
        params["expand"] = expand.render()
    if filters is not None and not filters.is_empty:
        params["filter"] = filters.render()
    return params


class PocketBase:
    """
    Client for one PocketBase server.

    This class provides a single interface for:
    - Record CRUD on any collection
    - User authentication (token kept in an in-memory AuthStore)
    - Realtime channels sharing the client's HTTP session

    Example:
        async with PocketBase("http://127.0.0.1:8090") as pb:
            posts = pb.collection("posts")
            page = await posts.get_list(filters=FilterQueryBuilder().equal("published", "true"))
    """

    def __init__(self,
                 base_url: str,
                 token: Optional[str] = None,
                 auth_store: Optional[AuthStore] = None,
                 session: Optional[aiohttp.ClientSession] = None,
                 reconnection_time: Optional[timedelta] = None):
        """
        Initialize the client.

        Args:
            base_url: Server URL
            token: Optional auth token to start with
            auth_store: Optional shared AuthStore
            session: Optional externally managed aiohttp session
            reconnection_time: Initial reconnect delay for realtime streams
        """
        self.base_url = base_url.rstrip("/")
        self.auth_store = auth_store or AuthStore(token=token)
        self.http = HttpClient(self.base_url, auth_store=self.auth_store, session=session,
                               reconnection_time=reconnection_time)
        self.logger = get_logger('PocketBase')

    @classmethod
    def from_env(cls) -> 'PocketBase':
        """
        Create client from environment variables.

        Uses Config helper to read environment variables.
        """
        config = Config.from_env()
        return cls(
            base_url=config['base_url'],
            token=config.get('token')
        )

    async def close(self):
        """Close the HTTP session."""
        await self.http.close()

    async def __aenter__(self) -> 'PocketBase':
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def is_authenticated(self) -> bool:
        return self.auth_store.is_valid

    @property
    def current_user_id(self) -> Optional[str]:
        return self.auth_store.user_id

    def collection(self, name: str, model: RecordModel = None) -> 'Collection':
        """Bind the CRUD and realtime operations to one collection."""
        return Collection(self, name, model)

    # ============================================================================
    # Records
    # ============================================================================

    async def get_one(self, collection: str, record_id: str,
                      model: RecordModel = None,
                      expand: Optional[ExpandQuery] = None) -> Any:
        """Fetch a single record by id."""
        data = await self.http.get(_records_path(collection, record_id),
                                   params=_query_params(expand))
        return decode_record(data, model)

    async def get_list(self, collection: str,
                       model: RecordModel = None,
                       expand: Optional[ExpandQuery] = None,
                       filters: Optional[FilterQueryBuilder] = None,
                       page: int = 1,
                       per_page: int = 100,
                       sort: Optional[str] = None) -> ListResult:
        """
        Fetch one page of records.

        Args:
            collection: Collection name
            model: Record model for the items
            expand: Relations to inline
            filters: Filter query
            page: 1-based page number
            per_page: Page size
            sort: Sort expression, e.g. "-created"

        Returns:
            ListResult with decoded items
        """
        params = _query_params(expand, filters, page=page, perPage=per_page, sort=sort)
        data = await self.http.get(_records_path(collection), params=params)
        return ListResult.from_dict(data or {}, model)

    async def create(self, collection: str, record: Any, model: RecordModel = None) -> Any:
        """Create a record from a dict or dataclass."""
        data = await self.http.post(_records_path(collection), encode_record(record))
        return decode_record(data, model)

    async def update(self, collection: str, record_id: str, record: Any,
                     model: RecordModel = None) -> Any:
        """Patch a record with the given fields."""
        data = await self.http.patch(_records_path(collection, record_id), encode_record(record))
        return decode_record(data, model)

    async def delete(self, collection: str, record_id: str):
        """Delete a record."""
        await self.http.delete(_records_path(collection, record_id))

    # ============================================================================
    # Realtime
    # ============================================================================

    def realtime(self, collection: str,
                 record: str = "*",
                 on_connect: Optional[Callable[[], Any]] = None,
                 on_disconnect: Optional[Callable[[], Any]] = None,
                 on_event: Optional[Callable[[RecordEvent], Any]] = None,
                 model: RecordModel = None) -> RealtimeChannel:
        """
        Create a realtime channel for ``<collection>/<record>``.

        The channel is not opened until ``subscribe()`` (or ``async with``).
        """
        return RealtimeChannel(
            base_url=self.base_url,
            collection=collection,
            record=record,
            on_connect=on_connect,
            on_disconnect=on_disconnect,
            on_event=on_event,
            model=model,
            http=self.http
        )

    # ============================================================================
    # Authentication
    # ============================================================================

    async def auth_with_password(self, email: str, password: str,
                                 model: RecordModel = None,
                                 collection: str = "users") -> AuthResult:
        """
        Authenticate a user with email and password.

        The returned token is kept in the auth store and sent with every
        following request.
        """
        self.logger.info(f"Authenticating user against {collection}")
        data = await self.http.post(
            f"/api/collections/{collection}/auth-with-password",
            {"identity": email, "password": password}
        )
        result = AuthResult.from_dict(data, model)
        self.auth_store.save(result.token, result.record)
        return result

    async def sign_up(self, data: Any, model: RecordModel = None,
                      collection: str = "users") -> Any:
        """Create a new user account."""
        self.logger.info(f"Creating new account in {collection}")
        return await self.create(collection, data, model)

    async def auth_refresh(self, model: RecordModel = None,
                           collection: str = "users") -> AuthResult:
        """Refresh the current auth token."""
        data = await self.http.post(f"/api/collections/{collection}/auth-refresh")
        result = AuthResult.from_dict(data, model)
        self.auth_store.save(result.token, result.record)
        return result

    async def request_password_reset(self, email: str, collection: str = "users"):
        await self.http.post(f"/api/collections/{collection}/request-password-reset",
                             {"email": email})

    async def confirm_password_reset(self, token: str, password: str,
                                     password_confirm: str, collection: str = "users"):
        await self.http.post(
            f"/api/collections/{collection}/confirm-password-reset",
            {
                "token": token,
                "password": password,
                "passwordConfirm": password_confirm
            }
        )

    async def request_verification(self, email: str, collection: str = "users"):
        await self.http.post(f"/api/collections/{collection}/request-verification",
                             {"email": email})

    async def confirm_verification(self, token: str, collection: str = "users"):
        await self.http.post(f"/api/collections/{collection}/confirm-verification",
                             {"token": token})

    async def get_auth_methods(self, collection: str = "users") -> AuthMethods:
        data = await self.http.get(f"/api/collections/{collection}/auth-methods")
        return AuthMethods.from_dict(data or {})

    def sign_out(self):
        """Forget the current token and record."""
        self.auth_store.clear()
        self.logger.info("User signed out")


class Collection:
    """Record operations bound to one collection and record model."""

    def __init__(self, client: PocketBase, name: str, model: RecordModel = None):
        self.client = client
        self.name = name
        self.model = model

    async def get_one(self, record_id: str, expand: Optional[ExpandQuery] = None) -> Any:
        return await self.client.get_one(self.name, record_id, self.model, expand)

    async def get_list(self,
                       expand: Optional[ExpandQuery] = None,
                       filters: Optional[FilterQueryBuilder] = None,
                       page: int = 1,
                       per_page: int = 100,
                       sort: Optional[str] = None) -> ListResult:
        return await self.client.get_list(self.name, self.model, expand, filters,
                                          page, per_page, sort)

    async def create(self, record: Any) -> Any:
        return await self.client.create(self.name, record, self.model)

    async def update(self, record_id: str, record: Any) -> Any:
        return await self.client.update(self.name, record_id, record, self.model)

    async def delete(self, record_id: str):
        await self.client.delete(self.name, record_id)

    def realtime(self,
                 record: str = "*",
                 on_connect: Optional[Callable[[], Any]] = None,
                 on_disconnect: Optional[Callable[[], Any]] = None,
                 on_event: Optional[Callable[[RecordEvent], Any]] = None) -> RealtimeChannel:
        """Realtime channel for this collection (all records by default)."""
        return self.client.realtime(self.name, record, on_connect, on_disconnect,
                                    on_event, self.model)
