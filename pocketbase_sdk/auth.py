"""
In-memory auth state shared by the HTTP client and the PocketBase facade.
"""

import time
from typing import Any, Optional

import jwt  # PyJWT

from .models import record_id


def _token_expiry(token: str) -> Optional[float]:
    """Read the ``exp`` claim of a JWT without verifying it."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None
    exp = claims.get("exp")
    return float(exp) if isinstance(exp, (int, float)) else None


class AuthStore:
    """
    Holds the current auth token and record.

    Nothing is persisted; applications that need to survive restarts save
    ``token`` themselves and pass it back in.
    """

    def __init__(self, token: Optional[str] = None, record: Any = None):
        self.token = token or ""
        self.record = record

    @property
    def user_id(self) -> Optional[str]:
        return record_id(self.record) if self.record is not None else None

    @property
    def is_valid(self) -> bool:
        """True for a non-empty token that is not past its ``exp`` claim."""
        if not self.token:
            return False
        exp = _token_expiry(self.token)
        return exp is None or exp > time.time()

    def save(self, token: str, record: Any = None):
        self.token = token
        if record is not None:
            self.record = record

    def clear(self):
        self.token = ""
        self.record = None
