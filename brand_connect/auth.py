"""
Authentication & Session State.

Provides an injectable ``SessionManager`` that holds the resolved
``AppUser`` and the current token pair.  ``SessionAuthority`` is the
only writer; everything else reads.

Usage::

    from brand_connect.auth import SessionManager

    session = SessionManager()
    user = session.current_user  # None until a session is resolved
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from brand_connect.errors import NotAuthenticated
from brand_connect.models.principal import AuthSession
from brand_connect.models.user import AppUser


class SessionManager:
    """Injectable holder for the current authenticated user.

    Each instance maintains its own session state, eliminating the
    need for module-level globals.  Pass a single ``SessionManager``
    through the composition root so every component shares it.
    """

    def __init__(self) -> None:
        # Realtime and auth callbacks may arrive off the event loop thread.
        self._lock: threading.RLock = threading.RLock()
        self._current_user: Optional[AppUser] = None
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None

    @property
    def current_user(self) -> Optional[AppUser]:
        with self._lock:
            return self._current_user

    def set_current_user(self, user: AppUser) -> None:
        """Record *user* as the authenticated session user."""
        with self._lock:
            self._current_user = user

    def require_user(self) -> AppUser:
        """Return the authenticated user.

        Raises:
            NotAuthenticated: If no user is currently resolved.
        """
        with self._lock:
            if self._current_user is None:
                raise NotAuthenticated("No user is currently authenticated. Login required.")
            return self._current_user

    def set_tokens(self, session: AuthSession) -> None:
        """Store the token pair from *session* for refresh bookkeeping."""
        with self._lock:
            self._access_token = session.access_token
            self._refresh_token = session.refresh_token
            self._token_expiry = (
                datetime.fromtimestamp(session.expires_at, tz=timezone.utc)
                if session.expires_at is not None
                else None
            )

    @property
    def access_token(self) -> Optional[str]:
        with self._lock:
            return self._access_token

    @property
    def is_token_expired(self) -> bool:
        """``True`` when the access token expires within 30 seconds or was never set."""
        with self._lock:
            if self._token_expiry is None:
                return True
            return datetime.now(timezone.utc) >= (self._token_expiry - timedelta(seconds=30))

    def clear(self) -> None:
        """Remove the current user and tokens, ending the session."""
        with self._lock:
            self._current_user = None
            self._access_token = None
            self._refresh_token = None
            self._token_expiry = None

    @property
    def is_authenticated(self) -> bool:
        """``True`` when a user is currently resolved."""
        with self._lock:
            return self._current_user is not None
