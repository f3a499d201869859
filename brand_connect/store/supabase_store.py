"""
Supabase Adapters.

``SupabaseRecordStore`` and ``SupabaseAuthProvider`` implement the
``RecordStore`` / ``AuthProvider`` contracts on top of the async
Supabase client (PostgREST for rows, GoTrue for auth, Realtime for the
change stream).  Driver exceptions are translated into the domain error
taxonomy here and nowhere else.
"""

from __future__ import annotations

from typing import Optional

import httpx
from supabase import (
    AsyncClient,
    AuthApiError,
    AuthError,
    AuthSessionMissingError,
    PostgrestAPIError,
    acreate_client,
)

from brand_connect.config import AppConfig
from brand_connect.errors import (
    AuthRejected,
    DuplicateEntity,
    MarketplaceError,
    NotFound,
    SessionInvalid,
    StaleState,
    UpstreamUnavailable,
)
from brand_connect.logger import StructuredLogger
from brand_connect.models.enums import AuthEvent, ChangeType
from brand_connect.models.principal import AuthSession, Principal
from brand_connect.store.base import (
    AuthStateCallback,
    AuthSubscription,
    ChangeCallback,
    ChangeEvent,
    Filters,
    OrderBy,
    Row,
)

# PostgREST / Postgres error codes
_UNIQUE_VIOLATION: str = "23505"
_NO_ROWS: str = "PGRST116"
_JWT_INVALID: tuple[str, ...] = ("PGRST301", "PGRST303")

# Message the auth server returns once the JWT subject has been deleted.
STALE_SUBJECT_PHRASE: str = "user from sub claim in jwt does not exist"

_NETWORK_ERRORS: tuple[type[BaseException], ...] = (
    httpx.HTTPError,
    ConnectionError,
    TimeoutError,
)


async def create_supabase_client(config: AppConfig) -> AsyncClient:
    """Build the shared async client from configuration."""
    config.validate_supabase_config()
    return await acreate_client(
        config.SUPABASE_URL,
        config.SUPABASE_ANON_KEY.get_secret_value(),
    )


def translate_error(exc: Exception, operation: str) -> MarketplaceError:
    """Map a Supabase driver exception onto the domain error taxonomy."""
    if isinstance(exc, MarketplaceError):
        return exc
    if isinstance(exc, _NETWORK_ERRORS):
        return UpstreamUnavailable(f"{operation}: store unreachable ({exc})", original_error=exc)

    message = str(getattr(exc, "message", None) or exc)
    if STALE_SUBJECT_PHRASE in message.lower():
        return SessionInvalid(message, original_error=exc)

    if isinstance(exc, PostgrestAPIError):
        if exc.code == _UNIQUE_VIOLATION:
            return DuplicateEntity(f"{operation}: {message}", original_error=exc)
        if exc.code == _NO_ROWS:
            return NotFound(f"{operation}: {message}", original_error=exc)
        if exc.code in _JWT_INVALID:
            return SessionInvalid(message, original_error=exc)
        return UpstreamUnavailable(f"{operation}: {message}", original_error=exc)

    if isinstance(exc, AuthSessionMissingError):
        return SessionInvalid(message, original_error=exc)
    if isinstance(exc, AuthError):
        return AuthRejected(message, original_error=exc)

    return UpstreamUnavailable(f"{operation}: {message}", original_error=exc)


def _apply_filters(builder, filters: Optional[Filters]):
    for column, value in (filters or {}).items():
        if value is None:
            builder = builder.is_(column, "null")
        else:
            builder = builder.eq(column, value)
    return builder


def _filter_expression(filters: Filters) -> Optional[str]:
    # Realtime accepts a single equality filter per binding.
    if not filters:
        return None
    column, value = next(iter(filters.items()))
    return f"{column}=eq.{value}"


def _to_principal(user: object) -> Principal:
    return Principal(
        id=user.id,
        email=user.email,
        email_verified_at=user.email_confirmed_at,
        metadata=dict(user.user_metadata or {}),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _to_session(session: object) -> AuthSession:
    return AuthSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=session.expires_at,
        principal=_to_principal(session.user),
    )


# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------

class _RealtimeSubscription:
    """Wraps a Realtime channel so callers only see ``unsubscribe``."""

    def __init__(self, client: AsyncClient, channel: object) -> None:
        self._client = client
        self._channel = channel

    async def unsubscribe(self) -> None:
        await self._client.remove_channel(self._channel)


class SupabaseRecordStore:
    """``RecordStore`` backed by PostgREST tables."""

    def __init__(self, client: AsyncClient, logger: StructuredLogger) -> None:
        self._client = client
        self._logger = logger

    async def get_by_id(self, entity: str, record_id: str) -> Optional[Row]:
        rows = await self.query(entity, {"id": record_id}, limit=1)
        return rows[0] if rows else None

    async def query(
        self,
        entity: str,
        filters: Optional[Filters] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[Row]:
        operation = f"query ({entity})"
        try:
            builder = _apply_filters(self._client.table(entity).select("*"), filters)
            if order is not None:
                builder = builder.order(order.column, desc=order.descending)
            if limit is not None:
                builder = builder.limit(limit)
            response = await builder.execute()
        except Exception as exc:
            raise translate_error(exc, operation) from exc
        return list(response.data or [])

    async def insert(self, entity: str, row: Row) -> Row:
        operation = f"insert ({entity})"
        try:
            response = await self._client.table(entity).insert(row).execute()
        except Exception as exc:
            raise translate_error(exc, operation) from exc
        if not response.data:
            raise UpstreamUnavailable(f"{operation}: no row returned")
        return response.data[0]

    async def update(
        self,
        entity: str,
        record_id: str,
        fields: Row,
        expected: Optional[Filters] = None,
    ) -> Row:
        operation = f"update ({entity})"
        try:
            builder = self._client.table(entity).update(fields).eq("id", record_id)
            builder = _apply_filters(builder, expected)
            response = await builder.execute()
        except Exception as exc:
            raise translate_error(exc, operation) from exc

        if response.data:
            return response.data[0]

        # Zero rows matched: decide between a missing row and a lost race.
        current = await self.get_by_id(entity, record_id)
        if current is None:
            raise NotFound(f"{entity} {record_id} not found")
        raise StaleState(
            f"{entity} {record_id} changed concurrently; expected {expected}"
        )

    async def delete(self, entity: str, record_id: str) -> None:
        operation = f"delete ({entity})"
        try:
            response = await self._client.table(entity).delete().eq("id", record_id).execute()
        except Exception as exc:
            raise translate_error(exc, operation) from exc
        if not response.data:
            raise NotFound(f"{entity} {record_id} not found")

    async def subscribe(
        self,
        entity: str,
        filters: Filters,
        on_change: ChangeCallback,
        change_type: Optional[ChangeType] = None,
    ) -> _RealtimeSubscription:
        topic = f"{entity}:{_filter_expression(filters) or '*'}"

        def _dispatch(payload: dict) -> None:
            data = payload.get("data", {})
            on_change(ChangeEvent(
                entity=entity,
                change_type=ChangeType(data.get("type", ChangeType.UPDATE)),
                record=data.get("record") or {},
                old_record=data.get("old_record") or {},
            ))

        try:
            channel = self._client.channel(topic).on_postgres_changes(
                str(change_type) if change_type else "*",
                callback=_dispatch,
                schema="public",
                table=entity,
                filter=_filter_expression(filters),
            )
            await channel.subscribe()
        except Exception as exc:
            raise translate_error(exc, f"subscribe ({entity})") from exc

        self._logger.info("Subscribed to %s changes on %s", change_type or "all", topic)
        return _RealtimeSubscription(self._client, channel)


# ---------------------------------------------------------------------------
# Auth provider
# ---------------------------------------------------------------------------

class SupabaseAuthProvider:
    """``AuthProvider`` backed by Supabase GoTrue."""

    def __init__(self, client: AsyncClient, logger: StructuredLogger) -> None:
        self._auth = client.auth
        self._logger = logger

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = await self._auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as exc:
            raise translate_error(exc, "sign_in") from exc
        if response.session is None:
            raise AuthRejected("Sign-in returned no session")
        return _to_session(response.session)

    async def sign_up(self, email: str, password: str, metadata: dict[str, object]) -> Principal:
        try:
            response = await self._auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": metadata},
            })
        except Exception as exc:
            raise translate_error(exc, "sign_up") from exc
        if response.user is None:
            raise AuthRejected("Sign-up returned no user")
        return _to_principal(response.user)

    async def sign_out(self) -> None:
        try:
            await self._auth.sign_out()
        except Exception as exc:
            raise translate_error(exc, "sign_out") from exc

    async def get_session(self) -> Optional[AuthSession]:
        try:
            session = await self._auth.get_session()
        except Exception as exc:
            raise translate_error(exc, "get_session") from exc
        return _to_session(session) if session is not None else None

    async def refresh_session(self) -> Optional[AuthSession]:
        try:
            response = await self._auth.refresh_session()
        except AuthApiError as exc:
            raise SessionInvalid(exc.message, original_error=exc) from exc
        except Exception as exc:
            raise translate_error(exc, "refresh_session") from exc
        return _to_session(response.session) if response.session is not None else None

    async def get_principal(self) -> Optional[Principal]:
        try:
            session = await self._auth.get_session()
            if session is None:
                return None
            response = await self._auth.get_user()
        except Exception as exc:
            raise translate_error(exc, "get_principal") from exc
        if response is None or response.user is None:
            return None
        return _to_principal(response.user)

    async def reset_password_email(self, email: str, redirect_url: str) -> None:
        try:
            await self._auth.reset_password_for_email(email, {"redirect_to": redirect_url})
        except Exception as exc:
            raise translate_error(exc, "reset_password_email") from exc

    async def update_password(self, new_password: str) -> None:
        try:
            await self._auth.update_user({"password": new_password})
        except Exception as exc:
            raise translate_error(exc, "update_password") from exc

    def on_auth_state_change(self, callback: AuthStateCallback) -> AuthSubscription:
        def _forward(event: str, session: object) -> None:
            try:
                auth_event = AuthEvent(event)
            except ValueError:
                self._logger.debug("Ignoring unknown auth event %s", event)
                return
            callback(auth_event, _to_session(session) if session is not None else None)

        return self._auth.on_auth_state_change(_forward)
