"""
Record Store and Auth Provider Contracts.

The core depends only on these protocols.  Any backend that can fetch,
insert, conditionally update, delete and query rows by equality, plus
deliver a change stream, can host the marketplace.

Conventions shared by every implementation:

- Rows are plain ``dict`` objects keyed by column name; repositories
  parse them into models.
- A filter value of ``None`` means ``IS NULL``.
- ``delete`` removes one row by id and raises ``NotFound`` when it is absent.
- ``update(..., expected=...)`` only applies when every expected column
  still holds the expected value.  No match raises ``StaleState`` when
  the row exists and ``NotFound`` when it does not.
- Driver faults surface as ``UpstreamUnavailable``; uniqueness
  violations as ``DuplicateEntity``; a session whose subject no longer
  exists as ``SessionInvalid``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Union

from brand_connect.models.enums import AuthEvent, ChangeType
from brand_connect.models.principal import AuthSession, Principal

ColumnValue = Union[str, int, float, bool, None, list, dict]
Row = dict[str, ColumnValue]
Filters = dict[str, ColumnValue]


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False


@dataclass(frozen=True)
class ChangeEvent:
    """A row-level change delivered to a subscription callback."""

    entity: str
    change_type: ChangeType
    record: Row = field(default_factory=dict)
    old_record: Row = field(default_factory=dict)


ChangeCallback = Callable[[ChangeEvent], None]
AuthStateCallback = Callable[[AuthEvent, Optional[AuthSession]], None]


class Subscription(Protocol):
    """Handle returned by ``subscribe``; release it to stop delivery."""

    async def unsubscribe(self) -> None: ...


class AuthSubscription(Protocol):
    def unsubscribe(self) -> None: ...


class RecordStore(Protocol):
    """Generic persistence contract over named entities (tables)."""

    async def get_by_id(self, entity: str, record_id: str) -> Optional[Row]: ...

    async def query(
        self,
        entity: str,
        filters: Optional[Filters] = None,
        order: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[Row]: ...

    async def insert(self, entity: str, row: Row) -> Row: ...

    async def update(
        self,
        entity: str,
        record_id: str,
        fields: Row,
        expected: Optional[Filters] = None,
    ) -> Row: ...

    async def delete(self, entity: str, record_id: str) -> None: ...

    async def subscribe(
        self,
        entity: str,
        filters: Filters,
        on_change: ChangeCallback,
        change_type: Optional[ChangeType] = None,
    ) -> Subscription: ...


class AuthProvider(Protocol):
    """Identity provider contract.

    ``sign_in``/``sign_up``/``update_password``/``reset_password_email``
    raise ``AuthRejected`` carrying the provider's raw message when the
    provider refuses the request.
    """

    async def sign_in(self, email: str, password: str) -> AuthSession: ...

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, object],
    ) -> Principal: ...

    async def sign_out(self) -> None: ...

    async def get_session(self) -> Optional[AuthSession]: ...

    async def refresh_session(self) -> Optional[AuthSession]: ...

    async def get_principal(self) -> Optional[Principal]: ...

    async def reset_password_email(self, email: str, redirect_url: str) -> None: ...

    async def update_password(self, new_password: str) -> None: ...

    def on_auth_state_change(self, callback: AuthStateCallback) -> AuthSubscription: ...


