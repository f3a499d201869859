"""
Storage Layer Package.

``base`` defines the contracts the core is written against; the Supabase
adapters live in ``supabase_store`` and are only imported by the entry
point.
"""

from brand_connect.store.base import (
    AuthProvider,
    ChangeEvent,
    OrderBy,
    RecordStore,
    Row,
    Subscription,
)

__all__ = [
    "AuthProvider",
    "ChangeEvent",
    "OrderBy",
    "RecordStore",
    "Row",
    "Subscription",
]
