"""Shared utilities: audit events, per-key locks and side-effect retries."""

from brand_connect.utils.audit import AuditEvent, log_audit_event
from brand_connect.utils.locks import KeyedLock
from brand_connect.utils.retry import RetryPolicy, retry_async

__all__ = ["AuditEvent", "log_audit_event", "KeyedLock", "RetryPolicy", "retry_async"]
