"""
Brand Connect Marketplace Core Entry Point.

Bootstraps the dependency graph via constructor injection against the
Supabase backend, restores any persisted session, and reports who is
signed in.  Every subsystem is wired here; no module-level globals.

Usage::

    python main.py
"""

from __future__ import annotations

import asyncio
import sys

from brand_connect.auth import SessionManager
from brand_connect.config import get_config
from brand_connect.logger import StructuredLogger, get_logger
from brand_connect.services import create_services
from brand_connect.store.supabase_store import (
    SupabaseAuthProvider,
    SupabaseRecordStore,
    create_supabase_client,
)


async def main() -> int:
    """Wire dependencies, restore the session and shut down cleanly."""
    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()
    logger: StructuredLogger = get_logger("main", config)
    logger.info("Starting Brand Connect core...")

    # ------------------------------------------------------------------
    # 2. Supabase adapters (record store + auth provider)
    # ------------------------------------------------------------------
    try:
        client = await create_supabase_client(config)
    except ValueError as exc:
        logger.critical("Supabase is not configured: %s", exc)
        return 1

    store_logger = get_logger("store", config)
    store = SupabaseRecordStore(client, store_logger)
    auth = SupabaseAuthProvider(client, store_logger)

    # ------------------------------------------------------------------
    # 3. Session Manager
    # ------------------------------------------------------------------
    session = SessionManager()

    # ------------------------------------------------------------------
    # 4. Service Container (repositories + services, single composition root)
    # ------------------------------------------------------------------
    services = create_services(
        store=store,
        auth=auth,
        config=config,
        session=session,
        logger=get_logger("services", config),
    )

    # ------------------------------------------------------------------
    # 5. Session restore
    # ------------------------------------------------------------------
    authority = services["session_authority"]
    result = await authority.start()
    try:
        if not result.success:
            logger.warning("Session restore failed: %s", result.error)
        elif result.data is None:
            logger.info("No active session.")
        else:
            logger.info(
                "Signed in as %s (%s, via %s).",
                result.data.name,
                result.data.role,
                result.data.source,
            )
    finally:
        await authority.stop()
        logger.info("Brand Connect core shut down.")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass
