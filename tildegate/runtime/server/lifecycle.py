"""Application lifecycle -- startup and cleanup hooks."""

from __future__ import annotations

import logging

from aiohttp import web

from ..messaging.session_manager import SessionManager

logger = logging.getLogger(__name__)


async def on_startup(app: web.Application, *, manager: SessionManager) -> None:
    """Start the session manager task that owns the IRC connection."""
    app["session_task"] = manager.start()
    logger.info("[startup] session manager task started")


async def on_cleanup(app: web.Application, *, manager: SessionManager) -> None:
    """Stop the session manager; queued callers are answered with no reply."""
    await manager.stop()
    logger.info("[cleanup] session manager stopped")
