"""Server module -- aiohttp application factory and HTTP handlers."""

from __future__ import annotations

from .app import AppFactory, create_app, main

__all__ = ["AppFactory", "create_app", "main"]
