"""Intent routes -- ``GET /{intent}/{identity}`` for every configured intent."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable

from aiohttp import web

from ...config.intents import Intent
from ...messaging.gateway import RequestGateway

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.Response]]


class IntentRoutes:
    """Exposes each intent as a plain-text GET endpoint.

    Failures are reported in the body with status 200, never as HTTP
    errors.
    """

    def __init__(self, gateway: RequestGateway, intents: Iterable[Intent]) -> None:
        self._gateway = gateway
        self._intents = list(intents)

    def register(self, router: web.UrlDispatcher) -> None:
        for intent in self._intents:
            router.add_get(f"/{intent.name}/{{identity}}", self._handler(intent))
            logger.info("[routes] GET /%s/{identity} -> %r", intent.name, intent.command_template)

    def _handler(self, intent: Intent) -> Handler:
        async def handler(req: web.Request) -> web.Response:
            identity = req.match_info["identity"]
            text = await self._gateway.request(intent, identity)
            return web.Response(text=text)

        return handler
