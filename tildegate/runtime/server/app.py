"""Gateway web server -- app factory and entry point."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

from .. import __version__
from ..config import settings as _settings
from ..config.settings import Settings
from ..messaging.commands import CommandDispatcher
from ..messaging.gateway import RequestGateway
from ..messaging.session import Connector, IrcConnector
from ..messaging.session_manager import SessionManager
from .lifecycle import on_cleanup, on_startup
from .routes import IntentRoutes

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})

# The irc library logs every line it sends and receives.
_NOISY_LOGGERS = ("irc.client", "irc.client_aio")


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes health-check entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        level = logging.DEBUG if request.path in _QUIET_PATHS else logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


async def create_app() -> web.Application:
    factory = AppFactory()
    return await factory.build()


class AppFactory:
    """Wires dispatcher, session manager, gateway and routes into one app.

    *connector* defaults to a real IRC connection built from *settings*;
    tests pass a scripted one.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        connector: Connector | None = None,
    ) -> None:
        self._settings = settings or _settings.cfg
        self._connector = connector or IrcConnector.from_settings(self._settings)

    async def build(self) -> web.Application:
        s = self._settings
        intents = s.intents

        self.dispatcher = CommandDispatcher(s.queue_capacity)
        self.manager = SessionManager(
            self.dispatcher,
            self._connector,
            nickname=s.irc_nickname,
            reconnect_delay=s.reconnect_delay,
            identify_timeout=s.identify_timeout,
        )
        self.gateway = RequestGateway(
            self.dispatcher, timeout=s.request_timeout, peer=s.irc_peer,
        )

        app = web.Application()
        app["intents"] = [i.name for i in intents]

        IntentRoutes(self.gateway, intents).register(app.router)
        app.router.add_get("/health", self._health_handler())

        app.on_startup.append(functools.partial(on_startup, manager=self.manager))
        app.on_cleanup.append(functools.partial(on_cleanup, manager=self.manager))

        logger.info(
            "[startup] gateway for %s@%s:%d -> %s, intents=%s",
            s.irc_nickname, s.irc_server, s.irc_port, s.irc_peer,
            ", ".join(app["intents"]) or "(none)",
        )
        return app

    def _health_handler(self) -> Callable:
        manager = self.manager
        dispatcher = self.dispatcher

        async def handler(_req: web.Request) -> web.Response:
            body: dict = {
                "status": "ok" if manager.running else "down",
                "version": __version__,
                "session_state": manager.state.value,
                "queue_depth": dispatcher.qsize(),
                "queue_capacity": dispatcher.capacity,
            }
            return web.json_response(body)

        return handler


def _quiet_noisy_loggers() -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="tildegate HTTP-to-IRC gateway")
    parser.add_argument("--host", default=None, help="Bind address (default: GATEWAY_HOST).")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: GATEWAY_PORT).")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    _quiet_noisy_loggers()

    cfg = _settings.cfg
    cfg.reload()
    host = args.host or cfg.gateway_host
    port = args.port or cfg.gateway_port
    logger.info("Starting gateway on http://%s:%d ...", host, port)

    web.run_app(create_app(), host=host, port=port, access_log_class=QuietAccessLogger)


if __name__ == "__main__":
    main()
