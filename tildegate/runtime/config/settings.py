"""Application settings -- reads from environment and ``.env`` file."""

from __future__ import annotations

import os
from pathlib import Path

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton
from .intents import DEFAULT_INTENTS, Intent, load_intents

_TRUTHY = ("1", "true", "yes", "on")


class Settings:

    def __init__(self) -> None:
        self.env = EnvFile(os.getenv("DOTENV_PATH") or ".env")
        self.reload()

    def reload(self) -> None:
        e = self._read

        self.irc_server: str = e("IRC_SERVER") or "irc.tilde.chat"
        self.irc_port: int = int(e("IRC_PORT") or "6697")
        raw_tls = e("IRC_USE_TLS")
        self.irc_use_tls: bool = raw_tls.lower() in _TRUTHY if raw_tls else True
        self.irc_nickname: str = e("IRC_NICKNAME") or "tt-t-bot"
        self.irc_password: str = e("IRC_PASSWORD")
        self.irc_peer: str = e("IRC_PEER") or "tildebot"

        self.reconnect_delay: float = float(e("RECONNECT_DELAY") or "5")
        self.identify_timeout: float = float(e("IDENTIFY_TIMEOUT") or "30")
        self.request_timeout: float = float(e("REQUEST_TIMEOUT") or "10")
        self.queue_capacity: int = int(e("QUEUE_CAPACITY") or "100")

        self.gateway_host: str = e("GATEWAY_HOST") or "127.0.0.1"
        self.gateway_port: int = int(e("GATEWAY_PORT") or "8000")

        self.intents_file: str = e("INTENTS_FILE")

    @property
    def intents(self) -> list[Intent]:
        """Configured intents, loaded fresh from ``INTENTS_FILE`` when set."""
        if not self.intents_file:
            return list(DEFAULT_INTENTS)
        return load_intents(Path(self.intents_file))

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")


cfg = Settings()


def _reset_cfg() -> None:
    global cfg
    cfg = Settings()


register_singleton(_reset_cfg)
