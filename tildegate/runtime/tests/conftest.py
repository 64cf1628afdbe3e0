"""Shared pytest fixtures for tildegate.runtime tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from tildegate.runtime.messaging.errors import SessionClosed, SessionConnectError, SessionSendError

NICK = "tt-t-bot"

_ENV_KEYS = (
    "IRC_SERVER",
    "IRC_PORT",
    "IRC_USE_TLS",
    "IRC_NICKNAME",
    "IRC_PASSWORD",
    "IRC_PEER",
    "RECONNECT_DELAY",
    "IDENTIFY_TIMEOUT",
    "REQUEST_TIMEOUT",
    "QUEUE_CAPACITY",
    "GATEWAY_HOST",
    "GATEWAY_PORT",
    "INTENTS_FILE",
)


class ScriptedSession:
    """In-memory stand-in for an IRC session.

    *responder* maps each sent payload to the frames the "bot" emits right
    after it; tests can also :meth:`push` frames or :meth:`drop` the
    connection at any time.
    """

    def __init__(
        self,
        responder: Callable[[str], list[str]] | None = None,
        *,
        fail_send: bool = False,
    ) -> None:
        self.responder = responder
        self.fail_send = fail_send
        self.sent: list[str] = []
        self.closed_calls = 0
        self._frames: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = asyncio.Event()

    def push(self, *frames: str) -> None:
        for frame in frames:
            self._frames.put_nowait(frame)

    def end_stream(self) -> None:
        """End the frame stream without signalling closure to idle waiters."""
        self._frames.put_nowait(None)

    def drop(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._frames.put_nowait(None)

    async def wait_ready(self, timeout: float) -> None:
        return None

    def send(self, text: str) -> None:
        if self.fail_send:
            raise SessionSendError("scripted send failure")
        self.sent.append(text)
        if self.responder is not None:
            self.push(*self.responder(text))

    def poll_frame(self) -> str | None:
        try:
            frame = self._frames.get_nowait()
        except asyncio.QueueEmpty:
            return None
        return self._unwrap(frame)

    async def next_frame(self) -> str:
        return self._unwrap(await self._frames.get())

    async def wait_closed(self) -> None:
        await self._closed.wait()

    def close(self) -> None:
        self.closed_calls += 1
        self.drop()

    def _unwrap(self, frame: str | None) -> str:
        if frame is None:
            self._frames.put_nowait(None)
            raise SessionClosed("scripted stream ended")
        return frame


class ScriptedConnector:
    """Hands out the given sessions in order; exceptions are raised instead."""

    def __init__(self, *outcomes: ScriptedSession | Exception) -> None:
        self._outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self) -> ScriptedSession:
        self.calls += 1
        if not self._outcomes:
            raise SessionConnectError("no more scripted sessions")
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def bot_frame(text: str, nick: str = NICK) -> str:
    return f":tildebot!~tildebot@tilde.chat PRIVMSG {nick} :{text}"


def echo_responder(payload: str) -> list[str]:
    return [bot_frame(f"re {payload}")]


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    env_path = tmp_path / ".env"
    monkeypatch.setenv("DOTENV_PATH", str(env_path))
    return env_path


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_env: Path):
    from tildegate.runtime.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def env_path(_isolate_env: Path) -> Path:
    return _isolate_env


@pytest.fixture()
def scripted():
    """Access to the scripted session helpers from test modules."""

    class _Scripted:
        Session = ScriptedSession
        Connector = ScriptedConnector
        frame = staticmethod(bot_frame)
        echo = staticmethod(echo_responder)
        wait_until = staticmethod(wait_until)
        nick = NICK

    return _Scripted
