"""IRC session -- one connection, one peer, a buffered stream of raw frames."""

from __future__ import annotations

import asyncio
import enum
import logging
import ssl
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import irc.client
from irc.client_aio import AioConnection, AioReactor
from irc.connection import AioFactory
from jaraco.stream.buffer import LenientDecodingLineBuffer

from .errors import SessionClosed, SessionConnectError, SessionSendError

logger = logging.getLogger(__name__)

FRAME_BACKLOG = 512
DEFAULT_CONNECT_TIMEOUT = 30.0


class SessionState(enum.Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    identifying = "identifying"
    ready = "ready"
    failed = "failed"


class Session(Protocol):
    """What the session manager needs from a live connection."""

    async def wait_ready(self, timeout: float) -> None: ...

    def send(self, text: str) -> None: ...

    def poll_frame(self) -> str | None: ...

    async def next_frame(self) -> str: ...

    async def wait_closed(self) -> None: ...

    def close(self) -> None: ...


Connector = Callable[[], Awaitable[Session]]


class IrcSession:
    """A registered IRC connection that talks to exactly one peer.

    Every raw line received is buffered as a frame.  ``poll_frame`` returns
    ``None`` when nothing is buffered right now; both ``poll_frame`` and
    ``next_frame`` raise :class:`SessionClosed` once the connection is gone.

    At most *backlog* frames are kept; the oldest is dropped to make room.
    Lines that are not valid UTF-8 are decoded as latin-1 instead of
    failing the connection.
    """

    def __init__(self, reactor: AioReactor, peer: str, *, backlog: int = FRAME_BACKLOG) -> None:
        self._reactor = reactor
        self._peer = peer
        self._frames: asyncio.Queue[str | None] = asyncio.Queue(maxsize=backlog)
        self._welcomed = asyncio.Event()
        self._closed = asyncio.Event()
        self._refused = ""
        self.dropped_frames = 0
        self.connection: AioConnection = reactor.server()
        self.connection.buffer_class = LenientDecodingLineBuffer

        reactor.add_global_handler("all_raw_messages", self._on_raw)
        reactor.add_global_handler("welcome", self._on_welcome)
        reactor.add_global_handler("nicknameinuse", self._on_refused)
        reactor.add_global_handler("erroneusnickname", self._on_refused)
        reactor.add_global_handler("disconnect", self._on_disconnect)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # -- reactor callbacks -------------------------------------------------

    def _on_raw(self, _conn: AioConnection, event: Any) -> None:
        line = event.arguments[0] if event.arguments else ""
        self._push(line.rstrip("\r\n"))

    def _on_welcome(self, _conn: AioConnection, _event: Any) -> None:
        self._welcomed.set()

    def _on_refused(self, _conn: AioConnection, event: Any) -> None:
        self._refused = f"{event.type}: {' '.join(event.arguments)}"
        self._welcomed.set()

    def _on_disconnect(self, _conn: AioConnection, _event: Any) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._push(None)

    def _push(self, frame: str | None) -> None:
        if self._frames.full():
            self._frames.get_nowait()
            self.dropped_frames += 1
            if self.dropped_frames == 1 or self.dropped_frames % 100 == 0:
                logger.warning(
                    "[session] frame backlog full, %d frame(s) dropped so far",
                    self.dropped_frames,
                )
        self._frames.put_nowait(frame)

    # -- Session -----------------------------------------------------------

    async def wait_ready(self, timeout: float) -> None:
        """Wait for the server welcome that completes registration."""
        waiter = asyncio.ensure_future(self._welcomed.wait())
        closer = asyncio.ensure_future(self._closed.wait())
        try:
            done, _ = await asyncio.wait(
                {waiter, closer}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            closer.cancel()
        if not done:
            raise SessionConnectError(f"no welcome from server within {timeout:g}s")
        if self._refused:
            raise SessionConnectError(f"registration refused ({self._refused})")
        if closer in done and not self._welcomed.is_set():
            raise SessionConnectError("connection closed during registration")

    def send(self, text: str) -> None:
        if self.closed or not self.connection.is_connected():
            raise SessionSendError("not connected")
        try:
            self.connection.privmsg(self._peer, text)
        except (irc.client.ServerNotConnectedError, ValueError, OSError) as exc:
            raise SessionSendError(str(exc)) from exc

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
        if self.connection.is_connected():
            self.connection.disconnect("bye")
        self._on_disconnect(self.connection, None)

    def _unwrap(self, frame: str | None) -> str:
        if frame is None:
            # keep the end-of-stream marker visible to later reads
            self._frames.put_nowait(None)
            raise SessionClosed("connection lost")
        return frame


class IrcConnector:
    """Opens a fresh :class:`IrcSession` each time it is called."""

    def __init__(
        self,
        server: str,
        port: int,
        nickname: str,
        peer: str,
        *,
        use_tls: bool = True,
        password: str = "",
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        self.server = server
        self.port = port
        self.nickname = nickname
        self.peer = peer
        self.use_tls = use_tls
        self.password = password
        self.connect_timeout = connect_timeout

    @classmethod
    def from_settings(cls, settings: Any) -> IrcConnector:
        return cls(
            settings.irc_server,
            settings.irc_port,
            settings.irc_nickname,
            settings.irc_peer,
            use_tls=settings.irc_use_tls,
            password=settings.irc_password,
            connect_timeout=settings.identify_timeout,
        )

    def _factory(self) -> AioFactory:
        if self.use_tls:
            return AioFactory(ssl=ssl.create_default_context())
        return AioFactory()

    async def __call__(self) -> IrcSession:
        reactor = AioReactor(loop=asyncio.get_running_loop())
        session = IrcSession(reactor, self.peer)
        logger.info(
            "[session] connecting to %s:%d as %s (tls=%s)",
            self.server, self.port, self.nickname, self.use_tls,
        )
        try:
            await asyncio.wait_for(
                session.connection.connect(
                    self.server,
                    self.port,
                    self.nickname,
                    password=self.password or None,
                    connect_factory=self._factory(),
                ),
                timeout=self.connect_timeout,
            )
        except TimeoutError as exc:
            raise SessionConnectError(
                f"cannot connect to {self.server}:{self.port}: "
                f"no answer within {self.connect_timeout:g}s"
            ) from exc
        except (OSError, irc.client.ServerConnectionError) as exc:
            raise SessionConnectError(
                f"cannot connect to {self.server}:{self.port}: {exc}"
            ) from exc
        return session
