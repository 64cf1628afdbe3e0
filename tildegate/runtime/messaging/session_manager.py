"""Session manager -- the one task that owns the IRC session.

Connects, then services the dispatcher queue one command at a time:
drain stale frames, send, wait for the next frame, answer the caller.
Any connection failure tears the session down and reconnects after a
fixed delay, forever.
"""

from __future__ import annotations

import asyncio
import logging

from .commands import Command, CommandDispatcher
from .correlator import await_reply, drain_stale_frames
from .errors import SessionClosed, SessionConnectError, SessionSendError
from .session import Connector, Session, SessionState

logger = logging.getLogger(__name__)

SEND_FAILED_TEXT = "Failed to send IRC command"

DEFAULT_RECONNECT_DELAY = 5.0
DEFAULT_IDENTIFY_TIMEOUT = 30.0


class SessionManager:

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        connector: Connector,
        *,
        nickname: str,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        identify_timeout: float = DEFAULT_IDENTIFY_TIMEOUT,
    ) -> None:
        self._dispatcher = dispatcher
        self._connector = connector
        self._nickname = nickname
        self._reconnect_delay = reconnect_delay
        self._identify_timeout = identify_timeout
        self._state = SessionState.disconnected
        # Dequeued but not yet transmitted when the session dropped.
        self._carry: Command | None = None
        self._task: asyncio.Task[None] | None = None
        self.sessions_opened = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug("[session] %s -> %s", self._state.value, state.value)
            self._state = state

    # -- task lifecycle ----------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.create_task(self.run(), name="session-manager")
        self._task.add_done_callback(self._on_task_done)
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            logger.info("[session] manager stopped")
        elif (exc := task.exception()) is not None:
            logger.critical("[session] manager died: %s", exc, exc_info=exc)
        else:
            logger.critical("[session] manager exited")
        self._set_state(SessionState.disconnected)
        if self._carry is not None:
            self._carry.fulfil(None)
            self._carry = None
        self._dispatcher.close()

    # -- main loop ---------------------------------------------------------

    async def run(self) -> None:
        logger.info(
            "[session] manager started (reconnect_delay=%gs, identify_timeout=%gs)",
            self._reconnect_delay, self._identify_timeout,
        )
        while True:
            session = await self._open()
            if session is not None:
                try:
                    await self._serve(session)
                except SessionClosed as exc:
                    logger.warning("[session] %s", exc)
                except Exception as exc:
                    logger.error("[session] session loop error: %s", exc, exc_info=True)
                finally:
                    session.close()
                self._set_state(SessionState.failed)

            logger.info("[session] reconnecting in %gs", self._reconnect_delay)
            await asyncio.sleep(self._reconnect_delay)
            self._set_state(SessionState.disconnected)

    async def _open(self) -> Session | None:
        self._set_state(SessionState.connecting)
        session: Session | None = None
        try:
            session = await self._connector()
            self._set_state(SessionState.identifying)
            await session.wait_ready(self._identify_timeout)
        except SessionConnectError as exc:
            logger.warning("[session] connect failed: %s", exc)
        except Exception as exc:
            logger.error("[session] unexpected connect error: %s", exc, exc_info=True)
        else:
            self.sessions_opened += 1
            self._set_state(SessionState.ready)
            logger.info("[session] ready (session #%d)", self.sessions_opened)
            return session

        if session is not None:
            session.close()
        self._set_state(SessionState.failed)
        return None

    async def _serve(self, session: Session) -> None:
        while True:
            if self._carry is not None:
                command = self._carry
            else:
                command = await self._next_command(session)
                self._carry = command

            drain_stale_frames(session)
            self._carry = None

            try:
                session.send(command.payload)
            except SessionSendError as exc:
                logger.warning("[session] send failed for %r: %s", command.payload, exc)
                command.fulfil(SEND_FAILED_TEXT)
                continue
            logger.info("[session] sent %r", command.payload)

            try:
                reply = await await_reply(session, self._nickname)
            except BaseException:
                command.fulfil(None)
                raise

            if not command.fulfil(reply):
                logger.info("[session] reply to %r arrived after its caller gave up", command.payload)

    async def _next_command(self, session: Session) -> Command:
        """Dequeue the next command, or raise ``SessionClosed`` if the
        connection drops while we are idle."""
        getter = asyncio.ensure_future(self._dispatcher.get())
        closer = asyncio.ensure_future(session.wait_closed())
        try:
            done, _ = await asyncio.wait(
                {getter, closer}, return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            if getter.done() and not getter.cancelled():
                self._carry = getter.result()
            raise
        finally:
            closer.cancel()
            if not getter.done():
                getter.cancel()

        if getter in done:
            return getter.result()
        raise SessionClosed("connection lost while idle")
