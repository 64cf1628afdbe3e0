"""Request gateway -- turns one intent request into one queued command."""

from __future__ import annotations

import asyncio
import logging

from ..config.intents import Intent
from .commands import Command, CommandDispatcher
from .errors import DispatcherClosed, DispatcherFull

logger = logging.getLogger(__name__)

SUBMIT_FAILED_TEXT = "Failed to send message to IRC client"

DEFAULT_TIMEOUT = 10.0


class RequestGateway:

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        peer: str = "tildebot",
    ) -> None:
        self._dispatcher = dispatcher
        self._timeout = timeout
        self.no_response_text = f"Failed to receive response from {peer}"

    @property
    def timeout(self) -> float:
        return self._timeout

    async def request(self, intent: Intent, identity: str) -> str:
        """Send *intent* for *identity* and return the bot's reply text.

        Failures come back as fixed sentences rather than exceptions; the
        caller never waits longer than the gateway timeout.
        """
        payload = intent.render(identity)
        slot: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()

        try:
            self._dispatcher.submit(Command(payload, slot))
        except (DispatcherClosed, DispatcherFull) as exc:
            logger.warning("[gateway] submit failed for %r: %s", payload, exc)
            return SUBMIT_FAILED_TEXT

        try:
            reply = await asyncio.wait_for(slot, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("[gateway] no reply to %r within %gs", payload, self._timeout)
            return self.no_response_text

        if reply is None:
            logger.warning("[gateway] no answer for %r (session dropped)", payload)
            return self.no_response_text
        return intent.strip_marker(reply)
