"""Draining stale frames and matching the next frame to the command just sent.

The bot answers with a single PRIVMSG line and carries no request id, so
correlation is positional: whatever arrives first after transmission is the
reply.  Draining right before each send keeps a late reply to an earlier,
already timed-out caller from being taken as the answer to the next one.
"""

from __future__ import annotations

import logging

from .session import Session

logger = logging.getLogger(__name__)

NO_REPLY_TEXT = "Failed to receive reply"


def drain_stale_frames(session: Session) -> int:
    """Discard every frame already buffered on *session*; return how many.

    Only non-blocking polls are used.  ``SessionClosed`` propagates: an
    ended stream is a disconnect, not an empty buffer.
    """
    drained = 0
    while (frame := session.poll_frame()) is not None:
        logger.debug("[session] drained: %r", frame)
        drained += 1
    if drained:
        logger.debug("[session] drained %d stale frame(s)", drained)
    return drained


def extract_reply(frame: str, nickname: str) -> str:
    """Return the text that follows ``"<nickname> "`` in a raw IRC line.

    >>> extract_reply(":bot!b@h PRIVMSG me :hi there", "me")
    ':hi there'
    """
    marker = f"{nickname} "
    if marker not in frame:
        return NO_REPLY_TEXT
    return frame.split(marker)[-1]


async def await_reply(session: Session, nickname: str) -> str:
    """Block for exactly one frame and extract the reply text from it."""
    frame = await session.next_frame()
    logger.debug("[session] reply frame: %r", frame)
    return extract_reply(frame, nickname)
