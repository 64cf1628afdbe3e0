"""Exceptions raised inside the messaging pipeline."""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for dispatcher and session failures."""


class DispatcherClosed(GatewayError):
    """The session manager is gone; nothing will consume new commands."""


class DispatcherFull(GatewayError):
    """The command queue is at capacity."""


class SessionClosed(GatewayError):
    """The inbound frame stream ended (connection lost)."""


class SessionConnectError(GatewayError):
    """Connecting or identifying to the IRC server failed."""


class SessionSendError(GatewayError):
    """A command could not be transmitted on the session."""
