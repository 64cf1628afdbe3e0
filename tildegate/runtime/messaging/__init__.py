"""IRC messaging pipeline -- dispatcher, session manager, correlation, gateway."""

from .commands import Command, CommandDispatcher
from .errors import (
    DispatcherClosed,
    DispatcherFull,
    GatewayError,
    SessionClosed,
    SessionConnectError,
    SessionSendError,
)
from .gateway import RequestGateway
from .session import IrcConnector, IrcSession, SessionState
from .session_manager import SessionManager

__all__ = [
    "Command",
    "CommandDispatcher",
    "DispatcherClosed",
    "DispatcherFull",
    "GatewayError",
    "IrcConnector",
    "IrcSession",
    "RequestGateway",
    "SessionClosed",
    "SessionConnectError",
    "SessionManager",
    "SessionSendError",
    "SessionState",
]
