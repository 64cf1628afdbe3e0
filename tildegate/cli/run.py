"""Single-request CLI entry point.

Opens a private IRC session, sends one intent, prints the bot's reply and
exits.  Useful for checking that the bot is reachable without starting the
HTTP server.

Usage::

    tildegate-run time alice
    tildegate-run --timeout 20 weather bob
    tildegate-run -q time alice
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console

from tildegate.runtime.config.intents import Intent
from tildegate.runtime.config.settings import Settings
from tildegate.runtime.messaging.commands import CommandDispatcher
from tildegate.runtime.messaging.correlator import NO_REPLY_TEXT
from tildegate.runtime.messaging.gateway import SUBMIT_FAILED_TEXT, RequestGateway
from tildegate.runtime.messaging.session import Connector, IrcConnector
from tildegate.runtime.messaging.session_manager import SEND_FAILED_TEXT, SessionManager

logger = logging.getLogger(__name__)
console = Console()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tildegate-run",
        description="Send a single intent to the IRC bot and print the reply.",
    )
    parser.add_argument("intent", help="Intent name, e.g. 'time' or 'weather'.")
    parser.add_argument("identity", help="The identity to ask about.")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the reply (default: REQUEST_TIMEOUT).",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Print only the reply text.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log session activity to stderr.",
    )
    return parser


def _resolve_intent(settings: Settings, name: str) -> Intent | None:
    for intent in settings.intents:
        if intent.name == name:
            return intent
    return None


async def _run(
    args: argparse.Namespace,
    settings: Settings | None = None,
    connector: Connector | None = None,
) -> int:
    """Start a session manager, perform one request, stop."""
    settings = settings or Settings()
    intent = _resolve_intent(settings, args.intent)
    if intent is None:
        known = ", ".join(i.name for i in settings.intents)
        console.print(f"[red]Error:[/red] unknown intent {args.intent!r} (known: {known})")
        return 1

    timeout = args.timeout if args.timeout is not None else settings.request_timeout
    dispatcher = CommandDispatcher(settings.queue_capacity)
    manager = SessionManager(
        dispatcher,
        connector or IrcConnector.from_settings(settings),
        nickname=settings.irc_nickname,
        reconnect_delay=settings.reconnect_delay,
        identify_timeout=settings.identify_timeout,
    )
    gateway = RequestGateway(dispatcher, timeout=timeout, peer=settings.irc_peer)

    if not args.quiet:
        console.print(
            f"[bold green]tildegate-run[/bold green] {intent.render(args.identity)!r} "
            f"-> {settings.irc_peer} via {settings.irc_server}:{settings.irc_port}\n"
        )

    manager.start()
    try:
        reply = await gateway.request(intent, args.identity)
    finally:
        await manager.stop()

    failures = {SUBMIT_FAILED_TEXT, SEND_FAILED_TEXT, NO_REPLY_TEXT, gateway.no_response_text}
    if reply in failures:
        console.print(f"[red]{reply}[/red]")
        return 1
    console.print(reply, markup=False, highlight=False)
    return 0


def main() -> None:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    logging.getLogger("irc").setLevel(logging.WARNING)
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
