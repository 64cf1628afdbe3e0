"""Intent definitions -- one HTTP route and one bot command each."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from string import Formatter
from typing import Any

logger = logging.getLogger(__name__)

# \x03 is the IRC colour control byte; tildebot wraps its tags in colour 03.
_TAG = "\x0303{}\x03"


@dataclass(frozen=True)
class Intent:
    """A command template with one ``{}`` slot and the reply tag to strip."""

    name: str
    command_template: str
    response_marker: str = ""

    def render(self, identity: str) -> str:
        return self.command_template.format(identity)

    def strip_marker(self, reply: str) -> str:
        if self.response_marker and reply.startswith(self.response_marker):
            return reply[len(self.response_marker):]
        return reply


DEFAULT_INTENTS: tuple[Intent, ...] = (
    Intent("time", ",time {}", f":[{_TAG.format('Time')}] "),
    Intent("weather", ",weather {}", f":[{_TAG.format('Weather')}] "),
)


def validate_intent(intent: Intent) -> None:
    """Raise ``ValueError`` if *intent* cannot be served as a route."""
    if not intent.name or "/" in intent.name or "{" in intent.name:
        raise ValueError(f"Invalid intent name: {intent.name!r}")
    message = f"Intent {intent.name!r}: command template must contain exactly one '{{}}'"
    try:
        fields = [
            (field, spec, conversion)
            for _, field, spec, conversion in Formatter().parse(intent.command_template)
            if field is not None
        ]
    except ValueError as exc:
        raise ValueError(f"{message}: {exc}") from exc
    # only a bare "{}" is accepted
    if fields != [("", "", None)]:
        raise ValueError(message)


def intent_from_dict(raw: dict[str, Any]) -> Intent:
    try:
        intent = Intent(
            name=str(raw["name"]),
            command_template=str(raw["command_template"]),
            response_marker=str(raw.get("response_marker", "")),
        )
    except KeyError as exc:
        raise ValueError(f"Intent entry missing field {exc.args[0]!r}: {raw!r}") from exc
    validate_intent(intent)
    return intent


def load_intents(path: Path) -> list[Intent]:
    """Load a JSON list of intents from *path*.

    Each entry is ``{"name", "command_template", "response_marker"}``.
    Duplicate names are rejected as well as malformed entries.
    """
    try:
        raw = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        raise ValueError(f"Cannot read intents from {path}: {exc}") from exc
    if not isinstance(raw, list):
        raise ValueError(f"Intents file {path} must contain a JSON list")

    intents: list[Intent] = []
    seen: set[str] = set()
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError(f"Intent entry must be an object: {entry!r}")
        intent = intent_from_dict(entry)
        if intent.name in seen:
            raise ValueError(f"Duplicate intent name: {intent.name!r}")
        seen.add(intent.name)
        intents.append(intent)
    logger.info("Loaded %d intent(s) from %s", len(intents), path)
    return intents
