from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from .envelopes import TAG_PREFIX, Envelope, parse_envelope
from .models import MalformedEnvelope

logger = logging.getLogger(__name__)

Handler = Callable[[Envelope], None]


class MessageDispatcher:
    """Routes inbound igloo envelopes to one handler per type tag.

    Anything that does not parse, carries a foreign tag, or trips its handler
    on a missing/mistyped field is dropped without touching state.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, Handler] = {}

    def register(self, tag: str, handler: Handler) -> None:
        if not tag.startswith(TAG_PREFIX):
            raise ValueError(f"not an igloo tag: {tag}")
        self._handlers[tag] = handler

    def unregister(self, tag: str) -> None:
        self._handlers.pop(tag, None)

    def handles(self, tag: str) -> bool:
        return tag in self._handlers

    def dispatch(self, raw: Any) -> bool:
        """Handle one inbound message; return whether a handler consumed it."""

        try:
            envelope = parse_envelope(raw)
        except MalformedEnvelope as exc:
            logger.debug("dropping malformed message: %s", exc)
            return False

        handler = self._handlers.get(envelope["type"])
        if handler is None:
            return False
        try:
            handler(envelope)
        except (ValueError, KeyError, TypeError) as exc:
            logger.debug("dropping malformed %s envelope: %s", envelope["type"], exc)
            return False
        return True
