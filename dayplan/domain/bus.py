"""Simple synchronous in-process message bus."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Publish/subscribe bus for mutation commands and their results.

    Handlers are called synchronously in registration order, so a result
    published from inside a handler reaches its subscribers before
    ``publish`` returns.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Callable]] = defaultdict(list)

    def subscribe(self, message_type: type, handler: Callable) -> None:
        self._subscribers[message_type].append(handler)

    def unsubscribe(self, message_type: type, handler: Callable) -> None:
        handlers = self._subscribers.get(message_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, message: Any) -> None:
        handlers = self._subscribers.get(type(message), [])
        logger.debug("Publishing %s to %d handler(s)", type(message).__name__, len(handlers))
        for handler in list(handlers):
            handler(message)
