"""Publish/subscribe for repair progress events.

Event names form a closed set (``RepairEvent``). For one ``repair()`` call the
ordered events are::

    SESSION_START -> LOCALIZATION -> (START -> CANDIDATE* -> RESULT)* -> SESSION_END

``PROGRESS`` may be interleaved anywhere and carries no ordering guarantee.
``SESSION_END`` is not emitted when ``repair()`` raises.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class RepairEvent(str, Enum):
    SESSION_START = "repair:session:start"
    PROGRESS = "repair:progress"
    LOCALIZATION = "repair:localization"
    START = "repair:start"
    CANDIDATE = "repair:candidate"
    RESULT = "repair:result"
    SESSION_END = "repair:session:end"


EventHandler = Callable[[Dict[str, Any]], None]


class EventBus:
    """Synchronous fan-out of events to subscribed handlers.

    Handlers run in subscription order on the emitting thread. A handler that
    raises is logged and skipped; it never interrupts the repair session.
    """

    def __init__(self):
        self._handlers: Dict[RepairEvent, List[EventHandler]] = defaultdict(list)

    def on(self, event: RepairEvent, handler: EventHandler) -> None:
        """Subscribe ``handler`` to ``event``.

        Raises:
            ValueError: If ``event`` is not a known RepairEvent name
        """
        self._handlers[RepairEvent(event)].append(handler)

    def off(self, event: RepairEvent, handler: EventHandler) -> bool:
        """Unsubscribe; returns False if the handler was not subscribed."""
        handlers = self._handlers.get(RepairEvent(event), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def emit(self, event: RepairEvent, payload: Dict[str, Any]) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.warning(f"Handler for {event.value} failed: {e}")

    def listener_count(self, event: RepairEvent) -> int:
        return len(self._handlers.get(RepairEvent(event), []))
