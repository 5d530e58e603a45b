import logging
import threading
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from arena.models.event_model import DomainEvent, EventType

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]

ALL_EVENTS = "*"

class NotificationService:
    """
    In-process event bus.

    Services hand over the events of an operation only after it has been
    committed and the tournament lock released. Delivery is best-effort: a
    failing subscriber is logged and does not affect the publisher or the
    other subscribers. Recent events are kept for consumers that poll.
    """

    def __init__(self, history_size: int = 500):
        self._subscribers: Dict[str, List[EventHandler]] = {}
        self._history: Deque[DomainEvent] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, handler: EventHandler):
        if isinstance(event_name, EventType):
            event_name = event_name.value
        with self._lock:
            self._subscribers.setdefault(event_name, []).append(handler)

    def publish(self, events: List[DomainEvent]):
        for event in events:
            with self._lock:
                self._history.append(event)
                handlers = list(self._subscribers.get(event.name, [])) + list(self._subscribers.get(ALL_EVENTS, []))
            logger.info("Event %s for tournament %s", event.name, event.tournament_id)
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception("Subscriber %r failed on event %s", handler, event.name)

    def get_recent_events(self, tournament_id: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[DomainEvent]:
        with self._lock:
            events = [e for e in reversed(self._history) if tournament_id is None or e.tournament_id == tournament_id]
        return events[skip:skip + limit]
