from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

Subscriber = Callable[["NotificationIntent"], None]


@dataclass(frozen=True)
class NotificationIntent:
    """Something changed for an entity; delivery is someone else's job."""

    entity_type: str
    entity_id: int
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher(Protocol):
    def publish(self, entity_type: str, entity_id: int, payload: dict[str, Any]) -> None:
        ...


class NotificationHub:
    """In-process fan-out of notification intents to per-entity subscribers.

    Publishing is best effort: a failing subscriber is logged and skipped so
    that callers never see delivery errors.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[tuple[str, int], list[Subscriber]] = defaultdict(list)

    def subscribe(self, entity_type: str, entity_id: int, callback: Subscriber) -> Callable[[], None]:
        key = (entity_type, entity_id)
        with self._lock:
            self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(key)
                if callbacks and callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(key, None)

        return unsubscribe

    def subscriber_count(self, entity_type: str, entity_id: int) -> int:
        with self._lock:
            return len(self._subscribers.get((entity_type, entity_id), ()))

    def publish(self, entity_type: str, entity_id: int, payload: dict[str, Any]) -> None:
        intent = NotificationIntent(entity_type=entity_type, entity_id=entity_id, payload=dict(payload))
        with self._lock:
            callbacks = list(self._subscribers.get((entity_type, entity_id), ()))

        logger.info(
            "notification_published",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "event": payload.get("event"),
                "subscribers": len(callbacks),
            },
        )
        for callback in callbacks:
            try:
                callback(intent)
            except Exception:
                logger.exception(
                    "notification_delivery_failed",
                    extra={"entity_type": entity_type, "entity_id": entity_id},
                )


notification_hub = NotificationHub()


def get_dispatcher() -> NotificationDispatcher:
    return notification_hub


def publish_intent(dispatcher: NotificationDispatcher | None, intent: NotificationIntent) -> None:
    """Hand an intent to the dispatcher without letting delivery errors escape."""

    if dispatcher is None:
        return
    try:
        dispatcher.publish(intent.entity_type, intent.entity_id, intent.payload)
    except Exception:
        logger.exception(
            "notification_dispatch_failed",
            extra={"entity_type": intent.entity_type, "entity_id": intent.entity_id},
        )
