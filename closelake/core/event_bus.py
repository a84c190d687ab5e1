"""Event bus — validates and dispatches marketplace notifications.

Handlers are registered per ``EventKind``.  A failing handler does not stop
delivery to the others; the bus raises ``EventDispatchError`` only when
every handler for an event failed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

from closelake.models.events import EVENT_TYPE_MAP, EventKind, MarketEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[MarketEvent], object]


class EventValidationError(ValueError):
    """Raised when a raw event fails validation."""


class EventDispatchError(RuntimeError):
    """Raised when all handlers for an event failed."""


class EventBus:
    """Routes published events to registered handlers."""

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[EventHandler]] = {
            kind: [] for kind in EventKind
        }

    def register_handler(self, kind: EventKind, handler: EventHandler) -> None:
        """Register a handler for a specific event kind."""
        self._handlers[kind].append(handler)

    def register_all(self, handler: EventHandler) -> None:
        """Register a handler for every event kind."""
        for kind in EventKind:
            self._handlers[kind].append(handler)

    def handler_count(self, kind: EventKind) -> int:
        return len(self._handlers[kind])

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, event: MarketEvent) -> str:
        """Dispatch *event* to its handlers and return its event_id."""
        handlers = self._handlers.get(event.event_kind, [])
        errors: list[tuple[str, Exception]] = []
        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:  # noqa: BLE001
                name = getattr(handler, "__qualname__", repr(handler))
                logger.error(
                    "Handler %s failed for event %s (%s): %s",
                    name,
                    event.event_id,
                    event.event_kind.value,
                    exc,
                )
                errors.append((name, exc))

        if errors and len(errors) == len(handlers):
            raise EventDispatchError(
                f"All {len(errors)} handlers failed for event {event.event_id}: "
                + "; ".join(f"{name}: {exc}" for name, exc in errors)
            )
        return event.event_id

    # ------------------------------------------------------------------
    # Receive (deserialize + validate)
    # ------------------------------------------------------------------

    def receive(self, raw_json: bytes | str) -> MarketEvent:
        """Deserialize and validate a raw JSON event.

        Determines the correct model from ``event_kind`` and validates all
        fields.
        """
        if isinstance(raw_json, bytes):
            raw_json = raw_json.decode("utf-8")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as exc:
            raise EventValidationError(f"Invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise EventValidationError(
                f"Event must be a JSON object, got {type(data).__name__}"
            )
        return parse_event(data)


def parse_event(data: dict) -> MarketEvent:
    """Build the typed event model for a decoded event dict."""
    kind_str = data.get("event_kind")
    if not kind_str:
        raise EventValidationError("Missing event_kind field")

    try:
        kind = EventKind(kind_str)
    except ValueError as exc:
        raise EventValidationError(f"Unknown event_kind: {kind_str!r}") from exc

    try:
        return EVENT_TYPE_MAP[kind].model_validate(data)
    except Exception as exc:
        raise EventValidationError(f"Event validation failed: {exc}") from exc
