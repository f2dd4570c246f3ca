"""In-process structured event channel with fault-isolated dispatch."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
import warnings

from hookpack.core.models import RuntimeMessage

Subscriber = Callable[[RuntimeMessage], Any]


@dataclass(frozen=True, slots=True)
class ChannelDiagnostic:
    subscriber: str
    event_type: str
    error_type: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "subscriber": self.subscriber,
            "event_type": self.event_type,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(slots=True)
class EventChannel:
    """Delivers runtime messages synchronously to subscribers in order."""

    subscribers: list[Subscriber] = field(default_factory=list)
    diagnostics: list[ChannelDiagnostic] = field(default_factory=list)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        self.subscribers.append(subscriber)

        def unsubscribe() -> None:
            self.unsubscribe(subscriber)

        return unsubscribe

    def unsubscribe(self, subscriber: Subscriber) -> None:
        try:
            self.subscribers.remove(subscriber)
        except ValueError:
            return

    def publish(self, message: RuntimeMessage) -> None:
        for subscriber in tuple(self.subscribers):
            try:
                subscriber(message)
            except Exception as error:
                diagnostic = ChannelDiagnostic(
                    subscriber=_subscriber_name(subscriber),
                    event_type=message.type,
                    error_type=error.__class__.__name__,
                    message=str(error),
                )
                self.diagnostics.append(diagnostic)
                warnings.warn(
                    (
                        f"hookpack channel subscriber failure: subscriber={diagnostic.subscriber} "
                        f"event={diagnostic.event_type} "
                        f"error={diagnostic.error_type}: {diagnostic.message}"
                    ),
                    RuntimeWarning,
                    stacklevel=2,
                )

    def emit(self, event_type: str, data: dict[str, Any] | None = None) -> RuntimeMessage:
        message = RuntimeMessage(type=event_type, data=dict(data or {}))
        self.publish(message)
        return message


def _subscriber_name(subscriber: object) -> str:
    owner = getattr(subscriber, "__self__", None)
    if owner is not None:
        return f"{owner.__class__.__name__}.{getattr(subscriber, '__name__', 'subscriber')}"
    return str(getattr(subscriber, "__qualname__", subscriber.__class__.__name__))
