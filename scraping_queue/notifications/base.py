from abc import ABC, abstractmethod
from typing import Any


class BaseProgressNotifier(ABC):
    """Contract for the push channel that delivers events to a user."""

    @abstractmethod
    def send_event(self, user_id: str, event_type: str, payload: dict[str, Any]) -> None:
        """Deliver one event to every open stream of ``user_id``.

        Fire-and-forget: no delivery guarantee.

        Raises:
            NotificationError: if the transport rejects the event.
        """

    def close(self) -> None:
        """Release transport resources."""
