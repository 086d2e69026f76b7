import json
from typing import Any

from scraping_queue.logging.logger import Log
from scraping_queue.notifications.base import BaseProgressNotifier


class LogProgressNotifier(BaseProgressNotifier):
    """Writes progress events to the application log instead of a push channel."""

    def send_event(self, user_id: str, event_type: str, payload: dict[str, Any]) -> None:
        Log.info(
            f"Event {event_type} for user {user_id}: {json.dumps(payload, default=str)}",
            user_id=user_id,
            event_type=event_type,
        )
