from typing import Any

import httpx

from scraping_queue.notifications.base import BaseProgressNotifier
from scraping_queue.notifications.exceptions import NotificationError


class HttpProgressNotifier(BaseProgressNotifier):
    """Posts events to the server-sent-events gateway that holds user streams."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int,
        api_key: str = "",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            headers=headers,
            transport=transport,
        )

    def send_event(self, user_id: str, event_type: str, payload: dict[str, Any]) -> None:
        try:
            response = self._client.post(
                f"/users/{user_id}/events",
                json={"event": event_type, "data": payload},
            )
        except httpx.HTTPError as exc:
            raise NotificationError(f"Event gateway unreachable: {exc}") from exc
        if response.is_error:
            raise NotificationError(
                f"Event gateway rejected {event_type} for user {user_id}: "
                f"{response.status_code}"
            )

    def close(self) -> None:
        self._client.close()
