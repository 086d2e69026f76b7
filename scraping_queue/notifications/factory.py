from scraping_queue.config.settings import Settings
from scraping_queue.notifications.base import BaseProgressNotifier
from scraping_queue.notifications.http_notifier import HttpProgressNotifier
from scraping_queue.notifications.log_notifier import LogProgressNotifier


class NotifierFactory:
    """Creates the configured progress notifier."""

    PROVIDERS: tuple[str, ...] = ("log", "http")

    @classmethod
    def create(cls, settings: Settings) -> BaseProgressNotifier:
        provider = settings.notifier_provider.lower()
        if provider == "log":
            return LogProgressNotifier()
        if provider == "http":
            base_url = settings.notifier_base_url.strip()
            if not base_url:
                raise ValueError("notifier_base_url is required for notifier_provider=http")
            return HttpProgressNotifier(
                base_url=base_url,
                timeout_seconds=settings.notifier_timeout_seconds,
                api_key=settings.notifier_api_key,
            )
        raise ValueError(
            f"Unknown notifier provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
