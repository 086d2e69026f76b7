from scraping_queue.config.settings import Settings
from scraping_queue.orchestrator.base import BaseExtractionOrchestrator
from scraping_queue.orchestrator.example_adapter import ExampleOrchestratorAdapter
from scraping_queue.orchestrator.http_adapter import HttpOrchestratorAdapter


class OrchestratorFactory:
    """Creates the configured extraction orchestrator adapter."""

    PROVIDERS: tuple[str, ...] = ("example", "http")

    @classmethod
    def create(cls, settings: Settings) -> BaseExtractionOrchestrator:
        provider = settings.orchestrator_provider.lower()
        if provider == "example":
            return ExampleOrchestratorAdapter()
        if provider == "http":
            base_url = settings.orchestrator_base_url.strip()
            if not base_url:
                raise ValueError(
                    "orchestrator_base_url is required for orchestrator_provider=http"
                )
            return HttpOrchestratorAdapter(
                base_url=base_url,
                timeout_seconds=settings.orchestrator_timeout_seconds,
                api_key=settings.orchestrator_api_key,
            )
        raise ValueError(
            f"Unknown orchestrator provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
