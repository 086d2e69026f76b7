from typing import Any, ClassVar

import httpx

from scraping_queue.orchestrator.base import BaseExtractionOrchestrator
from scraping_queue.orchestrator.context import ExecutionContext
from scraping_queue.orchestrator.exceptions import OrchestratorError, OrchestratorNetworkError
from scraping_queue.orchestrator.models import ExtractionOutcome, ExtractionResult


class HttpOrchestratorAdapter(BaseExtractionOrchestrator):
    """Orchestrator adapter calling a remote scraping service over HTTP.

    The request itself cannot be interrupted, so cancellation is honoured
    only before the call is sent.
    """

    reports_activity: ClassVar[bool] = False

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

    def extract_documents(
        self,
        source_id: str,
        parameters: dict[str, Any],
        user_id: str | None = None,
        *,
        context: ExecutionContext | None = None,
    ) -> ExtractionOutcome:
        if context is not None and context.cancelled:
            raise OrchestratorError(f"Extraction for {source_id} cancelled before start")

        try:
            response = self._client.post(
                f"/sources/{source_id}/extract",
                json={"parameters": parameters, "userId": user_id},
            )
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise OrchestratorNetworkError(f"Orchestrator network error: {exc}") from exc
        except httpx.HTTPError as exc:
            raise OrchestratorNetworkError(f"Orchestrator transport error: {exc}") from exc

        payload = self._decode(response)
        if response.is_error:
            detail = payload.get("error") or payload.get("message") or response.reason_phrase
            raise OrchestratorError(
                f"Orchestrator returned {response.status_code}: {detail}"
            )

        return self._to_outcome(payload, source_id)

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            if response.is_error:
                return {}
            raise OrchestratorError("Orchestrator returned a non-JSON response") from None
        if not isinstance(payload, dict):
            raise OrchestratorError("Orchestrator returned an unexpected payload")
        return payload

    @staticmethod
    def _to_outcome(payload: dict[str, Any], source_id: str) -> ExtractionOutcome:
        raw_result = payload.get("result")
        result = None
        if isinstance(raw_result, dict):
            documents = raw_result.get("documents") or []
            result = ExtractionResult(
                documents=list(documents),
                total_found=int(raw_result.get("totalFound", len(documents))),
                extraction_time=float(raw_result.get("extractionTime", 0.0)),
            )
        return ExtractionOutcome(
            job_id=str(payload.get("jobId") or source_id),
            result=result,
        )
