import json

import httpx
import pytest

from scraping_queue.orchestrator.context import ExecutionContext
from scraping_queue.orchestrator.exceptions import OrchestratorError, OrchestratorNetworkError
from scraping_queue.orchestrator.http_adapter import HttpOrchestratorAdapter


def _make_adapter(handler) -> HttpOrchestratorAdapter:  # type: ignore[no-untyped-def]
    return HttpOrchestratorAdapter(
        base_url="http://orchestrator.test",
        timeout_seconds=30,
        transport=httpx.MockTransport(handler),
    )


class TestExtractDocuments:
    def test_posts_parameters_and_maps_result(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200,
                json={
                    "jobId": "remote-7",
                    "result": {
                        "documents": [{"identifier": "STS 1/2024"}],
                        "totalFound": 12,
                        "extractionTime": 3.5,
                    },
                },
            )

        outcome = _make_adapter(handler).extract_documents(
            "courts-a", {"from": "2024-01-01"}, "user-1"
        )

        assert captured[0].url.path == "/sources/courts-a/extract"
        assert json.loads(captured[0].content) == {
            "parameters": {"from": "2024-01-01"},
            "userId": "user-1",
        }
        assert outcome.job_id == "remote-7"
        assert outcome.documents_processed == 1
        assert outcome.documents_found == 12
        assert outcome.extraction_time == 3.5

    def test_missing_result_gives_empty_outcome(self) -> None:
        adapter = _make_adapter(lambda request: httpx.Response(200, json={"jobId": "r1"}))

        outcome = adapter.extract_documents("courts-a", {})

        assert outcome.result is None
        assert outcome.documents_processed == 0

    def test_error_status_uses_error_detail(self) -> None:
        adapter = _make_adapter(
            lambda request: httpx.Response(502, json={"error": "Source blocked"})
        )

        with pytest.raises(OrchestratorError, match="502: Source blocked"):
            adapter.extract_documents("courts-a", {})

    def test_error_status_without_json_body(self) -> None:
        adapter = _make_adapter(lambda request: httpx.Response(500, text="oops"))

        with pytest.raises(OrchestratorError, match="Orchestrator returned 500"):
            adapter.extract_documents("courts-a", {})

    def test_non_json_success_raises(self) -> None:
        adapter = _make_adapter(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(OrchestratorError, match="non-JSON"):
            adapter.extract_documents("courts-a", {})

    def test_timeout_raises_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(OrchestratorNetworkError):
            _make_adapter(handler).extract_documents("courts-a", {})

    def test_cancelled_context_skips_request(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        context = ExecutionContext("J1", "courts-a", 1)
        context.cancel()

        with pytest.raises(OrchestratorError, match="cancelled"):
            _make_adapter(handler).extract_documents("courts-a", {}, context=context)
        assert calls == []
