"""Tests for the search boundary: input validation and error shaping."""

from unittest.mock import MagicMock, patch

import pytest

from services.result_sink import ResultSink
from services.search_orchestrator import SearchOrchestrator
from services.search_service import SearchService
from tests.conftest import MemoryStore, load_fixture
from utils.location_detector import detect_scope


@pytest.fixture
def invoker() -> MagicMock:
    return MagicMock()


@pytest.fixture
def service(invoker: MagicMock, resolver_with_key: MagicMock, memory_store: MemoryStore) -> SearchService:
    return SearchService(SearchOrchestrator(invoker, resolver_with_key), ResultSink(memory_store))


class TestInputValidation:
    def test_query_too_long_rejected_before_any_model_call(
        self, service: SearchService, invoker: MagicMock, memory_store: MemoryStore
    ) -> None:
        status, body = service.handle_search({"search_query": "a" * 600})
        assert status == 400
        assert body["error"]["code"] == "SEARCH_QUERY_TOO_LONG"
        assert body["error"]["type"] == "input_error"
        assert "timestamp" in body["error"]
        invoker.invoke.assert_not_called()
        assert memory_store.sessions == {}

    @pytest.mark.parametrize("payload", [{}, {"search_query": "   "}, {"search_query": 42}])
    def test_missing_query(self, service: SearchService, payload: dict) -> None:
        status, body = service.handle_search(payload)
        assert status == 400
        assert body["error"]["code"] == "INVALID_SEARCH_QUERY"

    def test_non_object_body(self, service: SearchService) -> None:
        status, body = service.handle_search(["fondos"])
        assert status == 400
        assert body["error"]["code"] == "INVALID_REQUEST"

    def test_unknown_flow(self, service: SearchService) -> None:
        status, body = service.handle_search({"search_query": "fondos", "flow": "magia"})
        assert status == 400
        assert body["error"]["code"] == "INVALID_REQUEST"


class TestSearch:
    def test_three_records_ranked(self, service: SearchService, invoker: MagicMock, memory_store: MemoryStore) -> None:
        invoker.invoke.side_effect = [load_fixture("step1_list.txt"), load_fixture("step2_three_records.json")]
        status, body = service.handle_search({"search_query": "fondos para startups tecnológicas"})

        assert status == 200
        assert body["results_count"] == 3
        assert [r["search_rank"] for r in body["results"]] == [1, 2, 3]
        assert all(80 <= r["reliability_score"] <= 95 for r in body["results"])
        assert body["processing_info"]["processing_method"] == "gemini_smart_flow_2_steps"
        assert memory_store.sessions[body["search_id"]]["status"] == "completed"
        assert memory_store.sessions[body["search_id"]]["request_metadata"]["detected_scope"]["kind"] == "default"

    def test_max_results_truncates(self, service: SearchService, invoker: MagicMock) -> None:
        invoker.invoke.side_effect = [load_fixture("step1_list.txt"), load_fixture("step2_three_records.json")]
        status, body = service.handle_search({"search_query": "fondos", "max_results": 2})
        assert status == 200
        assert [r["title"] for r in body["results"]] == ["Semilla Inicia 2026", "Startup Ciencia 2026"]

    def test_provider_outage_still_returns_records(self, service: SearchService, invoker: MagicMock) -> None:
        invoker.invoke.return_value = None
        status, body = service.handle_search({"search_query": "fondos para startups"})
        assert status == 200
        assert body["results_count"] >= 1
        assert body["processing_info"]["processing_method"] == "rule_based_fallback"
        assert body["processing_info"]["fallback_used"] is True


class TestUnexpectedErrors:
    def test_internal_error_shaped_as_500(self, memory_store: MemoryStore) -> None:
        orchestrator = MagicMock()
        orchestrator.run.side_effect = RuntimeError("explotó " + "x" * 400)
        service = SearchService(orchestrator, ResultSink(memory_store))

        status, body = service.handle_search({"search_query": "fondos"})
        assert status == 500
        assert body["error"]["code"] == "SEARCH_ERROR"
        assert body["error"]["type"] == "internal_error"
        assert len(body["error"]["message"]) <= 200
        assert "Traceback" not in body["error"]["message"]

        (session,) = memory_store.sessions.values()
        assert session["status"] == "failed"

    def test_search_raises_for_direct_callers(self, memory_store: MemoryStore) -> None:
        orchestrator = MagicMock()
        orchestrator.run.side_effect = RuntimeError("explotó")
        with pytest.raises(RuntimeError):
            SearchService(orchestrator, ResultSink(memory_store)).search({"search_query": "fondos"})

    def test_finalize_error_marks_session_failed(
        self, service: SearchService, invoker: MagicMock, memory_store: MemoryStore
    ) -> None:
        invoker.invoke.side_effect = [load_fixture("step1_list.txt"), load_fixture("step2_three_records.json")]
        with patch.object(ResultSink, "finalize", side_effect=TypeError("objeto no serializable")):
            status, body = service.handle_search({"search_query": "fondos para startups"})

        assert status == 500
        assert body["error"]["code"] == "SEARCH_ERROR"
        (session,) = memory_store.sessions.values()
        assert session["status"] == "failed"
        assert "TypeError" in session["error_message"]


class TestScopeDetection:
    def test_scope_detected_once_per_search(self, service: SearchService, invoker: MagicMock) -> None:
        invoker.invoke.side_effect = [load_fixture("step1_list.txt"), load_fixture("step2_three_records.json")]
        with patch("services.search_service.detect_scope", wraps=detect_scope) as service_detect, \
                patch("services.search_orchestrator.detect_scope", wraps=detect_scope) as orchestrator_detect:
            status, body = service.handle_search({"search_query": "fondos para startups en Valparaíso"})

        assert status == 200
        assert service_detect.call_count == 1
        orchestrator_detect.assert_not_called()
