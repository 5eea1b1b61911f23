"""Integration test: full search pipeline with the real invoker and mocked HTTP."""

from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pytest

from llm.model_invoker import ModelInvoker
from services import ResultSink, SearchOrchestrator, SearchService
from utils.api_key_manager import APIKeyManager
from utils.credential_resolver import CredentialResolver
from utils.storage import LocalSearchStore
from tests.conftest import load_fixture


def _gemini(status: int, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = ""
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return response


@pytest.fixture
def service(tmp_path: Path) -> SearchService:
    resolver = CredentialResolver(use_vault=False, key_manager=APIKeyManager(str(tmp_path / "keys.json")))
    store = LocalSearchStore(str(tmp_path / "searches"), str(tmp_path / "parsing"))
    return SearchService(SearchOrchestrator(ModelInvoker(), resolver), ResultSink(store))


def test_rate_limited_two_step_search(monkeypatch: pytest.MonkeyPatch, service: SearchService) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "AIza-integration")
    responses = [
        _gemini(429),
        _gemini(429),
        _gemini(200, load_fixture("step1_list.txt")),
        _gemini(200, load_fixture("step2_fenced_trailing_comma.txt")),
    ]
    with patch("llm.model_invoker.requests.post", side_effect=responses) as post, \
            patch("llm.model_invoker.time.sleep") as sleep:
        status, body = service.handle_search({"search_query": "fondos para startups tecnológicas"})

    assert status == 200
    assert sleep.call_args_list == [call(2), call(4)]
    urls = [c.args[0] for c in post.call_args_list]
    assert urls[2].endswith("gemini-2.5-flash:generateContent")
    assert urls[3].endswith("gemini-2.5-pro:generateContent")
    assert body["results_count"] == 2
    assert body["processing_info"]["models_used"] == ["gemini-2.5-flash", "gemini-2.5-pro"]

    stored = service.sink.store.load_session(body["search_id"])
    assert stored["session"]["status"] == "completed"
    assert len(stored["results"]) == 2


def test_total_outage_returns_fallback(monkeypatch: pytest.MonkeyPatch, service: SearchService) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "AIza-integration")
    with patch("llm.model_invoker.requests.post", return_value=_gemini(503)) as post, \
            patch("llm.model_invoker.time.sleep"):
        status, body = service.handle_search({"search_query": "concurso de energía solar comunitaria"})

    assert status == 200
    assert body["processing_info"]["processing_method"] == "rule_based_fallback"
    assert post.call_count == 3
    for result in body["results"]:
        assert 50 <= result["reliability_score"] <= 75


def test_no_credential_makes_no_http_calls(service: SearchService) -> None:
    with patch("llm.model_invoker.requests.post") as post, \
            patch("utils.credential_resolver.requests.get") as get:
        status, body = service.handle_search({"search_query": "fondos para startups"})

    assert status == 200
    post.assert_not_called()
    get.assert_not_called()
    assert body["processing_info"]["processing_method"] == "rule_based_fallback"
    assert body["processing_info"]["models_used"] == []


@pytest.mark.parametrize("body", [[], {"candidates": [{"content": None}]}, {"candidates": "nada"}])
def test_malformed_model_body_falls_back(
    monkeypatch: pytest.MonkeyPatch, service: SearchService, body
) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "AIza-integration")
    response = _gemini(200)
    response.json.return_value = body
    with patch("llm.model_invoker.requests.post", return_value=response) as post, \
            patch("llm.model_invoker.time.sleep"):
        status, result = service.handle_search({"search_query": "fondos para startups"})

    assert status == 200
    assert post.call_count == 1
    assert result["processing_info"]["processing_method"] == "rule_based_fallback"
    assert result["processing_info"]["models_used"] == []
