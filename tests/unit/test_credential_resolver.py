"""Tests for the env -> vault -> last-resort credential chain."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from utils.api_key_manager import APIKeyManager
from utils.credential_resolver import CredentialResolver


def _probe_response(status: int) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    return response


@pytest.fixture
def key_manager(tmp_path: Path) -> APIKeyManager:
    return APIKeyManager(keys_file=str(tmp_path / "keys.json"))


class TestResolutionOrder:
    def test_env_var_wins(self, monkeypatch: pytest.MonkeyPatch, key_manager: APIKeyManager) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", " env-key ")
        vault = MagicMock()
        resolver = CredentialResolver(vault=vault, key_manager=key_manager)
        assert resolver.resolve("gemini") == "env-key"
        vault.get_secret.assert_not_called()

    def test_secondary_env_var(self, monkeypatch: pytest.MonkeyPatch, key_manager: APIKeyManager) -> None:
        monkeypatch.setenv("GOOGLE_API_KEY", "google-key")
        resolver = CredentialResolver(use_vault=False, key_manager=key_manager)
        assert resolver.resolve("gemini") == "google-key"

    def test_vault_used_when_env_missing(self, key_manager: APIKeyManager) -> None:
        vault = MagicMock()
        vault.get_secret.return_value = "vault-key"
        resolver = CredentialResolver(vault=vault, key_manager=key_manager)
        assert resolver.resolve("openrouter") == "vault-key"
        vault.get_secret.assert_called_once_with("OPENROUTER_API_KEY")

    def test_vault_error_is_not_fatal(self, key_manager: APIKeyManager) -> None:
        vault = MagicMock()
        vault.get_secret.side_effect = RuntimeError("vault caído")
        resolver = CredentialResolver(vault=vault, key_manager=key_manager)
        with patch("utils.credential_resolver.requests.get") as get:
            assert resolver.resolve("gemini") is None
        get.assert_not_called()

    def test_last_resort_key_probed(self, key_manager: APIKeyManager) -> None:
        key_manager.add_key("gemini", "fallback-key-1")
        resolver = CredentialResolver(use_vault=False, key_manager=key_manager)
        with patch("utils.credential_resolver.requests.get", return_value=_probe_response(200)) as get:
            assert resolver.resolve("gemini") == "fallback-key-1"
        assert get.call_args.kwargs["params"] == {"key": "fallback-key-1"}
        assert key_manager.key_stats["fallback-key-1"]["probes"] == 1

    def test_failed_probe_marks_key_rejected(self, key_manager: APIKeyManager) -> None:
        key_manager.add_key("openrouter", "bad-key-0001")
        key_manager.add_key("openrouter", "good-key-002")
        resolver = CredentialResolver(use_vault=False, key_manager=key_manager)
        probes = [_probe_response(401), _probe_response(200)]
        with patch("utils.credential_resolver.requests.get", side_effect=probes) as get:
            assert resolver.resolve("openrouter") == "good-key-002"
        assert get.call_args_list[0].kwargs["headers"] == {"Authorization": "Bearer bad-key-0001"}
        assert "bad-key-0001" in key_manager.rejected_keys
        assert key_manager.get_candidate_keys("openrouter") == ["good-key-002"]

    def test_probe_network_error_counts_as_failure(self, key_manager: APIKeyManager) -> None:
        key_manager.add_key("gemini", "flaky-key-01")
        resolver = CredentialResolver(use_vault=False, key_manager=key_manager)
        with patch("utils.credential_resolver.requests.get", side_effect=requests.Timeout("lento")):
            assert resolver.resolve("gemini") is None

    def test_no_credential_anywhere(self, key_manager: APIKeyManager) -> None:
        resolver = CredentialResolver(use_vault=False, key_manager=key_manager)
        assert resolver.resolve("gemini") is None

    def test_unknown_provider(self, key_manager: APIKeyManager) -> None:
        assert CredentialResolver(use_vault=False, key_manager=key_manager).resolve("otro") is None

    def test_vault_from_env_absent_without_supabase(self) -> None:
        assert CredentialResolver().vault is None
