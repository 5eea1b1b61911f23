"""Fixtures compartidas: registros de ejemplo, almacenamiento en memoria y entorno aislado."""

import copy
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import MagicMock

import pytest

from utils.storage import SearchStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

PROVIDER_ENV_VARS = [
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "OPENROUTER_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "CONVOCATORIAS_KEYS_FILE",
    "CONVOCATORIAS_FABRICATION_RULES",
]

VALID_RECORD: Dict[str, Any] = {
    "title": "Semilla Inicia 2026",
    "organization": "CORFO",
    "description": "Subsidio para emprendimientos innovadores con potencial de crecimiento",
    "amount": "Hasta 15.000.000 pesos por proyecto",
    "deadline": "2030-11-28",
    "requirements": "Personas naturales mayores de 18 años con un emprendimiento en etapa temprana",
    "source_url": "https://www.corfo.cl/sites/cpp/convocatorias/semilla_inicia",
    "category": "Emprendimiento",
    "status": "abierto",
    "tags": ["emprendimiento", "startups"],
    "data_verification": {
        "title_verified": "SI",
        "amount_verified": "SI",
        "deadline_verified": "SI",
        "source_accessible": "SI",
    },
    "data_extraction_notes": {
        "title_source": "Sitio oficial CORFO",
        "amount_source": "Bases del concurso",
        "deadline_source": "Bases del concurso",
        "verification_status": "VERIFIED",
    },
}


def make_record(**overrides: Any) -> Dict[str, Any]:
    record = copy.deepcopy(VALID_RECORD)
    record.update(overrides)
    return record


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class MemoryStore(SearchStore):
    """Almacenamiento en memoria para inspeccionar lo que se persiste."""

    def __init__(self) -> None:
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.results: List[Dict[str, Any]] = []
        self.parsing_history: List[Dict[str, Any]] = []

    def create_session(self, session: Dict[str, Any]) -> bool:
        self.sessions[session["id"]] = dict(session)
        return True

    def update_session(self, session_id: str, patch: Dict[str, Any]) -> bool:
        self.sessions.setdefault(session_id, {"id": session_id}).update(patch)
        return True

    def insert_results(self, rows: List[Dict[str, Any]]) -> bool:
        self.results.extend(rows)
        return True

    def insert_parsing_history(self, row: Dict[str, Any]) -> bool:
        self.parsing_history.append(row)
        return True


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Sin credenciales reales ni archivos fuera de tmp_path."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONVOCATORIAS_KEYS_FILE", str(tmp_path / "keys.json"))


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def resolver_with_key() -> MagicMock:
    resolver = MagicMock()
    resolver.resolve.return_value = "test-key-123456"
    return resolver


@pytest.fixture
def resolver_without_key() -> MagicMock:
    resolver = MagicMock()
    resolver.resolve.return_value = None
    return resolver
