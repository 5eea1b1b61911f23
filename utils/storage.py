"""
Almacenamiento de sesiones y resultados de búsqueda

Dos backends con la misma interfaz:
- SupabaseClient: API REST de Supabase (también expone el vault de secretos)
- LocalSearchStore: archivos JSON bajo data/searches (cuando Supabase no está configurado)

Todas las escrituras son best-effort: retornan False ante un error y nunca
lanzan excepciones hacia la búsqueda.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from config import PARSING_DIR, SEARCHES_DIR, SUPABASE_CONFIG

logger = logging.getLogger(__name__)


class SearchStore(ABC):
    """Interfaz de almacenamiento de sesiones (create/update) y resultados (append-only)."""

    @abstractmethod
    def create_session(self, session: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    def update_session(self, session_id: str, patch: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    def insert_results(self, rows: List[Dict[str, Any]]) -> bool:
        pass

    @abstractmethod
    def insert_parsing_history(self, row: Dict[str, Any]) -> bool:
        pass


class SupabaseClient(SearchStore):
    """
    Cliente REST mínimo de Supabase (PostgREST) con service role key.
    """

    def __init__(self, url: str, service_key: str, timeout: Optional[int] = None):
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout or SUPABASE_CONFIG["timeout"]

    @classmethod
    def from_env(cls) -> Optional["SupabaseClient"]:
        """
        Crea el cliente desde SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY.

        Returns:
            SupabaseClient o None si no está configurado
        """
        url = os.environ.get(SUPABASE_CONFIG["url_env"])
        key = os.environ.get(SUPABASE_CONFIG["key_env"])
        if not url or not key:
            return None
        return cls(url, key)

    def _headers(self, prefer: Optional[str] = "return=minimal") -> Dict[str, str]:
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, table: str, *, params: Optional[Dict[str, str]] = None, payload: Any = None) -> Optional[requests.Response]:
        url = f"{self.url}/rest/v1/{table}"
        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(None if method == "GET" else "return=minimal"),
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"⚠️ Error de red con Supabase ({method} {table}): {e}")
            return None
        if not 200 <= response.status_code < 300:
            logger.warning(f"⚠️ Supabase respondió HTTP {response.status_code} ({method} {table}): {response.text[:200]}")
            return None
        return response

    def get_secret(self, name: str) -> Optional[str]:
        """
        Lee un secreto del vault. Best-effort: None si no existe o el vault no responde.
        """
        response = self._request(
            "GET",
            SUPABASE_CONFIG["vault_table"],
            params={"name": f"eq.{name}", "select": "secret"},
        )
        if response is None:
            return None
        try:
            rows = response.json()
        except ValueError:
            logger.warning("⚠️ Respuesta del vault no es JSON")
            return None
        if isinstance(rows, list) and rows and isinstance(rows[0], dict):
            secret = rows[0].get("secret")
            return secret if isinstance(secret, str) and secret.strip() else None
        return None

    def create_session(self, session: Dict[str, Any]) -> bool:
        return self._request("POST", SUPABASE_CONFIG["searches_table"], payload=session) is not None

    def update_session(self, session_id: str, patch: Dict[str, Any]) -> bool:
        return self._request(
            "PATCH",
            SUPABASE_CONFIG["searches_table"],
            params={"id": f"eq.{session_id}"},
            payload=patch,
        ) is not None

    def insert_results(self, rows: List[Dict[str, Any]]) -> bool:
        if not rows:
            return True
        return self._request("POST", SUPABASE_CONFIG["results_table"], payload=rows) is not None

    def insert_parsing_history(self, row: Dict[str, Any]) -> bool:
        return self._request("POST", SUPABASE_CONFIG["parsing_table"], payload=row) is not None


class LocalSearchStore(SearchStore):
    """
    Almacenamiento en archivos JSON: un archivo por sesión con sus resultados.
    """

    def __init__(self, searches_dir: Optional[str] = None, parsing_dir: Optional[str] = None):
        self.searches_dir = Path(searches_dir or SEARCHES_DIR)
        self.parsing_dir = Path(parsing_dir or PARSING_DIR)

    def _session_path(self, session_id: str) -> Path:
        return self.searches_dir / f"{session_id}.json"

    def _read(self, path: Path) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, path: Path, data: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def create_session(self, session: Dict[str, Any]) -> bool:
        try:
            self._write(self._session_path(session["id"]), {"session": session, "results": []})
            return True
        except OSError as e:
            logger.warning(f"⚠️ No se pudo guardar la sesión {session.get('id')}: {e}")
            return False

    def update_session(self, session_id: str, patch: Dict[str, Any]) -> bool:
        path = self._session_path(session_id)
        try:
            data = self._read(path) if path.exists() else {"session": {"id": session_id}, "results": []}
            data["session"].update(patch)
            self._write(path, data)
            return True
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ No se pudo actualizar la sesión {session_id}: {e}")
            return False

    def insert_results(self, rows: List[Dict[str, Any]]) -> bool:
        if not rows:
            return True
        by_session: Dict[str, List[Dict[str, Any]]] = {}
        for row in rows:
            by_session.setdefault(row.get("search_id", "sin_sesion"), []).append(row)
        try:
            for session_id, session_rows in by_session.items():
                path = self._session_path(session_id)
                data = self._read(path) if path.exists() else {"session": {"id": session_id}, "results": []}
                data["results"].extend(session_rows)
                self._write(path, data)
            return True
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ No se pudieron guardar los resultados: {e}")
            return False

    def insert_parsing_history(self, row: Dict[str, Any]) -> bool:
        try:
            self._write(self.parsing_dir / f"{row.get('id', 'parse')}.json", row)
            return True
        except OSError as e:
            logger.warning(f"⚠️ No se pudo guardar el historial de parseo: {e}")
            return False

    def load_session(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Carga una sesión con sus resultados (None si no existe)."""
        path = self._session_path(session_id)
        if not path.exists():
            return None
        try:
            return self._read(path)
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ No se pudo leer la sesión {session_id}: {e}")
            return None


def default_store() -> SearchStore:
    """Supabase si está configurado; si no, archivos locales."""
    client = SupabaseClient.from_env()
    if client is not None:
        return client
    return LocalSearchStore()
