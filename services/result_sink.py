"""
Sink de resultados: ranking, metadatos, persistencia y forma de la respuesta

Es el único dueño del ciclo de vida de la SearchSession. La persistencia es
best-effort: un error de almacenamiento se registra y se ignora, nunca hace
fallar la búsqueda.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from models import Convocatoria, SearchOutcome, SearchRequest, SearchSession
from utils.storage import SearchStore, default_store

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def relevance_for_rank(index: int) -> float:
    """Relevancia decreciente por posición (1.0, 0.9, 0.8, luego 0.7 fijo)."""
    return round(max(0.7, 1 - index * 0.1), 2)


class ResultSink:
    """
    Da forma a la respuesta final y la persiste.
    """

    def __init__(self, store: Optional[SearchStore] = None):
        """
        Args:
            store: Backend de almacenamiento (por defecto Supabase si está configurado, si no archivos locales)
        """
        self.store = store if store is not None else default_store()

    def _best_effort(self, description: str, operation: Callable[..., bool], *args: Any) -> bool:
        try:
            ok = operation(*args)
        except Exception as e:
            logger.warning(f"⚠️ Error de persistencia al {description}: {type(e).__name__}: {e}")
            return False
        if not ok:
            logger.warning(f"⚠️ No se pudo {description} (se continúa sin persistir)")
        return bool(ok)

    def open_session(self, request: SearchRequest, request_metadata: Optional[Dict[str, Any]] = None) -> SearchSession:
        """
        Crea la sesión en estado "processing".

        Args:
            request: Consulta validada
            request_metadata: Metadatos de la petición (largo de consulta, alcance detectado, etc.)

        Returns:
            SearchSession creada (aunque no se haya podido persistir)
        """
        session = SearchSession(
            id=str(uuid.uuid4()),
            query=request.search_query,
            parameters=dict(request.search_parameters),
            created_at=_now(),
            request_metadata=request_metadata or {},
        )
        self._best_effort("crear la sesión de búsqueda", self.store.create_session, session.model_dump())
        return session

    def finalize(
        self,
        records: List[Convocatoria],
        session: SearchSession,
        outcome: SearchOutcome,
        started_at: float,
        include_metadata: bool = True,
    ) -> Dict[str, Any]:
        """
        Asigna ranking, persiste resultados, completa la sesión y construye la respuesta.

        Args:
            records: Registros validados (ya truncados a max_results)
            session: Sesión abierta con open_session()
            outcome: Resultado del orquestador
            started_at: Marca de tiempo time.perf_counter() del inicio de la búsqueda
            include_metadata: Si False, se omite el objeto "metadata" de cada resultado

        Returns:
            Cuerpo de la respuesta {search_id, results_count, results, processing_info}
        """
        processing_time_ms = int((time.perf_counter() - started_at) * 1000)
        generated_at = _now()

        results = []
        for index, record in enumerate(records):
            item = record.model_dump()
            item["search_rank"] = index + 1
            item["relevance_score"] = relevance_for_rank(index)
            item["generated_at"] = generated_at
            if include_metadata:
                item["metadata"] = {
                    "search_id": session.id,
                    "processing_time_ms": processing_time_ms,
                    "extraction_method": record.extraction_method,
                    "processing_method": outcome.method,
                }
            results.append(item)

        response = {
            "search_id": session.id,
            "results_count": len(results),
            "results": results,
            "processing_info": {
                "query_processed": session.query,
                "processing_method": outcome.method,
                "models_used": outcome.models_used,
                "ai_model_used": outcome.step2_model or outcome.step1_model,
                "step1_model": outcome.step1_model,
                "step2_model": outcome.step2_model,
                "fallback_used": outcome.fallback_used,
                "detected_location": outcome.detected_location,
                "processing_time_ms": processing_time_ms,
                "request_id": session.id,
                "validation_summary": outcome.validation_summary,
            },
        }

        # La respuesta queda armada antes de persistir: completar la sesión es el último paso
        rows = [
            {
                "search_id": session.id,
                "search_rank": item["search_rank"],
                "relevance_score": item["relevance_score"],
                "reliability_score": item["reliability_score"],
                "validated_data": item,
                "created_at": generated_at,
            }
            for item in results
        ]
        self._best_effort("guardar los resultados", self.store.insert_results, rows)
        self._best_effort(
            "completar la sesión",
            self.store.update_session,
            session.id,
            {
                "status": "completed",
                "results_count": len(results),
                "completed_at": _now(),
                "processing_time_ms": processing_time_ms,
            },
        )
        return response

    def fail(self, session: SearchSession, started_at: float, error_message: str) -> None:
        """Marca la sesión como "failed" (best-effort)."""
        self._best_effort(
            "marcar la sesión como fallida",
            self.store.update_session,
            session.id,
            {
                "status": "failed",
                "completed_at": _now(),
                "processing_time_ms": int((time.perf_counter() - started_at) * 1000),
                "error_message": error_message[:200],
            },
        )
