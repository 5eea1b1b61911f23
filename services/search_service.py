"""
Servicio de búsqueda: frontera externa de la operación de búsqueda

Valida la entrada, abre la sesión, ejecuta el orquestador y entrega la
respuesta del sink. Cualquier excepción inesperada se convierte aquí en un
cuerpo de error estructurado (HTTP 500) sin filtrar la traza.
"""

import logging
import time
import traceback
from typing import Any, Dict, Optional, Tuple

from config import SEARCH_LIMITS
from models import SearchInputError, SearchRequest, build_error_body
from services.result_sink import ResultSink
from services.search_orchestrator import SearchOrchestrator
from utils.location_detector import detect_scope

logger = logging.getLogger(__name__)


class SearchService:
    """
    Orquesta una búsqueda completa de convocatorias.
    """

    def __init__(self, orchestrator: Optional[SearchOrchestrator] = None, sink: Optional[ResultSink] = None):
        """
        Args:
            orchestrator: Orquestador de la cadena de respaldo
            sink: Sink de resultados
        """
        self.orchestrator = orchestrator or SearchOrchestrator()
        self.sink = sink or ResultSink()

    def search(self, payload: Any) -> Dict[str, Any]:
        """
        Ejecuta una búsqueda.

        Args:
            payload: {search_query, search_parameters?, max_results?, include_metadata?, flow?}

        Returns:
            {search_id, results_count, results, processing_info}

        Raises:
            SearchInputError: Si la entrada es inválida (antes de cualquier llamada a modelos)
        """
        request = SearchRequest.from_payload(payload)
        started_at = time.perf_counter()

        scope = detect_scope(request.search_query, request.search_parameters)
        session = self.sink.open_session(
            request,
            request_metadata={
                "query_length": len(request.search_query),
                "parameters_count": len(request.search_parameters),
                "max_results": request.max_results,
                "detected_scope": scope.model_dump(),
            },
        )
        logger.info(f"🔍 Búsqueda {session.id}: '{request.search_query}' (alcance: {scope.location_id})")

        try:
            outcome = self.orchestrator.run(request, scope)
            records = outcome.records[:request.max_results]
            response = self.sink.finalize(records, session, outcome, started_at, request.include_metadata)
        except Exception as e:
            self.sink.fail(session, started_at, f"{type(e).__name__}: {e}")
            raise

        logger.info(
            f"✅ Búsqueda {session.id} completada: {response['results_count']} resultados "
            f"({outcome.method}, {response['processing_info']['processing_time_ms']} ms)"
        )
        return response

    def handle_search(self, payload: Any) -> Tuple[int, Dict[str, Any]]:
        """
        Igual que search() pero nunca lanza excepciones.

        Returns:
            Tupla (código HTTP, cuerpo): 200 con resultados, 400 para errores de
            entrada y 500 para cualquier error inesperado
        """
        try:
            return 200, self.search(payload)
        except SearchInputError as e:
            logger.warning(f"⚠️ Entrada inválida ({e.code}): {e.message}")
            return 400, build_error_body(e.code, e.message, "input_error")
        except Exception as e:
            logger.error(f"❌ Error inesperado en la búsqueda: {type(e).__name__}: {e}")
            logger.error(f"   Traceback completo:\n{traceback.format_exc()}")
            return 500, build_error_body(
                "SEARCH_ERROR",
                f"{type(e).__name__}: {e}",
                "internal_error",
                SEARCH_LIMITS["error_message_max_length"],
            )
