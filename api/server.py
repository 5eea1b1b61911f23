"""
API HTTP de búsqueda y extracción de convocatorias

Endpoints:
    GET  /health          - Estado del servicio
    POST /search          - Búsqueda de convocatorias con IA y validación anti-fabricación
    POST /parse-content   - Extracción de convocatorias desde contenido ya obtenido

Ejecutar con:
    uvicorn api.server:app --reload
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import DEFAULT_SEARCH_FLOW, SEARCH_FLOWS
from models import build_error_body
from services import ContentParsingService, SearchService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def _handle(request: Request, handler: Callable[[Any], Tuple[int, Dict[str, Any]]]) -> JSONResponse:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"⚠️ Cuerpo de la petición no es JSON válido: {e}")
        return JSONResponse(
            status_code=400,
            content=build_error_body("INVALID_REQUEST", "El cuerpo de la petición debe ser JSON válido", "input_error"),
        )
    # Los servicios usan requests y time.sleep: se ejecutan fuera del event loop
    status_code, body = await run_in_threadpool(handler, payload)
    return JSONResponse(status_code=status_code, content=body)


def create_app(
    search_service: Optional[SearchService] = None,
    parsing_service: Optional[ContentParsingService] = None,
) -> FastAPI:
    """
    Crea la aplicación FastAPI.

    Args:
        search_service: Servicio de búsqueda (por defecto uno configurado desde el entorno)
        parsing_service: Servicio de extracción de contenido

    Returns:
        Aplicación FastAPI lista para servir
    """
    app = FastAPI(
        title="ConvocatoriasPro - Búsqueda IA",
        version="1.0.0",
        description="Búsqueda de convocatorias de financiamiento con validación anti-fabricación.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    app.state.search_service = search_service or SearchService()
    app.state.parsing_service = parsing_service or ContentParsingService()

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "default_flow": DEFAULT_SEARCH_FLOW,
            "flows": sorted(SEARCH_FLOWS),
        }

    @app.post("/search")
    async def search(request: Request) -> JSONResponse:
        return await _handle(request, app.state.search_service.handle_search)

    @app.post("/parse-content")
    async def parse_content(request: Request) -> JSONResponse:
        return await _handle(request, app.state.parsing_service.handle_parse)

    return app


app = create_app()
