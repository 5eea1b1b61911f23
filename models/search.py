"""
Modelos de datos para una búsqueda: consulta, alcance geográfico,
respuesta cruda del modelo y sesión de búsqueda.
"""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, ValidationError

from config import SEARCH_FLOWS, SEARCH_LIMITS
from models.errors import SearchInputError


class SearchRequest(BaseModel):
    """
    Consulta del usuario. Inmutable durante toda la búsqueda.
    """

    search_query: str = Field(..., description="Texto libre de la búsqueda (1..500 caracteres)")
    search_parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Filtros opcionales: sector, location, min_amount, max_amount, deadline_from, deadline_to",
    )
    max_results: int = Field(SEARCH_LIMITS["default_max_results"])
    include_metadata: bool = True
    flow: Optional[str] = Field(None, description="Flujo de búsqueda (two_step / single_step)")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_payload(cls, payload: Any) -> "SearchRequest":
        """
        Construye y valida la consulta desde el cuerpo de la petición.

        Args:
            payload: Diccionario recibido del llamador

        Returns:
            SearchRequest validado

        Raises:
            SearchInputError: Si la consulta falta, está vacía o excede el largo máximo
        """
        if not isinstance(payload, dict):
            raise SearchInputError("INVALID_REQUEST", "El cuerpo de la petición debe ser un objeto JSON")

        query = payload.get("search_query")
        if not isinstance(query, str) or not query.strip():
            raise SearchInputError("INVALID_SEARCH_QUERY", "search_query es requerido y debe ser un texto no vacío")
        validate_query_length(query)

        data = dict(payload)
        data["search_query"] = query.strip()
        if data.get("search_parameters") is None:
            data["search_parameters"] = {}
        if data.get("max_results") is None:
            data["max_results"] = SEARCH_LIMITS["default_max_results"]
        if data.get("include_metadata") is None:
            data["include_metadata"] = True

        try:
            request = cls(**{k: v for k, v in data.items() if k in cls.model_fields})
        except ValidationError as e:
            raise SearchInputError("INVALID_REQUEST", f"Parámetros inválidos: {e.errors()[0].get('msg', '')}") from e

        if request.flow is not None and request.flow not in SEARCH_FLOWS:
            raise SearchInputError("INVALID_REQUEST", f"Flujo de búsqueda desconocido: {request.flow}")

        clamped = max(1, min(request.max_results, SEARCH_LIMITS["max_results_cap"]))
        if clamped != request.max_results:
            request = request.model_copy(update={"max_results": clamped})
        return request


def validate_query_length(query: str) -> None:
    """Rechaza consultas que exceden el largo máximo (sin costo de red)."""
    if len(query) > SEARCH_LIMITS["max_query_length"]:
        raise SearchInputError(
            "SEARCH_QUERY_TOO_LONG",
            f"search_query excede el máximo de {SEARCH_LIMITS['max_query_length']} caracteres",
        )


class GeographicScope(BaseModel):
    """Alcance geográfico derivado de la consulta por coincidencia de palabras clave."""

    kind: Literal["country", "region", "international", "default"]
    location_id: str
    scope_breadth: Literal["national", "regional", "international", "local_plus_international"]
    label: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PromptPair(BaseModel):
    """Prompt de sistema y prompt de tarea listos para enviar a un modelo."""

    system: str
    user: str


class RawModelResponse(BaseModel):
    """Respuesta cruda de un modelo. Transitoria, nunca se persiste."""

    model_id: str
    text: Optional[str] = None
    attempt: int = 0


class SearchSession(BaseModel):
    """
    Sesión de búsqueda persistida externamente.

    Se crea en estado "processing" y se actualiza una sola vez a
    "completed" o "failed".
    """

    id: str
    query: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    status: Literal["processing", "completed", "failed"] = "processing"
    results_count: int = 0
    created_at: str
    completed_at: Optional[str] = None
    processing_time_ms: Optional[int] = None
    request_metadata: Dict[str, Any] = Field(default_factory=dict)


class ParseContentRequest(BaseModel):
    """Petición de extracción de convocatorias desde contenido ya obtenido."""

    content: str
    content_type: Literal["text", "html", "pdf", "url"] = "text"
    source_url: Optional[str] = None
    validate_output: bool = True
    include_metadata: bool = True

    @classmethod
    def from_payload(cls, payload: Any) -> "ParseContentRequest":
        """
        Valida el cuerpo de la petición de parseo.

        Raises:
            SearchInputError: Si el contenido falta o excede el largo máximo
        """
        if not isinstance(payload, dict):
            raise SearchInputError("INVALID_REQUEST", "El cuerpo de la petición debe ser un objeto JSON")
        content = payload.get("content")
        if not isinstance(content, str) or not content.strip():
            raise SearchInputError("INVALID_CONTENT", "content es requerido y debe ser un texto no vacío")
        if len(content) > SEARCH_LIMITS["max_content_length"]:
            raise SearchInputError(
                "CONTENT_TOO_LONG",
                f"content excede el máximo de {SEARCH_LIMITS['max_content_length']} caracteres",
            )
        data = {k: v for k, v in payload.items() if k in cls.model_fields and v is not None}
        try:
            return cls(**data)
        except ValidationError as e:
            raise SearchInputError("INVALID_REQUEST", f"Parámetros inválidos: {e.errors()[0].get('msg', '')}") from e


class SearchOutcome(BaseModel):
    """Resultado del orquestador antes de pasar por el sink."""

    records: List[Any] = Field(default_factory=list)
    method: str
    models_used: List[str] = Field(default_factory=list)
    step1_model: Optional[str] = None
    step2_model: Optional[str] = None
    fallback_used: bool = False
    detected_location: Optional[str] = None
    states: List[str] = Field(default_factory=list)
    validation_summary: Dict[str, Any] = Field(default_factory=dict)
