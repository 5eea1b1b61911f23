"""
Modelos de datos centralizados para el sistema de búsqueda de convocatorias
"""

from .convocatoria import (
    Convocatoria,
    DataVerification,
    DataExtractionNotes,
    DESCRIPTION_SENTINEL,
    AMOUNT_SENTINEL,
    DEADLINE_SENTINEL,
    REQUIREMENTS_SENTINEL,
    GENERIC_SENTINEL,
    FIELD_SENTINELS,
    OPTIONAL_TEXT_FIELDS,
    REQUIRED_FIELDS,
)
from .errors import SearchInputError, build_error_body
from .search import (
    SearchRequest,
    GeographicScope,
    PromptPair,
    RawModelResponse,
    SearchSession,
    ParseContentRequest,
    SearchOutcome,
    validate_query_length,
)

__all__ = [
    "Convocatoria",
    "DataVerification",
    "DataExtractionNotes",
    "DESCRIPTION_SENTINEL",
    "AMOUNT_SENTINEL",
    "DEADLINE_SENTINEL",
    "REQUIREMENTS_SENTINEL",
    "GENERIC_SENTINEL",
    "FIELD_SENTINELS",
    "OPTIONAL_TEXT_FIELDS",
    "REQUIRED_FIELDS",
    "SearchInputError",
    "build_error_body",
    "SearchRequest",
    "GeographicScope",
    "PromptPair",
    "RawModelResponse",
    "SearchSession",
    "ParseContentRequest",
    "SearchOutcome",
    "validate_query_length",
]
