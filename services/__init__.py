"""
Servicios de negocio para la búsqueda y extracción de convocatorias
"""

from .search_orchestrator import SearchOrchestrator, SearchState
from .result_sink import ResultSink
from .search_service import SearchService
from .content_parsing_service import ContentParsingService

__all__ = [
    "SearchOrchestrator",
    "SearchState",
    "ResultSink",
    "SearchService",
    "ContentParsingService",
]
