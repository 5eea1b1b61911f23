"""
Detección del alcance geográfico de una búsqueda por palabras clave
"""

import logging
import re
from typing import Any, Dict, Optional

from config import (
    COUNTRY_KEYWORDS,
    COUNTRY_NAMES,
    CHILE_REGIONS,
    INTERNATIONAL_TERMS,
    DEFAULT_LOCATION_ID,
)
from models import GeographicScope

logger = logging.getLogger(__name__)


def _contains_term(text: str, term: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(term)}(?!\w)", text) is not None


def detect_scope(query: str, parameters: Optional[Dict[str, Any]] = None) -> GeographicScope:
    """
    Calcula el alcance geográfico a partir de la consulta y del filtro "location".

    Orden de evaluación: país, región de Chile, términos internacionales y,
    si nada coincide, el alcance por defecto (Chile + internacional).

    Args:
        query: Texto libre de la consulta
        parameters: Filtros del usuario (se considera parameters["location"])

    Returns:
        GeographicScope inmutable
    """
    parameters = parameters or {}
    location_filter = parameters.get("location")
    text = f"{query} {location_filter if isinstance(location_filter, str) else ''}".lower()

    for keyword, location_id in COUNTRY_KEYWORDS.items():
        if _contains_term(text, keyword):
            scope = GeographicScope(
                kind="country",
                location_id=location_id,
                scope_breadth="national",
                label=COUNTRY_NAMES.get(location_id, location_id),
            )
            logger.debug(f"Alcance detectado: país {location_id}")
            return scope

    for keyword, region_name in CHILE_REGIONS.items():
        if _contains_term(text, keyword):
            logger.debug(f"Alcance detectado: región {region_name}")
            return GeographicScope(
                kind="region",
                location_id=keyword,
                scope_breadth="regional",
                label=region_name,
            )

    for term in INTERNATIONAL_TERMS:
        if _contains_term(text, term):
            logger.debug("Alcance detectado: internacional")
            return GeographicScope(
                kind="international",
                location_id="international",
                scope_breadth="international",
                label="internacional",
            )

    return GeographicScope(
        kind="default",
        location_id=DEFAULT_LOCATION_ID,
        scope_breadth="local_plus_international",
        label="Chile e internacional",
    )


def locality_clause(scope: GeographicScope) -> str:
    """
    Traduce el alcance a la cláusula de localidad que se inyecta en el prompt.
    """
    if scope.kind == "country":
        return f" en {scope.label}"
    if scope.kind == "region":
        return f" en la región {scope.label}, Chile"
    if scope.kind == "international":
        return " a nivel internacional"
    return " en Chile y a nivel internacional"
