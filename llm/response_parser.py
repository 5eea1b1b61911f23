"""
Parser tolerante de respuestas LLM

Extrae la estructura JSON del texto libre del modelo probando estrategias en
orden (bloque ```json```, estructura directa, escaneo balanceado) y reparando
defectos comunes. Nunca lanza excepciones: si todo falla, recurre a extracción
por regex y, en último caso, a un registro sintético.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from config import SEARCH_LIMITS
from utils.json_repair import extract_balanced_span, loads_tolerant
from utils.extractors.rule_based_extractor import synthetic_record

logger = logging.getLogger(__name__)

FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
FENCED_ANY_RE = re.compile(r"```[a-zA-Z]*\s*([\s\S]*?)```")
DIRECT_OBJECT_RE = re.compile(r'\{\s*"(?:convocatorias|resultados)"\s*:\s*\[[\s\S]*\]\s*\}')
DIRECT_ARRAY_RE = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")
TITLE_FALLBACK_RE = re.compile(r'(?:título|titulo|title|nombre)"?\s*[:=]\s*"?([^"\n]+)"?', re.IGNORECASE)
STEP1_LINE_RE = re.compile(r"^\s*(?:[•\-*]|\d+[.)])\s+(.+)$")
STEP1_SPLIT_RE = re.compile(r"\s+[-–—]\s+")

RECORD_LIST_KEYS = ["convocatorias", "resultados", "results"]

# Campo canónico -> nombres alternativos aceptados (en orden de preferencia)
FIELD_ALIASES = {
    "title": ["title", "nombre", "titulo", "título", "nombre_concurso"],
    "organization": ["organization", "organismo", "institucion", "institución", "entity"],
    "description": ["description", "descripcion", "descripción", "resumen"],
    "amount": ["amount", "monto", "financiamiento", "monto_financiamiento", "budget"],
    "deadline": ["deadline", "fecha_limite", "fecha_cierre", "fechaCierre"],
    "requirements": ["requirements", "requisitos", "elegibilidad", "criteria"],
    "source_url": ["source_url", "sourceUrl", "url", "enlace", "link", "fuente"],
    "category": ["category", "categoria", "categoría", "area", "tipo", "type"],
    "status": ["status", "estado"],
    "tags": ["tags", "etiquetas"],
    "data_verification": ["data_verification", "verification", "verificacion"],
    "data_extraction_notes": ["data_extraction_notes", "extraction_notes", "notas_extraccion"],
}

STRATEGY_FENCED = "fenced_block"
STRATEGY_DIRECT = "direct_structure"
STRATEGY_BALANCED = "balanced_scan"
STRATEGY_REGEX = "regex_titles"
STRATEGY_SYNTHETIC = "synthetic"


def _records_from_data(data: Any) -> Optional[List[Dict[str, Any]]]:
    """
    Obtiene la lista de registros desde la estructura parseada.

    Returns:
        Lista de diccionarios, o None si la estructura no es reconocible
    """
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    if isinstance(data, dict):
        for key in RECORD_LIST_KEYS:
            if isinstance(data.get(key), list):
                return [item for item in data[key] if isinstance(item, dict)]
        if any(alias in data for alias in FIELD_ALIASES["title"]):
            return [data]
    return None


def _try_span(span: str) -> Optional[List[Dict[str, Any]]]:
    try:
        data = loads_tolerant(span)
    except ValueError:
        # El bloque puede traer texto extra: intentar con el tramo balanceado
        inner = extract_balanced_span(span)
        if not inner or inner == span:
            return None
        try:
            data = loads_tolerant(inner)
        except ValueError:
            return None
    return _records_from_data(data)


def _structured_stages(text: str) -> Tuple[Optional[List[Dict[str, Any]]], Optional[str]]:
    for match in FENCED_JSON_RE.finditer(text):
        records = _try_span(match.group(1).strip())
        if records is not None:
            return records, STRATEGY_FENCED
    for match in FENCED_ANY_RE.finditer(text):
        block = match.group(1).strip()
        if block[:1] in ("{", "["):
            records = _try_span(block)
            if records is not None:
                return records, STRATEGY_FENCED

    for pattern in (DIRECT_OBJECT_RE, DIRECT_ARRAY_RE):
        match = pattern.search(text)
        if match:
            records = _try_span(match.group(0))
            if records is not None:
                return records, STRATEGY_DIRECT

    span = extract_balanced_span(text)
    if span:
        records = _try_span(span)
        if records is not None:
            return records, STRATEGY_BALANCED

    return None, None


def _regex_titles(text: str) -> List[Dict[str, Any]]:
    records = []
    for match in TITLE_FALLBACK_RE.finditer(text):
        title = match.group(1).strip().strip('",')
        if title:
            records.append({"title": title, "extraction_method": "ai"})
        if len(records) >= SEARCH_LIMITS["max_regex_titles"]:
            break
    return records


def parse_with_strategy(raw_text: Optional[str], query: str = "") -> Tuple[List[Dict[str, Any]], str]:
    """
    Extrae registros candidatos del texto crudo del modelo.

    Args:
        raw_text: Texto libre devuelto por el modelo (puede ser None)
        query: Consulta original (para el registro sintético)

    Returns:
        Tupla (registros normalizados, estrategia que tuvo éxito)
    """
    text = raw_text or ""
    try:
        records, strategy = _structured_stages(text)
    except (RecursionError, TypeError) as e:
        logger.warning(f"⚠️ Error inesperado al buscar estructura JSON: {e}")
        records, strategy = None, None

    if records is not None:
        logger.info(f"✅ Respuesta parseada con estrategia '{strategy}' ({len(records)} registros)")
        return normalize_records(records), strategy

    regex_records = _regex_titles(text)
    if regex_records:
        logger.warning(f"🔄 JSON irrecuperable, {len(regex_records)} títulos extraídos por regex")
        return normalize_records(regex_records), STRATEGY_REGEX

    logger.warning("🔄 Sin estructura ni títulos en la respuesta, usando registro sintético")
    return [normalize_record(synthetic_record(query))], STRATEGY_SYNTHETIC


def parse(raw_text: Optional[str], query: str = "") -> List[Dict[str, Any]]:
    """Extrae y normaliza registros candidatos (ver parse_with_strategy)."""
    records, _ = parse_with_strategy(raw_text, query)
    return records


def parse_step1_list(raw_text: Optional[str], max_items: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Convierte la lista breve del paso 1 ("• NOMBRE - ORGANIZACIÓN") en registros mínimos.

    Args:
        raw_text: Salida cruda del paso 1
        max_items: Máximo de registros (por defecto 6)

    Returns:
        Lista de registros con title/organization y extraction_method "step1_list"
    """
    max_items = max_items or SEARCH_LIMITS["max_step1_items"]
    records = []
    for line in (raw_text or "").splitlines():
        match = STEP1_LINE_RE.match(line)
        if not match:
            continue
        content = re.sub(r"[*_`]", "", match.group(1)).strip()
        parts = STEP1_SPLIT_RE.split(content, maxsplit=1)
        title = parts[0].strip(" :.")
        if not title:
            continue
        record = {"title": title, "extraction_method": "step1_list"}
        if len(parts) > 1 and parts[1].strip():
            record["organization"] = parts[1].strip(" :.")
        records.append(record)
        if len(records) >= max_items:
            break
    return normalize_records(records)


def _first_value(item: Dict[str, Any], aliases: List[str]) -> Any:
    for alias in aliases:
        value = item.get(alias)
        if value not in (None, "", [], {}):
            return value
    return None


def _to_text(value: Any, separator: str = "; ") -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        parts = [str(v).strip() for v in value if v not in (None, "")]
        return separator.join(parts) if parts else None
    if isinstance(value, dict):
        return None
    text = re.sub(r"\s+", " ", str(value)).strip()
    return text or None


def _truncate(text: Optional[str], max_length: int) -> Optional[str]:
    if text is None or len(text) <= max_length:
        return text
    return text[:max_length].rstrip() + "..."


def normalize_record(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Lleva un registro con nombres heterogéneos al esquema canónico.

    Args:
        item: Registro tal como lo devolvió el modelo

    Returns:
        Diccionario con claves canónicas (solo las presentes)
    """
    normalized: Dict[str, Any] = {}

    for field in ["title", "organization", "amount", "deadline", "source_url", "category", "status"]:
        value = _to_text(_first_value(item, FIELD_ALIASES[field]))
        if value is not None:
            normalized[field] = value

    description = _to_text(_first_value(item, FIELD_ALIASES["description"]))
    if description is not None:
        normalized["description"] = _truncate(description, SEARCH_LIMITS["description_max_length"])

    requirements = _to_text(_first_value(item, FIELD_ALIASES["requirements"]))
    if requirements is not None:
        normalized["requirements"] = _truncate(requirements, SEARCH_LIMITS["requirements_max_length"])

    tags = _first_value(item, FIELD_ALIASES["tags"])
    if isinstance(tags, str):
        tags = [t for t in re.split(r"[,;]", tags)]
    if isinstance(tags, list):
        normalized["tags"] = [str(t).strip() for t in tags if str(t).strip()]

    for field in ["data_verification", "data_extraction_notes"]:
        value = _first_value(item, FIELD_ALIASES[field])
        if isinstance(value, dict):
            normalized[field] = dict(value)

    normalized["extraction_method"] = item.get("extraction_method") or "ai"
    return normalized


def split_concatenated(item: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Separa registros que el modelo concatenó dentro de la descripción de otro.

    Si la descripción contiene objetos JSON con título, se extraen como
    registros independientes y la descripción se recorta al texto previo.
    """
    description = _first_value(item, FIELD_ALIASES["description"])
    if not isinstance(description, str) or "{" not in description:
        return [item]

    embedded = []
    position = description.find("{")
    while position != -1:
        span = extract_balanced_span(description, position)
        if not span:
            break
        try:
            data = loads_tolerant(span)
        except ValueError:
            data = None
        if isinstance(data, dict) and _first_value(data, FIELD_ALIASES["title"]):
            embedded.append(data)
        position = description.find("{", position + len(span))

    if not embedded:
        return [item]

    head = dict(item)
    for alias in FIELD_ALIASES["description"]:
        head.pop(alias, None)
    prefix = description[:description.find("{")].strip()
    if prefix:
        head["description"] = prefix
    logger.info(f"Registro con {len(embedded)} convocatorias concatenadas separado")
    return [head] + embedded


def normalize_records(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Separa registros concatenados y normaliza cada uno."""
    result = []
    for item in items:
        for piece in split_concatenated(item):
            if "extraction_method" not in piece and "extraction_method" in item:
                piece = {**piece, "extraction_method": item["extraction_method"]}
            result.append(normalize_record(piece))
    return result
