"""
Prompts y templates para la búsqueda de convocatorias con LLM

Todos los prompts incluyen reglas anti-fabricación explícitas y el esquema de
salida. Cuando un dato no se conoce, el modelo debe usar la frase centinela
del campo en vez de inventarlo.
"""

import json
from typing import Any, Dict, Optional

from models import (
    GeographicScope,
    PromptPair,
    validate_query_length,
    DESCRIPTION_SENTINEL,
    AMOUNT_SENTINEL,
    DEADLINE_SENTINEL,
    REQUIREMENTS_SENTINEL,
    GENERIC_SENTINEL,
)
from utils.location_detector import locality_clause

STEP_LIST = "step1"
STEP_DETAIL = "step2"
STEP_SINGLE = "single"

SYSTEM_PROMPT = """Eres un analista experto en fondos de financiamiento, subsidios y convocatorias públicas y privadas.
Tu tarea es identificar convocatorias REALES y describirlas con datos verificables.

Debes ser preciso y seguir exactamente el esquema JSON proporcionado."""

ANTI_FABRICATION_RULES = f"""REGLAS ANTI-FABRICACIÓN (OBLIGATORIAS):
1. NUNCA inventes montos, fechas, organismos ni URLs.
2. NUNCA uses texto de plantilla, frases genéricas ni valores de ejemplo.
3. Si no conoces el valor real de un campo, usa EXACTAMENTE la frase centinela:
   - description: "{DESCRIPTION_SENTINEL}"
   - amount: "{AMOUNT_SENTINEL}"
   - deadline: "{DEADLINE_SENTINEL}"
   - requirements: "{REQUIREMENTS_SENTINEL}"
   - cualquier otro campo: "{GENERIC_SENTINEL}"
4. La source_url debe ser la página ESPECÍFICA de la convocatoria, nunca la portada de una institución.
5. Cada registro debe indicar en data_extraction_notes de qué elemento del contexto proviene cada dato.
6. Es preferible devolver menos convocatorias verificadas que muchas dudosas."""

OUTPUT_SCHEMA = {
    "convocatorias": [
        {
            "title": "string (nombre oficial)",
            "organization": "string (organismo convocante)",
            "description": "string (máximo 300 caracteres)",
            "amount": "string (monto tal como aparece en la fuente)",
            "deadline": "string (YYYY-MM-DD si se conoce)",
            "requirements": "string",
            "source_url": "string (URL específica)",
            "category": "string",
            "status": "abierto | cerrado | próximo",
            "tags": ["string"],
            "data_verification": {
                "title_verified": "SI | NO",
                "amount_verified": "SI | NO",
                "deadline_verified": "SI | NO",
                "source_accessible": "SI | NO",
            },
            "data_extraction_notes": {
                "title_source": "string",
                "amount_source": "string",
                "deadline_source": "string",
                "verification_status": "VERIFIED | PARTIAL | UNVERIFIED",
            },
        }
    ]
}

STEP1_PROMPT_TEMPLATE = """Lista convocatorias de financiamiento vigentes o recurrentes relacionadas con: "{query}"{locality}.
{filters}
Responde SOLO con una lista breve, una convocatoria por línea, con el formato:
• NOMBRE DE LA CONVOCATORIA - ORGANIZACIÓN

Incluye solo convocatorias que existan realmente. No agregues montos ni fechas en este paso."""

STEP2_PROMPT_TEMPLATE = """A partir de la siguiente lista preliminar de convocatorias para "{query}"{locality}:

{step1_output}
{filters}
Para cada convocatoria de la lista entrega el detalle completo siguiendo el esquema.

{rules}

ESQUEMA DE SALIDA (responde SOLO con JSON válido):
{schema}"""

SINGLE_STEP_PROMPT_TEMPLATE = """Busca convocatorias de financiamiento relacionadas con: "{query}"{locality}.
{filters}
{rules}

ESQUEMA DE SALIDA (responde SOLO con JSON válido):
{schema}"""

_FILTER_LABELS = {
    "sector": "Sector",
    "location": "Ubicación",
    "min_amount": "Monto mínimo",
    "max_amount": "Monto máximo",
    "deadline_from": "Cierre desde",
    "deadline_to": "Cierre hasta",
}


def format_filters(parameters: Optional[Dict[str, Any]]) -> str:
    """
    Traduce los filtros del usuario a líneas de texto para el prompt.

    Args:
        parameters: Filtros opcionales de la búsqueda

    Returns:
        Bloque de texto (vacío si no hay filtros)
    """
    if not parameters:
        return ""
    lines = []
    for key, label in _FILTER_LABELS.items():
        value = parameters.get(key)
        if value not in (None, "", []):
            lines.append(f"- {label}: {value}")
    if not lines:
        return ""
    return "\nFiltros del usuario:\n" + "\n".join(lines) + "\n"


def get_system_prompt() -> str:
    """Retorna el prompt del sistema"""
    return SYSTEM_PROMPT


def build_prompt(
    query: str,
    parameters: Optional[Dict[str, Any]],
    scope: GeographicScope,
    step: str,
    step1_output: Optional[str] = None,
) -> PromptPair:
    """
    Construye el prompt de sistema y el prompt de tarea para un paso del flujo.

    Args:
        query: Texto de la consulta
        parameters: Filtros del usuario
        scope: Alcance geográfico detectado
        step: "step1" (lista breve), "step2" (detalle con verificación) o "single"
        step1_output: Texto crudo del paso 1 (requerido para "step2")

    Returns:
        PromptPair con system y user

    Raises:
        SearchInputError: Si la consulta excede el largo máximo
        ValueError: Si el paso es desconocido o falta el contexto del paso 1
    """
    validate_query_length(query)

    locality = locality_clause(scope)
    filters = format_filters(parameters)
    schema = json.dumps(OUTPUT_SCHEMA, ensure_ascii=False, indent=2)

    if step == STEP_LIST:
        user = STEP1_PROMPT_TEMPLATE.format(query=query, locality=locality, filters=filters)
    elif step == STEP_DETAIL:
        if not step1_output:
            raise ValueError("El paso 2 requiere la salida del paso 1 como contexto")
        user = STEP2_PROMPT_TEMPLATE.format(
            query=query,
            locality=locality,
            step1_output=step1_output.strip(),
            filters=filters,
            rules=ANTI_FABRICATION_RULES,
            schema=schema,
        )
    elif step == STEP_SINGLE:
        user = SINGLE_STEP_PROMPT_TEMPLATE.format(
            query=query,
            locality=locality,
            filters=filters,
            rules=ANTI_FABRICATION_RULES,
            schema=schema,
        )
    else:
        raise ValueError(f"Paso de prompt desconocido: {step}")

    return PromptPair(system=get_system_prompt(), user=user)


PARSING_PROMPT_TEMPLATE = """Analiza el siguiente contenido ({content_type}) y extrae TODAS las convocatorias de financiamiento que aparezcan en él.

Para cada convocatoria entrega:
- nombre_concurso (REQUERIDO)
- institucion (REQUERIDO)
- fecha_apertura
- fecha_cierre
- monto_financiamiento
- area
- requisitos
- descripcion
- fuente (URL si aparece en el contenido)

{rules}

Usa SOLO información presente en el contenido. Si no encuentras convocatorias, responde {{"convocatorias": []}}.
Responde SOLO con JSON válido con la forma {{"convocatorias": [...]}}.

CONTENIDO:
{content}
"""


def build_parsing_prompt(content: str, content_type: str) -> PromptPair:
    """
    Genera el prompt de extracción para contenido ya obtenido (texto, HTML, PDF o URL).

    Args:
        content: Contenido preprocesado
        content_type: Tipo de contenido original

    Returns:
        PromptPair con system y user
    """
    user = PARSING_PROMPT_TEMPLATE.format(
        content_type=content_type,
        rules=ANTI_FABRICATION_RULES,
        content=content,
    )
    return PromptPair(system=get_system_prompt(), user=user)
