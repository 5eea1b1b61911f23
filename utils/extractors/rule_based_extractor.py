"""
Extractor determinístico (sin LLM) de convocatorias

Se usa como último recurso cuando no hay credenciales o todos los modelos
fallaron, y como parser de respaldo para contenido ya obtenido.
Nunca inventa montos ni fechas: solo copia lo que encuentra en el texto y
usa las frases centinela para lo demás.
"""

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

from config import SEARCH_LIMITS
from utils.extractors.base_extractor import BaseExtractor

logger = logging.getLogger(__name__)

CONVOCATORIA_RE = re.compile(r"(?:convocatoria|concurso|llamado|fondo)\s+([^\n]+)", re.IGNORECASE)
DATE_RE = re.compile(r"(\d{1,2}[\/\-]\d{1,2}[\/\-]\d{4}|\d{4}[\/\-]\d{1,2}[\/\-]\d{1,2})")
AMOUNT_RE = re.compile(r"\$\s*([\d\.,]+)|([\d\.,]+)\s*(?:millones?|pesos|clp|uf)\b", re.IGNORECASE)
INSTITUTION_RE = re.compile(r"\b(corfo|anid|conicyt|fondecyt|sercotec|fia|minciencia)\b", re.IGNORECASE)

# Palabra clave del tema -> (organismo sugerido, categoría)
TOPIC_INSTITUTIONS = [
    (("investigación", "investigacion", "ciencia", "científic"), "ANID", "Investigación Científica"),
    (("tecnología", "tecnologia", "tecnológic", "digital", "startup"), "Ministerio de Ciencia (MinCiencia)", "Ciencia y Tecnología"),
    (("agrícola", "agricola", "agro", "rural"), "FIA", "Innovación Agraria"),
    (("energía", "energia", "renovable", "solar"), "Comisión Nacional de Energía (CNE)", "Energía"),
]
DEFAULT_TOPIC = ("CORFO", "Innovación y Desarrollo")

INSTITUTION_NAMES = {
    "corfo": "CORFO",
    "anid": "ANID",
    "conicyt": "ANID (ex CONICYT)",
    "fondecyt": "ANID - FONDECYT",
    "sercotec": "SERCOTEC",
    "fia": "FIA",
    "minciencia": "Ministerio de Ciencia (MinCiencia)",
}

SYNTHETIC_ORGANIZATION = "Sistema de consulta"


def search_url_for(*terms: str) -> str:
    """
    Enlace de búsqueda para verificar manualmente una convocatoria.

    Se usa en vez de inventar una URL específica que no conocemos.
    """
    text = " ".join(t.strip() for t in terms if t and t.strip())
    return f"https://www.google.com/search?q={quote_plus(text)}"


def suggest_institution(text: str) -> tuple:
    """Sugiere (organismo, categoría) para un tema según palabras clave."""
    lowered = (text or "").lower()
    for keywords, institution, category in TOPIC_INSTITUTIONS:
        if any(keyword in lowered for keyword in keywords):
            return institution, category
    return DEFAULT_TOPIC


def synthetic_record(query: str) -> Dict[str, Any]:
    """
    Registro sintético "sin resultados" que conserva la consulta para trazabilidad.
    """
    return {
        "title": f"Búsqueda de {query}".strip(),
        "organization": SYNTHETIC_ORGANIZATION,
        "description": (
            f"No se pudieron verificar convocatorias para \"{query}\". "
            "Revise el enlace de búsqueda para consultar fuentes oficiales."
        ),
        "source_url": search_url_for(query, "convocatoria financiamiento"),
        "category": suggest_institution(query)[1],
        "tags": ["sin_resultados_verificados"],
        "extraction_method": "synthetic",
    }


class RuleBasedExtractor(BaseExtractor):
    """
    Extractor por palabras clave y expresiones regulares.

    Recorre el texto línea por línea buscando encabezados de convocatorias
    (convocatoria/concurso/llamado/fondo) y asocia a cada uno la fecha, el monto
    y la institución que aparezcan en las líneas siguientes.
    """

    def __init__(self, max_results: Optional[int] = None, lookahead_lines: int = 4):
        self.max_results = max_results or SEARCH_LIMITS["max_rule_based_results"]
        self.lookahead_lines = lookahead_lines

    def extract(self, text: str, query: str = "", source_url: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Extrae registros candidatos desde texto libre.

        Args:
            text: Texto del que extraer (salida cruda del modelo o contenido)
            query: Consulta original (para la URL de búsqueda y el organismo sugerido)
            source_url: URL de la fuente si el llamador la conoce

        Returns:
            Lista de registros candidatos (máximo max_results). Puede ser vacía.
        """
        lines = [line.strip() for line in (text or "").splitlines()]
        records: List[Dict[str, Any]] = []
        seen_titles = set()

        for index, line in enumerate(lines):
            if len(records) >= self.max_results:
                break
            match = CONVOCATORIA_RE.search(line)
            if not match:
                continue

            title = self._clean_title(match.group(0))
            if len(title) < 8 or title.lower() in seen_titles:
                continue
            seen_titles.add(title.lower())

            context = "\n".join(lines[index:index + 1 + self.lookahead_lines])
            record: Dict[str, Any] = {
                "title": title,
                "extraction_method": "rule_based",
            }

            institution = INSTITUTION_RE.search(context) or INSTITUTION_RE.search(text)
            if institution:
                record["organization"] = INSTITUTION_NAMES[institution.group(1).lower()]
            else:
                record["organization"] = suggest_institution(f"{query} {title}")[0]

            date_match = DATE_RE.search(context)
            if date_match:
                record["deadline"] = date_match.group(1)

            amount_match = AMOUNT_RE.search(context)
            if amount_match:
                record["amount"] = amount_match.group(0).strip()

            description_lines = [l for l in lines[index + 1:index + 1 + self.lookahead_lines] if l]
            if description_lines:
                record["description"] = " ".join(description_lines)

            record["source_url"] = source_url or search_url_for(title, record["organization"])
            record["category"] = suggest_institution(f"{query} {title}")[1]
            records.append(record)

        logger.info(f"Extracción por reglas: {len(records)} registros encontrados")
        return records

    def extract_or_synthesize(self, text: str, query: str, source_url: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Como extract(), pero garantiza al menos un registro (sintético si no hay nada).
        """
        records = self.extract(text, query=query, source_url=source_url)
        if not records:
            logger.warning(f"🔄 Sin registros por reglas, usando registro sintético para '{query}'")
            records = [synthetic_record(query)]
        return records

    @staticmethod
    def _clean_title(raw: str) -> str:
        title = re.sub(r"[*#_`>\[\]]", "", raw)
        title = re.sub(r"\s+", " ", title).strip(" -:•.\",'")
        return title[:200]
