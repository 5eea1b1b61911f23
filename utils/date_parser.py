"""
Utilidades para parsing de fechas y cálculo del estado de una convocatoria
"""

import re
from datetime import datetime
from dateutil import parser as date_parser
from typing import Optional

MONTHS_ES = {
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4,
    "mayo": 5, "junio": 6, "julio": 7, "agosto": 8,
    "septiembre": 9, "setiembre": 9, "octubre": 10, "noviembre": 11, "diciembre": 12
}

STATUS_ALIASES = {
    "abierto": "abierto", "abierta": "abierto", "open": "abierto",
    "activo": "abierto", "activa": "abierto", "vigente": "abierto",
    "cerrado": "cerrado", "cerrada": "cerrado", "closed": "cerrado",
    "finalizado": "cerrado", "finalizada": "cerrado", "vencido": "cerrado",
    "próximo": "próximo", "proximo": "próximo", "próxima": "próximo",
    "proxima": "próximo", "upcoming": "próximo", "en_evaluacion": "cerrado",
}

UNKNOWN_STATUS = "consultar"


def parse_date(date_str: str) -> Optional[datetime]:
    """
    Intenta parsear una fecha en varios formatos comunes en Chile

    Args:
        date_str: String con la fecha

    Returns:
        datetime object o None si no se puede parsear
    """
    if not date_str or not isinstance(date_str, str):
        return None

    date_str = date_str.strip()

    # Formato YYYY-MM-DD: parsear directamente (no usar dayfirst)
    if re.match(r'^\d{4}-\d{1,2}-\d{1,2}$', date_str):
        try:
            parts = date_str.split('-')
            return datetime(int(parts[0]), int(parts[1]), int(parts[2]))
        except ValueError:
            return None

    # "15 de marzo de 2026" o "10 de diciembre, 2025"
    match_es = re.search(r"(\d{1,2})\s+de\s+([a-záéíóú]+)\s*(?:,|de)?\s*(\d{4})", date_str, re.IGNORECASE)
    if match_es:
        month = MONTHS_ES.get(match_es.group(2).lower())
        if month:
            try:
                return datetime(int(match_es.group(3)), month, int(match_es.group(1)))
            except ValueError:
                return None

    # Formatos numéricos DD/MM/YYYY o YYYY/MM/DD dentro de un texto más largo
    match_num = re.search(r"(\d{1,2})[\/\-](\d{1,2})[\/\-](\d{4})", date_str)
    if match_num:
        try:
            return datetime(int(match_num.group(3)), int(match_num.group(2)), int(match_num.group(1)))
        except ValueError:
            return None
    match_iso = re.search(r"(\d{4})[\/\-](\d{1,2})[\/\-](\d{1,2})", date_str)
    if match_iso:
        try:
            return datetime(int(match_iso.group(1)), int(match_iso.group(2)), int(match_iso.group(3)))
        except ValueError:
            return None

    # Último recurso: dateutil (solo si el texto contiene un año)
    if not re.search(r"\b\d{4}\b", date_str):
        return None
    try:
        return date_parser.parse(date_str, dayfirst=True)
    except (ValueError, OverflowError):
        return None


def is_past_date(date_str: str, now: Optional[datetime] = None) -> bool:
    """
    Determina si una fecha es pasada

    Args:
        date_str: String con la fecha
        now: Fecha de referencia (por defecto, ahora)

    Returns:
        True si la fecha es pasada, False si es futura o no se puede determinar
    """
    parsed = parse_date(date_str)
    if parsed is None:
        return False

    return parsed.replace(tzinfo=None) < (now or datetime.now())


def compute_status(deadline: Optional[str], reported_status: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """
    Calcula el estado de forma determinística.

    Si la fecha de cierre se puede parsear, el estado sale de ella ("abierto"
    o "cerrado"); si no, se normaliza el estado reportado por el modelo a
    abierto / cerrado / próximo / consultar.
    """
    parsed = parse_date(deadline) if deadline else None
    if parsed is not None:
        return "cerrado" if parsed.replace(tzinfo=None) < (now or datetime.now()) else "abierto"

    if reported_status:
        key = reported_status.strip().lower().replace(" ", "_")
        return STATUS_ALIASES.get(key, UNKNOWN_STATUS)
    return UNKNOWN_STATUS
