"""
Errores de entrada y forma estándar del cuerpo de error
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class SearchInputError(ValueError):
    """
    Error de entrada del llamador (consulta ausente, demasiado larga, contenido inválido).

    Se rechaza antes de invocar cualquier modelo y se traduce a HTTP 400.
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def build_error_body(
    code: str,
    message: str,
    error_type: Optional[str] = None,
    max_message_length: int = 200,
) -> Dict[str, Any]:
    """
    Construye el cuerpo de error {error: {code, message, timestamp, type}}.

    El mensaje se recorta para no filtrar trazas completas al llamador.
    """
    body = {
        "code": code,
        "message": (message or "")[:max_message_length],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if error_type:
        body["type"] = error_type
    return {"error": body}
