"""
Deserialización tolerante de texto casi-JSON producido por modelos LLM.

Cada reparación es una pasada independiente que solo modifica el texto fuera
de los literales de string (salvo las que operan explícitamente dentro de
ellos). Todas las pasadas son idempotentes, y por lo tanto también lo es
repair_json().
"""

import json
import logging
import re
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_À-ſ][\wÀ-ſ\-]*)(\s*:)")
_NEWLINES_RE = re.compile(r"[ \t]*[\r\n]+[ \t]*")


def _split_segments(text: str) -> List[Tuple[str, bool]]:
    """
    Divide el texto en segmentos (contenido, es_string) respetando escapes.

    Un string sin cerrar se considera string hasta el final del texto.
    """
    segments: List[Tuple[str, bool]] = []
    buffer: List[str] = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            buffer.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                segments.append(("".join(buffer), True))
                buffer = []
                in_string = False
        else:
            if char == '"':
                if buffer:
                    segments.append(("".join(buffer), False))
                buffer = [char]
                in_string = True
            else:
                buffer.append(char)

    if buffer:
        segments.append(("".join(buffer), in_string))
    return segments


def _map_outside_strings(text: str, func: Callable[[str], str]) -> str:
    return "".join(seg if is_str else func(seg) for seg, is_str in _split_segments(text))


def strip_control_chars(text: str) -> str:
    """Elimina caracteres de control (conserva tabulaciones y saltos de línea)."""
    return _CONTROL_CHARS_RE.sub("", text)


def normalize_single_quotes(text: str) -> str:
    """
    Convierte strings con comillas simples ('valor') en strings JSON ("valor").

    Solo actúa fuera de strings con comillas dobles, así los apóstrofes dentro
    de un texto válido no se tocan. Una comilla simple sin cierre se deja igual.
    """
    result: List[str] = []
    for segment, is_string in _split_segments(text):
        if is_string:
            result.append(segment)
            continue

        i = 0
        while i < len(segment):
            char = segment[i]
            if char != "'":
                result.append(char)
                i += 1
                continue

            # Buscar cierre sin escapar
            j = i + 1
            content: List[str] = []
            closed = False
            while j < len(segment):
                if segment[j] == "\\" and j + 1 < len(segment):
                    content.append(segment[j + 1])
                    j += 2
                    continue
                if segment[j] == "'":
                    closed = True
                    break
                content.append(segment[j])
                j += 1

            if not closed:
                result.append(segment[i:])
                break

            result.append(json.dumps("".join(content), ensure_ascii=False))
            i = j + 1

    return "".join(result)


def collapse_newlines_in_strings(text: str) -> str:
    """Reemplaza saltos de línea crudos dentro de strings por un espacio."""
    return "".join(
        _NEWLINES_RE.sub(" ", seg) if is_str else seg
        for seg, is_str in _split_segments(text)
    )


def quote_unquoted_keys(text: str) -> str:
    """Agrega comillas dobles a claves sin comillas ({nombre: ...} -> {"nombre": ...})."""
    return _map_outside_strings(text, lambda seg: _UNQUOTED_KEY_RE.sub(r'\1"\2"\3', seg))


def strip_trailing_commas(text: str) -> str:
    """Elimina comas antes de ] o } (incluyendo comas repetidas)."""

    def _strip(segment: str) -> str:
        previous = None
        while previous != segment:
            previous = segment
            segment = _TRAILING_COMMA_RE.sub(r"\1", segment)
        return segment

    return _map_outside_strings(text, _strip)


# Orden de aplicación de las pasadas de reparación
REPAIR_PASSES: List[Callable[[str], str]] = [
    strip_control_chars,
    normalize_single_quotes,
    collapse_newlines_in_strings,
    quote_unquoted_keys,
    strip_trailing_commas,
]


def repair_json(text: str) -> str:
    """
    Aplica todas las pasadas de reparación en orden.

    Args:
        text: Texto candidato a JSON

    Returns:
        Texto reparado (idempotente: repair_json(repair_json(x)) == repair_json(x))
    """
    for repair_pass in REPAIR_PASSES:
        text = repair_pass(text)
    return text


def extract_balanced_span(text: str, start: Optional[int] = None) -> Optional[str]:
    """
    Recorre el texto siguiendo strings (con escapes) y profundidad de llaves/corchetes
    para encontrar un bloque JSON balanceado.

    Args:
        text: Texto libre del modelo
        start: Posición de inicio; por defecto el primer '{' o '['

    Returns:
        El bloque balanceado o None si no existe o está truncado
    """
    if start is None:
        positions = [p for p in (text.find("{"), text.find("[")) if p != -1]
        if not positions:
            return None
        start = min(positions)

    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    logger.debug("Bloque JSON sin cerrar (posible respuesta truncada)")
    return None


def loads_tolerant(text: str) -> Any:
    """
    Intenta json.loads directo y, si falla, sobre el texto reparado.

    Raises:
        ValueError: Si ni siquiera el texto reparado es JSON válido
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    repaired = repair_json(text)
    return json.loads(repaired)
