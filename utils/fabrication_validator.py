"""
Validador anti-fabricación y cálculo determinístico del puntaje de confiabilidad

Cada registro candidato pasa por:
1. Normalización de centinelas (variantes de "no disponible" -> frase canónica)
2. Chequeo de campos obligatorios (title, organization, source_url)
3. Lista de URLs genéricas prohibidas
4. Biblioteca de patrones de fabricación (reglas versionadas en JSON)

Los registros rechazados se descartan (y se registran en el log), nunca se
devuelven como error al usuario.
"""

import logging
import re
import unicodedata
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from config import RELIABILITY_CONFIG
from models import (
    Convocatoria,
    DataVerification,
    DataExtractionNotes,
    FIELD_SENTINELS,
    OPTIONAL_TEXT_FIELDS,
    REQUIRED_FIELDS,
)
from utils.date_parser import compute_status
from utils.fabrication_rules import FabricationRuleSet, load_rule_set

logger = logging.getLogger(__name__)

AI_METHODS = {"ai"}

_SENTINEL_RE = re.compile(
    r"^(?:(?:dato|datos|informacion|monto|fecha|descripcion|requisitos|url)\s+)?"
    r"(?:no\s+(?:disponibles?|especificad[oa]s?|detallad[oa]s?|informad[oa]s?|encontrad[oa]s?)"
    r"|sin\s+(?:especificar|informacion|datos)"
    r"|(?:por|a)\s+(?:definir|confirmar)"
    r"|n/?a|null|none|desconocid[oa]|-+)"
    r"(?:\s+en\s+(?:la\s+)?fuente)?\.?$"
)

_TRUE_FLAGS = {"si", "yes", "true", "verdadero", "verificado", "1"}


class Rejection(BaseModel):
    """Motivo de rechazo de un registro candidato."""

    reason: str
    rule_id: Optional[str] = None
    title: Optional[str] = None


def _fold(text: str) -> str:
    """Minúsculas y sin tildes, para comparar variantes."""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def is_sentinel_variant(value: Any, field: Optional[str] = None, rule_set: Optional[FabricationRuleSet] = None) -> bool:
    """
    True si el valor es alguna variante de "no disponible" (incluidas las canónicas).

    Sin campo solo se reconocen valores que son enteramente una frase de "no disponible".
    Con campo y conjunto de reglas, además se buscan dentro del valor las frases
    declaradas para ese campo (ej: "Monto no especificado en las bases").

    Args:
        value: Valor a revisar
        field: Nombre canónico del campo
        rule_set: Reglas con las frases de dato no disponible
    """
    if value is None:
        return True
    if not isinstance(value, str):
        return False
    folded = re.sub(r"\s+", " ", _fold(value))
    if not folded:
        return True
    if _SENTINEL_RE.match(folded) is not None:
        return True
    if field is None or rule_set is None:
        return False
    return rule_set.sentinel_phrase_match(field, folded) is not None


def is_verified_flag(value: Any) -> bool:
    """
    Interpreta una bandera de verificación ("SI", true, "YES", ...).

    Los ecos de plantilla como "SI | NO" o "[SI/NO]" cuentan como no verificados.
    """
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return False
    if any(ch in value for ch in "|/[]"):
        return False
    return _fold(value) in _TRUE_FLAGS


def reliability_score(
    verification: DataVerification,
    present_fields: int,
    sentinel_fields: int,
    extraction_method: str = "ai",
    config: Optional[Dict[str, Any]] = None,
) -> int:
    """
    Puntaje de confiabilidad determinístico (función pura).

    Registros de IA: base + pesos por bandera verificada + bono por campo
    opcional presente - penalización por campo centinela, acotado a [50, 95].
    Registros de respaldo (reglas, lista del paso 1, sintético): base + bono
    por campo informativo, máximo 75.
    """
    config = config or RELIABILITY_CONFIG

    if extraction_method not in AI_METHODS:
        score = config["rule_based_base_score"] + config["rule_based_field_bonus"] * present_fields
        return min(score, config["rule_based_max_score"])

    score = config["ai_base_score"]
    for flag_name, weight in config["verified_weights"].items():
        if getattr(verification, flag_name) == "SI":
            score += weight
    score += config["present_field_bonus"] * present_fields
    score -= config["sentinel_penalty"] * sentinel_fields
    return max(config["ai_min_score"], min(config["ai_max_score"], score))


class FabricationValidator:
    """
    Valida registros candidatos y los convierte en Convocatoria.
    """

    def __init__(self, rule_set: Optional[FabricationRuleSet] = None, reliability_config: Optional[Dict[str, Any]] = None):
        """
        Args:
            rule_set: Reglas anti-fabricación (por defecto las del archivo configurado)
            reliability_config: Pesos del puntaje (por defecto RELIABILITY_CONFIG)
        """
        self.rule_set = rule_set or load_rule_set()
        self.reliability_config = reliability_config or RELIABILITY_CONFIG

    def normalize_sentinels(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Reescribe las variantes de "no disponible" a la frase canónica de cada campo
        y completa con centinela los campos opcionales ausentes.
        """
        normalized = dict(record)
        for field in OPTIONAL_TEXT_FIELDS:
            if is_sentinel_variant(normalized.get(field), field, self.rule_set):
                normalized[field] = FIELD_SENTINELS[field]
        return normalized

    def validate(self, record: Dict[str, Any]) -> Union[Convocatoria, Rejection]:
        """
        Valida un registro candidato.

        Args:
            record: Registro con nombres de campo canónicos (salida del parser)

        Returns:
            Convocatoria validada o Rejection con el motivo
        """
        normalized = self.normalize_sentinels(record)
        title = normalized.get("title") if isinstance(normalized.get("title"), str) else None

        for field in REQUIRED_FIELDS:
            value = normalized.get(field)
            if not isinstance(value, str) or is_sentinel_variant(value):
                return Rejection(reason=f"missing_required:{field}", title=title)

        source_url = normalized["source_url"].strip()
        if not re.match(r"^https?://\S+$", source_url):
            return Rejection(reason="invalid_url", title=title)
        if self.rule_set.is_generic_url(source_url):
            return Rejection(reason="generic_url", rule_id="generic_url_denylist", title=title)

        rule = self.rule_set.first_match(normalized)
        if rule is not None:
            return Rejection(reason=f"pattern:{rule.category}", rule_id=rule.id, title=title)

        method = normalized.get("extraction_method") or "ai"
        verification = self._build_verification(normalized)
        notes = self._build_notes(normalized.get("data_extraction_notes"))

        sentinel_count = sum(1 for f in OPTIONAL_TEXT_FIELDS if normalized[f] == FIELD_SENTINELS[f])
        present_count = len(OPTIONAL_TEXT_FIELDS) - sentinel_count

        return Convocatoria(
            title=normalized["title"].strip(),
            organization=normalized["organization"].strip(),
            description=normalized["description"],
            amount=normalized["amount"],
            deadline=normalized["deadline"],
            requirements=normalized["requirements"],
            source_url=source_url,
            category=normalized["category"],
            status=compute_status(
                None if normalized["deadline"] == FIELD_SENTINELS["deadline"] else normalized["deadline"],
                normalized.get("status"),
            ),
            tags=[t for t in normalized.get("tags") or [] if isinstance(t, str)][:10],
            data_verification=verification,
            data_extraction_notes=notes,
            reliability_score=reliability_score(
                verification, present_count, sentinel_count, method, self.reliability_config
            ),
            extraction_method=method,
        )

    def validate_all(self, records: List[Dict[str, Any]]) -> Tuple[List[Convocatoria], List[Rejection]]:
        """
        Valida una lista de candidatos conservando el orden de entrada.

        Returns:
            Tupla (aceptados, rechazados)
        """
        accepted: List[Convocatoria] = []
        rejected: List[Rejection] = []
        for record in records:
            result = self.validate(record)
            if isinstance(result, Rejection):
                logger.warning(
                    f"⚠️ Registro descartado ({result.reason}"
                    f"{', regla ' + result.rule_id if result.rule_id else ''}): {result.title!r}"
                )
                rejected.append(result)
            else:
                accepted.append(result)
        return accepted, rejected

    def _build_verification(self, record: Dict[str, Any]) -> DataVerification:
        raw = record.get("data_verification") or {}
        flags = {name: "SI" if is_verified_flag(raw.get(name)) else "NO" for name in DataVerification.model_fields}
        # Un dato desconocido no puede estar verificado
        if is_sentinel_variant(record.get("amount"), "amount", self.rule_set):
            flags["amount_verified"] = "NO"
        if is_sentinel_variant(record.get("deadline"), "deadline", self.rule_set):
            flags["deadline_verified"] = "NO"
        return DataVerification(**flags)

    def _build_notes(self, raw: Any) -> DataExtractionNotes:
        if not isinstance(raw, dict):
            return DataExtractionNotes()
        notes: Dict[str, Any] = {}
        for name in ("title_source", "amount_source", "deadline_source"):
            value = raw.get(name)
            if isinstance(value, str) and value.strip():
                notes[name] = value.strip()[:200]
        status = str(raw.get("verification_status") or "").strip().upper()
        if status in ("VERIFIED", "PARTIAL", "UNVERIFIED"):
            notes["verification_status"] = status
        return DataExtractionNotes(**notes)


def validation_summary(candidates: int, rejected: List[Rejection]) -> Dict[str, Any]:
    """
    Resumen de la validación para processing_info.
    """
    by_rule = Counter(r.rule_id or r.reason for r in rejected)
    return {
        "candidates": candidates,
        "accepted": candidates - len(rejected),
        "rejected": len(rejected),
        "rejected_by_rule": dict(by_rule),
    }
