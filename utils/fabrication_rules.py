"""
Carga del conjunto versionado de reglas anti-fabricación

Las reglas viven en un archivo JSON (config/fabrication_rules.json por defecto,
o la ruta indicada en CONVOCATORIAS_FABRICATION_RULES) para poder evolucionar
sin cambios de código.
"""

import json
import logging
import os
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from config import DEFAULT_FABRICATION_RULES_FILE, FABRICATION_RULES_ENV

logger = logging.getLogger(__name__)

_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


class FabricationRule(BaseModel):
    """Firma de fabricación: expresión regular + campos donde aplica."""

    id: str
    pattern: str
    applies_to: List[str]
    flags: str = ""
    category: str = "generic"

    _compiled: Optional[re.Pattern] = PrivateAttr(default=None)

    @field_validator("flags")
    @classmethod
    def _known_flags(cls, value: str) -> str:
        unknown = set(value) - set(_FLAG_MAP)
        if unknown:
            raise ValueError(f"Flags de regex desconocidos: {sorted(unknown)}")
        return value

    @property
    def regex(self) -> re.Pattern:
        if self._compiled is None:
            flags = 0
            for flag in self.flags:
                flags |= _FLAG_MAP[flag]
            self._compiled = re.compile(self.pattern, flags)
        return self._compiled

    def matches(self, value: Any) -> bool:
        return isinstance(value, str) and self.regex.search(value) is not None


class FabricationRuleSet(BaseModel):
    """
    Conjunto de reglas con versión, lista de URLs genéricas prohibidas y
    frases de "dato no disponible" (se buscan dentro del valor, en minúsculas y sin tildes).
    """

    version: str
    description: Optional[str] = None
    generic_urls: List[str] = Field(default_factory=list)
    rules: List[FabricationRule] = Field(default_factory=list)
    sentinel_phrases: List[FabricationRule] = Field(default_factory=list)

    def first_match(self, record: Dict[str, Any]) -> Optional[FabricationRule]:
        """
        Retorna la primera regla que coincide con algún campo del registro.

        Args:
            record: Registro con nombres de campo canónicos

        Returns:
            La regla que coincide o None
        """
        for rule in self.rules:
            for field in rule.applies_to:
                if rule.matches(record.get(field)):
                    return rule
        return None

    def sentinel_phrase_match(self, field: str, folded_value: str) -> Optional[FabricationRule]:
        """
        Retorna la frase de "no disponible" declarada para el campo que aparece en el valor.

        Args:
            field: Nombre canónico del campo
            folded_value: Valor en minúsculas y sin tildes
        """
        for phrase in self.sentinel_phrases:
            if field in phrase.applies_to and phrase.matches(folded_value):
                return phrase
        return None

    def is_generic_url(self, url: Optional[str]) -> bool:
        """True si la URL es la portada genérica de una institución."""
        if not url:
            return False
        normalized = url.strip().rstrip("/").lower()
        return any(normalized == generic.rstrip("/").lower() for generic in self.generic_urls)


def rules_path() -> str:
    """Ruta efectiva del archivo de reglas (variable de entorno o la incluida en el paquete)."""
    return os.environ.get(FABRICATION_RULES_ENV) or DEFAULT_FABRICATION_RULES_FILE


@lru_cache(maxsize=8)
def _load_from_path(path: str) -> FabricationRuleSet:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    rule_set = FabricationRuleSet(**data)
    # Compilar todas las expresiones al cargar para fallar temprano
    for rule in rule_set.rules + rule_set.sentinel_phrases:
        _ = rule.regex
    logger.info(
        f"Cargadas {len(rule_set.rules)} reglas anti-fabricación y {len(rule_set.sentinel_phrases)} "
        f"frases de dato no disponible (versión {rule_set.version}) desde {path}"
    )
    return rule_set


def load_rule_set(path: Optional[str] = None) -> FabricationRuleSet:
    """
    Carga (y cachea por ruta) el conjunto de reglas.

    Args:
        path: Ruta explícita; por defecto rules_path()

    Raises:
        OSError, ValueError: Si el archivo no existe o es inválido
    """
    return _load_from_path(path or rules_path())
