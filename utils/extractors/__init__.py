"""
Módulo de extractores determinísticos (sin LLM).

Se usan como respaldo cuando no hay modelo disponible o cuando la
respuesta del modelo no aporta registros válidos.
"""

from utils.extractors.base_extractor import BaseExtractor
from utils.extractors.rule_based_extractor import (
    RuleBasedExtractor,
    search_url_for,
    suggest_institution,
    synthetic_record,
)

__all__ = [
    "BaseExtractor",
    "RuleBasedExtractor",
    "search_url_for",
    "suggest_institution",
    "synthetic_record",
]
