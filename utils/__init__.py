"""
Utilidades generales
"""

from .date_parser import parse_date, is_past_date, compute_status
from .api_key_manager import APIKeyManager, mask_key
from .credential_resolver import CredentialResolver
from .storage import SearchStore, SupabaseClient, LocalSearchStore, default_store
from .location_detector import detect_scope, locality_clause
from .json_repair import repair_json, extract_balanced_span, loads_tolerant
from .fabrication_rules import FabricationRule, FabricationRuleSet, load_rule_set
from .fabrication_validator import (
    FabricationValidator,
    Rejection,
    is_sentinel_variant,
    is_verified_flag,
    reliability_score,
    validation_summary,
)
from .html_sanitizer import preprocess_content, extract_text_content

__all__ = [
    "parse_date",
    "is_past_date",
    "compute_status",
    "APIKeyManager",
    "mask_key",
    "CredentialResolver",
    "SearchStore",
    "SupabaseClient",
    "LocalSearchStore",
    "default_store",
    "detect_scope",
    "locality_clause",
    "repair_json",
    "extract_balanced_span",
    "loads_tolerant",
    "FabricationRule",
    "FabricationRuleSet",
    "load_rule_set",
    "FabricationValidator",
    "Rejection",
    "is_sentinel_variant",
    "is_verified_flag",
    "reliability_score",
    "validation_summary",
    "preprocess_content",
    "extract_text_content",
]
