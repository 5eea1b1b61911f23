"""
Módulo de configuración centralizada.

Exporta configuraciones globales y mapas de ubicaciones.
"""

from config.global_config import (
    PROVIDERS,
    MODEL_TIERS,
    SEARCH_FLOWS,
    DEFAULT_SEARCH_FLOW,
    RETRY_CONFIG,
    RELIABILITY_CONFIG,
    SEARCH_LIMITS,
    SUPABASE_CONFIG,
    DATA_DIR,
    SEARCHES_DIR,
    PARSING_DIR,
    KEYS_FILE_ENV,
    DEFAULT_KEYS_FILE,
    FABRICATION_RULES_ENV,
    DEFAULT_FABRICATION_RULES_FILE,
)

from config.locations import (
    COUNTRY_KEYWORDS,
    COUNTRY_NAMES,
    CHILE_REGIONS,
    INTERNATIONAL_TERMS,
    DEFAULT_LOCATION_ID,
)

__all__ = [
    # Global config
    "PROVIDERS",
    "MODEL_TIERS",
    "SEARCH_FLOWS",
    "DEFAULT_SEARCH_FLOW",
    "RETRY_CONFIG",
    "RELIABILITY_CONFIG",
    "SEARCH_LIMITS",
    "SUPABASE_CONFIG",
    "DATA_DIR",
    "SEARCHES_DIR",
    "PARSING_DIR",
    "KEYS_FILE_ENV",
    "DEFAULT_KEYS_FILE",
    "FABRICATION_RULES_ENV",
    "DEFAULT_FABRICATION_RULES_FILE",
    # Locations
    "COUNTRY_KEYWORDS",
    "COUNTRY_NAMES",
    "CHILE_REGIONS",
    "INTERNATIONAL_TERMS",
    "DEFAULT_LOCATION_ID",
]
