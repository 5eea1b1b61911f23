"""
Configuración global del sistema de búsqueda y validación de convocatorias.
"""

import os

# Proveedores de modelos LLM
# Cada proveedor define dónde buscar su credencial (env var / secreto en vault)
# y qué endpoint usar para validar una key de último recurso.
PROVIDERS = {
    "gemini": {
        "name": "Google Gemini",
        "env_vars": ["GEMINI_API_KEY", "GOOGLE_API_KEY"],
        "vault_secret": "GOOGLE_API_KEY",
        "base_url": "https://generativelanguage.googleapis.com/v1beta/models",
        "probe_url": "https://generativelanguage.googleapis.com/v1beta/models",
    },
    "openrouter": {
        "name": "OpenRouter",
        "env_vars": ["OPENROUTER_API_KEY"],
        "vault_secret": "OPENROUTER_API_KEY",
        "base_url": "https://openrouter.ai/api/v1/chat/completions",
        "probe_url": "https://openrouter.ai/api/v1/models",
        # Cabeceras de atribución exigidas por OpenRouter
        "referer": "https://convocatorias-pro.app",
        "title": "ConvocatoriasPro - Busqueda IA",
    },
}

# Modelos disponibles y su configuración de generación.
# Los modelos rápidos (flash) usan temperatura más alta y salidas más cortas
# que los modelos potentes (pro).
MODEL_TIERS = {
    "gemini-2.5-flash": {
        "name": "Gemini 2.5 Flash",
        "provider": "gemini",
        "tier": "fast",
        "generation_config": {
            "temperature": 0.8,
            "max_output_tokens": 3000,
            "top_p": 0.9,
            "top_k": 40,
        },
    },
    "gemini-2.5-pro": {
        "name": "Gemini 2.5 Pro",
        "provider": "gemini",
        "tier": "strong",
        "generation_config": {
            "temperature": 0.7,
            "max_output_tokens": 8000,
            "top_p": 0.8,
            "top_k": 30,
        },
    },
    "deepseek/deepseek-r1": {
        "name": "DeepSeek R1 (OpenRouter)",
        "provider": "openrouter",
        "tier": "strong",
        "generation_config": {
            "temperature": 0.3,
            "max_output_tokens": 4000,
            "top_p": 0.9,
        },
    },
}

# Flujos de búsqueda. Agregar un nivel de modelo es solo un cambio de configuración:
# los modelos de "step2_models" se prueban en orden.
SEARCH_FLOWS = {
    "two_step": {
        "provider": "gemini",
        "step1_model": "gemini-2.5-flash",
        "step2_models": ["gemini-2.5-pro", "gemini-2.5-flash"],
        "method": "gemini_smart_flow_2_steps",
    },
    "single_step": {
        "provider": "openrouter",
        "model": "deepseek/deepseek-r1",
        "method": "openrouter_single_step",
    },
}

DEFAULT_SEARCH_FLOW = "two_step"

# Política de reintentos del invocador de modelos
RETRY_CONFIG = {
    "max_attempts": 3,
    "rate_limit_base_delay": 2,  # segundos, se duplica en cada intento (HTTP 429)
    "server_error_base_delay": 1,  # segundos, se duplica en cada intento (HTTP 5xx)
    "api_timeout": 60,  # Timeout por llamada HTTP (segundos)
    "probe_timeout": 10,  # Timeout para validar keys de último recurso
    "vault_timeout": 10,
}

# Pesos del puntaje de confiabilidad (determinístico, no reportado por el modelo)
RELIABILITY_CONFIG = {
    "ai_base_score": 50,
    "verified_weights": {
        "title_verified": 15,
        "amount_verified": 15,
        "deadline_verified": 10,
        "source_accessible": 10,
    },
    "present_field_bonus": 2,
    "sentinel_penalty": 5,
    "ai_min_score": 50,
    "ai_max_score": 95,
    "rule_based_base_score": 50,
    "rule_based_field_bonus": 5,
    "rule_based_max_score": 75,
}

# Límites de entrada y de campos
SEARCH_LIMITS = {
    "max_query_length": 500,
    "default_max_results": 5,
    "max_results_cap": 20,
    "description_max_length": 300,
    "requirements_max_length": 500,
    "max_content_length": 50000,
    "max_regex_titles": 3,
    "max_step1_items": 6,
    "max_rule_based_results": 5,
    "error_message_max_length": 200,
}

# Almacenamiento externo (Supabase REST)
SUPABASE_CONFIG = {
    "url_env": "SUPABASE_URL",
    "key_env": "SUPABASE_SERVICE_ROLE_KEY",
    "searches_table": "ai_searches",
    "results_table": "ai_search_results",
    "parsing_table": "parsing_history",
    "vault_table": "vault.secrets",
    "timeout": 15,
}

# Rutas de directorios
DATA_DIR = "data"
SEARCHES_DIR = f"{DATA_DIR}/searches"
PARSING_DIR = f"{DATA_DIR}/parsing"

# Archivo con keys de último recurso (inyectado por configuración, nunca en código)
KEYS_FILE_ENV = "CONVOCATORIAS_KEYS_FILE"
DEFAULT_KEYS_FILE = f"{DATA_DIR}/.api_keys.json"

# Conjunto versionado de reglas anti-fabricación
FABRICATION_RULES_ENV = "CONVOCATORIAS_FABRICATION_RULES"
DEFAULT_FABRICATION_RULES_FILE = os.path.join(os.path.dirname(__file__), "fabrication_rules.json")
