"""
Módulo de integración con LLM (Gemini y OpenRouter)

Nota: Las llamadas a la API se hacen directamente vía REST.
"""

from .model_invoker import ModelInvoker, provider_for_model, generation_config_for
from .prompts import build_prompt, build_parsing_prompt, get_system_prompt
from .response_parser import parse, parse_with_strategy, parse_step1_list, normalize_record

__all__ = [
    "ModelInvoker",
    "provider_for_model",
    "generation_config_for",
    "build_prompt",
    "build_parsing_prompt",
    "get_system_prompt",
    "parse",
    "parse_with_strategy",
    "parse_step1_list",
    "normalize_record",
]
