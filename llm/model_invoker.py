"""
Invocador de modelos LLM (Gemini y OpenRouter) vía REST

Transporte "tonto" con reintentos: no parsea ni valida el contenido.
Devuelve el texto crudo del modelo o None si la llamada falla.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from config import MODEL_TIERS, PROVIDERS, RETRY_CONFIG
from models import PromptPair, RawModelResponse

logger = logging.getLogger(__name__)


def provider_for_model(model_id: str) -> str:
    """Retorna el proveedor de un modelo (por configuración o por prefijo del nombre)."""
    model_info = MODEL_TIERS.get(model_id)
    if model_info:
        return model_info["provider"]
    return "gemini" if model_id.startswith("gemini") else "openrouter"


def generation_config_for(model_id: str) -> Dict[str, Any]:
    """Configuración de generación del modelo (copia, para no mutar la configuración global)."""
    model_info = MODEL_TIERS.get(model_id, {})
    return dict(model_info.get("generation_config", {}))


class ModelInvoker:
    """
    Envía un prompt a un modelo concreto con la política de reintentos:

    - HTTP 429: backoff exponencial (base 2s, se duplica)
    - HTTP >= 500 o error de red: backoff exponencial (base 1s, se duplica)
    - Cualquier otro código no-2xx: sin reintento, retorna None
    - Respuesta 2xx sin texto: se trata como falla (None)
    """

    def __init__(self, retry_config: Optional[Dict[str, Any]] = None):
        """
        Args:
            retry_config: Política de reintentos (por defecto RETRY_CONFIG)
        """
        self.retry_config = {**RETRY_CONFIG, **(retry_config or {})}

    def invoke(
        self,
        model_id: str,
        prompt: PromptPair,
        api_key: str,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Llama al modelo y retorna su texto crudo.

        Args:
            model_id: Identificador del modelo (ej: "gemini-2.5-pro")
            prompt: Prompt de sistema y de tarea
            api_key: API key del proveedor
            generation_config: Parámetros de generación (por defecto los del modelo)

        Returns:
            Texto de la respuesta o None si la llamada falló
        """
        return self.invoke_raw(model_id, prompt, api_key, generation_config).text

    def invoke_raw(
        self,
        model_id: str,
        prompt: PromptPair,
        api_key: str,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> RawModelResponse:
        """
        Igual que invoke() pero retorna también el número de intentos realizados.
        """
        provider = provider_for_model(model_id)
        config = generation_config if generation_config is not None else generation_config_for(model_id)
        max_attempts = self.retry_config["max_attempts"]
        api_timeout = self.retry_config["api_timeout"]

        if provider == "gemini":
            url, payload, headers, params = self._build_gemini_request(model_id, prompt, api_key, config)
        else:
            url, payload, headers, params = self._build_openrouter_request(model_id, prompt, api_key, config)

        for attempt in range(1, max_attempts + 1):
            logger.info(f"🔄 Llamando a {model_id} (intento {attempt}/{max_attempts}, key {api_key[:8]}...)")
            try:
                response = requests.post(url, json=payload, headers=headers, params=params, timeout=api_timeout)
            except requests.RequestException as e:
                logger.warning(f"⚠️ Error de red con {model_id}: {type(e).__name__}: {e}")
                if attempt < max_attempts:
                    self._backoff(self.retry_config["server_error_base_delay"], attempt)
                    continue
                break

            status = response.status_code
            if 200 <= status < 300:
                text = self._extract_text(provider, response)
                if not text or not text.strip():
                    logger.warning(f"⚠️ {model_id} respondió HTTP {status} sin contenido")
                    return RawModelResponse(model_id=model_id, text=None, attempt=attempt)
                logger.info(f"✅ {model_id} respondió ({len(text)} caracteres)")
                return RawModelResponse(model_id=model_id, text=text, attempt=attempt)

            if status == 429:
                logger.warning(f"⏱️ Rate limit (HTTP 429) en {model_id}, intento {attempt}/{max_attempts}")
                if attempt < max_attempts:
                    self._backoff(self.retry_config["rate_limit_base_delay"], attempt)
                    continue
                break

            if status >= 500:
                logger.warning(f"⚠️ Error del servidor (HTTP {status}) en {model_id}, intento {attempt}/{max_attempts}")
                if attempt < max_attempts:
                    self._backoff(self.retry_config["server_error_base_delay"], attempt)
                    continue
                break

            logger.error(f"❌ {model_id} respondió HTTP {status}, sin reintento: {response.text[:200]}")
            return RawModelResponse(model_id=model_id, text=None, attempt=attempt)

        logger.error(f"❌ {model_id} falló después de {max_attempts} intentos")
        return RawModelResponse(model_id=model_id, text=None, attempt=max_attempts)

    def _backoff(self, base_delay: float, attempt: int) -> None:
        delay = base_delay * (2 ** (attempt - 1))
        logger.info(f"⏳ Esperando {delay}s antes de reintentar...")
        time.sleep(delay)

    def _build_gemini_request(self, model_id: str, prompt: PromptPair, api_key: str, config: Dict[str, Any]):
        url = f"{PROVIDERS['gemini']['base_url']}/{model_id}:generateContent"
        generation = {
            "temperature": config.get("temperature"),
            "maxOutputTokens": config.get("max_output_tokens"),
            "topP": config.get("top_p"),
            "topK": config.get("top_k"),
        }
        payload = {
            "systemInstruction": {"parts": [{"text": prompt.system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt.user}]}],
            "generationConfig": {k: v for k, v in generation.items() if v is not None},
        }
        headers = {"Content-Type": "application/json"}
        params = {"key": api_key}
        return url, payload, headers, params

    def _build_openrouter_request(self, model_id: str, prompt: PromptPair, api_key: str, config: Dict[str, Any]):
        provider = PROVIDERS["openrouter"]
        payload = {
            "model": model_id,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "temperature": config.get("temperature"),
            "max_tokens": config.get("max_output_tokens"),
            "top_p": config.get("top_p"),
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": provider["referer"],
            "X-Title": provider["title"],
        }
        return provider["base_url"], payload, headers, None

    def _extract_text(self, provider: str, response: requests.Response) -> Optional[str]:
        """Extrae el texto de la respuesta según el formato del proveedor (None si el formato no calza)."""
        try:
            result = response.json()
        except ValueError:
            logger.warning("⚠️ Respuesta 2xx con cuerpo no-JSON")
            return None

        if not isinstance(result, dict):
            logger.warning(f"⚠️ Respuesta 2xx con formato inesperado ({type(result).__name__})")
            return None

        if provider == "gemini":
            return self._gemini_text(result)
        return self._openrouter_text(result)

    @staticmethod
    def _gemini_text(result: Dict[str, Any]) -> Optional[str]:
        candidates = result.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            feedback = result.get("promptFeedback")
            block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
            if block_reason:
                logger.warning(f"⚠️ Respuesta bloqueada por Gemini (blockReason: {block_reason})")
            return None
        candidate = candidates[0] if isinstance(candidates[0], dict) else {}
        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            logger.warning("⚠️ Respuesta de Gemini sin partes de contenido")
            return None
        texts = [part.get("text") for part in parts if isinstance(part, dict)]
        return "".join(text for text in texts if isinstance(text, str))

    @staticmethod
    def _openrouter_text(result: Dict[str, Any]) -> Optional[str]:
        choices = result.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        choice = choices[0] if isinstance(choices[0], dict) else {}
        message = choice.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            logger.warning("⚠️ Respuesta de OpenRouter sin mensaje de texto")
            return None
        return content
