"""
Resolución de credenciales por proveedor

Orden estricto, deteniéndose en el primer éxito:
1. Variable de entorno del proveedor
2. Vault de secretos remoto (best-effort)
3. Keys de último recurso inyectadas por configuración, validadas con una
   petición autenticada liviana antes de aceptarlas

Si nada funciona retorna None ("sin credencial"): el llamador debe seguir
con el pipeline de respaldo, nunca fallar.
"""

import logging
import os
from typing import Optional

import requests

from config import PROVIDERS, RETRY_CONFIG
from utils.api_key_manager import APIKeyManager, mask_key
from utils.storage import SupabaseClient

logger = logging.getLogger(__name__)


class CredentialResolver:
    """
    Resuelve la API key de un proveedor a través de la cadena env -> vault -> último recurso.
    """

    def __init__(
        self,
        vault: Optional[SupabaseClient] = None,
        key_manager: Optional[APIKeyManager] = None,
        use_vault: bool = True,
    ):
        """
        Args:
            vault: Cliente del vault (por defecto SupabaseClient.from_env())
            key_manager: Gestor de keys de último recurso (por defecto APIKeyManager())
            use_vault: Si False, se omite el nivel del vault
        """
        self.vault = vault if vault is not None or not use_vault else SupabaseClient.from_env()
        # Compartido entre búsquedas concurrentes
        self.key_manager = key_manager if key_manager is not None else APIKeyManager()

    def resolve(self, provider: str) -> Optional[str]:
        """
        Args:
            provider: Nombre del proveedor ("gemini", "openrouter")

        Returns:
            API key o None si no hay credencial utilizable
        """
        provider_config = PROVIDERS.get(provider)
        if provider_config is None:
            logger.error(f"❌ Proveedor desconocido: {provider}")
            return None

        for env_var in provider_config["env_vars"]:
            value = os.environ.get(env_var, "").strip()
            if value:
                logger.info(f"✅ Credencial de {provider} obtenida de variable de entorno {env_var}")
                return value

        if self.vault is not None:
            try:
                secret = self.vault.get_secret(provider_config["vault_secret"])
            except Exception as e:
                logger.warning(f"⚠️ Vault no disponible para {provider}: {e}")
                secret = None
            if secret:
                logger.info(f"✅ Credencial de {provider} obtenida del vault")
                return secret.strip()

        for api_key in self.key_manager.get_candidate_keys(provider):
            if self.probe_key(provider, api_key):
                self.key_manager.record_probe(api_key, success=True)
                logger.info(f"✅ Credencial de {provider} de último recurso validada ({mask_key(api_key)})")
                return api_key
            self.key_manager.record_probe(api_key, success=False)
            self.key_manager.mark_key_rejected(api_key)

        logger.warning(f"⚠️ Sin credencial utilizable para {provider}")
        return None

    def probe_key(self, provider: str, api_key: str) -> bool:
        """
        Valida una key con una petición autenticada liviana (listado de modelos).
        """
        provider_config = PROVIDERS[provider]
        try:
            if provider == "gemini":
                response = requests.get(
                    provider_config["probe_url"],
                    params={"key": api_key},
                    timeout=RETRY_CONFIG["probe_timeout"],
                )
            else:
                response = requests.get(
                    provider_config["probe_url"],
                    headers={"Authorization": f"Bearer {api_key}"},
                    timeout=RETRY_CONFIG["probe_timeout"],
                )
        except requests.RequestException as e:
            logger.warning(f"⚠️ No se pudo validar la key {mask_key(api_key)} de {provider}: {e}")
            return False
        return 200 <= response.status_code < 300
