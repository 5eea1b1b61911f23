"""
Gestor de API keys de último recurso, por proveedor

Las keys se inyectan por configuración (archivo JSON, por defecto
data/.api_keys.json o la ruta en CONVOCATORIAS_KEYS_FILE), nunca en el código.
Una key que falla la validación se marca como rechazada y no se vuelve a
probar hasta que pase su tiempo de espera.

Una misma instancia se comparte entre búsquedas concurrentes (hilos del
servidor): todo cambio de estado y toda escritura del archivo ocurre bajo
un lock, y el archivo se reemplaza de forma atómica.
"""

import json
import os
import logging
import tempfile
import threading
from typing import List, Optional, Dict, Any
from datetime import datetime, timedelta

from config import DEFAULT_KEYS_FILE, KEYS_FILE_ENV

logger = logging.getLogger(__name__)


def mask_key(api_key: Optional[str]) -> Optional[str]:
    """Prefijo de 8 caracteres para logs (nunca se registra la key completa)."""
    if not api_key:
        return None
    return api_key[:8] + "..."


class APIKeyManager:
    """Gestiona las keys de último recurso de cada proveedor"""

    def __init__(self, keys_file: Optional[str] = None):
        """
        Inicializa el gestor de API keys

        Args:
            keys_file: Ruta al archivo JSON con las API keys
                (por defecto: CONVOCATORIAS_KEYS_FILE o data/.api_keys.json)
        """
        self.keys_file = keys_file or os.environ.get(KEYS_FILE_ENV) or DEFAULT_KEYS_FILE
        # provider -> [keys]
        self.api_keys: Dict[str, List[str]] = {}
        # key -> {rejected_at, retry_after}
        self.rejected_keys: Dict[str, Dict[str, Any]] = {}
        # key -> {"probes": int, "failed": int, "last_used": str}
        self.key_stats: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.RLock()
        self.load_keys()

    def load_keys(self) -> None:
        """Carga las API keys desde el archivo"""
        if not os.path.exists(self.keys_file):
            logger.debug(f"Archivo de API keys de último recurso no encontrado: {self.keys_file}")
            return
        try:
            with open(self.keys_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error al cargar API keys: {e}")
            return

        if not isinstance(data, dict):
            logger.error(f"Archivo de API keys inválido (se esperaba un objeto JSON): {self.keys_file}")
            return

        providers = data.get("providers")
        rejected_keys = data.get("rejected_keys")
        key_stats = data.get("key_stats")
        with self._lock:
            self.api_keys = {
                provider: [k for k in keys if isinstance(k, str) and k.strip()]
                for provider, keys in (providers.items() if isinstance(providers, dict) else [])
                if isinstance(keys, list)
            }
            self.rejected_keys = {
                k: v for k, v in (rejected_keys.items() if isinstance(rejected_keys, dict) else []) if isinstance(v, dict)
            }
            self.key_stats = {
                k: v for k, v in (key_stats.items() if isinstance(key_stats, dict) else []) if isinstance(v, dict)
            }
            total = sum(len(keys) for keys in self.api_keys.values())
        logger.info(f"Cargadas {total} API keys de último recurso desde {self.keys_file}")

    def save_keys(self) -> bool:
        """Guarda las API keys en el archivo (reemplazo atómico, permisos 0600)"""
        temp_path = None
        try:
            with self._lock:
                content = json.dumps(
                    {
                        "providers": self.api_keys,
                        "rejected_keys": self.rejected_keys,
                        "key_stats": self.key_stats,
                        "last_updated": datetime.now().isoformat()
                    },
                    indent=2,
                )
                directory = os.path.dirname(self.keys_file) or "."
                os.makedirs(directory, exist_ok=True)
                fd, temp_path = tempfile.mkstemp(prefix=".api_keys.", suffix=".tmp", dir=directory)
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                # Permisos restrictivos antes de publicar el archivo
                os.chmod(temp_path, 0o600)
                os.replace(temp_path, self.keys_file)
                temp_path = None
            return True
        except (OSError, TypeError, ValueError, RuntimeError) as e:
            logger.error(f"Error al guardar API keys: {e}")
            return False
        finally:
            if temp_path is not None:
                try:
                    os.remove(temp_path)
                except OSError as e:
                    logger.debug(f"No se pudo borrar el archivo temporal {temp_path}: {e}")

    def add_key(self, provider: str, api_key: str) -> bool:
        """
        Agrega una key de último recurso para un proveedor

        Args:
            provider: Nombre del proveedor ("gemini", "openrouter")
            api_key: API key a agregar

        Returns:
            True si se agregó correctamente
        """
        if not api_key or not api_key.strip():
            return False

        api_key = api_key.strip()
        with self._lock:
            keys = self.api_keys.setdefault(provider, [])
            if api_key in keys:
                logger.warning(f"API key ya existe para {provider}")
                return False
            keys.append(api_key)
            total = len(keys)
            self.save_keys()
        logger.info(f"API key agregada para {provider} (total: {total})")
        return True

    def remove_key(self, provider: str, api_key: str) -> bool:
        """Elimina una key de un proveedor"""
        with self._lock:
            keys = self.api_keys.get(provider, [])
            if api_key not in keys:
                return False
            keys.remove(api_key)
            self.rejected_keys.pop(api_key, None)
            self.key_stats.pop(api_key, None)
            total = len(keys)
            self.save_keys()
        logger.info(f"API key eliminada de {provider} (total: {total})")
        return True

    def get_candidate_keys(self, provider: str) -> List[str]:
        """
        Keys del proveedor que pueden probarse (no rechazadas o con espera cumplida)

        Args:
            provider: Nombre del proveedor

        Returns:
            Lista de keys en el orden configurado
        """
        with self._lock:
            return [k for k in self.api_keys.get(provider, []) if self._can_retry_key(k)]

    def mark_key_rejected(self, api_key: str, retry_after_seconds: int = 3600) -> None:
        """
        Marca una key como rechazada por la validación

        Args:
            api_key: Key que falló la validación
            retry_after_seconds: Segundos antes de volver a probarla
        """
        with self._lock:
            self.rejected_keys[api_key] = {
                "rejected_at": datetime.now().isoformat(),
                "retry_after": (datetime.now() + timedelta(seconds=retry_after_seconds)).isoformat()
            }
            self.save_keys()
        logger.warning(f"API key {mask_key(api_key)} rechazada. Se volverá a probar en {retry_after_seconds // 60} minutos")

    def record_probe(self, api_key: str, success: bool) -> None:
        """
        Registra el resultado de una validación de key.

        Solo en memoria: las estadísticas se escriben junto con el siguiente
        cambio persistido (ej: mark_key_rejected), no en cada validación exitosa.
        """
        with self._lock:
            stats = self.key_stats.setdefault(api_key, {"probes": 0, "failed": 0, "last_used": None})
            stats["probes"] += 1
            if not success:
                stats["failed"] += 1
            stats["last_used"] = datetime.now().isoformat()

    def _can_retry_key(self, api_key: str) -> bool:
        """Verifica si una key rechazada puede volver a probarse"""
        info = self.rejected_keys.get(api_key)
        if not info or not info.get("retry_after"):
            return True
        try:
            return datetime.now() >= datetime.fromisoformat(info["retry_after"])
        except (TypeError, ValueError):
            return True

    def get_status(self) -> Dict[str, Any]:
        """
        Estado del gestor (sin exponer keys completas)
        """
        with self._lock:
            return {
                provider: {
                    "total_keys": len(keys),
                    "available_keys": len(self.get_candidate_keys(provider)),
                    "keys": [mask_key(k) for k in keys],
                }
                for provider, keys in self.api_keys.items()
            }
