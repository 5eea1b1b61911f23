"""
Clase base abstracta para extractores de convocatorias sin LLM.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional


class BaseExtractor(ABC):
    """
    Clase base para extractores determinísticos.

    Cada extractor convierte texto libre en registros candidatos con los
    nombres de campo canónicos (title, organization, source_url, ...).
    """

    @abstractmethod
    def extract(
        self,
        text: str,
        query: str = "",
        source_url: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Extrae registros candidatos.

        Args:
            text: Texto a analizar
            query: Consulta original (para trazabilidad)
            source_url: URL de la fuente si se conoce

        Returns:
            Lista de diccionarios con campos canónicos:
            [
                {
                    "title": "Nombre de la convocatoria",
                    "organization": "Organismo",
                    "source_url": "URL",
                    "extraction_method": "rule_based",
                    ...
                },
                ...
            ]
        """
        pass
