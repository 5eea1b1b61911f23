"""
Servicio de extracción de convocatorias desde contenido ya obtenido
(texto, HTML, PDF o página descargada desde una URL)

Usa un modelo rápido cuando hay credencial y el parser por reglas cuando no
la hay o el modelo falla. Los registros pasan por el mismo validador
anti-fabricación que la búsqueda.
"""

import logging
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from config import SEARCH_FLOWS, DEFAULT_SEARCH_FLOW, SEARCH_LIMITS
from llm.model_invoker import ModelInvoker, provider_for_model
from llm.prompts import build_parsing_prompt
from llm.response_parser import parse_with_strategy
from models import (
    Convocatoria,
    ParseContentRequest,
    SearchInputError,
    build_error_body,
    FIELD_SENTINELS,
)
from utils.credential_resolver import CredentialResolver
from utils.date_parser import parse_date
from utils.extractors import RuleBasedExtractor
from utils.fabrication_validator import FabricationValidator, validation_summary
from utils.html_sanitizer import preprocess_content
from utils.storage import SearchStore, default_store

logger = logging.getLogger(__name__)

RULE_BASED_PARSER = "rule_based_parser"
VALID_COMPLETENESS = 0.6


def completeness_score(record: Convocatoria, now: Optional[datetime] = None) -> float:
    """
    Puntaje de completitud en [0, 1]: nombre 0.3, institución 0.2,
    fecha de cierre futura 0.3, descripción 0.2.
    """
    score = 0.0
    if record.title:
        score += 0.3
    if record.organization:
        score += 0.2
    if record.deadline != FIELD_SENTINELS["deadline"]:
        deadline = parse_date(record.deadline)
        if deadline is not None and deadline.replace(tzinfo=None) > (now or datetime.now()):
            score += 0.3
    if record.description != FIELD_SENTINELS["description"]:
        score += 0.2
    return round(score, 2)


class ContentParsingService:
    """
    Extrae convocatorias de un contenido entregado por el llamador.
    """

    def __init__(
        self,
        invoker: Optional[ModelInvoker] = None,
        credential_resolver: Optional[CredentialResolver] = None,
        validator: Optional[FabricationValidator] = None,
        rule_extractor: Optional[RuleBasedExtractor] = None,
        store: Optional[SearchStore] = None,
        model_id: Optional[str] = None,
    ):
        self.invoker = invoker or ModelInvoker()
        self.credential_resolver = credential_resolver or CredentialResolver()
        self.validator = validator or FabricationValidator()
        self.rule_extractor = rule_extractor or RuleBasedExtractor()
        self.store = store if store is not None else default_store()
        # Modelo rápido del flujo por defecto
        self.model_id = model_id or SEARCH_FLOWS[DEFAULT_SEARCH_FLOW]["step1_model"]

    def _extract_with_model(self, content: str, content_type: str) -> List[Dict[str, Any]]:
        provider = provider_for_model(self.model_id)
        api_key = self.credential_resolver.resolve(provider)
        if not api_key:
            return []
        text = self.invoker.invoke(self.model_id, build_parsing_prompt(content, content_type), api_key)
        if not text:
            return []
        candidates, _ = parse_with_strategy(text)
        return [c for c in candidates if c.get("extraction_method") != "synthetic"]

    def parse_content(self, payload: Any) -> Dict[str, Any]:
        """
        Extrae convocatorias del contenido.

        Args:
            payload: {content, content_type?, source_url?, validate_output?, include_metadata?}

        Returns:
            {parse_id, convocatorias, parsing_info}

        Raises:
            SearchInputError: Si el contenido falta o es demasiado largo
        """
        request = ParseContentRequest.from_payload(payload)
        started_at = time.perf_counter()
        parse_id = str(uuid.uuid4())

        content = preprocess_content(request.content, request.content_type)
        logger.info(f"Parseo {parse_id}: {len(request.content)} -> {len(content)} caracteres ({request.content_type})")

        candidates = self._extract_with_model(content, request.content_type)
        model_used = self.model_id
        if not candidates:
            logger.warning("🔄 Sin resultados del modelo, se usa el parser por reglas")
            candidates = self.rule_extractor.extract(content, source_url=request.source_url)
            model_used = RULE_BASED_PARSER

        if request.source_url:
            for candidate in candidates:
                candidate.setdefault("source_url", request.source_url)

        accepted, rejected = self.validator.validate_all(candidates)

        convocatorias = []
        for record in accepted:
            item = record.model_dump()
            if request.validate_output:
                score = completeness_score(record)
                item["validation"] = {"completeness_score": score, "is_valid": score >= VALID_COMPLETENESS}
            if request.include_metadata:
                item["metadata"] = {
                    "parse_id": parse_id,
                    "content_type": request.content_type,
                    "extraction_method": record.extraction_method,
                }
            convocatorias.append(item)

        processing_time_ms = int((time.perf_counter() - started_at) * 1000)
        parsing_info = {
            "total_found": len(convocatorias),
            "content_type": request.content_type,
            "source_url": request.source_url,
            "processing_time_ms": processing_time_ms,
            "ai_model_used": model_used,
            "validation_performed": request.validate_output,
            "validation_summary": validation_summary(len(candidates), rejected),
        }

        history = {
            "id": parse_id,
            "content_type": request.content_type,
            "source_url": request.source_url,
            "content_length": len(request.content),
            "results_count": len(convocatorias),
            "ai_model_used": model_used,
            "processing_time_ms": processing_time_ms,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            if not self.store.insert_parsing_history(history):
                logger.warning("⚠️ No se pudo guardar el historial de parseo")
        except Exception as e:
            logger.warning(f"⚠️ Error de persistencia del historial de parseo: {e}")

        return {"parse_id": parse_id, "convocatorias": convocatorias, "parsing_info": parsing_info}

    def handle_parse(self, payload: Any) -> Tuple[int, Dict[str, Any]]:
        """
        Igual que parse_content() pero nunca lanza excepciones.

        Returns:
            Tupla (código HTTP, cuerpo)
        """
        try:
            return 200, self.parse_content(payload)
        except SearchInputError as e:
            logger.warning(f"⚠️ Entrada inválida ({e.code}): {e.message}")
            return 400, build_error_body(e.code, e.message, "input_error")
        except Exception as e:
            logger.error(f"❌ Error inesperado en el parseo: {type(e).__name__}: {e}")
            logger.error(f"   Traceback completo:\n{traceback.format_exc()}")
            return 500, build_error_body(
                "PARSING_ERROR",
                f"{type(e).__name__}: {e}",
                "internal_error",
                SEARCH_LIMITS["error_message_max_length"],
            )
