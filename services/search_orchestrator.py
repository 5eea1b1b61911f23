"""
Orquestador de la cadena de respaldo de una búsqueda

Máquina de estados explícita por búsqueda:

    PROMPT1 --ok--> PROMPT2 --ok--> VALIDATE --(>0)--> DONE
       |              |  (falla: siguiente modelo del paso 2, mismo estado)
       |              +--sin más modelos--> STEP1_AS_FINAL --> DONE
       +--falla--> RULE_BASED --> DONE
    SINGLE_STEP --ok--> VALIDATE ;  --falla--> RULE_BASED
    VALIDATE --(0 validados)--> RULE_BASED

El orquestador no guarda estado entre búsquedas: todo vive en el contexto
de cada ejecución.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from config import SEARCH_FLOWS, DEFAULT_SEARCH_FLOW
from llm.model_invoker import ModelInvoker
from llm.prompts import build_prompt, STEP_LIST, STEP_DETAIL, STEP_SINGLE
from llm.response_parser import parse_with_strategy, parse_step1_list
from models import Convocatoria, GeographicScope, SearchOutcome, SearchRequest
from utils.credential_resolver import CredentialResolver
from utils.extractors import RuleBasedExtractor, search_url_for, synthetic_record
from utils.fabrication_validator import FabricationValidator, Rejection, validation_summary
from utils.location_detector import detect_scope

logger = logging.getLogger(__name__)


class SearchState(str, Enum):
    PROMPT1 = "prompt1"
    PROMPT2 = "prompt2"
    SINGLE_STEP = "single_step"
    VALIDATE = "validate"
    STEP1_AS_FINAL = "step1_as_final"
    RULE_BASED = "rule_based"
    DONE = "done"


METHOD_STEP1_FALLBACK = "step1_fallback"
METHOD_RULE_BASED = "rule_based_fallback"


class SearchContext:
    """Estado mutable de UNA búsqueda (no se comparte entre búsquedas)."""

    def __init__(self, request: SearchRequest, flow_name: str, flow: Dict[str, Any], scope: GeographicScope):
        self.request = request
        self.flow_name = flow_name
        self.flow = flow
        self.scope = scope
        self.api_key: Optional[str] = None
        self.step1_text: Optional[str] = None
        self.raw_texts: List[str] = []
        self.step2_index = 0
        self.candidates: List[Dict[str, Any]] = []
        self.records: List[Convocatoria] = []
        self.rejected: List[Rejection] = []
        self.candidate_count = 0
        self.method: Optional[str] = None
        self.models_used: List[str] = []
        self.step1_model: Optional[str] = None
        self.step2_model: Optional[str] = None
        self.fallback_used = False
        self.states: List[str] = []

    @property
    def query(self) -> str:
        return self.request.search_query


class SearchOrchestrator:
    """
    Coordina el flujo de una búsqueda y sus respaldos hasta producir registros validados.
    """

    def __init__(
        self,
        invoker: Optional[ModelInvoker] = None,
        credential_resolver: Optional[CredentialResolver] = None,
        validator: Optional[FabricationValidator] = None,
        rule_extractor: Optional[RuleBasedExtractor] = None,
        flows: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        self.invoker = invoker or ModelInvoker()
        self.credential_resolver = credential_resolver or CredentialResolver()
        self.validator = validator or FabricationValidator()
        self.rule_extractor = rule_extractor or RuleBasedExtractor()
        self.flows = flows or SEARCH_FLOWS
        self._handlers: Dict[SearchState, Callable[[SearchContext], SearchState]] = {
            SearchState.PROMPT1: self._prompt1,
            SearchState.PROMPT2: self._prompt2,
            SearchState.SINGLE_STEP: self._single_step,
            SearchState.VALIDATE: self._validate,
            SearchState.STEP1_AS_FINAL: self._step1_as_final,
            SearchState.RULE_BASED: self._rule_based,
        }

    def initial_state(self, context: SearchContext) -> SearchState:
        """Estado inicial: sin credencial se va directo a reglas (sin llamadas de red)."""
        provider = context.flow["provider"]
        context.api_key = self.credential_resolver.resolve(provider)
        if not context.api_key:
            logger.warning(f"🔄 Sin credencial para {provider}: se usa extracción por reglas")
            return SearchState.RULE_BASED
        return SearchState.PROMPT1 if "step1_model" in context.flow else SearchState.SINGLE_STEP

    def run(self, request: SearchRequest, scope: Optional[GeographicScope] = None) -> SearchOutcome:
        """
        Ejecuta la máquina de estados para una búsqueda.

        Args:
            request: Consulta validada
            scope: Alcance geográfico ya detectado (si no se entrega, se detecta aquí)

        Returns:
            SearchOutcome con los registros validados y la información del proceso
        """
        flow_name = request.flow or DEFAULT_SEARCH_FLOW
        flow = self.flows[flow_name]
        if scope is None:
            scope = detect_scope(request.search_query, request.search_parameters)
        context = SearchContext(request, flow_name, flow, scope)

        state = self.initial_state(context)
        while state != SearchState.DONE:
            context.states.append(state.value)
            next_state = self._handlers[state](context)
            logger.info(f"Transición {state.value} -> {next_state.value}")
            state = next_state
        context.states.append(SearchState.DONE.value)

        return SearchOutcome(
            records=context.records,
            method=context.method or METHOD_RULE_BASED,
            models_used=context.models_used,
            step1_model=context.step1_model,
            step2_model=context.step2_model,
            fallback_used=context.fallback_used,
            detected_location=scope.location_id,
            states=context.states,
            validation_summary=validation_summary(context.candidate_count, context.rejected),
        )

    # Transiciones

    def _call(self, context: SearchContext, model_id: str, step: str) -> Optional[str]:
        prompt = build_prompt(
            context.query,
            context.request.search_parameters,
            context.scope,
            step,
            step1_output=context.step1_text,
        )
        text = self.invoker.invoke(model_id, prompt, context.api_key)
        if text:
            context.raw_texts.append(text)
            context.models_used.append(model_id)
        return text

    def _prompt1(self, context: SearchContext) -> SearchState:
        model_id = context.flow["step1_model"]
        text = self._call(context, model_id, STEP_LIST)
        if not text:
            logger.warning(f"❌ Paso 1 falló con {model_id}")
            return SearchState.RULE_BASED
        context.step1_text = text
        context.step1_model = model_id
        return SearchState.PROMPT2

    def _prompt2(self, context: SearchContext) -> SearchState:
        models = context.flow["step2_models"]
        model_id = models[context.step2_index]
        text = self._call(context, model_id, STEP_DETAIL)
        if text:
            context.candidates, _ = parse_with_strategy(text, context.query)
            context.step2_model = model_id
            context.method = context.flow["method"]
            if context.step2_index > 0:
                context.fallback_used = True
            return SearchState.VALIDATE

        context.step2_index += 1
        if context.step2_index < len(models):
            logger.warning(f"🔄 Paso 2 falló con {model_id}, probando {models[context.step2_index]}")
            return SearchState.PROMPT2
        logger.warning("🔄 Todos los modelos del paso 2 fallaron, se usa la lista del paso 1")
        return SearchState.STEP1_AS_FINAL

    def _single_step(self, context: SearchContext) -> SearchState:
        model_id = context.flow["model"]
        text = self._call(context, model_id, STEP_SINGLE)
        if not text:
            logger.warning(f"❌ Flujo de un paso falló con {model_id}")
            return SearchState.RULE_BASED
        context.candidates, _ = parse_with_strategy(text, context.query)
        context.step2_model = model_id
        context.method = context.flow["method"]
        return SearchState.VALIDATE

    def _validate(self, context: SearchContext) -> SearchState:
        # Un registro sintético de "sin resultados" nunca cuenta como resultado validado
        candidates = [c for c in context.candidates if c.get("extraction_method") != "synthetic"]
        context.candidate_count += len(candidates)
        accepted, rejected = self.validator.validate_all(candidates)
        context.rejected.extend(rejected)
        if not accepted:
            logger.warning("🔄 Ningún registro pasó la validación, se usa extracción por reglas")
            return SearchState.RULE_BASED
        context.records = accepted
        logger.info(f"✅ {len(accepted)} registros validados ({len(rejected)} descartados)")
        return SearchState.DONE

    def _step1_as_final(self, context: SearchContext) -> SearchState:
        candidates = []
        for record in parse_step1_list(context.step1_text):
            record.setdefault("source_url", search_url_for(record["title"], record.get("organization", "")))
            candidates.append(record)
        context.candidate_count += len(candidates)
        accepted, rejected = self.validator.validate_all(candidates)
        context.rejected.extend(rejected)
        context.fallback_used = True
        if not accepted:
            return SearchState.RULE_BASED
        context.records = accepted
        context.method = METHOD_STEP1_FALLBACK
        return SearchState.DONE

    def _rule_based(self, context: SearchContext) -> SearchState:
        text = "\n".join(context.raw_texts) if context.raw_texts else context.query
        candidates = self.rule_extractor.extract(text, query=context.query)
        context.candidate_count += len(candidates)
        accepted, rejected = self.validator.validate_all(candidates)
        context.rejected.extend(rejected)

        if not accepted:
            context.candidate_count += 1
            accepted, rejected = self.validator.validate_all([synthetic_record(context.query)])
            context.rejected.extend(rejected)

        context.records = accepted
        context.method = METHOD_RULE_BASED
        context.fallback_used = True
        logger.info(f"Extracción por reglas terminó con {len(accepted)} registros")
        return SearchState.DONE
