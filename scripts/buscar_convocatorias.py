# Uso: python -m scripts.buscar_convocatorias "fondos para startups" --max-results 3

import argparse
import json
import logging
import sys

from config import SEARCH_FLOWS, DEFAULT_SEARCH_FLOW, SEARCH_LIMITS
from services import SearchService
from utils.api_key_manager import APIKeyManager


def _parse_filters(items):
    filters = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"Filtro inválido '{item}', se espera clave=valor")
        filters[key.strip()] = value.strip()
    return filters


def main(argv=None):
    parser = argparse.ArgumentParser(description="Busca convocatorias de financiamiento con IA")
    parser.add_argument("query", nargs="?", help="Texto de búsqueda")
    parser.add_argument("--flow", choices=sorted(SEARCH_FLOWS), default=DEFAULT_SEARCH_FLOW)
    parser.add_argument("--max-results", type=int, default=SEARCH_LIMITS["default_max_results"])
    parser.add_argument("--filtro", action="append", metavar="CLAVE=VALOR", help="Filtro adicional (repetible)")
    parser.add_argument("--sin-metadata", action="store_true", help="Omite los metadatos de cada resultado")
    parser.add_argument("--agregar-key", nargs=2, metavar=("PROVEEDOR", "KEY"), help="Guarda una API key de último recurso")
    parser.add_argument("--estado-keys", action="store_true", help="Muestra el estado de las API keys guardadas")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logger = logging.getLogger("buscar_convocatorias")

    if args.agregar_key:
        provider, key = args.agregar_key
        if not APIKeyManager().add_key(provider, key):
            logger.error(f"No se pudo guardar la key para {provider}")
            return 1
        logger.info(f"Key guardada para {provider}")
        return 0

    if args.estado_keys:
        print(json.dumps(APIKeyManager().get_status(), ensure_ascii=False, indent=2))
        return 0

    if not args.query:
        parser.error("falta el texto de búsqueda")

    try:
        filters = _parse_filters(args.filtro)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    payload = {
        "search_query": args.query,
        "search_parameters": filters,
        "max_results": args.max_results,
        "include_metadata": not args.sin_metadata,
        "flow": args.flow,
    }
    logger.info(f"Iniciando búsqueda: '{args.query}' (flujo {args.flow})")
    status, body = SearchService().handle_search(payload)
    print(json.dumps(body, ensure_ascii=False, indent=2))
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
