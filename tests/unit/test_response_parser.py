"""Tests for the staged LLM response parser."""

import json

from llm.response_parser import (
    STRATEGY_BALANCED,
    STRATEGY_DIRECT,
    STRATEGY_FENCED,
    STRATEGY_REGEX,
    STRATEGY_SYNTHETIC,
    normalize_record,
    parse,
    parse_step1_list,
    parse_with_strategy,
    split_concatenated,
)
from tests.conftest import load_fixture


# ---------------------------------------------------------------------------
# Strategy cascade
# ---------------------------------------------------------------------------
class TestParseStrategies:
    def test_plain_array(self) -> None:
        records, strategy = parse_with_strategy(load_fixture("step2_three_records.json"))
        assert strategy == STRATEGY_DIRECT
        assert [r["title"] for r in records] == [
            "Semilla Inicia 2026",
            "Startup Ciencia 2026",
            "Capital Semilla Emprende",
        ]

    def test_fenced_block_with_trailing_commas(self) -> None:
        records, strategy = parse_with_strategy(load_fixture("step2_fenced_trailing_comma.txt"))
        assert strategy == STRATEGY_FENCED
        assert len(records) == 2
        assert records[1]["organization"] == "ANID"

    def test_fenced_and_plain_yield_same_records(self) -> None:
        plain = parse(load_fixture("step2_three_records.json"))[:2]
        fenced = parse(load_fixture("step2_fenced_trailing_comma.txt"))
        for expected, actual in zip(plain, fenced):
            for field in ("title", "organization", "amount", "deadline", "source_url", "data_verification"):
                assert actual[field] == expected[field]

    def test_unlabelled_fence(self) -> None:
        text = '```\n{"convocatorias": [{"title": "Fondo A", "organization": "FIA"}]}\n```'
        records, strategy = parse_with_strategy(text)
        assert strategy == STRATEGY_FENCED
        assert records[0]["organization"] == "FIA"

    def test_direct_object_in_prose(self) -> None:
        text = 'Resultado final {"convocatorias": [{"nombre": "Fondo B", "institucion": "ANID"}]} gracias'
        records, strategy = parse_with_strategy(text)
        assert strategy == STRATEGY_DIRECT
        assert records[0]["title"] == "Fondo B"
        assert records[0]["organization"] == "ANID"

    def test_balanced_scan_single_object(self) -> None:
        text = 'El detalle es {"title": "Fondo C", "organization": "CORFO"} y nada más'
        records, strategy = parse_with_strategy(text)
        assert strategy == STRATEGY_BALANCED
        assert records[0]["title"] == "Fondo C"

    def test_regex_titles_when_json_truncated(self) -> None:
        text = (
            '{"convocatorias": [{"title": "Fondo Uno", "organization": "X"}, '
            '{"title": "Fondo Dos", "organization": "Y"}, {"title": "Fondo Tres"'
        )
        records, strategy = parse_with_strategy(text)
        assert strategy == STRATEGY_REGEX
        assert [r["title"] for r in records] == ["Fondo Uno", "Fondo Dos", "Fondo Tres"]

    def test_regex_titles_capped_at_three(self) -> None:
        text = "\n".join(f"Título: Fondo {i}" for i in range(6))
        records, strategy = parse_with_strategy(text)
        assert strategy == STRATEGY_REGEX
        assert len(records) == 3

    def test_synthetic_when_nothing_recoverable(self) -> None:
        records, strategy = parse_with_strategy("Lo siento, no puedo ayudar con eso.", "fondos agrícolas")
        assert strategy == STRATEGY_SYNTHETIC
        assert len(records) == 1
        assert records[0]["extraction_method"] == "synthetic"
        assert "fondos agrícolas" in records[0]["title"]

    def test_none_input_never_raises(self) -> None:
        records, strategy = parse_with_strategy(None)
        assert strategy == STRATEGY_SYNTHETIC
        assert len(records) == 1


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------
class TestNormalizeRecord:
    def test_aliases_mapped_to_canonical_names(self) -> None:
        record = normalize_record(
            {
                "nombre_concurso": "Fondecyt Regular",
                "institucion": "ANID",
                "fecha_cierre": "2030-05-01",
                "monto_financiamiento": "Hasta 200 millones",
                "fuente": "https://anid.cl/concursos/fondecyt-regular",
                "area": "Investigación",
                "requisitos": ["Doctorado", "Patrocinio institucional"],
            }
        )
        assert record["title"] == "Fondecyt Regular"
        assert record["organization"] == "ANID"
        assert record["deadline"] == "2030-05-01"
        assert record["amount"] == "Hasta 200 millones"
        assert record["source_url"] == "https://anid.cl/concursos/fondecyt-regular"
        assert record["category"] == "Investigación"
        assert record["requirements"] == "Doctorado; Patrocinio institucional"
        assert record["extraction_method"] == "ai"

    def test_description_truncated_to_300(self) -> None:
        record = normalize_record({"title": "A", "description": "x" * 400})
        assert len(record["description"]) == 303
        assert record["description"].endswith("...")

    def test_requirements_truncated_to_500(self) -> None:
        record = normalize_record({"title": "A", "requirements": "y" * 600})
        assert len(record["requirements"]) == 503

    def test_tags_from_comma_string(self) -> None:
        record = normalize_record({"title": "A", "tags": "innovación, pymes; energía"})
        assert record["tags"] == ["innovación", "pymes", "energía"]

    def test_empty_values_skipped(self) -> None:
        record = normalize_record({"title": "A", "description": "", "amount": None})
        assert "description" not in record
        assert "amount" not in record

    def test_keeps_extraction_method(self) -> None:
        assert normalize_record({"title": "A", "extraction_method": "rule_based"})["extraction_method"] == "rule_based"


class TestSplitConcatenated:
    def test_embedded_records_extracted(self) -> None:
        embedded = json.dumps({"title": "Fondo Oculto", "organization": "FIA"}, ensure_ascii=False)
        item = {"title": "Fondo Principal", "description": f"Descripción real {embedded}"}
        pieces = split_concatenated(item)
        assert len(pieces) == 2
        assert pieces[0]["description"] == "Descripción real"
        assert pieces[1]["title"] == "Fondo Oculto"

    def test_plain_description_untouched(self) -> None:
        item = {"title": "A", "description": "Texto con {llaves} sueltas"}
        assert split_concatenated(item) == [item]

    def test_parse_splits_concatenated_records(self) -> None:
        inner = '{\\"title\\": \\"Fondo Dos\\", \\"organization\\": \\"CORFO\\"}'
        text = '[{"title": "Fondo Uno", "description": "Primero ' + inner + '"}]'
        records = parse(text)
        assert [r["title"] for r in records] == ["Fondo Uno", "Fondo Dos"]


# ---------------------------------------------------------------------------
# Step 1 list
# ---------------------------------------------------------------------------
class TestStep1List:
    def test_bullets_split_into_title_and_organization(self) -> None:
        records = parse_step1_list(load_fixture("step1_list.txt"))
        assert [(r["title"], r.get("organization")) for r in records] == [
            ("Semilla Inicia 2026", "CORFO"),
            ("Startup Ciencia", "ANID"),
            ("Capital Semilla Emprende", "SERCOTEC"),
        ]
        assert all(r["extraction_method"] == "step1_list" for r in records)

    def test_numbered_and_markdown_lines(self) -> None:
        text = "1. **Fondo Verde** - Ministerio del Medio Ambiente\n2) Fondo Azul\nTexto suelto"
        records = parse_step1_list(text)
        assert records[0]["title"] == "Fondo Verde"
        assert records[0]["organization"] == "Ministerio del Medio Ambiente"
        assert records[1]["title"] == "Fondo Azul"
        assert "organization" not in records[1]

    def test_max_items(self) -> None:
        text = "\n".join(f"- Fondo {i} - ORG" for i in range(10))
        assert len(parse_step1_list(text)) == 6
        assert len(parse_step1_list(text, max_items=2)) == 2

    def test_empty_input(self) -> None:
        assert parse_step1_list(None) == []
