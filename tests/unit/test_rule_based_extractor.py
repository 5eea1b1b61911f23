"""Tests for the deterministic rule-based extractor."""

from urllib.parse import parse_qs, urlparse

from utils.extractors import RuleBasedExtractor, search_url_for, suggest_institution, synthetic_record

SAMPLE_TEXT = """Convocatorias vigentes
Concurso Startup Ciencia 2026
ANID financia empresas de base científica
Cierre: 14/09/2030
Monto: $120.000.000

Fondo de Innovación Agraria para pequeños productores
Postulaciones hasta 2030-03-15
"""


class TestRuleBasedExtractor:
    def test_extracts_headers_with_context(self) -> None:
        records = RuleBasedExtractor().extract(SAMPLE_TEXT, query="innovación")
        assert [r["title"] for r in records] == [
            "Concurso Startup Ciencia 2026",
            "Fondo de Innovación Agraria para pequeños productores",
        ]
        first = records[0]
        assert first["organization"] == "ANID"
        assert first["deadline"] == "14/09/2030"
        assert first["amount"] == "$120.000.000"
        assert first["extraction_method"] == "rule_based"
        assert first["source_url"].startswith("https://www.google.com/search?q=")
        assert records[1]["deadline"] == "2030-03-15"

    def test_source_url_passed_through(self) -> None:
        records = RuleBasedExtractor().extract(SAMPLE_TEXT, source_url="https://anid.cl/concursos/")
        assert all(r["source_url"] == "https://anid.cl/concursos/" for r in records)

    def test_never_invents_amounts_or_dates(self) -> None:
        records = RuleBasedExtractor().extract("Llamado a concurso de proyectos culturales comunitarios")
        assert len(records) == 1
        assert "amount" not in records[0]
        assert "deadline" not in records[0]

    def test_max_results_and_duplicates(self) -> None:
        text = "\n".join(["Fondo regional de cultura 2030"] * 3 + [f"Concurso número {i} de innovación" for i in range(10)])
        records = RuleBasedExtractor(max_results=4).extract(text)
        assert len(records) == 4
        assert len({r["title"] for r in records}) == 4

    def test_no_matches(self) -> None:
        assert RuleBasedExtractor().extract("texto sin nada relevante") == []

    def test_extract_or_synthesize(self) -> None:
        records = RuleBasedExtractor().extract_or_synthesize("nada", query="becas de arte")
        assert len(records) == 1
        assert records[0]["extraction_method"] == "synthetic"


class TestHelpers:
    def test_search_url_encodes_terms(self) -> None:
        url = search_url_for("Fondo Verde", "CORFO")
        assert parse_qs(urlparse(url).query)["q"] == ["Fondo Verde CORFO"]

    def test_suggest_institution(self) -> None:
        assert suggest_institution("investigación en biología") == ("ANID", "Investigación Científica")
        assert suggest_institution("fondos agrícolas")[0] == "FIA"
        assert suggest_institution("algo genérico") == ("CORFO", "Innovación y Desarrollo")

    def test_synthetic_record_keeps_query(self) -> None:
        record = synthetic_record("fondos para startups")
        assert record["title"] == "Búsqueda de fondos para startups"
        assert record["organization"] == "Sistema de consulta"
        assert "fondos+para+startups" in record["source_url"]
