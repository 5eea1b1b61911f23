"""Tests for the tolerant JSON repair passes."""

import json

import pytest

from utils.json_repair import (
    REPAIR_PASSES,
    collapse_newlines_in_strings,
    extract_balanced_span,
    loads_tolerant,
    normalize_single_quotes,
    quote_unquoted_keys,
    repair_json,
    strip_control_chars,
    strip_trailing_commas,
)

MESSY_SAMPLES = [
    '{"convocatorias": [{"title": "A",},]}',
    "{'title': 'Fondo Semilla', 'organization': 'CORFO'}",
    '{title: "Startup Ciencia", organization: "ANID"}',
    '{"description": "línea uno\nlínea dos"}',
    '{"title": "Capital\x07 Semilla"}',
    '[{"title": "Uno"}, {"title": "Dos",},,]',
    '{"title": "Tiene, coma] dentro", "tags": ["a", "b",]}',
]


class TestIndividualPasses:
    def test_strip_control_chars_keeps_newlines(self) -> None:
        assert strip_control_chars('{"a":\x00 "b\x1f"}\n') == '{"a": "b"}\n'

    def test_single_quotes_become_double(self) -> None:
        fixed = normalize_single_quotes("{'title': 'Fondo'}")
        assert json.loads(fixed) == {"title": "Fondo"}

    def test_apostrophe_inside_double_quoted_string_untouched(self) -> None:
        text = '{"title": "L\'Oréal Innovation"}'
        assert normalize_single_quotes(text) == text

    def test_unclosed_single_quote_left_alone(self) -> None:
        text = "{'title: 1}"
        assert normalize_single_quotes(text) == text

    def test_newlines_collapsed_only_inside_strings(self) -> None:
        text = '{\n  "description": "uno\n   dos"\n}'
        fixed = collapse_newlines_in_strings(text)
        assert json.loads(fixed) == {"description": "uno dos"}
        assert fixed.startswith("{\n")

    def test_unquoted_keys_quoted(self) -> None:
        fixed = quote_unquoted_keys('{title: "A", fecha_cierre: "2030-01-01"}')
        assert json.loads(fixed) == {"title": "A", "fecha_cierre": "2030-01-01"}

    def test_unquoted_key_pattern_ignores_string_content(self) -> None:
        text = '{"note": "{clave: valor}"}'
        assert quote_unquoted_keys(text) == text

    def test_trailing_commas_removed(self) -> None:
        assert json.loads(strip_trailing_commas('{"a": [1, 2,], "b": 3,}')) == {"a": [1, 2], "b": 3}

    def test_repeated_trailing_commas_removed(self) -> None:
        assert json.loads(strip_trailing_commas("[1, 2,,]")) == [1, 2]

    def test_comma_inside_string_preserved(self) -> None:
        text = '{"a": "x,]"}'
        assert strip_trailing_commas(text) == text


class TestRepairIdempotence:
    @pytest.mark.parametrize("sample", MESSY_SAMPLES)
    def test_repair_twice_equals_once(self, sample: str) -> None:
        once = repair_json(sample)
        assert repair_json(once) == once

    @pytest.mark.parametrize("repair_pass", REPAIR_PASSES)
    @pytest.mark.parametrize("sample", MESSY_SAMPLES)
    def test_each_pass_idempotent(self, repair_pass, sample: str) -> None:
        once = repair_pass(sample)
        assert repair_pass(once) == once

    def test_valid_json_unchanged(self) -> None:
        text = '{"title": "Semilla Inicia", "tags": ["a", "b"]}'
        assert repair_json(text) == text


class TestBalancedSpan:
    def test_finds_object_inside_prose(self) -> None:
        text = 'Resultado: {"a": {"b": [1, 2]}} fin'
        assert extract_balanced_span(text) == '{"a": {"b": [1, 2]}}'

    def test_braces_inside_strings_ignored(self) -> None:
        text = 'x {"a": "}{\\"", "b": 1} y'
        assert extract_balanced_span(text) == '{"a": "}{\\"", "b": 1}'

    def test_truncated_returns_none(self) -> None:
        assert extract_balanced_span('{"convocatorias": [{"title": "A"') is None

    def test_no_structure_returns_none(self) -> None:
        assert extract_balanced_span("sin json") is None

    def test_explicit_start(self) -> None:
        text = '{"a": 1} {"b": 2}'
        assert extract_balanced_span(text, text.rfind("{")) == '{"b": 2}'


class TestLoadsTolerant:
    def test_repairs_when_needed(self) -> None:
        assert loads_tolerant("{title: 'A',}") == {"title": "A"}

    def test_raises_on_unrecoverable(self) -> None:
        with pytest.raises(ValueError):
            loads_tolerant('{"title": "A"')
