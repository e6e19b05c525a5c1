"""
Text Similarity Tests
=====================
Edit distance, normalized similarity and template matching.
"""

from __future__ import annotations

import pytest

from context_engine.services.text_similarity import (
    is_message_match,
    levenshtein_distance,
    normalize_message,
    similarity,
)


class TestLevenshteinDistance:

    def test_classic_example(self):
        assert levenshtein_distance("kitten", "sitting") == 3

    def test_empty_operands(self):
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3
        assert levenshtein_distance("", "") == 0

    def test_symmetric(self):
        assert levenshtein_distance("agendar", "agenda") == levenshtein_distance("agenda", "agendar") == 1


class TestSimilarity:

    def test_identical_strings(self):
        assert similarity("ola mundo", "ola mundo") == 1.0

    def test_both_empty_compare_equal(self):
        assert similarity("", "") == 1.0

    def test_one_substitution(self):
        assert similarity("abcd", "abce") == pytest.approx(0.75)

    def test_completely_different(self):
        assert similarity("abc", "xyz") == 0.0

    def test_punctuation_ignored_after_normalization(self):
        assert similarity(normalize_message("ola mundo"), normalize_message("ola mundo!")) == 1.0


class TestNormalizeMessage:

    def test_lowercase_trim_collapse_and_strip(self):
        assert normalize_message("  Olá,   Mundo!! ") == "olá mundo"

    def test_newlines_become_spaces(self):
        assert normalize_message("Quero\n\nsaber") == "quero saber"


class TestIsMessageMatch:

    def test_exact_match(self):
        assert is_message_match("Olá! Quero a promoção.", "olá quero a promoção")

    def test_prefix_match(self):
        assert is_message_match(
            "Olá! Quero saber sobre a promoção de limpeza", "Olá! Quero saber"
        )

    def test_slightly_edited_message_matches(self):
        assert is_message_match("quero saber da promocao", "Quero saber da promoção!")

    def test_unrelated_message_does_not_match(self):
        assert not is_message_match("bom dia", "quero cancelar meu pedido")

    def test_missing_template_never_matches(self):
        assert not is_message_match("qualquer coisa", None)
        assert not is_message_match("qualquer coisa", "")

    def test_punctuation_only_template_never_matches(self):
        assert not is_message_match("qualquer coisa", "!!!")
