"""
Unit tests for catalog/invoice field normalization.

Tests cover:
- parse_number() - lenient number parsing (never raises, always finite)
- format_ncm() - tariff code formatting
- is_meaningful_barcode() - barcode filtering for the cascade
- normalize_text() / name_similarity() - candidate ranking
"""
import math
from decimal import Decimal

import pytest

from tributei.common.normalization import (
    format_ncm,
    is_meaningful_barcode,
    name_similarity,
    normalize_text,
    parse_number,
    word_similarity,
)


class TestParseNumber:
    """Tests for parse_number() function."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            # Mixed encodings from the catalog
            ("18,5", 18.5),
            ("18.5", 18.5),
            ("9%", 9.0),
            ("18.5%", 18.5),
            (" 17,7 ", 17.7),
            ("0", 0.0),
            # Native numbers
            (17.7, 17.7),
            (100, 100.0),
            (Decimal("8.90"), 8.9),
            # Missing / garbage
            (None, 0.0),
            ("", 0.0),
            ("   ", 0.0),
            ("abc", 0.0),
            ("%", 0.0),
            ("1,2,3", 0.0),
            # Non-finite
            ("nan", 0.0),
            ("inf", 0.0),
            (float("nan"), 0.0),
            (float("-inf"), 0.0),
            # Booleans are not rates
            (True, 0.0),
        ],
    )
    @pytest.mark.unit
    def test_parse_number(self, value, expected):
        result = parse_number(value)
        assert result == pytest.approx(expected)
        assert math.isfinite(result)

    @pytest.mark.unit
    def test_parse_number_is_idempotent(self):
        for raw in ["18,5", "9%", None, "abc", 12]:
            once = parse_number(raw)
            assert parse_number(once) == once


class TestFormatNcm:
    """Tests for format_ncm() function."""

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("10063021", "1006.30.21"),
            ("1006.30.21", "1006.30.21"),
            ("2203.00.00", "2203.00.00"),
            ("4011000", "0401.10.00"),
            (" 2203 00 00 ", "2203.00.00"),
            ("", "0000.00.00"),
            (None, "0000.00.00"),
        ],
    )
    @pytest.mark.unit
    def test_format_ncm(self, code, expected):
        assert format_ncm(code) == expected


class TestIsMeaningfulBarcode:
    """Tests for is_meaningful_barcode() function."""

    @pytest.mark.parametrize(
        "ean,expected",
        [
            ("7891149103102", True),
            (" 7891149103102 ", True),
            ("SEM GTIN", False),
            ("sem gtin", False),
            ("0000000000000", False),
            ("0", False),
            ("", False),
            ("   ", False),
            (None, False),
        ],
    )
    @pytest.mark.unit
    def test_is_meaningful_barcode(self, ean, expected):
        assert is_meaningful_barcode(ean) is expected


class TestSimilarity:
    """Tests for normalize_text() and name_similarity()."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("  Pão FRANCÊS   kg ", "pao frances kg"),
            ("Leite Int. 1L", "leite int 1l"),
            ("AÇÚCAR Refinado", "acucar refinado"),
            ("", ""),
            (None, ""),
        ],
    )
    @pytest.mark.unit
    def test_normalize_text(self, text, expected):
        assert normalize_text(text) == expected

    @pytest.mark.unit
    def test_identical_names_score_one(self):
        assert name_similarity("Arroz Integral", "ARROZ INTEGRAL") == pytest.approx(1.0)

    @pytest.mark.unit
    def test_empty_names_score_zero(self):
        assert name_similarity("", "Arroz") == 0.0
        assert name_similarity("Arroz", None) == 0.0

    @pytest.mark.unit
    def test_word_overlap_ranks_closer_candidate_higher(self):
        description = "ARROZ INTEGRAL TP1 1KG"
        assert name_similarity(description, "Arroz Integral Tipo 1 1kg") > name_similarity(
            description, "Arroz Branco Tipo 1 5kg"
        )

    @pytest.mark.unit
    def test_word_similarity_is_bounded(self):
        assert word_similarity("leite leite leite", "leite") == 1.0
