"""
Normalização de campos heterogêneos do catálogo e das notas fiscais.

Tax source data is partial and comes in mixed encodings: plain numbers,
comma-decimal strings ("18,5"), percent-suffixed strings ("9%"), empty
cells. Everything here is lenient: malformed or missing input degrades to a
neutral value (0, "") instead of raising, so one bad cell never blocks a
computation.
"""
import math
import re
import unicodedata
from decimal import Decimal
from difflib import SequenceMatcher
from typing import Optional, Union

NumberLike = Union[str, int, float, Decimal, None]

NO_GTIN_MARKER = "SEM GTIN"

# Wagi podobieństwa: słowa ważniejsze niż znaki (nazwy z NF-e mają dopiski marek)
WORD_SIMILARITY_WEIGHT = 0.7
SEQUENCE_SIMILARITY_WEIGHT = 0.3


def parse_number(value: NumberLike) -> float:
    """
    Converts a rate/percentage field to a float, never raising.

    Rules:
    - None → 0
    - int / float / Decimal → returned as float
    - str → one trailing "%" removed, decimal comma replaced by a point,
      trimmed and parsed; unparseable → 0

    Non-finite results (nan, inf) and booleans also degrade to 0, so the
    result is always a finite number.

    Examples:
        >>> parse_number("18,5")
        18.5
        >>> parse_number("9%")
        9.0
        >>> parse_number(None)
        0.0
        >>> parse_number("abc")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float, Decimal)):
        result = float(value)
        return result if math.isfinite(result) else 0.0

    cleaned = str(value).strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1]
    cleaned = cleaned.replace(",", ".").strip()

    try:
        result = float(cleaned)
    except ValueError:
        return 0.0

    return result if math.isfinite(result) else 0.0


def format_ncm(code: Optional[str]) -> str:
    """
    Formats a tariff code the way the catalog stores it: xxxx.xx.xx

    Non-digits are dropped and the code is left-padded to 8 digits.

    Examples:
        >>> format_ncm("10063021")
        '1006.30.21'
        >>> format_ncm("2203.00.00")
        '2203.00.00'
        >>> format_ncm("4011000")
        '0401.10.00'
    """
    digits = re.sub(r"\D", "", code or "").zfill(8)
    return f"{digits[:4]}.{digits[4:6]}.{digits[6:8]}"


def is_meaningful_barcode(ean: Optional[str]) -> bool:
    """False for empty barcodes, the "SEM GTIN" marker and all-zero codes."""
    if not ean:
        return False
    cleaned = ean.strip()
    if not cleaned or cleaned.upper() == NO_GTIN_MARKER:
        return False
    return not re.fullmatch(r"0+", cleaned)


def normalize_text(text: Optional[str]) -> str:
    """
    Lowercase, accent-free, punctuation-free text for similarity scoring.

    Examples:
        >>> normalize_text("  Pão FRANCÊS   kg ")
        'pao frances kg'
        >>> normalize_text("Leite Int. 1L")
        'leite int 1l'
    """
    if not text:
        return ""

    decomposed = unicodedata.normalize("NFD", text.lower())
    without_accents = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    without_symbols = re.sub(r"[^a-z0-9\s]", "", without_accents)

    return re.sub(r"\s+", " ", without_symbols).strip()


def word_similarity(first: str, second: str) -> float:
    """
    Share of the shorter text's words found in the longer one (0.0-1.0).
    Catches "PAO FRANCES" inside "PAO FRANCES MOREIRA". One-letter words are ignored.
    """
    first_words = [w for w in normalize_text(first).split() if len(w) > 1]
    second_words = [w for w in normalize_text(second).split() if len(w) > 1]

    if not first_words or not second_words:
        return 0.0

    common = [word for word in first_words if word in second_words]
    return min(1.0, len(common) / min(len(first_words), len(second_words)))


def sequence_similarity(first: str, second: str) -> float:
    """Character-level similarity ratio (0.0-1.0) of the normalized texts."""
    a = normalize_text(first)
    b = normalize_text(second)

    if a == b:
        return 1.0 if a else 0.0

    return SequenceMatcher(None, a, b).ratio()


def name_similarity(first: Optional[str], second: Optional[str]) -> float:
    """
    Combined similarity used to rank catalog candidates for a free-text description.

    Word overlap dominates (0.7), character similarity breaks ties (0.3).
    """
    if not first or not second:
        return 0.0

    return (
        WORD_SIMILARITY_WEIGHT * word_similarity(first, second)
        + SEQUENCE_SIMILARITY_WEIGHT * sequence_similarity(first, second)
    )
