"""Query normalization and phonetic keys for the Elasticsearch provider.

Shoppers spell the same product in Cyrillic or Latin and lean on shorthand
("мышка", "logitek", "ноут"). Before a term reaches the index it is:

1. normalized by :func:`normalize_query` (lowercase, collapse repeated letters,
   strip punctuation, expand a small alias map),
2. transliterated to ASCII by :func:`transliterate_text`,
3. reduced to double-metaphone codes by :func:`to_phonetic`.

The raw term is still what the result cache is keyed on; normalization only
shapes the upstream query.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable

from metaphone import doublemetaphone
from unidecode import unidecode

logger = logging.getLogger(__name__)

_LETTER_DIGIT_SPACE_RE = re.compile(r"[^0-9a-zA-Zа-яА-ЯёЁ ]+")
_REPEATED_LETTER_RE = re.compile(r"([A-Za-zА-Яа-яЁё])\1+")
_ASCII_ALNUM_SPACE_RE = re.compile(r"[^0-9a-zA-Z ]+")
_PHONETIC_REWRITE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"sch"), "ш"),
    (re.compile(r"sh"), "ш"),
    (re.compile(r"zh"), "ж"),
    (re.compile(r"ch"), "ч"),
)

# Colloquial product and brand aliases seen in shop searches.
QUERY_ALIASES: dict[str, str] = {
    "мышка": "мышь",
    "ноут": "ноутбук",
    "комп": "компьютер",
    "клава": "клавиатура",
    "телик": "телевизор",
    "самсунг": "samsung",
    "самсун": "samsung",
    "логитек": "logitech",
    "logitek": "logitech",
    "асус": "asus",
    "эйсер": "acer",
    "асер": "acer",
    "леново": "lenovo",
    "ксиоми": "xiaomi",
    "сяоми": "xiaomi",
    "ксяоми": "xiaomi",
    "эпл": "apple",
    "айфон": "iphone",
    "сони": "sony",
    "филипс": "philips",
    "бош": "bosch",
}


def normalize_query(text: str) -> str:
    """Lowercase, collapse letter runs, drop punctuation and expand aliases.

    ``"Мыышка  Logitek!"`` becomes ``"мышь logitech"``. Latin digraphs are left
    untouched here; only :func:`to_phonetic` harmonizes them.
    """

    lowered = (text or "").lower()
    collapsed = _REPEATED_LETTER_RE.sub(r"\1", lowered)
    cleaned = _LETTER_DIGIT_SPACE_RE.sub(" ", collapsed)
    tokens = [QUERY_ALIASES.get(token, token) for token in cleaned.split()]
    normalized = " ".join(tokens)
    logger.debug("normalize_query raw=%r normalized=%r", text, normalized)
    return normalized


def transliterate_text(text: str) -> str:
    """ASCII rendition of the normalized text for translit index fields."""

    normalized = normalize_query(text)
    if not normalized:
        return ""
    ascii_only = _ASCII_ALNUM_SPACE_RE.sub(" ", unidecode(normalized))
    return " ".join(ascii_only.split())


def _metaphone_tokens(tokens: Iterable[str]) -> list[str]:
    codes: list[str] = []
    for token in tokens:
        for code in doublemetaphone(token):
            if code and code not in codes:
                codes.append(code)
    return codes


def to_phonetic(normalized_text: str) -> str:
    """Double-metaphone codes for **already normalized** text.

    ``sch``/``sh``/``zh``/``ch`` are folded into their Cyrillic letters first so
    "bosch", "bosh" and "бош" share a code after transliteration.
    """

    if not normalized_text:
        return ""
    harmonized = normalized_text
    for pattern, replacement in _PHONETIC_REWRITE_RULES:
        harmonized = pattern.sub(replacement, harmonized)
    ascii_only = _ASCII_ALNUM_SPACE_RE.sub(" ", unidecode(harmonized))
    phonetic = " ".join(_metaphone_tokens(ascii_only.split()))
    logger.debug("to_phonetic normalized=%r harmonized=%r phonetic=%r", normalized_text, harmonized, phonetic)
    return phonetic
