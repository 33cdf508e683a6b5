"""Helpers for cleaning up vendor names from bank exports."""

from __future__ import annotations

import re
import string
from typing import Iterable, List, Sequence

SIMILARITY_THRESHOLD = 0.6

_STATES = (
    "AL AK AZ AR CA CO CT DE DC FL GA HI ID IL IN IA KS KY LA ME MD MA MI MN "
    "MS MO MT NE NV NH NJ NM NY NC ND OH OK OR PA RI SC SD TN TX UT VT VA WA "
    "WV WI WY"
).split()

_DATE_PATTERNS = [
    re.compile(r"\b\d{1,2}/\d{1,2}(?:/\d{2,4})?\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
]
# Upper case only, so a title-cased word such as "Wa" is left alone.
_TRAILING_STATE = re.compile(r"\s+(?:%s)\s*$" % "|".join(_STATES))
_REFERENCE_TOKENS = [
    re.compile(r"\b(?:PPD|WEB)\s*ID:\s*\S*", re.IGNORECASE),
    re.compile(r"\bID:\s*\S*", re.IGNORECASE),
]
_TRAILING_CODES = re.compile(
    r"(?:\s+(?:#\s*\d+|(?=[\w*#-]*\d)[\w*#-]{5,}))+\s*$"
)
_DOMAIN = re.compile(
    r"\b(?:https?://)?(?:www\.)?([a-z0-9-]+)\.(?:com|net|org|io|co|us|biz)\b(?:/\S*)?",
    re.IGNORECASE,
)
_PROCESSOR_PREFIX = re.compile(
    r"^(?:SQ\s*\*|TST\s*\*|PAYPAL\s*\*|PP\s*\*|SP\s*\*|IC\s*\*|PY\s*\*|"
    r"POS(?:\s+(?:DEBIT|PURCHASE))?\s+|DEBIT CARD PURCHASE\s+|CHECKCARD\s+|"
    r"PURCHASE AUTHORIZED ON\s+)",
    re.IGNORECASE,
)
_ENDING_IN = re.compile(r"\s*\bending in\s*\d+", re.IGNORECASE)
_EDGE_PUNCTUATION = re.compile(r"^[\s*#,.:;-]+|[\s*#,.:;-]+$")
_WHITESPACE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def dedupe_words(text: str) -> str:
    """Drop repeated words, ignoring case and keeping the first occurrence."""

    seen = set()
    words = []
    for word in text.split():
        key = word.lower()
        if key in seen:
            continue
        seen.add(key)
        words.append(word)
    return " ".join(words)


def _strip_once(text: str) -> str:
    for pattern in _DATE_PATTERNS:
        text = pattern.sub(" ", text)
    text = _TRAILING_STATE.sub("", _collapse(text))
    for pattern in _REFERENCE_TOKENS:
        text = pattern.sub(" ", text)
    text = _TRAILING_CODES.sub("", _collapse(text))
    text = _DOMAIN.sub(r"\1", text)
    text = _PROCESSOR_PREFIX.sub("", _collapse(text))
    text = _ENDING_IN.sub(" ", text)
    text = _EDGE_PUNCTUATION.sub("", _collapse(text))
    return dedupe_words(text)


def _strip_all(text: str) -> str:
    # Each pass can expose a new trailing token, so run to a fixed point.
    for _ in range(10):
        cleaned = _strip_once(text)
        if cleaned == text:
            break
        text = cleaned
    return text


def normalize_vendor_name(raw: str | None) -> str:
    """Turn a raw bank description into a short vendor name.

    ``"SQ *BLUE BOTTLE COFFEE OAKLAND CA 04/23"`` becomes
    ``"Blue Bottle Coffee Oakland"``. This is a heuristic; unrelated
    vendors can collapse to the same name. Applying it to its own
    output returns the output unchanged.
    """

    if not raw:
        return ""
    original = _collapse(str(raw))
    text = _strip_all(original)
    if text:
        return string.capwords(text)
    # Title casing can hide state codes from the strip steps, so the
    # fallback is cleaned again in that form.
    fallback = string.capwords(original)
    text = _strip_all(fallback)
    return string.capwords(text) if text else fallback


def _tokens(text: str) -> set:
    return set(text.lower().split())


def is_similar_vendor(
    name: str, other: str, threshold: float = SIMILARITY_THRESHOLD
) -> bool:
    """Return ``True`` when two vendor names look like the same vendor."""

    left = _collapse(name).lower()
    right = _collapse(other).lower()
    if not left or not right:
        return False
    if left in right or right in left:
        return True
    left_tokens = _tokens(left)
    right_tokens = _tokens(right)
    smaller, larger = sorted((left_tokens, right_tokens), key=len)
    overlap = len(smaller & larger)
    return overlap / len(smaller) >= threshold


def find_similar_vendors(
    name: str,
    existing: Iterable[str],
    threshold: float = SIMILARITY_THRESHOLD,
) -> List[str]:
    """Existing descriptions that may be the same vendor as ``name``.

    Exact matches (ignoring case) are not reported, there is nothing to
    merge. The caller decides whether to merge; nothing is changed here.
    """

    key = _collapse(name).lower()
    matches: List[str] = []
    seen = set()
    for candidate in existing:
        candidate_key = _collapse(candidate).lower()
        if not candidate_key or candidate_key == key or candidate_key in seen:
            continue
        if is_similar_vendor(name, candidate, threshold):
            seen.add(candidate_key)
            matches.append(candidate)
    return sorted(matches, key=str.lower)


def distinct_names(names: Sequence[str]) -> List[str]:
    """Distinct non-empty names in first-seen order, ignoring case."""

    seen = set()
    result = []
    for name in names:
        key = _collapse(name).lower()
        if key and key not in seen:
            seen.add(key)
            result.append(_collapse(name))
    return result
