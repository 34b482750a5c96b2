"""Title similarity scoring for cross-venue matching.

Score = keyword Jaccard (stopword-filtered tokens) + Levenshtein title
similarity + expiration proximity, weighted by ``SimilarityWeights``. Exact
equality of the normalized titles short-circuits to 1.0.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from rapidfuzz.distance import Levenshtein

from predagg.ingestion.fields import EXPIRES_AT
from predagg.models import NormalizedMarket

MIN_SIMILARITY_THRESHOLD = 0.7
MAX_EXPIRY_DIFF_DAYS = 60.0
_DAY_MS = 86_400_000

_NON_ALNUM = re.compile(r"[\W_]+")

STOPWORDS = frozenset(
    """
    will the be to of and a in is it you that he was for on are as with his they i at
    have this from or one had by word but not what all were we when your can said there
    each which she do how their if up out many then them these so some her would make
    like into him has two more very after words long than first been call who oil sit
    now find down day did get come made may part
    """.split()
)

# Applied with stopword removal only; every target maps to itself.
TOKEN_ALIASES = {
    "exceed": "above",
    "exceeds": "above",
    "over": "above",
    "surpass": "above",
    "surpasses": "above",
    "greater": "above",
    "higher": "above",
    "under": "below",
    "less": "below",
    "lower": "below",
    "bitcoin": "btc",
    "ethereum": "eth",
    "solana": "sol",
    "rates": "rate",
    "cuts": "cut",
    "january": "jan",
    "february": "feb",
    "march": "mar",
    "april": "apr",
    "june": "jun",
    "july": "jul",
    "august": "aug",
    "september": "sep",
    "sept": "sep",
    "october": "oct",
    "november": "nov",
    "december": "dec",
}


def normalize_title(title: str, remove_stopwords: bool = False) -> str:
    """Lowercase, strip punctuation, collapse whitespace.

    With ``remove_stopwords`` also canonicalize aliases and drop stopwords and
    tokens of two characters or fewer. Idempotent in both modes.
    """
    normalized = _NON_ALNUM.sub(" ", (title or "").lower()).strip()
    normalized = " ".join(normalized.split())
    if not remove_stopwords:
        return normalized
    words = (TOKEN_ALIASES.get(w, w) for w in normalized.split())
    return " ".join(w for w in words if w not in STOPWORDS and len(w) > 2)


def calculate_string_similarity(a: str, b: str, remove_stopwords: bool = False) -> float:
    """1 - levenshtein / max_len over the normalized strings."""
    norm_a = normalize_title(a, remove_stopwords)
    norm_b = normalize_title(b, remove_stopwords)
    if norm_a == norm_b:
        return 1.0
    max_len = max(len(norm_a), len(norm_b))
    if max_len == 0:
        return 0.0
    return 1.0 - Levenshtein.distance(norm_a, norm_b) / max_len


def extract_keywords(title: str) -> list[str]:
    """Sorted unique stopword-filtered tokens."""
    return sorted(set(normalize_title(title, remove_stopwords=True).split()))


def keyword_overlap(a: str, b: str) -> float:
    """Jaccard similarity of the keyword sets; 0 when both are empty."""
    ka, kb = set(extract_keywords(a)), set(extract_keywords(b))
    union = ka | kb
    if not union:
        return 0.0
    return len(ka & kb) / len(union)


def expiration_ms(market: NormalizedMarket) -> int | None:
    if market.expires_at:
        return market.expires_at
    return EXPIRES_AT.resolve(market.extra)


def expiration_similarity(m1: NormalizedMarket, m2: NormalizedMarket) -> float | None:
    """1 within a day, 0 at 60+ days apart, linear in between. None if either lacks an expiry."""
    t1, t2 = expiration_ms(m1), expiration_ms(m2)
    if not t1 or not t2:
        return None
    diff_days = abs(t1 - t2) / _DAY_MS
    if diff_days <= 1:
        return 1.0
    if diff_days >= MAX_EXPIRY_DIFF_DAYS:
        return 0.0
    return 1.0 - diff_days / MAX_EXPIRY_DIFF_DAYS


@dataclass(frozen=True)
class SimilarityWeights:
    keyword: float = 0.7
    keyword_with_expiry: float = 0.6
    title: float = 0.3
    expiration: float = 0.1

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SimilarityWeights:
        return cls(**{k: float(v) for k, v in raw.items() if k in cls.__dataclass_fields__})


DEFAULT_WEIGHTS = SimilarityWeights()


def market_similarity(
    m1: NormalizedMarket,
    m2: NormalizedMarket,
    weights: SimilarityWeights = DEFAULT_WEIGHTS,
) -> float:
    """Combined similarity in [0, 1] for two markets. Titles with no word characters never match."""
    norm1, norm2 = normalize_title(m1.title), normalize_title(m2.title)
    if not norm1 or not norm2:
        return 0.0
    if norm1 == norm2:
        return 1.0
    title_sim = calculate_string_similarity(m1.title, m2.title, remove_stopwords=True)
    overlap = keyword_overlap(m1.title, m2.title)
    exp_sim = expiration_similarity(m1, m2)
    if exp_sim is None:
        score = overlap * weights.keyword + title_sim * weights.title
    else:
        score = (
            overlap * weights.keyword_with_expiry
            + title_sim * weights.title
            + exp_sim * weights.expiration
        )
    return min(1.0, max(0.0, score))
