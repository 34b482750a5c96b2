"""Keyword tags derived from market titles (crypto, macro, elections, ...)."""

from __future__ import annotations

from predagg.matching.similarity import normalize_title

TAG_KEYWORDS: dict[str, frozenset[str]] = {
    "elections": frozenset({"election", "president", "senate", "house", "primary", "vote", "ballot"}),
    "politics": frozenset({"biden", "trump", "congress", "government", "whitehouse", "parliament"}),
    "crypto": frozenset({"crypto", "bitcoin", "btc", "eth", "ethereum", "sol", "solana", "token"}),
    "macro": frozenset({"fed", "rates", "inflation", "cpi", "gdp", "jobs", "unemployment"}),
    "ai": frozenset({"ai", "openai", "chatgpt", "llm", "anthropic", "model"}),
    "sports": frozenset({"nfl", "nba", "mlb", "nhl", "soccer", "football", "worldcup"}),
    "weather": frozenset({"hurricane", "storm", "weather", "snow", "rain"}),
    "legal": frozenset({"trial", "court", "lawsuit", "judge", "verdict"}),
    "space": frozenset({"spacex", "nasa", "rocket", "launch", "space"}),
}

MONTHS = frozenset(
    {
        "jan", "january", "feb", "february", "mar", "march", "apr", "april", "may",
        "jun", "june", "jul", "july", "aug", "august", "sep", "sept", "september",
        "oct", "october", "nov", "november", "dec", "december",
    }
)


def is_likely_year(token: str) -> bool:
    return token.isdigit() and 2020 <= int(token) <= 2035


def derive_tags(title: str) -> list[str]:
    """Sorted topic tags for a title, plus ``expiry`` when it names a month or year."""
    tokens = {t for t in normalize_title(title).split() if len(t) > 1}
    tags = {tag for tag, words in TAG_KEYWORDS.items() if tokens & words}
    if any(t in MONTHS or is_likely_year(t) for t in tokens):
        tags.add("expiry")
    return sorted(tags)
