"""Field probing for heterogeneous venue JSON.

Venues disagree on field names (``question`` vs ``title`` vs ``marketTitle``,
``close_time`` vs ``endDate`` ...). Each logical field is described by a
``FieldProbe``: an ordered tuple of extractors plus a converter. The first
extractor whose value converts to something other than None wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from predagg.ingestion.prices import normalize_price, parse_amount, parse_timestamp_ms

Extractor = Callable[[Any], Any]


def path(*keys: str | int) -> Extractor:
    """Extractor walking nested dict keys / list indexes; None if any step is missing."""

    def extract(raw: Any) -> Any:
        node = raw
        for k in keys:
            if isinstance(k, int):
                if not isinstance(node, (list, tuple)) or not -len(node) <= k < len(node):
                    return None
                node = node[k]
            else:
                if not isinstance(node, Mapping):
                    return None
                node = node.get(k)
            if node is None:
                return None
        return node

    extract.__name__ = "path_" + "_".join(str(k) for k in keys)
    return extract


def keys(*names: str) -> tuple[Extractor, ...]:
    """Shorthand for several top-level key extractors, in priority order."""
    return tuple(path(n) for n in names)


def _text(value: Any) -> str | None:
    if isinstance(value, bool) or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _amount(value: Any) -> float | None:
    num = parse_amount(value, default=-1.0)
    return None if num < 0 else num


@dataclass(frozen=True)
class FieldProbe:
    """Ordered extractors for one logical field."""

    name: str
    extractors: tuple[Extractor, ...]
    convert: Callable[[Any], Any] = _text

    def resolve(self, raw: Any) -> Any:
        for extract in self.extractors:
            value = extract(raw)
            if value is None:
                continue
            converted = self.convert(value)
            if converted is not None:
                return converted
        return None

    def extend(self, *extractors: Extractor) -> FieldProbe:
        return FieldProbe(self.name, self.extractors + tuple(extractors), self.convert)


# Shared probes. Venue adapters extend or reorder these for their own quirks.
TITLE = FieldProbe("title", keys("marketTitle", "question", "title", "market_title", "name"))
MARKET_ID = FieldProbe("market_id", keys("market_id", "marketId", "id", "ticker", "conditionId", "slug"))
VOLUME = FieldProbe(
    "volume", keys("volume24hr", "volume24h", "volume_24h", "volume"), convert=_amount
)
UPDATED_AT = FieldProbe(
    "updated_at",
    keys("updated_at", "updatedAt", "last_updated", "lastUpdated", "timestamp"),
    convert=parse_timestamp_ms,
)
EXPIRES_AT = FieldProbe(
    "expires_at",
    keys(
        "expiresAt",
        "endDate",
        "close_time",
        "closeTime",
        "end_time",
        "endTime",
        "expiration",
        "expiry",
        "expires",
    ),
    convert=parse_timestamp_ms,
)
CATEGORY = FieldProbe("category", keys("category", "categoryName", "series"))
DESCRIPTION = FieldProbe("description", keys("description", "rules", "resolutionSource"))
YES_PRICE = FieldProbe(
    "yes_price",
    keys("yesPrice", "yes_price", "price", "probability", "lastPrice", "last_price"),
    convert=normalize_price,
)
NO_PRICE = FieldProbe("no_price", keys("noPrice", "no_price"), convert=normalize_price)


def unwrap_list(data: Any, envelopes: Sequence[Sequence[str]] = (("markets",), ("data",), ("result",), ("items",))) -> list[Any]:
    """Return the record list from a bare list or the first matching envelope path."""
    if isinstance(data, list):
        return data
    for envelope in envelopes:
        found = path(*envelope)(data)
        if isinstance(found, list):
            return found
    return []


def string_list(value: Any) -> list[str]:
    """Coerce a tags-like field (list of str or of {label/name}) to a list of strings."""
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        if isinstance(item, Mapping):
            item = item.get("label") or item.get("name") or item.get("slug")
        text = _text(item) if item is not None else None
        if text:
            out.append(text)
    return out
