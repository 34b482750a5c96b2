"""Price, amount and timestamp parsing for untrusted venue payloads. Nothing here raises."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any

# Numeric timestamps below this are epoch seconds, above are epoch milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def _float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    if math.isnan(num) or math.isinf(num):
        return None
    return num


def normalize_price(value: Any) -> float | None:
    """Parse a probability to [0, 1], or None when the value is missing or invalid.

    "45%" -> 0.45, 45 -> 0.45 (values in (1, 100] are percentages), 0.45 -> 0.45.
    Negative values and values above 100 are invalid.
    """
    if isinstance(value, str) and value.strip().endswith("%"):
        num = _float(value.strip()[:-1])
        if num is None:
            return None
        num = num / 100
    else:
        num = _float(value)
        if num is None:
            return None
        if 1 < num <= 100:
            num = num / 100
    if num < 0 or num > 1:
        return None
    return num


def parse_price(value: Any) -> float:
    """Parse a probability to [0, 1]; invalid input yields 0.0."""
    price = normalize_price(value)
    return 0.0 if price is None else price


def parse_amount(value: Any, default: float = 0.0) -> float:
    """Parse a non-negative amount such as volume or liquidity."""
    num = _float(value)
    if num is None or num < 0:
        return default
    return num


def parse_timestamp_ms(value: Any) -> int | None:
    """Epoch seconds, epoch ms, numeric strings or ISO-8601 strings -> epoch ms."""
    num = _float(value)
    if num is not None:
        if num <= 0:
            return None
        return int(num * 1000) if num < _MS_THRESHOLD else int(num)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)
