"""Pure parsing and conversion utilities.

Shared by the signal parser and the message sources so that neither has to
re-implement lenient number and timestamp handling.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_price(raw: Any) -> Optional[float]:
    """Parse a chat-style price such as ``"45,000.50"`` or ``"$2000"``.

    Returns ``None`` for anything that is not a positive finite number.
    """
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = float(raw)
    elif isinstance(raw, str):
        cleaned = raw.strip().lstrip("$").replace(",", "")
        if not cleaned:
            return None
        value = _to_float(cleaned, default=math.nan)
    else:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str) and value:
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw.replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(raw)
            return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
        except ValueError:
            return None
    return None
