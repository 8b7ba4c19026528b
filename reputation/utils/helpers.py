"""General-purpose helper utilities for the reputation analyzer."""

import re
import unicodedata
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

_LEGAL_SUFFIXES = {
    "inc", "llc", "ltd", "co", "corp", "company", "corporation", "limited",
}


def round_half_up(value: float, digits: int = 0) -> float | int:
    """Round *value* half away from zero (``2.5 -> 3``, ``3.125 -> 3.13``).

    Python's built-in :func:`round` uses banker's rounding, which makes the
    published scores drift by one on exact halves.

    Args:
        value: Number to round.
        digits: Decimal places to keep.  ``0`` returns an ``int``.

    Examples:
        >>> round_half_up(47.5)
        48
        >>> round_half_up(3.125, 2)
        3.13
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def weighted_score(pairs: Iterable[tuple[float, float]]) -> int:
    """Round-half-up sum of ``weight * value`` pairs, computed in decimal.

    Summing in binary floating point can land a hair under an exact half
    (``47.49999...``) and round the wrong way.
    """
    total = sum(
        (Decimal(str(weight)) * Decimal(str(value)) for weight, value in pairs),
        Decimal(0),
    )
    return round_half_up(total)


def clamp_score(value: Any, low: float = 0.0, high: float = 100.0, default: float = 0.0) -> float:
    """Coerce *value* to a float score in ``[low, high]``."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, v))


def normalize_company_name(name: str) -> str:
    """Return a lookup key for a company name.

    Lowercases, strips accents and punctuation, collapses whitespace and
    drops trailing legal suffixes.

    Examples:
        >>> normalize_company_name("  Joe's Pizza, Inc. ")
        'joes pizza'
        >>> normalize_company_name("ACME Corp")
        'acme'
    """
    text = unicodedata.normalize("NFKD", name or "")
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = re.sub(r"[^\w\s]", "", text)
    words = text.split()
    while len(words) > 1 and words[-1] in _LEGAL_SUFFIXES:
        words.pop()
    return " ".join(words)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime).

    Naive values are assumed to be UTC.  Returns ``None`` when *value* cannot
    be interpreted as a date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def truncate_text(text: str, max_length: int = 160, suffix: str = "...") -> str:
    """Truncate text to a maximum length, breaking at word boundaries.

    Args:
        text: Input text.
        max_length: Maximum allowed length including suffix.
        suffix: String appended when truncation occurs.

    Returns:
        Truncated text with suffix if it was shortened.
    """
    if len(text) <= max_length:
        return text
    truncated = text[: max_length - len(suffix)]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated.rstrip(".,;:!? ") + suffix
