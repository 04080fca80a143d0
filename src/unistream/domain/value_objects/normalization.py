"""Normalize-on-ingest helpers.

Hey future me - every provider adapter runs its raw payload through these ONCE.
After that no other layer special-cases source quirks (ms vs. "MM:SS" durations,
protocol-relative covers, <em> highlight tags in Bilibili titles...).

All helpers are total: garbage in gives a safe default out, never an exception.
"""

import math
import re
from typing import Any

from unistream.domain.value_objects import FeeTier

_TAG_RE = re.compile(r"<[^>]*>")


def parse_duration(value: Any) -> int:
    """Convert a colon-delimited duration ("MM:SS" / "HH:MM:SS") to whole seconds.

    Numbers are taken as seconds already. Unparseable input gives 0 (unknown).

    Examples:
        "1:05" -> 65, "1:02:03" -> 3723, "" -> 0, None -> 0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int | float):
        return max(int(value), 0) if math.isfinite(value) else 0
    if not isinstance(value, str):
        return 0

    text = value.strip()
    if not text:
        return 0
    if text.isdigit():
        return int(text)

    parts = text.split(":")
    if len(parts) not in (2, 3):
        return 0
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        return 0
    if any(n < 0 for n in numbers):
        return 0

    if len(numbers) == 2:
        return numbers[0] * 60 + numbers[1]
    return numbers[0] * 3600 + numbers[1] * 60 + numbers[2]


def millis_to_seconds(value: Any) -> int:
    """Convert a millisecond duration to whole seconds (floor), 0 when unknown."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        millis = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(millis // 1000, 0)


def normalize_cover_url(value: Any) -> str:
    """Force covers onto HTTPS.

    "http://x/y.jpg" -> "https://x/y.jpg", "//x/y.jpg" -> "https://x/y.jpg",
    https stays untouched, anything non-string becomes "".
    """
    if not isinstance(value, str):
        return ""
    url = value.strip()
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("http://"):
        return "https://" + url[len("http://") :]
    return url


def strip_markup(value: Any) -> str:
    """Remove embedded HTML tags (search-highlight <em class="keyword">...)."""
    if not isinstance(value, str):
        return ""
    return _TAG_RE.sub("", value).strip()


def map_netease_fee(fee: Any) -> FeeTier:
    """Map NetEase's numeric `fee` flag to the shared FeeTier.

    0 = free, 8 = free stream but lossless needs VIP, anything else non-zero
    (1 VIP, 4 paid album) = subscription only.
    """
    try:
        code = int(fee)
    except (TypeError, ValueError):
        return FeeTier.FREE
    if code == 0:
        return FeeTier.FREE
    if code == 8:
        return FeeTier.PREMIUM_LOSSLESS
    return FeeTier.SUBSCRIPTION


def as_text(value: Any, default: str = "") -> str:
    """Stringify ids and names coming from loosely typed JSON."""
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return default
