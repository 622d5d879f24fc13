from __future__ import annotations

import math
import re
from typing import Any

# Student tokens: "opiskelija(t)", "opisk.", "op.", "op", "student", "stud."
_STUDENT_PRICE_RE = re.compile(
    r"\b(?:opiskelijat?|opisk|op|students?|stud)\.?\s*:?\s*(\d+[,.]\d+)",
    re.IGNORECASE,
)
_DECIMAL_RE = re.compile(r"\d+[,.]\d+")


def _to_float(text: str) -> float:
    return float(text.replace(",", "."))


def _format(value: float) -> str | None:
    if not math.isfinite(value):
        return None
    return f"{value:.2f}".replace(".", ",")


def _canonical(number_text: str) -> str | None:
    """'2.9' -> '2,90', '2,95' -> '2,95'."""
    return _format(_to_float(number_text))


def _student_keyword_price(text: str) -> str | None:
    match = _STUDENT_PRICE_RE.search(text)
    if match:
        return _canonical(match.group(1))
    return None


def normalize_price(raw: Any) -> str | None:
    """
    Extract the student price from free-form upstream pricing text.

    Handles e.g. ``"Op 2,95 € / Hk 6,12€ / Vieras 6,25€"`` and
    ``"12,90€ / opisk. 2,95 €"``. Rules, first match wins:

    1. a student keyword directly followed by a number,
    2. the segment after the last ``/`` (keyword, then its first number),
    3. the smallest of two or more numbers,
    4. the only number.

    Returns ``None`` when no price can be determined; never raises.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None

    try:
        direct = _student_keyword_price(text)
        if direct:
            return direct

        if "/" in text:
            last_segment = text.split("/")[-1].strip()
            keyword = _student_keyword_price(last_segment)
            if keyword:
                return keyword
            first = _DECIMAL_RE.search(last_segment)
            if first:
                return _canonical(first.group(0))

        numbers = _DECIMAL_RE.findall(text)
        if len(numbers) > 1:
            return _format(min(_to_float(n) for n in numbers))
        if len(numbers) == 1:
            return _canonical(numbers[0])
    except ValueError:
        return None

    return None
