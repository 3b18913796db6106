"""
Field parsers for product result markup.

All functions here are pure: they take already-extracted text and return
normalized values, never touching the element tree.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

RATING_PATTERN = re.compile(r"(\d+[,.]?\d*)")
DIGITS_PATTERN = re.compile(r"(\d+)")
MAX_RATING = 5.0


def round_half_up(value: float, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_rating(text: str) -> float:
    """Parse a star rating such as "4,5 de 5 estrelas" or "3.8 out of 5".

    The first decimal number wins; either "," or "." is accepted as the
    decimal separator. Returns 0.0 when nothing parses or the value falls
    outside 0..5.
    """
    if not text:
        return 0.0

    match = RATING_PATTERN.search(text)
    if not match:
        return 0.0

    raw = match.group(1).replace(",", ".").rstrip(".")
    try:
        value = float(Decimal(raw))
    except InvalidOperation:
        return 0.0

    value = round_half_up(value, 1)
    if value < 0 or value > MAX_RATING:
        return 0.0
    return value


def parse_review_count(text: str) -> int:
    """Parse a review count such as "1.234 avaliações" into 1234."""
    if not text:
        return 0

    cleaned = text.replace(".", "").replace(",", "")
    match = DIGITS_PATTERN.search(cleaned)
    return int(match.group(1)) if match else 0


def has_review_token(text: str, tokens: Iterable[str]) -> bool:
    """True when text carries a digit and one of the review tokens."""
    if not text or not DIGITS_PATTERN.search(text):
        return False
    lowered = text.lower()
    return any(token.lower() in lowered for token in tokens)


def normalize_url(url: str, base_url: str) -> str:
    if not url:
        return ""
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/"):
        return f"{base_url.rstrip('/')}{url}"
    return url
