"""Deterministic local fallback for extracting price and name from tag text."""

from __future__ import annotations

import re
from typing import Optional

from pricescan.domain.scan.constants import CURRENCY_MARKERS, MIN_PRICE, NAME_MAX_DIGITS
from pricescan.domain.scan.models import RecognitionResult

PRICE_PATTERN = re.compile(r"(\d[\d,]*)\s*(?:" + "|".join(CURRENCY_MARKERS) + r")?")
DIGIT_PATTERN = re.compile(r"\d")


def _lines(text: str) -> list[str]:
    # only "\n" separates lines; other Unicode line breaks stay inside a line
    return [line.strip() for line in text.split("\n") if line.strip()]


def extract_price(lines: list[str], *, min_price: int = MIN_PRICE) -> Optional[int]:
    best: Optional[int] = None
    for line in lines:
        for match in PRICE_PATTERN.finditer(line):
            digits = match.group(1).replace(",", "")
            if not digits:
                continue
            value = int(digits)
            if value <= min_price:
                continue
            if best is None or value > best:
                best = value
    return best


def is_price_like(line: str) -> bool:
    digit_count = len(DIGIT_PATTERN.findall(line))
    return digit_count > NAME_MAX_DIGITS and PRICE_PATTERN.search(line) is not None


def extract_name(lines: list[str]) -> Optional[str]:
    best: Optional[str] = None
    for line in lines:
        if is_price_like(line):
            continue
        # strictly longer wins; first seen keeps ties
        if best is None or len(line) > len(best):
            best = line
    return best


def parse(text: str, *, min_price: int = MIN_PRICE) -> RecognitionResult:
    """Parse raw price-tag text into a RecognitionResult.

    Pure: the same text always yields the same result. An absent price means
    nothing above ``min_price`` was found.
    """
    lines = _lines(text or "")
    return RecognitionResult(
        price_candidate=extract_price(lines, min_price=min_price),
        product_name_candidate=extract_name(lines),
        raw_text=text or "",
    )
