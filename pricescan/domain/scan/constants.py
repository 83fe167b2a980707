from __future__ import annotations

# Values at or below this are weights/grades ("100g", "1등급"), never prices
MIN_PRICE = 100

# A line with more digits than this is treated as price-like, never a name
NAME_MAX_DIGITS = 3

DISPATCH_SPACING_MS = 1500
DEDUP_WINDOW_MS = 3000
AUTO_CAPTURE_INTERVAL_MS = 2000

UNKNOWN_ITEM_NAME = "Unknown Item"

CURRENCY_MARKERS = ("원", "₩")
