from __future__ import annotations

import json
import re
from typing import Any

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(content: str) -> str:
    return _FENCE.sub("", content).strip()


def parse_price_tag(content: str) -> dict[str, Any]:
    """Parse the model reply into ``{"productName": str | None, "price": number | None}``.

    Raises RuntimeError when the reply is not a JSON object with usable types.
    """
    try:
        obj = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as exc:
        raise RuntimeError("LLM reply is not JSON") from exc
    if not isinstance(obj, dict):
        raise RuntimeError("LLM reply is not a JSON object")

    name = obj.get("productName")
    if name is not None and not isinstance(name, str):
        raise RuntimeError("LLM productName is not a string")

    price = obj.get("price")
    if isinstance(price, str):
        digits = price.replace(",", "").strip()
        price = float(digits) if re.fullmatch(r"\d+(\.\d+)?", digits) else None
    if isinstance(price, bool) or (price is not None and not isinstance(price, (int, float))):
        raise RuntimeError("LLM price is not a number")

    return {"productName": name, "price": price}
