from __future__ import annotations

from typing import Any

from pricescan.application.llm.parsers import parse_price_tag
from pricescan.application.llm.prompts import build_image_prompt, build_text_prompt
from pricescan.infrastructure.clients.gemini_http import GeminiHttpClient


class GeminiPriceTagAdapter:
    """Turns tag text or a tag photo into ``{productName, price}`` via Gemini."""

    def __init__(self, client: GeminiHttpClient) -> None:
        self._client = client

    async def parse_text(self, text: str) -> dict[str, Any]:
        data = await self._client.generate(build_text_prompt(text))
        return parse_price_tag(self._client.extract_text(data))

    async def parse_image(self, image_b64: str) -> dict[str, Any]:
        data = await self._client.generate(build_image_prompt(), image_b64=image_b64)
        return parse_price_tag(self._client.extract_text(data))
