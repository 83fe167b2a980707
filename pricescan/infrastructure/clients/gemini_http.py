from __future__ import annotations

from typing import Any

import httpx


class GeminiHttpClient:
    """Minimal async client for the Gemini ``generateContent`` REST endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_seconds,
            headers={"x-goog-api-key": self._api_key},
            transport=self._transport,
        )

    async def generate(self, prompt: str, *, image_b64: str | None = None, mime_type: str = "image/jpeg") -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": prompt}]
        if image_b64:
            parts.append({"inline_data": {"mime_type": mime_type, "data": image_b64}})
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {"temperature": 0.0},
        }
        async with self._client() as client:
            resp = await client.post(f"/models/{self._model}:generateContent", json=payload)
            resp.raise_for_status()
            data = resp.json()
            if not isinstance(data, dict):
                raise RuntimeError("Gemini response not a JSON object")
            return data

    def extract_text(self, data: dict[str, Any]) -> str:
        candidates = data.get("candidates")
        if isinstance(candidates, list) and candidates:
            content = candidates[0].get("content") or {}
            texts = [p.get("text", "") for p in content.get("parts", []) if isinstance(p, dict)]
            joined = "".join(texts).strip()
            if joined:
                return joined
        raise RuntimeError("Gemini response has no text candidate")
