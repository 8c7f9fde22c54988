"""
Async client for the snapshot generator (OpenAI Responses API).

Thin wrapper around httpx. Sends one instruction, returns the reply text.
Raises GenerationError on failures, ConfigurationError without credentials.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx

from weather_ayah.errors import ConfigurationError, GenerationError

logger = logging.getLogger(__name__)


class GeneratorClient:
    """Async client for an OpenAI-compatible /responses endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.openai.com/v1",
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
    ) -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def generate(
        self, instruction: str, temperature: float, max_output_tokens: int
    ) -> str:
        """
        Ask the model for a reply to a single instruction.

        Returns the reply text with surrounding whitespace stripped.
        Raises GenerationError on HTTP or connection failures or an empty reply.
        """
        if not self.configured:
            raise ConfigurationError()

        url = f"{self._base_url}/responses"
        payload = {
            "model": self._model,
            "input": instruction,
            "temperature": temperature,
            "max_output_tokens": max_output_tokens,
        }
        try:
            response = await self._http.post(
                url, json=payload, headers=self._headers(), timeout=self._timeout
            )
        except httpx.HTTPError as exc:
            logger.error("Generator request failed: %s %s -> %s", "POST", url, exc)
            raise GenerationError(f"Connection error: {exc}") from exc

        if response.status_code != 200:
            logger.error(
                "Generator returned %d: %s", response.status_code, response.text
            )
            raise GenerationError(
                f"Generator returned {response.status_code}",
                upstream_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise GenerationError("Generator response was not JSON") from exc

        text = _output_text(body).strip()
        if not text:
            raise GenerationError("Generator returned an empty reply")
        return text

    async def generate_json(
        self, instruction: str, temperature: float, max_output_tokens: int
    ) -> dict[str, Any]:
        """Ask for a reply that must be a single JSON object, and parse it."""
        raw = await self.generate(instruction, temperature, max_output_tokens)
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GenerationError(f"Reply parsing failed: {exc}") from exc

        if not isinstance(payload, dict):
            raise GenerationError(
                f"Expected a JSON object, got {type(payload).__name__}"
            )
        return payload


def _output_text(body: Any) -> str:
    """Collect the assistant text from a Responses API body."""
    if not isinstance(body, dict):
        return ""
    if isinstance(body.get("output_text"), str):
        return body["output_text"]

    parts = []
    for item in body.get("output") or []:
        if not isinstance(item, dict):
            continue
        for content in item.get("content") or []:
            if isinstance(content, dict) and content.get("type") == "output_text":
                parts.append(content.get("text") or "")
    return "".join(parts)
