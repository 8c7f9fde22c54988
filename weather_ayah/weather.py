"""
Weather service: asks the generator for current conditions at a location.

Replies are coerced leniently. A missing or non-numeric reading becomes
None and missing text falls back to a fixed label, so a partial reply
still produces a snapshot.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Optional

from weather_ayah.cache import RefreshCache
from weather_ayah.config import AppConfig
from weather_ayah.generator import GeneratorClient
from weather_ayah.models import WeatherSnapshot

logger = logging.getLogger(__name__)

UNKNOWN_CONDITIONS = "unknown conditions"

WEATHER_INSTRUCTION = (
    "You are an experienced meteorologist providing concise reports for a modern weather dashboard.\n"
    "Generate the best possible current conditions for {location}.\n"
    "Return ONLY strict JSON with the keys: location, temperature, feelsLike, conditions, humidity, windSpeed.\n"
    "Requirements:\n"
    "- location: readable city/area name in plain text.\n"
    "- temperature: numeric Fahrenheit value (no units).\n"
    "- feelsLike: numeric Fahrenheit value (no units).\n"
    '- conditions: short lowercase description (e.g., "clear skies").\n'
    "- humidity: numeric percentage (0-100).\n"
    "- windSpeed: numeric miles per hour (no units).\n"
    "Do not include explanations, markdown, or additional keys. "
    "If uncertain, provide a reasonable, seasonally appropriate estimate."
)


def normalize_location(text: str) -> str:
    """Cache key for a location: trimmed, single-spaced, lower-cased."""
    return " ".join(text.split()).lower()


def parse_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None if it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def _text(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


class WeatherService:
    """Weather snapshots keyed by normalized location."""

    def __init__(
        self, config: AppConfig, generator: GeneratorClient, cache: RefreshCache
    ) -> None:
        self._config = config
        self._generator = generator
        self._cache = cache

    @property
    def ttl(self) -> int:
        return self._config.weather_ttl_seconds

    def resolve(self, location: Optional[str]) -> str:
        """The location text to report on; blank input means the default."""
        if location is None or not location.strip():
            return self._config.default_location
        return " ".join(location.split())

    async def get(self, location: Optional[str] = None) -> WeatherSnapshot:
        """Return the current weather snapshot for location."""
        query = self.resolve(location)

        async def loader() -> WeatherSnapshot:
            return await self._fetch(query)

        return await self._cache.ensure(normalize_location(query), loader, self.ttl)

    async def _fetch(self, query: str) -> WeatherSnapshot:
        payload = await self._generator.generate_json(
            WEATHER_INSTRUCTION.format(location=query),
            temperature=0.4,
            max_output_tokens=300,
        )
        logger.info("Generated weather for %s", query)
        return WeatherSnapshot(
            location=_text(payload.get("location"), query),
            temperature=parse_number(payload.get("temperature")),
            feels_like=parse_number(payload.get("feelsLike")),
            conditions=_text(payload.get("conditions"), UNKNOWN_CONDITIONS),
            humidity=parse_number(payload.get("humidity")),
            wind_speed=parse_number(payload.get("windSpeed")),
            location_query=query,
        )
