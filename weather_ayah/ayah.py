"""
Ayah service: asks the generator for one verse of the Quran.

Unlike weather, the reply is all-or-nothing: arabic, english and reference
must all be present or the refresh fails.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from weather_ayah.cache import RefreshCache
from weather_ayah.config import AppConfig
from weather_ayah.errors import SnapshotValidationError
from weather_ayah.generator import GeneratorClient
from weather_ayah.models import AyahSnapshot

logger = logging.getLogger(__name__)

AYAH_KEY = "ayah"
REQUIRED_FIELDS = ("arabic", "english", "reference")

SURAH_COUNT = 114
SURAH_NUMBER_RE = re.compile(r"(\d+)\s*[:\-]")

AYAH_INSTRUCTION = (
    "You are an assistant that shares beautiful verses (ayahs) from the Holy Quran.\n"
    "Return a random ayah in strict JSON with the keys: arabic, english, reference.\n"
    "- arabic: short Arabic text without additional commentary.\n"
    "- english: a warm and easy-to-read English rendering (1-2 sentences).\n"
    '- reference: surah name and verse number (e.g., "Surah Al-Baqarah 2:255").\n'
    "Rules: respond with valid JSON only, no markdown, no code fences."
)


def parse_surah_number(reference: Optional[str]) -> Optional[int]:
    """
    Extract the surah number from a verse reference.

    The first number followed by ':' or '-' counts, e.g. "Al-Baqarah 2:255"
    gives 2. Returns None if there is no such number or it is not a valid
    surah (1-114).
    """
    if not reference:
        return None
    match = SURAH_NUMBER_RE.search(reference)
    if match is None:
        return None
    number = int(match.group(1))
    if 1 <= number <= SURAH_COUNT:
        return number
    return None


def build_recitation_url(base_url: str, surah_number: Optional[int]) -> Optional[str]:
    """Audio URL for a whole-surah recitation, or None without a surah number."""
    if surah_number is None:
        return None
    return f"{base_url.rstrip('/')}/{surah_number}.mp3"


class AyahService:
    """The single ayah snapshot."""

    def __init__(
        self, config: AppConfig, generator: GeneratorClient, cache: RefreshCache
    ) -> None:
        self._config = config
        self._generator = generator
        self._cache = cache

    @property
    def ttl(self) -> int:
        return self._config.ayah_ttl_seconds

    async def get(self) -> AyahSnapshot:
        """Return the current ayah snapshot."""
        return await self._cache.ensure(AYAH_KEY, self._fetch, self.ttl)

    async def _fetch(self) -> AyahSnapshot:
        payload = await self._generator.generate_json(
            AYAH_INSTRUCTION, temperature=0.7, max_output_tokens=250
        )
        fields = _required_fields(payload)

        surah_number = parse_surah_number(fields["reference"])
        logger.info("Generated ayah %s", fields["reference"])
        return AyahSnapshot(
            **fields,
            surah_number=surah_number,
            recitation_url=build_recitation_url(
                self._config.recitation_base_url, surah_number
            ),
        )


def _required_fields(payload: dict[str, Any]) -> dict[str, str]:
    fields = {}
    missing = []
    for name in REQUIRED_FIELDS:
        value = payload.get(name)
        if isinstance(value, str) and value.strip():
            fields[name] = value.strip()
        else:
            missing.append(name)
    if missing:
        raise SnapshotValidationError(
            f"Ayah reply missing fields: {', '.join(missing)}"
        )
    return fields
