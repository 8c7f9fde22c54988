"""
Pydantic snapshot models for the weather-ayah API.

Snapshots are immutable. Field names are snake_case in Python and
camelCase on the wire (updatedAt, nextUpdate, feelsLike, ...).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Snapshot(BaseModel):
    """Generated content plus the timestamps stamped on it by the cache."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    updated_at: int = Field(
        default=0, description="When this snapshot was generated (epoch ms)"
    )
    next_update: int = Field(
        default=0, description="When this snapshot expires (epoch ms)"
    )


class WeatherSnapshot(Snapshot):
    """Current conditions for one location."""

    location: str = Field(description="Readable city/area name")
    temperature: Optional[float] = Field(default=None, description="Fahrenheit")
    feels_like: Optional[float] = Field(default=None, description="Fahrenheit")
    conditions: str = Field(description="Short lowercase description")
    humidity: Optional[float] = Field(default=None, description="Percent, 0-100")
    wind_speed: Optional[float] = Field(default=None, description="Miles per hour")
    location_query: str = Field(description="Location text the report was generated for")


class AyahSnapshot(Snapshot):
    """One verse with its translation and an optional recitation."""

    arabic: str
    english: str
    reference: str = Field(description='Surah name and verse, e.g. "Surah Al-Baqarah 2:255"')
    surah_number: Optional[int] = Field(default=None, ge=1, le=114)
    recitation_url: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
