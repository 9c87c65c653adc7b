"""
Place-name search via the Open-Meteo geocoding API.

Resolves free text ("Paris", "Porto Alegre") to candidate coordinates
that feed the probability analysis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from backend.app.core.config import settings

from .base_service import OpenMeteoService

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


@dataclass
class GeocodingResult:
    id: int
    name: str
    latitude: float
    longitude: float
    country: Optional[str] = None
    admin1: Optional[str] = None
    admin2: Optional[str] = None
    timezone: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Name, region and country joined by commas, blanks skipped."""
        parts = [self.name, self.admin1, self.country]
        return ", ".join(p for p in parts if p)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "GeocodingResult":
        return cls(
            id=int(raw.get("id", 0)),
            name=str(raw.get("name", "")),
            latitude=float(raw["latitude"]),
            longitude=float(raw["longitude"]),
            country=raw.get("country"),
            admin1=raw.get("admin1"),
            admin2=raw.get("admin2"),
            timezone=raw.get("timezone"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "country": self.country,
            "admin1": self.admin1,
            "admin2": self.admin2,
            "timezone": self.timezone,
        }


class GeocodingService(OpenMeteoService):

    service_name = "open-meteo-geocoding"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(base_url or settings.OPEN_METEO_GEOCODING_URL, client, timeout)

    async def search(
        self,
        name: str,
        count: int = 10,
        language: str = "en",
    ) -> List[GeocodingResult]:
        query = name.strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        data = await self._get_json({
            "name": query,
            "count": count,
            "language": language,
            "format": "json",
        })

        results = []
        for raw in data.get("results") or []:
            try:
                results.append(GeocodingResult.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed geocoding result %r: %s", raw, e)
        logger.info("Geocoding %r → %d candidates", query, len(results))
        return results
