"""
Probability API Endpoints.

═══════════════════════════════════════════════════════════════════════════
API DESIGN
═══════════════════════════════════════════════════════════════════════════

1. GET /api/v1/probability?lat=48.85&lon=2.35&date=2027-07-14&variables=precipitation,wind
   Adverse-weather probability for the month of `date` plus 12-month series.
   Provider failures are not errors here: the response falls back to
   default estimates with dataSource="default".

2. GET /api/v1/locations/search?q=Paris&count=10
   Place-name → coordinate candidates. Provider failure → 502.

3. GET /api/v1/variables
   Supported variable labels.
═══════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from backend.app.api.schemas import (
    LocationOut,
    LocationSearchResponse,
    ProbabilityResponse,
    VariablesResponse,
)
from backend.app.probability.analysis_service import AnalysisService
from backend.app.probability.geocoding_service import GeocodingService
from backend.app.probability.variables import SUPPORTED_VARIABLES, normalize_variables

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["probability"])

# ═══════════════════════════════════════════════════════════════════════════
# Shared Services (singleton pattern)
# ═══════════════════════════════════════════════════════════════════════════

_analysis_service: Optional[AnalysisService] = None
_geocoding_service: Optional[GeocodingService] = None


def get_analysis_service() -> AnalysisService:
    global _analysis_service
    if _analysis_service is None:
        _analysis_service = AnalysisService()
    return _analysis_service


def get_geocoding_service() -> GeocodingService:
    global _geocoding_service
    if _geocoding_service is None:
        _geocoding_service = GeocodingService()
    return _geocoding_service


async def close_services() -> None:
    """Release HTTP clients (called on application shutdown)."""
    global _analysis_service, _geocoding_service
    if _analysis_service is not None:
        await _analysis_service.close()
        _analysis_service = None
    if _geocoding_service is not None:
        await _geocoding_service.close()
        _geocoding_service = None


# ═══════════════════════════════════════════════════════════════════════════
# Endpoints
# ═══════════════════════════════════════════════════════════════════════════

@router.get(
    "/probability",
    response_model=ProbabilityResponse,
    summary="Adverse weather probability",
    description=(
        "Aggregates ~10 years of daily history into monthly adverse-day "
        "ratios, blends in the 16-day forecast where it covers a month, and "
        "returns the probability for the month of the selected date."
    ),
)
async def get_probability(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    target_date: date = Query(..., alias="date", description="Target date (YYYY-MM-DD)"),
    variables: List[str] = Query(
        default=[],
        description="Variable labels; repeat or comma-separate",
    ),
    service: AnalysisService = Depends(get_analysis_service),
):
    labels = normalize_variables(variables)
    result = await service.analyze(lat, lon, target_date, labels)
    return ProbabilityResponse.model_validate(result.to_dict())


@router.get(
    "/locations/search",
    response_model=LocationSearchResponse,
    summary="Search locations by name",
)
async def search_locations(
    q: str = Query(..., min_length=1, max_length=100, description="Place name"),
    count: int = Query(10, ge=1, le=100),
    service: GeocodingService = Depends(get_geocoding_service),
):
    results = await service.search(q, count=count)
    return LocationSearchResponse(
        query=q,
        count=len(results),
        results=[LocationOut(**r.to_dict()) for r in results],
    )


@router.get(
    "/variables",
    response_model=VariablesResponse,
    summary="Supported weather variables",
)
async def list_variables():
    return VariablesResponse(variables=list(SUPPORTED_VARIABLES))
