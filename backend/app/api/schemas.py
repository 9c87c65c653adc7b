"""
Pydantic schemas for the probability API.

Separated from the route handlers so they are reusable across the
codebase (route handlers, tests, API clients). Field aliases give the
camelCase keys the frontend charts consume.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DataSourceOut(str, Enum):
    COMBINED = "combined"
    HISTORICAL = "historical"
    DEFAULT = "default"


class MonthlyDataOut(BaseModel):
    """One month of the 12-entry series."""
    model_config = ConfigDict(populate_by_name=True)

    month: str = Field(..., examples=["Jul"])
    probability: int = Field(..., ge=0, le=100)
    avg_temperature: Optional[float] = Field(None, alias="avgTemperature")
    avg_precipitation: Optional[float] = Field(None, alias="avgPrecipitation")
    avg_wind_speed: Optional[float] = Field(None, alias="avgWindSpeed")


class ProbabilityResponse(BaseModel):
    """Headline probability for the selected month plus the full series."""
    model_config = ConfigDict(populate_by_name=True)

    probability: int = Field(..., ge=0, le=100)
    monthly_data: List[MonthlyDataOut] = Field(..., alias="monthlyData")
    data_source: DataSourceOut = Field(..., alias="dataSource")


class LocationOut(BaseModel):
    id: int
    name: str
    display_name: str
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    country: Optional[str] = None
    admin1: Optional[str] = None
    admin2: Optional[str] = None
    timezone: Optional[str] = None


class LocationSearchResponse(BaseModel):
    query: str
    count: int
    results: List[LocationOut]


class VariablesResponse(BaseModel):
    variables: List[str]
