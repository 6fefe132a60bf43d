from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class PlaceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    review_count: int = Field(default=0, ge=0)
    price_level: int | None = Field(default=None, ge=0, le=4)
    address: str = ""
    coordinates: Coordinates | None = None
    open_now: bool | None = None
    categories: list[str] = Field(default_factory=list)


class ScoreFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    rating_score: float
    popularity_score: float
    review_count_score: float
    quality_score: float


class ScoredPlace(BaseModel):
    model_config = ConfigDict(frozen=True)

    place: PlaceRecord
    score: float
    factors: ScoreFactors
    explanation: str


class ResolvedLocation(BaseModel):
    coordinates: Coordinates
    normalized_name: str
    confidence: float = Field(..., ge=0.0, le=1.0)
