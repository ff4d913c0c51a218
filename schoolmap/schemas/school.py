from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class OfstedRating(str, Enum):
    """Overall effectiveness judgements as published by Ofsted."""

    OUTSTANDING = "Outstanding"
    GOOD = "Good"
    REQUIRES_IMPROVEMENT = "Requires Improvement"
    INADEQUATE = "Inadequate"
    SERIOUS_WEAKNESSES = "Serious Weaknesses"
    SPECIAL_MEASURES = "Special Measures"


class SchoolRecord(BaseModel):
    """A school with both its National Grid and WGS84 coordinates."""

    model_config = ConfigDict(frozen=True)

    urn: str
    establishment_number: str | None = None
    name: str
    phase: str
    ofsted_rating: OfstedRating | None = None
    pupil_count: int | None = None
    easting: float
    northing: float
    lat: float
    lng: float
