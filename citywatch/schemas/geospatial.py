"""Pydantic schemas for geospatial analyses."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BoundingBox(BaseModel):
    """Bounding box of an analysed point set."""

    min_lat: float = Field(..., ge=-90, le=90)
    max_lat: float = Field(..., ge=-90, le=90)
    min_lng: float = Field(..., ge=-180, le=180)
    max_lng: float = Field(..., ge=-180, le=180)


class CreateHeatmapRequest(BaseModel):
    """Parameters for heatmap generation."""

    time_range_start: datetime = Field(..., description="Start of the window (inclusive)")
    time_range_end: datetime = Field(..., description="End of the window (inclusive)")
    district_code: str | None = Field(None, description="Optional district filter")

    @field_validator("time_range_start", "time_range_end")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Timestamps without an offset are taken as UTC."""
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    @model_validator(mode="after")
    def check_range(self) -> "CreateHeatmapRequest":
        if self.time_range_start > self.time_range_end:
            raise ValueError("time_range_start must not be after time_range_end")
        return self


class HeatmapSummary(BaseModel):
    """Outcome of a completed heatmap run."""

    analysis_id: str
    total_points: int
    max_intensity: float
    generated_at: datetime


class HeatmapResponse(BaseModel):
    """Envelope returned by the heatmap endpoint."""

    success: bool = True
    data: HeatmapSummary


class HeatmapPointOut(BaseModel):
    """Heatmap point response schema."""

    model_config = ConfigDict(from_attributes=True)

    point_id: str
    latitude: float
    longitude: float
    intensity: float
    incident_count: int
    radius: int


class AnalysisDetail(BaseModel):
    """Analysis status with its points (empty while still processing)."""

    model_config = ConfigDict(from_attributes=True)

    analysis_id: str
    analysis_type: str
    status: str
    bounding_box: BoundingBox
    time_range_start: datetime
    time_range_end: datetime
    district_code: str | None = None
    requested_by: str
    results: dict[str, Any] | None = None
    error_message: str | None = None
    generated_at: datetime | None = None
    points: list[HeatmapPointOut] = Field(default_factory=list)
