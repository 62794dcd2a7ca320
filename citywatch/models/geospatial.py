"""GeospatialAnalysis and HeatmapPoint models."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from citywatch.database import Base
from citywatch.models.detection import JSONPayload


class GeospatialAnalysis(Base):
    """
    One run of a spatial aggregation over a time window.

    Lifecycle: pending -> processing -> completed | failed. The row is
    committed in ``processing`` before any point is written, so its status
    is visible while the run is in flight.
    """

    __tablename__ = "geospatial_analyses"

    analysis_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    analysis_type: Mapped[str] = mapped_column(String(20), nullable=False)  # heatmap|cluster|hotspot
    bounding_box: Mapped[dict[str, float]] = mapped_column(JSONPayload, nullable=False)
    time_range_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time_range_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    district_code: Mapped[str | None] = mapped_column(String(20))
    requested_by: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    results: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload)
    error_message: Mapped[str | None] = mapped_column(Text)
    generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<GeospatialAnalysis {self.analysis_id}: {self.status}>"


class HeatmapPoint(Base):
    """Occupied grid cell of a heatmap analysis."""

    __tablename__ = "heatmap_points"

    point_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    analysis_id: Mapped[str] = mapped_column(
        ForeignKey("geospatial_analyses.analysis_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    intensity: Mapped[float] = mapped_column(Float, nullable=False)
    incident_count: Mapped[int] = mapped_column(Integer, nullable=False)
    radius: Mapped[int] = mapped_column(Integer, nullable=False)  # meters

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<HeatmapPoint {self.latitude},{self.longitude}: {self.intensity}>"
