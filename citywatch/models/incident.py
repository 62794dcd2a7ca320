"""Incident and IncidentCategory models for citizen reports."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from citywatch.database import Base


class IncidentCategory(Base):
    """Internal incident category (POTHOLE, CRACK, ...)."""

    __tablename__ = "incident_categories"

    category_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"<IncidentCategory {self.code}>"


class Incident(Base):
    """
    Urban incident reported by a citizen.

    The id is generated by the reporting client. ``photo_url`` holds the
    storage-relative path; public URLs are rebuilt on read. An incident is
    only written once district and category are both resolved.
    """

    __tablename__ = "incidents"

    incident_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    reported_by: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500))

    # Classification
    category_id: Mapped[str] = mapped_column(
        ForeignKey("incident_categories.category_id"), nullable=False
    )
    ai_detected_category: Mapped[str | None] = mapped_column(String(32))
    ai_confidence: Mapped[float | None] = mapped_column(Float)

    photo_url: Mapped[str] = mapped_column(String(512), nullable=False)

    # Location
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    district_code: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # Heatmap window queries
        Index("idx_incidents_created_district", created_at, district_code),
    )

    def __repr__(self) -> str:
        return f"<Incident {self.incident_id}: {self.ai_detected_category}>"
