"""DetectionRecord model: audit trail of the detection service's answer."""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from citywatch.database import Base

JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class DetectionRecord(Base):
    """Detection result linked to an incident, including the raw response."""

    __tablename__ = "yolo_detections"

    detection_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    incident_id: Mapped[str] = mapped_column(
        ForeignKey("incidents.incident_id"), nullable=False, index=True
    )
    category_id: Mapped[str] = mapped_column(
        ForeignKey("incident_categories.category_id"), nullable=False
    )
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    bounding_box: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload)
    model_version: Mapped[str | None] = mapped_column(String(50))
    num_detecciones: Mapped[int | None] = mapped_column(Integer)
    url_resultado: Mapped[str | None] = mapped_column(Text)
    yolo_response_raw: Mapped[dict[str, Any] | None] = mapped_column(JSONPayload)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<DetectionRecord {self.incident_id}: {self.confidence}>"
