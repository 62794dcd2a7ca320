"""Pydantic schemas for the external detection service."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DetectionAck(BaseModel):
    """Acknowledgement returned when a detection job is submitted."""

    model_config = ConfigDict(extra="allow")

    estado: str
    uuid_consulta: str | None = None
    message: str | None = None
    success: bool | None = None
    created_at: str | None = None


class DetectionPayload(BaseModel):
    """The ``resultado`` block of a completed detection."""

    model_config = ConfigDict(extra="allow")

    categoria: str
    confianza: float = Field(..., ge=0.0, le=1.0)
    num_detecciones: int = 0
    url_resultado: str | None = None
    detalles: dict[str, Any] = Field(default_factory=dict)
    timestamp: str | None = None


class DetectionResult(BaseModel):
    """Usable detection result, plus the full envelope kept for audit."""

    category: str
    confidence: float
    detection_count: int
    result_url: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict)


class CredentialStatus(BaseModel):
    """Outcome of the credentials verification call."""

    success: bool
    client_id: str
    is_active: bool
