"""Pydantic schemas for API request/response validation."""

from citywatch.schemas.detection import CredentialStatus, DetectionAck, DetectionResult
from citywatch.schemas.geospatial import (
    AnalysisDetail,
    BoundingBox,
    CreateHeatmapRequest,
    HeatmapPointOut,
    HeatmapResponse,
    HeatmapSummary,
)
from citywatch.schemas.incident import (
    CreateIncidentRequest,
    IncidentCreateResponse,
    PhotoUpload,
    UploadPhotoResponse,
)

__all__ = [
    "AnalysisDetail",
    "BoundingBox",
    "CreateHeatmapRequest",
    "CreateIncidentRequest",
    "CredentialStatus",
    "DetectionAck",
    "DetectionResult",
    "HeatmapPointOut",
    "HeatmapResponse",
    "HeatmapSummary",
    "IncidentCreateResponse",
    "PhotoUpload",
    "UploadPhotoResponse",
]
