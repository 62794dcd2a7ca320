"""Pydantic schemas for incident ingestion."""

from uuid import UUID

from pydantic import BaseModel, Field, HttpUrl, field_validator

PHOTO_URL_MAX_LENGTH = 512  # incidents.photo_url column width


class CreateIncidentRequest(BaseModel):
    """Incident submitted by the mobile client after the photo upload."""

    incident_id: UUID = Field(..., description="Incident UUID generated by the client")
    photo_url: HttpUrl = Field(..., description="Public URL of the uploaded photo")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    description: str = Field(..., min_length=10, max_length=500)

    @field_validator("photo_url")
    @classmethod
    def check_photo_url_length(cls, value: HttpUrl) -> HttpUrl:
        if len(str(value)) > PHOTO_URL_MAX_LENGTH:
            raise ValueError(f"photo_url must be at most {PHOTO_URL_MAX_LENGTH} characters")
        return value


class IncidentCreateResponse(BaseModel):
    """Response for a successfully ingested incident."""

    success: bool = True
    incident_id: str
    photo_url: str
    detected_category: str
    confidence: float
    category_code: str
    district_code: str
    priority: str
    url_resultado: str | None = None
    message: str = "Incident created successfully"


class PhotoUpload(BaseModel):
    """Stored incident photo."""

    photo_id: str
    photo_url: str
    relative_path: str


class UploadPhotoResponse(BaseModel):
    """Response for the photo upload endpoint."""

    success: bool = True
    photo_id: str
    photo_url: str
    message: str = "Photo uploaded successfully"
