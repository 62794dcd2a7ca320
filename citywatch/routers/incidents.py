"""API routes for citizen incident reports."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from citywatch.config import Settings, get_settings
from citywatch.dependencies import get_current_user_id, get_incident_service
from citywatch.errors import InputValidationError
from citywatch.schemas.incident import (
    CreateIncidentRequest,
    IncidentCreateResponse,
    UploadPhotoResponse,
)
from citywatch.services.incidents import PHOTO_EXTENSIONS, IncidentService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/incidents", tags=["incidents"])


@router.post("/upload-photo", response_model=UploadPhotoResponse, status_code=201)
async def upload_photo(
    service: Annotated[IncidentService, Depends(get_incident_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    photo: UploadFile = File(..., description="Incident photo (JPG/PNG)"),
) -> UploadPhotoResponse:
    """Upload an incident photo and return its public URL."""
    if photo.content_type not in PHOTO_EXTENSIONS:
        raise InputValidationError("Only JPG/PNG files allowed")

    data = await photo.read()
    if not data:
        raise InputValidationError("No file uploaded")
    if len(data) > settings.photo_max_bytes:
        raise InputValidationError(
            f"File too large (max {settings.photo_max_bytes // (1024 * 1024)}MB)"
        )

    upload = await service.upload_photo(data, photo.content_type, user_id)

    return UploadPhotoResponse(photo_id=upload.photo_id, photo_url=upload.photo_url)


@router.post("/create", response_model=IncidentCreateResponse, status_code=201)
async def create_incident(
    dto: CreateIncidentRequest,
    service: Annotated[IncidentService, Depends(get_incident_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> IncidentCreateResponse:
    """
    Create an incident from an already uploaded photo.

    Resolves the district, classifies the photo with the detection service,
    and stores the incident with its detection record.
    """
    return await service.create_incident(
        incident_id=str(dto.incident_id),
        photo_url=str(dto.photo_url),
        latitude=dto.latitude,
        longitude=dto.longitude,
        description=dto.description,
        reporter_id=user_id,
    )
