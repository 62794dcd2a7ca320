"""FastAPI dependency factories wiring services to their collaborators."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from citywatch.config import Settings, get_settings
from citywatch.database import get_db
from citywatch.services.detection_client import DetectionClient, DetectionPolling
from citywatch.services.heatmap import HeatmapService
from citywatch.services.incidents import IncidentService
from citywatch.services.spatial_resolver import SpatialResolver
from citywatch.services.storage import ObjectStore


async def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """
    Identity of the caller.

    Set by the authentication layer in front of the API; requests without
    it are rejected.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def get_detection_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> DetectionClient:
    return DetectionClient(
        base_url=settings.detection_api_url,
        api_key=settings.detection_api_key,
        client_id=settings.detection_client_id,
        timeout=settings.detection_timeout_seconds,
    )


def get_object_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ObjectStore:
    return ObjectStore(
        supabase_url=settings.supabase_url,
        service_key=settings.supabase_service_role_key,
        base_url=settings.storage_base_url,
    )


def get_incident_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    detection_client: Annotated[DetectionClient, Depends(get_detection_client)],
    object_store: Annotated[ObjectStore, Depends(get_object_store)],
) -> IncidentService:
    return IncidentService(
        db=db,
        detection_client=detection_client,
        spatial_resolver=SpatialResolver(db),
        object_store=object_store,
        polling=DetectionPolling(
            settle_seconds=settings.detection_settle_seconds,
            max_attempts=settings.detection_max_attempts,
            backoff_initial_seconds=settings.detection_backoff_initial_seconds,
            backoff_max_seconds=settings.detection_backoff_max_seconds,
            deadline_seconds=settings.detection_deadline_seconds,
        ),
        model_version=settings.detection_model_version,
        photo_bucket=settings.photo_bucket,
    )


def get_heatmap_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HeatmapService:
    return HeatmapService(
        db=db,
        grid_size=settings.heatmap_grid_size_degrees,
        radius_m=settings.heatmap_point_radius_m,
    )
