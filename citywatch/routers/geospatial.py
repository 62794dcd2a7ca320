"""API routes for geospatial analyses."""

from typing import Annotated

from fastapi import APIRouter, Depends

from citywatch.dependencies import get_current_user_id, get_heatmap_service
from citywatch.schemas.geospatial import AnalysisDetail, CreateHeatmapRequest, HeatmapResponse
from citywatch.services.heatmap import HeatmapService

router = APIRouter(prefix="/geospatial", tags=["geospatial"])


@router.post("/heatmap", response_model=HeatmapResponse, status_code=201)
async def generate_heatmap(
    dto: CreateHeatmapRequest,
    service: Annotated[HeatmapService, Depends(get_heatmap_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> HeatmapResponse:
    """
    Generate a heatmap by clustering incidents into a ~500m grid.

    Intensity (0.0 - 1.0) is the cell's incident count normalized against
    the least and most populated cells of the run.
    """
    summary = await service.generate_heatmap(
        time_range_start=dto.time_range_start,
        time_range_end=dto.time_range_end,
        requested_by=user_id,
        district_code=dto.district_code,
    )
    return HeatmapResponse(data=summary)


@router.get("/analyses/{analysis_id}", response_model=AnalysisDetail)
async def get_analysis(
    analysis_id: str,
    service: Annotated[HeatmapService, Depends(get_heatmap_service)],
    user_id: Annotated[str, Depends(get_current_user_id)],
) -> AnalysisDetail:
    """Get an analysis with its status and heatmap points."""
    return await service.get_analysis(analysis_id)
