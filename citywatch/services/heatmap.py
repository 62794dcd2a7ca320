"""Heatmap aggregation: grid clustering of incidents into normalized cells."""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from citywatch.errors import (
    AnalysisNotFoundError,
    InputValidationError,
    NoIncidentsFoundError,
    PersistenceError,
)
from citywatch.models import GeospatialAnalysis, HeatmapPoint, Incident
from citywatch.schemas.geospatial import AnalysisDetail, HeatmapPointOut, HeatmapSummary

logger = logging.getLogger(__name__)

GRID_SIZE_DEGREES = 0.0045  # ~500m cells at the equator; narrower in longitude away from it
DEFAULT_RADIUS_METERS = 500


@dataclass(frozen=True)
class HeatmapCell:
    """Aggregated grid cell, positioned at its center."""

    latitude: float
    longitude: float
    intensity: float
    incident_count: int


def grid_cell_index(latitude: float, longitude: float, grid_size: float = GRID_SIZE_DEGREES) -> tuple[int, int]:
    """Integer cell coordinates, anchored at (0, 0)."""
    return math.floor(latitude / grid_size), math.floor(longitude / grid_size)


def grid_cell_key(latitude: float, longitude: float, grid_size: float = GRID_SIZE_DEGREES) -> tuple[float, float]:
    """South-west corner of the cell containing the point."""
    lat_index, lng_index = grid_cell_index(latitude, longitude, grid_size)
    return lat_index * grid_size, lng_index * grid_size


def cell_center(lat_index: int, lng_index: int, grid_size: float = GRID_SIZE_DEGREES) -> tuple[float, float]:
    return lat_index * grid_size + grid_size / 2, lng_index * grid_size + grid_size / 2


def as_utc(value: datetime) -> datetime:
    """Naive timestamps are taken as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def normalize_intensity(count: int, min_count: int, max_count: int) -> float:
    """Count scaled to [0, 1], rounded half-up to 2 decimals."""
    if max_count == min_count:
        return 1.0
    intensity = (count - min_count) / (max_count - min_count)
    return math.floor(intensity * 100 + 0.5) / 100


def compute_bounding_box(points: Iterable[tuple[float, float]]) -> dict[str, float]:
    points = list(points)
    if not points:
        raise ValueError("Cannot compute bounding box of an empty point set")
    lats = [lat for lat, _ in points]
    lngs = [lng for _, lng in points]
    return {
        "min_lat": min(lats),
        "max_lat": max(lats),
        "min_lng": min(lngs),
        "max_lng": max(lngs),
    }


def compute_heatmap_cells(
    points: Iterable[tuple[float, float]],
    grid_size: float = GRID_SIZE_DEGREES,
) -> list[HeatmapCell]:
    """
    Group points into fixed square cells and normalize their counts.

    Cells are anchored to a global origin, so a coordinate always lands in
    the same cell whatever else is in the batch. The densest cell gets
    intensity 1.0 and the sparsest 0.0; when every cell has the same count
    all intensities are 1.0.
    """
    counts: dict[tuple[int, int], int] = {}
    for latitude, longitude in points:
        index = grid_cell_index(latitude, longitude, grid_size)
        counts[index] = counts.get(index, 0) + 1

    if not counts:
        return []

    min_count = min(counts.values())
    max_count = max(counts.values())

    cells = []
    for (lat_index, lng_index), count in counts.items():
        latitude, longitude = cell_center(lat_index, lng_index, grid_size)
        cells.append(
            HeatmapCell(
                latitude=latitude,
                longitude=longitude,
                intensity=normalize_intensity(count, min_count, max_count),
                incident_count=count,
            )
        )
    return cells


class HeatmapService:
    """
    Builds heatmap analyses from persisted incidents.

    The analysis row is committed in ``processing`` before its points are
    written. Any failure after that marks it ``failed``.
    """

    def __init__(
        self,
        db: AsyncSession,
        grid_size: float = GRID_SIZE_DEGREES,
        radius_m: int = DEFAULT_RADIUS_METERS,
    ):
        self.db = db
        self.grid_size = grid_size
        self.radius_m = radius_m

    async def fetch_incident_locations(
        self,
        time_range_start: datetime,
        time_range_end: datetime,
        district_code: str | None = None,
    ) -> list[tuple[float, float]]:
        """Coordinates of incidents created within the window (inclusive)."""
        query = select(Incident.latitude, Incident.longitude).where(
            Incident.created_at >= time_range_start,
            Incident.created_at <= time_range_end,
        )
        if district_code:
            query = query.where(Incident.district_code == district_code)

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching incidents: {e}")
            raise PersistenceError("Failed to fetch incidents", detail=str(e)) from e

        return [(float(lat), float(lng)) for lat, lng in result.all()]

    async def generate_heatmap(
        self,
        time_range_start: datetime,
        time_range_end: datetime,
        requested_by: str,
        district_code: str | None = None,
    ) -> HeatmapSummary:
        """
        Generate and persist a heatmap analysis.

        Raises:
            InputValidationError: Start of the window is after its end.
            NoIncidentsFoundError: No incident in the window; no analysis is created.
            PersistenceError: Database failure (the analysis, if created, is marked failed).
        """
        time_range_start = as_utc(time_range_start)
        time_range_end = as_utc(time_range_end)
        if time_range_start > time_range_end:
            raise InputValidationError("time_range_start must not be after time_range_end")

        logger.info(
            f"Generating heatmap for user {requested_by}: "
            f"{time_range_start} - {time_range_end}, district={district_code}"
        )

        points = await self.fetch_incident_locations(time_range_start, time_range_end, district_code)
        if not points:
            logger.warning("No incidents found for the given filters")
            raise NoIncidentsFoundError()

        logger.info(f"Found {len(points)} incidents")

        analysis = await self._create_analysis(
            bounding_box=compute_bounding_box(points),
            time_range_start=time_range_start,
            time_range_end=time_range_end,
            district_code=district_code,
            requested_by=requested_by,
        )
        analysis_id = analysis.analysis_id

        try:
            cells = compute_heatmap_cells(points, self.grid_size)
            logger.info(f"Generated {len(cells)} heatmap points")

            self.db.add_all(
                HeatmapPoint(
                    analysis_id=analysis_id,
                    latitude=cell.latitude,
                    longitude=cell.longitude,
                    intensity=cell.intensity,
                    incident_count=cell.incident_count,
                    radius=self.radius_m,
                )
                for cell in cells
            )

            max_intensity = max(cell.intensity for cell in cells)
            generated_at = datetime.now(UTC)

            analysis.status = "completed"
            analysis.generated_at = generated_at
            analysis.results = {
                "total_points": len(cells),
                "max_intensity": max_intensity,
            }
            await self.db.commit()
        except Exception as e:
            await self._mark_failed(analysis_id, str(e))
            if isinstance(e, SQLAlchemyError):
                raise PersistenceError("Failed to store heatmap points", detail=str(e)) from e
            raise

        logger.info(f"Heatmap {analysis_id} completed")

        return HeatmapSummary(
            analysis_id=analysis_id,
            total_points=len(cells),
            max_intensity=max_intensity,
            generated_at=generated_at,
        )

    async def _create_analysis(self, **values) -> GeospatialAnalysis:
        analysis = GeospatialAnalysis(analysis_type="heatmap", status="processing", **values)
        try:
            self.db.add(analysis)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating analysis: {e}")
            raise PersistenceError("Failed to create geospatial analysis", detail=str(e)) from e

        logger.info(f"Created analysis with ID: {analysis.analysis_id}")
        return analysis

    async def _mark_failed(self, analysis_id: str, reason: str) -> None:
        """Move an in-flight analysis to ``failed``; errors here are only logged."""
        logger.error(f"Heatmap {analysis_id} failed: {reason}")
        try:
            await self.db.rollback()
            analysis = await self.db.get(GeospatialAnalysis, analysis_id)
            if analysis is not None:
                analysis.status = "failed"
                analysis.error_message = reason[:1000]
                await self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Could not mark analysis {analysis_id} as failed: {e}")

    async def get_analysis(self, analysis_id: str) -> AnalysisDetail:
        """Analysis with its heatmap points."""
        analysis = await self.db.get(GeospatialAnalysis, analysis_id)
        if analysis is None:
            raise AnalysisNotFoundError()

        result = await self.db.execute(
            select(HeatmapPoint)
            .where(HeatmapPoint.analysis_id == analysis_id)
            .order_by(HeatmapPoint.intensity.desc())
        )
        points = [HeatmapPointOut.model_validate(point) for point in result.scalars().all()]

        return AnalysisDetail(
            analysis_id=analysis.analysis_id,
            analysis_type=analysis.analysis_type,
            status=analysis.status,
            bounding_box=analysis.bounding_box,
            time_range_start=analysis.time_range_start,
            time_range_end=analysis.time_range_end,
            district_code=analysis.district_code,
            requested_by=analysis.requested_by,
            results=analysis.results,
            error_message=analysis.error_message,
            generated_at=analysis.generated_at,
            points=points,
        )
