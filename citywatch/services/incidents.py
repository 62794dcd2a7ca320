"""Incident ingestion pipeline: photo + coordinates -> classified, persisted incident."""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from citywatch.errors import (
    CategoryNotFoundError,
    DistrictUnresolvedError,
    InputValidationError,
    MappingIntegrityError,
    PersistenceError,
)
from citywatch.models import DetectionRecord, Incident, IncidentCategory
from citywatch.schemas.detection import DetectionResult
from citywatch.schemas.incident import IncidentCreateResponse, PhotoUpload
from citywatch.services.categories import map_category, priority_for
from citywatch.services.detection_client import DetectionClient, DetectionPolling
from citywatch.services.spatial_resolver import SpatialResolver
from citywatch.services.storage import ObjectStore, StorageBucket

logger = logging.getLogger(__name__)

PHOTO_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg"}


class IncidentService:
    """
    Orchestrates incident ingestion.

    Steps run strictly in order and any failure aborts the rest. Nothing
    already written is rolled back: the incident row is committed before
    the detection record, and a failed detection record write is only
    logged.
    """

    def __init__(
        self,
        db: AsyncSession,
        detection_client: DetectionClient,
        spatial_resolver: SpatialResolver,
        object_store: ObjectStore,
        polling: DetectionPolling | None = None,
        model_version: str = "yolo-lima-v1.0",
        photo_bucket: str = StorageBucket.YOLO_MODEL,
    ):
        self.db = db
        self.detection_client = detection_client
        self.spatial_resolver = spatial_resolver
        self.object_store = object_store
        self.polling = polling or DetectionPolling()
        self.model_version = model_version
        self.photo_bucket = photo_bucket

    async def upload_photo(
        self, data: bytes, content_type: str, reporter_id: str
    ) -> PhotoUpload:
        """Store an incident photo as ``{reporter}_{epoch_ms}.{ext}``."""
        extension = PHOTO_EXTENSIONS.get(content_type)
        if extension is None:
            raise InputValidationError("Only JPG/PNG files allowed")

        timestamp = int(datetime.now(UTC).timestamp() * 1000)
        photo_id = f"{reporter_id}_{timestamp}"

        stored = await self.object_store.put(
            self.photo_bucket,
            f"{photo_id}.{extension}",
            data,
            content_type,
            overwrite=False,
        )
        return PhotoUpload(
            photo_id=photo_id,
            photo_url=stored.public_url,
            relative_path=stored.relative_path,
        )

    async def get_category_id_by_code(self, code: str) -> str:
        """Primary key of the persisted category with this code."""
        result = await self.db.execute(
            select(IncidentCategory.category_id).where(IncidentCategory.code == code)
        )
        category_id = result.scalar_one_or_none()
        if category_id is None:
            logger.error(f"Category with code {code} not found")
            raise CategoryNotFoundError(f"Category with code {code} not found")
        return category_id

    async def create_incident(
        self,
        incident_id: str,
        photo_url: str,
        latitude: float,
        longitude: float,
        description: str,
        reporter_id: str,
    ) -> IncidentCreateResponse:
        """
        Run the ingestion pipeline for one incident.

        Raises:
            InputValidationError: Coordinates out of range, or the photo URL is not a
                public storage URL.
            DistrictUnresolvedError: No district contains the point.
            DetectionSubmitError, DetectionFetchError: Detection service failure.
            DetectionResultUnavailableError: Result not ready within the retry budget.
            MappingIntegrityError: Detected label has no internal category code.
            CategoryNotFoundError: Category code missing from the database.
            PersistenceError: Incident row could not be written.
        """
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise InputValidationError("Coordinates out of range")

        photo = self.object_store.locate(photo_url)
        if photo is None:
            raise InputValidationError("Photo URL is not a public storage URL")

        logger.info(f"Creating incident {incident_id} for user: {reporter_id}")

        # 1. District first, so unlocatable reports never reach the detection service
        district_code = await self.spatial_resolver.resolve_district(latitude, longitude)
        if not district_code:
            raise DistrictUnresolvedError()

        # 2-3. Detection job, then bounded polling for its result
        await self.detection_client.submit(incident_id, photo_url)
        detection = await self.detection_client.wait_for_result(incident_id, self.polling)

        # 4. Label -> internal code
        category_code = map_category(detection.category)
        if category_code is None:
            logger.error(f"Unknown detection category: {detection.category}")
            raise MappingIntegrityError(f"Unknown detection category: {detection.category}")

        # 5. Internal code -> category record
        category_id = await self.get_category_id_by_code(category_code)

        # 6. Incident row, storing only the relative photo path
        await self._insert_incident(
            Incident(
                incident_id=incident_id,
                reported_by=reporter_id,
                description=description,
                category_id=category_id,
                ai_detected_category=detection.category,
                ai_confidence=detection.confidence,
                photo_url=photo.relative_path,
                latitude=latitude,
                longitude=longitude,
                district_code=district_code,
                status="pending",
            )
        )

        # 7. Detection audit record (soft fail)
        await self._insert_detection_record(incident_id, category_id, detection)

        logger.info(f"Incident created successfully: {incident_id}")

        return IncidentCreateResponse(
            incident_id=incident_id,
            photo_url=photo.public_url,
            detected_category=detection.category,
            confidence=detection.confidence,
            category_code=category_code,
            district_code=district_code,
            priority=priority_for(detection.confidence).value,
            url_resultado=detection.result_url,
        )

    async def _insert_incident(self, incident: Incident) -> None:
        logger.info("Inserting incident into database...")
        try:
            self.db.add(incident)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Incident insert failed: {e}")
            raise PersistenceError("Incident creation failed", detail=str(e)) from e

    async def _insert_detection_record(
        self, incident_id: str, category_id: str, detection: DetectionResult
    ) -> bool:
        """Write the detection record; returns False (and logs) on failure."""
        try:
            self.db.add(
                DetectionRecord(
                    incident_id=incident_id,
                    category_id=category_id,
                    confidence=detection.confidence,
                    bounding_box=detection.details,
                    model_version=self.model_version,
                    num_detecciones=detection.detection_count,
                    url_resultado=detection.result_url,
                    yolo_response_raw=detection.raw,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Detection record insert failed for {incident_id}: {e}")
            return False
        return True
