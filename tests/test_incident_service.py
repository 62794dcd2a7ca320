"""Tests for the incident ingestion pipeline."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from citywatch.errors import (
    CategoryNotFoundError,
    DetectionNotReady,
    DetectionResultUnavailableError,
    DetectionSubmitError,
    DistrictUnresolvedError,
    InputValidationError,
    MappingIntegrityError,
    StorageWriteError,
)
from citywatch.models import DetectionRecord, Incident
from citywatch.schemas.detection import DetectionAck
from citywatch.services.incidents import IncidentService
from citywatch.services.storage import StoredObject

PUBLIC_BASE = "https://proj.supabase.co/storage/v1/object/public"
PHOTO_URL = f"{PUBLIC_BASE}/yolo_model/user_1_1731600000000.jpg"
DESCRIPTION = "Bache profundo frente al mercado"


@pytest.fixture
def service(db_session, mock_detection_client, mock_resolver, object_store, fast_polling):
    mock_detection_client.submit.return_value = DetectionAck(estado="procesando")
    return IncidentService(
        db=db_session,
        detection_client=mock_detection_client,
        spatial_resolver=mock_resolver,
        object_store=object_store,
        polling=fast_polling,
    )


async def count_rows(db_session, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar()


async def create(service, incident_id=None, latitude=-12.0464, longitude=-77.0428):
    return await service.create_incident(
        incident_id=incident_id or str(uuid4()),
        photo_url=PHOTO_URL,
        latitude=latitude,
        longitude=longitude,
        description=DESCRIPTION,
        reporter_id="user_1",
    )


class TestCreateIncident:
    """Tests for IncidentService.create_incident."""

    @pytest.mark.asyncio
    async def test_create_after_polling(
        self, service, db_session, categories, mock_detection_client, make_detection
    ):
        mock_detection_client.fetch_result.side_effect = [
            DetectionNotReady("q", "procesando"),
            DetectionNotReady("q", "procesando"),
            make_detection("bache", 0.93),
        ]
        incident_id = str(uuid4())

        response = await create(service, incident_id)

        assert response.success is True
        assert response.incident_id == incident_id
        assert response.category_code == "POTHOLE"
        assert response.detected_category == "bache"
        assert response.district_code == "SJLUR"
        assert response.priority == "high"
        assert response.photo_url == PHOTO_URL
        assert response.url_resultado == "https://res.cloudinary.com/demo/annotated.jpg"
        assert mock_detection_client.fetch_result.call_count == 3
        mock_detection_client.submit.assert_awaited_once_with(incident_id, PHOTO_URL)

        incident = await db_session.get(Incident, incident_id)
        assert incident.photo_url == "user_1_1731600000000.jpg"
        assert incident.category_id == categories["POTHOLE"]
        assert incident.reported_by == "user_1"
        assert incident.status == "pending"
        assert incident.ai_confidence == 0.93

        result = await db_session.execute(
            select(DetectionRecord).where(DetectionRecord.incident_id == incident_id)
        )
        record = result.scalar_one()
        assert record.category_id == categories["POTHOLE"]
        assert record.model_version == "yolo-lima-v1.0"
        assert record.bounding_box == {"boxes": [[1, 2, 3, 4]]}
        assert record.yolo_response_raw["estado"] == "completado"

    @pytest.mark.asyncio
    async def test_unresolved_district_skips_detection(
        self, service, db_session, categories, mock_detection_client, mock_resolver
    ):
        mock_resolver.resolve_district.return_value = None

        with pytest.raises(DistrictUnresolvedError) as exc_info:
            await create(service, latitude=0.0, longitude=0.0)

        assert exc_info.value.status_code == 400
        mock_detection_client.submit.assert_not_called()
        mock_detection_client.fetch_result.assert_not_called()
        assert await count_rows(db_session, Incident) == 0

    @pytest.mark.asyncio
    async def test_coordinates_out_of_range(self, service, mock_resolver):
        with pytest.raises(InputValidationError):
            await create(service, latitude=91.0)

        mock_resolver.resolve_district.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_label_writes_nothing(
        self, service, db_session, categories, mock_detection_client, make_detection
    ):
        mock_detection_client.fetch_result.return_value = make_detection("charco", 0.8)

        with pytest.raises(MappingIntegrityError) as exc_info:
            await create(service)

        assert exc_info.value.status_code == 422
        assert await count_rows(db_session, Incident) == 0
        assert await count_rows(db_session, DetectionRecord) == 0

    @pytest.mark.asyncio
    async def test_category_missing_from_database(
        self, service, db_session, mock_detection_client, make_detection
    ):
        mock_detection_client.fetch_result.return_value = make_detection("grieta", 0.8)

        with pytest.raises(CategoryNotFoundError) as exc_info:
            await create(service)

        assert exc_info.value.status_code == 404
        assert await count_rows(db_session, Incident) == 0

    @pytest.mark.asyncio
    async def test_result_never_ready(
        self, service, db_session, categories, mock_detection_client, fast_polling
    ):
        mock_detection_client.fetch_result.side_effect = DetectionNotReady("q", "procesando")

        with pytest.raises(DetectionResultUnavailableError):
            await create(service)

        assert mock_detection_client.fetch_result.call_count == fast_polling.max_attempts
        assert await count_rows(db_session, Incident) == 0

    @pytest.mark.asyncio
    async def test_submit_failure_aborts(self, service, db_session, categories, mock_detection_client):
        mock_detection_client.submit.side_effect = DetectionSubmitError(detail="HTTP 500")

        with pytest.raises(DetectionSubmitError):
            await create(service)

        mock_detection_client.fetch_result.assert_not_called()
        assert await count_rows(db_session, Incident) == 0

    @pytest.mark.asyncio
    async def test_detection_record_failure_is_soft(
        self, service, db_session, categories, mock_detection_client, make_detection, monkeypatch
    ):
        mock_detection_client.fetch_result.return_value = make_detection("basura", 0.75)
        original_commit = db_session.commit
        commits = {"count": 0}

        async def flaky_commit():
            commits["count"] += 1
            if commits["count"] == 2:
                raise SQLAlchemyError("detection record insert failed")
            await original_commit()

        monkeypatch.setattr(db_session, "commit", flaky_commit)
        incident_id = str(uuid4())

        response = await create(service, incident_id)

        assert response.success is True
        assert response.category_code == "GARBAGE"
        assert response.priority == "medium"
        assert await db_session.get(Incident, incident_id) is not None
        assert await count_rows(db_session, DetectionRecord) == 0

    @pytest.mark.asyncio
    async def test_non_storage_photo_url_rejected(
        self, service, db_session, categories, mock_detection_client, mock_resolver
    ):
        with pytest.raises(InputValidationError) as exc_info:
            await service.create_incident(
                incident_id=str(uuid4()),
                photo_url="https://example.com/photo.jpg",
                latitude=-12.0464,
                longitude=-77.0428,
                description=DESCRIPTION,
                reporter_id="user_1",
            )

        assert exc_info.value.status_code == 400
        mock_resolver.resolve_district.assert_not_called()
        mock_detection_client.submit.assert_not_called()
        assert await count_rows(db_session, Incident) == 0

    @pytest.mark.asyncio
    async def test_photo_in_other_bucket_keeps_its_bucket(
        self, service, db_session, categories, mock_detection_client, make_detection
    ):
        mock_detection_client.fetch_result.return_value = make_detection("otro", 0.5)
        photo_url = f"{PUBLIC_BASE}/incidents/reports/a.jpg"
        incident_id = str(uuid4())

        response = await service.create_incident(
            incident_id=incident_id,
            photo_url=photo_url,
            latitude=-12.0464,
            longitude=-77.0428,
            description=DESCRIPTION,
            reporter_id="user_1",
        )

        assert response.photo_url == photo_url
        incident = await db_session.get(Incident, incident_id)
        assert incident.photo_url == "reports/a.jpg"


class TestUploadPhoto:
    """Tests for IncidentService.upload_photo."""

    @pytest.mark.asyncio
    async def test_upload_photo(self, service, object_store):
        object_store.put = AsyncMock(
            side_effect=lambda bucket, path, data, content_type, overwrite: StoredObject(
                bucket=str(bucket),
                relative_path=path,
                public_url=object_store.public_url(bucket, path),
            )
        )

        upload = await service.upload_photo(b"\x89PNG", "image/png", "user_1")

        assert upload.photo_id.startswith("user_1_")
        assert upload.relative_path == f"{upload.photo_id}.png"
        assert upload.photo_url == f"{PUBLIC_BASE}/yolo_model/{upload.photo_id}.png"
        args = object_store.put.call_args
        assert args.args[0] == "yolo_model"
        assert args.args[3] == "image/png"
        assert args.kwargs["overwrite"] is False

    @pytest.mark.asyncio
    async def test_upload_rejects_other_types(self, service, object_store):
        object_store.put = AsyncMock()

        with pytest.raises(InputValidationError):
            await service.upload_photo(b"GIF89a", "image/gif", "user_1")

        object_store.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_storage_failure(self, service, object_store):
        object_store.put = AsyncMock(side_effect=StorageWriteError(detail="HTTP 500"))

        with pytest.raises(StorageWriteError):
            await service.upload_photo(b"\xff\xd8", "image/jpeg", "user_1")
