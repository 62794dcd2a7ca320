"""Pytest fixtures for CityWatch backend tests."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from citywatch.config import Settings
from citywatch.database import Base, get_db
from citywatch.dependencies import get_detection_client
from citywatch.main import app, limiter
from citywatch.models import IncidentCategory
from citywatch.schemas.detection import DetectionResult
from citywatch.services.detection_client import DetectionClient, DetectionPolling
from citywatch.services.storage import ObjectStore

# Test database URL - uses SQLite for isolation (no PostGIS features tested)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

SUPABASE_URL = "https://proj.supabase.co"
PUBLIC_BASE = f"{SUPABASE_URL}/storage/v1/object/public"

# Every table except the PostGIS-only districts table
SQLITE_TABLES = [table for name, table in Base.metadata.tables.items() if name != "districts"]


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        detection_api_url="https://detector.test",
        detection_api_key="test_key",
        detection_client_id="test_client",
        supabase_url=SUPABASE_URL,
        supabase_service_role_key="service_key",
        debug=True,
    )


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
    )
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=SQLITE_TABLES)

    async_session = sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def categories(db_session: AsyncSession) -> dict[str, str]:
    """Seed the internal categories; returns code -> category_id."""
    ids = {}
    for code in ["POTHOLE", "CRACK", "MANHOLE", "GARBAGE", "LIGHTING", "OTHER"]:
        category_id = str(uuid4())
        db_session.add(IncidentCategory(category_id=category_id, code=code, name=code.title()))
        ids[code] = category_id
    await db_session.commit()
    return ids


@pytest.fixture
def fast_polling() -> DetectionPolling:
    """Polling budget without real waits."""
    return DetectionPolling(
        settle_seconds=0,
        max_attempts=5,
        backoff_initial_seconds=0,
        backoff_max_seconds=0,
        deadline_seconds=5,
    )


@pytest.fixture
def object_store() -> ObjectStore:
    return ObjectStore(supabase_url=SUPABASE_URL, service_key="service_key")


@pytest.fixture
def mock_detection_client() -> DetectionClient:
    """Detection client with mocked network calls."""
    client = DetectionClient(
        base_url="https://detector.test",
        api_key="test_key",
        client_id="test_client",
    )
    client.submit = AsyncMock()
    client.fetch_result = AsyncMock()
    return client


@pytest.fixture
def mock_resolver() -> MagicMock:
    resolver = MagicMock()
    resolver.resolve_district = AsyncMock(return_value="SJLUR")
    return resolver


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, mock_detection_client: DetectionClient
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and detection service overrides."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_detection_client] = lambda: mock_detection_client

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def detection_envelope() -> dict[str, Any]:
    """Completed detection response from the detection service."""
    return {
        "client_id": "test_client",
        "created_at": "2025-11-09T04:47:48.253398",
        "estado": "completado",
        "resultado": {
            "categoria": "bache",
            "confianza": 0.93,
            "detalles": {"boxes": [[12, 40, 220, 310]], "clases": ["bache"]},
            "num_detecciones": 1,
            "timestamp": "2025-11-09T04:47:50.100000",
            "url_resultado": "https://res.cloudinary.com/demo/yolo_annotated_550e8400.jpg",
        },
        "updated_at": "2025-11-09T04:47:50.100000",
        "url_imagen": f"{PUBLIC_BASE}/yolo_model/user123_1699999999.jpg",
        "uuid_consulta": "550e8400-e29b-41d4-a716-446655440000",
    }


@pytest.fixture
def make_detection():
    """Factory for DetectionResult objects used by pipeline tests."""

    def _make(category: str = "bache", confidence: float = 0.93) -> DetectionResult:
        return DetectionResult(
            category=category,
            confidence=confidence,
            detection_count=1,
            result_url="https://res.cloudinary.com/demo/annotated.jpg",
            details={"boxes": [[1, 2, 3, 4]]},
            raw={"estado": "completado", "resultado": {"categoria": category}},
        )

    return _make


@pytest.fixture
def sample_datetime() -> datetime:
    """Sample datetime for testing."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)
