"""Database setup with SQLAlchemy async and PostGIS support."""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from citywatch.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

REQUIRED_TABLES = (
    "incidents",
    "incident_categories",
    "yolo_detections",
    "districts",
    "geospatial_analyses",
    "heatmap_points",
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_db_ready() -> None:
    """
    Verify database connectivity and expected schema.

    Checks that PostGIS is enabled, the district lookup function exists,
    and required tables exist.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

        # PostGIS is required for district resolution.
        postgis = await conn.execute(
            text("SELECT 1 FROM pg_extension WHERE extname = 'postgis' LIMIT 1")
        )
        if postgis.first() is None:
            raise RuntimeError("PostGIS extension is not installed.")

        lookup_fn = await conn.execute(
            text("SELECT 1 FROM pg_proc WHERE proname = 'get_district_by_coordinates' LIMIT 1")
        )
        if lookup_fn.first() is None:
            raise RuntimeError("Function get_district_by_coordinates is missing.")

        columns = ", ".join(f"to_regclass('public.{name}') AS {name}" for name in REQUIRED_TABLES)
        tables = await conn.execute(text(f"SELECT {columns}"))
        row = tables.first()
        missing = [
            name
            for index, name in enumerate(REQUIRED_TABLES)
            if row is None or row[index] is None
        ]
        if missing:
            raise RuntimeError(
                f"Database schema is missing tables: {', '.join(missing)} "
                "(run migrations)."
            )
