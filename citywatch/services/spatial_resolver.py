"""District resolution through the PostGIS lookup function."""

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class SpatialResolver:
    """Maps a coordinate to the code of the district containing it."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_district(self, latitude: float, longitude: float) -> str | None:
        """
        District code containing (latitude, longitude).

        Returns None when no district matches. Query failures are logged
        and also reported as None.
        """
        logger.info(f"Detecting district for coordinates: ({latitude}, {longitude})")
        try:
            result = await self.db.execute(
                text("SELECT get_district_by_coordinates(:lat, :lng)"),
                {"lat": latitude, "lng": longitude},
            )
            district_code = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning(f"PostGIS district detection failed: {e}")
            await self.db.rollback()
            return None

        if not district_code:
            logger.warning("No district found for coordinates")
            return None

        logger.info(f"District detected: {district_code}")
        return district_code
