"""District model: administrative boundaries used for point lookup."""

from geoalchemy2 import Geometry
from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from citywatch.database import Base


class District(Base):
    """Administrative district boundary (PostGIS multipolygon)."""

    __tablename__ = "districts"

    district_code: Mapped[str] = mapped_column(String(20), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    boundary: Mapped[str] = mapped_column(
        Geometry("MULTIPOLYGON", srid=4326, spatial_index=False), nullable=False
    )

    __table_args__ = (
        Index("idx_districts_boundary", boundary, postgresql_using="gist"),
    )

    def __repr__(self) -> str:
        return f"<District {self.district_code}: {self.name}>"
