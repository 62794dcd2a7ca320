"""Initial schema for CityWatch.

Revision ID: 5f2b8c41d9e0
Revises: None
Create Date: 2025-11-15
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from geoalchemy2 import Geometry
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "5f2b8c41d9e0"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    # PostGIS is required for district boundaries.
    op.execute(sa.text("CREATE EXTENSION IF NOT EXISTS postgis"))

    op.create_table(
        "districts",
        sa.Column("district_code", sa.String(length=20), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "boundary",
            Geometry("MULTIPOLYGON", srid=4326, spatial_index=False),
            nullable=False,
        ),
        if_not_exists=True,
    )

    op.create_table(
        "incident_categories",
        sa.Column("category_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.UniqueConstraint("code"),
        if_not_exists=True,
    )

    op.create_table(
        "incidents",
        sa.Column("incident_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("reported_by", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("incident_categories.category_id"),
            nullable=False,
        ),
        sa.Column("ai_detected_category", sa.String(length=32), nullable=True),
        sa.Column("ai_confidence", sa.Float(), nullable=True),
        sa.Column("photo_url", sa.String(length=512), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("district_code", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        _created_at(),
        if_not_exists=True,
    )

    op.create_table(
        "yolo_detections",
        sa.Column("detection_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "incident_id",
            sa.String(length=36),
            sa.ForeignKey("incidents.incident_id"),
            nullable=False,
        ),
        sa.Column(
            "category_id",
            sa.String(length=36),
            sa.ForeignKey("incident_categories.category_id"),
            nullable=False,
        ),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("bounding_box", postgresql.JSONB(), nullable=True),
        sa.Column("model_version", sa.String(length=50), nullable=True),
        sa.Column("num_detecciones", sa.Integer(), nullable=True),
        sa.Column("url_resultado", sa.Text(), nullable=True),
        sa.Column("yolo_response_raw", postgresql.JSONB(), nullable=True),
        _created_at(),
        if_not_exists=True,
    )

    op.create_table(
        "geospatial_analyses",
        sa.Column("analysis_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("analysis_type", sa.String(length=20), nullable=False),
        sa.Column("bounding_box", postgresql.JSONB(), nullable=False),
        sa.Column("time_range_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("time_range_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("district_code", sa.String(length=20), nullable=True),
        sa.Column("requested_by", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("results", postgresql.JSONB(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint(
            "analysis_type IN ('heatmap', 'cluster', 'hotspot')",
            name="ck_geospatial_analyses_type",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_geospatial_analyses_status",
        ),
        if_not_exists=True,
    )

    op.create_table(
        "heatmap_points",
        sa.Column("point_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "analysis_id",
            sa.String(length=36),
            sa.ForeignKey("geospatial_analyses.analysis_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("intensity", sa.Float(), nullable=False),
        sa.Column("incident_count", sa.Integer(), nullable=False),
        sa.Column("radius", sa.Integer(), nullable=False),
        _created_at(),
        sa.CheckConstraint("intensity >= 0 AND intensity <= 1", name="ck_heatmap_points_intensity"),
        if_not_exists=True,
    )

    # Point-in-district lookup used by the ingestion pipeline.
    op.execute(
        sa.text(
            """
            CREATE OR REPLACE FUNCTION get_district_by_coordinates(lat double precision, lng double precision)
            RETURNS varchar
            LANGUAGE sql STABLE
            AS $$
                SELECT district_code
                FROM districts
                WHERE ST_Contains(boundary, ST_SetSRID(ST_MakePoint(lng, lat), 4326))
                ORDER BY district_code
                LIMIT 1
            $$
            """
        )
    )

    # Indexes
    op.create_index(
        "idx_districts_boundary",
        "districts",
        ["boundary"],
        postgresql_using="gist",
        if_not_exists=True,
    )
    op.create_index(
        "ix_incidents_district_code",
        "incidents",
        ["district_code"],
        if_not_exists=True,
    )
    op.create_index(
        "idx_incidents_created_district",
        "incidents",
        ["created_at", "district_code"],
        if_not_exists=True,
    )
    op.create_index(
        "ix_yolo_detections_incident_id",
        "yolo_detections",
        ["incident_id"],
        if_not_exists=True,
    )
    op.create_index(
        "ix_geospatial_analyses_status",
        "geospatial_analyses",
        ["status"],
        if_not_exists=True,
    )
    op.create_index(
        "ix_heatmap_points_analysis_id",
        "heatmap_points",
        ["analysis_id"],
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("ix_heatmap_points_analysis_id", table_name="heatmap_points", if_exists=True)
    op.drop_index(
        "ix_geospatial_analyses_status", table_name="geospatial_analyses", if_exists=True
    )
    op.drop_index("ix_yolo_detections_incident_id", table_name="yolo_detections", if_exists=True)
    op.drop_index("idx_incidents_created_district", table_name="incidents", if_exists=True)
    op.drop_index("ix_incidents_district_code", table_name="incidents", if_exists=True)
    op.drop_index("idx_districts_boundary", table_name="districts", if_exists=True)

    op.execute(sa.text("DROP FUNCTION IF EXISTS get_district_by_coordinates(double precision, double precision)"))

    op.drop_table("heatmap_points", if_exists=True)
    op.drop_table("geospatial_analyses", if_exists=True)
    op.drop_table("yolo_detections", if_exists=True)
    op.drop_table("incidents", if_exists=True)
    op.drop_table("incident_categories", if_exists=True)
    op.drop_table("districts", if_exists=True)
