#!/usr/bin/env python3
"""
Seed CityWatch reference data.

Upserts the internal incident categories and, when a GeoJSON file is given,
the district boundaries used by get_district_by_coordinates.

Usage: seed_reference_data.py [districts.geojson]
Each GeoJSON feature needs ``properties.code`` and ``properties.name``.
"""

import asyncio
import json
import os
import sys
import uuid
from pathlib import Path

import asyncpg
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "").replace("+asyncpg", "").replace("postgresql://", "postgres://")

# Category ids are derived from the code so reruns keep the same ids.
CATEGORY_NAMESPACE = uuid.UUID("8c0d6f3e-2b7a-4c55-9a61-3f1e5d2c7b90")

CATEGORIES = {
    "POTHOLE": "Bache",
    "CRACK": "Grieta",
    "MANHOLE": "Alcantarilla",
    "GARBAGE": "Basura",
    "LIGHTING": "Iluminacion",
    "OTHER": "Otro",
}


def log(msg):
    """Print with flush for immediate output."""
    print(msg, flush=True)


def category_rows() -> list[tuple[str, str, str]]:
    return [
        (str(uuid.uuid5(CATEGORY_NAMESPACE, code)), code, name)
        for code, name in CATEGORIES.items()
    ]


def district_rows(geojson_path: str) -> list[tuple[str, str, str]]:
    """(code, name, geometry json) per feature; features without a code are skipped."""
    with open(geojson_path, "r", encoding="utf-8") as f:
        collection = json.load(f)

    rows = []
    for feature in collection.get("features", []):
        props = feature.get("properties") or {}
        code = props.get("code")
        geometry = feature.get("geometry")
        if not code or not geometry:
            log(f"Skipping feature without code/geometry: {props}")
            continue
        rows.append((str(code), props.get("name") or str(code), json.dumps(geometry)))
    return rows


async def seed(geojson_path: str | None):
    log("Connecting to database...")
    conn = await asyncpg.connect(DATABASE_URL)

    try:
        await conn.executemany(
            """
            INSERT INTO incident_categories (category_id, code, name)
            VALUES ($1, $2, $3)
            ON CONFLICT (code) DO UPDATE SET name = EXCLUDED.name
            """,
            category_rows(),
        )
        log(f"Seeded {len(CATEGORIES)} incident categories")

        if geojson_path:
            rows = district_rows(geojson_path)
            await conn.executemany(
                """
                INSERT INTO districts (district_code, name, boundary)
                VALUES ($1, $2, ST_Multi(ST_SetSRID(ST_GeomFromGeoJSON($3), 4326)))
                ON CONFLICT (district_code) DO UPDATE SET
                    name = EXCLUDED.name,
                    boundary = EXCLUDED.boundary
                """,
                rows,
            )
            log(f"Seeded {len(rows)} districts")

        total = await conn.fetchval("SELECT COUNT(*) FROM districts")
        log(f"Districts in DB: {total:,}")
    finally:
        await conn.close()


if __name__ == "__main__":
    geojson_path = sys.argv[1] if len(sys.argv) > 1 else None

    if geojson_path and not Path(geojson_path).exists():
        log(f"Error: GeoJSON file not found: {geojson_path}")
        sys.exit(1)

    asyncio.run(seed(geojson_path))
