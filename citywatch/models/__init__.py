"""Database models."""

from citywatch.models.detection import DetectionRecord
from citywatch.models.district import District
from citywatch.models.geospatial import GeospatialAnalysis, HeatmapPoint
from citywatch.models.incident import Incident, IncidentCategory

__all__ = [
    "DetectionRecord",
    "District",
    "GeospatialAnalysis",
    "HeatmapPoint",
    "Incident",
    "IncidentCategory",
]
