"""Services for incident ingestion, storage, and spatial aggregation."""

from citywatch.services.detection_client import DetectionClient, DetectionPolling
from citywatch.services.heatmap import HeatmapService
from citywatch.services.incidents import IncidentService
from citywatch.services.spatial_resolver import SpatialResolver
from citywatch.services.storage import ObjectStore, StorageBucket

__all__ = [
    "DetectionClient",
    "DetectionPolling",
    "HeatmapService",
    "IncidentService",
    "ObjectStore",
    "SpatialResolver",
    "StorageBucket",
]
