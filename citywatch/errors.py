"""Error taxonomy shared by the ingestion pipeline and the heatmap engine.

Each error carries a stable, client-visible ``message`` and an HTTP
``status_code``. ``detail`` holds diagnostic context (upstream bodies,
driver errors) that is logged but never returned to clients.
"""


class CityWatchError(Exception):
    """Base exception for CityWatch errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, detail: str | None = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InputValidationError(CityWatchError):
    """Malformed input, rejected before any external call."""

    status_code = 400
    default_message = "Invalid request data"


class NotFoundError(CityWatchError):
    """A required record or result does not exist."""

    status_code = 404
    default_message = "Resource not found"


class DistrictUnresolvedError(NotFoundError):
    status_code = 400
    default_message = "Unable to detect district for provided coordinates"


class CategoryNotFoundError(NotFoundError):
    default_message = "Incident category not found"


class DetectionResultUnavailableError(NotFoundError):
    """Detection result still missing after the retry budget ran out."""

    status_code = 504
    default_message = "Detection result not available"


class NoIncidentsFoundError(NotFoundError):
    status_code = 400
    default_message = "No incidents found for heatmap generation"


class AnalysisNotFoundError(NotFoundError):
    default_message = "Analysis not found"


class UpstreamError(CityWatchError):
    """A collaborator (detection service, object store, database) failed."""

    status_code = 502
    default_message = "Upstream service failure"


class DetectionSubmitError(UpstreamError):
    default_message = "Detection request was rejected"


class DetectionFetchError(UpstreamError):
    default_message = "Detection result could not be retrieved"


class StorageWriteError(UpstreamError):
    default_message = "File upload failed"


class StorageDeleteError(UpstreamError):
    default_message = "File deletion failed"


class PersistenceError(UpstreamError):
    default_message = "Database write failed"


class MappingIntegrityError(CityWatchError):
    """Detected label has no known internal category code."""

    status_code = 422
    default_message = "Unknown detection category"


class DetectionNotReady(Exception):
    """Detection job has not finished; the caller may retry."""

    def __init__(self, query_id: str, state: str | None = None):
        self.query_id = query_id
        self.state = state
        super().__init__(f"Detection {query_id} not ready (estado={state})")
