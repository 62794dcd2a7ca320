"""Client for the external image-detection service (two-phase submit/fetch)."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from citywatch.errors import (
    DetectionFetchError,
    DetectionNotReady,
    DetectionResultUnavailableError,
    DetectionSubmitError,
)
from citywatch.schemas.detection import (
    CredentialStatus,
    DetectionAck,
    DetectionPayload,
    DetectionResult,
)

logger = logging.getLogger(__name__)

FAILED_STATES = {"error", "fallido", "failed"}


@dataclass(frozen=True)
class DetectionPolling:
    """Retry budget for fetching a detection result."""

    settle_seconds: float = 2.0
    max_attempts: int = 5
    backoff_initial_seconds: float = 1.0
    backoff_max_seconds: float = 8.0
    deadline_seconds: float = 30.0


class DetectionClient:
    """
    Client for the detection API.

    The service computes asynchronously: ``submit`` registers a job keyed by
    the caller's query id and ``fetch_result`` reads it back. A result that is
    still processing raises ``DetectionNotReady``; ``wait_for_result`` wraps
    the fetch in a bounded retry with exponential backoff and a deadline.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        client_id: str,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client_id = client_id
        self.timeout = timeout

        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "X-API-Key": api_key,
        }

    def _detections_url(self, query_id: str | None = None) -> str:
        url = f"{self.base_url}/api/v1/detecciones"
        return f"{url}/{query_id}" if query_id else url

    async def submit(self, query_id: str, image_url: str) -> DetectionAck:
        """
        Submit a detection job for a publicly reachable image.

        Raises:
            DetectionSubmitError: If the service rejects the job or is unreachable.
        """
        url = self._detections_url()
        payload = {"uuid_consulta": query_id, "url_imagen": image_url}

        logger.info(f"Submitting detection job {query_id}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=self.headers, json=payload)
                response.raise_for_status()
                ack = DetectionAck.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Detection submit rejected for {query_id}: "
                f"{e.response.status_code} {e.response.text[:500]}"
            )
            raise DetectionSubmitError(detail=f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Detection service unreachable on submit: {e}")
            raise DetectionSubmitError(detail=str(e)) from e
        except ValueError as e:
            # Covers invalid JSON and pydantic validation errors
            logger.error(f"Malformed detection submit response for {query_id}: {e}")
            raise DetectionSubmitError(detail=str(e)) from e

        logger.info(f"Detection job {query_id} accepted - estado: {ack.estado}")
        return ack

    async def fetch_result(self, query_id: str) -> DetectionResult:
        """
        Fetch the result of a detection job.

        Raises:
            DetectionNotReady: The job is still processing.
            DetectionFetchError: Unknown id, failed job, malformed response, or transport error.
        """
        url = self._detections_url(query_id)

        logger.info(f"Fetching detection result {query_id}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self.headers)
                response.raise_for_status()
                envelope = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Detection fetch failed for {query_id}: "
                f"{e.response.status_code} {e.response.text[:500]}"
            )
            raise DetectionFetchError(detail=f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"Detection service unreachable on fetch: {e}")
            raise DetectionFetchError(detail=str(e)) from e
        except ValueError as e:
            logger.error(f"Invalid JSON in detection result for {query_id}: {e}")
            raise DetectionFetchError(detail=str(e)) from e

        return self._parse_result(query_id, envelope)

    def _parse_result(self, query_id: str, envelope: Any) -> DetectionResult:
        """Turn the service envelope into a DetectionResult."""
        if not isinstance(envelope, dict):
            raise DetectionFetchError(detail=f"Unexpected envelope type {type(envelope).__name__}")

        state = envelope.get("estado")
        if isinstance(state, str) and state.lower() in FAILED_STATES:
            logger.error(f"Detection job {query_id} failed remotely (estado={state})")
            raise DetectionFetchError(detail=f"estado={state}")

        resultado = envelope.get("resultado")
        if not resultado:
            raise DetectionNotReady(query_id, state)

        try:
            payload = DetectionPayload.model_validate(resultado)
        except ValidationError as e:
            logger.error(f"Malformed detection result for {query_id}: {e}")
            raise DetectionFetchError(detail=str(e)) from e

        logger.info(
            f"Detection result {query_id} - categoria: {payload.categoria}, "
            f"confianza: {payload.confianza}"
        )
        return DetectionResult(
            category=payload.categoria,
            confidence=payload.confianza,
            detection_count=payload.num_detecciones,
            result_url=payload.url_resultado,
            details=payload.detalles,
            raw=envelope,
        )

    async def wait_for_result(
        self,
        query_id: str,
        polling: DetectionPolling | None = None,
    ) -> DetectionResult:
        """
        Wait for a submitted job to complete.

        Sleeps the settle interval, then fetches, backing off exponentially
        while the job is not ready. Stops after ``max_attempts`` fetches or
        once the deadline has passed, whichever comes first.

        Raises:
            DetectionResultUnavailableError: Retry budget exhausted.
            DetectionFetchError: Propagated from the first non-retryable failure.
        """
        polling = polling or DetectionPolling()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + polling.deadline_seconds

        await asyncio.sleep(polling.settle_seconds)

        delay = polling.backoff_initial_seconds
        max_attempts = max(1, polling.max_attempts)
        last_state: str | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                return await self.fetch_result(query_id)
            except DetectionNotReady as e:
                last_state = e.state

            remaining = deadline - loop.time()
            if attempt == max_attempts or remaining <= 0:
                break

            wait_time = max(0.0, min(delay, polling.backoff_max_seconds, remaining))
            logger.info(
                f"Detection {query_id} not ready (attempt {attempt}/{max_attempts}), "
                f"retry in {wait_time:.1f}s"
            )
            await asyncio.sleep(wait_time)
            delay = min(delay * 2, polling.backoff_max_seconds)

        logger.warning(f"Detection {query_id} still not ready after {attempt} attempts")
        raise DetectionResultUnavailableError(
            detail=f"query_id={query_id} attempts={attempt} estado={last_state}"
        )

    async def verify_credentials(self) -> CredentialStatus:
        """
        Check the configured API key against the service.

        Raises:
            DetectionFetchError: If verification fails.
        """
        url = f"{self.base_url}/api/v1/clients/verify"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self.headers)
                response.raise_for_status()
                data = response.json()
            client_info = data["client"]
            status = CredentialStatus(
                success=bool(data.get("success")),
                client_id=client_info["client_id"],
                is_active=bool(client_info.get("is_active")),
            )
        except httpx.HTTPError as e:
            logger.error(f"Detection credentials verification failed: {e}")
            raise DetectionFetchError("Credentials verification failed", detail=str(e)) from e
        except (ValueError, KeyError, TypeError) as e:
            logger.error(f"Malformed credentials verification response: {e}")
            raise DetectionFetchError("Credentials verification failed", detail=str(e)) from e

        if status.client_id != self.client_id:
            logger.warning(
                f"Detection API key belongs to client {status.client_id}, "
                f"configured client is {self.client_id}"
            )
        logger.info(f"Detection credentials verified - client: {status.client_id}")
        return status
