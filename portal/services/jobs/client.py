"""
Client for the external job REST server.
Jobs are owned by the job-execution system; the portal only reads them and
asks the server to stop them.
"""
import logging
import time
from typing import Any
from urllib.parse import quote

import httpx
import pybreaker
import yaml
from pydantic import ValidationError

from portal.core.config import settings
from portal.core.errors import JobServiceError
from portal.schemas.jobs import JobInfo
from portal.services.circuit_breaker import get_circuit_breaker
from portal.utils.metrics import job_rest_request_duration_seconds, metrics

logger = logging.getLogger(__name__)


def job_path(username: str, job_name: str) -> str:
    return f"/api/v2/jobs/{quote(username, safe='')}~{quote(job_name, safe='')}"


class JobClient:
    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
        breaker: pybreaker.CircuitBreaker | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(
            base_url=base_url or settings.rest_server_uri,
            timeout=timeout or settings.rest_server_timeout,
            headers=headers,
            transport=transport,
        )
        self._breaker = breaker or get_circuit_breaker("job_rest_server")

    def __enter__(self) -> "JobClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def list_jobs(self, username: str) -> list[JobInfo]:
        response = self._request("list_jobs", "GET", "/api/v2/jobs", params={"username": username})
        items = response.json()
        if isinstance(items, dict):
            items = items.get("data") or []
        jobs = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                jobs.append(JobInfo.from_list_item(item))
            except ValidationError as e:
                # Skip the bad record, keep the rest.
                logger.warning(
                    "job_list_item_malformed",
                    extra={"username": username, "job_name": item.get("name"), "error": str(e)},
                )
        return jobs

    def get_job(self, username: str, job_name: str) -> JobInfo:
        response = self._request("get_job", "GET", job_path(username, job_name))
        try:
            return JobInfo.model_validate(response.json())
        except ValidationError as e:
            raise JobServiceError(f"Job service returned a malformed job {job_name}", cause=e) from e

    def get_job_config(self, username: str, job_name: str) -> dict[str, Any] | None:
        """Job config as a mapping, or None when the server has none for this job."""
        response = self._request(
            "get_job_config", "GET", f"{job_path(username, job_name)}/config", allow_missing=True
        )
        if response is None:
            return None
        try:
            config = yaml.safe_load(response.text)
        except yaml.YAMLError as e:
            logger.warning("job_config_unparsable", extra={"job_name": job_name, "error": str(e)})
            return None
        return config if isinstance(config, dict) else None

    def stop_job(self, username: str, job_name: str) -> None:
        self._request(
            "stop_job", "PUT", f"{job_path(username, job_name)}/executionType", json={"value": "STOP"}
        )
        metrics.inc_job_stop()
        logger.info("job_stop_requested", extra={"username": username, "job_name": job_name})

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        allow_missing: bool = False,
        **kwargs: Any,
    ) -> httpx.Response | None:
        started = time.monotonic()
        try:
            response = self._breaker.call(self._send, method, path, **kwargs)
        except pybreaker.CircuitBreakerError as e:
            metrics.inc_job_request(operation, "circuit_open")
            raise JobServiceError("Job service is temporarily unavailable", cause=e) from e
        except httpx.HTTPError as e:
            metrics.inc_job_request(operation, "error")
            logger.warning("job_rest_request_failed", extra={"path": path, "method": method, "error": str(e)})
            raise JobServiceError(f"Job service request failed: {e}", cause=e) from e
        finally:
            job_rest_request_duration_seconds.labels(operation=operation).observe(time.monotonic() - started)

        if response.status_code == 404 and allow_missing:
            metrics.inc_job_request(operation, "missing")
            return None
        if response.status_code >= 400:
            metrics.inc_job_request(operation, str(response.status_code))
            raise JobServiceError(f"Job service returned {response.status_code} for {path}")
        metrics.inc_job_request(operation, "ok")
        return response

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = self._client.request(method, path, **kwargs)
        if response.status_code >= 500:
            # Only server-side failures count against the breaker.
            response.raise_for_status()
        return response
