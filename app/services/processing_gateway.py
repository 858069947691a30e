from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import Settings
from app.core.errors import GatewayError

logger = logging.getLogger(__name__)


class ProcessingGateway:
    """
    HTTP client for the external document processor.

    Two submission styles exist upstream:
      - gateway_url: multipart file upload to `/process`, status under `/tasks/{id}/status`
      - processor_url: JSON pointer to an object already in S3
    Single attempt, no retry.
    """

    def __init__(
        self,
        http: httpx.Client,
        *,
        gateway_url: Optional[str] = None,
        processor_url: Optional[str] = None,
    ):
        self.http = http
        self.gateway_url = gateway_url.rstrip("/") if gateway_url else None
        self.processor_url = processor_url

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProcessingGateway":
        return cls(
            httpx.Client(timeout=settings.gateway_timeout_seconds),
            gateway_url=settings.processing_gateway_url,
            processor_url=settings.processor_url,
        )

    @property
    def processor_configured(self) -> bool:
        return bool(self.processor_url)

    def _require_gateway(self) -> str:
        if not self.gateway_url:
            raise GatewayError("PROCESSING_GATEWAY_URL is not configured")
        return self.gateway_url

    def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("[gateway] %s %s transport error: %s", method, url, exc)
            raise GatewayError(f"Processing gateway unreachable: {exc}") from exc

        if not resp.is_success:
            logger.warning("[gateway] %s %s returned %s", method, url, resp.status_code)
            raise GatewayError(f"Processing gateway returned {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GatewayError("Processing gateway returned non-JSON body") from exc
        if not isinstance(data, dict):
            raise GatewayError("Processing gateway returned unexpected JSON")
        return data

    def submit_file(
        self, *, project_id: str, filename: str, content: bytes, content_type: str
    ) -> str:
        base = self._require_gateway()
        data = self._send(
            "POST",
            f"{base}/process",
            params={"project_id": project_id},
            files={"file": (filename, content, content_type)},
        )
        task_id = data.get("task_id")
        if not task_id:
            raise GatewayError("Processing gateway response carried no task_id")
        logger.info("[gateway] file %s accepted as task %s", filename, task_id)
        return str(task_id)

    def submit_pointer(self, *, project_id: str, s3_uri: str, filename: str) -> Optional[str]:
        """
        Returns the task id (`task_id` or `id` field), or None when the
        processor accepted the job without reporting one.
        """
        if not self.processor_url:
            raise GatewayError("PROCESSOR_URL is not configured")
        data = self._send(
            "POST",
            self.processor_url,
            json={
                "input": {
                    "project_id": project_id,
                    "s3_file_path": s3_uri,
                    "filename": filename,
                }
            },
        )
        task_id = data.get("task_id") or data.get("id")
        logger.info("[gateway] %s dispatched, task=%s", s3_uri, task_id)
        return str(task_id) if task_id else None

    def task_status(self, task_id: str) -> Dict[str, Any]:
        base = self._require_gateway()
        return self._send("GET", f"{base}/tasks/{task_id}/status")

    def close(self) -> None:
        self.http.close()
