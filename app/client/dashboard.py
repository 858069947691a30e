from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import httpx

from app.core.streaming import iter_sse_data
from app.core.uploads import guess_content_type, validate_upload

logger = logging.getLogger(__name__)


class UploadStatus(str, Enum):
    idle = "idle"
    uploading = "uploading"
    uploaded = "uploaded"
    processing = "processing"
    completed = "completed"


def filter_projects(projects: Iterable[Dict[str, Any]], query: Optional[str]) -> List[Dict[str, Any]]:
    """Case-insensitive substring match on name or description."""
    items = list(projects)
    q = (query or "").strip().lower()
    if not q:
        return items
    return [
        p for p in items
        if q in (p.get("name") or "").lower() or q in (p.get("description") or "").lower()
    ]


def schema_from_fields(fields: Iterable[str]) -> str:
    names = [f.strip() for f in fields if f and f.strip()]
    if not names:
        raise ValueError("At least one schema field is required")
    return json.dumps({name: "string" for name in names})


def schema_field_count(schema_text: Optional[str]) -> int:
    try:
        data = json.loads(schema_text or "")
    except ValueError:
        return 0
    return len(data) if isinstance(data, dict) else 0


@dataclass
class UploadTracker:
    """Client-side view of one file moving through the upload relay."""

    filename: str
    status: UploadStatus = UploadStatus.idle
    progress: int = 0
    task_id: Optional[str] = None
    error: Optional[str] = None
    events: List[Dict[str, Any]] = field(default_factory=list)

    def apply(self, event: Dict[str, Any]) -> None:
        self.events.append(event)
        kind = event.get("type")
        if kind == "uploading":
            self.status = UploadStatus.uploading
            self.progress = int(event.get("progress") or 0)
        elif kind == "uploaded":
            self.status = UploadStatus.uploaded
            self.progress = 100
        elif kind == "processing":
            self.status = UploadStatus.processing
            if event.get("taskId"):
                self.task_id = event["taskId"]
        elif kind == "error":
            self.fail(event.get("message") or "Upload failed")

    def fail(self, message: str) -> None:
        self.status = UploadStatus.idle
        self.progress = 0
        self.error = message

    def finish(self) -> None:
        """Called when the stream closes."""
        if self.error:
            return
        if self.status == UploadStatus.processing:
            self.status = UploadStatus.completed
        else:
            self.fail("Upload stream ended before processing started")


class DashboardClient:
    """
    Thin HTTP client for the dashboard API. Accepts any httpx.Client
    (FastAPI's TestClient included) whose base_url points at the service root.
    """

    def __init__(self, http: httpx.Client, *, api_prefix: str = "/api"):
        self.http = http
        self.prefix = api_prefix.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.prefix}{path}"

    # ---------- projects ----------

    def list_projects(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        resp = self.http.get(self._url("/projects"))
        resp.raise_for_status()
        return filter_projects(resp.json()["projects"], search)

    def create_project(
        self, name: str, fields: Iterable[str], description: Optional[str] = None
    ) -> Dict[str, Any]:
        resp = self.http.post(
            self._url("/projects"),
            json={
                "name": name,
                "description": description,
                "schema": schema_from_fields(fields),
            },
        )
        resp.raise_for_status()
        return resp.json()["project"]

    def get_project(self, project_id: str) -> Dict[str, Any]:
        resp = self.http.get(self._url(f"/projects/{project_id}"))
        resp.raise_for_status()
        return resp.json()["project"]

    def update_project(
        self, project_id: str, *, name: str, schema: str, description: Optional[str] = None
    ) -> Dict[str, Any]:
        resp = self.http.put(
            self._url(f"/projects/{project_id}"),
            json={"name": name, "description": description, "schema": schema},
        )
        resp.raise_for_status()
        return resp.json()["project"]

    def delete_project(self, project_id: str) -> None:
        self.http.delete(self._url(f"/projects/{project_id}")).raise_for_status()

    # ---------- proposals / tasks ----------

    def list_proposals(self, project_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"project_id": project_id} if project_id else None
        resp = self.http.get(self._url("/proposals"), params=params)
        resp.raise_for_status()
        return resp.json()["proposals"]

    def task_status(self, task_id: str) -> Dict[str, Any]:
        resp = self.http.get(self._url(f"/tasks/{task_id}/status"))
        resp.raise_for_status()
        return resp.json()

    def upload(self, project_id: str, filename: str, content: bytes) -> UploadTracker:
        """
        Validate locally, then follow the relay stream to completion.
        Failures never raise; they leave the tracker idle with `error` set.
        """
        tracker = UploadTracker(filename=filename)
        reason = validate_upload(filename, len(content))
        if reason:
            tracker.fail(reason)
            return tracker

        tracker.status = UploadStatus.uploading
        try:
            with self.http.stream(
                "POST",
                self._url("/proposals/upload"),
                files={"file": (filename, content, guess_content_type(filename))},
                data={"projectId": project_id},
            ) as resp:
                if not resp.is_success:
                    tracker.fail(f"Upload request failed ({resp.status_code})")
                    return tracker
                for event in iter_sse_data(resp.iter_lines()):
                    tracker.apply(event)
        except httpx.HTTPError as exc:
            logger.warning("[client] upload of %s failed: %s", filename, exc)
            tracker.fail(str(exc))
            return tracker

        tracker.finish()
        return tracker
