# app/services/upload_relay.py
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterator

from app.core.errors import GatewayError, ObjectStorageError
from app.core.uploads import MAX_FILE_SIZE, validate_upload
from app.models.enums import UploadEventType
from app.schemas.events import UploadEvent
from app.services.object_storage import ObjectStorage
from app.services.processing_gateway import ProcessingGateway

logger = logging.getLogger(__name__)


def _event(kind: UploadEventType, message: str, **extra) -> Dict[str, Any]:
    return UploadEvent(type=kind, message=message, **extra).as_payload()


class UploadRelay:
    """
    One file -> S3 -> processor, reported as a sequence of event payloads:

        uploading(0) -> uploaded(100) -> processing -> processing(taskId)

    Any failure ends the sequence with a single `error` event. Invalid files
    are rejected before object storage is touched. No proposal row is
    written and nothing is retried.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        gateway: ProcessingGateway,
        *,
        max_bytes: int = MAX_FILE_SIZE,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.storage = storage
        self.gateway = gateway
        self.max_bytes = max_bytes
        self.clock_ms = clock_ms

    def run(
        self, *, project_id: str, filename: str, content: bytes, content_type: str
    ) -> Iterator[Dict[str, Any]]:
        yield _event(UploadEventType.uploading, "Uploading file...", progress=0)

        reason = validate_upload(filename, len(content), max_bytes=self.max_bytes)
        if reason:
            logger.info("[relay] rejected %s for project %s: %s", filename, project_id, reason)
            yield _event(UploadEventType.error, reason)
            return

        try:
            key = self.storage.unprocessed_key(project_id, filename, self.clock_ms())
            s3_uri = self.storage.put(
                key,
                content,
                content_type=content_type,
                metadata={"originalName": filename, "projectId": project_id},
            )
            yield _event(UploadEventType.uploaded, "File uploaded successfully!", progress=100)

            yield _event(UploadEventType.processing, "Processing document...")
            if not self.gateway.processor_configured:
                logger.info("[relay] no processor configured; %s left in %s", filename, s3_uri)
                return

            task_id = self.gateway.submit_pointer(
                project_id=project_id, s3_uri=s3_uri, filename=filename
            )
            yield _event(
                UploadEventType.processing, "Document processing started", taskId=task_id
            )
        except (ObjectStorageError, GatewayError) as exc:
            yield _event(UploadEventType.error, str(exc))
        except Exception as exc:
            logger.exception("[relay] unexpected failure for %s", filename)
            yield _event(UploadEventType.error, f"Upload failed: {exc.__class__.__name__}")
