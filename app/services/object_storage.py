# app/services/object_storage.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import Settings
from app.core.errors import ObjectStorageError
from app.core.uploads import sanitize_filename

logger = logging.getLogger(__name__)


def _ascii_metadata(metadata: Dict[str, str]) -> Dict[str, str]:
    # S3 user metadata travels as HTTP headers; botocore refuses non-ASCII values
    return {k: v if v.isascii() else quote(v, safe=" ") for k, v in metadata.items()}


class ObjectStorage:
    """Raw document storage in a single S3 bucket."""

    def __init__(self, s3_client, bucket: str):
        self.s3_client = s3_client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStorage":
        client = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )
        return cls(client, settings.aws_s3_bucket)

    # ---------- keys ----------

    @staticmethod
    def proposal_key(
        project_id: uuid.UUID | str,
        proposal_id: uuid.UUID | str,
        filename: str,
        role: str = "original",
    ) -> str:
        return f"projects/{project_id}/proposals/{proposal_id}/{role}/{sanitize_filename(filename)}"

    @staticmethod
    def unprocessed_key(project_id: str, filename: str, timestamp_ms: int) -> str:
        return f"unprocessed/{project_id}/{timestamp_ms}_{sanitize_filename(filename)}"

    def uri(self, key: str) -> str:
        return f"s3://{self.bucket}/{key}"

    # ---------- writes ----------

    def put(
        self,
        key: str,
        body: bytes,
        *,
        content_type: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Upload bytes under key and return the s3:// URI.

        Non-ASCII metadata values are percent-encoded (UTF-8).
        """
        meta = {"uploadedAt": datetime.now(timezone.utc).isoformat()}
        meta.update(_ascii_metadata(metadata or {}))
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                Metadata=meta,
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            logger.error("[s3] put_object failed key=%s code=%s: %s", key, code, e)
            raise ObjectStorageError(f"S3 upload failed ({code})") from e
        except BotoCoreError as e:
            logger.error("[s3] put_object failed key=%s: %s", key, e)
            raise ObjectStorageError("S3 upload failed") from e

        logger.info("[s3] uploaded %d bytes to %s", len(body), self.uri(key))
        return self.uri(key)
