from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Document Ingestion Dashboard"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str

    # ─────────── MONGO (mirror, optional) ───────────
    mongodb_uri: Optional[str] = None
    mongodb_database: str = "dashboard"
    mongodb_collection: str = "projects"

    # ─────────── S3 ───────────
    aws_region: str = "us-east-1"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_s3_bucket: str = "mineru-documents"

    # ─────────── PROCESSING ───────────
    processing_gateway_url: Optional[str] = None
    processor_url: Optional[str] = None
    gateway_timeout_seconds: Optional[float] = None  # None = no timeout

    # ─────────── UPLOADS ───────────
    max_upload_bytes: int = 50 * 1024 * 1024  # 50 MiB


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
