# /app/core/deps.py
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import Depends, HTTPException, Request

from app.core.config import Settings, get_settings
from app.services.metadata_mirror import ProjectMetadataMirror
from app.services.object_storage import ObjectStorage
from app.services.processing_gateway import ProcessingGateway
from app.services.upload_relay import UploadRelay

# Shared clients are built once in create_app() and kept on app.state;
# tests swap them through app.dependency_overrides.


def get_object_storage(request: Request) -> ObjectStorage:
    return request.app.state.object_storage


def get_metadata_mirror(request: Request) -> Optional[ProjectMetadataMirror]:
    return getattr(request.app.state, "metadata_mirror", None)


def get_processing_gateway(request: Request) -> ProcessingGateway:
    return request.app.state.processing_gateway


def get_upload_relay(
    storage: ObjectStorage = Depends(get_object_storage),
    gateway: ProcessingGateway = Depends(get_processing_gateway),
    settings: Settings = Depends(get_settings),
) -> UploadRelay:
    return UploadRelay(storage, gateway, max_bytes=settings.max_upload_bytes)


def parse_uuid(raw: str, label: str = "id") -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"{label} must be UUID.")
