# app/api/v1/proposals.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.deps import (
    get_object_storage,
    get_processing_gateway,
    get_upload_relay,
    parse_uuid,
)
from app.core.errors import NotFoundError, ObjectStorageError
from app.core.streaming import SSE_HEADERS, sse_stream
from app.core.uploads import guess_content_type, validate_upload
from app.db.session import get_db
from app.models.proposal import Proposal
from app.schemas.proposals import ProposalEnvelope, ProposalListResponse
from app.services.object_storage import ObjectStorage
from app.services.processing_gateway import ProcessingGateway
from app.services.proposals_service import ProposalsService
from app.services.upload_relay import UploadRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposals")


def _iso(dt):
    return dt.isoformat() if dt else None


def _resp(p: Proposal) -> dict:
    return {
        "id": str(p.id),
        "project_id": str(p.project_id),
        "filename": p.filename,
        "original_file_key": p.original_file_key,
        "processed_files_path": p.processed_files_path or "",
        "processed_files": p.processed_files or {},
        "status": p.status,
        "file_size": p.file_size,
        "processing_task_id": p.processing_task_id,
        "uploaded_at": _iso(p.uploaded_at),
        "updated_at": _iso(p.updated_at),
    }


def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    # one byte past the limit is enough for validate_upload to reject it
    file.file.seek(0)
    return file.file.read(max_bytes + 1)


@router.get("", response_model=ProposalListResponse)
def list_proposals(
    project_id: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    pid = parse_uuid(project_id, "project_id") if project_id else None
    rows = ProposalsService().list(db, project_id=pid)
    return {"proposals": [_resp(p) for p in rows]}


@router.post("", response_model=ProposalEnvelope, status_code=201)
def create_proposal(
    file: Optional[UploadFile] = File(default=None),
    project_id: Optional[str] = Form(default=None),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_object_storage),
    gateway: ProcessingGateway = Depends(get_processing_gateway),
    settings: Settings = Depends(get_settings),
):
    if file is None or not project_id:
        raise HTTPException(status_code=400, detail="File and project_id are required")
    pid = parse_uuid(project_id, "project_id")

    content = _read_upload(file, settings.max_upload_bytes)
    filename = file.filename or "upload"
    reason = validate_upload(filename, len(content), max_bytes=settings.max_upload_bytes)
    if reason:
        raise HTTPException(status_code=400, detail=reason)

    try:
        p = ProposalsService().create_from_upload(
            db,
            project_id=pid,
            filename=filename,
            content=content,
            content_type=file.content_type or guess_content_type(filename),
            storage=storage,
            gateway=gateway,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ObjectStorageError:
        raise HTTPException(status_code=500, detail="Failed to upload proposal")

    logger.info("[proposals] %s created for project %s status=%s", p.id, pid, p.status)
    return {"proposal": _resp(p)}


@router.post("/upload")
def upload_stream(
    file: Optional[UploadFile] = File(default=None),
    projectId: Optional[str] = Form(default=None),
    relay: UploadRelay = Depends(get_upload_relay),
):
    """
    Relay one file to S3 and the processor, reporting progress as
    `text/event-stream`. Errors after this point arrive as an `error` event.
    """
    if file is None or not projectId:
        raise HTTPException(status_code=400, detail="File and project ID are required")
    pid = parse_uuid(projectId, "projectId")

    # read before streaming: the multipart spool is closed once the handler returns
    content = _read_upload(file, relay.max_bytes)
    filename = file.filename or "upload"
    events = relay.run(
        project_id=str(pid),
        filename=filename,
        content=content,
        content_type=file.content_type or guess_content_type(filename),
    )
    return StreamingResponse(
        sse_stream(events),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
