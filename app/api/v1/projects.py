# app/api/v1/projects.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import PyMongoError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.deps import get_metadata_mirror, parse_uuid
from app.core.errors import NotFoundError
from app.db.session import get_db
from app.models.project import Project
from app.schemas.projects import (
    MessageResponse,
    ProjectCreateRequest,
    ProjectEnvelope,
    ProjectListResponse,
    ProjectUpdateRequest,
)
from app.services.metadata_mirror import ProjectMetadataMirror
from app.services.outbox_service import MetadataOutboxService
from app.services.projects_service import ProjectsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects")


def _iso(dt):
    return dt.isoformat() if dt else None


def _resp(
    p: Project,
    *,
    proposal_count: Optional[int] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> dict:
    out = {
        "id": str(p.id),
        "name": p.name,
        "description": p.description,
        "schema": p.schema,
        "created_at": _iso(p.created_at),
        "updated_at": _iso(p.updated_at),
        "proposal_count": proposal_count,
    }
    # mirror only fills gaps; relational fields are never overwritten
    for k, v in (extra or {}).items():
        if out.get(k) is None:
            out[k] = v
    return out


def _sync_mirror(
    db: Session, mirror: Optional[ProjectMetadataMirror], project_id: uuid.UUID
) -> None:
    """Best-effort outbox delivery for one project; never fails the request."""
    try:
        MetadataOutboxService().dispatch(db, mirror, project_id=project_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("[projects] outbox dispatch failed for %s", project_id)


def _require_fields(body) -> None:
    if body.missing_required():
        logger.info("[projects] rejected write: missing name or schema")
        raise HTTPException(status_code=400, detail="Name and schema are required")


@router.get("", response_model=ProjectListResponse)
def list_projects(
    db: Session = Depends(get_db),
    mirror: Optional[ProjectMetadataMirror] = Depends(get_metadata_mirror),
):
    svc = ProjectsService()
    rows = svc.list(db)
    counts = svc.proposal_counts(db, [p.id for p in rows])

    extras: Dict[str, Dict[str, Any]] = {}
    if mirror is not None and rows:
        try:
            extras = mirror.find_many(str(p.id) for p in rows)
        except PyMongoError as exc:
            logger.warning("[projects] mirror enrichment skipped: %s", exc)

    return {
        "projects": [
            _resp(p, proposal_count=counts.get(p.id, 0), extra=extras.get(str(p.id)))
            for p in rows
        ]
    }


@router.post("", response_model=ProjectEnvelope, status_code=201)
def create_project(
    body: ProjectCreateRequest,
    db: Session = Depends(get_db),
    mirror: Optional[ProjectMetadataMirror] = Depends(get_metadata_mirror),
):
    _require_fields(body)

    p = ProjectsService().create(
        db, name=body.name.strip(), description=body.description, schema=body.schema_
    )
    logger.info("[projects] created %s name=%r", p.id, p.name)

    _sync_mirror(db, mirror, p.id)
    return {"project": _resp(p, proposal_count=0)}


@router.get("/{projectId}", response_model=ProjectEnvelope)
def get_project(projectId: str, db: Session = Depends(get_db)):
    pid = parse_uuid(projectId, "projectId")

    svc = ProjectsService()
    p = svc.get(db, project_id=pid)
    if not p:
        raise HTTPException(status_code=404, detail="Project not found.")
    return {"project": _resp(p, proposal_count=svc.proposal_count(db, project_id=pid))}


@router.put("/{projectId}", response_model=ProjectEnvelope)
def update_project(
    projectId: str,
    body: ProjectUpdateRequest,
    db: Session = Depends(get_db),
    mirror: Optional[ProjectMetadataMirror] = Depends(get_metadata_mirror),
):
    pid = parse_uuid(projectId, "projectId")
    _require_fields(body)

    svc = ProjectsService()
    try:
        p = svc.replace(
            db,
            project_id=pid,
            name=body.name.strip(),
            description=body.description,
            schema=body.schema_,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    _sync_mirror(db, mirror, pid)
    return {"project": _resp(p, proposal_count=svc.proposal_count(db, project_id=pid))}


@router.delete("/{projectId}", response_model=MessageResponse)
def delete_project(
    projectId: str,
    db: Session = Depends(get_db),
    mirror: Optional[ProjectMetadataMirror] = Depends(get_metadata_mirror),
):
    pid = parse_uuid(projectId, "projectId")
    try:
        ProjectsService().delete(db, project_id=pid)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    logger.info("[projects] deleted %s (proposals kept)", pid)
    _sync_mirror(db, mirror, pid)
    return {"message": "Project deleted successfully"}
