# app/services/projects_service.py
from __future__ import annotations

import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError
from app.db.base import utcnow
from app.models.enums import OutboxOperation
from app.models.project import Project
from app.models.proposal import Proposal
from app.services.outbox_service import MetadataOutboxService, mirror_payload


class ProjectsService:
    def __init__(self, outbox: Optional[MetadataOutboxService] = None):
        self.outbox = outbox or MetadataOutboxService()

    def create(
        self, db: Session, *, name: str, description: Optional[str], schema: str
    ) -> Project:
        now = utcnow()
        p = Project(
            id=uuid.uuid4(),
            name=name,
            description=description,
            schema=schema,
            created_at=now,
            updated_at=now,
        )
        db.add(p)
        self.outbox.enqueue(
            db, project_id=p.id, operation=OutboxOperation.upsert, payload=mirror_payload(p)
        )
        db.commit()
        db.refresh(p)
        return p

    def get(self, db: Session, *, project_id: uuid.UUID) -> Optional[Project]:
        return db.execute(
            select(Project).where(Project.id == project_id)
        ).scalar_one_or_none()

    def exists(self, db: Session, *, project_id: uuid.UUID) -> bool:
        return db.execute(
            select(Project.id).where(Project.id == project_id)
        ).first() is not None

    def list(self, db: Session) -> List[Project]:
        stmt = select(Project).order_by(Project.created_at.desc())
        return list(db.execute(stmt).scalars().all())

    def proposal_counts(
        self, db: Session, project_ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, int]:
        ids = list(project_ids)
        if not ids:
            return {}
        rows = db.execute(
            select(Proposal.project_id, func.count())
            .where(Proposal.project_id.in_(ids))
            .group_by(Proposal.project_id)
        ).all()
        return {pid: int(n) for pid, n in rows}

    def proposal_count(self, db: Session, *, project_id: uuid.UUID) -> int:
        return self.proposal_counts(db, [project_id]).get(project_id, 0)

    def replace(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        name: str,
        description: Optional[str],
        schema: str,
    ) -> Project:
        """Full replace of the writable fields; no partial patch."""
        p = self.get(db, project_id=project_id)
        if not p:
            raise NotFoundError("Project not found.")

        p.name = name
        p.description = description
        p.schema = schema
        p.updated_at = utcnow()
        db.add(p)
        self.outbox.enqueue(
            db, project_id=p.id, operation=OutboxOperation.upsert, payload=mirror_payload(p)
        )
        db.commit()
        db.refresh(p)
        return p

    def delete(self, db: Session, *, project_id: uuid.UUID) -> None:
        # proposals and S3 objects are left in place
        p = self.get(db, project_id=project_id)
        if not p:
            raise NotFoundError("Project not found.")
        db.delete(p)
        self.outbox.enqueue(db, project_id=project_id, operation=OutboxOperation.delete)
        db.commit()
