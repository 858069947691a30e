# app/services/outbox_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from pymongo.errors import PyMongoError
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.models.enums import OutboxOperation
from app.models.metadata_outbox import MetadataOutboxEntry
from app.models.project import Project
from app.services.metadata_mirror import ProjectMetadataMirror

logger = logging.getLogger(__name__)


def mirror_payload(p: Project) -> Dict[str, Any]:
    return {
        "name": p.name,
        "description": p.description,
        "schema": p.schema,
    }


class MetadataOutboxService:
    """
    Relational outbox for MongoDB mirror writes.

    enqueue() never commits: the entry lands with the project change that
    produced it. dispatch() delivers pending entries in creation order and
    records failures on the entry instead of raising.
    """

    def enqueue(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        operation: OutboxOperation,
        payload: Optional[Dict[str, Any]] = None,
    ) -> MetadataOutboxEntry:
        entry = MetadataOutboxEntry(
            project_id=project_id,
            operation=operation.value,
            payload=payload or {},
        )
        db.add(entry)
        return entry

    def pending(
        self,
        db: Session,
        *,
        project_id: Optional[uuid.UUID] = None,
        after: Optional[MetadataOutboxEntry] = None,
        limit: int = 100,
    ) -> List[MetadataOutboxEntry]:
        """Undelivered entries in (created_at, id) order, optionally past `after`."""
        stmt = select(MetadataOutboxEntry).where(MetadataOutboxEntry.delivered_at.is_(None))
        if project_id is not None:
            stmt = stmt.where(MetadataOutboxEntry.project_id == project_id)
        if after is not None:
            stmt = stmt.where(
                or_(
                    MetadataOutboxEntry.created_at > after.created_at,
                    and_(
                        MetadataOutboxEntry.created_at == after.created_at,
                        MetadataOutboxEntry.id > after.id,
                    ),
                )
            )
        stmt = stmt.order_by(MetadataOutboxEntry.created_at.asc(), MetadataOutboxEntry.id).limit(limit)
        return list(db.execute(stmt).scalars().all())

    def _apply(self, mirror: ProjectMetadataMirror, entry: MetadataOutboxEntry) -> None:
        pid = str(entry.project_id)
        if entry.operation == OutboxOperation.delete.value:
            mirror.delete(pid)
        else:
            mirror.upsert(pid, dict(entry.payload or {}))

    def _deliver(
        self,
        mirror: ProjectMetadataMirror,
        entries: List[MetadataOutboxEntry],
        blocked: Set[uuid.UUID],
    ) -> Tuple[int, int]:
        # per-project order: a failure holds back that project's later entries
        delivered = failed = 0
        for entry in entries:
            if entry.project_id in blocked:
                continue
            entry.attempts = (entry.attempts or 0) + 1
            try:
                self._apply(mirror, entry)
            except PyMongoError as exc:
                failed += 1
                blocked.add(entry.project_id)
                entry.last_error = str(exc)[:2000]
                logger.warning(
                    "[outbox] %s for project %s failed (attempt %d): %s",
                    entry.operation, entry.project_id, entry.attempts, exc,
                )
                continue
            entry.delivered_at = datetime.now(timezone.utc)
            entry.last_error = None
            delivered += 1
        return delivered, failed

    def dispatch(
        self,
        db: Session,
        mirror: Optional[ProjectMetadataMirror],
        *,
        project_id: Optional[uuid.UUID] = None,
        limit: int = 100,
    ) -> Tuple[int, int]:
        """One pass over the oldest `limit` pending entries. Returns (delivered, failed)."""
        if mirror is None:
            logger.debug("[outbox] mirror disabled; entries stay pending")
            return 0, 0

        delivered, failed = self._deliver(
            mirror, self.pending(db, project_id=project_id, limit=limit), set()
        )
        db.commit()
        if delivered or failed:
            logger.info("[outbox] delivered=%d failed=%d", delivered, failed)
        return delivered, failed

    def replay(
        self,
        db: Session,
        mirror: ProjectMetadataMirror,
        *,
        batch_size: int = 100,
    ) -> Tuple[int, int]:
        """
        Walk every pending entry once, a page at a time, committing per page.

        Pages advance past what was already visited, so a run of failing
        projects cannot hide healthier entries behind it and no entry is
        attempted twice in one replay. Returns (delivered, failed).
        """
        delivered = failed = 0
        blocked: Set[uuid.UUID] = set()
        cursor: Optional[MetadataOutboxEntry] = None
        while True:
            page = self.pending(db, after=cursor, limit=batch_size)
            if not page:
                break
            d, f = self._deliver(mirror, page, blocked)
            db.commit()
            delivered += d
            failed += f
            cursor = page[-1]

        logger.info("[outbox] replay delivered=%d failed=%d", delivered, failed)
        return delivered, failed
