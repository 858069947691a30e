# app/services/proposals_service.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import GatewayError, NotFoundError
from app.db.base import utcnow
from app.models.enums import ProposalStatus
from app.models.proposal import Proposal
from app.services.object_storage import ObjectStorage
from app.services.processing_gateway import ProcessingGateway
from app.services.projects_service import ProjectsService

logger = logging.getLogger(__name__)


class ProposalsService:
    def list(self, db: Session, *, project_id: Optional[uuid.UUID] = None) -> List[Proposal]:
        stmt = select(Proposal).order_by(Proposal.uploaded_at.desc())
        if project_id is not None:
            stmt = stmt.where(Proposal.project_id == project_id)
        return list(db.execute(stmt).scalars().all())

    def get(self, db: Session, *, proposal_id: uuid.UUID) -> Optional[Proposal]:
        return db.execute(
            select(Proposal).where(Proposal.id == proposal_id)
        ).scalar_one_or_none()

    def create_from_upload(
        self,
        db: Session,
        *,
        project_id: uuid.UUID,
        filename: str,
        content: bytes,
        content_type: str,
        storage: ObjectStorage,
        gateway: ProcessingGateway,
    ) -> Proposal:
        """
        Store the file, record the proposal, then hand the file to the
        processing gateway. A gateway failure leaves the proposal `uploaded`.
        """
        if not ProjectsService().exists(db, project_id=project_id):
            raise NotFoundError("Project not found.")

        proposal_id = uuid.uuid4()
        key = storage.proposal_key(project_id, proposal_id, filename, "original")
        storage.put(
            key,
            content,
            content_type=content_type,
            metadata={"originalName": filename, "projectId": str(project_id)},
        )

        now = utcnow()
        proposal = Proposal(
            id=proposal_id,
            project_id=project_id,
            filename=filename,
            original_file_key=key,
            processed_files_path="",
            processed_files={},
            status=ProposalStatus.uploaded.value,
            file_size=len(content),
            uploaded_at=now,
            updated_at=now,
        )
        db.add(proposal)
        db.commit()
        db.refresh(proposal)

        try:
            task_id = gateway.submit_file(
                project_id=str(project_id),
                filename=filename,
                content=content,
                content_type=content_type,
            )
        except GatewayError as exc:
            logger.warning("[proposals] %s stays uploaded: %s", proposal_id, exc)
            return proposal

        return self.mark_processing(db, proposal=proposal, task_id=task_id)

    def mark_processing(self, db: Session, *, proposal: Proposal, task_id: str) -> Proposal:
        proposal.processing_task_id = task_id
        proposal.status = ProposalStatus.processing.value
        proposal.updated_at = utcnow()
        db.add(proposal)
        db.commit()
        db.refresh(proposal)
        return proposal
