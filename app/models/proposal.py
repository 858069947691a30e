# /app/models/proposal.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import BigInteger, String, DateTime, Index, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType, utcnow
from app.models.enums import ProposalStatus


class Proposal(Base):
    __tablename__ = "proposals"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # checked against projects at creation time by the service, no FK cascade
    project_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    original_file_key: Mapped[str] = mapped_column(String(1024), nullable=False)

    processed_files_path: Mapped[str] = mapped_column(
        String(1024), nullable=False, default=""
    )
    processed_files: Mapped[Dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ProposalStatus.uploaded.value
    )
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    processing_task_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("ix_proposals_project_uploaded", "project_id", "uploaded_at"),)
