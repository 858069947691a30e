from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Integer, String, Text, DateTime, Index, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, JSONType, utcnow
from app.models.enums import OutboxOperation


class MetadataOutboxEntry(Base):
    """
    One pending write to the MongoDB project mirror.

    Written in the same transaction as the project change it describes;
    delivered_at stays NULL until the mirror accepted it.
    """
    __tablename__ = "metadata_outbox"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    project_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    operation: Mapped[str] = mapped_column(
        String(16), nullable=False, default=OutboxOperation.upsert.value
    )
    payload: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("ix_metadata_outbox_pending", "delivered_at", "created_at"),)
