from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.enums import ProposalStatus


class ProposalResponse(BaseModel):
    id: str
    project_id: str
    filename: str
    original_file_key: str
    processed_files_path: str = ""
    processed_files: Dict[str, Any] = Field(default_factory=dict)
    status: ProposalStatus
    file_size: int = Field(..., ge=0)
    processing_task_id: Optional[str] = None
    uploaded_at: Optional[str] = None
    updated_at: Optional[str] = None


class ProposalEnvelope(BaseModel):
    proposal: ProposalResponse


class ProposalListResponse(BaseModel):
    proposals: List[ProposalResponse]
