from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.models.enums import UploadEventType


class UploadEvent(BaseModel):
    """One `data:` frame of the upload relay stream."""

    type: UploadEventType
    message: str
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    taskId: Optional[str] = None

    def as_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
