#app/schemas/projects.py
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _ProjectWrite(BaseModel):
    """
    name/schema are optional at the model level so the router can answer
    a plain 400 ("Name and schema are required") instead of a 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, max_length=256)
    description: Optional[str] = None
    # accepted as JSON text or as a {"field": "type"} object
    schema_: Optional[Union[str, Dict[str, Any]]] = Field(default=None, alias="schema")

    @field_validator("schema_")
    @classmethod
    def _schema_as_text(cls, v):
        if isinstance(v, dict):
            return json.dumps(v)
        return v

    def missing_required(self) -> bool:
        return not (self.name and self.name.strip()) or not self.schema_


class ProjectCreateRequest(_ProjectWrite):
    pass


class ProjectUpdateRequest(_ProjectWrite):
    """Full replace: every writable field is overwritten."""


class ProjectResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: Optional[str] = None
    schema_: str = Field(..., alias="schema")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    proposal_count: Optional[int] = None

    # mirror-only fields (absent when the mirror is down or has no record)
    original_file_url: Optional[str] = None
    demo_url: Optional[str] = None


class ProjectEnvelope(BaseModel):
    project: ProjectResponse


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse]


class MessageResponse(BaseModel):
    message: str
