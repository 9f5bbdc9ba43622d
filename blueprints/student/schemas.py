from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

class AccessIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_name: str = Field(alias="studentName", max_length=200)
    assignment_code: str = Field(alias="assignmentCode", min_length=1, max_length=32)

class WorkIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    assignment_id: int = Field(alias="assignmentId")
    student_name: str = Field(alias="studentName", max_length=200)
    content: str = Field(max_length=100_000)
    session_token: Optional[str] = Field(None, alias="sessionToken", max_length=128)
