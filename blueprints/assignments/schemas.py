from __future__ import annotations
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

class AssignmentIn(BaseModel):
    title: str = Field(max_length=255)
    content: str = Field(max_length=20000)
    instructions: Optional[str] = Field(None, max_length=5000)
    deadline: Optional[datetime] = None

    @field_validator("deadline")
    @classmethod
    def _to_naive_utc(cls, v: Optional[datetime]):
        # в БД храним naive UTC
        if v is not None and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

class AssignmentActionIn(BaseModel):
    action: Literal["close", "reopen"]
