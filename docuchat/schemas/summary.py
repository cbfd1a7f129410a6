"""
Pydantic Schemas for document summaries
"""

from pydantic import BaseModel, Field
from typing import Literal, Optional
from datetime import datetime
from uuid import UUID


class SummaryRequest(BaseModel):
    summary_type: Literal["brief", "standard", "detailed", "bullets"] = Field(
        "standard",
        description="Summary style"
    )
    domain_focus: Optional[str] = Field(
        None,
        max_length=100,
        description="Optional field to emphasise (e.g. legal, medical, finance)"
    )


class SummaryResponse(BaseModel):
    id: UUID
    document_id: UUID
    summary_type: str
    domain_focus: Optional[str] = None
    content: str
    credits_used: int = 0
    provider: Optional[str] = None
    cached: bool = False
    created_at: Optional[datetime] = None
