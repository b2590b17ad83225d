"""Code snippet and revision session models"""
from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class CodeSnippet(BaseModel):
    """Saved solution text for a problem"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    problem_id: str
    code: str = Field(min_length=1)
    language: str = "python"
    created_at: datetime
    is_solution: bool = False
    notes: Optional[str] = None


class RevisionSession(BaseModel):
    """A block of revision work"""
    id: Optional[str] = None
    user_id: Optional[str] = None
    session_type: str
    problems_revised: list[str] = Field(default_factory=list)
    confidence_before: int = Field(default=1, ge=1, le=5)
    topics_covered: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
