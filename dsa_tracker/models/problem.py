"""Problem catalog and per-user problem state models"""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(str, Enum):
    """Problem difficulty"""
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class ProblemStatus(str, Enum):
    """Per-user status of a problem"""
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    DONE = "Done"
    NEEDS_REVISION = "Needs Revision"


class ProblemMetadata(BaseModel):
    """Optional catalog details. Unknown keys are rejected."""
    model_config = ConfigDict(extra="forbid")

    description: Optional[str] = None
    external_url: Optional[str] = None
    leetcode_number: Optional[int] = Field(default=None, ge=1)
    company_tags: list[str] = Field(default_factory=list)
    pattern_tags: list[str] = Field(default_factory=list)
    hints: list[str] = Field(default_factory=list)
    estimated_time_minutes: Optional[int] = Field(default=None, ge=0)


class Problem(BaseModel):
    """Catalog entry"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str
    difficulty: Difficulty
    topic: str
    xp_reward: int = Field(default=10, ge=0)
    metadata: ProblemMetadata = Field(default_factory=ProblemMetadata)
    created_by: Optional[str] = None  # None for example problems
    is_active: bool = True
    created_at: Optional[datetime] = None

    @field_validator('title', 'topic')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Titles and topics must contain text"""
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class UserProblemState(BaseModel):
    """A user's progress on a single problem, joined with its catalog entry"""
    user_id: str
    problem_id: str
    status: ProblemStatus = ProblemStatus.NOT_STARTED
    completed_at: Optional[datetime] = None
    last_revised_at: Optional[datetime] = None
    confidence_level: Optional[int] = Field(default=None, ge=1, le=5)
    is_bookmarked: bool = False
    is_interview_ready: bool = False
    revision_count: int = Field(default=0, ge=0)
    personal_notes: Optional[str] = None
    approach_notes: Optional[str] = None
    key_insights: Optional[str] = None
    updated_at: Optional[datetime] = None
    problem: Optional[Problem] = None

    @property
    def xp_reward(self) -> int:
        return self.problem.xp_reward if self.problem else 0

    @property
    def difficulty(self) -> Optional[Difficulty]:
        return self.problem.difficulty if self.problem else None

    @property
    def topic(self) -> Optional[str]:
        return self.problem.topic if self.problem else None

    @property
    def is_solved(self) -> bool:
        return self.status == ProblemStatus.DONE
