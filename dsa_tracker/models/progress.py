"""Daily progress and streak models"""
import datetime
from typing import Optional

from pydantic import BaseModel, Field


class DailyProgress(BaseModel):
    """One user-local calendar day of practice"""
    date: datetime.date
    solved: int = Field(default=0, ge=0)
    revised: int = Field(default=0, ge=0)
    goal: int = Field(default=0, ge=0)
    revision_goal: int = Field(default=0, ge=0)
    achieved: bool = False
    revision_achieved: bool = False
    xp_earned: int = Field(default=0, ge=0)
    study_time: int = Field(default=0, ge=0)  # minutes
    focus_areas: list[str] = Field(default_factory=list)
    notes: Optional[str] = None


class DailyProgressUpdate(BaseModel):
    """Recomputed counters for a day, merged into the stored record"""
    date: datetime.date
    solved: int = Field(ge=0)
    revised: int = Field(ge=0)
    goal: int = Field(ge=0)
    revision_goal: int = Field(ge=0)
    achieved: bool
    revision_achieved: bool
    xp_earned: int = Field(ge=0)

    def merge_into(self, existing: Optional[DailyProgress]) -> DailyProgress:
        """Apply the counters, keeping study time, focus areas and notes"""
        base = existing or DailyProgress(date=self.date)
        return base.model_copy(update=self.model_dump())


class Streak(BaseModel):
    """Consecutive achieved days"""
    current: int = Field(default=0, ge=0)
    longest: int = Field(default=0, ge=0)


class TodayProgress(BaseModel):
    """Today's progress with defaults filled in"""
    date: datetime.date
    solved: int = 0
    revised: int = 0
    goal: int = 0
    revision_goal: int = 0
    achieved: bool = False
    revision_achieved: bool = False
    xp_earned: int = 0
    study_time: int = 0
    focus_areas: list[str] = Field(default_factory=list)
    notes: str = ""
