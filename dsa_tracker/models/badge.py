"""Badge models for gamification"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class BadgeDefinition(BaseModel):
    """Badge catalog entry"""
    model_config = ConfigDict(frozen=True)

    type: str
    name: str
    description: str
    icon: str


class UnlockedBadge(BaseModel):
    """User's unlocked badge"""
    model_config = ConfigDict(frozen=True)

    user_id: str
    badge_type: str
    unlocked_at: datetime


class BadgeStatus(BaseModel):
    """Badge definition joined with the user's unlock state"""
    type: str
    name: str
    description: str
    icon: str
    unlocked: bool = False
    unlocked_at: Optional[datetime] = None


class BadgeProgress(BaseModel):
    """Progress toward a locked badge"""
    current: int
    required: int
    percentage: int
    description: str
