"""User-related Pydantic models"""
from typing import Optional

from pydantic import BaseModel, Field

from dsa_tracker import config


class UserProfile(BaseModel):
    """User profile information"""
    user_id: str
    display_name: Optional[str] = None
    daily_goal: int = Field(default_factory=lambda: config.DEFAULT_DAILY_GOAL, ge=0)
    timezone: str = Field(default_factory=lambda: config.DEFAULT_TIMEZONE)  # IANA timezone
