"""
Pydantic schemas for badges
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class RequirementType(str, Enum):
    POINTS = "points"
    COURSES_COMPLETED = "courses_completed"
    EXERCISES_COMPLETED = "exercises_completed"


class BadgeResponse(BaseModel):
    """A badge definition"""
    id: int
    name: str
    description: str
    icon: str
    requirement_type: RequirementType
    requirement_value: int

    class Config:
        from_attributes = True


class UserBadgeResponse(BaseModel):
    """A badge held by a user"""
    id: int
    user_id: int
    badge_id: int
    earned_at: Optional[datetime] = None
    badge: Optional[BadgeResponse] = None

    class Config:
        from_attributes = True
