"""
Pydantic schemas for code submission requests and responses
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from codequest.schemas.badge import UserBadgeResponse
from codequest.schemas.grading import Verdict


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"


class CodeSubmissionCreate(BaseModel):
    """Schema for submitting code against an exercise"""
    user_id: int
    code: str = Field(..., max_length=100_000)


class CodeSubmissionResponse(BaseModel):
    """A stored code submission"""
    id: int
    user_id: int
    exercise_id: int
    code: str
    status: SubmissionStatus
    test_results: Optional[Verdict] = None
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubmissionResult(BaseModel):
    """Response after grading a submission"""
    submission_id: int
    status: SubmissionStatus
    test_results: Verdict
    points_awarded: int = 0
    new_badges: List[UserBadgeResponse] = Field(default_factory=list)
