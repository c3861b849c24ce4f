"""
Pydantic schemas for quiz-related requests and responses
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from codequest.schemas.badge import UserBadgeResponse
from codequest.schemas.grading import Verdict


class QuizQuestionResponse(BaseModel):
    """Individual quiz question, without its answer key"""
    id: int
    question: str
    options: List[str]
    order_index: int

    class Config:
        from_attributes = True


class QuizSubmission(BaseModel):
    """
    Schema for quiz submission

    answers is positional: answers[i] answers the i-th question. A JSON
    encoded list is accepted as well.
    """
    user_id: int
    answers: Any


class QuizAttemptResponse(BaseModel):
    """A stored quiz attempt"""
    id: int
    user_id: int
    quiz_id: int
    answers: List[Optional[str]]
    score: int
    total_questions: int
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuizGradingResponse(BaseModel):
    """Response after quiz grading"""
    attempt_id: int
    score: int
    total_questions: int
    score_display: str  # "2/3"
    percentage: float
    points_candidate: int
    points_awarded: int = 0
    breakdown: Verdict
    new_badges: List[UserBadgeResponse] = Field(default_factory=list)
