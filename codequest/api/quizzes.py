"""
Quiz attempt API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from codequest.database import get_db
from codequest.exceptions import EmptyQuiz, MalformedInput, NotFound
from codequest.schemas.quiz import (
    QuizAttemptResponse,
    QuizGradingResponse,
    QuizQuestionResponse,
    QuizSubmission,
)
from codequest.services.quiz_service import quiz_service
from codequest.utils.rate_limiter import rate_limiter

router = APIRouter(prefix="/api", tags=["quizzes"])
logger = logging.getLogger(__name__)


@router.get("/quizzes/{quiz_id}/questions", response_model=List[QuizQuestionResponse])
async def get_questions(quiz_id: int, db: Session = Depends(get_db)):
    """Get a quiz's questions in order, without the answer key"""
    try:
        return quiz_service.get_questions(db, quiz_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/quizzes/{quiz_id}/submit", response_model=QuizGradingResponse)
async def submit_quiz(
    quiz_id: int,
    submission: QuizSubmission,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Submit and grade a quiz

    Grading strategy:
    - answers[i] is compared with question i by exact match
    - Missing or null answers count as incorrect
    - Points are proportional to the score, best attempt wins

    Returns:
    - Score in "X/Y" form and percentage
    - Per-question breakdown
    - Points credited and badges unlocked
    """
    await rate_limiter.check_request(request, submission.user_id)

    try:
        return quiz_service.submit_quiz(db, submission.user_id, quiz_id, submission.answers)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except (MalformedInput, EmptyQuiz) as e:
        raise HTTPException(status_code=422, detail=e.message)


@router.get("/users/{user_id}/quiz-attempts", response_model=List[QuizAttemptResponse])
async def list_attempts(
    user_id: int,
    quiz_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Get a user's quiz attempts, newest first"""
    try:
        return quiz_service.list_attempts(db, user_id, quiz_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
