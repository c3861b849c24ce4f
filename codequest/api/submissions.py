"""
Code submission API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from codequest.database import get_db
from codequest.exceptions import NotFound
from codequest.schemas.submission import CodeSubmissionCreate, CodeSubmissionResponse, SubmissionResult
from codequest.services.code_runner import CodeRunner, get_code_runner
from codequest.services.submission_service import submission_service
from codequest.utils.rate_limiter import rate_limiter

router = APIRouter(prefix="/api", tags=["submissions"])
logger = logging.getLogger(__name__)


@router.post("/exercises/{exercise_id}/submit", response_model=SubmissionResult)
async def submit_code(
    exercise_id: int,
    submission: CodeSubmissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    runner: CodeRunner = Depends(get_code_runner),
):
    """
    Submit code for an exercise

    - Runs every test case through the code runner
    - Passes only when all test cases pass
    - A first pass completes the exercise and credits its points
    - Returns any badges unlocked by the submission
    """
    await rate_limiter.check_request(request, submission.user_id)

    try:
        return await submission_service.submit_code(
            db, runner, submission.user_id, exercise_id, submission.code
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.get("/users/{user_id}/submissions", response_model=List[CodeSubmissionResponse])
async def list_submissions(
    user_id: int,
    exercise_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Get a user's submission history, newest first"""
    try:
        return submission_service.list_submissions(db, user_id, exercise_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
