"""
Progress and badge API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from codequest.database import get_db
from codequest.exceptions import MalformedInput, NotFound
from codequest.schemas.badge import BadgeResponse, UserBadgeResponse
from codequest.schemas.progress import ProgressResponse, ProgressUpdate
from codequest.services.badge_service import badge_service
from codequest.services.events import ProgressEvent, progress_events
from codequest.services.progress_service import progress_service

router = APIRouter(prefix="/api", tags=["progress"])
logger = logging.getLogger(__name__)


@router.get("/users/{user_id}/progress", response_model=List[ProgressResponse])
async def get_progress(
    user_id: int,
    course_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    """Get a user's progress records, optionally for one course"""
    try:
        return progress_service.list_for_user(db, user_id, course_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.put("/progress", response_model=ProgressResponse)
async def update_progress(update: ProgressUpdate, db: Session = Depends(get_db)):
    """
    Record progress directly

    Same rules as graded attempts: points are only raised, and a
    completed record stays completed.
    """
    try:
        change = progress_service.record_manual(
            db,
            update.user_id,
            update.course_id,
            update.target(),
            update.status,
            update.points_earned,
        )
        db.commit()
    except NotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=e.message)
    except MalformedInput as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=e.message)

    progress_events.dispatch(db, ProgressEvent(user_id=update.user_id, course_id=update.course_id, change=change))

    db.refresh(change.record)
    return change.record


@router.get("/badges", response_model=List[BadgeResponse])
async def list_badges(db: Session = Depends(get_db)):
    """Get the badge catalogue"""
    return badge_service.list_badges(db)


@router.get("/users/{user_id}/badges", response_model=List[UserBadgeResponse])
async def get_user_badges(user_id: int, db: Session = Depends(get_db)):
    """Get the badges a user holds"""
    try:
        return badge_service.list_user_badges(db, user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/users/{user_id}/badges/check", response_model=List[UserBadgeResponse])
async def check_badges(user_id: int, db: Session = Depends(get_db)):
    """Evaluate badge rules now and return only newly granted badges"""
    try:
        return badge_service.evaluate_badges(db, user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
