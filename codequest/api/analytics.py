"""
Statistics, leaderboard and ledger audit API endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from codequest.database import get_db
from codequest.exceptions import NotFound
from codequest.schemas.analytics import LeaderboardEntry, LedgerAudit, UserStats
from codequest.services.analytics_service import analytics_service
from codequest.services.points_ledger import points_ledger

router = APIRouter(prefix="/api", tags=["analytics"])
logger = logging.getLogger(__name__)


@router.get("/users/{user_id}/stats", response_model=UserStats)
async def get_user_stats(user_id: int, db: Session = Depends(get_db)):
    """
    Get the aggregates badge rules are evaluated against

    Returns:
    - Total points
    - Completed courses
    - Completed exercises
    """
    try:
        return analytics_service.get_user_stats(db, user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """Get users ranked by total points"""
    return analytics_service.get_leaderboard(db, limit)


@router.get("/users/{user_id}/ledger", response_model=LedgerAudit)
async def audit_ledger(user_id: int, db: Session = Depends(get_db)):
    """Compare a user's balance with the sum of their progress points"""
    try:
        return points_ledger.audit(db, user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
