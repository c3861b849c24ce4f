"""
Analytics service for user statistics and the leaderboard
"""
import logging
from typing import List, Optional

from sqlalchemy import and_, case, distinct, func
from sqlalchemy.orm import Session

from codequest.config import settings
from codequest.exceptions import NotFound
from codequest.models import CodeSubmission, User, UserBadge, UserProgress
from codequest.schemas.analytics import LeaderboardEntry, UserStats
from codequest.utils.cache import cache_service

logger = logging.getLogger(__name__)


def _course_level_completed():
    """Course completion markers: completed rows with no lesson/exercise/quiz"""
    return and_(
        UserProgress.status == "completed",
        UserProgress.lesson_id.is_(None),
        UserProgress.exercise_id.is_(None),
        UserProgress.quiz_id.is_(None),
    )


class AnalyticsService:
    """Service for aggregate statistics"""

    def count_courses_completed(self, db: Session, user_id: int) -> int:
        return db.query(func.count(UserProgress.id)).filter(
            UserProgress.user_id == user_id,
            _course_level_completed(),
        ).scalar() or 0

    def count_exercises_completed(self, db: Session, user_id: int) -> int:
        """
        Passing submissions by default (resubmissions of a passed exercise
        count again); distinct exercises when
        BADGE_COUNT_DISTINCT_EXERCISES is set
        """
        counted = (
            func.count(distinct(CodeSubmission.exercise_id))
            if settings.BADGE_COUNT_DISTINCT_EXERCISES
            else func.count(CodeSubmission.id)
        )
        return db.query(counted).filter(
            CodeSubmission.user_id == user_id,
            CodeSubmission.status == "passed",
        ).scalar() or 0

    def get_user_stats(self, db: Session, user_id: int) -> UserStats:
        """
        Compute badge aggregates fresh from current state

        Raises:
            NotFound: if the user does not exist
        """
        user = db.get(User, user_id)
        if user is None:
            raise NotFound("User", user_id)

        return UserStats(
            user_id=user_id,
            total_points=user.total_points,
            courses_completed=self.count_courses_completed(db, user_id),
            exercises_completed=self.count_exercises_completed(db, user_id),
        )

    def get_leaderboard(self, db: Session, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        """
        Users ranked by total points

        Args:
            db: Database session
            limit: Number of rows, defaulted and capped by settings

        Returns:
            Leaderboard entries, highest balance first (ties by user id)
        """
        limit = limit or settings.LEADERBOARD_DEFAULT_LIMIT
        limit = max(1, min(limit, settings.LEADERBOARD_MAX_LIMIT))

        cache_key = cache_service.leaderboard_key(limit)
        cached = cache_service.get(cache_key)
        if cached is not None:
            return [LeaderboardEntry(**row) for row in cached]

        badge_counts = (
            db.query(UserBadge.user_id, func.count(UserBadge.id).label("badge_count"))
            .group_by(UserBadge.user_id)
            .subquery()
        )
        course_counts = (
            db.query(
                UserProgress.user_id,
                func.count(distinct(case((_course_level_completed(), UserProgress.course_id)))).label(
                    "courses_completed"
                ),
            )
            .group_by(UserProgress.user_id)
            .subquery()
        )

        rows = (
            db.query(
                User.id,
                User.username,
                User.total_points,
                func.coalesce(badge_counts.c.badge_count, 0),
                func.coalesce(course_counts.c.courses_completed, 0),
            )
            .outerjoin(badge_counts, badge_counts.c.user_id == User.id)
            .outerjoin(course_counts, course_counts.c.user_id == User.id)
            .order_by(User.total_points.desc(), User.id)
            .limit(limit)
            .all()
        )

        entries = [
            LeaderboardEntry(
                rank=position,
                user_id=user_id,
                username=username,
                total_points=total_points,
                badge_count=int(badge_count),
                courses_completed=int(courses_completed),
            )
            for position, (user_id, username, total_points, badge_count, courses_completed) in enumerate(rows, 1)
        ]

        cache_service.set(cache_key, [entry.model_dump() for entry in entries], ttl=settings.LEADERBOARD_CACHE_TTL)
        return entries


# Global instance
analytics_service = AnalyticsService()
